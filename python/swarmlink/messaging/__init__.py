from .logs import LogReader
from .parser import AgentResponse, ResponseKind, ToolCall, parse_agent_output, parse_multiple_outputs
from .prompts import PromptMetadata, PromptWriter
from .queue import Message, MessageQueue, QueuedMessage, QueueStats

__all__ = [
    "AgentResponse",
    "LogReader",
    "Message",
    "MessageQueue",
    "PromptMetadata",
    "PromptWriter",
    "QueueStats",
    "QueuedMessage",
    "ResponseKind",
    "ToolCall",
    "parse_agent_output",
    "parse_multiple_outputs",
]
