from .client import AgentClient, AgentMessage, SessionInfo, SessionOutput, SessionStatus
from .discovery import AgentDiscovery, AgentServerStatus, ServerStatus

__all__ = [
    "AgentClient",
    "AgentDiscovery",
    "AgentMessage",
    "AgentServerStatus",
    "ServerStatus",
    "SessionInfo",
    "SessionOutput",
    "SessionStatus",
]
