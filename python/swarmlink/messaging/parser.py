"""Classify raw agent output into typed response events.

Classification walks ``CLASSIFIERS`` in order; the first row whose predicate matches
builds the response. Everything here is pure: the same text always yields the same
result, and timestamps come from the text, never from the clock.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, NamedTuple, Optional


class ResponseKind(str, Enum):
    MESSAGE = "message"
    TOOL_CALL = "tool_call"
    ERROR = "error"
    COMPLETION = "completion"


@dataclass(frozen=True)
class ToolCall:
    tool_name: str
    arguments: dict[str, str] = field(default_factory=dict)


@dataclass
class AgentResponse:
    success: bool
    kind: ResponseKind
    content: str
    tool_calls: list[ToolCall] = field(default_factory=list)
    error: Optional[str] = None


ERROR_MARKERS = ("<error>", "Error:", "error:")
ERROR_LINE_MARKERS = ("Error:", "error:")
TOOL_CALL_MARKERS = ("Running:", "<tool_call>")
COMPLETION_MARKERS = ("<complete>", "I'll complete", "Done.")
COMPLETION_PHRASES = ("I'll complete", "Done.")

# Lines that open a new segment in parse_multiple_outputs.
SEGMENT_MARKERS = ("<error>", "Error:", "error:", "Running:", "<tool_call>", "<complete>")

_ERROR_SPAN_RE = re.compile(r"<error>(.*?)</error>", re.DOTALL)
_TOOL_CALL_SPAN_RE = re.compile(r"<tool_call>(.*?)</tool_call>")
_TOOL_ARG_RE = re.compile(r'([^\s=]+)=("[^"]*"|\S+)')

_TIMESTAMP_PATTERNS: list[tuple[re.Pattern[str], int]] = [
    (re.compile(r"\[(\d{10})\]"), 1),
    (re.compile(r"\[(\d{13})\]"), 1000),
    (re.compile(r"T(\d{10})(?!\d)"), 1),
]
_ISO_RE = re.compile(
    r"(\d{4}-\d{2}-\d{2})[T ](\d{2}:\d{2}:\d{2})(?:\.\d+)?(Z|[+-]\d{2}:?\d{2})?"
)


def _contains_any(text: str, markers: tuple[str, ...]) -> bool:
    return any(marker in text for marker in markers)


def _join_lines(lines) -> str:
    return "\n".join(lines).strip()


# ---------------------------------------------------------------------------
# Builders
# ---------------------------------------------------------------------------


def _build_error(output: str) -> AgentResponse:
    untagged = output.replace("<error>", "").replace("</error>", "")
    content = _join_lines(
        line for line in untagged.splitlines() if not _contains_any(line, ERROR_LINE_MARKERS)
    )

    pieces = [
        line.strip()
        for line in untagged.splitlines()
        if _contains_any(line, ERROR_LINE_MARKERS)
    ]
    for span in _ERROR_SPAN_RE.findall(output):
        span = span.strip()
        if span and span not in pieces:
            pieces.append(span)

    return AgentResponse(
        success=False,
        kind=ResponseKind.ERROR,
        content=content,
        error=_join_lines(pieces),
    )


def _parse_running_line(rest: str) -> Optional[ToolCall]:
    parsed = extract_command_line(rest)
    if parsed is None:
        return None
    tool_name, args = parsed
    return ToolCall(tool_name, {"raw_args": " ".join(args), "command": rest.strip()})


def _parse_tool_call_span(span: str) -> Optional[ToolCall]:
    parts = span.split(None, 1)
    if not parts:
        return None
    arguments: dict[str, str] = {}
    if len(parts) > 1:
        for key, value in _TOOL_ARG_RE.findall(parts[1]):
            arguments[key] = value.strip('"')
    return ToolCall(parts[0], arguments)


def extract_tool_calls(output: str) -> list[ToolCall]:
    """Collect every ``Running:`` line and ``<tool_call>`` span, in line order."""
    calls: list[ToolCall] = []
    for line in output.splitlines():
        stripped = line.strip()
        if stripped.startswith("Running:"):
            call = _parse_running_line(stripped[len("Running:") :])
            if call is not None:
                calls.append(call)
        for span in _TOOL_CALL_SPAN_RE.findall(line):
            call = _parse_tool_call_span(span)
            if call is not None:
                calls.append(call)
    return calls


def _build_tool_call(output: str) -> AgentResponse:
    content = _join_lines(
        line
        for line in output.splitlines()
        if not line.lstrip().startswith(("Running:", "<tool_call>"))
    )
    return AgentResponse(
        success=True,
        kind=ResponseKind.TOOL_CALL,
        content=content,
        tool_calls=extract_tool_calls(output),
    )


def _build_completion(output: str) -> AgentResponse:
    untagged = output.replace("<complete>", "").replace("</complete>", "")
    content = _join_lines(
        line for line in untagged.splitlines() if not _contains_any(line, COMPLETION_PHRASES)
    )
    return AgentResponse(success=True, kind=ResponseKind.COMPLETION, content=content)


def _build_message(output: str) -> AgentResponse:
    return AgentResponse(success=True, kind=ResponseKind.MESSAGE, content=output)


class Classifier(NamedTuple):
    kind: ResponseKind
    matches: Callable[[str], bool]
    build: Callable[[str], AgentResponse]


CLASSIFIERS: list[Classifier] = [
    Classifier(ResponseKind.ERROR, lambda text: _contains_any(text, ERROR_MARKERS), _build_error),
    Classifier(
        ResponseKind.TOOL_CALL, lambda text: _contains_any(text, TOOL_CALL_MARKERS), _build_tool_call
    ),
    Classifier(
        ResponseKind.COMPLETION,
        lambda text: _contains_any(text, COMPLETION_MARKERS),
        _build_completion,
    ),
]


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def classify(output: str) -> ResponseKind:
    for row in CLASSIFIERS:
        if row.matches(output):
            return row.kind
    return ResponseKind.MESSAGE


def parse_agent_output(output: str) -> AgentResponse:
    for row in CLASSIFIERS:
        if row.matches(output):
            return row.build(output)
    return _build_message(output)


def split_into_segments(output: str) -> list[str]:
    """Start a new segment at every line carrying a marker. Heuristic, not a grammar."""
    segments: list[str] = []
    current: list[str] = []
    for line in output.splitlines():
        if current and _contains_any(line, SEGMENT_MARKERS):
            segments.append("\n".join(current))
            current = []
        current.append(line)
    if current:
        segments.append("\n".join(current))
    return [segment for segment in segments if segment.strip()]


def parse_multiple_outputs(output: str) -> list[AgentResponse]:
    return [parse_agent_output(segment) for segment in split_into_segments(output)]


def extract_errors(output: str) -> list[str]:
    errors = []
    for line in output.splitlines():
        if _contains_any(line, ERROR_MARKERS):
            errors.append(line.replace("<error>", "").replace("</error>", "").strip())
    return errors


def extract_json_blocks(output: str) -> list[str]:
    """JSON-looking blocks found by brace depth, optionally inside a ```json fence."""
    blocks: list[str] = []
    current: list[str] = []
    depth = 0
    collecting = False

    for line in output.splitlines():
        stripped = line.strip()
        if stripped.startswith("```"):
            if stripped.startswith("```json") and not collecting:
                collecting = True
            elif collecting and depth == 0:
                collecting = False
                current = []
            continue
        if not collecting and stripped.startswith("{"):
            collecting = True
        if not collecting:
            continue

        current.append(line)
        depth += line.count("{") - line.count("}")
        if depth <= 0 and "}" in line:
            blocks.append("\n".join(current).strip())
            current = []
            depth = 0
            collecting = False

    return blocks


def extract_code_blocks(output: str) -> list[tuple[str, str]]:
    """``(language, content)`` for every fenced block; language is "" when unspecified."""
    blocks: list[tuple[str, str]] = []
    in_block = False
    language = ""
    current: list[str] = []

    for line in output.splitlines():
        if line.startswith("```"):
            if in_block:
                blocks.append((language, "\n".join(current).strip()))
                current = []
                language = ""
                in_block = False
            else:
                in_block = True
                language = line[3:].strip()
        elif in_block:
            current.append(line)

    return blocks


def extract_command_line(command: str) -> Optional[tuple[str, list[str]]]:
    parts = command.split()
    if not parts:
        return None
    return parts[0], parts[1:]


def _parse_iso(match: re.Match[str]) -> Optional[int]:
    date_part, time_part, tz = match.groups()
    if tz is None or tz == "Z":
        tz = "+00:00"
    elif ":" not in tz:
        tz = f"{tz[:3]}:{tz[3:]}"
    try:
        dt = datetime.fromisoformat(f"{date_part}T{time_part}{tz}")
    except ValueError:
        return None
    return int(dt.astimezone(timezone.utc).timestamp())


def parse_timestamp(line: str) -> Optional[int]:
    """First timestamp found in ``line`` as epoch seconds.

    Tried in order: ``[<10 digits>]``, ``[<13 digit millis>]``, ``T<10 digits>``,
    then an ISO-8601 date-time (naive values are read as UTC).
    """
    for pattern, divisor in _TIMESTAMP_PATTERNS:
        match = pattern.search(line)
        if match:
            return int(match.group(1)) // divisor

    match = _ISO_RE.search(line)
    if match:
        return _parse_iso(match)
    return None
