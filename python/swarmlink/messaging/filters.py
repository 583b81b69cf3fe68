"""Selection and aggregation helpers over parsed agent responses."""

from __future__ import annotations

import re
from collections import Counter
from typing import Iterable, Optional

from .parser import AgentResponse, ResponseKind, parse_timestamp


def filter_by_kind(responses: Iterable[AgentResponse], kind: ResponseKind) -> list[AgentResponse]:
    return [r for r in responses if r.kind == kind]


def filter_by_success(responses: Iterable[AgentResponse], success: bool) -> list[AgentResponse]:
    return [r for r in responses if r.success == success]


def filter_by_tool_name(responses: Iterable[AgentResponse], tool_name: str) -> list[AgentResponse]:
    return [r for r in responses if any(c.tool_name == tool_name for c in r.tool_calls)]


def filter_by_content(responses: Iterable[AgentResponse], pattern: str) -> list[AgentResponse]:
    return [r for r in responses if pattern in r.content]


def filter_by_time_range(
    responses: Iterable[AgentResponse], start: int, end: int
) -> list[AgentResponse]:
    """Responses whose content carries a timestamp within ``[start, end]``."""
    out = []
    for r in responses:
        ts = parse_timestamp(r.content)
        if ts is not None and start <= ts <= end:
            out.append(r)
    return out


def filter_errors(responses: Iterable[AgentResponse]) -> list[AgentResponse]:
    return [r for r in responses if not r.success or r.kind == ResponseKind.ERROR]


def filter_with_tool_calls(responses: Iterable[AgentResponse]) -> list[AgentResponse]:
    return [r for r in responses if r.tool_calls]


def filter_by_file_operation(
    responses: Iterable[AgentResponse], file_path: str
) -> list[AgentResponse]:
    return [
        r
        for r in responses
        if file_path in r.content
        or any(file_path in v for c in r.tool_calls for v in c.arguments.values())
    ]


def unique_tool_names(responses: Iterable[AgentResponse]) -> list[str]:
    names = {c.tool_name for r in responses for c in r.tool_calls}
    return sorted(names)


def count_by_kind(responses: Iterable[AgentResponse]) -> dict[ResponseKind, int]:
    return dict(Counter(r.kind for r in responses))


def count_by_tool(responses: Iterable[AgentResponse]) -> dict[str, int]:
    return dict(Counter(c.tool_name for r in responses for c in r.tool_calls))


def find_first_error(responses: Iterable[AgentResponse]) -> Optional[AgentResponse]:
    for r in responses:
        if r.kind == ResponseKind.ERROR:
            return r
    return None


def find_last_message(responses: list[AgentResponse]) -> Optional[AgentResponse]:
    return responses[-1] if responses else None


def extract_tool_arguments(
    responses: Iterable[AgentResponse], tool_name: str
) -> list[dict[str, str]]:
    """Arguments of the first call to ``tool_name`` in each response that has one."""
    out = []
    for r in responses:
        for call in r.tool_calls:
            if call.tool_name == tool_name:
                out.append(call.arguments)
                break
    return out


def group_by_kind(responses: Iterable[AgentResponse]) -> dict[ResponseKind, list[AgentResponse]]:
    groups: dict[ResponseKind, list[AgentResponse]] = {}
    for r in responses:
        groups.setdefault(r.kind, []).append(r)
    return groups


def errors_only(responses: Iterable[AgentResponse]) -> list[str]:
    return [r.error for r in responses if r.error]


def content_only(responses: Iterable[AgentResponse]) -> list[str]:
    return [r.content for r in responses]


def deduplicate(responses: Iterable[AgentResponse]) -> list[AgentResponse]:
    seen: set[tuple[ResponseKind, bool, str]] = set()
    unique = []
    for r in responses:
        key = (r.kind, r.success, r.content)
        if key in seen:
            continue
        seen.add(key)
        unique.append(r)
    return unique


def sort_by_timestamp(
    responses: Iterable[AgentResponse], ascending: bool = True
) -> list[AgentResponse]:
    """Stable sort; responses without a timestamp sort as 0."""
    return sorted(
        responses,
        key=lambda r: parse_timestamp(r.content) or 0,
        reverse=not ascending,
    )


def limit(responses: list[AgentResponse], n: int) -> list[AgentResponse]:
    return responses[: max(0, n)]


def paginate(responses: list[AgentResponse], page: int, page_size: int) -> list[AgentResponse]:
    start = max(0, page) * max(0, page_size)
    return responses[start : start + max(0, page_size)]


def search_by_pattern(responses: Iterable[AgentResponse], pattern: str) -> list[AgentResponse]:
    """Regex search over content. Raises ``re.error`` for an invalid pattern."""
    regex = re.compile(pattern)
    return [r for r in responses if regex.search(r.content)]


def filter_multiline(responses: Iterable[AgentResponse], min_lines: int) -> list[AgentResponse]:
    return [r for r in responses if len(r.content.splitlines()) >= min_lines]


def filter_by_length(responses: Iterable[AgentResponse], min_length: int) -> list[AgentResponse]:
    return [r for r in responses if len(r.content) >= min_length]


def drop_empty(responses: Iterable[AgentResponse]) -> list[AgentResponse]:
    return [r for r in responses if r.content.strip()]
