"""Selection of the messages a compaction summarizes and the ones it keeps."""

from __future__ import annotations

import logging

from ..types.messages import (
    AssistantModelMessage,
    ModelMessage,
    SystemModelMessage,
    ToolCallPart,
    ToolModelMessage,
    tool_call_parts,
    tool_result_parts,
)
from .filter import ContextFilter, filter_by_tool_call_ids
from .types import CompactionPolicy, MessageSelection

logger = logging.getLogger(__name__)


def adjust_tail_start(messages: list[ModelMessage], start: int) -> int:
    """Move the tail boundary back until no tail result is cut off from its call.

    Returns the new start index. Results whose call does not exist anywhere
    before the boundary leave it unchanged.
    """
    while start > 0:
        tail = messages[start:]
        tail_call_ids = {c.tool_call_id for m in tail for c in tool_call_parts(m)}
        missing = {
            r.tool_call_id
            for m in tail
            for r in tool_result_parts(m)
            if r.tool_call_id not in tail_call_ids
        }
        if not missing:
            break
        earliest = next(
            (
                i
                for i in range(start)
                if any(c.tool_call_id in missing for c in tool_call_parts(messages[i]))
            ),
            None,
        )
        if earliest is None:
            break
        start = earliest
    return start


def extract_critical_messages(
    messages: list[ModelMessage], critical_tool_names: tuple[str, ...]
) -> tuple[list[ModelMessage], list[ModelMessage]]:
    """Pull the latest call/result pair of each critical tool out of ``messages``.

    Earlier pairs of the same tools are dropped. An assistant turn that holds a
    critical call is split: the call and the turn's text move out, any other
    tool-calls stay behind.

    Returns:
        (remaining messages, extracted critical messages), both in original order
    """
    result_ids = {r.tool_call_id for m in messages for r in tool_result_parts(m)}

    latest: dict[str, str] = {}
    all_critical: set[str] = set()
    for msg in messages:
        for call in tool_call_parts(msg):
            if call.tool_name in critical_tool_names and call.tool_call_id in result_ids:
                latest[call.tool_name] = call.tool_call_id
                all_critical.add(call.tool_call_id)

    if not latest:
        return list(messages), []

    keep_ids = set(latest.values())
    stale_ids = all_critical - keep_ids

    remaining: list[ModelMessage] = []
    critical: list[ModelMessage] = []
    for msg in messages:
        if isinstance(msg, AssistantModelMessage) and any(
            c.tool_call_id in keep_ids for c in tool_call_parts(msg)
        ):
            moved = [
                p
                for p in msg.content
                if not isinstance(p, ToolCallPart) or p.tool_call_id in keep_ids
            ]
            left = [
                p
                for p in msg.content
                if isinstance(p, ToolCallPart) and p.tool_call_id not in keep_ids
            ]
            critical.append(msg.model_copy(update={"content": moved}))
            if left:
                remaining.append(msg.model_copy(update={"content": left}))
        elif isinstance(msg, ToolModelMessage) and any(
            r.tool_call_id in keep_ids for r in msg.content
        ):
            moved_results = [r for r in msg.content if r.tool_call_id in keep_ids]
            left_results = [r for r in msg.content if r.tool_call_id not in keep_ids]
            critical.append(msg.model_copy(update={"content": moved_results}))
            if left_results:
                remaining.append(msg.model_copy(update={"content": left_results}))
        else:
            remaining.append(msg)

    if stale_ids:
        logger.info("Dropping %d superseded critical tool call(s)", len(stale_ids))
        remaining = filter_by_tool_call_ids(remaining, stale_ids)

    logger.info(
        "Preserving latest critical tool calls: %s",
        ", ".join(f"{name} ({call_id})" for name, call_id in latest.items()),
    )
    return remaining, critical


def select_messages(
    messages: list[ModelMessage],
    preserve_recent_messages: int,
    policy: CompactionPolicy | None = None,
    context_filter: ContextFilter | None = None,
) -> MessageSelection:
    """Split a conversation into a region to summarize and messages kept verbatim.

    The preserved set is the leading system message, the latest critical tool
    pairs and the recent tail, in that order. Critical pairs older than a
    completed call of the same tool in the tail are dropped. The region to
    summarize is passed through ``context_filter`` when one is given.
    """
    policy = policy or CompactionPolicy()

    system_message = None
    rest = list(messages)
    if rest and isinstance(rest[0], SystemModelMessage):
        system_message = rest[0]
        rest = rest[1:]
    head = [system_message] if system_message is not None else []

    if len(rest) <= preserve_recent_messages:
        return MessageSelection(
            messages_to_compress=[],
            preserved_messages=head + rest,
            original_system_message=system_message,
            recent_messages=rest,
        )

    start = len(rest) - preserve_recent_messages
    adjusted = adjust_tail_start(rest, start)
    if adjusted != start:
        logger.info(
            "Adjusted preservation boundary from %d to %d to keep tool calls with their results",
            start,
            adjusted,
        )

    region = rest[:adjusted]
    tail = rest[adjusted:]

    # A critical tool with a completed call in the tail has its state there already.
    tail_result_ids = {r.tool_call_id for m in tail for r in tool_result_parts(m)}
    superseded = {
        c.tool_name
        for m in tail
        for c in tool_call_parts(m)
        if c.tool_name in policy.critical_tool_names and c.tool_call_id in tail_result_ids
    }
    stale_ids = {
        c.tool_call_id for m in region for c in tool_call_parts(m) if c.tool_name in superseded
    }
    if stale_ids:
        logger.info(
            "Dropping %d critical tool call(s) superseded by the recent messages", len(stale_ids)
        )
        region = filter_by_tool_call_ids(region, stale_ids)

    to_compress, critical = extract_critical_messages(region, policy.critical_tool_names)

    if context_filter is not None and to_compress:
        to_compress = context_filter.filter_messages(to_compress)

    return MessageSelection(
        messages_to_compress=to_compress,
        preserved_messages=head + critical + tail,
        original_system_message=system_message,
        critical_messages=critical,
        recent_messages=tail,
    )
