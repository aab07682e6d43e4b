# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.
"""Reduce the backend's wire dialects to a single StreamEvent sequence.

Three dialects are understood:

1. Fine-grained deltas (``message_start``, ``content_block_start``,
   ``content_block_delta``, ``content_block_stop``, ``message_delta``,
   ``message_stop``). Tool arguments arrive as ``input_json_delta``
   fragments and are reassembled here.
2. The pre-batched ``pause_for_tools`` envelope, which already carries the
   complete tool calls and assistant content.
3. Plain records (``text``, ``tool_start``, ``tool_result``, ``usage``,
   ``error``, ``done``) sent by simpler backends.
"""
import json
import math
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, TypeAlias

from loguru import logger

from wilson.core.events import (
    DoneEvent,
    ErrorEvent,
    StreamEvent,
    TextEvent,
    ToolCallStartedEvent,
    ToolResultEvent,
    ToolsPendingBatchEvent,
    UsageEvent,
)
from wilson.core.types import ContentBlock, OpaqueBlock, PendingToolCall, TextBlock, ToolUseBlock, Usage


Record: TypeAlias = dict[str, Any]


@dataclass
class AccumulatingToolCall:
    """A tool call whose arguments are still arriving.

    Attributes:
        id: Tool call ID.
        name: Tool name.
        partial_argument_buffer: Concatenated argument fragments, opaque
            until finalize().
        initial_input: Complete input given at block start, used when no
            fragments arrive.
    """

    id: str
    name: str
    partial_argument_buffer: str = ""
    initial_input: dict[str, Any] = field(default_factory=dict)

    def append(self, fragment: str) -> None:
        self.partial_argument_buffer += fragment

    def finalize(self) -> PendingToolCall:
        """Parse the buffer once and return the completed call.

        An empty buffer falls back to ``initial_input``; invalid JSON or a
        non-object value yields an empty input.
        """
        if not self.partial_argument_buffer.strip():
            parsed: Any = self.initial_input
        else:
            try:
                parsed = json.loads(self.partial_argument_buffer)
            except json.JSONDecodeError:
                logger.debug(
                    "Discarding unparsable tool arguments",
                    tool_id=self.id,
                    tool_name=self.name,
                )
                parsed = {}
        if not isinstance(parsed, dict):
            parsed = {}
        return PendingToolCall(id=self.id, name=self.name, input=parsed)


def _extract_text(record: Record) -> str | None:
    for key in ("text", "content", "delta"):
        value = record.get(key)
        if isinstance(value, str) and value:
            return value
    return None


def _as_dict(value: Any) -> Record:
    return value if isinstance(value, dict) else {}


def _as_int(value: Any) -> int | None:
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    return None


def _as_count(value: Any) -> int | None:
    """Truncate a finite number to int; anything else is None."""
    if isinstance(value, bool) or not isinstance(value, int | float):
        return None
    return int(value) if math.isfinite(value) else None


def _coerce_block(raw: Any) -> ContentBlock | None:
    """Keep an envelope content block, with every field it carries.

    Blocks of types Wilson does not interpret pass through as OpaqueBlock.
    Only values that are not typed objects are dropped.
    """
    block = _as_dict(raw)
    block_type = block.get("type")
    if block_type == "text" and isinstance(block.get("text"), str):
        return TextBlock.model_validate(block)
    if block_type == "tool_use":
        return ToolUseBlock.model_validate(
            {
                **block,
                "id": str(block.get("id") or ""),
                "name": str(block.get("name") or ""),
                "input": _as_dict(block.get("input")),
            }
        )
    if isinstance(block_type, str) and block_type:
        return OpaqueBlock.model_validate(block)
    logger.debug("Dropping untyped content block", block_type=block_type)
    return None


class WireEventNormalizer:
    """Stateful translator from decoded wire records to StreamEvents.

    One instance serves one backend response. At most one tool call is
    in flight at a time; tool-call IDs are never reused within the turn.
    """

    def __init__(self) -> None:
        self._handlers: dict[str, Callable[[Record], list[StreamEvent]]] = {
            # Fine-grained delta dialect
            "message_start": self._on_message_start,
            "content_block_start": self._on_content_block_start,
            "content_block_delta": self._on_content_block_delta,
            "content_block_stop": self._on_content_block_stop,
            "message_delta": self._on_message_delta,
            "message_stop": self._on_done,
            "ping": self._ignore,
            # Pre-batched envelope dialect
            "pause_for_tools": self._on_pause_for_tools,
            # Plain dialect
            "text": self._on_text,
            "text_delta": self._on_text,
            "chunk": self._on_text,
            "tool_start": self._on_tool_start,
            "tool_use": self._on_tool_start,
            "tool_result": self._on_tool_result,
            "tool_error": self._on_tool_result,
            "usage": self._on_usage,
            "error": self._on_error,
            "done": self._on_done,
        }
        self.reset()

    def reset(self) -> None:
        """Clear all state for a new backend response."""
        self._in_flight: AccumulatingToolCall | None = None
        self._pending: list[PendingToolCall] = []
        self._content: list[ContentBlock] = []
        self._text_parts: list[str] = []
        self._seen_ids: set[str] = set()
        self._usage: Usage | None = None

    @property
    def usage(self) -> Usage | None:
        """Last merged usage seen in this response."""
        return self._usage

    def process(self, record: Record) -> list[StreamEvent]:
        """Translate one decoded wire record.

        Args:
            record: JSON object from a ``data:`` frame.

        Returns:
            Zero or more events, in the order they should be delivered.
        """
        record_type = record.get("type")
        handler = self._handlers.get(record_type) if isinstance(record_type, str) else None
        if handler is None:
            logger.debug("Dropping unknown stream record", record_type=record_type)
            return []
        return handler(record)

    def finish(self) -> list[StreamEvent]:
        """Events to deliver when the wire ends without a terminal record."""
        return [DoneEvent(usage=self._usage)]

    # Accumulation helpers

    def _flush_text(self) -> None:
        text = "".join(self._text_parts)
        self._text_parts = []
        if text:
            self._content.append(TextBlock(text=text))

    def _finalize_in_flight(self) -> None:
        if self._in_flight is None:
            return
        call = self._in_flight.finalize()
        self._in_flight = None
        self._pending.append(call)
        self._content.append(ToolUseBlock(id=call.id, name=call.name, input=call.input))

    def _clear_accumulation(self) -> None:
        self._in_flight = None
        self._pending = []
        self._content = []
        self._text_parts = []

    def _merge_usage(self, raw: Any) -> list[StreamEvent]:
        usage = _as_dict(raw)
        if not usage:
            return []
        current = self._usage or Usage()
        counts = {key: _as_count(usage.get(key)) for key in ("input_tokens", "output_tokens")}
        updates = {key: count for key, count in counts.items() if count is not None}
        self._usage = current.model_copy(update=updates)
        return [UsageEvent(usage=self._usage)]

    # Fine-grained delta dialect

    def _ignore(self, record: Record) -> list[StreamEvent]:
        return []

    def _on_message_start(self, record: Record) -> list[StreamEvent]:
        return self._merge_usage(_as_dict(record.get("message")).get("usage"))

    def _on_content_block_start(self, record: Record) -> list[StreamEvent]:
        block = _as_dict(record.get("content_block"))
        block_type = block.get("type")

        if block_type == "tool_use":
            # A new block ends whatever was in flight
            self._finalize_in_flight()
            tool_id = str(block.get("id") or "")
            name = str(block.get("name") or "")
            if not tool_id or tool_id in self._seen_ids:
                logger.debug("Dropping tool call with missing or reused id", tool_id=tool_id)
                return []
            self._seen_ids.add(tool_id)
            self._flush_text()
            self._in_flight = AccumulatingToolCall(
                id=tool_id,
                name=name,
                initial_input=_as_dict(block.get("input")),
            )
            return [ToolCallStartedEvent(id=tool_id, name=name)]

        if block_type == "text":
            self._finalize_in_flight()
            self._flush_text()
            text = block.get("text")
            if isinstance(text, str) and text:
                self._text_parts.append(text)
                return [TextEvent(text=text)]
        return []

    def _on_content_block_delta(self, record: Record) -> list[StreamEvent]:
        delta = _as_dict(record.get("delta"))

        if delta.get("type") == "input_json_delta":
            fragment = delta.get("partial_json")
            if self._in_flight is None or not isinstance(fragment, str):
                logger.debug("Dropping argument fragment with no tool call in flight")
                return []
            self._in_flight.append(fragment)
            return []

        text = delta.get("text")
        if isinstance(text, str) and text:
            self._text_parts.append(text)
            return [TextEvent(text=text)]
        return []

    def _on_content_block_stop(self, record: Record) -> list[StreamEvent]:
        if self._in_flight is not None:
            self._finalize_in_flight()
        else:
            self._flush_text()
        return []

    def _on_message_delta(self, record: Record) -> list[StreamEvent]:
        delta = _as_dict(record.get("delta"))
        events = self._merge_usage(record.get("usage") or delta.get("usage"))

        stop_reason = delta.get("stop_reason") or record.get("stop_reason")
        if stop_reason != "tool_use":
            return events

        self._finalize_in_flight()
        self._flush_text()
        if self._pending:
            events.append(
                ToolsPendingBatchEvent(
                    calls=self._pending,
                    assistant_content=self._content,
                    tool_call_count=_as_int(record.get("tool_call_count")),
                    loop_depth=_as_int(record.get("loop_depth")),
                )
            )
        self._clear_accumulation()
        return events

    # Pre-batched envelope dialect

    def _on_pause_for_tools(self, record: Record) -> list[StreamEvent]:
        raw_calls = record.get("pending_tools")
        calls = [
            PendingToolCall(
                id=str(raw.get("id") or ""),
                name=str(raw.get("name") or ""),
                input=_as_dict(raw.get("input")),
            )
            for raw in (raw_calls if isinstance(raw_calls, list) else [])
            if isinstance(raw, dict)
        ]
        raw_content = record.get("assistant_content")
        content = [
            block
            for block in (_coerce_block(raw) for raw in (raw_content if isinstance(raw_content, list) else []))
            if block is not None
        ]
        self._seen_ids.update(call.id for call in calls)
        self._clear_accumulation()
        return [
            ToolsPendingBatchEvent(
                calls=calls,
                assistant_content=content,
                tool_call_count=_as_int(record.get("tool_call_count")),
                loop_depth=_as_int(record.get("loop_depth")),
            )
        ]

    # Plain dialect

    def _on_text(self, record: Record) -> list[StreamEvent]:
        text = _extract_text(record)
        return [TextEvent(text=text)] if text else []

    def _on_tool_start(self, record: Record) -> list[StreamEvent]:
        tool_id = str(record.get("tool_id") or record.get("id") or record.get("tool_use_id") or "")
        name = str(record.get("tool_name") or record.get("name") or "")
        return [ToolCallStartedEvent(id=tool_id, name=name)]

    def _on_tool_result(self, record: Record) -> list[StreamEvent]:
        result = record.get("result")
        if isinstance(result, str) and result:
            try:
                result = json.loads(result)
            except json.JSONDecodeError:
                # Plain-text result, keep as-is
                pass
        return [
            ToolResultEvent(
                id=str(record.get("tool_id") or record.get("id") or ""),
                name=str(record.get("tool_name") or record.get("name") or ""),
                result=result,
                elapsed_ms=_as_count(record.get("elapsed_ms")),
                is_error=record.get("type") == "tool_error",
            )
        ]

    def _on_usage(self, record: Record) -> list[StreamEvent]:
        return self._merge_usage(record.get("usage"))

    def _on_error(self, record: Record) -> list[StreamEvent]:
        error = record.get("error")
        if isinstance(error, dict):
            error = error.get("message")
        message = error if isinstance(error, str) and error else record.get("message")
        return [ErrorEvent(message=str(message or "Unknown error"))]

    def _on_done(self, record: Record) -> list[StreamEvent]:
        return [DoneEvent(usage=self._usage)]
