# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.
"""Stream event models produced by the wire normalizer.

Every backend dialect is reduced to the events in this module. A turn ends
with exactly one terminal event (DoneEvent or ErrorEvent).
"""
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from wilson.core.types import ContentBlock, PendingToolCall, Usage


class TextEvent(BaseModel):
    """A chunk of assistant text."""

    model_config = ConfigDict(frozen=True)

    type: Literal["text"] = "text"
    text: str


class ToolCallStartedEvent(BaseModel):
    """A tool call was announced by the backend."""

    model_config = ConfigDict(frozen=True)

    type: Literal["tool_call_started"] = "tool_call_started"
    id: str
    name: str


class ToolResultEvent(BaseModel):
    """A tool finished, either server-side or in the local coordinator.

    Attributes:
        id: Tool call ID.
        name: Tool name.
        result: Result payload (parsed JSON where possible).
        elapsed_ms: Execution time if reported.
        is_error: Whether the tool failed.
    """

    model_config = ConfigDict(frozen=True)

    type: Literal["tool_result"] = "tool_result"
    id: str
    name: str
    result: Any = None
    elapsed_ms: int | None = None
    is_error: bool = False


class UsageEvent(BaseModel):
    """Token usage update; carries the merged running totals."""

    model_config = ConfigDict(frozen=True)

    type: Literal["usage"] = "usage"
    usage: Usage


class ErrorEvent(BaseModel):
    """Terminal error for the turn."""

    model_config = ConfigDict(frozen=True)

    type: Literal["error"] = "error"
    message: str


class DoneEvent(BaseModel):
    """Terminal completion for the turn.

    Attributes:
        usage: Last usage value seen before completion, if any.
    """

    model_config = ConfigDict(frozen=True)

    type: Literal["done"] = "done"
    usage: Usage | None = None


class ToolsPendingBatchEvent(BaseModel):
    """Completed tool calls plus the assistant content that produced them.

    Attributes:
        calls: Pending tool calls in request order.
        assistant_content: Ordered content blocks of the turn, to be sent
            back verbatim on continuation.
        tool_call_count: Backend's running tool-call counter, if provided.
        loop_depth: Backend's continuation depth, if provided.
    """

    model_config = ConfigDict(frozen=True)

    type: Literal["tools_pending"] = "tools_pending"
    calls: list[PendingToolCall]
    assistant_content: list[ContentBlock] = Field(default_factory=list)
    tool_call_count: int | None = None
    loop_depth: int | None = None


StreamEvent = Annotated[
    TextEvent
    | ToolCallStartedEvent
    | ToolResultEvent
    | UsageEvent
    | ErrorEvent
    | DoneEvent
    | ToolsPendingBatchEvent,
    Field(discriminator="type"),
]


def is_terminal(event: StreamEvent) -> bool:
    """Return True if the event ends the turn."""
    return isinstance(event, DoneEvent | ErrorEvent)
