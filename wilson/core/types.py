# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.
"""Shared type definitions for the Wilson agent runtime.

Contains the Pydantic models exchanged between the stream normalizer, the
hook pipeline and the tool coordinator: pending tool calls, assistant
content blocks, tool results and token usage.
"""
import json
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Discriminator, Field, Tag


class RetryConfig(BaseModel):
    """Retry configuration for transient failures.

    Attributes:
        max_retries: Maximum number of retry attempts after the first call (0-10).
        base_delay: Base delay in seconds for exponential backoff (0.0-30.0).
        max_delay: Maximum delay cap in seconds (0.0-300.0).
    """

    max_retries: int = Field(
        default=3, ge=0, le=10, description="Maximum number of retry attempts"
    )
    base_delay: float = Field(
        default=1.0, ge=0.0, le=30.0, description="Base delay in seconds for exponential backoff"
    )
    max_delay: float = Field(
        default=60.0, ge=0.0, le=300.0, description="Maximum delay cap in seconds"
    )


class Usage(BaseModel):
    """Token usage reported by the backend.

    Attributes:
        input_tokens: Prompt tokens consumed.
        output_tokens: Completion tokens produced.
    """

    model_config = ConfigDict(frozen=True)

    input_tokens: int = 0
    output_tokens: int = 0

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens

    def plus(self, other: "Usage") -> "Usage":
        """Return the element-wise sum of two usage records."""
        return Usage(
            input_tokens=self.input_tokens + other.input_tokens,
            output_tokens=self.output_tokens + other.output_tokens,
        )


class PendingToolCall(BaseModel):
    """A completed tool call waiting to be executed.

    Attributes:
        id: Identifier unique within the turn.
        name: Tool name as requested by the backend.
        input: Parsed tool arguments.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    input: dict[str, Any] = Field(default_factory=dict)


class TextBlock(BaseModel):
    """Assistant text produced during a turn."""

    model_config = ConfigDict(frozen=True, extra="allow")

    type: Literal["text"] = "text"
    text: str


class ToolUseBlock(BaseModel):
    """Assistant tool invocation produced during a turn."""

    model_config = ConfigDict(frozen=True, extra="allow")

    type: Literal["tool_use"] = "tool_use"
    id: str
    name: str
    input: dict[str, Any] = Field(default_factory=dict)


class OpaqueBlock(BaseModel):
    """Assistant content Wilson does not interpret (thinking, server tool use).

    Every field is kept so the block goes back to the backend unchanged.
    """

    model_config = ConfigDict(frozen=True, extra="allow")

    type: str


def _content_block_tag(value: Any) -> str:
    if isinstance(value, OpaqueBlock):
        return "opaque"
    block_type = value.get("type") if isinstance(value, dict) else getattr(value, "type", None)
    return block_type if block_type in ("text", "tool_use") else "opaque"


ContentBlock = Annotated[
    Annotated[TextBlock, Tag("text")]
    | Annotated[ToolUseBlock, Tag("tool_use")]
    | Annotated[OpaqueBlock, Tag("opaque")],
    Discriminator(_content_block_tag),
]
"""Assistant content block, in the order the backend produced it."""


class Todo(BaseModel):
    """A todo list entry maintained by the TodoWrite tool."""

    content: str
    status: Literal["pending", "in_progress", "completed"] = "pending"


class ToolResult(BaseModel):
    """Result of a tool dispatch.

    Backends may attach arbitrary extra fields (structured data for charts,
    exit codes, directory listings); they are preserved on serialization.

    Attributes:
        success: Whether the tool succeeded.
        content: Primary textual output.
        error: Error message when success is False.
        error_type: Classification attached by the error-analysis hook.
        suggestion: Correction hint for the backend.
        cancelled: True when the user declined the operation.
    """

    model_config = ConfigDict(frozen=True, extra="allow")

    success: bool
    content: str | None = None
    error: str | None = None
    error_type: str | None = None
    suggestion: str | None = None
    cancelled: bool | None = None

    @classmethod
    def failure(cls, error: str, **extra: Any) -> "ToolResult":
        return cls(success=False, error=error, **extra)


class FollowUpAction(BaseModel):
    """A tool call a post-hook recommends running next."""

    model_config = ConfigDict(frozen=True)

    tool_name: str
    params: dict[str, Any] = Field(default_factory=dict)
    reason: str


class ToolOutcome(BaseModel):
    """A tool result paired with the call that produced it.

    Attributes:
        tool_use_id: ID of the PendingToolCall.
        tool_name: Tool name as dispatched.
        params: Parameters the tool ran with (after pre-hook rewrites).
        result: Final result after post-hooks.
        should_retry: A post-hook asked for the call to be re-run.
        retry_params: Parameters for the retry, if any.
        follow_up: Follow-up action suggested by a post-hook.
        retry_count: How many retries produced this outcome.
        duration_ms: Dispatch time in milliseconds.
    """

    model_config = ConfigDict(frozen=True)

    tool_use_id: str
    tool_name: str
    params: dict[str, Any] = Field(default_factory=dict)
    result: ToolResult
    should_retry: bool = False
    retry_params: dict[str, Any] | None = None
    follow_up: FollowUpAction | None = None
    retry_count: int = 0
    duration_ms: int | None = None

    def to_content_block(self) -> dict[str, Any]:
        """Render as a tool_result block for the continuation request."""
        return {
            "type": "tool_result",
            "tool_use_id": self.tool_use_id,
            "content": json.dumps(self.result.model_dump(exclude_none=True), default=str),
        }
