# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime
from typing import Any, TypeAlias

from pydantic import BaseModel, ConfigDict, Field

from wilson.core.types import FollowUpAction, ToolResult


class HookContext(BaseModel):
    """What a hook knows about the dispatch it surrounds.

    Attributes:
        tool_name: Canonical tool name being dispatched.
        params: Current parameters (after earlier pre-hook rewrites).
        working_directory: Directory relative paths resolve against.
        conversation_id: Conversation the dispatch belongs to, if known.
        retry_count: Number of retries that led to this dispatch.
    """

    model_config = ConfigDict(frozen=True)

    tool_name: str
    params: dict[str, Any] = Field(default_factory=dict)
    working_directory: str
    conversation_id: str | None = None
    retry_count: int = 0


class PreHookResult(BaseModel):
    """Verdict of a pre-execution hook.

    Attributes:
        proceed: False rejects the call and stops the chain.
        modified_params: Replacement parameters for the rest of the chain.
        error: Rejection reason.
        suggestion: Hint for the backend on how to recover.
    """

    model_config = ConfigDict(frozen=True)

    proceed: bool
    modified_params: dict[str, Any] | None = None
    error: str | None = None
    suggestion: str | None = None


class PostHookResult(BaseModel):
    """Output of a post-execution hook.

    Attributes:
        result: Possibly rewritten tool result.
        should_retry: Ask the caller to re-run the call.
        retry_params: Parameters to use for the retry.
        follow_up_action: Tool call to suggest next.
    """

    model_config = ConfigDict(frozen=True)

    result: ToolResult
    should_retry: bool = False
    retry_params: dict[str, Any] | None = None
    follow_up_action: FollowUpAction | None = None


class CorrectionAttempt(BaseModel):
    """One self-correction retry, kept for diagnostics."""

    model_config = ConfigDict(frozen=True)

    tool_name: str
    original_params: dict[str, Any]
    error: str
    corrected_params: dict[str, Any]
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))


class FileReadCacheEntry(BaseModel):
    """A file read recorded by the read-before-write guard.

    Attributes:
        path: Resolved file path.
        content: Content returned by the read.
        timestamp_read: Clock reading (seconds) at record time.
    """

    model_config = ConfigDict(frozen=True)

    path: str
    content: str
    timestamp_read: float


PreHook: TypeAlias = Callable[[HookContext], Awaitable[PreHookResult] | PreHookResult]
PostHook: TypeAlias = Callable[[HookContext, ToolResult], Awaitable[PostHookResult] | PostHookResult]
