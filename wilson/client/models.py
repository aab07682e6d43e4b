"""Pydantic models for backend requests."""
import sys
from typing import Any, Literal

from pydantic import BaseModel, Field


class HistoryMessage(BaseModel):
    """One message of conversation history.

    Attributes:
        role: Author of the message.
        content: Plain text, or a list of content blocks in wire form
            (assistant text/tool_use blocks, user tool_result blocks).
    """

    role: Literal["user", "assistant"]
    content: str | list[dict[str, Any]]


class ChatRequest(BaseModel):
    """Request body for the agentic-loop endpoint.

    Attributes:
        message: User message for this turn (empty on tool continuations).
        history: Conversation history, oldest first.
        store_id: Store the conversation is scoped to.
        working_directory: Client working directory.
        platform: Client OS identifier.
        client: Client kind.
        format_hint: Output formatting the client can render.
        local_tools: Schemas of tools the client executes.
        tool_call_count: Backend's tool-call counter, echoed on continuation.
        loop_depth: Backend's continuation depth, echoed on continuation.
        provider: Model provider override.
        model: Model override.
        system_prompt: System prompt override.
    """

    message: str
    history: list[HistoryMessage] = Field(default_factory=list)
    store_id: str | None = None
    working_directory: str
    platform: str = Field(default_factory=lambda: sys.platform)
    client: str = "cli"
    format_hint: str = "terminal"
    local_tools: list[dict[str, Any]] = Field(default_factory=list)
    tool_call_count: int | None = None
    loop_depth: int | None = None
    provider: str | None = None
    model: str | None = None
    system_prompt: str | None = None
