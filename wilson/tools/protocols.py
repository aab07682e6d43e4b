# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.
"""Capability protocols the tool coordinator depends on.

The coordinator never talks to a terminal or a filesystem directly. Tool
execution goes through a ToolBackend and anything needing a human goes
through a UserInteraction. NonInteractiveUser is the default capability
for headless runs.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from wilson.core.constants import NO_ANSWER_MARKER
from wilson.core.types import Todo, ToolResult


@runtime_checkable
class ToolBackend(Protocol):
    """Executes tools on behalf of the coordinator.

    Implementations must be safe to call concurrently for parallel-safe
    tools. Raising UnknownToolError signals a name the backend does not
    provide; any other exception is reported as a failed result.
    """

    async def execute(self, name: str, params: dict[str, Any]) -> ToolResult:
        """Run a tool.

        Args:
            name: Canonical tool name (or a remote tool's own name).
            params: Tool parameters after pre-hook rewrites.

        Returns:
            The tool's result.
        """
        ...

    def tool_schemas(self) -> list[dict[str, Any]]:
        """Describe the tools this backend provides, for the request payload."""
        ...


@runtime_checkable
class UserInteraction(Protocol):
    """Everything the coordinator may ask of the person at the keyboard."""

    async def ask_user(self, question: str, options: list[str] | None = None) -> str:
        """Ask a question and wait for the answer.

        Args:
            question: Question text.
            options: Suggested answers, if any.

        Returns:
            The answer text.
        """
        ...

    async def request_permission(self, operation: str, command: str) -> bool:
        """Ask whether a dangerous operation may proceed.

        Args:
            operation: Short description of the danger (e.g. "force push").
            command: The full command text.

        Returns:
            True to allow, False to cancel.
        """
        ...

    async def update_todos(self, todos: list[Todo]) -> None:
        """Receive the latest todo list."""
        ...


class NonInteractiveUser(UserInteraction):
    """UserInteraction for headless runs.

    Questions get a fixed marker answer and every operation is allowed.
    """

    def __init__(self) -> None:
        self.todos: list[Todo] = []

    async def ask_user(self, question: str, options: list[str] | None = None) -> str:
        return NO_ANSWER_MARKER

    async def request_permission(self, operation: str, command: str) -> bool:
        return True

    async def update_todos(self, todos: list[Todo]) -> None:
        self.todos = list(todos)
