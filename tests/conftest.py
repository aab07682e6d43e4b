# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.
"""Shared fixtures and helpers for all tests.

This module provides fake clocks, wire-line builders, recording tool
backends and runtime factories used throughout the test suite.
"""
import asyncio
import json
from collections.abc import Callable
from typing import Any

import pytest

from wilson.core.exceptions import UnknownToolError
from wilson.core.types import PendingToolCall, Todo, ToolResult
from wilson.runtime import AgentRuntime


class AsyncIteratorMock:
    """Mock async iterator for testing async generators.

    Usage:
        mock_stream = AsyncIteratorMock(["data: {}", "data: [DONE]"])
        async for item in mock_stream:
            print(item)
    """

    def __init__(self, items: list[Any]) -> None:
        self.items = items
        self.index = 0
        self.closed = False

    def __aiter__(self) -> "AsyncIteratorMock":
        return self

    async def __anext__(self) -> Any:
        if self.index >= len(self.items):
            raise StopAsyncIteration
        item = self.items[self.index]
        self.index += 1
        if isinstance(item, BaseException):
            raise item
        return item

    async def aclose(self) -> None:
        self.closed = True


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def data_line(record: dict[str, Any]) -> str:
    """Encode a record as a server-sent-event data line."""
    return f"data: {json.dumps(record)}"


def call(id: str, name: str, **input: Any) -> PendingToolCall:
    return PendingToolCall(id=id, name=name, input=input)


class RecordingBackend:
    """ToolBackend that records dispatches and tracks concurrency.

    Args:
        results: Result per tool name; defaults to a success echoing the name.
        delays: Seconds to sleep per call id before returning.
        errors: Exception to raise per tool name.
    """

    def __init__(
        self,
        results: dict[str, ToolResult] | None = None,
        delays: dict[str, float] | None = None,
        errors: dict[str, Exception] | None = None,
    ) -> None:
        self.results = results or {}
        self.delays = delays or {}
        self.errors = errors or {}
        self.calls: list[tuple[str, dict[str, Any]]] = []
        self.started: list[str] = []
        self.finished: list[str] = []
        self.active = 0
        self.max_active = 0
        self.overlapping_with: dict[str, set[str]] = {}
        self._running: set[str] = set()

    def tool_schemas(self) -> list[dict[str, Any]]:
        return [{"name": "Read"}]

    async def execute(self, name: str, params: dict[str, Any]) -> ToolResult:
        key = str(params.get("_id", name))
        self.calls.append((name, params))
        self.started.append(key)
        self.overlapping_with[key] = set(self._running)
        for other in self._running:
            self.overlapping_with.setdefault(other, set()).add(key)
        self._running.add(key)
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            await asyncio.sleep(self.delays.get(key, 0))
            if name in self.errors:
                raise self.errors[name]
            return self.results.get(name, ToolResult(success=True, content=f"{name} ok"))
        finally:
            self.active -= 1
            self._running.discard(key)
            self.finished.append(key)


class OnlyReadBackend(RecordingBackend):
    """Backend that only knows the Read tool."""

    async def execute(self, name: str, params: dict[str, Any]) -> ToolResult:
        if name != "Read":
            raise UnknownToolError(name)
        return await super().execute(name, params)


class ScriptedUser:
    """UserInteraction with canned answers that records what it was asked."""

    def __init__(self, answer: str = "yes", allow: bool = True) -> None:
        self.answer = answer
        self.allow = allow
        self.questions: list[tuple[str, list[str] | None]] = []
        self.permissions: list[tuple[str, str]] = []
        self.todos: list[list[Todo]] = []

    async def ask_user(self, question: str, options: list[str] | None = None) -> str:
        self.questions.append((question, options))
        return self.answer

    async def request_permission(self, operation: str, command: str) -> bool:
        self.permissions.append((operation, command))
        return self.allow

    async def update_todos(self, todos: list[Todo]) -> None:
        self.todos.append(list(todos))


@pytest.fixture
def async_iterator_mock_factory() -> Callable[[list[Any]], AsyncIteratorMock]:
    """Factory fixture for creating AsyncIteratorMock instances."""
    def _create(items: list[Any]) -> AsyncIteratorMock:
        return AsyncIteratorMock(items)
    return _create


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def runtime_factory(tmp_path, fake_clock) -> Callable[..., AgentRuntime]:
    """Factory fixture for runtimes rooted in tmp_path with a fake clock."""
    def _create(**kwargs: Any) -> AgentRuntime:
        kwargs.setdefault("working_directory", str(tmp_path))
        kwargs.setdefault("clock", fake_clock)
        return AgentRuntime(**kwargs)
    return _create


@pytest.fixture
def runtime(runtime_factory) -> AgentRuntime:
    return runtime_factory()


@pytest.fixture
def recording_backend() -> RecordingBackend:
    return RecordingBackend()


@pytest.fixture
def scripted_user() -> ScriptedUser:
    return ScriptedUser()
