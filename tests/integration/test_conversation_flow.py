"""Integration tests for a full tool round trip.

Real components: AgentRuntime, default hooks, ToolCoordinator,
LocalToolBackend, BackendClient, Conversation.
Mock boundary: the backend HTTP transport.
"""
import json
from pathlib import Path
from unittest.mock import patch

import httpx
import pytest

from tests.conftest import data_line
from wilson.client.api import BackendClient
from wilson.config import WilsonSettings
from wilson.core.events import DoneEvent, ToolResultEvent
from wilson.core.types import RetryConfig
from wilson.main import build_conversation
from wilson.tools.protocols import NonInteractiveUser


def _sse(*records: dict) -> bytes:
    return ("\n\n".join(data_line(r) for r in records) + "\n\ndata: [DONE]\n\n").encode()


def _batch(tool_id: str, name: str, **params) -> bytes:
    return _sse(
        {"type": "content_block_start", "content_block": {"type": "tool_use", "id": tool_id, "name": name}},
        {
            "type": "content_block_delta",
            "delta": {"type": "input_json_delta", "partial_json": json.dumps(params)},
        },
        {"type": "content_block_stop"},
        {"type": "message_delta", "delta": {"stop_reason": "tool_use"}, "usage": {"output_tokens": 4}},
        {"type": "message_stop"},
    )


class ScriptedBackend:
    """MockTransport handler replaying one response body per request."""

    def __init__(self, bodies: list[bytes]) -> None:
        self.bodies = list(bodies)
        self.requests: list[dict] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(json.loads(request.content))
        return httpx.Response(200, content=self.bodies.pop(0))


@pytest.fixture
def run_turn(tmp_path: Path):
    async def _run(bodies: list[bytes], message: str) -> tuple[list, ScriptedBackend]:
        backend = ScriptedBackend(bodies)
        transport = httpx.MockTransport(backend)
        settings = WilsonSettings(api_url="http://backend.test", retry=RetryConfig(max_retries=0))

        def client_factory(*args, **kwargs) -> BackendClient:
            return BackendClient(*args, transport=transport, **kwargs)

        with patch("wilson.main.BackendClient", side_effect=client_factory):
            conversation = build_conversation(settings, str(tmp_path), NonInteractiveUser())
        events = [event async for event in conversation.send(message)]
        return events, backend
    return _run


@pytest.mark.integration
class TestConversationFlow:
    """End-to-end turns against a scripted backend."""

    async def test_read_then_edit(self, tmp_path: Path, run_turn) -> None:
        """A file read in one continuation should unlock an edit in the next."""
        (tmp_path / "notes.txt").write_text("hello world\n")

        events, backend = await run_turn(
            [
                _batch("r1", "Read", file_path="notes.txt"),
                _batch("e1", "Edit", file_path="notes.txt", old_string="world", new_string="wilson"),
                _sse({"type": "text", "text": "Done."}, {"type": "done"}),
            ],
            "fix the greeting",
        )

        results = [e for e in events if isinstance(e, ToolResultEvent)]
        assert [(r.name, r.is_error) for r in results] == [("Read", False), ("Edit", False)]
        assert "    1  hello world" in results[0].result["content"]
        assert (tmp_path / "notes.txt").read_text() == "hello wilson\n"
        assert isinstance(events[-1], DoneEvent)
        assert len(backend.requests) == 3

        continuation = backend.requests[1]
        assert continuation["working_directory"] == str(tmp_path)
        assert [tool["name"] for tool in continuation["local_tools"]] == ["Read", "Write", "Edit", "LS", "Bash"]
        tool_result = continuation["history"][-1]["content"][0]
        assert tool_result["type"] == "tool_result"
        assert tool_result["tool_use_id"] == "r1"
        assert json.loads(tool_result["content"])["success"] is True

    async def test_edit_without_read_blocked(self, tmp_path: Path, run_turn) -> None:
        (tmp_path / "notes.txt").write_text("hello world\n")

        events, backend = await run_turn(
            [
                _batch("e1", "Edit", file_path="notes.txt", old_string="world", new_string="wilson"),
                _sse({"type": "text", "text": "Sorry."}, {"type": "done"}),
            ],
            "fix the greeting",
        )

        result = next(e for e in events if isinstance(e, ToolResultEvent))
        assert result.is_error
        assert "must be read before editing" in result.result["error"]
        assert (tmp_path / "notes.txt").read_text() == "hello world\n"
        sent = json.loads(backend.requests[1]["history"][-1]["content"][0]["content"])
        assert sent["success"] is False
        assert sent["suggestion"]

    async def test_path_outside_working_directory_rejected(self, tmp_path: Path, run_turn) -> None:
        events, _ = await run_turn(
            [
                _batch("r1", "Read", file_path="../../etc/passwd"),
                _sse({"type": "done"}),
            ],
            "read it",
        )
        result = next(e for e in events if isinstance(e, ToolResultEvent))
        assert result.is_error
