"""Integration tests for the Wilson CLI commands."""
from collections.abc import Generator
from pathlib import Path
from unittest.mock import MagicMock, patch

import httpx
import pytest
from typer.testing import CliRunner

from tests.conftest import data_line
from wilson.client.api import BackendClient
from wilson.main import app


runner = CliRunner()


@pytest.fixture(autouse=True)
def quiet_logging() -> Generator[MagicMock, None, None]:
    """Keep loguru from binding a sink to the runner's captured stderr."""
    with patch("wilson.main.configure_logging") as mock:
        yield mock


@pytest.fixture
def settings_file(tmp_path: Path) -> Path:
    path = tmp_path / "settings.yaml"
    path.write_text("api_url: http://backend.test\nretry:\n  max_retries: 0\n")
    return path


def _patch_backend(body: bytes, status: int = 200):
    transport = httpx.MockTransport(lambda request: httpx.Response(status, content=body))

    def client_factory(*args, **kwargs) -> BackendClient:
        return BackendClient(*args, transport=transport, **kwargs)

    return patch("wilson.main.BackendClient", side_effect=client_factory)


@pytest.mark.integration
class TestToolsCommand:
    """Tests for `wilson tools`."""

    def test_lists_tools_with_execution_mode(self) -> None:
        result = runner.invoke(app, ["tools"])
        assert result.exit_code == 0
        rows = result.stdout.splitlines()
        lines = {name: next(row for row in rows if f" {name} " in row) for name in ("TodoWrite", "Glob", "Read")}
        assert "sequential" in lines["TodoWrite"]
        assert "coordinator" in lines["TodoWrite"]
        assert "parallel" in lines["Glob"]
        assert "backend" in lines["Glob"]
        assert "local" in lines["Read"]


@pytest.mark.integration
class TestVersionCommand:
    """Tests for `wilson version`."""

    def test_prints_version(self) -> None:
        result = runner.invoke(app, ["version"])
        assert result.exit_code == 0
        assert "wilson 0.1.0" in result.stdout


@pytest.mark.integration
class TestChatCommand:
    """Tests for `wilson chat` in single-message mode."""

    def test_missing_settings_file(self, tmp_path: Path) -> None:
        result = runner.invoke(app, ["chat", "hi", "--settings", str(tmp_path / "absent.yaml")])
        assert result.exit_code == 1
        assert "Configuration file not found" in result.stdout

    def test_cwd_must_be_directory(self, tmp_path: Path, settings_file: Path) -> None:
        not_a_dir = tmp_path / "file.txt"
        not_a_dir.write_text("x")
        result = runner.invoke(
            app, ["chat", "hi", "--settings", str(settings_file), "--cwd", str(not_a_dir)]
        )
        assert result.exit_code == 1
        assert "Not a directory" in result.stdout

    def test_single_message(self, tmp_path: Path, settings_file: Path) -> None:
        body = "\n\n".join(
            [
                data_line({"type": "text", "text": "Hello from the backend"}),
                data_line({"type": "usage", "usage": {"input_tokens": 7, "output_tokens": 3}}),
                data_line({"type": "done"}),
            ]
        ).encode()
        with _patch_backend(body):
            result = runner.invoke(
                app,
                ["chat", "hi", "--settings", str(settings_file), "--cwd", str(tmp_path), "--non-interactive"],
            )
        assert result.exit_code == 0
        assert "Hello from the backend" in result.stdout
        assert "7 in / 3 out tokens" in result.stdout

    def test_backend_error_exits_nonzero(self, tmp_path: Path, settings_file: Path) -> None:
        with _patch_backend(b"internal failure", status=500):
            result = runner.invoke(
                app,
                ["chat", "hi", "--settings", str(settings_file), "--cwd", str(tmp_path)],
            )
        assert result.exit_code == 1
        assert "API error: 500 - internal failure" in result.stdout
