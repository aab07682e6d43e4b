"""Tests for LocalToolBackend."""
from pathlib import Path

import pytest

from wilson.core.exceptions import PathTraversalError, UnknownToolError
from wilson.tools.local import LocalToolBackend


@pytest.fixture
def backend(tmp_path: Path) -> LocalToolBackend:
    return LocalToolBackend(str(tmp_path))


class TestRead:
    """Tests for the Read tool."""

    async def test_numbered_lines(self, backend: LocalToolBackend, tmp_path: Path) -> None:
        (tmp_path / "a.py").write_text("one\ntwo\nthree")
        result = await backend.execute("Read", {"file_path": "a.py"})
        assert result.success
        assert result.content == "    1  one\n    2  two\n    3  three"
        assert result.model_extra["total_lines"] == 3

    async def test_offset_and_limit(self, backend: LocalToolBackend, tmp_path: Path) -> None:
        (tmp_path / "a.py").write_text("\n".join(f"line{i}" for i in range(1, 11)))
        result = await backend.execute("Read", {"file_path": "a.py", "offset": 4, "limit": 2})
        assert result.content == "    4  line4\n    5  line5"

    async def test_missing_file(self, backend: LocalToolBackend) -> None:
        result = await backend.execute("Read", {"file_path": "nope.py"})
        assert not result.success
        assert result.error == "File not found: nope.py"

    async def test_directory(self, backend: LocalToolBackend, tmp_path: Path) -> None:
        (tmp_path / "src").mkdir()
        result = await backend.execute("Read", {"file_path": "src"})
        assert not result.success
        assert "directory" in result.error

    async def test_missing_parameter(self, backend: LocalToolBackend) -> None:
        result = await backend.execute("Read", {})
        assert result.error == "Missing file_path"

    async def test_alias_dispatch(self, backend: LocalToolBackend, tmp_path: Path) -> None:
        (tmp_path / "a.py").write_text("x")
        result = await backend.execute("read_file", {"file_path": "a.py"})
        assert result.success

    async def test_path_outside_working_directory(self, backend: LocalToolBackend) -> None:
        with pytest.raises(PathTraversalError):
            await backend.execute("Read", {"file_path": "../../etc/passwd"})


class TestWrite:
    """Tests for the Write tool."""

    async def test_creates_file_and_parents(self, backend: LocalToolBackend, tmp_path: Path) -> None:
        result = await backend.execute("Write", {"file_path": "pkg/mod.py", "content": "a\nb"})
        assert result.success
        assert result.content == "Successfully wrote to pkg/mod.py"
        assert result.model_extra["created"] is True
        assert result.model_extra["lines"] == 2
        assert (tmp_path / "pkg" / "mod.py").read_text() == "a\nb"

    async def test_overwrites(self, backend: LocalToolBackend, tmp_path: Path) -> None:
        (tmp_path / "a.py").write_text("old")
        result = await backend.execute("Write", {"file_path": "a.py", "content": "new"})
        assert result.model_extra["created"] is False
        assert (tmp_path / "a.py").read_text() == "new"

    async def test_missing_content(self, backend: LocalToolBackend) -> None:
        result = await backend.execute("Write", {"file_path": "a.py"})
        assert result.error == "Missing content"


class TestEdit:
    """Tests for the Edit tool."""

    async def test_replaces_unique_string(self, backend: LocalToolBackend, tmp_path: Path) -> None:
        (tmp_path / "a.py").write_text("x = 1\ny = 2\n")
        result = await backend.execute(
            "Edit", {"file_path": "a.py", "old_string": "y = 2", "new_string": "y = 3"}
        )
        assert result.success
        assert result.content == "Edited a.py"
        assert (tmp_path / "a.py").read_text() == "x = 1\ny = 3\n"

    async def test_string_not_found(self, backend: LocalToolBackend, tmp_path: Path) -> None:
        (tmp_path / "a.py").write_text("x = 1\n")
        result = await backend.execute(
            "Edit", {"file_path": "a.py", "old_string": "z", "new_string": "w"}
        )
        assert result.error == "String not found in file: a.py"

    async def test_ambiguous_string(self, backend: LocalToolBackend, tmp_path: Path) -> None:
        (tmp_path / "a.py").write_text("x\nx\n")
        result = await backend.execute(
            "Edit", {"file_path": "a.py", "old_string": "x", "new_string": "y"}
        )
        assert result.error == "String found 2 times in file. Use replace_all or provide a unique string."

    async def test_replace_all(self, backend: LocalToolBackend, tmp_path: Path) -> None:
        (tmp_path / "a.py").write_text("x\nx\n")
        result = await backend.execute(
            "Edit", {"file_path": "a.py", "old_string": "x", "new_string": "y", "replace_all": True}
        )
        assert result.model_extra["replacements"] == 2
        assert (tmp_path / "a.py").read_text() == "y\ny\n"

    async def test_identical_strings(self, backend: LocalToolBackend, tmp_path: Path) -> None:
        (tmp_path / "a.py").write_text("x")
        result = await backend.execute(
            "Edit", {"file_path": "a.py", "old_string": "x", "new_string": "x"}
        )
        assert result.error == "old_string and new_string are identical"

    async def test_missing_file(self, backend: LocalToolBackend) -> None:
        result = await backend.execute(
            "Edit", {"file_path": "nope.py", "old_string": "a", "new_string": "b"}
        )
        assert result.error == "File not found: nope.py"


class TestLsAndBash:
    """Tests for the LS and Bash tools."""

    async def test_ls_lists_sorted_entries(self, backend: LocalToolBackend, tmp_path: Path) -> None:
        (tmp_path / "b.txt").write_text("")
        (tmp_path / "a").mkdir()
        (tmp_path / ".hidden").write_text("")
        result = await backend.execute("LS", {})
        assert result.content == "a/\nb.txt"
        assert result.model_extra["count"] == 2

    async def test_ls_all_includes_hidden(self, backend: LocalToolBackend, tmp_path: Path) -> None:
        (tmp_path / ".hidden").write_text("")
        result = await backend.execute("LS", {"all": True})
        assert result.model_extra["files"] == [".hidden"]

    async def test_bash_runs_in_working_directory(
        self, backend: LocalToolBackend, tmp_path: Path
    ) -> None:
        result = await backend.execute("Bash", {"command": "pwd"})
        assert result.content == str(tmp_path.resolve())

    async def test_bash_missing_command(self, backend: LocalToolBackend) -> None:
        result = await backend.execute("Bash", {"command": ""})
        assert result.error == "Missing command"


class TestDispatch:
    """Tests for name resolution and schemas."""

    async def test_unknown_tool(self, backend: LocalToolBackend) -> None:
        with pytest.raises(UnknownToolError, match="Unknown tool: Search"):
            await backend.execute("Search", {"query": "x"})

    def test_schemas_cover_local_tools(self, backend: LocalToolBackend) -> None:
        names = [schema["name"] for schema in backend.tool_schemas()]
        assert names == ["Read", "Write", "Edit", "LS", "Bash"]
        assert all("input_schema" in schema for schema in backend.tool_schemas())
