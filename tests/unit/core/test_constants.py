"""Tests for tool name normalization and constant tables."""
import pytest

from wilson.core.constants import (
    SEQUENTIAL_TOOLS,
    ToolName,
    normalize_tool_name,
)


class TestNormalizeToolName:
    """Tests for normalize_tool_name."""

    @pytest.mark.parametrize("tool", list(ToolName))
    def test_canonical_names_unchanged(self, tool: ToolName) -> None:
        assert normalize_tool_name(tool.value) is tool

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("read", ToolName.READ),
            ("BASH", ToolName.BASH),
            ("todowrite", ToolName.TODO_WRITE),
            ("read_file", ToolName.READ),
            ("Edit_File", ToolName.EDIT),
            ("list_directory", ToolName.LS),
            ("shell", ToolName.BASH),
            ("AskUserQuestion", ToolName.ASK_USER),
            ("webfetch", ToolName.FETCH),
        ],
    )
    def test_case_and_aliases(self, raw: str, expected: ToolName) -> None:
        assert normalize_tool_name(raw) == expected

    def test_unknown_names_pass_through(self) -> None:
        """Remote tool names should keep their own identity."""
        assert normalize_tool_name("get_sales_report") == "get_sales_report"


def test_sequential_tools() -> None:
    assert SEQUENTIAL_TOOLS == {ToolName.TODO_WRITE, ToolName.ASK_USER, ToolName.BASH}


def test_tool_names_are_strings() -> None:
    assert ToolName.TODO_WRITE == "TodoWrite"
    assert f"{ToolName.LS}" == "LS"
