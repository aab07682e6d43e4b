# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.
"""Local filesystem and shell tools."""
from collections.abc import Awaitable, Callable
from typing import Any, TypeAlias

from loguru import logger

from wilson.core.constants import ToolName, normalize_tool_name
from wilson.core.exceptions import UnknownToolError
from wilson.core.types import ToolResult
from wilson.tools.safe_file import SafePathResolver
from wilson.tools.safe_shell import DEFAULT_TIMEOUT_SECONDS, SafeShellExecutor


MAX_READ_LINES = 2000

_Handler: TypeAlias = Callable[[dict[str, Any]], Awaitable[ToolResult]]


_SCHEMAS: list[dict[str, Any]] = [
    {
        "name": ToolName.READ.value,
        "description": "Read a text file. Returns numbered lines.",
        "input_schema": {
            "type": "object",
            "properties": {
                "file_path": {"type": "string", "description": "Path to the file"},
                "offset": {"type": "integer", "description": "First line to return (1-based)"},
                "limit": {"type": "integer", "description": "Maximum number of lines"},
            },
            "required": ["file_path"],
        },
    },
    {
        "name": ToolName.WRITE.value,
        "description": "Create or overwrite a file. Existing files must be read first.",
        "input_schema": {
            "type": "object",
            "properties": {
                "file_path": {"type": "string", "description": "Path to the file"},
                "content": {"type": "string", "description": "Full file content"},
            },
            "required": ["file_path", "content"],
        },
    },
    {
        "name": ToolName.EDIT.value,
        "description": "Replace an exact string in a file. The file must be read first.",
        "input_schema": {
            "type": "object",
            "properties": {
                "file_path": {"type": "string", "description": "Path to the file"},
                "old_string": {"type": "string", "description": "Text to replace"},
                "new_string": {"type": "string", "description": "Replacement text"},
                "replace_all": {"type": "boolean", "description": "Replace every occurrence"},
            },
            "required": ["file_path", "old_string", "new_string"],
        },
    },
    {
        "name": ToolName.LS.value,
        "description": "List a directory.",
        "input_schema": {
            "type": "object",
            "properties": {
                "path": {"type": "string", "description": "Directory to list"},
                "all": {"type": "boolean", "description": "Include hidden entries"},
            },
        },
    },
    {
        "name": ToolName.BASH.value,
        "description": "Run a shell command in the working directory.",
        "input_schema": {
            "type": "object",
            "properties": {
                "command": {"type": "string", "description": "Command to run"},
                "timeout": {"type": "number", "description": "Timeout in seconds"},
            },
            "required": ["command"],
        },
    },
]


class LocalToolBackend:
    """ToolBackend for the built-in local tools.

    All paths are confined to the working directory.

    Args:
        working_directory: Root for relative paths and shell commands.
        shell_timeout: Default Bash timeout in seconds.
    """

    def __init__(self, working_directory: str, shell_timeout: float = DEFAULT_TIMEOUT_SECONDS):
        self._paths = SafePathResolver(working_directory)
        self._shell_timeout = shell_timeout
        self._handlers: dict[str, _Handler] = {
            ToolName.READ: self._read,
            ToolName.WRITE: self._write,
            ToolName.EDIT: self._edit,
            ToolName.LS: self._ls,
            ToolName.BASH: self._bash,
        }

    def tool_schemas(self) -> list[dict[str, Any]]:
        return [dict(schema) for schema in _SCHEMAS]

    async def execute(self, name: str, params: dict[str, Any]) -> ToolResult:
        """Run a local tool.

        Raises:
            UnknownToolError: If ``name`` is not a local tool.
            PathTraversalError: If a path escapes the working directory.
        """
        handler = self._handlers.get(normalize_tool_name(name))
        if handler is None:
            raise UnknownToolError(name)
        logger.debug("Executing local tool", tool=name)
        return await handler(params)

    async def _read(self, params: dict[str, Any]) -> ToolResult:
        file_path = params.get("file_path")
        if not file_path:
            return ToolResult.failure("Missing file_path")

        path = self._paths.resolve(file_path)
        if not path.exists():
            return ToolResult.failure(f"File not found: {file_path}")
        if path.is_dir():
            return ToolResult.failure(f"Path is a directory, not a file. Use LS instead: {file_path}")

        lines = path.read_text(encoding="utf-8", errors="replace").split("\n")
        start = max(1, int(params.get("offset") or 1))
        limit = min(MAX_READ_LINES, int(params.get("limit") or MAX_READ_LINES))
        subset = lines[start - 1:start - 1 + limit]
        numbered = "\n".join(f"{start + i:>5}  {line}" for i, line in enumerate(subset))
        return ToolResult(success=True, content=numbered, total_lines=len(lines))

    async def _write(self, params: dict[str, Any]) -> ToolResult:
        file_path = params.get("file_path")
        content = params.get("content")
        if not file_path:
            return ToolResult.failure("Missing file_path")
        if not isinstance(content, str):
            return ToolResult.failure("Missing content")

        path = self._paths.resolve(file_path)
        created = not path.exists()
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        return ToolResult(
            success=True,
            content=f"Successfully wrote to {file_path}",
            created=created,
            lines=content.count("\n") + 1,
        )

    async def _edit(self, params: dict[str, Any]) -> ToolResult:
        file_path = params.get("file_path")
        old_string = params.get("old_string")
        new_string = params.get("new_string")
        if not file_path:
            return ToolResult.failure("Missing file_path")
        if not isinstance(old_string, str) or not isinstance(new_string, str):
            return ToolResult.failure("Missing old_string or new_string")
        if old_string == new_string:
            return ToolResult.failure("old_string and new_string are identical")

        path = self._paths.resolve(file_path)
        if not path.is_file():
            return ToolResult.failure(f"File not found: {file_path}")

        text = path.read_text(encoding="utf-8")
        occurrences = text.count(old_string) if old_string else 0
        if occurrences == 0:
            return ToolResult.failure(f"String not found in file: {file_path}")
        if occurrences > 1 and not params.get("replace_all"):
            return ToolResult.failure(
                f"String found {occurrences} times in file. "
                "Use replace_all or provide a unique string."
            )

        if params.get("replace_all"):
            updated = text.replace(old_string, new_string)
        else:
            updated = text.replace(old_string, new_string, 1)
        path.write_text(updated, encoding="utf-8")
        return ToolResult(
            success=True,
            content=f"Edited {file_path}",
            replacements=occurrences if params.get("replace_all") else 1,
        )

    async def _ls(self, params: dict[str, Any]) -> ToolResult:
        path = self._paths.resolve(params.get("path") or ".")
        if not path.is_dir():
            return ToolResult.failure(f"File not found: {params.get('path') or '.'}")

        entries = sorted(
            f"{entry.name}/" if entry.is_dir() else entry.name
            for entry in path.iterdir()
            if params.get("all") or not entry.name.startswith(".")
        )
        return ToolResult(
            success=True,
            content="\n".join(entries),
            files=entries,
            count=len(entries),
            path=str(path),
        )

    async def _bash(self, params: dict[str, Any]) -> ToolResult:
        command = params.get("command")
        if not isinstance(command, str) or not command.strip():
            return ToolResult.failure("Missing command")

        timeout = params.get("timeout") or self._shell_timeout
        output = await SafeShellExecutor.execute(
            command, timeout=float(timeout), cwd=str(self._paths.root)
        )
        return ToolResult(success=True, content=output)
