# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.
# wilson/core/constants.py
"""Constants used across the Wilson codebase."""

import re
from enum import StrEnum
from typing import NamedTuple


class ToolName(StrEnum):
    """Canonical tool identifiers.

    Names outside this enum (remote data tools) are dispatched verbatim.
    """

    READ = "Read"
    WRITE = "Write"
    EDIT = "Edit"
    LS = "LS"
    GLOB = "Glob"
    GREP = "Grep"
    BASH = "Bash"
    SEARCH = "Search"
    FETCH = "Fetch"
    TODO_WRITE = "TodoWrite"
    ASK_USER = "AskUser"


# Spellings models commonly use for the canonical tools
TOOL_ALIASES: dict[str, ToolName] = {
    "read_file": ToolName.READ,
    "readfile": ToolName.READ,
    "write_file": ToolName.WRITE,
    "writefile": ToolName.WRITE,
    "edit_file": ToolName.EDIT,
    "editfile": ToolName.EDIT,
    "list_directory": ToolName.LS,
    "listdirectory": ToolName.LS,
    "list_files": ToolName.LS,
    "execute_bash": ToolName.BASH,
    "run_bash": ToolName.BASH,
    "shell": ToolName.BASH,
    "find_files": ToolName.GLOB,
    "askuserquestion": ToolName.ASK_USER,
    "ask_user": ToolName.ASK_USER,
    "todo_write": ToolName.TODO_WRITE,
    "webfetch": ToolName.FETCH,
    "http": ToolName.FETCH,
}

_CANONICAL_BY_LOWER: dict[str, ToolName] = {name.value.lower(): name for name in ToolName}


def normalize_tool_name(name: str) -> ToolName | str:
    """Map a requested tool name onto its canonical identifier.

    Resolution order: exact canonical name, case-insensitive canonical name,
    then the alias table (case-insensitive). Unrecognised names are returned
    unchanged so remote tools keep their own identity.

    Args:
        name: Tool name as requested by the backend.

    Returns:
        The matching ToolName, or the original string.
    """
    if name in ToolName._value2member_map_:
        return ToolName(name)
    lowered = name.strip().lower()
    if lowered in _CANONICAL_BY_LOWER:
        return _CANONICAL_BY_LOWER[lowered]
    return TOOL_ALIASES.get(lowered, name)


# Tools that need exclusive, ordered execution: they mutate interactive state,
# prompt the user, or have irreversible effects.
SEQUENTIAL_TOOLS: frozenset[ToolName] = frozenset({
    ToolName.TODO_WRITE,
    ToolName.ASK_USER,
    ToolName.BASH,
})

# Hook registration key that applies to every tool
WILDCARD = "*"

# How long a recorded file read satisfies the read-before-write guard
FILE_READ_CACHE_TTL_SECONDS = 30.0

MAX_CORRECTION_HISTORY = 50

DEFAULT_MAX_PARALLEL_TOOLS = 8

# Upper bound on tool-use continuations within one user message
MAX_LOOP_DEPTH = 500

# Earlier exchanges included with each request
HISTORY_LIMIT = 20

NO_ANSWER_MARKER = "(no answer - non-interactive mode)"

CANCELLED_BY_USER = "Operation cancelled by user"


class DangerPattern(NamedTuple):
    """A shell command pattern that needs user confirmation."""

    pattern: re.Pattern[str]
    description: str


# First match wins; the description is shown in the permission prompt
DANGEROUS_PATTERNS: tuple[DangerPattern, ...] = (
    # Destructive file operations
    DangerPattern(re.compile(r"\brm\s+(-rf?|--force|-r)\s", re.IGNORECASE), "recursive/forced delete"),
    DangerPattern(re.compile(r"\brm\s+.*\*", re.IGNORECASE), "wildcard delete"),
    DangerPattern(re.compile(r"\brm\s+-[^r\s]*r", re.IGNORECASE), "recursive delete"),

    # Database operations
    DangerPattern(re.compile(r"\bDROP\s+(TABLE|DATABASE|INDEX|VIEW)", re.IGNORECASE), "DROP statement"),
    DangerPattern(re.compile(r"\bTRUNCATE\s+TABLE", re.IGNORECASE), "TRUNCATE statement"),
    DangerPattern(re.compile(r"\bDELETE\s+FROM\s+\w+\s*(;|$)", re.IGNORECASE), "DELETE without WHERE"),

    # Git operations
    DangerPattern(re.compile(r"\bgit\s+push\s+.*--force", re.IGNORECASE), "force push"),
    DangerPattern(re.compile(r"\bgit\s+push\s+(.*\s)?-f\b", re.IGNORECASE), "force push"),
    DangerPattern(re.compile(r"\bgit\s+reset\s+--hard", re.IGNORECASE), "hard reset"),
    DangerPattern(re.compile(r"\bgit\s+clean\s+-fd", re.IGNORECASE), "force clean"),

    # Privilege escalation and permissions
    DangerPattern(re.compile(r"\bsudo\s", re.IGNORECASE), "sudo command"),
    DangerPattern(re.compile(r"\bchmod\s+(-R\s+)?777", re.IGNORECASE), "chmod 777"),
    DangerPattern(re.compile(r"\bchown\s+-R\s+.*\s/$", re.IGNORECASE), "recursive chown on root"),

    # Raw disk writes
    DangerPattern(re.compile(r">\s*/dev/sd[a-z]", re.IGNORECASE), "write to disk device"),
    DangerPattern(re.compile(r"\bdd\s+.*of=", re.IGNORECASE), "dd write operation"),
    DangerPattern(re.compile(r"\bmkfs\b", re.IGNORECASE), "filesystem format"),

    # Remote scripts piped to a shell
    DangerPattern(re.compile(r"\bcurl\s+.*\|\s*(ba)?sh\b", re.IGNORECASE), "pipe curl to shell"),
    DangerPattern(re.compile(r"\bwget\s+.*\|\s*(ba)?sh\b", re.IGNORECASE), "pipe wget to shell"),
)


class ErrorType(StrEnum):
    """Classification attached to failed tool results."""

    RECOVERABLE = "recoverable"
    FATAL = "fatal"
    RETRY = "retry"
    UNKNOWN = "unknown"


class ErrorPattern(NamedTuple):
    """Maps a tool error message onto a classification and a hint."""

    pattern: re.Pattern[str]
    error_type: ErrorType
    suggestion: str


ERROR_PATTERNS: tuple[ErrorPattern, ...] = (
    ErrorPattern(
        re.compile(r"String not found in file"),
        ErrorType.RECOVERABLE,
        "Try expanding the search context or check for whitespace differences",
    ),
    ErrorPattern(
        re.compile(r"File not found: (.+)"),
        ErrorType.RECOVERABLE,
        "Verify the file path exists. Use Glob to find similar files.",
    ),
    ErrorPattern(
        re.compile(r"String found (\d+) times"),
        ErrorType.RECOVERABLE,
        "Add more surrounding context to make the match unique",
    ),
    ErrorPattern(
        re.compile(r"Permission denied"),
        ErrorType.FATAL,
        "File permissions prevent this operation",
    ),
    ErrorPattern(
        re.compile(r"ENOENT"),
        ErrorType.RECOVERABLE,
        "Path does not exist. Create parent directories first.",
    ),
    ErrorPattern(
        re.compile(r"EACCES"),
        ErrorType.FATAL,
        "Access denied. Check file permissions.",
    ),
    ErrorPattern(
        re.compile(r"timed out", re.IGNORECASE),
        ErrorType.RETRY,
        "The operation timed out. Retry, or raise the timeout for long-running commands.",
    ),
)
