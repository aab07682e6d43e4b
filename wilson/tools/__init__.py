"""Tool execution for the agent runtime.

Coordinate batches of tool calls, execute the built-in local tools inside
the working directory, and gate dangerous shell commands behind user
permission.

Exports:
    ToolCoordinator: Executes tool batches in request order.
    LocalToolBackend: Read/Write/Edit/LS/Bash inside the working directory.
    NonInteractiveUser: UserInteraction for headless runs.
    SafeShellExecutor: Shell runner with timeout and output limits.
"""

from wilson.tools.coordinator import ToolCoordinator as ToolCoordinator
from wilson.tools.local import LocalToolBackend as LocalToolBackend
from wilson.tools.protocols import (
    NonInteractiveUser as NonInteractiveUser,
    ToolBackend as ToolBackend,
    UserInteraction as UserInteraction,
)
from wilson.tools.safe_shell import SafeShellExecutor as SafeShellExecutor
