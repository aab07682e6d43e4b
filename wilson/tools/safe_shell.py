# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.
"""Shell command classification and execution."""
import asyncio

from loguru import logger

from wilson.core.constants import DANGEROUS_PATTERNS


DEFAULT_TIMEOUT_SECONDS = 120
MAX_TIMEOUT_SECONDS = 600
MAX_OUTPUT_CHARS = 100_000


def check_dangerous_command(command: str) -> str | None:
    """Classify a shell command against the dangerous-operation table.

    Args:
        command: Full command text.

    Returns:
        Description of the first matching pattern, or None if the command
        looks safe.
    """
    for danger in DANGEROUS_PATTERNS:
        if danger.pattern.search(command):
            return danger.description
    return None


def _truncate(text: str) -> str:
    if len(text) <= MAX_OUTPUT_CHARS:
        return text
    return text[:MAX_OUTPUT_CHARS] + "\n...(output truncated)"


class SafeShellExecutor:
    """Runs shell commands with a timeout and bounded output.

    Commands run through the shell so pipes and redirection work. Deciding
    whether a command may run at all is the caller's job (see
    check_dangerous_command and the coordinator's permission gate).
    """

    @classmethod
    async def execute(
        cls,
        command: str,
        timeout: float | None = DEFAULT_TIMEOUT_SECONDS,
        cwd: str | None = None,
    ) -> str:
        """
        Execute a shell command.

        Args:
            command: The command to execute
            timeout: Maximum execution time in seconds, capped at
                MAX_TIMEOUT_SECONDS (None for the cap)
            cwd: Working directory to execute the command in

        Returns:
            Command stdout (or stderr when stdout is empty) as string

        Raises:
            ValueError: If command is empty
            RuntimeError: If command fails or times out
        """
        if not command.strip():
            raise ValueError("Empty command is not allowed")

        effective_timeout = min(timeout or MAX_TIMEOUT_SECONDS, MAX_TIMEOUT_SECONDS)

        process = await asyncio.create_subprocess_shell(
            command,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            cwd=cwd,
        )

        try:
            stdout, stderr = await asyncio.wait_for(
                process.communicate(),
                timeout=effective_timeout,
            )
        except TimeoutError as e:
            process.kill()
            await process.communicate()  # Clean up
            logger.warning("Shell command timed out", command=command, timeout=effective_timeout)
            raise RuntimeError(
                f"Command timed out after {effective_timeout:g} seconds"
            ) from e

        stdout_text = stdout.decode(errors="replace").strip()
        stderr_text = stderr.decode(errors="replace").strip()

        if process.returncode != 0:
            detail = stderr_text or stdout_text or f"Exit code: {process.returncode}"
            raise RuntimeError(
                f"Command failed with exit code {process.returncode}: {_truncate(detail)}"
            )

        return _truncate(stdout_text or stderr_text or "Command completed")
