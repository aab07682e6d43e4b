# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.
"""Tool execution coordinator.

Runs a batch of pending tool calls: parallel-safe calls concurrently with a
bounded fan-out, then sequential calls one at a time, with the hook
pipeline around every external dispatch. Results always come back in
request order, and no failure escapes as an exception.
"""
import asyncio
import time
from collections.abc import Awaitable
from typing import Any

from loguru import logger
from pydantic import ValidationError

from wilson.core.constants import (
    CANCELLED_BY_USER,
    DEFAULT_MAX_PARALLEL_TOOLS,
    SEQUENTIAL_TOOLS,
    ToolName,
    normalize_tool_name,
)
from wilson.core.exceptions import UnknownToolError
from wilson.core.types import PendingToolCall, Todo, ToolOutcome, ToolResult
from wilson.hooks.corrections import CorrectionHistory
from wilson.hooks.models import CorrectionAttempt, HookContext
from wilson.hooks.pipeline import HookPipeline
from wilson.stream.cursor import CancellationToken
from wilson.tools.protocols import ToolBackend, UserInteraction
from wilson.tools.safe_shell import check_dangerous_command


def is_sequential(tool_name: str) -> bool:
    """Whether a tool needs exclusive, ordered execution."""
    return normalize_tool_name(tool_name) in SEQUENTIAL_TOOLS


class ToolCoordinator:
    """Executes tool batches for one conversation.

    Args:
        backend: Executes every tool not handled internally.
        hooks: Pre/post hook pipeline.
        interaction: User capability for questions, permissions and todos.
        working_directory: Directory passed to hooks in their context.
        conversation_id: Passed to hooks in their context.
        skip_permissions: Run dangerous shell commands without asking.
        max_parallel: Upper bound on concurrently running parallel-safe calls.
        corrections: Where retry attempts are recorded.
        cancel_token: Once cancelled, no further dispatch starts.
    """

    def __init__(
        self,
        backend: ToolBackend,
        hooks: HookPipeline,
        interaction: UserInteraction,
        *,
        working_directory: str,
        conversation_id: str | None = None,
        skip_permissions: bool = False,
        max_parallel: int = DEFAULT_MAX_PARALLEL_TOOLS,
        corrections: CorrectionHistory | None = None,
        cancel_token: CancellationToken | None = None,
    ):
        if max_parallel < 1:
            raise ValueError(f"max_parallel must be at least 1, got {max_parallel}")
        self._backend = backend
        self._hooks = hooks
        self._interaction = interaction
        self._working_directory = working_directory
        self._conversation_id = conversation_id
        self._skip_permissions = skip_permissions
        self._max_parallel = max_parallel
        self._corrections = corrections if corrections is not None else CorrectionHistory()
        self.cancel_token = cancel_token

    @property
    def corrections(self) -> CorrectionHistory:
        return self._corrections

    @property
    def _cancelled(self) -> bool:
        return self.cancel_token is not None and self.cancel_token.cancelled

    async def execute_batch(self, calls: list[PendingToolCall]) -> list[ToolOutcome]:
        """Execute a batch of tool calls.

        Args:
            calls: Calls in request order.

        Returns:
            One outcome per call, in the same order as ``calls``.
        """
        parallel = [(i, call) for i, call in enumerate(calls) if not is_sequential(call.name)]
        sequential = [(i, call) for i, call in enumerate(calls) if is_sequential(call.name)]
        logger.info(
            "Executing tool batch",
            total=len(calls),
            parallel=len(parallel),
            sequential=len(sequential),
        )

        # Keyed by position; ids are not guaranteed unique
        outcomes: dict[int, ToolOutcome] = {}
        semaphore = asyncio.Semaphore(self._max_parallel)

        async def run_bounded(index: int, call: PendingToolCall) -> None:
            async with semaphore:
                outcomes[index] = await self.execute_call(call)

        if parallel:
            await asyncio.gather(*(run_bounded(i, call) for i, call in parallel))

        for index, call in sequential:
            outcomes[index] = await self.execute_call(call)

        return [outcomes[i] for i in range(len(calls))]

    async def execute_call(self, call: PendingToolCall, retry_count: int = 0) -> ToolOutcome:
        """Execute a single tool call.

        TodoWrite and AskUser are answered here. Every other tool goes
        through pre-hooks, the shell permission gate (Bash only), the
        backend, and post-hooks.

        Args:
            call: The call to run.
            retry_count: Number of retries that led to this call.

        Returns:
            The call's outcome. Failures are reported in the result.
        """
        started = time.perf_counter()
        name = normalize_tool_name(call.name)
        params = dict(call.input)

        if self._cancelled:
            result = ToolResult.failure("Turn cancelled before dispatch", cancelled=True)
            return self._outcome(call, params, result, started, retry_count)

        if name == ToolName.TODO_WRITE:
            result = await self._guarded(call, self._todo_write(params))
            return self._outcome(call, params, result, started, retry_count)
        if name == ToolName.ASK_USER:
            result = await self._guarded(call, self._ask_user(params))
            return self._outcome(call, params, result, started, retry_count)

        context = HookContext(
            tool_name=str(name),
            params=params,
            working_directory=self._working_directory,
            conversation_id=self._conversation_id,
            retry_count=retry_count,
        )

        verdict = await self._hooks.run_pre_hooks(context)
        if not verdict.proceed:
            result = ToolResult.failure(
                verdict.error or "Rejected by pre-execution hook",
                suggestion=verdict.suggestion,
            )
            logger.warning("Tool call rejected", tool=call.name, tool_id=call.id, error=result.error)
            return self._outcome(call, params, result, started, retry_count)

        if verdict.modified_params is not None:
            params = verdict.modified_params
            context = context.model_copy(update={"params": params})

        if name == ToolName.BASH and not self._skip_permissions:
            command = str(params.get("command") or "")
            danger = check_dangerous_command(command)
            if danger is not None:
                try:
                    allowed = await self._interaction.request_permission(danger, command)
                except Exception as e:
                    logger.warning("Permission request failed: {error}", error=str(e), tool_id=call.id)
                    allowed = False
                if not allowed:
                    logger.info("Dangerous command declined", operation=danger, tool_id=call.id)
                    result = ToolResult.failure(CANCELLED_BY_USER, cancelled=True)
                    return self._outcome(call, params, result, started, retry_count)

        result = await self._guarded(call, self._backend.execute(str(name), params))

        post = await self._hooks.run_post_hooks(context, result)
        return self._outcome(
            call,
            params,
            post.result,
            started,
            retry_count,
            should_retry=post.should_retry,
            retry_params=post.retry_params,
            follow_up=post.follow_up_action,
        )

    async def retry(self, outcome: ToolOutcome) -> ToolOutcome:
        """Re-run a call whose post-hooks asked for a retry.

        The attempt is recorded in the correction history before dispatch.

        Args:
            outcome: Outcome carrying ``retry_params`` (falls back to the
                original params).

        Returns:
            The retried call's outcome with ``retry_count`` incremented.
        """
        corrected = outcome.retry_params if outcome.retry_params is not None else outcome.params
        self._corrections.record(
            CorrectionAttempt(
                tool_name=outcome.tool_name,
                original_params=outcome.params,
                error=outcome.result.error or "",
                corrected_params=corrected,
            )
        )
        logger.info(
            "Retrying tool call",
            tool=outcome.tool_name,
            tool_id=outcome.tool_use_id,
            retry_count=outcome.retry_count + 1,
        )
        call = PendingToolCall(id=outcome.tool_use_id, name=outcome.tool_name, input=corrected)
        return await self.execute_call(call, retry_count=outcome.retry_count + 1)

    async def _guarded(self, call: PendingToolCall, dispatch: Awaitable[ToolResult]) -> ToolResult:
        try:
            return await dispatch
        except UnknownToolError:
            logger.warning("Unknown tool requested", tool=call.name, tool_id=call.id)
            return ToolResult.failure(f"Unknown tool: {call.name}")
        except Exception as e:
            logger.warning(
                "Tool execution failed: {error}",
                error=str(e),
                tool=call.name,
                tool_id=call.id,
            )
            return ToolResult.failure(str(e) or type(e).__name__)

    async def _todo_write(self, params: dict[str, Any]) -> ToolResult:
        raw = params.get("todos")
        try:
            todos = [Todo.model_validate(item) for item in raw] if isinstance(raw, list) else []
        except ValidationError as e:
            return ToolResult.failure(f"Invalid todo list: {e.error_count()} invalid entries")
        await self._interaction.update_todos(todos)
        completed = sum(1 for todo in todos if todo.status == "completed")
        return ToolResult(
            success=True,
            content=f"Updated todo list: {completed}/{len(todos)} completed",
        )

    async def _ask_user(self, params: dict[str, Any]) -> ToolResult:
        question = str(params.get("question") or "")
        options = params.get("options")
        answer = await self._interaction.ask_user(
            question,
            [str(option) for option in options] if isinstance(options, list) else None,
        )
        return ToolResult(success=True, content=answer, answer=answer)

    def _outcome(
        self,
        call: PendingToolCall,
        params: dict[str, Any],
        result: ToolResult,
        started: float,
        retry_count: int,
        **extra: Any,
    ) -> ToolOutcome:
        if not result.success and not result.cancelled:
            logger.debug("Tool call failed", tool=call.name, tool_id=call.id, error=result.error)
        return ToolOutcome(
            tool_use_id=call.id,
            tool_name=call.name,
            params=params,
            result=result,
            retry_count=retry_count,
            duration_ms=int((time.perf_counter() - started) * 1000),
            **extra,
        )
