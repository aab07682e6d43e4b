"""Conversation control loop.

Drives one user message through as many backend continuations as the
backend asks for: stream the response, execute the tool batch it ends with,
send the results back, repeat until the backend finishes.
"""
from collections.abc import AsyncIterator
from contextlib import AsyncExitStack
from typing import Any

from loguru import logger

from wilson.client.api import BackendClient
from wilson.client.models import ChatRequest, HistoryMessage
from wilson.core.constants import HISTORY_LIMIT, MAX_LOOP_DEPTH
from wilson.core.events import (
    DoneEvent,
    ErrorEvent,
    StreamEvent,
    TextEvent,
    ToolResultEvent,
    ToolsPendingBatchEvent,
    UsageEvent,
)
from wilson.core.exceptions import BackendError, BackendUnreachableError
from wilson.core.retry import retry_with_backoff
from wilson.core.state import TurnState, TurnStateMachine
from wilson.core.types import RetryConfig, ToolOutcome, Usage
from wilson.runtime import AgentRuntime
from wilson.stream.cursor import CancellationToken
from wilson.tools.coordinator import ToolCoordinator


def _result_event(outcome: ToolOutcome) -> ToolResultEvent:
    return ToolResultEvent(
        id=outcome.tool_use_id,
        name=outcome.tool_name,
        result=outcome.result.model_dump(exclude_none=True),
        elapsed_ms=outcome.duration_ms,
        is_error=not outcome.result.success,
    )


class Conversation:
    """In-memory conversation with the backend.

    History lives only as long as this object. Each ``send`` yields the
    events of one user message, ending with exactly one DoneEvent or
    ErrorEvent (unless cancelled, in which case it simply stops).

    Args:
        runtime: Runtime providing cursors.
        client: Backend client.
        coordinator: Executes tool batches.
        local_tools: Tool schemas advertised to the backend.
        store_id: Store the conversation is scoped to.
        provider: Model provider override.
        model: Model override.
        system_prompt: System prompt override.
        history_limit: Earlier messages sent with each request.
        max_loop_depth: Continuations allowed per user message.
        retry: Backoff for requests that cannot reach the backend.
    """

    def __init__(
        self,
        runtime: AgentRuntime,
        client: BackendClient,
        coordinator: ToolCoordinator,
        local_tools: list[dict[str, Any]] | None = None,
        *,
        store_id: str | None = None,
        provider: str | None = None,
        model: str | None = None,
        system_prompt: str | None = None,
        history_limit: int = HISTORY_LIMIT,
        max_loop_depth: int = MAX_LOOP_DEPTH,
        retry: RetryConfig | None = None,
    ):
        self._runtime = runtime
        self._client = client
        self._coordinator = coordinator
        self._local_tools = local_tools or []
        self._store_id = store_id
        self._provider = provider
        self._model = model
        self._system_prompt = system_prompt
        self._history_limit = history_limit
        self._max_loop_depth = max_loop_depth
        self._retry = retry or RetryConfig()
        self.history: list[HistoryMessage] = []
        self.usage = Usage()
        self.state: TurnStateMachine | None = None

    def clear(self) -> None:
        """Forget the conversation history."""
        self.history.clear()

    def _request(
        self,
        message: str,
        exchange: list[HistoryMessage],
        tool_call_count: int | None,
        loop_depth: int | None,
    ) -> ChatRequest:
        earlier = self.history[-self._history_limit:] if self._history_limit > 0 else []
        return ChatRequest(
            message=message,
            history=[*earlier, *exchange],
            store_id=self._store_id,
            working_directory=self._runtime.working_directory,
            local_tools=self._local_tools,
            tool_call_count=tool_call_count,
            loop_depth=loop_depth,
            provider=self._provider,
            model=self._model,
            system_prompt=self._system_prompt,
        )

    async def send(
        self, message: str, cancel_token: CancellationToken | None = None
    ) -> AsyncIterator[StreamEvent]:
        """Send a user message and stream the resulting events.

        The last tool batch observed in a response is the one executed.
        Tool outcomes are yielded as ToolResultEvents before the
        continuation request is sent.

        Args:
            message: User message.
            cancel_token: Stops streaming and tool dispatch once cancelled.

        Yields:
            Text, tool, usage and result events, then one terminal event.
        """
        if cancel_token is not None:
            self._coordinator.cancel_token = cancel_token
        machine = TurnStateMachine()
        self.state = machine

        exchange = [HistoryMessage(role="user", content=message)]
        text_parts: list[str] = []
        turn_usage = Usage()
        tool_call_count: int | None = None
        loop_depth: int | None = None
        depth = 0

        while True:
            if depth > self._max_loop_depth:
                machine.advance(TurnState.ERROR)
                logger.error("Continuation limit reached", depth=depth)
                yield ErrorEvent(
                    message=f"Safety limit reached ({self._max_loop_depth} continuations)"
                )
                return

            request = self._request(message, exchange, tool_call_count, loop_depth)
            batch: ToolsPendingBatchEvent | None = None
            terminal: DoneEvent | ErrorEvent | None = None
            last_usage: Usage | None = None

            try:
                async with AsyncExitStack() as stack:
                    lines = await retry_with_backoff(
                        lambda: stack.enter_async_context(self._client.stream_chat(request)),
                        self._retry,
                        retry_on=(BackendUnreachableError,),
                    )
                    machine.advance(TurnState.STREAMING)
                    async with self._runtime.create_cursor(lines, cancel_token) as cursor:
                        async for event in cursor:
                            if isinstance(event, ToolsPendingBatchEvent):
                                if batch is not None:
                                    logger.debug("Replacing earlier tool batch in the same response")
                                batch = event
                                continue
                            if isinstance(event, DoneEvent):
                                terminal = event
                                last_usage = event.usage or last_usage
                                continue
                            if isinstance(event, UsageEvent):
                                last_usage = event.usage
                            elif isinstance(event, TextEvent):
                                text_parts.append(event.text)
                            elif isinstance(event, ErrorEvent):
                                terminal = event
                            yield event
            except BackendError as e:
                logger.warning("Backend request failed: {error}", error=str(e))
                machine.advance(TurnState.ERROR)
                yield ErrorEvent(message=str(e))
                return

            if last_usage is not None:
                turn_usage = turn_usage.plus(last_usage)
                self.usage = self.usage.plus(last_usage)

            if terminal is None:
                logger.info("Turn cancelled")
                return
            if isinstance(terminal, ErrorEvent):
                machine.advance(TurnState.ERROR)
                return

            if batch is None or not batch.calls:
                machine.advance(TurnState.DONE)
                self.history.append(HistoryMessage(role="user", content=message))
                self.history.append(HistoryMessage(role="assistant", content="".join(text_parts)))
                yield DoneEvent(usage=turn_usage)
                return

            machine.advance(TurnState.TOOLS_PENDING)
            if cancel_token is not None and cancel_token.cancelled:
                logger.info("Turn cancelled before tool execution")
                return
            machine.advance(TurnState.EXECUTING_TOOLS)
            outcomes = await self._coordinator.execute_batch(batch.calls)
            for outcome in outcomes:
                yield _result_event(outcome)

            if batch.assistant_content:
                exchange.append(
                    HistoryMessage(
                        role="assistant",
                        content=[block.model_dump() for block in batch.assistant_content],
                    )
                )
            exchange.append(
                HistoryMessage(role="user", content=[o.to_content_block() for o in outcomes])
            )
            tool_call_count = batch.tool_call_count
            loop_depth = batch.loop_depth
            depth += 1

            if cancel_token is not None and cancel_token.cancelled:
                logger.info("Turn cancelled before continuation")
                return
            machine.advance(TurnState.AWAITING_BACKEND)
