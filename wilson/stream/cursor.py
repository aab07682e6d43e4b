# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.
"""Pull-based cursor over a backend response stream."""
import asyncio
import inspect
from collections import deque
from collections.abc import AsyncIterable, Awaitable, Callable
from typing import Self

from loguru import logger

from wilson.core.events import ErrorEvent, StreamEvent, is_terminal
from wilson.stream.frames import DONE, parse_frame
from wilson.stream.normalizer import WireEventNormalizer


class CancellationToken:
    """Cooperative cancellation signal shared by a cursor and a coordinator."""

    def __init__(self) -> None:
        self._event = asyncio.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    async def wait(self) -> None:
        await self._event.wait()


class StreamCursor:
    """Deliver normalized events one at a time.

    The cursor owns the line source: it is closed exactly once, on whichever
    exit path comes first (terminal event, end of input, read failure,
    cancellation, or an explicit ``aclose``).

    Args:
        lines: Lines of the response body (see ``split_lines``).
        normalizer: Normalizer for this response.
        cancel_token: Stops delivery once cancelled. Checked between lines.
        on_close: Called after the source is closed; may be async.

    Example:
        >>> async with StreamCursor(lines, WireEventNormalizer()) as cursor:
        ...     async for event in cursor:
        ...         handle(event)
    """

    def __init__(
        self,
        lines: AsyncIterable[str],
        normalizer: WireEventNormalizer,
        cancel_token: CancellationToken | None = None,
        on_close: Callable[[], Awaitable[None] | None] | None = None,
    ):
        self._lines = aiter(lines)
        self._normalizer = normalizer
        self._cancel_token = cancel_token
        self._on_close = on_close
        self._queue: deque[StreamEvent] = deque()
        self._exhausted = False
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    async def next(self) -> StreamEvent | None:
        """Return the next event, or None once the stream is over."""
        while True:
            if self._closed:
                return None
            if self._cancel_token is not None and self._cancel_token.cancelled:
                logger.debug("Stream cancelled, releasing source")
                await self.aclose()
                return None
            if self._queue:
                event = self._queue.popleft()
                if is_terminal(event):
                    await self.aclose()
                return event
            if self._exhausted:
                await self.aclose()
                return None
            await self._pull()

    async def _pull(self) -> None:
        try:
            line = await anext(self._lines)
        except StopAsyncIteration:
            self._exhausted = True
            self._queue.extend(self._normalizer.finish())
            return
        except Exception as e:
            logger.warning("Stream read failed", error=str(e), error_type=type(e).__name__)
            self._exhausted = True
            self._queue.append(ErrorEvent(message=str(e) or type(e).__name__))
            return

        frame = parse_frame(line)
        if frame is None:
            return
        if frame is DONE:
            self._exhausted = True
            self._queue.extend(self._normalizer.finish())
            return
        try:
            self._queue.extend(self._normalizer.process(frame))
        except Exception as e:
            logger.debug(
                "Dropping malformed stream record",
                error=str(e),
                error_type=type(e).__name__,
                record_type=frame.get("type"),
            )

    async def aclose(self) -> None:
        """Release the source. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        self._exhausted = True
        self._queue.clear()
        try:
            close = getattr(self._lines, "aclose", None)
            if close is not None:
                await close()
        finally:
            if self._on_close is not None:
                result = self._on_close()
                if inspect.isawaitable(result):
                    await result

    def __aiter__(self) -> Self:
        return self

    async def __anext__(self) -> StreamEvent:
        event = await self.next()
        if event is None:
            raise StopAsyncIteration
        return event

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()
