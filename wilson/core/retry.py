# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.
"""Exponential backoff for transient failures."""
import asyncio
from collections.abc import Awaitable, Callable
from typing import TypeVar

from loguru import logger

from wilson.core.types import RetryConfig

T = TypeVar("T")


async def retry_with_backoff(
    fn: Callable[[], Awaitable[T]],
    config: RetryConfig | None = None,
    retry_on: tuple[type[BaseException], ...] = (Exception,),
) -> T:
    """Await ``fn`` until it succeeds or the retry budget is spent.

    The first call is not a retry; up to ``config.max_retries`` further calls
    follow, waiting ``base_delay * 2**attempt`` seconds (capped at
    ``max_delay``) before each.

    Args:
        fn: Zero-argument coroutine factory.
        config: Retry limits. Defaults to RetryConfig().
        retry_on: Exception types that trigger a retry. Others propagate.

    Returns:
        The value returned by the first successful call.

    Raises:
        Exception: The last error once every attempt has failed.
    """
    config = config or RetryConfig()
    for attempt in range(config.max_retries + 1):
        try:
            return await fn()
        except retry_on as e:
            if attempt == config.max_retries:
                logger.error(
                    "Operation failed after retries",
                    attempts=attempt + 1,
                    error=str(e),
                )
                raise

            wait = min(config.base_delay * 2**attempt, config.max_delay)
            logger.warning(
                "Operation failed, retrying",
                attempt=attempt + 1,
                wait_seconds=wait,
                error=str(e),
            )
            await asyncio.sleep(wait)

    raise RuntimeError("Unreachable")
