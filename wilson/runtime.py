# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.
"""Per-conversation agent runtime.

An AgentRuntime owns the hook pipeline, the file-read cache and the
correction history for one conversation and builds the normalizers,
cursors and coordinators that share them. Two runtimes never share state.
"""
import os
import time
from collections.abc import AsyncIterable, Awaitable, Callable

from wilson.core.constants import (
    DEFAULT_MAX_PARALLEL_TOOLS,
    FILE_READ_CACHE_TTL_SECONDS,
    MAX_CORRECTION_HISTORY,
)
from wilson.hooks.cache import FileReadCache
from wilson.hooks.corrections import CorrectionHistory
from wilson.hooks.defaults import IndexInvalidator, install_default_hooks
from wilson.hooks.models import PostHook, PreHook
from wilson.hooks.pipeline import HookPipeline
from wilson.stream.cursor import CancellationToken, StreamCursor
from wilson.stream.normalizer import WireEventNormalizer
from wilson.tools.coordinator import ToolCoordinator
from wilson.tools.protocols import ToolBackend, UserInteraction


class AgentRuntime:
    """Explicit home for state the agent loop shares across tool calls.

    Args:
        working_directory: Directory tool paths resolve against.
        file_read_ttl: Seconds a recorded read satisfies read-before-write.
        index_invalidator: Called after successful Edit/Write calls.
        install_defaults: Register the built-in hooks.
        max_corrections: Size of the correction history.
        clock: Time source for the read cache.
    """

    def __init__(
        self,
        working_directory: str | None = None,
        file_read_ttl: float = FILE_READ_CACHE_TTL_SECONDS,
        index_invalidator: IndexInvalidator | None = None,
        install_defaults: bool = True,
        max_corrections: int = MAX_CORRECTION_HISTORY,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.working_directory = os.path.abspath(working_directory or os.getcwd())
        self.hooks = HookPipeline()
        self.file_cache = FileReadCache(ttl_seconds=file_read_ttl, clock=clock)
        self.corrections = CorrectionHistory(max_entries=max_corrections)
        if install_defaults:
            install_default_hooks(self.hooks, self.file_cache, index_invalidator)

    def register_pre_hook(self, tool_name: str, hook: PreHook) -> None:
        self.hooks.register_pre_hook(tool_name, hook)

    def register_post_hook(self, tool_name: str, hook: PostHook) -> None:
        self.hooks.register_post_hook(tool_name, hook)

    def create_normalizer(self) -> WireEventNormalizer:
        return WireEventNormalizer()

    def create_cursor(
        self,
        lines: AsyncIterable[str],
        cancel_token: CancellationToken | None = None,
        on_close: Callable[[], Awaitable[None] | None] | None = None,
    ) -> StreamCursor:
        """Build a cursor with a fresh normalizer over ``lines``."""
        return StreamCursor(lines, self.create_normalizer(), cancel_token, on_close)

    def create_coordinator(
        self,
        backend: ToolBackend,
        interaction: UserInteraction,
        *,
        conversation_id: str | None = None,
        skip_permissions: bool = False,
        max_parallel: int = DEFAULT_MAX_PARALLEL_TOOLS,
        cancel_token: CancellationToken | None = None,
    ) -> ToolCoordinator:
        """Build a coordinator wired to this runtime's hooks and history."""
        return ToolCoordinator(
            backend,
            self.hooks,
            interaction,
            working_directory=self.working_directory,
            conversation_id=conversation_id,
            skip_permissions=skip_permissions,
            max_parallel=max_parallel,
            corrections=self.corrections,
            cancel_token=cancel_token,
        )
