# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.
"""Built-in hooks: read-before-write, read tracking, index invalidation
and failure classification."""
import inspect
import os
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import TypeAlias

from loguru import logger

from wilson.core.constants import WILDCARD, ToolName
from wilson.core.types import ToolResult
from wilson.hooks.cache import FileReadCache
from wilson.hooks.errors import analyze_error
from wilson.hooks.models import HookContext, PostHookResult, PreHookResult
from wilson.hooks.pipeline import HookPipeline


IndexInvalidator: TypeAlias = Callable[[], Awaitable[None] | None]

READ_FIRST_SUGGESTION = "Use the Read tool to view the file contents first"


def resolve_tool_path(context: HookContext, key: str = "file_path") -> str | None:
    """Resolve a path parameter against the context's working directory.

    Returns:
        Normalized absolute path, or None when the parameter is missing.
    """
    raw = context.params.get(key)
    if not isinstance(raw, str) or not raw:
        return None
    return os.path.normpath(os.path.join(context.working_directory, os.path.expanduser(raw)))


def install_default_hooks(
    pipeline: HookPipeline,
    cache: FileReadCache,
    index_invalidator: IndexInvalidator | None = None,
) -> None:
    """Register the built-in hooks on ``pipeline``.

    Args:
        pipeline: Pipeline to register on.
        cache: Read cache consulted by the read-before-write guards.
        index_invalidator: Called after every successful Edit or Write.
    """

    async def require_read_before_edit(context: HookContext) -> PreHookResult:
        path = resolve_tool_path(context)
        if path is None or cache.has_recently_read(path):
            return PreHookResult(proceed=True)
        return PreHookResult(
            proceed=False,
            error=f'Read-before-write: File "{path}" must be read before editing',
            suggestion=READ_FIRST_SUGGESTION,
        )

    async def require_read_before_overwrite(context: HookContext) -> PreHookResult:
        path = resolve_tool_path(context)
        # New files need no prior read
        if path is None or not Path(path).exists() or cache.has_recently_read(path):
            return PreHookResult(proceed=True)
        return PreHookResult(
            proceed=False,
            error=f'Read-before-write: Existing file "{path}" must be read before overwriting',
            suggestion=READ_FIRST_SUGGESTION,
        )

    async def record_read(context: HookContext, result: ToolResult) -> PostHookResult:
        path = resolve_tool_path(context)
        if result.success and path is not None:
            cache.record(path, result.content or "")
        return PostHookResult(result=result)

    async def invalidate_index(context: HookContext, result: ToolResult) -> PostHookResult:
        if result.success and index_invalidator is not None:
            outcome = index_invalidator()
            if inspect.isawaitable(outcome):
                await outcome
            logger.debug("Index invalidated after file change", tool=context.tool_name)
        return PostHookResult(result=result)

    async def classify_failure(context: HookContext, result: ToolResult) -> PostHookResult:
        if result.success or result.cancelled:
            return PostHookResult(result=result)
        analysis = analyze_error(result.error or "")
        if analysis.suggestion is None:
            return PostHookResult(result=result)
        return PostHookResult(
            result=result.model_copy(
                update={"error_type": analysis.error_type.value, "suggestion": analysis.suggestion}
            )
        )

    pipeline.register_pre_hook(ToolName.EDIT, require_read_before_edit)
    pipeline.register_pre_hook(ToolName.WRITE, require_read_before_overwrite)
    pipeline.register_post_hook(ToolName.READ, record_read)
    pipeline.register_post_hook(ToolName.EDIT, invalidate_index)
    pipeline.register_post_hook(ToolName.WRITE, invalidate_index)
    pipeline.register_post_hook(WILDCARD, classify_failure)
