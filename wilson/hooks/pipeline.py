# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.
"""Ordered pre/post execution hook chains.

Pre-hooks run global chain first, then the tool's own chain. Post-hooks run
the tool's own chain first, then the global chain.

Usage:
    pipeline = HookPipeline()
    pipeline.register_pre_hook("Edit", require_prior_read)
    pipeline.register_post_hook("*", classify_failure)

    verdict = await pipeline.run_pre_hooks(context)
    if verdict.proceed:
        result = await backend.execute(context.tool_name, verdict.modified_params)
        post = await pipeline.run_post_hooks(context, result)
"""
import inspect
import threading

from loguru import logger

from wilson.core.constants import WILDCARD, normalize_tool_name
from wilson.core.types import ToolResult
from wilson.hooks.models import HookContext, PostHook, PostHookResult, PreHook, PreHookResult


def _hook_name(hook: object) -> str:
    return getattr(hook, "__qualname__", type(hook).__name__)


class HookPipeline:
    """Registry and runner for tool hooks.

    Registration is expected during startup; running takes a snapshot of
    the chains so hooks registered mid-dispatch apply to later calls only.
    """

    def __init__(self) -> None:
        self._global_pre: list[PreHook] = []
        self._global_post: list[PostHook] = []
        self._pre: dict[str, list[PreHook]] = {}
        self._post: dict[str, list[PostHook]] = {}
        self._lock = threading.Lock()

    # Registration methods

    def register_pre_hook(self, tool_name: str, hook: PreHook) -> None:
        """Register a pre-execution hook.

        Args:
            tool_name: Tool to guard, or ``"*"`` for every tool.
            hook: Callable returning a PreHookResult (sync or async).
        """
        with self._lock:
            if tool_name == WILDCARD:
                self._global_pre.append(hook)
            else:
                self._pre.setdefault(str(normalize_tool_name(tool_name)), []).append(hook)

    def register_post_hook(self, tool_name: str, hook: PostHook) -> None:
        """Register a post-execution hook.

        Args:
            tool_name: Tool to observe, or ``"*"`` for every tool.
            hook: Callable returning a PostHookResult (sync or async).
        """
        with self._lock:
            if tool_name == WILDCARD:
                self._global_post.append(hook)
            else:
                self._post.setdefault(str(normalize_tool_name(tool_name)), []).append(hook)

    def clear(self) -> None:
        """Remove every registered hook."""
        with self._lock:
            self._global_pre.clear()
            self._global_post.clear()
            self._pre.clear()
            self._post.clear()

    # Execution

    async def run_pre_hooks(self, context: HookContext) -> PreHookResult:
        """Run the pre-execution chain.

        Each hook sees the parameters produced by the hooks before it. The
        first rejection is returned unchanged. A hook that raises, or returns
        anything other than a PreHookResult, counts as a rejection.

        Args:
            context: Dispatch context with the original parameters.

        Returns:
            The rejecting result, or ``PreHookResult(proceed=True)`` carrying
            the final parameters in ``modified_params``.
        """
        key = str(normalize_tool_name(context.tool_name))
        with self._lock:
            chain = [*self._global_pre, *self._pre.get(key, [])]

        params = dict(context.params)
        for hook in chain:
            try:
                result = hook(context.model_copy(update={"params": params}))
                if inspect.isawaitable(result):
                    result = await result
                if not isinstance(result, PreHookResult):
                    raise TypeError(f"returned {type(result).__name__}, expected PreHookResult")
            except Exception as e:
                logger.error(
                    "Pre-hook failed, rejecting call: {error}",
                    error=str(e),
                    hook=_hook_name(hook),
                    tool=context.tool_name,
                )
                return PreHookResult(proceed=False, error=f"Pre-hook failed: {e}")

            if not result.proceed:
                logger.info(
                    "Pre-hook rejected call",
                    hook=_hook_name(hook),
                    tool=context.tool_name,
                    reason=result.error,
                )
                return result
            if result.modified_params is not None:
                params = result.modified_params

        return PreHookResult(proceed=True, modified_params=params)

    async def run_post_hooks(self, context: HookContext, result: ToolResult) -> PostHookResult:
        """Run the post-execution chain.

        A hook asking for a retry stops the chain. A tool-specific hook
        suggesting a follow-up action also stops it. A hook that raises, or returns anything other than a
        PostHookResult, is logged and skipped.

        Args:
            context: Dispatch context.
            result: Result returned by the tool backend.

        Returns:
            The short-circuiting hook's result, or the final rewritten result.
        """
        key = str(normalize_tool_name(context.tool_name))
        with self._lock:
            tool_chain = list(self._post.get(key, []))
            global_chain = list(self._global_post)

        current = result
        for hook in tool_chain:
            hook_result = await self._call_post_hook(hook, context, current)
            if hook_result is None:
                continue
            current = hook_result.result
            if hook_result.should_retry or hook_result.follow_up_action is not None:
                return hook_result

        for hook in global_chain:
            hook_result = await self._call_post_hook(hook, context, current)
            if hook_result is None:
                continue
            current = hook_result.result
            if hook_result.should_retry:
                return hook_result

        return PostHookResult(result=current)

    async def _call_post_hook(
        self, hook: PostHook, context: HookContext, result: ToolResult
    ) -> PostHookResult | None:
        try:
            hook_result = hook(context, result)
            if inspect.isawaitable(hook_result):
                hook_result = await hook_result
            if not isinstance(hook_result, PostHookResult):
                raise TypeError(f"returned {type(hook_result).__name__}, expected PostHookResult")
            return hook_result
        except Exception as e:
            logger.warning(
                "Post-hook failed, skipping: {error}",
                error=str(e),
                hook=_hook_name(hook),
                tool=context.tool_name,
            )
            return None
