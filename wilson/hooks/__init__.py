"""Tool hook pipeline and self-correction support.

Exports:
    HookPipeline: Ordered pre/post hook chains.
    FileReadCache: TTL-bounded record of file reads.
    CorrectionHistory: Bounded log of correction attempts.
    install_default_hooks: Registers the built-in hooks.
    analyze_error: Classifies tool error messages.
"""

from wilson.hooks.cache import FileReadCache as FileReadCache
from wilson.hooks.corrections import CorrectionHistory as CorrectionHistory
from wilson.hooks.defaults import install_default_hooks as install_default_hooks
from wilson.hooks.errors import analyze_error as analyze_error
from wilson.hooks.models import (
    CorrectionAttempt as CorrectionAttempt,
    HookContext as HookContext,
    PostHookResult as PostHookResult,
    PreHookResult as PreHookResult,
)
from wilson.hooks.pipeline import HookPipeline as HookPipeline
