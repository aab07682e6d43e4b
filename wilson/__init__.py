"""Wilson: an interactive CLI agent runtime."""

__version__ = "0.1.0"

from wilson.config import WilsonSettings, load_settings  # noqa: E402
from wilson.runtime import AgentRuntime  # noqa: E402


__all__ = [
    "AgentRuntime",
    "WilsonSettings",
    "load_settings",
    "__version__",
]
