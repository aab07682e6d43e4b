# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.
import threading
from collections import deque

from wilson.core.constants import MAX_CORRECTION_HISTORY, normalize_tool_name
from wilson.hooks.models import CorrectionAttempt


class CorrectionHistory:
    """Bounded record of self-correction attempts, oldest dropped first.

    Args:
        max_entries: Number of attempts retained.
    """

    def __init__(self, max_entries: int = MAX_CORRECTION_HISTORY):
        self._attempts: deque[CorrectionAttempt] = deque(maxlen=max_entries)
        self._lock = threading.Lock()

    def record(self, attempt: CorrectionAttempt) -> None:
        with self._lock:
            self._attempts.append(attempt)

    def recent(self, tool_name: str | None = None, limit: int = 10) -> list[CorrectionAttempt]:
        """Most recent attempts, oldest first.

        Args:
            tool_name: Only attempts for this tool (aliases accepted).
            limit: Maximum number returned.
        """
        with self._lock:
            attempts = list(self._attempts)
        if tool_name is not None:
            wanted = str(normalize_tool_name(tool_name))
            attempts = [a for a in attempts if str(normalize_tool_name(a.tool_name)) == wanted]
        if limit <= 0:
            return []
        return attempts[-limit:]

    def clear(self) -> None:
        with self._lock:
            self._attempts.clear()

    def __len__(self) -> int:
        return len(self._attempts)
