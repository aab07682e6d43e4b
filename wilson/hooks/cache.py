# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.
"""TTL-bounded record of recent file reads."""
import threading
import time
from collections.abc import Callable

from wilson.core.constants import FILE_READ_CACHE_TTL_SECONDS
from wilson.hooks.models import FileReadCacheEntry


class FileReadCache:
    """Remembers which paths were read, and when.

    Shared by concurrently running tool calls; every operation holds the
    lock, so records and lookups are linearizable.

    Args:
        ttl_seconds: How long a read stays valid.
        clock: Monotonic time source in seconds.
    """

    def __init__(
        self,
        ttl_seconds: float = FILE_READ_CACHE_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._ttl = ttl_seconds
        self._clock = clock
        self._entries: dict[str, FileReadCacheEntry] = {}
        self._lock = threading.Lock()

    @property
    def ttl_seconds(self) -> float:
        return self._ttl

    def record(self, path: str, content: str) -> None:
        """Record a read of ``path``, replacing any earlier entry."""
        with self._lock:
            self._entries[path] = FileReadCacheEntry(
                path=path, content=content, timestamp_read=self._clock()
            )

    def _live_entry(self, path: str) -> FileReadCacheEntry | None:
        entry = self._entries.get(path)
        if entry is None:
            return None
        if self._clock() - entry.timestamp_read >= self._ttl:
            del self._entries[path]
            return None
        return entry

    def has_recently_read(self, path: str) -> bool:
        with self._lock:
            return self._live_entry(path) is not None

    def last_content(self, path: str) -> str | None:
        """Content of the last unexpired read of ``path``, if any."""
        with self._lock:
            entry = self._live_entry(path)
            return entry.content if entry else None

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
