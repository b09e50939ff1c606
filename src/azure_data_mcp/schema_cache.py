"""Short-lived cache of inferred table schemas."""

import threading
import time
from typing import Callable

from cachetools import TTLCache

from azure_data_mcp.schema import EmptyTable, TableSchema

DEFAULT_MAXSIZE = 256


class SchemaCache:
    """Per-table cache of inferred schemas with a time-to-live.

    Entries are keyed by (table_name, sample_size). Writers must call
    invalidate() after mutating a table so later validations see the new
    records. A ttl_seconds of zero or less disables caching.
    """

    def __init__(
        self,
        ttl_seconds: float,
        clock: Callable[[], float] = time.monotonic,
        maxsize: int = DEFAULT_MAXSIZE,
    ) -> None:
        """Initialize the cache.

        Args:
            ttl_seconds: How long an entry stays valid.
            clock: Monotonic time source, replaceable in tests.
            maxsize: Most entries held; the least recently used is evicted.
        """
        self._ttl = ttl_seconds
        self._entries: TTLCache | None = None
        if self.enabled:
            self._entries = TTLCache(maxsize=maxsize, ttl=ttl_seconds, timer=clock)
        self._lock = threading.Lock()

    @property
    def enabled(self) -> bool:
        return self._ttl > 0

    def get(self, table_name: str, sample_size: int) -> TableSchema | EmptyTable | None:
        """Get a cached schema, or None if missing or expired."""
        if self._entries is None:
            return None
        with self._lock:
            return self._entries.get((table_name, sample_size))

    def put(
        self, table_name: str, sample_size: int, schema: TableSchema | EmptyTable
    ) -> None:
        if self._entries is None:
            return
        with self._lock:
            self._entries[(table_name, sample_size)] = schema

    def invalidate(self, table_name: str) -> None:
        """Drop every cached schema for a table."""
        if self._entries is None:
            return
        with self._lock:
            for key in [k for k in self._entries if k[0] == table_name]:
                self._entries.pop(key, None)

    def clear(self) -> None:
        if self._entries is None:
            return
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        if self._entries is None:
            return 0
        with self._lock:
            self._entries.expire()
            return len(self._entries)
