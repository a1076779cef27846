"""
acl_dynamodb.registry — Process-local record of tables this process has created.

A table is claimed when the first write to its bucket is queued, before the
create request runs. claim() is an insert-if-absent under a lock, so only
one writer per process queues the CreateTable; a duplicate create from
another process is absorbed by CreateTable itself.
"""

from __future__ import annotations

import threading


class TableRegistry:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._names: set[str] = set()

    def claim(self, table_name: str) -> bool:
        """Return True if the caller is the first to claim table_name."""
        with self._lock:
            if table_name in self._names:
                return False
            self._names.add(table_name)
            return True

    def forget(self, table_name: str) -> None:
        with self._lock:
            self._names.discard(table_name)

    def names(self) -> list[str]:
        with self._lock:
            return sorted(self._names)

    def __contains__(self, table_name: object) -> bool:
        with self._lock:
            return table_name in self._names

    def clear(self) -> None:
        with self._lock:
            self._names.clear()
