"""
Per-project write serialization.

Each project id gets its own re-entrant lock. There is no global lock
around project operations, so different projects never wait on each other.
A lock lives only while some caller holds or waits on it; ids that are
read once (including ids of projects that do not exist) leave nothing behind.
"""

import threading
from contextlib import contextmanager
from typing import Dict, Iterator


class _Entry:
    __slots__ = ("lock", "users")

    def __init__(self) -> None:
        self.lock = threading.RLock()
        self.users = 0


class LockManager:
    """Hands out one RLock per project id."""

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._entries: Dict[str, _Entry] = {}

    def _checkout(self, project_id: str) -> _Entry:
        with self._guard:
            entry = self._entries.get(project_id)
            if entry is None:
                entry = _Entry()
                self._entries[project_id] = entry
            entry.users += 1
            return entry

    def _checkin(self, project_id: str, entry: _Entry) -> None:
        with self._guard:
            entry.users -= 1
            if entry.users == 0:
                self._entries.pop(project_id, None)

    @property
    def tracked(self) -> int:
        """Number of project ids with a live lock."""
        with self._guard:
            return len(self._entries)

    @contextmanager
    def hold(self, project_id: str) -> Iterator[None]:
        """Hold the project's lock for the duration of the block."""
        entry = self._checkout(project_id)
        try:
            with entry.lock:
                yield
        finally:
            self._checkin(project_id, entry)

    @contextmanager
    def try_hold(self, project_id: str) -> Iterator[bool]:
        """Try to take the project's lock without waiting.

        Yields True when the lock was acquired; the lock is released on exit.
        """
        entry = self._checkout(project_id)
        acquired = entry.lock.acquire(blocking=False)
        try:
            yield acquired
        finally:
            if acquired:
                entry.lock.release()
            self._checkin(project_id, entry)
