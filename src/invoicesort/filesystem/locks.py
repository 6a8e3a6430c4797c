"""Per-path mutual exclusion for check-then-act filesystem sequences."""

from __future__ import annotations

import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator


class KeyedLock:
    """Hand out one lock per directory key, created on demand and dropped when idle."""

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[str, threading.Lock] = {}
        self._holders: dict[str, int] = {}

    @contextmanager
    def hold(self, *paths: Path) -> Iterator[None]:
        """Acquire the locks for ``paths`` for the duration of the block.

        Keys are taken in sorted order so overlapping callers never deadlock.
        """
        keys = sorted({str(path.resolve()) for path in paths})
        checked_out: list[str] = []
        acquired: list[threading.Lock] = []
        try:
            for key in keys:
                lock = self._checkout(key)
                checked_out.append(key)
                lock.acquire()
                acquired.append(lock)
            yield
        finally:
            for lock in reversed(acquired):
                lock.release()
            for key in checked_out:
                self._checkin(key)

    def active_keys(self) -> list[str]:
        """Return keys that currently have a holder or waiter."""
        with self._guard:
            return sorted(self._locks)

    def _checkout(self, key: str) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = threading.Lock()
                self._locks[key] = lock
            self._holders[key] = self._holders.get(key, 0) + 1
            return lock

    def _checkin(self, key: str) -> None:
        with self._guard:
            remaining = self._holders.get(key, 0) - 1
            if remaining > 0:
                self._holders[key] = remaining
                return
            self._holders.pop(key, None)
            self._locks.pop(key, None)


__all__ = ["KeyedLock"]
