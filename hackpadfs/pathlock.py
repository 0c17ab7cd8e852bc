"""A lock keyed by file path."""

from __future__ import annotations

import threading


class PathLock:
    """Grants exclusive access to individual paths."""

    def __init__(self) -> None:
        self._locks: dict[str, threading.Lock] = {}
        self._guard = threading.Lock()

    def _lock_for(self, path: str) -> threading.Lock:
        with self._guard:
            return self._locks.setdefault(path, threading.Lock())

    def lock(self, path: str) -> None:
        """Block until 'path' can be held exclusively."""
        self._lock_for(path).acquire()

    def unlock(self, path: str) -> None:
        """Release 'path'. Raises RuntimeError if it is not held."""
        with self._guard:
            path_lock = self._locks.get(path)
        if path_lock is None or not path_lock.locked():
            raise RuntimeError(f"unlock of unlocked path: {path}")
        path_lock.release()

    def locked(self, path: str) -> bool:
        """Report whether 'path' is currently held."""
        with self._guard:
            path_lock = self._locks.get(path)
        return path_lock is not None and path_lock.locked()