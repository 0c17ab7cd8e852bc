"""File records: the metadata and content getters a key-value store holds per path."""

from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Callable, Optional

from ..core import FileMode, IsDirError, NotDirError, NotImplementedFSError


class FileRecord(ABC):
    """A file inside a store. Each method must give consistent answers."""

    @abstractmethod
    def data(self):
        """Return a blob holding a copy of the file's contents."""

    @abstractmethod
    def read_dir_names(self) -> list[str]:
        """Return the names of this directory's children."""

    @abstractmethod
    def size(self) -> int:
        """Return the byte size of the contents."""

    @abstractmethod
    def mode(self) -> FileMode:
        """Return the file's mode."""

    @abstractmethod
    def mod_time(self) -> datetime:
        """Return the last modification time."""

    @abstractmethod
    def sys(self) -> Any:
        """Return the underlying data source, or None."""


class BaseFileRecord(FileRecord):
    """A FileRecord built from fixed metadata and optional content getters."""

    def __init__(
        self,
        initial_size: int,
        mod_time: datetime,
        mode: int,
        sys: Any,
        get_data: Optional[Callable[[], Any]],
        get_dir_names: Optional[Callable[[], list[str]]],
    ) -> None:
        self._initial_size = initial_size
        self._mod_time = mod_time
        self._mode = FileMode(mode)
        self._sys = sys
        self._get_data = get_data
        self._get_dir_names = get_dir_names

    def data(self):
        if self._get_data is None:
            if self._mode.is_dir():
                raise IsDirError()
            raise NotImplementedFSError()
        return self._get_data()

    def read_dir_names(self) -> list[str]:
        if self._get_dir_names is None:
            if not self._mode.is_dir():
                raise NotDirError()
            raise NotImplementedFSError()
        return self._get_dir_names()

    def size(self) -> int:
        return self._initial_size

    def mode(self) -> FileMode:
        return self._mode

    def mod_time(self) -> datetime:
        return self._mod_time

    def sys(self) -> Any:
        return self._sys


class CachedFileRecord(FileRecord):
    """Wraps a record so each of its methods runs at most once."""

    def __init__(self, record: FileRecord) -> None:
        self.record = record
        self._lock = threading.RLock()
        self._cache: dict[str, tuple[Any, Optional[BaseException]]] = {}

    def _once(self, key: str, fetch: Callable[[], Any]) -> Any:
        with self._lock:
            if key not in self._cache:
                try:
                    self._cache[key] = (fetch(), None)
                except Exception as exc:
                    self._cache[key] = (None, exc)
            value, error = self._cache[key]
        if error is not None:
            raise error
        return value

    def data(self):
        return self._once("data", self.record.data)

    def read_dir_names(self) -> list[str]:
        return self._once("dir_names", self.record.read_dir_names)

    def size(self) -> int:
        size = self._once("size", self.record.size)
        with self._lock:
            entry = self._cache.get("data")
        if entry is not None and entry[1] is None and entry[0] is not None:
            return len(entry[0])
        return size

    def mode(self) -> FileMode:
        return FileMode(self._once("mode", self.record.mode))

    def mod_time(self) -> datetime:
        return self._once("mod_time", self.record.mod_time)

    def sys(self) -> Any:
        return self._once("sys", self.record.sys)