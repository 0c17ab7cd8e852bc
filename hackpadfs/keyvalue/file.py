"""Open files, file info and directory entries of a key-value file system.

A file belongs to a file system object that offers ``store`` (the key-value
store behind it) and ``stat(name)``.
"""

from __future__ import annotations

import os
import posixpath
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Optional

from ..core import (
    FLAG_APPEND,
    MODE_PERM,
    MODE_SETGID,
    MODE_SETUID,
    MODE_STICKY,
    ClosedError,
    FileMode,
    FSError,
    InvalidError,
    IsDirError,
    NotImplementedFSError,
    PathError,
    valid_path,
)
from .blob import Bytes, grow, set_blob, truncate, view
from .record import BaseFileRecord, CachedFileRecord, FileRecord
from .store import Transaction, TransactionMode, transaction_or_serial

# Only these bits may be changed by chmod.
CHMOD_BITS = MODE_PERM | MODE_SETUID | MODE_SETGID | MODE_STICKY


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class FileInfo:
    """Describes the file stored at 'path'."""

    record: FileRecord
    path: str

    def name(self) -> str:
        return posixpath.basename(self.path) or "."

    def size(self) -> int:
        return self.record.size()

    def mode(self) -> FileMode:
        return self.record.mode()

    def mod_time(self) -> datetime:
        return self.record.mod_time()

    def is_dir(self) -> bool:
        return self.record.mode().is_dir()

    def sys(self) -> Any:
        return self.record.sys()


class DirEntry:
    """One child of a directory."""

    __slots__ = ("_name", "_info")

    def __init__(self, name: str, info: FileInfo) -> None:
        self._name = name
        self._info = info

    def name(self) -> str:
        return self._name

    def is_dir(self) -> bool:
        return self._info.mode().is_dir()

    def type(self) -> FileMode:
        return self._info.mode().type()

    def info(self) -> FileInfo:
        return self._info

    def __repr__(self) -> str:
        return f"DirEntry({self._name!r})"


def _set_record_txn(txn: Transaction, path: str, record: Optional[FileRecord], contents: Any) -> None:
    if not valid_path(path):
        raise InvalidError()
    if contents is None and record is not None and record.mode().is_regular():
        raise ValueError("contents must not be None for a regular file")
    txn.set(path, record, contents)


def _store_record(store, path: str, record: Optional[FileRecord]) -> None:
    """Write 'record' to 'path' in 'store', or delete 'path' when it is None."""
    contents = None
    if record is not None and record.mode().is_regular():
        contents = record.data()
    txn = transaction_or_serial(store, TransactionMode.READ_WRITE)
    try:
        _set_record_txn(txn, path, record, contents)
    except BaseException:
        txn.abort()
        raise
    txn.commit()


class _FileData(FileRecord):
    """A cached record plus the changes an open file has made to it."""

    def __init__(self, fs, path: str, record: Optional[FileRecord]) -> None:
        self.fs = fs
        self.path = path
        self.cached = CachedFileRecord(record)
        self.mode_override: Optional[FileMode] = None
        self.mod_time_override: Optional[datetime] = None

    def data(self):
        return self.cached.data()

    def read_dir_names(self) -> list[str]:
        return self.cached.read_dir_names()

    def size(self) -> int:
        return self.cached.size()

    def mode(self) -> FileMode:
        if self.mode_override is not None:
            return self.mode_override
        return self.cached.mode()

    def mod_time(self) -> datetime:
        if self.mod_time_override is not None:
            return self.mod_time_override
        return self.cached.mod_time()

    def sys(self) -> Any:
        return self.cached.sys()

    def save(self) -> None:
        _store_record(self.fs.store, self.path, self)

    def info(self) -> FileInfo:
        return FileInfo(self, self.path)


class _Closing:
    def __enter__(self):
        return self

    def __exit__(self, *exc_info) -> None:
        try:
            self.close()
        except ClosedError:
            pass


class File(_Closing):
    """An open file or directory, readable and writable."""

    def __init__(self, fs, path: str, record: Optional[FileRecord], flag: int = 0) -> None:
        self.path = path
        self.flag = flag
        self.offset = 0
        self._fd: Optional[_FileData] = _FileData(fs, path, record)

    @property
    def _record(self) -> _FileData:
        if self._fd is None:
            raise ClosedError()
        return self._fd

    def close(self) -> None:
        if self._fd is None:
            raise ClosedError()
        self._fd = None

    def read(self, size: int = -1) -> bytes:
        """Read up to 'size' bytes, or the rest when negative; b"" at the end."""
        if size < 0:
            size = max(self._record.size() - self.offset, 0)
        data = self.read_at(size, self.offset)
        self.offset += len(data)
        return data

    def read_blob(self, length: int):
        blob = self.read_blob_at(length, self.offset)
        self.offset += len(blob)
        return blob

    def read_at(self, size: int, offset: int) -> bytes:
        return self.read_blob_at(size, offset).to_bytes()

    def read_blob_at(self, length: int, offset: int):
        """Return a view of up to 'length' bytes at 'offset'; empty at the end."""
        record = self._record
        total = record.size()
        if offset >= total:
            return Bytes()
        end = min(offset + length, total)
        return view(record.data(), offset, end)

    def seek(self, offset: int, whence: int = os.SEEK_SET) -> int:
        if whence == os.SEEK_SET:
            new_offset = offset
        elif whence == os.SEEK_CUR:
            new_offset = self.offset + offset
        elif whence == os.SEEK_END:
            new_offset = self._record.size() + offset
        else:
            raise PathError("seek", self.path, InvalidError())
        if new_offset < 0:
            raise PathError("seek", self.path, InvalidError())
        self.offset = new_offset
        return new_offset

    def write(self, data) -> int:
        return self.write_blob(Bytes(data))

    def write_blob(self, blob) -> int:
        written = self._write_blob_at("write", blob, self.offset)
        self.offset += written
        return written

    def write_at(self, data, offset: int) -> int:
        return self.write_blob_at(Bytes(data), offset)

    def write_blob_at(self, blob, offset: int) -> int:
        return self._write_blob_at("writeat", blob, offset)

    def _write_blob_at(self, op: str, blob, offset: int) -> int:
        record = self._record
        if self.flag & FLAG_APPEND:
            offset = record.size()
        end = offset + len(blob)
        try:
            size = record.size()
            if size < end:
                grow(record.data(), end - size)
            written = set_blob(record.data(), blob, offset)
        except (FSError, ValueError) as err:
            raise PathError(op, self.path, err) from err
        if written:
            record.mod_time_override = _now()
        record.save()
        return written

    def stat(self) -> FileInfo:
        return FileInfo(self._record.cached, self.path)

    def truncate(self, size: int) -> None:
        record = self._record
        if record.mode().is_dir():
            raise PathError("truncate", self.path, IsDirError())
        length = record.size()
        if size < 0:
            raise PathError("truncate", self.path, InvalidError())
        if size == length:
            return
        try:
            if size > length:
                grow(record.data(), size - length)
            else:
                truncate(record.data(), size)
        except (FSError, ValueError) as err:
            raise PathError("truncate", self.path, err) from err
        record.mod_time_override = _now()
        record.save()

    def read_dir(self, n: int = -1) -> list[DirEntry]:
        """Return up to 'n' entries after the last call, or all when n <= 0."""
        record = self._record
        try:
            names = record.read_dir_names()
        except FSError as err:
            raise PathError("readdir", self.path, err) from err
        if n <= 0:
            start, end = 0, len(names)
        else:
            start, end = self.offset, min(self.offset + n, len(names))
        chosen = names[start:end]
        entries = [
            DirEntry(name, record.fs.stat(posixpath.normpath(posixpath.join(self.path, name))))
            for name in chosen
        ]
        self.offset += len(chosen)
        return entries

    def read_dir_names(self) -> list[str]:
        return list(self._record.read_dir_names())

    def chmod(self, mode: int) -> None:
        record = self._record
        record.mode_override = (record.mode() & ~CHMOD_BITS) | (FileMode(mode) & CHMOD_BITS)
        record.save()


def new_file(fs, path: str, flag: int, mode: int) -> File:
    """Return a new, empty file at 'path' that has not been saved yet."""
    record = BaseFileRecord(0, _now(), mode, None, Bytes, None)
    return File(fs, path, record, flag)


class ReadOnlyFile(_Closing):
    """A file opened for reading only."""

    def __init__(self, file: File) -> None:
        self.file = file

    @property
    def path(self) -> str:
        return self.file.path

    def close(self) -> None:
        self.file.close()

    def read(self, size: int = -1) -> bytes:
        return self.file.read(size)

    def read_blob(self, length: int):
        return self.file.read_blob(length)

    def read_at(self, size: int, offset: int) -> bytes:
        return self.file.read_at(size, offset)

    def read_blob_at(self, length: int, offset: int):
        return self.file.read_blob_at(length, offset)

    def seek(self, offset: int, whence: int = os.SEEK_SET) -> int:
        return self.file.seek(offset, whence)

    def stat(self) -> FileInfo:
        return self.file.stat()

    def truncate(self, size: int) -> None:
        self.file.truncate(size)

    def read_dir(self, n: int = -1) -> list[DirEntry]:
        return self.file.read_dir(n)

    def chmod(self, mode: int) -> None:
        self.file.chmod(mode)


class WriteOnlyFile(_Closing):
    """A file opened for writing only."""

    def __init__(self, file: File) -> None:
        self.file = file

    @property
    def path(self) -> str:
        return self.file.path

    def read(self, size: int = -1) -> bytes:
        raise PathError("read", self.file.path, NotImplementedFSError())

    def close(self) -> None:
        self.file.close()

    def seek(self, offset: int, whence: int = os.SEEK_SET) -> int:
        return self.file.seek(offset, whence)

    def write(self, data) -> int:
        return self.file.write(data)

    def write_blob(self, blob) -> int:
        return self.file.write_blob(blob)

    def write_at(self, data, offset: int) -> int:
        return self.file.write_at(data, offset)

    def write_blob_at(self, blob, offset: int) -> int:
        return self.file.write_blob_at(blob, offset)

    def stat(self) -> FileInfo:
        return self.file.stat()

    def truncate(self, size: int) -> None:
        self.file.truncate(size)

    def chmod(self, mode: int) -> None:
        self.file.chmod(mode)