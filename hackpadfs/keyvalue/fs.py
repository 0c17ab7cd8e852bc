"""A file system built on top of any key-value Store."""

from __future__ import annotations

import posixpath
from datetime import datetime
from typing import Optional

from ..core import (
    FLAG_CREATE,
    FLAG_READ_ONLY,
    FLAG_READ_WRITE,
    FLAG_TRUNCATE,
    FLAG_WRITE_ONLY,
    MODE_DIR,
    MODE_PERM,
    ExistError,
    FileMode,
    FSError,
    InvalidError,
    IsDirError,
    LinkError,
    NotDirError,
    NotEmptyError,
    NotExistError,
    PathError,
    error_is,
    valid_path,
)
from .file import (
    File,
    FileInfo,
    ReadOnlyFile,
    WriteOnlyFile,
    _set_record_txn,
    _store_record,
    new_file,
)
from .store import OpResult, TransactionMode, transaction_or_serial

_ROOT = "."


def _parent(p: str) -> str:
    return posixpath.dirname(p) or _ROOT


def _join(a: str, b: str) -> str:
    return posixpath.normpath(posixpath.join(a, b))


def ignore_err_exist(err: Optional[BaseException]) -> Optional[BaseException]:
    """Return None if 'err' is or wraps an ExistError, otherwise 'err'."""
    if err is not None and error_is(err, ExistError):
        return None
    return err


class FS:
    """Presents a key-value store as a hierarchical file system."""

    def __init__(self, store) -> None:
        self.store = store
        try:
            self.mkdir(_ROOT, 0o666)
        except FSError as err:
            if ignore_err_exist(err) is not None:
                raise

    def _records(self, paths: list[str]) -> list[OpResult]:
        txn = transaction_or_serial(self.store, TransactionMode.READ_ONLY)
        for path in paths:
            txn.get(path)
        return txn.commit()

    def _get_file(self, path: str) -> File:
        if not valid_path(path):
            raise InvalidError()
        result = self._records([path])[0]
        if result.err is not None:
            raise result.err
        return File(self, path, result.record)

    def _save(self, file: File) -> None:
        _store_record(self.store, file.path, file._record)

    def _new_dir(self, name: str, perm: int) -> File:
        return new_file(self, name, 0, MODE_DIR | (FileMode(perm) & MODE_PERM))

    def mkdir(self, name: str, perm: int) -> None:
        """Create the directory 'name'; its parent must exist."""
        try:
            self.stat(name)
        except FSError as err:
            if not error_is(err, NotExistError):
                raise
        else:
            raise PathError("mkdir", name, ExistError())
        if name != _ROOT:
            try:
                self.stat(_parent(name))
            except FSError as err:
                raise PathError("mkdir", name, err) from err
        try:
            self._save(self._new_dir(name, perm))
        except FSError as err:
            raise PathError("mkdir", name, err) from err

    def mkdir_all(self, path: str, perm: int) -> None:
        """Create 'path' and any missing parent directories."""
        for name in reversed(self._find_missing_dirs(path)):
            try:
                self._save(self._new_dir(name, perm))
            except FSError as err:
                wrapped = PathError("mkdirall", name, err)
                if ignore_err_exist(wrapped) is not None:
                    raise wrapped from err

    def _find_missing_dirs(self, name: str) -> list[str]:
        """Return the directories to create, deepest first."""
        if not valid_path(name):
            raise InvalidError()
        paths = []
        current = name
        while current != _ROOT:
            paths.append(current)
            current = _parent(current)
        paths.append(_ROOT)

        missing = []
        for path, result in zip(paths, self._records(paths)):
            if result.err is not None:
                if error_is(result.err, NotExistError):
                    missing.append(path)
                    continue
                raise result.err
            if result.record.mode().is_dir():
                break
            raise PathError("mkdir", path, NotDirError())
        return missing

    def open(self, name: str):
        """Open 'name' for reading."""
        return self.open_file(name, FLAG_READ_ONLY, 0)

    def open_file(self, name: str, flag: int, perm: int):
        """Open 'name' with the given flags, creating it with 'perm' if asked."""
        if not valid_path(name):
            raise PathError("open", name, InvalidError())
        paths = [name]
        if flag & FLAG_CREATE:
            paths.append(_parent(name))
        results = self._records(paths)
        err = results[0].err

        if err is None:
            store_file = File(self, name, results[0].record, flag)
            if store_file.stat().is_dir() and flag & (FLAG_CREATE | FLAG_WRITE_ONLY):
                raise PathError("open", name, IsDirError())
        elif error_is(err, NotExistError) and flag & FLAG_CREATE:
            parent_err = results[1].err
            if parent_err is not None:
                raise PathError("open", name, parent_err) from parent_err
            store_file = new_file(self, name, flag, FileMode(perm) & MODE_PERM)
            try:
                self._save(store_file)
            except FSError as save_err:
                raise PathError("open", name, save_err) from save_err
        else:
            raise PathError("open", name, err) from err

        if flag & FLAG_WRITE_ONLY:
            file = WriteOnlyFile(store_file)
        elif flag & FLAG_READ_WRITE:
            file = store_file
        else:
            file = ReadOnlyFile(store_file)

        if flag & FLAG_TRUNCATE:
            try:
                file.truncate(0)
            except FSError as trunc_err:
                raise PathError("open", name, trunc_err) from trunc_err
        return file

    def remove(self, name: str) -> None:
        """Remove the file or empty directory 'name'."""
        try:
            file = self._get_file(name)
        except FSError as err:
            raise PathError("remove", name, err) from err
        if file.stat().is_dir() and file.read_dir_names():
            raise PathError("remove", name, NotEmptyError())
        _store_record(self.store, name, None)

    def rename(self, oldname: str, newname: str) -> None:
        """Move 'oldname' to 'newname', including a directory's contents."""
        try:
            old_file = self._get_file(oldname)
        except FSError as err:
            raise LinkError("rename", oldname, newname, NotExistError()) from err
        old_data = old_file._record

        if not old_file.stat().is_dir():
            if oldname == newname:
                return
            contents = old_data.data()
            txn = transaction_or_serial(self.store, TransactionMode.READ_WRITE)
            try:
                _set_record_txn(txn, newname, old_data, contents)
                _set_record_txn(txn, oldname, None, None)
            except BaseException:
                txn.abort()
                raise
            txn.commit()
            return

        try:
            self._get_file(newname)
        except FSError as err:
            if not error_is(err, NotExistError):
                raise LinkError("rename", oldname, newname, ExistError()) from err
        else:
            raise LinkError("rename", oldname, newname, ExistError())

        names = old_file.read_dir_names()
        _store_record(self.store, newname, old_data)
        for child in names:
            self.rename(_join(oldname, child), _join(newname, child))
        _store_record(self.store, oldname, None)

    def stat(self, name: str) -> FileInfo:
        """Return information about 'name'."""
        try:
            file = self._get_file(name)
        except FSError as err:
            raise PathError("stat", name, err) from err
        return file.stat()

    def chmod(self, name: str, mode: int) -> None:
        """Change the permission, setuid, setgid and sticky bits of 'name'."""
        try:
            file = self._get_file(name)
        except FSError as err:
            raise PathError("chmod", name, err) from err
        file.chmod(mode)

    def chtimes(self, name: str, atime: datetime, mtime: datetime) -> None:
        """Set the modification time of 'name'; the access time is not kept."""
        try:
            file = self._get_file(name)
        except FSError as err:
            raise PathError("chtimes", name, err) from err
        record = file._record
        record.mod_time_override = mtime
        record.save()