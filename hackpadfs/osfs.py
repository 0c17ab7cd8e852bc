"""A file system backed by the host operating system's files."""

from __future__ import annotations

import errno
import ntpath
import os
import posixpath
import shutil
import stat as stat_mod
import sys
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Optional

from .core import (
    FLAG_CREATE,
    FLAG_READ_WRITE,
    FLAG_TRUNCATE,
    FLAG_WRITE_ONLY,
    MODE_CHAR_DEVICE,
    MODE_DEVICE,
    MODE_DIR,
    MODE_NAMED_PIPE,
    MODE_PERM,
    MODE_SETGID,
    MODE_SETUID,
    MODE_SOCKET,
    MODE_STICKY,
    MODE_SYMLINK,
    ClosedError,
    ExistError,
    FileMode,
    FSError,
    InvalidError,
    IsDirError,
    LinkError,
    NotDirError,
    NotEmptyError,
    NotExistError,
    NotImplementedFSError,
    PathError,
    PermissionDeniedError,
    valid_path,
)

GOOS_WINDOWS = "windows"
_OS_PATH_OP = "ospath"
_GOOS = GOOS_WINDOWS if os.name == "nt" else sys.platform
_BINARY = getattr(os, "O_BINARY", 0)
_READ_CHUNK = 64 * 1024
_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

_ERRNO_ERRORS = {
    errno.ENOENT: NotExistError,
    errno.EEXIST: ExistError,
    errno.ENOTDIR: NotDirError,
    errno.EISDIR: IsDirError,
    errno.ENOTEMPTY: NotEmptyError,
    errno.EACCES: PermissionDeniedError,
    errno.EPERM: PermissionDeniedError,
    errno.EINVAL: InvalidError,
}
# Windows system error codes without a standard errno counterpart.
_WINERROR_ERRORS = {
    0x83: InvalidError,  # ERROR_NEGATIVE_SEEK
    0x91: NotEmptyError,  # ERROR_DIR_NOT_EMPTY
}


def _map_error(err: OSError) -> BaseException:
    """Translate an OSError into the matching file system error, keeping it as the cause."""
    cls = _WINERROR_ERRORS.get(getattr(err, "winerror", None) or -1) or _ERRNO_ERRORS.get(err.errno)
    if cls is None:
        return err
    mapped = cls()
    mapped.__cause__ = err
    return mapped


def _clean_join(*elems: str) -> str:
    parts = [elem for elem in elems if elem]
    if not parts:
        return ""
    joined = posixpath.normpath("/".join(parts))
    if joined.startswith("//"):
        joined = "/" + joined.lstrip("/")
    return joined


def _volume_name_for(goos: str, volume_name: str) -> str:
    if goos == GOOS_WINDOWS and volume_name == "":
        return "C:"
    return volume_name


def _host_volume_name(path: str) -> str:
    if os.name == "nt":
        return ntpath.splitdrive(path)[0]
    return ""


def convert_to_os_path(root: str, volume_name: str, goos: str, separator: str, op: str, fs_path: str) -> str:
    """Convert a slash-separated file system path to an OS path for the given platform."""
    if not valid_path(fs_path):
        raise PathError(op, fs_path, InvalidError())
    rooted = _clean_join("/", root, fs_path)
    if separator != "/":
        rooted = rooted.replace("/", separator)
    volume = _volume_name_for(goos, volume_name).rstrip(separator)
    return volume + separator + rooted.lstrip(separator)


def convert_from_os_path(
    root: str,
    volume_name: str,
    goos: str,
    separator: str,
    get_volume_name: Callable[[str], str],
    op: str,
    os_path: str,
) -> str:
    """Convert an absolute OS path back to a file system path, if it lies inside the root."""
    fs_volume = _volume_name_for(goos, volume_name)
    if get_volume_name(os_path) != fs_volume:
        raise PathError(op, os_path, InvalidError())
    rest = os_path.removeprefix(fs_volume).removeprefix(separator)
    fs_path = rest if separator == "/" else rest.replace(separator, "/")
    if root and fs_path != root and not fs_path.startswith(root + "/"):
        raise PathError(op, os_path, InvalidError())
    fs_path = fs_path.removeprefix(root).removeprefix("/")
    return fs_path or "."


def _file_mode(st_mode: int) -> FileMode:
    mode = FileMode(st_mode & 0o777)
    if stat_mod.S_ISDIR(st_mode):
        mode |= MODE_DIR
    elif stat_mod.S_ISLNK(st_mode):
        mode |= MODE_SYMLINK
    elif stat_mod.S_ISFIFO(st_mode):
        mode |= MODE_NAMED_PIPE
    elif stat_mod.S_ISSOCK(st_mode):
        mode |= MODE_SOCKET
    elif stat_mod.S_ISBLK(st_mode):
        mode |= MODE_DEVICE
    elif stat_mod.S_ISCHR(st_mode):
        mode |= MODE_DEVICE | MODE_CHAR_DEVICE
    if st_mode & stat_mod.S_ISUID:
        mode |= MODE_SETUID
    if st_mode & stat_mod.S_ISGID:
        mode |= MODE_SETGID
    if st_mode & stat_mod.S_ISVTX:
        mode |= MODE_STICKY
    return mode


def _sys_mode(mode: int) -> int:
    mode = FileMode(mode)
    result = int(mode & MODE_PERM)
    if mode & MODE_SETUID:
        result |= stat_mod.S_ISUID
    if mode & MODE_SETGID:
        result |= stat_mod.S_ISGID
    if mode & MODE_STICKY:
        result |= stat_mod.S_ISVTX
    return result


def _to_ns(moment: datetime) -> int:
    if moment.tzinfo is None:
        moment = moment.astimezone()
    return (moment - _EPOCH) // timedelta(microseconds=1) * 1000


def _from_ns(ns: int) -> datetime:
    seconds, rest = divmod(ns, 10**9)
    return _EPOCH + timedelta(seconds=seconds, microseconds=rest // 1000)


class _StatInfo:
    """File information taken from an OS stat result."""

    __slots__ = ("_name", "_st")

    def __init__(self, name: str, st: os.stat_result) -> None:
        self._name = name
        self._st = st

    def name(self) -> str:
        return self._name

    def size(self) -> int:
        return self._st.st_size

    def mode(self) -> FileMode:
        return _file_mode(self._st.st_mode)

    def mod_time(self) -> datetime:
        return _from_ns(self._st.st_mtime_ns)

    def is_dir(self) -> bool:
        return stat_mod.S_ISDIR(self._st.st_mode)

    def sys(self) -> Any:
        return self._st


class _OSDirEntry:
    """One child of an OS directory."""

    __slots__ = ("_name", "_info")

    def __init__(self, name: str, info: _StatInfo) -> None:
        self._name = name
        self._info = info

    def name(self) -> str:
        return self._name

    def is_dir(self) -> bool:
        return self._info.is_dir()

    def type(self) -> FileMode:
        return self._info.mode().type()

    def info(self) -> _StatInfo:
        return self._info

    def __repr__(self) -> str:
        return f"_OSDirEntry({self._name!r})"


def _base_name(os_path: str) -> str:
    stripped = os_path.rstrip(os.sep)
    return os.path.basename(stripped) or os.sep


def _scan_dir(os_path: str) -> list[_OSDirEntry]:
    with os.scandir(os_path) as it:
        entries = [_OSDirEntry(e.name, _StatInfo(e.name, e.stat(follow_symlinks=False))) for e in it]
    return sorted(entries, key=lambda entry: entry.name())


class OSFile:
    """An open OS file."""

    def __init__(self, fs: "OSFS", fd: int, name: str) -> None:
        self._fs = fs
        self._fd: Optional[int] = fd
        self._name = name
        self._dir_entries: Optional[list[_OSDirEntry]] = None
        self._dir_offset = 0

    def __enter__(self) -> "OSFile":
        return self

    def __exit__(self, *exc_info) -> None:
        if self._fd is not None:
            self.close()

    def _fd_for(self, op: str) -> int:
        if self._fd is None:
            raise PathError(op, self._fs._rel(self._name), ClosedError())
        return self._fd

    def _wrap(self, err: OSError, op: str) -> FSError:
        return self._fs._wrap(err, op, self._name)

    def chmod(self, mode: int) -> None:
        fd = self._fd_for("chmod")
        try:
            if hasattr(os, "fchmod"):
                os.fchmod(fd, _sys_mode(mode))
            else:
                os.chmod(self._name, _sys_mode(mode))
        except OSError as err:
            raise self._wrap(err, "chmod") from err

    def chown(self, uid: int, gid: int) -> None:
        fd = self._fd_for("chown")
        if not hasattr(os, "fchown"):
            raise PathError("chown", self._fs._rel(self._name), NotImplementedFSError())
        try:
            os.fchown(fd, uid, gid)
        except OSError as err:
            raise self._wrap(err, "chown") from err

    def close(self) -> None:
        fd = self._fd_for("close")
        self._fd = None
        try:
            os.close(fd)
        except OSError as err:
            raise self._wrap(err, "close") from err

    def name(self) -> str:
        """Return the OS path this file was opened with."""
        return self._name

    def read(self, size: int = -1) -> bytes:
        """Read up to 'size' bytes, or to the end when negative; b"" at the end."""
        fd = self._fd_for("read")
        try:
            if size >= 0:
                return os.read(fd, size)
            chunks = []
            while chunk := os.read(fd, _READ_CHUNK):
                chunks.append(chunk)
            return b"".join(chunks)
        except OSError as err:
            raise self._wrap(err, "read") from err

    def read_at(self, size: int, offset: int) -> bytes:
        """Read up to 'size' bytes at 'offset' without moving the file position."""
        fd = self._fd_for("read")
        if offset < 0:
            raise PathError("readat", self._fs._rel(self._name), InvalidError())
        try:
            if hasattr(os, "pread"):
                chunks = []
                remaining = size
                while remaining > 0:
                    chunk = os.pread(fd, remaining, offset)
                    if not chunk:
                        break
                    chunks.append(chunk)
                    remaining -= len(chunk)
                    offset += len(chunk)
                return b"".join(chunks)
            position = os.lseek(fd, 0, os.SEEK_CUR)
            try:
                os.lseek(fd, offset, os.SEEK_SET)
                return os.read(fd, size)
            finally:
                os.lseek(fd, position, os.SEEK_SET)
        except OSError as err:
            raise self._wrap(err, "read") from err

    def read_dir(self, n: int = -1) -> list[_OSDirEntry]:
        """Return up to 'n' entries after the last call, or all remaining when n <= 0."""
        self._fd_for("readdir")
        if self._dir_entries is None:
            try:
                self._dir_entries = _scan_dir(self._name)
            except OSError as err:
                raise self._wrap(err, "readdir") from err
        start = self._dir_offset
        end = len(self._dir_entries) if n <= 0 else min(start + n, len(self._dir_entries))
        self._dir_offset = end
        return self._dir_entries[start:end]

    def seek(self, offset: int, whence: int = os.SEEK_SET) -> int:
        fd = self._fd_for("seek")
        try:
            return os.lseek(fd, offset, whence)
        except OSError as err:
            raise self._wrap(err, "seek") from err

    def stat(self) -> _StatInfo:
        fd = self._fd_for("stat")
        try:
            return _StatInfo(_base_name(self._name), os.fstat(fd))
        except OSError as err:
            raise self._wrap(err, "stat") from err

    def sync(self) -> None:
        fd = self._fd_for("sync")
        try:
            os.fsync(fd)
        except OSError as err:
            raise self._wrap(err, "sync") from err

    def truncate(self, size: int) -> None:
        fd = self._fd_for("truncate")
        if size < 0:
            raise PathError("truncate", self._fs._rel(self._name), InvalidError())
        try:
            os.ftruncate(fd, size)
        except OSError as err:
            raise self._wrap(err, "truncate") from err

    def write(self, data) -> int:
        """Write all of 'data' and return its length."""
        fd = self._fd_for("write")
        view = memoryview(data).cast("B")
        written = 0
        try:
            while written < len(view):
                written += os.write(fd, view[written:])
        except OSError as err:
            raise self._wrap(err, "write") from err
        return written

    def write_at(self, data, offset: int) -> int:
        """Write all of 'data' at 'offset' without moving the file position."""
        fd = self._fd_for("write")
        if offset < 0:
            raise PathError("writeat", self._fs._rel(self._name), InvalidError())
        view = memoryview(data).cast("B")
        written = 0
        try:
            if hasattr(os, "pwrite"):
                while written < len(view):
                    written += os.pwrite(fd, view[written:], offset + written)
                return written
            position = os.lseek(fd, 0, os.SEEK_CUR)
            try:
                os.lseek(fd, offset, os.SEEK_SET)
                while written < len(view):
                    written += os.write(fd, view[written:])
            finally:
                os.lseek(fd, position, os.SEEK_SET)
        except OSError as err:
            raise self._wrap(err, "write") from err
        return written

    def write_string(self, s: str) -> int:
        return self.write(s.encode("utf-8"))


@dataclass(frozen=True)
class OSFS:
    """Presents the host's files, relative to 'root' on 'volume_name'."""

    root: str = ""
    volume_name: str = ""

    def sub_volume(self, volume_name: str) -> "OSFS":
        """Return a file system on another volume; only allowed once and before sub()."""
        if self.root:
            raise PathError("subvolume", volume_name, FSError("subvolume not supported on a SubFS"))
        if self.volume_name:
            raise PathError("subvolume", volume_name, FSError("subvolume can only be called once per os.FS"))
        vol = _host_volume_name(volume_name)
        if vol != volume_name:
            raise PathError(
                "subvolume",
                volume_name,
                FSError(f'sub volume must be equal to resolved volume: "{volume_name}" != "{vol}"'),
            )
        return OSFS(volume_name=volume_name)

    def sub(self, dir: str) -> "OSFS":
        """Return a file system rooted at 'dir' inside this one."""
        if not valid_path(dir):
            raise PathError("sub", dir, InvalidError())
        return OSFS(root=_clean_join(self.root, dir), volume_name=self.volume_name)

    def _rooted(self, op: str, name: str) -> str:
        return convert_to_os_path(self.root, self.volume_name, _GOOS, os.sep, op, name)

    def to_os_path(self, fs_path: str) -> str:
        """Convert a file system path to the equivalent OS path."""
        return self._rooted(_OS_PATH_OP, fs_path)

    def from_os_path(self, os_path: str) -> str:
        """Convert an absolute OS path inside this file system's root to a file system path."""
        if not os.path.isabs(os_path):
            raise PathError(_OS_PATH_OP, os_path, InvalidError())
        return convert_from_os_path(
            self.root, self.volume_name, _GOOS, os.sep, _host_volume_name, _OS_PATH_OP, os_path
        )

    def _rel(self, os_path: str) -> str:
        """Turn an OS path back into the caller's slash-separated path."""
        rel = os_path.removeprefix(self._rooted("", "."))
        rel = rel.replace(os.sep, "/")
        return rel.removeprefix("/")

    def _wrap(self, err: OSError, op: str, path: str, new: Optional[str] = None) -> FSError:
        mapped = _map_error(err)
        old = err.filename if err.filename is not None else path
        second = err.filename2 if err.filename2 is not None else new
        if second is not None:
            return LinkError(op, self._rel(os.fsdecode(old)), self._rel(os.fsdecode(second)), mapped)
        return PathError(op, self._rel(os.fsdecode(old)), mapped)

    def _open(self, op: str, name: str, flag: int, perm: int) -> OSFile:
        os_path = self._rooted(op, name)
        try:
            fd = os.open(os_path, flag | _BINARY, _sys_mode(perm))
        except OSError as err:
            raise self._wrap(err, "open", os_path) from err
        return OSFile(self, fd, os_path)

    def open(self, name: str) -> OSFile:
        """Open 'name' for reading."""
        return self._open("open", name, os.O_RDONLY, 0)

    def open_file(self, name: str, flag: int, perm: int) -> OSFile:
        """Open 'name' with the given flags, creating it with 'perm' if asked."""
        return self._open("open", name, flag, perm)

    def create(self, name: str) -> OSFile:
        """Create or truncate 'name' and open it for reading and writing."""
        return self._open("create", name, FLAG_READ_WRITE | FLAG_CREATE | FLAG_TRUNCATE, 0o666)

    def mkdir(self, name: str, perm: int) -> None:
        os_path = self._rooted("mkdir", name)
        try:
            os.mkdir(os_path, _sys_mode(perm))
        except OSError as err:
            raise self._wrap(err, "mkdir", os_path) from err

    def mkdir_all(self, path: str, perm: int) -> None:
        os_path = self._rooted("mkdirall", path)
        try:
            os.makedirs(os_path, _sys_mode(perm), exist_ok=True)
        except FileExistsError as err:
            raise PathError("mkdir", self._rel(os.fsdecode(err.filename or os_path)), NotDirError()) from err
        except OSError as err:
            raise self._wrap(err, "mkdir", os_path) from err

    def remove(self, name: str) -> None:
        """Remove the file or empty directory 'name'."""
        os_path = self._rooted("remove", name)
        try:
            os.unlink(os_path)
            return
        except OSError as unlink_err:
            try:
                os.rmdir(os_path)
                return
            except OSError as rmdir_err:
                err = unlink_err if rmdir_err.errno == errno.ENOTDIR else rmdir_err
        raise self._wrap(err, "remove", os_path) from err

    def remove_all(self, name: str) -> None:
        """Remove 'name' and everything below it; a missing path is not an error."""
        os_path = self._rooted("removeall", name)
        try:
            st = os.lstat(os_path)
        except FileNotFoundError:
            return
        except OSError as err:
            raise self._wrap(err, "removeall", os_path) from err
        try:
            if stat_mod.S_ISDIR(st.st_mode):
                shutil.rmtree(os_path)
            else:
                os.unlink(os_path)
        except FileNotFoundError:
            return
        except OSError as err:
            raise self._wrap(err, "removeall", os_path) from err

    def rename(self, oldname: str, newname: str) -> None:
        try:
            old_path = self._rooted("", oldname)
            new_path = self._rooted("", newname)
        except PathError as err:
            raise LinkError("rename", oldname, newname, err.err) from err
        try:
            os.replace(old_path, new_path)
        except OSError as err:
            raise self._wrap(err, "rename", old_path, new_path) from err

    def _stat(self, op: str, name: str, follow: bool) -> _StatInfo:
        os_path = self._rooted(op, name)
        try:
            st = os.stat(os_path) if follow else os.lstat(os_path)
        except OSError as err:
            raise self._wrap(err, op, os_path) from err
        return _StatInfo(_base_name(os_path), st)

    def stat(self, name: str) -> _StatInfo:
        return self._stat("stat", name, True)

    def lstat(self, name: str) -> _StatInfo:
        return self._stat("lstat", name, False)

    def chmod(self, name: str, mode: int) -> None:
        os_path = self._rooted("chmod", name)
        try:
            os.chmod(os_path, _sys_mode(mode))
        except OSError as err:
            raise self._wrap(err, "chmod", os_path) from err

    def chown(self, name: str, uid: int, gid: int) -> None:
        os_path = self._rooted("chown", name)
        if not hasattr(os, "chown"):
            raise PathError("chown", name, NotImplementedFSError())
        try:
            os.chown(os_path, uid, gid)
        except OSError as err:
            raise self._wrap(err, "chown", os_path) from err

    def chtimes(self, name: str, atime: datetime, mtime: datetime) -> None:
        os_path = self._rooted("chtimes", name)
        try:
            os.utime(os_path, ns=(_to_ns(atime), _to_ns(mtime)))
        except OSError as err:
            raise self._wrap(err, "chtimes", os_path) from err

    def read_dir(self, name: str) -> list[_OSDirEntry]:
        """Return the entries of directory 'name', sorted by name."""
        os_path = self._rooted("readdir", name)
        try:
            return _scan_dir(os_path)
        except OSError as err:
            raise self._wrap(err, "open", os_path) from err

    def read_file(self, name: str) -> bytes:
        os_path = self._rooted("readfile", name)
        try:
            with open(os_path, "rb") as f:
                return f.read()
        except OSError as err:
            raise self._wrap(err, "open", os_path) from err

    def write_file(self, name: str, data, perm: int) -> None:
        f = self._open("writefile", name, FLAG_WRITE_ONLY | FLAG_CREATE | FLAG_TRUNCATE, perm)
        try:
            f.write(data)
        finally:
            f.close()

    def symlink(self, oldname: str, newname: str) -> None:
        try:
            old_path = self._rooted("symlink", oldname)
            new_path = self._rooted("symlink", newname)
        except PathError as err:
            raise LinkError("symlink", oldname, newname, err.err) from err
        try:
            os.symlink(old_path, new_path)
        except OSError as err:
            raise self._wrap(err, "symlink", old_path, new_path) from err