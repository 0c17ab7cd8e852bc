"""File modes, path validation and the error types shared by every file system."""

from __future__ import annotations

import os

_MASK = 0xFFFFFFFF


class FileMode(int):
    """A file's mode and permission bits, laid out as 32 unsigned bits."""

    __slots__ = ()

    def __new__(cls, value: int = 0) -> "FileMode":
        return super().__new__(cls, int(value) & _MASK)

    def __or__(self, other):
        if not isinstance(other, int):
            return NotImplemented
        return FileMode(int(self) | int(other))

    __ror__ = __or__

    def __and__(self, other):
        if not isinstance(other, int):
            return NotImplemented
        return FileMode(int(self) & int(other))

    __rand__ = __and__

    def __xor__(self, other):
        if not isinstance(other, int):
            return NotImplemented
        return FileMode(int(self) ^ int(other))

    __rxor__ = __xor__

    def __invert__(self) -> "FileMode":
        return FileMode(~int(self) & _MASK)

    def is_dir(self) -> bool:
        """Report whether the mode describes a directory."""
        return bool(int(self) & MODE_DIR)

    def is_regular(self) -> bool:
        """Report whether the mode describes a regular file."""
        return not int(self) & MODE_TYPE

    def type(self) -> "FileMode":
        """Return only the type bits."""
        return FileMode(int(self) & MODE_TYPE)

    def perm(self) -> "FileMode":
        """Return only the Unix permission bits."""
        return FileMode(int(self) & MODE_PERM)

    def __str__(self) -> str:
        value = int(self)
        kinds = "".join(c for i, c in enumerate("dalTLDpSugct?") if value & (1 << (31 - i)))
        perms = "".join(c if value & (1 << (8 - i)) else "-" for i, c in enumerate("rwxrwxrwx"))
        return (kinds or "-") + perms

    def __repr__(self) -> str:
        return f"FileMode({oct(int(self))})"


MODE_DIR = FileMode(1 << 31)
MODE_APPEND = FileMode(1 << 30)
MODE_EXCLUSIVE = FileMode(1 << 29)
MODE_TEMPORARY = FileMode(1 << 28)
MODE_SYMLINK = FileMode(1 << 27)
MODE_DEVICE = FileMode(1 << 26)
MODE_NAMED_PIPE = FileMode(1 << 25)
MODE_SOCKET = FileMode(1 << 24)
MODE_SETUID = FileMode(1 << 23)
MODE_SETGID = FileMode(1 << 22)
MODE_CHAR_DEVICE = FileMode(1 << 21)
MODE_STICKY = FileMode(1 << 20)
MODE_IRREGULAR = FileMode(1 << 19)
MODE_TYPE = (
    MODE_DIR | MODE_SYMLINK | MODE_NAMED_PIPE | MODE_SOCKET
    | MODE_DEVICE | MODE_CHAR_DEVICE | MODE_IRREGULAR
)
MODE_PERM = FileMode(0o777)

FLAG_READ_ONLY = os.O_RDONLY
FLAG_WRITE_ONLY = os.O_WRONLY
FLAG_READ_WRITE = os.O_RDWR
FLAG_APPEND = os.O_APPEND
FLAG_CREATE = os.O_CREAT
FLAG_EXCLUSIVE = os.O_EXCL
FLAG_SYNC = getattr(os, "O_SYNC", 0o4010000)
FLAG_TRUNCATE = os.O_TRUNC


class FSError(Exception):
    """Base class of every file system error."""

    message = "file system error"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message if message is not None else self.message)

    def __eq__(self, other: object) -> bool:
        if self is other:
            return True
        if type(self) is not type(other):
            return NotImplemented
        return self.args == other.args  # type: ignore[union-attr]

    def __hash__(self) -> int:
        return hash((type(self), self.args))


class InvalidError(FSError):
    message = "invalid argument"


class PermissionDeniedError(FSError):
    message = "permission denied"


class ExistError(FSError):
    message = "file already exists"


class NotExistError(FSError):
    message = "file does not exist"


class ClosedError(FSError):
    message = "file already closed"


class IsDirError(FSError):
    message = "is a directory"


class NotDirError(FSError):
    message = "not a directory"


class NotEmptyError(FSError):
    message = "directory not empty"


class NotImplementedFSError(FSError):
    message = "not implemented"


class PathError(FSError):
    """An error from an operation on a single path."""

    def __init__(self, op: str, path: str, err: BaseException) -> None:
        self.op = op
        self.path = path
        self.err = err
        super().__init__(f"{op} {path}: {err}")

    def __eq__(self, other: object) -> bool:
        if type(self) is not type(other):
            return NotImplemented
        return (self.op, self.path, self.err) == (other.op, other.path, other.err)  # type: ignore[union-attr]

    def __hash__(self) -> int:
        return hash((type(self), self.op, self.path))


class LinkError(FSError):
    """An error from an operation on a pair of paths, such as rename."""

    def __init__(self, op: str, old: str, new: str, err: BaseException) -> None:
        self.op = op
        self.old = old
        self.new = new
        self.err = err
        super().__init__(f"{op} {old} {new}: {err}")

    def __eq__(self, other: object) -> bool:
        if type(self) is not type(other):
            return NotImplemented
        return (self.op, self.old, self.new, self.err) == (
            other.op, other.old, other.new, other.err,  # type: ignore[union-attr]
        )

    def __hash__(self) -> int:
        return hash((type(self), self.op, self.old, self.new))


class MessageError(FSError):
    """An error annotated with a message prefix."""

    def __init__(self, err: BaseException, message: str) -> None:
        self.err = err
        self.prefix = message
        super().__init__(f"{message}: {err}")

    def __eq__(self, other: object) -> bool:
        if type(self) is not type(other):
            return NotImplemented
        return (self.err, self.prefix) == (other.err, other.prefix)  # type: ignore[union-attr]

    def __hash__(self) -> int:
        return hash((type(self), self.prefix))


def valid_path(name: str) -> bool:
    """Report whether name is a valid, unrooted, slash-separated path."""
    if name == ".":
        return True
    return all(elem not in ("", ".", "..") for elem in name.split("/"))


def _unwrap(err: BaseException) -> BaseException | None:
    if isinstance(err, (PathError, LinkError, MessageError)):
        return err.err
    return err.__cause__


def error_is(err: BaseException | None, target) -> bool:
    """Report whether err, or any error it wraps, matches target.

    A target class matches by isinstance; a target instance by identity or equality.
    """
    seen: set[int] = set()
    while err is not None and id(err) not in seen:
        seen.add(id(err))
        if isinstance(target, type):
            if isinstance(err, target):
                return True
        elif err is target or err == target:
            return True
        err = _unwrap(err)
    return False


def with_message(err: BaseException | None, message: str) -> MessageError | None:
    """Prefix err with message, or return None when err is None."""
    if err is None:
        return None
    return MessageError(err, message)


def strip_err_path_prefix(err: BaseException | None, name: str, mount_sub_path: str):
    """Rewrite the paths in err from a mount's sub path back to the caller's name."""
    if err is None:
        return None
    prefix = mount_sub_path.removesuffix(name)
    if isinstance(err, PathError):
        return PathError(err.op, err.path.removeprefix(prefix), err.err)
    if isinstance(err, LinkError):
        return LinkError(err.op, err.old.removeprefix(prefix), err.new.removeprefix(prefix), err.err)
    return err