from datetime import datetime, timezone

import pytest

from hackpadfs.core import (
    FLAG_APPEND,
    FLAG_CREATE,
    FLAG_READ_WRITE,
    FLAG_TRUNCATE,
    FLAG_WRITE_ONLY,
    MODE_DIR,
    ExistError,
    InvalidError,
    IsDirError,
    LinkError,
    NotDirError,
    NotEmptyError,
    NotExistError,
    NotImplementedFSError,
    PathError,
    error_is,
)
from hackpadfs.keyvalue.blob import Bytes
from hackpadfs.keyvalue.fs import FS, ignore_err_exist
from hackpadfs.keyvalue.record import BaseFileRecord
from hackpadfs.keyvalue.store import Store


class DictStore(Store):
    """A plain store without transactions, copying contents in and out."""

    def __init__(self):
        self.records = {}

    def get(self, path):
        try:
            return self.records[path]
        except KeyError:
            raise NotExistError() from None

    def set(self, path, src):
        if src is None:
            self.records.pop(path, None)
            return
        mode = src.mode()
        if mode.is_dir():
            record = BaseFileRecord(0, src.mod_time(), mode, None, None, lambda: self._children(path))
        else:
            content = src.data().to_bytes()
            record = BaseFileRecord(len(content), src.mod_time(), mode, None, lambda: Bytes(content), None)
        self.records[path] = record

    def _children(self, path):
        prefix = "" if path == "." else path + "/"
        return sorted(
            key[len(prefix):]
            for key in self.records
            if key != "." and key.startswith(prefix) and "/" not in key[len(prefix):]
        )


@pytest.fixture
def fs():
    return FS(DictStore())


def write_file(fs, name, data):
    with fs.open_file(name, FLAG_CREATE | FLAG_WRITE_ONLY | FLAG_TRUNCATE, 0o644) as f:
        f.write(data)


def read_file(fs, name):
    with fs.open(name) as f:
        return f.read()


def test_ignore_err_exist():
    some_error = ValueError("some error")
    assert ignore_err_exist(some_error) is some_error
    assert ignore_err_exist(ExistError()) is None
    assert ignore_err_exist(PathError("", "", ExistError())) is None
    assert ignore_err_exist(None) is None


def test_root_exists(fs):
    info = fs.stat(".")
    assert info.is_dir()
    assert info.mode() == MODE_DIR | 0o666


def test_mkdir_and_exists(fs):
    fs.mkdir("foo", 0o700)
    assert fs.stat("foo").mode() == MODE_DIR | 0o700
    with pytest.raises(PathError) as excinfo:
        fs.mkdir("foo", 0o700)
    assert excinfo.value.op == "mkdir"
    assert isinstance(excinfo.value.err, ExistError)


def test_mkdir_missing_parent(fs):
    with pytest.raises(PathError) as excinfo:
        fs.mkdir("x/y", 0o700)
    assert excinfo.value.op == "mkdir"
    assert error_is(excinfo.value, NotExistError)


def test_mkdir_all(fs):
    fs.mkdir_all("a/b/c", 0o755)
    for name in ("a", "a/b", "a/b/c"):
        assert fs.stat(name).mode() == MODE_DIR | 0o755
    fs.mkdir_all("a/b/c", 0o755)
    assert fs.stat("a/b/c").is_dir()


def test_mkdir_all_through_file(fs):
    write_file(fs, "f", b"x")
    with pytest.raises(PathError) as excinfo:
        fs.mkdir_all("f/g", 0o755)
    assert error_is(excinfo.value, NotDirError)


def test_mkdir_all_invalid(fs):
    with pytest.raises(InvalidError):
        fs.mkdir_all("../a", 0o755)


def test_create_write_read(fs):
    with fs.open_file("f", FLAG_CREATE | FLAG_READ_WRITE, 0o644) as f:
        assert f.write(b"hello") == 5
    assert read_file(fs, "f") == b"hello"
    info = fs.stat("f")
    assert info.size() == 5
    assert info.mode() == 0o644
    assert info.name() == "f"


def test_open_missing(fs):
    with pytest.raises(PathError) as excinfo:
        fs.open("nope")
    assert excinfo.value.op == "open"
    assert isinstance(excinfo.value.err, NotExistError)


def test_create_missing_parent(fs):
    with pytest.raises(PathError) as excinfo:
        fs.open_file("d/f", FLAG_CREATE | FLAG_WRITE_ONLY, 0o644)
    assert error_is(excinfo.value, NotExistError)


def test_open_dir_for_writing(fs):
    fs.mkdir("d", 0o700)
    with pytest.raises(PathError) as excinfo:
        fs.open_file("d", FLAG_WRITE_ONLY, 0)
    assert isinstance(excinfo.value.err, IsDirError)


def test_open_invalid(fs):
    with pytest.raises(PathError) as excinfo:
        fs.open("/abs")
    assert isinstance(excinfo.value.err, InvalidError)


def test_truncate_on_open(fs):
    write_file(fs, "f", b"hello")
    with fs.open_file("f", FLAG_WRITE_ONLY | FLAG_TRUNCATE, 0) as f:
        assert f.stat().size() == 0
    assert fs.stat("f").size() == 0
    assert read_file(fs, "f") == b""


def test_append(fs):
    write_file(fs, "f", b"ab")
    with fs.open_file("f", FLAG_WRITE_ONLY | FLAG_APPEND, 0) as f:
        f.write(b"cd")
    assert read_file(fs, "f") == b"abcd"


def test_write_only_cannot_read(fs):
    with fs.open_file("f", FLAG_CREATE | FLAG_WRITE_ONLY, 0o644) as f:
        with pytest.raises(PathError) as excinfo:
            f.read(1)
    assert isinstance(excinfo.value.err, NotImplementedFSError)


def test_remove(fs):
    write_file(fs, "f", b"x")
    fs.remove("f")
    with pytest.raises(PathError) as excinfo:
        fs.stat("f")
    assert excinfo.value.op == "stat"
    assert isinstance(excinfo.value.err, NotExistError)


def test_remove_missing(fs):
    with pytest.raises(PathError) as excinfo:
        fs.remove("nope")
    assert excinfo.value.op == "remove"
    assert isinstance(excinfo.value.err, NotExistError)


def test_remove_non_empty_dir(fs):
    fs.mkdir("d", 0o700)
    write_file(fs, "d/x", b"x")
    with pytest.raises(PathError) as excinfo:
        fs.remove("d")
    assert isinstance(excinfo.value.err, NotEmptyError)
    fs.remove("d/x")
    fs.remove("d")
    assert [e.name() for e in fs.open(".").read_dir(-1)] == []


def test_rename_file(fs):
    write_file(fs, "a", b"data")
    fs.rename("a", "b")
    assert read_file(fs, "b") == b"data"
    with pytest.raises(PathError):
        fs.stat("a")


def test_rename_same_file(fs):
    write_file(fs, "a", b"data")
    fs.rename("a", "a")
    assert read_file(fs, "a") == b"data"


def test_rename_missing(fs):
    with pytest.raises(LinkError) as excinfo:
        fs.rename("nope", "other")
    assert excinfo.value.op == "rename"
    assert isinstance(excinfo.value.err, NotExistError)


def test_rename_dir_recursive(fs):
    fs.mkdir_all("a/sub", 0o700)
    write_file(fs, "a/sub/x", b"hi")
    write_file(fs, "a/y", b"yo")
    fs.rename("a", "b")
    assert read_file(fs, "b/sub/x") == b"hi"
    assert read_file(fs, "b/y") == b"yo"
    assert fs.stat("b/sub").is_dir()
    with pytest.raises(PathError) as excinfo:
        fs.stat("a")
    assert isinstance(excinfo.value.err, NotExistError)


def test_rename_dir_onto_existing(fs):
    fs.mkdir("a", 0o700)
    fs.mkdir("b", 0o700)
    with pytest.raises(LinkError) as excinfo:
        fs.rename("a", "b")
    assert isinstance(excinfo.value.err, ExistError)


def test_chmod_keeps_type(fs):
    write_file(fs, "f", b"x")
    fs.chmod("f", MODE_DIR | 0o600)
    assert fs.stat("f").mode() == 0o600
    fs.mkdir("d", 0o700)
    fs.chmod("d", 0o755)
    assert fs.stat("d").mode() == MODE_DIR | 0o755


def test_chmod_missing(fs):
    with pytest.raises(PathError) as excinfo:
        fs.chmod("nope", 0o600)
    assert excinfo.value.op == "chmod"


def test_chtimes(fs):
    write_file(fs, "f", b"x")
    mtime = datetime(2020, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
    fs.chtimes("f", mtime, mtime)
    assert fs.stat("f").mod_time() == mtime


def test_read_dir(fs):
    fs.mkdir("a", 0o700)
    write_file(fs, "b", b"")
    write_file(fs, "c", b"")
    entries = fs.open(".").read_dir(-1)
    assert [e.name() for e in entries] == ["a", "b", "c"]
    assert [e.is_dir() for e in entries] == [True, False, False]

    d = fs.open(".")
    assert [e.name() for e in d.read_dir(2)] == ["a", "b"]
    assert [e.name() for e in d.read_dir(2)] == ["c"]