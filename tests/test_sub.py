import posixpath

import pytest

from hackpadfs.core import InvalidError, NotExistError, PathError, error_is
from hackpadfs.sub import sub

BASE = "base"


class RecordingFS:
    def __init__(self, files):
        self.files = files
        self.opened = []

    def open(self, name):
        self.opened.append(name)
        if name not in self.files:
            raise PathError("open", name, NotExistError())
        return self.files[name]


@pytest.fixture
def root():
    return RecordingFS({posixpath.join(BASE, "foo"): object()})


def test_sub_rejects_invalid_dir(root):
    with pytest.raises(PathError) as info:
        sub(root, "/abs")
    assert info.value.path == "/abs"
    assert info.value.op == "sub"
    assert error_is(info.value, InvalidError)


def test_open_reads_from_base(root):
    fs = sub(root, BASE)
    result = fs.open("foo")
    assert result is root.files[posixpath.join(BASE, "foo")]
    assert root.opened == [posixpath.join(BASE, "foo")]


def test_open_missing_strips_prefix(root):
    fs = sub(root, BASE)
    with pytest.raises(PathError) as info:
        fs.open("bar/baz")
    assert info.value.path == "bar/baz"
    assert error_is(info.value, NotExistError)


def test_open_invalid_name(root):
    fs = sub(root, BASE)
    with pytest.raises(PathError) as info:
        fs.open("../escape")
    assert info.value.op == "open"
    assert error_is(info.value, InvalidError)
    assert root.opened == []


def test_mount_root_is_base(root):
    fs = sub(root, BASE)
    mount, sub_path = fs.mount(".")
    assert mount is root
    assert sub_path == BASE


def test_mount_invalid_path_passes_through(root):
    fs = sub(root, BASE)
    mount, sub_path = fs.mount("/x")
    assert mount is root
    assert sub_path == "/x"