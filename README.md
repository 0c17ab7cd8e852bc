# hackpadfs

File systems that share one small interface (`open`, `open_file`, `mkdir`,
`mkdir_all`, `remove`, `rename`, `stat`, `chmod`, `chtimes`), so code written
against one works with the others:

- `hackpadfs.keyvalue.fs.FS`: a hierarchical file system on top of any
  key-value store. A back end only has to implement `get(path)` and
  `set(path, record)` from `hackpadfs.keyvalue.store.Store`; stores that also
  offer `transaction(mode)` (see `TransactionStore`) get their reads and
  writes grouped into transactions.
- `hackpadfs.sub.sub(fs, dir)`: a view of one directory of another file
  system, with error paths reported relative to that directory.
- `hackpadfs.osfs.OSFS`: the host operating system's files, with paths
  relative to a chosen root (`OSFS().sub("tmp/work")`), plus
  `to_os_path` / `from_os_path` for converting between the two path forms.

Supporting modules:

- `hackpadfs.core`: `FileMode`, the `FLAG_*` open flags, `valid_path`, and
  the error classes.
- `hackpadfs.keyvalue.blob`: `Bytes`, a mutable byte blob with shared views,
  and helpers (`view`, `slice_blob`, `set_blob`, `grow`, `truncate`, `read`,
  `read_at`, `write`, `write_at`).
- `hackpadfs.keyvalue.record`: `FileRecord`, `BaseFileRecord` and
  `CachedFileRecord`, the per-path records a store hands back.
- `hackpadfs.pathlock`: `PathLock`, a lock keyed by path.

Paths are slash-separated and unrooted: `"."` is the root and `"foo/bar"` a
child path; `"/foo"`, `"foo/../bar"` and `"foo/"` are invalid.

## Installing

```
pip install .
```

## Writing a store

```python
from hackpadfs.core import FLAG_CREATE, FLAG_READ_WRITE, NotExistError
from hackpadfs.keyvalue.blob import Bytes
from hackpadfs.keyvalue.fs import FS
from hackpadfs.keyvalue.record import BaseFileRecord
from hackpadfs.keyvalue.store import Store
from hackpadfs.sub import sub


class DictStore(Store):
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
        get_data = get_names = None
        size = 0
        if mode.is_regular():
            stored = src.data().to_bytes()
            size = len(stored)
            get_data = lambda: Bytes(stored)
        if mode.is_dir():
            get_names = lambda: self._children(path)
        self.records[path] = BaseFileRecord(size, src.mod_time(), mode, None, get_data, get_names)

    def _children(self, path):
        prefix = "" if path == "." else path + "/"
        return [
            key[len(prefix):] for key in self.records
            if key != "." and key.startswith(prefix) and "/" not in key[len(prefix):]
        ]


fs = FS(DictStore())
fs.mkdir("docs", 0o755)
with fs.open_file("docs/a.txt", FLAG_READ_WRITE | FLAG_CREATE, 0o644) as f:
    f.write(b"hello")

with fs.open("docs/a.txt") as f:
    print(f.read())                                   # b'hello'
with fs.open("docs") as d:
    print([entry.name() for entry in d.read_dir()])   # ['a.txt']

docs = sub(fs, "docs")
with docs.open("a.txt") as f:
    print(f.read())                                   # b'hello'
```

## Errors

Failures are raised as exceptions derived from `hackpadfs.core.FSError`.
`PathError` and `LinkError` carry the operation and the path(s) involved,
and wrap a cause such as `NotExistError`, `ExistError`, `NotDirError`,
`IsDirError`, `NotEmptyError` or `InvalidError`. Check the cause with
`hackpadfs.core.error_is(err, NotExistError)`.

## What is not included

- No ready-made store ships with the key-value file system: you supply the
  `Store` (as above) that decides where records live.
- There is no file system that combines several file systems at different
  mount points, and none that reads its files from an archive.
- There is no command-line tool; this is a library only.

## Running the tests

```
pip install .[test]
pytest
```