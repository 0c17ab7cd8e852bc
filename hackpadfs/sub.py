"""A file system rooted at a sub directory of another."""

from __future__ import annotations

import posixpath
from dataclasses import dataclass
from typing import Any

from .core import FSError, InvalidError, PathError, strip_err_path_prefix, valid_path


@dataclass(frozen=True)
class SubFS:
    """Presents the directory 'base_path' of 'root_fs' as its root."""

    root_fs: Any
    base_path: str

    def open(self, name: str):
        """Open 'name' relative to the sub directory."""
        if not valid_path(name):
            raise PathError("open", name, InvalidError())
        mount, sub_path = self.mount(name)
        try:
            return mount.open(sub_path)
        except FSError as err:
            stripped = strip_err_path_prefix(err, name, sub_path)
            if stripped is err:
                raise
            raise stripped from err

    def mount(self, p: str):
        """Return the file system and path inside it that serve 'p'."""
        if not valid_path(p):
            return self.root_fs, p
        return self.root_fs, posixpath.normpath(posixpath.join(self.base_path, p))


def sub(fs, dir: str) -> SubFS:
    """Return a file system rooted at 'dir' inside 'fs'."""
    if not valid_path(dir):
        raise PathError("sub", dir, InvalidError())
    return SubFS(root_fs=fs, base_path=dir)