"""Mutable binary blobs used to exchange file contents with key-value stores.

A blob is any object with ``to_bytes()`` and ``__len__``; it may also offer
``view``, ``slice``, ``set``, ``grow`` and ``truncate`` for in-place work.
"""

from __future__ import annotations

import threading

_BytesLike = (bytes, bytearray, memoryview)


def _blob_bytes(src) -> bytes:
    if isinstance(src, _BytesLike):
        return bytes(src)
    return src.to_bytes()


class Bytes:
    """A blob over a byte buffer. Views share the buffer and its lock."""

    __slots__ = ("_buf", "_start", "_length", "_lock")

    def __init__(self, buf=None) -> None:
        if buf is None:
            buf = bytearray()
        elif not isinstance(buf, bytearray):
            buf = bytearray(buf)
        self._buf = buf
        self._start = 0
        self._length = len(buf)
        self._lock = threading.Lock()

    @classmethod
    def zeros(cls, length: int) -> "Bytes":
        """Return a blob of 'length' zero bytes."""
        return cls(bytearray(length))

    @classmethod
    def _shared(cls, buf: bytearray, start: int, length: int, lock: threading.Lock) -> "Bytes":
        blob = cls.__new__(cls)
        blob._buf = buf
        blob._start = start
        blob._length = length
        blob._lock = lock
        return blob

    def to_bytes(self) -> bytes:
        """Return a copy of the contents."""
        with self._lock:
            return bytes(self._buf[self._start:self._start + self._length])

    __bytes__ = to_bytes

    def __len__(self) -> int:
        return self._length

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Bytes):
            return self.to_bytes() == other.to_bytes()
        if isinstance(other, _BytesLike):
            return self.to_bytes() == bytes(other)
        return NotImplemented

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"Bytes({self.to_bytes()!r})"

    def _check_range(self, start: int, end: int) -> None:
        length = len(self)
        if start < 0 or start > length:
            raise ValueError(f"Start index out of bounds: {start}")
        if end < 0 or end > length:
            raise ValueError(f"End index out of bounds: {end}")
        if start > end:
            raise ValueError(f"Start index {start} is after end index {end}")

    def view(self, start: int, end: int) -> "Bytes":
        """Return a blob sharing bytes [start, end); changes show in both."""
        self._check_range(start, end)
        with self._lock:
            return Bytes._shared(self._buf, self._start + start, end - start, self._lock)

    def slice(self, start: int, end: int) -> "Bytes":
        """Return an independent copy of bytes [start, end)."""
        self._check_range(start, end)
        with self._lock:
            begin = self._start + start
            return Bytes(bytearray(self._buf[begin:begin + end - start]))

    def set(self, src, dest_start: int) -> int:
        """Copy 'src' in at 'dest_start', as much as fits. Returns bytes copied."""
        data = _blob_bytes(src)
        if dest_start < 0:
            raise ValueError("negative offset")
        length = len(self)
        if (dest_start >= length and dest_start == 0 and data) or dest_start > length:
            raise ValueError(f"Offset out of bounds: {dest_start}")
        count = min(len(data), length - dest_start)
        with self._lock:
            pos = self._start + dest_start
            self._buf[pos:pos + count] = data[:count]
        return count

    def grow(self, offset: int) -> None:
        """Append 'offset' zero bytes."""
        if offset < 0:
            raise ValueError(f"negative grow size: {offset}")
        with self._lock:
            end = self._start + self._length
            new_end = end + offset
            if new_end <= len(self._buf):
                self._buf[end:new_end] = bytes(offset)
            else:
                capacity = max(self._length + offset, 2 * (len(self._buf) - self._start))
                grown = bytearray(capacity)
                grown[:self._length] = self._buf[self._start:end]
                self._buf = grown
                self._start = 0
            self._length += offset

    def truncate(self, size: int) -> None:
        """Cut the blob down to 'size' bytes. Larger sizes are ignored."""
        if size < 0:
            raise ValueError(f"negative truncate size: {size}")
        if len(self) < size:
            return
        with self._lock:
            if self._length >= size:
                self._length = size


def view(b, start: int, end: int):
    """View b[start:end], copying first if 'b' cannot make views."""
    if hasattr(b, "view"):
        return b.view(start, end)
    return Bytes(_blob_bytes(b)).view(start, end)


def slice_blob(b, start: int, end: int):
    """Copy b[start:end]."""
    if hasattr(b, "slice"):
        return b.slice(start, end)
    return Bytes(_blob_bytes(b)).slice(start, end)


def set_blob(dest, src, offset: int) -> int:
    """Copy 'src' into 'dest' at 'offset'. Returns the number of bytes copied."""
    if hasattr(dest, "set"):
        return dest.set(src, offset)
    return Bytes(_blob_bytes(dest)).set(src, offset)


def grow(b, offset: int) -> None:
    """Append 'offset' zero bytes to 'b'."""
    if hasattr(b, "grow"):
        b.grow(offset)
        return
    Bytes(_blob_bytes(b)).grow(offset)


def truncate(b, size: int) -> None:
    """Cut 'b' down to 'size' bytes."""
    if hasattr(b, "truncate"):
        b.truncate(size)
        return
    Bytes(_blob_bytes(b)).truncate(size)


def read(src, length: int):
    """Read up to 'length' bytes from 'src' as a blob; empty at end of data."""
    if hasattr(src, "read_blob"):
        return src.read_blob(length)
    return Bytes(src.read(length))


def read_at(src, length: int, src_offset: int):
    """Read up to 'length' bytes from 'src' at 'src_offset' as a blob."""
    if hasattr(src, "read_blob_at"):
        return src.read_blob_at(length, src_offset)
    if hasattr(src, "read_at"):
        return Bytes(src.read_at(length, src_offset))
    position = src.tell()
    try:
        src.seek(src_offset)
        return Bytes(src.read(length))
    finally:
        src.seek(position)


def write(dest, src) -> int:
    """Write blob 'src' to 'dest'. Returns the number of bytes written."""
    if hasattr(dest, "write_blob"):
        return dest.write_blob(src)
    return dest.write(_blob_bytes(src))


def write_at(dest, src, dest_offset: int) -> int:
    """Write blob 'src' to 'dest' at 'dest_offset'. Returns the bytes written."""
    if hasattr(dest, "write_blob_at"):
        return dest.write_blob_at(src, dest_offset)
    if hasattr(dest, "write_at"):
        return dest.write_at(_blob_bytes(src), dest_offset)
    position = dest.tell()
    try:
        dest.seek(dest_offset)
        return dest.write(_blob_bytes(src))
    finally:
        dest.seek(position)