import io

import pytest

from hackpadfs.keyvalue import blob
from hackpadfs.keyvalue.blob import Bytes

DATA = b"hello world"


def test_round_trip():
    b = Bytes(DATA)
    assert b.to_bytes() == DATA
    assert len(b) == len(DATA)
    assert bytes(b) == DATA


def test_zeros():
    b = Bytes.zeros(4)
    assert b.to_bytes() == bytes(4)


def test_to_bytes_is_a_copy():
    b = Bytes(DATA)
    copy = b.to_bytes()
    b.set(Bytes(b"J"), 0)
    assert copy == DATA


def test_wraps_given_bytearray():
    buf = bytearray(DATA)
    b = Bytes(buf)
    b.set(b"J", 0)
    assert bytes(buf) == b"J" + DATA[1:]


def test_view_shares_data():
    b = Bytes(DATA)
    v = b.view(2, 5)
    assert v.to_bytes() == DATA[2:5]
    v.set(Bytes(b"XY"), 0)
    assert b.to_bytes() == DATA[:2] + b"XY" + DATA[4:]


def test_slice_is_independent():
    b = Bytes(DATA)
    s = b.slice(2, 5)
    assert s.to_bytes() == DATA[2:5]
    s.set(Bytes(b"XY"), 0)
    assert b.to_bytes() == DATA


@pytest.mark.parametrize("start, end", [(-1, 2), (len(DATA) + 1, len(DATA) + 1)])
def test_view_start_out_of_bounds(start, end):
    with pytest.raises(ValueError, match="Start index out of bounds"):
        Bytes(DATA).view(start, end)


def test_slice_end_out_of_bounds():
    with pytest.raises(ValueError, match="End index out of bounds"):
        Bytes(DATA).slice(0, len(DATA) + 1)


def test_set_truncates_to_fit():
    b = Bytes(DATA)
    n = b.set(Bytes(b"abcdef"), len(DATA) - 2)
    assert n == 2
    assert b.to_bytes() == DATA[:-2] + b"ab"


def test_set_negative_offset():
    with pytest.raises(ValueError, match="negative offset"):
        Bytes(DATA).set(Bytes(b"a"), -1)


def test_set_into_empty_fails():
    with pytest.raises(ValueError, match="Offset out of bounds"):
        Bytes(b"").set(Bytes(b"a"), 0)


def test_set_empty_into_empty():
    assert Bytes(b"").set(Bytes(b""), 0) == 0


def test_grow_appends_zeros():
    b = Bytes(DATA)
    b.grow(3)
    assert len(b) == len(DATA) + 3
    assert b.to_bytes() == DATA + bytes(3)


def test_truncate_then_grow_zero_fills():
    b = Bytes(DATA)
    b.truncate(2)
    assert b.to_bytes() == DATA[:2]
    b.grow(2)
    assert b.to_bytes() == DATA[:2] + bytes(2)


def test_truncate_larger_is_noop():
    b = Bytes(DATA)
    b.truncate(len(DATA) + 5)
    assert b.to_bytes() == DATA


def test_module_functions_use_methods():
    b = Bytes(DATA)
    assert blob.view(b, 0, 5).to_bytes() == DATA[:5]
    assert blob.slice_blob(b, 6, len(DATA)).to_bytes() == DATA[6:]
    assert blob.set_blob(b, b"H", 0) == 1
    blob.grow(b, 1)
    assert b.to_bytes() == b"H" + DATA[1:] + bytes(1)
    blob.truncate(b, 1)
    assert b.to_bytes() == b"H"


def test_module_functions_fallback_on_plain_bytes():
    assert blob.view(DATA, 1, 4).to_bytes() == DATA[1:4]
    assert blob.slice_blob(DATA, 1, 4).to_bytes() == DATA[1:4]


def test_read_from_plain_reader():
    src = io.BytesIO(DATA)
    assert blob.read(src, 5).to_bytes() == DATA[:5]
    assert blob.read(src, 100).to_bytes() == DATA[5:]
    assert len(blob.read(src, 100)) == 0


def test_read_at_restores_position():
    src = io.BytesIO(DATA)
    src.read(2)
    assert blob.read_at(src, 3, 6).to_bytes() == DATA[6:9]
    assert src.tell() == 2


def test_write_and_write_at():
    dest = io.BytesIO()
    assert blob.write(dest, Bytes(DATA)) == len(DATA)
    assert blob.write_at(dest, Bytes(b"J"), 0) == 1
    assert dest.getvalue() == b"J" + DATA[1:]


def test_read_prefers_read_blob():
    class BlobReader:
        def read_blob(self, length):
            return Bytes(DATA[:length])

        def read(self, size):
            raise AssertionError("read should not be used")

    assert blob.read(BlobReader(), 3).to_bytes() == DATA[:3]


def test_write_prefers_write_blob():
    class BlobWriter:
        def __init__(self):
            self.received = []

        def write_blob(self, src):
            self.received.append(src)
            return len(src)

    dest = BlobWriter()
    src = Bytes(DATA)
    assert blob.write(dest, src) == len(DATA)
    assert dest.received == [src]