import struct

import pytest
from gd_item_locator.reader import ByteCursor, FormatError


def test_fixed_width_reads():
    data = struct.pack("<BHIQf", 0x7F, 0xBEEF, 0xDEADBEEF, 1 << 40, 1.5)
    cur = ByteCursor(data)
    assert cur.read_u8() == 0x7F
    assert cur.read_u16() == 0xBEEF
    assert cur.read_u32() == 0xDEADBEEF
    assert cur.read_u64() == 1 << 40
    assert cur.read_f32() == 1.5
    assert cur.remaining == 0


@pytest.mark.parametrize(
    "method,size",
    [("read_u8", 1), ("read_u16", 2), ("read_u32", 4), ("read_u64", 8), ("read_f32", 4)],
)
def test_short_read_fails_without_advancing(method, size):
    cur = ByteCursor(b"\x00" + b"\x01" * (size - 1))
    cur.skip(1)
    with pytest.raises(FormatError):
        getattr(cur, method)()
    assert cur.offset == 1
    with pytest.raises(FormatError):
        cur.read_bytes(size)
    assert cur.offset == 1


def test_prefixed_and_null_terminated_strings():
    data = struct.pack("<I", 5) + b"hello" + b"abc\0" + b"\xffz\0"
    cur = ByteCursor(data)
    assert cur.read_prefixed_str() == "hello"
    assert cur.read_cstr() == "abc"
    assert cur.read_cstr() == "\ufffdz"
    assert cur.read_cstr() is None


def test_prefixed_string_overrun_restores_offset():
    cur = ByteCursor(struct.pack("<I", 10) + b"abc")
    with pytest.raises(FormatError):
        cur.read_prefixed_str()
    assert cur.offset == 0


def test_dup_cursors_are_independent():
    cur = ByteCursor(bytes(range(16)))
    cur.skip(4)
    other = cur.dup()
    assert other.read_u8() == 4
    assert other.read_u8() == 5
    assert cur.read_u8() == 4
    assert cur.dup(10).read_u8() == 10


@pytest.mark.parametrize("ofs", [-1, 17])
def test_seek_out_of_range(ofs):
    cur = ByteCursor(bytes(16))
    with pytest.raises(FormatError):
        cur.seek(ofs)
    cur.seek(16)
    assert cur.remaining == 0
