"""Bounds-checked little-endian reader over an immutable byte buffer."""

import struct
from typing import Optional


class FormatError(ValueError):
    pass


_U8 = struct.Struct("<B")
_U16 = struct.Struct("<H")
_U32 = struct.Struct("<I")
_U64 = struct.Struct("<Q")
_F32 = struct.Struct("<f")


class ByteCursor:
    __slots__ = ("_data", "_pos")

    def __init__(self, data, offset: int = 0):
        if not isinstance(data, bytes):
            data = bytes(data)
        self._data = data
        self._pos = 0
        self.seek(offset)

    @property
    def data(self) -> bytes:
        return self._data

    @property
    def offset(self) -> int:
        return self._pos

    @property
    def remaining(self) -> int:
        return len(self._data) - self._pos

    def __len__(self) -> int:
        return len(self._data)

    def dup(self, offset: Optional[int] = None) -> "ByteCursor":
        # shares the buffer, never copies it
        return ByteCursor(self._data, self._pos if offset is None else offset)

    def seek(self, offset: int) -> None:
        if offset < 0 or offset > len(self._data):
            raise FormatError(
                f"seek to {offset} outside buffer of {len(self._data)} bytes"
            )
        self._pos = offset

    def skip(self, n: int) -> None:
        self._need(n)
        self._pos += n

    def _need(self, n: int) -> None:
        if n < 0 or self._pos + n > len(self._data):
            raise FormatError(
                f"read of {n} bytes at offset {self._pos} exceeds buffer of {len(self._data)} bytes"
            )

    def _unpack(self, st: struct.Struct):
        self._need(st.size)
        v = st.unpack_from(self._data, self._pos)[0]
        self._pos += st.size
        return v

    def read_u8(self) -> int:
        return self._unpack(_U8)

    def read_u16(self) -> int:
        return self._unpack(_U16)

    def read_u32(self) -> int:
        return self._unpack(_U32)

    def read_u64(self) -> int:
        return self._unpack(_U64)

    def read_f32(self) -> float:
        return self._unpack(_F32)

    def read_bytes(self, n: int) -> bytes:
        self._need(n)
        b = self._data[self._pos : self._pos + n]
        self._pos += n
        return bytes(b)

    def read_str(self, n: int) -> str:
        b = self.read_bytes(n)
        try:
            return b.decode("utf-8")
        except UnicodeDecodeError as e:
            raise FormatError(f"invalid utf-8 string at offset {self._pos - n}") from e

    def read_prefixed_str(self) -> str:
        pos = self._pos
        n = self.read_u32()
        try:
            return self.read_str(n)
        except FormatError:
            self._pos = pos
            raise

    def read_cstr(self) -> Optional[str]:
        """Read up to the next NUL (or buffer end); None when already at the end."""
        if self._pos >= len(self._data):
            return None
        end = self._data.find(b"\x00", self._pos)
        if end < 0:
            b = self._data[self._pos :]
            self._pos = len(self._data)
        else:
            b = self._data[self._pos : end]
            self._pos = end + 1
        return bytes(b).decode("utf-8", "replace")
