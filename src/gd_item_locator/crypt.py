"""Rolling substitution cipher used by character saves and shared stashes.

The first four bytes of a file are a plaintext seed. Everything after it is
decoded with a 256-entry table derived from that seed plus a running 32-bit
key that evolves with every ciphertext byte consumed, so reads must happen in
file order.
"""

from dataclasses import dataclass

from .common import eprint, read_bytes
from .reader import ByteCursor, FormatError

PRIME = 39916801
SEED_XOR = 0x55555555


class BlockError(FormatError):
    pass


class BlockOffsetError(BlockError):
    pass


class BlockSentinelError(BlockError):
    pass


def build_table(seed: int):
    """Return ``(table, key)`` for a raw seed; key is the last table entry."""
    k = (int(seed) ^ SEED_XOR) & 0xFFFFFFFF
    table = []
    for _ in range(256):
        k = ((k >> 1) | (k << 31)) & 0xFFFFFFFF
        k = (k * PRIME) & 0xFFFFFFFF
        table.append(k)
    return table, k


@dataclass(frozen=True)
class Block:
    tag: int
    length: int
    end: int


class CipherReader:
    __slots__ = ("_cur", "table", "key", "strict")

    def __init__(self, data, strict: bool = True):
        cur = data if isinstance(data, ByteCursor) else ByteCursor(data)
        self._cur = cur
        self.table, self.key = build_table(cur.read_u32())
        self.strict = bool(strict)

    @classmethod
    def from_file(cls, path: str, strict: bool = True) -> "CipherReader":
        return cls(read_bytes(path), strict=strict)

    @property
    def offset(self) -> int:
        return self._cur.offset

    @property
    def remaining(self) -> int:
        return self._cur.remaining

    def read_int(self) -> int:
        raw = self._cur.read_u32()
        ret = raw ^ self.key
        t = self.table
        k = self.key
        for b in raw.to_bytes(4, "big"):
            k ^= t[b]
        self.key = k
        return ret

    def next_int(self) -> int:
        return self._cur.read_u32() ^ self.key

    def read_byte(self) -> int:
        raw = self._cur.read_u8()
        self.key ^= self.table[raw]
        return (raw ^ self.key) & 0xFF

    def read_bool(self) -> bool:
        return self.read_byte() != 0

    def _decode_run(self, n: int) -> bytes:
        raw = self._cur.read_bytes(n)
        out = bytearray(n)
        t = self.table
        k = self.key
        # each byte's key depends on the ciphertext before it
        for i, b in enumerate(raw):
            out[i] = (b ^ k) & 0xFF
            k ^= t[b]
        self.key = k
        return bytes(out)

    def read_str(self) -> str:
        n = self.read_int()
        if n == 0:
            return ""
        pos = self.offset
        try:
            return self._decode_run(n).decode("utf-8")
        except UnicodeDecodeError as e:
            raise FormatError(f"invalid utf-8 string at offset {pos}") from e

    def read_wide_str(self) -> str:
        n = self.read_int()
        if n == 0:
            return ""
        pos = self.offset
        try:
            return self._decode_run(n * 2).decode("utf-16-le")
        except UnicodeDecodeError as e:
            raise FormatError(f"invalid utf-16 string at offset {pos}") from e

    def read_block_start(self):
        tag = self.read_int()
        length = self.next_int()
        return tag, Block(tag=tag, length=length, end=self.offset + length)

    def read_block_end(self, block: Block) -> bool:
        ok = True
        pos = self.offset
        if pos != block.end:
            msg = (
                f"block {block.tag}: stream position is {pos} but block end is "
                f"{block.end} (delta {abs(pos - block.end)})"
            )
            if self.strict:
                raise BlockOffsetError(msg)
            eprint(f"warning: {msg}")
            self._cur.seek(block.end)
            ok = False
        if self.next_int() != 0:
            msg = f"block {block.tag}: expected end of block sentinel 0"
            if self.strict:
                raise BlockSentinelError(msg)
            eprint(f"warning: {msg}")
            ok = False
        return ok

    def skip_to(self, block: Block) -> None:
        n = block.end - self.offset
        if n < 0:
            raise BlockOffsetError(
                f"block {block.tag}: already {-n} bytes past block end {block.end}"
            )
        self._decode_run(n)
