import os
import sys

import lz4.block

from .reader import FormatError


def read_bytes(path: str) -> bytes:
    with open(path, "rb") as f:
        return f.read()


def as_bytes(src) -> bytes:
    if isinstance(src, (bytes, bytearray, memoryview)):
        return bytes(src)
    return read_bytes(src)


def get_max_workers(max_workers=None) -> int:
    if max_workers is not None and max_workers > 0:
        return max_workers
    try:
        env = int(os.environ.get("GDLC_MAX_WORKERS", "") or 0)
    except ValueError:
        env = 0
    if env > 0:
        return env
    cpu_count = os.cpu_count() or 4
    return min(cpu_count, 32)


def block_decompress(data: bytes, size: int) -> bytes:
    """Inflate one LZ4 block into exactly ``size`` bytes.

    Payloads stored uncompressed have equal packed/unpacked sizes and are
    returned as-is.
    """
    if len(data) == size:
        return bytes(data)
    try:
        out = lz4.block.decompress(data, uncompressed_size=size)
    except lz4.block.LZ4BlockError as e:
        raise FormatError(f"lz4: {e}") from e
    if len(out) != size:
        raise FormatError(f"lz4: unpack size mismatch ({len(out)} != {size})")
    return out


def eprint(msg: str, errors: str = "backslashreplace") -> None:
    try:
        sys.stderr.write(msg + "\n")
        sys.stderr.flush()
    except Exception:
        try:
            sys.stderr.buffer.write((msg + "\n").encode("utf-8", errors=errors))
            sys.stderr.flush()
        except Exception:
            pass


def hx(x):
    try:
        v = int(x)
    except Exception:
        return "-"
    if v < 0:
        return "-"
    if v <= 0xFFFFFFFF:
        return f"0x{v:08X}"
    return f"0x{v:X}"


def preview(names, n: int = 8) -> str:
    pv = list(names[:n])
    return ", ".join(repr(s) for s in pv) + (" ..." if len(names) > len(pv) else "")
