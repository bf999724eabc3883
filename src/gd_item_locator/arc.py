import struct
from dataclasses import dataclass
from typing import Dict, List

from .common import as_bytes, block_decompress
from .reader import ByteCursor, FormatError

ARC_VERSION = 3
MANIFEST_NAMES = ("tags_items.txt", "tagsgdx1_items.txt", "tagsgdx2_items.txt")

_HDR = struct.Struct("<7I")
_PART = struct.Struct("<3I")
_RECORD = struct.Struct("<5IQ4I")


@dataclass(frozen=True)
class ArcHeader:
    reserved: int
    version: int
    file_count: int
    part_count: int
    record_table_len: int
    name_table_len: int
    record_table_ofs: int


@dataclass(frozen=True)
class ArcPart:
    offset: int
    packed_size: int
    size: int


@dataclass(frozen=True)
class ArcRecord:
    record_type: int
    offset: int
    packed_size: int
    size: int
    unknown: int
    filetime: int
    part_count: int
    first_part: int
    name_len: int
    name_ofs: int


@dataclass
class ArcListing:
    header: ArcHeader
    parts: List[ArcPart]
    names: List[str]
    records: List[ArcRecord]


def _unpack(cur: ByteCursor, st: struct.Struct):
    return st.unpack(cur.read_bytes(st.size))


def read_arc_header(cur: ByteCursor) -> ArcHeader:
    cur.seek(0)
    h = ArcHeader(*_unpack(cur, _HDR))
    if h.version != ARC_VERSION:
        raise FormatError(f"arc: expected header version {ARC_VERSION}, is {h.version}")
    return h


def read_arc_listing(src) -> ArcListing:
    """Decode header, part table, name table and record table of an .arc."""
    cur = ByteCursor(as_bytes(src))
    h = read_arc_header(cur)

    cur.seek(h.record_table_ofs)
    parts = [ArcPart(*_unpack(cur, _PART)) for _ in range(h.part_count)]

    cur.seek(h.record_table_ofs + h.record_table_len)
    names = []
    for _ in range(h.file_count):
        s = cur.read_cstr()
        if s is None:
            raise FormatError("arc: name table truncated")
        names.append(s)

    cur.seek(h.record_table_ofs + h.record_table_len + h.name_table_len)
    records = [ArcRecord(*_unpack(cur, _RECORD)) for _ in range(h.file_count)]
    if len(records) != h.file_count or len(parts) != h.part_count:
        raise FormatError("arc: table sizes disagree with header")
    return ArcListing(header=h, parts=parts, names=names, records=records)


def _entry_parts(listing: ArcListing, index: int) -> List[ArcPart]:
    rec = listing.records[index]
    lo, hi = rec.first_part, rec.first_part + rec.part_count
    if rec.part_count > 0 and hi <= len(listing.parts):
        return listing.parts[lo:hi]
    if index < len(listing.parts):
        return [listing.parts[index]]
    raise FormatError(f"arc: no part data for {listing.names[index]!r}")


def read_entry(cur: ByteCursor, listing: ArcListing, index: int) -> bytes:
    out = bytearray()
    for part in _entry_parts(listing, index):
        cur.seek(part.offset)
        out += block_decompress(cur.read_bytes(part.packed_size), part.size)
    return bytes(out)


def find_manifest(names) -> int:
    for i, nm in enumerate(names):
        if nm in MANIFEST_NAMES:
            return i
    raise FormatError("arc: items manifest not found")


def parse_tags(text: str, out: Dict[str, str] = None) -> Dict[str, str]:
    if out is None:
        out = {}
    for line in text.splitlines():
        if not line or line.startswith("#"):
            continue
        k, sep, v = line.partition("=")
        if not sep:
            continue
        out[k] = v
    return out


def read_arc(src) -> Dict[str, str]:
    """Return the item tag -> display text map of a localization .arc.

    ``src`` is a path or the file contents.
    """
    data = as_bytes(src)
    listing = read_arc_listing(data)
    i = find_manifest(listing.names)
    payload = read_entry(ByteCursor(data), listing, i)
    try:
        text = payload.decode("utf-8-sig")
    except UnicodeDecodeError as e:
        raise FormatError(f"arc: {listing.names[i]} is not utf-8") from e
    return parse_tags(text)
