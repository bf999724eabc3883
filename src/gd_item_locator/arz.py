"""Game database (.arz) decoding.

Layout:
  header          u16 magic(2), u16 version(3), u32 records_start, records_len,
                  records_count, strings_start, strings_size
  string table    repeated [u32 count, count x (u32 len, utf-8 bytes)]
  record table    u32 name_index, u32 type_len, type bytes, u32 offset,
                  u32 packed_size, u32 size, 8 bytes of unknown data
  payloads        at offset + 24, LZ4 block (or raw when sizes match),
                  a stream of (u16 type, u16 count, u32 key_index, count x 4 bytes)

Only item and affix records are decoded; everything else in the database is
skipped without being decompressed.
"""

import struct
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple, Union

from .common import as_bytes, block_decompress
from .reader import ByteCursor, FormatError

ARZ_MAGIC = 2
ARZ_VERSION = 3
RECORD_TRAILER_SIZE = 8
PAYLOAD_OFFSET = 24

_HDR = struct.Struct("<HH5I")
_F32 = struct.Struct("<f")
_U32 = struct.Struct("<I")

AFFIX_TYPE = "LootRandomizer"
ITEM_TYPE_PREFIXES = ("Armor", "Item", "Weapon", "QuestItem", "OneShot_Scroll")
ITEM_TYPE_DENY = frozenset(
    (
        "ItemRandomSetFormula",
        "ItemSetFormula",
        "ItemTransmuter",
        "ItemTransmuterSet",
    )
)
PATH_PREFIXES = (
    "records/items/",
    "records/creatures/npcs/npcgear/",
    "records/storyelements/",
    "records/endlessdungeon/",
)
PATH_DENY = (
    "records/items/enemygear/",
    "records/items/transmutes/",
    "records/items/lootaffixes/crafting/",
    "records/items/lootaffixes/unique/",
)

FIELD_FLOAT = 1
FIELD_STRING = 2

TAG_KEYS = ("lootRandomizerName", "itemNameTag")
RARITY_KEY = "itemClassification"
DESCRIPTION_KEY = "description"
LEVEL_KEY = "itemLevel"


@dataclass(frozen=True)
class ArzHeader:
    magic: int
    version: int
    records_start: int
    records_len: int
    records_count: int
    strings_start: int
    strings_size: int


@dataclass(frozen=True)
class ArzRecord:
    name_index: int
    record_type: str
    offset: int
    packed_size: int
    size: int


@dataclass(frozen=True)
class Item:
    path: str
    tag: str
    rarity: str = ""
    level: Optional[int] = None


@dataclass(frozen=True)
class Affix:
    tag: Optional[str]
    rarity: str = ""
    name: Optional[str] = None


Entity = Union[Item, Affix]


@dataclass
class ArzListing:
    header: ArzHeader
    strings: List[str]
    records: List[ArzRecord]


def read_arz_header(cur: ByteCursor) -> ArzHeader:
    cur.seek(0)
    h = ArzHeader(*_HDR.unpack(cur.read_bytes(_HDR.size)))
    if h.magic != ARZ_MAGIC:
        raise FormatError(f"arz: bad magic {h.magic}, expected {ARZ_MAGIC}")
    if h.version != ARZ_VERSION:
        raise FormatError(f"arz: bad version {h.version}, expected {ARZ_VERSION}")
    return h


def read_strings(cur: ByteCursor, h: ArzHeader) -> List[str]:
    cur.seek(h.strings_start)
    end = h.strings_start + h.strings_size
    out = []
    while cur.offset < end:
        cnt = cur.read_u32()
        for _ in range(cnt):
            out.append(cur.read_prefixed_str())
    if cur.offset != end:
        raise FormatError(f"arz: string table overran its end ({cur.offset} > {end})")
    return out


def read_record_headers(cur: ByteCursor, h: ArzHeader) -> List[ArzRecord]:
    cur.seek(h.records_start)
    out = []
    for _ in range(h.records_count):
        name_index = cur.read_u32()
        record_type = cur.read_prefixed_str()
        offset = cur.read_u32()
        packed_size = cur.read_u32()
        size = cur.read_u32()
        cur.skip(RECORD_TRAILER_SIZE)
        out.append(ArzRecord(name_index, record_type, offset, packed_size, size))
    return out


def read_arz_listing(src) -> ArzListing:
    cur = ByteCursor(as_bytes(src))
    h = read_arz_header(cur)
    strings = read_strings(cur, h)
    records = read_record_headers(cur, h)
    return ArzListing(header=h, strings=strings, records=records)


def _string(strings: List[str], i: int) -> str:
    if i >= len(strings):
        raise FormatError(f"arz: string index {i} out of range ({len(strings)})")
    return strings[i]


def wanted_type(record_type: str) -> bool:
    if record_type == AFFIX_TYPE:
        return True
    if not record_type.startswith(ITEM_TYPE_PREFIXES):
        return False
    return record_type not in ITEM_TYPE_DENY


def wanted_path(path: str) -> bool:
    return path.startswith(PATH_PREFIXES) and not path.startswith(PATH_DENY)


def select_records(records, strings) -> List[Tuple[ArzRecord, str]]:
    out = []
    for rec in records:
        if not wanted_type(rec.record_type):
            continue
        path = _string(strings, rec.name_index)
        if wanted_path(path):
            out.append((rec, path))
    return out


def read_payload(cur: ByteCursor, rec: ArzRecord) -> bytes:
    cur.seek(rec.offset + PAYLOAD_OFFSET)
    return block_decompress(cur.read_bytes(rec.packed_size), rec.size)


def decode_value(code: int, raw: bytes, strings: List[str]):
    if code == FIELD_FLOAT:
        return _F32.unpack(raw)[0]
    if code == FIELD_STRING:
        return _string(strings, _U32.unpack(raw)[0])
    return _U32.unpack(raw)[0]


def parse_record(payload: bytes, path: str, strings: List[str], is_affix: bool) -> Entity:
    cur = ByteCursor(payload)
    words = len(payload) // 4
    tag = rarity = description = None
    level = None
    n = 0
    while n < words:
        code = cur.read_u16()
        count = cur.read_u16()
        key = _string(strings, cur.read_u32())
        n += 2 + count
        for _ in range(count):
            v = decode_value(code, cur.read_bytes(4), strings)
            if key in TAG_KEYS:
                if isinstance(v, str) and v:
                    tag = v
            elif key == RARITY_KEY:
                if isinstance(v, str):
                    rarity = v
            elif key == DESCRIPTION_KEY:
                if isinstance(v, str) and v:
                    description = v
            elif key == LEVEL_KEY:
                if level is None and not isinstance(v, str):
                    level = int(v)
            if tag is not None and rarity is not None and (is_affix or level is not None):
                return _entity(path, is_affix, tag, rarity, description, level)
    return _entity(path, is_affix, tag, rarity, description, level)


def _entity(path, is_affix, tag, rarity, description, level) -> Entity:
    if is_affix:
        return Affix(tag=tag, rarity=rarity or "")
    return Item(path=path, tag=tag or description or path, rarity=rarity or "", level=level)


def _parse_jobs(cur: ByteCursor, jobs, strings):
    out = []
    for rec, path in jobs:
        is_affix = rec.record_type == AFFIX_TYPE
        ent = parse_record(read_payload(cur, rec), path, strings, is_affix)
        out.append((path, ent))
    return out


def _split(seq, n: int):
    k, m = divmod(len(seq), n)
    p = 0
    for i in range(n):
        q = p + k + (1 if i < m else 0)
        if q > p:
            yield seq[p:q]
        p = q


def read_arz(src, max_workers: int = 1) -> Tuple[Dict[str, Item], Dict[str, Affix]]:
    """Decode item and affix records of a database.

    With ``max_workers`` > 1 the selected records are parsed by a thread pool;
    every worker gets its own cursor over the shared file buffer and reads the
    same string table.
    """
    cur = ByteCursor(as_bytes(src))
    h = read_arz_header(cur)
    strings = read_strings(cur, h)
    jobs = select_records(read_record_headers(cur, h), strings)

    workers = max(1, int(max_workers or 1))
    if workers == 1 or len(jobs) < workers * 2:
        parsed = _parse_jobs(cur, jobs, strings)
    else:
        parsed = []
        with ThreadPoolExecutor(max_workers=workers) as ex:
            futs = [
                ex.submit(_parse_jobs, cur.dup(), chunk, strings)
                for chunk in _split(jobs, workers)
            ]
            for f in futs:
                parsed.extend(f.result())

    items = {}
    affixes = {}
    for path, ent in parsed:
        if isinstance(ent, Affix):
            affixes[path] = ent
        else:
            items[path] = ent
    return items, affixes
