import hashlib
import os
import sys
import time

from .arc import find_manifest, parse_tags, read_arc_listing, read_entry
from .arz import read_arz, read_arz_listing, select_records
from .common import eprint, hx, preview, read_bytes
from .reader import ByteCursor, FormatError
from .save import read_character, read_stash

SUPPORTED_TYPES = ("arc", "arz", "gdc", "gst", "gsh")


def _fmt_ts(ts):
    try:
        lt = time.localtime(float(ts))
    except Exception:
        return ""
    return time.strftime("%Y-%m-%d %H:%M:%S", lt)


def _detect_type(path):
    return os.path.splitext(path)[1].lower().lstrip(".")


def _analyze_arc(blob):
    listing = read_arc_listing(blob)
    h = listing.header
    print("header:")
    print("  version=%d" % h.version)
    print("  file_count=%d  part_count=%d" % (h.file_count, h.part_count))
    print(
        "  record_table_ofs=%s  record_table_len=%d  name_table_len=%d"
        % (hx(h.record_table_ofs), h.record_table_len, h.name_table_len)
    )
    if listing.names:
        print("names (preview): %s" % preview(listing.names))
    try:
        i = find_manifest(listing.names)
    except FormatError:
        print("manifest: -")
        return 0
    text = read_entry(ByteCursor(blob), listing, i).decode("utf-8-sig", "replace")
    print("manifest: %s" % listing.names[i])
    print("manifest_entries: %d" % len(parse_tags(text)))
    return 0


def _analyze_arz(blob):
    listing = read_arz_listing(blob)
    h = listing.header
    print("header:")
    print("  magic=%d  version=%d" % (h.magic, h.version))
    print(
        "  records_start=%s  records_len=%d  records_count=%d"
        % (hx(h.records_start), h.records_len, h.records_count)
    )
    print("  strings_start=%s  strings_size=%d" % (hx(h.strings_start), h.strings_size))
    print("strings: %d" % len(listing.strings))
    print("records: %d" % len(listing.records))
    print("selected: %d" % len(select_records(listing.records, listing.strings)))
    items, affixes = read_arz(blob)
    print("items: %d" % len(items))
    print("affixes: %d" % len(affixes))
    return 0


def _analyze_gdc(path, blob):
    ch = read_character(path, data=blob)
    h = ch.header
    inv = ch.inventory
    print("character:")
    print("  name=%s" % h.name)
    print("  class=%s" % (h.class_tag or "-"))
    print("  level=%d  hardcore=%d" % (h.level, int(h.hardcore)))
    print("  money=%d  difficulty=%d" % (ch.info.money, ch.info.difficulty))
    print("bags: %d" % len(inv.bags))
    for i, bag in enumerate(inv.bags):
        print("  bag %d: items=%d" % (i + 1, len(bag.items)))
    equipped = sum(1 for s in inv.equipment if s.item.base_name)
    print("equipped: %d/%d" % (equipped, len(inv.equipment)))
    print("stash_tabs: %d" % len(ch.stash_tabs))
    for i, tab in enumerate(ch.stash_tabs):
        print("  tab %d: %dx%d items=%d" % (i + 1, tab.width, tab.height, len(tab.items)))
    return 0


def _analyze_stash(path, blob):
    st = read_stash(path, data=blob)
    print("stash:")
    print("  version=%d  expansion=%d" % (st.version, int(st.expansion)))
    print("  mod=%s" % (st.mod or "-"))
    print("tabs: %d" % len(st.tabs))
    for i, tab in enumerate(st.tabs):
        print("  tab %d: %dx%d items=%d" % (i + 1, tab.width, tab.height, len(tab.items)))
    return 0


def analyze_file(path):
    if not os.path.exists(path):
        sys.stderr.write("not found: %s\n" % path)
        return 2
    blob = read_bytes(path)
    ftype = _detect_type(path)
    st = os.stat(path)
    print("==== Analyze ====")
    print("file: %s" % path)
    print("type: %s" % ftype)
    print("size: %d bytes (%s)" % (len(blob), hx(len(blob))))
    print("mtime: %s" % _fmt_ts(st.st_mtime))
    print("sha1: %s" % hashlib.sha1(blob).hexdigest())
    print("")
    if ftype not in SUPPORTED_TYPES:
        print("unsupported file type for -a mode: %s" % ftype)
        print("only .arc, .arz, .gdc, .gst and .gsh are supported.")
        return 1
    try:
        if ftype == "arc":
            return _analyze_arc(blob)
        if ftype == "arz":
            return _analyze_arz(blob)
        if ftype == "gdc":
            return _analyze_gdc(path, blob)
        return _analyze_stash(path, blob)
    except FormatError as e:
        eprint("analyze failed: %s" % e)
        return 1


def main(argv=None):
    if argv is None:
        argv = sys.argv[1:]
    args = list(argv)
    if (not args) or args[0] in ("-h", "--help", "help"):
        return 2
    if len(args) == 1:
        return analyze_file(args[0])
    return 2


if __name__ == "__main__":
    raise SystemExit(main())
