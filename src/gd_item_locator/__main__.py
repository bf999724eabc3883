import os
import sys


def _prog():
    p = os.path.basename(sys.argv[0]) if sys.argv and sys.argv[0] else "gdlc"
    return p or "gdlc"


def _get_version() -> str:
    try:
        from importlib.metadata import version as _pkg_version

        return _pkg_version("gd-item-locator")
    except Exception:
        try:
            from . import __version__ as _v

            return str(_v)
        except Exception:
            return "unknown"


def _print_version(out=None) -> None:
    if out is None:
        out = sys.stdout
    out.write(f"{_prog()} {_get_version()}\n")


def _usage(out=None):
    if out is None:
        out = sys.stderr
    p = _prog()
    out.write(f"{p} {_get_version()}\n")
    out.write(
        f"usage: {p} [-h] [-V|--version] [-v|--verbose] [--lenient] [--max-workers N] [--config PATH] <search term...>\n"
    )
    out.write(f"       {p} -a <input_file.(arc|arz|gdc|gst|gsh)>\n")
    out.write("\n")
    out.write("Options:\n")
    out.write("  -V, --version   Show version and exit\n")
    out.write("  -v, --verbose   Print load/search progress to stderr\n")
    out.write("  --lenient       Resynchronise on broken save blocks instead of failing\n")
    out.write("  --max-workers   Limit parallel workers (default: auto)\n")
    out.write("  --config        Use a specific configuration file\n")
    out.write("\n")
    out.write("Modes:\n")
    out.write("  (default)       Search stashes and characters for items matching the term\n")
    out.write("  -a, --analyze   Print a summary of one archive, save or stash file\n")
    out.write("\n")
    out.write("Configuration (key = value):\n")
    out.write("  installation_dir  Game installation directory\n")
    out.write("  save_dir          Save directory (holding main/ and transfer.gst)\n")
    out.write("  language          Localization language (default: EN)\n")


def _usage_short(out=None):
    if out is None:
        out = sys.stderr
    p = _prog()
    out.write(f"{p} {_get_version()}\n")
    out.write(
        f"usage: {p} [-h] [-V|--version] [-v|--verbose] [--lenient] [--max-workers N] [--config PATH] <search term...>\n"
    )
    out.write(f"Try '{p} --help' for more information.\n")


def _parse_search_args(argv):
    opts = {"verbose": False, "strict": True, "max_workers": None, "config": None}
    words = []
    it = iter(argv)
    for a in it:
        if a in ("-v", "--verbose"):
            opts["verbose"] = True
        elif a == "--lenient":
            opts["strict"] = False
        elif a in ("--max-workers", "--config"):
            try:
                val = next(it)
            except StopIteration:
                sys.stderr.write(f"{_prog()}: {a} requires a value\n")
                return None, None
            if a == "--config":
                opts["config"] = val
                continue
            try:
                opts["max_workers"] = int(val)
            except ValueError:
                sys.stderr.write(f"{_prog()}: --max-workers expects an integer: {val}\n")
                return None, None
        elif a.startswith("-") and len(a) > 1:
            sys.stderr.write(f"{_prog()}: unknown option: {a}\n")
            return None, None
        else:
            words.append(a)
    return opts, " ".join(words).strip().lower()


def _search(argv):
    from .config import Config, ConfigError
    from .parallel import load_all, search_all

    opts, term = _parse_search_args(argv)
    if opts is None:
        return 2
    if not term:
        sys.stderr.write(f"{_prog()}: missing search term\n")
        return 2
    try:
        cfg = Config.load(opts["config"])
    except ConfigError as e:
        sys.stderr.write(f"{_prog()}: {e}\n")
        return 2

    res = load_all(
        cfg.database_files(),
        cfg.localization_files(),
        cfg.save_files(),
        cfg.stash_files(),
        max_workers=opts["max_workers"],
        strict=opts["strict"],
        verbose=opts["verbose"],
    )
    for hit in search_all(res, term, max_workers=opts["max_workers"], verbose=opts["verbose"]):
        print(hit)
    return 0


def main(argv=None):
    if argv is None:
        argv = sys.argv[1:]
    if argv and argv[0] in ("-V", "--version", "version"):
        _print_version()
        return 0
    if not argv:
        _usage_short()
        return 0
    if argv[0] in ("-h", "--help", "help"):
        _usage()
        return 0

    if argv[0] in ("-a", "--analyze"):
        from . import analyze

        rc = analyze.main(argv[1:])
        if rc == 2:
            _usage_short()
        return rc

    rc = _search(argv)
    if rc == 2:
        _usage_short()
    return rc


if __name__ == "__main__":
    raise SystemExit(main())
