import os
from concurrent.futures import ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Tuple

from .arc import read_arc
from .arz import Affix, Item, read_arz
from .common import eprint, get_max_workers
from .save import Character, Stash, read_character, read_stash
from .search import Hit, ItemLookup, character_locations, stash_locations


@dataclass
class Catalog:
    items: Dict[str, Item] = field(default_factory=dict)
    affixes: Dict[str, Affix] = field(default_factory=dict)
    localization: Dict[str, str] = field(default_factory=dict)


@dataclass
class LoadResult:
    catalog: Catalog
    characters: List[Character] = field(default_factory=list)
    stashes: List[Stash] = field(default_factory=list)
    errors: List[Tuple[str, Exception]] = field(default_factory=list)


def merge_maps(maps, out: Optional[Dict] = None) -> Dict:
    """Merge per-file maps in the given order; later maps overwrite earlier keys."""
    if out is None:
        out = {}
    for m in maps:
        out.update(m)
    return out


def _task(fn: Callable, path: str, *args):
    try:
        return (path, fn(path, *args), None)
    except Exception as e:
        return (path, None, e)


def _database_task(path: str, record_workers: int):
    return read_arz(path, max_workers=record_workers)


def _character_task(path: str, strict: bool):
    return read_character(path, strict=strict)


def _stash_task(path: str, strict: bool):
    return read_stash(path, strict=strict)


def _submit(executor, fn, paths, *args) -> list:
    return [executor.submit(_task, fn, p, *args) for p in paths]


def _collect(results, errors: list, what: str, verbose: bool) -> list:
    out = []
    for path, res, err in results:
        if err is not None:
            errors.append((path, err))
            eprint(f"FAIL: {path}: {err}")
            continue
        if verbose:
            eprint(f"[LOAD] {what}: {os.path.basename(path)}")
        out.append(res)
    return out


def load_all(
    db_paths: List[str],
    loc_paths: List[str],
    save_paths: List[str] = (),
    stash_paths: List[str] = (),
    max_workers: Optional[int] = None,
    strict: bool = True,
    verbose: bool = False,
) -> LoadResult:
    """Decode every input file concurrently and merge the per-file results.

    Each category is joined before it is merged, and merged in input order.
    A file that fails to decode is reported and skipped; the rest continue.
    """
    workers = get_max_workers(max_workers)
    record_workers = max(1, workers // max(1, len(db_paths)))
    errors = []
    if verbose:
        total = len(db_paths) + len(loc_paths) + len(save_paths) + len(stash_paths)
        eprint(f"[LOAD] Decoding {total} files with {workers} workers...")

    with ThreadPoolExecutor(max_workers=workers) as executor:
        futs = {
            "db": _submit(executor, _database_task, db_paths, record_workers),
            "loc": _submit(executor, read_arc, loc_paths),
            "save": _submit(executor, _character_task, save_paths, strict),
            "stash": _submit(executor, _stash_task, stash_paths, strict),
        }
        wait([f for fs in futs.values() for f in fs])
        results = {k: [f.result() for f in fs] for k, fs in futs.items()}

    catalog = Catalog()
    for items, affixes in _collect(results["db"], errors, "database", verbose):
        merge_maps((items,), catalog.items)
        merge_maps((affixes,), catalog.affixes)
    merge_maps(_collect(results["loc"], errors, "localization", verbose), catalog.localization)
    characters = _collect(results["save"], errors, "character", verbose)
    stashes = _collect(results["stash"], errors, "stash", verbose)

    if verbose:
        eprint(
            f"[LOAD] {len(catalog.items)} items, {len(catalog.affixes)} affixes, "
            f"{len(catalog.localization)} tags, {len(characters)} characters, "
            f"{len(stashes)} stashes"
        )
    return LoadResult(
        catalog=catalog, characters=characters, stashes=stashes, errors=errors
    )


def search_all(
    result: LoadResult,
    term: str,
    max_workers: Optional[int] = None,
    verbose: bool = False,
) -> List[Hit]:
    lookup = ItemLookup(result.catalog, term)
    locations = []
    for st in result.stashes:
        locations.extend(stash_locations(st))
    for ch in result.characters:
        locations.extend(character_locations(ch))
    if not locations:
        return []

    workers = get_max_workers(max_workers)
    if verbose:
        eprint(f"[SEARCH] {len(locations)} locations with {workers} workers...")

    with ThreadPoolExecutor(max_workers=workers) as executor:
        futures = [executor.submit(lookup.search_location, loc) for loc in locations]
        wait(futures)

    hits = []
    for f in futures:
        found, unresolved = f.result()
        for record in unresolved:
            eprint(f"No tag found for {record}")
        hits.extend(found)
    if verbose:
        eprint(f"[SEARCH] {len(hits)} matches")
    return hits
