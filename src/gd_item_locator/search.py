from dataclasses import dataclass
from typing import List, Optional, Tuple

from .arz import Affix, Item
from .save import Character, Stash, StashItem

HARDCORE_STASH_EXT = ".gsh"


@dataclass(frozen=True)
class CompleteItem:
    name: str
    prefix: Optional[str] = None
    suffix: Optional[str] = None
    level: Optional[int] = None
    quantity: int = 1

    def __str__(self) -> str:
        parts = []
        if self.level is not None:
            parts.append(f"[lvl {self.level}]")
        if self.quantity > 1:
            parts.append(f"(x{self.quantity})")
        for s in (self.prefix, self.name, self.suffix):
            if s:
                parts.append(s)
        return " ".join(parts)


@dataclass(frozen=True)
class Location:
    name: str
    items: Tuple[StashItem, ...]


@dataclass(frozen=True)
class Hit:
    location: str
    item: CompleteItem

    def __str__(self) -> str:
        return f"{self.location}: {self.item}"


def stash_locations(stash: Stash) -> List[Location]:
    label = "Shared stash tab"
    if stash.path.lower().endswith(HARDCORE_STASH_EXT):
        label = "Hardcore shared stash tab"
    return [
        Location(f"{label} {i + 1}", tuple(tab.items)) for i, tab in enumerate(stash.tabs)
    ]


def character_locations(ch: Character) -> List[Location]:
    inv = ch.inventory
    out = [
        Location(f"{ch.name} bag {i + 1}", tuple(bag.items))
        for i, bag in enumerate(inv.bags)
    ]
    out.append(Location(f"Equipped by {ch.name}", tuple(s.item for s in inv.equipment)))
    for i, ws in enumerate((inv.weapon_set_1, inv.weapon_set_2)):
        out.append(Location(f"{ch.name} weapon set {i + 1}", tuple(s.item for s in ws)))
    for i, tab in enumerate(ch.stash_tabs):
        out.append(Location(f"{ch.name} stash tab {i + 1}", tuple(tab.items)))
    return out


class ItemLookup:
    """Resolve save-file items to display names and match them against a term.

    The catalog is only read, so one lookup may be shared by many threads.
    """

    def __init__(self, catalog, term: str):
        self.catalog = catalog
        self.term = term.lower()

    def _affix_name(self, record: str) -> Optional[str]:
        if not record:
            return None
        affix = self.catalog.affixes.get(record)
        if not isinstance(affix, Affix):
            return None
        if affix.name:
            return affix.name
        if affix.tag:
            return self.catalog.localization.get(affix.tag)
        return None

    def lookup_item(self, si: StashItem) -> Optional[CompleteItem]:
        item = self.catalog.items.get(si.base_name)
        if not isinstance(item, Item):
            return None
        name = self.catalog.localization.get(item.tag)
        if name is None:
            return None
        # rare components carry a formatting prefix
        if name.startswith("^k"):
            name = name[2:]
        return CompleteItem(
            name=name,
            prefix=self._affix_name(si.prefix_name),
            suffix=self._affix_name(si.suffix_name),
            level=item.level,
            quantity=si.stack_count,
        )

    def search_location(self, loc: Location) -> Tuple[List[Hit], List[str]]:
        hits = []
        unresolved = []
        for si in loc.items:
            ci = self.lookup_item(si)
            if ci is None:
                if si.base_name:
                    unresolved.append(si.base_name)
                continue
            if self.term in str(ci).lower():
                hits.append(Hit(loc.name, ci))
        return hits, unresolved
