"""Character save (.gdc) and shared stash (.gst/.gsh) decoding.

Both files are cipher streams (see ``crypt``) made of nested blocks. Each
block opened here is closed by exactly one ``read_block_end`` in reverse
order of opening.
"""

from dataclasses import dataclass, field
from typing import List

from .crypt import CipherReader
from .reader import FormatError

CHARACTER_MAGIC = 0x58434447
CHARACTER_VERSION = 2
STASH_FILE_VERSION = 2
STASH_VERSION = 5
CHARACTER_STASH_VERSION = 6
INVENTORY_VERSION = 4
INFO_VERSION = 5

TAG_BAG = 0
TAG_INFO = 1
TAG_BIO = 2
TAG_INVENTORY = 3
TAG_HEADER = 4
TAG_CHARACTER_STASH = 4
TAG_STASH = 18

EQUIPMENT_SLOTS = 12
WEAPON_SET_SLOTS = 2


@dataclass
class StashItem:
    base_name: str
    prefix_name: str = ""
    suffix_name: str = ""
    modifier_name: str = ""
    transmute_name: str = ""
    seed: int = 0
    component_name: str = ""
    relic_completion_bonus: str = ""
    relic_seed: int = 0
    augment_name: str = ""
    unknown: int = 0
    augment_seed: int = 0
    materia_combines: int = 0
    stack_count: int = 1
    x: int = 0
    y: int = 0


@dataclass
class EquipmentSlot:
    item: StashItem
    attached: int = 0


@dataclass
class StashTab:
    width: int
    height: int
    items: List[StashItem] = field(default_factory=list)


@dataclass
class Bag:
    flag: int
    items: List[StashItem] = field(default_factory=list)


@dataclass
class Inventory:
    bags: List[Bag]
    equipment: List[EquipmentSlot]
    weapon_set_1: List[EquipmentSlot]
    weapon_set_2: List[EquipmentSlot]
    focused: int = 0
    selected: int = 0
    flag: int = 1
    use_alternate: int = 0
    alternate_1: int = 0
    alternate_2: int = 0


@dataclass
class CharacterHeader:
    name: str
    sex: bool
    class_tag: str
    level: int
    hardcore: bool


@dataclass
class CharacterInfo:
    in_main_quest: int
    has_been_in_game: int
    difficulty: int
    greatest_difficulty: int
    money: int
    greatest_survival_difficulty: int
    current_tribute: int
    compass_state: int
    skill_window_show_help: int
    weapon_swap_active: int
    weapon_swap_enabled: int
    texture: str
    loot_filter: bytes


@dataclass
class Character:
    path: str
    header: CharacterHeader
    info: CharacterInfo
    inventory: Inventory
    stash_tabs: List[StashTab] = field(default_factory=list)

    @property
    def name(self) -> str:
        return self.header.name


@dataclass
class Stash:
    path: str
    version: int
    mod: str
    expansion: bool
    tabs: List[StashTab] = field(default_factory=list)


def _expect(what: str, got: int, want: int) -> None:
    if got != want:
        raise FormatError(f"{what}: expected {want}, got {got}")


def _open(d: CipherReader, tag: int, what: str):
    got, block = d.read_block_start()
    _expect(f"{what} block tag", got, tag)
    return block


def read_stash_item(d: CipherReader) -> StashItem:
    return StashItem(
        base_name=d.read_str(),
        prefix_name=d.read_str(),
        suffix_name=d.read_str(),
        modifier_name=d.read_str(),
        transmute_name=d.read_str(),
        seed=d.read_int(),
        component_name=d.read_str(),
        relic_completion_bonus=d.read_str(),
        relic_seed=d.read_int(),
        augment_name=d.read_str(),
        unknown=d.read_int(),
        augment_seed=d.read_int(),
        materia_combines=d.read_int(),
        stack_count=d.read_int(),
        x=d.read_int(),
        y=d.read_int(),
    )


def read_stash_tab(d: CipherReader) -> StashTab:
    _tag, block = d.read_block_start()
    width = d.read_int()
    height = d.read_int()
    n = d.read_int()
    tab = StashTab(width=width, height=height)
    for _ in range(n):
        tab.items.append(read_stash_item(d))
    d.read_block_end(block)
    return tab


def _read_slot(d: CipherReader) -> EquipmentSlot:
    return EquipmentSlot(item=read_stash_item(d), attached=d.read_byte())


def read_bag(d: CipherReader) -> Bag:
    block = _open(d, TAG_BAG, "bag")
    bag = Bag(flag=d.read_byte())
    n = d.read_int()
    for _ in range(n):
        bag.items.append(read_stash_item(d))
    d.read_block_end(block)
    return bag


def read_inventory(d: CipherReader) -> Inventory:
    block = _open(d, TAG_INVENTORY, "inventory")
    _expect("inventory version", d.read_int(), INVENTORY_VERSION)
    flag = d.read_byte()
    if flag == 0:
        raise FormatError("inventory: sentinel flag is 0, cannot continue")
    num_bags = d.read_int()
    focused = d.read_int()
    selected = d.read_int()
    bags = [read_bag(d) for _ in range(num_bags)]
    use_alternate = d.read_byte()
    equipment = [_read_slot(d) for _ in range(EQUIPMENT_SLOTS)]
    alternate_1 = d.read_byte()
    weapon_set_1 = [_read_slot(d) for _ in range(WEAPON_SET_SLOTS)]
    alternate_2 = d.read_byte()
    weapon_set_2 = [_read_slot(d) for _ in range(WEAPON_SET_SLOTS)]
    d.read_block_end(block)
    return Inventory(
        bags=bags,
        equipment=equipment,
        weapon_set_1=weapon_set_1,
        weapon_set_2=weapon_set_2,
        focused=focused,
        selected=selected,
        flag=flag,
        use_alternate=use_alternate,
        alternate_1=alternate_1,
        alternate_2=alternate_2,
    )


def read_character_header(d: CipherReader) -> CharacterHeader:
    block = _open(d, TAG_HEADER, "header")
    h = CharacterHeader(
        name=d.read_wide_str(),
        sex=d.read_bool(),
        class_tag=d.read_str(),
        level=d.read_int(),
        hardcore=d.read_bool(),
    )
    d.read_block_end(block)
    return h


def read_character_info(d: CipherReader) -> CharacterInfo:
    block = _open(d, TAG_INFO, "info")
    _expect("info version", d.read_int(), INFO_VERSION)
    in_main_quest = d.read_byte()
    has_been_in_game = d.read_byte()
    difficulty = d.read_byte()
    greatest_difficulty = d.read_byte()
    money = d.read_int()
    greatest_survival_difficulty = d.read_byte()
    current_tribute = d.read_int()
    compass_state = d.read_byte()
    skill_window_show_help = d.read_byte()
    weapon_swap_active = d.read_byte()
    weapon_swap_enabled = d.read_byte()
    texture = d.read_str()
    n = d.read_int()
    loot_filter = bytes(d.read_byte() for _ in range(n))
    d.read_block_end(block)
    return CharacterInfo(
        in_main_quest=in_main_quest,
        has_been_in_game=has_been_in_game,
        difficulty=difficulty,
        greatest_difficulty=greatest_difficulty,
        money=money,
        greatest_survival_difficulty=greatest_survival_difficulty,
        current_tribute=current_tribute,
        compass_state=compass_state,
        skill_window_show_help=skill_window_show_help,
        weapon_swap_active=weapon_swap_active,
        weapon_swap_enabled=weapon_swap_enabled,
        texture=texture,
        loot_filter=loot_filter,
    )


def skip_bio(d: CipherReader) -> None:
    block = _open(d, TAG_BIO, "bio")
    d.read_int()
    d.skip_to(block)
    d.read_block_end(block)


def read_character_stash(d: CipherReader) -> List[StashTab]:
    block = _open(d, TAG_CHARACTER_STASH, "character stash")
    _expect("character stash version", d.read_int(), CHARACTER_STASH_VERSION)
    n = d.read_int()
    tabs = [read_stash_tab(d) for _ in range(n)]
    d.read_block_end(block)
    return tabs


def read_character(path: str, data: bytes = None, strict: bool = True) -> Character:
    if data is None:
        d = CipherReader.from_file(path, strict=strict)
    else:
        d = CipherReader(data, strict=strict)
    _expect("character magic", d.read_int(), CHARACTER_MAGIC)
    _expect("character version", d.read_int(), CHARACTER_VERSION)
    header = read_character_header(d)
    info = read_character_info(d)
    skip_bio(d)
    inventory = read_inventory(d)
    stash_tabs = read_character_stash(d) if d.remaining > 0 else []
    return Character(
        path=str(path),
        header=header,
        info=info,
        inventory=inventory,
        stash_tabs=stash_tabs,
    )


def read_stash(path: str, data: bytes = None, strict: bool = True) -> Stash:
    if data is None:
        d = CipherReader.from_file(path, strict=strict)
    else:
        d = CipherReader(data, strict=strict)
    _expect("stash file version", d.read_int(), STASH_FILE_VERSION)
    block = _open(d, TAG_STASH, "stash")
    version = d.read_int()
    _expect("stash version", version, STASH_VERSION)
    _expect("stash sentinel", d.next_int(), 0)
    mod = d.read_str()
    expansion = False
    if version >= 5:
        expansion = d.read_bool()
    n = d.read_int()
    tabs = [read_stash_tab(d) for _ in range(n)]
    d.read_block_end(block)
    return Stash(path=str(path), version=version, mod=mod, expansion=expansion, tabs=tabs)
