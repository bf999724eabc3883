import pytest
from gd_item_locator.arz import Item
from gd_item_locator.common import get_max_workers
from gd_item_locator.parallel import load_all, merge_maps

from gdfix import build_arc, build_arz, build_character, build_stash, item


def _db(tmp_path, name, records):
    p = tmp_path / name
    p.write_bytes(build_arz(records, compress=True))
    return str(p)


def _loc(tmp_path, name, text):
    p = tmp_path / name
    p.write_bytes(build_arc([("tags_items.txt", text.encode("utf-8"))]))
    return str(p)


def _boots(tag):
    return (
        "records/items/gearfeet/a01_feet01.dbr",
        "ArmorProtective_Feet",
        [("itemNameTag", 2, [tag])],
    )


def test_merge_later_wins():
    a = {"x": 1, "shared": "base"}
    b = {"y": 2, "shared": "expansion"}
    assert merge_maps([a, b]) == {"x": 1, "y": 2, "shared": "expansion"}
    assert merge_maps([b, a])["shared"] == "base"
    out = {"z": 0}
    assert merge_maps([a], out) is out
    assert out["z"] == 0


def test_load_all_merges_in_input_order(tmp_path):
    base = _db(tmp_path, "database.arz", [_boots("tagBase")])
    gdx1 = _db(tmp_path, "GDX1.arz", [_boots("tagExpansion")])
    loc1 = _loc(tmp_path, "Text_EN.arc", "tagBase=Base Boots\nk=1\n")
    loc2 = _loc(tmp_path, "Text_EN_gdx1.arc", "tagExpansion=New Boots\nk=2\n")

    res = load_all([base, gdx1], [loc1, loc2], max_workers=4)
    assert res.errors == []
    assert res.catalog.items["records/items/gearfeet/a01_feet01.dbr"].tag == "tagExpansion"
    assert res.catalog.localization["k"] == "2"

    res = load_all([gdx1, base], [loc2, loc1], max_workers=1)
    assert res.catalog.items["records/items/gearfeet/a01_feet01.dbr"].tag == "tagBase"
    assert res.catalog.localization["k"] == "1"


def test_corrupt_file_does_not_stop_siblings(tmp_path, capsys):
    good = _db(tmp_path, "database.arz", [_boots("tagBase")])
    bad = tmp_path / "GDX1.arz"
    bad.write_bytes(b"\x02\x00\x07\x00" + bytes(20))
    missing = str(tmp_path / "GDX2.arz")

    res = load_all([good, str(bad), missing], [], max_workers=3)
    assert res.catalog.items == {
        "records/items/gearfeet/a01_feet01.dbr": Item(
            path="records/items/gearfeet/a01_feet01.dbr", tag="tagBase"
        )
    }
    failed = [p for p, _ in res.errors]
    assert failed == [str(bad), missing]
    assert isinstance(res.errors[1][1], OSError)
    err = capsys.readouterr().err
    assert f"FAIL: {bad}" in err
    assert f"FAIL: {missing}" in err


def test_saves_and_stashes(tmp_path, capsys):
    gdc = tmp_path / "player.gdc"
    gdc.write_bytes(build_character(name="Ulric"))
    broken = tmp_path / "broken.gdc"
    broken.write_bytes(build_character()[:40])
    gst = tmp_path / "transfer.gst"
    gst.write_bytes(build_stash([[item("records/items/a.dbr")]]))

    res = load_all([], [], [str(gdc), str(broken)], [str(gst)], verbose=True)
    assert [c.name for c in res.characters] == ["Ulric"]
    assert len(res.stashes) == 1
    assert [p for p, _ in res.errors] == [str(broken)]
    err = capsys.readouterr().err
    assert "[LOAD] character: player.gdc" in err
    assert "[LOAD] stash: transfer.gst" in err


@pytest.mark.parametrize("arg,env,expected", [(3, None, 3), (None, "5", 5), (0, "7", 7)])
def test_get_max_workers(monkeypatch, arg, env, expected):
    if env is None:
        monkeypatch.delenv("GDLC_MAX_WORKERS", raising=False)
    else:
        monkeypatch.setenv("GDLC_MAX_WORKERS", env)
    assert get_max_workers(arg) == expected


def test_get_max_workers_default(monkeypatch):
    monkeypatch.delenv("GDLC_MAX_WORKERS", raising=False)
    n = get_max_workers()
    assert 1 <= n <= 32
