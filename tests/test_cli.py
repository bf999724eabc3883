import pytest
from gd_item_locator import __version__
from gd_item_locator.__main__ import main

from gdfix import build_arc, build_arz, build_stash, item

BOOTS = "records/items/gearfeet/a01_feet01.dbr"


@pytest.fixture
def game(tmp_path, monkeypatch):
    install = tmp_path / "game"
    (install / "database").mkdir(parents=True)
    (install / "resources").mkdir()
    (install / "database" / "database.arz").write_bytes(
        build_arz([(BOOTS, "ArmorProtective_Feet", [("itemNameTag", 2, ["tagBoots"])])])
    )
    (install / "resources" / "Text_EN.arc").write_bytes(
        build_arc([("tags_items.txt", b"tagBoots=Boots of Swiftness\n")])
    )
    saves = tmp_path / "saves"
    saves.mkdir()
    (saves / "transfer.gst").write_bytes(build_stash([[], [item(BOOTS, stack=3)]]))
    conf = tmp_path / "gdlc.conf"
    conf.write_text(f"installation_dir = {install}\nsave_dir = {saves}\n", encoding="utf-8")
    monkeypatch.setenv("GDLC_CONFIG", str(conf))
    return tmp_path


def test_version(capsys):
    assert main(["-V"]) == 0
    assert capsys.readouterr().out.strip().endswith(__version__)


def test_help(capsys):
    assert main(["--help"]) == 0
    assert "usage:" in capsys.readouterr().err


def test_missing_config(tmp_path, monkeypatch, capsys):
    monkeypatch.setenv("GDLC_CONFIG", str(tmp_path / "absent.conf"))
    assert main(["boots"]) == 2
    captured = capsys.readouterr()
    assert captured.out == ""
    assert "absent.conf" in captured.err


def test_missing_config_key(tmp_path, monkeypatch, capsys):
    conf = tmp_path / "gdlc.conf"
    conf.write_text("installation_dir = /nowhere\n", encoding="utf-8")
    monkeypatch.setenv("GDLC_CONFIG", str(conf))
    assert main(["boots"]) == 2
    assert "save_dir" in capsys.readouterr().err


@pytest.mark.parametrize(
    "argv", [["--max-workers"], ["--max-workers", "x", "a"], ["--bogus", "a"], ["-v"]]
)
def test_usage_errors(argv, game):
    assert main(argv) == 2


def test_search(game, capsys):
    assert main(["Boots", "of", "SWIFTNESS"]) == 0
    out = capsys.readouterr().out.splitlines()
    assert out == ["Shared stash tab 2: (x3) Boots of Swiftness"]


def test_search_verbose_and_explicit_config(game, monkeypatch, capsys):
    conf = game / "gdlc.conf"
    monkeypatch.delenv("GDLC_CONFIG")
    rc = main(["-v", "--lenient", "--max-workers", "2", "--config", str(conf), "boots"])
    assert rc == 0
    captured = capsys.readouterr()
    assert "[LOAD]" in captured.err
    assert "[SEARCH]" in captured.err
    assert "Boots of Swiftness" in captured.out


def test_analyze(game, capsys):
    assert main(["-a", str(game / "saves" / "transfer.gst")]) == 0
    out = capsys.readouterr().out
    assert "==== Analyze ====" in out
    assert "tabs: 2" in out


def test_analyze_archives(game, capsys):
    assert main(["-a", str(game / "game" / "database" / "database.arz")]) == 0
    assert "items: 1" in capsys.readouterr().out
    assert main(["-a", str(game / "game" / "resources" / "Text_EN.arc")]) == 0
    assert "manifest_entries: 1" in capsys.readouterr().out


def test_analyze_failure(tmp_path, capsys):
    p = tmp_path / "player.gdc"
    p.write_bytes(b"\x00" * 12)
    assert main(["-a", str(p)]) == 1
    assert "analyze failed" in capsys.readouterr().err
