import pytest
from gd_item_locator.common import block_decompress, eprint, hx, preview
from gd_item_locator.reader import FormatError

from gdfix import lz4_pack


def test_block_decompress():
    data = b"Boots of Swiftness " * 50
    assert block_decompress(lz4_pack(data), len(data)) == data
    assert block_decompress(b"abcd", 4) == b"abcd"


def test_block_decompress_errors():
    data = b"Boots of Swiftness " * 50
    with pytest.raises(FormatError, match="lz4"):
        block_decompress(b"\xff" * 16, 64)
    with pytest.raises(FormatError, match="lz4"):
        block_decompress(lz4_pack(data), len(data) + 10)


@pytest.mark.parametrize(
    "v,s", [(0, "0x00000000"), (0xBEEF, "0x0000BEEF"), (1 << 36, "0x1000000000"), (-1, "-")]
)
def test_hx(v, s):
    assert hx(v) == s


def test_preview():
    assert preview(["a", "b"]) == "'a', 'b'"
    assert preview([str(i) for i in range(10)], n=2) == "'0', '1' ..."


def test_eprint(capsys):
    eprint("[LOAD] hello")
    assert capsys.readouterr().err == "[LOAD] hello\n"
