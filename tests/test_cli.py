import struct

import pytest
from PIL import Image

from lmp_converter import cli
from lmp_converter.lmp import LMPHeader, decode, encode
from lmp_converter.palette import DOOM_PALETTE, PALETTE_BYTES, TRANSPARENT_INDEX

T = TRANSPARENT_INDEX


def _write_sample_lmp(path, offsets=(0, 0)):
    indices = [T, 4, 4, 176, 176, T, 200, 231, 231]
    path.write_bytes(encode(indices, 3, 3, *offsets))
    return path


def test_to_png_then_from_png(tmp_path, capsys) -> None:
    lmp_path = _write_sample_lmp(tmp_path / "TROOA1.lmp", offsets=(5, -6))
    out_dir = tmp_path / "png"

    assert cli.main(["to-png", str(lmp_path), "-o", str(out_dir)]) == 0
    png_path = out_dir / "TROOA1.png"
    assert png_path.exists()
    assert f"wrote {png_path}" in capsys.readouterr().out

    with Image.open(png_path) as image:
        assert image.mode == "RGBA"
        assert image.size == (3, 3)
        assert image.getpixel((0, 0))[3] == 0
        assert image.getpixel((1, 0)) == (*DOOM_PALETTE[4], 255)

    lmp_dir = tmp_path / "lmp"
    assert cli.main(["from-png", str(out_dir), "-o", str(lmp_dir), "--offset", "5", "-6"]) == 0
    assert (lmp_dir / "TROOA1.lmp").read_bytes() == lmp_path.read_bytes()


def test_from_png_with_mode(tmp_path) -> None:
    png_path = tmp_path / "title.png"
    Image.new("RGB", (5, 4), (120, 120, 120)).save(png_path)

    assert cli.main(["from-png", str(png_path), "--mode", "atkinson"]) == 0

    decoded = decode((tmp_path / "title.lmp").read_bytes())
    assert decoded.header == LMPHeader(5, 4, 0, 0)
    assert set(decoded.transparency) == {0}


def test_existing_output_requires_force(tmp_path, capsys) -> None:
    lmp_path = _write_sample_lmp(tmp_path / "a.lmp")
    target = tmp_path / "a.png"
    target.write_bytes(b"keep")

    assert cli.main(["to-png", str(lmp_path)]) == 1
    assert "--force" in capsys.readouterr().err
    assert target.read_bytes() == b"keep"

    assert cli.main(["to-png", str(lmp_path), "--force"]) == 0
    assert target.read_bytes() != b"keep"


def test_unsupported_input(tmp_path, capsys) -> None:
    other = tmp_path / "notes.txt"
    other.write_text("hello")

    assert cli.main(["to-png", str(other)]) == 1
    assert "Unsupported file type" in capsys.readouterr().err

    assert cli.main(["to-png", str(tmp_path / "missing.lmp")]) == 1
    assert "does not exist" in capsys.readouterr().err


def test_palette_page_without_palette(tmp_path, capsys) -> None:
    lmp_path = _write_sample_lmp(tmp_path / "a.lmp")

    assert cli.main(["to-png", str(lmp_path), "--palette-page", "2"]) == 1
    assert "--palette" in capsys.readouterr().err


def test_custom_palette_page(tmp_path) -> None:
    lmp_path = _write_sample_lmp(tmp_path / "a.lmp")
    palette_path = tmp_path / "PLAYPAL.lmp"
    palette_path.write_bytes(DOOM_PALETTE.data + bytes([9]) * PALETTE_BYTES)

    args = ["to-png", str(lmp_path), "--palette", str(palette_path), "--palette-page", "1"]
    assert cli.main(args) == 0

    with Image.open(tmp_path / "a.png") as image:
        assert image.getpixel((1, 0)) == (9, 9, 9, 255)


def test_offsets_command(tmp_path, capsys) -> None:
    lmp_path = _write_sample_lmp(tmp_path / "a.lmp")
    before = lmp_path.read_bytes()

    assert cli.main(["offsets", str(lmp_path), "-16", "32"]) == 0

    after = lmp_path.read_bytes()
    assert LMPHeader.unpack(after) == LMPHeader(3, 3, -16, 32)
    assert after[8:] == before[8:]
    assert "offsets -16,32" in capsys.readouterr().out


def test_info_command(tmp_path, capsys) -> None:
    lmp_path = _write_sample_lmp(tmp_path / "a.lmp", offsets=(1, 2))

    assert cli.main(["info", str(lmp_path)]) == 0

    out = capsys.readouterr().out
    assert "3x3 offset=(1,2) posts=4 anchors=0" in out
    assert f"size={lmp_path.stat().st_size}" in out


def test_truncated_lump_is_reported_as_warning(tmp_path, capsys) -> None:
    data = encode([5] * 16, 4, 4)[:30]
    lmp_path = tmp_path / "broken.lmp"
    lmp_path.write_bytes(data)

    assert cli.main(["to-png", str(lmp_path)]) == 0

    captured = capsys.readouterr()
    assert "Warning:" in captured.err
    assert "column(s) ended before their terminator" in captured.err
    assert (tmp_path / "broken.png").exists()


def test_invalid_lump_fails(tmp_path, capsys) -> None:
    lmp_path = tmp_path / "empty.lmp"
    lmp_path.write_bytes(struct.pack("<hh", 0, 0))

    assert cli.main(["info", str(lmp_path)]) == 1
    assert "Invalid LMP data" in capsys.readouterr().err


def test_palette_command(tmp_path, capsys) -> None:
    palette_path = tmp_path / "PLAYPAL.lmp"
    palette_path.write_bytes(DOOM_PALETTE.data * 14 + b"\x00\x01")
    swatch = tmp_path / "swatch" / "page3.png"

    assert cli.main(["palette", str(palette_path), "--page", "3", "--swatch", str(swatch)]) == 0

    out = capsys.readouterr().out
    assert f"{PALETTE_BYTES * 14 + 2} bytes, 14 palette page(s)" in out
    assert "2 trailing byte(s)" in out
    with Image.open(swatch) as image:
        assert image.size == (128, 128)


def test_palette_command_bad_page(tmp_path, capsys) -> None:
    palette_path = tmp_path / "one.pal"
    palette_path.write_bytes(DOOM_PALETTE.data)

    assert cli.main(["palette", str(palette_path), "--page", "1", "--swatch", str(tmp_path / "s.png")]) == 1
    assert capsys.readouterr().err


def test_unknown_mode_is_rejected_by_argparse() -> None:
    with pytest.raises(SystemExit):
        cli.main(["from-png", "x.png", "--mode", "sierra"])
