import struct

import pytest

from lmp_converter.errors import FormatError, TruncatedLumpWarning
from lmp_converter.lmp import (
    ByteCursor,
    LMPHeader,
    Post,
    decode,
    encode,
    read_column_posts,
    to_rgba,
)
from lmp_converter.palette import Palette


def _build_lmp(width: int, height: int, columns, offsets=(0, 0)) -> bytes:
    """Assemble LMP bytes from raw per-column post streams."""

    header = struct.pack("<hhhh", width, height, *offsets)
    position = 8 + 4 * width
    table = bytearray()
    for column in columns:
        table += struct.pack("<i", position)
        position += len(column)
    return header + bytes(table) + b"".join(bytes(c) for c in columns)


def test_solid_4x4_layout() -> None:
    data = encode(bytes([5]) * 16, 4, 4)
    column = bytes([0, 4, 0, 5, 5, 5, 5, 0, 0xFF])

    assert data == (
        struct.pack("<hhhh", 4, 4, 0, 0)
        + struct.pack("<4i", 24, 33, 42, 51)
        + column * 4
    )

    columns = read_column_posts(data)
    assert columns == [[Post(0, 0, bytes([5]) * 4)]] * 4

    image = decode(data)
    assert image.pixels == bytearray([5]) * 16
    assert image.transparency == bytearray(16)


def test_header_fields_survive() -> None:
    data = encode(bytes([1]) * 6, 3, 2, offset_x=-12, offset_y=300)

    header = decode(data).header
    assert header == LMPHeader(3, 2, -12, 300)
    assert LMPHeader.unpack(header.pack()) == header


@pytest.mark.parametrize(
    "data",
    [
        b"",
        bytes(7),
        struct.pack("<hhhh", 0, 4, 0, 0),
        struct.pack("<hhhh", 4, -1, 0, 0),
        struct.pack("<hhhh", -3, -3, 0, 0) + bytes(64),
    ],
)
def test_format_errors(data) -> None:
    with pytest.raises(FormatError):
        decode(data)


def test_empty_canvas_is_transparent() -> None:
    data = _build_lmp(2, 3, [[0xFF], [0xFF]])

    image = decode(data)
    assert image.pixels == bytearray(6)
    assert image.transparency == bytearray([1]) * 6
    assert image.is_transparent(1, 2)


def test_index_247_is_kept_when_stored_in_a_post() -> None:
    data = _build_lmp(1, 2, [[0, 2, 0, 247, 3, 0, 0xFF]])

    image = decode(data)
    assert list(image.pixels) == [247, 3]
    assert list(image.transparency) == [0, 0]


def test_truncated_post_keeps_readable_pixels() -> None:
    data = encode(bytes([5]) * 16, 4, 4)[:30]

    with pytest.warns(TruncatedLumpWarning, match="4 of 4"):
        image = decode(data)

    assert [image.pixel(0, y) for y in range(3)] == [5, 5, 5]
    assert image.is_transparent(0, 3)
    assert all(image.is_transparent(x, y) for x in range(1, 4) for y in range(4))


def test_truncated_offset_table() -> None:
    data = struct.pack("<hhhh", 2, 2, 0, 0) + struct.pack("<i", 12)[:2]

    with pytest.warns(TruncatedLumpWarning):
        image = decode(data)

    assert image.transparency == bytearray([1]) * 4


def test_out_of_range_column_offsets() -> None:
    data = struct.pack("<hhhh", 2, 1, 0, 0) + struct.pack("<ii", -5, 1000) + b"\xff"

    with pytest.warns(TruncatedLumpWarning, match="2 of 2"):
        image = decode(data)

    assert image.transparency == bytearray([1, 1])


def test_rows_past_height_are_clipped() -> None:
    data = _build_lmp(1, 2, [[0, 4, 0, 9, 9, 9, 9, 0, 0xFF]])

    image = decode(data)
    assert list(image.pixels) == [9, 9]
    assert list(image.transparency) == [0, 0]


def test_relative_topdelta_reaches_tall_rows() -> None:
    column = [
        10, 1, 0, 7, 0,  # absolute row 10
        254, 0, 0, 0,  # re-anchor at row 254
        5, 1, 0, 8, 0,  # 5 <= 254, so row 259
        0xFF,
    ]
    data = _build_lmp(1, 300, [column])

    posts = read_column_posts(data)[0]
    assert [(p.topdelta, p.row, p.length) for p in posts] == [
        (10, 10, 1),
        (254, 254, 0),
        (5, 259, 1),
    ]

    image = decode(data)
    opaque = [y for y in range(300) if not image.is_transparent(0, y)]
    assert opaque == [10, 259]
    assert image.pixel(0, 259) == 8


def test_byte_cursor_bounds() -> None:
    cursor = ByteCursor(b"\x01\x02\x03", 1)

    assert cursor.read_u8() == 2
    assert cursor.read(5) == b"\x03"
    assert cursor.exhausted
    assert cursor.read_u8() is None
    assert cursor.skip(1) is False


def test_to_rgba_uses_transparency_mask() -> None:
    colors = [(i, i, i) for i in range(256)]
    colors[3] = (10, 20, 30)
    palette = Palette.from_colors(colors)
    data = _build_lmp(1, 2, [[0, 1, 0, 3, 0, 0xFF]])

    assert to_rgba(decode(data), palette) == bytes([10, 20, 30, 255, 0, 0, 0, 0])
