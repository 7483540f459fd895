"""256-color palettes used to interpret and produce LMP pixel indices."""

# Reference: palette resource layout
# Offset        | Size        | Notes
# --------------|-------------|-----------------------------------------------
# 0x000         | 768 bytes   | page 0: 256 x (R, G, B)
# 0x300         | 768 bytes   | page 1 (optional), and so on for every page
#
# PLAYPAL lumps hold 14 pages (normal, pain tints, pickup tints, radiation
# suit); plain .pal files usually hold a single page.

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterator, List, Sequence, Tuple

from PIL import Image

from .errors import PaletteError

Color = Tuple[int, int, int]

PALETTE_SIZE = 256
PALETTE_BYTES = PALETTE_SIZE * 3
TRANSPARENT_INDEX = 247

# First PLAYPAL page. Index ranges:
#   0-15   : black, browns, dark greens, a few greys, white at 4
#  16-47   : pink to dark red
#  48-79   : skin tones
#  80-111  : greys
# 112-127  : greens
# 128-167  : browns, olives, gold
# 168-191  : light reds, reds
# 192-207  : light blues, blues
# 208-231  : oranges, yellows
# 232-247  : dark oranges, dark browns, dark blues (247 is black, the transparent marker)
# 248-255  : orange, yellow, magentas, salmon
DOOM_COLORS: List[Color] = [
    (0, 0, 0), (31, 23, 11), (23, 15, 7), (75, 75, 75),
    (255, 255, 255), (27, 27, 27), (19, 19, 19), (11, 11, 11),
    (7, 7, 7), (47, 55, 31), (35, 43, 15), (23, 31, 7),
    (15, 23, 0), (79, 59, 43), (71, 51, 35), (63, 43, 27),
    # 16
    (255, 183, 183), (247, 171, 171), (243, 163, 163), (235, 151, 151),
    (231, 143, 143), (223, 135, 135), (219, 123, 123), (211, 115, 115),
    (203, 107, 107), (199, 99, 99), (191, 91, 91), (187, 87, 87),
    (179, 79, 79), (175, 71, 71), (167, 63, 63), (163, 59, 59),
    (155, 51, 51), (151, 47, 47), (143, 43, 43), (139, 35, 35),
    (131, 31, 31), (127, 27, 27), (119, 23, 23), (115, 19, 19),
    (107, 15, 15), (103, 11, 11), (95, 7, 7), (91, 7, 7),
    (83, 7, 7), (79, 0, 0), (71, 0, 0), (67, 0, 0),
    # 48
    (255, 235, 223), (255, 227, 211), (255, 219, 199), (255, 211, 187),
    (255, 207, 179), (255, 199, 167), (255, 191, 155), (255, 187, 147),
    (255, 179, 131), (247, 171, 123), (239, 163, 115), (231, 155, 107),
    (223, 147, 99), (215, 139, 91), (207, 131, 83), (203, 127, 79),
    (191, 123, 75), (179, 115, 71), (171, 111, 67), (163, 107, 63),
    (155, 99, 59), (143, 95, 55), (135, 87, 51), (127, 83, 47),
    (119, 79, 43), (107, 71, 39), (95, 67, 35), (83, 63, 31),
    (75, 55, 27), (63, 47, 23), (51, 43, 19), (43, 35, 15),
    # 80
    (239, 239, 239), (231, 231, 231), (223, 223, 223), (219, 219, 219),
    (211, 211, 211), (203, 203, 203), (199, 199, 199), (191, 191, 191),
    (183, 183, 183), (179, 179, 179), (171, 171, 171), (167, 167, 167),
    (159, 159, 159), (151, 151, 151), (147, 147, 147), (139, 139, 139),
    (131, 131, 131), (127, 127, 127), (119, 119, 119), (111, 111, 111),
    (107, 107, 107), (99, 99, 99), (91, 91, 91), (87, 87, 87),
    (79, 79, 79), (71, 71, 71), (67, 67, 67), (59, 59, 59),
    (55, 55, 55), (47, 47, 47), (39, 39, 39), (35, 35, 35),
    # 112
    (119, 255, 111), (111, 239, 103), (103, 223, 95), (95, 207, 87),
    (91, 191, 79), (83, 175, 71), (75, 159, 63), (67, 147, 55),
    (63, 131, 47), (55, 115, 43), (47, 99, 35), (39, 83, 27),
    (31, 67, 23), (23, 51, 15), (19, 35, 11), (11, 23, 7),
    # 128
    (191, 167, 143), (183, 159, 135), (175, 151, 127), (167, 143, 119),
    (159, 135, 111), (151, 127, 103), (143, 123, 95), (135, 115, 87),
    (127, 107, 79), (119, 99, 71), (111, 91, 63), (103, 83, 59),
    (95, 75, 55), (87, 67, 47), (79, 63, 43), (71, 55, 39),
    # 144
    (159, 131, 99), (143, 119, 83), (131, 107, 75), (119, 95, 63),
    (103, 83, 51), (91, 71, 43), (79, 59, 35), (67, 51, 27),
    (123, 127, 99), (111, 115, 87), (103, 107, 79), (91, 99, 71),
    (83, 87, 59), (71, 79, 51), (63, 71, 43), (55, 63, 39),
    # 160
    (255, 255, 115), (235, 219, 87), (215, 187, 67), (195, 155, 47),
    (175, 123, 31), (155, 91, 19), (135, 67, 7), (115, 43, 0),
    (255, 255, 255), (255, 219, 219), (255, 187, 187), (255, 155, 155),
    (255, 123, 123), (255, 95, 95), (255, 63, 63), (255, 31, 31),
    # 176
    (255, 0, 0), (239, 0, 0), (227, 0, 0), (215, 0, 0),
    (203, 0, 0), (191, 0, 0), (179, 0, 0), (167, 0, 0),
    (155, 0, 0), (139, 0, 0), (127, 0, 0), (115, 0, 0),
    (103, 0, 0), (91, 0, 0), (79, 0, 0), (67, 0, 0),
    # 192
    (231, 231, 255), (199, 199, 255), (171, 171, 255), (143, 143, 255),
    (115, 115, 255), (83, 83, 255), (55, 55, 255), (27, 27, 255),
    (0, 0, 255), (0, 0, 227), (0, 0, 203), (0, 0, 179),
    (0, 0, 155), (0, 0, 131), (0, 0, 107), (0, 0, 83),
    # 208
    (255, 255, 255), (255, 235, 219), (255, 215, 187), (255, 199, 155),
    (255, 179, 123), (255, 163, 91), (255, 143, 59), (255, 127, 27),
    (243, 115, 23), (235, 111, 15), (223, 103, 15), (215, 95, 11),
    (203, 87, 7), (195, 79, 0), (183, 71, 0), (175, 67, 0),
    # 224
    (255, 255, 255), (255, 255, 215), (255, 255, 179), (255, 255, 143),
    (255, 255, 107), (255, 255, 71), (255, 255, 35), (255, 255, 0),
    (167, 63, 0), (159, 55, 0), (147, 47, 0), (135, 35, 0),
    (79, 59, 39), (67, 47, 27), (55, 35, 19), (47, 27, 11),
    # 240
    (0, 0, 83), (0, 0, 71), (0, 0, 59), (0, 0, 47),
    (0, 0, 35), (0, 0, 23), (0, 0, 11), (0, 0, 0),
    (255, 159, 67), (255, 231, 75), (255, 123, 255), (255, 0, 255),
    (207, 0, 207), (159, 0, 155), (111, 0, 107), (167, 107, 107),
]


@dataclass(frozen=True)
class Palette:
    """Immutable table of 256 RGB entries backed by a 768-byte buffer.

    Palettes are never edited in place. To switch palettes, build a new
    ``Palette`` and hand it to the next decode or encode call.
    """

    data: bytes
    _colors: Tuple[Color, ...] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        data = bytes(self.data)
        if len(data) != PALETTE_BYTES:
            raise PaletteError(
                f"A palette must be exactly {PALETTE_BYTES} bytes (got {len(data)})"
            )
        colors = tuple(
            (data[i], data[i + 1], data[i + 2]) for i in range(0, PALETTE_BYTES, 3)
        )
        object.__setattr__(self, "data", data)
        object.__setattr__(self, "_colors", colors)

    @classmethod
    def from_colors(cls, colors: Sequence[Color]) -> "Palette":
        if len(colors) != PALETTE_SIZE:
            raise PaletteError(
                f"A palette needs {PALETTE_SIZE} colors (got {len(colors)})"
            )
        data = bytearray()
        for color in colors:
            if len(color) != 3 or any(not (0 <= c <= 255) for c in color):
                raise PaletteError(f"Invalid palette color: {color!r}")
            data.extend(color)
        return cls(bytes(data))

    @classmethod
    def from_bytes(cls, data: bytes, page: int = 0) -> "Palette":
        """Take page ``page`` out of a buffer holding one or more palettes."""

        pages = palette_page_count(data)
        if pages == 0:
            raise PaletteError(
                f"Palette data is too short: {len(data)} bytes, need at least {PALETTE_BYTES}"
            )
        if not (0 <= page < pages):
            raise PaletteError(
                f"Palette page {page} is out of range (resource holds {pages})"
            )
        start = page * PALETTE_BYTES
        return cls(bytes(data[start : start + PALETTE_BYTES]))

    @classmethod
    def default(cls) -> "Palette":
        return DOOM_PALETTE

    @property
    def colors(self) -> Tuple[Color, ...]:
        return self._colors

    def __len__(self) -> int:
        return PALETTE_SIZE

    def __getitem__(self, index: int) -> Color:
        return self._colors[index]

    def __iter__(self) -> Iterator[Color]:
        return iter(self._colors)

    def nearest_index(self, r: float, g: float, b: float) -> int:
        """Return the index of the closest opaque palette entry.

        Squared Euclidean distance in RGB space; the first minimum wins.
        The transparent index is never returned, so a color that matches it
        best resolves to the next-nearest entry instead.
        """

        best_idx = 0
        best_dist = float("inf")
        for i, (pr, pg, pb) in enumerate(self._colors):
            if i == TRANSPARENT_INDEX:
                continue
            dist = (r - pr) ** 2 + (g - pg) ** 2 + (b - pb) ** 2
            if dist < best_dist:
                best_idx = i
                best_dist = dist
        return best_idx

    def to_image(self, cell: int = 8) -> Image.Image:
        """Render the palette as a 16x16 grid of ``cell``-pixel swatches."""

        if cell < 1:
            raise PaletteError("Swatch cell size must be at least 1")
        swatch = Image.new("RGB", (16, 16))
        swatch.putdata(list(self._colors))
        if cell == 1:
            return swatch
        return swatch.resize((16 * cell, 16 * cell), Image.NEAREST)


def palette_page_count(data: bytes) -> int:
    return len(data) // PALETTE_BYTES


def load_palette(path: str | Path, page: int = 0) -> Palette:
    path = Path(path)
    try:
        data = path.read_bytes()
    except FileNotFoundError as exc:
        raise PaletteError(f"Palette file not found: {path}") from exc
    except OSError as exc:
        raise PaletteError(f"Failed to read palette: {path}") from exc
    return Palette.from_bytes(data, page)


DOOM_PALETTE = Palette.from_colors(DOOM_COLORS)
