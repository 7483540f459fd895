"""Reader and writer for column-post LMP pictures (patches, sprites, graphics)."""

# Reference: LMP picture layout (little-endian)
# Offset          | Size          | Notes
# ----------------|---------------|----------------------------------------------------
# 0x00            | int16         | width
# 0x02            | int16         | height
# 0x04            | int16         | left offset (anchor, may be negative)
# 0x06            | int16         | top offset (anchor, may be negative)
# 0x08            | int32 * width | absolute byte offset of each column's post stream
# column offsets  | variable      | posts, each column terminated by 0xFF
#
# Post: topdelta, length, pad, <length> index bytes, pad.
#
# topdelta is absolute unless it is <= the row of the previous post in the
# same column, in which case it is added to that row. Pictures taller than 254
# rows rely on this to reach rows a single byte cannot address; the encoder
# inserts zero-length posts at topdelta 254 to move the base row forward.

from __future__ import annotations

import struct
import warnings
from dataclasses import dataclass
from typing import Iterator, List, Optional, Sequence, Tuple

from .errors import ConversionError, FormatError, TruncatedLumpWarning
from .palette import TRANSPARENT_INDEX, Palette

HEADER_FORMAT = "<hhhh"
HEADER_SIZE = 8
COLUMN_OFFSET_SIZE = 4
POST_END = 0xFF
MAX_POST_LENGTH = 254
MAX_TOPDELTA = 254
TALL_PATCH_ROW = 254
TALL_PATCH_MIN_HEIGHT = 256
INT16_MIN = -0x8000
INT16_MAX = 0x7FFF


@dataclass(frozen=True)
class LMPHeader:
    width: int
    height: int
    left_offset: int = 0
    top_offset: int = 0

    @classmethod
    def unpack(cls, data: bytes) -> "LMPHeader":
        if len(data) < HEADER_SIZE:
            raise FormatError(f"Invalid LMP data: {len(data)} bytes is too small for a header")
        width, height, left, top = struct.unpack_from(HEADER_FORMAT, data, 0)
        if width <= 0 or height <= 0:
            raise FormatError(f"Invalid LMP data: bad dimensions {width}x{height}")
        return cls(width, height, left, top)

    def pack(self) -> bytes:
        return struct.pack(
            HEADER_FORMAT, self.width, self.height, self.left_offset, self.top_offset
        )


@dataclass
class LMPImage:
    """Decoded picture: palette indices plus an explicit transparency mask."""

    header: LMPHeader
    pixels: bytearray
    transparency: bytearray

    @property
    def width(self) -> int:
        return self.header.width

    @property
    def height(self) -> int:
        return self.header.height

    def pixel(self, x: int, y: int) -> int:
        return self.pixels[y * self.width + x]

    def is_transparent(self, x: int, y: int) -> bool:
        return self.transparency[y * self.width + x] == 1


@dataclass(frozen=True)
class Post:
    """One run of opaque pixels in a column.

    ``topdelta`` is the byte stored in the stream, ``row`` the row it
    resolves to. Zero-length posts only move the base row.
    """

    topdelta: int
    row: int
    pixels: bytes = b""

    @property
    def length(self) -> int:
        return len(self.pixels)

    def to_bytes(self) -> bytes:
        return bytes([self.topdelta, self.length, 0]) + self.pixels + b"\x00"


class ByteCursor:
    """Forward-only reader that reports the end of data instead of raising."""

    def __init__(self, data: bytes, offset: int = 0):
        self.data = data
        self.offset = offset

    @property
    def exhausted(self) -> bool:
        return self.offset >= len(self.data)

    def read_u8(self) -> Optional[int]:
        if self.exhausted:
            return None
        value = self.data[self.offset]
        self.offset += 1
        return value

    def read(self, count: int) -> bytes:
        """Return up to ``count`` bytes; fewer when the data ends first."""

        chunk = bytes(self.data[self.offset : self.offset + count])
        self.offset += len(chunk)
        return chunk

    def skip(self, count: int) -> bool:
        if self.offset + count > len(self.data):
            self.offset = len(self.data)
            return False
        self.offset += count
        return True


def _read_column(cursor: ByteCursor) -> Tuple[List[Post], bool]:
    posts: List[Post] = []
    top_row = -1
    while True:
        topdelta = cursor.read_u8()
        if topdelta is None:
            return posts, False
        if topdelta == POST_END:
            return posts, True

        length = cursor.read_u8()
        if length is None or not cursor.skip(1):
            return posts, False

        row = top_row + topdelta if topdelta <= top_row else topdelta
        top_row = row

        pixels = cursor.read(length)
        posts.append(Post(topdelta, row, pixels))
        if len(pixels) < length or not cursor.skip(1):
            return posts, False


def _column_offsets(data: bytes, width: int) -> List[Optional[int]]:
    offsets: List[Optional[int]] = []
    for col in range(width):
        pos = HEADER_SIZE + col * COLUMN_OFFSET_SIZE
        if pos + COLUMN_OFFSET_SIZE > len(data):
            offsets.append(None)
            continue
        (offset,) = struct.unpack_from("<i", data, pos)
        offsets.append(offset if 0 <= offset < len(data) else None)
    return offsets


def _parse(data: bytes) -> Tuple[LMPHeader, List[List[Post]], int]:
    header = LMPHeader.unpack(data)
    columns: List[List[Post]] = []
    damaged = 0
    for offset in _column_offsets(data, header.width):
        if offset is None:
            columns.append([])
            damaged += 1
            continue
        posts, terminated = _read_column(ByteCursor(data, offset))
        columns.append(posts)
        if not terminated:
            damaged += 1
    return header, columns, damaged


def read_column_posts(data: bytes) -> List[List[Post]]:
    """Return the posts of every column with their rows resolved."""

    _, columns, _ = _parse(data)
    return columns


def decode(data: bytes) -> LMPImage:
    """Decode LMP bytes into indices and a transparency mask.

    Raises ``FormatError`` only for a missing header or non-positive
    dimensions. Damaged column data yields whatever posts were readable and
    a single ``TruncatedLumpWarning``.
    """

    header, columns, damaged = _parse(data)
    width, height = header.width, header.height
    pixels = bytearray(width * height)
    transparency = bytearray(b"\x01") * (width * height)

    for col, posts in enumerate(columns):
        for post in posts:
            for i, value in enumerate(post.pixels):
                row = post.row + i
                if row >= height:
                    break
                index = row * width + col
                pixels[index] = value
                transparency[index] = 0

    if damaged:
        warnings.warn(
            f"{damaged} of {width} column(s) ended before their terminator; "
            "decoded the readable posts only",
            TruncatedLumpWarning,
            stacklevel=2,
        )

    return LMPImage(header, pixels, transparency)


def to_rgba(image: LMPImage, palette: Palette) -> bytes:
    rgba = bytearray(len(image.pixels) * 4)
    for i, index in enumerate(image.pixels):
        r, g, b = palette[index]
        base = i * 4
        rgba[base] = r
        rgba[base + 1] = g
        rgba[base + 2] = b
        rgba[base + 3] = 0 if image.transparency[i] else 255
    return bytes(rgba)


def _column_runs(
    indices: Sequence[int], width: int, height: int, col: int
) -> Iterator[Tuple[int, bytes]]:
    tall = height >= TALL_PATCH_MIN_HEIGHT
    start = 0
    run = bytearray()
    for row in range(height):
        value = indices[row * width + col]
        if value == TRANSPARENT_INDEX:
            if run:
                yield start, bytes(run)
                run = bytearray()
            continue
        if run and (
            len(run) == MAX_POST_LENGTH or (tall and start < TALL_PATCH_ROW <= row)
        ):
            yield start, bytes(run)
            run = bytearray()
        if not run:
            start = row
        run.append(value)
    if run:
        yield start, bytes(run)


def build_column_posts(
    indices: Sequence[int], width: int, height: int, col: int
) -> List[Post]:
    """Split one column into posts, including any re-anchor posts."""

    tall = height >= TALL_PATCH_MIN_HEIGHT
    posts: List[Post] = []
    top_row = -1

    for start, run in _column_runs(indices, width, height, col):
        if top_row < start <= TALL_PATCH_ROW:
            topdelta = start
        else:
            # The decoder only treats topdelta as relative when it is not
            # above the base row, and 255 is the column terminator.
            while start - top_row > min(top_row, MAX_TOPDELTA):
                if top_row < TALL_PATCH_ROW:
                    top_row = TALL_PATCH_ROW
                else:
                    top_row += TALL_PATCH_ROW
                posts.append(Post(TALL_PATCH_ROW, top_row))
            topdelta = start - top_row

        posts.append(Post(topdelta, start, run))
        top_row = start

        if tall and top_row < TALL_PATCH_ROW and start + len(run) >= TALL_PATCH_ROW:
            posts.append(Post(TALL_PATCH_ROW, TALL_PATCH_ROW))
            top_row = TALL_PATCH_ROW

    return posts


def _check_offsets(offset_x: int, offset_y: int) -> None:
    for name, value in (("offset_x", offset_x), ("offset_y", offset_y)):
        if not (INT16_MIN <= value <= INT16_MAX):
            raise ConversionError(f"{name} must fit a signed 16-bit value (got {value})")


def encode(
    indices: Sequence[int],
    width: int,
    height: int,
    offset_x: int = 0,
    offset_y: int = 0,
) -> bytes:
    """Serialize palette indices into LMP bytes.

    ``TRANSPARENT_INDEX`` marks pixels that are left out of every post.
    Output is deterministic for a given input.
    """

    if not (1 <= width <= INT16_MAX and 1 <= height <= INT16_MAX):
        raise ConversionError(f"Image dimensions out of range: {width}x{height}")
    if len(indices) != width * height:
        raise ConversionError(
            f"Index buffer holds {len(indices)} pixels, expected {width * height}"
        )
    _check_offsets(offset_x, offset_y)

    streams: List[bytes] = []
    for col in range(width):
        posts = build_column_posts(indices, width, height, col)
        streams.append(b"".join(post.to_bytes() for post in posts) + bytes([POST_END]))

    offsets: List[int] = []
    position = HEADER_SIZE + width * COLUMN_OFFSET_SIZE
    for stream in streams:
        offsets.append(position)
        position += len(stream)

    header = LMPHeader(width, height, offset_x, offset_y).pack()
    table = struct.pack(f"<{width}i", *offsets)
    return header + table + b"".join(streams)


def set_offsets(data: bytes, offset_x: int, offset_y: int) -> bytes:
    """Return ``data`` with only the header anchor offsets replaced."""

    header = LMPHeader.unpack(data)
    _check_offsets(offset_x, offset_y)
    updated = LMPHeader(header.width, header.height, offset_x, offset_y)
    return updated.pack() + bytes(data[HEADER_SIZE:])
