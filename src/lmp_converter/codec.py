"""RGBA-level entry points and PNG file conversion built on the LMP codec."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Tuple

from PIL import Image

from .errors import ConversionError
from .lmp import decode, encode, to_rgba
from .palette import DOOM_PALETTE, Palette, load_palette
from .quantizer import ColorApproximationMode, quantize


@dataclass
class ConvertOptions:
    """Options for palette selection, color approximation and anchor offsets."""

    mode: ColorApproximationMode = ColorApproximationMode.NEAREST
    palette_path: Path | None = None
    palette_page: int = 0
    offset_x: int = 0
    offset_y: int = 0


def resolve_palette(options: ConvertOptions | None = None) -> Palette:
    """Pick the palette for one operation: the configured file, else the default."""

    options = options or ConvertOptions()
    if options.palette_path is None:
        if options.palette_page != 0:
            raise ConversionError("--palette-page requires --palette")
        return DOOM_PALETTE
    return load_palette(options.palette_path, options.palette_page)


def decode_to_rgba(data: bytes, palette: Palette) -> bytes:
    return to_rgba(decode(data), palette)


def encode_from_rgba(
    rgba: bytes,
    width: int,
    height: int,
    palette: Palette,
    offsets: Tuple[int, int] = (0, 0),
    mode: ColorApproximationMode | str = ColorApproximationMode.NEAREST,
) -> bytes:
    indices = quantize(rgba, width, height, palette, mode)
    offset_x, offset_y = offsets
    return encode(indices, width, height, offset_x, offset_y)


def lmp_to_image(data: bytes, palette: Palette) -> Image.Image:
    """Decode LMP bytes into an RGBA Pillow image."""

    image = decode(data)
    return Image.frombytes("RGBA", (image.width, image.height), to_rgba(image, palette))


def image_to_lmp(
    image: Image.Image,
    palette: Palette,
    offsets: Tuple[int, int] = (0, 0),
    mode: ColorApproximationMode | str = ColorApproximationMode.NEAREST,
) -> bytes:
    """Quantize and encode any Pillow image; non-RGBA modes are converted first."""

    rgba = image.convert("RGBA")
    width, height = rgba.size
    return encode_from_rgba(rgba.tobytes(), width, height, palette, offsets, mode)


def read_lump(path: str | Path) -> bytes:
    path = Path(path)
    try:
        return path.read_bytes()
    except FileNotFoundError as exc:
        raise ConversionError(f"Input file not found: {path}") from exc
    except OSError as exc:
        raise ConversionError(f"Failed to read LMP: {path}") from exc


def convert_lmp_to_png(path: str | Path, options: ConvertOptions | None = None) -> Image.Image:
    path = Path(path)
    palette = resolve_palette(options)
    return lmp_to_image(read_lump(path), palette)


def convert_png_to_lmp(path: str | Path, options: ConvertOptions | None = None) -> bytes:
    path = Path(path)
    options = options or ConvertOptions()
    palette = resolve_palette(options)
    try:
        with Image.open(path) as img:
            return image_to_lmp(
                img, palette, (options.offset_x, options.offset_y), options.mode
            )
    except FileNotFoundError as exc:
        raise ConversionError(f"Input file not found: {path}") from exc
    except OSError as exc:
        raise ConversionError(f"Failed to read PNG: {path}") from exc
