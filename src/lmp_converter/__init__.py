"""LMP picture converter.

This package decodes column-post LMP pictures (the patch/sprite format of
Doom-engine games) into RGBA buffers and encodes RGBA images back into LMP
bytes through a 256-color palette, with optional dithering. It can be
invoked through the CLI (``python -m lmp_converter``) or imported to work on
byte buffers and Pillow images directly.
"""

from .codec import (
    ConvertOptions,
    convert_lmp_to_png,
    convert_png_to_lmp,
    decode_to_rgba,
    encode_from_rgba,
    image_to_lmp,
    lmp_to_image,
    resolve_palette,
)
from .errors import ConversionError, FormatError, PaletteError, TruncatedLumpWarning
from .lmp import LMPHeader, LMPImage, Post, decode, encode, read_column_posts, set_offsets, to_rgba
from .palette import DOOM_PALETTE, TRANSPARENT_INDEX, Palette, load_palette, palette_page_count
from .quantizer import ColorApproximationMode, quantize

__all__ = [
    "ColorApproximationMode",
    "ConversionError",
    "ConvertOptions",
    "DOOM_PALETTE",
    "FormatError",
    "LMPHeader",
    "LMPImage",
    "Palette",
    "PaletteError",
    "Post",
    "TRANSPARENT_INDEX",
    "TruncatedLumpWarning",
    "convert_lmp_to_png",
    "convert_png_to_lmp",
    "decode",
    "decode_to_rgba",
    "encode",
    "encode_from_rgba",
    "image_to_lmp",
    "lmp_to_image",
    "load_palette",
    "palette_page_count",
    "quantize",
    "read_column_posts",
    "resolve_palette",
    "set_offsets",
    "to_rgba",
]
