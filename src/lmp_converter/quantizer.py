"""Map RGBA pixels onto palette indices with optional dithering."""

from __future__ import annotations

import math
from enum import Enum
from typing import Dict, List, Sequence, Tuple

from .errors import ConversionError
from .palette import TRANSPARENT_INDEX, Palette

ALPHA_THRESHOLD = 128

BAYER_MATRIX_2X2: List[List[int]] = [
    [0, 2],
    [3, 1],
]

BAYER_MATRIX_4X4: List[List[int]] = [
    [0, 8, 2, 10],
    [12, 4, 14, 6],
    [3, 11, 1, 9],
    [15, 7, 13, 5],
]

BAYER_MATRIX_8X8: List[List[int]] = [
    [0, 32, 8, 40, 2, 34, 10, 42],
    [48, 16, 56, 24, 50, 18, 58, 26],
    [12, 44, 4, 36, 14, 46, 6, 38],
    [60, 28, 52, 20, 62, 30, 54, 22],
    [3, 35, 11, 43, 1, 33, 9, 41],
    [51, 19, 59, 27, 49, 17, 57, 25],
    [15, 47, 7, 39, 13, 45, 5, 37],
    [63, 31, 55, 23, 61, 29, 53, 21],
]

# (dx, dy, weight) offsets from the current pixel.
FLOYD_STEINBERG_KERNEL: Tuple[Tuple[int, int, float], ...] = (
    (1, 0, 7 / 16),
    (-1, 1, 3 / 16),
    (0, 1, 5 / 16),
    (1, 1, 1 / 16),
)

# Six neighbours at 1/8 each: a quarter of the error is dropped.
ATKINSON_KERNEL: Tuple[Tuple[int, int, float], ...] = (
    (1, 0, 1 / 8),
    (2, 0, 1 / 8),
    (-1, 1, 1 / 8),
    (0, 1, 1 / 8),
    (1, 1, 1 / 8),
    (0, 2, 1 / 8),
)


class ColorApproximationMode(str, Enum):
    NEAREST = "nearest"
    FLOYD_STEINBERG = "floyd-steinberg"
    ATKINSON = "atkinson"
    BAYER_2X2 = "bayer-2x2"
    BAYER_4X4 = "bayer-4x4"
    BAYER_8X8 = "bayer-8x8"

    @classmethod
    def parse(cls, value: "str | ColorApproximationMode") -> "ColorApproximationMode":
        if isinstance(value, cls):
            return value
        text = str(value).strip()
        for mode in cls:
            if text.lower() == mode.value or text.upper().replace("-", "_") == mode.name:
                return mode
        choices = ", ".join(mode.value for mode in cls)
        raise ConversionError(f"Unknown color approximation mode: {value} (choose from {choices})")


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _clamp(value: float) -> float:
    return 0 if value < 0 else (255 if value > 255 else value)


def _check_rgba(rgba: Sequence[int], width: int, height: int) -> None:
    if width < 1 or height < 1:
        raise ConversionError(f"Image dimensions must be positive (got {width}x{height})")
    expected = width * height * 4
    if len(rgba) != expected:
        raise ConversionError(
            f"RGBA buffer holds {len(rgba)} bytes, expected {expected} for {width}x{height}"
        )


class Quantizer:
    """Strategy interface: one instance per approximation mode.

    Instances hold only constant tables. Caches and error buffers are local
    to each ``quantize`` call.
    """

    def quantize(
        self, rgba: Sequence[int], width: int, height: int, palette: Palette
    ) -> bytearray:
        raise NotImplementedError


class NearestColorQuantizer(Quantizer):
    """Plain nearest-entry mapping, memoized per distinct RGB value."""

    def quantize(
        self, rgba: Sequence[int], width: int, height: int, palette: Palette
    ) -> bytearray:
        _check_rgba(rgba, width, height)
        pixels = bytearray(width * height)
        cache: Dict[int, int] = {}

        for i in range(width * height):
            base = i * 4
            if rgba[base + 3] < ALPHA_THRESHOLD:
                pixels[i] = TRANSPARENT_INDEX
                continue

            r, g, b = rgba[base], rgba[base + 1], rgba[base + 2]
            key = (r << 16) | (g << 8) | b
            index = cache.get(key)
            if index is None:
                index = palette.nearest_index(r, g, b)
                cache[key] = index
            pixels[i] = index

        return pixels


class ErrorDiffusionQuantizer(Quantizer):
    """Raster-order error diffusion driven by a kernel of (dx, dy, weight)."""

    def __init__(self, kernel: Sequence[Tuple[int, int, float]], round_input: bool):
        self.kernel = tuple(kernel)
        self.round_input = round_input

    def quantize(
        self, rgba: Sequence[int], width: int, height: int, palette: Palette
    ) -> bytearray:
        _check_rgba(rgba, width, height)
        pixels = bytearray(width * height)
        # Three floats per pixel, carried forward across rows.
        errors = [0.0] * (width * height * 3)

        for y in range(height):
            for x in range(width):
                i = y * width + x
                base = i * 4
                if rgba[base + 3] < ALPHA_THRESHOLD:
                    pixels[i] = TRANSPARENT_INDEX
                    continue

                e = i * 3
                r = rgba[base] + errors[e]
                g = rgba[base + 1] + errors[e + 1]
                b = rgba[base + 2] + errors[e + 2]
                if self.round_input:
                    r, g, b = _round_half_up(r), _round_half_up(g), _round_half_up(b)
                r, g, b = _clamp(r), _clamp(g), _clamp(b)

                index = palette.nearest_index(r, g, b)
                pixels[i] = index

                pr, pg, pb = palette[index]
                err_r, err_g, err_b = r - pr, g - pg, b - pb

                for dx, dy, weight in self.kernel:
                    nx = x + dx
                    ny = y + dy
                    if nx < 0 or nx >= width or ny >= height:
                        continue
                    n = (ny * width + nx) * 3
                    errors[n] += err_r * weight
                    errors[n + 1] += err_g * weight
                    errors[n + 2] += err_b * weight

        return pixels


class FloydSteinbergQuantizer(ErrorDiffusionQuantizer):
    def __init__(self) -> None:
        super().__init__(FLOYD_STEINBERG_KERNEL, round_input=False)


class AtkinsonQuantizer(ErrorDiffusionQuantizer):
    def __init__(self) -> None:
        super().__init__(ATKINSON_KERNEL, round_input=True)


class BayerQuantizer(Quantizer):
    """Ordered dithering with an NxN threshold matrix.

    Each pixel is offset by ``(M[y % N][x % N] / N^2 - 0.5) * 255 / N^2`` on
    every channel before matching. No state carries between pixels.
    """

    def __init__(self, matrix: Sequence[Sequence[int]]):
        size = len(matrix)
        if size == 0 or any(len(row) != size for row in matrix):
            raise ValueError("Bayer matrix must be square")
        cells = size * size
        if sorted(v for row in matrix for v in row) != list(range(cells)):
            raise ValueError("Bayer matrix must use each value 0..N^2-1 exactly once")
        scale = 255 / cells
        self.size = size
        self.thresholds: Tuple[Tuple[float, ...], ...] = tuple(
            tuple((value / cells - 0.5) * scale for value in row) for row in matrix
        )

    def threshold(self, x: int, y: int) -> float:
        return self.thresholds[y % self.size][x % self.size]

    def quantize(
        self, rgba: Sequence[int], width: int, height: int, palette: Palette
    ) -> bytearray:
        _check_rgba(rgba, width, height)
        pixels = bytearray(width * height)
        cache: Dict[int, int] = {}

        for y in range(height):
            row = self.thresholds[y % self.size]
            for x in range(width):
                i = y * width + x
                base = i * 4
                if rgba[base + 3] < ALPHA_THRESHOLD:
                    pixels[i] = TRANSPARENT_INDEX
                    continue

                t = row[x % self.size]
                r = int(_clamp(_round_half_up(rgba[base] + t)))
                g = int(_clamp(_round_half_up(rgba[base + 1] + t)))
                b = int(_clamp(_round_half_up(rgba[base + 2] + t)))

                key = (r << 16) | (g << 8) | b
                index = cache.get(key)
                if index is None:
                    index = palette.nearest_index(r, g, b)
                    cache[key] = index
                pixels[i] = index

        return pixels


BAYER_MATRICES: Dict[ColorApproximationMode, List[List[int]]] = {
    ColorApproximationMode.BAYER_2X2: BAYER_MATRIX_2X2,
    ColorApproximationMode.BAYER_4X4: BAYER_MATRIX_4X4,
    ColorApproximationMode.BAYER_8X8: BAYER_MATRIX_8X8,
}

QUANTIZERS: Dict[ColorApproximationMode, Quantizer] = {
    ColorApproximationMode.NEAREST: NearestColorQuantizer(),
    ColorApproximationMode.FLOYD_STEINBERG: FloydSteinbergQuantizer(),
    ColorApproximationMode.ATKINSON: AtkinsonQuantizer(),
    **{mode: BayerQuantizer(matrix) for mode, matrix in BAYER_MATRICES.items()},
}


def quantize(
    rgba: Sequence[int],
    width: int,
    height: int,
    palette: Palette,
    mode: "ColorApproximationMode | str" = ColorApproximationMode.NEAREST,
) -> bytearray:
    """Convert an RGBA buffer into palette indices.

    Pixels with alpha below 128 always become ``TRANSPARENT_INDEX``; opaque
    pixels never do.
    """

    return QUANTIZERS[ColorApproximationMode.parse(mode)].quantize(rgba, width, height, palette)
