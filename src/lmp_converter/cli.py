"""Command line interface for the LMP converter."""

from __future__ import annotations

import argparse
import sys
import warnings
from pathlib import Path
from typing import Iterable, List

from .codec import (
    ConvertOptions,
    convert_lmp_to_png,
    convert_png_to_lmp,
    read_lump,
)
from .errors import ConversionError, PaletteError
from .lmp import LMPHeader, read_column_posts, set_offsets
from .palette import PALETTE_BYTES, Palette, palette_page_count
from .quantizer import ColorApproximationMode


def iter_inputs(paths: Iterable[str], extension: str) -> List[Path]:
    """Expand files and folders (non-recursive) into files with ``extension``."""

    results: List[Path] = []
    for raw in paths:
        path = Path(raw)
        if path.is_file():
            if path.suffix.lower() != extension:
                raise ConversionError(f"Unsupported file type (expected {extension}): {path}")
            results.append(path)
        elif path.is_dir():
            for entry in sorted(path.iterdir()):
                if entry.is_file() and entry.suffix.lower() == extension:
                    results.append(entry)
        else:
            raise ConversionError(f"Input path does not exist: {path}")
    if not results:
        raise ConversionError(f"No {extension} files were found in the provided inputs.")
    return results


def ensure_unique_targets(
    paths: List[Path], output_dir: Path | None, extension: str
) -> List[Path]:
    targets: List[Path] = []
    seen = set()
    for path in paths:
        directory = output_dir if output_dir is not None else path.parent
        target = directory / f"{path.stem}{extension}"
        key = str(target).lower()
        if key in seen:
            raise ConversionError(f"Duplicate output name would occur: {target}")
        seen.add(key)
        targets.append(target)
    return targets


def check_conflicts(targets: List[Path], force: bool) -> None:
    conflicts = [str(target) for target in targets if target.exists() and not force]
    if conflicts:
        raise ConversionError(
            "Output files already exist (use --force to overwrite):\n" + "\n".join(conflicts)
        )


def _add_palette_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--palette",
        type=Path,
        help="Palette resource (768 bytes per page, e.g. a PLAYPAL dump). Default: built-in Doom palette",
    )
    parser.add_argument(
        "--palette-page",
        type=int,
        default=0,
        help="Page to use when the palette resource holds several palettes (0-based)",
    )


def _add_output_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "-o",
        "--output-dir",
        type=Path,
        help="Destination directory (default: next to each input)",
    )
    parser.add_argument(
        "-f",
        "--force",
        action="store_true",
        help="Overwrite existing files without prompting",
    )


def build_parser() -> argparse.ArgumentParser:
    modes = ", ".join(mode.value for mode in ColorApproximationMode)
    parser = argparse.ArgumentParser(
        prog="lmp-converter",
        description=(
            "Convert between column-post LMP pictures and PNG images.\n"
            "Index 247 is the transparent color: transparent PNG pixels are left out of the\n"
            "LMP posts and opaque pixels never map to it.\n"
            f"Color approximation modes: {modes}"
        ),
        formatter_class=argparse.RawTextHelpFormatter,
    )
    sub = parser.add_subparsers(dest="command", required=True)

    to_png = sub.add_parser("to-png", help="Decode LMP files into RGBA PNG files")
    to_png.add_argument("inputs", nargs="+", help="LMP files or folders containing LMPs")
    _add_output_arguments(to_png)
    _add_palette_arguments(to_png)

    from_png = sub.add_parser("from-png", help="Quantize PNG files and encode them as LMP")
    from_png.add_argument("inputs", nargs="+", help="PNG files or folders containing PNGs")
    _add_output_arguments(from_png)
    _add_palette_arguments(from_png)
    from_png.add_argument(
        "--mode",
        choices=[mode.value for mode in ColorApproximationMode],
        default=ColorApproximationMode.NEAREST.value,
        help="Color approximation (dithering) mode",
    )
    from_png.add_argument(
        "--offset",
        nargs=2,
        type=int,
        default=(0, 0),
        metavar=("X", "Y"),
        help="Left/top anchor offsets written to the header",
    )

    offsets = sub.add_parser("offsets", help="Rewrite the anchor offsets of an LMP in place")
    offsets.add_argument("input", type=Path, help="LMP file to update")
    offsets.add_argument("x", type=int, help="Left offset")
    offsets.add_argument("y", type=int, help="Top offset")

    info = sub.add_parser("info", help="Show header fields and post counts of LMP files")
    info.add_argument("inputs", nargs="+", help="LMP files or folders containing LMPs")

    palette = sub.add_parser("palette", help="Inspect a palette resource")
    palette.add_argument("input", type=Path, help="Palette resource")
    palette.add_argument("--page", type=int, default=0, help="Page to render with --swatch")
    palette.add_argument("--swatch", type=Path, help="Write a 16x16 swatch PNG of the page")

    return parser


def build_options(args: argparse.Namespace) -> ConvertOptions:
    options = ConvertOptions()
    options.palette_path = args.palette
    options.palette_page = args.palette_page
    if getattr(args, "mode", None) is not None:
        options.mode = ColorApproximationMode.parse(args.mode)
    if getattr(args, "offset", None) is not None:
        options.offset_x, options.offset_y = args.offset
    return options


def cmd_to_png(args: argparse.Namespace) -> None:
    options = build_options(args)
    inputs = iter_inputs(args.inputs, ".lmp")
    targets = ensure_unique_targets(inputs, args.output_dir, ".png")
    check_conflicts(targets, args.force)

    for src, target in zip(inputs, targets):
        image = convert_lmp_to_png(src, options)
        target.parent.mkdir(parents=True, exist_ok=True)
        image.save(target, format="PNG")
        print(f"wrote {target}")


def cmd_from_png(args: argparse.Namespace) -> None:
    options = build_options(args)
    inputs = iter_inputs(args.inputs, ".png")
    targets = ensure_unique_targets(inputs, args.output_dir, ".lmp")
    check_conflicts(targets, args.force)

    for src, target in zip(inputs, targets):
        data = convert_png_to_lmp(src, options)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(data)
        print(f"wrote {target}")


def cmd_offsets(args: argparse.Namespace) -> None:
    data = set_offsets(read_lump(args.input), args.x, args.y)
    args.input.write_bytes(data)
    print(f"wrote {args.input} (offsets {args.x},{args.y})")


def cmd_info(args: argparse.Namespace) -> None:
    for path in iter_inputs(args.inputs, ".lmp"):
        data = read_lump(path)
        header = LMPHeader.unpack(data)
        columns = read_column_posts(data)
        posts = sum(1 for column in columns for post in column if post.length)
        anchors = sum(1 for column in columns for post in column if not post.length)
        print(
            f"{path}: {header.width}x{header.height} "
            f"offset=({header.left_offset},{header.top_offset}) "
            f"posts={posts} anchors={anchors} size={len(data)}"
        )


def cmd_palette(args: argparse.Namespace) -> None:
    try:
        data = args.input.read_bytes()
    except OSError as exc:
        raise PaletteError(f"Failed to read palette: {args.input}") from exc

    pages = palette_page_count(data)
    print(f"{args.input}: {len(data)} bytes, {pages} palette page(s)")
    if len(data) % PALETTE_BYTES:
        print(f"Warning: {len(data) % PALETTE_BYTES} trailing byte(s) do not form a full page")

    if args.swatch is not None:
        palette = Palette.from_bytes(data, args.page)
        args.swatch.parent.mkdir(parents=True, exist_ok=True)
        palette.to_image().save(args.swatch, format="PNG")
        print(f"wrote {args.swatch}")


COMMANDS = {
    "to-png": cmd_to_png,
    "from-png": cmd_from_png,
    "offsets": cmd_offsets,
    "info": cmd_info,
    "palette": cmd_palette,
}


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter("always")
            COMMANDS[args.command](args)
        for warning in caught:
            print(f"Warning: {warning.message}", file=sys.stderr)
        return 0
    except ConversionError as exc:
        print(exc, file=sys.stderr)
        return 1


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
