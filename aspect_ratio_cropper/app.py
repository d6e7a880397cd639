"""
Command-line entry point.

Usage:
    python -m aspect_ratio_cropper.app photo.jpg banner.png -r 16:9
    aspect-ratio-cropper *.png -r 1:1 -f webp -o out/     (after pip install)

Each input file becomes one item.  Cropped images are written next to the
input (or into ``--output``) and one JSON metadata line per item is printed
to stdout.  Defaults come from settings.json; options given here win.
"""

import argparse
import json
import logging
import mimetypes
import sys
from pathlib import Path

from aspect_ratio_cropper.config import COMMON_RATIOS, OUTPUT_FORMATS, QUALITY_MAX, QUALITY_MIN
from aspect_ratio_cropper.errors import CropperError
from aspect_ratio_cropper.image_io import unique_path
from aspect_ratio_cropper.models import BinaryData, CropParameters, Item
from aspect_ratio_cropper.settings import load_settings, save_settings
from aspect_ratio_cropper.worker import run_batch

logger = logging.getLogger(__name__)


def _quality(value: str) -> int:
    try:
        quality = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid quality: {value!r}")
    if not (QUALITY_MIN <= quality <= QUALITY_MAX):
        raise argparse.ArgumentTypeError(f"quality must be between {QUALITY_MIN} and {QUALITY_MAX}")
    return quality


def _workers(value: str) -> int:
    try:
        workers = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid worker count: {value!r}")
    if workers <= 0:
        raise argparse.ArgumentTypeError("worker count must be positive")
    return workers


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="aspect-ratio-cropper",
        description="Crop images to an exact aspect ratio using center-cover mode.",
    )
    parser.add_argument("inputs", nargs="+", type=Path, help="Input image files")
    parser.add_argument(
        "-r", "--aspect-ratio",
        help=f"Target ratio in W:H format. Common ratios: {', '.join(COMMON_RATIOS)}",
    )
    parser.add_argument("-f", "--output-format", choices=OUTPUT_FORMATS, help="Output image format")
    parser.add_argument("--jpeg-quality", type=_quality, help="Quality for JPEG output (1-100)")
    parser.add_argument("--webp-quality", type=_quality, help="Quality for WebP output (1-100)")
    parser.add_argument("-o", "--output", type=Path, help="Output directory (default: next to each input)")
    parser.add_argument(
        "--continue-on-fail", action="store_true", default=None,
        help="Report failed images and keep going instead of stopping",
    )
    parser.add_argument("-j", "--workers", type=_workers, help="Number of worker processes")
    parser.add_argument(
        "--save-defaults", action="store_true",
        help="Store the given options in settings.json for later runs",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    return parser


def _merge_settings(args: argparse.Namespace, settings: dict) -> dict:
    """Overlay explicitly given command-line options on loaded settings."""
    merged = dict(settings)
    for key in ("aspect_ratio", "output_format", "jpeg_quality", "webp_quality",
                "continue_on_fail", "workers"):
        value = getattr(args, key)
        if value is not None:
            merged[key] = value
    return merged


def _load_item(path: Path, binary_property: str) -> Item:
    """Build an item from a file; unreadable files yield an item with no binary."""
    try:
        data = path.read_bytes()
    except OSError as exc:
        logger.warning("Could not read %s: %s", path, exc)
        return Item(json={"source": str(path)})
    mime_type, _ = mimetypes.guess_type(path.name)
    return Item(
        json={"source": str(path)},
        binary={binary_property: BinaryData(data=data, mime_type=mime_type or "", file_name=path.name)},
    )


def run(argv: list[str] | None = None) -> int:
    """Run the command line; returns the process exit code."""
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    settings = _merge_settings(args, load_settings())
    if args.save_defaults:
        try:
            save_settings(settings)
        except ValueError as exc:
            parser.error(str(exc))

    params = CropParameters(
        binary_property=settings["binary_property"],
        aspect_ratio=settings["aspect_ratio"],
        output_format=settings["output_format"],
        jpeg_quality=settings["jpeg_quality"],
        webp_quality=settings["webp_quality"],
    )
    items = [_load_item(path, params.binary_property) for path in args.inputs]

    try:
        batch = run_batch(
            items, params,
            continue_on_fail=settings["continue_on_fail"],
            workers=settings["workers"],
        )
    except CropperError as exc:
        name = args.inputs[exc.item_index] if exc.item_index is not None else "batch"
        print(f"{name}: {exc}", file=sys.stderr)
        return 1

    for result, path in zip(batch.results, args.inputs):
        record = result.to_dict()
        record["source"] = str(path)
        payload = result.binary.get(params.binary_property)
        if payload is not None:
            out_dir = args.output or path.parent
            out_dir.mkdir(parents=True, exist_ok=True)
            out_path = unique_path(out_dir / payload.file_name)
            out_path.write_bytes(payload.data)
            record["output"] = str(out_path)
        print(json.dumps(record))

    return 1 if batch.failed else 0


def main():
    sys.exit(run())


if __name__ == "__main__":
    main()
