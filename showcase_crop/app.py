"""
Command-line entry point.

Usage:
    python -m showcase_crop photo.png --preset avatar --rotation 90
    showcase-crop photo.png --crop 0 0 600 600 -o cover.jpg   (after pip install)
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from showcase_crop.config import (
    DEFAULT_PRESET_NAME, JPEG_QUALITY_DEFAULT, OUTPUT_FORMAT_DEFAULT, OUTPUT_FORMATS,
)
from showcase_crop.errors import CropError
from showcase_crop.models import CropRect
from showcase_crop.presets import find_preset, load_presets
from showcase_crop.session import EditSession

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="showcase-crop",
        description="Rotate, crop and encode an avatar or showcase image for upload.",
    )
    parser.add_argument("source", help="image path, http(s) URL or data: URI")
    parser.add_argument("-o", "--output", type=Path, default=None,
                        help="where to write the artifact (default: suggested filename in cwd)")
    parser.add_argument("--preset", default=DEFAULT_PRESET_NAME,
                        help=f"aspect-ratio preset name (default: {DEFAULT_PRESET_NAME})")
    parser.add_argument("--rotation", type=float, default=0.0, help="degrees, clockwise")
    parser.add_argument("--zoom", type=float, default=1.0, help="zoom factor in [1, 3]")
    parser.add_argument("--pan", type=float, nargs=2, metavar=("X", "Y"), default=(0.0, 0.0),
                        help="crop window offset from center, in composite pixels")
    parser.add_argument("--crop", type=float, nargs=4, metavar=("X", "Y", "W", "H"),
                        help="explicit crop rectangle in rotated-composite pixels")
    parser.add_argument("--format", dest="fmt", choices=sorted(OUTPUT_FORMATS),
                        default=OUTPUT_FORMAT_DEFAULT)
    parser.add_argument("--quality", type=float, default=JPEG_QUALITY_DEFAULT,
                        help="encoder quality in (0, 1]")
    parser.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    return parser


async def run(args: argparse.Namespace) -> Path:
    """Drive one EditSession from the parsed arguments; returns the written path."""
    preset = find_preset(load_presets(), args.preset)
    session = EditSession(preset)
    await session.load(args.source)

    crop = session.crop
    crop.output_format = args.fmt
    crop.quality = args.quality
    crop.set_zoom(args.zoom)
    crop.set_rotation(args.rotation)
    crop.set_pan(*args.pan)
    if args.crop:
        crop.set_crop_rect(CropRect(*args.crop))

    artifact = await session.apply()
    out_path = args.output or Path(artifact.suggested_filename)
    out_path.write_bytes(artifact.data)
    print(f"{out_path}: {artifact.width}x{artifact.height} {artifact.mime_type} "
          f"q={artifact.quality_used:.2f} ({len(artifact.data)} bytes)")
    return out_path


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )
    try:
        asyncio.run(run(args))
    except CropError as exc:
        logger.debug("Pipeline error", exc_info=True)
        print(f"error: {exc.user_message} ({exc})", file=sys.stderr)
        return 1
    except (KeyError, ValueError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2
    return 0


if __name__ == "__main__":
    sys.exit(main())
