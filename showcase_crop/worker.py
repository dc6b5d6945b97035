"""
Render stages: composite and extract.

Every function here is a pure function of its inputs and allocates fresh
buffers per call, so the edit session can push them onto any executor
thread.  Nothing in this module keeps state between calls.
"""

import logging
import math

from PIL import Image

from showcase_crop.config import (
    BOUNDS_EPSILON, COMPOSITE_FILL_COLOR, COMPOSITE_MAX_DIMENSION, COMPOSITE_MAX_PIXELS,
)
from showcase_crop.errors import CompositeError, CropOutOfBoundsError
from showcase_crop.geometry import inverse_affine, quarter_turns, rotated_bounds, round_half_away
from showcase_crop.models import CropRect, Raster

logger = logging.getLogger(__name__)

# Clockwise quarter turns -> Pillow transpose (Pillow's ROTATE_* are counter-clockwise)
_QUARTER_TURN_TRANSPOSE = {
    1: Image.Transpose.ROTATE_270,
    2: Image.Transpose.ROTATE_180,
    3: Image.Transpose.ROTATE_90,
}


# =============================================================================
# Compositor
# =============================================================================
def _check_allocation(width: int, height: int) -> None:
    if width > COMPOSITE_MAX_DIMENSION or height > COMPOSITE_MAX_DIMENSION:
        raise CompositeError(
            f"Composite {width}x{height} exceeds the {COMPOSITE_MAX_DIMENSION}px side limit"
        )
    if width * height > COMPOSITE_MAX_PIXELS:
        raise CompositeError(
            f"Composite {width}x{height} exceeds the {COMPOSITE_MAX_PIXELS} pixel limit"
        )


def composite(raster: Raster, rotation: float) -> Raster:
    """
    Draw *raster* rotated about its center into a bounding-box sized buffer.

    Quarter turns are lossless transposes; other angles are resampled
    bilinearly, with the exposed corners left transparent (RGBA sources)
    or painted with ``COMPOSITE_FILL_COLOR``.
    """
    src = raster.image
    dst_w, dst_h = rotated_bounds(raster.width, raster.height, rotation)
    _check_allocation(dst_w, dst_h)

    turns = quarter_turns(rotation)
    try:
        if turns == 0:
            out = src.copy()
        elif turns is not None:
            out = src.transpose(_QUARTER_TURN_TRANSPOSE[turns])
        else:
            fill = (0, 0, 0, 0) if src.mode == "RGBA" else COMPOSITE_FILL_COLOR
            out = src.transform(
                (dst_w, dst_h),
                Image.Transform.AFFINE,
                inverse_affine(raster.width, raster.height, dst_w, dst_h, rotation),
                resample=Image.Resampling.BILINEAR,
                fillcolor=fill,
            )
    except (MemoryError, ValueError, OSError) as exc:
        raise CompositeError(f"Could not allocate {dst_w}x{dst_h} composite: {exc}") from exc

    logger.debug("Composited %dx%d source at %.2f° into %dx%d buffer",
                 raster.width, raster.height, rotation, dst_w, dst_h)
    return Raster(out)


# =============================================================================
# Extractor
# =============================================================================
def check_bounds(rect: CropRect, width: int, height: int) -> None:
    """Raise CropOutOfBoundsError unless *rect* lies inside ``width`` × ``height``."""
    values = (rect.x, rect.y, rect.w, rect.h)
    if not all(math.isfinite(v) for v in values):
        raise CropOutOfBoundsError(f"Crop rectangle has non-finite values: {values}")
    if rect.w <= 0 or rect.h <= 0:
        raise CropOutOfBoundsError(f"Crop rectangle has no area: {rect.w}x{rect.h}")
    if (
        rect.x < -BOUNDS_EPSILON
        or rect.y < -BOUNDS_EPSILON
        or rect.right > width + BOUNDS_EPSILON
        or rect.bottom > height + BOUNDS_EPSILON
    ):
        raise CropOutOfBoundsError(
            f"Crop ({rect.x}, {rect.y}, {rect.w}x{rect.h}) is outside the "
            f"{width}x{height} composite"
        )


def extract(composite_raster: Raster, rect: CropRect) -> Raster:
    """
    Copy *rect* out of the composite as a new raster.

    The output is ``round_half_away(w)`` × ``round_half_away(h)`` pixels.
    Pixel-aligned rectangles are copied verbatim; sub-pixel ones are
    resampled bilinearly.  Never clamps.
    """
    check_bounds(rect, composite_raster.width, composite_raster.height)
    out_w = round_half_away(rect.w)
    out_h = round_half_away(rect.h)
    if out_w < 1 or out_h < 1:
        raise CropOutOfBoundsError(f"Crop {rect.w}x{rect.h} rounds to an empty raster")

    src = composite_raster.image
    aligned = all(float(v).is_integer() for v in (rect.x, rect.y)) and (rect.w, rect.h) == (out_w, out_h)
    if aligned:
        x, y = int(rect.x), int(rect.y)
        out = src.crop((x, y, x + out_w, y + out_h))
    else:
        out = src.transform(
            (out_w, out_h),
            Image.Transform.EXTENT,
            rect.as_box(),
            resample=Image.Resampling.BILINEAR,
        )
    return Raster(out)

