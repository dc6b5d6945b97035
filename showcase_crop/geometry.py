"""
Rotation geometry (Pillow-free).

Maps a rotated view of a ``width`` × ``height`` raster back to axis-aligned
pixel coordinates.  Angles are in degrees, positive values turn clockwise on
screen (y axis pointing down), matching how a canvas 2D context rotates.
"""

import math

from showcase_crop.models import normalize_rotation


def quarter_turns(rotation: float) -> int | None:
    """Return 0-3 if *rotation* is an exact multiple of 90°, else None."""
    deg = normalize_rotation(rotation)
    if deg % 90 == 0:
        return int(deg // 90)
    return None


def rotated_bounds(width: int, height: int, rotation: float) -> tuple[int, int]:
    """
    Smallest integer (w, h) box that fully contains the rotated raster.

    ``w' = ceil(w·|cos θ| + h·|sin θ|)``, ``h' = ceil(w·|sin θ| + h·|cos θ|)``.
    Multiples of 90° are answered exactly so trig rounding never adds a
    pixel.
    """
    turns = quarter_turns(rotation)
    if turns is not None:
        return (width, height) if turns % 2 == 0 else (height, width)

    rad = math.radians(normalize_rotation(rotation))
    cos = abs(math.cos(rad))
    sin = abs(math.sin(rad))
    return (
        math.ceil(width * cos + height * sin),
        math.ceil(width * sin + height * cos),
    )


def inverse_affine(
    src_w: int, src_h: int, dst_w: int, dst_h: int, rotation: float,
) -> tuple[float, float, float, float, float, float]:
    """
    Affine coefficients mapping composite coordinates back to source ones.

    Returns ``(a, b, c, d, e, f)`` such that a composite point (X, Y) samples
    the source at ``(a·X + b·Y + c, d·X + e·Y + f)``.  Both rasters share
    their center, so the source center lands on the composite center.
    """
    rad = math.radians(normalize_rotation(rotation))
    cos = math.cos(rad)
    sin = math.sin(rad)
    cx, cy = dst_w / 2, dst_h / 2
    return (
        cos, sin, src_w / 2 - cos * cx - sin * cy,
        -sin, cos, src_h / 2 + sin * cx - cos * cy,
    )


def round_half_away(value: float) -> int:
    """Round to the nearest integer, ties away from zero (2.5 → 3, -2.5 → -3)."""
    rounded = math.floor(abs(value) + 0.5)
    return int(rounded if value >= 0 else -rounded)
