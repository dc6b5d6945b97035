"""
Data models and crop-session utilities.

Raster, CropRect and CropSession are the core data structures shared by the
edit session and the render worker.  ``CropSession`` is the explicit value
object the interactive controller writes into; the pipeline only ever sees
an immutable ``CropParams`` snapshot taken at apply time.  The helpers at
the bottom handle aspect-ratio math for deriving a crop rectangle from
zoom and pan.
"""

from dataclasses import dataclass, replace

from PIL import Image

from showcase_crop.config import (
    ASPECT_TOLERANCE_PX, JPEG_QUALITY_DEFAULT, OUTPUT_FORMAT_DEFAULT,
    PRESET_SHAPES, ROTATION_STEP, ZOOM_MAX, ZOOM_MIN,
)


# =============================================================================
# Data classes
# =============================================================================
@dataclass(frozen=True)
class Raster:
    """Decoded pixel grid.  The wrapped image must not be mutated."""
    image: Image.Image

    def __post_init__(self):
        w, h = self.image.size
        if w < 1 or h < 1:
            raise ValueError(f"Raster dimensions must be at least 1x1, got {w}x{h}")

    @property
    def width(self) -> int:
        return self.image.width

    @property
    def height(self) -> int:
        return self.image.height

    @property
    def size(self) -> tuple[int, int]:
        return self.image.size

    @property
    def mode(self) -> str:
        return self.image.mode

    def pixel(self, x: int, y: int):
        """Sample the pixel at integer coordinates (x, y)."""
        return self.image.getpixel((x, y))


@dataclass(frozen=True)
class CropRect:
    """Crop rectangle in composite coordinates (may be sub-pixel)."""
    x: float = 0.0
    y: float = 0.0
    w: float = 0.0
    h: float = 0.0

    @property
    def right(self) -> float:
        return self.x + self.w

    @property
    def bottom(self) -> float:
        return self.y + self.h

    def as_box(self) -> tuple[float, float, float, float]:
        """Return ``(left, top, right, bottom)`` as Pillow expects."""
        return (self.x, self.y, self.right, self.bottom)


@dataclass(frozen=True)
class CropParams:
    """Immutable snapshot of a CropSession handed to the render worker."""
    rotation: float
    crop_rect: CropRect
    zoom: float = ZOOM_MIN
    aspect_ratio: float = 1.0
    output_format: str = OUTPUT_FORMAT_DEFAULT
    quality: float = JPEG_QUALITY_DEFAULT


@dataclass
class CropSession:
    """Zoom, rotation, pan and crop state for one editing interaction."""
    aspect_ratio: float = 16 / 9
    zoom: float = ZOOM_MIN
    rotation: float = 0.0
    pan: tuple[float, float] = (0.0, 0.0)
    crop_rect: CropRect | None = None
    aspect_locked: bool = False
    shape: str = "rect"
    output_format: str = OUTPUT_FORMAT_DEFAULT
    quality: float = JPEG_QUALITY_DEFAULT

    def __post_init__(self):
        if not self.aspect_ratio > 0:
            raise ValueError(f"aspect_ratio must be positive, got {self.aspect_ratio!r}")
        if self.shape not in PRESET_SHAPES:
            raise ValueError(f"shape must be one of {PRESET_SHAPES}, got {self.shape!r}")
        self.set_zoom(self.zoom)
        self.rotation = normalize_rotation(self.rotation)
        if self.crop_rect is not None:
            self.set_crop_rect(self.crop_rect)

    @classmethod
    def from_preset(cls, preset) -> "CropSession":
        """Open a session for an aspect-ratio preset (see ``presets.AspectPreset``)."""
        return cls(aspect_ratio=preset.ratio, aspect_locked=preset.locked, shape=preset.shape)

    # -- controller updates -------------------------------------------------
    def set_zoom(self, zoom: float) -> None:
        if not ZOOM_MIN <= zoom <= ZOOM_MAX:
            raise ValueError(f"zoom must be within [{ZOOM_MIN}, {ZOOM_MAX}], got {zoom!r}")
        self.zoom = float(zoom)

    def set_rotation(self, degrees: float) -> None:
        """Set rotation; a changed angle invalidates the current crop rectangle."""
        new = normalize_rotation(degrees)
        if new != self.rotation:
            self.crop_rect = None
        self.rotation = new

    def rotate_step(self) -> None:
        """Advance rotation by one quarter turn."""
        self.set_rotation(self.rotation + ROTATION_STEP)

    def set_pan(self, x: float, y: float) -> None:
        self.pan = (float(x), float(y))

    def set_aspect_ratio(self, ratio: float) -> None:
        if self.aspect_locked:
            raise ValueError("aspect ratio is locked for this session")
        if not ratio > 0:
            raise ValueError(f"aspect_ratio must be positive, got {ratio!r}")
        if ratio != self.aspect_ratio:
            self.crop_rect = None
        self.aspect_ratio = float(ratio)

    def set_crop_rect(self, rect: CropRect) -> None:
        """Store the controller's crop rectangle after checking its aspect ratio."""
        if rect.w <= 0 or rect.h <= 0:
            raise ValueError(f"crop rectangle must have a positive size, got {rect.w}x{rect.h}")
        if abs(rect.w - rect.h * self.aspect_ratio) > ASPECT_TOLERANCE_PX:
            raise ValueError(
                f"crop rectangle {rect.w}x{rect.h} does not match aspect ratio "
                f"{self.aspect_ratio:.4f}"
            )
        self.crop_rect = rect

    def reset(self) -> None:
        """Back to zoom 1, no rotation, centered."""
        self.zoom = ZOOM_MIN
        self.rotation = 0.0
        self.pan = (0.0, 0.0)
        self.crop_rect = None

    def snapshot(self, crop_rect: CropRect | None = None) -> CropParams:
        """Freeze the current state for one apply action."""
        rect = crop_rect if crop_rect is not None else self.crop_rect
        if rect is None:
            raise ValueError("crop rectangle has not been set")
        return CropParams(
            rotation=self.rotation,
            crop_rect=replace(rect),
            zoom=self.zoom,
            aspect_ratio=self.aspect_ratio,
            output_format=self.output_format,
            quality=self.quality,
        )


# =============================================================================
# Crop math utilities
# =============================================================================
def normalize_rotation(degrees: float) -> float:
    """Wrap an angle into [0, 360).  360 → 0, -90 → 270."""
    wrapped = float(degrees) % 360.0
    # -1e-17 % 360 rounds up to 360.0
    return 0.0 if wrapped >= 360.0 else wrapped


def calculate_max_crop(img_w: float, img_h: float, aspect: float) -> tuple[float, float]:
    """Calculate the maximum crop dimensions for a given aspect ratio within an image."""
    # Try full width
    crop_w = float(img_w)
    crop_h = crop_w / aspect
    if crop_h <= img_h:
        return crop_w, crop_h
    # Full height
    crop_h = float(img_h)
    return min(crop_h * aspect, float(img_w)), crop_h


def derive_crop_rect(session: CropSession, img_w: int, img_h: int) -> CropRect:
    """
    Return the rectangle a pan/zoom cropper reports for *session*.

    The largest centered rectangle of the session's aspect ratio is shrunk
    by the zoom factor, shifted by the pan offset and kept inside the
    ``img_w`` × ``img_h`` composite.
    """
    max_w, max_h = calculate_max_crop(img_w, img_h, session.aspect_ratio)
    w = max_w / session.zoom
    h = max_h / session.zoom
    pan_x, pan_y = session.pan
    x = (img_w - w) / 2 + pan_x
    y = (img_h - h) / 2 + pan_y
    x = max(0.0, min(x, img_w - w))
    y = max(0.0, min(y, img_h - h))
    return CropRect(x, y, w, h)
