"""
Artifact encoding.

Serializes an output raster into an in-memory lossy image (JPEG by default,
WebP optionally) and wraps it with the filename and content type the upload
transport needs.  Encoding is atomic: callers get a complete artifact with
a verified file signature or an EncodeError.
"""

import io
import logging
import time
from dataclasses import dataclass
from pathlib import PurePath

from PIL import Image

from showcase_crop.config import (
    COMPOSITE_FILL_COLOR, JPEG_QUALITY_DEFAULT, JPEG_SUBSAMPLING_DEFAULT,
    JPEG_SUBSAMPLING_MAP, OUTPUT_FORMAT_DEFAULT, OUTPUT_FORMATS,
)
from showcase_crop.errors import EncodeError
from showcase_crop.models import Raster

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OutputArtifact:
    """Encoded crop, ready to be attached to a multipart form."""
    data: bytes
    mime_type: str
    suggested_filename: str
    quality_used: float
    width: int
    height: int

    def as_form_file(self) -> tuple[str, bytes, str]:
        """``(filename, bytes, mime_type)`` as accepted by ``requests``' ``files=``."""
        return (self.suggested_filename, self.data, self.mime_type)


def has_signature(data: bytes, fmt: str) -> bool:
    """Check the leading magic bytes of an encoded image."""
    if fmt == "JPEG":
        return data[:3] == b"\xff\xd8\xff"
    if fmt == "WEBP":
        return data[:4] == b"RIFF" and data[8:12] == b"WEBP"
    return False


def output_filename(source_name: str | None, fmt: str = OUTPUT_FORMAT_DEFAULT) -> str:
    """Keep the source stem with the format's extension, or ``cropped-<ms>``."""
    ext = OUTPUT_FORMATS[fmt][1]
    stem = PurePath(source_name).stem if source_name else ""
    if not stem:
        stem = f"cropped-{int(time.time() * 1000)}"
    return f"{stem}{ext}"


def _flatten(img: Image.Image) -> Image.Image:
    """Composite alpha onto the fill colour; JPEG has no alpha channel."""
    if img.mode == "RGB":
        return img
    if img.mode != "RGBA":
        img = img.convert("RGBA")
    background = Image.new("RGB", img.size, COMPOSITE_FILL_COLOR)
    background.paste(img, mask=img.getchannel("A"))
    return background


def encode(
    raster: Raster,
    fmt: str = OUTPUT_FORMAT_DEFAULT,
    quality: float = JPEG_QUALITY_DEFAULT,
    filename: str | None = None,
) -> OutputArtifact:
    """
    Encode *raster* as *fmt* at *quality* in (0, 1].

    Raises ValueError for an unknown format or out-of-range quality, and
    EncodeError if Pillow fails or produces bytes without a valid signature.
    """
    if fmt not in OUTPUT_FORMATS:
        raise ValueError(f"Unsupported output format {fmt!r}; expected one of {sorted(OUTPUT_FORMATS)}")
    if not 0 < quality <= 1:
        raise ValueError(f"quality must be in (0, 1], got {quality!r}")

    mime_type, _ = OUTPUT_FORMATS[fmt]
    pil_quality = max(1, min(100, round(quality * 100)))
    buf = io.BytesIO()
    try:
        img = _flatten(raster.image)
        if fmt == "JPEG":
            img.save(
                buf, "JPEG",
                quality=pil_quality,
                optimize=True,
                subsampling=JPEG_SUBSAMPLING_MAP[JPEG_SUBSAMPLING_DEFAULT],
            )
        else:
            img.save(buf, "WEBP", quality=pil_quality)
    except (OSError, ValueError, MemoryError) as exc:
        raise EncodeError(f"Failed to encode {fmt}: {exc}") from exc

    data = buf.getvalue()
    if not has_signature(data, fmt):
        raise EncodeError(f"Encoder produced an invalid {fmt} stream ({len(data)} bytes)")

    logger.debug("Encoded %dx%d %s at quality %.2f (%d bytes)",
                 raster.width, raster.height, fmt, quality, len(data))
    return OutputArtifact(
        data=data,
        mime_type=mime_type,
        suggested_filename=filename or output_filename(None, fmt),
        quality_used=quality,
        width=raster.width,
        height=raster.height,
    )
