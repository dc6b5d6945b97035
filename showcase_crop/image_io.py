"""
Raster decoding.

Turns an encoded image source (raw bytes, a ``data:`` URI, a local path or a
remote URL) into a ``Raster``.  PSD files are flattened with psd-tools,
everything else goes through Pillow.  Remote images (re-editing an existing
upload) are fetched with requests.  Safe to call from worker threads.
"""

import base64
import io
import logging
from pathlib import Path
from urllib.parse import unquote, unquote_to_bytes, urlparse

import requests
from PIL import Image, ImageOps
from psd_tools import PSDImage

from showcase_crop.config import REMOTE_FETCH_TIMEOUT
from showcase_crop.errors import DecodeError
from showcase_crop.models import Raster

logger = logging.getLogger(__name__)

# No size ceiling here; the upload picker enforces byte limits
Image.MAX_IMAGE_PIXELS = None

_PSD_SIGNATURE = b"8BPS"
_REMOTE_SCHEMES = ("http", "https")


# =============================================================================
# Source readers
# =============================================================================
def _is_remote(source: str) -> bool:
    return urlparse(source).scheme in _REMOTE_SCHEMES


def _read_data_uri(uri: str) -> bytes:
    """Decode a ``data:[<mime>][;base64],<payload>`` URI into bytes."""
    header, sep, payload = uri.partition(",")
    if not sep:
        raise DecodeError("Malformed data URI: missing ',' separator")
    if header.endswith(";base64"):
        try:
            return base64.b64decode(payload, validate=True)
        except ValueError as exc:
            raise DecodeError(f"Malformed data URI: {exc}") from exc
    return unquote_to_bytes(payload)


def _fetch_remote(url: str) -> bytes:
    """Download a remote image, raising DecodeError on any transport failure."""
    logger.debug("Fetching remote image %s", url)
    try:
        response = requests.get(url, timeout=REMOTE_FETCH_TIMEOUT)
        response.raise_for_status()
    except requests.RequestException as exc:
        raise DecodeError(f"Could not fetch {url}: {exc}") from exc
    return response.content


def read_source(source) -> bytes | Path:
    """Resolve *source* to raw bytes or a local path without decoding it."""
    if isinstance(source, (bytes, bytearray, memoryview)):
        return bytes(source)
    if isinstance(source, Path):
        return source
    if isinstance(source, str):
        if source.startswith("data:"):
            return _read_data_uri(source)
        if _is_remote(source):
            return _fetch_remote(source)
        return Path(source)
    raise DecodeError(f"Unsupported image source type: {type(source).__name__}")


def source_filename(source) -> str | None:
    """Best-effort original filename of *source* (None for bytes and data URIs)."""
    if isinstance(source, Path):
        return source.name
    if isinstance(source, str) and not source.startswith("data:"):
        if _is_remote(source):
            name = Path(unquote(urlparse(source).path)).name
        else:
            name = Path(source).name
        return name or None
    return None


# =============================================================================
# Decoding
# =============================================================================
def _is_psd(raw: bytes | Path) -> bool:
    if isinstance(raw, Path):
        return raw.suffix.lower() == ".psd"
    return raw[:4] == _PSD_SIGNATURE


def open_image(raw: bytes | Path) -> Image.Image:
    """Open raw bytes or a path, using psd-tools for PSD and Pillow for the rest."""
    if _is_psd(raw):
        psd = PSDImage.open(str(raw) if isinstance(raw, Path) else io.BytesIO(raw))
        return psd.composite()
    if isinstance(raw, Path):
        return Image.open(raw)
    return Image.open(io.BytesIO(raw))


def _normalize_mode(img: Image.Image) -> Image.Image:
    """Collapse any Pillow mode to RGB, or RGBA when the source carries alpha."""
    has_alpha = img.mode in ("RGBA", "LA", "PA", "La", "RGBa") or "transparency" in img.info
    target = "RGBA" if has_alpha else "RGB"
    return img if img.mode == target else img.convert(target)


def decode(source) -> Raster:
    """
    Decode *source* into a Raster.

    EXIF orientation is applied the way a browser does before drawing.
    Any failure (unreadable path, bad data URI, unreachable URL, corrupt or
    unsupported data) raises DecodeError.
    """
    raw = read_source(source)
    try:
        img = open_image(raw)
        img.load()
        img = ImageOps.exif_transpose(img)
        img = _normalize_mode(img)
    except Exception as exc:
        raise DecodeError(f"Could not decode image: {exc}") from exc

    logger.debug("Decoded %dx%d %s raster", img.width, img.height, img.mode)
    return Raster(img)
