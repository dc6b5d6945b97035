"""
Application constants and configuration.

DEFAULT_PRESETS provides the built-in fallback aspect-ratio presets. Runtime
presets are loaded from presets.json via the presets module. All other
constants control crop-session limits, compositing, encoding and the
upload-picker boundary.

The ``config_dir()`` helper returns the platform-appropriate config
directory and is shared by all persistence modules.
"""

import os
import sys
from pathlib import Path

# =============================================================================
# APP IDENTITY & CONFIG DIRECTORY
# =============================================================================
APP_NAME = "showcase-crop"


def config_dir() -> Path:
    """Return the platform-appropriate config directory, creating it if needed."""
    if sys.platform == "win32":
        base = Path(os.environ.get("APPDATA", Path.home() / "AppData" / "Roaming"))
    elif sys.platform == "darwin":
        base = Path.home() / "Library" / "Application Support"
    else:
        base = Path(os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config"))
    directory = base / APP_NAME
    directory.mkdir(parents=True, exist_ok=True)
    return directory

# =============================================================================
# DEFAULT PRESETS — Built-in fallback when presets.json is missing or corrupt
# =============================================================================
DEFAULT_PRESETS = [
    {"name": "avatar", "ratio_w": 1, "ratio_h": 1, "shape": "round", "locked": True},
    {"name": "16:9", "ratio_w": 16, "ratio_h": 9, "shape": "rect", "locked": False},
    {"name": "4:3", "ratio_w": 4, "ratio_h": 3, "shape": "rect", "locked": False},
    {"name": "1:1", "ratio_w": 1, "ratio_h": 1, "shape": "rect", "locked": False},
    {"name": "3:2", "ratio_w": 3, "ratio_h": 2, "shape": "rect", "locked": False},
]
DEFAULT_PRESET_NAME = "16:9"
AVATAR_PRESET_NAME = "avatar"

# Presentation shapes understood by the crop overlay (never applied to output)
PRESET_SHAPES = ("rect", "round")

# =============================================================================
# CROP SESSION LIMITS
# =============================================================================
ZOOM_MIN = 1.0
ZOOM_MAX = 3.0

# "Rotate 90°" button increment (degrees)
ROTATION_STEP = 90

# Allowed drift between crop width and height * aspect (pixels)
ASPECT_TOLERANCE_PX = 1.0

# Float slack when testing a crop rectangle against composite bounds
BOUNDS_EPSILON = 1e-6

# =============================================================================
# COMPOSITING
# =============================================================================
# Background for exposed corners of non-alpha sources (canvas flattens to black)
COMPOSITE_FILL_COLOR = (0, 0, 0)

# Largest composite buffer we are willing to allocate (per side / total area)
COMPOSITE_MAX_DIMENSION = 32_767
COMPOSITE_MAX_PIXELS = 268_435_456

# =============================================================================
# ENCODING
# =============================================================================
# Quality is expressed in (0, 1] like canvas.toBlob()
JPEG_QUALITY_DEFAULT = 0.95
JPEG_SUBSAMPLING_DEFAULT = "4:4:4"

# Map subsampling labels to Pillow integer values
JPEG_SUBSAMPLING_MAP = {"4:4:4": 0, "4:2:2": 1, "4:2:0": 2}

# Output format options: Pillow format -> (mime type, file extension)
OUTPUT_FORMATS = {
    "JPEG": ("image/jpeg", ".jpg"),
    "WEBP": ("image/webp", ".webp"),
}
OUTPUT_FORMAT_DEFAULT = "JPEG"

# Filename used for every avatar upload
AVATAR_FILENAME = "profile-picture.jpg"

# =============================================================================
# SOURCES
# =============================================================================
# Seconds to wait for a remote image when re-editing an existing upload
REMOTE_FETCH_TIMEOUT = 30

# Limits enforced by the upload picker before the pipeline runs (bytes)
ACCEPTED_MIME_TYPES = ("image/jpeg", "image/png", "image/webp")
UPLOAD_LIMITS = {
    "avatar": 5 * 1024 * 1024,
    "showcase": 5 * 1024 * 1024,
    "logo": 2 * 1024 * 1024,
}
