"""
Aspect-ratio presets: load, save, and validate preset configuration.

Runtime presets are stored in a JSON file in the user's config directory
(provided by ``config.config_dir()``).  On first launch (or if the file
is missing/corrupt), the file is created from DEFAULT_PRESETS.

The on-disk format uses a versioned envelope::

    {"version": 1, "presets": [ ... ]}

Each preset names an aspect ratio, a presentation shape for the crop guide
(``"rect"`` or ``"round"``) and whether the ratio is locked for the session.
The shape never changes the encoded output.
"""

import json
import logging
from copy import deepcopy
from dataclasses import dataclass
from math import gcd
from pathlib import Path

from showcase_crop.config import DEFAULT_PRESETS, PRESET_SHAPES, config_dir

logger = logging.getLogger(__name__)

_PRESETS_FILENAME = "presets.json"
_FORMAT_VERSION = 1

_REQUIRED_KEYS = {"name", "ratio_w", "ratio_h"}
_INT_KEYS = ("ratio_w", "ratio_h")


@dataclass(frozen=True)
class AspectPreset:
    name: str
    ratio_w: int
    ratio_h: int
    shape: str = "rect"
    locked: bool = False

    @property
    def ratio(self) -> float:
        return self.ratio_w / self.ratio_h

    @property
    def key(self) -> str:
        return aspect_key(self.ratio_w, self.ratio_h)

    @classmethod
    def from_dict(cls, data: dict) -> "AspectPreset":
        return cls(
            name=data["name"],
            ratio_w=data["ratio_w"],
            ratio_h=data["ratio_h"],
            shape=data.get("shape", "rect"),
            locked=bool(data.get("locked", False)),
        )


# =============================================================================
# Aspect-ratio helpers
# =============================================================================
def normalize_ratio(w: int, h: int) -> tuple[int, int]:
    """Reduce ratio to simplest form via GCD. (16, 10) → (8, 5)"""
    g = gcd(w, h)
    return w // g, h // g


def aspect_key(w: int, h: int) -> str:
    """Normalized string key for a ratio. (16, 10) → '8:5'"""
    nw, nh = normalize_ratio(w, h)
    return f"{nw}:{nh}"


def find_preset(presets: list[dict], name: str) -> AspectPreset:
    """Return the preset called *name*; raises KeyError if absent."""
    for data in presets:
        if data.get("name") == name:
            return AspectPreset.from_dict(data)
    raise KeyError(f"Unknown preset {name!r}")


# =============================================================================
# Validation
# =============================================================================
def validate_presets(data: object) -> list[str]:
    """
    Validate a presets data structure.

    Returns a list of error strings (empty means valid).
    """
    errors: list[str] = []

    if not isinstance(data, list):
        errors.append("Presets data must be a list")
        return errors

    names_seen: set[str] = set()

    for i, preset in enumerate(data):
        prefix = f"Preset #{i + 1}"

        if not isinstance(preset, dict):
            errors.append(f"{prefix}: must be a dict")
            continue

        missing = _REQUIRED_KEYS - preset.keys()
        if missing:
            errors.append(f"{prefix}: missing keys: {', '.join(sorted(missing))}")
            continue

        name = preset.get("name", "")
        if not isinstance(name, str) or not name.strip():
            errors.append(f"{prefix}: name must be a non-empty string")
        elif name in names_seen:
            errors.append(f"{prefix}: duplicate name '{name}'")
        else:
            names_seen.add(name)

        for key in _INT_KEYS:
            val = preset.get(key)
            # bool is an int subclass
            if not isinstance(val, int) or isinstance(val, bool) or val <= 0:
                errors.append(f"{prefix}: {key} must be a positive integer, got {val!r}")

        shape = preset.get("shape", "rect")
        if shape not in PRESET_SHAPES:
            errors.append(f"{prefix}: shape must be one of {', '.join(PRESET_SHAPES)}, got {shape!r}")

        if not isinstance(preset.get("locked", False), bool):
            errors.append(f"{prefix}: locked must be true or false")

    return errors


# =============================================================================
# Load / Save
# =============================================================================
def _presets_path() -> Path:
    return config_dir() / _PRESETS_FILENAME


def load_presets() -> list[dict]:
    """
    Load presets from presets.json.

    If the file is missing, corrupt, or fails validation, writes the
    defaults and returns them.
    """
    path = _presets_path()

    if not path.exists():
        logger.info("presets.json not found — creating with defaults at %s", path)
        _write_defaults(path)
        return deepcopy(DEFAULT_PRESETS)

    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, OSError) as exc:
        logger.warning("Failed to read presets.json (%s) — restoring defaults", exc)
        _write_defaults(path)
        return deepcopy(DEFAULT_PRESETS)

    if not isinstance(raw, dict) or raw.get("version") != _FORMAT_VERSION or "presets" not in raw:
        logger.warning("presets.json missing version envelope — restoring defaults")
        _write_defaults(path)
        return deepcopy(DEFAULT_PRESETS)

    data = raw["presets"]
    errors = validate_presets(data)
    if errors:
        logger.warning(
            "presets.json validation failed:\n  %s\nRestoring defaults.",
            "\n  ".join(errors),
        )
        _write_defaults(path)
        return deepcopy(DEFAULT_PRESETS)

    return data


def save_presets(presets: list[dict]) -> None:
    """
    Validate and write presets to presets.json in versioned envelope.

    Raises ValueError if validation fails.
    Raises OSError if the file cannot be written.
    """
    errors = validate_presets(presets)
    if errors:
        raise ValueError("Invalid presets data:\n  " + "\n  ".join(errors))

    envelope = {"version": _FORMAT_VERSION, "presets": presets}
    path = _presets_path()
    path.write_text(json.dumps(envelope, indent=2, ensure_ascii=False), encoding="utf-8")
    logger.info("Saved %d preset(s) to %s", len(presets), path)


def _write_defaults(path: Path) -> None:
    try:
        envelope = {"version": _FORMAT_VERSION, "presets": deepcopy(DEFAULT_PRESETS)}
        path.write_text(json.dumps(envelope, indent=2, ensure_ascii=False), encoding="utf-8")
    except OSError as exc:
        logger.error("Could not write default presets to %s: %s", path, exc)
