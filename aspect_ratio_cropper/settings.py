"""
Settings persistence: load, save, and validate default run parameters.

Defaults are stored in a JSON file in the user's config directory
(provided by ``config.config_dir()``).  On first use (or if the file is
missing/corrupt), the file is created from DEFAULT_SETTINGS.  Command-line
options override whatever is loaded here.

The on-disk format uses a versioned envelope::

    {"version": 1, "settings": {"aspect_ratio": "16:9", ...}}
"""

import json
import logging
from copy import deepcopy
from pathlib import Path

from aspect_ratio_cropper.config import (
    DEFAULT_ASPECT_RATIO,
    DEFAULT_BINARY_PROPERTY,
    JPEG_QUALITY_DEFAULT,
    OUTPUT_FORMAT_DEFAULT,
    OUTPUT_FORMATS,
    QUALITY_MAX,
    QUALITY_MIN,
    WEBP_QUALITY_DEFAULT,
    config_dir,
)
from aspect_ratio_cropper.ratios import is_valid_aspect_ratio

logger = logging.getLogger(__name__)

_SETTINGS_FILENAME = "settings.json"
_FORMAT_VERSION = 1

DEFAULT_SETTINGS = {
    "aspect_ratio": DEFAULT_ASPECT_RATIO,
    "output_format": OUTPUT_FORMAT_DEFAULT,
    "jpeg_quality": JPEG_QUALITY_DEFAULT,
    "webp_quality": WEBP_QUALITY_DEFAULT,
    "binary_property": DEFAULT_BINARY_PROPERTY,
    "continue_on_fail": False,
    "workers": 1,
}

_QUALITY_KEYS = ("jpeg_quality", "webp_quality")


def _settings_path() -> Path:
    """Return the full path to settings.json."""
    return config_dir() / _SETTINGS_FILENAME


# =============================================================================
# Validation
# =============================================================================
def validate_settings(data: object) -> list[str]:
    """
    Validate a settings dict.

    Unknown keys are rejected; missing keys are allowed and fall back to
    DEFAULT_SETTINGS on load.  Returns a list of error strings (empty means
    valid).
    """
    errors: list[str] = []

    if not isinstance(data, dict):
        errors.append("Settings must be a dict")
        return errors

    unknown = data.keys() - DEFAULT_SETTINGS.keys()
    if unknown:
        errors.append(f"unknown keys: {', '.join(sorted(unknown))}")

    if "aspect_ratio" in data and not is_valid_aspect_ratio(data["aspect_ratio"]):
        errors.append(f"aspect_ratio must look like W:H with positive integers, got {data['aspect_ratio']!r}")

    if "output_format" in data and data["output_format"] not in OUTPUT_FORMATS:
        errors.append(
            f"output_format must be one of {', '.join(OUTPUT_FORMATS)}, got {data['output_format']!r}"
        )

    for key in _QUALITY_KEYS:
        if key not in data:
            continue
        val = data[key]
        if isinstance(val, bool) or not isinstance(val, int) or not (QUALITY_MIN <= val <= QUALITY_MAX):
            errors.append(f"{key} must be an integer between {QUALITY_MIN} and {QUALITY_MAX}, got {val!r}")

    if "binary_property" in data:
        prop = data["binary_property"]
        if not isinstance(prop, str) or not prop.strip():
            errors.append("binary_property must be a non-empty string")

    if "continue_on_fail" in data and not isinstance(data["continue_on_fail"], bool):
        errors.append(f"continue_on_fail must be true or false, got {data['continue_on_fail']!r}")

    if "workers" in data:
        val = data["workers"]
        if isinstance(val, bool) or not isinstance(val, int) or val <= 0:
            errors.append(f"workers must be a positive integer, got {val!r}")

    return errors


# =============================================================================
# Load / Save
# =============================================================================
def load_settings() -> dict:
    """
    Load settings from settings.json, filling gaps from DEFAULT_SETTINGS.

    If the file is missing, corrupt, or fails validation, writes the
    defaults and returns them.
    """
    path = _settings_path()

    if not path.exists():
        logger.info("settings.json not found; creating with defaults at %s", path)
        _write_defaults(path)
        return deepcopy(DEFAULT_SETTINGS)

    try:
        text = path.read_text(encoding="utf-8")
        raw = json.loads(text)
    except (json.JSONDecodeError, OSError) as exc:
        logger.warning("Failed to read settings.json (%s); restoring defaults", exc)
        _write_defaults(path)
        return deepcopy(DEFAULT_SETTINGS)

    if not isinstance(raw, dict) or "version" not in raw or "settings" not in raw:
        logger.warning("settings.json missing version envelope; restoring defaults")
        _write_defaults(path)
        return deepcopy(DEFAULT_SETTINGS)

    data = raw["settings"]
    errors = validate_settings(data)
    if errors:
        logger.warning(
            "settings.json validation failed:\n  %s\nRestoring defaults.",
            "\n  ".join(errors),
        )
        _write_defaults(path)
        return deepcopy(DEFAULT_SETTINGS)

    merged = deepcopy(DEFAULT_SETTINGS)
    merged.update(data)
    return merged


def save_settings(settings: dict) -> None:
    """
    Validate and write settings to settings.json in versioned envelope.

    Raises ValueError if validation fails.
    Raises OSError if the file cannot be written.
    """
    errors = validate_settings(settings)
    if errors:
        raise ValueError("Invalid settings:\n  " + "\n  ".join(errors))

    envelope = {"version": _FORMAT_VERSION, "settings": settings}
    path = _settings_path()
    path.write_text(json.dumps(envelope, indent=2, ensure_ascii=False), encoding="utf-8")
    logger.info("Saved settings to %s", path)


def _write_defaults(path: Path) -> None:
    """Write DEFAULT_SETTINGS to the given path in versioned envelope."""
    try:
        envelope = {"version": _FORMAT_VERSION, "settings": deepcopy(DEFAULT_SETTINGS)}
        path.write_text(
            json.dumps(envelope, indent=2, ensure_ascii=False),
            encoding="utf-8",
        )
    except OSError as exc:
        logger.error("Could not write default settings to %s: %s", path, exc)
