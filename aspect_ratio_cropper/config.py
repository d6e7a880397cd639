"""
Application constants and configuration.

Supported input MIME types, output formats and quality bounds used by the
ratio validator, the image codec adapter and the batch worker.  Persisted
user defaults live in settings.json via the settings module.

The ``config_dir()`` helper returns the platform-appropriate config
directory and is shared by all persistence modules.
"""

import os
import subprocess
import sys
from pathlib import Path

# =============================================================================
# APP IDENTITY & CONFIG DIRECTORY
# =============================================================================
APP_NAME = "aspect-ratio-cropper"


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
# DEFAULT PARAMETERS
# =============================================================================
DEFAULT_ASPECT_RATIO = "16:9"
DEFAULT_BINARY_PROPERTY = "data"

# Common ratios shown in the CLI help text
COMMON_RATIOS = ["1:1", "16:9", "9:16", "4:3", "3:4", "4:5", "5:4", "2:3", "3:2", "21:9"]

# =============================================================================
# INPUT / OUTPUT FORMATS
# =============================================================================
# Matches the formats the codec adapter can decode
SUPPORTED_MIME_TYPES = [
    "image/jpeg",
    "image/jpg",
    "image/png",
    "image/webp",
    "image/gif",
    "image/tiff",
    "image/svg+xml",
]

SAME_AS_INPUT = "same"

# Output format options
OUTPUT_FORMATS = [SAME_AS_INPUT, "jpeg", "png", "webp", "gif", "tiff"]
OUTPUT_FORMAT_DEFAULT = SAME_AS_INPUT

# MIME substring -> output format when "same" is requested, checked in order.
# Anything unmatched is written as JPEG.  SVG has no encoder, so it becomes PNG.
SAME_AS_INPUT_FORMATS = [
    ("png", "png"),
    ("webp", "webp"),
    ("gif", "gif"),
    ("tiff", "tiff"),
    ("svg", "png"),
]
SAME_AS_INPUT_FALLBACK = "jpeg"

# Output format -> (MIME type, file extension)
FORMAT_MIME_TYPES = {
    "jpeg": ("image/jpeg", "jpg"),
    "png": ("image/png", "png"),
    "webp": ("image/webp", "webp"),
    "gif": ("image/gif", "gif"),
    "tiff": ("image/tiff", "tiff"),
}

# Lossy quality defaults (1-100)
QUALITY_MIN = 1
QUALITY_MAX = 100
JPEG_QUALITY_DEFAULT = 80
WEBP_QUALITY_DEFAULT = 80

# PNG compression level (0-9, 9 = maximum compression)
PNG_COMPRESS_LEVEL = 9

# ---------------------------------------------------------------------------
# ImageMagick availability detection (required for SVG input)
# ---------------------------------------------------------------------------
# v7 uses a single ``magick`` binary; v6 uses ``convert``/``identify`` etc.
HAS_MAGICK = False
MAGICK_VERSION = 0  # Major version (6 or 7)

for _cmd, _ver in [("magick", 7), ("convert", 6)]:
    try:
        _magick_check = subprocess.run(
            [_cmd, "--version"], capture_output=True, timeout=5,
        )
        if _magick_check.returncode == 0:
            HAS_MAGICK = True
            MAGICK_VERSION = _ver
            break
    except (OSError, subprocess.SubprocessError):
        pass


def magick_cmd(*args: str) -> list[str]:
    """Build an ImageMagick command line that works on both v6 and v7.

    Usage examples::

        magick_cmd("identify", "-format", "%w", "file.png")
        # v7 → ["magick", "identify", "-format", "%w", "file.png"]
        # v6 → ["identify", "-format", "%w", "file.png"]

        magick_cmd("-background", "none", "svg:-", "PNG:-")
        # v7 → ["magick", "-background", "none", "svg:-", "PNG:-"]
        # v6 → ["convert", "-background", "none", "svg:-", "PNG:-"]
    """
    _V6_SUBCOMMANDS = {"identify", "composite", "mogrify", "montage", "display", "animate"}
    args_list = list(args)
    if MAGICK_VERSION >= 7:
        return ["magick"] + args_list
    # v6: first arg may be a subcommand name, or implicit "convert"
    if args_list and args_list[0] in _V6_SUBCOMMANDS:
        return args_list
    return ["convert"] + args_list


# SVG rasterization density (DPI)
SVG_RASTER_DENSITY = 72
