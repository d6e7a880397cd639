"""
Aspect-ratio strings: validation, parsing and filename tokens.

A ratio is written ``W:H`` with both parts positive integers (``16:9``,
``1:1``, ``21:9``).  Ratios are used exactly as written and never reduced,
so ``32:18`` and ``16:9`` produce different crop scales and filenames.
"""

import re

from aspect_ratio_cropper.errors import InvalidAspectRatioError
from aspect_ratio_cropper.models import AspectRatio

_RATIO_PATTERN = re.compile(r"([0-9]+):([0-9]+)")
_EXTENSION_PATTERN = re.compile(r"\.[^/.]+$")

_DEFAULT_BASE_NAME = "image"


# =============================================================================
# Validation / parsing
# =============================================================================
def is_valid_aspect_ratio(value: object) -> bool:
    """Return True for strings like ``"16:9"`` whose parts are both > 0."""
    if not value or not isinstance(value, str):
        return False
    match = _RATIO_PATTERN.fullmatch(value)
    if not match:
        return False
    w, h = match.groups()
    return int(w) > 0 and int(h) > 0


def parse_aspect_ratio(value: object, item_index: int | None = None) -> AspectRatio:
    """
    Parse a ``W:H`` string into an AspectRatio.

    Raises InvalidAspectRatioError for anything ``is_valid_aspect_ratio``
    rejects.

    Examples:
        >>> parse_aspect_ratio("16:9")
        AspectRatio(ratio_w=16, ratio_h=9)
    """
    if not is_valid_aspect_ratio(value):
        raise InvalidAspectRatioError(
            f'Invalid aspect ratio format: "{value}". '
            "Expected format: W:H (e.g., 16:9, 1:1, 4:3)",
            item_index=item_index,
        )
    w, h = value.split(":")
    return AspectRatio(int(w), int(h))


# =============================================================================
# Filenames
# =============================================================================
def ratio_token(ratio: AspectRatio | str) -> str:
    """Filename-safe ratio token. ``16:9`` → ``16x9``"""
    return str(ratio).replace(":", "x")


def output_file_name(file_name: str | None, ratio: AspectRatio | str, extension: str) -> str:
    """
    Derive the output filename from the input name, ratio and extension.

    Only the last extension is stripped: ``photo.final.png`` with ``1:1``
    and ``jpg`` becomes ``photo.final_1x1.jpg``.  A missing name falls back
    to ``image``.
    """
    base = _EXTENSION_PATTERN.sub("", file_name or _DEFAULT_BASE_NAME)
    return f"{base}_{ratio_token(ratio)}.{extension}"
