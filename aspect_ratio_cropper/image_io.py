"""
Image codec adapter built on Pillow.

Decodes binary payloads (SVG through ImageMagick), reads dimensions,
extracts crop rectangles and re-encodes to the requested output format.
Safe to import in worker processes.
"""

import io
import logging
import subprocess
from pathlib import Path

from PIL import Image

from aspect_ratio_cropper import config
from aspect_ratio_cropper.errors import (
    ImageDecodeError,
    ImageDimensionsError,
    ImageEncodeError,
    InvalidParameterError,
    UnsupportedFormatError,
)
from aspect_ratio_cropper.models import CropPlan

logger = logging.getLogger(__name__)

# Allow very large images (Pillow's default limit is ~178MP)
Image.MAX_IMAGE_PIXELS = None

# Output format -> Pillow format name
_PIL_FORMATS = {
    "jpeg": "JPEG",
    "png": "PNG",
    "webp": "WEBP",
    "gif": "GIF",
    "tiff": "TIFF",
}


# =============================================================================
# Input
# =============================================================================
def is_supported_mime_type(mime_type: str | None) -> bool:
    """Case-insensitive check against ``config.SUPPORTED_MIME_TYPES``."""
    return (mime_type or "").lower() in config.SUPPORTED_MIME_TYPES


def rasterize_svg(data: bytes, item_index: int | None = None) -> bytes:
    """Rasterize SVG bytes to PNG bytes with ImageMagick."""
    if not config.HAS_MAGICK:
        raise UnsupportedFormatError(
            "ImageMagick is required for SVG input. "
            "Install from https://imagemagick.org/ or convert the image to PNG first.",
            item_index=item_index,
        )
    result = subprocess.run(
        config.magick_cmd("-density", str(config.SVG_RASTER_DENSITY),
                          "-background", "none", "svg:-", "PNG:-"),
        input=data, capture_output=True, timeout=120,
    )
    if result.returncode != 0:
        raise ImageDecodeError(
            f"ImageMagick rasterize failed: {result.stderr.decode(errors='replace').strip()}",
            item_index=item_index,
        )
    return result.stdout


def open_image(data: bytes, mime_type: str = "", item_index: int | None = None) -> Image.Image:
    """Decode image bytes, using ImageMagick for SVG and Pillow for the rest."""
    if "svg" in (mime_type or "").lower():
        data = rasterize_svg(data, item_index)
    try:
        img = Image.open(io.BytesIO(data))
        img.load()
    except OSError as exc:
        raise ImageDecodeError(f"Could not read image data: {exc}", item_index=item_index) from exc
    return img


def get_image_size(img: Image.Image, item_index: int | None = None) -> tuple[int, int]:
    """Return ``(width, height)``, rejecting images with an empty axis."""
    width, height = img.size
    if width <= 0 or height <= 0:
        raise ImageDimensionsError("Could not determine image dimensions", item_index=item_index)
    return width, height


# =============================================================================
# Crop
# =============================================================================
def apply_crop(img: Image.Image, plan: CropPlan) -> Image.Image:
    """Extract the plan's rectangle, or return the image untouched."""
    if not plan.needs_crop:
        return img
    return img.crop(plan.box)


# =============================================================================
# Output
# =============================================================================
def resolve_output_format(output_format: str, mime_type: str, item_index: int | None = None) -> str:
    """
    Resolve the concrete output format for an item.

    ``"same"`` follows the input MIME type through
    ``config.SAME_AS_INPUT_FORMATS`` (SVG becomes PNG, unknown types JPEG).
    """
    if output_format == config.SAME_AS_INPUT:
        mime = (mime_type or "").lower()
        for needle, fmt in config.SAME_AS_INPUT_FORMATS:
            if needle in mime:
                return fmt
        return config.SAME_AS_INPUT_FALLBACK

    if output_format not in config.FORMAT_MIME_TYPES:
        raise UnsupportedFormatError(
            f"Unsupported output format: {output_format}. "
            f"Supported formats: {', '.join(config.OUTPUT_FORMATS)}",
            item_index=item_index,
        )
    return output_format


def output_mime_and_extension(fmt: str) -> tuple[str, str]:
    """``"jpeg"`` → ``("image/jpeg", "jpg")``"""
    return config.FORMAT_MIME_TYPES[fmt]


def _check_quality(quality: int, item_index: int | None) -> int:
    if not isinstance(quality, int) or not (config.QUALITY_MIN <= quality <= config.QUALITY_MAX):
        raise InvalidParameterError(
            f"Quality must be an integer between {config.QUALITY_MIN} and "
            f"{config.QUALITY_MAX}, got {quality!r}",
            item_index=item_index,
        )
    return quality


def encode_image(
    img: Image.Image,
    fmt: str,
    quality: int | None = None,
    item_index: int | None = None,
) -> bytes:
    """
    Encode *img* as *fmt* and return the bytes.

    JPEG and WebP honour *quality* (1-100, default 80).  GIF output is a
    single frame; animated input keeps only its first frame.
    """
    if fmt not in _PIL_FORMATS:
        raise UnsupportedFormatError(f"Unsupported output format: {fmt}", item_index=item_index)

    options: dict = {}
    if fmt == "jpeg":
        options["quality"] = _check_quality(
            config.JPEG_QUALITY_DEFAULT if quality is None else quality, item_index)
        if img.mode not in ("RGB", "L", "CMYK"):
            img = img.convert("RGB")
    elif fmt == "webp":
        options["quality"] = _check_quality(
            config.WEBP_QUALITY_DEFAULT if quality is None else quality, item_index)
        if img.mode not in ("RGB", "RGBA"):
            img = img.convert("RGBA")
    elif fmt == "png":
        options["compress_level"] = config.PNG_COMPRESS_LEVEL
        if img.mode == "CMYK":
            img = img.convert("RGB")
    elif fmt == "gif":
        if img.mode == "CMYK":
            img = img.convert("RGB")

    buffer = io.BytesIO()
    try:
        img.save(buffer, _PIL_FORMATS[fmt], **options)
    except (OSError, ValueError) as exc:
        raise ImageEncodeError(f"Could not encode image as {fmt}: {exc}", item_index=item_index) from exc
    logger.debug("Encoded %dx%d image as %s (%d bytes)", img.width, img.height, fmt, buffer.tell())
    return buffer.getvalue()


# =============================================================================
# Files
# =============================================================================
def unique_path(out_path: Path) -> Path:
    """Return a unique path by appending -01, -02, etc. if file already exists."""
    if not out_path.exists():
        return out_path
    stem = out_path.stem
    suffix = out_path.suffix
    parent = out_path.parent
    counter = 1
    while True:
        candidate = parent / f"{stem}-{counter:02d}{suffix}"
        if not candidate.exists():
            return candidate
        counter += 1
