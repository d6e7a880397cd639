"""
Data models and crop-geometry calculation.

AspectRatio and CropPlan describe one crop decision; Item, BinaryData,
CropParameters and ItemResult carry data through the batch worker.
``compute_crop`` is the center-cover calculator: given source dimensions and
a target ratio it returns the largest centered rectangle of exactly that
ratio, using only integer arithmetic.
"""

from dataclasses import dataclass, field

from aspect_ratio_cropper.config import (
    DEFAULT_ASPECT_RATIO,
    DEFAULT_BINARY_PROPERTY,
    JPEG_QUALITY_DEFAULT,
    OUTPUT_FORMAT_DEFAULT,
    WEBP_QUALITY_DEFAULT,
)


# =============================================================================
# Crop geometry
# =============================================================================
@dataclass(frozen=True)
class AspectRatio:
    """Target width:height proportion. Not reduced to lowest terms."""
    ratio_w: int
    ratio_h: int

    def __str__(self) -> str:
        return f"{self.ratio_w}:{self.ratio_h}"


@dataclass(frozen=True)
class CropPlan:
    """Crop rectangle in image coordinates, or the full image when no crop is needed."""
    needs_crop: bool
    crop_width: int
    crop_height: int
    position_x: int = 0
    position_y: int = 0
    scale: int | None = None

    @property
    def is_degenerate(self) -> bool:
        """True when the rectangle has no area and cannot be extracted."""
        return self.crop_width <= 0 or self.crop_height <= 0

    @property
    def box(self) -> tuple[int, int, int, int]:
        """Pillow crop box: (left, upper, right, lower)."""
        return (
            self.position_x,
            self.position_y,
            self.position_x + self.crop_width,
            self.position_y + self.crop_height,
        )


def compute_crop(width: int, height: int, ratio: AspectRatio) -> CropPlan:
    """
    Compute the center-cover crop of a ``width`` x ``height`` image.

    Ratios are compared by cross multiplication, so
    ``width / height == ratio_w / ratio_h`` becomes
    ``width * ratio_h == height * ratio_w`` and no rounding can occur.  The
    crop is ``scale * ratio_w`` x ``scale * ratio_h`` where ``scale`` is the
    largest integer that fits along the limiting axis, so the output ratio is
    exact.  The rectangle is centered, flooring odd leftovers.

    Inputs must be positive.  When one source dimension is smaller than the
    matching ratio component, ``scale`` is 0 and the returned plan is
    degenerate (see ``CropPlan.is_degenerate``); rejecting it is up to the
    caller.

    Examples:
        >>> compute_crop(1920, 1440, AspectRatio(16, 9))
        CropPlan(needs_crop=True, crop_width=1920, crop_height=1080, position_x=0, position_y=180, scale=120)
        >>> compute_crop(1000, 1000, AspectRatio(1, 1)).needs_crop
        False
    """
    ratio_w, ratio_h = ratio.ratio_w, ratio.ratio_h

    if width * ratio_h == height * ratio_w:
        return CropPlan(needs_crop=False, crop_width=width, crop_height=height)

    if width * ratio_h > height * ratio_w:
        # Wider than target: height limits the scale
        scale = height // ratio_h
    else:
        # Taller than target: width limits the scale
        scale = width // ratio_w
    crop_w = scale * ratio_w
    crop_h = scale * ratio_h

    return CropPlan(
        needs_crop=True,
        crop_width=crop_w,
        crop_height=crop_h,
        position_x=(width - crop_w) // 2,
        position_y=(height - crop_h) // 2,
        scale=scale,
    )


# =============================================================================
# Items and results
# =============================================================================
@dataclass
class BinaryData:
    """Binary payload attached to an item."""
    data: bytes
    mime_type: str = ""
    file_name: str | None = None


@dataclass
class Item:
    """One unit of work: JSON fields plus named binary payloads."""
    json: dict = field(default_factory=dict)
    binary: dict = field(default_factory=dict)  # property name -> BinaryData


@dataclass
class CropParameters:
    """Per-run parameters applied to every item."""
    binary_property: str = DEFAULT_BINARY_PROPERTY
    aspect_ratio: str = DEFAULT_ASPECT_RATIO
    output_format: str = OUTPUT_FORMAT_DEFAULT
    jpeg_quality: int = JPEG_QUALITY_DEFAULT
    webp_quality: int = WEBP_QUALITY_DEFAULT


@dataclass
class ItemResult:
    """Outcome for one item: metadata and output binary, or an error message."""
    index: int
    json: dict = field(default_factory=dict)
    binary: dict = field(default_factory=dict)  # property name -> BinaryData
    error: str | None = None

    @property
    def success(self) -> bool:
        return self.error is None

    @classmethod
    def failure(cls, index: int, exc: BaseException) -> "ItemResult":
        return cls(index=index, json={"error": str(exc)}, error=str(exc))

    def to_dict(self) -> dict:
        """JSON-safe summary; binary payloads are described, not embedded."""
        return {
            "index": self.index,
            "success": self.success,
            "json": dict(self.json),
            "binary": {
                name: {
                    "file_name": payload.file_name,
                    "mime_type": payload.mime_type,
                    "size": len(payload.data),
                }
                for name, payload in self.binary.items()
            },
        }


@dataclass
class BatchResult:
    """Ordered results of a batch run."""
    results: list = field(default_factory=list)  # list[ItemResult], input order

    @property
    def succeeded(self) -> list:
        return [r for r in self.results if r.success]

    @property
    def failed(self) -> list:
        return [r for r in self.results if not r.success]
