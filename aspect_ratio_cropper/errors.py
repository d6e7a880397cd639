"""
Exception types raised while processing an item.

Every error carries the index of the item it belongs to so a batch can
report failures per item.  Errors survive pickling, which lets them cross
the ``ProcessPoolExecutor`` boundary unchanged.
"""


class CropperError(Exception):
    """Base class for all per-item processing failures."""

    def __init__(self, message: str, item_index: int | None = None):
        super().__init__(message)
        self.message = message
        self.item_index = item_index

    def __reduce__(self):
        return self.__class__, (self.message, self.item_index)

    def __str__(self) -> str:
        return self.message


class InvalidAspectRatioError(CropperError, ValueError):
    """Ratio string is not of the form W:H with positive integers."""


class MissingBinaryDataError(CropperError):
    """Item has no binary payload under the requested property."""


class UnsupportedFormatError(CropperError):
    """Input MIME type or requested output format is not supported."""


class ImageDecodeError(CropperError):
    """Binary payload could not be decoded as an image."""


class ImageDimensionsError(CropperError):
    """Decoded image has no usable width or height."""


class DegenerateCropError(CropperError):
    """Crop plan has zero width or height and cannot be applied."""


class ImageEncodeError(CropperError):
    """Cropped image could not be written in the target format."""


class BatchAbortedError(CropperError):
    """A worker process reported a failure and the batch was stopped."""


class InvalidParameterError(CropperError, ValueError):
    """A run parameter such as quality is outside its allowed range."""
