"""
Pytest configuration and fixtures for aspect-ratio-cropper tests.

Images are generated in memory with Pillow; settings persistence is
redirected to a temporary directory.
"""
import io

import pytest
from PIL import Image

from aspect_ratio_cropper import settings as settings_module
from aspect_ratio_cropper.models import BinaryData, Item


_PIL_FORMATS = {
    "image/jpeg": "JPEG",
    "image/jpg": "JPEG",
    "image/png": "PNG",
    "image/webp": "WEBP",
    "image/gif": "GIF",
    "image/tiff": "TIFF",
}


def encode_test_image(width, height, mime_type="image/png", color=(200, 40, 40)):
    """Return bytes of a solid-color image in the given format."""
    img = Image.new("RGB", (width, height), color)
    buffer = io.BytesIO()
    img.save(buffer, _PIL_FORMATS[mime_type])
    return buffer.getvalue()


def decode_size(data):
    with Image.open(io.BytesIO(data)) as img:
        return img.size


@pytest.fixture
def make_item():
    """Factory: build an Item holding a generated image."""
    def _make(width, height, mime_type="image/png", file_name="photo.png", prop="data"):
        data = encode_test_image(width, height, mime_type)
        return Item(binary={prop: BinaryData(data=data, mime_type=mime_type, file_name=file_name)})
    return _make


@pytest.fixture
def config_home(tmp_path, monkeypatch):
    """Point settings.json at a temporary directory."""
    directory = tmp_path / "config"
    directory.mkdir()
    monkeypatch.setattr(settings_module, "config_dir", lambda: directory)
    return directory
