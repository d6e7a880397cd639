"""
Tests for aspect_ratio_cropper.worker: per-item processing and batches.
"""
import pytest

from aspect_ratio_cropper.errors import (
    BatchAbortedError,
    DegenerateCropError,
    ImageDecodeError,
    InvalidAspectRatioError,
    MissingBinaryDataError,
    UnsupportedFormatError,
)
from aspect_ratio_cropper.models import BinaryData, CropParameters, Item
from aspect_ratio_cropper.worker import process_item, process_worker, run_batch
from tests.conftest import decode_size


class TestProcessItem:
    """Tests for process_item"""

    def test_crops_and_reports_metadata(self, make_item):
        """1920x1440 PNG to 16:9"""
        item = make_item(1920, 1440, "image/png", "holiday.png")

        result = process_item(item, CropParameters(aspect_ratio="16:9"), 0)

        assert result.success
        assert result.json == {
            "aspect_ratio": "16:9",
            "cropped": True,
            "original_width": 1920,
            "original_height": 1440,
            "cropped_width": 1920,
            "cropped_height": 1080,
            "position_x": 0,
            "position_y": 180,
            "scale": 120,
            "message": "Image successfully cropped to 16:9 aspect ratio.",
        }
        out = result.binary["data"]
        assert out.file_name == "holiday_16x9.png"
        assert out.mime_type == "image/png"
        assert decode_size(out.data) == (1920, 1080)

    def test_matching_image_is_not_cropped(self, make_item):
        item = make_item(400, 400, "image/jpeg", "square.jpg")

        result = process_item(item, CropParameters(aspect_ratio="1:1"), 0)

        assert result.json["cropped"] is False
        assert result.json["scale"] is None
        assert result.json["message"] == "Image already matches 1:1 aspect ratio. No crop needed."
        assert result.binary["data"].file_name == "square_1x1.jpg"
        assert decode_size(result.binary["data"].data) == (400, 400)

    def test_explicit_output_format(self, make_item):
        item = make_item(300, 200, "image/png", "wide.png")

        result = process_item(item, CropParameters(aspect_ratio="1:1", output_format="webp", webp_quality=50), 0)

        out = result.binary["data"]
        assert out.mime_type == "image/webp"
        assert out.file_name == "wide_1x1.webp"
        assert decode_size(out.data) == (200, 200)

    def test_custom_binary_property(self, make_item):
        item = make_item(300, 200, "image/gif", "anim.gif", prop="picture")

        result = process_item(item, CropParameters(aspect_ratio="3:2", binary_property="picture"), 0)

        assert list(result.binary) == ["picture"]
        assert result.binary["picture"].mime_type == "image/gif"

    @pytest.mark.parametrize("ratio", ["0:9", "abc", ""])
    def test_invalid_ratio(self, make_item, ratio):
        with pytest.raises(InvalidAspectRatioError):
            process_item(make_item(10, 10), CropParameters(aspect_ratio=ratio), 0)

    def test_missing_binary(self, make_item):
        with pytest.raises(MissingBinaryDataError, match='No binary data found in property "image"') as excinfo:
            process_item(make_item(10, 10), CropParameters(binary_property="image"), 5)
        assert excinfo.value.item_index == 5

    def test_item_without_binary(self):
        with pytest.raises(MissingBinaryDataError):
            process_item(Item(json={"a": 1}), CropParameters(), 0)

    def test_unsupported_mime(self):
        item = Item(binary={"data": BinaryData(b"BM....", "image/bmp", "old.bmp")})
        with pytest.raises(UnsupportedFormatError, match="Unsupported image format: image/bmp"):
            process_item(item, CropParameters(), 0)

    def test_unreadable_data(self):
        item = Item(binary={"data": BinaryData(b"garbage", "image/png", "x.png")})
        with pytest.raises(ImageDecodeError):
            process_item(item, CropParameters(), 0)

    def test_degenerate_plan_is_rejected(self, make_item):
        """5x5 image cannot hold a 1920:1080 rectangle"""
        with pytest.raises(DegenerateCropError, match="too small"):
            process_item(make_item(5, 5), CropParameters(aspect_ratio="1920:1080"), 0)


class TestProcessWorker:
    def test_success(self, make_item):
        args = {"index": 2, "item": make_item(20, 10, file_name="a.png"), "params": CropParameters(aspect_ratio="1:1")}

        result = process_worker(args)

        assert result["success"] is True
        assert result["index"] == 2
        assert result["name"] == "a.png"
        assert result["result"].json["cropped_width"] == 10

    def test_failure_is_reported_not_raised(self):
        args = {"index": 0, "item": Item(), "params": CropParameters()}

        result = process_worker(args)

        assert result["success"] is False
        assert result["name"] == "item 0"
        assert result["error_type"] == "MissingBinaryDataError"


class TestRunBatch:
    """Tests for run_batch failure semantics"""

    def _items(self, make_item):
        return [
            make_item(300, 200, file_name="first.png"),
            Item(binary={"data": BinaryData(b"broken", "image/png", "broken.png")}),
            make_item(200, 300, file_name="third.png"),
        ]

    def test_all_succeed_in_order(self, make_item):
        items = [make_item(300, 200), make_item(100, 100), make_item(90, 160)]

        batch = run_batch(items, CropParameters(aspect_ratio="1:1"))

        assert [r.index for r in batch.results] == [0, 1, 2]
        assert [r.json["cropped"] for r in batch.results] == [True, False, True]
        assert batch.failed == []

    def test_fail_fast_reraises_item_error(self, make_item):
        with pytest.raises(ImageDecodeError) as excinfo:
            run_batch(self._items(make_item), CropParameters(aspect_ratio="1:1"))
        assert excinfo.value.item_index == 1

    def test_continue_on_fail_isolates_items(self, make_item):
        batch = run_batch(self._items(make_item), CropParameters(aspect_ratio="1:1"), continue_on_fail=True)

        assert [r.success for r in batch.results] == [True, False, True]
        assert "error" in batch.results[1].json
        assert batch.results[1].binary == {}
        assert batch.results[2].json["cropped_width"] == 200

    def test_invalid_ratio_fails_every_item_under_continue(self, make_item):
        batch = run_batch([make_item(10, 10), make_item(20, 20)], CropParameters(aspect_ratio="0:9"),
                          continue_on_fail=True)

        assert len(batch.failed) == 2
        assert all("Invalid aspect ratio format" in r.error for r in batch.failed)

    def test_empty_batch(self):
        assert run_batch([], CropParameters()).results == []

    def test_parallel_continue_on_fail_keeps_order(self, make_item):
        batch = run_batch(self._items(make_item), CropParameters(aspect_ratio="1:1"),
                          continue_on_fail=True, workers=2)

        assert [r.index for r in batch.results] == [0, 1, 2]
        assert [r.success for r in batch.results] == [True, False, True]
        assert decode_size(batch.results[0].binary["data"].data) == (200, 200)

    def test_parallel_fail_fast_aborts(self, make_item):
        with pytest.raises(BatchAbortedError, match="broken.png") as excinfo:
            run_batch(self._items(make_item), CropParameters(aspect_ratio="1:1"), workers=2)
        assert excinfo.value.item_index == 1
