"""
Per-item processing and batch execution.

``process_item`` turns one input item into one result: validate the ratio,
find the binary payload, decode, compute the crop plan, crop, re-encode and
assemble metadata.  ``run_batch`` applies it to a list of items, either
in-process or through ``concurrent.futures.ProcessPoolExecutor``.

Failures are isolated per item when ``continue_on_fail`` is set; otherwise
the first failure stops the batch.
"""

import logging
from concurrent.futures import ProcessPoolExecutor, as_completed

from aspect_ratio_cropper.errors import (
    BatchAbortedError,
    DegenerateCropError,
    MissingBinaryDataError,
    UnsupportedFormatError,
)
from aspect_ratio_cropper.image_io import (
    apply_crop,
    encode_image,
    get_image_size,
    is_supported_mime_type,
    open_image,
    output_mime_and_extension,
    resolve_output_format,
)
from aspect_ratio_cropper.models import BatchResult, BinaryData, CropParameters, Item, ItemResult, compute_crop
from aspect_ratio_cropper.ratios import output_file_name, parse_aspect_ratio

logger = logging.getLogger(__name__)


def _status_message(aspect_ratio: str, cropped: bool) -> str:
    if cropped:
        return f"Image successfully cropped to {aspect_ratio} aspect ratio."
    return f"Image already matches {aspect_ratio} aspect ratio. No crop needed."


def process_item(item: Item, params: CropParameters, index: int) -> ItemResult:
    """Crop one item to ``params.aspect_ratio``. Raises CropperError subclasses."""
    aspect_ratio = params.aspect_ratio
    ratio = parse_aspect_ratio(aspect_ratio, item_index=index)

    prop = params.binary_property
    payload = item.binary.get(prop) if item.binary else None
    if payload is None:
        raise MissingBinaryDataError(f'No binary data found in property "{prop}"', item_index=index)

    mime_type = payload.mime_type or ""
    if not is_supported_mime_type(mime_type):
        raise UnsupportedFormatError(
            f"Unsupported image format: {mime_type}. "
            "Supported formats: JPEG, PNG, WebP, GIF, TIFF, SVG",
            item_index=index,
        )

    img = open_image(payload.data, mime_type, item_index=index)
    width, height = get_image_size(img, item_index=index)

    plan = compute_crop(width, height, ratio)
    if plan.is_degenerate:
        raise DegenerateCropError(
            f"Image {width}x{height} is too small to crop to {aspect_ratio} "
            f"(crop would be {plan.crop_width}x{plan.crop_height})",
            item_index=index,
        )
    logger.debug(
        "Item %d: %dx%d -> %dx%d at (%d, %d), scale %s",
        index, width, height, plan.crop_width, plan.crop_height,
        plan.position_x, plan.position_y, plan.scale,
    )

    fmt = resolve_output_format(params.output_format, mime_type, item_index=index)
    out_mime, out_ext = output_mime_and_extension(fmt)
    quality = {"jpeg": params.jpeg_quality, "webp": params.webp_quality}.get(fmt)

    data = encode_image(apply_crop(img, plan), fmt, quality=quality, item_index=index)

    return ItemResult(
        index=index,
        json={
            "aspect_ratio": aspect_ratio,
            "cropped": plan.needs_crop,
            "original_width": width,
            "original_height": height,
            "cropped_width": plan.crop_width,
            "cropped_height": plan.crop_height,
            "position_x": plan.position_x,
            "position_y": plan.position_y,
            "scale": plan.scale,
            "message": _status_message(aspect_ratio, plan.needs_crop),
        },
        binary={
            prop: BinaryData(
                data=data,
                mime_type=out_mime,
                file_name=output_file_name(payload.file_name, ratio, out_ext),
            ),
        },
    )


def process_worker(args: dict) -> dict:
    """Worker function for parallel processing. Runs in a separate process.

    ``args`` holds ``index``, ``item`` and ``params``.  Item failures are
    reported in the returned dict, never raised.
    """
    idx = args["index"]
    item = args["item"]
    params = args["params"]
    payload = item.binary.get(params.binary_property) if item.binary else None
    name = payload.file_name if payload is not None and payload.file_name else f"item {idx}"

    try:
        result = process_item(item, params, idx)
        return {"index": idx, "success": True, "name": name, "result": result}
    except Exception as e:
        return {
            "index": idx,
            "success": False,
            "name": name,
            "error": str(e),
            "error_type": type(e).__name__,
        }


def _run_sequential(items, params, continue_on_fail) -> list[ItemResult]:
    results = []
    for idx, item in enumerate(items):
        try:
            results.append(process_item(item, params, idx))
        except Exception as exc:
            if not continue_on_fail:
                raise
            logger.warning("Item %d failed: %s", idx, exc)
            results.append(ItemResult.failure(idx, exc))
    return results


def _run_parallel(items, params, continue_on_fail, workers) -> list[ItemResult]:
    args_list = [{"index": i, "item": item, "params": params} for i, item in enumerate(items)]
    by_index: dict[int, ItemResult] = {}

    with ProcessPoolExecutor(max_workers=workers) as executor:
        futures = {executor.submit(process_worker, args): args["index"] for args in args_list}

        for future in as_completed(futures):
            result = future.result()
            idx = result["index"]
            if result["success"]:
                by_index[idx] = result["result"]
                continue

            if not continue_on_fail:
                executor.shutdown(wait=False, cancel_futures=True)
                raise BatchAbortedError(
                    f"{result['name']}: {result['error_type']}: {result['error']}",
                    item_index=idx,
                )
            logger.warning("Item %d (%s) failed: %s", idx, result["name"], result["error"])
            by_index[idx] = ItemResult(index=idx, json={"error": result["error"]}, error=result["error"])

    return [by_index[i] for i in sorted(by_index)]


def run_batch(
    items: list[Item],
    params: CropParameters,
    continue_on_fail: bool = False,
    workers: int = 1,
) -> BatchResult:
    """
    Process *items* in input order.

    With ``workers <= 1`` (or a single item) items run in this process and, unless
    ``continue_on_fail`` is set, the first item error is re-raised as-is.
    With more workers items run in a process pool; a failure then cancels
    pending items and raises BatchAbortedError naming the item.  Under
    ``continue_on_fail`` failed items become ``{"error": message}`` results
    and the rest of the batch still runs.
    """
    items = list(items)
    if workers <= 1 or len(items) <= 1:
        results = _run_sequential(items, params, continue_on_fail)
    else:
        results = _run_parallel(items, params, continue_on_fail, workers)

    batch = BatchResult(results=results)
    logger.info(
        "Processed %d item(s): %d succeeded, %d failed",
        len(results), len(batch.succeeded), len(batch.failed),
    )
    return batch
