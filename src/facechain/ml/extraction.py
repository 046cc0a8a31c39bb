"""Crop face regions out of source media.

Array media is cropped with numpy slicing and resized with OpenCV, so the
crop never leaves the array domain. Drawable media is cropped with Pillow by
drawing the region onto a new image of the target size.

Regions are clipped to the media bounds first. A region with no area left
after clipping produces a 1x1 black crop (resized like any other) so the
batch keeps one crop per region.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Protocol

import cv2
import numpy as np
from PIL import Image

from facechain.errors import ExtractionError, FaceChainError, MediaError
from facechain.faces.detection import FaceDetection
from facechain.ml.media import is_drawable_media, is_tensor_media

if TYPE_CHECKING:
    from collections.abc import Sequence

    from numpy.typing import NDArray

    from facechain.geometry import Box
    from facechain.ml.media import MediaInput

logger = logging.getLogger(__name__)

# element types cv2.resize accepts; anything else is resized as float32
_RESIZABLE_DTYPES = frozenset(np.dtype(t) for t in (np.uint8, np.uint16, np.int16, np.float32, np.float64))


class CropResource(Protocol):
    """Anything a stage allocates per face and must release afterwards."""

    def dispose(self) -> None: ...


class FaceCrop:
    """A face crop handed to a backend.

    The crop is owned by whoever extracted it and must be released with
    ``dispose()`` once the backend call is done.
    """

    def __init__(self, data: NDArray[np.generic] | Image.Image, region: Box) -> None:
        self._data: NDArray[np.generic] | Image.Image | None = data
        self._region = region

    @property
    def region(self) -> Box:
        """The clipped source region this crop was taken from."""
        return self._region

    @property
    def disposed(self) -> bool:
        return self._data is None

    @property
    def data(self) -> NDArray[np.generic] | Image.Image:
        if self._data is None:
            raise RuntimeError("FaceCrop used after dispose()")
        return self._data

    @property
    def width(self) -> int:
        data = self.data
        return data.width if isinstance(data, Image.Image) else int(data.shape[1])

    @property
    def height(self) -> int:
        data = self.data
        return data.height if isinstance(data, Image.Image) else int(data.shape[0])

    def as_array(self) -> NDArray[np.generic]:
        data = self.data
        if isinstance(data, Image.Image):
            return np.asarray(data)
        return data

    def dispose(self) -> None:
        if self._data is None:
            return
        if isinstance(self._data, Image.Image):
            self._data.close()
        self._data = None


# (media, regions, size) -> one crop per region
Extractor = Callable[..., Awaitable[list[FaceCrop]]]


# ---------------------------------------------------------------------------
# Region handling
# ---------------------------------------------------------------------------


def resolve_regions(width: int, height: int, regions: Sequence[Box | FaceDetection]) -> list[Box]:
    """Turn detections and boxes into integer pixel boxes clipped to ``width`` x ``height``."""
    boxes: list[Box] = []
    for index, region in enumerate(regions):
        box = region.for_size(width, height).box if isinstance(region, FaceDetection) else region
        clipped = box.clip(width, height).floor()
        if clipped.width < 1 or clipped.height < 1:
            logger.warning(
                "Region %d (%s) has no area inside the %dx%d media, using a 1x1 crop",
                index,
                box,
                width,
                height,
            )
        boxes.append(clipped)
    return boxes


def _is_degenerate(box: Box) -> bool:
    return box.width < 1 or box.height < 1


def _crop_array(array: NDArray[np.generic], box: Box, size: int | None) -> NDArray[np.generic]:
    if _is_degenerate(box):
        crop = np.zeros((1, 1, *array.shape[2:]), dtype=array.dtype)
    else:
        x, y, w, h = int(box.x), int(box.y), int(box.width), int(box.height)
        crop = array[y : y + h, x : x + w]
    if size is None:
        return crop.copy()
    if crop.dtype not in _RESIZABLE_DTYPES:
        crop = crop.astype(np.float32)
    resized = cv2.resize(crop, (size, size), interpolation=cv2.INTER_LINEAR)
    if array.ndim == 3 and resized.ndim == 2:
        # cv2 drops a trailing single channel
        resized = resized[..., np.newaxis]
    return resized


def _crop_image(image: Image.Image, box: Box, size: int | None) -> Image.Image:
    if _is_degenerate(box):
        crop = Image.new(image.mode, (1, 1))
    else:
        x, y, w, h = int(box.x), int(box.y), int(box.width), int(box.height)
        crop = image.crop((x, y, x + w, y + h))
    if size is None:
        return crop
    resized = crop.resize((size, size), Image.Resampling.BILINEAR)
    crop.close()
    return resized


def _extract_all(
    boxes: list[Box],
    crop_one: Callable[[Box], NDArray[np.generic] | Image.Image],
) -> list[FaceCrop]:
    crops: list[FaceCrop] = []
    try:
        for box in boxes:
            crops.append(FaceCrop(crop_one(box), box))
    except Exception:
        for crop in crops:
            crop.dispose()
        raise
    return crops


def extract_face_tensors(
    array: NDArray[np.generic],
    regions: Sequence[Box | FaceDetection],
    size: int | None = None,
) -> list[FaceCrop]:
    """Crop ``regions`` out of an HxW(xC) array, optionally resized to ``size`` x ``size``."""
    boxes = resolve_regions(int(array.shape[1]), int(array.shape[0]), regions)
    return _extract_all(boxes, lambda box: _crop_array(array, box, size))


def extract_face_images(
    image: Image.Image,
    regions: Sequence[Box | FaceDetection],
    size: int | None = None,
) -> list[FaceCrop]:
    """Crop ``regions`` out of a PIL image, optionally resized to ``size`` x ``size``."""
    boxes = resolve_regions(image.width, image.height, regions)
    return _extract_all(boxes, lambda box: _crop_image(image, box, size))


async def extract_faces(
    media: MediaInput,
    regions: Sequence[Box | FaceDetection],
    size: int | None = None,
) -> list[FaceCrop]:
    """Extract one crop per region, in region order.

    Raises:
        MediaError: If ``media`` exposes neither ``as_tensor()`` nor ``as_drawable()``.
        ExtractionError: If the media could not be read or cropped.
    """
    if not regions:
        return []
    try:
        if is_tensor_media(media):
            return await asyncio.to_thread(extract_face_tensors, media.as_tensor(), regions, size)  # type: ignore[attr-defined]
        if is_drawable_media(media):
            return await asyncio.to_thread(extract_face_images, media.as_drawable(), regions, size)  # type: ignore[attr-defined]
    except FaceChainError:
        raise
    except Exception as exc:
        raise ExtractionError(f"Could not extract {len(regions)} face region(s): {exc}") from exc
    raise MediaError(f"Cannot extract faces from {type(media).__name__}: no as_tensor() or as_drawable()")
