"""Media inputs accepted by the pipeline.

Two kinds of media exist:

* array media exposes ``as_tensor()`` and is cropped with numpy slicing;
* drawable media exposes ``as_drawable()`` (a PIL image) and is cropped by
  drawing the region onto a new image.

Numpy arrays and PIL images are wrapped automatically by ``to_media``. Video
frames or other sources only need to provide ``width``, ``height`` and one of
the two accessors.
"""

from __future__ import annotations

import io
import logging
from typing import TYPE_CHECKING, Protocol, runtime_checkable

import numpy as np
from PIL import Image, ImageOps, UnidentifiedImageError

from facechain.errors import ImageTooLargeError, MediaError

if TYPE_CHECKING:
    from numpy.typing import NDArray

logger = logging.getLogger(__name__)


@runtime_checkable
class MediaInput(Protocol):
    """Anything with a pixel size that the pipeline can crop faces from."""

    @property
    def width(self) -> int: ...

    @property
    def height(self) -> int: ...


class TensorMedia:
    """An HxW or HxWxC array (uint8 or float)."""

    def __init__(self, array: NDArray[np.generic]) -> None:
        if array.ndim not in (2, 3) or array.shape[0] == 0 or array.shape[1] == 0:
            raise MediaError(f"Expected a non-empty HxW or HxWxC array, got shape {array.shape}")
        self._array = array

    @property
    def width(self) -> int:
        return int(self._array.shape[1])

    @property
    def height(self) -> int:
        return int(self._array.shape[0])

    def as_tensor(self) -> NDArray[np.generic]:
        return self._array


class ImageMedia:
    """A decoded PIL image."""

    def __init__(self, image: Image.Image) -> None:
        self._image = image

    @property
    def width(self) -> int:
        return self._image.width

    @property
    def height(self) -> int:
        return self._image.height

    def as_drawable(self) -> Image.Image:
        return self._image


def is_tensor_media(media: object) -> bool:
    return callable(getattr(media, "as_tensor", None))


def is_drawable_media(media: object) -> bool:
    return callable(getattr(media, "as_drawable", None))


def to_media(source: object) -> MediaInput:
    """Adapt ``source`` to a ``MediaInput``.

    Raises:
        MediaError: If ``source`` is neither an array, a PIL image, nor an object
            exposing ``width``/``height`` and ``as_tensor()``/``as_drawable()``.
    """
    if isinstance(source, np.ndarray):
        return TensorMedia(source)
    if isinstance(source, Image.Image):
        return ImageMedia(source)
    if isinstance(source, MediaInput) and (is_tensor_media(source) or is_drawable_media(source)):
        return source
    raise MediaError(f"Unsupported media input: {type(source).__name__}")


def decode_image(image_bytes: bytes, max_pixels: int) -> NDArray[np.uint8]:
    """Decode raw image bytes into an RGB uint8 array, honouring EXIF orientation.

    Args:
        image_bytes: Raw file bytes (any format Pillow can read).
        max_pixels: Upper bound on width * height.

    Returns:
        HxWx3 RGB uint8 numpy array.

    Raises:
        ImageTooLargeError: If the image exceeds ``max_pixels``.
        ValueError: If the image cannot be decoded.
    """
    try:
        with Image.open(io.BytesIO(image_bytes)) as img:
            if img.width * img.height > max_pixels:
                raise ImageTooLargeError(f"Image has {img.width * img.height} pixels, limit is {max_pixels}")
            oriented = ImageOps.exif_transpose(img)
            rgb = oriented.convert("RGB")
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError) as exc:
        raise ValueError(f"Could not decode image: {exc}") from exc
    logger.debug("Decoded image %dx%d", rgb.width, rgb.height)
    return np.asarray(rgb, dtype=np.uint8)
