"""Face detector backend built on OpenCV's YuNet (``cv2.FaceDetectorYN``)."""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING

import cv2
import numpy as np

from facechain.errors import MediaError
from facechain.faces import FaceDetection
from facechain.geometry import Box, Dimensions
from facechain.ml.media import is_drawable_media, is_tensor_media

if TYPE_CHECKING:
    from numpy.typing import NDArray

    from facechain.ml.media import MediaInput

logger = logging.getLogger(__name__)

# Candidates below this never leave the detector; the pipeline applies its own
# min_confidence on top.
DEFAULT_SCORE_THRESHOLD: float = 0.1
_SCORE_COLUMN = 14


def to_bgr(media: MediaInput) -> NDArray[np.uint8]:
    """Read ``media`` as a contiguous HxWx3 BGR uint8 array."""
    if is_tensor_media(media):
        arr = np.asarray(media.as_tensor())  # type: ignore[attr-defined]
    elif is_drawable_media(media):
        arr = np.asarray(media.as_drawable().convert("RGB"))  # type: ignore[attr-defined]
    else:
        raise MediaError(f"Unsupported media input: {type(media).__name__}")

    if arr.dtype != np.uint8:
        arr = np.clip(arr, 0, 255).astype(np.uint8)
    if arr.ndim == 2 or arr.shape[2] == 1:
        return cv2.cvtColor(arr, cv2.COLOR_GRAY2BGR)
    if arr.shape[2] == 4:
        return cv2.cvtColor(arr, cv2.COLOR_RGBA2BGR)
    return cv2.cvtColor(arr, cv2.COLOR_RGB2BGR)


class YuNetFaceDetector:
    """Whole-image face detector.

    The OpenCV detector object carries its input size as state, so calls are
    serialized with a lock.
    """

    def __init__(
        self,
        model_path: str,
        *,
        score_threshold: float = DEFAULT_SCORE_THRESHOLD,
        nms_threshold: float = 0.3,
        top_k: int = 5000,
    ) -> None:
        self._detector = cv2.FaceDetectorYN.create(
            model=model_path,
            config="",
            input_size=(320, 320),
            score_threshold=score_threshold,
            nms_threshold=nms_threshold,
            top_k=top_k,
        )
        self._lock = threading.Lock()
        logger.info("Loaded YuNet detector from %s", model_path)

    def detect(self, media: MediaInput) -> list[FaceDetection]:
        image = to_bgr(media)
        height, width = image.shape[:2]
        with self._lock:
            self._detector.setInputSize((width, height))
            _, faces = self._detector.detect(image)
        if faces is None:
            return []

        dims = Dimensions(width, height)
        detections: list[FaceDetection] = []
        for row in np.asarray(faces, dtype=np.float64):
            x, y, w, h = (float(v) for v in row[:4])
            left, top = max(0.0, x), max(0.0, y)
            right, bottom = min(float(width), x + w), min(float(height), y + h)
            if right <= left or bottom <= top:
                continue
            score = float(np.clip(row[_SCORE_COLUMN], 0.0, 1.0))
            detections.append(FaceDetection(score, Box.from_bounds(left, top, right, bottom), dims))
        return detections
