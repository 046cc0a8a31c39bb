"""Rescale pipeline results to another image size, e.g. a display size."""

from __future__ import annotations

from typing import TYPE_CHECKING, TypeVar, cast, overload

from facechain.faces import FaceDetection, FaceLandmarks, FaceResult
from facechain.faces.result import extend_with_face_detection, extend_with_face_landmarks, is_with_face_landmarks
from facechain.geometry import Dimensions

if TYPE_CHECKING:
    from collections.abc import Sequence

T = TypeVar("T", FaceResult, FaceDetection, FaceLandmarks)


def _resize_one(item: T, dims: Dimensions) -> T:
    if isinstance(item, FaceResult):
        detection = item.detection.for_size(dims.width, dims.height)
        resized = extend_with_face_detection(item, detection)
        if is_with_face_landmarks(item):
            box = detection.box
            landmarks = cast("FaceLandmarks", item.unshifted_landmarks)
            unshifted = landmarks.for_size(max(box.width, 1.0), max(box.height, 1.0))
            resized = extend_with_face_landmarks(resized, unshifted)
        return resized
    if isinstance(item, FaceDetection):
        return item.for_size(dims.width, dims.height)
    if isinstance(item, FaceLandmarks):
        return item.for_size(dims.width, dims.height)
    raise TypeError(f"resize_results: cannot resize {type(item).__name__}")


@overload
def resize_results(results: T, dimensions: Dimensions | tuple[float, float]) -> T: ...


@overload
def resize_results(results: Sequence[T], dimensions: Dimensions | tuple[float, float]) -> list[T]: ...


def resize_results(
    results: T | Sequence[T],
    dimensions: Dimensions | tuple[float, float],
) -> T | list[T]:
    """Re-express results for an image of ``dimensions`` (width, height).

    Detections and aligned rects are rescaled through their relative boxes;
    landmarks are rebuilt from the box-relative landmarks so that they stay
    consistent with the rescaled detection.
    """
    dims = dimensions if isinstance(dimensions, Dimensions) else Dimensions(*dimensions)
    if isinstance(results, (FaceResult, FaceDetection, FaceLandmarks)):
        return _resize_one(results, dims)
    return [_resize_one(item, dims) for item in results]
