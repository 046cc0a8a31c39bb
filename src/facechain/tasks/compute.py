"""Extract face crops, run a backend on them, and always release the crops.

Crops a call extracts itself are disposed exactly once before the call
returns or raises. Crops passed in by the caller stay owned by the caller.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, TypeVar, cast

from facechain.errors import ExtractionError, InferenceError, ResourceCleanupError
from facechain.faces.result import is_with_face_landmarks
from facechain.ml.extraction import extract_faces

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Sequence

    from facechain.faces import FaceDetection, FaceResult
    from facechain.geometry import Box
    from facechain.ml.extraction import CropResource, Extractor, FaceCrop
    from facechain.ml.media import MediaInput

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _dispose_all(crops: Sequence[CropResource], stage: str) -> list[Exception]:
    """Dispose every crop, carrying on past failures, and return them."""
    errors: list[Exception] = []
    for index, crop in enumerate(crops):
        try:
            crop.dispose()
        except Exception as exc:
            logger.exception("%s - failed to dispose face crop %d", stage, index)
            errors.append(exc)
    return errors


async def compute_with_cleanup(
    media: MediaInput,
    regions: Sequence[Box | FaceDetection],
    compute: Callable[[list[FaceCrop]], Awaitable[Sequence[T]]],
    extracted_faces: Sequence[FaceCrop] | None = None,
    *,
    size: int | None = None,
    extract: Extractor = extract_faces,
    stage: str = "compute",
) -> list[T]:
    """Run ``compute`` on one crop per region.

    Args:
        media: Source the regions refer to.
        regions: Face regions, one result is produced per region.
        compute: Receives the crops in region order, returns one result per crop.
        extracted_faces: Crops prepared by the caller. They are used as-is and
            not disposed here.
        size: Square crop size expected by the backend (None keeps region size).
        extract: Crop extractor, ``extract_faces`` unless overridden.
        stage: Stage name used in errors and logs.

    Raises:
        ExtractionError: If extraction fails or yields the wrong number of crops.
        InferenceError: If ``compute`` fails or breaks the one-result-per-region rule.
        ResourceCleanupError: If ``compute`` succeeded but a crop could not be disposed.
    """
    if extracted_faces is not None:
        faces = list(extracted_faces)
        owned: list[FaceCrop] = []
    else:
        faces = await extract(media, regions, size)
        owned = faces

    if len(faces) != len(regions):
        _dispose_all(owned, stage)
        raise ExtractionError(f"{stage} - expected {len(regions)} face crop(s), got {len(faces)}")

    try:
        results = await compute(faces)
    except BaseException:
        _dispose_all(owned, stage)
        raise

    errors = _dispose_all(owned, stage)
    if errors:
        raise ResourceCleanupError(stage, len(errors)) from errors[0]

    if len(results) != len(regions):
        raise InferenceError(stage, f"expected {len(regions)} result(s), got {len(results)}")
    logger.debug("%s - computed %d result(s), released %d crop(s)", stage, len(results), len(owned))
    return list(results)


def _aligned_rect(parent_result: FaceResult) -> FaceDetection:
    return cast("FaceDetection", parent_result.aligned_rect)


async def extract_all_faces_and_compute_results(
    parent_results: Sequence[FaceResult],
    media: MediaInput,
    compute: Callable[[list[FaceCrop]], Awaitable[Sequence[T]]],
    extracted_faces: Sequence[FaceCrop] | None = None,
    get_rect_for_alignment: Callable[[FaceResult], FaceDetection] = _aligned_rect,
    *,
    size: int | None = None,
    extract: Extractor = extract_faces,
    stage: str = "compute",
) -> list[T]:
    """Crop each parent result's face and run ``compute`` on the crops.

    Results that already carry landmarks are cropped with
    ``get_rect_for_alignment`` (their aligned rect by default), all others
    with their detection box.
    """
    regions = [
        get_rect_for_alignment(result) if is_with_face_landmarks(result) else result.detection
        for result in parent_results
    ]
    return await compute_with_cleanup(
        media,
        regions,
        compute,
        extracted_faces,
        size=size,
        extract=extract,
        stage=stage,
    )


async def extract_single_face_and_compute_result(
    parent_result: FaceResult,
    media: MediaInput,
    compute: Callable[[FaceCrop], Awaitable[T]],
    extracted_faces: Sequence[FaceCrop] | None = None,
    get_rect_for_alignment: Callable[[FaceResult], FaceDetection] = _aligned_rect,
    *,
    size: int | None = None,
    extract: Extractor = extract_faces,
    stage: str = "compute",
) -> T:
    """Single-face form of ``extract_all_faces_and_compute_results``."""

    async def compute_first(faces: list[FaceCrop]) -> list[T]:
        return [await compute(faces[0])]

    results = await extract_all_faces_and_compute_results(
        [parent_result],
        media,
        compute_first,
        extracted_faces,
        get_rect_for_alignment,
        size=size,
        extract=extract,
        stage=stage,
    )
    return results[0]
