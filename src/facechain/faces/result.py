"""Pipeline result record and the factories that augment it.

A ``FaceResult`` starts out carrying only a detection and gains optional
properties as it passes through pipeline stages. Every ``extend_with_*``
function returns a new record; its input is never modified.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import TYPE_CHECKING

import numpy as np

from facechain.faces.attributes import Gender
from facechain.faces.detection import FaceDetection
from facechain.faces.expressions import FaceExpressions
from facechain.faces.landmarks import FaceLandmarks
from facechain.validation import is_valid_number, is_valid_probability

if TYPE_CHECKING:
    from numpy.typing import NDArray


@dataclass(frozen=True, eq=False)
class FaceResult:
    """Everything the pipeline knows about one face.

    Attributes:
        detection: The detected face region.
        landmarks: Landmarks in image coordinates.
        unshifted_landmarks: Landmarks relative to the detection box.
        aligned_rect: Square re-crop region derived from the landmarks.
        descriptor: Face embedding vector.
        expressions: Expression probabilities.
        age: Estimated age in years.
        gender: Predicted gender.
        gender_probability: Confidence of ``gender`` in [0, 1].
    """

    detection: FaceDetection
    landmarks: FaceLandmarks | None = None
    unshifted_landmarks: FaceLandmarks | None = None
    aligned_rect: FaceDetection | None = None
    descriptor: NDArray[np.float32] | None = None
    expressions: FaceExpressions | None = None
    age: float | None = None
    gender: Gender | None = None
    gender_probability: float | None = None


# ---------------------------------------------------------------------------
# Factories
# ---------------------------------------------------------------------------


def extend_with_face_detection(source: FaceResult | None, detection: FaceDetection) -> FaceResult:
    if source is None:
        return FaceResult(detection=detection)
    return replace(source, detection=detection)


def extend_with_face_landmarks(source: FaceResult, unshifted_landmarks: FaceLandmarks) -> FaceResult:
    """Attach landmarks reported relative to the detection box.

    Adds the landmarks shifted into image coordinates, the box-relative
    landmarks as given, and the alignment rect computed from the shifted
    points and clipped to the image.
    """
    detection = source.detection
    landmarks = unshifted_landmarks.shift_by(detection.box.x, detection.box.y)
    dims = detection.image_dims
    rect = landmarks.align().clip(dims.width, dims.height)
    aligned_rect = FaceDetection(score=detection.score, box=rect, image_dims=dims)
    return replace(
        source,
        landmarks=landmarks,
        unshifted_landmarks=unshifted_landmarks,
        aligned_rect=aligned_rect,
    )


def extend_with_face_descriptor(source: FaceResult, descriptor: NDArray[np.float32]) -> FaceResult:
    return replace(source, descriptor=descriptor)


def extend_with_face_expressions(source: FaceResult, expressions: FaceExpressions) -> FaceResult:
    return replace(source, expressions=expressions)


def extend_with_age(source: FaceResult, age: float) -> FaceResult:
    return replace(source, age=age)


def extend_with_gender(source: FaceResult, gender: Gender, gender_probability: float) -> FaceResult:
    return replace(source, gender=gender, gender_probability=gender_probability)


# ---------------------------------------------------------------------------
# Capability checks
# ---------------------------------------------------------------------------


def is_with_face_detection(obj: object) -> bool:
    return isinstance(getattr(obj, "detection", None), FaceDetection)


def is_with_face_landmarks(obj: object) -> bool:
    return (
        is_with_face_detection(obj)
        and isinstance(getattr(obj, "landmarks", None), FaceLandmarks)
        and isinstance(getattr(obj, "aligned_rect", None), FaceDetection)
    )


def is_with_face_descriptor(obj: object) -> bool:
    return isinstance(getattr(obj, "descriptor", None), np.ndarray)


def is_with_face_expressions(obj: object) -> bool:
    return isinstance(getattr(obj, "expressions", None), FaceExpressions)


def is_with_age(obj: object) -> bool:
    return is_valid_number(getattr(obj, "age", None))


def is_with_gender(obj: object) -> bool:
    gender = getattr(obj, "gender", None)
    return gender in (Gender.MALE, Gender.FEMALE) and is_valid_probability(getattr(obj, "gender_probability", None))
