"""Backend protocols and the bundle that injects them into the pipeline.

Backends are opaque to the pipeline. Each protocol method may be a plain
function (run in the inference thread pool) or a coroutine function (awaited
directly).
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from typing import TYPE_CHECKING, Protocol

from facechain.errors import NetNotConfiguredError

if TYPE_CHECKING:
    import numpy as np
    from numpy.typing import NDArray

    from facechain.faces import AgeAndGenderPrediction, FaceDetection, FaceExpressions, FaceLandmarks
    from facechain.ml.extraction import FaceCrop
    from facechain.ml.media import MediaInput


class FaceDetector(Protocol):
    """Protocol for face detection backends."""

    def detect(self, media: MediaInput) -> list[FaceDetection]:
        """Detect faces in the full image.

        Args:
            media: The input image.

        Returns:
            Detections in the pixel space of ``media``.
        """
        ...


class FaceLandmarkNet(Protocol):
    """Protocol for landmark backends."""

    def detect_landmarks(self, face: FaceCrop) -> FaceLandmarks:
        """Locate landmarks on one face crop.

        The returned landmarks may use any image size; the pipeline rescales
        them to the detection box through their relative positions.
        """
        ...


class FaceRecognitionNet(Protocol):
    """Protocol for face descriptor (embedding) backends."""

    def compute_face_descriptor(self, face: FaceCrop) -> NDArray[np.float32]:
        """Return the descriptor vector of one aligned face crop."""
        ...


class FaceExpressionNet(Protocol):
    def predict_expressions(self, face: FaceCrop) -> FaceExpressions: ...


class AgeGenderNet(Protocol):
    def predict_age_and_gender(self, face: FaceCrop) -> AgeAndGenderPrediction: ...


@dataclass
class Nets:
    """The backends available to a pipeline. Unset slots are unavailable stages."""

    face_detector: FaceDetector | None = None
    face_landmark_68_net: FaceLandmarkNet | None = None
    face_landmark_68_tiny_net: FaceLandmarkNet | None = None
    face_recognition_net: FaceRecognitionNet | None = None
    face_expression_net: FaceExpressionNet | None = None
    age_gender_net: AgeGenderNet | None = None

    def require(self, name: str) -> object:
        """Return the backend in slot ``name``.

        Raises:
            NetNotConfiguredError: If the slot is empty.
        """
        net = getattr(self, name)
        if net is None:
            raise NetNotConfiguredError(name)
        return net

    def configured(self) -> list[str]:
        """Names of the slots that hold a backend."""
        return [f.name for f in fields(self) if getattr(self, f.name) is not None]

    @staticmethod
    def slot_names() -> list[str]:
        return [f.name for f in fields(Nets)]
