"""Face detection: the root of every chain."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Generic, TypeVar, cast

from facechain.errors import FaceChainError, InferenceError
from facechain.faces.result import extend_with_face_detection
from facechain.tasks.composable import Arity, ComposableTask
from facechain.tasks.landmarks import DetectFaceLandmarksTask

if TYPE_CHECKING:
    from facechain.faces import FaceDetection
    from facechain.ml.media import MediaInput
    from facechain.ml.nets import FaceDetector
    from facechain.tasks.age_gender import PredictAgeAndGenderTask
    from facechain.tasks.context import PipelineContext
    from facechain.tasks.expressions import PredictFaceExpressionsTask

logger = logging.getLogger(__name__)

TDetections = TypeVar("TDetections")
TResults = TypeVar("TResults")


class DetectFacesTask(ComposableTask[TDetections], Generic[TDetections, TResults]):
    """Run the face detector on the whole input.

    Resolves to every detection at or above ``min_confidence`` (``Arity.ALL``)
    or to the highest-scoring one, or None (``Arity.SINGLE``).
    """

    stage = "detect_faces"

    def __init__(
        self,
        media: MediaInput,
        context: PipelineContext,
        arity: Arity,
        min_confidence: float | None = None,
    ) -> None:
        self._media = media
        self._context = context
        self._arity = arity
        self._min_confidence = context.settings.min_detection_confidence if min_confidence is None else min_confidence
        self._detector = cast("FaceDetector", context.nets.require("face_detector"))

    @property
    def arity(self) -> Arity:
        return self._arity

    async def run(self) -> TDetections:
        try:
            detections: list[FaceDetection] = await self._context.pool.run(self._detector.detect, self._media)
        except FaceChainError:
            raise
        except Exception as exc:
            raise InferenceError(self.stage, str(exc) or type(exc).__name__) from exc

        kept = [d for d in detections if d.score >= self._min_confidence]
        logger.debug(
            "%s - %d detection(s), %d at or above %.2f",
            self.stage,
            len(detections),
            len(kept),
            self._min_confidence,
        )
        if self._arity is Arity.SINGLE:
            return cast("TDetections", max(kept, key=lambda d: d.score, default=None))
        return cast("TDetections", kept)

    def with_face_landmarks(self, use_tiny_landmark_net: bool = False) -> DetectFaceLandmarksTask[TResults]:
        return DetectFaceLandmarksTask(
            _DetectionsAsResultsTask(self),
            self._media,
            self._context,
            self._arity,
            use_tiny_landmark_net=use_tiny_landmark_net,
        )

    def with_face_expressions(self) -> PredictFaceExpressionsTask[TResults]:
        from facechain.tasks.expressions import PredictFaceExpressionsTask

        return PredictFaceExpressionsTask(_DetectionsAsResultsTask(self), self._media, self._context, self._arity)

    def with_age_and_gender(self) -> PredictAgeAndGenderTask[TResults]:
        from facechain.tasks.age_gender import PredictAgeAndGenderTask

        return PredictAgeAndGenderTask(_DetectionsAsResultsTask(self), self._media, self._context, self._arity)


class _DetectionsAsResultsTask(ComposableTask[Any]):
    """Wrap each detection of a detect task into a ``FaceResult``."""

    def __init__(self, detect_task: DetectFacesTask[Any, Any]) -> None:
        self._detect_task = detect_task

    async def run(self) -> Any:
        detections = await self._detect_task
        if self._detect_task.arity is Arity.SINGLE:
            return None if detections is None else extend_with_face_detection(None, detections)
        return [extend_with_face_detection(None, detection) for detection in detections]
