"""Landmark detection stage."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, TypeVar

from facechain.faces.result import extend_with_face_landmarks
from facechain.geometry import Dimensions, Point
from facechain.tasks.base import FaceTask

if TYPE_CHECKING:
    from collections.abc import Awaitable, Sequence

    from facechain.faces import FaceLandmarks, FaceResult
    from facechain.ml.extraction import FaceCrop
    from facechain.ml.media import MediaInput
    from facechain.tasks.age_gender import PredictAgeAndGenderWithFaceAlignmentTask
    from facechain.tasks.composable import Arity, ComposableTask
    from facechain.tasks.context import PipelineContext
    from facechain.tasks.descriptors import ComputeFaceDescriptorsTask
    from facechain.tasks.expressions import PredictFaceExpressionsWithFaceAlignmentTask

TResults = TypeVar("TResults")


class DetectFaceLandmarksTask(FaceTask[TResults]):
    """Crop each detection box and attach 68-point landmarks plus the alignment rect."""

    stage = "detect_face_landmarks"
    net_slot = "face_landmark_68_net"
    predict_method = "detect_landmarks"
    size_setting = "landmark_input_size"

    def __init__(
        self,
        parent: ComposableTask[Any] | Awaitable[Any] | Sequence[FaceResult] | FaceResult | None,
        media: MediaInput,
        context: PipelineContext,
        arity: Arity,
        extracted_faces: Sequence[FaceCrop] | None = None,
        *,
        use_tiny_landmark_net: bool = False,
    ) -> None:
        super().__init__(
            parent,
            media,
            context,
            arity,
            extracted_faces,
            net_slot="face_landmark_68_tiny_net" if use_tiny_landmark_net else None,
        )

    def extend(self, parent_result: FaceResult, prediction: FaceLandmarks) -> FaceResult:
        detection = parent_result.detection
        box = detection.box
        # the crop covered only the part of the box inside the image, as extracted
        cropped = box.clip(detection.image_width, detection.image_height).floor()
        # degenerate boxes were cropped as 1x1
        in_crop = prediction.for_size(max(cropped.width, 1.0), max(cropped.height, 1.0))
        offset = Point(cropped.x - box.x, cropped.y - box.y)
        unshifted = type(prediction).from_positions(
            [pt + offset for pt in in_crop.positions],
            Dimensions(max(box.width, 1.0), max(box.height, 1.0)),
        )
        return extend_with_face_landmarks(parent_result, unshifted)

    def with_face_expressions(self) -> PredictFaceExpressionsWithFaceAlignmentTask[TResults]:
        from facechain.tasks.expressions import PredictFaceExpressionsWithFaceAlignmentTask

        return PredictFaceExpressionsWithFaceAlignmentTask(self, self._media, self._context, self._arity)

    def with_age_and_gender(self) -> PredictAgeAndGenderWithFaceAlignmentTask[TResults]:
        from facechain.tasks.age_gender import PredictAgeAndGenderWithFaceAlignmentTask

        return PredictAgeAndGenderWithFaceAlignmentTask(self, self._media, self._context, self._arity)

    def with_face_descriptors(self) -> ComputeFaceDescriptorsTask[TResults]:
        from facechain.tasks.descriptors import ComputeFaceDescriptorsTask

        return ComputeFaceDescriptorsTask(self, self._media, self._context, self._arity)

    with_face_descriptor = with_face_descriptors
