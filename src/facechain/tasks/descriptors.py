"""Face descriptor stage. Only reachable after landmarks, so crops use the aligned rect."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, TypeVar

import numpy as np

from facechain.faces.result import extend_with_face_descriptor
from facechain.tasks.base import FaceTask

if TYPE_CHECKING:
    from facechain.faces import FaceResult
    from facechain.tasks.age_gender import PredictAgeAndGenderWithFaceAlignmentTask
    from facechain.tasks.expressions import PredictFaceExpressionsWithFaceAlignmentTask

TResults = TypeVar("TResults")


class ComputeFaceDescriptorsTask(FaceTask[TResults]):
    stage = "compute_face_descriptors"
    net_slot = "face_recognition_net"
    predict_method = "compute_face_descriptor"
    size_setting = "descriptor_input_size"

    def extend(self, parent_result: FaceResult, prediction: Any) -> FaceResult:
        return extend_with_face_descriptor(parent_result, np.asarray(prediction, dtype=np.float32).ravel())

    def with_face_expressions(self) -> PredictFaceExpressionsWithFaceAlignmentTask[TResults]:
        from facechain.tasks.expressions import PredictFaceExpressionsWithFaceAlignmentTask

        return PredictFaceExpressionsWithFaceAlignmentTask(self, self._media, self._context, self._arity)

    def with_age_and_gender(self) -> PredictAgeAndGenderWithFaceAlignmentTask[TResults]:
        from facechain.tasks.age_gender import PredictAgeAndGenderWithFaceAlignmentTask

        return PredictAgeAndGenderWithFaceAlignmentTask(self, self._media, self._context, self._arity)
