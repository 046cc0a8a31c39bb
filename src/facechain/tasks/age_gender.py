"""Age and gender stage."""

from __future__ import annotations

from typing import TYPE_CHECKING, TypeVar

from facechain.faces.result import extend_with_age, extend_with_gender
from facechain.tasks.base import FaceTask

if TYPE_CHECKING:
    from facechain.faces import AgeAndGenderPrediction, FaceResult
    from facechain.tasks.descriptors import ComputeFaceDescriptorsTask
    from facechain.tasks.expressions import PredictFaceExpressionsTask, PredictFaceExpressionsWithFaceAlignmentTask

TResults = TypeVar("TResults")


class PredictAgeAndGenderTask(FaceTask[TResults]):
    stage = "predict_age_and_gender"
    net_slot = "age_gender_net"
    predict_method = "predict_age_and_gender"
    size_setting = "age_gender_input_size"

    def extend(self, parent_result: FaceResult, prediction: AgeAndGenderPrediction) -> FaceResult:
        with_gender = extend_with_gender(parent_result, prediction.gender, prediction.gender_probability)
        return extend_with_age(with_gender, prediction.age)

    def with_face_expressions(self) -> PredictFaceExpressionsTask[TResults]:
        from facechain.tasks.expressions import PredictFaceExpressionsTask

        return PredictFaceExpressionsTask(self, self._media, self._context, self._arity)


class PredictAgeAndGenderWithFaceAlignmentTask(PredictAgeAndGenderTask[TResults]):
    """Age and gender on results that already carry landmarks."""

    def with_face_expressions(self) -> PredictFaceExpressionsWithFaceAlignmentTask[TResults]:
        from facechain.tasks.expressions import PredictFaceExpressionsWithFaceAlignmentTask

        return PredictFaceExpressionsWithFaceAlignmentTask(self, self._media, self._context, self._arity)

    def with_face_descriptors(self) -> ComputeFaceDescriptorsTask[TResults]:
        from facechain.tasks.descriptors import ComputeFaceDescriptorsTask

        return ComputeFaceDescriptorsTask(self, self._media, self._context, self._arity)

    with_face_descriptor = with_face_descriptors
