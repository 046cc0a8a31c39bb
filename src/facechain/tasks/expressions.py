"""Facial expression stage."""

from __future__ import annotations

from typing import TYPE_CHECKING, TypeVar

from facechain.faces.result import extend_with_face_expressions
from facechain.tasks.base import FaceTask

if TYPE_CHECKING:
    from facechain.faces import FaceExpressions, FaceResult
    from facechain.tasks.age_gender import PredictAgeAndGenderTask, PredictAgeAndGenderWithFaceAlignmentTask
    from facechain.tasks.descriptors import ComputeFaceDescriptorsTask

TResults = TypeVar("TResults")


class PredictFaceExpressionsTask(FaceTask[TResults]):
    stage = "predict_face_expressions"
    net_slot = "face_expression_net"
    predict_method = "predict_expressions"
    size_setting = "expression_input_size"

    def extend(self, parent_result: FaceResult, prediction: FaceExpressions) -> FaceResult:
        return extend_with_face_expressions(parent_result, prediction)

    def with_age_and_gender(self) -> PredictAgeAndGenderTask[TResults]:
        from facechain.tasks.age_gender import PredictAgeAndGenderTask

        return PredictAgeAndGenderTask(self, self._media, self._context, self._arity)


class PredictFaceExpressionsWithFaceAlignmentTask(PredictFaceExpressionsTask[TResults]):
    """Expressions on results that already carry landmarks."""

    def with_age_and_gender(self) -> PredictAgeAndGenderWithFaceAlignmentTask[TResults]:
        from facechain.tasks.age_gender import PredictAgeAndGenderWithFaceAlignmentTask

        return PredictAgeAndGenderWithFaceAlignmentTask(self, self._media, self._context, self._arity)

    def with_face_descriptors(self) -> ComputeFaceDescriptorsTask[TResults]:
        from facechain.tasks.descriptors import ComputeFaceDescriptorsTask

        return ComputeFaceDescriptorsTask(self, self._media, self._context, self._arity)

    with_face_descriptor = with_face_descriptors
