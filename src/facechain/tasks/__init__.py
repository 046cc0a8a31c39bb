"""Composable, awaitable face pipeline stages."""

from facechain.tasks.age_gender import PredictAgeAndGenderTask, PredictAgeAndGenderWithFaceAlignmentTask
from facechain.tasks.base import FaceTask
from facechain.tasks.composable import Arity, ComposableTask
from facechain.tasks.compute import (
    compute_with_cleanup,
    extract_all_faces_and_compute_results,
    extract_single_face_and_compute_result,
)
from facechain.tasks.context import PipelineContext
from facechain.tasks.descriptors import ComputeFaceDescriptorsTask
from facechain.tasks.detect_faces import DetectFacesTask
from facechain.tasks.expressions import PredictFaceExpressionsTask, PredictFaceExpressionsWithFaceAlignmentTask
from facechain.tasks.landmarks import DetectFaceLandmarksTask

__all__ = [
    "Arity",
    "ComposableTask",
    "ComputeFaceDescriptorsTask",
    "DetectFaceLandmarksTask",
    "DetectFacesTask",
    "FaceTask",
    "PipelineContext",
    "PredictAgeAndGenderTask",
    "PredictAgeAndGenderWithFaceAlignmentTask",
    "PredictFaceExpressionsTask",
    "PredictFaceExpressionsWithFaceAlignmentTask",
    "compute_with_cleanup",
    "extract_all_faces_and_compute_results",
    "extract_single_face_and_compute_result",
]
