"""Face records produced and consumed by the pipeline."""

from facechain.faces.attributes import AgeAndGenderPrediction, Gender
from facechain.faces.detection import FaceDetection
from facechain.faces.expressions import EXPRESSION_LABELS, FaceExpressions
from facechain.faces.landmarks import FaceLandmarks, FaceLandmarks5, FaceLandmarks68
from facechain.faces.result import (
    FaceResult,
    extend_with_age,
    extend_with_face_descriptor,
    extend_with_face_detection,
    extend_with_face_expressions,
    extend_with_face_landmarks,
    extend_with_gender,
    is_with_age,
    is_with_face_descriptor,
    is_with_face_detection,
    is_with_face_expressions,
    is_with_face_landmarks,
    is_with_gender,
)

__all__ = [
    "EXPRESSION_LABELS",
    "AgeAndGenderPrediction",
    "FaceDetection",
    "FaceExpressions",
    "FaceLandmarks",
    "FaceLandmarks5",
    "FaceLandmarks68",
    "FaceResult",
    "Gender",
    "extend_with_age",
    "extend_with_face_descriptor",
    "extend_with_face_detection",
    "extend_with_face_expressions",
    "extend_with_face_landmarks",
    "extend_with_gender",
    "is_with_age",
    "is_with_face_descriptor",
    "is_with_face_detection",
    "is_with_face_expressions",
    "is_with_face_landmarks",
    "is_with_gender",
]
