"""facechain: composable async face detection and recognition pipelines."""

from facechain.errors import (
    ExtractionError,
    FaceChainError,
    InferenceError,
    MediaError,
    NetNotConfiguredError,
    ResourceCleanupError,
    ValidationError,
)
from facechain.face_api import FaceApi
from facechain.matching import FaceMatch, FaceMatcher, LabeledFaceDescriptors, euclidean_distance
from facechain.ml.nets import Nets
from facechain.resize import resize_results

__version__ = "0.1.0"

__all__ = [
    "ExtractionError",
    "FaceApi",
    "FaceChainError",
    "FaceMatch",
    "FaceMatcher",
    "InferenceError",
    "LabeledFaceDescriptors",
    "MediaError",
    "NetNotConfiguredError",
    "Nets",
    "ResourceCleanupError",
    "ValidationError",
    "euclidean_distance",
    "resize_results",
]
