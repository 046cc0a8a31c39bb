"""ONNX Runtime backends for the per-face networks.

Each adapter wraps one ``InferenceSession`` and turns a ``FaceCrop`` into the
typed record the pipeline expects. Sessions are created with execution
providers and session options derived from ``Settings.device``.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

import numpy as np
from onnxruntime import GraphOptimizationLevel, InferenceSession, SessionOptions
from onnxruntime.capi.onnxruntime_pybind11_state import ExecutionMode

from facechain.faces import AgeAndGenderPrediction, FaceExpressions, FaceLandmarks68, Gender
from facechain.geometry import Dimensions, Point
from facechain.ml.nets import Nets
from facechain.ml.yunet import YuNetFaceDetector

if TYPE_CHECKING:
    from collections.abc import Sequence

    from numpy.typing import NDArray

    from facechain.config import Settings
    from facechain.ml.extraction import FaceCrop

logger = logging.getLogger(__name__)

# Per-channel RGB means of the face-api training data
FACE_API_MEAN_RGB: tuple[float, float, float] = (122.782, 117.001, 104.298)


# ---------------------------------------------------------------------------
# Sessions
# ---------------------------------------------------------------------------


def build_providers(settings: Settings) -> list[str | tuple[str, dict[str, object]]]:
    device = settings.device
    if device == "cuda":
        return [
            (
                "CUDAExecutionProvider",
                {
                    "device_id": 0,
                    "gpu_mem_limit": settings.gpu_mem_limit,
                    "arena_extend_strategy": "kSameAsRequested",
                },
            ),
            "CPUExecutionProvider",
        ]
    if device == "openvino":
        return [
            ("OpenVINOExecutionProvider", {"device_type": "CPU"}),
            "CPUExecutionProvider",
        ]
    return ["CPUExecutionProvider"]


def build_session_options(settings: Settings) -> SessionOptions:
    opts = SessionOptions()
    opts.intra_op_num_threads = settings.intra_op_threads
    opts.inter_op_num_threads = settings.inter_op_threads
    opts.execution_mode = ExecutionMode.ORT_SEQUENTIAL
    opts.enable_mem_pattern = True
    opts.enable_mem_reuse = True

    if settings.device == "openvino":
        # OpenVINO does its own graph optimization
        opts.graph_optimization_level = GraphOptimizationLevel.ORT_DISABLE_ALL
    return opts


def create_session(model_path: str | Path, settings: Settings) -> InferenceSession:
    """Load an ONNX model from a local file.

    Raises:
        FileNotFoundError: If ``model_path`` does not exist.
    """
    path = Path(model_path)
    if not path.is_file():
        raise FileNotFoundError(f"ONNX model not found: {path}")
    session = InferenceSession(
        str(path),
        sess_options=build_session_options(settings),
        providers=build_providers(settings),
    )
    logger.info("Loaded session for %s (device=%s)", path.name, settings.device)
    return session


# ---------------------------------------------------------------------------
# Tensor helpers
# ---------------------------------------------------------------------------


def to_input_tensor(
    image: NDArray[np.generic],
    mean: Sequence[float] = FACE_API_MEAN_RGB,
    scale: float = 1.0 / 255.0,
) -> NDArray[np.float32]:
    """Convert an HxW(xC) crop into a normalized 1x3xHxW float32 batch."""
    arr = np.asarray(image, dtype=np.float32)
    if arr.ndim == 2:
        arr = np.repeat(arr[:, :, np.newaxis], 3, axis=2)
    elif arr.shape[2] == 1:
        arr = np.repeat(arr, 3, axis=2)
    elif arr.shape[2] == 4:
        arr = arr[:, :, :3]
    arr = (arr - np.asarray(mean, dtype=np.float32)) * np.float32(scale)
    return np.ascontiguousarray(arr.transpose(2, 0, 1)[np.newaxis])


def softmax(logits: NDArray[np.floating]) -> NDArray[np.float64]:
    shifted = np.asarray(logits, dtype=np.float64) - np.max(logits)
    exp = np.exp(shifted)
    return exp / exp.sum()


class _OnnxCropNet:
    """Runs a single-input ONNX model on one face crop."""

    def __init__(
        self,
        session: InferenceSession,
        *,
        mean: Sequence[float] = FACE_API_MEAN_RGB,
        scale: float = 1.0 / 255.0,
    ) -> None:
        self._session = session
        self._input_name = session.get_inputs()[0].name
        self._mean = tuple(mean)
        self._scale = scale

    def _run(self, face: FaceCrop) -> list[NDArray[np.float32]]:
        tensor = to_input_tensor(face.as_array(), self._mean, self._scale)
        outputs: list[NDArray[np.float32]] = self._session.run(None, {self._input_name: tensor})
        return outputs


# ---------------------------------------------------------------------------
# Adapters
# ---------------------------------------------------------------------------


class OnnxFaceLandmarkNet(_OnnxCropNet):
    """68-point landmark regressor.

    The model outputs 136 values: x/y pairs relative to the input crop.
    """

    def detect_landmarks(self, face: FaceCrop) -> FaceLandmarks68:
        coords = np.asarray(self._run(face)[0], dtype=np.float64).reshape(-1, 2)
        if coords.shape[0] != FaceLandmarks68.num_points:
            raise ValueError(f"Expected {FaceLandmarks68.num_points} landmark points, got {coords.shape[0]}")
        points = [Point(float(x), float(y)) for x, y in coords]
        return FaceLandmarks68(points, Dimensions(face.width, face.height))


class OnnxFaceRecognitionNet(_OnnxCropNet):
    def compute_face_descriptor(self, face: FaceCrop) -> NDArray[np.float32]:
        return np.asarray(self._run(face)[0], dtype=np.float32).reshape(-1)


class OnnxFaceExpressionNet(_OnnxCropNet):
    """Seven-way expression classifier; logits are softmaxed unless ``outputs_probabilities``."""

    def __init__(
        self,
        session: InferenceSession,
        *,
        outputs_probabilities: bool = False,
        mean: Sequence[float] = FACE_API_MEAN_RGB,
        scale: float = 1.0 / 255.0,
    ) -> None:
        super().__init__(session, mean=mean, scale=scale)
        self._outputs_probabilities = outputs_probabilities

    def predict_expressions(self, face: FaceCrop) -> FaceExpressions:
        scores = np.asarray(self._run(face)[0], dtype=np.float64).reshape(-1)
        probabilities = np.clip(scores, 0.0, 1.0) if self._outputs_probabilities else softmax(scores)
        return FaceExpressions.from_probabilities(probabilities.tolist())


class OnnxAgeGenderNet(_OnnxCropNet):
    """Age regressor with a two-way gender head (index 0 male, 1 female)."""

    def predict_age_and_gender(self, face: FaceCrop) -> AgeAndGenderPrediction:
        age_out, gender_out = self._run(face)[:2]
        age = max(0.0, float(np.asarray(age_out).reshape(-1)[0]))
        probabilities = softmax(np.asarray(gender_out).reshape(-1))
        index = int(np.argmax(probabilities))
        gender = Gender.MALE if index == 0 else Gender.FEMALE
        return AgeAndGenderPrediction(age=age, gender=gender, gender_probability=float(probabilities[index]))


# ---------------------------------------------------------------------------
# Wiring
# ---------------------------------------------------------------------------


def build_nets(settings: Settings) -> Nets:
    """Create a backend for every model path configured in ``settings``."""
    nets = Nets()
    if settings.detection_model_path:
        nets.face_detector = YuNetFaceDetector(
            settings.detection_model_path,
            nms_threshold=settings.detection_nms_threshold,
            top_k=settings.detection_top_k,
        )
    if settings.landmark_model_path:
        nets.face_landmark_68_net = OnnxFaceLandmarkNet(create_session(settings.landmark_model_path, settings))
    if settings.tiny_landmark_model_path:
        nets.face_landmark_68_tiny_net = OnnxFaceLandmarkNet(
            create_session(settings.tiny_landmark_model_path, settings)
        )
    if settings.recognition_model_path:
        nets.face_recognition_net = OnnxFaceRecognitionNet(create_session(settings.recognition_model_path, settings))
    if settings.expression_model_path:
        nets.face_expression_net = OnnxFaceExpressionNet(create_session(settings.expression_model_path, settings))
    if settings.age_gender_model_path:
        nets.age_gender_net = OnnxAgeGenderNet(create_session(settings.age_gender_model_path, settings))
    logger.info("Configured backends: %s", ", ".join(nets.configured()) or "none")
    return nets
