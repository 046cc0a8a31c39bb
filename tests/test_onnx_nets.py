"""Tests for the ONNX Runtime and OpenCV backends."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock, patch

import numpy as np
import pytest
from PIL import Image

from facechain.config import Settings
from facechain.faces import Gender
from facechain.geometry import Box
from facechain.ml.extraction import FaceCrop
from facechain.ml.media import ImageMedia, TensorMedia
from facechain.ml.onnx_nets import (
    OnnxAgeGenderNet,
    OnnxFaceExpressionNet,
    OnnxFaceLandmarkNet,
    OnnxFaceRecognitionNet,
    build_nets,
    build_providers,
    build_session_options,
    create_session,
    softmax,
    to_input_tensor,
)
from facechain.ml.yunet import YuNetFaceDetector, to_bgr

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _make_settings(**overrides: object) -> Settings:
    defaults: dict[str, object] = {
        "device": "cpu",
        "intra_op_threads": 0,
        "inter_op_threads": 1,
        "gpu_mem_limit": 2_147_483_648,
        "max_concurrent": 2,
    }
    defaults.update(overrides)
    return Settings(**defaults)  # type: ignore[arg-type]


def _mock_session(*outputs: object) -> MagicMock:
    session = MagicMock()
    model_input = MagicMock()
    model_input.name = "input"
    session.get_inputs.return_value = [model_input]
    session.run.return_value = [np.asarray(o, dtype=np.float32) for o in outputs]
    return session


def _crop(size: int = 112) -> FaceCrop:
    return FaceCrop(np.full((size, size, 3), 128, dtype=np.uint8), Box(0, 0, size, size))


# ---------------------------------------------------------------------------
# Sessions
# ---------------------------------------------------------------------------


class TestProviders:
    def test_cpu_providers(self) -> None:
        assert build_providers(_make_settings(device="cpu")) == ["CPUExecutionProvider"]

    def test_cuda_providers(self) -> None:
        providers = build_providers(_make_settings(device="cuda", gpu_mem_limit=1024))
        assert providers[0] == (
            "CUDAExecutionProvider",
            {"device_id": 0, "gpu_mem_limit": 1024, "arena_extend_strategy": "kSameAsRequested"},
        )
        assert providers[1] == "CPUExecutionProvider"

    def test_openvino_providers(self) -> None:
        providers = build_providers(_make_settings(device="openvino"))
        assert providers[0] == ("OpenVINOExecutionProvider", {"device_type": "CPU"})
        assert providers[1] == "CPUExecutionProvider"


class TestSessionOptions:
    def test_thread_settings(self) -> None:
        opts = build_session_options(_make_settings(intra_op_threads=4, inter_op_threads=2))
        assert opts.intra_op_num_threads == 4
        assert opts.inter_op_num_threads == 2
        assert opts.enable_mem_pattern is True


class TestCreateSession:
    @patch("facechain.ml.onnx_nets.InferenceSession")
    def test_creates_session_with_providers(self, mock_session_cls: MagicMock, tmp_path: Path) -> None:
        model = tmp_path / "landmarks.onnx"
        model.write_bytes(b"onnx")
        settings = _make_settings(device="cuda")

        session = create_session(model, settings)

        assert session is mock_session_cls.return_value
        args, kwargs = mock_session_cls.call_args
        assert args == (str(model),)
        assert kwargs["providers"][0][0] == "CUDAExecutionProvider"

    def test_missing_model_file(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            create_session(tmp_path / "missing.onnx", _make_settings())


# ---------------------------------------------------------------------------
# Tensor helpers
# ---------------------------------------------------------------------------


class TestTensorHelpers:
    def test_input_tensor_layout(self) -> None:
        tensor = to_input_tensor(np.zeros((8, 6, 3), dtype=np.uint8), mean=(0, 0, 0), scale=1.0)
        assert tensor.shape == (1, 3, 8, 6)
        assert tensor.dtype == np.float32

    def test_input_tensor_grayscale_and_alpha(self) -> None:
        assert to_input_tensor(np.zeros((4, 4), dtype=np.uint8)).shape == (1, 3, 4, 4)
        assert to_input_tensor(np.zeros((4, 4, 4), dtype=np.uint8)).shape == (1, 3, 4, 4)

    def test_input_tensor_normalization(self) -> None:
        tensor = to_input_tensor(np.full((2, 2, 3), 255, dtype=np.uint8), mean=(55, 155, 255), scale=0.01)
        assert tensor[0, :, 0, 0].tolist() == pytest.approx([2.0, 1.0, 0.0])

    def test_softmax(self) -> None:
        probs = softmax(np.array([1.0, 1.0, 1.0, 1.0]))
        assert probs.tolist() == pytest.approx([0.25] * 4)


# ---------------------------------------------------------------------------
# Adapters
# ---------------------------------------------------------------------------


class TestAdapters:
    def test_landmark_net_scales_to_crop(self) -> None:
        coords = np.tile([0.5, 0.25], 68)
        net = OnnxFaceLandmarkNet(_mock_session(coords))
        landmarks = net.detect_landmarks(_crop(100))
        assert len(landmarks) == 68
        assert landmarks.positions[0].x == pytest.approx(50)
        assert landmarks.positions[0].y == pytest.approx(25)

    def test_landmark_net_rejects_wrong_shape(self) -> None:
        net = OnnxFaceLandmarkNet(_mock_session(np.zeros(10)))
        with pytest.raises(ValueError):
            net.detect_landmarks(_crop())

    def test_recognition_net_flattens(self) -> None:
        net = OnnxFaceRecognitionNet(_mock_session(np.ones((1, 128))))
        descriptor = net.compute_face_descriptor(_crop())
        assert descriptor.shape == (128,)
        assert descriptor.dtype == np.float32

    def test_session_receives_normalized_batch(self) -> None:
        session = _mock_session(np.ones((1, 128)))
        OnnxFaceRecognitionNet(session).compute_face_descriptor(_crop(16))
        feeds = session.run.call_args.args[1]
        assert feeds["input"].shape == (1, 3, 16, 16)

    def test_expression_net_softmax(self) -> None:
        logits = [0.0, 5.0, 0.0, 0.0, 0.0, 0.0, 0.0]
        expressions = OnnxFaceExpressionNet(_mock_session(logits)).predict_expressions(_crop())
        assert expressions.dominant == "happy"
        assert sum(p for _, p in expressions.as_sorted_list()) == pytest.approx(1.0)

    def test_expression_net_probabilities(self) -> None:
        probs = [0.1, 0.1, 0.1, 0.1, 0.1, 0.1, 0.4]
        net = OnnxFaceExpressionNet(_mock_session(probs), outputs_probabilities=True)
        assert net.predict_expressions(_crop()).surprised == pytest.approx(0.4)

    def test_age_gender_net(self) -> None:
        net = OnnxAgeGenderNet(_mock_session([[27.4]], [[0.0, 2.0]]))
        prediction = net.predict_age_and_gender(_crop())
        assert prediction.age == pytest.approx(27.4, rel=1e-5)
        assert prediction.gender is Gender.FEMALE
        assert prediction.gender_probability > 0.8


# ---------------------------------------------------------------------------
# YuNet detector
# ---------------------------------------------------------------------------


class TestYuNetFaceDetector:
    @patch("facechain.ml.yunet.cv2.FaceDetectorYN")
    def test_detections_in_image_space(self, mock_yunet: MagicMock) -> None:
        mock_create = mock_yunet.create
        row = np.zeros(15, dtype=np.float32)
        row[:4] = [-5, 10, 40, 50]
        row[14] = 0.93
        mock_create.return_value.detect.return_value = (1, row[np.newaxis, :])
        detector = YuNetFaceDetector("yunet.onnx")

        [detection] = detector.detect(TensorMedia(np.zeros((100, 80, 3), dtype=np.uint8)))

        mock_create.return_value.setInputSize.assert_called_once_with((80, 100))
        assert detection.score == pytest.approx(0.93)
        assert detection.box == Box(0, 10, 35, 50)
        assert (detection.image_width, detection.image_height) == (80, 100)

    @patch("facechain.ml.yunet.cv2.FaceDetectorYN")
    def test_no_faces(self, mock_yunet: MagicMock) -> None:
        mock_create = mock_yunet.create
        mock_create.return_value.detect.return_value = (1, None)
        detector = YuNetFaceDetector("yunet.onnx")
        assert detector.detect(ImageMedia(Image.new("RGB", (20, 20)))) == []

    def test_to_bgr_swaps_channels(self) -> None:
        rgb = np.zeros((2, 2, 3), dtype=np.uint8)
        rgb[..., 0] = 255
        bgr = to_bgr(TensorMedia(rgb))
        assert bgr[0, 0].tolist() == [0, 0, 255]

    def test_to_bgr_grayscale(self) -> None:
        assert to_bgr(TensorMedia(np.zeros((3, 3), dtype=np.uint8))).shape == (3, 3, 3)


# ---------------------------------------------------------------------------
# build_nets
# ---------------------------------------------------------------------------


class TestBuildNets:
    def test_nothing_configured(self) -> None:
        assert build_nets(_make_settings()).configured() == []

    @patch("facechain.ml.onnx_nets.YuNetFaceDetector")
    @patch("facechain.ml.onnx_nets.InferenceSession")
    def test_configured_paths(self, mock_session_cls: MagicMock, mock_detector: MagicMock, tmp_path: Path) -> None:
        paths = {}
        for name in ("landmark", "recognition", "age_gender"):
            path = tmp_path / f"{name}.onnx"
            path.write_bytes(b"onnx")
            paths[f"{name}_model_path"] = str(path)

        nets = build_nets(_make_settings(detection_model_path="yunet.onnx", **paths))

        assert nets.configured() == ["face_detector", "face_landmark_68_net", "face_recognition_net", "age_gender_net"]
        mock_detector.assert_called_once_with("yunet.onnx", nms_threshold=0.3, top_k=5000)
        assert mock_session_cls.call_count == 3
