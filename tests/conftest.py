"""Shared fakes: backends with call counters and crops that count disposals."""

from __future__ import annotations

import threading
from typing import TYPE_CHECKING

import numpy as np
import pytest

from facechain.config import Settings
from facechain.face_api import FaceApi
from facechain.faces import AgeAndGenderPrediction, FaceDetection, FaceExpressions, FaceLandmarks68, Gender
from facechain.geometry import Box, Dimensions, Point
from facechain.ml.inference import InferencePool
from facechain.ml.nets import Nets

if TYPE_CHECKING:
    from collections.abc import Iterator, Sequence

    from numpy.typing import NDArray

IMAGE_DIMS = Dimensions(200, 200)


# ---------------------------------------------------------------------------
# Crops and extraction
# ---------------------------------------------------------------------------


class CountingCrop:
    """Stand-in for ``FaceCrop`` that records how often it was disposed."""

    def __init__(self, index: int, region: object = None, *, fail_dispose: bool = False) -> None:
        self.index = index
        self.region = region
        self.dispose_count = 0
        self._fail_dispose = fail_dispose

    @property
    def disposed(self) -> bool:
        return self.dispose_count > 0

    def dispose(self) -> None:
        self.dispose_count += 1
        if self._fail_dispose:
            raise RuntimeError(f"dispose failed for crop {self.index}")


class FakeExtractor:
    """Async extractor returning one ``CountingCrop`` per region."""

    def __init__(self, *, fail_dispose_on: int | None = None, drop_last: bool = False) -> None:
        self.calls: list[tuple[list[object], int | None]] = []
        self.crops: list[CountingCrop] = []
        self._fail_dispose_on = fail_dispose_on
        self._drop_last = drop_last

    async def __call__(self, media: object, regions: Sequence[object], size: int | None = None) -> list[CountingCrop]:
        self.calls.append((list(regions), size))
        crops = [
            CountingCrop(i, region, fail_dispose=(i == self._fail_dispose_on)) for i, region in enumerate(regions)
        ]
        self.crops.extend(crops)
        if self._drop_last and crops:
            return crops[:-1]
        return crops


# ---------------------------------------------------------------------------
# Backends
# ---------------------------------------------------------------------------


class _Counting:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.calls = 0

    def _count(self) -> None:
        with self._lock:
            self.calls += 1


class FakeDetector(_Counting):
    def __init__(self, detections: Sequence[FaceDetection] = ()) -> None:
        super().__init__()
        self.detections = list(detections)

    def detect(self, media: object) -> list[FaceDetection]:
        self._count()
        return list(self.detections)


def grid_points() -> list[Point]:
    """68 distinct points spread over a 100x100 box, eyes above the mouth."""
    return [Point(float(10 + (i % 10) * 8), float(10 + (i // 10) * 12)) for i in range(68)]


class FakeLandmarkNet(_Counting):
    """Returns the same landmarks for every crop, expressed in a 100x100 image."""

    def __init__(self, positions: Sequence[Point] | None = None) -> None:
        super().__init__()
        self.positions = list(positions) if positions is not None else grid_points()

    def detect_landmarks(self, face: object) -> FaceLandmarks68:
        self._count()
        return FaceLandmarks68.from_positions(self.positions, Dimensions(100, 100))


class FakeRecognitionNet(_Counting):
    """Descriptor filled with the crop index; raises for crop ``fail_on``."""

    def __init__(self, fail_on: int | None = None, length: int = 128) -> None:
        super().__init__()
        self.fail_on = fail_on
        self.length = length

    def compute_face_descriptor(self, face: CountingCrop) -> NDArray[np.float32]:
        self._count()
        index = getattr(face, "index", 0)
        if index == self.fail_on:
            raise RuntimeError(f"descriptor backend failed on crop {index}")
        return np.full(self.length, float(index), dtype=np.float32)


class AsyncRecognitionNet(_Counting):
    async def compute_face_descriptor(self, face: CountingCrop) -> NDArray[np.float32]:
        self._count()
        return np.ones(4, dtype=np.float32)


class FakeExpressionNet(_Counting):
    def predict_expressions(self, face: object) -> FaceExpressions:
        self._count()
        return FaceExpressions(
            neutral=0.05,
            happy=0.7,
            sad=0.05,
            angry=0.05,
            fearful=0.05,
            disgusted=0.05,
            surprised=0.05,
        )


class FakeAgeGenderNet(_Counting):
    def predict_age_and_gender(self, face: object) -> AgeAndGenderPrediction:
        self._count()
        return AgeAndGenderPrediction(age=31.5, gender=Gender.FEMALE, gender_probability=0.9)


def make_detection(score: float = 0.98, box: Box | None = None) -> FaceDetection:
    return FaceDetection(score=score, box=box or Box(10, 10, 100, 100), image_dims=IMAGE_DIMS)


def make_nets(detections: Sequence[FaceDetection] = (), **overrides: object) -> Nets:
    """Nets with every slot filled by a fake; ``overrides`` replace (or clear) slots."""
    nets = Nets(
        face_detector=FakeDetector(detections),
        face_landmark_68_net=FakeLandmarkNet(),
        face_landmark_68_tiny_net=FakeLandmarkNet(),
        face_recognition_net=FakeRecognitionNet(),
        face_expression_net=FakeExpressionNet(),
        age_gender_net=FakeAgeGenderNet(),
    )
    for name, value in overrides.items():
        setattr(nets, name, value)
    return nets


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def settings() -> Settings:
    return Settings(max_concurrent=4, queue_timeout=5.0, min_detection_confidence=0.5)


@pytest.fixture()
def pool(settings: Settings) -> Iterator[InferencePool]:
    inference_pool = InferencePool(settings)
    yield inference_pool
    inference_pool.shutdown()


@pytest.fixture()
def image() -> NDArray[np.uint8]:
    return np.zeros((200, 200, 3), dtype=np.uint8)


@pytest.fixture()
def extractor() -> FakeExtractor:
    return FakeExtractor()


def make_api(nets: Nets, settings: Settings, pool: InferencePool, extract: object = None) -> FaceApi:
    if extract is None:
        return FaceApi(nets, settings, pool)
    return FaceApi(nets, settings, pool, extract)  # type: ignore[arg-type]
