"""Tests for the facechain HTTP API."""

from __future__ import annotations

import io
import os
from typing import TYPE_CHECKING
from unittest.mock import patch

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from facechain.ml.nets import Nets

import httpx
import pytest
from fastapi import FastAPI, status
from PIL import Image

from conftest import FakeRecognitionNet, make_nets
from facechain.config import get_settings
from facechain.face_api import FaceApi
from facechain.faces import FaceDetection
from facechain.geometry import Box, Dimensions
from facechain.main import create_app
from facechain.ml.inference import InferencePool

UPLOAD_DIMS = Dimensions(64, 48)


def _detection(score: float = 0.98, box: Box | None = None) -> FaceDetection:
    return FaceDetection(score=score, box=box or Box(8, 8, 32, 32), image_dims=UPLOAD_DIMS)


def _png_bytes(width: int = 64, height: int = 48) -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", (width, height), (120, 90, 60)).save(buffer, format="PNG")
    return buffer.getvalue()


def _upload(payload: bytes | None = None) -> dict[str, tuple[str, io.BytesIO, str]]:
    return {"file": ("face.png", io.BytesIO(payload if payload is not None else _png_bytes()), "image/png")}


def _init_app_state(app: FastAPI, nets: Nets, **env_overrides: str) -> None:
    """Manually initialize app state (ASGITransport does not trigger lifespan)."""
    with patch.dict(os.environ, env_overrides):
        settings = get_settings()
    pool = InferencePool(settings)
    app.state.settings = settings
    app.state.inference_pool = pool
    app.state.face_api = FaceApi(nets, settings, pool)


async def _make_client(app: FastAPI) -> AsyncIterator[httpx.AsyncClient]:
    async with httpx.AsyncClient(
        transport=httpx.ASGITransport(app=app),
        base_url="http://testserver",
    ) as ac:
        yield ac
    pool: InferencePool = app.state.inference_pool
    pool.shutdown()


def _app_with(nets: Nets, **env_overrides: str) -> FastAPI:
    application = create_app(nets=nets)
    _init_app_state(application, nets, **env_overrides)
    return application


@pytest.fixture()
def app() -> FastAPI:
    """App serving fakes that find two faces."""
    return _app_with(make_nets([_detection(0.98), _detection(0.9, Box(30, 10, 20, 20))]))


@pytest.fixture()
async def client(app: FastAPI) -> AsyncIterator[httpx.AsyncClient]:
    """Async HTTP client for testing the app."""
    async for ac in _make_client(app):
        yield ac


class TestHealthEndpoint:
    async def test_health_returns_ok(self, client: httpx.AsyncClient) -> None:
        response = await client.get("/api/v1/health")
        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["status"] == "ok"
        assert data["gpu"] is False
        assert "face_detector" in data["nets_configured"]
        assert isinstance(data["concurrent_requests"], int)
        assert isinstance(data["queue_depth"], int)

    async def test_health_gpu_true_when_cuda(self) -> None:
        cuda_app = _app_with(make_nets(), FACECHAIN_DEVICE="cuda")
        async for ac in _make_client(cuda_app):
            response = await ac.get("/api/v1/health")
            assert response.status_code == status.HTTP_200_OK
            assert response.json()["gpu"] is True


class TestNetsEndpoint:
    async def test_all_slots_listed(self, client: httpx.AsyncClient) -> None:
        response = await client.get("/api/v1/nets")
        assert response.status_code == status.HTTP_200_OK
        nets = response.json()["nets"]
        assert len(nets) == 6
        assert all(net["status"] == "active" for net in nets)

    async def test_missing_backend_is_unavailable(self) -> None:
        app = _app_with(make_nets(face_expression_net=None))
        async for ac in _make_client(app):
            response = await ac.get("/api/v1/nets")
            statuses = {net["name"]: net["status"] for net in response.json()["nets"]}
            assert statuses["face_expression_net"] == "unavailable"
            assert statuses["face_detector"] == "active"


class TestDetectFacesEndpoint:
    async def test_detection_only(self, client: httpx.AsyncClient) -> None:
        response = await client.post("/api/v1/detect-faces", files=_upload())
        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert (data["image_width"], data["image_height"]) == (64, 48)
        assert len(data["faces"]) == 2
        first = data["faces"][0]
        assert first["detection"]["score"] == pytest.approx(0.98)
        assert first["detection"]["box"] == {"x": 8.0, "y": 8.0, "width": 32.0, "height": 32.0}
        assert first["landmarks"] is None
        assert first["descriptor"] is None

    async def test_min_confidence_filters(self, client: httpx.AsyncClient) -> None:
        response = await client.post("/api/v1/detect-faces", params={"min_confidence": 0.95}, files=_upload())
        assert response.status_code == status.HTTP_200_OK
        assert len(response.json()["faces"]) == 1

    async def test_min_confidence_out_of_range(self, client: httpx.AsyncClient) -> None:
        response = await client.post("/api/v1/detect-faces", params={"min_confidence": 1.5}, files=_upload())
        assert response.status_code == 422

    async def test_landmarks_and_descriptors(self, client: httpx.AsyncClient) -> None:
        response = await client.post(
            "/api/v1/detect-faces",
            params={"landmarks": True, "descriptors": True},
            files=_upload(),
        )
        assert response.status_code == status.HTTP_200_OK
        faces = response.json()["faces"]
        assert len(faces) == 2
        for face in faces:
            assert len(face["landmarks"]) == 68
            assert face["aligned_rect"] is not None
            assert len(face["descriptor"]) == 128

    async def test_all_stages(self, client: httpx.AsyncClient) -> None:
        response = await client.post(
            "/api/v1/detect-faces",
            params={"landmarks": True, "descriptors": True, "expressions": True, "age_gender": True},
            files=_upload(),
        )
        assert response.status_code == status.HTTP_200_OK
        face = response.json()["faces"][0]
        assert face["expressions"]["happy"] == pytest.approx(0.7)
        assert face["age"] == pytest.approx(31.5)
        assert face["gender"] == "female"
        assert face["gender_probability"] == pytest.approx(0.9)

    async def test_expressions_without_landmarks(self, client: httpx.AsyncClient) -> None:
        response = await client.post("/api/v1/detect-faces", params={"expressions": True}, files=_upload())
        assert response.status_code == status.HTTP_200_OK
        face = response.json()["faces"][0]
        assert face["landmarks"] is None
        assert face["expressions"]["happy"] == pytest.approx(0.7)

    async def test_descriptors_require_landmarks(self, client: httpx.AsyncClient) -> None:
        response = await client.post("/api/v1/detect-faces", params={"descriptors": True}, files=_upload())
        assert response.status_code == 422
        assert "landmarks" in response.json()["detail"]

    async def test_single_face(self, client: httpx.AsyncClient) -> None:
        response = await client.post(
            "/api/v1/detect-faces",
            params={"single": True, "landmarks": True},
            files=_upload(),
        )
        assert response.status_code == status.HTTP_200_OK
        faces = response.json()["faces"]
        assert len(faces) == 1
        assert faces[0]["detection"]["score"] == pytest.approx(0.98)

    async def test_no_faces(self) -> None:
        app = _app_with(make_nets())
        async for ac in _make_client(app):
            response = await ac.post("/api/v1/detect-faces", params={"single": True}, files=_upload())
            assert response.status_code == status.HTTP_200_OK
            assert response.json()["faces"] == []

    async def test_undecodable_upload(self, client: httpx.AsyncClient) -> None:
        response = await client.post("/api/v1/detect-faces", files=_upload(b"not an image"))
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert "decode" in response.json()["detail"].lower()

    async def test_file_size_limit(self) -> None:
        app = _app_with(make_nets(), FACECHAIN_MAX_FILE_SIZE="16")
        async for ac in _make_client(app):
            response = await ac.post("/api/v1/detect-faces", files=_upload())
            assert response.status_code == 413

    async def test_pixel_limit(self) -> None:
        app = _app_with(make_nets(), FACECHAIN_MAX_IMAGE_PIXELS="100")
        async for ac in _make_client(app):
            response = await ac.post("/api/v1/detect-faces", files=_upload())
            assert response.status_code == 413
            assert "pixels" in response.json()["detail"]

    async def test_missing_backend(self) -> None:
        app = _app_with(make_nets([_detection()], face_landmark_68_net=None))
        async for ac in _make_client(app):
            response = await ac.post("/api/v1/detect-faces", params={"landmarks": True}, files=_upload())
            assert response.status_code == status.HTTP_503_SERVICE_UNAVAILABLE
            assert "face_landmark_68_net" in response.json()["detail"]

    async def test_backend_failure(self) -> None:
        app = _app_with(make_nets([_detection()], face_recognition_net=FakeRecognitionNet(fail_on=0)))
        async for ac in _make_client(app):
            response = await ac.post(
                "/api/v1/detect-faces",
                params={"landmarks": True, "descriptors": True},
                files=_upload(),
            )
            assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
            assert "compute_face_descriptors" in response.json()["detail"]


class TestAuthentication:
    async def test_no_auth_required_by_default(self, client: httpx.AsyncClient) -> None:
        response = await client.get("/api/v1/health")
        assert response.status_code == status.HTTP_200_OK

    async def test_auth_required_when_api_key_set(self) -> None:
        app = _app_with(make_nets(), FACECHAIN_API_KEY="test-secret-key")
        async for ac in _make_client(app):
            response = await ac.get("/api/v1/health")
            assert response.status_code == status.HTTP_401_UNAUTHORIZED
            assert response.headers["www-authenticate"] == "Bearer"

    async def test_auth_passes_with_correct_key(self) -> None:
        app = _app_with(make_nets(), FACECHAIN_API_KEY="test-secret-key")
        async for ac in _make_client(app):
            response = await ac.get(
                "/api/v1/health",
                headers={"Authorization": "Bearer test-secret-key"},
            )
            assert response.status_code == status.HTTP_200_OK

    async def test_auth_fails_with_wrong_key(self) -> None:
        app = _app_with(make_nets(), FACECHAIN_API_KEY="test-secret-key")
        async for ac in _make_client(app):
            response = await ac.post(
                "/api/v1/detect-faces",
                headers={"Authorization": "Bearer wrong-key"},
                files=_upload(),
            )
            assert response.status_code == status.HTTP_401_UNAUTHORIZED
