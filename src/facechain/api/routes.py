"""API route definitions."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Annotated, Any

from fastapi import APIRouter, Depends, HTTPException, Query, UploadFile, status

from facechain.api.dependencies import FaceApiDep, InferencePoolDep, SettingsDep, verify_api_key
from facechain.api.schemas import (
    DetectFacesResponse,
    ErrorResponse,
    FaceResultSchema,
    HealthResponse,
    NetInfo,
    NetsResponse,
)
from facechain.errors import (
    FaceChainError,
    ImageTooLargeError,
    InferenceError,
    MediaError,
    NetNotConfiguredError,
)
from facechain.faces.result import extend_with_face_detection
from facechain.ml.media import decode_image
from facechain.ml.nets import Nets

if TYPE_CHECKING:
    from facechain.face_api import FaceApi
    from facechain.faces import FaceResult

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1", dependencies=[Depends(verify_api_key)])

_PAYLOAD_TOO_LARGE = 413
_UNPROCESSABLE = 422


def _error_status(exc: FaceChainError) -> int:
    if isinstance(exc, ImageTooLargeError):
        return _PAYLOAD_TOO_LARGE
    if isinstance(exc, MediaError):
        return status.HTTP_400_BAD_REQUEST
    if isinstance(exc, NetNotConfiguredError):
        return status.HTTP_503_SERVICE_UNAVAILABLE
    if isinstance(exc, InferenceError) and isinstance(exc.__cause__, TimeoutError):
        return status.HTTP_503_SERVICE_UNAVAILABLE
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def _build_chain(
    face_api: FaceApi,
    image: Any,
    *,
    landmarks: bool,
    descriptors: bool,
    expressions: bool,
    age_gender: bool,
    single: bool,
    min_confidence: float | None,
) -> tuple[Any, bool]:
    """Chain the requested stages onto a detection task.

    Returns the task to await and whether it resolves to ``FaceResult``s
    (False when only detection was requested).
    """
    if descriptors and not landmarks:
        raise HTTPException(
            status_code=_UNPROCESSABLE,
            detail="descriptors require landmarks",
        )
    task: Any = (
        face_api.detect_single_face(image, min_confidence)
        if single
        else face_api.detect_all_faces(image, min_confidence)
    )
    if not (landmarks or expressions or age_gender):
        return task, False
    if landmarks:
        task = task.with_face_landmarks()
    if descriptors:
        task = task.with_face_descriptors()
    if expressions:
        task = task.with_face_expressions()
    if age_gender:
        task = task.with_age_and_gender()
    return task, True


@router.post(
    "/detect-faces",
    response_model=DetectFacesResponse,
    responses={
        status.HTTP_400_BAD_REQUEST: {"model": ErrorResponse},
        _PAYLOAD_TOO_LARGE: {"model": ErrorResponse},
        status.HTTP_503_SERVICE_UNAVAILABLE: {"model": ErrorResponse},
    },
    summary="Detect faces in an image",
)
async def detect_faces(
    file: UploadFile,
    settings: SettingsDep,
    face_api: FaceApiDep,
    landmarks: bool = False,
    descriptors: bool = False,
    expressions: bool = False,
    age_gender: bool = False,
    single: bool = False,
    min_confidence: Annotated[float | None, Query(ge=0.0, le=1.0)] = None,
) -> DetectFacesResponse:
    """Detect faces and run the requested per-face stages on an uploaded image."""
    payload = await file.read()
    if len(payload) > settings.max_file_size:
        raise HTTPException(
            status_code=_PAYLOAD_TOO_LARGE,
            detail=f"File is {len(payload)} bytes, limit is {settings.max_file_size}",
        )

    try:
        image = await asyncio.to_thread(decode_image, payload, settings.max_image_pixels)
    except ImageTooLargeError as exc:
        raise HTTPException(status_code=_PAYLOAD_TOO_LARGE, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc

    try:
        task, per_face = _build_chain(
            face_api,
            image,
            landmarks=landmarks,
            descriptors=descriptors,
            expressions=expressions,
            age_gender=age_gender,
            single=single,
            min_confidence=min_confidence,
        )
        outcome = await task
    except FaceChainError as exc:
        code = _error_status(exc)
        if code == status.HTTP_500_INTERNAL_SERVER_ERROR:
            logger.exception("Face pipeline failed")
        raise HTTPException(status_code=code, detail=str(exc)) from exc

    items = [] if outcome is None else (outcome if isinstance(outcome, list) else [outcome])
    results: list[FaceResult] = items if per_face else [extend_with_face_detection(None, d) for d in items]
    height, width = image.shape[:2]
    return DetectFacesResponse(
        image_width=width,
        image_height=height,
        faces=[FaceResultSchema.from_result(result) for result in results],
    )


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health check",
)
async def health(settings: SettingsDep, pool: InferencePoolDep, face_api: FaceApiDep) -> HealthResponse:
    """Return service health status."""
    return HealthResponse(
        status="ok",
        gpu=settings.device == "cuda",
        nets_configured=face_api.nets.configured(),
        concurrent_requests=pool.active_count,
        queue_depth=pool.queue_depth,
    )


@router.get(
    "/nets",
    response_model=NetsResponse,
    summary="List backend slots",
)
async def list_nets(face_api: FaceApiDep) -> NetsResponse:
    """Return every backend slot and whether a backend is configured for it."""
    configured = set(face_api.nets.configured())
    return NetsResponse(
        nets=[
            NetInfo(name=name, status="active" if name in configured else "unavailable")
            for name in Nets.slot_names()
        ]
    )
