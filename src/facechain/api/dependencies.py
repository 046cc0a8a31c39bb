"""Request dependencies: app-state accessors and bearer API key check."""

from __future__ import annotations

import secrets
from typing import Annotated

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from facechain.config import Settings
from facechain.face_api import FaceApi
from facechain.ml.inference import InferencePool

_bearer_scheme = HTTPBearer(auto_error=False)


def get_app_settings(request: Request) -> Settings:
    settings: Settings = request.app.state.settings
    return settings


def get_inference_pool(request: Request) -> InferencePool:
    pool: InferencePool = request.app.state.inference_pool
    return pool


def get_face_api(request: Request) -> FaceApi:
    face_api: FaceApi = request.app.state.face_api
    return face_api


SettingsDep = Annotated[Settings, Depends(get_app_settings)]
InferencePoolDep = Annotated[InferencePool, Depends(get_inference_pool)]
FaceApiDep = Annotated[FaceApi, Depends(get_face_api)]


async def verify_api_key(
    settings: SettingsDep,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(_bearer_scheme)],
) -> None:
    """Reject the request unless it carries 'Authorization: Bearer <FACECHAIN_API_KEY>'.

    Authentication is off while no key is configured.
    """
    if settings.api_key is None:
        return

    supplied = credentials.credentials.encode() if credentials is not None else b""
    if credentials is None or not secrets.compare_digest(supplied, settings.api_key.encode()):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or missing API key",
            headers={"WWW-Authenticate": "Bearer"},
        )
