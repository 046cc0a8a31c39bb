"""FastAPI application entry point."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from facechain.ml.nets import Nets

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from facechain.api.routes import router
from facechain.config import get_settings
from facechain.face_api import FaceApi
from facechain.ml.inference import InferencePool

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan: initialize on startup, clean up on shutdown."""
    settings = get_settings()
    app.state.settings = settings

    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    logger.info(
        "Starting facechain (device=%s, max_concurrent=%s, min_confidence=%.2f)",
        settings.device,
        settings.max_concurrent,
        settings.min_detection_confidence,
    )

    nets: Nets | None = app.state.injected_nets
    if nets is None:
        from facechain.ml.onnx_nets import build_nets

        nets = build_nets(settings)

    inference_pool = InferencePool(settings)
    app.state.inference_pool = inference_pool
    app.state.face_api = FaceApi(nets, settings, inference_pool)

    logger.info("facechain ready (backends: %s)", ", ".join(nets.configured()) or "none")
    yield

    logger.info("Shutting down facechain")
    inference_pool.shutdown()
    logger.info("facechain shutdown complete")


def create_app(nets: Nets | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        nets: Backends to serve. When omitted they are built from the
            configured model paths at startup.
    """
    application = FastAPI(
        title="facechain",
        description="Face detection, landmarks, descriptors and attribute prediction over HTTP",
        version="0.1.0",
        lifespan=lifespan,
    )
    application.state.injected_nets = nets

    application.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    application.include_router(router)
    return application


app = create_app()


def run() -> None:
    """Serve the API with uvicorn on the configured host and port."""
    import uvicorn

    settings = get_settings()
    uvicorn.run("facechain.main:app", host=settings.host, port=settings.port, log_level=settings.log_level.lower())
