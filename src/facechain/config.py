"""Environment-based configuration for facechain."""

from __future__ import annotations

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings loaded from FACECHAIN_* environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="FACECHAIN_",
        case_sensitive=False,
    )

    # Server
    host: str = "0.0.0.0"  # noqa: S104
    port: int = 8082

    # Authentication (None = disabled)
    api_key: str | None = None

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    # ONNX Runtime backends
    device: Literal["cpu", "cuda", "openvino"] = "cpu"
    intra_op_threads: int = Field(default=0, ge=0)
    inter_op_threads: int = Field(default=1, ge=1)
    gpu_mem_limit: int = Field(default=2_147_483_648, ge=0)

    # Face detector (OpenCV YuNet ONNX model, None = backend not configured)
    detection_model_path: str | None = None
    detection_nms_threshold: float = Field(default=0.3, ge=0.0, le=1.0)
    detection_top_k: int = Field(default=5000, ge=1)

    # Optional ONNX models for the crop networks (None = backend not configured)
    landmark_model_path: str | None = None
    tiny_landmark_model_path: str | None = None
    recognition_model_path: str | None = None
    expression_model_path: str | None = None
    age_gender_model_path: str | None = None

    # Inference concurrency
    max_concurrent: int = Field(default=2, ge=1)
    queue_timeout: float = Field(default=30.0, gt=0)

    # Input limits
    max_image_pixels: int = Field(default=16_777_216, ge=1)
    max_file_size: int = Field(default=209_715_200, ge=1)

    # Pipeline
    min_detection_confidence: float = Field(default=0.5, ge=0.0, le=1.0)
    landmark_input_size: int = Field(default=112, ge=1)
    descriptor_input_size: int = Field(default=150, ge=1)
    expression_input_size: int = Field(default=112, ge=1)
    age_gender_input_size: int = Field(default=112, ge=1)
    face_match_threshold: float = Field(default=0.6, gt=0.0)


def get_settings() -> Settings:
    """Create and return application settings."""
    return Settings()
