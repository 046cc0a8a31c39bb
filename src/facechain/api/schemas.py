"""Pydantic request/response schemas for the facechain API."""

from __future__ import annotations

from typing import TYPE_CHECKING

from pydantic import BaseModel, Field

if TYPE_CHECKING:
    from facechain.faces import FaceDetection, FaceResult
    from facechain.geometry import Box


class PointSchema(BaseModel):
    x: float
    y: float


class BoxSchema(BaseModel):
    """Axis-aligned box in pixels of the uploaded image."""

    x: float
    y: float
    width: float
    height: float

    @classmethod
    def from_box(cls, box: Box) -> BoxSchema:
        return cls(x=box.x, y=box.y, width=box.width, height=box.height)


class DetectionSchema(BaseModel):
    score: float = Field(description="Detection confidence (0.0-1.0)")
    box: BoxSchema
    relative_box: BoxSchema = Field(description="Box relative to the image size (0.0-1.0)")

    @classmethod
    def from_detection(cls, detection: FaceDetection) -> DetectionSchema:
        return cls(
            score=detection.score,
            box=BoxSchema.from_box(detection.box),
            relative_box=BoxSchema.from_box(detection.relative_box),
        )


class FaceResultSchema(BaseModel):
    """One face with whatever the requested stages attached to it."""

    detection: DetectionSchema
    landmarks: list[PointSchema] | None = Field(default=None, description="68 landmark points in image pixels")
    aligned_rect: BoxSchema | None = None
    descriptor: list[float] | None = Field(default=None, description="Face descriptor vector")
    expressions: dict[str, float] | None = Field(default=None, description="Expression probabilities")
    age: float | None = None
    gender: str | None = Field(default=None, description="'male' or 'female'")
    gender_probability: float | None = None

    @classmethod
    def from_result(cls, result: FaceResult) -> FaceResultSchema:
        return cls(
            detection=DetectionSchema.from_detection(result.detection),
            landmarks=(
                [PointSchema(x=pt.x, y=pt.y) for pt in result.landmarks.positions]
                if result.landmarks is not None
                else None
            ),
            aligned_rect=BoxSchema.from_box(result.aligned_rect.box) if result.aligned_rect is not None else None,
            descriptor=result.descriptor.tolist() if result.descriptor is not None else None,
            expressions=dict(result.expressions.as_sorted_list()) if result.expressions is not None else None,
            age=result.age,
            gender=str(result.gender) if result.gender is not None else None,
            gender_probability=result.gender_probability,
        )


class DetectFacesResponse(BaseModel):
    """Response for the face detection endpoint."""

    image_width: int
    image_height: int
    faces: list[FaceResultSchema]


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = "ok"
    gpu: bool
    nets_configured: list[str]
    concurrent_requests: int
    queue_depth: int


class NetInfo(BaseModel):
    """Status of one backend slot."""

    name: str
    status: str = Field(description="Backend status: 'active' or 'unavailable'")


class NetsResponse(BaseModel):
    """Response for the backend listing endpoint."""

    nets: list[NetInfo]


class ErrorResponse(BaseModel):
    """Standard error response."""

    detail: str
