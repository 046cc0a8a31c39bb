"""Exception hierarchy for facechain.

Validation errors are raised synchronously when records are constructed.
Extraction and inference errors surface from awaited pipeline stages, after
any crops the stage created have been disposed.
"""

from __future__ import annotations


class FaceChainError(Exception):
    """Base class for all facechain errors."""


class ValidationError(FaceChainError, ValueError):
    """A geometric or result record was constructed with an invalid value."""

    def __init__(self, callee: str, property_name: str, value: object, expectation: str) -> None:
        self.callee = callee
        self.property_name = property_name
        self.value = value
        super().__init__(f"{callee} - expected property {property_name} ({value!r}) to be {expectation}")


class MediaError(FaceChainError, TypeError):
    """The pipeline was given an input it cannot treat as image media."""


class ExtractionError(FaceChainError):
    """A face region could not be cropped from the source media."""


class InferenceError(FaceChainError):
    """A backend call failed or returned results that break the 1:1 face mapping."""

    def __init__(self, stage: str, message: str, face_index: int | None = None) -> None:
        self.stage = stage
        self.face_index = face_index
        where = f" (face {face_index})" if face_index is not None else ""
        super().__init__(f"{stage}{where} - {message}")


class ResourceCleanupError(FaceChainError):
    """One or more crops could not be disposed after a successful stage."""

    def __init__(self, stage: str, failures: int) -> None:
        self.stage = stage
        self.failures = failures
        super().__init__(f"{stage} - failed to dispose {failures} face crop(s)")


class NetNotConfiguredError(FaceChainError, RuntimeError):
    """A pipeline stage was requested without the backend it needs."""

    def __init__(self, net_name: str) -> None:
        self.net_name = net_name
        super().__init__(f"No backend configured for '{net_name}'")


class ImageTooLargeError(FaceChainError, ValueError):
    """An uploaded image exceeds the configured byte or pixel limit."""
