"""Face detection record."""

from __future__ import annotations

from dataclasses import dataclass

from facechain.errors import ValidationError
from facechain.geometry import Box, Dimensions
from facechain.validation import is_valid_probability


@dataclass(frozen=True)
class FaceDetection:
    """A detected face region in original image coordinates.

    Attributes:
        score: Detection confidence in [0, 1].
        box: Face box in pixels of the image described by ``image_dims``.
        image_dims: Size of the image the detection was made on.
    """

    score: float
    box: Box
    image_dims: Dimensions

    def __post_init__(self) -> None:
        if not is_valid_probability(self.score):
            raise ValidationError("FaceDetection.__init__", "score", self.score, "a number between [0, 1]")

    @classmethod
    def from_relative(cls, score: float, relative_box: Box, image_dims: Dimensions) -> FaceDetection:
        """Create a detection from a box given in [0, 1] image-relative units."""
        return cls(score=score, box=relative_box.rescale(image_dims), image_dims=image_dims)

    @property
    def relative_box(self) -> Box:
        return self.box.rescale(self.image_dims.reverse())

    @property
    def image_width(self) -> float:
        return self.image_dims.width

    @property
    def image_height(self) -> float:
        return self.image_dims.height

    def for_size(self, width: float, height: float) -> FaceDetection:
        """Re-express this detection for an image of a different size."""
        dims = Dimensions(width, height)
        return FaceDetection.from_relative(self.score, self.relative_box, dims)
