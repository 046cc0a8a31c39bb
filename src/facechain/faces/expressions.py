"""Facial expression probabilities."""

from __future__ import annotations

from dataclasses import astuple, dataclass
from typing import TYPE_CHECKING

from facechain.errors import ValidationError
from facechain.validation import is_valid_probability

if TYPE_CHECKING:
    from collections.abc import Sequence

EXPRESSION_LABELS: tuple[str, ...] = (
    "neutral",
    "happy",
    "sad",
    "angry",
    "fearful",
    "disgusted",
    "surprised",
)


@dataclass(frozen=True)
class FaceExpressions:
    neutral: float
    happy: float
    sad: float
    angry: float
    fearful: float
    disgusted: float
    surprised: float

    def __post_init__(self) -> None:
        for label in EXPRESSION_LABELS:
            value = getattr(self, label)
            if not is_valid_probability(value):
                raise ValidationError("FaceExpressions.__init__", label, value, "a number between [0, 1]")

    @classmethod
    def from_probabilities(cls, probabilities: Sequence[float]) -> FaceExpressions:
        """Build from a probability vector ordered like ``EXPRESSION_LABELS``."""
        if len(probabilities) != len(EXPRESSION_LABELS):
            raise ValidationError(
                "FaceExpressions.from_probabilities",
                "probabilities",
                len(probabilities),
                f"{len(EXPRESSION_LABELS)} values",
            )
        return cls(*(float(p) for p in probabilities))

    def as_sorted_list(self) -> list[tuple[str, float]]:
        """Expressions with their probability, most likely first."""
        pairs = zip(EXPRESSION_LABELS, astuple(self), strict=True)
        return sorted(pairs, key=lambda pair: pair[1], reverse=True)

    @property
    def dominant(self) -> str:
        return self.as_sorted_list()[0][0]
