"""Match face descriptors against labeled reference descriptors."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import numpy as np

from facechain.errors import ValidationError
from facechain.faces.result import is_with_face_descriptor

if TYPE_CHECKING:
    from collections.abc import Sequence

    from numpy.typing import ArrayLike, NDArray

logger = logging.getLogger(__name__)

UNKNOWN_LABEL = "unknown"
DEFAULT_DISTANCE_THRESHOLD = 0.6


def euclidean_distance(a: ArrayLike, b: ArrayLike) -> float:
    """Euclidean distance between two descriptors of equal length."""
    arr1 = np.asarray(a, dtype=np.float64).reshape(-1)
    arr2 = np.asarray(b, dtype=np.float64).reshape(-1)
    if arr1.shape != arr2.shape:
        raise ValueError(f"euclidean_distance: descriptor lengths differ ({arr1.size} vs {arr2.size})")
    return float(np.linalg.norm(arr1 - arr2))


class LabeledFaceDescriptors:
    """All reference descriptors known for one person."""

    def __init__(self, label: str, descriptors: Sequence[ArrayLike]) -> None:
        if not isinstance(label, str):
            raise ValidationError("LabeledFaceDescriptors.__init__", "label", label, "a string")
        if not descriptors:
            raise ValidationError("LabeledFaceDescriptors.__init__", "descriptors", descriptors, "non-empty")
        self._label = label
        self._descriptors = [np.asarray(d, dtype=np.float32).reshape(-1) for d in descriptors]

    @property
    def label(self) -> str:
        return self._label

    @property
    def descriptors(self) -> list[NDArray[np.float32]]:
        return list(self._descriptors)

    def to_dict(self) -> dict[str, Any]:
        return {"label": self._label, "descriptors": [d.tolist() for d in self._descriptors]}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> LabeledFaceDescriptors:
        return cls(data["label"], data["descriptors"])

    def __repr__(self) -> str:
        return f"LabeledFaceDescriptors(label={self._label!r}, descriptors={len(self._descriptors)})"


@dataclass(frozen=True)
class FaceMatch:
    label: str
    distance: float

    def __str__(self) -> str:
        return f"{self.label} ({round(self.distance, 2)})"


class FaceMatcher:
    """Nearest-label matcher using the mean distance to each label's descriptors.

    ``reference`` may be labeled descriptors, raw descriptors or results
    carrying a descriptor, alone or in a list. Unlabeled inputs are named
    ``person 1``, ``person 2`` and so on.
    """

    def __init__(self, reference: object, distance_threshold: float = DEFAULT_DISTANCE_THRESHOLD) -> None:
        self._distance_threshold = distance_threshold
        inputs = reference if isinstance(reference, (list, tuple)) else [reference]
        if not inputs:
            raise ValueError("FaceMatcher.__init__ - expected at least one input")

        labeled: list[LabeledFaceDescriptors] = []
        for index, item in enumerate(inputs, start=1):
            if isinstance(item, LabeledFaceDescriptors):
                labeled.append(item)
            elif is_with_face_descriptor(item):
                labeled.append(LabeledFaceDescriptors(f"person {index}", [item.descriptor]))  # type: ignore[attr-defined]
            elif isinstance(item, np.ndarray):
                labeled.append(LabeledFaceDescriptors(f"person {index}", [item]))
            else:
                raise ValueError(
                    "FaceMatcher.__init__ - expected inputs to be LabeledFaceDescriptors, "
                    f"descriptors or results with a descriptor, got {type(item).__name__}"
                )
        self._labeled_descriptors = labeled

    @property
    def labeled_descriptors(self) -> list[LabeledFaceDescriptors]:
        return list(self._labeled_descriptors)

    @property
    def distance_threshold(self) -> float:
        return self._distance_threshold

    def compute_mean_distance(self, query: ArrayLike, descriptors: Sequence[ArrayLike]) -> float:
        distances = [euclidean_distance(d, query) for d in descriptors]
        return sum(distances) / (len(distances) or 1)

    def match_descriptor(self, query: ArrayLike) -> FaceMatch:
        """Closest label regardless of the threshold."""
        matches = [
            FaceMatch(ld.label, self.compute_mean_distance(query, ld.descriptors)) for ld in self._labeled_descriptors
        ]
        return min(matches, key=lambda m: m.distance)

    def find_best_match(self, query: ArrayLike) -> FaceMatch:
        """Closest label, or ``unknown`` when it is not under the distance threshold."""
        best = self.match_descriptor(query)
        if best.distance < self._distance_threshold:
            return best
        logger.debug("No match under %.2f (closest %s)", self._distance_threshold, best)
        return FaceMatch(UNKNOWN_LABEL, best.distance)

    def to_dict(self) -> dict[str, Any]:
        return {
            "distance_threshold": self._distance_threshold,
            "labeled_descriptors": [ld.to_dict() for ld in self._labeled_descriptors],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> FaceMatcher:
        labeled = [LabeledFaceDescriptors.from_dict(d) for d in data["labeled_descriptors"]]
        return cls(labeled, data["distance_threshold"])
