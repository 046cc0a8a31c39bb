"""Facial landmark point sets and the alignment rectangle derived from them."""

from __future__ import annotations

import math
from typing import TYPE_CHECKING, ClassVar, Self

import numpy as np

from facechain.errors import ValidationError
from facechain.geometry import Box, Dimensions, Point, Rect, center_point, min_bbox

if TYPE_CHECKING:
    from collections.abc import Sequence

    from numpy.typing import ArrayLike, NDArray

    from facechain.faces.detection import FaceDetection

# Eye-to-mouth distance as a fraction of the aligned face size, and the
# position of the eyes/mouth centroid inside the aligned square.
FACE_ALIGNMENT_SCALE: float = 0.45
ALIGNMENT_X_OFFSET: float = 0.5
ALIGNMENT_Y_OFFSET: float = 0.43

DEFAULT_MIN_BOX_PADDING: float = 0.2


class FaceLandmarks:
    """Ordered landmark points for one face.

    Points are kept relative to ``image_dims`` and exposed as absolute
    ``positions``, offset by ``shift``. A landmark backend reports points
    relative to the face crop; shifting by the detection box origin moves
    them into image coordinates.
    """

    num_points: ClassVar[int | None] = None

    def __init__(
        self,
        relative_positions: Sequence[Point],
        image_dims: Dimensions,
        shift: Point = Point(0.0, 0.0),
    ) -> None:
        if self.num_points is not None and len(relative_positions) != self.num_points:
            raise ValidationError(
                f"{type(self).__name__}.__init__",
                "positions",
                len(relative_positions),
                f"{self.num_points} points",
            )
        self._image_dims = image_dims
        self._shift = shift
        scale = Point(image_dims.width, image_dims.height)
        self._positions = tuple(pt * scale + shift for pt in relative_positions)

    @classmethod
    def from_positions(cls, positions: Sequence[Point] | ArrayLike, image_dims: Dimensions) -> Self:
        """Build landmarks from absolute points inside an image of ``image_dims``.

        ``positions`` may be a sequence of ``Point`` or anything numpy can read
        as an ``(N, 2)`` array.
        """
        if isinstance(positions, (list, tuple)) and positions and isinstance(positions[0], Point):
            points = list(positions)
        else:
            arr = np.asarray(positions, dtype=np.float64).reshape(-1, 2)
            points = [Point(float(x), float(y)) for x, y in arr]
        scale = Point(image_dims.width, image_dims.height)
        return cls([pt / scale for pt in points], image_dims)

    # -- Accessors ----------------------------------------------------------

    @property
    def positions(self) -> list[Point]:
        return list(self._positions)

    @property
    def relative_positions(self) -> list[Point]:
        scale = Point(self._image_dims.width, self._image_dims.height)
        return [(pt - self._shift) / scale for pt in self._positions]

    @property
    def shift(self) -> Point:
        return self._shift

    @property
    def image_dims(self) -> Dimensions:
        return self._image_dims

    @property
    def image_width(self) -> float:
        return self._image_dims.width

    @property
    def image_height(self) -> float:
        return self._image_dims.height

    def __len__(self) -> int:
        return len(self._positions)

    def to_array(self) -> NDArray[np.float64]:
        """Absolute positions as an ``(N, 2)`` array."""
        return np.array([(pt.x, pt.y) for pt in self._positions], dtype=np.float64).reshape(-1, 2)

    # -- Transforms ---------------------------------------------------------

    def for_size(self, width: float, height: float) -> Self:
        """Same relative landmarks for an image of a different size (shift is dropped)."""
        return type(self)(self.relative_positions, Dimensions(width, height))

    def shift_by(self, x: float, y: float) -> Self:
        return type(self)(self.relative_positions, self._image_dims, Point(x, y))

    def shift_by_point(self, pt: Point) -> Self:
        return self.shift_by(pt.x, pt.y)

    # -- Alignment ----------------------------------------------------------

    def align(
        self,
        detection: FaceDetection | Box | None = None,
        *,
        use_dlib_alignment: bool = True,
        min_box_padding: float = DEFAULT_MIN_BOX_PADDING,
    ) -> Box:
        """Compute the alignment rectangle used to re-crop the face.

        With ``detection`` the landmarks are first shifted to that box's origin.
        The default produces a square centred on the eyes and mouth; otherwise
        the padded minimal bounding box of all points is returned.
        """
        if detection is not None:
            box = detection if isinstance(detection, Box) else detection.box.floor()
            return self.shift_by(box.x, box.y).align(
                use_dlib_alignment=use_dlib_alignment,
                min_box_padding=min_box_padding,
            )
        if use_dlib_alignment:
            return self._align_dlib()
        return self._align_min_bbox(min_box_padding)

    def get_ref_points_for_alignment(self) -> list[Point]:
        """Return ``[left eye centre, right eye centre, mouth centre]``."""
        raise NotImplementedError(f"{type(self).__name__} does not define alignment reference points")

    def _align_dlib(self) -> Box:
        left_eye, right_eye, mouth = self.get_ref_points_for_alignment()
        eye_to_mouth = ((mouth - left_eye).magnitude() + (mouth - right_eye).magnitude()) / 2
        size = math.floor(eye_to_mouth / FACE_ALIGNMENT_SCALE)
        ref = center_point([left_eye, right_eye, mouth])
        x = math.floor(max(0.0, ref.x - ALIGNMENT_X_OFFSET * size))
        y = math.floor(max(0.0, ref.y - ALIGNMENT_Y_OFFSET * size))
        return Rect(x, y, size, size)

    def _align_min_bbox(self, padding: float) -> Box:
        box = min_bbox(self._positions)
        return box.pad(box.width * padding, box.height * padding)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(points={len(self)}, image_dims={self._image_dims}, shift={self._shift})"


class FaceLandmarks5(FaceLandmarks):
    """Five-point landmarks: two eye centres, nose tip, two mouth corners."""

    num_points = 5

    def get_ref_points_for_alignment(self) -> list[Point]:
        pts = self._positions
        return [pts[0], pts[1], center_point([pts[3], pts[4]])]


class FaceLandmarks68(FaceLandmarks):
    """The 68-point iBUG layout."""

    num_points = 68

    def get_jaw_outline(self) -> list[Point]:
        return list(self._positions[0:17])

    def get_right_eye_brow(self) -> list[Point]:
        return list(self._positions[17:22])

    def get_left_eye_brow(self) -> list[Point]:
        return list(self._positions[22:27])

    def get_nose(self) -> list[Point]:
        return list(self._positions[27:36])

    def get_right_eye(self) -> list[Point]:
        return list(self._positions[36:42])

    def get_left_eye(self) -> list[Point]:
        return list(self._positions[42:48])

    def get_mouth(self) -> list[Point]:
        return list(self._positions[48:68])

    def get_ref_points_for_alignment(self) -> list[Point]:
        return [
            center_point(self.get_left_eye()),
            center_point(self.get_right_eye()),
            center_point(self.get_mouth()),
        ]
