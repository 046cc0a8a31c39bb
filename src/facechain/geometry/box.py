"""Axis-aligned boxes and their labeled/scored variants.

All boxes are frozen dataclasses. Transforms go through
``dataclasses.replace`` so they return a new instance of the same class,
carrying labels and scores along, and re-run validation on the result.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, replace
from typing import TYPE_CHECKING, Self

from facechain.errors import ValidationError
from facechain.geometry.point import Dimensions, Point
from facechain.validation import is_valid_number, is_valid_probability

if TYPE_CHECKING:
    from collections.abc import Iterable


@dataclass(frozen=True)
class Box:
    """Rectangle given by its top-left corner and size, in pixels or relative units."""

    x: float
    y: float
    width: float
    height: float

    def __post_init__(self) -> None:
        callee = f"{type(self).__name__}.__init__"
        for name in ("x", "y", "width", "height"):
            value = getattr(self, name)
            if not is_valid_number(value):
                raise ValidationError(callee, name, value, "a finite number")
        for name in ("width", "height"):
            value = getattr(self, name)
            if value < 0:
                raise ValidationError(callee, name, value, ">= 0")

    @classmethod
    def from_bounds(cls, left: float, top: float, right: float, bottom: float, **extra: float) -> Self:
        """Build a box from its edges; ``extra`` carries subclass fields such as ``label``."""
        return cls(x=left, y=top, width=right - left, height=bottom - top, **extra)

    # -- Derived geometry ---------------------------------------------------

    @property
    def left(self) -> float:
        return self.x

    @property
    def top(self) -> float:
        return self.y

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height

    @property
    def area(self) -> float:
        return self.width * self.height

    @property
    def top_left(self) -> Point:
        return Point(self.left, self.top)

    @property
    def top_right(self) -> Point:
        return Point(self.right, self.top)

    @property
    def bottom_left(self) -> Point:
        return Point(self.left, self.bottom)

    @property
    def bottom_right(self) -> Point:
        return Point(self.right, self.bottom)

    # -- Transforms ---------------------------------------------------------

    def shift(self, dx: float, dy: float) -> Self:
        return replace(self, x=self.x + dx, y=self.y + dy)

    def rescale(self, scale_x: float | Dimensions | Point, scale_y: float | None = None) -> Self:
        """Scale position and size.

        Accepts a single factor, separate x/y factors, or a ``Dimensions``/``Point``
        whose components are used as the x/y factors.
        """
        if isinstance(scale_x, Dimensions):
            sx, sy = scale_x.width, scale_x.height
        elif isinstance(scale_x, Point):
            sx, sy = scale_x.x, scale_x.y
        else:
            sx = scale_x
            sy = scale_x if scale_y is None else scale_y
        return replace(self, x=self.x * sx, y=self.y * sy, width=self.width * sx, height=self.height * sy)

    def pad(self, pad_x: float, pad_y: float) -> Self:
        """Grow the box by ``pad_x``/``pad_y`` in total, keeping it centred."""
        return replace(
            self,
            x=self.x - pad_x / 2,
            y=self.y - pad_y / 2,
            width=self.width + pad_x,
            height=self.height + pad_y,
        )

    def clip(self, max_width: float, max_height: float) -> Self:
        """Clip to the image area ``[0, max_width] x [0, max_height]``.

        A box entirely outside the area collapses to zero width and/or height
        at the nearest border instead of raising.
        """
        x = min(max(self.x, 0.0), max_width)
        y = min(max(self.y, 0.0), max_height)
        right = min(max(self.right, 0.0), max_width)
        bottom = min(max(self.bottom, 0.0), max_height)
        return replace(self, x=x, y=y, width=max(right - x, 0.0), height=max(bottom - y, 0.0))

    def round(self) -> Self:
        return replace(self, x=round(self.x), y=round(self.y), width=round(self.width), height=round(self.height))

    def floor(self) -> Self:
        return replace(
            self,
            x=math.floor(self.x),
            y=math.floor(self.y),
            width=math.floor(self.width),
            height=math.floor(self.height),
        )

    def to_square(self) -> Self:
        """Expand the shorter side so the box becomes square around the same centre."""
        diff = abs(self.width - self.height)
        if self.width < self.height:
            return replace(self, x=self.x - diff / 2, width=self.width + diff)
        if self.height < self.width:
            return replace(self, y=self.y - diff / 2, height=self.height + diff)
        return self


class Rect(Box):
    """Box constructed from ``x``, ``y``, ``width``, ``height``.

    Kept as a distinct name for results that describe a rectangle the pipeline
    computed itself (alignment rects) rather than one a detector reported.
    """


@dataclass(frozen=True)
class LabeledBox(Box):
    label: float

    def __post_init__(self) -> None:
        super().__post_init__()
        if not is_valid_number(self.label):
            raise ValidationError(f"{type(self).__name__}.__init__", "label", self.label, "a number")


@dataclass(frozen=True)
class PredictedBox(LabeledBox):
    """Labeled box with an objectness ``score`` and a ``class_score``, both in [0, 1]."""

    score: float
    class_score: float

    def __post_init__(self) -> None:
        super().__post_init__()
        callee = f"{type(self).__name__}.__init__"
        for name in ("score", "class_score"):
            value = getattr(self, name)
            if not is_valid_probability(value):
                raise ValidationError(callee, name, value, "a number between [0, 1]")


def min_bbox(points: Iterable[Point]) -> Box:
    """Smallest box containing all ``points``."""
    pts = list(points)
    if not pts:
        raise ValueError("min_bbox requires at least one point")
    xs = [pt.x for pt in pts]
    ys = [pt.y for pt in pts]
    return Box.from_bounds(min(xs), min(ys), max(xs), max(ys))


def iou(box1: Box, box2: Box, is_iou: bool = True) -> float:
    """Intersection over union (or over the smaller area when ``is_iou`` is False)."""
    width = max(0.0, min(box1.right, box2.right) - max(box1.left, box2.left))
    height = max(0.0, min(box1.bottom, box2.bottom) - max(box1.top, box2.top))
    intersection = width * height
    if is_iou:
        denominator = box1.area + box2.area - intersection
    else:
        denominator = min(box1.area, box2.area)
    if denominator <= 0:
        return 0.0
    return intersection / denominator
