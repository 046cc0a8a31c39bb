"""Point and image dimension value types."""

from __future__ import annotations

import math
from dataclasses import dataclass

from facechain.errors import ValidationError
from facechain.validation import is_valid_number


@dataclass(frozen=True)
class Point:
    """A 2D point. Arithmetic accepts another point or a scalar."""

    x: float
    y: float

    def __add__(self, other: Point | float) -> Point:
        ox, oy = _operands(other)
        return Point(self.x + ox, self.y + oy)

    def __sub__(self, other: Point | float) -> Point:
        ox, oy = _operands(other)
        return Point(self.x - ox, self.y - oy)

    def __mul__(self, other: Point | float) -> Point:
        ox, oy = _operands(other)
        return Point(self.x * ox, self.y * oy)

    def __truediv__(self, other: Point | float) -> Point:
        ox, oy = _operands(other)
        return Point(self.x / ox, self.y / oy)

    def magnitude(self) -> float:
        return math.hypot(self.x, self.y)

    def floor(self) -> Point:
        return Point(math.floor(self.x), math.floor(self.y))


def _operands(other: Point | float) -> tuple[float, float]:
    if isinstance(other, Point):
        return other.x, other.y
    return other, other


def center_point(points: list[Point]) -> Point:
    """Return the arithmetic mean of ``points``."""
    if not points:
        raise ValueError("center_point requires at least one point")
    total = Point(0.0, 0.0)
    for pt in points:
        total = total + pt
    return total / len(points)


@dataclass(frozen=True)
class Dimensions:
    """Width and height of an image, both strictly positive."""

    width: float
    height: float

    def __post_init__(self) -> None:
        for name in ("width", "height"):
            value = getattr(self, name)
            if not is_valid_number(value) or value <= 0:
                raise ValidationError("Dimensions.__init__", name, value, "a positive number")

    def reverse(self) -> Point:
        """Scale factors that map absolute coordinates in these dimensions to [0, 1]."""
        return Point(1.0 / self.width, 1.0 / self.height)
