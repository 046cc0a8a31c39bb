"""Immutable geometric value types."""

from facechain.geometry.box import Box, LabeledBox, PredictedBox, Rect, iou, min_bbox
from facechain.geometry.point import Dimensions, Point, center_point

__all__ = [
    "Box",
    "Dimensions",
    "LabeledBox",
    "Point",
    "PredictedBox",
    "Rect",
    "center_point",
    "iou",
    "min_bbox",
]
