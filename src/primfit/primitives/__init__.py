"""Shape primitives for RANSAC detection: shared contract and the plane."""

from .base import BasePrimitive, ShapeKind, convex_hull
from .config import PrimitiveConfig
from .enclosing_box import EnclosingBox, find_smallest_enclosing_box
from .plane import PlanePrimitive, SHAPE_DATA_SIZE

__all__ = [
    "BasePrimitive",
    "ShapeKind",
    "convex_hull",
    "PrimitiveConfig",
    "EnclosingBox",
    "find_smallest_enclosing_box",
    "PlanePrimitive",
    "SHAPE_DATA_SIZE",
]
