"""Geometry primitives."""

from .aabb import AABB3, segment_box_intersect, INTERSECTION_EPSILON

__all__ = ["AABB3", "segment_box_intersect", "INTERSECTION_EPSILON"]
