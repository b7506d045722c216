"""Curve segments and voxel cells."""

from .segments import Curve, AttributePoint, LineSegment, opacity_mapping
from .voxel import VoxelDiscretizer

__all__ = ["Curve", "AttributePoint", "LineSegment", "opacity_mapping", "VoxelDiscretizer"]
