"""Voxel discretization of large attributed curve data sets for level-of-detail rendering."""

from .exceptions import (
    DiscretizerError,
    ConfigurationError,
    GridResolutionError,
    CurveParseError,
    CurveValidationError,
    FaceClassificationError,
)
from .geometry.aabb import AABB3, segment_box_intersect
from .discretization.segments import Curve, LineSegment, opacity_mapping
from .discretization.voxel import VoxelDiscretizer
from .discretization.grid import VoxelCurveDiscretizer
from .dataset import CompressedVoxelDataset
from .io.curve_loader import CurveLoader, load_curves
from .mipmap.pyramid import generate_density_mipmaps
from .utils.config import DiscretizerConfig
from .pipeline import discretize, discretize_file, discretize_with_config
from .logging_config import setup_logging

__version__ = "0.1.0"
__all__ = [
    "DiscretizerError",
    "ConfigurationError",
    "GridResolutionError",
    "CurveParseError",
    "CurveValidationError",
    "FaceClassificationError",
    "AABB3",
    "segment_box_intersect",
    "Curve",
    "LineSegment",
    "opacity_mapping",
    "VoxelDiscretizer",
    "VoxelCurveDiscretizer",
    "CompressedVoxelDataset",
    "CurveLoader",
    "load_curves",
    "generate_density_mipmaps",
    "DiscretizerConfig",
    "discretize",
    "discretize_file",
    "discretize_with_config",
    "setup_logging",
]
