"""Curves and the attributed line segments they are clipped into."""

import numpy as np
from dataclasses import dataclass, field
from typing import Sequence

from ..exceptions import CurveValidationError


def opacity_mapping(attribute: float, max_attribute: float) -> float:
    """Map a raw attribute value to an opacity in [0, 1].

    The mapping is a linear normalization by the largest attribute observed
    over all curves, clamped to [0, 1]. A non-positive maximum maps
    everything to 0.

    Args:
        attribute: Raw attribute value (e.g. vorticity)
        max_attribute: Maximum attribute over the whole data set

    Returns:
        Opacity in [0, 1]
    """
    if max_attribute <= 0.0:
        return 0.0
    return float(min(max(attribute / max_attribute, 0.0), 1.0))


@dataclass
class Curve:
    """A polyline with one scalar attribute per vertex.

    Attributes:
        points: (N, 3) vertex positions
        attributes: (N,) per-vertex attribute values
    """

    points: np.ndarray = field(default_factory=lambda: np.zeros((0, 3)))
    attributes: np.ndarray = field(default_factory=lambda: np.zeros(0))

    def __post_init__(self):
        """Convert inputs to float64 arrays.

        Raises:
            CurveValidationError: If points is not an (N, 3) array
        """
        points = np.asarray(self.points, dtype=np.float64)
        if points.size == 0:
            points = points.reshape(0, 3)
        if points.ndim != 2 or points.shape[1] != 3:
            raise CurveValidationError(
                f"Curve points must have shape (N, 3), got {points.shape}"
            )
        self.points = points
        self.attributes = np.asarray(self.attributes, dtype=np.float64).reshape(-1)

    def validate(self) -> None:
        """Check the point/attribute invariants.

        Raises:
            CurveValidationError: If the counts differ or a value is not finite
        """
        if len(self.points) != len(self.attributes):
            raise CurveValidationError(
                f"Curve has {len(self.points)} points but "
                f"{len(self.attributes)} attributes"
            )
        if not np.isfinite(self.points).all():
            raise CurveValidationError("Curve has non-finite point coordinates")
        if not np.isfinite(self.attributes).all():
            raise CurveValidationError("Curve has non-finite attribute values")

    def __len__(self) -> int:
        return len(self.points)

    @classmethod
    def from_lists(cls, points: Sequence, attributes: Sequence) -> "Curve":
        return cls(points=np.asarray(points), attributes=np.asarray(attributes))


@dataclass(frozen=True)
class AttributePoint:
    """Intersection of a curve with a voxel boundary."""

    v: np.ndarray
    a: float


@dataclass(frozen=True)
class LineSegment:
    """Part of a curve clipped to a single voxel.

    Attributes:
        v1: First endpoint (grid-local coordinates)
        a1: Attribute at v1
        v2: Second endpoint (grid-local coordinates)
        a2: Attribute at v2
    """

    v1: np.ndarray
    a1: float
    v2: np.ndarray
    a2: float

    def length(self) -> float:
        return float(np.linalg.norm(self.v2 - self.v1))

    def avg_opacity(self, max_attribute: float) -> float:
        """Mean opacity of both endpoints."""
        return 0.5 * (
            opacity_mapping(self.a1, max_attribute)
            + opacity_mapping(self.a2, max_attribute)
        )
