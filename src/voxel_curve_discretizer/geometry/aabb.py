"""Axis-aligned bounding boxes and segment/box intersection."""

import numpy as np
from typing import Tuple

# Shared tolerance for "parallel to an axis", "point lies on a cell face" and
# degenerate segment detection. All of these work in grid-local units.
INTERSECTION_EPSILON = 1e-5

# Initial parametric interval of the slab test.
_T_INFINITY = 1e7


class AABB3:
    """Axis-aligned bounding box in 3D.

    A freshly created box is empty (minimum = +inf, maximum = -inf) and grows
    as points are combined into it.
    """

    def __init__(self, minimum=None, maximum=None):
        if minimum is None:
            minimum = np.full(3, np.inf)
        if maximum is None:
            maximum = np.full(3, -np.inf)
        self.minimum = np.asarray(minimum, dtype=np.float64).copy()
        self.maximum = np.asarray(maximum, dtype=np.float64).copy()

    @classmethod
    def from_points(cls, points: np.ndarray) -> "AABB3":
        """Create the bounding box of an (N, 3) array of points."""
        aabb = cls()
        aabb.combine_points(points)
        return aabb

    @property
    def is_empty(self) -> bool:
        return bool(np.any(self.minimum > self.maximum))

    @property
    def dimensions(self) -> np.ndarray:
        """Extent of the box along each axis (zeros for an empty box)."""
        if self.is_empty:
            return np.zeros(3)
        return self.maximum - self.minimum

    def combine(self, point) -> None:
        """Grow the box so that it contains point."""
        point = np.asarray(point, dtype=np.float64)
        np.minimum(self.minimum, point, out=self.minimum)
        np.maximum(self.maximum, point, out=self.maximum)

    def combine_points(self, points: np.ndarray) -> None:
        """Grow the box so that it contains every row of points."""
        points = np.asarray(points, dtype=np.float64).reshape(-1, 3)
        if len(points) == 0:
            return
        self.combine(points.min(axis=0))
        self.combine(points.max(axis=0))

    def contains(self, point, tolerance: float = 0.0) -> bool:
        point = np.asarray(point, dtype=np.float64)
        return bool(
            np.all(point >= self.minimum - tolerance)
            and np.all(point <= self.maximum + tolerance)
        )

    def __repr__(self) -> str:
        return f"AABB3(minimum={self.minimum.tolist()}, maximum={self.maximum.tolist()})"


def _slab_intersection(
    origin: float,
    direction: float,
    lower: float,
    upper: float,
    t_near: float,
    t_far: float
) -> Tuple[bool, float, float]:
    """Clip the running interval [t_near, t_far] against one pair of planes."""
    if abs(direction) < INTERSECTION_EPSILON:
        # Parallel to the planes: either always inside the slab or never
        if origin < lower or origin > upper:
            return False, t_near, t_far
        return True, t_near, t_far

    t0 = (lower - origin) / direction
    t1 = (upper - origin) / direction
    if t0 > t1:
        t0, t1 = t1, t0

    t_near = max(t_near, t0)
    t_far = min(t_far, t1)

    if t_near > t_far:
        # Box is missed
        return False, t_near, t_far
    if t_far < 0:
        # Box is behind the segment origin
        return False, t_near, t_far
    return True, t_near, t_far


def segment_box_intersect(
    origin,
    direction,
    box_min,
    box_max
) -> Tuple[bool, float, float]:
    """Intersect the line origin + t * direction with an axis-aligned box.

    Uses the slab method (Glassner, "An Introduction to Ray Tracing"). The
    direction is not normalized: for a segment (v1, v2) pass v2 - v1, so that
    t in [0, 1] corresponds exactly to points between the two endpoints.
    Callers have to check the returned parameters against [0, 1] themselves
    to tell a crossing inside the segment from one on the infinite line.

    Args:
        origin: Segment start point (3,)
        direction: Un-normalized segment direction (3,)
        box_min: Lower box corner (3,)
        box_max: Upper box corner (3,)

    Returns:
        Tuple of (hit, t_near, t_far). t_near <= t_far whenever hit is True.
    """
    t_near = -_T_INFINITY
    t_far = _T_INFINITY
    for axis in range(3):
        hit, t_near, t_far = _slab_intersection(
            float(origin[axis]),
            float(direction[axis]),
            float(box_min[axis]),
            float(box_max[axis]),
            t_near,
            t_far
        )
        if not hit:
            return False, t_near, t_far
    return True, t_near, t_far
