"""A single cell of the voxel curve grid."""

import numpy as np
from typing import List, Tuple

from ..geometry.aabb import segment_box_intersect, INTERSECTION_EPSILON
from .segments import AttributePoint, LineSegment


class VoxelDiscretizer:
    """Collects the clipped curve segments lying inside one unit cube.

    While a curve is being inserted, boundary crossings are buffered in
    ``current_curve_intersections``. Once every segment of the curve has been
    tested, ``commit_current_curve`` turns the buffered crossings into line
    segments and empties the buffer again.

    Attributes:
        index: (x, y, z) integer position of the cell in the grid
        lines: Committed line segments (persist across curves)
        current_curve_intersections: Crossings of the curve being inserted
    """

    def __init__(self, index: Tuple[int, int, int] = (0, 0, 0)):
        self.index = tuple(int(i) for i in index)
        self.lines: List[LineSegment] = []
        self.current_curve_intersections: List[AttributePoint] = []

    @property
    def lower(self) -> np.ndarray:
        return np.asarray(self.index, dtype=np.float64)

    @property
    def upper(self) -> np.ndarray:
        return self.lower + 1.0

    def add_possible_intersections(
        self,
        v1: np.ndarray,
        v2: np.ndarray,
        a1: float,
        a2: float
    ) -> bool:
        """Record where the segment (v1, v2) crosses the boundary of this cell.

        Entry points are recorded for t in [0, 1) and exit points for
        t in (0, 1], so that a curve vertex lying exactly on a face shared
        by two cells is recorded once per cell and not twice.

        Args:
            v1: Segment start (grid-local coordinates)
            v2: Segment end (grid-local coordinates)
            a1: Attribute at v1
            a2: Attribute at v2

        Returns:
            True if at least one crossing was recorded
        """
        direction = v2 - v1
        hit, t_near, t_far = segment_box_intersect(v1, direction, self.lower, self.upper)
        if not hit:
            return False

        intersection_near = 0.0 <= t_near < 1.0
        intersection_far = 0.0 < t_far <= 1.0

        # Grazing contact with an edge or corner
        if (t_far - t_near) * np.linalg.norm(direction) < INTERSECTION_EPSILON:
            return False

        if intersection_near:
            self.current_curve_intersections.append(AttributePoint(
                v=v1 + t_near * direction,
                a=a1 + t_near * (a2 - a1)
            ))
        if intersection_far:
            self.current_curve_intersections.append(AttributePoint(
                v=v1 + t_far * direction,
                a=a1 + t_far * (a2 - a1)
            ))
        return intersection_near or intersection_far

    def commit_current_curve(self) -> int:
        """Pair buffered crossings into line segments and clear the buffer.

        Crossings are paired in the order they were recorded:
        (p0, p1), (p2, p3), ... A trailing unpaired crossing is dropped.
        This is an approximation, not a polygon clip: a curve that weaves
        through the cell more than twice may be paired across separate visits.

        Returns:
            Number of line segments added
        """
        points = self.current_curve_intersections
        num_added = 0
        for i in range(0, len(points) - 1, 2):
            p1, p2 = points[i], points[i + 1]
            self.lines.append(LineSegment(v1=p1.v, a1=p1.a, v2=p2.v, a2=p2.a))
            num_added += 1
        self.current_curve_intersections = []
        return num_added

    def clear_current_curve(self) -> None:
        self.current_curve_intersections = []

    def compute_density(self, max_attribute: float) -> float:
        """Sum of segment length times average opacity over all lines."""
        density = 0.0
        for line in self.lines:
            density += line.length() * line.avg_opacity(max_attribute)
        return density

    def __repr__(self) -> str:
        return f"VoxelDiscretizer(index={self.index}, num_lines={len(self.lines)})"
