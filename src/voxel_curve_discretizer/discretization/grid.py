"""Uniform voxel grid that discretizes curves into per-voxel line segments."""

import logging
import numpy as np
from pathlib import Path
from typing import Dict, Iterable, List, Sequence, Union
from tqdm import tqdm

from ..compression.codec import compress_voxel_lines, validate_quantization_resolution, RECORD_DTYPE
from ..dataset import CompressedVoxelDataset
from ..geometry.aabb import AABB3, INTERSECTION_EPSILON
from ..io.curve_loader import CurveLoader
from ..logging_config import progress_logging
from ..mipmap.pyramid import generate_density_mipmaps
from ..utils.config import normalize_grid_resolution
from .segments import Curve
from .voxel import VoxelDiscretizer

logger = logging.getLogger(__name__)


def compute_lines_to_voxel_matrix(
    bounding_box: AABB3,
    grid_resolution: Sequence[int]
) -> np.ndarray:
    """Affine transform mapping the bounding box onto [0, n] on every axis.

    Axes along which the box has no extent are not scaled; the data is moved
    to the centre of the middle voxel on those axes instead, so that it does
    not lie on a face shared by two voxels.

    Args:
        bounding_box: Bounding box of all curve points (world space)
        grid_resolution: (nx, ny, nz)

    Returns:
        4x4 matrix (scaling * translation)
    """
    resolution = np.asarray(grid_resolution, dtype=np.float64)
    if bounding_box.is_empty:
        return np.eye(4)

    dimensions = bounding_box.dimensions
    scale = np.ones(3)
    translation = np.zeros(3)
    for axis in range(3):
        if dimensions[axis] > 0.0:
            scale[axis] = resolution[axis] / dimensions[axis]
            translation[axis] = -bounding_box.minimum[axis] * scale[axis]
        else:
            translation[axis] = np.floor(0.5 * resolution[axis]) + 0.5 - bounding_box.minimum[axis]

    matrix = np.eye(4)
    matrix[:3, :3] = np.diag(scale)
    matrix[:3, 3] = translation
    return matrix


def transform_points(matrix: np.ndarray, points: np.ndarray) -> np.ndarray:
    """Apply a 4x4 affine transform to (N, 3) points."""
    points = np.asarray(points, dtype=np.float64).reshape(-1, 3)
    return points @ matrix[:3, :3].T + matrix[:3, 3]


class VoxelCurveDiscretizer:
    """Discretizes curves into a uniform grid of voxels holding clipped lines.

    Curves are inserted one at a time. For every segment of a curve, the
    voxels overlapping the segment's bounding box are intersected with the
    segment, and the crossings found in each voxel are turned into line
    segments once the whole curve has been processed. After all curves have
    been inserted, compress_data() quantizes the lines and builds the density
    pyramid; it must not run earlier because opacity normalization depends on
    the maximum attribute of all curves.

    Voxels are stored in a flat list indexed x + y*nx + z*nx*ny.
    """

    def __init__(
        self,
        grid_resolution: Union[int, Sequence[int]],
        quantization_resolution: Union[int, Sequence[int]] = 32
    ):
        """Initialize the grid.

        Args:
            grid_resolution: Voxels per axis (int or (nx, ny, nz)), each >= 1
            quantization_resolution: Face quantization (int or 3-tuple), power of 2

        Raises:
            GridResolutionError: If a grid dimension is < 1
            ConfigurationError: If the quantization resolution cannot be packed
        """
        self.grid_resolution = normalize_grid_resolution(grid_resolution)
        self.quantization_resolution = validate_quantization_resolution(quantization_resolution)

        nx, ny, nz = self.grid_resolution
        self.voxels: List[VoxelDiscretizer] = [
            VoxelDiscretizer((x, y, z))
            for z in range(nz)
            for y in range(ny)
            for x in range(nx)
        ]

        self.lines_bounding_box = AABB3()
        self.lines_to_voxel = np.eye(4)
        self.voxel_to_lines = np.eye(4)
        self.max_attribute = 0.0

        # Statistics
        self.num_curves = 0
        self.num_line_segments = 0
        self.num_skipped_segments = 0

    @property
    def num_voxels(self) -> int:
        return len(self.voxels)

    def voxel_linear_index(self, index: Sequence[int]) -> int:
        nx, ny, _ = self.grid_resolution
        x, y, z = index
        return x + y * nx + z * nx * ny

    def get_voxel(self, index: Sequence[int]) -> VoxelDiscretizer:
        """Get the voxel at (x, y, z).

        Raises:
            IndexError: If index lies outside the grid
        """
        index = tuple(int(i) for i in index)
        if len(index) != 3 or any(not 0 <= i < n for i, n in zip(index, self.grid_resolution)):
            raise IndexError(f"Voxel index {index} outside grid {self.grid_resolution}")
        return self.voxels[self.voxel_linear_index(index)]

    def get_world_to_voxel_grid_matrix(self) -> np.ndarray:
        return self.lines_to_voxel.copy()

    def get_voxel_grid_to_world_matrix(self) -> np.ndarray:
        return self.voxel_to_lines.copy()

    def set_world_to_voxel_grid_matrix(self, matrix: np.ndarray):
        """Use an explicit curve-space to grid-space transform."""
        matrix = np.asarray(matrix, dtype=np.float64)
        if matrix.shape != (4, 4):
            raise ValueError(f"Expected 4x4 matrix, got shape {matrix.shape}")
        self.lines_to_voxel = matrix.copy()
        self.voxel_to_lines = np.linalg.inv(matrix)

    def fit_to_curves(self, curves: Iterable[Curve]) -> np.ndarray:
        """Fit the grid transform to the bounding box of all curve points.

        Returns:
            The new world-to-grid matrix

        Raises:
            CurveValidationError: If a curve has mismatched counts or non-finite values
        """
        self.lines_bounding_box = AABB3()
        for curve in curves:
            curve.validate()
            self.lines_bounding_box.combine_points(curve.points)

        matrix = compute_lines_to_voxel_matrix(self.lines_bounding_box, self.grid_resolution)
        self.set_world_to_voxel_grid_matrix(matrix)
        logger.debug(f"Fitted grid to {self.lines_bounding_box}")
        return matrix

    def get_voxels_in_aabb(self, aabb: AABB3) -> List[VoxelDiscretizer]:
        """Voxels whose integer index range overlaps aabb (grid space).

        Only the index ranges are compared; the voxels returned are
        candidates for an intersection, not guaranteed hits.
        """
        upper_bound = np.asarray(self.grid_resolution) - 1
        lower = np.maximum(np.floor(aabb.minimum).astype(int), 0)
        upper = np.minimum(np.ceil(aabb.maximum).astype(int), upper_bound)

        voxels_in_aabb = []
        for z in range(lower[2], upper[2] + 1):
            for y in range(lower[1], upper[1] + 1):
                for x in range(lower[0], upper[0] + 1):
                    voxels_in_aabb.append(self.voxels[self.voxel_linear_index((x, y, z))])
        return voxels_in_aabb

    def next_streamline(self, curve: Curve) -> int:
        """Insert a curve given in grid space.

        Args:
            curve: Curve with points already transformed to grid coordinates

        Returns:
            Number of line segments committed for this curve

        Raises:
            CurveValidationError: If the curve's point and attribute counts
                differ or a value is not finite
        """
        curve.validate()
        self.num_curves += 1
        if len(curve.attributes) > 0:
            self.max_attribute = max(self.max_attribute, float(curve.attributes.max()))

        points = curve.points
        attributes = curve.attributes
        if len(points) < 2:
            return 0

        # dict keeps first-use order, which fixes the commit order
        used_voxels: Dict[int, VoxelDiscretizer] = {}
        touched_voxels = set()
        for i in range(len(points) - 1):
            v1 = points[i]
            v2 = points[i + 1]
            if np.linalg.norm(v2 - v1) < INTERSECTION_EPSILON:
                logger.debug(f"Skipping degenerate segment {i} of curve {self.num_curves}")
                self.num_skipped_segments += 1
                continue
            a1 = float(attributes[i])
            a2 = float(attributes[i + 1])

            segment_aabb = AABB3()
            segment_aabb.combine(v1)
            segment_aabb.combine(v2)

            for voxel in self.get_voxels_in_aabb(segment_aabb):
                # Drop crossings left over from an aborted insertion
                if id(voxel) not in touched_voxels:
                    voxel.clear_current_curve()
                    touched_voxels.add(id(voxel))
                if voxel.add_possible_intersections(v1, v2, a1, a2):
                    used_voxels[id(voxel)] = voxel

        num_added = 0
        for voxel in used_voxels.values():
            num_added += voxel.commit_current_curve()
        self.num_line_segments += num_added
        return num_added

    def add_curve(self, curve: Curve) -> int:
        """Transform a world-space curve to grid space and insert it."""
        curve.validate()
        grid_curve = Curve(
            points=transform_points(self.lines_to_voxel, curve.points),
            attributes=curve.attributes
        )
        return self.next_streamline(grid_curve)

    def add_curves(self, curves: Sequence[Curve], show_progress: bool = False) -> int:
        """Insert world-space curves in order.

        Returns:
            Number of line segments committed
        """
        num_added = 0
        with progress_logging(show_progress):
            for curve in tqdm(curves, desc="Discretizing curves", disable=not show_progress):
                num_added += self.add_curve(curve)
        logger.info(
            f"Inserted {len(curves)} curves: {num_added} line segments, "
            f"{self.num_skipped_segments} degenerate segments skipped"
        )
        return num_added

    def create_from_file(self, file_path: Path | str, show_progress: bool = False) -> int:
        """Load curves from a file, fit the grid to them and insert them.

        Returns:
            Number of line segments committed

        Raises:
            FileNotFoundError: If file doesn't exist
            CurveParseError: If the file contains an unparseable record
        """
        loader = CurveLoader()
        curves = loader.load(file_path)
        self.max_attribute = max(self.max_attribute, loader.max_attribute)
        self.fit_to_curves(curves)
        return self.add_curves(curves, show_progress=show_progress)

    def compute_densities(self) -> np.ndarray:
        """Per-voxel density (flat, x fastest), using the final max attribute."""
        return np.array(
            [voxel.compute_density(self.max_attribute) for voxel in self.voxels],
            dtype=np.float64
        )

    def compress_data(self, show_progress: bool = False) -> CompressedVoxelDataset:
        """Quantize all lines and build the density pyramid.

        Must be called after every curve has been inserted.

        Returns:
            CompressedVoxelDataset

        Raises:
            FaceClassificationError: If a line endpoint is not on a voxel face
        """
        q = self.quantization_resolution[0]
        n = self.num_voxels

        offsets = np.zeros(n, dtype=np.uint32)
        counts = np.zeros(n, dtype=np.uint32)
        records = []
        line_offset = 0

        with progress_logging(show_progress):
            for i, voxel in enumerate(tqdm(self.voxels, desc="Compressing voxels",
                                           disable=not show_progress)):
                offsets[i] = line_offset
                counts[i] = len(voxel.lines)
                if voxel.lines:
                    records.append(
                        compress_voxel_lines(voxel.lines, voxel.index, q, self.max_attribute)
                    )
                line_offset += len(voxel.lines)

        if records:
            line_segments = np.concatenate(records, axis=0)
        else:
            line_segments = np.zeros((0, 2), dtype=RECORD_DTYPE)

        density_lods = generate_density_mipmaps(self.compute_densities(), self.grid_resolution)

        logger.info(
            f"Compressed {line_offset} line segments in "
            f"{int(np.count_nonzero(counts))}/{n} occupied voxels, {len(density_lods)} LODs"
        )
        return CompressedVoxelDataset(
            grid_resolution=self.grid_resolution,
            quantization_resolution=self.quantization_resolution,
            world_to_voxel_grid_matrix=self.get_world_to_voxel_grid_matrix().astype(np.float32),
            voxel_line_list_offsets=offsets,
            num_lines_in_voxel=counts,
            line_segments=line_segments,
            voxel_density_lods=density_lods,
            max_attribute=float(self.max_attribute),
        )
