"""Configuration management for curve discretization."""

import math
import numbers
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Sequence, Tuple, Union

from ..exceptions import GridResolutionError
from ..compression.codec import validate_quantization_resolution


def normalize_grid_resolution(grid_resolution: Union[int, Sequence[int]]) -> Tuple[int, int, int]:
    """Turn an int or 3-sequence into a validated (nx, ny, nz) tuple.

    Raises:
        GridResolutionError: If any dimension is smaller than 1
    """
    if isinstance(grid_resolution, numbers.Integral):
        resolution = (int(grid_resolution),) * 3
    else:
        resolution = tuple(int(r) for r in grid_resolution)
    if len(resolution) != 3:
        raise GridResolutionError(f"Grid resolution must have 3 components, got {resolution}")
    if min(resolution) < 1:
        raise GridResolutionError(
            f"Grid resolution must be at least 1 on every axis, got {resolution}"
        )
    return resolution


@dataclass
class DiscretizerConfig:
    """Configuration for voxel curve discretization.

    Attributes:
        grid_resolution: Number of voxels per axis (int or (nx, ny, nz))
        quantization_resolution: Face quantization per axis, power of 2 (e.g. 32)
        output_dir: Directory for saved datasets (None = don't save)
        compression: Whether to save datasets compressed (.npz via savez_compressed)
        show_progress: Show a tqdm progress bar while inserting curves
    """

    grid_resolution: Union[int, Tuple[int, int, int]] = (64, 64, 64)
    quantization_resolution: Union[int, Tuple[int, int, int]] = (32, 32, 32)
    output_dir: Optional[Path] = None
    compression: bool = True
    show_progress: bool = False

    def __post_init__(self):
        """Validate configuration and normalize resolutions to tuples."""
        self.grid_resolution = normalize_grid_resolution(self.grid_resolution)
        self.quantization_resolution = validate_quantization_resolution(
            self.quantization_resolution
        )

        if self.output_dir is not None:
            self.output_dir = Path(self.output_dir)
            self.output_dir.mkdir(parents=True, exist_ok=True)

    @property
    def num_voxels(self) -> int:
        nx, ny, nz = self.grid_resolution
        return nx * ny * nz

    @property
    def num_lods(self) -> int:
        """Number of density mip levels, including the full resolution one."""
        return int(math.ceil(math.log2(max(self.grid_resolution)))) + 1

    def get_dataset_path(self, name: str) -> Path:
        """Get path of a saved dataset inside output_dir."""
        if self.output_dir is None:
            raise ValueError("output_dir is not configured")
        return self.output_dir / f"{name}.npz"
