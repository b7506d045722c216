"""Density mip pyramid for level-of-detail traversal."""

import numpy as np
from typing import List, Sequence, Tuple

from ..exceptions import GridResolutionError
from ..utils.config import normalize_grid_resolution


def mipmap_resolutions(grid_resolution: Sequence[int]) -> List[Tuple[int, int, int]]:
    """Get the (nx, ny, nz) resolution of every pyramid level.

    Example:
        For a 5x2x1 grid: [(5, 2, 1), (3, 1, 1), (2, 1, 1), (1, 1, 1)]
    """
    current = normalize_grid_resolution(grid_resolution)
    resolutions = [current]
    while current != (1, 1, 1):
        current = tuple((n + 1) // 2 for n in current)
        resolutions.append(current)
    return resolutions


def downsample_density(volume: np.ndarray) -> np.ndarray:
    """Box filter a (nz, ny, nx) volume by 2x2x2.

    Odd dimensions are rounded up; the blocks at such a boundary average over
    the cells that exist instead of over 8.

    Args:
        volume: Density volume indexed as [z, y, x]

    Returns:
        Volume of shape (ceil(nz/2), ceil(ny/2), ceil(nx/2))
    """
    pad = [(0, n % 2) for n in volume.shape]
    padded = np.pad(volume.astype(np.float64), pad)
    counts = np.pad(np.ones(volume.shape), pad)

    nz, ny, nx = (n // 2 for n in padded.shape)
    block_sums = padded.reshape(nz, 2, ny, 2, nx, 2).sum(axis=(1, 3, 5))
    block_counts = counts.reshape(nz, 2, ny, 2, nx, 2).sum(axis=(1, 3, 5))
    return block_sums / block_counts


def generate_density_mipmaps(
    densities: np.ndarray,
    grid_resolution: Sequence[int]
) -> List[np.ndarray]:
    """Build the density mip pyramid, finest level first.

    Args:
        densities: Flat per-voxel densities of length nx*ny*nz, indexed
                   x + y*nx + z*nx*ny
        grid_resolution: (nx, ny, nz)

    Returns:
        List of flat float32 arrays, one per level, with the same x-fastest
        layout. The last level always holds a single value.

    Raises:
        GridResolutionError: If a dimension is < 1 or the sizes disagree
    """
    nx, ny, nz = normalize_grid_resolution(grid_resolution)
    densities = np.asarray(densities)
    if densities.size != nx * ny * nz:
        raise GridResolutionError(
            f"Expected {nx * ny * nz} densities for grid {(nx, ny, nz)}, got {densities.size}"
        )

    volume = densities.reshape(nz, ny, nx).astype(np.float64)
    levels = [volume]
    while volume.shape != (1, 1, 1):
        volume = downsample_density(volume)
        levels.append(volume)

    return [level.astype(np.float32).ravel() for level in levels]
