"""Library entry points for discretizing curve data sets."""

import logging
from pathlib import Path
from typing import Optional, Sequence, Union

from .dataset import CompressedVoxelDataset
from .discretization.grid import VoxelCurveDiscretizer
from .discretization.segments import Curve
from .utils.config import DiscretizerConfig

logger = logging.getLogger(__name__)


def discretize(
    curves: Sequence[Curve],
    grid_resolution: Union[int, Sequence[int]],
    quantization_resolution: Union[int, Sequence[int]] = 32,
    show_progress: bool = False
) -> CompressedVoxelDataset:
    """Discretize world-space curves into a compressed voxel data set.

    The grid is fitted to the bounding box of all curve points, every curve
    is inserted in order, and only then are the lines quantized and the
    density pyramid built.

    Args:
        curves: Curves in world space
        grid_resolution: Voxels per axis (int or (nx, ny, nz))
        quantization_resolution: Face quantization resolution (power of 2)
        show_progress: Show tqdm progress bars

    Returns:
        CompressedVoxelDataset

    Raises:
        GridResolutionError: If a grid dimension is < 1
        ConfigurationError: If the quantization resolution is invalid
        CurveValidationError: If a curve has mismatched point/attribute counts
        FaceClassificationError: If a clipped endpoint is not on a voxel face
    """
    discretizer = VoxelCurveDiscretizer(grid_resolution, quantization_resolution)
    for curve in curves:
        curve.validate()
    discretizer.fit_to_curves(curves)
    discretizer.add_curves(curves, show_progress=show_progress)
    return discretizer.compress_data(show_progress=show_progress)


def discretize_file(
    file_path: Path | str,
    grid_resolution: Union[int, Sequence[int]],
    quantization_resolution: Union[int, Sequence[int]] = 32,
    show_progress: bool = False
) -> CompressedVoxelDataset:
    """Load a curve file and discretize it.

    Raises:
        FileNotFoundError: If file doesn't exist
        CurveParseError: If the file contains an unparseable record
    """
    discretizer = VoxelCurveDiscretizer(grid_resolution, quantization_resolution)
    discretizer.create_from_file(file_path, show_progress=show_progress)
    return discretizer.compress_data(show_progress=show_progress)


def discretize_with_config(
    curves: Sequence[Curve],
    config: DiscretizerConfig,
    name: Optional[str] = None
) -> CompressedVoxelDataset:
    """Discretize curves using a DiscretizerConfig.

    If the config has an output_dir and a name is given, the data set and its
    metadata JSON are written there as well.
    """
    dataset = discretize(
        curves,
        config.grid_resolution,
        config.quantization_resolution,
        show_progress=config.show_progress
    )

    if config.output_dir is not None and name is not None:
        dataset_path = dataset.save(config.get_dataset_path(name), compressed=config.compression)
        dataset.write_metadata(config.output_dir / f"{name}_metadata.json")
        logger.info(f"Saved dataset to {dataset_path}")

    return dataset
