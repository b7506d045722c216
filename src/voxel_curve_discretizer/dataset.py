"""Compressed voxel line dataset and its on-disk format."""

import json
import numpy as np
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Tuple

from .compression.codec import decode_line_record, DecodedLine


@dataclass
class CompressedVoxelDataset:
    """Output of the discretizer, ready to be uploaded for ray marching.

    Attributes:
        grid_resolution: (nx, ny, nz)
        quantization_resolution: (q, q, q)
        world_to_voxel_grid_matrix: 4x4 affine transform from curve space to grid space
        voxel_line_list_offsets: (nx*ny*nz,) start of each voxel's records in line_segments
        num_lines_in_voxel: (nx*ny*nz,) number of records per voxel
        line_segments: (N, 2) uint32 records of (position, attributes)
        voxel_density_lods: Flat density arrays, finest level first
        max_attribute: Attribute value that maps to full opacity
    """

    grid_resolution: Tuple[int, int, int]
    quantization_resolution: Tuple[int, int, int]
    world_to_voxel_grid_matrix: np.ndarray
    voxel_line_list_offsets: np.ndarray
    num_lines_in_voxel: np.ndarray
    line_segments: np.ndarray
    voxel_density_lods: List[np.ndarray] = field(default_factory=list)
    max_attribute: float = 0.0

    @property
    def num_voxels(self) -> int:
        nx, ny, nz = self.grid_resolution
        return nx * ny * nz

    @property
    def num_line_segments(self) -> int:
        return len(self.line_segments)

    def voxel_linear_index(self, index: Tuple[int, int, int]) -> int:
        nx, ny, nz = self.grid_resolution
        x, y, z = index
        if not (0 <= x < nx and 0 <= y < ny and 0 <= z < nz):
            raise IndexError(f"Voxel index {index} outside grid {self.grid_resolution}")
        return x + y * nx + z * nx * ny

    def lines_in_voxel(self, index: Tuple[int, int, int]) -> np.ndarray:
        """Packed records belonging to the voxel at (x, y, z)."""
        i = self.voxel_linear_index(index)
        offset = int(self.voxel_line_list_offsets[i])
        count = int(self.num_lines_in_voxel[i])
        return self.line_segments[offset:offset + count]

    def decode_voxel(self, index: Tuple[int, int, int]) -> List[DecodedLine]:
        q = self.quantization_resolution[0]
        return [
            decode_line_record(position, attributes, q)
            for position, attributes in self.lines_in_voxel(index)
        ]

    def equals(self, other: "CompressedVoxelDataset") -> bool:
        """Exact comparison of every field, including all pyramid levels."""
        if (
            tuple(self.grid_resolution) != tuple(other.grid_resolution)
            or tuple(self.quantization_resolution) != tuple(other.quantization_resolution)
            or self.max_attribute != other.max_attribute
            or len(self.voxel_density_lods) != len(other.voxel_density_lods)
        ):
            return False
        arrays = [
            (self.world_to_voxel_grid_matrix, other.world_to_voxel_grid_matrix),
            (self.voxel_line_list_offsets, other.voxel_line_list_offsets),
            (self.num_lines_in_voxel, other.num_lines_in_voxel),
            (self.line_segments, other.line_segments),
        ]
        arrays.extend(zip(self.voxel_density_lods, other.voxel_density_lods))
        return all(
            a.dtype == b.dtype and a.tobytes() == b.tobytes() and a.shape == b.shape
            for a, b in arrays
        )

    def save(self, output_path: Path | str, compressed: bool = True) -> Path:
        """Save dataset to an .npz archive.

        Args:
            output_path: Output file path
            compressed: If True, use np.savez_compressed

        Returns:
            Path of the written file
        """
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)

        arrays = {
            "grid_resolution": np.asarray(self.grid_resolution, dtype=np.int32),
            "quantization_resolution": np.asarray(self.quantization_resolution, dtype=np.int32),
            "world_to_voxel_grid_matrix": self.world_to_voxel_grid_matrix,
            "voxel_line_list_offsets": self.voxel_line_list_offsets,
            "num_lines_in_voxel": self.num_lines_in_voxel,
            "line_segments": self.line_segments,
            "max_attribute": np.asarray(self.max_attribute, dtype=np.float64),
            "num_lods": np.asarray(len(self.voxel_density_lods), dtype=np.int32),
        }
        for level, densities in enumerate(self.voxel_density_lods):
            arrays[f"density_lod_{level}"] = densities

        save = np.savez_compressed if compressed else np.savez
        save(output_path, **arrays)
        # np.savez appends .npz when missing
        if output_path.suffix != ".npz":
            output_path = output_path.with_name(output_path.name + ".npz")
        return output_path

    @classmethod
    def load(cls, input_path: Path | str) -> "CompressedVoxelDataset":
        """Load a dataset written by save().

        Raises:
            FileNotFoundError: If file doesn't exist
        """
        input_path = Path(input_path)
        if not input_path.exists():
            raise FileNotFoundError(f"Dataset file not found: {input_path}")

        with np.load(input_path) as data:
            num_lods = int(data["num_lods"])
            return cls(
                grid_resolution=tuple(int(v) for v in data["grid_resolution"]),
                quantization_resolution=tuple(int(v) for v in data["quantization_resolution"]),
                world_to_voxel_grid_matrix=data["world_to_voxel_grid_matrix"],
                voxel_line_list_offsets=data["voxel_line_list_offsets"],
                num_lines_in_voxel=data["num_lines_in_voxel"],
                line_segments=data["line_segments"],
                voxel_density_lods=[data[f"density_lod_{level}"] for level in range(num_lods)],
                max_attribute=float(data["max_attribute"]),
            )

    def metadata(self) -> Dict:
        """Summary of the dataset for JSON export."""
        occupied = int(np.count_nonzero(self.num_lines_in_voxel))
        return {
            "grid_resolution": list(self.grid_resolution),
            "quantization_resolution": list(self.quantization_resolution),
            "world_to_voxel_grid_matrix": np.asarray(self.world_to_voxel_grid_matrix).tolist(),
            "num_line_segments": self.num_line_segments,
            "num_occupied_voxels": occupied,
            "occupancy_ratio": float(occupied / self.num_voxels),
            "max_lines_per_voxel": int(self.num_lines_in_voxel.max()) if self.num_voxels else 0,
            "max_attribute": float(self.max_attribute),
            "num_lods": len(self.voxel_density_lods),
        }

    def write_metadata(self, output_path: Path | str):
        """Write metadata() as JSON."""
        metadata = {"created_at": datetime.now().isoformat(), **self.metadata()}

        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        with open(output_path, "w") as f:
            json.dump(metadata, f, indent=2)
