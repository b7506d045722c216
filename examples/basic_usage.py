"""Basic usage example for the voxel curve discretizer."""

from pathlib import Path

import numpy as np

from voxel_curve_discretizer import Curve, DiscretizerConfig, discretize_file, discretize_with_config, setup_logging


def make_helix_curves(num_curves: int = 20, num_points: int = 200):
    """Synthetic helices with a varying attribute along each curve."""
    rng = np.random.default_rng(0)
    curves = []
    for _ in range(num_curves):
        t = np.linspace(0.0, 4.0 * np.pi, num_points)
        radius = rng.uniform(0.5, 2.0)
        phase = rng.uniform(0.0, 2.0 * np.pi)
        points = np.stack([
            radius * np.cos(t + phase),
            radius * np.sin(t + phase),
            0.2 * t,
        ], axis=1)
        attributes = np.abs(np.sin(3.0 * t)) * radius
        curves.append(Curve(points=points, attributes=attributes))
    return curves


def example_in_memory():
    """Discretize synthetic curves and save the result."""
    config = DiscretizerConfig(
        grid_resolution=(32, 32, 32),
        quantization_resolution=32,
        output_dir=Path("output/helices"),
        show_progress=True
    )

    dataset = discretize_with_config(make_helix_curves(), config, name="helices")

    print(f"Line segments: {dataset.num_line_segments}")
    print(f"Occupied voxels: {np.count_nonzero(dataset.num_lines_in_voxel)}/{dataset.num_voxels}")
    print(f"Density LODs: {[len(level) for level in dataset.voxel_density_lods]}")


def example_from_file():
    """Discretize a trajectory file."""
    # Replace with your curve file path
    curve_path = Path("path/to/trajectories.obj")

    if curve_path.exists():
        dataset = discretize_file(curve_path, grid_resolution=128, show_progress=True)
        output_path = dataset.save("output/trajectories.npz")
        print(f"Saved dataset to {output_path}")
    else:
        print(f"Curve file not found: {curve_path}")


if __name__ == "__main__":
    setup_logging()

    print("=" * 60)
    print("Example 1: In-memory curves")
    print("=" * 60)
    example_in_memory()

    print("\n" + "=" * 60)
    print("Example 2: Curve file")
    print("=" * 60)
    example_from_file()
