"""End-to-end tests for discretization, persistence and configuration."""

import json

import numpy as np
import pytest

from voxel_curve_discretizer import (
    CompressedVoxelDataset,
    ConfigurationError,
    Curve,
    CurveParseError,
    CurveValidationError,
    DiscretizerConfig,
    FaceClassificationError,
    GridResolutionError,
    LineSegment,
    VoxelCurveDiscretizer,
    discretize,
    discretize_file,
    discretize_with_config,
    load_curves,
)

CURVE_FILE = """\
g line0
v 0.0 0.0 0.0
vt 0.0
v 1.0 2.0 0.5
vt 1.0
v 3.0 1.0 2.0
vt 2.0
l 1 2 3
g line1
v 3.0 0.0 1.0
vt 0.5
v 0.5 2.0 2.0
vt 1.5
l 4 5
"""


@pytest.fixture
def straight_curve():
    return Curve.from_lists([[0.0, 0.0, 0.0], [2.0, 0.0, 0.0]], [0.0, 1.0])


@pytest.fixture
def random_curves():
    rng = np.random.default_rng(11)
    curves = []
    for _ in range(5):
        n = rng.integers(2, 8)
        curves.append(Curve(points=rng.uniform(-1.0, 1.0, size=(n, 3)),
                            attributes=rng.uniform(0.0, 3.0, size=n)))
    return curves


class TestDiscretize:
    """Tests for the discretize entry point."""

    def test_straight_curve_two_voxels(self, straight_curve):
        dataset = discretize([straight_curve], (2, 1, 1), quantization_resolution=4)

        np.testing.assert_array_equal(dataset.num_lines_in_voxel, [1, 1])
        np.testing.assert_array_equal(dataset.voxel_line_list_offsets, [0, 1])
        assert dataset.line_segments.shape == (2, 2)
        assert dataset.line_segments.dtype == np.uint32
        assert dataset.max_attribute == 1.0

        for index in [(0, 0, 0), (1, 0, 0)]:
            (line,) = dataset.decode_voxel(index)
            assert line.face_index1 == 0
            assert line.face_index2 == 1

        (first,) = dataset.decode_voxel((0, 0, 0))
        assert first.opacity1 == 0.0
        assert first.opacity2 == pytest.approx(127 / 255)

        assert len(dataset.voxel_density_lods) == 2
        np.testing.assert_allclose(dataset.voxel_density_lods[0], [0.25, 0.75])
        # Every level, the coarsest included, is a box average (see DESIGN.md)
        np.testing.assert_allclose(dataset.voxel_density_lods[1], [0.5])

    def test_flat_axes_centred_in_voxel(self, straight_curve):
        dataset = discretize([straight_curve], (2, 3, 3), quantization_resolution=4)
        matrix = dataset.world_to_voxel_grid_matrix
        np.testing.assert_allclose(matrix[:3, 3], [0.0, 1.5, 1.5])
        assert dataset.lines_in_voxel((0, 1, 1)).shape == (1, 2)
        assert dataset.num_line_segments == 2

    def test_idempotent(self, random_curves):
        first = discretize(random_curves, (4, 3, 5), quantization_resolution=16)
        second = discretize(random_curves, (4, 3, 5), quantization_resolution=16)
        assert first.equals(second)

    def test_offsets_are_prefix_sums(self, random_curves):
        dataset = discretize(random_curves, 4, quantization_resolution=8)
        counts = dataset.num_lines_in_voxel.astype(np.int64)
        expected = np.concatenate([[0], np.cumsum(counts)[:-1]])
        np.testing.assert_array_equal(dataset.voxel_line_list_offsets, expected)
        assert counts.sum() == dataset.num_line_segments

    def test_densities_match_pyramid_length(self, random_curves):
        dataset = discretize(random_curves, (5, 2, 1), quantization_resolution=8)
        assert [len(level) for level in dataset.voxel_density_lods] == [10, 3, 2, 1]

    def test_invalid_grid(self, straight_curve):
        with pytest.raises(GridResolutionError):
            discretize([straight_curve], (0, 4, 4))

    def test_invalid_quantization(self, straight_curve):
        with pytest.raises(ConfigurationError):
            discretize([straight_curve], 4, quantization_resolution=12)

    def test_mismatched_curve(self):
        curve = Curve(points=np.zeros((3, 3)), attributes=np.zeros(2))
        with pytest.raises(CurveValidationError):
            discretize([curve], 4)

    def test_non_finite_curve_aborts(self, straight_curve):
        bad = Curve.from_lists([[1.0, 1.0, 1.0], [np.nan, 2.0, 2.0]], [1.0, 1.0])
        assert discretize([straight_curve], 4, quantization_resolution=8).num_line_segments > 0
        with pytest.raises(CurveValidationError):
            discretize([straight_curve, bad], 4, quantization_resolution=8)

    def test_no_curves(self):
        dataset = discretize([], (2, 2, 2))
        assert dataset.line_segments.shape == (0, 2)
        assert dataset.num_lines_in_voxel.sum() == 0
        np.testing.assert_array_equal(dataset.voxel_density_lods[-1], [0.0])


class TestGridUsage:
    """Tests driving VoxelCurveDiscretizer directly."""

    def test_curve_inside_single_voxel_adds_nothing(self):
        grid = VoxelCurveDiscretizer(4, 8)
        outer = Curve.from_lists([[0.0, 0.0, 0.0], [4.0, 4.0, 4.0]], [1.0, 1.0])
        grid.fit_to_curves([outer])

        inner = Curve.from_lists([[0.2, 0.2, 0.2], [0.8, 0.8, 0.8]], [1.0, 1.0])
        assert grid.add_curve(inner) == 0
        assert grid.get_voxel((0, 0, 0)).lines == []

    def test_endpoint_off_face_rejected(self):
        grid = VoxelCurveDiscretizer(2, 4)
        grid.get_voxel((0, 0, 0)).lines.append(LineSegment(
            v1=np.array([0.5, 0.5, 0.5]), a1=0.0, v2=np.array([1.0, 0.5, 0.5]), a2=0.0
        ))
        with pytest.raises(FaceClassificationError):
            grid.compress_data()


class TestDiscretizeFile:
    """Tests for file based discretization."""

    def test_matches_in_memory(self, tmp_path):
        path = tmp_path / "lines.obj"
        path.write_text(CURVE_FILE)

        from_file = discretize_file(path, (3, 2, 2), quantization_resolution=16)
        in_memory = discretize(load_curves(path), (3, 2, 2), quantization_resolution=16)
        assert from_file.equals(in_memory)
        assert from_file.max_attribute == 2.0

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            discretize_file(tmp_path / "missing.obj", 4)

    def test_nan_vertex_in_file(self, tmp_path):
        path = tmp_path / "lines.obj"
        path.write_text(CURVE_FILE.replace("v 3.0 1.0 2.0", "v 3.0 nan 2.0"))
        with pytest.raises(CurveParseError) as excinfo:
            discretize_file(path, 4)
        assert excinfo.value.line_number == 6


class TestPersistence:
    """Tests for saving and loading datasets."""

    def test_save_load(self, tmp_path, random_curves):
        dataset = discretize(random_curves, (3, 4, 2), quantization_resolution=32)
        path = dataset.save(tmp_path / "dataset.npz")
        loaded = CompressedVoxelDataset.load(path)
        assert loaded.equals(dataset)

    def test_save_uncompressed_appends_suffix(self, tmp_path, straight_curve):
        dataset = discretize([straight_curve], 2, quantization_resolution=4)
        path = dataset.save(tmp_path / "dataset", compressed=False)
        assert path.suffix == ".npz"
        assert path.exists()
        assert CompressedVoxelDataset.load(path).equals(dataset)

    def test_load_missing(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            CompressedVoxelDataset.load(tmp_path / "missing.npz")

    def test_metadata(self, tmp_path, straight_curve):
        dataset = discretize([straight_curve], (2, 1, 1), quantization_resolution=4)
        path = tmp_path / "meta" / "dataset_metadata.json"
        dataset.write_metadata(path)

        with open(path) as f:
            metadata = json.load(f)
        assert metadata["grid_resolution"] == [2, 1, 1]
        assert metadata["num_line_segments"] == 2
        assert metadata["num_occupied_voxels"] == 2
        assert metadata["num_lods"] == 2
        assert "created_at" in metadata


class TestConfig:
    """Tests for DiscretizerConfig."""

    def test_defaults(self):
        config = DiscretizerConfig()
        assert config.grid_resolution == (64, 64, 64)
        assert config.quantization_resolution == (32, 32, 32)
        assert config.num_voxels == 64 ** 3
        assert config.num_lods == 7

    def test_int_resolutions(self):
        config = DiscretizerConfig(grid_resolution=5, quantization_resolution=16)
        assert config.grid_resolution == (5, 5, 5)
        assert config.quantization_resolution == (16, 16, 16)
        assert config.num_lods == 4

    def test_invalid_quantization(self):
        with pytest.raises(ConfigurationError):
            DiscretizerConfig(quantization_resolution=24)

    def test_invalid_grid(self):
        with pytest.raises(GridResolutionError):
            DiscretizerConfig(grid_resolution=(4, 0, 4))

    def test_dataset_path_requires_output_dir(self):
        with pytest.raises(ValueError):
            DiscretizerConfig().get_dataset_path("dataset")

    def test_discretize_with_config_writes_files(self, tmp_path, straight_curve):
        config = DiscretizerConfig(grid_resolution=(2, 1, 1), quantization_resolution=4,
                                   output_dir=tmp_path / "out")
        dataset = discretize_with_config([straight_curve], config, name="straight")

        saved = CompressedVoxelDataset.load(tmp_path / "out" / "straight.npz")
        assert saved.equals(dataset)
        assert (tmp_path / "out" / "straight_metadata.json").exists()
