"""Quantization and bit packing of clipped line segments.

Every clipped segment starts and ends on the boundary of its voxel, so an
endpoint is fully described by the face it lies on and its 2D position on
that face. A packed record consists of two 32-bit fields:

    position:   face1 (3 bits) | face2 (3 bits) | pos1 (c bits) | pos2 (c bits)
    attributes: opacity1 (8 bits) | opacity2 (8 bits)

with c = 2 * log2(q) and pos = x + y * q for quantization resolution q.
Face indices are 2 * axis for the lower face and 2 * axis + 1 for the upper
face of the cell.
"""

import math
import numpy as np
from dataclasses import dataclass
from typing import List, Sequence, Tuple, Union

from ..exceptions import ConfigurationError, FaceClassificationError
from ..geometry.aabb import INTERSECTION_EPSILON
from ..discretization.segments import LineSegment, opacity_mapping

FACE_BITS = 3
OPACITY_BITS = 8
RECORD_BITS = 32
RECORD_DTYPE = np.uint32

# In-plane axes for faces orthogonal to x, y and z
_FACE_PLANE_AXES = {
    0: (1, 2),
    1: (0, 2),
    2: (0, 1),
}


def _is_power_of_two(n: int) -> bool:
    """Check if n is a power of 2."""
    return n > 0 and (n & (n - 1)) == 0


def intlog2(x: int) -> int:
    exponent = 0
    while x > 1:
        x //= 2
        exponent += 1
    return exponent


def face_position_bits(quantization_resolution: int) -> int:
    """Number of bits used for one quantized face position."""
    return 2 * intlog2(quantization_resolution)


def validate_quantization_resolution(
    quantization_resolution: Union[int, Sequence[int]]
) -> Tuple[int, int, int]:
    """Normalize and check a quantization resolution.

    The packing arithmetic flattens face positions as x + y * q and shifts by
    fixed bit widths, so q has to be an isotropic power of two and two face
    positions plus two face indices have to fit into one 32-bit field.

    Args:
        quantization_resolution: Single int or (qx, qy, qz)

    Returns:
        (q, q, q) tuple

    Raises:
        ConfigurationError: If the resolution cannot be packed
    """
    if isinstance(quantization_resolution, (int, np.integer)):
        resolution = (int(quantization_resolution),) * 3
    else:
        resolution = tuple(int(q) for q in quantization_resolution)
        if len(resolution) != 3:
            raise ConfigurationError(
                f"quantization_resolution must have 3 components, got {resolution}"
            )

    for q in resolution:
        if not _is_power_of_two(q):
            raise ConfigurationError(
                f"quantization_resolution must be a power of 2, got {resolution}"
            )
    if len(set(resolution)) != 1:
        raise ConfigurationError(
            f"quantization_resolution must be equal on all axes, got {resolution}"
        )

    total_bits = 2 * FACE_BITS + 2 * face_position_bits(resolution[0])
    if total_bits > RECORD_BITS:
        raise ConfigurationError(
            f"quantization_resolution {resolution[0]} needs {total_bits} bits "
            f"per record, at most {RECORD_BITS} are available"
        )
    return resolution


def compute_face_index(point: np.ndarray, voxel_index: Sequence[int]) -> int:
    """Find the face of the voxel that point lies on.

    Faces are tested per axis, lower before upper. A point on an edge or a
    corner lies on several faces; the first match (lowest axis) is used.

    Args:
        point: Endpoint in grid-local coordinates
        voxel_index: (x, y, z) index of the voxel

    Returns:
        Face index in [0, 5]

    Raises:
        FaceClassificationError: If point lies on none of the six faces
    """
    for axis in range(3):
        lower = voxel_index[axis]
        if abs(point[axis] - lower) < INTERSECTION_EPSILON:
            return 2 * axis
        if abs(point[axis] - (lower + 1)) < INTERSECTION_EPSILON:
            return 2 * axis + 1
    raise FaceClassificationError(
        f"Point {np.asarray(point).tolist()} does not lie on a face of "
        f"voxel {tuple(voxel_index)}"
    )


def _lround(x: float) -> int:
    """Round half away from zero."""
    if x >= 0.0:
        return int(math.floor(x + 0.5))
    return -int(math.floor(-x + 0.5))


def quantize_point(
    point: np.ndarray,
    voxel_index: Sequence[int],
    face_index: int,
    quantization_resolution: int
) -> Tuple[int, int]:
    """Quantize the in-plane position of a point lying on a voxel face.

    Each in-plane coordinate c (relative to the voxel corner, in [0, 1]) is
    mapped to lround(c * q + 0.5), clamped to [0, q - 1]. The +0.5 bias is
    part of the stored format and must not be changed.

    Returns:
        (x, y) quantized face position
    """
    q = quantization_resolution
    plane_axes = _FACE_PLANE_AXES[face_index // 2]
    quantized = []
    for axis in plane_axes:
        local = float(point[axis]) - voxel_index[axis]
        position = _lround(local * q + 0.5)
        quantized.append(min(max(position, 0), q - 1))
    return quantized[0], quantized[1]


def opacity_byte(attribute: float, max_attribute: float) -> int:
    """Opacity scaled to [0, 255] and truncated to 8 bits."""
    return int(opacity_mapping(attribute, max_attribute) * 255) & 0xFF


def compress_line(
    line: LineSegment,
    voxel_index: Sequence[int],
    quantization_resolution: int,
    max_attribute: float
) -> Tuple[int, int]:
    """Pack a clipped segment into a (position, attributes) record.

    Args:
        line: Segment clipped to the voxel at voxel_index
        voxel_index: (x, y, z) index of the owning voxel
        quantization_resolution: Face quantization resolution q (power of 2)
        max_attribute: Maximum attribute for opacity normalization

    Returns:
        Tuple of (position, attributes) integer fields
    """
    q = quantization_resolution
    face_index1 = compute_face_index(line.v1, voxel_index)
    face_index2 = compute_face_index(line.v2, voxel_index)

    x1, y1 = quantize_point(line.v1, voxel_index, face_index1, q)
    x2, y2 = quantize_point(line.v2, voxel_index, face_index2, q)
    face_position1 = x1 + y1 * q
    face_position2 = x2 + y2 * q

    c = face_position_bits(q)
    position = face_index1
    position |= face_index2 << FACE_BITS
    position |= face_position1 << (2 * FACE_BITS)
    position |= face_position2 << (2 * FACE_BITS + c)

    attributes = opacity_byte(line.a1, max_attribute)
    attributes |= opacity_byte(line.a2, max_attribute) << OPACITY_BITS
    return position, attributes


def compress_voxel_lines(
    lines: List[LineSegment],
    voxel_index: Sequence[int],
    quantization_resolution: int,
    max_attribute: float
) -> np.ndarray:
    """Pack all lines of one voxel.

    Returns:
        (N, 2) uint32 array of (position, attributes) records
    """
    records = np.zeros((len(lines), 2), dtype=RECORD_DTYPE)
    for i, line in enumerate(lines):
        records[i] = compress_line(line, voxel_index, quantization_resolution, max_attribute)
    return records


@dataclass(frozen=True)
class DecodedLine:
    """Fields of a packed line record."""

    face_index1: int
    face_index2: int
    face_position1: int
    face_position2: int
    opacity1: float
    opacity2: float


def decode_line_record(position: int, attributes: int, quantization_resolution: int) -> DecodedLine:
    """Unpack a (position, attributes) record produced by compress_line."""
    position = int(position)
    attributes = int(attributes)
    c = face_position_bits(quantization_resolution)
    face_mask = (1 << FACE_BITS) - 1
    position_mask = (1 << c) - 1
    opacity_mask = (1 << OPACITY_BITS) - 1

    return DecodedLine(
        face_index1=position & face_mask,
        face_index2=(position >> FACE_BITS) & face_mask,
        face_position1=(position >> (2 * FACE_BITS)) & position_mask,
        face_position2=(position >> (2 * FACE_BITS + c)) & position_mask,
        opacity1=(attributes & opacity_mask) / 255.0,
        opacity2=((attributes >> OPACITY_BITS) & opacity_mask) / 255.0,
    )


def reconstruct_point(
    face_index: int,
    face_position: int,
    voxel_index: Sequence[int],
    quantization_resolution: int
) -> np.ndarray:
    """Approximate grid-local position of a decoded endpoint.

    The quantized position p is mapped back to p / q on each in-plane axis,
    which is within 1 / q of the encoded coordinate because of the biased
    rounding in quantize_point.
    """
    q = quantization_resolution
    face_axis = face_index // 2
    point = np.asarray(voxel_index, dtype=np.float64).copy()
    point[face_axis] += face_index % 2

    plane_axes = _FACE_PLANE_AXES[face_axis]
    local = (face_position % q, face_position // q)
    for axis, value in zip(plane_axes, local):
        point[axis] += value / q
    return point
