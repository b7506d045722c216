"""Line segment quantization and packing."""

from .codec import (
    compress_line,
    compress_voxel_lines,
    compute_face_index,
    quantize_point,
    decode_line_record,
    reconstruct_point,
    validate_quantization_resolution,
    DecodedLine,
)

__all__ = [
    "compress_line",
    "compress_voxel_lines",
    "compute_face_index",
    "quantize_point",
    "decode_line_record",
    "reconstruct_point",
    "validate_quantization_resolution",
    "DecodedLine",
]
