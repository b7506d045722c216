"""Density level-of-detail pyramid."""

from .pyramid import generate_density_mipmaps, downsample_density, mipmap_resolutions

__all__ = ["generate_density_mipmaps", "downsample_density", "mipmap_resolutions"]
