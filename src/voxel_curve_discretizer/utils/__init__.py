"""Utilities module."""

from .config import DiscretizerConfig, normalize_grid_resolution

__all__ = ["DiscretizerConfig", "normalize_grid_resolution"]
