"""Curve file input."""

from .curve_loader import CurveLoader, load_curves

__all__ = ["CurveLoader", "load_curves"]
