"""Custom exceptions for the voxel_curve_discretizer package."""


class DiscretizerError(Exception):
    """Base exception for all discretization errors."""

    pass


class ConfigurationError(DiscretizerError, ValueError):
    """Raised when grid or quantization parameters are invalid."""

    pass


class GridResolutionError(ConfigurationError):
    """Raised when a grid dimension is smaller than one voxel."""

    pass


class CurveParseError(DiscretizerError):
    """Raised when a record of a curve file cannot be parsed.

    Attributes:
        line_number: 1-based line number of the offending record (if known)
    """

    def __init__(self, message: str, line_number: int = None):
        if line_number is not None:
            message = f"line {line_number}: {message}"
        super().__init__(message)
        self.line_number = line_number


class CurveValidationError(DiscretizerError):
    """Raised when a curve violates its data invariants."""

    pass


class FaceClassificationError(DiscretizerError):
    """Raised when a clipped segment endpoint does not lie on any voxel face."""

    pass
