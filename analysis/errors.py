"""
Error taxonomy for roadmap analysis.
Every failure is terminal for a single request; retrying is the caller's call.
"""


class RoadmapError(Exception):
    """Base class for roadmap analysis failures."""
    pass


class InvalidCrisisError(RoadmapError):
    """Raised when a crisis identifier is not in the catalog."""
    pass


class InvalidRequestError(RoadmapError):
    """Raised when request parameters (metric, window, shift) are out of range."""
    pass


class InsufficientDataError(RoadmapError):
    """Raised when a window holds too few points for a meaningful fit."""
    pass


class EmptyInputError(InsufficientDataError):
    """Raised when a series has no points at all."""
    pass
