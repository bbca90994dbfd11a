"""Exception hierarchy for mhtrack."""

from typing import Optional


class MHTrackError(Exception):
    """Base class for all mhtrack errors."""


class ConfigurationError(MHTrackError):
    """
    Inconsistent or missing configuration.

    Raised for mismatching weight counts within one hypothesis kind,
    models mixing in-node and external divisions, or a missing
    settings object. Detected before any solve and never retried.
    """


class ModelError(MHTrackError):
    """Malformed hypotheses graph (e.g. a detection without features)."""


class WeightDimensionError(MHTrackError, ValueError):
    """Weight vector length does not match the number of model weights."""

    def __init__(self, expected: int, actual: int):
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Provided weight vector has wrong length: expected {expected}, got {actual}"
        )


class SolverError(MHTrackError, RuntimeError):
    """The solver backend failed (infeasible, unbounded, time limit, ...)."""

    def __init__(self, message: str, status: Optional[int] = None):
        self.status = status
        super().__init__(message)
