"""
mhtrack - multi-hypotheses tracking as an integer linear program.

Builds an ILP from a hypotheses graph (detections, links, divisions,
exclusions), solves it through a pluggable solver backend and verifies
the result, adding division and merger constraints lazily where needed.
"""

from .exceptions import (
    MHTrackError,
    ConfigurationError,
    ModelError,
    WeightDimensionError,
    SolverError
)
from .config import Settings, Config, load_config
from .tracking import HypothesesGraph, TrackingModel, InferenceResult, InferenceStatus

__version__ = "1.0.0"

__all__ = [
    'MHTrackError',
    'ConfigurationError',
    'ModelError',
    'WeightDimensionError',
    'SolverError',
    'Settings',
    'Config',
    'load_config',
    'HypothesesGraph',
    'TrackingModel',
    'InferenceResult',
    'InferenceStatus'
]
