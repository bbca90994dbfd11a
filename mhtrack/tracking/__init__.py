"""Hypotheses graph, ILP model building, verification and inference."""

from .variable import Variable, WeightSpace, WEIGHT_KINDS
from .hypotheses import (
    SegmentationHypothesis,
    LinkingHypothesis,
    DivisionHypothesis,
    ExclusionConstraint
)
from .graph import HypothesesGraph
from .ilp import IlpModel, LinearConstraint, ConstraintOperator
from .model_builder import ModelBuilder
from .verifier import SolutionVerifier, VerificationReport
from .cutting_plane import (
    CuttingPlaneState,
    InferenceResult,
    InferenceStatus,
    IterationRecord,
    run_cutting_plane
)
from .model import TrackingModel

__all__ = [
    'Variable',
    'WeightSpace',
    'WEIGHT_KINDS',
    'SegmentationHypothesis',
    'LinkingHypothesis',
    'DivisionHypothesis',
    'ExclusionConstraint',
    'HypothesesGraph',
    'IlpModel',
    'LinearConstraint',
    'ConstraintOperator',
    'ModelBuilder',
    'SolutionVerifier',
    'VerificationReport',
    'CuttingPlaneState',
    'InferenceResult',
    'InferenceStatus',
    'IterationRecord',
    'run_cutting_plane',
    'TrackingModel'
]
