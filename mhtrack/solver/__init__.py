"""Solver interface and backends."""

from .base import SolverBackend, SolverParameters, SolverResult, RELAXATIONS
from .scipy_backend import ScipyMilpSolver

__all__ = [
    'SolverBackend',
    'SolverParameters',
    'SolverResult',
    'RELAXATIONS',
    'ScipyMilpSolver'
]
