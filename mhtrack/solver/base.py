"""
Narrow solver interface.

A backend receives an :class:`~mhtrack.tracking.ilp.IlpModel` and
:class:`SolverParameters` and returns one state per variable plus the
objective value, or raises :class:`~mhtrack.exceptions.SolverError`.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, replace
from typing import Optional

import numpy as np

RELAXATIONS = ('tight_polytope',)


@dataclass
class SolverParameters:
    """Parameters passed to a solver backend."""
    integer_constraints: bool = True
    relaxation: str = 'tight_polytope'
    num_threads: int = 1
    ep_gap: float = 0.01
    verbose: bool = False
    time_limit: Optional[float] = None

    @classmethod
    def from_settings(cls, settings, integer_constraints: bool = True) -> 'SolverParameters':
        """Create parameters from model settings."""
        return cls(
            integer_constraints=integer_constraints,
            num_threads=settings.optimizer_num_threads,
            ep_gap=settings.optimizer_ep_gap,
            verbose=settings.optimizer_verbose,
            time_limit=settings.optimizer_time_limit
        )

    def with_integer_constraints(self, integer_constraints: bool) -> 'SolverParameters':
        return replace(self, integer_constraints=integer_constraints)


@dataclass
class SolverResult:
    """Assignment returned by a solver backend."""

    solution: np.ndarray
    """Selected state per variable id."""

    objective: float
    """Objective value reported by the solver."""

    state_values: np.ndarray
    """Unrounded value of the selected state's indicator, as returned by the solver."""

    @property
    def num_integral_variables(self) -> int:
        return int(np.sum((self.state_values == 0.0) | (self.state_values == 1.0)))

    @property
    def integral_fraction(self) -> float:
        """Fraction of variables whose selected indicator is exactly 0 or 1."""
        if len(self.state_values) == 0:
            return 1.0
        return self.num_integral_variables / len(self.state_values)


class SolverBackend(ABC):
    """Black-box LP/ILP solver."""

    name = "abstract"

    @abstractmethod
    def solve(self, model, parameters: SolverParameters) -> SolverResult:
        """
        Minimise the model's objective.

        Args:
            model: IlpModel to solve.
            parameters: Solver parameters.

        Returns:
            SolverResult.

        Raises:
            SolverError: if no solution could be obtained.
        """
