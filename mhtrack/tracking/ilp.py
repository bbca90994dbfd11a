"""
Solver-agnostic ILP model.

Every variable with ``k`` states is represented by ``k`` indicator
columns of which exactly one is 1. Constraints are linear combinations of
such indicators, written as ``(variable id, state, coefficient)`` terms.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Sequence, Tuple

import numpy as np

Term = Tuple[int, int, float]


class ConstraintOperator(Enum):
    LESS_EQUAL = '<='
    EQUAL = '=='
    GREATER_EQUAL = '>='


@dataclass
class LinearConstraint:
    """Linear constraint over variable state indicators."""

    terms: List[Term] = field(default_factory=list)
    operator: ConstraintOperator = ConstraintOperator.EQUAL
    bound: float = 0.0

    def add_state_term(self, variable_id: int, state: int, coefficient: float):
        """
        Append ``coefficient * x[variable_id, state]``.

        Unused variables (id -1) are skipped, so optional variables simply
        drop out of the constraint.
        """
        if variable_id < 0:
            return
        self.terms.append((int(variable_id), int(state), float(coefficient)))

    def add_value_terms(self, variable_id: int, num_states: int, coefficient: float):
        """Append ``coefficient * value(variable)`` with value = sum_s s * x[s]."""
        for state in range(1, num_states):
            self.add_state_term(variable_id, state, coefficient * state)

    def is_empty(self) -> bool:
        return len(self.terms) == 0

    def is_satisfied(self, solution: Sequence[int]) -> bool:
        """Evaluate the constraint on an integer assignment."""
        lhs = sum(coef for var, state, coef in self.terms if solution[var] == state)
        if self.operator == ConstraintOperator.EQUAL:
            return abs(lhs - self.bound) < 1e-9
        if self.operator == ConstraintOperator.LESS_EQUAL:
            return lhs <= self.bound + 1e-9
        return lhs >= self.bound - 1e-9

    def signature(self) -> Tuple:
        return (tuple(self.terms), self.operator.value, self.bound)


class IlpModel:
    """Variables with per-state costs plus linear constraints (minimised)."""

    def __init__(self):
        self.state_costs: List[np.ndarray] = []
        self.constraints: List[LinearConstraint] = []

    def add_variable(self, costs: Sequence[float]) -> int:
        """
        Add a variable with one cost per state.

        Returns:
            The new variable id.
        """
        self.state_costs.append(np.asarray(costs, dtype=np.float64).copy())
        return len(self.state_costs) - 1

    def add_constraint(self, constraint: LinearConstraint) -> bool:
        """Add a constraint; empty constraints are dropped."""
        if constraint.is_empty():
            return False
        self.constraints.append(constraint)
        return True

    def add_to_state_cost(self, variable_id: int, state: int, delta: float):
        self.state_costs[variable_id][state] += delta

    def num_states(self, variable_id: int) -> int:
        if variable_id < 0:
            return 0
        return len(self.state_costs[variable_id])

    @property
    def number_of_variables(self) -> int:
        return len(self.state_costs)

    @property
    def number_of_indicators(self) -> int:
        return int(sum(len(c) for c in self.state_costs))

    @property
    def number_of_constraints(self) -> int:
        return len(self.constraints)

    def evaluate(self, solution: Sequence[int]) -> float:
        """Energy (objective value) of an integer assignment."""
        if len(solution) != self.number_of_variables:
            raise ValueError(
                f"Solution has {len(solution)} entries, model has "
                f"{self.number_of_variables} variables"
            )
        return float(sum(costs[int(s)] for costs, s in zip(self.state_costs, solution)))

    def violated_constraints(self, solution: Sequence[int]) -> List[int]:
        """Indices of constraints not satisfied by ``solution``."""
        return [i for i, c in enumerate(self.constraints) if not c.is_satisfied(solution)]

    def constraint_signature(self) -> Tuple:
        """Hashable description of all constraints, in emission order."""
        return tuple(c.signature() for c in self.constraints)

    def __repr__(self) -> str:
        return (
            f"IlpModel(variables={self.number_of_variables}, "
            f"indicators={self.number_of_indicators}, "
            f"constraints={self.number_of_constraints})"
        )
