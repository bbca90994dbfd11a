"""
Solver backend using scipy's HiGHS interface (``scipy.optimize.milp``).

Each variable with ``k`` states becomes ``k`` indicator columns bounded to
[0, 1] with a one-hot equality row (the "tight polytope"). Without
integer constraints the same program is solved as an LP relaxation.
"""

import logging
import time

import numpy as np
from scipy import sparse
from scipy.optimize import milp, Bounds, LinearConstraint

from ..exceptions import ConfigurationError, SolverError
from ..tracking.ilp import IlpModel, ConstraintOperator
from .base import SolverBackend, SolverParameters, SolverResult, RELAXATIONS

logger = logging.getLogger(__name__)

STATUS_MESSAGES = {
    1: "iteration or time limit reached",
    2: "problem is infeasible",
    3: "problem is unbounded",
    4: "solver failed",
}


class ScipyMilpSolver(SolverBackend):
    """HiGHS MILP/LP solver via scipy."""

    name = "scipy-highs"

    def solve(self, model: IlpModel, parameters: SolverParameters) -> SolverResult:
        if parameters.relaxation not in RELAXATIONS:
            raise ConfigurationError(
                f"Unsupported relaxation '{parameters.relaxation}', expected one of {RELAXATIONS}"
            )

        num_variables = model.number_of_variables
        if num_variables == 0:
            return SolverResult(
                solution=np.zeros(0, dtype=np.int64),
                objective=0.0,
                state_values=np.zeros(0)
            )

        offsets = np.zeros(num_variables + 1, dtype=np.int64)
        offsets[1:] = np.cumsum([len(c) for c in model.state_costs])
        num_columns = int(offsets[-1])

        cost = np.concatenate(model.state_costs)
        constraints = self._build_constraints(model, offsets, num_columns)
        integrality = np.ones(num_columns) if parameters.integer_constraints else np.zeros(num_columns)

        options = {'disp': bool(parameters.verbose)}
        if parameters.integer_constraints:
            options['mip_rel_gap'] = float(parameters.ep_gap)
        if parameters.time_limit is not None:
            options['time_limit'] = float(parameters.time_limit)
        if parameters.num_threads != 1:
            logger.debug(f"HiGHS thread count is managed by scipy, ignoring num_threads={parameters.num_threads}")

        start = time.perf_counter()
        res = milp(
            c=cost,
            integrality=integrality,
            bounds=Bounds(lb=np.zeros(num_columns), ub=np.ones(num_columns)),
            constraints=constraints,
            options=options
        )
        elapsed = time.perf_counter() - start

        if res.status != 0 or res.x is None:
            reason = STATUS_MESSAGES.get(res.status, "unknown status")
            raise SolverError(
                f"{self.name} failed after {elapsed:.3f}s: {reason} ({res.message})",
                status=int(res.status)
            )

        raw = np.asarray(res.x, dtype=np.float64)
        x = np.round(raw) if parameters.integer_constraints else raw

        # the state is picked on the rounded values, its value is reported
        # as the solver returned it
        solution = np.zeros(num_variables, dtype=np.int64)
        state_values = np.zeros(num_variables)
        for v in range(num_variables):
            state = int(np.argmax(x[offsets[v]:offsets[v + 1]]))
            solution[v] = state
            state_values[v] = raw[offsets[v] + state]

        logger.debug(
            f"{self.name}: solved {num_variables} variables / {num_columns} indicators "
            f"in {elapsed:.3f}s, objective {res.fun:.6g}"
        )
        return SolverResult(solution=solution, objective=float(res.fun), state_values=state_values)

    @staticmethod
    def _build_constraints(model: IlpModel, offsets: np.ndarray, num_columns: int) -> LinearConstraint:
        rows, cols, data = [], [], []
        lower, upper = [], []

        # exactly one state per variable
        for v in range(model.number_of_variables):
            for column in range(offsets[v], offsets[v + 1]):
                rows.append(v)
                cols.append(column)
                data.append(1.0)
            lower.append(1.0)
            upper.append(1.0)

        row = model.number_of_variables
        for constraint in model.constraints:
            for variable_id, state, coefficient in constraint.terms:
                rows.append(row)
                cols.append(int(offsets[variable_id]) + state)
                data.append(coefficient)

            if constraint.operator == ConstraintOperator.EQUAL:
                lower.append(constraint.bound)
                upper.append(constraint.bound)
            elif constraint.operator == ConstraintOperator.LESS_EQUAL:
                lower.append(-np.inf)
                upper.append(constraint.bound)
            else:
                lower.append(constraint.bound)
                upper.append(np.inf)
            row += 1

        matrix = sparse.coo_matrix((data, (rows, cols)), shape=(row, num_columns)).tocsr()
        return LinearConstraint(matrix, np.array(lower), np.array(upper))
