"""
Cutting-plane inference.

Solves the model without division and merger constraints, verifies the
result and rebuilds with those constraints added for every segmentation
hypothesis found violated so far. Stops once the solution is valid or
the set of constrained hypotheses stops growing.
"""

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Sequence, Set

import numpy as np

from ..solver.base import SolverBackend, SolverParameters, SolverResult
from .ilp import IlpModel
from .model_builder import ModelBuilder
from .verifier import SolutionVerifier, VerificationReport

logger = logging.getLogger(__name__)


class InferenceStatus(Enum):
    VALID = 'valid'
    """Solution satisfies all constraints."""

    NOT_CONVERGED = 'not_converged'
    """Cutting-plane loop stalled with an invalid solution."""

    INVALID = 'invalid'
    """Single-shot inference produced an invalid solution."""


@dataclass
class IterationRecord:
    """Diagnostics of one solve."""
    iteration: int
    integer_constraints: bool
    num_violated: int
    num_constrained: int
    objective: float
    integral_fraction: float
    valid: bool
    solve_time: float


@dataclass
class CuttingPlaneState:
    """Loop-local state of the cutting-plane iterations."""

    constrained_ids: Set[int] = field(default_factory=set)
    """Hypotheses that get division/merger constraints. Only ever grows."""

    iteration: int = 0
    history: List[IterationRecord] = field(default_factory=list)

    def augment(self, violated_ids: Set[int]) -> int:
        """
        Add violated ids.

        Returns:
            Number of ids that were not constrained before.
        """
        before = len(self.constrained_ids)
        self.constrained_ids |= set(violated_ids)
        return len(self.constrained_ids) - before


@dataclass
class InferenceResult:
    """Solution together with its validity."""

    solution: np.ndarray
    objective: float
    valid: bool
    status: InferenceStatus
    iterations: int = 1
    constrained_ids: Set[int] = field(default_factory=set)
    history: List[IterationRecord] = field(default_factory=list)
    report: Optional[VerificationReport] = None
    model: Optional[IlpModel] = None
    """The last model solved; variable ids of the graph refer to it."""

    @property
    def converged(self) -> bool:
        return self.status == InferenceStatus.VALID

    def summarize(self) -> str:
        lines = [
            "Inference Summary",
            "=" * 50,
            f"Status: {self.status.value}",
            f"Objective: {self.objective:.6g}",
            f"Iterations: {self.iterations}",
            f"Constrained hypotheses: {len(self.constrained_ids)}",
        ]
        if self.history:
            lines.append(f"Total solving time: {sum(r.solve_time for r in self.history):.3f}s")
        return "\n".join(lines)


def solve_and_verify(
    builder: ModelBuilder,
    verifier: SolutionVerifier,
    solver: SolverBackend,
    weights: Sequence[float],
    parameters: SolverParameters,
    with_division_constraints: bool,
    with_merger_constraints: bool,
    constrained_ids: Set[int] = frozenset()
):
    """
    Build, solve and verify once.

    Returns:
        Tuple (IlpModel, SolverResult, VerificationReport, solve time in seconds).
    """
    model = builder.build(
        weights,
        with_division_constraints=with_division_constraints,
        with_merger_constraints=with_merger_constraints,
        constrained_ids=constrained_ids
    )

    start = time.perf_counter()
    result: SolverResult = solver.solve(model, parameters)
    solve_time = time.perf_counter() - start

    logger.info(
        f"{result.num_integral_variables} variables of {model.number_of_variables} are integral "
        f"({100.0 * result.integral_fraction:.1f}%)"
    )

    report = verifier.verify(result.solution)
    return model, result, report, solve_time


def run_cutting_plane(
    builder: ModelBuilder,
    verifier: SolutionVerifier,
    solver: SolverBackend,
    weights: Sequence[float],
    parameters: SolverParameters,
    retry_with_integer_constraints: bool = False,
    state: Optional[CuttingPlaneState] = None
) -> InferenceResult:
    """
    Run the cutting-plane loop.

    Args:
        builder: Model builder for the graph.
        verifier: Solution verifier for the graph.
        solver: Solver backend.
        weights: Flat weight vector.
        parameters: Solver parameters of the first iteration.
        retry_with_integer_constraints: When a relaxed solve stalls,
            switch on integer constraints and continue.
        state: Optional state to continue from.

    Returns:
        InferenceResult with status VALID or NOT_CONVERGED.
    """
    state = state or CuttingPlaneState()
    builder.check_weights(weights)

    while True:
        state.iteration += 1
        logger.info(
            f"Iteration number {state.iteration} "
            f"({'with' if parameters.integer_constraints else 'without'} integer constraints), "
            f"division constraints for {len(state.constrained_ids)} hypotheses"
        )

        model, result, report, solve_time = solve_and_verify(
            builder, verifier, solver, weights, parameters,
            with_division_constraints=False,
            with_merger_constraints=False,
            constrained_ids=set(state.constrained_ids)
        )
        num_new = state.augment(report.violated_ids)

        state.history.append(IterationRecord(
            iteration=state.iteration,
            integer_constraints=parameters.integer_constraints,
            num_violated=len(report.violated_ids),
            num_constrained=len(state.constrained_ids),
            objective=result.objective,
            integral_fraction=result.integral_fraction,
            valid=report.valid,
            solve_time=solve_time
        ))

        logger.info(
            f"Iteration {state.iteration}: energy {result.objective:.6g}, "
            f"{len(report.violated_ids)} violated hypotheses ({num_new} new), "
            f"solving time {solve_time:.3f}s, valid: {'yes' if report.valid else 'no'}"
        )

        if report.valid:
            status = InferenceStatus.VALID
            break

        if num_new == 0:
            if retry_with_integer_constraints and not parameters.integer_constraints:
                logger.info("Relaxation stalled, trying again with integer constraints")
                parameters = parameters.with_integer_constraints(True)
                continue
            status = InferenceStatus.NOT_CONVERGED
            logger.warning(
                f"No further constraints can be added after {state.iteration} iterations, "
                "solution is not valid"
            )
            break

    logger.info(f"Number of iterations: {state.iteration}")

    return InferenceResult(
        solution=result.solution,
        objective=result.objective,
        valid=report.valid,
        status=status,
        iterations=state.iteration,
        constrained_ids=set(state.constrained_ids),
        history=list(state.history),
        report=report,
        model=model
    )
