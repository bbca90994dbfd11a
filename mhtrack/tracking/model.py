"""
Tracking model - the entry point tying graph, builder, solver and verifier together.
"""

import logging
import time
from pathlib import Path
from typing import Dict, List, Optional, Sequence

import numpy as np

from ..config import Settings
from ..exceptions import ConfigurationError, ModelError
from ..solver import SolverBackend, SolverParameters, ScipyMilpSolver
from .cutting_plane import (
    InferenceResult,
    InferenceStatus,
    IterationRecord,
    run_cutting_plane,
    solve_and_verify
)
from .graph import HypothesesGraph
from .ilp import IlpModel
from .model_builder import ModelBuilder
from .verifier import SolutionVerifier, VerificationReport

logger = logging.getLogger(__name__)


class TrackingModel:
    """
    Multi-hypotheses tracking model.

    Args:
        graph: Hypotheses graph.
        settings: Model settings (required).
        solver: Solver backend, defaults to :class:`ScipyMilpSolver`.
    """

    def __init__(
        self,
        graph: HypothesesGraph,
        settings: Optional[Settings],
        solver: Optional[SolverBackend] = None
    ):
        if settings is None:
            raise ConfigurationError("Settings object cannot be None")

        self.graph = graph
        self.settings = settings
        self.solver = solver or ScipyMilpSolver()
        self.builder = ModelBuilder(graph, settings)
        self.verifier = SolutionVerifier(graph, settings)

        self.last_model: Optional[IlpModel] = None
        self.last_solution_value: Optional[float] = None

    # ------------------------------------------------------------------ #
    # Weights                                                              #
    # ------------------------------------------------------------------ #

    def compute_num_weights(self) -> int:
        """Total number of weights, validating counts per hypothesis kind."""
        return self.builder.compute_weight_space().num_weights

    def weight_descriptions(self) -> List[str]:
        return self.builder.compute_weight_space().descriptions()

    def build_model(
        self,
        weights: Sequence[float],
        with_division_constraints: bool = True,
        with_merger_constraints: bool = True,
        constrained_ids: Sequence[int] = ()
    ) -> IlpModel:
        """Build (and remember) the ILP for the given weights."""
        start = time.perf_counter()
        self.last_model = self.builder.build(
            weights,
            with_division_constraints=with_division_constraints,
            with_merger_constraints=with_merger_constraints,
            constrained_ids=constrained_ids
        )
        logger.info(
            f"Model has {self.last_model.number_of_indicators} indicator variables, "
            f"initialized in {time.perf_counter() - start:.3f}s"
        )
        return self.last_model

    def solver_parameters(self, with_integer_constraints: bool = True) -> SolverParameters:
        return SolverParameters.from_settings(self.settings, with_integer_constraints)

    # ------------------------------------------------------------------ #
    # Inference                                                            #
    # ------------------------------------------------------------------ #

    def infer(
        self,
        weights: Sequence[float],
        with_integer_constraints: bool = True,
        with_division_constraints: bool = True,
        with_merger_constraints: bool = True
    ) -> InferenceResult:
        """
        Solve the full model once.

        Args:
            weights: Flat weight vector.
            with_integer_constraints: Solve the ILP instead of its LP relaxation.
            with_division_constraints: Add division constraints everywhere.
            with_merger_constraints: Add merger constraints everywhere.

        Returns:
            InferenceResult with status VALID or INVALID.
        """
        self.builder.check_weights(weights)
        logger.info(f"{'With' if with_integer_constraints else 'Without'} integer constraints")

        model, result, report, solve_time = solve_and_verify(
            self.builder,
            self.verifier,
            self.solver,
            weights,
            self.solver_parameters(with_integer_constraints),
            with_division_constraints=with_division_constraints,
            with_merger_constraints=with_merger_constraints
        )
        self.last_model = model
        self.last_solution_value = result.objective

        logger.info(f"Solution has energy {result.objective:.6g}, solving time {solve_time:.3f}s")

        return InferenceResult(
            solution=result.solution,
            objective=result.objective,
            valid=report.valid,
            status=InferenceStatus.VALID if report.valid else InferenceStatus.INVALID,
            iterations=1,
            history=[IterationRecord(
                iteration=1,
                integer_constraints=with_integer_constraints,
                num_violated=len(report.violated_ids),
                num_constrained=0,
                objective=result.objective,
                integral_fraction=result.integral_fraction,
                valid=report.valid,
                solve_time=solve_time
            )],
            report=report,
            model=model
        )

    def infer_with_cutting_constraints(
        self,
        weights: Sequence[float],
        with_integer_constraints: bool = True,
        retry_with_integer_constraints: bool = False
    ) -> InferenceResult:
        """
        Solve with lazily added division and merger constraints.

        Args:
            weights: Flat weight vector.
            with_integer_constraints: Solve ILPs instead of LP relaxations.
            retry_with_integer_constraints: Switch to integer constraints
                when the relaxation stalls.

        Returns:
            InferenceResult with status VALID or NOT_CONVERGED.
        """
        logger.info("Infer with cutting constraints...")
        result = run_cutting_plane(
            self.builder,
            self.verifier,
            self.solver,
            weights,
            self.solver_parameters(with_integer_constraints),
            retry_with_integer_constraints=retry_with_integer_constraints
        )
        self.last_model = result.model
        self.last_solution_value = result.objective
        return result

    # ------------------------------------------------------------------ #
    # Solutions                                                            #
    # ------------------------------------------------------------------ #

    def verify_solution(self, solution: Sequence[int]) -> VerificationReport:
        """Verify an assignment for the most recently built model."""
        self._require_model()
        return self.verifier.verify(solution)

    def evaluate_solution(self, solution: Sequence[int]) -> float:
        """Energy of an assignment under the most recently built model."""
        self._require_model()
        return self.last_model.evaluate(solution)

    def ground_truth_from_results(self, results: Dict) -> np.ndarray:
        """
        Turn result dictionaries into a full assignment.

        Expects the layout written by
        :func:`mhtrack.data.solution_to_results`; missing entries are 0.
        Appearance and disappearance states are deduced.
        """
        self._require_model()
        solution = np.zeros(self.last_model.number_of_variables, dtype=np.int64)

        for entry in results.get('detectionResults', []):
            node = self.graph.segmentation(entry['id'])
            solution[node.detection.model_variable_id] = int(entry['value'])

        for entry in results.get('linkingResults', []):
            key = (int(entry['src']), int(entry['dest']))
            if key not in self.graph.linking_hypotheses:
                raise ModelError(f"Ground truth refers to unknown link {key}")
            solution[self.graph.link(key).variable.model_variable_id] = int(entry['value'])

        for entry in results.get('divisionResults', []):
            value = int(entry['value'])
            if 'parent' in entry:
                key = (int(entry['parent']),) + tuple(int(c) for c in entry['children'])
                if key not in self.graph.division_hypotheses:
                    raise ModelError(f"Ground truth refers to unknown division {key}")
                solution[self.graph.division(key).variable.model_variable_id] = value
            else:
                node = self.graph.segmentation(entry['id'])
                if node.division.is_emitted():
                    solution[node.division.model_variable_id] = value
                elif value > 0:
                    raise ModelError(f"Ground truth divides at {node.id}, which cannot divide")

        return self.graph.deduce_appearance_disappearance_states(solution)

    def _require_model(self):
        if self.last_model is None:
            raise ModelError("No model has been built yet")

    # ------------------------------------------------------------------ #
    # Learning & export                                                    #
    # ------------------------------------------------------------------ #

    def learn(self, ground_truth: Sequence[int], weights: Optional[Sequence[float]] = None, config=None) -> np.ndarray:
        """
        Learn weights from a ground truth assignment.

        Args:
            ground_truth: Full assignment for the current model layout.
            weights: Initial weights, zeros if None.
            config: Optional LearningConfig.

        Returns:
            Learned weight vector.
        """
        from ..learning import StructuredMaxMarginLearner

        learner = StructuredMaxMarginLearner(self, config)
        return learner.learn(ground_truth, weights)

    def to_dot(self, filename: Optional[str] = None, solution: Optional[Sequence[int]] = None) -> str:
        """
        Graphviz export of the graph, optionally annotated with a solution.

        Args:
            filename: If given, the DOT text is written there.
            solution: Optional assignment for the most recently built model.

        Returns:
            DOT text.
        """
        dot = self.graph.to_dot(solution)
        if filename is not None:
            Path(filename).write_text(dot)
        return dot
