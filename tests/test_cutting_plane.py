"""
Tests for the cutting-plane loop with a scripted solver.
"""

import unittest
from unittest import mock

import numpy as np

from mhtrack.config import Settings
from mhtrack.exceptions import SolverError, WeightDimensionError
from mhtrack.solver import SolverBackend, SolverParameters, SolverResult
from mhtrack.tracking import (
    HypothesesGraph,
    ModelBuilder,
    SolutionVerifier,
    CuttingPlaneState,
    InferenceStatus,
    run_cutting_plane,
    TrackingModel
)

BINARY = [[0.0], [1.0]]

# ids: links 0 (1->2), 1 (1->3); node 1: det 2, div 3, app 4, dis 5;
# node 2: det 6, app 7, dis 8; node 3: det 9, app 10, dis 11
PHANTOM_DIVISION = [1, 0, 0, 1, 0, 0, 1, 0, 1, 1, 1, 1]
VALID_DIVISION = [1, 1, 1, 1, 1, 0, 1, 0, 1, 1, 0, 1]


def make_division_graph():
    graph = HypothesesGraph()
    graph.add_segmentation_hypothesis(
        1, BINARY, division_features=BINARY,
        appearance_features=BINARY, disappearance_features=BINARY
    )
    for node_id in (2, 3):
        graph.add_segmentation_hypothesis(
            node_id, BINARY, appearance_features=BINARY, disappearance_features=BINARY
        )
        graph.add_linking_hypothesis(1, node_id, BINARY)
    return graph


class ScriptedSolver(SolverBackend):
    """Returns pre-recorded assignments, one per call."""

    name = "scripted"

    def __init__(self, solutions):
        self.solutions = list(solutions)
        self.calls = []

    def solve(self, model, parameters):
        solution = np.asarray(self.solutions[min(len(self.calls), len(self.solutions) - 1)])
        self.calls.append((model.number_of_constraints, parameters.integer_constraints))
        return SolverResult(
            solution=solution,
            objective=model.evaluate(solution),
            state_values=np.ones(len(solution))
        )


class TestCuttingPlane(unittest.TestCase):
    """Test the lazy constraint loop."""

    def setUp(self):
        self.graph = make_division_graph()
        self.settings = Settings()
        self.builder = ModelBuilder(self.graph, self.settings)
        self.verifier = SolutionVerifier(self.graph, self.settings)
        self.weights = np.ones(5)

    def run_loop(self, solver, integer_constraints=True, retry=False):
        return run_cutting_plane(
            self.builder,
            self.verifier,
            solver,
            self.weights,
            SolverParameters(integer_constraints=integer_constraints),
            retry_with_integer_constraints=retry
        )

    def test_converges_after_adding_constraints(self):
        solver = ScriptedSolver([PHANTOM_DIVISION, VALID_DIVISION])

        result = self.run_loop(solver)

        self.assertEqual(result.status, InferenceStatus.VALID)
        self.assertTrue(result.valid)
        self.assertTrue(result.converged)
        self.assertEqual(result.iterations, 2)
        self.assertEqual(result.constrained_ids, {1})
        np.testing.assert_array_equal(result.solution, VALID_DIVISION)
        # division <= detection, 2 * division <= children and the
        # division/disappearance pair added for node 1
        self.assertEqual(solver.calls[1][0], solver.calls[0][0] + 3)

    def test_first_model_has_no_division_constraints(self):
        solver = ScriptedSolver([VALID_DIVISION])

        result = self.run_loop(solver)

        relaxed = self.builder.build(self.weights, False, False)
        self.assertEqual(result.iterations, 1)
        self.assertEqual(solver.calls[0][0], relaxed.number_of_constraints)

    def test_not_converged(self):
        solver = ScriptedSolver([PHANTOM_DIVISION])

        result = self.run_loop(solver)

        self.assertEqual(result.status, InferenceStatus.NOT_CONVERGED)
        self.assertFalse(result.valid)
        self.assertEqual(result.iterations, 2)
        self.assertEqual(result.report.violated_ids, {1})

    def test_constrained_set_is_monotone(self):
        solver = ScriptedSolver([PHANTOM_DIVISION, PHANTOM_DIVISION, VALID_DIVISION])

        result = self.run_loop(solver)

        sizes = [record.num_constrained for record in result.history]
        self.assertEqual(sizes, sorted(sizes))
        self.assertLessEqual(result.iterations, len(self.graph) + 1)

    def test_retry_with_integer_constraints(self):
        solver = ScriptedSolver([PHANTOM_DIVISION, PHANTOM_DIVISION, VALID_DIVISION])

        result = self.run_loop(solver, integer_constraints=False, retry=True)

        self.assertEqual(result.status, InferenceStatus.VALID)
        self.assertEqual([integer for _, integer in solver.calls], [False, False, True])
        self.assertEqual([r.integer_constraints for r in result.history], [False, False, True])

    def test_retry_only_once(self):
        solver = ScriptedSolver([PHANTOM_DIVISION])

        result = self.run_loop(solver, integer_constraints=False, retry=True)

        self.assertEqual(result.status, InferenceStatus.NOT_CONVERGED)
        self.assertEqual([integer for _, integer in solver.calls], [False, False, True])

    def test_no_retry_by_default(self):
        solver = ScriptedSolver([PHANTOM_DIVISION, PHANTOM_DIVISION, VALID_DIVISION])

        result = self.run_loop(solver, integer_constraints=False)

        self.assertEqual(result.status, InferenceStatus.NOT_CONVERGED)
        self.assertEqual(len(solver.calls), 2)

    def test_continue_from_state(self):
        state = CuttingPlaneState(constrained_ids={1})
        solver = ScriptedSolver([VALID_DIVISION])

        result = run_cutting_plane(
            self.builder, self.verifier, solver, self.weights, SolverParameters(), state=state
        )

        full = self.builder.build(self.weights, True, False)
        self.assertEqual(solver.calls[0][0], full.number_of_constraints)
        self.assertEqual(result.constrained_ids, {1})

    def test_solver_error_propagates(self):
        solver = mock.MagicMock(spec=SolverBackend)
        solver.solve.side_effect = SolverError("problem is infeasible", status=2)

        with self.assertRaises(SolverError) as ctx:
            self.run_loop(solver)
        self.assertEqual(ctx.exception.status, 2)

    def test_wrong_weight_length(self):
        solver = ScriptedSolver([VALID_DIVISION])
        self.weights = np.ones(3)

        with self.assertRaises(WeightDimensionError):
            self.run_loop(solver)
        self.assertEqual(solver.calls, [])

    def test_augment(self):
        state = CuttingPlaneState()

        self.assertEqual(state.augment({1, 2}), 2)
        self.assertEqual(state.augment({2, 3}), 1)
        self.assertEqual(state.augment(set()), 0)
        self.assertEqual(state.constrained_ids, {1, 2, 3})


class TestTrackingModelWithScriptedSolver(unittest.TestCase):
    """TrackingModel plumbing around the loop."""

    def test_infer_reports_invalid(self):
        model = TrackingModel(make_division_graph(), Settings(), solver=ScriptedSolver([PHANTOM_DIVISION]))

        result = model.infer(np.ones(5))

        self.assertEqual(result.status, InferenceStatus.INVALID)
        self.assertIs(model.last_model, result.model)

    def test_infer_with_cutting_constraints(self):
        solver = ScriptedSolver([PHANTOM_DIVISION, VALID_DIVISION])
        model = TrackingModel(make_division_graph(), Settings(), solver=solver)

        result = model.infer_with_cutting_constraints(np.ones(5))

        self.assertTrue(result.valid)
        self.assertAlmostEqual(model.last_solution_value, result.objective)
        self.assertAlmostEqual(model.evaluate_solution(result.solution), result.objective)


if __name__ == '__main__':
    unittest.main()
