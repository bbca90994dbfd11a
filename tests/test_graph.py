"""
Tests for the hypotheses graph.
"""

import unittest
import numpy as np

from mhtrack.config import Settings
from mhtrack.exceptions import ConfigurationError, ModelError
from mhtrack.tracking import HypothesesGraph, ExclusionConstraint, DivisionHypothesis, ModelBuilder

BINARY = [[0.0], [1.0]]


def make_chain_graph():
    """1 -> 2 with binary features everywhere."""
    graph = HypothesesGraph()
    for node_id in (1, 2):
        graph.add_segmentation_hypothesis(
            node_id, BINARY,
            appearance_features=BINARY,
            disappearance_features=BINARY
        )
    graph.add_linking_hypothesis(1, 2, BINARY)
    return graph


class TestGraphConstruction(unittest.TestCase):
    """Test adding hypotheses."""

    def test_add_hypotheses(self):
        graph = make_chain_graph()

        self.assertEqual(len(graph), 2)
        self.assertEqual(graph.segmentation(1).outgoing_links, [(1, 2)])
        self.assertEqual(graph.segmentation(2).incoming_links, [(1, 2)])

    def test_duplicate_segmentation_rejected(self):
        graph = make_chain_graph()

        with self.assertRaises(ModelError):
            graph.add_segmentation_hypothesis(1, BINARY)

    def test_duplicate_link_rejected(self):
        graph = make_chain_graph()

        with self.assertRaises(ModelError):
            graph.add_linking_hypothesis(1, 2, BINARY)

    def test_link_to_unknown_node_leaves_graph_unchanged(self):
        graph = make_chain_graph()

        with self.assertRaises(ModelError):
            graph.add_linking_hypothesis(2, 99, BINARY)

        self.assertEqual(graph.segmentation(2).outgoing_links, [])
        self.assertNotIn((2, 99), graph.linking_hypotheses)

    def test_division_hypothesis(self):
        graph = make_chain_graph()
        graph.add_segmentation_hypothesis(3, BINARY)
        graph.add_division_hypothesis(1, [2, 3], BINARY)

        self.assertEqual(graph.segmentation(1).outgoing_divisions, [(1, 2, 3)])
        self.assertEqual(graph.segmentation(3).incoming_divisions, [(1, 2, 3)])

    def test_division_needs_two_children(self):
        with self.assertRaises(ModelError):
            DivisionHypothesis(1, [2], BINARY)

    def test_exclusion_canonical(self):
        exclusion = ExclusionConstraint([5, 2, 5, 3])

        self.assertEqual(exclusion.hypothesis_ids, (2, 3, 5))
        self.assertEqual(exclusion.bound, 1)

    def test_exclusion_validation(self):
        with self.assertRaises(ModelError):
            ExclusionConstraint([1, 1])
        with self.assertRaises(ModelError):
            ExclusionConstraint([1, 2], bound=-1)

    def test_exclusion_with_unknown_node(self):
        graph = make_chain_graph()

        with self.assertRaises(ModelError):
            graph.add_exclusion_constraint([1, 42])
        self.assertEqual(graph.exclusion_constraints, [])


class TestWeightSpace(unittest.TestCase):
    """Test weight counting over the graph."""

    def test_empty_graph_has_no_weights(self):
        space = HypothesesGraph().compute_weight_space(True)

        self.assertEqual(space.num_weights, 0)
        self.assertEqual(space.counts['detection'], 0)

    def test_counts(self):
        space = make_chain_graph().compute_weight_space(True)

        self.assertEqual(space.counts['link'], 1)
        self.assertEqual(space.counts['detection'], 1)
        self.assertEqual(space.counts['division'], 0)
        self.assertEqual(space.counts['appearance'], 1)
        self.assertEqual(space.counts['disappearance'], 1)
        self.assertEqual(space.num_weights, 4)

    def test_detection_weights_equal_feature_dimension(self):
        graph = HypothesesGraph()
        graph.add_segmentation_hypothesis(1, [[0.0, 0.0, 0.0], [1.0, 2.0, 3.0]])
        graph.add_segmentation_hypothesis(2, [[0.0, 0.0, 0.0], [4.0, 5.0, 6.0]])

        self.assertEqual(graph.compute_weight_space(True).counts['detection'], 3)

    def test_mismatching_counts_rejected(self):
        graph = make_chain_graph()
        graph.add_segmentation_hypothesis(3, [[0.0, 0.0], [1.0, 1.0]])

        with self.assertRaises(ConfigurationError):
            graph.compute_weight_space(True)

    def test_mixed_division_styles_rejected(self):
        graph = HypothesesGraph()
        graph.add_segmentation_hypothesis(1, BINARY, division_features=BINARY)
        graph.add_segmentation_hypothesis(2, BINARY)
        graph.add_segmentation_hypothesis(3, BINARY)
        graph.add_division_hypothesis(1, [2, 3], BINARY)

        with self.assertRaises(ConfigurationError):
            graph.compute_weight_space(True)


class TestSolutionHelpers(unittest.TestCase):
    """Test helpers working on an assignment."""

    def setUp(self):
        self.graph = make_chain_graph()
        ModelBuilder(self.graph, Settings()).build(np.zeros(4))
        # ids: link=0, node 1: det=1 app=2 dis=3, node 2: det=4 app=5 dis=6

    def test_active_flow(self):
        solution = [1, 1, 1, 0, 1, 0, 1]

        self.assertEqual(self.graph.num_active_outgoing(self.graph.segmentation(1), solution), 1)
        self.assertEqual(self.graph.num_active_incoming(self.graph.segmentation(1), solution), 0)
        self.assertEqual(self.graph.num_active_incoming(self.graph.segmentation(2), solution), 1)

    def test_unemitted_link_rejected(self):
        self.graph.reset_variable_ids()

        with self.assertRaises(ModelError):
            self.graph.num_active_incoming(self.graph.segmentation(2), [0] * 7)

    def test_deduce_appearance_disappearance(self):
        solution = np.array([1, 1, 0, 0, 1, 0, 0])

        deduced = self.graph.deduce_appearance_disappearance_states(solution)

        np.testing.assert_array_equal(deduced, [1, 1, 1, 0, 1, 0, 1])

    def test_joint_features(self):
        phi = self.graph.compute_joint_features([1, 1, 1, 0, 1, 0, 1], 4, True)

        # link, detection, appearance, disappearance
        np.testing.assert_allclose(phi, [1.0, 2.0, 1.0, 1.0])

    def test_to_dot(self):
        dot = self.graph.to_dot([1, 1, 1, 0, 1, 0, 1])

        self.assertTrue(dot.startswith("digraph G {"))
        self.assertIn('1 -> 2 [ label="value=1" color="blue"', dot)
        self.assertIn("id=2, div=no, value=1", dot)


if __name__ == '__main__':
    unittest.main()
