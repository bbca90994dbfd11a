"""
Model builder - turns a hypotheses graph into an ILP.

Variables are emitted in a fixed order (links, external divisions, then
per segmentation hypothesis detection/division/appearance/disappearance)
so that rebuilding an unchanged graph yields an identical model.
"""

import logging
from typing import Iterable, Optional, Sequence, Tuple

import numpy as np

from ..config import Settings
from ..exceptions import ConfigurationError, ModelError, WeightDimensionError
from .graph import HypothesesGraph
from .hypotheses import SegmentationHypothesis
from .ilp import IlpModel, LinearConstraint, ConstraintOperator
from .variable import WeightSpace

logger = logging.getLogger(__name__)


class ModelBuilder:
    """
    Emits variables and constraints of a hypotheses graph.

    Args:
        graph: The hypotheses graph.
        settings: Model settings.
    """

    def __init__(self, graph: HypothesesGraph, settings: Optional[Settings]):
        if settings is None:
            raise ConfigurationError("Settings object cannot be None")
        self.graph = graph
        self.settings = settings

    def compute_weight_space(self) -> WeightSpace:
        return self.graph.compute_weight_space(self.settings.states_share_weights)

    def check_weights(self, weights: Sequence[float]) -> Tuple[np.ndarray, WeightSpace]:
        """
        Validate the weight vector against the graph.

        Raises:
            ConfigurationError: if the graph's weight counts are inconsistent.
            WeightDimensionError: if the vector has the wrong length.
        """
        weight_space = self.compute_weight_space()
        weights = np.asarray(weights, dtype=np.float64).ravel()
        if len(weights) != weight_space.num_weights:
            raise WeightDimensionError(weight_space.num_weights, len(weights))
        return weights, weight_space

    # ------------------------------------------------------------------ #
    # Main entry point                                                     #
    # ------------------------------------------------------------------ #

    def build(
        self,
        weights: Sequence[float],
        with_division_constraints: bool = True,
        with_merger_constraints: bool = True,
        constrained_ids: Iterable[int] = ()
    ) -> IlpModel:
        """
        Build the ILP for the given weights.

        Args:
            weights: Flat weight vector.
            with_division_constraints: Add division constraints for all nodes.
            with_merger_constraints: Add merger constraints for all nodes.
            constrained_ids: Segmentation hypothesis ids that get division
                and merger constraints even if those are globally off.

        Returns:
            The solver-agnostic model.
        """
        weights, weight_space = self.check_weights(weights)
        constrained_ids = set(constrained_ids)
        share = self.settings.states_share_weights

        self.graph.reset_variable_ids()
        model = IlpModel()

        # links first, node constraints refer to them
        link_ids = weight_space.ids('link')
        for link in self.graph.iter_links():
            if not link.variable.has_features():
                raise ModelError(f"Linking hypothesis {link.key} has no features")
            link.variable.add_to_model(model, weights, link_ids, share)

        external_ids = weight_space.ids('external_division')
        for division in self.graph.iter_divisions():
            if not division.variable.has_features():
                raise ModelError(f"Division hypothesis {division.key} has no features")
            division.variable.add_to_model(model, weights, external_ids, share)

        nodes = list(self.graph.iter_segmentations())
        for node in nodes:
            self._add_node_variables(model, node, weights, weight_space)

        for node in nodes:
            self._add_flow_constraints(model, node)

            division_constrained = with_division_constraints or node.id in constrained_ids
            if division_constrained:
                self._add_division_constraints(model, node)

            self._add_external_division_constraints(model, node)

            if not self.settings.allow_length_one_tracks:
                self._add_pairwise_constraint(
                    model, node.appearance.model_variable_id, node.disappearance.model_variable_id
                )

            if with_merger_constraints or node.id in constrained_ids:
                self._add_merger_constraints(model, node, skip_division_pair=division_constrained)

        self._add_exclusion_constraints(model)

        logger.debug(
            f"Built model with {model.number_of_variables} variables, "
            f"{model.number_of_indicators} indicator variables and "
            f"{model.number_of_constraints} constraints "
            f"(division constraints: {'all' if with_division_constraints else len(constrained_ids)}, "
            f"merger constraints: {'all' if with_merger_constraints else len(constrained_ids)})"
        )
        return model

    # ------------------------------------------------------------------ #
    # Variables                                                            #
    # ------------------------------------------------------------------ #

    def _add_node_variables(
        self,
        model: IlpModel,
        node: SegmentationHypothesis,
        weights: np.ndarray,
        weight_space: WeightSpace
    ):
        share = self.settings.states_share_weights

        node.detection.add_to_model(model, weights, weight_space.ids('detection'), share)
        if not node.detection.is_emitted():
            raise ModelError(f"Segmentation hypothesis {node.id}: detection variable must have some features")

        # a division needs a choice between several successors
        if len(node.outgoing_links) > 1:
            node.division.add_to_model(model, weights, weight_space.ids('division'), share)

        node.appearance.add_to_model(model, weights, weight_space.ids('appearance'), share)
        node.disappearance.add_to_model(model, weights, weight_space.ids('disappearance'), share)

        graph = self.graph
        node.incoming_links.sort(key=lambda k: graph.link(k).variable.model_variable_id)
        node.outgoing_links.sort(key=lambda k: graph.link(k).variable.model_variable_id)
        node.incoming_divisions.sort(key=lambda k: graph.division(k).variable.model_variable_id)
        node.outgoing_divisions.sort(key=lambda k: graph.division(k).variable.model_variable_id)

    # ------------------------------------------------------------------ #
    # Constraints                                                          #
    # ------------------------------------------------------------------ #

    @staticmethod
    def _add_value(model: IlpModel, constraint: LinearConstraint, variable_id: int, coefficient: float):
        constraint.add_value_terms(variable_id, model.num_states(variable_id), coefficient)

    def _add_flow_constraints(self, model: IlpModel, node: SegmentationHypothesis):
        """
        Flow conservation at a node:

            sum(incoming) + appearance - detection = 0
            sum(outgoing) + disappearance - detection - division = 0
        """
        incoming = LinearConstraint(operator=ConstraintOperator.EQUAL, bound=0.0)
        for variable in self.graph.incoming_link_variables(node):
            self._add_value(model, incoming, variable.model_variable_id, 1.0)
        for variable in self.graph.incoming_division_variables(node):
            self._add_value(model, incoming, variable.model_variable_id, 1.0)
        self._add_value(model, incoming, node.detection.model_variable_id, -1.0)
        self._add_value(model, incoming, node.appearance.model_variable_id, 1.0)
        model.add_constraint(incoming)

        outgoing = LinearConstraint(operator=ConstraintOperator.EQUAL, bound=0.0)
        for variable in self.graph.outgoing_link_variables(node):
            self._add_value(model, outgoing, variable.model_variable_id, 1.0)
        for variable in self.graph.outgoing_division_variables(node):
            self._add_value(model, outgoing, variable.model_variable_id, 1.0)
        self._add_value(model, outgoing, node.detection.model_variable_id, -1.0)
        self._add_value(model, outgoing, node.division.model_variable_id, -1.0)
        self._add_value(model, outgoing, node.disappearance.model_variable_id, 1.0)
        model.add_constraint(outgoing)

    def _add_division_constraints(self, model: IlpModel, node: SegmentationHypothesis):
        """
        division <= detection, 2 * division <= sum(outgoing links) if required,
        and division and disappearance never both active.
        """
        division_id = node.division.model_variable_id
        if division_id < 0:
            return

        constraint = LinearConstraint(operator=ConstraintOperator.LESS_EQUAL, bound=0.0)
        constraint.add_state_term(node.detection.model_variable_id, 1, -1.0)
        constraint.add_state_term(division_id, 1, 1.0)
        model.add_constraint(constraint)

        if self.settings.require_separate_children_of_division:
            children = LinearConstraint(operator=ConstraintOperator.LESS_EQUAL, bound=0.0)
            for variable in self.graph.outgoing_link_variables(node):
                children.add_state_term(variable.model_variable_id, 1, -1.0)
            children.add_state_term(division_id, 1, 2.0)
            model.add_constraint(children)

        self._add_pairwise_constraint(model, node.disappearance.model_variable_id, division_id)

    def _add_external_division_constraints(self, model: IlpModel, node: SegmentationHypothesis):
        """Each grouping needs an active parent; at most one grouping per parent."""
        only_one = LinearConstraint(operator=ConstraintOperator.LESS_EQUAL, bound=1.0)

        for variable in self.graph.outgoing_division_variables(node):
            constraint = LinearConstraint(operator=ConstraintOperator.LESS_EQUAL, bound=0.0)
            constraint.add_state_term(variable.model_variable_id, 1, 1.0)
            constraint.add_state_term(node.detection.model_variable_id, 1, -1.0)
            model.add_constraint(constraint)

            only_one.add_state_term(variable.model_variable_id, 1, 1.0)

        model.add_constraint(only_one)

    def _add_merger_constraints(
        self,
        model: IlpModel,
        node: SegmentationHypothesis,
        skip_division_pair: bool = False
    ):
        """
        Keep merged (multi-object) nodes from mixing appearances and transitions.

        The disappearance/division pair is left out when the division
        constraints of the node already contain it.
        """
        if node.detection.num_states <= 2:
            return

        appearance_id = node.appearance.model_variable_id
        disappearance_id = node.disappearance.model_variable_id
        allow_partial = self.settings.allow_partial_merger_appearance

        if appearance_id >= 0 and not allow_partial:
            for variable in self.graph.incoming_link_variables(node):
                self._add_pairwise_constraint(model, appearance_id, variable.model_variable_id)

        if disappearance_id >= 0:
            if not allow_partial:
                for variable in self.graph.outgoing_link_variables(node):
                    self._add_pairwise_constraint(model, disappearance_id, variable.model_variable_id)

            if node.division.is_emitted() and not skip_division_pair:
                self._add_pairwise_constraint(model, disappearance_id, node.division.model_variable_id)

    def _add_exclusion_constraints(self, model: IlpModel):
        """sum(member[0]) >= n - bound, i.e. at most ``bound`` members active."""
        for exclusion in self.graph.exclusion_constraints:
            variable_ids = sorted(
                self.graph.segmentation(i).detection.model_variable_id
                for i in exclusion.hypothesis_ids
            )
            constraint = LinearConstraint(
                operator=ConstraintOperator.GREATER_EQUAL,
                bound=float(len(variable_ids) - exclusion.bound)
            )
            for variable_id in variable_ids:
                constraint.add_state_term(variable_id, 0, 1.0)
            model.add_constraint(constraint)

    @staticmethod
    def _add_pairwise_constraint(
        model: IlpModel,
        variable_a: int,
        variable_b: int,
        state_a: int = 0,
        state_b: int = 0,
        bound: float = 1.0,
        operator: ConstraintOperator = ConstraintOperator.GREATER_EQUAL
    ):
        """
        Add ``a[state_a] + b[state_b] (op) bound``, by default
        "at least one of the two is inactive".
        """
        if variable_a < 0 or variable_b < 0:
            return

        if variable_a > variable_b:
            variable_a, variable_b = variable_b, variable_a
            state_a, state_b = state_b, state_a

        constraint = LinearConstraint(operator=operator, bound=float(bound))
        constraint.add_state_term(variable_a, state_a, 1.0)
        constraint.add_state_term(variable_b, state_b, 1.0)
        model.add_constraint(constraint)
