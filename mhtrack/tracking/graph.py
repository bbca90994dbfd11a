"""
Hypotheses graph container.

Holds all segmentation, linking and division hypotheses plus exclusion
constraints, addressed by stable keys. The topology is fixed once a model
has been built from it.
"""

import logging
from typing import Dict, Iterator, List, Optional, Sequence

import numpy as np

from ..exceptions import ConfigurationError, ModelError
from .hypotheses import (
    SegmentationHypothesis,
    LinkingHypothesis,
    DivisionHypothesis,
    ExclusionConstraint,
    LinkKey,
    DivisionKey
)
from .variable import Variable, WeightSpace

logger = logging.getLogger(__name__)


class HypothesesGraph:
    """Arena of tracking hypotheses."""

    def __init__(self):
        self.segmentation_hypotheses: Dict[int, SegmentationHypothesis] = {}
        self.linking_hypotheses: Dict[LinkKey, LinkingHypothesis] = {}
        self.division_hypotheses: Dict[DivisionKey, DivisionHypothesis] = {}
        self.exclusion_constraints: List[ExclusionConstraint] = []

    # ------------------------------------------------------------------ #
    # Construction                                                         #
    # ------------------------------------------------------------------ #

    def add_segmentation_hypothesis(
        self,
        hypothesis_id: int,
        detection_features: Optional[Sequence[Sequence[float]]],
        division_features: Optional[Sequence[Sequence[float]]] = None,
        appearance_features: Optional[Sequence[Sequence[float]]] = None,
        disappearance_features: Optional[Sequence[Sequence[float]]] = None
    ) -> SegmentationHypothesis:
        """
        Add a detection candidate.

        Args:
            hypothesis_id: Unique id of the segmentation hypothesis.
            detection_features: Feature vector per detection state.
            division_features: Feature vector per division state, if any.
            appearance_features: Feature vector per appearance state, if any.
            disappearance_features: Feature vector per disappearance state, if any.

        Returns:
            The new SegmentationHypothesis.
        """
        if hypothesis_id in self.segmentation_hypotheses:
            raise ModelError(f"Duplicate segmentation hypothesis id {hypothesis_id}")

        hypothesis = SegmentationHypothesis(
            hypothesis_id,
            detection_features,
            division_features,
            appearance_features,
            disappearance_features
        )
        self.segmentation_hypotheses[hypothesis.id] = hypothesis
        return hypothesis

    def add_linking_hypothesis(
        self,
        src_id: int,
        dest_id: int,
        features: Sequence[Sequence[float]]
    ) -> LinkingHypothesis:
        """Add a transition from ``src_id`` to ``dest_id``."""
        link = LinkingHypothesis(src_id, dest_id, features)
        if link.key in self.linking_hypotheses:
            raise ModelError(f"Duplicate linking hypothesis {link.key}")

        src = self.segmentation(link.src_id)
        dest = self.segmentation(link.dest_id)
        src.add_outgoing_link(link.key)
        dest.add_incoming_link(link.key)
        self.linking_hypotheses[link.key] = link
        return link

    def add_division_hypothesis(
        self,
        parent_id: int,
        child_ids: Sequence[int],
        features: Sequence[Sequence[float]]
    ) -> DivisionHypothesis:
        """Add an external division of ``parent_id`` into ``child_ids``."""
        division = DivisionHypothesis(parent_id, child_ids, features)
        if division.key in self.division_hypotheses:
            raise ModelError(f"Duplicate division hypothesis {division.key}")

        parent = self.segmentation(division.parent_id)
        children = [self.segmentation(c) for c in division.child_ids]
        parent.add_outgoing_division(division.key)
        for child in children:
            child.add_incoming_division(division.key)

        self.division_hypotheses[division.key] = division
        return division

    def add_exclusion_constraint(self, hypothesis_ids: Sequence[int], bound: int = 1) -> ExclusionConstraint:
        """Forbid more than ``bound`` of the given hypotheses to be active together."""
        exclusion = ExclusionConstraint(hypothesis_ids, bound)
        for hypothesis_id in exclusion.hypothesis_ids:
            self.segmentation(hypothesis_id)
        self.exclusion_constraints.append(exclusion)
        return exclusion

    # ------------------------------------------------------------------ #
    # Lookup                                                               #
    # ------------------------------------------------------------------ #

    def segmentation(self, hypothesis_id: int) -> SegmentationHypothesis:
        try:
            return self.segmentation_hypotheses[hypothesis_id]
        except KeyError:
            raise ModelError(f"Unknown segmentation hypothesis id {hypothesis_id}") from None

    def link(self, key: LinkKey) -> LinkingHypothesis:
        return self.linking_hypotheses[key]

    def division(self, key: DivisionKey) -> DivisionHypothesis:
        return self.division_hypotheses[key]

    def iter_segmentations(self) -> Iterator[SegmentationHypothesis]:
        """Segmentation hypotheses in ascending id order."""
        for key in sorted(self.segmentation_hypotheses):
            yield self.segmentation_hypotheses[key]

    def iter_links(self) -> Iterator[LinkingHypothesis]:
        for key in sorted(self.linking_hypotheses):
            yield self.linking_hypotheses[key]

    def iter_divisions(self) -> Iterator[DivisionHypothesis]:
        for key in sorted(self.division_hypotheses):
            yield self.division_hypotheses[key]

    def incoming_link_variables(self, node: SegmentationHypothesis) -> List[Variable]:
        return [self.linking_hypotheses[k].variable for k in node.incoming_links]

    def outgoing_link_variables(self, node: SegmentationHypothesis) -> List[Variable]:
        return [self.linking_hypotheses[k].variable for k in node.outgoing_links]

    def incoming_division_variables(self, node: SegmentationHypothesis) -> List[Variable]:
        return [self.division_hypotheses[k].variable for k in node.incoming_divisions]

    def outgoing_division_variables(self, node: SegmentationHypothesis) -> List[Variable]:
        return [self.division_hypotheses[k].variable for k in node.outgoing_divisions]

    def all_variables(self) -> Iterator[Variable]:
        for link in self.iter_links():
            yield link.variable
        for division in self.iter_divisions():
            yield division.variable
        for node in self.iter_segmentations():
            yield from node.variables()

    def __len__(self) -> int:
        return len(self.segmentation_hypotheses)

    # ------------------------------------------------------------------ #
    # Weights                                                              #
    # ------------------------------------------------------------------ #

    def compute_weight_space(self, states_share_weights: bool) -> WeightSpace:
        """
        Determine the number of weights per hypothesis kind.

        Every variable of a kind that has features must need the same
        number of weights. Variables without features are ignored.

        Raises:
            ConfigurationError: on inconsistent counts or when in-node and
                external divisions are mixed.
        """
        counts = {}

        def check(variable: Variable, kind: str, name: str):
            num_weights = variable.get_num_weights(states_share_weights)
            if not variable.has_features():
                return
            previous = counts.setdefault(kind, num_weights)
            if num_weights != previous:
                raise ConfigurationError(
                    f"{name} do not have the same number of features/weights "
                    f"({previous} vs {num_weights})"
                )

        for link in self.iter_links():
            check(link.variable, 'link', "Links")

        for node in self.iter_segmentations():
            check(node.detection, 'detection', "Detections")
            check(node.division, 'division', "Divisions")
            check(node.appearance, 'appearance', "Appearances")
            check(node.disappearance, 'disappearance', "Disappearances")

        for division in self.iter_divisions():
            check(division.variable, 'external_division', "External divisions")

        uses_in_node_divisions = any(n.division.has_features() for n in self.iter_segmentations())
        if uses_in_node_divisions and self.division_hypotheses:
            raise ConfigurationError(
                "Model cannot contain divisions within detection nodes and externally at the same time"
            )

        return WeightSpace(counts)

    def compute_joint_features(
        self,
        solution: Sequence[int],
        num_weights: int,
        states_share_weights: bool
    ) -> np.ndarray:
        """
        Joint feature vector of a solution; its energy is ``weights @ phi``.

        Requires the variables to be emitted (bound to weight ids).
        """
        joint_features = np.zeros(num_weights)
        for variable in self.all_variables():
            if variable.is_emitted():
                state = int(solution[variable.model_variable_id])
                variable.accumulate_features(state, joint_features, states_share_weights)
        return joint_features

    def reset_variable_ids(self):
        """Mark every variable as not part of a model."""
        for variable in self.all_variables():
            variable.reset()

    # ------------------------------------------------------------------ #
    # Solution helpers                                                     #
    # ------------------------------------------------------------------ #

    @staticmethod
    def _sum_values(variables: List[Variable], solution: Sequence[int], what: str) -> int:
        total = 0
        for variable in variables:
            if variable.model_variable_id < 0:
                raise ModelError(f"Cannot compute sum of active {what} that have not been added to a model")
            total += int(solution[variable.model_variable_id])
        return total

    def num_active_incoming(self, node: SegmentationHypothesis, solution: Sequence[int]) -> int:
        """Sum of incoming link and division values."""
        return (
            self._sum_values(self.incoming_link_variables(node), solution, "incoming links")
            + self._sum_values(self.incoming_division_variables(node), solution, "incoming divisions")
        )

    def num_active_outgoing(self, node: SegmentationHypothesis, solution: Sequence[int]) -> int:
        """Sum of outgoing link and division values."""
        return (
            self._sum_values(self.outgoing_link_variables(node), solution, "outgoing links")
            + self._sum_values(self.outgoing_division_variables(node), solution, "outgoing divisions")
        )

    def deduce_appearance_disappearance_states(self, solution: np.ndarray) -> np.ndarray:
        """
        Fill in appearance/disappearance states implied by a ground truth.

        An active node without active incoming (outgoing) flow appears
        (disappears) with its own detection value.

        Args:
            solution: Assignment, modified in place.

        Returns:
            The same array.
        """
        for node in self.iter_segmentations():
            value = int(solution[node.detection.model_variable_id])
            if value == 0:
                continue

            if self.num_active_incoming(node, solution) == 0:
                if not node.appearance.is_emitted():
                    raise ModelError(
                        f"Segmentation hypothesis {node.id}: ground truth contains an appearing "
                        "object but the hypothesis has no appearance features"
                    )
                solution[node.appearance.model_variable_id] = value

            if self.num_active_outgoing(node, solution) == 0:
                if not node.disappearance.is_emitted():
                    raise ModelError(
                        f"Segmentation hypothesis {node.id}: ground truth contains a disappearing "
                        "object but the hypothesis has no disappearance features"
                    )
                solution[node.disappearance.model_variable_id] = value

        return solution

    # ------------------------------------------------------------------ #
    # Export                                                               #
    # ------------------------------------------------------------------ #

    def to_dot(self, solution: Optional[Sequence[int]] = None) -> str:
        """Graphviz representation, active hypotheses highlighted."""
        parts = ["digraph G {\n"]
        parts.extend(node.to_dot(solution) for node in self.iter_segmentations())
        parts.extend(link.to_dot(solution) for link in self.iter_links())
        parts.extend(division.to_dot(solution) for division in self.iter_divisions())
        parts.extend(exclusion.to_dot() for exclusion in self.exclusion_constraints)
        parts.append("}\n")
        return "".join(parts)

    def summarize(self) -> str:
        lines = [
            "Hypotheses Graph Summary",
            "=" * 50,
            f"Segmentation hypotheses: {len(self.segmentation_hypotheses)}",
            f"Linking hypotheses: {len(self.linking_hypotheses)}",
            f"Division hypotheses: {len(self.division_hypotheses)}",
            f"Exclusion constraints: {len(self.exclusion_constraints)}",
        ]
        return "\n".join(lines)
