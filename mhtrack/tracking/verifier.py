"""
Solution verifier.

Checks an assignment against flow conservation, division, length-one
track and exclusion rules. Used both as a correctness check and to find
the segmentation hypotheses that need additional constraints in the
cutting-plane loop.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Set

from ..config import Settings
from ..exceptions import ConfigurationError
from .graph import HypothesesGraph
from .hypotheses import SegmentationHypothesis, ExclusionConstraint
from .variable import Variable

logger = logging.getLogger(__name__)


@dataclass
class VerificationReport:
    """Outcome of verifying one assignment."""

    valid: bool
    """True if no rule is violated."""

    violated_ids: Set[int] = field(default_factory=set)
    """Segmentation hypothesis ids whose constraints are violated."""

    violated_exclusions: List[int] = field(default_factory=list)
    """Indices of violated exclusion constraints."""

    messages: List[str] = field(default_factory=list)
    """One message per violation."""

    division_count: int = 0
    """Number of active in-node divisions."""


def _value(variable: Variable, solution: Sequence[int]) -> int:
    if variable.model_variable_id < 0:
        return 0
    return int(solution[variable.model_variable_id])


class SolutionVerifier:
    """
    Verifies assignments for a hypotheses graph.

    Args:
        graph: Hypotheses graph the assignment was computed for. Its
            variables must be emitted.
        settings: Model settings.
    """

    def __init__(self, graph: HypothesesGraph, settings: Optional[Settings]):
        if settings is None:
            raise ConfigurationError("Settings object cannot be None")
        self.graph = graph
        self.settings = settings

    def verify(self, solution: Sequence[int]) -> VerificationReport:
        """
        Verify a full assignment.

        Args:
            solution: One state per variable id. Not modified.

        Returns:
            VerificationReport.
        """
        report = VerificationReport(valid=True)

        for index, exclusion in enumerate(self.graph.exclusion_constraints):
            active = self.active_exclusion_members(exclusion, solution)
            if len(active) > exclusion.bound:
                report.valid = False
                report.violated_exclusions.append(index)
                report.violated_ids.update(active)
                report.messages.append(
                    f"Exclusion {list(exclusion.hypothesis_ids)}: {len(active)} active "
                    f"hypotheses exceed bound {exclusion.bound}"
                )

        for node in self.graph.iter_segmentations():
            problems = self.verify_node(node, solution)
            if problems:
                report.valid = False
                report.violated_ids.add(node.id)
                report.messages.extend(problems)

            report.division_count += _value(node.division, solution)

        for message in report.messages:
            logger.debug(message)

        logger.debug(
            f"Verified solution: valid={report.valid}, "
            f"violated hypotheses={len(report.violated_ids)}, "
            f"divisions={report.division_count}"
        )
        return report

    def active_exclusion_members(self, exclusion: ExclusionConstraint, solution: Sequence[int]) -> List[int]:
        return [
            i for i in exclusion.hypothesis_ids
            if _value(self.graph.segmentation(i).detection, solution) > 0
        ]

    def verify_node(self, node: SegmentationHypothesis, solution: Sequence[int]) -> List[str]:
        """
        Check all rules at one segmentation hypothesis.

        Returns:
            List of violation messages, empty if the node is consistent.
        """
        problems = []
        prefix = f"At node {node.id}"

        own_value = _value(node.detection, solution)
        division_value = _value(node.division, solution)
        appearance_value = _value(node.appearance, solution)
        disappearance_value = _value(node.disappearance, solution)

        # a merger may take part of its objects from outside the graph
        partial_merger = self.settings.allow_partial_merger_appearance and node.detection.num_states > 2

        # incoming
        sum_incoming = self.graph.num_active_incoming(node, solution)
        if appearance_value > 0 and sum_incoming > 0 and not partial_merger:
            problems.append(f"{prefix}: there are active incoming transitions and active appearances")
        sum_incoming += appearance_value

        if sum_incoming != own_value:
            problems.append(f"{prefix}: incoming={sum_incoming} is not equal to value={own_value}")

        # outgoing
        sum_outgoing = self.graph.num_active_outgoing(node, solution)
        if disappearance_value > 0 and sum_outgoing > 0 and not partial_merger:
            problems.append(f"{prefix}: there are active outgoing transitions and active disappearances")
        sum_outgoing += disappearance_value

        if sum_outgoing != own_value + division_value:
            problems.append(
                f"{prefix}: outgoing={sum_outgoing} is not equal to "
                f"value + division={own_value} + {division_value}"
            )

        # divisions
        if division_value > own_value:
            problems.append(f"{prefix}: division > value: {division_value} > {own_value}")

        if division_value > 0 and disappearance_value > 0:
            problems.append(f"{prefix}: division and disappearance are both active")

        if not self.settings.allow_length_one_tracks and appearance_value > 0 and disappearance_value > 0:
            problems.append(f"{prefix}: length one track even though it is forbidden")

        return problems
