"""
Hypotheses graph entities.

Segmentation hypotheses are the nodes; linking and division hypotheses
are the edges. Nodes refer to their edges only by key, the edges
themselves live in :class:`~mhtrack.tracking.graph.HypothesesGraph`.
"""

from typing import List, Optional, Sequence, Tuple

from ..exceptions import ModelError
from .variable import Variable

LinkKey = Tuple[int, int]
DivisionKey = Tuple[int, ...]


def _variable_value(variable: Variable, solution: Optional[Sequence[int]]) -> int:
    if solution is None or variable.model_variable_id < 0:
        return 0
    return int(solution[variable.model_variable_id])


class LinkingHypothesis:
    """Directed transition between two segmentation hypotheses."""

    def __init__(self, src_id: int, dest_id: int, features: Optional[Sequence[Sequence[float]]] = None):
        self.src_id = int(src_id)
        self.dest_id = int(dest_id)
        self.variable = Variable(features)

    @property
    def key(self) -> LinkKey:
        return (self.src_id, self.dest_id)

    def to_dot(self, solution: Optional[Sequence[int]] = None) -> str:
        value = _variable_value(self.variable, solution)
        line = f'\t{self.src_id} -> {self.dest_id} [ label="value={value}" '
        if value > 0:
            line += 'color="blue" fontcolor="blue" '
        return line + "];\n"

    def __repr__(self) -> str:
        return f"LinkingHypothesis({self.src_id} -> {self.dest_id})"


class DivisionHypothesis:
    """External division: a parent splitting into a fixed group of children."""

    def __init__(
        self,
        parent_id: int,
        child_ids: Sequence[int],
        features: Optional[Sequence[Sequence[float]]] = None
    ):
        if len(child_ids) < 2:
            raise ModelError(f"Division of {parent_id} needs at least two children, got {list(child_ids)}")
        self.parent_id = int(parent_id)
        self.child_ids = tuple(int(c) for c in child_ids)
        self.variable = Variable(features)

    @property
    def key(self) -> DivisionKey:
        return (self.parent_id,) + self.child_ids

    def to_dot(self, solution: Optional[Sequence[int]] = None) -> str:
        value = _variable_value(self.variable, solution)
        name = "div_" + "_".join(str(i) for i in self.key)
        lines = [f'\t{name} [ label="division" shape="box" ];\n']
        style = 'color="blue" fontcolor="blue" ' if value > 0 else ''
        lines.append(f'\t{self.parent_id} -> {name} [ label="value={value}" {style}];\n')
        for child in self.child_ids:
            lines.append(f'\t{name} -> {child} [ {style}];\n')
        return "".join(lines)

    def __repr__(self) -> str:
        return f"DivisionHypothesis({self.parent_id} -> {list(self.child_ids)})"


class SegmentationHypothesis:
    """
    A trackable object candidate at one point in time.

    Owns the detection, division, appearance and disappearance variables.
    Incoming/outgoing links and divisions are stored as keys into the
    graph and sorted by variable id when the model is built.
    """

    def __init__(
        self,
        hypothesis_id: int,
        detection_features: Optional[Sequence[Sequence[float]]] = None,
        division_features: Optional[Sequence[Sequence[float]]] = None,
        appearance_features: Optional[Sequence[Sequence[float]]] = None,
        disappearance_features: Optional[Sequence[Sequence[float]]] = None
    ):
        self.id = int(hypothesis_id)
        self.detection = Variable(detection_features)
        self.division = Variable(division_features)
        self.appearance = Variable(appearance_features)
        self.disappearance = Variable(disappearance_features)

        self.incoming_links: List[LinkKey] = []
        self.outgoing_links: List[LinkKey] = []
        self.incoming_divisions: List[DivisionKey] = []
        self.outgoing_divisions: List[DivisionKey] = []

    def variables(self) -> List[Variable]:
        return [self.detection, self.division, self.appearance, self.disappearance]

    def _check_not_emitted(self):
        if self.detection.is_emitted():
            raise ModelError(
                f"Segmentation hypothesis {self.id}: links and divisions must be added "
                "before the hypothesis is added to a model"
            )

    def add_incoming_link(self, key: LinkKey):
        self._check_not_emitted()
        self.incoming_links.append(key)

    def add_outgoing_link(self, key: LinkKey):
        self._check_not_emitted()
        self.outgoing_links.append(key)

    def add_incoming_division(self, key: DivisionKey):
        self._check_not_emitted()
        self.incoming_divisions.append(key)

    def add_outgoing_division(self, key: DivisionKey):
        self._check_not_emitted()
        self.outgoing_divisions.append(key)

    def reset(self):
        for variable in self.variables():
            variable.reset()

    def to_dot(self, solution: Optional[Sequence[int]] = None) -> str:
        divides = _variable_value(self.division, solution) > 0
        line = f'\t{self.id} [ label="id={self.id}, div={"yes" if divides else "no"}'

        value = 0
        if solution is not None and self.detection.is_emitted():
            value = _variable_value(self.detection, solution)
            line += f", value={value}"
        line += '" '

        if value > 0:
            line += 'color="blue" fontcolor="blue" '
        return line + "];\n"

    def __repr__(self) -> str:
        return (
            f"SegmentationHypothesis(id={self.id}, "
            f"in={len(self.incoming_links)}, "
            f"out={len(self.outgoing_links)})"
        )


class ExclusionConstraint:
    """At most ``bound`` of the given segmentation hypotheses may be active."""

    def __init__(self, hypothesis_ids: Sequence[int], bound: int = 1):
        ids = sorted(set(int(i) for i in hypothesis_ids))
        if len(ids) < 2:
            raise ModelError(f"Exclusion needs at least two distinct hypotheses, got {list(hypothesis_ids)}")
        if bound < 0:
            raise ModelError(f"Exclusion bound must be non-negative, got {bound}")
        self.hypothesis_ids = tuple(ids)
        self.bound = int(bound)

    def to_dot(self) -> str:
        lines = []
        for i, a in enumerate(self.hypothesis_ids):
            for b in self.hypothesis_ids[i + 1:]:
                lines.append(f'\t{a} -> {b} [ style="dashed" dir="none" color="red" ];\n')
        return "".join(lines)

    def __repr__(self) -> str:
        return f"ExclusionConstraint({list(self.hypothesis_ids)}, bound={self.bound})"
