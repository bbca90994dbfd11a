"""
Variables and weight binding.

A :class:`Variable` is an indicator over a finite set of mutually exclusive
states with one feature vector per state. Emitting it into an
:class:`~mhtrack.tracking.ilp.IlpModel` turns those features into one cost
per state by taking dot products with a slice of the global weight vector.

:class:`WeightSpace` hands out the contiguous weight-id ranges per
hypothesis kind. The order of the kinds is the layout of the flat weight
vector and must not change.
"""

from typing import Dict, List, Optional, Sequence

import numpy as np

from ..exceptions import ModelError

StateFeatureVector = List[List[float]]

WEIGHT_KINDS = (
    'link',
    'detection',
    'division',
    'appearance',
    'disappearance',
    'external_division'
)

KIND_LABELS = {
    'link': 'Link',
    'detection': 'Detection',
    'division': 'Division',
    'appearance': 'Appearance',
    'disappearance': 'Disappearance',
    'external_division': 'External Division'
}


class Variable:
    """
    Indicator variable with per-state feature vectors.

    State 0 is the "inactive" state. The solver-assigned id is -1 until
    the variable has been emitted into a model.
    """

    def __init__(self, features: Optional[Sequence[Sequence[float]]] = None):
        """
        Initialize variable.

        Args:
            features: One feature vector per state, or None for an unused
                      variable.
        """
        self.features: StateFeatureVector = [
            [float(v) for v in state_features] for state_features in (features or [])
        ]

        dims = {len(f) for f in self.features}
        if len(dims) > 1:
            raise ModelError(
                f"All states of a variable need the same number of features, got {sorted(dims)}"
            )

        self.model_variable_id = -1
        self.weight_ids: List[int] = []

    @property
    def num_states(self) -> int:
        return len(self.features)

    @property
    def feature_dim(self) -> int:
        return len(self.features[0]) if self.features else 0

    def has_features(self) -> bool:
        return len(self.features) > 0

    def is_emitted(self) -> bool:
        return self.model_variable_id >= 0

    def get_num_weights(self, states_share_weights: bool) -> int:
        """
        Number of weights this variable binds to.

        Args:
            states_share_weights: Whether all states use the same weights.

        Returns:
            feature_dim if states share weights, otherwise
            feature_dim * (num_states - 1); 0 without features.
        """
        if not self.features:
            return 0
        if states_share_weights:
            return self.feature_dim
        return self.feature_dim * (self.num_states - 1)

    def state_weight_ids(self, state: int, states_share_weights: bool) -> List[int]:
        """Weight ids the given state binds to (empty for the baseline state)."""
        if states_share_weights:
            return self.weight_ids
        if state == 0:
            return []
        d = self.feature_dim
        return self.weight_ids[(state - 1) * d:state * d]

    def compute_state_costs(
        self,
        weights: np.ndarray,
        weight_ids: Sequence[int],
        states_share_weights: bool
    ) -> np.ndarray:
        """
        Compute one objective coefficient per state.

        Args:
            weights: Full weight vector.
            weight_ids: Weight ids of this variable's kind.
            states_share_weights: Whether all states use the same weights.

        Returns:
            Array of length num_states.
        """
        self.weight_ids = list(weight_ids)[:self.get_num_weights(states_share_weights)]
        costs = np.zeros(self.num_states)

        for state, state_features in enumerate(self.features):
            ids = self.state_weight_ids(state, states_share_weights)
            if ids:
                costs[state] = float(np.dot(state_features, weights[ids]))

        return costs

    def add_to_model(
        self,
        model,
        weights: np.ndarray,
        weight_ids: Sequence[int],
        states_share_weights: bool
    ) -> int:
        """
        Emit this variable into an ILP model.

        A variable without features is not emitted and keeps id -1.

        Returns:
            The assigned variable id.
        """
        if not self.features:
            return self.model_variable_id

        costs = self.compute_state_costs(weights, weight_ids, states_share_weights)
        self.model_variable_id = model.add_variable(costs)
        return self.model_variable_id

    def accumulate_features(
        self,
        state: int,
        joint_features: np.ndarray,
        states_share_weights: bool
    ):
        """Add the features of ``state`` onto the joint feature vector."""
        ids = self.state_weight_ids(state, states_share_weights)
        if ids:
            joint_features[ids] += self.features[state]

    def reset(self):
        """Forget the emitted id and weight binding."""
        self.model_variable_id = -1
        self.weight_ids = []

    def __repr__(self) -> str:
        return (
            f"Variable(states={self.num_states}, "
            f"features={self.feature_dim}, "
            f"id={self.model_variable_id})"
        )


class WeightSpace:
    """
    Allocates contiguous weight-id ranges per hypothesis kind.

    Kinds are laid out in the order of :data:`WEIGHT_KINDS`.
    """

    def __init__(self, counts: Optional[Dict[str, int]] = None):
        counts = counts or {}
        unknown = set(counts) - set(WEIGHT_KINDS)
        if unknown:
            raise ValueError(f"Unknown weight kinds: {sorted(unknown)}")

        self.counts = {kind: int(counts.get(kind, 0)) for kind in WEIGHT_KINDS}
        self._ranges: Dict[str, range] = {}

        offset = 0
        for kind in WEIGHT_KINDS:
            self._ranges[kind] = range(offset, offset + self.counts[kind])
            offset += self.counts[kind]

        self.num_weights = offset

    def ids(self, kind: str) -> range:
        """Weight ids of a kind."""
        return self._ranges[kind]

    def descriptions(self) -> List[str]:
        """Human readable description of every weight, in weight-id order."""
        descriptions = []
        for kind in WEIGHT_KINDS:
            for f in range(self.counts[kind]):
                descriptions.append(f"{KIND_LABELS[kind]} - feature {f}")
        return descriptions

    def __len__(self) -> int:
        return self.num_weights

    def __repr__(self) -> str:
        return f"WeightSpace({self.counts})"
