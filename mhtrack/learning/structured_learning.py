"""
Structured max-margin weight learning.

Minimises the regularised structured hinge loss

    lambda/2 ||w||^2 + E_w(y*) - min_y [E_w(y) - Hamming(y, y*)]

by subgradient descent, where E_w is the tracking energy and y* the
ground truth. The inner minimisation is a loss-augmented solve of the
full tracking ILP.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

import numpy as np
from tqdm import tqdm

from ..config import LearningConfig
from ..exceptions import ModelError, WeightDimensionError
from ..tracking.ilp import IlpModel

logger = logging.getLogger(__name__)


@dataclass
class LearningHistory:
    """Per-iteration learning diagnostics."""
    losses: List[float] = field(default_factory=list)
    hamming_losses: List[int] = field(default_factory=list)
    weight_norms: List[float] = field(default_factory=list)


class StructuredMaxMarginLearner:
    """
    Subgradient structured SVM over a tracking model.

    Args:
        model: TrackingModel whose graph the ground truth refers to.
        config: Learning configuration, defaults if None.
        verbose: Show a progress bar.
    """

    def __init__(self, model, config: Optional[LearningConfig] = None, verbose: bool = False):
        self.model = model
        self.config = config or LearningConfig()
        self.verbose = verbose
        self.history = LearningHistory()

    def joint_feature_vector(self, solution: Sequence[int]) -> np.ndarray:
        """Joint features of an assignment for the most recently built model."""
        num_weights = self.model.compute_num_weights()
        return self.model.graph.compute_joint_features(
            solution, num_weights, self.model.settings.states_share_weights
        )

    def _loss_augment(self, ilp: IlpModel, ground_truth: np.ndarray):
        """Subtract one from every state cost that disagrees with the ground truth."""
        for variable_id, costs in enumerate(ilp.state_costs):
            for state in range(len(costs)):
                if state != ground_truth[variable_id]:
                    ilp.add_to_state_cost(variable_id, state, -1.0)

    def learn(
        self,
        ground_truth: Sequence[int],
        initial_weights: Optional[Sequence[float]] = None
    ) -> np.ndarray:
        """
        Learn weights that make the ground truth the minimum-energy solution.

        Args:
            ground_truth: Full assignment in the model's variable layout.
            initial_weights: Starting point, zeros if None.

        Returns:
            Learned weight vector.

        Raises:
            WeightDimensionError: if ``initial_weights`` has the wrong length.
            ModelError: if the ground truth does not fit the model.
        """
        num_weights = self.model.compute_num_weights()
        if initial_weights is None:
            weights = np.zeros(num_weights)
        else:
            weights = np.asarray(initial_weights, dtype=np.float64).copy()
            if len(weights) != num_weights:
                raise WeightDimensionError(num_weights, len(weights))

        ground_truth = np.asarray(ground_truth, dtype=np.int64)
        settings = self.model.settings
        parameters = self.model.solver_parameters(with_integer_constraints=True)
        cfg = self.config

        logger.info(
            f"Learning {num_weights} weights: regularizer={cfg.regularizer}, "
            f"learning_rate={cfg.learning_rate}, max_iterations={cfg.max_iterations}"
        )

        iterations = range(cfg.max_iterations)
        if self.verbose:
            iterations = tqdm(iterations, desc="Learning")

        for t in iterations:
            ilp = self.model.build_model(weights)
            if len(ground_truth) != ilp.number_of_variables:
                raise ModelError(
                    f"Ground truth has {len(ground_truth)} entries, model has "
                    f"{ilp.number_of_variables} variables"
                )

            phi_true = self.model.graph.compute_joint_features(
                ground_truth, num_weights, settings.states_share_weights
            )

            self._loss_augment(ilp, ground_truth)
            predicted = self.model.solver.solve(ilp, parameters).solution
            phi_pred = self.model.graph.compute_joint_features(
                predicted, num_weights, settings.states_share_weights
            )

            hamming = int(np.sum(predicted != ground_truth))
            loss = (
                0.5 * cfg.regularizer * float(weights @ weights)
                + float(weights @ (phi_true - phi_pred)) + hamming
            )

            gradient = cfg.regularizer * weights + phi_true - phi_pred
            step = cfg.learning_rate / np.sqrt(t + 1)
            weights = weights - step * gradient
            if settings.non_negative_weights_only:
                weights = np.maximum(weights, 0.0)

            self.history.losses.append(loss)
            self.history.hamming_losses.append(hamming)
            self.history.weight_norms.append(float(np.linalg.norm(weights)))

            logger.debug(f"Iteration {t + 1}: loss={loss:.6g}, hamming={hamming}")

            if step * np.linalg.norm(gradient) < cfg.tolerance:
                logger.info(f"Converged after {t + 1} iterations")
                break

        logger.info(f"Learned weights: {weights}")
        return weights
