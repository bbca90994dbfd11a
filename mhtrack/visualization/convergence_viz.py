"""
Convergence and weight visualization.
"""

import logging
from typing import Optional, Sequence, Tuple

import numpy as np
import matplotlib.pyplot as plt
import seaborn as sns

from ..tracking.cutting_plane import InferenceResult

logger = logging.getLogger(__name__)


def plot_cutting_plane_history(
    result: InferenceResult,
    save_path: Optional[str] = None,
    figsize: Tuple[int, int] = (14, 8)
) -> plt.Figure:
    """
    Plot how the cutting-plane iterations progressed.

    Args:
        result: InferenceResult with a non-empty history.
        save_path: Optional path to save figure.
        figsize: Figure size.

    Returns:
        Matplotlib figure.
    """
    fig, axes = plt.subplots(2, 2, figsize=figsize)
    fig.suptitle('Cutting-Plane Inference', fontsize=16, fontweight='bold')

    history = result.history
    if not history:
        return fig

    iterations = [r.iteration for r in history]
    colors = ['tab:green' if r.valid else 'tab:red' for r in history]

    # Plot 1: Objective
    ax1 = axes[0, 0]
    ax1.plot(iterations, [r.objective for r in history], marker='o', linewidth=2)
    ax1.set_xlabel('Iteration', fontsize=12)
    ax1.set_ylabel('Energy', fontsize=12)
    ax1.set_title('Objective per Iteration', fontsize=12, fontweight='bold')
    ax1.grid(True, alpha=0.3)

    # Plot 2: Violations
    ax2 = axes[0, 1]
    ax2.bar(iterations, [r.num_violated for r in history], color=colors, alpha=0.7, edgecolor='black')
    ax2.set_xlabel('Iteration', fontsize=12)
    ax2.set_ylabel('Violated Hypotheses', fontsize=12)
    ax2.set_title('Violations per Iteration', fontsize=12, fontweight='bold')
    ax2.grid(True, alpha=0.3, axis='y')

    # Plot 3: Constrained set growth
    ax3 = axes[1, 0]
    ax3.step(iterations, [r.num_constrained for r in history], where='post', linewidth=2)
    ax3.set_xlabel('Iteration', fontsize=12)
    ax3.set_ylabel('Constrained Hypotheses', fontsize=12)
    ax3.set_title('Constrained Set Size', fontsize=12, fontweight='bold')
    ax3.grid(True, alpha=0.3)

    # Plot 4: Integrality of the relaxation
    ax4 = axes[1, 1]
    ax4.plot(iterations, [100.0 * r.integral_fraction for r in history], marker='s', linewidth=2)
    ax4.set_ylim(0, 105)
    ax4.set_xlabel('Iteration', fontsize=12)
    ax4.set_ylabel('Integral Variables (%)', fontsize=12)
    ax4.set_title('Integrality', fontsize=12, fontweight='bold')
    ax4.grid(True, alpha=0.3)

    plt.tight_layout()

    if save_path:
        plt.savefig(save_path, dpi=300, bbox_inches='tight')
        logger.info(f"Saved cutting-plane plot to {save_path}")

    return fig


def plot_weights(
    weights: Sequence[float],
    descriptions: Sequence[str],
    save_path: Optional[str] = None,
    figsize: Tuple[int, int] = (10, 6)
) -> plt.Figure:
    """
    Horizontal bar chart of a weight vector.

    Args:
        weights: Weight vector.
        descriptions: One label per weight, see ``TrackingModel.weight_descriptions``.
        save_path: Optional path to save figure.
        figsize: Figure size.

    Returns:
        Matplotlib figure.
    """
    if len(weights) != len(descriptions):
        raise ValueError(f"Got {len(weights)} weights but {len(descriptions)} descriptions")

    fig, ax = plt.subplots(figsize=figsize)
    values = np.asarray(weights, dtype=np.float64)
    palette = ['tab:blue' if v >= 0 else 'tab:orange' for v in values]

    sns.barplot(x=values, y=list(descriptions), hue=list(descriptions), palette=palette, legend=False, ax=ax)
    ax.axvline(0.0, color='black', linewidth=1)
    ax.set_xlabel('Weight', fontsize=12)
    ax.set_title('Model Weights', fontsize=14, fontweight='bold')
    ax.grid(True, alpha=0.3, axis='x')

    plt.tight_layout()

    if save_path:
        plt.savefig(save_path, dpi=300, bbox_inches='tight')
        logger.info(f"Saved weight plot to {save_path}")

    return fig


def plot_learning_history(history, save_path: Optional[str] = None, figsize: Tuple[int, int] = (12, 4)) -> plt.Figure:
    """Loss, Hamming loss and weight norm per learning iteration."""
    fig, axes = plt.subplots(1, 3, figsize=figsize)

    series = [
        (history.losses, 'Structured Hinge Loss'),
        (history.hamming_losses, 'Hamming Loss'),
        (history.weight_norms, 'Weight Norm'),
    ]
    for ax, (values, title) in zip(axes, series):
        ax.plot(range(1, len(values) + 1), values, marker='o', linewidth=2)
        ax.set_xlabel('Iteration', fontsize=12)
        ax.set_title(title, fontsize=12, fontweight='bold')
        ax.grid(True, alpha=0.3)

    plt.tight_layout()

    if save_path:
        plt.savefig(save_path, dpi=300, bbox_inches='tight')
        logger.info(f"Saved learning plot to {save_path}")

    return fig
