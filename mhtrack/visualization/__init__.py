"""Plots of inference and learning diagnostics."""

from .convergence_viz import (
    plot_cutting_plane_history,
    plot_weights,
    plot_learning_history
)

__all__ = [
    'plot_cutting_plane_history',
    'plot_weights',
    'plot_learning_history'
]
