"""JSON input/output for models, weights and results."""

from .json_model import (
    graph_from_dict,
    graph_to_dict,
    read_model_from_json,
    save_model_to_json,
    read_weights_from_json,
    save_weights_to_json,
    solution_to_results,
    save_result_to_json,
    read_results_from_json
)

__all__ = [
    'graph_from_dict',
    'graph_to_dict',
    'read_model_from_json',
    'save_model_to_json',
    'read_weights_from_json',
    'save_weights_to_json',
    'solution_to_results',
    'save_result_to_json',
    'read_results_from_json'
]
