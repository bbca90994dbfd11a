"""
JSON model files.

Uses the hypotheses-graph layout produced by hytra's
``hypotheses_graph_to_json``::

    {
        "segmentationHypotheses": [
            {"id": 1, "features": [[0.0], [-2.3]],
             "divisionFeatures": ..., "appearanceFeatures": ...,
             "disappearanceFeatures": ...}
        ],
        "linkingHypotheses": [{"src": 1, "dest": 2, "features": [[0.0], [-1.0]]}],
        "divisionHypotheses": [{"parent": 1, "children": [2, 3], "features": ...}],
        "exclusions": [[2, 3]],
        "settings": {"statesShareWeights": true, ...}
    }

Results use ``detectionResults``, ``linkingResults`` and ``divisionResults``.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Sequence, Tuple, Union

import numpy as np

from ..config import Settings
from ..exceptions import ConfigurationError, ModelError
from ..tracking.graph import HypothesesGraph

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


def graph_from_dict(model_dict: Dict[str, Any]) -> Tuple[HypothesesGraph, Settings]:
    """
    Create a hypotheses graph and its settings from a parsed JSON model.

    Raises:
        ConfigurationError: if the "settings" block is missing.
        ModelError: on malformed hypotheses.
    """
    if 'settings' not in model_dict:
        raise ConfigurationError("Model file has no 'settings' block")
    settings = Settings.from_json_dict(model_dict['settings'])

    graph = HypothesesGraph()
    for entry in model_dict.get('segmentationHypotheses', []):
        if 'id' not in entry:
            raise ModelError(f"Segmentation hypothesis without id: {entry}")
        graph.add_segmentation_hypothesis(
            int(entry['id']),
            entry.get('features'),
            division_features=entry.get('divisionFeatures'),
            appearance_features=entry.get('appearanceFeatures'),
            disappearance_features=entry.get('disappearanceFeatures')
        )

    for entry in model_dict.get('linkingHypotheses', []):
        graph.add_linking_hypothesis(int(entry['src']), int(entry['dest']), entry.get('features'))

    for entry in model_dict.get('divisionHypotheses', []):
        graph.add_division_hypothesis(int(entry['parent']), entry['children'], entry.get('features'))

    for entry in model_dict.get('exclusions', []):
        if isinstance(entry, dict):
            graph.add_exclusion_constraint(entry['ids'], entry.get('bound', 1))
        else:
            graph.add_exclusion_constraint(entry)

    logger.info(
        f"Loaded {len(graph.segmentation_hypotheses)} segmentation, "
        f"{len(graph.linking_hypotheses)} linking and "
        f"{len(graph.division_hypotheses)} division hypotheses, "
        f"{len(graph.exclusion_constraints)} exclusions"
    )
    return graph, settings


def graph_to_dict(graph: HypothesesGraph, settings: Settings) -> Dict[str, Any]:
    """Inverse of :func:`graph_from_dict`."""
    segmentations = []
    for node in graph.iter_segmentations():
        entry = {'id': node.id, 'features': node.detection.features}
        if node.division.has_features():
            entry['divisionFeatures'] = node.division.features
        if node.appearance.has_features():
            entry['appearanceFeatures'] = node.appearance.features
        if node.disappearance.has_features():
            entry['disappearanceFeatures'] = node.disappearance.features
        segmentations.append(entry)

    model_dict = {
        'segmentationHypotheses': segmentations,
        'linkingHypotheses': [
            {'src': link.src_id, 'dest': link.dest_id, 'features': link.variable.features}
            for link in graph.iter_links()
        ],
        'exclusions': [
            list(e.hypothesis_ids) if e.bound == 1 else {'ids': list(e.hypothesis_ids), 'bound': e.bound}
            for e in graph.exclusion_constraints
        ],
        'settings': settings.to_json_dict()
    }
    if graph.division_hypotheses:
        model_dict['divisionHypotheses'] = [
            {'parent': d.parent_id, 'children': list(d.child_ids), 'features': d.variable.features}
            for d in graph.iter_divisions()
        ]
    return model_dict


def read_model_from_json(path: PathLike) -> Tuple[HypothesesGraph, Settings]:
    """Load a hypotheses graph and settings from a JSON file."""
    with open(path, 'r') as f:
        model_dict = json.load(f)
    return graph_from_dict(model_dict)


def save_model_to_json(path: PathLike, graph: HypothesesGraph, settings: Settings):
    with open(path, 'w') as f:
        json.dump(graph_to_dict(graph, settings), f, indent=2)


def read_weights_from_json(path: PathLike) -> List[float]:
    """Read ``{"weights": [...]}``."""
    with open(path, 'r') as f:
        data = json.load(f)
    if 'weights' not in data:
        raise ConfigurationError(f"Weights file {path} has no 'weights' entry")
    return [float(w) for w in data['weights']]


def save_weights_to_json(path: PathLike, weights: Sequence[float], descriptions: Sequence[str] = None):
    data = {'weights': [float(w) for w in weights]}
    if descriptions is not None:
        data['descriptions'] = list(descriptions)
    with open(path, 'w') as f:
        json.dump(data, f, indent=2)


def solution_to_results(graph: HypothesesGraph, solution: Sequence[int]) -> Dict[str, List[Dict]]:
    """
    Map an assignment back to hypotheses.

    The graph's variable ids must belong to the model the solution was
    computed for.
    """
    solution = np.asarray(solution)

    def value(variable) -> int:
        return int(solution[variable.model_variable_id]) if variable.is_emitted() else 0

    results = {
        'detectionResults': [
            {'id': node.id, 'value': value(node.detection)}
            for node in graph.iter_segmentations()
        ],
        'linkingResults': [
            {'src': link.src_id, 'dest': link.dest_id, 'value': value(link.variable)}
            for link in graph.iter_links()
        ],
        'divisionResults': []
    }

    for node in graph.iter_segmentations():
        if node.division.is_emitted():
            results['divisionResults'].append({'id': node.id, 'value': value(node.division) > 0})

    for division in graph.iter_divisions():
        results['divisionResults'].append({
            'parent': division.parent_id,
            'children': list(division.child_ids),
            'value': value(division.variable) > 0
        })

    return results


def save_result_to_json(path: PathLike, graph: HypothesesGraph, solution: Sequence[int]):
    """Write the tracking result of ``solution``."""
    with open(path, 'w') as f:
        json.dump(solution_to_results(graph, solution), f, indent=2)


def read_results_from_json(path: PathLike) -> Dict[str, List[Dict]]:
    with open(path, 'r') as f:
        return json.load(f)
