"""
Command line entry points.

    mhtrack-track --model model.json --weights weights.json --output result.json
    mhtrack-learn --model model.json --ground-truth gt.json --output weights.json
"""

import argparse
import sys
from typing import List, Optional

import numpy as np

from .config import load_config
from .data import (
    read_model_from_json,
    read_weights_from_json,
    read_results_from_json,
    save_result_to_json,
    save_weights_to_json
)
from .exceptions import MHTrackError
from .learning import StructuredMaxMarginLearner
from .tracking import TrackingModel
from .utils import get_logger
from .visualization import plot_cutting_plane_history, plot_learning_history

EXIT_ERROR = 1
EXIT_INVALID_SOLUTION = 2


def build_track_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='Run multi-hypotheses tracking on a JSON model')
    parser.add_argument('-m', '--model', type=str, required=True, help='Model file (JSON)')
    parser.add_argument('-w', '--weights', type=str, required=True, help='Weights file (JSON)')
    parser.add_argument('-o', '--output', type=str, required=True, help='Result file (JSON)')
    parser.add_argument('--config', type=str, default=None, help='Config file path')
    parser.add_argument('--lp-relax', action='store_true',
                        help='Solve the LP relaxation instead of the ILP')
    parser.add_argument('-d', '--relax-division-constraints', action='store_true',
                        help='Add division and merger constraints lazily (cutting planes)')
    parser.add_argument('--retry-integer', action='store_true',
                        help='Switch to integer constraints when the relaxation stalls')
    parser.add_argument('--dot', type=str, default=None, help='Write the solved graph as Graphviz DOT')
    parser.add_argument('--plot', type=str, default=None, help='Save a plot of the inference iterations')
    parser.add_argument('--log-level', type=str, default=None, help='Logging level')
    return parser


def build_learn_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='Learn tracking weights from a ground truth')
    parser.add_argument('-m', '--model', type=str, required=True, help='Model file (JSON)')
    parser.add_argument('-g', '--ground-truth', type=str, required=True, help='Ground truth result file (JSON)')
    parser.add_argument('-o', '--output', type=str, required=True, help='Learned weights file (JSON)')
    parser.add_argument('-w', '--weights', type=str, default=None, help='Initial weights file (JSON)')
    parser.add_argument('--config', type=str, default=None, help='Config file path')
    parser.add_argument('--plot', type=str, default=None, help='Save a plot of the learning history')
    parser.add_argument('--log-level', type=str, default=None, help='Logging level')
    return parser


def track_main(argv: Optional[List[str]] = None) -> int:
    args = build_track_parser().parse_args(argv)
    config = load_config(args.config)
    logger = get_logger(__name__, args.log_level or config.logging.level)

    try:
        graph, settings = read_model_from_json(args.model)
        weights = read_weights_from_json(args.weights)
        model = TrackingModel(graph, settings)

        inference = config.inference
        with_integer_constraints = inference.with_integer_constraints and not args.lp_relax

        if args.relax_division_constraints or inference.cutting_planes:
            result = model.infer_with_cutting_constraints(
                weights,
                with_integer_constraints=with_integer_constraints,
                retry_with_integer_constraints=args.retry_integer or inference.retry_with_integer_constraints
            )
        else:
            result = model.infer(
                weights,
                with_integer_constraints=with_integer_constraints,
                with_division_constraints=inference.with_division_constraints,
                with_merger_constraints=inference.with_merger_constraints
            )

        save_result_to_json(args.output, graph, result.solution)
        logger.info(f"Saved result to {args.output}")

        if args.dot:
            model.to_dot(args.dot, result.solution)
            logger.info(f"Saved graph to {args.dot}")
        if args.plot:
            plot_cutting_plane_history(result, save_path=args.plot)

    except MHTrackError as e:
        logger.error(f"Tracking failed: {e}")
        return EXIT_ERROR

    logger.info("\n" + result.summarize())
    if not result.valid:
        logger.warning("Solution is not valid")
        return EXIT_INVALID_SOLUTION
    return 0


def learn_main(argv: Optional[List[str]] = None) -> int:
    args = build_learn_parser().parse_args(argv)
    config = load_config(args.config)
    logger = get_logger(__name__, args.log_level or config.logging.level)

    try:
        graph, settings = read_model_from_json(args.model)
        model = TrackingModel(graph, settings)

        if args.weights:
            initial_weights = np.asarray(read_weights_from_json(args.weights))
        else:
            initial_weights = np.zeros(model.compute_num_weights())

        # binds variable ids, needed to map the ground truth
        model.build_model(initial_weights)
        ground_truth = model.ground_truth_from_results(read_results_from_json(args.ground_truth))

        learner = StructuredMaxMarginLearner(model, config.learning, verbose=True)
        weights = learner.learn(ground_truth, initial_weights)

        save_weights_to_json(args.output, weights, model.weight_descriptions())
        logger.info(f"Saved weights to {args.output}")

        if args.plot:
            plot_learning_history(learner.history, save_path=args.plot)

    except MHTrackError as e:
        logger.error(f"Learning failed: {e}")
        return EXIT_ERROR

    return 0


if __name__ == '__main__':
    sys.exit(track_main())
