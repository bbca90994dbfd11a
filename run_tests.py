"""
Test runner for mhtrack.

Discovers the unittest modules under ``tests/`` and prints a summary
with the failing test ids. Library logging goes through the package
logger and stays at WARNING unless ``--log-level`` says otherwise.

Examples:
    python run_tests.py
    python run_tests.py test_model_builder test_verifier
    python run_tests.py -k division --failfast
"""

import argparse
import sys
import unittest
from pathlib import Path

project_root = Path(__file__).parent
tests_dir = project_root / 'tests'
sys.path.insert(0, str(project_root))

from mhtrack.utils import get_logger  # noqa: E402


def available_modules():
    """Names of the test modules under tests/."""
    return sorted(path.stem for path in tests_dir.glob('test_*.py'))


def load_suite(modules=None, name_patterns=None):
    """
    Build the suite to run.

    Args:
        modules: Test module names (e.g. 'test_config'); all modules when empty.
        name_patterns: Optional ``-k`` style substrings for test names.

    Returns:
        unittest.TestSuite
    """
    loader = unittest.TestLoader()
    if name_patterns:
        loader.testNamePatterns = [f'*{p}*' for p in name_patterns]

    if not modules:
        return loader.discover(str(tests_dir), pattern='test_*.py')

    unknown = sorted(set(modules) - set(available_modules()))
    if unknown:
        raise SystemExit(f"Unknown test modules: {', '.join(unknown)}")
    return loader.loadTestsFromNames([f'tests.{m}' for m in modules])


def print_summary(result):
    problems = [('FAIL', test) for test, _ in result.failures]
    problems += [('ERROR', test) for test, _ in result.errors]
    passed = result.testsRun - len(result.failures) - len(result.errors) - len(result.skipped)

    print("\n" + "=" * 70)
    print(
        f"mhtrack: {result.testsRun} run, {passed} passed, "
        f"{len(result.failures)} failed, {len(result.errors)} errors, "
        f"{len(result.skipped)} skipped"
    )
    for kind, test in problems:
        print(f"  {kind}: {test.id()}")
    print("=" * 70)


def main(argv=None):
    parser = argparse.ArgumentParser(description='Run mhtrack tests')
    parser.add_argument(
        'modules',
        nargs='*',
        help='Test modules to run (e.g. test_config); all when omitted'
    )
    parser.add_argument(
        '-k',
        dest='patterns',
        action='append',
        default=None,
        help='Only run tests whose name contains this substring (repeatable)'
    )
    parser.add_argument('--failfast', action='store_true', help='Stop at the first failure')
    parser.add_argument('--quiet', action='store_true', help='Run tests with minimal output')
    parser.add_argument(
        '--log-level',
        default='WARNING',
        help='Level of the mhtrack logger while tests run'
    )
    parser.add_argument('--list', action='store_true', help='List test modules and exit')
    args = parser.parse_args(argv)

    if args.list:
        print("\n".join(available_modules()))
        return 0

    get_logger(level=args.log_level)

    suite = load_suite(args.modules, args.patterns)
    runner = unittest.TextTestRunner(verbosity=1 if args.quiet else 2, failfast=args.failfast)
    result = runner.run(suite)

    print_summary(result)
    return 0 if result.wasSuccessful() else 1


if __name__ == '__main__':
    sys.exit(main())
