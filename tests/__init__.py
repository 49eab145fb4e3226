#!/usr/bin/env python3
"""
tracegrid Test Suite Runner

This module runs the complete tracegrid test collection with the unittest framework when executed directly. The test modules are normally collected by pytest; the runner here loads the same modules, executes them with verbose output and prints a short summary with the pass, failure, error and skip counts. The exit code is 0 when every test passed and 1 otherwise.

Author: Rubaiat Islam
Institution: Mesoscale & Microscale Meteorology Laboratory, NCAR
Email: mrislam@ucar.edu
Date: November 2025
Version: 1.0.0
"""

import sys
import unittest
from pathlib import Path

package_dir = Path(__file__).parent.parent
sys.path.insert(0, str(package_dir))

TEST_MODULES = [
    'tests.test_binning',
    'tests.test_dateline',
    'tests.test_track_mask',
    'tests.test_cross_section',
    'tests.test_grid',
    'tests.test_tracks',
    'tests.test_samples',
    'tests.test_config',
    'tests.test_utils',
    'tests.test_parallel',
    'tests.test_pipeline',
    'tests.test_visualization',
    'tests.test_cli',
]


def run_all_tests() -> unittest.TestResult:
    """
    Load every test module of the suite and run it with a verbose text runner. Modules that cannot be imported are reported and skipped.

    Returns:
        unittest.TestResult: Results of the run.
    """
    loader = unittest.TestLoader()
    suite = unittest.TestSuite()

    for module_name in TEST_MODULES:
        try:
            module = __import__(module_name, fromlist=[''])
            suite.addTests(loader.loadTestsFromModule(module))
        except ImportError as e:
            print(f"Warning: Could not import {module_name}: {e}")

    runner = unittest.TextTestRunner(verbosity=2, buffer=True)
    return runner.run(suite)


def print_test_summary(result: unittest.TestResult) -> None:
    """Print the test counts of a finished run and list failed and errored tests."""
    print("\n" + "=" * 60)
    print("TEST SUMMARY")
    print("=" * 60)

    total_tests = result.testsRun
    failures = len(result.failures)
    errors = len(result.errors)
    skipped = len(result.skipped)
    passed = total_tests - failures - errors - skipped

    print(f"Total tests run: {total_tests}")
    print(f"Passed: {passed}")
    print(f"Failed: {failures}")
    print(f"Errors: {errors}")
    print(f"Skipped: {skipped}")

    for label, entries in (("FAILURES", result.failures), ("ERRORS", result.errors)):
        if entries:
            print(f"\n{label}:")
            for test, _ in entries:
                print(f"  - {test}")


if __name__ == '__main__':
    result = run_all_tests()
    print_test_summary(result)
    sys.exit(0 if result.wasSuccessful() else 1)
