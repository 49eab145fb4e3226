#!/usr/bin/env python3
"""
Utility Module Unit Tests

This module tests the logging wrapper and the validation helpers shared by the processing modules.

Tests Performed:
    TestTraceLogger:
        - test_logger_with_file: Messages at or above the level are written to the log file
        - test_handlers_not_duplicated: A second logger with the same name replaces the handlers
        - test_level_names: Level names are accepted, unknown names raise ValueError
        - test_stage_reports_duration_and_failure: Stages log their wall time, failed stages log an error and re-raise

    TestDataValidator:
        - test_validate_axis: Axes must be finite, 1-D and strictly increasing
        - test_validate_equal_lengths: The common length is returned, differing lengths raise
        - test_validate_partition: Partitions must cover every index exactly once
        - test_validate_data_array: Summary statistics and threshold issues of an array
        - test_require: A false condition raises ContractViolation with the message

Author: Rubaiat Islam
Institution: Mesoscale & Microscale Meteorology Laboratory, NCAR
Email: mrislam@ucar.edu
Date: November 2025
Version: 1.0.0
"""

import os
import sys
import shutil
import logging
import unittest
import tempfile
import numpy as np
from pathlib import Path

package_dir = Path(__file__).parent.parent
sys.path.insert(0, str(package_dir))

from tracegrid.processing.utils_logger import TraceLogger
from tracegrid.processing.utils_validator import (
    ContractViolation, DataValidator, GridConfigurationError, require
)


class TestTraceLogger(unittest.TestCase):

    def setUp(self) -> None:
        self.temp_dir = tempfile.mkdtemp()

    def tearDown(self) -> None:
        logging.getLogger("tracegrid_test").handlers.clear()
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def test_logger_with_file(self) -> None:
        log_file = os.path.join(self.temp_dir, 'run.log')
        logger = TraceLogger(name="tracegrid_test", level=logging.INFO, log_file=log_file, verbose=False)

        logger.debug("hidden detail")
        logger.info("Processed track GA02")
        logger.warning("Track GP16 selects no stations")
        for handler in logger.logger.handlers:
            handler.flush()

        with open(log_file) as f:
            content = f.read()

        self.assertIn("INFO - Processed track GA02", content)
        self.assertIn("WARNING - Track GP16 selects no stations", content)
        self.assertNotIn("hidden detail", content)

    def test_handlers_not_duplicated(self) -> None:
        TraceLogger(name="tracegrid_test")
        logger = TraceLogger(name="tracegrid_test")

        self.assertEqual(len(logger.logger.handlers), 1)

    def test_level_names(self) -> None:
        logger = TraceLogger(name="tracegrid_test", level='debug', verbose=False)
        self.assertEqual(logger.logger.level, logging.DEBUG)
        self.assertFalse(logger.logger.propagate)

        with self.assertRaises(ValueError):
            TraceLogger(name="tracegrid_test", level='LOUD', verbose=False)

    def test_stage_reports_duration_and_failure(self) -> None:
        log_file = os.path.join(self.temp_dir, 'logs', 'stage.log')
        logger = TraceLogger(name="tracegrid_test", log_file=log_file, verbose=False)

        with logger.stage("Loading grid"):
            pass

        with self.assertRaises(KeyError):
            with logger.stage("Binning track GA02"):
                raise KeyError("M3d")

        for handler in logger.logger.handlers:
            handler.flush()

        with open(log_file) as f:
            content = f.read()

        self.assertRegex(content, r"INFO - Loading grid done in \d+\.\d\d s")
        self.assertRegex(content, r"ERROR - Binning track GA02 failed after \d+\.\d\d s")
        self.assertNotIn("Binning track GA02 done", content)


class TestDataValidator(unittest.TestCase):

    def test_validate_axis(self) -> None:
        axis = DataValidator.validate_axis([0, 1, 2], 'zt')
        self.assertEqual(axis.dtype, float)

        for bad in ([0.0, 0.0, 1.0], [[0.0, 1.0]], [0.0, np.inf]):
            with self.subTest(axis=bad):
                with self.assertRaises(GridConfigurationError):
                    DataValidator.validate_axis(bad, 'zt')

    def test_validate_equal_lengths(self) -> None:
        self.assertEqual(DataValidator.validate_equal_lengths("mismatch", [1, 2], np.zeros(2)), 2)
        self.assertEqual(DataValidator.validate_equal_lengths("mismatch"), 0)

        with self.assertRaises(ContractViolation):
            DataValidator.validate_equal_lengths("mismatch", [1, 2], [1])

    def test_validate_partition(self) -> None:
        DataValidator.validate_partition([2, 3], [0, 1], 4)

        with self.assertRaises(ContractViolation):
            DataValidator.validate_partition([2, 3], [0, 4], 4)

    def test_validate_data_array(self) -> None:
        data = np.array([[1.0, 2.0], [np.nan, -3.0]])

        summary = DataValidator.validate_data_array(data, min_val=0.0)

        self.assertFalse(summary['valid'])
        self.assertEqual(len(summary['issues']), 1)
        self.assertEqual(summary['stats']['finite_points'], 3)
        self.assertEqual(summary['stats']['min'], -3.0)

        self.assertTrue(DataValidator.validate_data_array(np.abs(data), min_val=0.0)['valid'])
        self.assertFalse(DataValidator.validate_data_array(np.full(3, np.nan))['valid'])

    def test_require(self) -> None:
        require(True, "never raised")

        with self.assertRaisesRegex(ContractViolation, "partition"):
            require(False, "partition is incomplete")


if __name__ == '__main__':
    unittest.main()
