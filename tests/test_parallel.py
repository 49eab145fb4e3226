#!/usr/bin/env python3
"""
Parallel Track Processing Tests

This module tests the TrackParallelManager with the serial backend and a small multiprocessing pool, its error policies and the statistics it collects. Task functions are defined at module level so that worker processes can unpickle them.

Tests Performed:
    TestTrackParallelManager:
        - test_serial_map_preserves_order: Results come back in task order with extra arguments applied
        - test_multiprocessing_map: A two-worker pool gives the serial results
        - test_collect_policy_records_failures: Failures are recorded with their error text
        - test_abort_policy_raises: The first failure propagates under the abort policy
        - test_statistics: Task counts and timing are summarized after every call
        - test_invalid_backend: Unknown backend names raise ValueError

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

from tracegrid.processing.parallel import ErrorPolicy, TrackParallelManager
from tracegrid.processing.utils_logger import TraceLogger


def scale_task(value: int, factor: int, offset: int = 0) -> int:
    return value * factor + offset


def failing_task(value: int) -> int:
    if value == 2:
        raise ValueError("station list is empty")
    return value


class TestTrackParallelManager(unittest.TestCase):

    def setUp(self) -> None:
        self.logger = TraceLogger(verbose=False)

    def test_serial_map_preserves_order(self) -> None:
        manager = TrackParallelManager(backend='serial', logger=self.logger)

        results = manager.parallel_map(scale_task, [1, 2, 3], 10, offset=1)

        self.assertEqual([r.task_id for r in results], [0, 1, 2])
        self.assertEqual([r.result for r in results], [11, 21, 31])
        self.assertTrue(all(r.success for r in results))

    def test_multiprocessing_map(self) -> None:
        manager = TrackParallelManager(backend='multiprocessing', n_workers=2, logger=self.logger)

        results = manager.parallel_map(scale_task, [1, 2, 3, 4], 3)

        self.assertEqual([r.result for r in results], [3, 6, 9, 12])

    def test_collect_policy_records_failures(self) -> None:
        manager = TrackParallelManager(backend='serial', logger=self.logger)
        manager.set_error_policy('collect')

        results = manager.parallel_map(failing_task, [1, 2, 3])

        self.assertEqual([r.success for r in results], [True, False, True])
        self.assertIsNone(results[1].result)
        self.assertIn("ValueError: station list is empty", results[1].error)
        self.assertEqual(results[2].result, 3)

    def test_abort_policy_raises(self) -> None:
        manager = TrackParallelManager(backend='serial', logger=self.logger)
        manager.set_error_policy(ErrorPolicy.ABORT)

        with self.assertRaises(ValueError):
            manager.parallel_map(failing_task, [1, 2, 3])

    def test_statistics(self) -> None:
        manager = TrackParallelManager(backend='serial', verbose=False, logger=self.logger)
        self.assertIsNone(manager.get_statistics())

        manager.parallel_map(failing_task, [1, 2, 3, 4])
        stats = manager.get_statistics()

        self.assertEqual(stats.total_tasks, 4)
        self.assertEqual(stats.completed_tasks, 3)
        self.assertEqual(stats.failed_tasks, 1)
        self.assertGreaterEqual(stats.wall_time, 0.0)

    def test_invalid_backend(self) -> None:
        with self.assertRaises(ValueError):
            TrackParallelManager(backend='mpi')


if __name__ == '__main__':
    unittest.main()
