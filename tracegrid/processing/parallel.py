#!/usr/bin/env python3

"""
tracegrid Parallel Track Processing

This module runs independent per-track tasks either in a Python multiprocessing pool or serially. Tracks share only read-only inputs (the grid bundle and the sample set) and each task returns its own immutable result, so no locking or shared state is needed; results come back in task order and the caller collects them into a mapping keyed by track name. The pool is created with the fork start method where the platform supports it and falls back to spawn and finally to serial execution when pool creation fails. Every task outcome is wrapped in a TaskResult carrying the output or the formatted error together with its execution time, and failures are handled according to an ErrorPolicy.

Classes:
    ErrorPolicy: Error handling strategies for failed tasks.
    TaskResult: Outcome of a single task.
    ParallelStats: Aggregated execution statistics.
    TrackParallelManager: Backend selection and task execution.

Author: Rubaiat Islam
Institution: Mesoscale & Microscale Meteorology Laboratory, NCAR
Email: mrislam@ucar.edu
Date: November 2025
Version: 1.0.0
"""

import sys
import time
import traceback
from typing import Any, Callable, Dict, List, Optional, Tuple, Union
from dataclasses import dataclass
from enum import Enum
from multiprocessing import cpu_count, get_context

from .utils_logger import TraceLogger


class ErrorPolicy(Enum):
    """
    Error handling strategies for task failures.

    Attributes:
        ABORT (str): Re-raise the first error and stop processing.
        CONTINUE (str): Record the failure and continue with the remaining tasks.
        COLLECT (str): Record every failure for reporting after all tasks have run.
    """
    ABORT = "abort"
    CONTINUE = "continue"
    COLLECT = "collect"


@dataclass
class TaskResult:
    """
    Outcome of a single task.

    Attributes:
        task_id (int): Position of the task in the submitted list.
        success (bool): Whether the task completed without raising.
        result (Any): Return value of the task function, None on failure.
        error (Optional[str]): Exception summary and traceback on failure.
        execution_time (float): Wall-clock seconds spent in the task.
    """
    task_id: int
    success: bool
    result: Any = None
    error: Optional[str] = None
    execution_time: float = 0.0


@dataclass
class ParallelStats:
    """
    Aggregated statistics of one parallel_map call.

    Attributes:
        total_tasks (int): Number of submitted tasks.
        completed_tasks (int): Tasks that finished successfully.
        failed_tasks (int): Tasks that raised.
        total_time (float): Sum of the per-task execution times in seconds.
        wall_time (float): Elapsed wall-clock seconds for the whole call.
    """
    total_tasks: int = 0
    completed_tasks: int = 0
    failed_tasks: int = 0
    total_time: float = 0.0
    wall_time: float = 0.0


def _task_wrapper(args: Tuple[int, Any, Callable, str, Tuple, Dict]) -> TaskResult:
    """
    Execute one task and wrap its outcome in a TaskResult. Defined at module level so that it can be pickled by multiprocessing pools.

    Parameters:
        args (tuple): Packed (task_id, task, func, error_policy_value, func_args, func_kwargs).

    Returns:
        TaskResult: Outcome of func(task, *func_args, **func_kwargs).
    """
    task_id, task, func, error_policy_value, func_args, func_kwargs = args
    result = TaskResult(task_id=task_id, success=False)
    task_start = time.time()

    try:
        result.result = func(task, *func_args, **func_kwargs)
        result.success = True
    except Exception as e:
        result.error = f"{type(e).__name__}: {str(e)}\n{traceback.format_exc()}"

        if error_policy_value == ErrorPolicy.ABORT.value:
            raise
    finally:
        result.execution_time = time.time() - task_start

    return result


class TrackParallelManager:
    """
    Runs a function over a list of tasks with the multiprocessing or serial backend and keeps the statistics of the last run.

    Examples:
        >>> manager = TrackParallelManager(backend='serial')
        >>> results = manager.parallel_map(process_track, definitions, samples, bundle)
        >>> tracks = {r.result.name: r.result for r in results if r.success}
    """

    def __init__(self, backend: Optional[str] = None, n_workers: Optional[int] = None,
                 verbose: bool = True, logger: Optional[TraceLogger] = None) -> None:
        """
        Select the execution backend. Without an explicit backend the multiprocessing pool is used, with cpu_count() - 1 workers unless n_workers is given.

        Parameters:
            backend (Optional[str]): 'multiprocessing' or 'serial' (default: None, multiprocessing).
            n_workers (Optional[int]): Pool size for the multiprocessing backend (default: None).
            verbose (bool): Log progress and statistics (default: True).
            logger (Optional[TraceLogger]): Logger to use (default: None, a new TraceLogger).

        Returns:
            None

        Raises:
            ValueError: If the backend name is unknown.
        """
        if backend not in (None, 'multiprocessing', 'serial'):
            raise ValueError(f"Unknown backend '{backend}'. Must be 'multiprocessing' or 'serial'")

        self.verbose = verbose
        self.logger = logger or TraceLogger(verbose=verbose)
        self.error_policy = ErrorPolicy.COLLECT
        self.backend = backend or 'multiprocessing'

        if self.backend == 'multiprocessing':
            self.size = n_workers or max(1, cpu_count() - 1)
        else:
            self.size = 1

        self.stats: Optional[ParallelStats] = None

    def set_error_policy(self, policy: Union[str, ErrorPolicy]) -> None:
        """Set the error handling policy from an ErrorPolicy or its tag ('abort', 'continue', 'collect')."""
        if isinstance(policy, str):
            policy = ErrorPolicy(policy)
        self.error_policy = policy

    def parallel_map(self, func: Callable, tasks: List[Any], *args, **kwargs) -> List[TaskResult]:
        """
        Apply func to every task with the configured backend. func receives the task as first argument followed by args and kwargs, which must be picklable for the multiprocessing backend.

        Parameters:
            func (Callable): Module-level function to run per task.
            tasks (List[Any]): Tasks to process.
            *args (tuple): Extra positional arguments passed to func.
            **kwargs (dict): Extra keyword arguments passed to func.

        Returns:
            List[TaskResult]: One result per task in task order.
        """
        start_time = time.time()
        task_args = [
            (i, task, func, self.error_policy.value, args, kwargs)
            for i, task in enumerate(tasks)
        ]

        if self.backend == 'multiprocessing' and len(tasks) > 1 and self.size > 1:
            results = self._multiprocessing_map(task_args)
        else:
            results = [_task_wrapper(task_arg) for task_arg in task_args]

        self.stats = self.compute_statistics(results, time.time() - start_time)

        if self.verbose:
            self._log_statistics()

        return results

    def _multiprocessing_map(self, task_args: List[Tuple]) -> List[TaskResult]:
        """
        Run the packed tasks in a process pool, trying fork before spawn on platforms that support it and running serially when no pool can be created.
        """
        if sys.platform in ('win32', 'darwin'):
            ctx_methods = ['spawn']
        else:
            ctx_methods = ['fork', 'spawn']

        self.logger.info(f"Processing {len(task_args)} tasks across {self.size} workers "
                         f"(error policy: {self.error_policy.value})")

        for ctx_method in ctx_methods:
            try:
                pool = get_context(ctx_method).Pool(processes=min(self.size, len(task_args)))
            except (OSError, ValueError, RuntimeError) as e:
                self.logger.warning(f"Multiprocessing with '{ctx_method}' failed: {e}")
                continue

            with pool:
                return pool.map(_task_wrapper, task_args)

        self.logger.warning("Falling back to serial execution")
        return [_task_wrapper(task_arg) for task_arg in task_args]

    @staticmethod
    def compute_statistics(results: List[TaskResult], wall_time: float = 0.0) -> ParallelStats:
        """Summarize task counts and timing of a result list."""
        return ParallelStats(
            total_tasks=len(results),
            completed_tasks=sum(1 for r in results if r.success),
            failed_tasks=sum(1 for r in results if not r.success),
            total_time=sum(r.execution_time for r in results),
            wall_time=wall_time,
        )

    def get_statistics(self) -> Optional[ParallelStats]:
        return self.stats

    def _log_statistics(self) -> None:
        if not self.stats:
            return

        stats = self.stats
        self.logger.info(f"Tasks: {stats.total_tasks} total, {stats.completed_tasks} completed, "
                         f"{stats.failed_tasks} failed ({self.backend} backend)")
        self.logger.info(f"Task time {stats.total_time:.2f} s, wall time {stats.wall_time:.2f} s")
