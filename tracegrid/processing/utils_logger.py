#!/usr/bin/env python3

"""
tracegrid Logging Utilities

This module provides logging for the gridding pipeline. TraceLogger wraps a named logger of Python's standard logging module so that the pipeline driver and the command line interface share one timestamped message format, with an optional console stream and an optional log file. Levels may be given as logging constants or as names such as 'DEBUG', the form used in YAML run configurations. The stage context manager reports the start, the wall time and any failure of a pipeline step such as loading the grid or processing the track catalog. The core binning, masking and cross-section routines never log; only the orchestration layer reports progress.

Classes:
    TraceLogger: Logger wrapper with console and file output and timed pipeline stages.

Author: Rubaiat Islam
Institution: Mesoscale & Microscale Meteorology Laboratory, NCAR
Email: mrislam@ucar.edu
Date: November 2025
Version: 1.0.0
"""

import os
import sys
import time
import logging
from contextlib import contextmanager
from typing import Iterator, Optional, Union

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


def _resolve_level(level: Union[int, str]) -> int:
    """Return the numeric logging level for a constant or a level name."""
    if isinstance(level, int):
        return level

    resolved = logging.getLevelName(str(level).upper())
    if not isinstance(resolved, int):
        raise ValueError(f"Unknown logging level: {level}")
    return resolved


class TraceLogger:
    """
    Logger wrapper for tracegrid runs. Handlers left on the named logger by an earlier instance are replaced, so a repeated run in the same process does not print every message twice, and messages are not passed on to the root logger.
    """

    def __init__(self, name: str = "tracegrid", level: Union[int, str] = logging.INFO,
                 log_file: Optional[str] = None, verbose: bool = True) -> None:
        """
        Configure the named logger with a console handler, a file handler, both or neither.

        Parameters:
            name (str): Logger name shown in every message (default: "tracegrid").
            level (Union[int, str]): Minimum level as a logging constant or name (default: logging.INFO).
            log_file (Optional[str]): Log file path, its directory is created when missing; None disables file logging (default: None).
            verbose (bool): Write messages to stdout (default: True).

        Returns:
            None

        Raises:
            ValueError: If level is an unknown level name.
        """
        self.level = _resolve_level(level)
        self.log_file = log_file

        self.logger = logging.getLogger(name)
        self.logger.setLevel(self.level)
        self.logger.propagate = False

        for handler in list(self.logger.handlers):
            self.logger.removeHandler(handler)
            handler.close()

        formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)
        handlers = []

        if verbose:
            handlers.append(logging.StreamHandler(sys.stdout))

        if log_file:
            os.makedirs(os.path.dirname(os.path.abspath(log_file)), exist_ok=True)
            handlers.append(logging.FileHandler(log_file))

        for handler in handlers:
            handler.setLevel(self.level)
            handler.setFormatter(formatter)
            self.logger.addHandler(handler)

    def info(self, message: str) -> None:
        self.logger.info(message)

    def warning(self, message: str) -> None:
        """Log a condition that does not stop the run, such as a track that selects no stations."""
        self.logger.warning(message)

    def error(self, message: str) -> None:
        self.logger.error(message)

    def debug(self, message: str) -> None:
        self.logger.debug(message)

    @contextmanager
    def stage(self, description: str) -> Iterator[None]:
        """
        Log the start and the elapsed wall time of a pipeline step. A step that raises is reported at ERROR level with its duration and the exception is re-raised unchanged.

        Parameters:
            description (str): Short name of the step, e.g. "Loading grid".

        Returns:
            Iterator[None]: Context manager around the step.
        """
        self.logger.debug(f"{description} ...")
        start = time.perf_counter()
        try:
            yield
        except Exception:
            self.logger.error(f"{description} failed after {time.perf_counter() - start:.2f} s")
            raise
        self.logger.info(f"{description} done in {time.perf_counter() - start:.2f} s")
