#!/usr/bin/env python3

"""
tracegrid Data Validation Utilities

This module holds the failure vocabulary of the package and the checks that raise it. Grid axes must be finite and strictly increasing, per-sample arrays must line up one to one, and a longitude partition must cover every column exactly once; each of these is enforced before any binning, reindexing or masking work starts so that bad configuration fails fast instead of producing quietly wrong statistics. The DataValidator class also offers the statistical summary used by the pipeline to report what was read from disk.

Classes:
    GridConfigurationError: Raised for malformed or non-monotonic grid definitions.
    ContractViolation: Raised when callers break an input contract (lengths, partitions).
    SwathBoundsError: Raised when a track swath would extend past the grid edge.
    DataValidator: Static validation helpers for axes, sample arrays and partitions.

Functions:
    require: Single enforcement helper raising ContractViolation on a false condition.

Author: Rubaiat Islam
Institution: Mesoscale & Microscale Meteorology Laboratory, NCAR
Email: mrislam@ucar.edu
Date: November 2025
Version: 1.0.0
"""

import numpy as np
from typing import Dict, Any, Optional, Sequence


class GridConfigurationError(ValueError):
    """Grid axes or meshes do not describe a valid structured grid."""


class ContractViolation(ValueError):
    """
    Raised when a caller breaks the input contract of a core operation, for example by passing sample arrays of different lengths or a longitude partition that is not a permutation of the column indices. This signals a bug in the calling code, not a recoverable data condition.
    """


class SwathBoundsError(IndexError):
    """A track swath band would reach beyond the first or last grid index."""


def require(condition: bool, message: str) -> None:
    """
    Enforce an input contract, raising ContractViolation when the condition is false. There is no recovery or fallback path; the message should name the violated invariant.

    Parameters:
        condition (bool): Invariant that must hold.
        message (str): Explanation used as the exception message.

    Returns:
        None
    """
    if not condition:
        raise ContractViolation(message)


class DataValidator:
    """
    Validation utilities for grid axes, per-sample arrays and index partitions. All methods are static; the axis and partition checks raise on failure while validate_data_array returns a summary dictionary used for reporting.
    """

    @staticmethod
    def validate_axis(axis: np.ndarray, name: str) -> np.ndarray:
        """
        Check that a grid coordinate axis is a non-empty, finite, strictly increasing 1-D vector. Nearest-neighbour lookups along the axis rely on sorted coordinates, so a violation is a fatal configuration error rather than something to repair.

        Parameters:
            axis (np.ndarray): Candidate coordinate vector.
            name (str): Axis name for the error message.

        Returns:
            np.ndarray: The axis as a 1-D float array.

        Raises:
            GridConfigurationError: If the axis is empty, not 1-D, contains non-finite values or is not strictly increasing.
        """
        axis = np.asarray(axis, dtype=float)

        if axis.ndim != 1 or axis.size == 0:
            raise GridConfigurationError(f"Grid axis '{name}' must be a non-empty 1-D vector, got shape {axis.shape}")

        if not np.all(np.isfinite(axis)):
            raise GridConfigurationError(f"Grid axis '{name}' contains non-finite values")

        if axis.size > 1 and not np.all(np.diff(axis) > 0):
            raise GridConfigurationError(f"Grid axis '{name}' must be strictly increasing")

        return axis

    @staticmethod
    def validate_equal_lengths(message: str, *arrays: Sequence[float]) -> int:
        """
        Check that every array has the same number of elements and return that number.

        Parameters:
            message (str): Error message used when the lengths differ.
            *arrays: Arrays or sequences to compare.

        Returns:
            int: Common length of the arrays (0 when no arrays are given).

        Raises:
            ContractViolation: If any two lengths differ.
        """
        lengths = {np.asarray(a).size for a in arrays}
        require(len(lengths) <= 1, f"{message} (got lengths {sorted(lengths)})")
        return lengths.pop() if lengths else 0

    @staticmethod
    def validate_partition(high: np.ndarray, low: np.ndarray, n: int) -> None:
        """
        Check that two index arrays together form an exact partition of range(n): every column index appears once, none is repeated, and none lies outside the axis.

        Parameters:
            high (np.ndarray): Indices placed first in the reindexed view.
            low (np.ndarray): Indices placed second in the reindexed view.
            n (int): Length of the axis being partitioned.

        Returns:
            None

        Raises:
            ContractViolation: If the indices are not a permutation of range(n).
        """
        combined = np.concatenate([np.asarray(high, dtype=int).ravel(),
                                   np.asarray(low, dtype=int).ravel()])
        require(combined.size == n,
                f"Longitude partition covers {combined.size} indices, axis has {n}")
        require(np.array_equal(np.sort(combined), np.arange(n)),
                "Longitude partition must contain every column index exactly once")

    @staticmethod
    def validate_data_array(data: np.ndarray,
                            min_val: Optional[float] = None,
                            max_val: Optional[float] = None) -> Dict[str, Any]:
        """
        Summarize a numerical array and flag values outside optional thresholds. Non-finite values are counted as missing. The returned dictionary has 'valid' (bool), 'issues' (list of str) and 'stats' (min, max, mean, std, median, total_points, finite_points, finite_percentage).

        Parameters:
            data (np.ndarray): Array to summarize, any shape.
            min_val (Optional[float]): Report an issue if the observed minimum is below this value (default: None).
            max_val (Optional[float]): Report an issue if the observed maximum is above this value (default: None).

        Returns:
            dict: Validation status, issue list and summary statistics.
        """
        data = np.asarray(data, dtype=float)
        results: Dict[str, Any] = {
            "valid": True,
            "issues": [],
            "stats": {}
        }

        finite_mask = np.isfinite(data)
        finite_count = int(np.sum(finite_mask))
        total_count = int(data.size)

        results["stats"]["total_points"] = total_count
        results["stats"]["finite_points"] = finite_count
        results["stats"]["finite_percentage"] = (finite_count / total_count) * 100 if total_count else 0.0

        if finite_count == 0:
            results["valid"] = False
            results["issues"].append("No finite values found")
            return results

        finite_data = data[finite_mask]

        results["stats"]["min"] = float(np.min(finite_data))
        results["stats"]["max"] = float(np.max(finite_data))
        results["stats"]["mean"] = float(np.mean(finite_data))
        results["stats"]["std"] = float(np.std(finite_data))
        results["stats"]["median"] = float(np.median(finite_data))

        if min_val is not None and results["stats"]["min"] < min_val:
            results["issues"].append(f"Minimum value {results['stats']['min']:.2f} below expected {min_val}")

        if max_val is not None and results["stats"]["max"] > max_val:
            results["issues"].append(f"Maximum value {results['stats']['max']:.2f} above expected {max_val}")

        if results["issues"]:
            results["valid"] = False

        return results
