#!/usr/bin/env python3

"""
Dateline Reindexing Utilities

This module presents fields on a rotated view of the cyclic longitude axis. A grid whose longitudes run over [0, 360) puts its seam on the prime meridian, which splits cruises crossing the Atlantic; reindexing the columns so that the longitudes above the split come first moves the seam to the split longitude (the antimeridian by default) without touching any data value. Station longitudes are brought into the matching [-180, 180] convention with wrap_longitudes_for_grid.

Functions:
    longitude_partition: Split column indices into the blocks above and at-or-below a split longitude.
    reorder_lon_blocks: Concatenate the high block before the low block along the longitude axis.
    restore_lon_blocks: Undo reorder_lon_blocks.
    wrap_longitudes_for_grid: Map longitudes above the split longitude into the shifted view convention.

Author: Rubaiat Islam
Institution: Mesoscale & Microscale Meteorology Laboratory, NCAR
Email: mrislam@ucar.edu
Date: November 2025
Version: 1.0.0
"""

import numpy as np
from typing import Tuple, Union

from .constants import DEFAULT_SPLIT_LONGITUDE
from .utils_validator import DataValidator


def longitude_partition(xt: np.ndarray,
                        split: float = DEFAULT_SPLIT_LONGITUDE) -> Tuple[np.ndarray, np.ndarray]:
    """
    Split the column indices of a longitude axis into the block east of the split and the block at or west of it.

    Parameters:
        xt (np.ndarray): 1-D longitude axis.
        split (float): Split longitude in degrees (default: 180.0).

    Returns:
        Tuple[np.ndarray, np.ndarray]: (high, low) integer index arrays with xt[high] > split and xt[low] <= split.
    """
    xt = np.asarray(xt, dtype=float)
    high = np.flatnonzero(xt > split)
    low = np.flatnonzero(xt <= split)
    return high, low


def reorder_lon_blocks(field: np.ndarray, high: np.ndarray, low: np.ndarray,
                       axis: int = 1) -> np.ndarray:
    """
    Reindex a field onto the rotated longitude view by concatenating the high-indexed columns before the low-indexed columns along the longitude axis. All other dimensions keep their order and no value is modified. The two index arrays must form an exact partition of the axis; anything else would silently drop or duplicate columns and is rejected. Works for the 2-D surface layer as well as the 3-D (ny, nx, nz) fields and meshes.

    Parameters:
        field (np.ndarray): Array with the longitude dimension at position axis.
        high (np.ndarray): Column indices placed first.
        low (np.ndarray): Column indices placed second.
        axis (int): Longitude axis of field (default: 1 for (ny, nx, nz) arrays).

    Returns:
        np.ndarray: New array with reordered longitude columns.

    Raises:
        ContractViolation: If high and low are not a partition of range(field.shape[axis]).
    """
    field = np.asarray(field)
    DataValidator.validate_partition(high, low, field.shape[axis])

    order = np.concatenate([np.asarray(high, dtype=int), np.asarray(low, dtype=int)])
    return np.take(field, order, axis=axis)


def restore_lon_blocks(field: np.ndarray, high: np.ndarray, low: np.ndarray,
                       axis: int = 1) -> np.ndarray:
    """
    Return a reindexed field to its original column order, so that restore_lon_blocks(reorder_lon_blocks(A, high, low), high, low) equals A exactly.

    Parameters:
        field (np.ndarray): Array produced by reorder_lon_blocks with the same partition.
        high (np.ndarray): Column indices that were placed first.
        low (np.ndarray): Column indices that were placed second.
        axis (int): Longitude axis of field (default: 1).

    Returns:
        np.ndarray: Array in the original longitude order.
    """
    field = np.asarray(field)
    DataValidator.validate_partition(high, low, field.shape[axis])

    order = np.concatenate([np.asarray(high, dtype=int), np.asarray(low, dtype=int)])
    return np.take(field, np.argsort(order), axis=axis)


def wrap_longitudes_for_grid(x: Union[float, np.ndarray],
                             split: float = DEFAULT_SPLIT_LONGITUDE) -> Union[float, np.ndarray]:
    """
    Convert longitudes above the split into the convention of the shifted grid view by subtracting 360. With the default split of 180 this maps [0, 360] onto [-180, 180]: values of 180 and below are unchanged, so 180 stays 180 while 360 becomes 0. This is a single wrap, not a general modular reduction, and it must use the same split as longitude_partition for the view the coordinates are drawn on. The input is never modified in place.

    Parameters:
        x (Union[float, np.ndarray]): Scalar or array of longitudes in degrees.
        split (float): Split longitude of the shifted view (default: 180.0).

    Returns:
        Union[float, np.ndarray]: Wrapped longitudes with the same shape as the input.
    """
    x_arr = np.asarray(x, dtype=float)
    wrapped = np.where(x_arr > split, x_arr - 360, x_arr)

    if np.ndim(x) == 0:
        return float(wrapped)
    return wrapped
