#!/usr/bin/env python3

"""
Along-Track Cross-Section Extraction

This module collapses a gridded 3-D field into a 2-D (along-track position x depth) cross-section and fills its gaps. Negative values are treated as missing, which removes the fill value of empty bins, and the field is averaged across the transverse horizontal dimension ignoring missing values: latitude for zonal tracks, longitude for meridional tracks. Gaps are then filled by linear interpolation, first down each profile against the depth axis and then along each depth level against the along-track axis. A profile or level is only interpolated when it holds at least three valid values, and values beyond its outermost valid points are never extrapolated, so sparsely sampled sections keep NaN gaps that downstream code must tolerate.

The mask coverage helpers blank cross-section positions whose swath lies entirely on land according to the ocean mask.

Functions:
    make_xsec: Build a gap-filled cross-section from a 3-D field.
    track_coverage: Average the swath mask times the ocean mask across the transverse dimension.
    apply_coverage: Blank cross-section cells where the coverage is exactly zero.

Author: Rubaiat Islam
Institution: Mesoscale & Microscale Meteorology Laboratory, NCAR
Email: mrislam@ucar.edu
Date: November 2025
Version: 1.0.0
"""

import numpy as np
from typing import Union

from .constants import MIN_INTERP_POINTS
from .grid import Grid
from .tracks import Orientation


def _nanmean(values: np.ndarray, axis: int) -> np.ndarray:
    """Mean ignoring NaN along axis; slices without any valid value give NaN without a RuntimeWarning."""
    valid = ~np.isnan(values)
    count = np.sum(valid, axis=axis)
    total = np.sum(np.where(valid, values, 0.0), axis=axis)

    with np.errstate(divide='ignore', invalid='ignore'):
        mean = total / count

    return np.where(count > 0, mean, np.nan)


def _fill_rows(section: np.ndarray, coord: np.ndarray,
               min_points: int = MIN_INTERP_POINTS) -> np.ndarray:
    """
    Linearly interpolate every row of a 2-D array against coord using its valid entries. Rows with fewer than min_points valid entries are returned unchanged; entries outside the range of a row's valid coordinates become NaN.
    """
    filled = section.copy()

    for i in range(filled.shape[0]):
        valid = ~np.isnan(filled[i])
        if np.count_nonzero(valid) >= min_points:
            filled[i] = np.interp(coord, coord[valid], filled[i, valid], left=np.nan, right=np.nan)

    return filled


def make_xsec(field: np.ndarray, grid: Grid,
              orientation: Union[str, Orientation] = Orientation.ZONAL) -> np.ndarray:
    """
    Build an along-track cross-section from a 3-D gridded field. The field is first cleared of negative values, then averaged across the transverse dimension, then gap-filled along depth for every along-track position and finally along the track for every depth level. Each interpolation step requires at least three valid values and never extrapolates; positions and levels that do not meet the threshold are left as they are.

    Parameters:
        field (np.ndarray): Gridded field of shape (ny, nx, nz), e.g. the binned mean.
        grid (Grid): Grid providing the xt, yt and zt axes of field.
        orientation (Union[str, Orientation]): 'zonal' averages over latitude and returns (nx, nz); 'merid' averages over longitude and returns (ny, nz) (default: zonal).

    Returns:
        np.ndarray: Cross-section of shape (nx, nz) or (ny, nz), NaN where no value could be derived.

    Raises:
        ValueError: If the orientation is unknown or field does not match the grid shape.
    """
    orientation = Orientation.parse(orientation)

    values = np.array(field, dtype=float)
    if values.shape != grid.shape:
        raise ValueError(f"Field shape {values.shape} does not match grid shape {grid.shape}")

    values[values < 0] = np.nan

    if orientation is Orientation.ZONAL:
        along_axis = grid.xt
    elif orientation is Orientation.MERIDIONAL:
        along_axis = grid.yt
    else:
        raise ValueError(f"Unsupported orientation: {orientation}")

    section = _nanmean(values, axis=orientation.transverse_axis)
    section = _fill_rows(section, grid.zt)
    section = _fill_rows(section.T, along_axis).T

    return section


def track_coverage(mask: np.ndarray, ocean_mask: np.ndarray,
                   orientation: Union[str, Orientation] = Orientation.ZONAL) -> np.ndarray:
    """
    Average the product of the swath mask and the ocean mask across the transverse dimension. The result is 1 where the swath has ocean cells only, between 0 and 1 for mixed swaths, exactly 0 where the swath lies entirely on land, and NaN at positions the swath does not reach.

    Parameters:
        mask (np.ndarray): Swath mask of shape (ny, nx, nz) with 1 and NaN.
        ocean_mask (np.ndarray): Ocean mask of shape (ny, nx, nz) with 1 for ocean and 0 for land.
        orientation (Union[str, Orientation]): Track orientation (default: zonal).

    Returns:
        np.ndarray: Coverage of shape (nx, nz) for zonal tracks or (ny, nz) for meridional tracks.
    """
    orientation = Orientation.parse(orientation)
    product = np.asarray(mask, dtype=float) * np.asarray(ocean_mask, dtype=float)
    return _nanmean(product, axis=orientation.transverse_axis)


def apply_coverage(xsec: np.ndarray, coverage: np.ndarray) -> np.ndarray:
    """Return a copy of xsec with NaN wherever coverage is exactly zero; positions outside the swath are kept."""
    result = np.array(xsec, dtype=float)
    result[np.asarray(coverage) == 0] = np.nan
    return result
