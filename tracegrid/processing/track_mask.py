#!/usr/bin/env python3

"""
Cruise Track Averaging Masks

This module builds the swath mask used to average a gridded field along a cruise track. The track is reduced to one dependent coordinate per grid line of the independent axis: for a zonal track latitude is linearly interpolated onto every grid longitude, for a meridional track longitude is interpolated onto every grid latitude. Grid lines outside the span of the track are left out. Around the nearest grid line of the dependent axis a band of 2w + 1 cells is marked as included; a track position more than half a cell beyond the dependent axis, or a band reaching past its ends, raises SwathBoundsError. The mask holds 1 for included cells and NaN elsewhere, so that multiplying a field by it keeps the swath and blanks everything else, and the 2-D surface mask is copied unchanged to every depth level.

Functions:
    make_cruise_mask: Build the (ny, nx, nz) swath mask for a track.

Author: Rubaiat Islam
Institution: Mesoscale & Microscale Meteorology Laboratory, NCAR
Email: mrislam@ucar.edu
Date: November 2025
Version: 1.0.0
"""

import numpy as np
from typing import Optional, Tuple, Union

from .constants import DEFAULT_HALF_WIDTH, LENGTH_MISMATCH_MSG
from .grid import Grid
from .tracks import Orientation
from .utils_validator import DataValidator, SwathBoundsError


def _nearest_index(axis: np.ndarray, values: np.ndarray) -> np.ndarray:
    """
    Nearest index of each value on a strictly increasing axis. Halfway values go to the higher index. Values up to half a cell beyond either end belong to the edge line; values further out raise SwathBoundsError.
    """
    if axis.size == 1:
        lower = upper = axis[0]
        index = np.zeros(values.shape, dtype=int)
    else:
        lower = axis[0] - 0.5 * (axis[1] - axis[0])
        upper = axis[-1] + 0.5 * (axis[-1] - axis[-2])
        midpoints = 0.5 * (axis[:-1] + axis[1:])
        index = np.searchsorted(midpoints, values, side='right').astype(int)

    outside = (values < lower) | (values > upper)
    if np.any(outside):
        raise SwathBoundsError(
            f"Track positions {np.unique(values[outside]).tolist()} lie outside the across-track "
            f"axis [{axis[0]}, {axis[-1]}] by more than half a cell"
        )
    return index


def _interpolate_track(independent: np.ndarray, dependent: np.ndarray,
                       axis: np.ndarray) -> np.ndarray:
    """
    Linearly interpolate the dependent track coordinate onto every grid line of the independent axis, NaN outside the track span. Repeated independent values keep their first occurrence.
    """
    finite = np.isfinite(independent) & np.isfinite(dependent)
    independent = independent[finite]
    dependent = dependent[finite]

    if independent.size == 0:
        return np.full(axis.shape, np.nan)

    unique_values, first = np.unique(independent, return_index=True)
    return np.interp(axis, unique_values, dependent[first], left=np.nan, right=np.nan)


def make_cruise_mask(xcruise: np.ndarray, ycruise: np.ndarray, grid: Grid,
                     ocean_mask: Optional[np.ndarray] = None,
                     half_width: int = DEFAULT_HALF_WIDTH,
                     orientation: Union[str, Orientation] = Orientation.ZONAL) -> np.ndarray:
    """
    Build a 3-D averaging mask along a cruise track. The track coordinates may be given in any order. The grid supplies the xt and yt axes; the ocean mask only fixes the (ny, nx, nz) output shape and defaults to the grid's own mask. A swath band that would reach past the first or last grid index raises SwathBoundsError instead of wrapping or truncating; choose the half-width so that every band fits inside the grid. An empty track gives an all-NaN mask.

    Parameters:
        xcruise (np.ndarray): Track longitudes in the grid's longitude convention.
        ycruise (np.ndarray): Track latitudes, same length as xcruise.
        grid (Grid): Grid providing the xt and yt axes.
        ocean_mask (Optional[np.ndarray]): (ny, nx, nz) template, defaults to grid.M3d (default: None).
        half_width (int): Swath half-width w in grid cells (default: 1).
        orientation (Union[str, Orientation]): 'zonal' bands in latitude along longitude, 'merid' bands in longitude along latitude (default: zonal).

    Returns:
        np.ndarray: Float mask of shape (ny, nx, nz), 1.0 inside the swath and NaN elsewhere.

    Raises:
        ValueError: If the orientation is unknown or half_width is negative or not an integer.
        ContractViolation: If xcruise and ycruise differ in length.
        SwathBoundsError: If a track position lies off the across-track axis or a swath band extends beyond the grid.
    """
    orientation = Orientation.parse(orientation)

    if int(half_width) != half_width or half_width < 0:
        raise ValueError(f"half_width must be a non-negative integer, got {half_width}")
    half_width = int(half_width)

    DataValidator.validate_equal_lengths(LENGTH_MISMATCH_MSG, xcruise, ycruise)
    xcruise = np.asarray(xcruise, dtype=float).ravel()
    ycruise = np.asarray(ycruise, dtype=float).ravel()

    template = grid.M3d if ocean_mask is None else np.asarray(ocean_mask)
    ny, nx, nz = template.shape

    if orientation is Orientation.ZONAL:
        independent, dependent = xcruise, ycruise
        along_axis, across_axis = grid.xt, grid.yt
    elif orientation is Orientation.MERIDIONAL:
        independent, dependent = ycruise, xcruise
        along_axis, across_axis = grid.yt, grid.xt
    else:
        raise ValueError(f"Unsupported orientation: {orientation}")

    track = _interpolate_track(independent, dependent, along_axis)
    along_index = np.flatnonzero(~np.isnan(track))
    across_index = _nearest_index(across_axis, track[along_index])

    if across_index.size and (across_index.min() - half_width < 0 or
                              across_index.max() + half_width > across_axis.size - 1):
        raise SwathBoundsError(
            f"Swath of half-width {half_width} around indices "
            f"[{across_index.min()}, {across_index.max()}] exceeds the grid range [0, {across_axis.size - 1}]"
        )

    band = across_index[:, np.newaxis] + np.arange(-half_width, half_width + 1)
    along = np.broadcast_to(along_index[:, np.newaxis], band.shape)

    surface = np.full((ny, nx), np.nan)
    if orientation is Orientation.ZONAL:
        surface[band, along] = 1.0
    else:
        surface[along, band] = 1.0

    return np.repeat(surface[:, :, np.newaxis], nz, axis=2)


def track_extent(xcruise: np.ndarray, ycruise: np.ndarray) -> Tuple[float, float, float, float]:
    """Return (lon_min, lon_max, lat_min, lat_max) of the finite track points, NaN for an empty track."""
    xcruise = np.asarray(xcruise, dtype=float)
    ycruise = np.asarray(ycruise, dtype=float)
    finite = np.isfinite(xcruise) & np.isfinite(ycruise)

    if not np.any(finite):
        return (np.nan, np.nan, np.nan, np.nan)

    return (float(xcruise[finite].min()), float(xcruise[finite].max()),
            float(ycruise[finite].min()), float(ycruise[finite].max()))
