#!/usr/bin/env python3

"""
Structured Target Grid

This module defines the read-only structured grid shared by every stage of the pipeline and the provider functions that load it from disk. A Grid holds the longitude (xt), latitude (yt) and depth (zt) axes, the full (ny, nx, nz) coordinate meshes used for nearest-neighbour binning, and the ocean validity mask of the same shape. Axes are validated on construction: each must be finite and strictly increasing, and meshes and mask must agree on shape. Grids are never modified in place; the dateline-friendly view produced by Grid.shifted is a new Grid whose columns are reindexed so that the longitudes above the split come first, with those longitudes moved into the negative half of the [-180, 180] convention.

Classes:
    Grid: Immutable structured latitude-longitude-depth grid with ocean mask.
    GridBundle: Base grid, its shifted view and the longitude partition linking them.

Functions:
    load_grid: Read a grid from a NetCDF or MATLAB grid file.
    load_grid_and_shift: Read a grid and build its dateline-friendly view.

Author: Rubaiat Islam
Institution: Mesoscale & Microscale Meteorology Laboratory, NCAR
Email: mrislam@ucar.edu
Date: November 2025
Version: 1.0.0
"""

import os
import numpy as np
import xarray as xr
from scipy.io import loadmat
from dataclasses import dataclass
from typing import Any, Optional, Tuple

from .constants import (
    DEFAULT_SPLIT_LONGITUDE, GRID_AXIS_NAMES, GRID_MESH_NAMES, OCEAN_MASK_NAME
)
from .dateline import longitude_partition, reorder_lon_blocks
from .utils_validator import DataValidator, GridConfigurationError


@dataclass(frozen=True, eq=False)
class Grid:
    """
    Immutable structured grid with 1-D axes, 3-D coordinate meshes and an ocean mask.

    Attributes:
        xt (np.ndarray): Longitude axis, shape (nx,).
        yt (np.ndarray): Latitude axis, shape (ny,).
        zt (np.ndarray): Depth axis, positive down, shape (nz,).
        XT3d (np.ndarray): Longitude of every cell, shape (ny, nx, nz).
        YT3d (np.ndarray): Latitude of every cell, shape (ny, nx, nz).
        ZT3d (np.ndarray): Depth of every cell, shape (ny, nx, nz).
        M3d (np.ndarray): Ocean validity mask (1 ocean, 0 land), shape (ny, nx, nz).
    """
    xt: np.ndarray
    yt: np.ndarray
    zt: np.ndarray
    XT3d: np.ndarray
    YT3d: np.ndarray
    ZT3d: np.ndarray
    M3d: np.ndarray

    def __post_init__(self) -> None:
        for name in GRID_AXIS_NAMES:
            axis = np.array(DataValidator.validate_axis(getattr(self, name), name))
            axis.flags.writeable = False
            object.__setattr__(self, name, axis)

        shape = (self.yt.size, self.xt.size, self.zt.size)

        for name in GRID_MESH_NAMES + (OCEAN_MASK_NAME,):
            array = np.array(getattr(self, name), dtype=float)
            if array.shape != shape:
                raise GridConfigurationError(
                    f"Grid array '{name}' has shape {array.shape}, expected (ny, nx, nz) = {shape}"
                )
            array.flags.writeable = False
            object.__setattr__(self, name, array)

    @classmethod
    def from_axes(cls, xt: np.ndarray, yt: np.ndarray, zt: np.ndarray,
                  ocean_mask: Optional[np.ndarray] = None) -> 'Grid':
        """
        Build a grid from its three axes, deriving the coordinate meshes with numpy.meshgrid. Without an ocean mask every cell counts as ocean.

        Parameters:
            xt (np.ndarray): Longitude axis.
            yt (np.ndarray): Latitude axis.
            zt (np.ndarray): Depth axis.
            ocean_mask (Optional[np.ndarray]): (ny, nx, nz) ocean mask (default: None, all ocean).

        Returns:
            Grid: New grid instance.
        """
        xt = DataValidator.validate_axis(xt, 'xt')
        yt = DataValidator.validate_axis(yt, 'yt')
        zt = DataValidator.validate_axis(zt, 'zt')

        XT3d, YT3d, ZT3d = np.meshgrid(xt, yt, zt)

        if ocean_mask is None:
            ocean_mask = np.ones(XT3d.shape)

        return cls(xt=xt, yt=yt, zt=zt, XT3d=XT3d, YT3d=YT3d, ZT3d=ZT3d, M3d=ocean_mask)

    @property
    def shape(self) -> Tuple[int, int, int]:
        """Grid shape as (ny, nx, nz)."""
        return self.yt.size, self.xt.size, self.zt.size

    @property
    def size(self) -> int:
        return int(np.prod(self.shape))

    def shifted(self, high: np.ndarray, low: np.ndarray) -> 'Grid':
        """
        Build the dateline-friendly view of this grid for a given longitude partition. Meshes and ocean mask are reindexed with reorder_lon_blocks, and the longitudes of the leading (high) block are reduced by 360 so that the new longitude axis stays strictly increasing. For a [0, 360) grid split at 180 the resulting axis covers [-180, 180].

        Parameters:
            high (np.ndarray): Column indices east of the split.
            low (np.ndarray): Column indices at or west of the split.

        Returns:
            Grid: New grid in the rotated longitude view.
        """
        n_high = np.asarray(high).size

        xt = np.concatenate([self.xt[np.asarray(high, dtype=int)] - 360.0,
                             self.xt[np.asarray(low, dtype=int)]])

        XT3d = reorder_lon_blocks(self.XT3d, high, low)
        XT3d[:, :n_high, :] -= 360.0

        return Grid(
            xt=xt,
            yt=self.yt,
            zt=self.zt,
            XT3d=XT3d,
            YT3d=reorder_lon_blocks(self.YT3d, high, low),
            ZT3d=reorder_lon_blocks(self.ZT3d, high, low),
            M3d=reorder_lon_blocks(self.M3d, high, low),
        )

    def coords(self) -> dict:
        """Return the axes as an xarray coordinate mapping keyed by axis name."""
        return {'yt': self.yt, 'xt': self.xt, 'zt': self.zt}


@dataclass(frozen=True, eq=False)
class GridBundle:
    """
    A base grid, its shifted dateline view and the longitude partition that links them.

    Attributes:
        grid (Grid): Base grid in its native longitude convention.
        shifted (Grid): Dateline-friendly view of the same grid.
        high (np.ndarray): Base column indices placed first in the shifted view.
        low (np.ndarray): Base column indices placed second in the shifted view.
        split (float): Split longitude the partition was built with.
    """
    grid: Grid
    shifted: Grid
    high: np.ndarray
    low: np.ndarray
    split: float = DEFAULT_SPLIT_LONGITUDE

    @classmethod
    def from_grid(cls, grid: Grid, split: float = DEFAULT_SPLIT_LONGITUDE) -> 'GridBundle':
        high, low = longitude_partition(grid.xt, split)
        return cls(grid=grid, shifted=grid.shifted(high, low), high=high, low=low, split=float(split))


def _to_cell_order(array: Any, name: str) -> np.ndarray:
    """
    Return a gridded variable as a float array in (yt, xt, zt) order. xarray variables whose dimensions are named after the axes are transposed accordingly; anything else is taken as already ordered.
    """
    if isinstance(array, xr.DataArray):
        if set(array.dims) == set(GRID_AXIS_NAMES):
            array = array.transpose('yt', 'xt', 'zt')
        array = array.values

    array = np.asarray(array, dtype=float)
    if array.ndim != 3:
        raise GridConfigurationError(f"Grid variable '{name}' must be 3-D, got shape {array.shape}")
    return array


def _load_netcdf_grid(filepath: str) -> Grid:
    with xr.open_dataset(filepath) as ds:
        missing = [name for name in GRID_AXIS_NAMES if name not in ds.variables]
        if missing:
            raise GridConfigurationError(f"Grid file {filepath} is missing axis variables {missing}")

        xt, yt, zt = (ds[name].values for name in GRID_AXIS_NAMES)

        ocean_mask = None
        if OCEAN_MASK_NAME in ds.variables:
            ocean_mask = _to_cell_order(ds[OCEAN_MASK_NAME], OCEAN_MASK_NAME)

        if all(name in ds.variables for name in GRID_MESH_NAMES):
            XT3d, YT3d, ZT3d = (_to_cell_order(ds[name], name) for name in GRID_MESH_NAMES)
            if ocean_mask is None:
                ocean_mask = np.ones(XT3d.shape)
            return Grid(xt=xt, yt=yt, zt=zt, XT3d=XT3d, YT3d=YT3d, ZT3d=ZT3d, M3d=ocean_mask)

    return Grid.from_axes(xt, yt, zt, ocean_mask)


def _load_mat_grid(filepath: str) -> Grid:
    contents = loadmat(filepath, squeeze_me=True, struct_as_record=False)

    if 'grid' not in contents:
        raise GridConfigurationError(f"MATLAB grid file {filepath} has no 'grid' struct")

    grid_struct = contents['grid']
    missing = [name for name in GRID_AXIS_NAMES if not hasattr(grid_struct, name)]
    if missing:
        raise GridConfigurationError(f"MATLAB grid struct in {filepath} is missing fields {missing}")

    xt, yt, zt = (np.atleast_1d(getattr(grid_struct, name)) for name in GRID_AXIS_NAMES)
    ocean_mask = contents.get(OCEAN_MASK_NAME)

    if all(hasattr(grid_struct, name) for name in GRID_MESH_NAMES):
        XT3d, YT3d, ZT3d = (_to_cell_order(getattr(grid_struct, name), name) for name in GRID_MESH_NAMES)
        if ocean_mask is None:
            ocean_mask = np.ones(XT3d.shape)
        return Grid(xt=xt, yt=yt, zt=zt, XT3d=XT3d, YT3d=YT3d, ZT3d=ZT3d,
                    M3d=_to_cell_order(ocean_mask, OCEAN_MASK_NAME))

    if ocean_mask is not None:
        ocean_mask = _to_cell_order(ocean_mask, OCEAN_MASK_NAME)
    return Grid.from_axes(xt, yt, zt, ocean_mask)


def load_grid(filepath: str) -> Grid:
    """
    Load a structured grid from disk. NetCDF files are read with xarray and must provide xt, yt and zt; MATLAB .mat files must hold a 'grid' struct with the same fields and may hold an 'M3d' ocean mask next to it. The 3-D meshes are read when all three are present and otherwise derived from the axes.

    Parameters:
        filepath (str): Path to a .nc or .mat grid file.

    Returns:
        Grid: Validated grid.

    Raises:
        FileNotFoundError: If the file does not exist.
        GridConfigurationError: If required variables are missing or malformed.
    """
    if not os.path.isfile(filepath):
        raise FileNotFoundError(f"Grid file not found: {filepath}")

    if filepath.lower().endswith('.mat'):
        return _load_mat_grid(filepath)

    return _load_netcdf_grid(filepath)


def load_grid_and_shift(filepath: str, split: float = DEFAULT_SPLIT_LONGITUDE) -> GridBundle:
    """
    Load the base grid and prepare its dateline-friendly view in one call.

    Parameters:
        filepath (str): Path to a .nc or .mat grid file.
        split (float): Longitude at which the view is split (default: 180.0).

    Returns:
        GridBundle: Base grid, shifted grid and the (high, low) longitude partition.
    """
    return GridBundle.from_grid(load_grid(filepath), split)

