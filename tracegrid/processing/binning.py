#!/usr/bin/env python3

"""
Nearest-Neighbour 3-D Binning

This module assigns irregular point samples to the cells of a structured (ny, nx, nz) grid and aggregates them into per-cell mean, variance and count. Assignment is done in two stages: every sample first gets the nearest depth level of a reference grid column (samples above the first level or below the last level are clamped to those levels), then, within its level, the nearest horizontal grid point found with a scipy KDTree built on that level's (X, Y) mesh. Level-dependent horizontal meshes are therefore supported. Samples outside the horizontal extent of their level's mesh have no defined neighbour and stay unassigned.

Aggregation goes through an explicit sparse binning operator BIN of shape (cells, samples) holding a single unit entry per assigned sample, so that counts, sums and sums of squares are sparse matrix-vector products and no dense cells-by-samples matrix is ever built. The per-cell variance is

    var = sum(derr**2) / n**2 + sum(d**2) / n - mu**2

which adds the propagated measurement uncertainty of the cell mean to the population (not Bessel-corrected) spread of the values in the cell. The mix is statistically non-standard but is kept exactly so that results stay comparable with previously gridded products. Cells without samples carry the out-of-band fill value (-9 by default) in both mean and variance; this relies on the measured quantity being non-negative.

Classes:
    AggregationResult: Per-cell statistics together with the binning operator and per-sample assignments.
    GridIndexer: Reusable binner bound to one set of grid meshes.

Functions:
    bin3d: One-shot binning of samples onto meshes X, Y, Z.

Author: Rubaiat Islam
Institution: Mesoscale & Microscale Meteorology Laboratory, NCAR
Email: mrislam@ucar.edu
Date: November 2025
Version: 1.0.0
"""

import numpy as np
from scipy import sparse
from scipy.spatial import KDTree
from dataclasses import dataclass
from typing import Dict, Optional, Tuple

from .constants import FILL_VALUE, GRID_SHAPE_MSG, LENGTH_MISMATCH_MSG
from .grid import Grid
from .utils_validator import DataValidator, GridConfigurationError


@dataclass(frozen=True, eq=False)
class AggregationResult:
    """
    Gridded statistics of one binning run.

    Attributes:
        mu (np.ndarray): Per-cell mean, fill_value where n == 0, shape (ny, nx, nz).
        var (np.ndarray): Per-cell variance, fill_value where n == 0, shape (ny, nx, nz).
        n (np.ndarray): Per-cell sample count, shape (ny, nx, nz).
        operator (sparse.csr_matrix): Binning operator of shape (ny*nx*nz, N).
        level (np.ndarray): Assigned depth level of every sample, shape (N,).
        cell (np.ndarray): Flat C-order cell index of every sample, -1 when unassigned, shape (N,).
        fill_value (float): Sentinel stored in empty cells.
    """
    mu: np.ndarray
    var: np.ndarray
    n: np.ndarray
    operator: sparse.csr_matrix
    level: np.ndarray
    cell: np.ndarray
    fill_value: float = FILL_VALUE

    @property
    def valid(self) -> np.ndarray:
        """Boolean (ny, nx, nz) array marking cells that received at least one sample."""
        return self.n > 0

    @property
    def n_samples(self) -> int:
        return int(self.cell.size)

    @property
    def n_assigned(self) -> int:
        return int(np.count_nonzero(self.cell >= 0))

    @property
    def n_valid_cells(self) -> int:
        return int(np.count_nonzero(self.n > 0))

    def masked_mean(self) -> np.ndarray:
        """Return mu with empty cells set to NaN instead of the sentinel."""
        return np.where(self.valid, self.mu, np.nan)

    def masked_variance(self) -> np.ndarray:
        """Return var with empty cells set to NaN instead of the sentinel."""
        return np.where(self.valid, self.var, np.nan)


def _nearest_level(z: np.ndarray, zt: np.ndarray) -> np.ndarray:
    """
    Nearest index on a strictly increasing axis, clamped to the first and last index. A value exactly halfway between two levels goes to the deeper one.
    """
    if zt.size == 1:
        return np.zeros(z.shape, dtype=int)

    midpoints = 0.5 * (zt[:-1] + zt[1:])
    return np.searchsorted(midpoints, z, side='right').astype(int)


class GridIndexer:
    """
    Nearest-neighbour binner bound to one set of (ny, nx, nz) grid meshes. The reference depth axis and the per-level KDTrees are computed once and reused across calls, so binning many tracks onto the same grid only pays for the tree construction of the levels actually used.
    """

    def __init__(self, X: np.ndarray, Y: np.ndarray, Z: np.ndarray,
                 fill_value: float = FILL_VALUE, workers: int = 1) -> None:
        """
        Bind the indexer to grid meshes and validate them. All three meshes must be 3-D with the same shape, and the depth axis taken from the reference column Z[0, 0, :] must be strictly increasing, since the level lookup assumes identical depth levels at every horizontal position.

        Parameters:
            X (np.ndarray): Longitude mesh of shape (ny, nx, nz).
            Y (np.ndarray): Latitude mesh of shape (ny, nx, nz).
            Z (np.ndarray): Depth mesh of shape (ny, nx, nz).
            fill_value (float): Sentinel for empty cells, must lie outside the range of the measured quantity (default: -9.0).
            workers (int): Worker threads passed to KDTree.query, -1 uses all cores (default: 1).

        Returns:
            None

        Raises:
            GridConfigurationError: If the meshes are malformed or the depth axis is not strictly increasing.
        """
        X = np.asarray(X, dtype=float)
        Y = np.asarray(Y, dtype=float)
        Z = np.asarray(Z, dtype=float)

        if X.ndim != 3 or X.shape != Y.shape or X.shape != Z.shape:
            raise GridConfigurationError(f"{GRID_SHAPE_MSG}, got {X.shape}, {Y.shape}, {Z.shape}")

        self.X = X
        self.Y = Y
        self.shape: Tuple[int, int, int] = X.shape
        self.zt = DataValidator.validate_axis(Z[0, 0, :], 'depth levels Z[0, 0, :]')
        self.fill_value = float(fill_value)
        self.workers = workers
        self._trees: Dict[int, Optional[Tuple[KDTree, np.ndarray, Tuple[float, float, float, float]]]] = {}

    @classmethod
    def from_grid(cls, grid: Grid, fill_value: float = FILL_VALUE, workers: int = 1) -> 'GridIndexer':
        """Create an indexer for the coordinate meshes of a Grid."""
        return cls(grid.XT3d, grid.YT3d, grid.ZT3d, fill_value=fill_value, workers=workers)

    def _level_tree(self, k: int) -> Optional[Tuple[KDTree, np.ndarray, Tuple[float, float, float, float]]]:
        """
        Return the cached KDTree for level k together with the flat horizontal indices of its points and the level's (xmin, xmax, ymin, ymax) extent, or None when the level has no finite mesh points.
        """
        if k not in self._trees:
            xk = self.X[:, :, k].ravel()
            yk = self.Y[:, :, k].ravel()
            finite = np.isfinite(xk) & np.isfinite(yk)

            if not np.any(finite):
                self._trees[k] = None
            else:
                points = np.column_stack([xk[finite], yk[finite]])
                extent = (float(points[:, 0].min()), float(points[:, 0].max()),
                          float(points[:, 1].min()), float(points[:, 1].max()))
                self._trees[k] = (KDTree(points), np.flatnonzero(finite), extent)

        return self._trees[k]

    def assign(self, x: np.ndarray, y: np.ndarray, z: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        """
        Assign samples to depth levels and grid cells without aggregating.

        Parameters:
            x (np.ndarray): Sample longitudes, shape (N,).
            y (np.ndarray): Sample latitudes, shape (N,).
            z (np.ndarray): Sample depths, shape (N,).

        Returns:
            Tuple[np.ndarray, np.ndarray]: (level, cell) integer arrays of shape (N,); cell is the flat C-order index into (ny, nx, nz) or -1 for unassigned samples.
        """
        x = np.asarray(x, dtype=float).ravel()
        y = np.asarray(y, dtype=float).ravel()
        z = np.asarray(z, dtype=float).ravel()

        ny, nx, nz = self.shape
        level = _nearest_level(z, self.zt)
        cell = np.full(x.shape, -1, dtype=np.int64)

        for k in np.unique(level):
            tree_info = self._level_tree(int(k))
            if tree_info is None:
                continue

            tree, point_index, (xmin, xmax, ymin, ymax) = tree_info
            members = np.flatnonzero(level == k)
            inside = ((x[members] >= xmin) & (x[members] <= xmax) &
                      (y[members] >= ymin) & (y[members] <= ymax))
            members = members[inside]

            if members.size == 0:
                continue

            _, nearest = tree.query(np.column_stack([x[members], y[members]]), workers=self.workers)
            rows, cols = np.divmod(point_index[nearest], nx)
            cell[members] = np.ravel_multi_index((rows, cols, np.full(members.size, k)), (ny, nx, nz))

        return level, cell

    def bin(self, x: np.ndarray, y: np.ndarray, z: np.ndarray,
            d: np.ndarray, derr: np.ndarray) -> AggregationResult:
        """
        Bin samples onto the grid and compute per-cell mean, variance and count through the sparse binning operator. NaN-valued samples must be removed by the caller beforehand; an empty sample set is valid and yields an all-empty result.

        Parameters:
            x (np.ndarray): Sample longitudes, shape (N,).
            y (np.ndarray): Sample latitudes, shape (N,).
            z (np.ndarray): Sample depths, shape (N,).
            d (np.ndarray): Sample values, shape (N,).
            derr (np.ndarray): One-sigma sample uncertainties, shape (N,).

        Returns:
            AggregationResult: Gridded statistics, binning operator and per-sample assignments.

        Raises:
            ContractViolation: If the five input arrays differ in length.
        """
        n_obs = DataValidator.validate_equal_lengths(LENGTH_MISMATCH_MSG, x, y, z, d, derr)

        d = np.asarray(d, dtype=float).ravel()
        derr = np.asarray(derr, dtype=float).ravel()
        level, cell = self.assign(x, y, z)

        n_cells = int(np.prod(self.shape))
        assigned = np.flatnonzero(cell >= 0)
        operator = sparse.csr_matrix(
            (np.ones(assigned.size), (cell[assigned], assigned)),
            shape=(n_cells, n_obs)
        )

        n = operator @ np.ones(n_obs)

        with np.errstate(divide='ignore', invalid='ignore'):
            mu = (operator @ d) / n
            var = (operator @ derr**2) / n**2 + ((operator @ d**2) / n - mu**2)

        empty = n == 0
        mu[empty] = self.fill_value
        var[empty] = self.fill_value

        return AggregationResult(
            mu=mu.reshape(self.shape),
            var=var.reshape(self.shape),
            n=n.reshape(self.shape),
            operator=operator,
            level=level,
            cell=cell,
            fill_value=self.fill_value,
        )


def bin3d(x: np.ndarray, y: np.ndarray, z: np.ndarray, d: np.ndarray, derr: np.ndarray,
          X: np.ndarray, Y: np.ndarray, Z: np.ndarray,
          fill_value: float = FILL_VALUE) -> AggregationResult:
    """
    Bin irregular 3-D samples onto the grid described by meshes X, Y, Z of shape (ny, nx, nz). Convenience wrapper around GridIndexer for a single call.

    Parameters:
        x, y, z (np.ndarray): Sample coordinates, each of shape (N,).
        d (np.ndarray): Sample values, shape (N,).
        derr (np.ndarray): One-sigma sample uncertainties, shape (N,).
        X, Y, Z (np.ndarray): Grid coordinate meshes, each of shape (ny, nx, nz).
        fill_value (float): Sentinel for empty cells (default: -9.0).

    Returns:
        AggregationResult: Per-cell mean, variance, count and the binning operator.
    """
    return GridIndexer(X, Y, Z, fill_value=fill_value).bin(x, y, z, d, derr)
