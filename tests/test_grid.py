#!/usr/bin/env python3
"""
Structured Grid Unit Tests

This module tests construction and validation of the read-only Grid value object and the grid provider reading NetCDF and MATLAB grid files from temporary directories.

Tests Performed:
    TestGridConstruction:
        - test_from_axes: Meshes follow meshgrid order and the default mask is all ocean
        - test_read_only: Axes and meshes cannot be modified in place
        - test_invalid_axes: Non-increasing or non-finite axes raise GridConfigurationError
        - test_mask_shape_mismatch: A mask of the wrong shape raises GridConfigurationError

    TestGridFiles:
        - test_load_netcdf_grid: Axes and ocean mask are read back from NetCDF
        - test_load_netcdf_transposed_mask: A mask stored as (zt, yt, xt) is reordered
        - test_load_mat_grid: A MATLAB 'grid' struct with M3d is read with scipy
        - test_load_grid_and_shift: The bundle holds the base grid, its shifted view and the partition
        - test_missing_file: A missing file raises FileNotFoundError
        - test_missing_axis: A file without zt raises GridConfigurationError

Author: Rubaiat Islam
Institution: Mesoscale & Microscale Meteorology Laboratory, NCAR
Email: mrislam@ucar.edu
Date: November 2025
Version: 1.0.0
"""

import os
import sys
import shutil
import unittest
import tempfile
import numpy as np
import xarray as xr
from pathlib import Path
from scipy.io import savemat
from numpy.testing import assert_array_equal

package_dir = Path(__file__).parent.parent
sys.path.insert(0, str(package_dir))

from tracegrid.processing.grid import Grid, load_grid, load_grid_and_shift
from tracegrid.processing.utils_validator import GridConfigurationError

XT = np.arange(0.0, 360.0, 60.0)
YT = np.array([-30.0, 0.0, 30.0])
ZT = np.array([5.0, 50.0])


def make_mask() -> np.ndarray:
    mask = np.ones((3, 6, 2))
    mask[0, :, :] = 0.0
    mask[:, 2, 1] = 0.0
    return mask


class TestGridConstruction(unittest.TestCase):

    def test_from_axes(self) -> None:
        grid = Grid.from_axes(XT, YT, ZT)

        self.assertEqual(grid.shape, (3, 6, 2))
        self.assertEqual(grid.size, 36)
        assert_array_equal(grid.XT3d[1, :, 0], XT)
        assert_array_equal(grid.YT3d[:, 2, 1], YT)
        assert_array_equal(grid.ZT3d[2, 3, :], ZT)
        assert_array_equal(grid.M3d, 1.0)

    def test_read_only(self) -> None:
        """Grids are shared between tracks, so their arrays must reject in-place writes."""
        grid = Grid.from_axes(XT, YT, ZT)

        with self.assertRaises(ValueError):
            grid.xt[0] = 10.0
        with self.assertRaises(ValueError):
            grid.M3d[0, 0, 0] = 0.0

    def test_invalid_axes(self) -> None:
        with self.assertRaises(GridConfigurationError):
            Grid.from_axes(XT, YT, np.array([50.0, 5.0]))
        with self.assertRaises(GridConfigurationError):
            Grid.from_axes(XT, np.array([-30.0, np.nan, 30.0]), ZT)
        with self.assertRaises(GridConfigurationError):
            Grid.from_axes(np.array([]), YT, ZT)

    def test_mask_shape_mismatch(self) -> None:
        with self.assertRaises(GridConfigurationError):
            Grid.from_axes(XT, YT, ZT, np.ones((6, 3, 2)))


class TestGridFiles(unittest.TestCase):
    """Grid provider reading files written to a temporary directory."""

    def setUp(self) -> None:
        self.temp_dir = tempfile.mkdtemp()

    def tearDown(self) -> None:
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def test_load_netcdf_grid(self) -> None:
        path = os.path.join(self.temp_dir, 'grid.nc')
        xr.Dataset({'M3d': (('yt', 'xt', 'zt'), make_mask())},
                   coords={'xt': XT, 'yt': YT, 'zt': ZT}).to_netcdf(path)

        grid = load_grid(path)

        assert_array_equal(grid.xt, XT)
        assert_array_equal(grid.zt, ZT)
        assert_array_equal(grid.M3d, make_mask())
        assert_array_equal(grid.XT3d[0, :, 0], XT)

    def test_load_netcdf_transposed_mask(self) -> None:
        path = os.path.join(self.temp_dir, 'grid_zyx.nc')
        xr.Dataset({'M3d': (('zt', 'yt', 'xt'), make_mask().transpose(2, 0, 1))},
                   coords={'xt': XT, 'yt': YT, 'zt': ZT}).to_netcdf(path)

        assert_array_equal(load_grid(path).M3d, make_mask())

    def test_load_mat_grid(self) -> None:
        path = os.path.join(self.temp_dir, 'grid.mat')
        savemat(path, {'grid': {'xt': XT, 'yt': YT, 'zt': ZT}, 'M3d': make_mask()})

        grid = load_grid(path)

        self.assertEqual(grid.shape, (3, 6, 2))
        assert_array_equal(grid.yt, YT)
        assert_array_equal(grid.M3d, make_mask())

    def test_load_grid_and_shift(self) -> None:
        path = os.path.join(self.temp_dir, 'grid.nc')
        xr.Dataset(coords={'xt': XT, 'yt': YT, 'zt': ZT}).to_netcdf(path)

        bundle = load_grid_and_shift(path)

        assert_array_equal(bundle.high, [4, 5])
        assert_array_equal(bundle.low, [0, 1, 2, 3])
        assert_array_equal(bundle.shifted.xt, [-120.0, -60.0, 0.0, 60.0, 120.0, 180.0])
        assert_array_equal(bundle.grid.xt, XT)

    def test_missing_file(self) -> None:
        with self.assertRaises(FileNotFoundError):
            load_grid(os.path.join(self.temp_dir, 'absent.nc'))

    def test_missing_axis(self) -> None:
        path = os.path.join(self.temp_dir, 'bad.nc')
        xr.Dataset(coords={'xt': XT, 'yt': YT}).to_netcdf(path)

        with self.assertRaises(GridConfigurationError):
            load_grid(path)


if __name__ == '__main__':
    unittest.main()
