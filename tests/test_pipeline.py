#!/usr/bin/env python3
"""
Gridding Pipeline Tests

This module tests the per-track and global processing steps on a synthetic 7 x 12 x 4 global grid and the complete configured run writing NetCDF results to a temporary directory. The synthetic dataset holds a zonal track along the equator, a zonal track crossing the prime meridian processed on the shifted grid view, a meridional track and one stray station east of the last grid longitude.

Tests Performed:
    TestTrackHelpers:
        - test_clip_longitudes: Longitudes beyond either end of the grid go to the last grid column
        - test_order_track: Zonal tracks sort by longitude, meridional tracks by latitude
        - test_split_track: Exactly 180 degrees belongs to neither segment

    TestProcessTrack:
        - test_zonal_track: Binned counts, mask rows and gap-filled cross-section of the equator track
        - test_shift180_track: Mask and cross-section on the shifted view with reordered statistics
        - test_shift180_track_custom_split: Track longitudes follow a split other than 180 degrees
        - test_meridional_track: Cross-section rows follow latitude
        - test_track_without_stations: Empty tracks give sentinel statistics and all-NaN outputs
        - test_clip_lon_to_grid: Clipping brings the stray station onto the grid

    TestProcessGlobal:
        - test_global_binning: Every valid sample is binned and mu_shifted is the reordered mean

    TestRunPipeline:
        - test_run_and_load_results: A run writes one group per track plus 'glob' and reads back identically
        - test_existing_output_skipped: An existing output file is kept unless overwrite is set
        - test_parallel_matches_serial: Tracks processed in a two-worker process pool give the serial results

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
from pathlib import Path
from numpy.testing import assert_allclose, assert_array_equal

package_dir = Path(__file__).parent.parent
sys.path.insert(0, str(package_dir))

from tracegrid.processing.dateline import reorder_lon_blocks
from tracegrid.processing.grid import GridBundle
from tracegrid.processing.pipeline import (
    clip_longitudes, load_results, order_track, process_global, process_track, run_pipeline, split_track
)
from tracegrid.processing.tracks import Orientation, TrackCatalog, TrackDefinition, WrapMode
from tracegrid.processing.utils_config import TraceConfig
from tests.synthetic_data import (
    GLOBE_XT, STATIONS, TRACK_ENTRIES, make_globe_grid, make_sample_set, write_grid_file, write_sample_file
)


class TestTrackHelpers(unittest.TestCase):

    def test_clip_longitudes(self) -> None:
        lon = np.array([345.0, -5.0, 100.0])
        clipped = clip_longitudes(lon, GLOBE_XT)

        assert_array_equal(clipped, [330.0, 330.0, 100.0])
        assert_array_equal(lon, [345.0, -5.0, 100.0])

    def test_order_track(self) -> None:
        lon = np.array([330.0, 0.0, 300.0, 30.0])
        lat = np.array([5.0, 10.0, 5.0, 0.0])

        x, y = order_track(lon, lat, Orientation.ZONAL)
        assert_array_equal(x, [0.0, 30.0, 300.0, 330.0])
        assert_array_equal(y, [10.0, 0.0, 5.0, 5.0])

        x, y = order_track(lon, lat, Orientation.MERIDIONAL)
        assert_array_equal(y, [0.0, 5.0, 5.0, 10.0])
        assert_array_equal(x, [30.0, 330.0, 300.0, 0.0])

    def test_split_track(self) -> None:
        segments = split_track(np.array([10.0, 180.0, 200.0]), np.array([1.0, 2.0, 3.0]))

        assert_array_equal(segments['x_1'], [10.0])
        assert_array_equal(segments['y_1'], [1.0])
        assert_array_equal(segments['x_2'], [200.0])
        assert_array_equal(segments['y_2'], [3.0])


class TestProcessTrack(unittest.TestCase):
    """Per-track processing on in-memory inputs."""

    def setUp(self) -> None:
        self.bundle = GridBundle.from_grid(make_globe_grid())
        self.samples = make_sample_set()
        self.catalog = TrackCatalog.from_list(TRACK_ENTRIES)

    def test_zonal_track(self) -> None:
        """
        The equator track has five stations in row 3, columns 1 to 5, with values 1 + station + level and an empty deepest slot at the first station. The first profile keeps its two values only, the other profiles are filled down to 1000 m, and the along-track fill never extends past the outermost valid station of a level.
        """
        track = process_track(self.catalog['GA02'], self.samples, self.bundle)

        self.assertEqual(track.n.sum(), 14)
        assert_array_equal(track.mu[3, 1:6, 0], [1.0, 2.0, 3.0, 4.0, 5.0])
        assert_array_equal(track.x, [30.0, 60.0, 90.0, 120.0, 150.0])
        assert_array_equal(track.position, GLOBE_XT)
        self.assertIsNone(track.segments)

        surface = track.mask[:, :, 0] == 1
        expected = np.zeros((7, 12), dtype=bool)
        expected[2:5, 1:6] = True
        assert_array_equal(surface, expected)

        self.assertEqual(track.xsec.shape, (12, 4))
        assert_allclose(track.xsec[1:6, 0], [1.0, 2.0, 3.0, 4.0, 5.0])
        assert_allclose(track.xsec[2:6, 2], [4.0, 5.0, 6.0, 7.0])
        self.assertTrue(np.isnan(track.xsec[1, 2]))
        self.assertTrue(np.all(np.isnan(track.xsec[:, 3])))
        self.assertTrue(np.all(np.isnan(track.xsec[0])))
        self.assertTrue(np.all(np.isnan(track.xsec[6:])))

    def test_shift180_track(self) -> None:
        """
        The stations at 300, 330, 0 and 30 degrees east are contiguous on the shifted view, where they occupy positions 3 to 6 (-60 to 30 degrees). The mask and the cross-section are built there while the binned statistics stay on the base grid.
        """
        track = process_track(self.catalog['GA03'], self.samples, self.bundle)

        self.assertIs(track.wrap_mode, WrapMode.SHIFT180)
        assert_array_equal(track.x, [0.0, 30.0, 300.0, 330.0])
        assert_array_equal(track.segments['x_1'], [0.0, 30.0])
        assert_array_equal(track.segments['x_2'], [300.0, 330.0])
        assert_array_equal(track.position, self.bundle.shifted.xt)

        self.assertEqual(track.n.sum(), 12)
        self.assertEqual(track.n[4, 11, 0], 1)

        surface = track.mask[:, :, 0] == 1
        expected = np.zeros((7, 12), dtype=bool)
        expected[3:6, 3:7] = True
        assert_array_equal(surface, expected)

        assert_allclose(track.xsec[3:7, 0], [8.0, 6.0, 7.0, 9.0])
        assert_allclose(track.xsec[3:7, 2], [10.0, 8.0, 9.0, 11.0])
        self.assertTrue(np.all(np.isnan(track.xsec[:3])))

    def test_shift180_track_custom_split(self) -> None:
        """
        With the view split at 100 degrees east the base columns 120 to 330 come first as -240 to -30. A track at 120 and 150 degrees east must land on view columns 0 and 1, where its mask and cross-section are built.
        """
        bundle = GridBundle.from_grid(make_globe_grid(), split=100.0)
        samples = make_sample_set([('GT01', 120.0, 0.0), ('GT01', 150.0, 0.0)])
        definition = TrackDefinition.from_dict({'name': 'GT01', 'orientation': 'zonal', 'wrap_mode': 'shift180'})

        track = process_track(definition, samples, bundle)

        assert_array_equal(track.position[:2], [-240.0, -210.0])
        assert_array_equal(track.x, [120.0, 150.0])

        surface = track.mask[:, :, 0] == 1
        expected = np.zeros((7, 12), dtype=bool)
        expected[2:5, 0:2] = True
        assert_array_equal(surface, expected)

        assert_array_equal(np.flatnonzero(np.isfinite(track.xsec).any(axis=1)), [0, 1])
        assert_allclose(track.xsec[0:2, 0], [1.0, 2.0])

    def test_meridional_track(self) -> None:
        track = process_track(self.catalog['GA10'], self.samples, self.bundle)

        assert_array_equal(track.y, [-20.0, 0.0, 20.0])
        self.assertEqual(track.xsec.shape, (7, 4))
        assert_allclose(track.xsec[2:5, 0], [10.0, 11.0, 12.0])
        assert_array_equal(np.flatnonzero(track.mask[3, :, 0] == 1), [1, 2, 3])

    def test_track_without_stations(self) -> None:
        definition = TrackDefinition.from_dict({'name': 'GP16', 'orientation': 'zonal'})

        track = process_track(definition, self.samples, self.bundle)

        self.assertEqual(track.x.size, 0)
        assert_array_equal(track.n, 0)
        assert_array_equal(track.mu, -9.0)
        assert_array_equal(track.var, -9.0)
        self.assertTrue(np.all(np.isnan(track.mask)))
        self.assertTrue(np.all(np.isnan(track.xsec)))

    def test_clip_lon_to_grid(self) -> None:
        clipped = TrackDefinition.from_dict({'name': 'GX01', 'orientation': 'zonal', 'clip_lon_to_grid': True})
        unclipped = TrackDefinition.from_dict({'name': 'GX01', 'orientation': 'zonal'})

        self.assertEqual(process_track(clipped, self.samples, self.bundle).n[5, 11, :].sum(), 3)
        self.assertEqual(process_track(unclipped, self.samples, self.bundle).n.sum(), 0)


class TestProcessGlobal(unittest.TestCase):

    def test_global_binning(self) -> None:
        bundle = GridBundle.from_grid(make_globe_grid())
        samples = make_sample_set()

        glob = process_global(samples, bundle)

        self.assertEqual(glob.n.sum(), 3 * len(STATIONS) - 1)
        self.assertEqual(glob.n[3, 2, 0], 2)
        assert_array_equal(glob.mu_shifted, reorder_lon_blocks(glob.mu, bundle.high, bundle.low))
        assert_array_equal(glob.mu[glob.n == 0], -9.0)


class TestRunPipeline(unittest.TestCase):
    """Configured runs on files in a temporary directory."""

    def setUp(self) -> None:
        self.temp_dir = tempfile.mkdtemp()
        self.grid_file = os.path.join(self.temp_dir, 'GRID.nc')
        self.data_file = os.path.join(self.temp_dir, 'idp.nc')
        self.output_file = os.path.join(self.temp_dir, 'out', 'Th232_bgrid.nc')

        write_grid_file(self.grid_file)
        write_sample_file(self.data_file)

        self.config = TraceConfig(grid_file=self.grid_file, data_file=self.data_file,
                                  output_file=self.output_file, tracks=TRACK_ENTRIES, verbose=False)

    def tearDown(self) -> None:
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def test_run_and_load_results(self) -> None:
        result = run_pipeline(self.config)

        self.assertIsNotNone(result)
        self.assertEqual(list(result.tracks), ['GA02', 'GA03', 'GA10'])
        self.assertTrue(os.path.isfile(self.output_file))

        datasets = load_results(self.output_file)

        self.assertEqual(list(datasets), ['GA02', 'GA03', 'GA10', 'glob'])
        ga03 = datasets['GA03']
        self.assertEqual(ga03.attrs['wrap_mode'], 'shift180')
        self.assertEqual(ga03.attrs['orientation'], 'zonal')
        self.assertEqual(float(ga03.attrs['split_longitude']), 180.0)
        assert_allclose(ga03['xsec'].values, result.tracks['GA03'].xsec)
        assert_allclose(ga03['mask'].values, result.tracks['GA03'].mask)
        assert_array_equal(ga03['x_2'].values, [300.0, 330.0])
        assert_array_equal(ga03['mu'].values, result.tracks['GA03'].mu)

        glob = datasets['glob']
        self.assertEqual(glob['mu_shifted'].shape, (7, 12, 4))
        assert_array_equal(glob['n'].values, result.glob.n)
        self.assertEqual(int(glob['n'].values.sum()), 3 * len(STATIONS) - 1)

    def test_existing_output_skipped(self) -> None:
        self.assertIsNotNone(run_pipeline(self.config))
        modified = os.path.getmtime(self.output_file)

        self.assertIsNone(run_pipeline(self.config))
        self.assertEqual(os.path.getmtime(self.output_file), modified)

        rerun = self.config.update_from_args({'overwrite': True})
        self.assertIsNotNone(run_pipeline(rerun))

    def test_parallel_matches_serial(self) -> None:
        serial = run_pipeline(self.config)
        parallel_config = self.config.update_from_args({
            'parallel': True, 'workers': 2, 'overwrite': True,
            'output_file': os.path.join(self.temp_dir, 'parallel.nc'),
        })

        parallel = run_pipeline(parallel_config)

        self.assertEqual(list(parallel.tracks), list(serial.tracks))
        for name in serial.tracks:
            assert_allclose(parallel.tracks[name].xsec, serial.tracks[name].xsec)
            assert_array_equal(parallel.tracks[name].n, serial.tracks[name].n)


if __name__ == '__main__':
    unittest.main()
