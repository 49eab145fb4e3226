#!/usr/bin/env python3

"""
tracegrid Processing Package

This package provides the gridding core (nearest-neighbour binning, dateline
reindexing, track swath masks and cross-section extraction) together with the
grid and sample readers, track catalog, configuration, logging and the
pipeline that drives a complete run.

Author: Rubaiat Islam
Institution: Mesoscale & Microscale Meteorology Laboratory, NCAR
Email: mrislam@ucar.edu
Date: November 2025
Version: 1.0.0
"""

from .binning import AggregationResult, GridIndexer, bin3d
from .dateline import (
    longitude_partition,
    reorder_lon_blocks,
    restore_lon_blocks,
    wrap_longitudes_for_grid
)
from .track_mask import make_cruise_mask, track_extent
from .cross_section import make_xsec, track_coverage, apply_coverage
from .grid import Grid, GridBundle, load_grid, load_grid_and_shift
from .samples import SampleSet, load_geotraces_samples
from .tracks import (
    Orientation,
    WrapMode,
    TrackSelector,
    TrackDefinition,
    TrackCatalog,
    load_track_catalog
)
from .utils_config import TraceConfig
from .utils_logger import TraceLogger
from .utils_validator import (
    ContractViolation,
    DataValidator,
    GridConfigurationError,
    SwathBoundsError,
    require
)
from .parallel import ErrorPolicy, TaskResult, TrackParallelManager
from .pipeline import (
    GlobalResult,
    PipelineResult,
    TrackResult,
    load_results,
    process_global,
    process_track,
    run_pipeline,
    save_results
)

__all__ = [
    'AggregationResult',
    'GridIndexer',
    'bin3d',
    'longitude_partition',
    'reorder_lon_blocks',
    'restore_lon_blocks',
    'wrap_longitudes_for_grid',
    'make_cruise_mask',
    'track_extent',
    'make_xsec',
    'track_coverage',
    'apply_coverage',
    'Grid',
    'GridBundle',
    'load_grid',
    'load_grid_and_shift',
    'SampleSet',
    'load_geotraces_samples',
    'Orientation',
    'WrapMode',
    'TrackSelector',
    'TrackDefinition',
    'TrackCatalog',
    'load_track_catalog',
    'TraceConfig',
    'TraceLogger',
    'ContractViolation',
    'DataValidator',
    'GridConfigurationError',
    'SwathBoundsError',
    'require',
    'ErrorPolicy',
    'TaskResult',
    'TrackParallelManager',
    'GlobalResult',
    'PipelineResult',
    'TrackResult',
    'load_results',
    'process_global',
    'process_track',
    'run_pipeline',
    'save_results'
]
