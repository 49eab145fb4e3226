#!/usr/bin/env python3

"""
tracegrid Gridding Pipeline

This module ties the core operations together into the full gridding run. For every track of the catalog the stations picked by the track selector are expanded to samples, binned onto the base grid, and turned into an ordered station track, a swath mask and a gap-filled cross-section; tracks flagged for dateline handling work on the shifted grid view with reordered statistics and wrapped station longitudes. All samples of the dataset are additionally binned into one global field that is also provided in the dateline-reindexed order. Each track is processed by a pure function returning an immutable TrackResult, so tracks can run serially or in a worker pool and are collected into a mapping keyed by track name. Results are written to a NetCDF file with one group per track plus a 'glob' group, and a run is skipped when its output already exists unless overwriting is requested.

Classes:
    TrackResult: Outputs of one track.
    GlobalResult: Dataset-wide gridded statistics.
    PipelineResult: All track results and the global result of a run.

Functions:
    clip_longitudes: Move sample longitudes outside the grid span onto the last grid column.
    order_track: Sort station positions along the independent coordinate.
    split_track: Split an ordered track into the parts west and east of 180 degrees.
    process_track: Select, bin, mask and cross-section one track.
    process_global: Bin all samples of the dataset.
    run_pipeline: Execute a configured run and save its results.
    save_results: Write a PipelineResult to NetCDF.
    load_results: Read the groups of a result file.

Author: Rubaiat Islam
Institution: Mesoscale & Microscale Meteorology Laboratory, NCAR
Email: mrislam@ucar.edu
Date: November 2025
Version: 1.0.0
"""

import os
import numpy as np
import xarray as xr
from datetime import datetime
from dataclasses import dataclass
from typing import Dict, Optional, Tuple

from .binning import AggregationResult, GridIndexer
from .constants import (
    DEFAULT_HALF_WIDTH, DEFAULT_SPLIT_LONGITUDE, DEGREES_EAST, DEGREES_NORTH, FILL_VALUE,
    GLOBAL_GROUP, METER, PICOMOLAR
)
from .cross_section import apply_coverage, make_xsec, track_coverage
from .dateline import reorder_lon_blocks, wrap_longitudes_for_grid
from .grid import Grid, GridBundle, load_grid_and_shift
from .parallel import ErrorPolicy, TrackParallelManager
from .samples import SampleSet, load_geotraces_samples
from .track_mask import make_cruise_mask
from .tracks import Orientation, TrackDefinition, WrapMode
from .utils_config import TraceConfig
from .utils_logger import TraceLogger
from .utils_validator import DataValidator


@dataclass(frozen=True, eq=False)
class TrackResult:
    """
    Outputs of one track.

    Attributes:
        name (str): Track name.
        orientation (Orientation): Track orientation.
        wrap_mode (WrapMode): Dateline handling used for mask and cross-section.
        aggregation (AggregationResult): Binned statistics of the track samples on the base grid.
        x (np.ndarray): Ordered station longitudes in the native convention.
        y (np.ndarray): Ordered station latitudes.
        mask (np.ndarray): Swath mask on the grid view used, shape (ny, nx, nz).
        xsec (np.ndarray): Gap-filled cross-section, shape (nx, nz) or (ny, nz).
        position (np.ndarray): Along-track coordinate of the cross-section rows.
        segments (Optional[Dict[str, np.ndarray]]): x_1, y_1 west of 180 degrees and x_2, y_2 east of it, when requested.
    """
    name: str
    orientation: Orientation
    wrap_mode: WrapMode
    aggregation: AggregationResult
    x: np.ndarray
    y: np.ndarray
    mask: np.ndarray
    xsec: np.ndarray
    position: np.ndarray
    segments: Optional[Dict[str, np.ndarray]] = None

    @property
    def mu(self) -> np.ndarray:
        return self.aggregation.mu

    @property
    def var(self) -> np.ndarray:
        return self.aggregation.var

    @property
    def n(self) -> np.ndarray:
        return self.aggregation.n


@dataclass(frozen=True, eq=False)
class GlobalResult:
    """
    Dataset-wide binned statistics.

    Attributes:
        mu (np.ndarray): Per-cell mean on the base grid.
        var (np.ndarray): Per-cell variance on the base grid.
        n (np.ndarray): Per-cell count on the base grid.
        mu_shifted (np.ndarray): mu in the column order of the shifted grid view.
    """
    mu: np.ndarray
    var: np.ndarray
    n: np.ndarray
    mu_shifted: np.ndarray


@dataclass(frozen=True, eq=False)
class PipelineResult:
    """All track results keyed by track name, in catalog order, and the global result."""
    tracks: Dict[str, TrackResult]
    glob: GlobalResult


def clip_longitudes(lon: np.ndarray, xt: np.ndarray) -> np.ndarray:
    """
    Return a copy of lon with values east of the last grid longitude set to it, and values west of the first grid longitude also sent to the last grid longitude, the seam column of a cyclic grid.

    Parameters:
        lon (np.ndarray): Sample longitudes.
        xt (np.ndarray): Grid longitude axis.

    Returns:
        np.ndarray: Clipped longitudes.
    """
    clipped = np.array(lon, dtype=float)
    clipped[clipped > xt[-1]] = xt[-1]
    clipped[clipped < xt[0]] = xt[-1]
    return clipped


def order_track(lon: np.ndarray, lat: np.ndarray,
                orientation: Orientation) -> Tuple[np.ndarray, np.ndarray]:
    """Sort station positions by longitude for zonal tracks or latitude for meridional tracks; ties keep station order."""
    lon = np.asarray(lon, dtype=float)
    lat = np.asarray(lat, dtype=float)

    key = lon if Orientation.parse(orientation) is Orientation.ZONAL else lat
    order = np.argsort(key, kind='stable')
    return lon[order], lat[order]


def split_track(x: np.ndarray, y: np.ndarray,
                split: float = DEFAULT_SPLIT_LONGITUDE) -> Dict[str, np.ndarray]:
    """
    Split an ordered track at a longitude. Points strictly west of the split form segment 1, points strictly east form segment 2, and points exactly on the split belong to neither.

    Parameters:
        x (np.ndarray): Ordered track longitudes.
        y (np.ndarray): Ordered track latitudes.
        split (float): Split longitude (default: 180.0).

    Returns:
        Dict[str, np.ndarray]: Segments under the keys x_1, y_1, x_2, y_2.
    """
    west = x < split
    east = x > split
    return {'x_1': x[west], 'y_1': y[west], 'x_2': x[east], 'y_2': y[east]}


def process_track(definition: TrackDefinition, samples: SampleSet, bundle: GridBundle,
                  half_width: int = DEFAULT_HALF_WIDTH, fill_value: float = FILL_VALUE,
                  indexer: Optional[GridIndexer] = None) -> TrackResult:
    """
    Run selection, binning, swath masking and cross-section extraction for one track. The samples of the selected stations are binned on the base grid after dropping NaN values and, when the track asks for it, clipping longitudes to the grid span. The ordered station track drives the swath mask. With wrap mode 'shift180' the mask and the cross-section are built on the shifted grid view from the reordered mean and the wrapped track longitudes; the cross-section is blanked where the swath holds land cells only. A track that selects no stations produces sentinel statistics, an empty track and all-NaN mask and cross-section.

    Parameters:
        definition (TrackDefinition): Track to process.
        samples (SampleSet): Full dataset.
        bundle (GridBundle): Base grid, shifted view and longitude partition.
        half_width (int): Swath half-width in grid cells (default: 1).
        fill_value (float): Sentinel for empty cells (default: -9.0).
        indexer (Optional[GridIndexer]): Binner bound to the base grid, created when not given (default: None).

    Returns:
        TrackResult: Outputs of the track.

    Raises:
        SwathBoundsError: If the swath band reaches beyond the grid.
    """
    grid = bundle.grid
    if indexer is None:
        indexer = GridIndexer.from_grid(grid, fill_value=fill_value)

    selected = definition.selector(samples.cruise, samples.lat, samples.lon, samples.time)
    subset = samples.select(selected)

    lon, lat, depth, value, uncertainty = subset.flatten(valid_only=True)
    if definition.clip_lon_to_grid:
        lon = clip_longitudes(lon, grid.xt)

    aggregation = indexer.bin(lon, lat, depth, value, uncertainty)

    x, y = order_track(subset.lon, subset.lat, definition.orientation)
    segments = split_track(x, y) if definition.split_outputs else None

    if definition.wrap_mode is WrapMode.SHIFT180:
        view = bundle.shifted
        field = reorder_lon_blocks(aggregation.mu, bundle.high, bundle.low)
        mask_x = wrap_longitudes_for_grid(x, bundle.split)
    else:
        view = grid
        field = aggregation.mu
        mask_x = x

    mask = make_cruise_mask(mask_x, y, view, half_width=half_width,
                            orientation=definition.orientation)

    xsec = make_xsec(field, view, definition.orientation)
    xsec = apply_coverage(xsec, track_coverage(mask, view.M3d, definition.orientation))

    position = view.xt if definition.orientation is Orientation.ZONAL else view.yt

    return TrackResult(
        name=definition.name,
        orientation=definition.orientation,
        wrap_mode=definition.wrap_mode,
        aggregation=aggregation,
        x=x,
        y=y,
        mask=mask,
        xsec=xsec,
        position=np.array(position),
        segments=segments,
    )


def process_global(samples: SampleSet, bundle: GridBundle, fill_value: float = FILL_VALUE,
                   indexer: Optional[GridIndexer] = None) -> GlobalResult:
    """
    Bin every valid sample of the dataset on the base grid, clipping longitudes to the grid span, and provide the mean in the shifted column order as well.

    Parameters:
        samples (SampleSet): Full dataset.
        bundle (GridBundle): Base grid, shifted view and longitude partition.
        fill_value (float): Sentinel for empty cells (default: -9.0).
        indexer (Optional[GridIndexer]): Binner bound to the base grid (default: None).

    Returns:
        GlobalResult: Dataset-wide statistics.
    """
    if indexer is None:
        indexer = GridIndexer.from_grid(bundle.grid, fill_value=fill_value)

    lon, lat, depth, value, uncertainty = samples.flatten(valid_only=True)
    lon = clip_longitudes(lon, bundle.grid.xt)

    aggregation = indexer.bin(lon, lat, depth, value, uncertainty)

    return GlobalResult(
        mu=aggregation.mu,
        var=aggregation.var,
        n=aggregation.n,
        mu_shifted=reorder_lon_blocks(aggregation.mu, bundle.high, bundle.low),
    )


def _timestamp() -> str:
    return datetime.now().strftime('%Y-%m-%d %H:%M:%S')


def _log_track(logger: TraceLogger, track: TrackResult) -> None:
    if track.x.size == 0:
        logger.warning(f"Track {track.name} selects no stations")
    logger.info(f"Processed track {track.name:<8} ({track.aggregation.n_valid_cells} valid bins)")


def run_pipeline(config: TraceConfig, logger: Optional[TraceLogger] = None) -> Optional[PipelineResult]:
    """
    Execute a configured gridding run: load the grid and the samples, process every catalog track, bin the whole dataset, and save the results to config.output_file. When the output file already exists and config.overwrite is not set, nothing is computed.

    Parameters:
        config (TraceConfig): Run configuration.
        logger (Optional[TraceLogger]): Logger for progress messages (default: None, created from config).

    Returns:
        Optional[PipelineResult]: Results of the run, or None when the run was skipped.
    """
    if logger is None:
        logger = TraceLogger(verbose=config.verbose, log_file=config.log_file)

    if not config.overwrite and os.path.exists(config.output_file):
        logger.info(f"{config.output_file} exists, skipping. Set overwrite to re-run.")
        return None

    logger.info(f"[{_timestamp()}] Starting pipeline")

    with logger.stage("Loading grid"):
        bundle = load_grid_and_shift(config.grid_file, config.split_longitude)
    ny, nx, nz = bundle.grid.shape
    logger.info(f"Loaded grid: nx={nx} ny={ny} nz={nz}")

    with logger.stage("Loading samples"):
        samples = load_geotraces_samples(config.data_file, config.value_variable, config.err_frac)
    logger.info(f"Loaded samples: {samples.n_stations} stations, {samples.n_levels} depth levels, "
                f"{samples.count_valid()} valid values")

    summary = DataValidator.validate_data_array(samples.value, min_val=0.0)
    for issue in summary['issues']:
        logger.warning(f"{config.value_variable}: {issue}")

    catalog = config.load_catalog()
    if len(catalog) == 0:
        logger.warning("Track catalog is empty, only the global field is produced")

    indexer = GridIndexer.from_grid(bundle.grid, fill_value=config.fill_value)
    tracks: Dict[str, TrackResult] = {}

    with logger.stage(f"Processing {len(catalog)} tracks"):
        if config.parallel and len(catalog) > 1:
            manager = TrackParallelManager(n_workers=config.workers, verbose=config.verbose, logger=logger)
            manager.set_error_policy(ErrorPolicy.ABORT)
            task_results = manager.parallel_map(process_track, list(catalog), samples, bundle,
                                                half_width=config.half_width, fill_value=config.fill_value)
            for task_result in task_results:
                track = task_result.result
                tracks[track.name] = track
                _log_track(logger, track)
        else:
            for definition in catalog:
                track = process_track(definition, samples, bundle, half_width=config.half_width,
                                      fill_value=config.fill_value, indexer=indexer)
                tracks[track.name] = track
                _log_track(logger, track)

    with logger.stage("Global binning"):
        glob = process_global(samples, bundle, fill_value=config.fill_value, indexer=indexer)
    logger.info(f"Global binning: {int(np.count_nonzero(glob.n))} valid bins")

    result = PipelineResult(tracks=tracks, glob=glob)
    with logger.stage("Saving results"):
        save_results(result, config.output_file, bundle, fill_value=config.fill_value)
    logger.info(f"[{_timestamp()}] Saved -> {config.output_file}")

    return result


def _statistics_variables(mu: np.ndarray, var: np.ndarray, n: np.ndarray,
                          fill_value: float) -> Dict[str, xr.DataArray]:
    dims = ('yt', 'xt', 'zt')
    return {
        'mu': xr.DataArray(mu, dims=dims, attrs={'long_name': 'Binned mean', 'units': PICOMOLAR,
                                                 'empty_cell_value': fill_value}),
        'var': xr.DataArray(var, dims=dims, attrs={'long_name': 'Binned variance', 'units': f"{PICOMOLAR}2",
                                                   'empty_cell_value': fill_value}),
        'n': xr.DataArray(n, dims=dims, attrs={'long_name': 'Samples per cell'}),
    }


def _grid_coords(grid: Grid, view: Optional[Grid] = None) -> Dict[str, xr.DataArray]:
    coords = {
        'yt': xr.DataArray(grid.yt, dims='yt', attrs={'units': DEGREES_NORTH}),
        'xt': xr.DataArray(grid.xt, dims='xt', attrs={'units': DEGREES_EAST}),
        'zt': xr.DataArray(grid.zt, dims='zt', attrs={'units': METER, 'positive': 'down'}),
    }
    if view is not None:
        coords['xt_view'] = xr.DataArray(view.xt, dims='xt_view', attrs={'units': DEGREES_EAST})
    return coords


def _track_dataset(track: TrackResult, bundle: GridBundle, fill_value: float) -> xr.Dataset:
    view = bundle.shifted if track.wrap_mode is WrapMode.SHIFT180 else bundle.grid

    data_vars = _statistics_variables(track.mu, track.var, track.n, fill_value)
    data_vars['mask'] = xr.DataArray(track.mask, dims=('yt', 'xt_view', 'zt'),
                                     attrs={'long_name': 'Track averaging mask'})
    data_vars['xsec'] = xr.DataArray(track.xsec, dims=('position', 'zt'),
                                     attrs={'long_name': 'Along-track cross-section', 'units': PICOMOLAR})
    data_vars['x'] = xr.DataArray(track.x, dims='station', attrs={'units': DEGREES_EAST})
    data_vars['y'] = xr.DataArray(track.y, dims='station', attrs={'units': DEGREES_NORTH})

    for key, values in (track.segments or {}).items():
        data_vars[key] = xr.DataArray(values, dims=f"station_{key[-1]}")

    coords = _grid_coords(bundle.grid, view)
    coords['position'] = xr.DataArray(track.position, dims='position')

    return xr.Dataset(data_vars, coords=coords, attrs={
        'track': track.name,
        'orientation': track.orientation.value,
        'wrap_mode': track.wrap_mode.value,
        'split_longitude': bundle.split,
    })


def _global_dataset(glob: GlobalResult, bundle: GridBundle, fill_value: float) -> xr.Dataset:
    data_vars = _statistics_variables(glob.mu, glob.var, glob.n, fill_value)
    data_vars['mu_shifted'] = xr.DataArray(glob.mu_shifted, dims=('yt', 'xt_view', 'zt'),
                                           attrs={'long_name': 'Binned mean, shifted longitude order',
                                                  'units': PICOMOLAR, 'empty_cell_value': fill_value})
    return xr.Dataset(data_vars, coords=_grid_coords(bundle.grid, bundle.shifted))


def _encoding(ds: xr.Dataset) -> Dict[str, Dict[str, object]]:
    return {name: {'zlib': True, 'complevel': 4} for name in ds.data_vars if ds[name].size}


def save_results(result: PipelineResult, filepath: str, bundle: GridBundle,
                 fill_value: float = FILL_VALUE) -> None:
    """
    Write pipeline results to a NetCDF-4 file. Every track becomes a group named after the track and the global statistics go to the 'glob' group; the root attributes list the group names. An existing file is replaced.

    Parameters:
        result (PipelineResult): Results to write.
        filepath (str): Output path.
        bundle (GridBundle): Grids providing the coordinates.
        fill_value (float): Sentinel recorded as empty_cell_value of the statistics (default: -9.0).

    Returns:
        None
    """
    output_dir = os.path.dirname(os.path.abspath(filepath))
    os.makedirs(output_dir, exist_ok=True)

    groups = list(result.tracks) + [GLOBAL_GROUP]
    root = xr.Dataset(attrs={
        'title': 'Binned trace element statistics and along-track cross-sections',
        'groups': ','.join(groups),
        'fill_value': fill_value,
        'created': _timestamp(),
    })
    root.to_netcdf(filepath, mode='w', engine='netcdf4')

    for name, track in result.tracks.items():
        ds = _track_dataset(track, bundle, fill_value)
        ds.to_netcdf(filepath, mode='a', group=name, engine='netcdf4', encoding=_encoding(ds))

    ds = _global_dataset(result.glob, bundle, fill_value)
    ds.to_netcdf(filepath, mode='a', group=GLOBAL_GROUP, engine='netcdf4', encoding=_encoding(ds))


def load_results(filepath: str) -> Dict[str, xr.Dataset]:
    """
    Read every group of a result file written by save_results into memory.

    Parameters:
        filepath (str): Result file path.

    Returns:
        Dict[str, xr.Dataset]: Datasets keyed by group name, tracks first and 'glob' last.
    """
    if not os.path.isfile(filepath):
        raise FileNotFoundError(f"Result file not found: {filepath}")

    with xr.open_dataset(filepath, engine='netcdf4') as root:
        groups = [name for name in str(root.attrs.get('groups', '')).split(',') if name]

    datasets = {}
    for name in groups:
        with xr.open_dataset(filepath, group=name, engine='netcdf4') as ds:
            datasets[name] = ds.load()

    return datasets
