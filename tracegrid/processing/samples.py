#!/usr/bin/env python3

"""
Discrete Sample Data Access

This module reads discrete seawater sample data in the layout of the GEOTRACES Intermediate Data Product (IDP) NetCDF files and holds it in a SampleSet. The IDP files store one row per station with cruise and station labels, a sampling time and a position, and a fixed number of sample slots per station holding depth and measured values; unused slots are NaN. The SampleSet keeps the per-station vectors and the (level, station) sample arrays side by side, offers the station positions expanded to every sample slot, and can be subset by station or flattened into the plain sample vectors consumed by the grid binning. Per-sample uncertainties are formed as a fixed fraction of the measured value.

Classes:
    SampleSet: Per-station metadata with (level, station) depth, value and uncertainty arrays.

Functions:
    load_geotraces_samples: Read an IDP-style NetCDF file into a SampleSet.

Author: Rubaiat Islam
Institution: Mesoscale & Microscale Meteorology Laboratory, NCAR
Email: mrislam@ucar.edu
Date: November 2025
Version: 1.0.0
"""

import os
import numpy as np
import xarray as xr
from dataclasses import dataclass
from typing import Tuple

from .constants import (
    CRUISE_VARIABLE, DEFAULT_ERR_FRAC, DEPTH_VARIABLE, LAT_VARIABLE, LON_VARIABLE,
    STATION_VARIABLE, TIME_VARIABLE, VALUE_VARIABLE
)
from .utils_validator import require


@dataclass(frozen=True, eq=False)
class SampleSet:
    """
    Station metadata and sample arrays of one dataset.

    Attributes:
        cruise (np.ndarray): Cruise label of every station, shape (S,).
        station (np.ndarray): Station label of every station, shape (S,).
        time (np.ndarray): Sampling time of every station, shape (S,).
        lon (np.ndarray): Station longitude, shape (S,).
        lat (np.ndarray): Station latitude, shape (S,).
        depth (np.ndarray): Sample depth, shape (L, S).
        value (np.ndarray): Measured value, NaN for empty slots, shape (L, S).
        uncertainty (np.ndarray): One-sigma uncertainty of value, shape (L, S).
    """
    cruise: np.ndarray
    station: np.ndarray
    time: np.ndarray
    lon: np.ndarray
    lat: np.ndarray
    depth: np.ndarray
    value: np.ndarray
    uncertainty: np.ndarray

    def __post_init__(self) -> None:
        for name in ('lon', 'lat'):
            object.__setattr__(self, name, np.asarray(getattr(self, name), dtype=float).ravel())
        for name in ('cruise', 'station', 'time'):
            object.__setattr__(self, name, np.asarray(getattr(self, name)).ravel())
        for name in ('depth', 'value', 'uncertainty'):
            object.__setattr__(self, name, np.atleast_2d(np.asarray(getattr(self, name), dtype=float)))

        n_stations = self.lon.size
        for name in ('cruise', 'station', 'time', 'lat'):
            require(getattr(self, name).size == n_stations,
                    f"Station vector '{name}' has {getattr(self, name).size} entries, expected {n_stations}")

        for name in ('depth', 'value', 'uncertainty'):
            array = getattr(self, name)
            require(array.ndim == 2 and array.shape == self.depth.shape and array.shape[1] == n_stations,
                    f"Sample array '{name}' has shape {array.shape}, expected (levels, {n_stations})")

    @classmethod
    def from_arrays(cls, cruise: np.ndarray, station: np.ndarray, time: np.ndarray,
                    lon: np.ndarray, lat: np.ndarray, depth: np.ndarray, value: np.ndarray,
                    err_frac: float = DEFAULT_ERR_FRAC) -> 'SampleSet':
        """Build a sample set whose uncertainties are err_frac times the measured values."""
        _check_err_frac(err_frac)
        value = np.asarray(value, dtype=float)
        return cls(cruise=cruise, station=station, time=time, lon=lon, lat=lat,
                   depth=depth, value=value, uncertainty=value * err_frac)

    @property
    def n_stations(self) -> int:
        return int(self.lon.size)

    @property
    def n_levels(self) -> int:
        return int(self.depth.shape[0])

    @property
    def LON(self) -> np.ndarray:
        """Station longitudes repeated for every sample slot, shape (L, S)."""
        return np.tile(self.lon, (self.n_levels, 1))

    @property
    def LAT(self) -> np.ndarray:
        """Station latitudes repeated for every sample slot, shape (L, S)."""
        return np.tile(self.lat, (self.n_levels, 1))

    @property
    def TIME(self) -> np.ndarray:
        """Station times repeated for every sample slot, shape (L, S)."""
        return np.tile(self.time, (self.n_levels, 1))

    def select(self, stations: np.ndarray) -> 'SampleSet':
        """
        Return the subset of stations picked by a boolean mask or an index array, keeping the original station order.

        Parameters:
            stations (np.ndarray): Boolean mask of shape (S,) or integer station indices.

        Returns:
            SampleSet: New sample set holding only the selected stations.
        """
        stations = np.asarray(stations)
        if stations.dtype == bool:
            require(stations.size == self.n_stations,
                    f"Station mask has {stations.size} entries, expected {self.n_stations}")
            stations = np.flatnonzero(stations)

        return SampleSet(
            cruise=self.cruise[stations],
            station=self.station[stations],
            time=self.time[stations],
            lon=self.lon[stations],
            lat=self.lat[stations],
            depth=self.depth[:, stations],
            value=self.value[:, stations],
            uncertainty=self.uncertainty[:, stations],
        )

    def flatten(self, valid_only: bool = True) -> Tuple[np.ndarray, np.ndarray, np.ndarray, np.ndarray, np.ndarray]:
        """
        Flatten the sample slots into plain sample vectors in (level, station) C order.

        Parameters:
            valid_only (bool): Drop slots whose value is NaN (default: True).

        Returns:
            Tuple[np.ndarray, ...]: (lon, lat, depth, value, uncertainty) vectors of equal length.
        """
        arrays = [self.LON, self.LAT, self.depth, self.value, self.uncertainty]

        if valid_only:
            keep = ~np.isnan(self.value)
            return tuple(array[keep] for array in arrays)

        return tuple(array.ravel() for array in arrays)

    def count_valid(self) -> int:
        return int(np.count_nonzero(~np.isnan(self.value)))


def _check_err_frac(err_frac: float) -> None:
    if not 0.0 <= err_frac <= 1.0:
        raise ValueError(f"err_frac must be within [0, 1], got {err_frac}")


def _decode_labels(array: xr.DataArray, station_dim: str) -> np.ndarray:
    """
    Turn a label variable into a 1-D array of stripped str, one per station. Byte strings are decoded as UTF-8, and undecoded character arrays with a trailing character dimension are joined first.
    """
    values = array.values

    if values.ndim == 2:
        if array.dims[0] != station_dim:
            values = values.T
        if values.dtype.kind == 'S':
            values = np.array([b''.join(row) for row in values])
        else:
            values = np.array([''.join(row) for row in values.astype(str)])

    if values.dtype.kind == 'S':
        values = np.char.decode(values, 'utf-8')
    elif values.dtype.kind == 'O':
        values = np.array([v.decode('utf-8') if isinstance(v, bytes) else str(v) for v in values])

    return np.char.strip(values.astype(str))


def load_geotraces_samples(filepath: str, value_variable: str = VALUE_VARIABLE,
                           err_frac: float = DEFAULT_ERR_FRAC) -> SampleSet:
    """
    Read discrete sample data from an IDP-style NetCDF file. The file must provide the cruise (metavar1) and station (metavar2) labels, date_time, latitude and longitude per station, and the depth (var2) and value variables per sample slot. The station dimension is taken from the latitude variable and the sample arrays are arranged as (level, station) whatever their order on disk.

    Parameters:
        filepath (str): Path to the NetCDF file.
        value_variable (str): Name of the measured variable (default: 'var213', dissolved 232Th in pM).
        err_frac (float): Relative uncertainty applied to every value, within [0, 1] (default: 0.05).

    Returns:
        SampleSet: Sample data with uncertainties err_frac * value.

    Raises:
        FileNotFoundError: If the file does not exist.
        KeyError: If a required variable is missing.
        ValueError: If err_frac is outside [0, 1].
    """
    _check_err_frac(err_frac)

    if not os.path.isfile(filepath):
        raise FileNotFoundError(f"Sample data file not found: {filepath}")

    required = [CRUISE_VARIABLE, STATION_VARIABLE, TIME_VARIABLE, LAT_VARIABLE,
                LON_VARIABLE, DEPTH_VARIABLE, value_variable]

    with xr.open_dataset(filepath) as ds:
        missing = [name for name in required if name not in ds.variables]
        if missing:
            raise KeyError(f"Sample data file {filepath} is missing variables {missing}")

        station_dim = ds[LAT_VARIABLE].dims[0]

        def per_level(name: str) -> np.ndarray:
            array = ds[name]
            require(array.ndim == 2 and station_dim in array.dims,
                    f"Variable '{name}' must be 2-D with a '{station_dim}' dimension, got dims {array.dims}")
            level_dim = [dim for dim in array.dims if dim != station_dim][0]
            return array.transpose(level_dim, station_dim).values.astype(float)

        return SampleSet.from_arrays(
            cruise=_decode_labels(ds[CRUISE_VARIABLE], station_dim),
            station=_decode_labels(ds[STATION_VARIABLE], station_dim),
            time=ds[TIME_VARIABLE].values,
            lon=ds[LON_VARIABLE].values,
            lat=ds[LAT_VARIABLE].values,
            depth=per_level(DEPTH_VARIABLE),
            value=per_level(value_variable),
            err_frac=err_frac,
        )
