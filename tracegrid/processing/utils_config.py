#!/usr/bin/env python3

"""
tracegrid Configuration Management Utilities

This module provides configuration management for gridding runs: input and output paths, the measured variable and its relative uncertainty, swath and dateline parameters, and execution switches. The TraceConfig dataclass holds all run parameters with defaults that reproduce the standard dissolved 232Th product, validates value ranges on construction, reads and writes YAML files with PyYAML, and resolves the track catalog either from a separate catalog file or from inline 'tracks' entries. Command-line flags are applied on top of file values by the CLI through update_from_args.

Classes:
    TraceConfig: Centralized run configuration with validation and YAML file I/O.

Author: Rubaiat Islam
Institution: Mesoscale & Microscale Meteorology Laboratory, NCAR
Email: mrislam@ucar.edu
Date: November 2025
Version: 1.0.0
"""

import yaml
from typing import Dict, List, Any, Optional
from dataclasses import dataclass, asdict, field

from .constants import (
    DEFAULT_ERR_FRAC, DEFAULT_HALF_WIDTH, DEFAULT_OUTPUT_FILE, DEFAULT_SPLIT_LONGITUDE,
    FILL_VALUE, VALUE_VARIABLE
)
from .tracks import TrackCatalog, load_track_catalog


@dataclass
class TraceConfig:
    """
    Configuration class for a gridding run.

    Attributes:
        Data Parameters:
            grid_file (str): Path to the NetCDF or MATLAB grid file
            data_file (str): Path to the IDP-style sample NetCDF file
            output_file (str): Path of the NetCDF result file
            catalog_file (Optional[str]): YAML track catalog, used when set
            tracks (List[Dict[str, Any]]): Inline track catalog entries

        Processing Parameters:
            value_variable (str): Measured variable name in the data file
            err_frac (float): Relative uncertainty applied to every value, within [0, 1]
            half_width (int): Swath half-width in grid cells
            fill_value (float): Sentinel for empty cells, must be negative
            split_longitude (float): Longitude at which the dateline view is split

        Execution Parameters:
            overwrite (bool): Rebuild even when output_file already exists
            parallel (bool): Process tracks in a worker pool
            workers (Optional[int]): Worker count, None for all cores
            verbose (bool): Log to stdout
            log_file (Optional[str]): Additional log file
    """
    grid_file: str = ""
    data_file: str = ""
    output_file: str = DEFAULT_OUTPUT_FILE
    catalog_file: Optional[str] = None
    tracks: List[Dict[str, Any]] = field(default_factory=list)

    value_variable: str = VALUE_VARIABLE
    err_frac: float = DEFAULT_ERR_FRAC
    half_width: int = DEFAULT_HALF_WIDTH
    fill_value: float = FILL_VALUE
    split_longitude: float = DEFAULT_SPLIT_LONGITUDE

    overwrite: bool = False
    parallel: bool = False
    workers: Optional[int] = None
    verbose: bool = True
    log_file: Optional[str] = None

    def __post_init__(self) -> None:
        """
        Validate parameter ranges after construction. The relative uncertainty must lie within [0, 1], the swath half-width must be a non-negative integer, the fill value must be negative so that it stays outside the range of non-negative concentrations, and the worker count, when given, must be positive.

        Parameters:
            None

        Returns:
            None

        Raises:
            ValueError: If any parameter is out of range.
        """
        if not 0.0 <= self.err_frac <= 1.0:
            raise ValueError(f"err_frac must be within [0, 1], got {self.err_frac}")

        if int(self.half_width) != self.half_width or self.half_width < 0:
            raise ValueError(f"half_width must be a non-negative integer, got {self.half_width}")
        self.half_width = int(self.half_width)

        if self.fill_value >= 0:
            raise ValueError(f"fill_value must be negative, got {self.fill_value}")

        if self.workers is not None and self.workers < 1:
            raise ValueError(f"workers must be positive, got {self.workers}")

        if self.tracks is None:
            self.tracks = []

    def to_dict(self) -> Dict[str, Any]:
        """Return all parameters as a plain dictionary suitable for YAML export."""
        return asdict(self)

    @classmethod
    def from_dict(cls, config_dict: Dict[str, Any]) -> 'TraceConfig':
        """
        Construct a configuration from a dictionary of parameter values. Unknown keys are rejected so that misspelled options do not pass silently.

        Parameters:
            config_dict (Dict[str, Any]): Parameters keyed by TraceConfig attribute names.

        Returns:
            TraceConfig: Validated configuration.

        Raises:
            ValueError: If unknown keys are present.
        """
        known = set(cls.__dataclass_fields__)
        unknown = set(config_dict) - known
        if unknown:
            raise ValueError(f"Unknown configuration keys: {sorted(unknown)}")
        return cls(**config_dict)

    def save_to_file(self, filepath: str) -> None:
        """Write the configuration to a YAML file."""
        with open(filepath, 'w') as f:
            yaml.dump(self.to_dict(), f, default_flow_style=False, indent=2, sort_keys=False)

    @classmethod
    def load_from_file(cls, filepath: str) -> 'TraceConfig':
        """
        Load configuration parameters from a YAML file using safe loading. An empty file gives the default configuration.

        Parameters:
            filepath (str): Path to the YAML configuration file.

        Returns:
            TraceConfig: Loaded and validated configuration.
        """
        with open(filepath, 'r') as f:
            config_dict = yaml.safe_load(f) or {}

        return cls.from_dict(config_dict)

    def update_from_args(self, overrides: Dict[str, Any]) -> 'TraceConfig':
        """
        Return a new configuration with the given overrides applied. None values mean "not given" and leave the current value in place.

        Parameters:
            overrides (Dict[str, Any]): Parameter values keyed by attribute name.

        Returns:
            TraceConfig: Updated and revalidated configuration.
        """
        config_dict = self.to_dict()
        config_dict.update({key: value for key, value in overrides.items() if value is not None})
        return TraceConfig.from_dict(config_dict)

    def load_catalog(self) -> TrackCatalog:
        """
        Resolve the track catalog: the catalog file when one is configured, otherwise the inline track entries. Without either the catalog is empty and only the global field is produced.

        Returns:
            TrackCatalog: Track definitions in catalog order.
        """
        if self.catalog_file:
            return load_track_catalog(self.catalog_file)

        return TrackCatalog.from_list(self.tracks)
