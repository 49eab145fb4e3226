#!/usr/bin/env python3

"""
Cruise Track Definitions and Catalog

This module describes which stations make up each cruise track and how each track is processed. A TrackDefinition carries the track name, its orientation (zonal tracks run east-west and are ordered by longitude, meridional tracks run north-south and are ordered by latitude), the dateline handling mode, and the optional longitude clipping and output splitting switches. Station membership is decided by a selector: either the declarative TrackSelector, which can be written in YAML, or any callable taking the per-station cruise labels, latitudes, longitudes and times and returning a boolean array. The TrackCatalog loads a list of definitions from a YAML file or from the inline 'tracks' entries of a configuration.

Classes:
    Orientation: Closed set of track orientations.
    WrapMode: Closed set of dateline handling modes.
    TrackSelector: Declarative station selection rule.
    TrackDefinition: Immutable description of how one track is processed.
    TrackCatalog: Ordered collection of track definitions.

Functions:
    load_track_catalog: Read a YAML track catalog from disk.

Author: Rubaiat Islam
Institution: Mesoscale & Microscale Meteorology Laboratory, NCAR
Email: mrislam@ucar.edu
Date: November 2025
Version: 1.0.0
"""

import yaml
import numpy as np
import pandas as pd
from enum import Enum
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterator, List, Optional, Sequence, Tuple, Union

from .constants import GLOBAL_GROUP


class Orientation(Enum):
    """
    Orientation of a cruise track, which fixes the independent coordinate used to order the track, interpolate the swath and collapse the cross-section.

    Attributes:
        ZONAL (str): Track runs east-west; longitude is independent, latitude is averaged out.
        MERIDIONAL (str): Track runs north-south; latitude is independent, longitude is averaged out.
    """
    ZONAL = "zonal"
    MERIDIONAL = "merid"

    @classmethod
    def parse(cls, value: Union[str, 'Orientation']) -> 'Orientation':
        """
        Convert a tag into an Orientation, failing on unknown tags instead of falling back to a default.

        Parameters:
            value (Union[str, Orientation]): Tag such as 'zonal' or 'merid', or an Orientation.

        Returns:
            Orientation: Matching member.

        Raises:
            ValueError: If the tag is not a known orientation.
        """
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            valid = [member.value for member in cls]
            raise ValueError(f"Unknown orientation '{value}'. Must be one of: {valid}") from None

    @property
    def transverse_axis(self) -> int:
        """Array axis of a (ny, nx, nz) field that is averaged away for this orientation."""
        if self is Orientation.ZONAL:
            return 0
        return 1


class WrapMode(Enum):
    """
    Dateline handling for a track.

    Attributes:
        NONE (str): Work on the base grid in its native longitude convention.
        SHIFT180 (str): Work on the 180-degree shifted grid with wrapped station longitudes.
    """
    NONE = "none"
    SHIFT180 = "shift180"

    @classmethod
    def parse(cls, value: Union[str, 'WrapMode', None]) -> 'WrapMode':
        """Convert a tag into a WrapMode; None maps to NONE, unknown tags raise ValueError."""
        if isinstance(value, cls):
            return value
        if value is None:
            return cls.NONE
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            valid = [member.value for member in cls]
            raise ValueError(f"Unknown wrap mode '{value}'. Must be one of: {valid}") from None


StationSelector = Callable[[np.ndarray, np.ndarray, np.ndarray, np.ndarray], np.ndarray]


@dataclass(frozen=True)
class TrackSelector:
    """
    Declarative station selection rule. A station is selected when its cruise label is one of the listed cruises and, where given, its longitude, latitude and time fall inside the closed ranges. An empty cruise list accepts every cruise.

    Attributes:
        cruises (Tuple[str, ...]): Accepted cruise labels.
        lon_range (Optional[Tuple[float, float]]): Inclusive longitude bounds.
        lat_range (Optional[Tuple[float, float]]): Inclusive latitude bounds.
        time_range (Optional[Tuple[pd.Timestamp, pd.Timestamp]]): Inclusive time bounds.
    """
    cruises: Tuple[str, ...] = ()
    lon_range: Optional[Tuple[float, float]] = None
    lat_range: Optional[Tuple[float, float]] = None
    time_range: Optional[Tuple[pd.Timestamp, pd.Timestamp]] = None

    def __call__(self, cruise: np.ndarray, lat: np.ndarray,
                 lon: np.ndarray, time: np.ndarray) -> np.ndarray:
        cruise = np.asarray(cruise).astype(str)
        lat = np.asarray(lat, dtype=float)
        lon = np.asarray(lon, dtype=float)

        selected = np.ones(cruise.shape, dtype=bool)

        if self.cruises:
            selected &= np.isin(np.char.strip(cruise), list(self.cruises))

        if self.lon_range is not None:
            selected &= (lon >= self.lon_range[0]) & (lon <= self.lon_range[1])

        if self.lat_range is not None:
            selected &= (lat >= self.lat_range[0]) & (lat <= self.lat_range[1])

        if self.time_range is not None:
            times = pd.to_datetime(np.asarray(time))
            start, end = self.time_range
            selected &= np.asarray((times >= start) & (times <= end))

        return selected

    @classmethod
    def from_dict(cls, selector_dict: Dict[str, Any]) -> 'TrackSelector':
        """
        Build a selector from its YAML form. 'cruises' may be a single label or a list; range entries are two-element lists; time bounds are parsed with pandas.

        Parameters:
            selector_dict (Dict[str, Any]): Mapping with optional keys cruises, lon_range, lat_range, time_range.

        Returns:
            TrackSelector: Parsed selector.

        Raises:
            ValueError: If a range does not have exactly two entries or unknown keys are present.
        """
        known = {'cruises', 'lon_range', 'lat_range', 'time_range'}
        unknown = set(selector_dict) - known
        if unknown:
            raise ValueError(f"Unknown selector keys: {sorted(unknown)}")

        cruises = selector_dict.get('cruises', ())
        if isinstance(cruises, str):
            cruises = (cruises,)

        return cls(
            cruises=tuple(str(c) for c in cruises),
            lon_range=_parse_range(selector_dict.get('lon_range'), 'lon_range'),
            lat_range=_parse_range(selector_dict.get('lat_range'), 'lat_range'),
            time_range=_parse_time_range(selector_dict.get('time_range')),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Return the YAML form of the selector, omitting unset ranges."""
        selector_dict: Dict[str, Any] = {'cruises': list(self.cruises)}
        if self.lon_range is not None:
            selector_dict['lon_range'] = list(self.lon_range)
        if self.lat_range is not None:
            selector_dict['lat_range'] = list(self.lat_range)
        if self.time_range is not None:
            selector_dict['time_range'] = [t.isoformat() for t in self.time_range]
        return selector_dict


def _parse_range(value: Optional[Sequence[float]], name: str) -> Optional[Tuple[float, float]]:
    if value is None:
        return None
    if len(value) != 2:
        raise ValueError(f"'{name}' must have exactly two entries, got {list(value)}")
    return float(value[0]), float(value[1])


def _parse_time_range(value: Optional[Sequence[Any]]) -> Optional[Tuple[pd.Timestamp, pd.Timestamp]]:
    if value is None:
        return None
    if len(value) != 2:
        raise ValueError(f"'time_range' must have exactly two entries, got {list(value)}")
    return pd.Timestamp(value[0]), pd.Timestamp(value[1])


@dataclass(frozen=True)
class TrackDefinition:
    """
    Immutable description of one cruise track and its processing switches.

    Attributes:
        name (str): Track label used as the result key (e.g. 'GA02').
        orientation (Orientation): Zonal or meridional track.
        selector (StationSelector): Station predicate (TrackSelector or any callable).
        wrap_mode (WrapMode): Dateline handling mode (default: NONE).
        split_outputs (bool): Split the ordered track into segments west and east of 180 degrees (default: False).
        clip_lon_to_grid (bool): Clip sample longitudes to the grid longitude span before binning (default: False).
    """
    name: str
    orientation: Orientation
    selector: StationSelector = field(default_factory=TrackSelector)
    wrap_mode: WrapMode = WrapMode.NONE
    split_outputs: bool = False
    clip_lon_to_grid: bool = False

    def __post_init__(self) -> None:
        object.__setattr__(self, 'orientation', Orientation.parse(self.orientation))
        object.__setattr__(self, 'wrap_mode', WrapMode.parse(self.wrap_mode))
        if not self.name:
            raise ValueError("Track definitions need a non-empty name")
        if self.name == GLOBAL_GROUP:
            raise ValueError(f"Track name '{GLOBAL_GROUP}' is reserved for the dataset-wide statistics")

    @classmethod
    def from_dict(cls, track_dict: Dict[str, Any]) -> 'TrackDefinition':
        """
        Construct a definition from a catalog entry. The 'orientation' key is required; 'wrap_mode' defaults to 'none'; 'selector' defaults to selecting stations whose cruise label equals the track name.

        Parameters:
            track_dict (Dict[str, Any]): Catalog entry with keys name, orientation, wrap_mode, split_outputs, clip_lon_to_grid and selector.

        Returns:
            TrackDefinition: Parsed definition.

        Raises:
            ValueError: If required keys are missing or tags are unknown.
        """
        if 'name' not in track_dict or 'orientation' not in track_dict:
            raise ValueError(f"Track entry needs 'name' and 'orientation': {track_dict}")

        name = str(track_dict['name'])
        selector_dict = track_dict.get('selector') or {'cruises': [name]}

        return cls(
            name=name,
            orientation=Orientation.parse(track_dict['orientation']),
            selector=TrackSelector.from_dict(selector_dict),
            wrap_mode=WrapMode.parse(track_dict.get('wrap_mode')),
            split_outputs=bool(track_dict.get('split_outputs', False)),
            clip_lon_to_grid=bool(track_dict.get('clip_lon_to_grid', False)),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Return the catalog entry form; callable selectors other than TrackSelector cannot be serialized."""
        if not isinstance(self.selector, TrackSelector):
            raise TypeError(f"Track '{self.name}' uses a custom selector that cannot be written to YAML")
        return {
            'name': self.name,
            'orientation': self.orientation.value,
            'wrap_mode': self.wrap_mode.value,
            'split_outputs': self.split_outputs,
            'clip_lon_to_grid': self.clip_lon_to_grid,
            'selector': self.selector.to_dict(),
        }


class TrackCatalog:
    """
    Ordered, name-unique collection of TrackDefinition objects. Iteration follows insertion order so that tracks are processed and written in catalog order.
    """

    def __init__(self, definitions: Optional[Sequence[TrackDefinition]] = None) -> None:
        self._definitions: Dict[str, TrackDefinition] = {}
        for definition in definitions or []:
            self.add(definition)

    def add(self, definition: TrackDefinition) -> None:
        if definition.name in self._definitions:
            raise ValueError(f"Duplicate track name '{definition.name}' in catalog")
        self._definitions[definition.name] = definition

    def __iter__(self) -> Iterator[TrackDefinition]:
        return iter(self._definitions.values())

    def __len__(self) -> int:
        return len(self._definitions)

    def __getitem__(self, name: str) -> TrackDefinition:
        return self._definitions[name]

    def __contains__(self, name: object) -> bool:
        return name in self._definitions

    @property
    def names(self) -> List[str]:
        return list(self._definitions)

    @classmethod
    def from_list(cls, entries: Sequence[Dict[str, Any]]) -> 'TrackCatalog':
        """Build a catalog from a list of catalog entry dictionaries."""
        return cls([TrackDefinition.from_dict(entry) for entry in entries])

    def to_list(self) -> List[Dict[str, Any]]:
        return [definition.to_dict() for definition in self]

    def save_to_file(self, filepath: str) -> None:
        """Write the catalog as a YAML document with a top-level 'tracks' list."""
        with open(filepath, 'w') as f:
            yaml.dump({'tracks': self.to_list()}, f, default_flow_style=False, indent=2, sort_keys=False)


def load_track_catalog(filepath: str) -> TrackCatalog:
    """
    Read a YAML track catalog. The document is either a list of track entries or a mapping with a 'tracks' list.

    Parameters:
        filepath (str): Path to the YAML catalog.

    Returns:
        TrackCatalog: Catalog in file order.

    Raises:
        ValueError: If the document has neither form.
    """
    with open(filepath, 'r') as f:
        document = yaml.safe_load(f)

    if isinstance(document, dict):
        document = document.get('tracks')

    if not isinstance(document, list):
        raise ValueError(f"Track catalog {filepath} must contain a list of tracks")

    return TrackCatalog.from_list(document)
