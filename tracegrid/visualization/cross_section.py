#!/usr/bin/env python3

"""
Along-Track Cross-Section Visualization

This module renders gridded along-track cross-sections as filled-contour panels of concentration against along-track position and depth. Depth is drawn as negative height so that it increases downward, each panel carries its own colorbar and colour range, and the horizontal axis is limited to the span of the station track when the track coordinates are available. Several tracks are laid out on one multi-panel figure read directly from a result file written by the gridding pipeline. Missing cross-section values are left blank, and a panel without any valid value is labelled instead of contoured.

Classes:
    TraceCrossSectionPlotter: Multi-panel cross-section figure builder.

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
import matplotlib.pyplot as plt
from matplotlib.axes import Axes
from matplotlib.figure import Figure
from typing import Dict, List, Optional, Tuple

from ..processing.constants import DEFAULT_SPLIT_LONGITUDE, GLOBAL_GROUP, PICOMOLAR
from ..processing.dateline import wrap_longitudes_for_grid
from ..processing.track_mask import track_extent
from ..processing.tracks import Orientation, WrapMode

plt.rcParams.update({"font.family": "serif", "mathtext.fontset": "cm", "text.usetex": False})


class TraceCrossSectionPlotter:
    """
    Builds filled-contour cross-section panels and saves them as figures. A plotter holds at most one open figure; call close_plot after saving when producing many figures in a loop.
    """

    def __init__(self, figsize: Tuple[float, float] = (9, 9), dpi: int = 100,
                 n_levels: int = 100, verbose: bool = True) -> None:
        """
        Initialize the plotter with figure settings.

        Parameters:
            figsize (Tuple[float, float]): Figure size in inches (default: (9, 9)).
            dpi (int): Output resolution (default: 100).
            n_levels (int): Number of filled contour levels per panel (default: 100).
            verbose (bool): Print the paths of saved files (default: True).

        Returns:
            None
        """
        self.figsize = figsize
        self.dpi = dpi
        self.n_levels = n_levels
        self.verbose = verbose
        self.fig: Optional[Figure] = None
        self.axes: List[Axes] = []

    def draw_panel(self, ax: Axes, position: np.ndarray, depth: np.ndarray, xsec: np.ndarray,
                   title: str, xlabel: str, clim: Optional[Tuple[float, float]] = None,
                   xlim: Optional[Tuple[float, float]] = None,
                   max_depth: Optional[float] = None) -> None:
        """
        Draw one cross-section panel with filled contours and a colorbar.

        Parameters:
            ax (Axes): Target axes.
            position (np.ndarray): Along-track coordinate, shape (P,).
            depth (np.ndarray): Depth levels in metres, positive down, shape (nz,).
            xsec (np.ndarray): Cross-section of shape (P, nz), NaN where missing.
            title (str): Panel title.
            xlabel (str): Label of the along-track axis.
            clim (Optional[Tuple[float, float]]): Colour range, the data range when None (default: None).
            xlim (Optional[Tuple[float, float]]): Horizontal limits (default: None).
            max_depth (Optional[float]): Deepest depth shown, the deepest level when None (default: None).

        Returns:
            None
        """
        values = np.ma.masked_invalid(np.asarray(xsec, dtype=float).T)

        if values.count() == 0:
            ax.text(0.5, 0.5, 'No data', transform=ax.transAxes, ha='center', va='center')
        else:
            vmin, vmax = clim if clim is not None else (float(values.min()), float(values.max()))
            if vmax <= vmin:
                vmax = vmin + 1e-12
            levels = np.linspace(vmin, vmax, self.n_levels)
            contour = ax.contourf(position, -np.asarray(depth), values, levels=levels, extend='both')
            ax.figure.colorbar(contour, ax=ax, label=PICOMOLAR)

        if xlim is not None and np.all(np.isfinite(xlim)) and xlim[1] > xlim[0]:
            ax.set_xlim(xlim)

        deepest = max_depth if max_depth is not None else float(np.max(depth))
        ax.set_ylim(-deepest, 0)

        ax.set_xlabel(xlabel, fontsize=12)
        ax.set_ylabel('Depth (m)', fontsize=12)
        ax.set_title(title, fontsize=12)
        ax.tick_params(labelsize=9)

    def create_figure(self, n_panels: int, ncols: int = 2) -> List[Axes]:
        """Create a figure with enough rows of ncols panels and return its axes in reading order."""
        ncols = max(1, min(ncols, n_panels))
        nrows = max(1, int(np.ceil(n_panels / ncols)))

        self.fig, axes = plt.subplots(nrows, ncols, figsize=self.figsize, dpi=self.dpi, squeeze=False)
        self.axes = list(axes.ravel())

        for ax in self.axes[n_panels:]:
            ax.set_visible(False)

        return self.axes[:n_panels]

    def plot_results(self, datasets: Dict[str, xr.Dataset], depth: np.ndarray,
                     tracks: Optional[List[str]] = None, ncols: int = 2,
                     clims: Optional[Dict[str, Tuple[float, float]]] = None,
                     max_depth: Optional[float] = None) -> Figure:
        """
        Plot the cross-sections of several tracks on one figure. Each track dataset must hold 'xsec' over (position, zt) and the 'orientation' attribute, and shifted tracks wrap their stations at the 'split_longitude' attribute (180 when absent); the station track variables x and y, when present, set the horizontal limits.

        Parameters:
            datasets (Dict[str, xr.Dataset]): Result groups keyed by name, as returned by load_results.
            depth (np.ndarray): Grid depth levels.
            tracks (Optional[List[str]]): Tracks to plot in panel order, all tracks when None (default: None).
            ncols (int): Panels per row (default: 2).
            clims (Optional[Dict[str, Tuple[float, float]]]): Colour range per track (default: None).
            max_depth (Optional[float]): Deepest depth shown (default: None).

        Returns:
            Figure: The created figure.

        Raises:
            ValueError: If no track is available for plotting.
        """
        names = tracks if tracks is not None else [name for name in datasets if name != GLOBAL_GROUP]
        if not names:
            raise ValueError("No track cross-sections to plot")

        clims = clims or {}
        axes = self.create_figure(len(names), ncols=ncols)

        for ax, name in zip(axes, names):
            ds = datasets[name]
            orientation = Orientation.parse(ds.attrs.get('orientation', Orientation.ZONAL.value))
            wrap_mode = WrapMode.parse(ds.attrs.get('wrap_mode'))

            xlim = None
            if 'x' in ds and ds['x'].size:
                x = ds['x'].values
                if wrap_mode is WrapMode.SHIFT180:
                    split = float(ds.attrs.get('split_longitude', DEFAULT_SPLIT_LONGITUDE))
                    x = wrap_longitudes_for_grid(x, split)
                lon_min, lon_max, lat_min, lat_max = track_extent(x, ds['y'].values)
                xlim = (lon_min, lon_max) if orientation is Orientation.ZONAL else (lat_min, lat_max)

            self.draw_panel(
                ax,
                position=ds['position'].values,
                depth=depth,
                xsec=ds['xsec'].values,
                title=f"{name} Observed ({PICOMOLAR})",
                xlabel='Longitude' if orientation is Orientation.ZONAL else 'Latitude',
                clim=clims.get(name),
                xlim=xlim,
                max_depth=max_depth,
            )

        self.add_timestamp_and_branding()
        self.fig.tight_layout()
        return self.fig

    def add_timestamp_and_branding(self) -> None:
        """Add a generation timestamp and the package version to the bottom-left corner of the figure."""
        assert self.fig is not None, "Figure must be created before adding branding"
        from .. import __version__

        timestamp = datetime.now().strftime('%Y-%m-%d %H:%M:%S')
        self.fig.text(0.01, 0.005, f"tracegrid v{__version__} | {timestamp}",
                      fontsize=6, alpha=0.6, ha='left', va='bottom')

    def save_plot(self, output_path: str, formats: Optional[List[str]] = None,
                  bbox_inches: str = 'tight', pad_inches: float = 0.1) -> List[str]:
        """
        Save the current figure once per format. output_path is the base path without extension.

        Parameters:
            output_path (str): Base output path.
            formats (Optional[List[str]]): Output formats (default: None, ['png']).
            bbox_inches (str): Matplotlib bounding box mode (default: 'tight').
            pad_inches (float): Padding around the figure in inches (default: 0.1).

        Returns:
            List[str]: Paths of the written files.

        Raises:
            ValueError: If no figure has been created.
        """
        if self.fig is None:
            raise ValueError("No figure to save. Create a plot first.")

        output_dir = os.path.dirname(output_path)
        if output_dir:
            os.makedirs(output_dir, exist_ok=True)

        saved = []
        for fmt in formats or ['png']:
            full_path = f"{output_path}.{fmt}"
            save_kwargs = {'dpi': self.dpi, 'bbox_inches': bbox_inches, 'pad_inches': pad_inches, 'format': fmt}
            if fmt.lower() == 'png':
                save_kwargs['pil_kwargs'] = {'compress_level': 1}
            self.fig.savefig(full_path, **save_kwargs)
            saved.append(full_path)
            if self.verbose:
                print(f"Saved plot: {full_path}")

        return saved

    def close_plot(self) -> None:
        """Close the current figure and release its resources; safe to call without an open figure."""
        if self.fig is not None:
            plt.close(self.fig)
            self.fig = None
            self.axes = []
