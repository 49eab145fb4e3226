#!/usr/bin/env python3

"""
tracegrid Example: Dissolved 232Th Track Cross-Sections

This example builds the gridded 232Th product for eight GEOTRACES cruise tracks from
the IDP2021 discrete seawater file and draws their cross-sections on one 4 x 2 figure.
The gridding run is skipped when the result file already exists, so the plotting
step can be repeated without rebuilding.

Author: Rubaiat Islam
Institution: Mesoscale & Microscale Meteorology Laboratory, NCAR
Email: mrislam@ucar.edu
Date: November 2025
Version: 1.0.0
"""

import os
import sys
from pathlib import Path

package_dir = Path(__file__).parent.parent
sys.path.insert(0, str(package_dir))
OUTPUT_DIR = Path("testPlot")
OUTPUT_DIR.mkdir(parents=True, exist_ok=True)

from tracegrid.processing.grid import load_grid
from tracegrid.processing.pipeline import load_results, run_pipeline
from tracegrid.processing.utils_config import TraceConfig
from tracegrid.visualization.cross_section import TraceCrossSectionPlotter

TRACKS = [
    {'name': 'GA02', 'orientation': 'merid'},
    {'name': 'GA03w', 'orientation': 'zonal',
     'selector': {'cruises': ['GA03'], 'lon_range': [285.0, 345.0]}},
    {'name': 'GA03e', 'orientation': 'merid',
     'selector': {'cruises': ['GA03'], 'lat_range': [16.0, 37.0], 'lon_range': [335.0, 360.0]}},
    {'name': 'GA10', 'orientation': 'zonal', 'wrap_mode': 'shift180', 'split_outputs': True},
    {'name': 'GP16', 'orientation': 'zonal'},
    {'name': 'GPc01w', 'orientation': 'zonal',
     'selector': {'cruises': ['GPc01'], 'lon_range': [152.0, 178.0]}},
    {'name': 'GIPY05e', 'orientation': 'merid',
     'selector': {'cruises': ['GIPY05'], 'lat_range': [-70.0, -40.0]}},
    {'name': 'GSc02', 'orientation': 'merid'},
]

COLOR_LIMITS = {
    'GA02': (0.0, 0.5),
    'GA03w': (0.0, 0.5),
    'GA03e': (0.0, 0.5),
    'GA10': (0.0, 0.3),
    'GP16': (0.0, 0.1),
    'GPc01w': (0.0, 0.3),
    'GIPY05e': (0.0, 0.5),
    'GSc02': (0.0, 0.3),
}


def build_th232_product(grid_file: str = "../data/GRID.nc",
                        data_file: str = "../data/GEOTRACES_IDP2021_Seawater_Discrete_Sample_Data_v1.nc",
                        output_file: str = "Th232_bgrid.nc",
                        overwrite: bool = False) -> str:
    """
    Run the gridding pipeline for the eight 232Th tracks with a 5 percent relative error on every value. The run is skipped when output_file exists and overwrite is False.

    Parameters:
        grid_file (str): Path to the grid file with xt, yt, zt and M3d (default: "../data/GRID.nc").
        data_file (str): Path to the IDP discrete sample file (default: IDP2021 seawater file in ../data).
        output_file (str): Path of the NetCDF result file (default: "Th232_bgrid.nc").
        overwrite (bool): Rebuild even when the result file exists (default: False).

    Returns:
        str: Path of the result file.
    """
    config = TraceConfig(
        grid_file=grid_file,
        data_file=data_file,
        output_file=output_file,
        tracks=TRACKS,
        err_frac=0.05,
        overwrite=overwrite,
    )

    result = run_pipeline(config)
    if result is not None:
        print(f"Done. Saved -> {output_file} ({len(result.tracks)} tracks)")

    return output_file


def plot_th232_sections(results_file: str, grid_file: str) -> None:
    """
    Draw the cross-sections of all eight tracks with track-specific colour ranges and save them as one PNG figure.

    Parameters:
        results_file (str): Result file written by the pipeline.
        grid_file (str): Grid file providing the depth levels.

    Returns:
        None
    """
    grid = load_grid(grid_file)
    datasets = load_results(results_file)

    plotter = TraceCrossSectionPlotter(figsize=(9, 9), dpi=150)
    try:
        plotter.plot_results(datasets, grid.zt, tracks=[t['name'] for t in TRACKS],
                             ncols=2, clims=COLOR_LIMITS, max_depth=5400.0)
        saved = plotter.save_plot(str(OUTPUT_DIR / 'tracegrid_th232_xsecs'), formats=['png'])
        print(f"Saved figure: {saved[0]}")
    finally:
        plotter.close_plot()


def main() -> int:
    """
    Build the 232Th product if needed and plot it. Returns 0 on success and 1 when the input files are missing or a step fails.
    """
    grid_file = "../data/GRID.nc"
    data_file = "../data/GEOTRACES_IDP2021_Seawater_Discrete_Sample_Data_v1.nc"

    if not os.path.exists(grid_file) or not os.path.exists(data_file):
        print("\nNOTE: This example requires the grid file and the GEOTRACES IDP data file.")
        print("Please update the file paths in the script:")
        print("  - grid_file: NetCDF or MATLAB file with xt, yt, zt and M3d")
        print("  - data_file: GEOTRACES IDP2021 discrete seawater sample file")
        return 1

    try:
        results_file = build_th232_product(grid_file, data_file)
        plot_th232_sections(results_file, grid_file)
        return 0
    except Exception as e:
        print(f"Error running track cross-section example: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
