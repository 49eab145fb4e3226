#!/usr/bin/env python3

"""
Unified Command Line Interface for tracegrid

This module provides the command-line interface of the package with two subcommands. 'run' executes a gridding run from a YAML configuration file, with command-line options overriding individual file values, and writes the NetCDF result file; an existing result file is kept unless overwriting is requested. 'plot' reads a result file together with the grid and draws the along-track cross-sections of the selected tracks on a multi-panel figure. Configuration problems are reported through the logger before any work starts, and the entry point returns Unix exit codes for use in scripts.

Classes:
    TraceUnifiedCLI: Main class implementing the command-line interface.

Commands:
    run: Bin samples, build track masks and cross-sections, and save the results.
    plot: Draw cross-section panels from a saved result file.

Functions:
    main: Entry point creating the CLI and returning its exit code.

Author: Rubaiat Islam
Institution: Mesoscale & Microscale Meteorology Laboratory, NCAR
Email: mrislam@ucar.edu
Date: November 2025
Version: 1.0.0
"""

import sys
import argparse
import textwrap
import logging
import traceback
from pathlib import Path
from typing import Any, Dict, List, Optional

from .. import __version__
from .grid import load_grid
from .pipeline import load_results, run_pipeline
from .utils_config import TraceConfig
from .utils_logger import TraceLogger


class TraceUnifiedCLI:
    """
    Command-line interface for gridding runs and cross-section plots. Parsing, configuration merging, validation and execution are separate steps so that each can be exercised on its own.
    """

    COMMANDS = {
        'run': 'Grid samples and build track cross-sections',
        'plot': 'Plot cross-sections from a result file'
    }

    RUN_OVERRIDES = {
        'grid_file': 'grid_file',
        'data_file': 'data_file',
        'output_file': 'output_file',
        'catalog_file': 'catalog_file',
        'value_variable': 'value_variable',
        'err_frac': 'err_frac',
        'half_width': 'half_width',
        'workers': 'workers',
        'log_file': 'log_file',
    }

    def __init__(self) -> None:
        self.logger: Optional[TraceLogger] = None
        self.config: Optional[TraceConfig] = None

    def create_main_parser(self) -> argparse.ArgumentParser:
        """
        Construct the argument parser with the global options and the 'run' and 'plot' subcommands.

        Returns:
            argparse.ArgumentParser: Configured parser.
        """
        parser = argparse.ArgumentParser(
            prog='tracegrid',
            description='Gridding and cross-section tool for oceanographic trace element data',
            formatter_class=argparse.RawDescriptionHelpFormatter,
            epilog=textwrap.dedent("""
            Examples:
              # Grid the dataset described by a configuration file
              tracegrid run --config th232.yaml

              # Rebuild with a wider swath, overriding the file values
              tracegrid run --config th232.yaml --half-width 2 --overwrite

              # Plot the cross-sections of two tracks
              tracegrid plot --results Th232_bgrid.nc --grid-file GRID.nc --output xsecs --tracks GA02 GP16
            """)
        )

        parser.add_argument('--verbose', '-v', action='store_true', help='Enable debug output')
        parser.add_argument('--quiet', '-q', action='store_true', help='Suppress output messages')
        parser.add_argument('--version', action='version', version=f'tracegrid {__version__}')

        subparsers = parser.add_subparsers(
            dest='command',
            title='Commands',
            description='Choose the operation to perform',
            help='Available commands'
        )

        self._add_run_parser(subparsers)
        self._add_plot_parser(subparsers)

        return parser

    def _add_run_parser(self, subparsers: Any) -> None:
        run_parser = subparsers.add_parser('run', help=self.COMMANDS['run'])

        io_group = run_parser.add_argument_group('Input/Output')
        io_group.add_argument('--config', type=str, help='Configuration file path (YAML format)')
        io_group.add_argument('--grid-file', type=str, help='Grid file (.nc or .mat)')
        io_group.add_argument('--data-file', type=str, help='Sample data NetCDF file')
        io_group.add_argument('--output-file', type=str, help='Result NetCDF file')
        io_group.add_argument('--catalog-file', type=str, help='YAML track catalog')
        io_group.add_argument('--log-file', type=str, help='Log file path')

        proc_group = run_parser.add_argument_group('Processing Options')
        proc_group.add_argument('--value-variable', type=str, help='Measured variable name')
        proc_group.add_argument('--err-frac', type=float, help='Relative uncertainty of the values')
        proc_group.add_argument('--half-width', type=int, help='Swath half-width in grid cells')
        proc_group.add_argument('--overwrite', action='store_true', help='Rebuild an existing result file')
        proc_group.add_argument('--parallel', action='store_true', help='Process tracks in a worker pool')
        proc_group.add_argument('--workers', type=int, help='Number of parallel workers')

    def _add_plot_parser(self, subparsers: Any) -> None:
        plot_parser = subparsers.add_parser('plot', help=self.COMMANDS['plot'])

        plot_parser.add_argument('--results', type=str, required=True, help='Result NetCDF file')
        plot_parser.add_argument('--grid-file', type=str, required=True, help='Grid file (.nc or .mat)')
        plot_parser.add_argument('--output', '-o', type=str, required=True,
                                 help='Output path without extension')
        plot_parser.add_argument('--tracks', type=str, nargs='+', help='Tracks to plot (default: all)')
        plot_parser.add_argument('--ncols', type=int, default=2, help='Panels per row (default: 2)')
        plot_parser.add_argument('--max-depth', type=float, help='Deepest depth shown in metres')
        plot_parser.add_argument('--dpi', type=int, default=100, help='Output resolution (default: 100)')
        plot_parser.add_argument('--figure-size', type=float, nargs=2, default=[9.0, 9.0],
                                 metavar=('WIDTH', 'HEIGHT'), help='Figure size in inches (default: 9 9)')
        plot_parser.add_argument('--formats', type=str, nargs='+', default=['png'],
                                 choices=['png', 'pdf', 'svg', 'eps', 'jpg'], help='Output formats (default: png)')

    def parse_args_to_config(self, args: argparse.Namespace) -> TraceConfig:
        """
        Build the run configuration: values from the configuration file when one is given, overridden by every option that was set on the command line.

        Parameters:
            args (argparse.Namespace): Parsed arguments of the 'run' command.

        Returns:
            TraceConfig: Merged and validated configuration.
        """
        config = TraceConfig.load_from_file(args.config) if getattr(args, 'config', None) else TraceConfig()

        overrides: Dict[str, Any] = {
            config_attr: getattr(args, arg_name, None)
            for arg_name, config_attr in self.RUN_OVERRIDES.items()
        }

        if getattr(args, 'overwrite', False):
            overrides['overwrite'] = True
        if getattr(args, 'parallel', False):
            overrides['parallel'] = True
        if getattr(args, 'quiet', False):
            overrides['verbose'] = False

        return config.update_from_args(overrides)

    def setup_logging(self, args: argparse.Namespace, log_file: Optional[str] = None) -> TraceLogger:
        """Create the CLI logger: ERROR level when quiet, DEBUG when verbose, INFO otherwise."""
        log_level = logging.INFO
        if args.quiet:
            log_level = logging.ERROR
        elif args.verbose:
            log_level = logging.DEBUG

        self.logger = TraceLogger(name="tracegrid", level=log_level, log_file=log_file,
                                  verbose=not args.quiet)
        return self.logger

    def validate_config(self, config: TraceConfig) -> bool:
        """
        Check that the input files of a run are configured and exist, and that a track catalog file, when configured, exists too. Every problem is logged before returning.

        Parameters:
            config (TraceConfig): Configuration to check.

        Returns:
            bool: True if the run can start.
        """
        errors: List[str] = []

        for label, path in (('Grid file', config.grid_file), ('Data file', config.data_file)):
            if not path:
                errors.append(f"{label} not specified")
            elif not Path(path).is_file():
                errors.append(f"{label} not found: {path}")

        if config.catalog_file and not Path(config.catalog_file).is_file():
            errors.append(f"Track catalog not found: {config.catalog_file}")

        if errors:
            assert self.logger is not None
            self.logger.error("Configuration validation failed:")
            for error in errors:
                self.logger.error(f"  - {error}")
            return False

        return True

    def run_gridding(self, config: TraceConfig) -> bool:
        """Execute a gridding run; returns True on success, including a skipped run."""
        assert self.logger is not None
        run_pipeline(config, self.logger)
        return True

    def run_plot(self, args: argparse.Namespace) -> bool:
        """
        Draw the cross-sections of a result file and save the figure.

        Parameters:
            args (argparse.Namespace): Parsed arguments of the 'plot' command.

        Returns:
            bool: True when the figure was written.
        """
        from ..visualization.cross_section import TraceCrossSectionPlotter

        assert self.logger is not None
        grid = load_grid(args.grid_file)
        datasets = load_results(args.results)

        missing = [name for name in args.tracks or [] if name not in datasets]
        if missing:
            self.logger.error(f"Tracks not found in {args.results}: {missing}")
            return False

        plotter = TraceCrossSectionPlotter(figsize=tuple(args.figure_size), dpi=args.dpi,
                                           verbose=not args.quiet)
        try:
            plotter.plot_results(datasets, grid.zt, tracks=args.tracks, ncols=args.ncols,
                                 max_depth=args.max_depth)
            for path in plotter.save_plot(args.output, formats=args.formats):
                self.logger.info(f"Saved figure -> {path}")
        finally:
            plotter.close_plot()

        return True

    def main(self, argv: Optional[List[str]] = None) -> int:
        """
        Parse arguments, set up logging and execute the selected command.

        Parameters:
            argv (Optional[List[str]]): Arguments without the program name, sys.argv[1:] when None (default: None).

        Returns:
            int: 0 on success, 1 on errors or failed validation, 2 without a command, 130 on interruption.
        """
        parser = self.create_main_parser()
        args = parser.parse_args(sys.argv[1:] if argv is None else argv)

        if not args.command:
            parser.print_help()
            return 2

        try:
            if args.command == 'run':
                self.config = self.parse_args_to_config(args)
                self.setup_logging(args, self.config.log_file)

                if not self.validate_config(self.config):
                    return 1

                if args.verbose:
                    self._log_config_summary()

                success = self.run_gridding(self.config)
            else:
                self.setup_logging(args)
                success = self.run_plot(args)

            return 0 if success else 1

        except KeyboardInterrupt:
            print("\nInterrupted by user")
            return 130
        except Exception as e:
            if self.logger:
                self.logger.error(f"Unexpected error: {e}")
                self.logger.debug(traceback.format_exc())
            else:
                print(f"Error: {e}")
                traceback.print_exc()
            return 1

    def _log_config_summary(self) -> None:
        if self.logger and self.config:
            self.logger.info("=== Configuration Summary ===")
            for key, value in self.config.to_dict().items():
                if value is not None and value != []:
                    self.logger.info(f"  {key}: {value}")
            self.logger.info("=" * 30)


def main(argv: Optional[List[str]] = None) -> int:
    """
    Module-level entry point registered as the 'tracegrid' console script.

    Parameters:
        argv (Optional[List[str]]): Arguments without the program name (default: None, sys.argv[1:]).

    Returns:
        int: Unix exit status.
    """
    cli = TraceUnifiedCLI()
    return cli.main(argv)


if __name__ == "__main__":
    sys.exit(main())
