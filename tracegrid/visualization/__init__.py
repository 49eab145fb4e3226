#!/usr/bin/env python3

"""
tracegrid Visualization Package

This package provides figure helpers for gridded cross-section products.

Author: Rubaiat Islam
Institution: Mesoscale & Microscale Meteorology Laboratory, NCAR
Email: mrislam@ucar.edu
Date: November 2025
Version: 1.0.0
"""

__version__ = "1.0.0"

from tracegrid.visualization.cross_section import TraceCrossSectionPlotter

__all__ = [
    'TraceCrossSectionPlotter'
]
