#!/usr/bin/env python3

"""
tracegrid - Gridding and Cross-Section Toolkit for Oceanographic Trace Element Data

A Python package for binning irregular oceanographic point measurements onto a
structured latitude-longitude-depth grid and deriving cruise-track averaging
masks and gap-filled cross-sections from the gridded statistics.

Author: Rubaiat Islam
Institution: Mesoscale & Microscale Meteorology Laboratory, NCAR
Email: mrislam@ucar.edu
Date: November 2025
Version: 1.0.0
"""

__version__ = "1.0.0"
__author__ = "Rubaiat Islam"
__email__ = "mrislam@ucar.edu"
__institution__ = "Mesoscale & Microscale Meteorology Laboratory, NCAR"

__all__ = [
    '__version__',
    '__author__',
    '__email__',
    '__institution__'
]
