#!/usr/bin/env python3

"""
Shared constants for the tracegrid.processing package.

Place commonly reused literal values, tags and messages here to avoid
duplication across modules.
"""

# Empty grid cells carry this value in both mean and variance. Concentrations
# are non-negative, so any negative number is out of band for them; a process
# that can legitimately produce negative values needs a different sentinel.
FILL_VALUE = -9.0

# Cross-section gap filling needs at least this many valid points per profile.
MIN_INTERP_POINTS = 3

DEFAULT_HALF_WIDTH = 1
DEFAULT_ERR_FRAC = 0.05
DEFAULT_SPLIT_LONGITUDE = 180.0

VALUE_VARIABLE = "var213"
DEPTH_VARIABLE = "var2"
CRUISE_VARIABLE = "metavar1"
STATION_VARIABLE = "metavar2"
TIME_VARIABLE = "date_time"
LAT_VARIABLE = "latitude"
LON_VARIABLE = "longitude"

GRID_AXIS_NAMES = ("xt", "yt", "zt")
GRID_MESH_NAMES = ("XT3d", "YT3d", "ZT3d")
OCEAN_MASK_NAME = "M3d"

PICOMOLAR = "pM"
METER = "m"
DEGREES_EAST = "degrees_east"
DEGREES_NORTH = "degrees_north"

DEFAULT_OUTPUT_FILE = "Th232_bgrid.nc"
GLOBAL_GROUP = "glob"

LENGTH_MISMATCH_MSG = "Sample arrays x, y, z, d and derr must all have the same length"
GRID_SHAPE_MSG = "Grid meshes X, Y and Z must be 3-D arrays of identical shape"
