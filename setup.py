#!/usr/bin/env python3

"""
Legacy setup.py for the tracegrid package

This setup.py file is kept for tools that still call it directly. The
package metadata, dependencies and console script are declared in
pyproject.toml.
"""

from setuptools import setup

# All configuration is in pyproject.toml
setup()
