"""
pyionex: IONEX ionosphere map parsing, interpolation and writing.

Reads IONEX V1 Total Electron Content maps (optionally gzip-compressed),
validates their structure, interpolates TEC and RMS in space and time, and
writes them back in the standard fixed-column layout.
"""

__version__ = "1.0.0"
__author__ = "pyionex Team"

from pyionex.ionex import IONEX, TecEstimate, TecInterpolator, TecMap
from pyionex.core.config import Settings

__all__ = ["IONEX", "TecMap", "TecInterpolator", "TecEstimate", "Settings", "__version__"]
