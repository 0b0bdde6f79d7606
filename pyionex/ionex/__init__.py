"""IONEX format: header, maps, grid, dataset, interpolation and writer."""

from pyionex.ionex.grid import Axis, Grid
from pyionex.ionex.header import Header, HeaderParser, MappingFunction, Version
from pyionex.ionex.maps import MapParser, TecMap
from pyionex.ionex.formatting import IonexFormatter
from pyionex.ionex.naming import IonexFileName
from pyionex.ionex.dataset import IONEX, RecordKey
from pyionex.ionex.interpolation import TecEstimate, TecInterpolator

__all__ = [
    # Model
    "Axis",
    "Grid",
    "Header",
    "MappingFunction",
    "Version",
    "TecMap",
    "IONEX",
    "RecordKey",
    # Parsing / writing
    "HeaderParser",
    "MapParser",
    "IonexFormatter",
    "IonexFileName",
    # Interpolation
    "TecInterpolator",
    "TecEstimate",
]
