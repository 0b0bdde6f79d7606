"""
IONEX grid definition.

A grid is three inclusive linear axes (latitude, longitude, altitude) shared
by every map of a file. Latitude usually runs north to south (negative step);
a flat 2D map has a single-point altitude axis with a zero step.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional

import numpy as np

from pyionex.core.exceptions import InvalidGrid, OutOfGrid


# Coordinates closer than this (in index units) to a node snap onto it
NODE_TOLERANCE = 1e-9

LONGITUDE_PERIOD = 360.0


@dataclass(frozen=True)
class Axis:
    """Inclusive linear space ``start, start + step, ..., end``."""

    start: float
    end: float
    step: float

    @property
    def size(self) -> int:
        """Number of nodes on this axis."""
        if self.step == 0:
            return 1
        return int(round((self.end - self.start) / self.step)) + 1

    def is_single_point(self) -> bool:
        return self.step == 0 and self.start == self.end

    def minmax(self) -> tuple[float, float]:
        return min(self.start, self.end), max(self.start, self.end)

    def node(self, index: int) -> float:
        """Coordinate of the node at ``index``."""
        return self.start + index * self.step

    def nodes(self) -> np.ndarray:
        return self.start + self.step * np.arange(self.size)

    def validate(self, name: str, allow_single_point: bool = False) -> None:
        """Check the axis is a well formed IONEX linear space.

        Raises:
            InvalidGrid: zero step on a non-degenerate axis, a step that does
                not divide the range, or a range running against the step
        """
        if self.step == 0:
            if allow_single_point and self.start == self.end:
                return
            raise InvalidGrid(f"{name} step must be non-zero ({self})")

        cells = (self.end - self.start) / self.step
        if cells < 0:
            raise InvalidGrid(f"{name} range runs against its step ({self})")
        if abs(cells - round(cells)) > 1e-6:
            raise InvalidGrid(f"{name} step does not divide its range ({self})")

    def period_cells(self, period: float = LONGITUDE_PERIOD) -> Optional[int]:
        """Number of cells in one full turn if this axis wraps, else None."""
        if self.step == 0:
            return None
        cells = period / abs(self.step)
        if abs(cells - round(cells)) > 1e-9:
            return None
        cells = int(round(cells))
        if self.size < cells:
            return None
        return cells

    def position(self, value: float) -> Optional[float]:
        """Fractional index of ``value`` on this axis, None when outside it."""
        if self.step == 0:
            return 0.0 if math.isclose(value, self.start, abs_tol=NODE_TOLERANCE) else None

        p = (value - self.start) / self.step
        nearest = round(p)
        if abs(p - nearest) < NODE_TOLERANCE:
            p = float(nearest)
        if p < 0 or p > self.size - 1:
            return None
        return p

    def index_of(self, value: float, name: str = "coordinate") -> int:
        """Index of the node located exactly at ``value``.

        Raises:
            OutOfGrid: ``value`` is not a node of this axis
        """
        p = self.position(value)
        if p is None or not p.is_integer():
            raise OutOfGrid(name, value)
        return int(p)

    def __str__(self) -> str:
        return f"{self.start}/{self.end}/{self.step}"


@dataclass(frozen=True)
class Grid:
    """Latitude, longitude and altitude axes of an IONEX file."""

    latitude: Axis
    longitude: Axis
    altitude: Axis

    @property
    def shape(self) -> tuple[int, int, int]:
        """Sample array shape: (altitude, latitude, longitude)."""
        return self.altitude.size, self.latitude.size, self.longitude.size

    def is_2d(self) -> bool:
        """True for a single isosurface (fixed altitude)."""
        return self.altitude.is_single_point()

    def is_3d(self) -> bool:
        return not self.is_2d()

    def is_worldwide(self) -> bool:
        """True when the longitude axis covers a full turn."""
        return self.longitude.period_cells() is not None

    def bounding_box(self) -> tuple[float, float, float, float]:
        """Coverage as (lon_min, lat_min, lon_max, lat_max) in degrees."""
        lon_min, lon_max = self.longitude.minmax()
        lat_min, lat_max = self.latitude.minmax()
        return lon_min, lat_min, lon_max, lat_max

    def validate(self) -> None:
        """Raises InvalidGrid if any axis is malformed."""
        self.latitude.validate("latitude")
        self.longitude.validate("longitude")
        self.altitude.validate("altitude", allow_single_point=True)

    def longitude_position(self, longitude: float) -> Optional[float]:
        """Fractional longitude index, resolving the 360 degree ambiguity.

        On a wrapping axis the result lies in ``[0, cells)`` so that the seam
        (e.g. -180 and +180) resolves to the same node.
        """
        axis = self.longitude
        cells = axis.period_cells()
        if cells is not None:
            p = ((longitude - axis.start) / axis.step) % cells
            nearest = round(p)
            if abs(p - nearest) < NODE_TOLERANCE:
                p = float(nearest % cells)
            return p

        for candidate in (longitude, longitude - LONGITUDE_PERIOD, longitude + LONGITUDE_PERIOD):
            p = axis.position(candidate)
            if p is not None:
                return p
        return None

    def longitude_neighbour(self, index: int) -> int:
        """Index of the next longitude node, across the seam if wrapping."""
        nxt = index + 1
        if nxt < self.longitude.size:
            return nxt
        cells = self.longitude.period_cells()
        if cells is None:
            return index
        return nxt % cells

    def altitude_index(self, altitude: Optional[float]) -> int:
        """Altitude layer index; any altitude selects the layer of a 2D grid.

        Raises:
            OutOfGrid: 3D grid and ``altitude`` is not one of its layers
        """
        if self.is_2d():
            return 0
        if altitude is None:
            raise OutOfGrid("altitude", float("nan"), "altitude is required on a 3D grid")
        return self.altitude.index_of(altitude, "altitude")

    def node_index(
        self,
        latitude: float,
        longitude: float,
        altitude: Optional[float] = None,
    ) -> tuple[int, int, int]:
        """(altitude, latitude, longitude) indices of an exact grid node.

        Raises:
            OutOfGrid: the coordinates do not align with a node
        """
        ialt = self.altitude_index(altitude)
        ilat = self.latitude.index_of(latitude, "latitude")
        p = self.longitude_position(longitude)
        if p is None or not p.is_integer():
            raise OutOfGrid("longitude", longitude)
        return ialt, ilat, int(p)

    def coordinates(self, ialt: int, ilat: int, ilon: int) -> tuple[float, float, float]:
        """(latitude, longitude, altitude) of the node at the given indices."""
        return (
            self.latitude.node(ilat),
            self.longitude.node(ilon),
            self.altitude.node(ialt),
        )
