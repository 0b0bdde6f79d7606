"""
TEC interpolation in space (bilinear) and time (linear).

Queries outside the sampled time window are clamped to the first or last
map. Spatially, corners without data are dropped and the remaining bilinear
weights renormalized; queries outside the grid coverage give no data rather
than an extrapolated value. ``None`` always means "no data".

Usage:
    interpolator = TecInterpolator(ionex)
    estimate = interpolator.estimate(45.2, 7.6, datetime(2022, 1, 2, 12, 30))
    estimate.tecu, estimate.rms
"""

from __future__ import annotations

import bisect
import math
from datetime import datetime
from typing import NamedTuple, Optional

from pyionex.ionex import fields as F
from pyionex.ionex.dataset import IONEX
from pyionex.ionex.maps import TecMap


class TecEstimate(NamedTuple):
    """Interpolated TEC and RMS in TECU (None when no data)."""

    tecu: Optional[float]
    rms: Optional[float]


class TecInterpolator:
    """Read-only interpolator over a parsed :class:`IONEX`."""

    def __init__(self, ionex: IONEX):
        self.ionex = ionex
        self.grid = ionex.grid
        self._epochs = ionex.epochs

    def bracket(self, epoch: datetime) -> tuple[int, int, float]:
        """Indices of the maps enclosing ``epoch`` and the fraction between them.

        Epochs outside the sampled window clamp to the nearest map; an exact
        hit returns the same index twice.

        Raises:
            ValueError: the dataset holds no maps
        """
        epochs = self._epochs
        if not epochs:
            raise ValueError("IONEX dataset has no maps")

        if epoch <= epochs[0]:
            return 0, 0, 0.0
        if epoch >= epochs[-1]:
            last = len(epochs) - 1
            return last, last, 0.0

        j = bisect.bisect_left(epochs, epoch)
        if epochs[j] == epoch:
            return j, j, 0.0
        i = j - 1
        span = (epochs[j] - epochs[i]).total_seconds()
        return i, j, (epoch - epochs[i]).total_seconds() / span

    def spatial(
        self,
        tec_map: TecMap,
        ialt: int,
        latitude: float,
        longitude: float,
        rms: bool = False,
    ) -> Optional[float]:
        """Bilinear estimate on one map layer, None when no data."""
        samples = tec_map.rms if rms else tec_map.tec
        if samples is None:
            return None

        plat = self.grid.latitude.position(latitude)
        plon = self.grid.longitude_position(longitude)
        if plat is None or plon is None:
            return None

        n_lat = self.grid.latitude.size
        i0 = int(math.floor(plat))
        i1 = min(i0 + 1, n_lat - 1)
        fy = plat - i0
        j0 = int(math.floor(plon))
        j1 = self.grid.longitude_neighbour(j0)
        fx = plon - j0

        corners = [
            (i0, j0, (1.0 - fy) * (1.0 - fx)),
            (i0, j1, (1.0 - fy) * fx),
            (i1, j0, fy * (1.0 - fx)),
            (i1, j1, fy * fx),
        ]
        exponent = tec_map.rms_scale() if rms else tec_map.exponent

        # Nested lerps keep a uniform field exact
        if not any(samples.mask[ialt, i, j] for i, j, _ in corners):
            a, b, c, d = [float(samples.data[ialt, i, j]) for i, j, _ in corners]
            upper = a + fx * (b - a)
            lower = c + fx * (d - c)
            return F.scale(upper + fy * (lower - upper), exponent)

        # Missing corners: drop them and renormalize the remaining weights
        total = 0.0
        weight = 0.0
        for i, j, w in corners:
            if w == 0.0 or samples.mask[ialt, i, j]:
                continue
            total += w * samples.data[ialt, i, j]
            weight += w

        if weight <= 0.0:
            return None
        return F.scale(total / weight, exponent)

    def interpolate(
        self,
        latitude: float,
        longitude: float,
        epoch: datetime,
        altitude: Optional[float] = None,
        rms: bool = False,
    ) -> Optional[float]:
        """TEC (or RMS) in TECU at an arbitrary position and time.

        Args:
            latitude: Latitude (degrees)
            longitude: Longitude (degrees)
            epoch: Query time (UTC)
            altitude: Layer altitude (km); required on 3D grids, ignored on 2D
            rms: Interpolate the RMS maps instead of TEC

        Returns:
            Value in TECU, or None when no data

        Raises:
            OutOfGrid: 3D grid and ``altitude`` is not one of its layers
        """
        ialt = self.grid.altitude_index(altitude)
        i, j, fraction = self.bracket(epoch)

        first = self.spatial(self.ionex[i], ialt, latitude, longitude, rms)
        if i == j:
            return first

        second = self.spatial(self.ionex[j], ialt, latitude, longitude, rms)
        if first is None or second is None:
            return None
        return first + fraction * (second - first)

    def estimate(
        self,
        latitude: float,
        longitude: float,
        epoch: datetime,
        altitude: Optional[float] = None,
    ) -> TecEstimate:
        """TEC and RMS at an arbitrary position and time."""
        return TecEstimate(
            tecu=self.interpolate(latitude, longitude, epoch, altitude),
            rms=self.interpolate(latitude, longitude, epoch, altitude, rms=True),
        )
