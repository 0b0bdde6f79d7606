"""Shared synthetic IONEX files for the test suite."""

from datetime import datetime, timedelta
from typing import Optional, Sequence

import numpy as np
import pytest


def labelled(content: str, label: str) -> str:
    """One 80 column IONEX line."""
    return f"{content:<60}{label:<20}"


def epoch_record(epoch: datetime) -> str:
    return "".join(
        f"{v:6d}" for v in (epoch.year, epoch.month, epoch.day, epoch.hour, epoch.minute, epoch.second)
    )


def axis_record(start: float, end: float, step: float) -> str:
    return f"  {start:6.1f}{end:6.1f}{step:6.1f}"


def data_lines(values: Sequence[int]) -> list[str]:
    return ["".join(f"{v:5d}" for v in values[i:i + 16]) for i in range(0, len(values), 16)]


def axis_nodes(start: float, end: float, step: float) -> list[float]:
    if step == 0:
        return [start]
    n = int(round((end - start) / step)) + 1
    return [start + i * step for i in range(n)]


def _block(kind, ordinal, epoch, samples, lat, lon, hgt, exponent=None) -> list[str]:
    lines = [
        labelled(f"{ordinal:6d}", f"START OF {kind} MAP"),
        labelled(epoch_record(epoch), "EPOCH OF CURRENT MAP"),
    ]
    if exponent is not None:
        lines.append(labelled(f"{exponent:6d}", "EXPONENT"))
    for ialt, height in enumerate(axis_nodes(*hgt)):
        for ilat, latitude in enumerate(axis_nodes(*lat)):
            row = f"  {latitude:6.1f}{lon[0]:6.1f}{lon[1]:6.1f}{lon[2]:6.1f}{height:6.1f}"
            lines.append(labelled(row, "LAT/LON1/LON2/DLON/H"))
            lines.extend(data_lines([int(v) for v in samples[ialt][ilat]]))
    lines.append(labelled(f"{ordinal:6d}", f"END OF {kind} MAP"))
    return lines


def build_ionex(
    tec: Sequence,
    lat: tuple = (10.0, 0.0, -10.0),
    lon: tuple = (0.0, 10.0, 10.0),
    hgt: tuple = (450.0, 450.0, 0.0),
    exponent: int = -1,
    start: datetime = datetime(2022, 1, 2),
    interval: int = 7200,
    rms: Optional[Sequence] = None,
    ordinals: Optional[Sequence[int]] = None,
    epochs: Optional[Sequence[datetime]] = None,
    number_of_maps: Optional[int] = None,
    map_exponents: Optional[Sequence[Optional[int]]] = None,
    version: str = "1.0",
    extra_header: Sequence[str] = (),
) -> str:
    """IONEX text for raw integer samples.

    ``tec`` is a sequence of maps, each (n_lat, n_lon) or (n_alt, n_lat, n_lon).
    """
    maps = []
    for samples in tec:
        samples = np.asarray(samples)
        if samples.ndim == 2:
            samples = samples[np.newaxis, ...]
        maps.append(samples)

    n = len(maps)
    epochs = list(epochs or [start + timedelta(seconds=interval * i) for i in range(n)])
    ordinals = list(ordinals or range(1, n + 1))
    map_exponents = list(map_exponents or [None] * n)
    dimension = 2 if hgt[2] == 0 else 3

    lines = [
        labelled(f"{version:>8}            I                   GPS", "IONEX VERSION / TYPE"),
        labelled(f"{'pyionex-test':<20}{'TEST':<20}{'02-JAN-22 00:00':<20}", "PGM / RUN BY / DATE"),
        labelled("Synthetic TEC maps", "DESCRIPTION"),
        labelled("Built by the test suite", "COMMENT"),
        labelled(epoch_record(epochs[0] if epochs else start), "EPOCH OF FIRST MAP"),
        labelled(epoch_record(epochs[-1] if epochs else start), "EPOCH OF LAST MAP"),
        labelled(f"{interval:6d}", "INTERVAL"),
        labelled(f"{n if number_of_maps is None else number_of_maps:6d}", "# OF MAPS IN FILE"),
        labelled("  COSZ", "MAPPING FUNCTION"),
        labelled("    10.0", "ELEVATION CUTOFF"),
        labelled("TEC from GPS", "OBSERVABLES USED"),
        labelled(f"{150:6d}", "# OF STATIONS"),
        labelled(f"{32:6d}", "# OF SATELLITES"),
        labelled("  6371.0", "BASE RADIUS"),
        labelled(f"{dimension:6d}", "MAP DIMENSION"),
        labelled(axis_record(*hgt), "HGT1 / HGT2 / DHGT"),
        labelled(axis_record(*lat), "LAT1 / LAT2 / DLAT"),
        labelled(axis_record(*lon), "LON1 / LON2 / DLON"),
        labelled(f"{exponent:6d}", "EXPONENT"),
    ]
    lines.extend(extra_header)
    lines.append(labelled("", "END OF HEADER"))

    for ordinal, epoch, samples, map_exponent in zip(ordinals, epochs, maps, map_exponents):
        lines.extend(_block("TEC", ordinal, epoch, samples, lat, lon, hgt, map_exponent))

    if rms is not None:
        for ordinal, epoch, samples in zip(ordinals, epochs, rms):
            samples = np.asarray(samples)
            if samples.ndim == 2:
                samples = samples[np.newaxis, ...]
            lines.extend(_block("RMS", ordinal, epoch, samples, lat, lon, hgt))

    lines.append(labelled("", "END OF FILE"))
    return "\n".join(lines) + "\n"


@pytest.fixture
def ionex_builder():
    """Factory building synthetic IONEX text."""
    return build_ionex


@pytest.fixture
def uniform_text() -> str:
    """Two epochs, 2x2 nodes, uniform 100 then 200 (exponent -1)."""
    return build_ionex(
        [[[100, 100], [100, 100]], [[200, 200], [200, 200]]],
        lat=(10.0, 0.0, -10.0),
        lon=(0.0, 10.0, 10.0),
    )


@pytest.fixture
def global_text() -> str:
    """Worldwide grid (-180..180 by 90) over three latitudes, with RMS maps."""
    tec0 = [
        [10, 20, 30, 40, 10],
        [50, 60, 70, 80, 50],
        [90, 100, 110, 120, 90],
    ]
    tec1 = [
        [30, 40, 50, 60, 30],
        [70, 80, 9999, 100, 70],
        [110, 120, 130, 140, 110],
    ]
    rms = [[[5] * 5] * 3, [[7] * 5] * 3]
    return build_ionex(
        [tec0, tec1],
        lat=(10.0, -10.0, -10.0),
        lon=(-180.0, 180.0, 90.0),
        rms=rms,
        interval=3600,
    )
