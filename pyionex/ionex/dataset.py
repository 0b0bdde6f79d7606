"""
IONEX dataset: one header, one grid, a chronological sequence of maps.

Usage:
    from pyionex.ionex import IONEX

    ionex = IONEX.from_file("CODG0020.22I.gz")
    for i, tec_map in enumerate(ionex):
        print(tec_map.epoch, ionex.sample_at(i, 40.0, 10.0))
"""

from __future__ import annotations

import io
from dataclasses import replace
from datetime import datetime
from pathlib import Path
from typing import Iterable, Iterator, NamedTuple, Optional, Sequence

from pyionex.core.exceptions import IncompatibleMerge, MapSequenceError, OutOfGrid
from pyionex.ionex.formatting import IonexFormatter
from pyionex.ionex.grid import Grid
from pyionex.ionex.header import V1_1, Header, HeaderParser
from pyionex.ionex.maps import MapParser, TecMap
from pyionex.ionex.naming import IonexFileName
from pyionex.utils.compression import open_text
from pyionex.utils.logging import get_logger


logger = get_logger(__name__)

# Marks a dataset produced by IONEX.merge
MERGE_COMMENT = "FILE MERGE"


class RecordKey(NamedTuple):
    """Address of one grid sample."""

    epoch: datetime
    latitude: float
    longitude: float
    altitude: float


class IONEX:
    """Parsed IONEX file.

    The model is fully built before it is handed out and is never mutated
    afterwards; queries and the formatter only read it.
    """

    def __init__(self, header: Header, maps: Sequence[TecMap]):
        """Assemble a dataset from a header and its TEC maps.

        Raises:
            InvalidGrid: malformed header grid, dimension or exponent
            InvalidEpochRange: missing or inverted header epoch range
            MapSequenceError: maps out of order, misnumbered or off the grid
        """
        header.validate()
        self.header = header
        self._maps = tuple(maps)

        for tec_map in self._maps:
            if tec_map.shape != header.grid.shape:
                raise MapSequenceError(
                    f"map {tec_map.ordinal} shape {tec_map.shape} does not match grid "
                    f"{header.grid.shape}",
                    tec_map.ordinal,
                )
        for previous, current in zip(self._maps, self._maps[1:]):
            if current.ordinal != previous.ordinal + 1:
                raise MapSequenceError(
                    f"map {current.ordinal} follows map {previous.ordinal}", current.ordinal
                )
            if current.epoch <= previous.epoch:
                raise MapSequenceError(
                    f"map {current.ordinal} epoch {current.epoch} is not after {previous.epoch}",
                    current.ordinal,
                )

    # Construction

    @classmethod
    def parse(cls, stream: Iterable[str]) -> "IONEX":
        """Parse IONEX text from any iterable of lines.

        Raises:
            PyIonexError: any structural error; no partial model is returned
        """
        lines = enumerate(stream, start=1)
        header = HeaderParser().parse(lines)
        maps = MapParser(header).parse(lines)
        ionex = cls(header, maps)
        logger.info(
            "Parsed IONEX",
            maps=ionex.map_count(),
            shape=header.grid.shape,
            rms=ionex.has_rms(),
        )
        return ionex

    @classmethod
    def from_string(cls, text: str) -> "IONEX":
        return cls.parse(io.StringIO(text))

    @classmethod
    def from_file(cls, path: Path | str) -> "IONEX":
        """Read a plain or gzip-compressed IONEX file."""
        logger.debug("Reading IONEX file", path=str(path))
        with open_text(path) as stream:
            return cls.parse(stream)

    def to_string(self, exponent: Optional[int] = None) -> str:
        """Format as IONEX text, optionally re-quantized to ``exponent``."""
        return IonexFormatter(exponent=exponent).format(self)

    def to_file(self, path: Path | str, exponent: Optional[int] = None) -> Path:
        """Write IONEX text to ``path`` (gzip when it ends in ``.gz``).

        The text is fully formatted before the file is opened, so a
        ``ValueOverflow`` leaves no partial file behind.
        """
        text = self.to_string(exponent)
        path = Path(path)
        with open_text(path, "w") as stream:
            stream.write(text)
        logger.info("Wrote IONEX file", path=str(path), maps=self.map_count())
        return path

    # Maps

    @property
    def grid(self) -> Grid:
        return self.header.grid

    @property
    def maps(self) -> tuple[TecMap, ...]:
        return self._maps

    @property
    def epochs(self) -> list[datetime]:
        return [m.epoch for m in self._maps]

    def map_count(self) -> int:
        return len(self._maps)

    def __len__(self) -> int:
        return len(self._maps)

    def __iter__(self) -> Iterator[TecMap]:
        return iter(self._maps)

    def __getitem__(self, index: int) -> TecMap:
        return self._maps[index]

    def epoch_at(self, index: int) -> datetime:
        """Epoch of the map at ``index`` (0-based, chronological).

        Raises:
            IndexError: index out of range
        """
        return self._maps[index].epoch

    def has_rms(self) -> bool:
        """True when at least one map carries RMS samples."""
        return any(m.has_rms() for m in self._maps)

    def timeseries(self) -> list[datetime]:
        """Epochs expected from the header's first/last/interval records."""
        return self.header.timeseries()

    # Grid

    def is_2d(self) -> bool:
        return self.grid.is_2d()

    def is_3d(self) -> bool:
        return self.grid.is_3d()

    def is_worldwide(self) -> bool:
        return self.grid.is_worldwide()

    def bounding_box(self) -> tuple[float, float, float, float]:
        """(lon_min, lat_min, lon_max, lat_max) in degrees."""
        return self.grid.bounding_box()

    # Exact lookups

    def _map(self, epoch_index: int) -> TecMap:
        if not 0 <= epoch_index < len(self._maps):
            raise OutOfGrid(
                "epoch index",
                epoch_index,
                f"epoch index {epoch_index} outside [0, {len(self._maps)})",
            )
        return self._maps[epoch_index]

    def sample_at(
        self,
        epoch_index: int,
        latitude: float,
        longitude: float,
        altitude: Optional[float] = None,
    ) -> Optional[float]:
        """TEC in TECU at an exact grid node, None when the node has no data.

        Args:
            epoch_index: 0-based map index
            latitude: Node latitude (degrees)
            longitude: Node longitude (degrees); wraps on worldwide grids
            altitude: Layer altitude (km); required on 3D grids, ignored on 2D

        Raises:
            OutOfGrid: coordinate not on a node, or epoch index out of range
        """
        tec_map = self._map(epoch_index)
        return tec_map.value(*self.grid.node_index(latitude, longitude, altitude))

    def rms_at(
        self,
        epoch_index: int,
        latitude: float,
        longitude: float,
        altitude: Optional[float] = None,
    ) -> Optional[float]:
        """RMS in TECU at an exact grid node, None when absent."""
        tec_map = self._map(epoch_index)
        return tec_map.value(*self.grid.node_index(latitude, longitude, altitude), rms=True)

    def key(self, epoch_index: int, ialt: int, ilat: int, ilon: int) -> RecordKey:
        """Record key of the sample at the given indices."""
        latitude, longitude, altitude = self.grid.coordinates(ialt, ilat, ilon)
        return RecordKey(self._map(epoch_index).epoch, latitude, longitude, altitude)

    def keys(self) -> Iterator[RecordKey]:
        """Every record key, map by map, in file storage order."""
        n_alt, n_lat, n_lon = self.grid.shape
        for epoch_index in range(len(self._maps)):
            for ialt in range(n_alt):
                for ilat in range(n_lat):
                    for ilon in range(n_lon):
                        yield self.key(epoch_index, ialt, ilat, ilon)

    # Naming

    def standardized_filename(self, agency: str = "IGS", compressed: bool = False) -> str:
        """IGS short file name (``AAARDDDS.YYI``) for this dataset."""
        return str(IonexFileName.from_header(self.header, agency, compressed))

    # Merging

    def is_merged(self) -> bool:
        """True when a ``FILE MERGE`` comment marks this as a merge product."""
        return any(MERGE_COMMENT in comment for comment in self.header.comments)

    def merge(self, other: "IONEX") -> "IONEX":
        """Combine with another dataset on the same grid.

        Maps of both datasets are taken in chronological order and renumbered
        from 1. Where both hold a map at the same epoch, this dataset's samples
        are kept and only missing RMS samples are taken from ``other``. Header
        records absent here are filled from ``other``, and a ``FILE MERGE``
        comment is added.

        Raises:
            IncompatibleMerge: grid, system, mapping function or map dimension differ
        """
        for attribute in ("grid", "system", "mapping_function", "map_dimension"):
            left = getattr(self.header, attribute)
            right = getattr(other.header, attribute)
            if left != right:
                raise IncompatibleMerge(attribute, left, right)

        by_epoch = {m.epoch: m for m in other}
        for tec_map in self._maps:
            twin = by_epoch.get(tec_map.epoch)
            if twin is not None and not tec_map.has_rms() and twin.has_rms():
                tec_map = tec_map.with_rms(twin.rms, twin.rms_scale())
            by_epoch[tec_map.epoch] = tec_map

        ordered = sorted(by_epoch.values(), key=lambda m: m.epoch)
        maps = [replace(m, ordinal=i) for i, m in enumerate(ordered, start=1)]
        merged = IONEX(_merge_headers(self.header, other.header, len(maps)), maps)
        logger.info("Merged IONEX", maps=len(maps), added=len(maps) - len(self._maps))
        return merged

    def __repr__(self) -> str:
        first = self._maps[0].epoch if self._maps else None
        return (
            f"IONEX(version={self.header.version}, maps={len(self._maps)}, "
            f"grid={self.grid.shape}, first={first})"
        )


def _merge_headers(left: Header, right: Header, number_of_maps: int) -> Header:
    def union(first: list[str], second: list[str]) -> list[str]:
        return first + [text for text in second if text not in first]

    def either(a, b):
        return a if a is not None else b

    version = min(left.version, right.version)
    comments = union(left.comments, right.comments)
    if MERGE_COMMENT not in comments:
        comments.append(MERGE_COMMENT)

    return replace(
        left,
        version=version,
        program=either(left.program, right.program),
        run_by=either(left.run_by, right.run_by),
        date=either(left.date, right.date),
        description=union(left.description, right.description),
        comments=comments,
        # Records that a version 1.0 file cannot carry
        doi=either(left.doi, right.doi) if version >= V1_1 else None,
        license=either(left.license, right.license) if version >= V1_1 else None,
        observables_used=either(left.observables_used, right.observables_used),
        epoch_of_first_map=min(left.epoch_of_first_map, right.epoch_of_first_map),
        epoch_of_last_map=max(left.epoch_of_last_map, right.epoch_of_last_map),
        interval=min((i for i in (left.interval, right.interval) if i > 0), default=0),
        number_of_maps=number_of_maps,
        elevation_cutoff=max(left.elevation_cutoff, right.elevation_cutoff),
        nb_stations=either(left.nb_stations, right.nb_stations),
        nb_satellites=either(left.nb_satellites, right.nb_satellites),
    )
