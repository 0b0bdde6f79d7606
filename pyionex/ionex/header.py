"""
IONEX header model and parser.

The header is read line by line until ``END OF HEADER``. Each line is
classified by its label (columns 61-80); recognized labels fill the
:class:`Header`, unknown labels are skipped so newer revisions still parse.
Everything downstream (sample shape, scaling) depends on the header, so any
inconsistency found here is fatal.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Callable, Iterator, Optional

from pyionex.core.exceptions import (
    HeaderIncomplete,
    InvalidEpochRange,
    InvalidGrid,
    MalformedField,
)
from pyionex.ionex import fields as F
from pyionex.ionex.grid import Axis, Grid
from pyionex.utils.dates import epoch_from_fields
from pyionex.utils.logging import get_logger


logger = get_logger(__name__)


DEFAULT_EXPONENT = -1
MAX_EXPONENT = 9
DEFAULT_BASE_RADIUS_KM = 6371.0

# Standard global grid: 71 latitude bands x 73 longitudes at 450 km
DEFAULT_GRID = Grid(
    latitude=Axis(87.5, -87.5, -2.5),
    longitude=Axis(-180.0, 180.0, 5.0),
    altitude=Axis(450.0, 450.0, 0.0),
)

END_OF_HEADER = "END OF HEADER"


# Labels that only belong to the map section
MAP_LABELS = frozenset({
    "START OF TEC MAP",
    "END OF TEC MAP",
    "START OF RMS MAP",
    "END OF RMS MAP",
    "START OF HEIGHT MAP",
    "END OF HEIGHT MAP",
    "EPOCH OF CURRENT MAP",
    "LAT/LON1/LON2/DLON/H",
    "END OF FILE",
})


@dataclass(frozen=True, order=True)
class Version:
    """IONEX format revision."""

    major: int = 1
    minor: int = 0

    @classmethod
    def parse(cls, text: str) -> "Version":
        """Parse "1.0" / "1" style revision strings.

        Raises:
            ValueError: If text is not a revision number
        """
        text = text.strip()
        if "." in text:
            major, minor = text.split(".", 1)
            return cls(int(major), int(minor or 0))
        return cls(int(text), 0)

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}"


# DOI and LICENSE OF USE records exist from revision 1.1
V1_1 = Version(1, 1)


class MappingFunction(str, Enum):
    """Mapping function used when the TEC maps were estimated."""

    NONE = "NONE"
    COSZ = "COSZ"
    QFAC = "QFAC"

    @classmethod
    def parse(cls, text: Optional[str]) -> "MappingFunction":
        if not text:
            return cls.NONE
        try:
            return cls(text.strip().upper())
        except ValueError:
            logger.warning("Unknown mapping function, assuming NONE", value=text)
            return cls.NONE


@dataclass
class Header:
    """IONEX file header."""

    version: Version = field(default_factory=Version)
    file_type: str = "I"
    system: str = "GPS"
    program: Optional[str] = None
    run_by: Optional[str] = None
    date: Optional[str] = None
    description: list[str] = field(default_factory=list)
    comments: list[str] = field(default_factory=list)
    doi: Optional[str] = None
    license: Optional[str] = None
    observables_used: Optional[str] = None
    epoch_of_first_map: Optional[datetime] = None
    epoch_of_last_map: Optional[datetime] = None
    interval: int = 0  # seconds
    number_of_maps: int = 0
    mapping_function: MappingFunction = MappingFunction.NONE
    elevation_cutoff: float = 0.0  # degrees
    nb_stations: Optional[int] = None
    nb_satellites: Optional[int] = None
    base_radius_km: float = DEFAULT_BASE_RADIUS_KM
    map_dimension: int = 2
    grid: Grid = DEFAULT_GRID
    exponent: int = DEFAULT_EXPONENT  # TEC values = value * 10^exponent

    def timeseries(self) -> list[datetime]:
        """Expected map epochs, first to last (both included) by interval."""
        if self.epoch_of_first_map is None or self.epoch_of_last_map is None:
            return []
        if self.interval <= 0:
            return [self.epoch_of_first_map]

        step = timedelta(seconds=self.interval)
        epochs = []
        epoch = self.epoch_of_first_map
        while epoch <= self.epoch_of_last_map:
            epochs.append(epoch)
            epoch += step
        return epochs

    def validate(self) -> None:
        """Check header-level invariants.

        Raises:
            InvalidGrid: malformed grid, dimension or exponent
            InvalidEpochRange: missing or inverted epoch range
        """
        self.grid.validate()

        if self.map_dimension not in (2, 3):
            raise InvalidGrid(f"MAP DIMENSION must be 2 or 3, got {self.map_dimension}")
        if self.map_dimension == 2 and not self.grid.is_2d():
            raise InvalidGrid(
                f"2D maps require a single altitude, got {self.grid.altitude}"
            )
        if abs(self.exponent) > MAX_EXPONENT:
            raise InvalidGrid(f"EXPONENT {self.exponent} outside [-{MAX_EXPONENT}, {MAX_EXPONENT}]")

        if self.epoch_of_first_map is None:
            raise InvalidEpochRange("EPOCH OF FIRST MAP is missing")
        if self.epoch_of_last_map is None:
            raise InvalidEpochRange("EPOCH OF LAST MAP is missing")
        if self.epoch_of_first_map > self.epoch_of_last_map:
            raise InvalidEpochRange(
                f"EPOCH OF FIRST MAP {self.epoch_of_first_map} is after "
                f"EPOCH OF LAST MAP {self.epoch_of_last_map}"
            )


def decode_epoch(line: str, line_number: Optional[int] = None) -> datetime:
    """Decode a ``6I6`` epoch record.

    Raises:
        MalformedField: non-numeric or impossible date fields
    """
    values = F.decode_record(F.EPOCH, line, line_number, default=0)
    try:
        return epoch_from_fields(**values)
    except ValueError:
        span = F.EPOCH[-1].end
        raise MalformedField(line_number, 0, span, line[:span], "epoch") from None


class HeaderState(str, Enum):
    """Header parser states."""

    START = "start"
    READING = "reading"
    COMPLETE = "complete"


class HeaderParser:
    """State machine consuming header lines into a :class:`Header`.

    Usage:
        parser = HeaderParser()
        header = parser.parse(enumerate(stream, start=1))
    """

    def __init__(self):
        self.state = HeaderState.START
        self.header = Header()
        self._grid_records: dict[str, Axis] = {}
        self._in_aux_data = False
        self._handlers: dict[str, Callable[[str, int], None]] = {
            "IONEX VERSION / TYPE": self._version_type,
            "PGM / RUN BY / DATE": self._program,
            "DESCRIPTION": self._description,
            "COMMENT": self._comment,
            "DOI": self._doi,
            "LICENSE OF USE": self._license,
            "OBSERVABLES USED": self._observables,
            "EPOCH OF FIRST MAP": self._first_epoch,
            "EPOCH OF LAST MAP": self._last_epoch,
            "INTERVAL": self._interval,
            "# OF MAPS IN FILE": self._number_of_maps,
            "MAPPING FUNCTION": self._mapping_function,
            "ELEVATION CUTOFF": self._elevation_cutoff,
            "# OF STATIONS": self._stations,
            "# OF SATELLITES": self._satellites,
            "BASE RADIUS": self._base_radius,
            "MAP DIMENSION": self._map_dimension,
            "HGT1 / HGT2 / DHGT": self._axis("altitude"),
            "LAT1 / LAT2 / DLAT": self._axis("latitude"),
            "LON1 / LON2 / DLON": self._axis("longitude"),
            "EXPONENT": self._exponent,
        }

    def parse(self, lines: Iterator[tuple[int, str]]) -> Header:
        """Consume numbered lines up to and including END OF HEADER.

        Args:
            lines: Iterator of (line_number, line); left positioned on the
                first line after the header

        Returns:
            Validated Header

        Raises:
            HeaderIncomplete: map data before END OF HEADER, or end of input
            InvalidGrid, InvalidEpochRange: header validation failures
            MalformedField: bad numeric field
        """
        last_line = 0
        for line_number, line in lines:
            last_line = line_number
            if self.feed(line, line_number):
                return self.header
        raise HeaderIncomplete("input ended before END OF HEADER", last_line or None)

    def feed(self, line: str, line_number: int) -> bool:
        """Process one line; returns True once the header is complete."""
        if self.state is HeaderState.COMPLETE:
            raise RuntimeError("header already complete")
        self.state = HeaderState.READING

        _, label = F.split_label(line)

        if label == END_OF_HEADER:
            self._complete()
            return True

        if label in MAP_LABELS:
            raise HeaderIncomplete(f"'{label}' found before END OF HEADER", line_number)

        if label == "START OF AUX DATA":
            self._in_aux_data = True
            return False
        if label == "END OF AUX DATA":
            self._in_aux_data = False
            return False
        if self._in_aux_data:
            return False

        handler = self._handlers.get(label)
        if handler is None:
            logger.debug("Skipping unknown header record", label=label, line=line_number)
            return False

        handler(line, line_number)
        return False

    def _complete(self) -> None:
        for record, name in (
            ("LAT1 / LAT2 / DLAT", "latitude"),
            ("LON1 / LON2 / DLON", "longitude"),
            ("HGT1 / HGT2 / DHGT", "altitude"),
        ):
            if name not in self._grid_records:
                raise InvalidGrid(f"{record} record is missing")

        self.header.grid = Grid(
            latitude=self._grid_records["latitude"],
            longitude=self._grid_records["longitude"],
            altitude=self._grid_records["altitude"],
        )
        self.header.validate()
        self.state = HeaderState.COMPLETE

        logger.debug(
            "Parsed IONEX header",
            version=str(self.header.version),
            maps=self.header.number_of_maps,
            shape=self.header.grid.shape,
            exponent=self.header.exponent,
        )

    # Record handlers

    def _version_type(self, line: str, line_number: int) -> None:
        values = F.decode_record(F.VERSION_TYPE, line, line_number)
        if values["version"]:
            try:
                self.header.version = Version.parse(values["version"])
            except ValueError:
                raise MalformedField(
                    line_number, 0, F.VERSION_TYPE[0].end, values["version"], "version"
                ) from None
        if values["file_type"]:
            self.header.file_type = values["file_type"]
        if values["system"]:
            self.header.system = values["system"]

    def _program(self, line: str, line_number: int) -> None:
        values = F.decode_record(F.PGM_RUN_BY_DATE, line, line_number)
        self.header.program = values["program"]
        self.header.run_by = values["run_by"]
        self.header.date = values["date"]

    def _text(self, line: str, line_number: int) -> str:
        return F.decode_record(F.TEXT, line, line_number, default="")["text"]

    def _description(self, line: str, line_number: int) -> None:
        self.header.description.append(self._text(line, line_number))

    def _comment(self, line: str, line_number: int) -> None:
        self.header.comments.append(self._text(line, line_number))

    def _doi(self, line: str, line_number: int) -> None:
        if self._before_v1_1("DOI", line_number):
            return
        self.header.doi = self._text(line, line_number) or None

    def _license(self, line: str, line_number: int) -> None:
        if self._before_v1_1("LICENSE OF USE", line_number):
            return
        self.header.license = self._text(line, line_number) or None

    def _before_v1_1(self, label: str, line_number: int) -> bool:
        if self.header.version >= V1_1:
            return False
        logger.warning(
            "Record requires IONEX 1.1, ignored",
            label=label,
            version=str(self.header.version),
            line=line_number,
        )
        return True

    def _observables(self, line: str, line_number: int) -> None:
        self.header.observables_used = self._text(line, line_number) or None

    def _first_epoch(self, line: str, line_number: int) -> None:
        self.header.epoch_of_first_map = decode_epoch(line, line_number)

    def _last_epoch(self, line: str, line_number: int) -> None:
        self.header.epoch_of_last_map = decode_epoch(line, line_number)

    def _int(self, line: str, line_number: int, default: Optional[int] = 0) -> Optional[int]:
        return F.INT6[0].decode(line, line_number, default)

    def _float(self, line: str, line_number: int, default: float = 0.0) -> float:
        return F.FLOAT8[0].decode(line, line_number, default)

    def _interval(self, line: str, line_number: int) -> None:
        self.header.interval = self._int(line, line_number)

    def _number_of_maps(self, line: str, line_number: int) -> None:
        self.header.number_of_maps = self._int(line, line_number)

    def _mapping_function(self, line: str, line_number: int) -> None:
        values = F.decode_record(F.MAPPING_FUNCTION, line, line_number)
        self.header.mapping_function = MappingFunction.parse(values["mapping_function"])

    def _elevation_cutoff(self, line: str, line_number: int) -> None:
        self.header.elevation_cutoff = self._float(line, line_number)

    def _stations(self, line: str, line_number: int) -> None:
        self.header.nb_stations = self._int(line, line_number, default=None)

    def _satellites(self, line: str, line_number: int) -> None:
        self.header.nb_satellites = self._int(line, line_number, default=None)

    def _base_radius(self, line: str, line_number: int) -> None:
        self.header.base_radius_km = self._float(line, line_number, DEFAULT_BASE_RADIUS_KM)

    def _map_dimension(self, line: str, line_number: int) -> None:
        self.header.map_dimension = self._int(line, line_number, default=2)

    def _exponent(self, line: str, line_number: int) -> None:
        self.header.exponent = self._int(line, line_number, default=DEFAULT_EXPONENT)

    def _axis(self, name: str) -> Callable[[str, int], None]:
        def handler(line: str, line_number: int) -> None:
            values = F.decode_record(F.AXIS, line, line_number)
            if any(v is None for v in values.values()):
                raise InvalidGrid(f"incomplete {name} grid definition at line {line_number}")
            self._grid_records[name] = Axis(values["start"], values["end"], values["step"])

        return handler
