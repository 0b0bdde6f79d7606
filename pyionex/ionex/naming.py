"""
IGS short file names for IONEX products: ``AAARDDDS.YYI``.

- AAA: analysis center (e.g. COD, JPL, IGS)
- R: region code, ``G`` for global maps, ``R`` for regional ones
- DDD: day of year of the first map
- S: sequence number (``0`` for daily files)
- YY: two-digit year

Files may carry a ``.gz`` (or ``.Z``) compression suffix.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from pyionex.ionex.header import Header
from pyionex.utils.dates import date_from_doy, doy_from_date


GLOBAL = "G"
REGIONAL = "R"

_SHORT_NAME_RE = re.compile(
    r"^(?P<agency>[A-Z0-9]{3})(?P<region>[A-Z])(?P<doy>\d{3})(?P<sequence>\d)"
    r"\.(?P<year>\d{2})I(?P<compression>\.GZ|\.Z)?$"
)


@dataclass(frozen=True)
class IonexFileName:
    """Components of an IGS IONEX short file name."""

    agency: str
    year: int
    doy: int
    region: str = GLOBAL
    sequence: int = 0
    compressed: bool = False

    @classmethod
    def parse(cls, filename: str, century: int = 2000) -> Optional["IonexFileName"]:
        """Parse a short name (case insensitive); None when it does not follow the convention."""
        match = _SHORT_NAME_RE.match(filename.strip().upper())
        if not match:
            return None

        doy = int(match.group("doy"))
        if not 1 <= doy <= 366:
            return None

        return cls(
            agency=match.group("agency"),
            year=century + int(match.group("year")),
            doy=doy,
            region=match.group("region"),
            sequence=int(match.group("sequence")),
            compressed=match.group("compression") is not None,
        )

    @classmethod
    def from_header(
        cls,
        header: Header,
        agency: str,
        compressed: bool = False,
    ) -> "IonexFileName":
        """Derive the name from the first map epoch and grid coverage.

        Raises:
            ValueError: agency is not a three character code, or the header
                has no first epoch
        """
        agency = agency.strip().upper()
        if len(agency) != 3:
            raise ValueError(f"Agency must be a 3 character code, got '{agency}'")
        if header.epoch_of_first_map is None:
            raise ValueError("Header has no EPOCH OF FIRST MAP")

        epoch = header.epoch_of_first_map
        return cls(
            agency=agency,
            year=epoch.year,
            doy=doy_from_date(epoch.year, epoch.month, epoch.day),
            region=GLOBAL if header.grid.is_worldwide() else REGIONAL,
            compressed=compressed,
        )

    @property
    def date(self) -> datetime:
        """Midnight of the day this file covers."""
        return date_from_doy(self.year, self.doy)

    def __str__(self) -> str:
        name = f"{self.agency}{self.region}{self.doy:03d}{self.sequence}.{self.year % 100:02d}I"
        return name + (".gz" if self.compressed else "")
