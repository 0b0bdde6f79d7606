"""
IONEX writer.

Produces the header, every TEC map, every RMS map and ``END OF FILE`` in the
standard fixed-column layout. Every labelled line is exactly 80 columns.
The whole text is built in memory, so a ``ValueOverflow`` aborts the write
before anything reaches the sink.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Optional

import numpy as np

from pyionex.core.exceptions import ValueOverflow
from pyionex.ionex import fields as F
from pyionex.ionex.header import V1_1, Header
from pyionex.ionex.maps import TecMap
from pyionex.utils.dates import epoch_to_fields
from pyionex.utils.logging import get_logger

if TYPE_CHECKING:
    from pyionex.ionex.dataset import IONEX


logger = get_logger(__name__)


def requantize(samples: np.ma.MaskedArray, exponent: int, target: int) -> np.ndarray:
    """Raw samples re-expressed with ``target`` exponent, sentinel where masked.

    Raises:
        ValueOverflow: a real sample lands on the sentinel
    """
    data = np.ma.getdata(samples).astype(np.int64)
    mask = np.ma.getmaskarray(samples)

    shift = exponent - target
    if shift > 0:
        data = data * 10 ** shift
    elif shift < 0:
        data = np.rint(data / 10 ** (-shift)).astype(np.int64)

    collisions = (data == F.SENTINEL) & ~mask
    if collisions.any():
        raise ValueOverflow(int(data[collisions][0]), F.SAMPLE_WIDTH, "sample")
    return np.where(mask, F.SENTINEL, data)


class IonexFormatter:
    """Serializes an :class:`IONEX` dataset to text.

    Args:
        exponent: Target exponent; every map is re-quantized to it. When None,
            the header exponent is kept and maps with a different exponent
            get their own EXPONENT record.
        program: Overrides the program name in PGM / RUN BY / DATE
        run_by: Overrides the agency in PGM / RUN BY / DATE
    """

    def __init__(
        self,
        exponent: Optional[int] = None,
        program: Optional[str] = None,
        run_by: Optional[str] = None,
    ):
        self.exponent = exponent
        self.program = program
        self.run_by = run_by

    def format(self, ionex: "IONEX") -> str:
        """Full file text, newline terminated.

        Raises:
            ValueOverflow: a value does not fit its column
        """
        lines = self.header_lines(ionex.header, ionex.map_count())
        exponent = self._file_exponent(ionex.header)

        for tec_map in ionex:
            lines.extend(self._block("TEC", tec_map, tec_map.tec, tec_map.exponent, exponent, ionex))
        for tec_map in ionex:
            if tec_map.rms is not None:
                lines.extend(
                    self._block("RMS", tec_map, tec_map.rms, tec_map.rms_scale(), exponent, ionex)
                )
        lines.append(F.format_line("", "END OF FILE"))

        logger.debug("Formatted IONEX", lines=len(lines), maps=ionex.map_count(), exponent=exponent)
        return "\n".join(lines) + "\n"

    def _file_exponent(self, header: Header) -> int:
        return header.exponent if self.exponent is None else self.exponent

    # Header

    def header_lines(self, header: Header, number_of_maps: int) -> list[str]:
        """Labelled header lines up to and including END OF HEADER."""
        lines = []

        def add(content: str, label: str) -> None:
            lines.append(F.format_line(content, label))

        add(
            F.encode_record(
                F.VERSION_TYPE,
                {
                    "version": f"{str(header.version):>8}",
                    "file_type": header.file_type,
                    "system": header.system,
                },
            ),
            "IONEX VERSION / TYPE",
        )
        add(
            F.encode_record(
                F.PGM_RUN_BY_DATE,
                {
                    "program": self.program or header.program,
                    "run_by": self.run_by or header.run_by,
                    "date": header.date,
                },
            ),
            "PGM / RUN BY / DATE",
        )
        for text in header.description:
            for chunk in F.wrap_text(text):
                add(chunk, "DESCRIPTION")
        for text in header.comments:
            for chunk in F.wrap_text(text):
                add(chunk, "COMMENT")

        add(self._epoch(header.epoch_of_first_map), "EPOCH OF FIRST MAP")
        add(self._epoch(header.epoch_of_last_map), "EPOCH OF LAST MAP")
        add(self._int(header.interval), "INTERVAL")
        add(self._int(number_of_maps), "# OF MAPS IN FILE")
        add(
            F.encode_record(F.MAPPING_FUNCTION, {"mapping_function": header.mapping_function.value}),
            "MAPPING FUNCTION",
        )
        add(F.encode_record(F.FLOAT8, {"value": header.elevation_cutoff}), "ELEVATION CUTOFF")
        if header.observables_used:
            add(header.observables_used, "OBSERVABLES USED")
        if header.nb_stations is not None:
            add(self._int(header.nb_stations), "# OF STATIONS")
        if header.nb_satellites is not None:
            add(self._int(header.nb_satellites), "# OF SATELLITES")
        add(F.encode_record(F.FLOAT8, {"value": header.base_radius_km}), "BASE RADIUS")
        add(self._int(header.map_dimension), "MAP DIMENSION")

        grid = header.grid
        for axis, label in (
            (grid.altitude, "HGT1 / HGT2 / DHGT"),
            (grid.latitude, "LAT1 / LAT2 / DLAT"),
            (grid.longitude, "LON1 / LON2 / DLON"),
        ):
            add(
                F.encode_record(F.AXIS, {"start": axis.start, "end": axis.end, "step": axis.step}),
                label,
            )

        add(self._int(self._file_exponent(header)), "EXPONENT")

        if header.version >= V1_1:
            if header.doi:
                add(header.doi, "DOI")
            if header.license:
                add(header.license, "LICENSE OF USE")

        add("", "END OF HEADER")
        return lines

    @staticmethod
    def _int(value: int) -> str:
        return F.encode_record(F.INT6, {"value": value})

    @staticmethod
    def _epoch(epoch: datetime) -> str:
        names = [field.name for field in F.EPOCH]
        return F.encode_record(F.EPOCH, dict(zip(names, epoch_to_fields(epoch))))

    # Maps

    def _block(
        self,
        kind: str,
        tec_map: TecMap,
        samples: np.ma.MaskedArray,
        map_exponent: int,
        file_exponent: int,
        ionex: "IONEX",
    ) -> list[str]:
        grid = ionex.grid
        lines = [
            F.format_line(self._int(tec_map.ordinal), f"START OF {kind} MAP"),
            F.format_line(self._epoch(tec_map.epoch), "EPOCH OF CURRENT MAP"),
        ]

        if self.exponent is not None:
            raw = requantize(samples, map_exponent, self.exponent)
        else:
            raw = np.ma.filled(samples.astype(np.int64), F.SENTINEL)
            if map_exponent != file_exponent:
                lines.append(F.format_line(self._int(map_exponent), "EXPONENT"))

        lon = grid.longitude
        n_alt, n_lat, _ = grid.shape
        for ialt in range(n_alt):
            for ilat in range(n_lat):
                row = {
                    "latitude": grid.latitude.node(ilat),
                    "lon1": lon.start,
                    "lon2": lon.end,
                    "dlon": lon.step,
                    "height": grid.altitude.node(ialt),
                }
                lines.append(F.format_line(F.encode_record(F.ROW_HEADER, row), "LAT/LON1/LON2/DLON/H"))
                lines.extend(F.encode_samples([int(v) for v in raw[ialt, ilat, :]]))

        lines.append(F.format_line(self._int(tec_map.ordinal), f"END OF {kind} MAP"))
        return lines
