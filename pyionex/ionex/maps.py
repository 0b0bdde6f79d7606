"""
TEC / RMS map blocks.

A map holds the raw integer samples of one epoch as a numpy masked array of
shape ``(n_altitude, n_latitude, n_longitude)``. Sentinel samples are masked,
so "no data" never leaks into arithmetic. Samples are scaled to TECU only
through :func:`pyionex.ionex.fields.scale`.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Iterator, Optional

import numpy as np

from pyionex.core.exceptions import (
    GridSizeMismatch,
    InvalidGrid,
    MalformedField,
    MapSequenceError,
    ValueOverflow,
)
from pyionex.ionex import fields as F
from pyionex.ionex.grid import Grid
from pyionex.ionex.header import Header, decode_epoch
from pyionex.utils.logging import get_logger


logger = get_logger(__name__)


TEC = "TEC"
RMS = "RMS"
HEIGHT = "HEIGHT"

BLOCK_KINDS = (TEC, RMS, HEIGHT)

# Labels that may appear inside or between map blocks
_MAP_LABELS = frozenset(
    [f"START OF {kind} MAP" for kind in BLOCK_KINDS]
    + [f"END OF {kind} MAP" for kind in BLOCK_KINDS]
    + ["EPOCH OF CURRENT MAP", "EXPONENT", "LAT/LON1/LON2/DLON/H", "END OF FILE", "COMMENT"]
)


def freeze_samples(raw: np.ndarray) -> np.ma.MaskedArray:
    """Wrap raw integer samples in a read-only array with sentinels masked."""
    data = np.array(raw, dtype=np.int64)
    mask = data == F.SENTINEL
    data.setflags(write=False)
    mask.setflags(write=False)
    return np.ma.MaskedArray(data, mask=mask, copy=False)


def quantize_array(values: np.ndarray, exponent: int) -> np.ndarray:
    """Quantize physical values to raw integers; NaN becomes the sentinel.

    Raises:
        ValueOverflow: a real value quantizes to the sentinel
    """
    values = np.asarray(values, dtype=float)
    missing = np.isnan(values)
    if exponent < 0:
        raw = np.rint(values * 10 ** (-exponent))
    else:
        raw = np.rint(values / 10 ** exponent)
    raw = np.where(missing, F.SENTINEL, raw).astype(np.int64)

    collisions = (raw == F.SENTINEL) & ~missing
    if collisions.any():
        value = float(values[collisions][0])
        raise ValueOverflow(value, F.SAMPLE_WIDTH, "sample")
    return raw


@dataclass(frozen=True, eq=False)
class TecMap:
    """TEC samples (and optional RMS) of a single epoch."""

    ordinal: int
    epoch: datetime
    exponent: int
    tec: np.ma.MaskedArray
    rms: Optional[np.ma.MaskedArray] = None
    rms_exponent: Optional[int] = None

    @classmethod
    def from_tecu(
        cls,
        ordinal: int,
        epoch: datetime,
        tecu: np.ndarray,
        exponent: int = -1,
        rms: Optional[np.ndarray] = None,
    ) -> "TecMap":
        """Build a map from floating point TECU values.

        Args:
            ordinal: Map index as written in START OF TEC MAP
            epoch: Map epoch (UTC)
            tecu: TECU values, shape (n_alt, n_lat, n_lon) or (n_lat, n_lon);
                NaN marks no data
            exponent: Power of ten used to store the values
            rms: Optional RMS values in TECU, same shape

        Raises:
            ValueOverflow: a value quantizes to the sentinel
        """
        tecu = np.asarray(tecu, dtype=float)
        if tecu.ndim == 2:
            tecu = tecu[np.newaxis, ...]

        rms_samples = None
        if rms is not None:
            rms = np.asarray(rms, dtype=float).reshape(tecu.shape)
            rms_samples = freeze_samples(quantize_array(rms, exponent))

        return cls(
            ordinal=ordinal,
            epoch=epoch,
            exponent=exponent,
            tec=freeze_samples(quantize_array(tecu, exponent)),
            rms=rms_samples,
            rms_exponent=exponent if rms is not None else None,
        )

    @property
    def shape(self) -> tuple[int, int, int]:
        return self.tec.shape

    def has_rms(self) -> bool:
        return self.rms is not None

    def rms_scale(self) -> int:
        """Exponent in force for the RMS samples."""
        return self.exponent if self.rms_exponent is None else self.rms_exponent

    def tecu(self) -> np.ma.MaskedArray:
        """All TEC samples in TECU (masked where no data)."""
        return self.tec.astype(float) * 10.0 ** self.exponent

    def rms_tecu(self) -> Optional[np.ma.MaskedArray]:
        if self.rms is None:
            return None
        return self.rms.astype(float) * 10.0 ** self.rms_scale()

    def raw(self, ialt: int, ilat: int, ilon: int, rms: bool = False) -> Optional[int]:
        """Raw integer sample at the given indices, None when no data."""
        samples = self.rms if rms else self.tec
        if samples is None or samples.mask[ialt, ilat, ilon]:
            return None
        return int(samples.data[ialt, ilat, ilon])

    def value(self, ialt: int, ilat: int, ilon: int, rms: bool = False) -> Optional[float]:
        """Sample in TECU at the given indices, None when no data."""
        raw = self.raw(ialt, ilat, ilon, rms)
        if raw is None:
            return None
        return F.scale(raw, self.rms_scale() if rms else self.exponent)

    def with_rms(self, rms: np.ma.MaskedArray, exponent: Optional[int] = None) -> "TecMap":
        """Copy of this map carrying ``rms`` samples."""
        return replace(self, rms=rms, rms_exponent=self.exponent if exponent is None else exponent)


@dataclass
class _Block:
    """Map block being assembled."""

    kind: str
    ordinal: int
    start_line: int
    epoch: Optional[datetime] = None
    exponent: Optional[int] = None
    samples: Optional[np.ndarray] = None
    rows: int = 0
    row: Optional[list[int]] = None
    row_line: int = 0


class MapParser:
    """Reads the map section of an IONEX file (after END OF HEADER).

    Usage:
        lines = enumerate(stream, start=1)
        header = HeaderParser().parse(lines)
        maps = MapParser(header).parse(lines)
    """

    def __init__(self, header: Header):
        self.header = header
        self.grid: Grid = header.grid
        self._rows_expected = self.grid.altitude.size * self.grid.latitude.size

    def parse(self, lines: Iterator[tuple[int, str]]) -> list[TecMap]:
        """Parse every map block up to END OF FILE (or end of input).

        Returns:
            TEC maps in file order, with their RMS samples attached

        Raises:
            GridSizeMismatch: wrong sample count in a row or missing rows
            InvalidGrid: row header disagreeing with the header grid
            MapSequenceError: bad ordinals, epochs, RMS pairing or map count
            MalformedField: bad numeric field or data outside a map block
        """
        maps: list[TecMap] = []
        rms_blocks: dict[int, _Block] = {}

        for line_number, line in lines:
            _, label = F.split_label(line)

            if label == "END OF FILE":
                break

            kind = self._block_start(label)
            if kind is not None:
                ordinal = F.INT6[0].decode(line, line_number)
                if ordinal is None:
                    raise MalformedField(line_number, 0, 6, line[:6], "map index")
                block = self._read_block(kind, ordinal, line_number, lines)

                if kind == TEC:
                    maps.append(self._tec_map(block, maps))
                elif kind == RMS:
                    if block.ordinal in rms_blocks:
                        raise MapSequenceError(
                            f"duplicate RMS map {block.ordinal}", block.ordinal
                        )
                    rms_blocks[block.ordinal] = block
                continue

            if label in _MAP_LABELS:
                logger.debug("Skipping record outside map block", label=label, line=line_number)
                continue

            if line.strip():
                content = line.rstrip("\r\n")
                raise MalformedField(line_number, 0, len(content), content.strip(), "data outside map")

        maps = self._attach_rms(maps, rms_blocks)

        if len(maps) != self.header.number_of_maps:
            raise MapSequenceError(
                f"# OF MAPS IN FILE is {self.header.number_of_maps}, found {len(maps)} TEC maps"
            )

        logger.debug("Parsed IONEX maps", maps=len(maps), rms=len(rms_blocks))
        return maps

    @staticmethod
    def _block_start(label: str) -> Optional[str]:
        for kind in BLOCK_KINDS:
            if label == f"START OF {kind} MAP":
                return kind
        return None

    def _read_block(
        self,
        kind: str,
        ordinal: int,
        line_number: int,
        lines: Iterator[tuple[int, str]],
    ) -> _Block:
        block = _Block(kind, ordinal, line_number)
        if kind != HEIGHT:
            block.samples = np.full(self.grid.shape, F.SENTINEL, dtype=np.int64)

        end_label = f"END OF {kind} MAP"
        for line_number, line in lines:
            _, label = F.split_label(line)

            if kind == HEIGHT:
                if label == end_label:
                    return block
                continue

            if label == end_label:
                self._close_row(block, line_number)
                if block.rows != self._rows_expected:
                    raise GridSizeMismatch(
                        f"{kind} map {ordinal} has {block.rows} rows",
                        expected=self._rows_expected,
                        found=block.rows,
                        line_number=line_number,
                    )
                if block.epoch is None:
                    raise MapSequenceError(f"{kind} map {ordinal} has no EPOCH OF CURRENT MAP", ordinal)
                return block

            if label == "EPOCH OF CURRENT MAP":
                block.epoch = decode_epoch(line, line_number)
            elif label == "EXPONENT":
                block.exponent = F.INT6[0].decode(line, line_number, self.header.exponent)
            elif label == "LAT/LON1/LON2/DLON/H":
                self._close_row(block, line_number)
                self._open_row(block, line, line_number)
            elif label == "COMMENT":
                continue
            elif label in _MAP_LABELS:
                raise MapSequenceError(
                    f"'{label}' inside {kind} map {ordinal} (line {line_number})", ordinal
                )
            elif block.row is not None:
                block.row.extend(F.decode_samples(line, line_number))
                if len(block.row) > self.grid.longitude.size:
                    raise GridSizeMismatch(
                        "too many samples in map row",
                        expected=self.grid.longitude.size,
                        found=len(block.row),
                        line_number=line_number,
                    )
            elif line.strip():
                raise MalformedField(line_number, 0, len(line.rstrip()), line.strip(), "data before row header")

        raise GridSizeMismatch(
            f"input ended inside {kind} map {ordinal}",
            expected=self._rows_expected,
            found=block.rows,
            line_number=block.start_line,
        )

    def _open_row(self, block: _Block, line: str, line_number: int) -> None:
        if block.rows >= self._rows_expected:
            raise GridSizeMismatch(
                f"{block.kind} map {block.ordinal} has more rows than the grid",
                expected=self._rows_expected,
                found=block.rows + 1,
                line_number=line_number,
            )

        # Heights outer, latitudes inner
        ialt, ilat = divmod(block.rows, self.grid.latitude.size)
        values = F.decode_record(F.ROW_HEADER, line, line_number)
        lon = self.grid.longitude
        expected = {
            "latitude": self.grid.latitude.node(ilat),
            "lon1": lon.start,
            "lon2": lon.end,
            "dlon": lon.step,
            "height": self.grid.altitude.node(ialt),
        }
        for name, value in expected.items():
            found = values[name]
            if found is None or not math.isclose(found, value, abs_tol=1e-6):
                raise InvalidGrid(
                    f"line {line_number}: row {name} is {found}, grid expects {value}"
                )

        block.row = []
        block.row_line = line_number

    def _close_row(self, block: _Block, line_number: int) -> None:
        if block.row is None:
            return
        n_lon = self.grid.longitude.size
        if len(block.row) != n_lon:
            raise GridSizeMismatch(
                "wrong number of samples in map row",
                expected=n_lon,
                found=len(block.row),
                line_number=block.row_line,
            )
        ialt, ilat = divmod(block.rows, self.grid.latitude.size)
        block.samples[ialt, ilat, :] = block.row
        block.rows += 1
        block.row = None

    def _tec_map(self, block: _Block, maps: list[TecMap]) -> TecMap:
        if maps:
            previous = maps[-1]
            if block.ordinal != previous.ordinal + 1:
                raise MapSequenceError(
                    f"TEC map {block.ordinal} follows map {previous.ordinal}", block.ordinal
                )
            if block.epoch <= previous.epoch:
                raise MapSequenceError(
                    f"TEC map {block.ordinal} epoch {block.epoch} is not after {previous.epoch}",
                    block.ordinal,
                )

        exponent = self.header.exponent if block.exponent is None else block.exponent
        return TecMap(
            ordinal=block.ordinal,
            epoch=block.epoch,
            exponent=exponent,
            tec=freeze_samples(block.samples),
        )

    def _attach_rms(self, maps: list[TecMap], rms_blocks: dict[int, _Block]) -> list[TecMap]:
        if not rms_blocks:
            return maps

        by_ordinal = {m.ordinal: i for i, m in enumerate(maps)}
        maps = list(maps)
        for ordinal, block in rms_blocks.items():
            if ordinal not in by_ordinal:
                raise MapSequenceError(f"RMS map {ordinal} has no matching TEC map", ordinal)
            i = by_ordinal[ordinal]
            if block.epoch != maps[i].epoch:
                raise MapSequenceError(
                    f"RMS map {ordinal} epoch {block.epoch} differs from TEC epoch {maps[i].epoch}",
                    ordinal,
                )
            exponent = self.header.exponent if block.exponent is None else block.exponent
            maps[i] = maps[i].with_rms(freeze_samples(block.samples), exponent)
        return maps
