"""
Command-line interface for pyionex.

Thin driver over parse, interpolate, merge and format:

    pyionex info CODG0020.22I.gz
    pyionex query CODG0020.22I.gz --lat 45.0 --lon 7.5 --epoch 2022-01-02T12:30:00
    pyionex convert CODG0020.22I.gz out.22I --exponent -2
    pyionex merge CODG0020.22I.gz CODG0030.22I.gz -o CODG0020.22I
"""

from __future__ import annotations

import json
import sys
from datetime import datetime
from pathlib import Path

import click

from pyionex import __version__
from pyionex.core.config import Settings, load_settings
from pyionex.core.exceptions import PyIonexError
from pyionex.ionex import IONEX, IonexFormatter, TecInterpolator
from pyionex.utils.compression import open_text
from pyionex.utils.logging import configure_logging


@click.group()
@click.version_option(version=__version__, prog_name="pyionex")
@click.option(
    "--config", "-c",
    type=click.Path(exists=True, path_type=Path),
    help="Path to configuration file",
)
@click.option(
    "--verbose", "-v",
    is_flag=True,
    help="Enable verbose output",
)
@click.option(
    "--debug",
    is_flag=True,
    help="Enable debug mode",
)
@click.pass_context
def cli(ctx: click.Context, config: Path | None, verbose: bool, debug: bool) -> None:
    """pyionex: IONEX ionosphere map tools

    Inspect, query and rewrite IONEX Total Electron Content maps.
    """
    ctx.ensure_object(dict)
    settings = load_settings(config)
    ctx.obj["settings"] = settings
    ctx.obj["verbose"] = verbose

    level = None
    if verbose:
        level = "INFO"
    if debug:
        level = "DEBUG"
    configure_logging(settings.logging, level)


def _load(path: Path) -> IONEX:
    try:
        return IONEX.from_file(path)
    except PyIonexError as e:
        click.echo(f"Error: {path}: {e}", err=True)
        sys.exit(1)


@cli.command()
@click.argument("ionex_file", type=click.Path(exists=True, path_type=Path))
@click.option(
    "--agency", "-a",
    type=str,
    help="3-letter agency code used to derive the standard file name",
)
@click.option(
    "--format", "-f",
    type=click.Choice(["table", "json"]),
    default="table",
    help="Output format",
)
def info(ionex_file: Path, agency: str | None, format: str) -> None:
    """Show header and map summary of an IONEX file.

    Examples:

        pyionex info CODG0020.22I.gz

        pyionex info CODG0020.22I.gz -f json
    """
    ionex = _load(ionex_file)
    header = ionex.header
    grid = ionex.grid

    data = {
        "file": str(ionex_file),
        "version": str(header.version),
        "system": header.system,
        "program": header.program,
        "run_by": header.run_by,
        "maps": ionex.map_count(),
        "first_epoch": ionex.epoch_at(0).isoformat() if len(ionex) else None,
        "last_epoch": ionex.epoch_at(-1).isoformat() if len(ionex) else None,
        "interval": header.interval,
        "dimension": 3 if ionex.is_3d() else 2,
        "latitude": str(grid.latitude),
        "longitude": str(grid.longitude),
        "altitude": str(grid.altitude),
        "shape": list(grid.shape),
        "worldwide": ionex.is_worldwide(),
        "bounding_box": list(ionex.bounding_box()),
        "exponent": header.exponent,
        "mapping_function": header.mapping_function.value,
        "rms": ionex.has_rms(),
    }
    if agency:
        try:
            data["standard_name"] = ionex.standardized_filename(agency)
        except ValueError as e:
            raise click.BadParameter(str(e), param_hint="--agency")

    if format == "json":
        click.echo(json.dumps(data, indent=2))
        return

    for key, value in data.items():
        click.echo(f"{key:<18} {value}")


@cli.command()
@click.argument("ionex_file", type=click.Path(exists=True, path_type=Path))
@click.option("--lat", "latitude", type=float, required=True, help="Latitude (degrees)")
@click.option("--lon", "longitude", type=float, required=True, help="Longitude (degrees)")
@click.option(
    "--epoch", "-e",
    type=click.DateTime(formats=["%Y-%m-%dT%H:%M:%S", "%Y-%m-%d %H:%M:%S", "%Y-%m-%d"]),
    required=True,
    help="Epoch (UTC)",
)
@click.option("--alt", "altitude", type=float, default=None, help="Altitude layer (km), 3D files")
def query(
    ionex_file: Path,
    latitude: float,
    longitude: float,
    epoch: datetime,
    altitude: float | None,
) -> None:
    """Interpolate TEC (and RMS) at a position and time.

    Examples:

        pyionex query CODG0020.22I.gz --lat 45.0 --lon 7.5 -e 2022-01-02T12:30:00
    """
    ionex = _load(ionex_file)
    interpolator = TecInterpolator(ionex)

    try:
        estimate = interpolator.estimate(latitude, longitude, epoch, altitude)
    except PyIonexError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    def show(value: float | None) -> str:
        return "no data" if value is None else f"{value:.3f}"

    click.echo(f"TEC  {show(estimate.tecu)} TECU")
    if ionex.has_rms():
        click.echo(f"RMS  {show(estimate.rms)} TECU")


@cli.command()
@click.argument("input_file", type=click.Path(exists=True, path_type=Path))
@click.argument("output_file", type=click.Path(path_type=Path))
@click.option(
    "--exponent",
    type=click.IntRange(-9, 9),
    default=None,
    help="Re-quantize every map to this exponent",
)
@click.pass_context
def convert(
    ctx: click.Context,
    input_file: Path,
    output_file: Path,
    exponent: int | None,
) -> None:
    """Rewrite an IONEX file (gzip by .gz suffix), optionally re-scaled.

    Examples:

        # Decompress and normalize layout
        pyionex convert CODG0020.22I.gz CODG0020.22I

        # Store with 0.01 TECU resolution
        pyionex convert CODG0020.22I.gz out.22I --exponent -2
    """
    settings: Settings = ctx.obj["settings"]
    ionex = _load(input_file)

    formatter = IonexFormatter(
        exponent=exponent if exponent is not None else settings.formatting.exponent,
        program=settings.formatting.program,
        run_by=settings.formatting.run_by,
    )
    try:
        text = formatter.format(ionex)
    except PyIonexError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    with open_text(output_file, "w") as stream:
        stream.write(text)

    click.echo(f"Wrote {ionex.map_count()} maps to {output_file}")


@cli.command()
@click.argument("input_files", nargs=-1, required=True, type=click.Path(exists=True, path_type=Path))
@click.option(
    "--output", "-o", "output_file",
    type=click.Path(path_type=Path),
    required=True,
    help="Merged IONEX file (gzip by .gz suffix)",
)
def merge(input_files: tuple[Path, ...], output_file: Path) -> None:
    """Merge IONEX files sharing one grid into a single file.

    Maps are written in chronological order; for a repeated epoch the
    first file listed wins.

    Examples:

        pyionex merge CODG0020.22I.gz CODG0030.22I.gz -o CODG0020.22I
    """
    merged = _load(input_files[0])
    for path in input_files[1:]:
        try:
            merged = merged.merge(_load(path))
        except PyIonexError as e:
            click.echo(f"Error: {path}: {e}", err=True)
            sys.exit(1)

    merged.to_file(output_file)
    click.echo(f"Merged {len(input_files)} files ({merged.map_count()} maps) into {output_file}")


def main() -> None:
    """Main entry point."""
    cli(obj={})


if __name__ == "__main__":
    main()
