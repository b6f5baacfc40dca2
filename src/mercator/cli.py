"""Command line front end for the projection engine.

Usage:
    mercator px -- -179 85 9
    mercator --antimeridian px 250 3 4
    mercator bbox 0 0 1 --tms --srs 900913
    mercator xyz -180 -85.05112877980659 180 85.0511287798066 0 --tms
    mercator convert -240 -90 240 90 --to 900913

Each command prints one JSON object on stdout.
"""

from __future__ import annotations

import json
import logging
from dataclasses import asdict
from pathlib import Path

import click

from mercator.config import MercatorConfig, load_config
from mercator.projection import SphericalMercator
from mercator.types import SRS, GeoBBox, GeoPoint, PixelPoint

logger = logging.getLogger(__name__)

# Negative coordinates look like short options to click.
COORD_ARGS = {"ignore_unknown_options": True}
SRS_CHOICE = click.Choice([s.value for s in SRS])


def _emit(value) -> None:
    click.echo(json.dumps(asdict(value)))


def _engine(ctx: click.Context) -> SphericalMercator:
    return ctx.obj["engine"]


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.option("--config", "config_path", type=click.Path(dir_okay=False, path_type=Path),
              default=None, help="JSON config file")
@click.option("--tile-size", type=int, default=None, help="Pixels per tile edge (overrides config)")
@click.option("--antimeridian", is_flag=True, help="Allow x beyond one world width")
@click.pass_context
def cli(ctx: click.Context, verbose: bool, config_path: Path | None,
        tile_size: int | None, antimeridian: bool):
    """Spherical Mercator projection math for web map tiles."""
    overrides = {}
    if tile_size is not None:
        overrides["tile_size"] = tile_size
    if antimeridian:
        overrides["antimeridian"] = True

    # pydantic's ValidationError is a ValueError
    try:
        config = load_config(config_path)
        if overrides:
            config = MercatorConfig.model_validate({**config.model_dump(), **overrides})
    except ValueError as err:
        raise click.ClickException(f"Invalid configuration: {err}") from err

    logging.basicConfig(
        level=logging.DEBUG if verbose else getattr(logging, config.log_level),
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )
    logger.debug("Config: %s", config.model_dump())

    ctx.obj = {"engine": SphericalMercator.from_config(config)}


@cli.command(context_settings=COORD_ARGS)
@click.argument("lon", type=float)
@click.argument("lat", type=float)
@click.argument("zoom", type=float)
@click.pass_context
def px(ctx: click.Context, lon: float, lat: float, zoom: float):
    """Lon/lat to pixel coordinates at ZOOM."""
    try:
        _emit(_engine(ctx).px(GeoPoint(lon=lon, lat=lat), zoom))
    except ValueError as err:
        raise click.ClickException(str(err)) from err


@cli.command(context_settings=COORD_ARGS)
@click.argument("x", type=float)
@click.argument("y", type=float)
@click.argument("zoom", type=float)
@click.pass_context
def ll(ctx: click.Context, x: float, y: float, zoom: float):
    """Pixel coordinates at ZOOM to lon/lat."""
    try:
        _emit(_engine(ctx).ll(PixelPoint(x=x, y=y), zoom))
    except ValueError as err:
        raise click.ClickException(str(err)) from err


@cli.command(context_settings=COORD_ARGS)
@click.argument("lon", type=float)
@click.argument("lat", type=float)
@click.pass_context
def forward(ctx: click.Context, lon: float, lat: float):
    """Lon/lat to Web Mercator meters."""
    _emit(_engine(ctx).forward(GeoPoint(lon=lon, lat=lat)))


@cli.command(context_settings=COORD_ARGS)
@click.argument("x", type=float)
@click.argument("y", type=float)
@click.pass_context
def inverse(ctx: click.Context, x: float, y: float):
    """Web Mercator meters to lon/lat."""
    _emit(_engine(ctx).inverse(PixelPoint(x=x, y=y)))


@cli.command()
@click.argument("x", type=click.IntRange(min=0))
@click.argument("y", type=click.IntRange(min=0))
@click.argument("zoom", type=click.IntRange(min=0))
@click.option("--tms", is_flag=True, help="Tile y counts from the south")
@click.option("--srs", type=SRS_CHOICE, default=SRS.WGS84.value, help="Output SRS")
@click.pass_context
def bbox(ctx: click.Context, x: int, y: int, zoom: int, tms: bool, srs: str):
    """Bounding box of tile X Y at ZOOM."""
    try:
        _emit(_engine(ctx).bbox(x, y, zoom, tms_style=tms, srs=srs))
    except (ValueError, OverflowError) as err:
        raise click.ClickException(str(err)) from err


@cli.command(context_settings=COORD_ARGS)
@click.argument("w", type=float)
@click.argument("s", type=float)
@click.argument("e", type=float)
@click.argument("n", type=float)
@click.argument("zoom", type=click.IntRange(min=0))
@click.option("--tms", is_flag=True, help="Tile y counts from the south")
@click.option("--srs", type=SRS_CHOICE, default=SRS.WGS84.value, help="Input SRS")
@click.pass_context
def xyz(ctx: click.Context, w: float, s: float, e: float, n: float, zoom: int, tms: bool, srs: str):
    """Tile range covering the box W S E N at ZOOM."""
    try:
        _emit(_engine(ctx).xyz(GeoBBox(w=w, s=s, e=e, n=n), zoom, tms_style=tms, srs=srs))
    except (ValueError, OverflowError) as err:
        raise click.ClickException(str(err)) from err


@cli.command(context_settings=COORD_ARGS)
@click.argument("w", type=float)
@click.argument("s", type=float)
@click.argument("e", type=float)
@click.argument("n", type=float)
@click.option("--to", "target", type=SRS_CHOICE, default=SRS.WEB_MERCATOR.value, help="Target SRS")
@click.pass_context
def convert(ctx: click.Context, w: float, s: float, e: float, n: float, target: str):
    """Reproject the box W S E N."""
    _emit(_engine(ctx).convert(GeoBBox(w=w, s=s, e=e, n=n), target))


if __name__ == "__main__":
    cli()
