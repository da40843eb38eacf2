"""Command line interface: `veda` validates, publishes, searches and maps datasets"""

import json
from pathlib import Path
from typing import Optional

import click
from pydantic import ValidationError

from veda_client import search as cql2
from veda_client.client import VedaClient
from veda_client.config import get_settings
from veda_client.exceptions import VedaClientError
from veda_client.publisher import Publisher
from veda_client.raster import TileParams
from veda_client.schemas import load_dataset
from veda_client.search import SearchRequest


def _echo_json(data) -> None:
    click.echo(json.dumps(data, indent=2, default=str))


def _bbox(value: Optional[str]):
    if not value:
        return None
    try:
        return [float(v) for v in value.split(",")]
    except ValueError:
        raise click.BadParameter("expected xmin,ymin,xmax,ymax")


def _search_request(collection, bbox, datetime, limit=None) -> SearchRequest:
    return SearchRequest(
        filter=cql2.collection_filter(*collection) if collection else None,
        bbox=_bbox(bbox),
        datetime=datetime,
        limit=limit,
    )


def _client() -> VedaClient:
    return VedaClient(get_settings())


class VedaGroup(click.Group):
    """Report client errors as click errors, exit code 1"""

    def invoke(self, ctx):
        try:
            return super().invoke(ctx)
        except (VedaClientError, ValidationError) as e:
            raise click.ClickException(str(e)) from e


@click.group(cls=VedaGroup)
@click.version_option(package_name="veda-client")
def cli():
    """Publish, search and visualize datasets through the VEDA APIs"""


@cli.command("validate")
@click.argument("dataset", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--remote", is_flag=True, help="Also validate with the workflows API")
def validate(dataset: Path, remote: bool):
    """Validate a dataset definition file"""
    model = load_dataset(dataset)
    click.echo(f"{model.collection}: definition is valid")
    if remote:
        with _client() as client:
            _echo_json(client.workflows.validate_dataset(model))


@cli.command("preview")
@click.argument("dataset", type=click.Path(exists=True, dir_okay=False, path_type=Path))
def preview(dataset: Path):
    """Print the STAC collection a dataset definition will create"""
    _echo_json(Publisher().generate_stac(load_dataset(dataset)))


@cli.command("publish")
@click.argument("dataset", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--check-sources", is_flag=True, help="Check s3 access before publishing")
@click.option("--dry-run", is_flag=True, help="Validate with the API without publishing")
def publish(dataset: Path, check_sources: bool, dry_run: bool):
    """Validate then publish a dataset definition"""
    model = load_dataset(dataset)
    with _client() as client:
        if check_sources:
            try:
                client.workflows.check_sources(model)
            except ValueError as e:
                raise click.ClickException(str(e))
        validation = client.workflows.validate_dataset(model)
        if dry_run:
            _echo_json(validation)
            return
        _echo_json(client.workflows.publish_dataset(model))


@cli.command("search")
@click.option("--collection", "-c", multiple=True, help="Collection id")
@click.option("--bbox", help="xmin,ymin,xmax,ymax")
@click.option("--datetime", help="RFC 3339 datetime or interval")
@click.option("--limit", type=int, default=10, show_default=True)
def search(collection, bbox, datetime, limit):
    """Search STAC items"""
    with _client() as client:
        results = client.stac.search(
            _search_request(collection, bbox, datetime, limit)
        )
    click.echo(f"matched: {results.matched}", err=True)
    for feature in results.features:
        click.echo(feature["id"])


@cli.command("features")
@click.argument("collection")
@click.option("--bbox", help="xmin,ymin,xmax,ymax")
@click.option("--datetime", help="RFC 3339 datetime or interval")
@click.option("--limit", type=int, default=10, show_default=True)
def features(collection, bbox, datetime, limit):
    """List features of a vector collection"""
    with _client() as client:
        page = client.features.get_items(
            collection, {"bbox": _bbox(bbox), "datetime": datetime, "limit": limit}
        )
    click.echo(f"matched: {page.get('numberMatched')}", err=True)
    for feature in page.get("features", []):
        click.echo(feature.get("id"))


@cli.command("register")
@click.option("--collection", "-c", multiple=True, required=True)
@click.option("--bbox", help="xmin,ymin,xmax,ymax")
@click.option("--datetime", help="RFC 3339 datetime or interval")
def register(collection, bbox, datetime):
    """Register a mosaic and print its search id and links"""
    with _client() as client:
        mosaic = client.raster.register_mosaic(
            _search_request(collection, bbox, datetime)
        )
    _echo_json(mosaic.model_dump(by_alias=False))


@cli.command("tile-url")
@click.argument("searchid")
@click.option("--assets", "-a", multiple=True, default=["cog_default"], show_default=True)
@click.option("--expression")
@click.option("--rescale", multiple=True, help="min,max")
@click.option("--colormap", "colormap_name")
def tile_url(searchid, assets, expression, rescale, colormap_name):
    """Print the XYZ tile template of a registered mosaic"""
    params = TileParams(
        assets=list(assets),
        expression=expression,
        rescale=list(rescale),
        colormap_name=colormap_name,
    )
    with _client() as client:
        click.echo(client.raster.mosaic_tile_url(searchid, params))


if __name__ == "__main__":
    cli()
