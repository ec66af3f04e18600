"""Command-line interface for the geodamage pipeline."""

import json
import logging
import sys
from dataclasses import replace
from pathlib import Path

import click
import structlog

from geodamage.aoi import AreaOfInterest, DateRange
from geodamage.assessment import DamageAssessment
from geodamage.config import get_config, reload_config
from geodamage.regions import Region, get_region, load_regions

# Configure structlog for CLI output
logging.basicConfig(format="%(message)s", level=logging.INFO)

structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.dev.ConsoleRenderer(colors=True),
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
)

logger = structlog.get_logger()

ENGINES = ["earthengine", "local"]


def _resolve_region(
    region_id: str | None,
    aoi_file: Path | None,
    pre: str | None,
    post: str | None,
) -> Region:
    """Build the region to process from a configured id or an AOI file."""
    if region_id and aoi_file:
        raise ValueError("Use either --region or --aoi-file, not both")

    if region_id:
        region = get_region(region_id, get_config().regions_file)
        if pre:
            region = replace(region, pre=DateRange.parse(pre))
        if post:
            region = replace(region, post=DateRange.parse(post))
        return region

    if aoi_file:
        if not (pre and post):
            raise ValueError("--pre and --post are required with --aoi-file")
        aoi = AreaOfInterest.from_geojson(aoi_file)
        return Region(
            region_id=aoi.name,
            name=aoi.name,
            aoi=aoi,
            pre=DateRange.parse(pre),
            post=DateRange.parse(post),
        )

    raise ValueError("Either --region or --aoi-file is required")


def _print_summary(assessment: DamageAssessment) -> None:
    click.echo(f"\nRegion: {assessment.region_id} ({assessment.engine})")
    click.echo(f"  Pre-event:  {assessment.pre}")
    click.echo(f"  Post-event: {assessment.post}")

    for period, scene_ids in assessment.scenes.items():
        click.echo(f"  {period.capitalize()} scenes: {len(scene_ids)}")

    for metric, stats in assessment.stats.items():
        if stats.valid_pixels:
            click.echo(
                f"  {metric.value.capitalize()} difference: "
                f"mean={stats.mean:.4f} max={stats.max:.4f} ({stats.valid_pixels} pixels)"
            )
        else:
            click.echo(f"  {metric.value.capitalize()} difference: no valid pixels")

    if assessment.building_count is not None:
        click.echo(f"Number of building footprints in the AOI: {assessment.building_count}")

    for name, path in assessment.outputs.items():
        click.echo(f"  {name}: {path}")


@click.group()
@click.option("--config-dir", type=click.Path(exists=True, path_type=Path), help="Configuration directory")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output")
@click.pass_context
def cli(ctx: click.Context, config_dir: Path | None, verbose: bool) -> None:
    """Sentinel-2 texture change damage assessment."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose

    if config_dir:
        reload_config(config_dir)

    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)
        click.echo("Configuration loaded")


@cli.command()
def regions() -> None:
    """List configured regions."""
    try:
        configured = load_regions(get_config().regions_file)
        if not configured:
            click.echo("No regions configured")
            return

        click.echo(f"{len(configured)} regions:")
        for region in configured.values():
            area_km2 = region.aoi.area_m2 / 1e6
            click.echo(
                f"  {region.region_id}: {region.name} | pre {region.pre} | post {region.post} | "
                f"{area_km2:.2f} km²"
            )

    except Exception as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


@cli.command()
@click.option("--region", "region_id", required=True, help="Region ID")
@click.option("--period", type=click.Choice(["pre", "post", "both"]), default="both", help="Period to search")
@click.option("--max-cloud", type=float, help="Maximum cloud cover percentage")
@click.option("--limit", type=int, default=20, help="Maximum number of results per period")
@click.option("--output", "-o", type=click.Path(path_type=Path), help="Output JSON file")
def search(region_id: str, period: str, max_cloud: float | None, limit: int, output: Path | None) -> None:
    """Search for available Sentinel-2 imagery in the STAC catalog."""
    try:
        from geodamage.stac.search import search_scenes

        region = get_region(region_id, get_config().regions_file)
        click.echo(f"AOI bounding box: {region.aoi.bbox}")

        periods = {"pre": region.pre, "post": region.post}
        if period != "both":
            periods = {period: periods[period]}

        output_data = {}
        for name, date_range in periods.items():
            scenes = search_scenes(
                bbox=region.aoi.bbox,
                period=date_range,
                max_cloud_cover=max_cloud,
                max_items=limit,
            )

            click.echo(f"\n{name.capitalize()}-event ({date_range}): found {len(scenes)} scenes")
            for scene in scenes:
                click.echo(
                    f"  {scene.scene_id} | {scene.datetime.strftime('%Y-%m-%d')} | {scene.cloud_cover:.1f}% cloud"
                )

            output_data[name] = [
                {
                    "scene_id": s.scene_id,
                    "datetime": s.datetime.isoformat(),
                    "cloud_cover": s.cloud_cover,
                    "bbox": list(s.bbox),
                }
                for s in scenes
            ]

        # Save to file if requested
        if output:
            with open(output, "w") as f:
                json.dump(output_data, f, indent=2)
            click.echo(f"\nResults saved to: {output}")

    except Exception as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


@cli.command()
@click.option("--region", "region_id", help="Region ID")
@click.option("--aoi-file", type=click.Path(exists=True, path_type=Path), help="GeoJSON file with the AOI polygon")
@click.option("--pre", help="Pre-event date range (YYYY-MM-DD/YYYY-MM-DD, end exclusive)")
@click.option("--post", help="Post-event date range (YYYY-MM-DD/YYYY-MM-DD, end exclusive)")
@click.option("--engine", type=click.Choice(ENGINES), help="Execution engine (default from config)")
@click.option("--output-dir", "-o", type=click.Path(path_type=Path), help="Output directory")
@click.option("--buildings-file", type=click.Path(exists=True, path_type=Path),
              help="Building footprints vector file (local engine)")
@click.option("--no-buildings", is_flag=True, help="Skip the building footprint overlay")
@click.option("--stats/--no-stats", default=True, help="Compute difference statistics in the AOI")
@click.option("--json-output", type=click.Path(path_type=Path), help="Write the assessment report as JSON")
def assess(
    region_id: str | None,
    aoi_file: Path | None,
    pre: str | None,
    post: str | None,
    engine: str | None,
    output_dir: Path | None,
    buildings_file: Path | None,
    no_buildings: bool,
    stats: bool,
    json_output: Path | None,
) -> None:
    """Compare pre- and post-event texture to highlight possible damage."""
    try:
        config = get_config()
        region = _resolve_region(region_id, aoi_file, pre, post)
        engine = engine or config.engine
        output_dir = (output_dir or config.output_dir) / region.region_id
        include_buildings = region.buildings and not no_buildings

        click.echo(f"Assessing {region.name} with the {engine} engine")

        if engine == "earthengine":
            from geodamage.earthengine.pipeline import assess_with_earthengine

            assessment = assess_with_earthengine(
                region,
                output_dir,
                config=config,
                include_buildings=include_buildings,
                compute_stats=stats,
            )
        elif engine == "local":
            from geodamage.raster.pipeline import assess_locally

            assessment = assess_locally(
                region,
                output_dir,
                config=config,
                buildings_file=buildings_file,
                include_buildings=include_buildings,
            )
            if not stats:
                assessment.stats.clear()
        else:
            raise ValueError(f"Unknown engine '{engine}' (expected one of: {', '.join(ENGINES)})")

        _print_summary(assessment)

        if json_output:
            json_output.parent.mkdir(parents=True, exist_ok=True)
            with open(json_output, "w") as f:
                json.dump(assessment.to_dict(), f, indent=2)
            click.echo(f"\nReport saved to: {json_output}")

    except Exception as e:
        logger.exception("Assessment failed")
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


@cli.command()
@click.option("--region", "region_id", help="Region ID")
@click.option("--aoi-file", type=click.Path(exists=True, path_type=Path), help="GeoJSON file with the AOI polygon")
@click.option("--engine", type=click.Choice(ENGINES), help="Execution engine (default from config)")
@click.option("--buildings-file", type=click.Path(exists=True, path_type=Path),
              help="Building footprints vector file (local engine)")
def buildings(region_id: str | None, aoi_file: Path | None, engine: str | None, buildings_file: Path | None) -> None:
    """Count building footprints in an AOI."""
    try:
        config = get_config()
        if region_id and aoi_file:
            raise ValueError("Use either --region or --aoi-file, not both")
        if region_id:
            aoi = get_region(region_id, config.regions_file).aoi
        elif aoi_file:
            aoi = AreaOfInterest.from_geojson(aoi_file)
        else:
            raise ValueError("Either --region or --aoi-file is required")

        engine = engine or config.engine
        if engine == "earthengine":
            from geodamage.earthengine.pipeline import count_buildings_with_earthengine

            count = count_buildings_with_earthengine(aoi, config)
        elif engine == "local":
            from geodamage.footprints import count_building_footprints

            if buildings_file is None:
                raise ValueError("--buildings-file is required with the local engine")
            aoi.check_size(config.aoi.max_area_km2)
            count = count_building_footprints(buildings_file, aoi)
        else:
            raise ValueError(f"Unknown engine '{engine}' (expected one of: {', '.join(ENGINES)})")

        click.echo(f"Number of building footprints in the AOI: {count}")

    except Exception as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


if __name__ == "__main__":
    cli()
