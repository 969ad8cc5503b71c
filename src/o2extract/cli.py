import logging
from datetime import datetime
from typing import Annotated, Optional

import typer
from dotenv import load_dotenv

# Load environment variables BEFORE importing local modules that use them
load_dotenv()

from .config.settings import Config, ConfigurationError
from .errors import ExtractError, NotFound
from .pipeline.run import extract_division, resolve_division
from .utils import setup_logging

app = typer.Typer(help="Overture Maps extracts: resolve a division, then extract a theme inside it")


def _check_division_args(division_id: Optional[str], location: Optional[str]) -> None:
    """Exactly one of --division-id / --location is required."""
    if division_id and location:
        typer.echo("ERROR: Use either --division-id or --location, not both", err=True)
        raise typer.Exit(1)
    if not division_id and not location:
        typer.echo("ERROR: Missing argument: --division-id=<id> or --location=<address>", err=True)
        raise typer.Exit(1)


def _load_config(release: Optional[str]) -> Config:
    try:
        return Config(release=release)
    except ConfigurationError as e:
        typer.echo(f"ERROR loading configuration: {e}", err=True)
        raise typer.Exit(1) from e


def _fail(e: Exception, start_time: datetime) -> None:
    """Log the failure block and exit non-zero."""
    logging.error("=" * 50)
    logging.error("OPERATION FAILED")
    logging.error("=" * 50)
    logging.error(f"Execution time: {datetime.now() - start_time}")
    logging.error(f"Error type: {type(e).__name__}")
    logging.error(f"Error message: {str(e)}")
    typer.echo(f"ERROR: {e}", err=True)
    raise typer.Exit(1) from e


@app.command("extract")
def extract_command(
    output_path: Annotated[str, typer.Argument(help="Output file: .geojson for GeoJSON, anything else for zstd Parquet")],
    theme: Annotated[str, typer.Option("--theme", help="Overture theme, e.g. buildings, places, transportation")],
    type_: Annotated[str, typer.Option("--type", "--layer", help="Overture type within the theme, e.g. building, place, segment")],
    division_id: Annotated[Optional[str], typer.Option("--division-id", "--division_id", help="GERS id of the division")] = None,
    location: Annotated[Optional[str], typer.Option("--location", help="Free-text place, e.g. 'Amsterdam'")] = None,
    release: Annotated[Optional[str], typer.Option("--release", help="Overture release (default: $OVERTURE_RELEASE or latest)")] = None,
    limit: Annotated[Optional[int], typer.Option("--limit", "-l", min=1, help="Feature limit for testing and development")] = None,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Enable detailed logging output")] = False,
    log_to_file: Annotated[bool, typer.Option("--log-to-file", help="Create timestamped log files")] = False,
):
    """
    Extract one Overture theme/type inside a division.

    Examples:
        o2extract extract out.parquet --theme buildings --type building --division-id 0856...
        o2extract extract amsterdam.geojson --theme places --type place --location Amsterdam
    """
    _check_division_args(division_id, location)
    setup_logging(verbose, type_, "extract", log_to_file)
    config = _load_config(release)

    start_time = datetime.now()
    logging.info(f"Creating extract for {theme}/{type_}")
    logging.info(f"Execution timestamp: {start_time}")

    try:
        output = extract_division(
            output_path,
            theme=theme,
            type_=type_,
            division_id=division_id,
            location=location,
            limit=limit,
            config=config,
        )
    except NotFound as e:
        logging.error(f"Division \"{e.query}\" not found")
        typer.echo(f"Division \"{e.query}\" not found", err=True)
        raise typer.Exit(1) from e
    except ExtractError as e:
        _fail(e, start_time)

    logging.info(f"Export operation completed successfully in {datetime.now() - start_time}")
    logging.info(f"Output file: {output}")
    typer.echo(str(output))


@app.command("resolve")
def resolve_command(
    division_id: Annotated[Optional[str], typer.Option("--division-id", "--division_id", help="GERS id of the division")] = None,
    location: Annotated[Optional[str], typer.Option("--location", help="Free-text place, e.g. 'Amsterdam'")] = None,
    release: Annotated[Optional[str], typer.Option("--release", help="Overture release (default: $OVERTURE_RELEASE or latest)")] = None,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Enable detailed logging output")] = False,
):
    """
    Resolve a division and print its id, name, subtype and class.
    """
    _check_division_args(division_id, location)
    setup_logging(verbose)
    config = _load_config(release)

    start_time = datetime.now()
    try:
        division = resolve_division(division_id=division_id, location=location, config=config)
    except NotFound as e:
        typer.echo(f"Division \"{e.query}\" not found", err=True)
        raise typer.Exit(1) from e
    except ExtractError as e:
        _fail(e, start_time)

    typer.echo(f"id: {division.id}")
    typer.echo(f"name: {division.name}")
    typer.echo(f"subtype: {division.subtype}")
    typer.echo(f"class: {division.division_class}")


if __name__ == "__main__":
    app()
