"""
Library entry points: resolve a division, then extract one theme/type inside it.

Each call owns exactly one QueryEngine and one geocoder, both closed on success
and failure alike. The geocoder only connects when a location is resolved.
"""

import logging
from pathlib import Path
from typing import Optional, Union

from ..config.release import resolve_release
from ..config.settings import Config
from ..domain.models import DatasetLocator, Division, ExtractRequest
from ..duck import QueryEngine
from .divisions import DivisionResolver
from .export import Extractor
from .geocode import NominatimGeocoder

logger = logging.getLogger(__name__)


def _engine_for(config: Config) -> QueryEngine:
    return QueryEngine(
        processing=config.processing,
        base_url=config.overture.base_url,
        s3_region=config.overture.s3_region,
    )


def _resolver_for(config: Config, engine: QueryEngine, geocoder: NominatimGeocoder,
                  release: str) -> DivisionResolver:
    return DivisionResolver(
        engine,
        release=release,
        geocoder=geocoder,
        search_scale=config.geocoder.search_scale,
        geocode_timeout=config.geocoder.timeout,
    )


def resolve_division(
    division_id: Optional[str] = None,
    location: Optional[str] = None,
    config: Optional[Config] = None,
) -> Division:
    """Resolve one division by GERS id or free-text location."""
    config = config or Config()
    release = resolve_release(config.overture)
    logger.info(f"Using Overture release: {release}")

    with _engine_for(config) as engine, NominatimGeocoder(config.geocoder) as geocoder:
        return _resolver_for(config, engine, geocoder, release).resolve(division_id, location)


def extract_division(
    output_path: Union[str, Path],
    theme: str,
    type_: str,
    division_id: Optional[str] = None,
    location: Optional[str] = None,
    limit: Optional[int] = None,
    config: Optional[Config] = None,
) -> Path:
    """
    Resolve a division and write the rows of `theme`/`type_` intersecting it.

    Args:
        output_path: `.geojson` for GeoJSON output, anything else for zstd Parquet
        theme: Overture theme (buildings, places, transportation, ...)
        type_: Overture type within the theme (building, place, segment, ...)
        division_id: GERS id of the division (exclusive with `location`)
        location: Free-text place (exclusive with `division_id`)
        limit: Optional row limit for development runs
        config: Configuration (loaded from the environment when omitted)

    Returns:
        Path of the written file

    Raises:
        InvalidArgument: If not exactly one of division_id/location is given
        NotFound: If the division cannot be resolved
        GeocodeTimeout, GeocodeUnavailable: If geocoding fails
        EngineError: If a query fails
    """
    config = config or Config()
    release = resolve_release(config.overture)
    logger.info(f"Using Overture release: {release}")
    logger.info(f"Target theme: {theme}, type: {type_}")

    with _engine_for(config) as engine, NominatimGeocoder(config.geocoder) as geocoder:
        division = _resolver_for(config, engine, geocoder, release).resolve(division_id, location)

        request = ExtractRequest(
            division=division,
            locator=DatasetLocator(version=release, theme=theme, type=type_),
            output_path=Path(output_path),
            limit=limit,
        )
        return Extractor(engine).run(request)
