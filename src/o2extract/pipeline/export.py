"""
Extractor - Bounded Spatial Extract

Writes the rows of one Overture theme/type that intersect a division boundary
straight from DuckDB to GeoJSON (GDAL) or zstd Parquet. The per-row bbox
struct prunes row groups cheaply before the exact ST_Intersects test against
the division polygon.
"""

import logging
from pathlib import Path
from typing import Optional, Union

from ..domain.enums import OutputFormat
from ..domain.models import DatasetLocator, Division, ExtractRequest
from ..duck import QueryEngine
from ..errors import InvalidArgument
from ..geometry import BoundingBox, bounding_box_of
from ..utils import fmt_num, sql_string, timer
from .columns import ColumnPlan, geometry_expression, plan_columns

logger = logging.getLogger(__name__)

DATA_ALIAS = "d"


def copy_options(output_format: OutputFormat, compression: str = "zstd") -> str:
    """COPY option list for an output format."""
    if output_format is OutputFormat.GEOJSON:
        return "FORMAT GDAL, DRIVER 'GeoJSON'"
    return f"FORMAT PARQUET, COMPRESSION '{compression.upper()}'"


def bbox_overlap_clause(bbox: BoundingBox, alias: str = DATA_ALIAS) -> str:
    """Cheap prune on the dataset's per-row bbox struct: keep rows whose extent overlaps `bbox`."""
    return (
        f"{alias}.bbox.xmin <= {fmt_num(bbox.xmax)}\n"
        f"          AND {alias}.bbox.xmax >= {fmt_num(bbox.xmin)}\n"
        f"          AND {alias}.bbox.ymin <= {fmt_num(bbox.ymax)}\n"
        f"          AND {alias}.bbox.ymax >= {fmt_num(bbox.ymin)}"
    )


class Extractor:
    """
    Bounded spatial extract for a resolved division.

    One combined statement per extract; the projection comes from the column
    planner so format rules never leak into this class.
    """

    def __init__(self, engine: QueryEngine, compression: Optional[str] = None):
        """
        Args:
            engine: Query engine for the current invocation
            compression: Parquet codec (defaults to the engine's configured codec)
        """
        self.engine = engine
        self.compression = compression or engine.processing.compression

    def build_query(self, division: Division, url: str, plan: ColumnPlan, geometry_sql: str,
                    limit: Optional[int] = None) -> str:
        """Build the bounded SELECT for `division` over the parquet glob `url`."""
        bbox = bounding_box_of(division.boundary)
        sql = f"""
        SELECT {plan.projection_sql(DATA_ALIAS)}
        FROM read_parquet({sql_string(url)}, hive_partitioning=1) {DATA_ALIAS}
        WHERE {bbox_overlap_clause(bbox)}
          AND ST_Intersects({geometry_sql}, ST_GeomFromGeoJSON({sql_string(division.geometry_geojson)}))
        """
        if limit:
            sql += f" LIMIT {int(limit)}"
        return sql

    @timer
    def extract(self, division: Division, locator: DatasetLocator,
                output_path: Union[str, Path], limit: Optional[int] = None) -> Path:
        """
        Extract rows of `locator` intersecting `division` into `output_path`.

        Args:
            division: Resolved division; its boundary is the authoritative predicate
            locator: Release/theme/type to read
            output_path: `.geojson` for GeoJSON, anything else for zstd Parquet
            limit: Optional row limit for development runs

        Returns:
            The output path

        Raises:
            InvalidArgument: If `limit` is not positive
            InvalidGeometry: If the division boundary is empty
            EngineError: If the schema lookup or the extract fails
        """
        if limit is not None and limit < 1:
            raise InvalidArgument(f"Limit must be positive, got {limit}")

        output_path = Path(output_path)
        output_format = OutputFormat.from_path(output_path)

        url = self.engine.dataset_url(locator)
        logger.info(f"Data URL: {url}")

        columns = self.engine.describe_schema(url)
        plan = plan_columns(columns, output_format, alias=DATA_ALIAS)
        geometry_sql = geometry_expression(columns, alias=DATA_ALIAS)

        sql = self.build_query(division, url, plan, geometry_sql, limit)
        logger.info(
            f"Extracting {locator.theme}/{locator.type} for {division.name} "
            f"to {output_path} ({output_format.value})"
        )

        self.engine.copy_to(sql, output_path, copy_options(output_format, self.compression))
        return output_path

    def run(self, request: ExtractRequest) -> Path:
        """Execute an ExtractRequest."""
        return self.extract(request.division, request.locator, request.output_path, request.limit)
