"""
Column planning for extract output formats.

The only place that knows which Overture column types each output format can
hold. Parquet keeps every column as-is. GeoJSON properties must be scalars, so
struct, map and list columns are re-encoded as JSON text and the geometry is
handed to the writer as a GEOMETRY value instead of raw WKB.
"""

import logging
import re
from dataclasses import dataclass
from typing import Sequence

from ..domain.enums import OutputFormat
from ..duck import ColumnDescriptor
from ..errors import InvalidArgument
from ..utils import sql_identifier

logger = logging.getLogger(__name__)

GEOMETRY_COLUMN = "geometry"

# Types GeoJSON properties cannot hold. Add a pattern here to extend the rule.
INCOMPATIBLE_TYPE_PATTERNS = (
    re.compile(r"^STRUCT\s*\(", re.IGNORECASE),     # names, bbox, categories, ...
    re.compile(r"^MAP\s*\(", re.IGNORECASE),        # key/value maps
    re.compile(r"\[\d*\]$"),                        # lists and fixed arrays: sources, websites, ...
    re.compile(r"^(LIST|ARRAY)\b", re.IGNORECASE),
)


@dataclass(frozen=True)
class ColumnPlan:
    """Projection plan consumed verbatim by the extractor."""
    passthrough_columns: tuple[str, ...]
    reencode_as_text_columns: tuple[str, ...]
    exclude_geometry_raw: bool
    geometry_column: str = GEOMETRY_COLUMN
    geometry_expression: str = GEOMETRY_COLUMN

    @property
    def selects_everything(self) -> bool:
        """True when the projection is a plain SELECT *."""
        return not self.reencode_as_text_columns and not self.exclude_geometry_raw

    def projection_sql(self, alias: str = "d") -> str:
        """Render the SELECT list for rows aliased as `alias`."""
        if self.selects_everything:
            return f"{alias}.*"

        parts = [f"{alias}.{sql_identifier(name)}" for name in self.passthrough_columns]
        parts.extend(
            f"CAST(to_json({alias}.{sql_identifier(name)}) AS VARCHAR) AS {sql_identifier(name)}"
            for name in self.reencode_as_text_columns
        )
        if self.exclude_geometry_raw:
            parts.append(f"{self.geometry_expression} AS {sql_identifier(self.geometry_column)}")
        return ",\n            ".join(parts)


def is_text_incompatible(column_type: str) -> bool:
    """True if a column of `column_type` cannot be written as a GeoJSON property."""
    column_type = column_type.strip()
    return any(pattern.search(column_type) for pattern in INCOMPATIBLE_TYPE_PATTERNS)


def geometry_expression(columns: Sequence[ColumnDescriptor], name: str = GEOMETRY_COLUMN,
                        alias: str = "") -> str:
    """
    SQL turning the geometry column into a GEOMETRY value.

    Older Overture releases read as WKB BLOB; spatial-aware readers surface a
    native GEOMETRY column that needs no conversion.

    Raises:
        InvalidArgument: If the dataset has no such column
    """
    column = next((c for c in columns if c.name == name), None)
    if column is None:
        raise InvalidArgument(f"Dataset has no '{name}' column")

    ref = f"{alias}.{sql_identifier(name)}" if alias else sql_identifier(name)
    if column.type.upper().startswith("GEOMETRY"):
        return ref
    return f"ST_GeomFromWKB({ref})"


def plan_columns(columns: Sequence[ColumnDescriptor], output_format: OutputFormat,
                 alias: str = "d") -> ColumnPlan:
    """
    Build the column plan for `output_format`.

    Args:
        columns: Dataset schema from QueryEngine.describe_schema
        output_format: Target output format
        alias: Table alias the extractor uses for the dataset

    Returns:
        ColumnPlan selecting everything (Parquet) or everything with
        incompatible columns re-encoded as JSON text (GeoJSON)
    """
    if not output_format.is_interchange:
        return ColumnPlan(
            passthrough_columns=tuple(c.name for c in columns),
            reencode_as_text_columns=(),
            exclude_geometry_raw=False,
        )

    geom_sql = geometry_expression(columns, GEOMETRY_COLUMN, alias=alias)
    passthrough = []
    reencode = []
    for column in columns:
        if column.name == GEOMETRY_COLUMN:
            continue
        if is_text_incompatible(column.type):
            reencode.append(column.name)
        else:
            passthrough.append(column.name)

    if reencode:
        logger.info(f"Re-encoding as JSON text for {output_format.value}: {', '.join(reencode)}")

    return ColumnPlan(
        passthrough_columns=tuple(passthrough),
        reencode_as_text_columns=tuple(reencode),
        exclude_geometry_raw=True,
        geometry_expression=geom_sql,
    )
