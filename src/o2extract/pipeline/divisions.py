"""
Division Resolver

Turns a GERS id or a free-text location into exactly one Overture division
(theme=divisions/type=division_area) with its boundary as GeoJSON.

Free-text resolution geocodes the text, widens the geocoder's box around its
center, pre-filters divisions on their per-row bbox, keeps those whose
envelope intersects the widened box and takes the one whose display name is
most similar to the geocoder's name, lowest id first on ties. There is no
minimum similarity: a geometrically plausible but poorly named division is
still accepted.
"""

import logging
from typing import Any, Optional

from ..domain.models import DatasetLocator, Division, GeocodeCandidate
from ..duck import QueryEngine
from ..errors import InvalidArgument, NotFound
from ..geometry import BoundingBox, bounding_box_of, scale_box_around_center
from ..utils import fmt_num, sql_string
from .columns import geometry_expression
from .geocode import NominatimGeocoder

logger = logging.getLogger(__name__)

# Geocoder boundaries are often tighter than, or offset from, Overture's division
# polygons. Empirical, so overridable per resolver and via DIVISION_SEARCH_SCALE.
DIVISION_SEARCH_SCALE = 2.0

DIVISIONS_THEME = "divisions"
DIVISIONS_TYPE = "division_area"

# Display name precedence, first non-empty wins: English common name, then primary name.
# Ranking SQL and Python-side display are both derived from this tuple.
DISPLAY_NAME_CHAIN = (
    ("common_en_name", "map_extract(names.common, 'en')[1]"),
    ("primary_name", "names.primary"),
)


def display_name_sql(chain: tuple = DISPLAY_NAME_CHAIN) -> str:
    """COALESCE over the chain, treating empty strings as missing."""
    return "COALESCE(" + ", ".join(f"NULLIF({expr}, '')" for _, expr in chain) + ")"


def ranking_sql(chain: tuple = DISPLAY_NAME_CHAIN) -> str:
    """ORDER BY terms: closest display name to the bound `?` first, ties broken by id."""
    return f"jaro_similarity({display_name_sql(chain)}, ?) DESC, id"


def display_name(row: dict[str, Any], chain: tuple = DISPLAY_NAME_CHAIN) -> Optional[str]:
    """First non-empty name of `row` along the chain, or None."""
    for alias, _ in chain:
        value = row.get(alias)
        if value:
            return value
    return None


class DivisionResolver:
    """
    Resolve divisions by identifier or by free text.

    Both paths are terminal after one lookup and return a single Division or
    raise NotFound carrying the caller's original input.
    """

    def __init__(
        self,
        engine: QueryEngine,
        release: str,
        geocoder: Optional[NominatimGeocoder] = None,
        search_scale: float = DIVISION_SEARCH_SCALE,
        geocode_timeout: Optional[float] = None,
    ):
        """
        Args:
            engine: Query engine for the current invocation
            release: Overture release holding the divisions theme
            geocoder: Geocoding collaborator (only needed for free-text lookups)
            search_scale: Factor applied to the geocoder bbox before searching
            geocode_timeout: Deadline in seconds for the geocoding call
        """
        if search_scale <= 0:
            raise InvalidArgument(f"Search scale must be positive, got {search_scale!r}")

        self.engine = engine
        self.geocoder = geocoder
        self.search_scale = search_scale
        self.geocode_timeout = geocode_timeout
        self.locator = DatasetLocator(version=release, theme=DIVISIONS_THEME, type=DIVISIONS_TYPE)
        self._geometry_sql: Optional[str] = None

    def resolve(self, division_id: Optional[str] = None, location: Optional[str] = None) -> Division:
        """Resolve by exactly one of `division_id` or `location`."""
        if bool(division_id) == bool(location):
            raise InvalidArgument("Provide exactly one of division_id or location")
        if division_id:
            return self.resolve_by_id(division_id)
        return self.resolve_by_query(location)

    def resolve_by_id(self, division_id: str) -> Division:
        """
        Exact-match lookup on the GERS id.

        Raises:
            NotFound: If no division has this id
            EngineError: If the query fails
        """
        logger.info(f"Looking up division by id: {division_id}")
        sql = f"""
        SELECT {self._select_list()}
        FROM read_parquet({sql_string(self._url())}, hive_partitioning=1)
        WHERE id = ?
        LIMIT 1
        """
        rows = self.engine.run_query(sql, [division_id])
        if not rows:
            raise NotFound(division_id)
        return self._to_division(rows[0])

    def resolve_by_query(self, text: str) -> Division:
        """
        Geocode `text` and pick the best-named division near the result.

        Raises:
            NotFound: If the geocoder or the division search finds nothing
            GeocodeTimeout, GeocodeUnavailable: If the geocoder fails
            EngineError: If the query fails
        """
        if self.geocoder is None:
            raise InvalidArgument("A geocoder is required to resolve divisions by location")

        candidates = self.geocoder.search(text, timeout=self.geocode_timeout)
        if not candidates:
            raise NotFound(text)

        candidate = candidates[0]
        logger.info(f"Geocoded '{text}' to '{candidate.display_name or candidate.name}'")

        search_box = self.search_box(candidate)
        logger.info(
            f"Searching divisions in bbox ({fmt_num(search_box.xmin)}, {fmt_num(search_box.ymin)}, "
            f"{fmt_num(search_box.xmax)}, {fmt_num(search_box.ymax)}), scale {self.search_scale:g}"
        )

        xmin, ymin, xmax, ymax = (fmt_num(v) for v in search_box.as_tuple())
        sql = f"""
        SELECT {self._select_list()}
        FROM read_parquet({sql_string(self._url())}, hive_partitioning=1)
        WHERE bbox.xmin BETWEEN {xmin} AND {xmax}
          AND bbox.ymin BETWEEN {ymin} AND {ymax}
          AND ST_Intersects(
                ST_Envelope({self._geometry()}),
                ST_MakeEnvelope({xmin}, {ymin}, {xmax}, {ymax})
          )
        ORDER BY {ranking_sql()}
        LIMIT 1
        """
        rows = self.engine.run_query(sql, [candidate.name])
        if not rows:
            raise NotFound(text)
        return self._to_division(rows[0])

    def search_box(self, candidate: GeocodeCandidate) -> BoundingBox:
        """Widened bbox of the candidate's geometry (or its provider box for point results)."""
        bbox = bounding_box_of(candidate.geometry_geojson)
        if bbox.is_degenerate and candidate.bounding_box is not None:
            logger.debug("Geocoder geometry has no area; using provider bounding box")
            bbox = candidate.bounding_box
        return scale_box_around_center(bbox, self.search_scale)

    def _url(self) -> str:
        return self.engine.dataset_url(self.locator)

    def _geometry(self) -> str:
        """Geometry expression for the divisions schema, described once per resolver."""
        if self._geometry_sql is None:
            columns = self.engine.describe_schema(self._url())
            self._geometry_sql = geometry_expression(columns)
        return self._geometry_sql

    def _select_list(self) -> str:
        name_columns = ", ".join(f"{expr} AS {alias}" for alias, expr in DISPLAY_NAME_CHAIN)
        return (
            f"id, {name_columns}, subtype, \"class\", "
            f"ST_AsGeoJSON({self._geometry()}) AS geometry_geojson"
        )

    def _to_division(self, row: dict[str, Any]) -> Division:
        name = display_name(row) or row["id"]
        division = Division(
            id=row["id"],
            name=name,
            geometry_geojson=row["geometry_geojson"],
            subtype=row.get("subtype"),
            division_class=row.get("class"),
            primary_name=row.get("primary_name"),
            common_en_name=row.get("common_en_name"),
        ).validate_boundary()
        logger.info(f"Found division: {division.name} ({division.subtype}, id {division.id})")
        return division
