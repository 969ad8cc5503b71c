import json

import pytest

from o2extract.config.settings import ProcessingConfig
from o2extract.domain.models import DatasetLocator, Division, GeocodeCandidate
from o2extract.duck import ColumnDescriptor, QueryEngine

SQUARE = {
    "type": "Polygon",
    "coordinates": [[[4.0, 52.0], [5.0, 52.0], [5.0, 53.0], [4.0, 53.0], [4.0, 52.0]]],
}

BUILDINGS_SCHEMA = [
    ColumnDescriptor("id", "VARCHAR"),
    ColumnDescriptor("geometry", "BLOB"),
    ColumnDescriptor("bbox", "STRUCT(xmin FLOAT, xmax FLOAT, ymin FLOAT, ymax FLOAT)"),
    ColumnDescriptor("names", "STRUCT(\"primary\" VARCHAR, common MAP(VARCHAR, VARCHAR))"),
    ColumnDescriptor("height", "DOUBLE"),
    ColumnDescriptor("sources", "STRUCT(property VARCHAR, dataset VARCHAR)[]"),
    ColumnDescriptor("theme", "VARCHAR"),
    ColumnDescriptor("type", "VARCHAR"),
]


class FakeEngine:
    """Records every statement; answers run_query from a canned row list."""

    def __init__(self, rows=None, schema=None, copy_error=None):
        self.rows = rows if rows is not None else []
        self.schema = schema if schema is not None else BUILDINGS_SCHEMA
        self.copy_error = copy_error
        self.processing = ProcessingConfig(extensions=())
        self.queries = []
        self.described = []
        self.copies = []

    def dataset_url(self, locator: DatasetLocator) -> str:
        return locator.parquet_url("s3://bucket/release")

    def describe_schema(self, url):
        self.described.append(url)
        return self.schema

    def run_query(self, statement, parameters=None):
        self.queries.append((statement, parameters))
        return list(self.rows)

    def copy_to(self, select_sql, output_path, options):
        self.copies.append((select_sql, output_path, options))
        if self.copy_error is not None:
            raise self.copy_error
        return output_path


class FakeGeocoder:
    def __init__(self, candidates=None):
        self.candidates = candidates or []
        self.calls = []

    def search(self, text, timeout=None, limit=1):
        self.calls.append((text, timeout))
        return list(self.candidates)


@pytest.fixture
def engine(tmp_path):
    """Real in-process DuckDB without extensions, rooted at a local release dir."""
    processing = ProcessingConfig(
        memory_limit="1GB",
        threads=1,
        temp_dir=str(tmp_path / "spill"),
        extensions=(),
    )
    with QueryEngine(processing=processing, base_url=str(tmp_path / "release")) as engine:
        yield engine


@pytest.fixture
def square_geojson():
    return json.dumps(SQUARE)


@pytest.fixture
def division(square_geojson):
    return Division(
        id="0856ffff",
        name="Amsterdam",
        geometry_geojson=square_geojson,
        subtype="locality",
        division_class="city",
    )


@pytest.fixture
def candidate(square_geojson):
    return GeocodeCandidate(
        name="Amsterdam",
        display_name="Amsterdam, Noord-Holland, Nederland",
        geometry_geojson=square_geojson,
    )


@pytest.fixture
def locator():
    return DatasetLocator(version="2025-07-23.0", theme="buildings", type="building")
