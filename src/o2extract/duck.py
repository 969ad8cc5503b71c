from __future__ import annotations

import logging
import os
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional, Sequence, Union

import duckdb

from .cleanup import cleanup_current_pid, get_pid_temp_dir, partial_path_for, remove_partial
from .config.settings import DEFAULT_BASE_URL, ProcessingConfig
from .domain.models import DatasetLocator
from .errors import EngineError
from .utils import sql_string

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ColumnDescriptor:
    """One column of a dataset schema as reported by DESCRIBE."""
    name: str
    type: str


class QueryEngine:
    """
    Single DuckDB connection scoped to one invocation.

    Every statement of a run goes through this object; use it as a context
    manager so the connection and its spill directory are released on every
    exit path.
    """

    def __init__(
        self,
        processing: Optional[ProcessingConfig] = None,
        base_url: str = DEFAULT_BASE_URL,
        s3_region: str = "us-west-2",
    ):
        self.processing = processing or ProcessingConfig()
        self.base_url = base_url
        self.s3_region = s3_region
        self._connection: Optional[duckdb.DuckDBPyConnection] = None

    def __enter__(self) -> "QueryEngine":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _setup_duckdb_optimized(self) -> duckdb.DuckDBPyConnection:
        """Configure DuckDB with optimized settings for remote spatial queries."""
        con = duckdb.connect()

        try:
            for ext in self.processing.extensions:
                con.execute(f"INSTALL {ext}; LOAD {ext};")

            if self.processing.temp_dir:
                temp_dir = Path(self.processing.temp_dir)
            else:
                temp_dir = get_pid_temp_dir() / 'duckdb'
            temp_dir.mkdir(parents=True, exist_ok=True)
            temp_dir_str = str(temp_dir).replace('\\', '/')

            threads = self.processing.threads
            con.execute(f"SET memory_limit='{self.processing.memory_limit}';")
            con.execute(f"SET threads={threads};")
            con.execute(f"SET temp_directory='{temp_dir_str}';")

            if "httpfs" in self.processing.extensions:
                con.execute(f"SET s3_region='{self.s3_region}';")
                con.execute("SET http_timeout=1800000;")  # 30 minutes for large transfers
                con.execute("SET http_retries=3;")
                con.execute("SET http_keep_alive=true;")

            # Reduces memory usage for large datasets; row order is not part of the contract
            con.execute("SET preserve_insertion_order=false;")
        except duckdb.Error as e:
            con.close()
            raise EngineError(f"Could not initialise DuckDB: {e}") from e

        # Only set these if they exist in this DuckDB version
        for setting in ("enable_http_metadata_cache", "enable_object_cache"):
            try:
                con.execute(f"SET {setting}=true;")
            except duckdb.Error:
                logger.debug(f"{setting} not available in this DuckDB version")

        logger.info(
            f"DuckDB configured: {threads} threads, memory {self.processing.memory_limit}, "
            f"extensions {', '.join(self.processing.extensions) or 'none'}"
        )
        logger.debug(f"DuckDB temp directory: {temp_dir}")
        return con

    def _get_connection(self) -> duckdb.DuckDBPyConnection:
        """Get or create the invocation's DuckDB connection."""
        if self._connection is None:
            self._connection = self._setup_duckdb_optimized()
        return self._connection

    def dataset_url(self, locator: DatasetLocator) -> str:
        """Return the parquet glob for a release/theme/type partition."""
        return locator.parquet_url(self.base_url)

    def run_query(self, statement: str, parameters: Optional[Sequence[Any]] = None) -> list[dict[str, Any]]:
        """
        Execute a statement and return its rows as dicts.

        Row order is whatever the engine produces unless the statement orders it.

        Raises:
            EngineError: If DuckDB rejects or fails the statement
        """
        con = self._get_connection()
        logger.debug(f"SQL preview: {statement.strip()[:300]}...")
        try:
            cursor = con.execute(statement, parameters) if parameters else con.execute(statement)
            if cursor.description is None:
                return []
            columns = [desc[0] for desc in cursor.description]
            return [dict(zip(columns, row)) for row in cursor.fetchall()]
        except duckdb.Error as e:
            raise EngineError(f"Query failed: {e}") from e

    def describe_schema(self, source: Union[DatasetLocator, str]) -> list[ColumnDescriptor]:
        """
        Return the column name/type pairs of a parquet dataset without reading rows.

        Args:
            source: DatasetLocator or parquet URL/glob

        Raises:
            EngineError: If the dataset cannot be read
        """
        url = self.dataset_url(source) if isinstance(source, DatasetLocator) else source
        con = self._get_connection()
        try:
            con.execute(f"""
                CREATE OR REPLACE TEMP TABLE _o2x_temp_schema AS
                SELECT * FROM read_parquet({sql_string(url)}, hive_partitioning=1) LIMIT 0
            """)
            schema = con.execute("DESCRIBE _o2x_temp_schema").df()
        except duckdb.Error as e:
            raise EngineError(f"Could not describe {url}: {e}") from e

        columns = [
            ColumnDescriptor(name=str(row["column_name"]), type=str(row["column_type"]))
            for _, row in schema.iterrows()
        ]
        logger.debug(f"Schema of {url}: {[(c.name, c.type) for c in columns]}")
        return columns

    def copy_to(self, select_sql: str, output_path: Union[str, Path], options: str) -> Path:
        """
        COPY the rows of `select_sql` to `output_path` atomically.

        Rows are written to a sibling temp file that replaces `output_path` only
        once DuckDB has finished; a failed statement leaves nothing behind.

        Args:
            select_sql: SELECT statement producing the rows
            output_path: Final output file
            options: COPY option list, e.g. "FORMAT PARQUET, COMPRESSION 'zstd'"

        Returns:
            The output path

        Raises:
            EngineError: If the COPY fails
        """
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        partial = partial_path_for(output_path)
        remove_partial(partial)

        con = self._get_connection()
        copy_sql = f"""
        COPY (
            {select_sql}
        ) TO {sql_string(partial.as_posix())} ({options})
        """
        logger.debug(f"SQL preview: {copy_sql.strip()[:300]}...")

        start_time = time.time()
        try:
            con.execute(copy_sql)
            os.replace(partial, output_path)
        except duckdb.Error as e:
            remove_partial(partial)
            raise EngineError(f"Extract failed: {e}") from e
        except OSError:
            remove_partial(partial)
            raise

        logger.info(f"Wrote {output_path} in {time.time() - start_time:.1f} seconds")
        return output_path

    def close(self) -> None:
        """Close the DuckDB connection and drop the PID spill directory."""
        if self._connection is not None:
            self._connection.close()
            self._connection = None
            if not self.processing.temp_dir:
                cleanup_current_pid()
