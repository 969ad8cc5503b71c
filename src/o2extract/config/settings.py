"""
Configuration management for the Overture extract pipeline.

Usage:
    from o2extract.config.settings import Config
    config = Config()
    release = config.overture.release

Environment Variables:
    OVERTURE_BASE_URL: Release root (default s3://overturemaps-us-west-2/release)
    OVERTURE_RELEASE: Release version or "latest" (OVERTURE_VERSION accepted as alias)
    OVERTURE_S3_REGION: S3 region of the release bucket
    OVERTURE_RELEASE_URL: Documentation page carrying the latest release marker
    DUCKDB_MEMORY_LIMIT: Memory limit for DuckDB
    DUCKDB_THREADS: Number of threads for DuckDB
    DUCKDB_TEMP_DIR: Spill directory (defaults to a PID-isolated temp dir)
    DUCKDB_EXTENSIONS: Comma-separated extensions to install/load
    PARQUET_COMPRESSION: Codec for native output
    GEOCODER_URL: Nominatim-compatible search endpoint
    GEOCODER_USER_AGENT: User-Agent sent to the geocoder
    GEOCODER_TIMEOUT: Geocoder deadline in seconds
    DIVISION_SEARCH_SCALE: Factor applied to the geocoder bbox before searching divisions
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "s3://overturemaps-us-west-2/release"
DEFAULT_RELEASE_URL = "https://docs.overturemaps.org/release/latest/"
DEFAULT_GEOCODER_URL = "https://nominatim.openstreetmap.org/search"
DEFAULT_USER_AGENT = "overture-extract/0.1"


@dataclass
class OvertureConfig:
    """Overture Maps data source configuration."""
    base_url: str
    release: str
    s3_region: str
    release_url: str = DEFAULT_RELEASE_URL

    def __post_init__(self):
        """Validate Overture Maps configuration."""
        if not self.base_url:
            raise ValueError("Base URL cannot be empty")
        if not self.release:
            raise ValueError("Release version cannot be empty")

    @property
    def wants_latest(self) -> bool:
        return self.release.strip().lower() == "latest"


@dataclass
class ProcessingConfig:
    """DuckDB processing configuration."""
    memory_limit: str = "8GB"
    threads: int = 4
    temp_dir: Optional[str] = None
    extensions: tuple[str, ...] = ("httpfs", "spatial")
    compression: str = "zstd"

    def __post_init__(self):
        """Validate processing configuration."""
        if self.threads < 1:
            raise ValueError("Thread count must be positive")

        # Validate memory limit format
        if not any(self.memory_limit.endswith(unit) for unit in ['MB', 'GB', 'TB']):
            raise ValueError("Memory limit must end with MB, GB, or TB")

        if self.compression.lower() not in ['zstd', 'gzip', 'snappy', 'lz4']:
            raise ValueError("Compression must be one of: zstd, gzip, snappy, lz4")


@dataclass
class GeocoderConfig:
    """Geocoding collaborator configuration."""
    url: str = DEFAULT_GEOCODER_URL
    user_agent: str = DEFAULT_USER_AGENT
    timeout: float = 30.0
    search_scale: float = 2.0

    def __post_init__(self):
        """Validate geocoder configuration."""
        if not self.url.startswith(('http://', 'https://')):
            raise ValueError("Geocoder URL must include protocol (https://)")
        if self.timeout <= 0:
            raise ValueError("Geocoder timeout must be positive")
        if self.search_scale <= 0:
            raise ValueError("Division search scale must be positive")


class ConfigurationError(Exception):
    """Raised when configuration is invalid or incomplete."""
    pass


class Config:
    """
    Centralized configuration for the extract pipeline.

    Environment variables loaded (in order of preference):
    1. Explicit environment file passed to constructor
    2. .env.{ENVIRONMENT} (where ENVIRONMENT=development|production|staging)
    3. .env file in project root
    4. System environment variables

    Example:
        # Auto-detect from ENVIRONMENT variable
        config = Config()

        # Pin a release for a reproducible run
        config = Config(release="2025-07-23.0")
    """

    def __init__(self,
                 environment: Optional[str] = None,
                 env_file: Optional[Path] = None,
                 release: Optional[str] = None):
        """
        Initialize configuration.

        Args:
            environment: Target environment (development|staging|production)
            env_file: Explicit path to environment file
            release: Release override taking precedence over the environment
        """
        self.environment = environment or os.getenv("ENVIRONMENT", "development")
        self.project_root = self._find_project_root()

        self._load_environment_variables(env_file)

        self._load_overture_config(release)
        self._load_processing_config()
        self._load_geocoder_config()

    def _find_project_root(self) -> Path:
        """Find project root directory containing pyproject.toml or .env file."""
        current = Path(__file__).resolve()

        for parent in current.parents:
            if any((parent / marker).exists() for marker in ['pyproject.toml', '.git']):
                return parent

        if (Path.cwd() / '.env').exists():
            return Path.cwd()

        return Path.cwd()

    def _load_environment_variables(self, env_file: Optional[Path]) -> None:
        """Load environment variables from appropriate source."""
        loaded_files = []

        if env_file:
            if env_file.exists():
                load_dotenv(env_file)
                loaded_files.append(str(env_file))
                logger.info(f"Loaded configuration from {env_file}")
            else:
                raise ConfigurationError(f"Specified env file not found: {env_file}")

        else:
            env_specific_file = self.project_root / f".env.{self.environment}"
            if env_specific_file.exists():
                load_dotenv(env_specific_file)
                loaded_files.append(str(env_specific_file))
                logger.info(f"Loaded environment-specific config: {env_specific_file}")

            generic_env_file = self.project_root / ".env"
            if generic_env_file.exists():
                load_dotenv(generic_env_file)
                loaded_files.append(str(generic_env_file))
                logger.debug(f"Loaded generic config: {generic_env_file}")

        if not loaded_files:
            logger.debug("No .env files found, using system environment variables only")

        self._loaded_env_files = loaded_files

    def _load_overture_config(self, release_override: Optional[str]) -> None:
        """Load Overture Maps configuration with sensible defaults."""
        base_url = os.getenv("OVERTURE_BASE_URL", DEFAULT_BASE_URL)
        release = (
            release_override
            or os.getenv("OVERTURE_RELEASE")
            or os.getenv("OVERTURE_VERSION")
            or "latest"
        )
        s3_region = os.getenv("OVERTURE_S3_REGION", "us-west-2")
        release_url = os.getenv("OVERTURE_RELEASE_URL", DEFAULT_RELEASE_URL)

        try:
            self.overture = OvertureConfig(
                base_url=base_url,
                release=release,
                s3_region=s3_region,
                release_url=release_url
            )
        except ValueError as e:
            raise ConfigurationError(f"Invalid Overture configuration: {e}")

    def _load_processing_config(self) -> None:
        """Load DuckDB processing configuration."""
        try:
            memory_limit = os.getenv("DUCKDB_MEMORY_LIMIT", "8GB")
            threads = int(os.getenv("DUCKDB_THREADS", "4"))
            temp_dir = os.getenv("DUCKDB_TEMP_DIR")
            raw_extensions = os.getenv("DUCKDB_EXTENSIONS", "httpfs,spatial")
            extensions = tuple(ext.strip() for ext in raw_extensions.split(",") if ext.strip())
            compression = os.getenv("PARQUET_COMPRESSION", "zstd")

            self.processing = ProcessingConfig(
                memory_limit=memory_limit,
                threads=threads,
                temp_dir=temp_dir,
                extensions=extensions,
                compression=compression
            )
        except ValueError as e:
            raise ConfigurationError(f"Invalid processing configuration: {e}")

    def _load_geocoder_config(self) -> None:
        """Load geocoding collaborator configuration."""
        try:
            self.geocoder = GeocoderConfig(
                url=os.getenv("GEOCODER_URL", DEFAULT_GEOCODER_URL),
                user_agent=os.getenv("GEOCODER_USER_AGENT", DEFAULT_USER_AGENT),
                timeout=float(os.getenv("GEOCODER_TIMEOUT", "30")),
                search_scale=float(os.getenv("DIVISION_SEARCH_SCALE", "2.0"))
            )
        except ValueError as e:
            raise ConfigurationError(f"Invalid geocoder configuration: {e}")

    def __repr__(self) -> str:
        return (
            f"Config(environment={self.environment}, "
            f"overture_base_url={self.overture.base_url}, "
            f"overture_release={self.overture.release})"
        )
