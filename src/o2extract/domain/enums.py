"""
Pipeline Enumerations

Core enums for type safety and clear interface definitions across the pipeline.
"""

from enum import Enum
from pathlib import Path


class OutputFormat(str, Enum):
    """Output file formats, selected by the output path extension."""
    GEOJSON = "geojson"     # Text interchange format, scalar columns only
    PARQUET = "parquet"     # Native columnar format, keeps every column type

    @classmethod
    def from_path(cls, path: str | Path) -> "OutputFormat":
        """`.geojson` selects the interchange format; anything else is native Parquet."""
        if Path(path).suffix.lower() == ".geojson":
            return cls.GEOJSON
        return cls.PARQUET

    @property
    def is_interchange(self) -> bool:
        return self is OutputFormat.GEOJSON
