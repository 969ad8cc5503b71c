"""
Pipeline Domain Models

Pydantic models for type safety and validation across the pipeline.
Everything here lives for a single invocation and is never persisted.
"""

import logging
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field
from shapely.geometry.base import BaseGeometry

from ..errors import InvalidGeometry
from ..geometry import BoundingBox, to_geometry


class DatasetLocator(BaseModel):
    """One partition-set of the Overture release: release/<version>/theme=<theme>/type=<type>/."""
    version: str = Field(..., description="Overture release, e.g. 2025-07-23.0")
    theme: str = Field(..., description="Overture theme (buildings, places, divisions, ...)")
    type: str = Field(..., description="Overture type within the theme (building, place, ...)")

    class Config:
        """Pydantic configuration."""
        frozen = True

    def partition_path(self) -> str:
        return f"{self.version}/theme={self.theme}/type={self.type}"

    def parquet_url(self, base_url: str) -> str:
        """Glob over every parquet file of this partition under `base_url`."""
        return f"{base_url.rstrip('/')}/{self.partition_path()}/*.parquet"


class Division(BaseModel):
    """Administrative or place boundary resolved from Overture Divisions."""
    id: str = Field(..., description="GERS identifier")
    name: str = Field(..., description="Display name derived from the name fallback chain")
    geometry_geojson: str = Field(..., description="Boundary as GeoJSON text (EPSG:4326)")
    subtype: Optional[str] = Field(None, description="Division subtype (country, locality, ...)")
    division_class: Optional[str] = Field(None, alias="class", description="Division class")
    primary_name: Optional[str] = Field(None, description="names.primary")
    common_en_name: Optional[str] = Field(None, description="names.common['en']")

    class Config:
        """Pydantic configuration."""
        frozen = True
        populate_by_name = True

    @property
    def boundary(self) -> BaseGeometry:
        """Boundary as a shapely geometry."""
        return to_geometry(self.geometry_geojson)

    def validate_boundary(self) -> "Division":
        """
        Enforce the parseable, non-empty boundary invariant.

        Self-intersections are only logged; the engine's intersection test
        tolerates them and real division polygons occasionally carry them.

        Raises:
            InvalidGeometry: If the boundary is unparseable or empty
        """
        geom = self.boundary
        if geom.is_empty:
            raise InvalidGeometry(f"Division {self.id} has an empty boundary")
        if not geom.is_valid:
            logging.warning(f"Division {self.id} boundary is not OGC-valid; continuing")
        return self


class GeocodeCandidate(BaseModel):
    """One ranked result from the geocoding collaborator."""
    name: str = Field(..., description="Short name used for fuzzy matching")
    display_name: Optional[str] = Field(None, description="Full human-readable label")
    geometry_geojson: str = Field(..., description="Rough boundary as GeoJSON text")
    bounding_box: Optional[BoundingBox] = Field(None, description="Provider's own extent, if any")

    class Config:
        """Pydantic configuration."""
        frozen = True
        arbitrary_types_allowed = True


class ExtractRequest(BaseModel):
    """The single unit of work for one invocation."""
    division: Division
    locator: DatasetLocator
    output_path: Path
    limit: Optional[int] = Field(None, description="Row limit for development runs")

    class Config:
        """Pydantic configuration."""
        frozen = True
        arbitrary_types_allowed = True  # Allow Path types
