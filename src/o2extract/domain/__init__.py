"""
Domain Models and Types

This module contains the core domain models and enumerations used throughout the pipeline.

Models:
- Division: Resolved boundary with id, display name and GeoJSON geometry
- DatasetLocator: Release/theme/type partition of the Overture dataset
- GeocodeCandidate: Ranked geocoder result
- ExtractRequest: Single resolve-then-extract unit of work

Enums:
- OutputFormat: Output file formats (geojson, parquet)
"""

from .enums import OutputFormat
from .models import DatasetLocator, Division, ExtractRequest, GeocodeCandidate

__all__ = [
    "Division", "DatasetLocator", "GeocodeCandidate", "ExtractRequest",
    "OutputFormat"
]
