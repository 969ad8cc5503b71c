"""
Geometry and bbox helpers.

Pure functions over shapely geometries; no I/O. Bounding boxes produced here
are only ever used as cheap pre-filters ahead of an exact spatial predicate.
"""

from __future__ import annotations

import json
import math
from dataclasses import dataclass
from typing import Any, Union

from shapely.errors import GEOSException
from shapely.geometry import shape
from shapely.geometry.base import BaseGeometry

from .errors import InvalidArgument, InvalidGeometry

GeometryLike = Union[BaseGeometry, dict, str]


@dataclass(frozen=True)
class BoundingBox:
    """Axis-aligned box in EPSG:4326 degrees."""
    xmin: float
    ymin: float
    xmax: float
    ymax: float

    def __post_init__(self):
        """Validate corner ordering."""
        values = (self.xmin, self.ymin, self.xmax, self.ymax)
        if not all(math.isfinite(v) for v in values):
            raise InvalidArgument(f"Bounding box coordinates must be finite: {values}")
        if self.xmin > self.xmax or self.ymin > self.ymax:
            raise InvalidArgument(f"Bounding box corners out of order: {values}")

    @property
    def width(self) -> float:
        return self.xmax - self.xmin

    @property
    def height(self) -> float:
        return self.ymax - self.ymin

    @property
    def center(self) -> tuple[float, float]:
        return ((self.xmin + self.xmax) / 2.0, (self.ymin + self.ymax) / 2.0)

    @property
    def is_degenerate(self) -> bool:
        """True when the box has no area (point or axis-aligned line input)."""
        return self.width == 0 or self.height == 0

    def as_tuple(self) -> tuple[float, float, float, float]:
        return (self.xmin, self.ymin, self.xmax, self.ymax)


def to_geometry(geometry: GeometryLike) -> BaseGeometry:
    """
    Coerce a shapely geometry, GeoJSON mapping or GeoJSON text to shapely.

    Raises:
        InvalidGeometry: If the input is missing or cannot be parsed
    """
    if geometry is None:
        raise InvalidGeometry("Geometry is missing")
    if isinstance(geometry, BaseGeometry):
        return geometry

    try:
        if isinstance(geometry, str):
            geometry = json.loads(geometry)
        return shape(geometry)
    except (ValueError, TypeError, KeyError, IndexError, AttributeError, GEOSException) as e:
        raise InvalidGeometry(f"Could not parse geometry: {e}") from e


def bounding_box_of(geometry: GeometryLike) -> BoundingBox:
    """
    Compute the minimal axis-aligned box covering every vertex of `geometry`.

    Multi-part geometries and collections yield the union extent of their parts.

    Args:
        geometry: Shapely geometry, GeoJSON mapping or GeoJSON text

    Returns:
        BoundingBox covering the geometry

    Raises:
        InvalidGeometry: If the geometry is empty or unparseable
    """
    geom = to_geometry(geometry)
    if geom.is_empty:
        raise InvalidGeometry("Cannot compute bounding box of an empty geometry")

    xmin, ymin, xmax, ymax = geom.bounds
    return BoundingBox(xmin=xmin, ymin=ymin, xmax=xmax, ymax=ymax)


def scale_box_around_center(bbox: BoundingBox, factor: float) -> BoundingBox:
    """
    Expand (factor > 1) or shrink (factor < 1) a box about its own center.

    Args:
        bbox: Box to scale
        factor: Linear scale factor applied to width and height

    Returns:
        Scaled BoundingBox sharing the input's center

    Raises:
        InvalidArgument: If factor is not a positive finite number
    """
    if not isinstance(factor, (int, float)) or not math.isfinite(factor) or factor <= 0:
        raise InvalidArgument(f"Scale factor must be a positive number, got {factor!r}")
    if factor == 1:
        return bbox

    cx, cy = bbox.center
    half_w = bbox.width * factor / 2.0
    half_h = bbox.height * factor / 2.0
    return BoundingBox(xmin=cx - half_w, ymin=cy - half_h, xmax=cx + half_w, ymax=cy + half_h)


def bbox_from_nominatim(boundingbox: Any) -> BoundingBox:
    """Convert Nominatim's [south, north, west, east] string list to a BoundingBox."""
    try:
        south, north, west, east = (float(v) for v in boundingbox)
    except (TypeError, ValueError) as e:
        raise InvalidGeometry(f"Malformed geocoder bounding box: {boundingbox!r}") from e
    return BoundingBox(xmin=west, ymin=south, xmax=east, ymax=north)
