"""
Exception hierarchy for division resolution and bounded extracts.

Resolution and engine failures propagate to the caller unchanged; only the
release lookup in config.release recovers locally.
"""

from __future__ import annotations

from typing import Optional


class ExtractError(Exception):
    """Base exception for extract operations."""
    pass


class InvalidGeometry(ExtractError):
    """Geometry is missing, empty or cannot be parsed."""
    pass


class InvalidArgument(ExtractError):
    """Caller supplied an argument outside the accepted domain."""
    pass


class NotFound(ExtractError):
    """No geocode result or no division matched the user's input."""
    def __init__(self, query: str, message: Optional[str] = None):
        self.query = query
        super().__init__(message or f'Division "{query}" not found')


class EngineError(ExtractError):
    """Query engine rejected or failed a statement."""
    pass


class GeocodeError(ExtractError):
    """Base exception for geocoding collaborator failures."""
    pass


class GeocodeTimeout(GeocodeError):
    """Geocoder did not answer within the caller's deadline."""
    def __init__(self, query: str, timeout: float):
        self.query = query
        self.timeout = timeout
        super().__init__(f"Geocoding '{query}' timed out after {timeout:g}s")


class GeocodeUnavailable(GeocodeError):
    """Geocoder unreachable or returned an unusable response."""
    pass
