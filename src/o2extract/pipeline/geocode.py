"""
Nominatim geocoding client.

Turns free text into ranked candidates carrying a rough boundary. Only the
first candidate is ever used by the division resolver.
"""

import json
import logging
from typing import Any, Optional
from urllib.parse import urlsplit

from geopy.exc import GeocoderServiceError, GeocoderTimedOut
from geopy.geocoders import Nominatim

from ..config.settings import GeocoderConfig
from ..domain.models import GeocodeCandidate
from ..errors import GeocodeTimeout, GeocodeUnavailable, InvalidArgument, InvalidGeometry
from ..geometry import bbox_from_nominatim

logger = logging.getLogger(__name__)

# geopy appends this path to the configured domain
_SEARCH_PATH = "/search"


def nominatim_endpoint(url: str) -> tuple[str, str]:
    """Split a Nominatim search URL into geopy's (scheme, domain)."""
    parts = urlsplit(url)
    path = parts.path.rstrip("/")
    if path.endswith(_SEARCH_PATH):
        path = path[: -len(_SEARCH_PATH)]
    return parts.scheme, parts.netloc + path


class NominatimGeocoder:
    """
    Geocoder backed by geopy's Nominatim client.

    The geopy client (and its connection pool) is created on first use; use
    this object as a context manager so the pool is released on every exit
    path.
    """

    def __init__(self, config: Optional[GeocoderConfig] = None, geolocator: Optional[Nominatim] = None):
        self.config = config or GeocoderConfig()
        self._geolocator = geolocator
        self._owns_geolocator = geolocator is None

    def __enter__(self) -> "NominatimGeocoder":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _get_geolocator(self) -> Nominatim:
        if self._geolocator is None:
            scheme, domain = nominatim_endpoint(self.config.url)
            self._geolocator = Nominatim(
                user_agent=self.config.user_agent,
                timeout=self.config.timeout,
                domain=domain,
                scheme=scheme,
            )
        return self._geolocator

    def search(self, text: str, timeout: Optional[float] = None, limit: int = 1) -> list[GeocodeCandidate]:
        """
        Geocode `text`.

        Args:
            text: Free-text place query
            timeout: Deadline in seconds (defaults to the configured timeout)
            limit: Maximum number of candidates to request

        Returns:
            Candidates in provider rank order; empty when nothing matched

        Raises:
            InvalidArgument: If `timeout` is not positive
            GeocodeTimeout: If the provider does not answer within `timeout`
            GeocodeUnavailable: If the provider is unreachable or fails the request
        """
        timeout = timeout if timeout is not None else self.config.timeout
        if timeout <= 0:
            raise InvalidArgument(f"Geocoder timeout must be positive, got {timeout!r}")

        logger.info(f"Geocoding '{text}'")
        try:
            locations = self._get_geolocator().geocode(
                text,
                exactly_one=False,
                limit=limit,
                geometry="geojson",
                timeout=timeout,
            )
        except GeocoderTimedOut as e:
            raise GeocodeTimeout(text, timeout) from e
        except GeocoderServiceError as e:
            raise GeocodeUnavailable(f"Geocoder request for '{text}' failed: {e}") from e

        candidates = []
        for location in locations or []:
            candidate = self._to_candidate(getattr(location, "raw", None) or {})
            if candidate is not None:
                candidates.append(candidate)

        logger.info(f"Geocoder returned {len(candidates)} candidate(s) for '{text}'")
        return candidates

    @staticmethod
    def _to_candidate(raw: dict[str, Any]) -> Optional[GeocodeCandidate]:
        """Convert one raw Nominatim result; results without geometry are skipped."""
        geojson = raw.get("geojson")
        if not geojson:
            logger.debug(f"Skipping geocoder result without geometry: {raw.get('display_name')}")
            return None

        bounding_box = None
        if raw.get("boundingbox"):
            try:
                bounding_box = bbox_from_nominatim(raw["boundingbox"])
            except (InvalidGeometry, InvalidArgument) as e:
                logger.debug(f"Ignoring geocoder bounding box: {e}")

        display_name = raw.get("display_name")
        return GeocodeCandidate(
            name=raw.get("name") or (display_name or "").split(",")[0].strip(),
            display_name=display_name,
            geometry_geojson=json.dumps(geojson),
            bounding_box=bounding_box,
        )

    def close(self) -> None:
        """Release the geopy client's connection pool if this object created it."""
        if self._geolocator is not None and self._owns_geolocator:
            self._geolocator.__exit__(None, None, None)
            self._geolocator = None
