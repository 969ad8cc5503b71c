"""
Overture release resolution.

A configured release of "latest" is resolved by scraping the release marker
from the Overture documentation page. The lookup never fails a run: any
network or parse problem falls back to LAST_KNOWN_RELEASE.
"""

from __future__ import annotations

import logging
import re

import requests

from .settings import OvertureConfig

logger = logging.getLogger(__name__)

LAST_KNOWN_RELEASE = "2025-07-23.0"

_RELEASE_PATTERN = re.compile(r"\b(\d{4}-\d{2}-\d{2}\.\d+)\b")


def fetch_latest_release(url: str, timeout: float = 10.0,
                         fallback: str = LAST_KNOWN_RELEASE) -> str:
    """
    Fetch the latest release string from a documentation page.

    Args:
        url: Page whose text carries a YYYY-MM-DD.N release marker
        timeout: Request timeout in seconds
        fallback: Release returned when the page cannot be used

    Returns:
        Latest release string, or `fallback`
    """
    try:
        response = requests.get(url, timeout=timeout)
        response.raise_for_status()
    except requests.RequestException as e:
        logger.warning(f"Could not fetch latest Overture release from {url}: {e}")
        logger.warning(f"Falling back to last known release {fallback}")
        return fallback

    match = _RELEASE_PATTERN.search(response.text)
    if not match:
        logger.warning(f"No release marker found at {url}; using {fallback}")
        return fallback

    release = match.group(1)
    logger.debug(f"Latest Overture release from {url}: {release}")
    return release


def resolve_release(overture: OvertureConfig, timeout: float = 10.0) -> str:
    """Return the concrete release for `overture`, resolving "latest" when asked."""
    if not overture.wants_latest:
        return overture.release
    return fetch_latest_release(overture.release_url, timeout=timeout)
