"""
Configuration module for the Overture extract pipeline.
"""

from .release import LAST_KNOWN_RELEASE, fetch_latest_release, resolve_release
from .settings import (
    Config,
    ConfigurationError,
    GeocoderConfig,
    OvertureConfig,
    ProcessingConfig,
)

__all__ = [
    'Config',
    'ConfigurationError',
    'GeocoderConfig',
    'OvertureConfig',
    'ProcessingConfig',
    'LAST_KNOWN_RELEASE',
    'fetch_latest_release',
    'resolve_release'
]
