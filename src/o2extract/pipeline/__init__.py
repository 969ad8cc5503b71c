"""
Extract Pipeline Components

Resolve -> Plan -> Extract:

- geocode: NominatimGeocoder for free-text place lookup
- divisions: DivisionResolver turning an id or a query into one division
- columns: plan_columns deciding the projection per output format
- export: Extractor writing the bounded extract
- run: extract_division / resolve_division entry points
"""

from .columns import ColumnPlan, plan_columns
from .divisions import DivisionResolver
from .export import Extractor
from .geocode import NominatimGeocoder
from .run import extract_division, resolve_division

__all__ = [
    "ColumnPlan", "plan_columns", "DivisionResolver", "Extractor",
    "NominatimGeocoder", "extract_division", "resolve_division"
]
