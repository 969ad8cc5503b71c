"""Extract Overture Maps data inside an administrative division."""

__version__ = "0.1.0"
