"""wthr: cached weather snapshots for a geographic point."""

__version__ = "1.0.0"
