"""Media upload and serving API."""

__version__ = "0.1.0"
