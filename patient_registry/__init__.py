"""HTTP service for storing, searching and exporting patient records."""

__version__ = "0.1.0"
