"""Local subnet host discovery and service scanning."""

__version__ = "0.1.0"
