"""Turn-based isometric territory simulation."""

__version__ = "0.1.0"
