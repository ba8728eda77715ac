"""tradelens: visual-encoding and layout engine for trade datasets."""

__version__ = "0.1.0"
