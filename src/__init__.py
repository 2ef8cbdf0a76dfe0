"""Price tracker scrape core."""

__version__ = "1.0.0"
