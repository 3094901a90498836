"""Letterboxd watch-history statistics: parse, enrich via TMDB, aggregate, query."""

__version__ = "0.1.0"

__all__ = ["__version__"]
