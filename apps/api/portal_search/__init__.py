"""Semantic document search for the company portal document library."""

__version__ = "0.1.0"
