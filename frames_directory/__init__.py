"""Creators directory backend: cached creator, collection and basename lookups."""

__version__ = "0.1.0"
