"""Candidate scoring, prestige ranking and caching for faculty recruitment."""

__version__ = "0.3.0"
