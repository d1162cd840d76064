"""Scorecard evaluation engine for the rhello flow recruitment system."""

__version__ = "0.1.0"
