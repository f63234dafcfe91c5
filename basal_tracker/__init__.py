"""Basal Tracker: daily basal insulin schedule management."""

__version__ = "0.1.0"
