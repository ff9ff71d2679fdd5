"""
Daily Journal - a calendar-driven personal journal with offline fallback.

This package provides a JSON-file backed entry store served over HTTP, a
device-local fallback store, and a selector that routes every operation to
whichever of the two is currently reachable.
"""

__version__ = "0.1.0"
