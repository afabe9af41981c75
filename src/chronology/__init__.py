"""Chronology: temporal event model and conflict engine for long-form writing.

Tracks scenes, character life events, plot points and research facts on a
timeline whose dates may be partial, approximate, relative, or on an invented
calendar, and checks that timeline for inconsistencies.
"""

from __future__ import annotations

__all__ = ["__version__"]
__version__ = "0.1.0"
