"""Core package initializer for Chronology.

Downstream code imports from the submodules directly:
    from chronology.core.store.manager import TimelineManager
    from chronology.core.temporal import compare_dates, format_date
"""

from __future__ import annotations

__all__ = ["__doc__"]
