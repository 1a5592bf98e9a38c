"""Top-level package for verbavox."""

from . import comparator, config, dashboard, events, exercises, practice, results, scoring, storage, streak

__all__ = [
    "comparator",
    "config",
    "dashboard",
    "events",
    "exercises",
    "practice",
    "results",
    "scoring",
    "storage",
    "streak",
]
