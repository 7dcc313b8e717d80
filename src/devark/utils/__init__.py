"""Utility modules for devark."""

from .atomic import atomic_write_json
from .project import find_project_root, get_project_root
from .time import Clock, utc_now

__all__ = [
    "atomic_write_json",
    "find_project_root",
    "get_project_root",
    "Clock",
    "utc_now",
]
