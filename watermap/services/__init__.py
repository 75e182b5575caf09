"""Lifecycle services for the water object registry."""

from .diff import COMPARED_FIELDS, diff_records
from .lifecycle import LifecycleEngine

__all__ = ["COMPARED_FIELDS", "LifecycleEngine", "diff_records"]
