"""Storage resources for the water object registry."""

from .change_log_resource import ChangeLogResource
from .record_store import WaterObjectStore

__all__ = ["ChangeLogResource", "WaterObjectStore"]
