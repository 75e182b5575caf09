# =============================================================================
# Engine Factory
# =============================================================================
# Wires the record store, change log and geometry validator from settings.
# =============================================================================

import logging
from typing import Optional

from watermap.geometry import GeometryValidator
from watermap.models import DatabaseSettings, MongoSettings
from watermap.resources import ChangeLogResource, WaterObjectStore
from watermap.services import LifecycleEngine

__all__ = ["create_lifecycle_engine"]

logger = logging.getLogger(__name__)


def create_lifecycle_engine(
    database: Optional[DatabaseSettings] = None,
    mongo: Optional[MongoSettings] = None,
) -> LifecycleEngine:
    """
    Build a ready-to-use LifecycleEngine.

    Settings default to values read from the environment / ``.env``.
    Creates the water_objects schema and the change log indexes if missing.

    Args:
        database: Record store settings
        mongo: Change log settings

    Returns:
        LifecycleEngine bound to the configured backends
    """
    database = database or DatabaseSettings()
    mongo = mongo or MongoSettings()

    store = WaterObjectStore.from_settings(database)
    store.create_schema()

    change_log = ChangeLogResource.from_settings(mongo)
    change_log.ensure_indexes()

    logger.info(
        f"Lifecycle engine ready "
        f"(store={store.get_engine().url.render_as_string(hide_password=True)}, "
        f"change_log={mongo.host}:{mongo.port}/{mongo.database})"
    )
    return LifecycleEngine(store, change_log, GeometryValidator())
