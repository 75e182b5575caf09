"""
Shared pytest fixtures for registry tests.

Provides reusable geometry payloads, attribute payloads and storage
fixtures backed by a SQLite file and mongomock.
"""

import mongomock
import pytest

from watermap.models import WaterObjectAttributes
from watermap.resources import ChangeLogResource, WaterObjectStore
from watermap.services import LifecycleEngine


# =============================================================================
# Geometry Fixtures (all centered inside the service region)
# =============================================================================

@pytest.fixture
def point_geometry():
    """Spring location near Astana."""
    return {"type": "Point", "coordinates": [71.4, 51.1]}


@pytest.fixture
def line_geometry():
    """Short river course."""
    return {
        "type": "LineString",
        "coordinates": [[70.0, 45.0], [70.5, 45.4], [71.0, 45.9]],
    }


@pytest.fixture
def multi_line_geometry():
    """River with two channels."""
    return {
        "type": "MultiLineString",
        "coordinates": [
            [[70.0, 45.0], [70.5, 45.5]],
            [[70.6, 45.6], [71.0, 46.0]],
        ],
    }


@pytest.fixture
def polygon_geometry():
    """Simple square lake."""
    return {
        "type": "Polygon",
        "coordinates": [
            [[70.0, 45.0], [71.0, 45.0], [71.0, 46.0], [70.0, 46.0], [70.0, 45.0]]
        ],
    }


@pytest.fixture
def multi_polygon_geometry():
    """Lake made of two separate basins."""
    return {
        "type": "MultiPolygon",
        "coordinates": [
            [[[70.0, 45.0], [70.5, 45.0], [70.5, 45.5], [70.0, 45.5], [70.0, 45.0]]],
            [[[71.0, 46.0], [71.5, 46.0], [71.5, 46.5], [71.0, 46.5], [71.0, 46.0]]],
        ],
    }


@pytest.fixture
def bowtie_geometry():
    """Self-intersecting polygon shifted into the service region."""
    return {
        "type": "Polygon",
        "coordinates": [
            [[70.0, 45.0], [71.0, 46.0], [71.0, 45.0], [70.0, 46.0], [70.0, 45.0]]
        ],
    }


# =============================================================================
# Attribute Fixtures
# =============================================================================

@pytest.fixture
def lake_attributes_dict():
    """Valid attribute payload for a lake."""
    return {
        "name_kz": "Балқаш",
        "name_ru": "Балхаш",
        "name_en": "Balkhash",
        "description_en": "Endorheic lake in south-east Kazakhstan",
        "object_type": "lake",
        "area_km2": 16400.0,
        "max_depth_m": 26.0,
        "salinity_level": "brackish",
        "pollution_index": 3.5,
        "ecological_status": "moderate",
    }


@pytest.fixture
def lake_attributes(lake_attributes_dict):
    """Valid WaterObjectAttributes instance for a lake."""
    return WaterObjectAttributes(**lake_attributes_dict)


@pytest.fixture
def river_attributes_dict():
    """Valid attribute payload for a river."""
    return {
        "name_kz": "Ертіс",
        "name_en": "Irtysh",
        "object_type": "river",
        "length_km": 4248.0,
        "avg_discharge_m3s": 2150.0,
    }


# =============================================================================
# Storage Fixtures
# =============================================================================

@pytest.fixture
def mongomock_client():
    """In-memory MongoDB client for tests."""
    return mongomock.MongoClient()


@pytest.fixture
def change_log(monkeypatch, mongomock_client):
    """ChangeLogResource configured to use the mongomock client."""
    monkeypatch.setattr(
        "watermap.resources.change_log_resource.MongoClient",
        lambda *args, **kwargs: mongomock_client,
    )
    resource = ChangeLogResource(connection_string="mongodb://localhost:27017")
    resource.ensure_indexes()
    return resource


@pytest.fixture
def database_url(tmp_path):
    """SQLite database file unique to the test."""
    return f"sqlite:///{tmp_path / 'watermap.db'}"


@pytest.fixture
def store(database_url):
    """WaterObjectStore with the schema created."""
    resource = WaterObjectStore(database_url=database_url, busy_timeout=10.0)
    resource.create_schema()
    yield resource
    resource.dispose()


@pytest.fixture
def engine(store, change_log):
    """LifecycleEngine over the SQLite store and mongomock change log."""
    return LifecycleEngine(store, change_log)


@pytest.fixture
def author_id():
    return 7


@pytest.fixture
def reviewer_id():
    return 1
