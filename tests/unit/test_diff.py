"""Unit tests for version diffs."""

from datetime import datetime, timezone

from watermap.models import FieldChange, WaterObject, WaterObjectAttributes
from watermap.services import COMPARED_FIELDS, diff_records


def _version(**overrides):
    now = datetime.now(timezone.utc)
    data = {
        "id": 1,
        "canonical_id": "canon-1",
        "version": 1,
        "name_kz": "Балқаш",
        "object_type": "lake",
        "salinity_level": "brackish",
        "geometry": {
            "type": "Polygon",
            "coordinates": [[[70.0, 45.0], [71.0, 45.0], [71.0, 46.0], [70.0, 46.0], [70.0, 45.0]]],
        },
        "status": "published",
        "created_by": 7,
        "created_at": now,
        "updated_at": now,
    }
    data.update(overrides)
    return WaterObject(**data)


def test_identical_versions_have_no_changes():
    assert diff_records(_version(), _version(id=2, version=2, status="pending")) == {}


def test_changed_attributes():
    changes = diff_records(
        _version(),
        _version(name_en="Balkhash", salinity_level="saline", area_km2=16400.0),
    )

    assert changes == {
        "name_en": FieldChange(old=None, new="Balkhash"),
        "salinity_level": FieldChange(old="brackish", new="saline"),
        "area_km2": FieldChange(old=None, new=16400.0),
    }


def test_geometry_change_in_json_form():
    moved = {
        "type": "Point",
        "coordinates": [71.4, 51.1],
    }
    changes = diff_records(_version(), _version(object_type="spring", geometry=moved))

    assert changes["geometry"].new == {"type": "Point", "coordinates": [71.4, 51.1]}
    assert changes["geometry"].old["type"] == "Polygon"
    assert changes["object_type"] == FieldChange(old="lake", new="spring")


def test_lifecycle_fields_ignored():
    changes = diff_records(_version(), _version(status="archived", version=4, updated_by=9))

    assert changes == {}
    assert "status" not in COMPARED_FIELDS


def test_missing_old_side():
    changes = diff_records(None, _version(name_ru="Балхаш"))

    assert changes["name_kz"] == FieldChange(old=None, new="Балқаш")
    assert changes["name_ru"].new == "Балхаш"
    assert "length_km" not in changes


def test_attributes_without_geometry():
    old = WaterObjectAttributes(name_kz="Ертіс", object_type="river")
    new = WaterObjectAttributes(name_kz="Ертіс", object_type="river", length_km=4248.0)

    assert diff_records(old, new) == {"length_km": FieldChange(old=None, new=4248.0)}
