# =============================================================================
# Version Diff
# =============================================================================
# Field-level comparison of two water object versions, used for update
# change logs and reviewer diffs.
# =============================================================================

from typing import Any, Optional

from pydantic import BaseModel

from watermap.models import FieldChange, WaterObjectAttributes

__all__ = ["COMPARED_FIELDS", "diff_records"]

COMPARED_FIELDS: tuple[str, ...] = tuple(WaterObjectAttributes.model_fields) + ("geometry",)


def _comparable(record: Optional[BaseModel]) -> dict[str, Any]:
    if record is None:
        return {}
    dumped = record.model_dump(mode="json")
    return {name: dumped.get(name) for name in COMPARED_FIELDS if name in dumped}


def diff_records(
    old: Optional[BaseModel], new: Optional[BaseModel]
) -> dict[str, FieldChange]:
    """
    Compare the editable fields of two versions.

    Either side may be None (a brand new object has no published version).
    Values are compared in their JSON form, so enums and coordinate tuples
    compare by value.

    Returns:
        Mapping of field name to FieldChange for every differing field
    """
    before = _comparable(old)
    after = _comparable(new)

    changes: dict[str, FieldChange] = {}
    for name in COMPARED_FIELDS:
        if name not in before and name not in after:
            continue
        old_value = before.get(name)
        new_value = after.get(name)
        if old_value != new_value:
            changes[name] = FieldChange(old=old_value, new=new_value)
    return changes
