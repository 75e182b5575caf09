# =============================================================================
# Lifecycle Engine - Editorial State Machine
# =============================================================================
# Drives water object versions through draft -> pending -> published /
# archived / rejected. Every transition runs in one store transaction that
# also queues its change log entry; queued entries reach MongoDB only after
# the transaction commits.
# =============================================================================

import logging
from datetime import datetime, timezone
from typing import Any, Optional, Union
from uuid import uuid4

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.engine import Connection

from watermap.errors import (
    ConflictError,
    GeometryError,
    NotFoundError,
    StorageError,
    ValidationError,
)
from watermap.geometry import GeometryValidator
from watermap.models import (
    EDITABLE_STATUSES,
    SUBMITTABLE_STATUSES,
    WORKING_STATUSES,
    ChangeAction,
    ChangeLog,
    FieldChange,
    Geometry,
    ObjectStatus,
    ObjectType,
    ReviewDiff,
    WaterObject,
    WaterObjectAttributes,
    WaterObjectFilter,
    WaterObjectSummary,
)
from watermap.resources import ChangeLogResource, WaterObjectStore

from .diff import diff_records

__all__ = ["LifecycleEngine"]

logger = logging.getLogger(__name__)

AttributesInput = Union[WaterObjectAttributes, dict[str, Any]]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _serialize_changes(changes: dict[str, FieldChange]) -> dict[str, Any]:
    return {name: change.model_dump() for name, change in changes.items()}


class LifecycleEngine:
    """
    Editorial lifecycle for versioned water objects.

    Actor and reviewer ids are trusted as supplied; ownership and
    state rules are enforced here. A record that is absent, in the wrong
    state or owned by someone else is reported uniformly as NotFoundError.

    Example:
        >>> engine = LifecycleEngine(store, change_log)
        >>> draft = engine.create(attributes, geometry, author_id=7)
        >>> engine.submit(draft.id, author_id=7)
        >>> engine.approve(draft.id, reviewer_id=1)
    """

    def __init__(
        self,
        store: WaterObjectStore,
        change_log: ChangeLogResource,
        validator: Optional[GeometryValidator] = None,
    ) -> None:
        self.store = store
        self.change_log = change_log
        self.validator = validator or GeometryValidator()

    # ------------------------------------------------------------------
    # Input validation
    # ------------------------------------------------------------------

    @staticmethod
    def _parse_attributes(attributes: AttributesInput) -> WaterObjectAttributes:
        if isinstance(attributes, BaseModel):
            attributes = attributes.model_dump()
        try:
            return WaterObjectAttributes.model_validate(attributes)
        except PydanticValidationError as e:
            first = e.errors()[0]
            field = ".".join(str(part) for part in first["loc"]) or "attributes"
            raise ValidationError(f"{field}: {first['msg']}") from e

    def _check_geometry(self, raw_geometry: Any, object_type: ObjectType) -> Geometry:
        try:
            return self.validator.validate(raw_geometry, object_type)
        except GeometryError as e:
            logger.warning(f"Geometry rejected for {object_type.value}: [{e.code}] {e.message}")
            raise

    @staticmethod
    def _row_values(attributes: WaterObjectAttributes, geometry: Geometry) -> dict[str, Any]:
        values = attributes.model_dump(mode="json")
        values["geometry"] = geometry.model_dump(mode="json")
        return values

    def _audit(
        self,
        conn: Connection,
        record: WaterObject,
        action: ChangeAction,
        performed_by: int,
        *,
        performed_at: Optional[datetime] = None,
        changed_fields: Optional[dict[str, FieldChange]] = None,
        reviewer_notes: Optional[str] = None,
    ) -> None:
        entry = ChangeLog(
            canonical_id=record.canonical_id,
            water_object_id=record.id,
            version=record.version,
            action=action,
            performed_by=performed_by,
            performed_at=performed_at or _utcnow(),
            changed_fields=_serialize_changes(changed_fields or {}),
            reviewer_notes=reviewer_notes,
        )
        self.store.enqueue_change(conn, entry)

    def _deliver_change_log(self) -> None:
        # The transition has committed; undelivered entries stay queued.
        try:
            self.flush_change_log()
        except StorageError as e:
            logger.warning(f"Change log delivery deferred: {e.message}")

    def flush_change_log(self) -> int:
        """
        Deliver queued change log entries to MongoDB in commit order.

        Entries leave the outbox only once MongoDB has stored them. A failed
        delivery keeps the whole batch queued; redelivering an entry that
        already reached MongoDB does not duplicate it.

        Returns:
            Number of entries delivered

        Raises:
            StorageError: MongoDB or the store is unavailable
        """
        with self.store.transaction() as conn:
            queued = self.store.queued_changes(conn)
            for entry_id, entry in queued:
                self.change_log.record(entry, entry_id=entry_id)
            self.store.discard_changes(conn, [entry_id for entry_id, _ in queued])

        if queued:
            logger.debug(f"Delivered {len(queued)} change log entries")
        return len(queued)

    # ------------------------------------------------------------------
    # Write operations
    # ------------------------------------------------------------------

    def create(
        self, attributes: AttributesInput, raw_geometry: Any, author_id: int
    ) -> WaterObject:
        """
        Create a brand new water object as draft version 1.

        Raises:
            ValidationError: Invalid attributes
            GeometryError: Geometry rejected by the validator
        """
        attrs = self._parse_attributes(attributes)
        geometry = self._check_geometry(raw_geometry, attrs.object_type)
        now = _utcnow()
        canonical_id = str(uuid4())

        values = {
            **self._row_values(attrs, geometry),
            "canonical_id": canonical_id,
            "status": ObjectStatus.DRAFT.value,
            "rejection_reason": None,
            "created_by": author_id,
            "created_at": now,
            "updated_at": now,
        }
        with self.store.transaction() as conn:
            values["version"] = self.store.next_version(conn, canonical_id)
            record = self.store.insert(conn, values)
            self._audit(conn, record, ChangeAction.CREATE, author_id, performed_at=now)
        self._deliver_change_log()

        logger.info(
            f"Created {record.object_type.value} {record.canonical_id} "
            f"(id={record.id}) by user {author_id}"
        )
        return record

    def revise(
        self,
        canonical_id: str,
        attributes: AttributesInput,
        raw_geometry: Any,
        editor_id: int,
    ) -> WaterObject:
        """
        Start a new draft version of an already published object.

        The new row gets the next version number of the canonical id. Only
        one unpublished working copy may exist per canonical id.

        Raises:
            NotFoundError: No published version exists
            ConflictError: A draft, pending or rejected version already exists
            ValidationError: Invalid attributes or a changed object type
            GeometryError: Geometry rejected by the validator
        """
        attrs = self._parse_attributes(attributes)
        geometry = self._check_geometry(raw_geometry, attrs.object_type)
        now = _utcnow()

        with self.store.transaction() as conn:
            published = self.store.fetch_by_canonical(
                conn, canonical_id, ObjectStatus.PUBLISHED
            )
            if published is None:
                raise NotFoundError(f"no published version of {canonical_id}")
            if attrs.object_type != published.object_type:
                raise ValidationError(
                    f"object_type cannot change from {published.object_type.value} "
                    f"to {attrs.object_type.value}"
                )
            if self.store.has_working_copy(conn, canonical_id):
                raise ConflictError(f"{canonical_id} already has an unpublished version")

            values = {
                **self._row_values(attrs, geometry),
                "canonical_id": canonical_id,
                "version": self.store.next_version(conn, canonical_id),
                "status": ObjectStatus.DRAFT.value,
                "rejection_reason": None,
                "created_by": editor_id,
                "created_at": now,
                "updated_at": now,
            }
            record = self.store.insert(conn, values)
            self._audit(
                conn,
                record,
                ChangeAction.CREATE,
                editor_id,
                performed_at=now,
                changed_fields=diff_records(published, record),
                reviewer_notes=f"revision_of version {published.version} (id={published.id})",
            )
        self._deliver_change_log()

        logger.info(
            f"Revised {canonical_id}: draft v{record.version} (id={record.id}) "
            f"by user {editor_id}"
        )
        return record

    def update(
        self,
        object_id: int,
        attributes: AttributesInput,
        raw_geometry: Any,
        editor_id: int,
    ) -> WaterObject:
        """
        Edit a draft or rejected version in place.

        The version number grows by one, any rejection reason is cleared and
        the record returns to draft.

        Raises:
            NotFoundError: Absent, not editable, or not owned by the editor
            ConflictError: The row changed underneath this update
            ValidationError: Invalid attributes or a changed object type
            GeometryError: Geometry rejected by the validator
        """
        attrs = self._parse_attributes(attributes)
        geometry = self._check_geometry(raw_geometry, attrs.object_type)
        now = _utcnow()

        with self.store.transaction() as conn:
            current = self.store.fetch_by_id(conn, object_id, for_update=True)
            if (
                current is None
                or current.created_by != editor_id
                or current.status not in EDITABLE_STATUSES
            ):
                raise NotFoundError(f"water object {object_id} not found or not editable")
            if attrs.object_type != current.object_type:
                raise ValidationError(
                    f"object_type cannot change from {current.object_type.value} "
                    f"to {attrs.object_type.value}"
                )

            values = {
                **self._row_values(attrs, geometry),
                "version": self.store.next_version(conn, current.canonical_id),
                "status": ObjectStatus.DRAFT.value,
                "rejection_reason": None,
                "updated_by": editor_id,
                "updated_at": now,
            }
            updated = self.store.update_where(
                conn,
                object_id,
                values,
                statuses=EDITABLE_STATUSES,
                version=current.version,
                created_by=editor_id,
            )
            if updated != 1:
                logger.warning(f"Update of water object {object_id} lost a race")
                raise ConflictError(f"water object {object_id} was modified concurrently")

            record = self.store.fetch_by_id(conn, object_id)
            self._audit(
                conn,
                record,
                ChangeAction.UPDATE,
                editor_id,
                performed_at=now,
                changed_fields=diff_records(current, record),
            )
        self._deliver_change_log()

        logger.info(f"Updated water object {object_id} to v{record.version} by user {editor_id}")
        return record

    def submit(self, object_id: int, author_id: int) -> WaterObject:
        """
        Send a draft or rejected version to review (status pending).

        Raises:
            NotFoundError: Absent, not submittable, or not owned by the author
        """
        now = _utcnow()
        with self.store.transaction() as conn:
            current = self.store.fetch_by_id(conn, object_id, for_update=True)
            if (
                current is None
                or current.created_by != author_id
                or current.status not in SUBMITTABLE_STATUSES
            ):
                raise NotFoundError(f"water object {object_id} not found or not submittable")

            updated = self.store.update_where(
                conn,
                object_id,
                {
                    "status": ObjectStatus.PENDING.value,
                    "rejection_reason": None,
                    "updated_at": now,
                },
                statuses=SUBMITTABLE_STATUSES,
                created_by=author_id,
            )
            if updated != 1:
                logger.warning(f"Submit of water object {object_id} lost a race")
                raise NotFoundError(f"water object {object_id} not found or not submittable")

            record = self.store.fetch_by_id(conn, object_id)
            self._audit(conn, record, ChangeAction.SUBMIT, author_id, performed_at=now)
        self._deliver_change_log()

        logger.info(f"Submitted water object {object_id} for review")
        return record

    def approve(self, object_id: int, reviewer_id: int) -> WaterObject:
        """
        Publish a pending version.

        In one transaction: lock the pending row, archive the currently
        published version(s) of the same canonical id, then promote the
        pending row. Any failure rolls the whole sequence back.

        Raises:
            NotFoundError: Absent or not pending (including a lost race)
            ConflictError: A concurrent approval violated the publish constraint
        """
        now = _utcnow()
        try:
            with self.store.transaction() as conn:
                pending = self.store.fetch_by_id(conn, object_id, for_update=True)
                if pending is None or pending.status != ObjectStatus.PENDING:
                    raise NotFoundError(f"water object {object_id} not found or not pending")

                archived = self.store.archive_published(conn, pending.canonical_id, now)

                updated = self.store.update_where(
                    conn,
                    object_id,
                    {
                        "status": ObjectStatus.PUBLISHED.value,
                        "reviewed_by": reviewer_id,
                        "published_at": now,
                        "updated_at": now,
                    },
                    statuses={ObjectStatus.PENDING},
                )
                if updated != 1:
                    logger.warning(f"Approval of water object {object_id} lost a race")
                    raise NotFoundError(f"water object {object_id} not found or not pending")

                record = self.store.fetch_by_id(conn, object_id)
                for previous in archived:
                    self._audit(
                        conn, previous, ChangeAction.ARCHIVE, reviewer_id, performed_at=now
                    )
                self._audit(conn, record, ChangeAction.APPROVE, reviewer_id, performed_at=now)
        except ConflictError:
            logger.warning(f"Approval of water object {object_id} conflicted with another approval")
            raise
        self._deliver_change_log()

        logger.info(
            f"Approved {record.canonical_id} v{record.version} (id={object_id}); "
            f"archived {len(archived)} previous version(s)"
        )
        return record

    def reject(self, object_id: int, reviewer_id: int, reason: str) -> WaterObject:
        """
        Send a pending version back to its author with a reason.

        Raises:
            ValidationError: Missing or blank reason
            NotFoundError: Absent or not pending
        """
        if not isinstance(reason, str) or not reason.strip():
            raise ValidationError("rejection reason is required")
        reason = reason.strip()
        now = _utcnow()

        with self.store.transaction() as conn:
            current = self.store.fetch_by_id(conn, object_id, for_update=True)
            if current is None or current.status != ObjectStatus.PENDING:
                raise NotFoundError(f"water object {object_id} not found or not pending")

            updated = self.store.update_where(
                conn,
                object_id,
                {
                    "status": ObjectStatus.REJECTED.value,
                    "rejection_reason": reason,
                    "reviewed_by": reviewer_id,
                    "updated_at": now,
                },
                statuses={ObjectStatus.PENDING},
            )
            if updated != 1:
                logger.warning(f"Rejection of water object {object_id} lost a race")
                raise NotFoundError(f"water object {object_id} not found or not pending")

            record = self.store.fetch_by_id(conn, object_id)
            self._audit(
                conn,
                record,
                ChangeAction.REJECT,
                reviewer_id,
                performed_at=now,
                reviewer_notes=reason,
            )
        self._deliver_change_log()

        logger.info(f"Rejected water object {object_id} by reviewer {reviewer_id}")
        return record

    def delete(self, object_id: int, author_id: int) -> None:
        """
        Delete a draft version owned by the author.

        Raises:
            NotFoundError: Absent, not a draft, or not owned by the author
        """
        with self.store.transaction() as conn:
            current = self.store.fetch_by_id(conn, object_id, for_update=True)
            if (
                current is None
                or current.created_by != author_id
                or current.status != ObjectStatus.DRAFT
            ):
                raise NotFoundError(f"water object {object_id} not found or not deletable")

            deleted = self.store.delete_where(
                conn, object_id, statuses={ObjectStatus.DRAFT}, created_by=author_id
            )
            if deleted != 1:
                logger.warning(f"Delete of water object {object_id} lost a race")
                raise NotFoundError(f"water object {object_id} not found or not deletable")

            self._audit(conn, current, ChangeAction.DELETE, author_id)
        self._deliver_change_log()

        logger.info(f"Deleted draft water object {object_id}")

    # ------------------------------------------------------------------
    # Read operations
    # ------------------------------------------------------------------

    def get_published(self, filter: Optional[WaterObjectFilter] = None) -> list[WaterObject]:
        """Published versions ordered by primary name."""
        with self.store.connection() as conn:
            return self.store.list_published(conn, filter)

    def get_by_canonical(self, canonical_id: str, status: ObjectStatus) -> WaterObject:
        """
        Newest version of a canonical id in the given status.

        Raises:
            ValidationError: Unknown status
            NotFoundError: No version in that status
        """
        try:
            status = ObjectStatus(status)
        except ValueError as e:
            raise ValidationError(f"unknown status: {status!r}") from e

        with self.store.connection() as conn:
            record = self.store.fetch_by_canonical(conn, canonical_id, status)
        if record is None:
            raise NotFoundError(f"no {status.value} version of {canonical_id}")
        return record

    def get_by_id(self, object_id: int) -> WaterObject:
        with self.store.connection() as conn:
            record = self.store.fetch_by_id(conn, object_id)
        if record is None:
            raise NotFoundError(f"water object {object_id} not found")
        return record

    def get_pending(self) -> list[WaterObject]:
        """Review queue, oldest submission first."""
        with self.store.connection() as conn:
            return self.store.list_pending(conn)

    def get_version_history(self, canonical_id: str) -> list[WaterObjectSummary]:
        """All versions of a canonical id, newest first."""
        with self.store.connection() as conn:
            return self.store.list_versions(conn, canonical_id)

    def get_drafts_by_user(self, user_id: int) -> list[WaterObjectSummary]:
        """The user's unpublished work (draft, pending, rejected), newest first."""
        with self.store.connection() as conn:
            return self.store.list_by_author(conn, user_id, WORKING_STATUSES)

    def get_review_diff(self, object_id: int) -> ReviewDiff:
        """
        Compare a pending version with the currently published one.

        Raises:
            NotFoundError: Absent or not pending
        """
        with self.store.connection() as conn:
            pending = self.store.fetch_by_id(conn, object_id)
            if pending is None or pending.status != ObjectStatus.PENDING:
                raise NotFoundError(f"water object {object_id} not found or not pending")
            published = self.store.fetch_by_canonical(
                conn, pending.canonical_id, ObjectStatus.PUBLISHED
            )
        return ReviewDiff(
            pending=pending,
            published=published,
            changes=diff_records(published, pending),
        )

    def get_change_history(self, canonical_id: str) -> list[ChangeLog]:
        """Change log entries for a canonical id, oldest first (queued entries delivered first)."""
        self.flush_change_log()
        return self.change_log.get_history(canonical_id)
