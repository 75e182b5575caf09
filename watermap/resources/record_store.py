# =============================================================================
# Water Object Store - Transactional Version Records
# =============================================================================
# SQLAlchemy Core access to the water_objects table, its version counters
# and the change log outbox. Every lifecycle transition runs inside one
# transaction opened by transaction().
# =============================================================================

import logging
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Collection, Iterator, Optional
from uuid import uuid4

from pydantic import BaseModel, Field, PrivateAttr
from sqlalchemy import (
    JSON,
    CheckConstraint,
    Column,
    DateTime,
    Float,
    Index,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    UniqueConstraint,
    create_engine,
    delete,
    event,
    func,
    select,
    update,
)
from sqlalchemy.engine import Connection, Engine, Row
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from watermap.errors import ConflictError, StorageError
from watermap.models import (
    WORKING_STATUSES,
    ChangeLog,
    DatabaseSettings,
    ObjectStatus,
    WaterObject,
    WaterObjectFilter,
    WaterObjectSummary,
)

__all__ = [
    "WaterObjectStore",
    "change_log_outbox",
    "metadata",
    "version_counters",
    "water_objects",
]

logger = logging.getLogger(__name__)


# =============================================================================
# Schema
# =============================================================================

metadata = MetaData()

water_objects = Table(
    "water_objects",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("canonical_id", String(36), nullable=False),
    Column("version", Integer, nullable=False),
    # Names / content
    Column("name_kz", String(255), nullable=False),
    Column("name_ru", String(255)),
    Column("name_en", String(255)),
    Column("description_kz", Text),
    Column("description_ru", Text),
    Column("description_en", Text),
    Column("historical_notes", Text),
    # Classification
    Column("object_type", String(50), nullable=False),
    Column("geometry", JSON, nullable=False),
    # Measurements
    Column("length_km", Float),
    Column("area_km2", Float),
    Column("max_depth_m", Float),
    Column("avg_depth_m", Float),
    Column("water_volume_km3", Float),
    Column("basin_area_km2", Float),
    Column("avg_discharge_m3s", Float),
    # Water quality
    Column("salinity_level", String(50)),
    Column("pollution_index", Float),
    Column("ecological_status", String(50)),
    # Status
    Column("status", String(50), nullable=False),
    Column("rejection_reason", Text),
    # Audit
    Column("created_by", Integer, nullable=False),
    Column("updated_by", Integer),
    Column("reviewed_by", Integer),
    Column("created_at", DateTime(timezone=True), nullable=False),
    Column("updated_at", DateTime(timezone=True), nullable=False),
    Column("published_at", DateTime(timezone=True)),
    UniqueConstraint("canonical_id", "version", name="uq_water_objects_canonical_version"),
    CheckConstraint("version >= 1", name="ck_water_objects_version_positive"),
    CheckConstraint(
        "(status = 'rejected') = (rejection_reason IS NOT NULL)",
        name="ck_water_objects_rejection_reason",
    ),
    # Row ids are never reused after a delete
    sqlite_autoincrement=True,
)

# Last version number handed out per canonical id
version_counters = Table(
    "water_object_versions",
    metadata,
    Column("canonical_id", String(36), primary_key=True),
    Column("last_version", Integer, nullable=False),
)

# Change log entries committed with their transition, awaiting delivery to MongoDB
change_log_outbox = Table(
    "change_log_outbox",
    metadata,
    Column("seq", Integer, primary_key=True, autoincrement=True),
    Column("entry_id", String(36), nullable=False, unique=True),
    Column("entry", JSON, nullable=False),
    Column("queued_at", DateTime(timezone=True), nullable=False),
    sqlite_autoincrement=True,
)

Index("ix_water_objects_status", water_objects.c.status)
Index("ix_water_objects_object_type", water_objects.c.object_type)
Index("ix_water_objects_canonical_id", water_objects.c.canonical_id)
# At most one published version per canonical id
Index(
    "uq_water_objects_one_published",
    water_objects.c.canonical_id,
    unique=True,
    sqlite_where=water_objects.c.status == ObjectStatus.PUBLISHED.value,
    postgresql_where=water_objects.c.status == ObjectStatus.PUBLISHED.value,
)

_SUMMARY_COLUMNS = [
    water_objects.c[name] for name in WaterObjectSummary.model_fields
]


def _to_record(row: Optional[Row]) -> Optional[WaterObject]:
    if row is None:
        return None
    return WaterObject.model_validate(dict(row._mapping))


def _to_summary(row: Row) -> WaterObjectSummary:
    return WaterObjectSummary.model_validate(dict(row._mapping))


def _status_values(statuses: Collection[ObjectStatus]) -> list[str]:
    return [ObjectStatus(s).value for s in statuses]


# =============================================================================
# Store
# =============================================================================


class WaterObjectStore(BaseModel):
    """
    Transactional store for water object versions.

    Wraps a SQLAlchemy engine. PostgreSQL is the production backend; SQLite
    is supported for local runs and tests. On SQLite every transaction is
    opened with ``BEGIN IMMEDIATE`` so read-then-write transitions are
    serialized. On PostgreSQL, transitions lock their target row with
    ``SELECT ... FOR UPDATE`` and write through conditional updates.

    Attributes:
        database_url: SQLAlchemy database URL
        echo: Log SQL statements
        busy_timeout: Seconds SQLite waits for a competing writer

    Example:
        >>> store = WaterObjectStore(database_url="sqlite:///./watermap.db")
        >>> store.create_schema()
        >>> with store.transaction() as conn:
        ...     record = store.fetch_by_id(conn, 1, for_update=True)
    """

    database_url: str = Field("sqlite:///./watermap.db", description="SQLAlchemy database URL")
    echo: bool = Field(False, description="Log SQL statements")
    busy_timeout: float = Field(30.0, gt=0, description="SQLite lock wait timeout (seconds)")

    # Private attributes for lazy engine initialization
    _engine: Optional[Engine] = PrivateAttr(default=None)

    @classmethod
    def from_settings(cls, settings: DatabaseSettings) -> "WaterObjectStore":
        return cls(
            database_url=settings.url,
            echo=settings.echo,
            busy_timeout=settings.busy_timeout,
        )

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")

    def get_engine(self) -> Engine:
        """
        Get or create the SQLAlchemy engine.

        Uses connection pooling with pre-ping validation to ensure
        connections are healthy before use.

        Returns:
            Configured SQLAlchemy Engine instance
        """
        if self._engine is None:
            connect_args: dict[str, Any] = {}
            if self.is_sqlite:
                connect_args = {"timeout": self.busy_timeout, "check_same_thread": False}

            engine = create_engine(
                self.database_url,
                pool_pre_ping=True,  # Validate connection health before use
                echo=self.echo,
                connect_args=connect_args,
            )
            if self.is_sqlite:
                self._configure_sqlite(engine)
            self._engine = engine
        return self._engine

    @staticmethod
    def _configure_sqlite(engine: Engine) -> None:
        """Make pysqlite defer to SQLAlchemy and start write-locked transactions."""

        @event.listens_for(engine, "connect")
        def _on_connect(dbapi_connection, connection_record):
            dbapi_connection.isolation_level = None

        @event.listens_for(engine, "begin")
        def _on_begin(conn):
            conn.exec_driver_sql("BEGIN IMMEDIATE")

    def create_schema(self) -> None:
        """Create the version, counter and outbox tables if missing."""
        try:
            metadata.create_all(self.get_engine())
        except SQLAlchemyError as e:
            raise StorageError(f"create schema: {e}") from e
        logger.info("Water object schema ready")

    def dispose(self) -> None:
        if self._engine is not None:
            self._engine.dispose()
            self._engine = None

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    @contextmanager
    def transaction(self) -> Iterator[Connection]:
        """
        Open a transaction that commits on success and rolls back on any error.

        Constraint violations surface as ConflictError; every other
        SQLAlchemy failure surfaces as StorageError. Errors raised by the
        caller inside the block propagate unchanged after rollback.

        Yields:
            Connection bound to the open transaction
        """
        try:
            with self.get_engine().begin() as conn:
                yield conn
        except IntegrityError as e:
            raise ConflictError(f"concurrent modification: {e.orig}") from e
        except SQLAlchemyError as e:
            raise StorageError(f"storage failure: {e}") from e

    @contextmanager
    def connection(self) -> Iterator[Connection]:
        """Open a read-only connection (rolled back on exit)."""
        try:
            with self.get_engine().connect() as conn:
                yield conn
        except SQLAlchemyError as e:
            raise StorageError(f"storage failure: {e}") from e

    # ------------------------------------------------------------------
    # Point lookups
    # ------------------------------------------------------------------

    def fetch_by_id(
        self, conn: Connection, object_id: int, *, for_update: bool = False
    ) -> Optional[WaterObject]:
        """Load one version by row id, optionally locking the row."""
        stmt = select(water_objects).where(water_objects.c.id == object_id)
        if for_update:
            stmt = stmt.with_for_update()
        return _to_record(conn.execute(stmt).first())

    def fetch_by_canonical(
        self, conn: Connection, canonical_id: str, status: ObjectStatus
    ) -> Optional[WaterObject]:
        """Load the newest version of a canonical id in the given status."""
        stmt = (
            select(water_objects)
            .where(
                water_objects.c.canonical_id == canonical_id,
                water_objects.c.status == ObjectStatus(status).value,
            )
            .order_by(water_objects.c.version.desc())
            .limit(1)
        )
        return _to_record(conn.execute(stmt).first())

    def max_version(self, conn: Connection, canonical_id: str) -> int:
        """Highest version assigned to a canonical id (0 if none)."""
        stmt = select(func.max(water_objects.c.version)).where(
            water_objects.c.canonical_id == canonical_id
        )
        return conn.execute(stmt).scalar() or 0

    def has_working_copy(self, conn: Connection, canonical_id: str) -> bool:
        """True if a draft, pending or rejected version exists for the canonical id."""
        stmt = (
            select(water_objects.c.id)
            .where(
                water_objects.c.canonical_id == canonical_id,
                water_objects.c.status.in_(_status_values(WORKING_STATUSES)),
            )
            .limit(1)
        )
        return conn.execute(stmt).first() is not None

    # ------------------------------------------------------------------
    # Version counters
    # ------------------------------------------------------------------

    def next_version(self, conn: Connection, canonical_id: str) -> int:
        """
        Hand out the next version number of a canonical id.

        The counter only moves forward, so a number stays spent after the
        row that carried it is deleted. A canonical id without a counter row
        continues after its highest stored version.
        """
        bumped = conn.execute(
            update(version_counters)
            .where(version_counters.c.canonical_id == canonical_id)
            .values(last_version=version_counters.c.last_version + 1)
        ).rowcount
        if bumped:
            stmt = select(version_counters.c.last_version).where(
                version_counters.c.canonical_id == canonical_id
            )
            return conn.execute(stmt).scalar_one()

        version = self.max_version(conn, canonical_id) + 1
        conn.execute(
            version_counters.insert().values(canonical_id=canonical_id, last_version=version)
        )
        return version

    # ------------------------------------------------------------------
    # Change log outbox
    # ------------------------------------------------------------------

    def enqueue_change(self, conn: Connection, entry: ChangeLog) -> str:
        """Queue a change log entry in the caller's transaction; returns its entry id."""
        entry_id = str(uuid4())
        conn.execute(
            change_log_outbox.insert().values(
                entry_id=entry_id,
                entry=entry.model_dump(mode="json"),
                queued_at=datetime.now(timezone.utc),
            )
        )
        return entry_id

    def queued_changes(
        self, conn: Connection, limit: Optional[int] = None
    ) -> list[tuple[str, ChangeLog]]:
        """Queued entries in commit order, locked against other deliverers."""
        stmt = (
            select(change_log_outbox.c.entry_id, change_log_outbox.c.entry)
            .order_by(change_log_outbox.c.seq)
            .with_for_update(skip_locked=True)
        )
        if limit is not None:
            stmt = stmt.limit(limit)
        return [
            (row.entry_id, ChangeLog.model_validate(row.entry)) for row in conn.execute(stmt)
        ]

    def discard_changes(self, conn: Connection, entry_ids: Collection[str]) -> int:
        """Drop delivered entries from the outbox."""
        if not entry_ids:
            return 0
        stmt = delete(change_log_outbox).where(change_log_outbox.c.entry_id.in_(list(entry_ids)))
        return conn.execute(stmt).rowcount

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def insert(self, conn: Connection, values: dict[str, Any]) -> WaterObject:
        """Insert a new version row and return it as stored."""
        result = conn.execute(water_objects.insert().values(**values))
        object_id = result.inserted_primary_key[0]
        record = self.fetch_by_id(conn, object_id)
        if record is None:
            raise StorageError(f"inserted water object {object_id} not readable")
        return record

    def update_where(
        self,
        conn: Connection,
        object_id: int,
        values: dict[str, Any],
        *,
        statuses: Optional[Collection[ObjectStatus]] = None,
        version: Optional[int] = None,
        created_by: Optional[int] = None,
    ) -> int:
        """
        Conditionally update one version row.

        The row is only touched while it still matches every given
        condition (status set, version, author).

        Returns:
            Number of rows updated (0 or 1)
        """
        stmt = update(water_objects).where(water_objects.c.id == object_id)
        if statuses is not None:
            stmt = stmt.where(water_objects.c.status.in_(_status_values(statuses)))
        if version is not None:
            stmt = stmt.where(water_objects.c.version == version)
        if created_by is not None:
            stmt = stmt.where(water_objects.c.created_by == created_by)
        return conn.execute(stmt.values(**values)).rowcount

    def archive_published(
        self, conn: Connection, canonical_id: str, archived_at: datetime
    ) -> list[WaterObject]:
        """
        Demote every published version of a canonical id to archived.

        Returns:
            The demoted versions as they were before archiving
        """
        stmt = (
            select(water_objects)
            .where(
                water_objects.c.canonical_id == canonical_id,
                water_objects.c.status == ObjectStatus.PUBLISHED.value,
            )
            .with_for_update()
        )
        published = [_to_record(row) for row in conn.execute(stmt)]
        if published:
            conn.execute(
                update(water_objects)
                .where(water_objects.c.id.in_([record.id for record in published]))
                .where(water_objects.c.status == ObjectStatus.PUBLISHED.value)
                .values(status=ObjectStatus.ARCHIVED.value, updated_at=archived_at)
            )
        return published

    def delete_where(
        self,
        conn: Connection,
        object_id: int,
        *,
        statuses: Collection[ObjectStatus],
        created_by: int,
    ) -> int:
        """Delete one version row if it matches status set and author."""
        stmt = delete(water_objects).where(
            water_objects.c.id == object_id,
            water_objects.c.created_by == created_by,
            water_objects.c.status.in_(_status_values(statuses)),
        )
        return conn.execute(stmt).rowcount

    # ------------------------------------------------------------------
    # Listings
    # ------------------------------------------------------------------

    def list_published(
        self, conn: Connection, filter: Optional[WaterObjectFilter] = None
    ) -> list[WaterObject]:
        """Published versions ordered by primary name."""
        stmt = select(water_objects).where(
            water_objects.c.status == ObjectStatus.PUBLISHED.value
        )
        if filter is not None and filter.object_type is not None:
            stmt = stmt.where(water_objects.c.object_type == filter.object_type.value)
        stmt = stmt.order_by(water_objects.c.name_kz, water_objects.c.id)
        if filter is not None:
            if filter.limit is not None:
                stmt = stmt.limit(filter.limit)
            if filter.offset:
                stmt = stmt.offset(filter.offset)
        return [_to_record(row) for row in conn.execute(stmt)]

    def list_pending(self, conn: Connection) -> list[WaterObject]:
        """Pending versions, oldest submission first."""
        stmt = (
            select(water_objects)
            .where(water_objects.c.status == ObjectStatus.PENDING.value)
            .order_by(water_objects.c.updated_at, water_objects.c.id)
        )
        return [_to_record(row) for row in conn.execute(stmt)]

    def list_versions(
        self, conn: Connection, canonical_id: str
    ) -> list[WaterObjectSummary]:
        """Every version of a canonical id, newest first."""
        stmt = (
            select(*_SUMMARY_COLUMNS)
            .where(water_objects.c.canonical_id == canonical_id)
            .order_by(water_objects.c.version.desc())
        )
        return [_to_summary(row) for row in conn.execute(stmt)]

    def list_by_author(
        self,
        conn: Connection,
        created_by: int,
        statuses: Collection[ObjectStatus],
    ) -> list[WaterObjectSummary]:
        """An author's versions in the given statuses, most recently updated first."""
        stmt = (
            select(*_SUMMARY_COLUMNS)
            .where(
                water_objects.c.created_by == created_by,
                water_objects.c.status.in_(_status_values(statuses)),
            )
            .order_by(water_objects.c.updated_at.desc(), water_objects.c.id.desc())
        )
        return [_to_summary(row) for row in conn.execute(stmt)]
