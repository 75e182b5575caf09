"""MongoDB Resource - Lifecycle change log operations."""

from __future__ import annotations

import logging
from functools import cached_property
from typing import ClassVar, Dict, Optional

from pydantic import BaseModel, Field
from pymongo import ASCENDING, MongoClient
from pymongo.collection import Collection
from pymongo.database import Database
from pymongo.errors import PyMongoError

from watermap.errors import StorageError
from watermap.models import ChangeLog, MongoSettings

__all__ = ["ChangeLogResource"]

logger = logging.getLogger(__name__)


class ChangeLogResource(BaseModel):
    """
    Resource for the MongoDB lifecycle change log.

    The change log is append-only: one document per committed lifecycle
    transition, never updated or deleted. All MongoDB interactions for the
    audit trail are centralized here.
    """

    connection_string: str = Field(..., description="MongoDB connection URI")
    database: str = Field("watermap", description="MongoDB database name")

    CHANGE_LOG: ClassVar[str] = "change_log"

    @classmethod
    def from_settings(cls, settings: MongoSettings) -> "ChangeLogResource":
        return cls(connection_string=settings.connection_string, database=settings.database)

    @cached_property
    def _client(self) -> MongoClient:
        return MongoClient(self.connection_string, tz_aware=True)

    def _get_db(self) -> Database:
        return self._client[self.database]

    def _get_collection(self, name: str) -> Collection:
        return self._get_db()[name]

    @staticmethod
    def _strip_object_id(doc: Dict) -> Dict:
        stripped = dict(doc)
        stripped.pop("_id", None)
        stripped.pop("entry_id", None)
        return stripped

    # ------------------------------------------------------------------
    # Index management
    # ------------------------------------------------------------------

    def ensure_indexes(self) -> None:
        """Create the lookup indexes used by the history queries."""
        collection = self._get_collection(self.CHANGE_LOG)
        try:
            collection.create_index(
                [("canonical_id", ASCENDING), ("performed_at", ASCENDING)],
                name="canonical_id_performed_at",
            )
            collection.create_index("water_object_id", name="water_object_id")
            collection.create_index("entry_id", name="entry_id")
        except PyMongoError as e:
            raise StorageError(f"change log index creation failed: {e}") from e

    # ------------------------------------------------------------------
    # Change log operations
    # ------------------------------------------------------------------

    def record(self, entry: ChangeLog, entry_id: Optional[str] = None) -> str:
        """
        Append a change log entry and return the document id.

        With an entry_id the write is an upsert keyed on it, so delivering
        the same queued entry twice stores it once.

        Note: Uses model_dump() WITHOUT mode="json" so performed_at is stored
        as a BSON date.
        """
        collection = self._get_collection(self.CHANGE_LOG)
        document = entry.model_dump()
        document["action"] = entry.action.value
        try:
            if entry_id is None:
                document_id = collection.insert_one(document).inserted_id
            else:
                document["entry_id"] = entry_id
                result = collection.update_one(
                    {"entry_id": entry_id},
                    {"$setOnInsert": document},
                    upsert=True,
                )
                document_id = result.upserted_id
                if document_id is None:
                    existing = collection.find_one({"entry_id": entry_id}, {"_id": 1})
                    document_id = existing["_id"]
        except PyMongoError as e:
            raise StorageError(f"change log write failed: {e}") from e

        logger.debug(
            f"Change log: {entry.action.value} {entry.canonical_id} "
            f"v{entry.version} by user {entry.performed_by}"
        )
        return str(document_id)

    def get_history(self, canonical_id: str) -> list[ChangeLog]:
        """
        Return every entry for a canonical id, oldest first.
        """
        return self._find({"canonical_id": canonical_id})

    def get_for_object(self, water_object_id: int) -> list[ChangeLog]:
        """
        Return every entry for a single version row, oldest first.
        """
        return self._find({"water_object_id": water_object_id})

    def _find(self, query: dict) -> list[ChangeLog]:
        collection = self._get_collection(self.CHANGE_LOG)
        try:
            cursor = collection.find(query).sort(
                [("performed_at", ASCENDING), ("_id", ASCENDING)]
            )
            return [ChangeLog(**self._strip_object_id(doc)) for doc in cursor]
        except PyMongoError as e:
            raise StorageError(f"change log read failed: {e}") from e
