# services/data_service.py
"""
Record store: append-only persistence of per-record processing outcomes.

Documents are never updated in place. The only deletion path is
`prune_older_than`. Duplicate deliveries of the same message produce
duplicate documents; nothing here deduplicates.
"""
from datetime import timedelta
from typing import Any, Dict, List

from bson.errors import InvalidDocument
from pymongo import ASCENDING, DESCENDING
from pymongo.errors import PyMongoError

from fc_ingestion.core.exceptions import MalformedPayloadError, TransientError
from fc_ingestion.core.logger import logger
from fc_ingestion.schemas.outcome_models import (
    OutcomeStatus,
    ProcessingOutcome,
    ProcessingStats,
    utc_now,
)

INDEXES = [
    ([("source_key", ASCENDING), ("message_id", ASCENDING)], "source_key_message_id"),
    ([("processing_timestamp", DESCENDING)], "processing_timestamp_desc"),
    ([("status", ASCENDING)], "status"),
]


class RecordStore:
    """Outcome documents in a single MongoDB collection."""

    def __init__(self, collection):
        self._collection = collection

    async def ensure_indexes(self) -> None:
        """Create the query indexes. Safe to call on every startup."""
        try:
            for keys, name in INDEXES:
                await self._collection.create_index(keys, name=name)
        except PyMongoError as e:
            raise TransientError(f"Failed to create indexes: {e}") from e
        logger.info("Outcome collection indexes ensured")

    async def save(self, outcome: ProcessingOutcome) -> Dict[str, Any]:
        """Persist one outcome document and return it with server-assigned fields."""
        doc = outcome.to_document()
        now = utc_now()
        doc["created_at"] = now
        doc["updated_at"] = now

        try:
            result = await self._collection.insert_one(doc)
        except (InvalidDocument, OverflowError) as e:
            # the record itself is not storable
            logger.error(f"Outcome is not BSON-encodable: {e}")
            raise MalformedPayloadError(
                f"Cannot store outcome {outcome.source_key}#{outcome.record_index}: {e}"
            ) from e
        except PyMongoError as e:
            logger.error(f"Error saving processed data: {e}")
            raise TransientError(
                f"Failed to save outcome {outcome.source_key}#{outcome.record_index}: {e}"
            ) from e

        doc["_id"] = result.inserted_id
        logger.debug(
            "Saved processed data: %s - Record %d (%s)",
            outcome.source_key, outcome.record_index, outcome.status.value,
        )
        return doc

    async def find_by_source_key(self, source_key: str) -> List[Dict[str, Any]]:
        return await self._find({"source_key": source_key})

    async def find_by_message_id(self, message_id: str) -> List[Dict[str, Any]]:
        return await self._find({"message_id": message_id})

    async def _find(self, query: Dict[str, Any]) -> List[Dict[str, Any]]:
        try:
            cursor = self._collection.find(query).sort("record_index", ASCENDING)
            return await cursor.to_list(length=None)
        except PyMongoError as e:
            raise TransientError(f"Failed to query outcomes {query}: {e}") from e

    async def stats(self) -> ProcessingStats:
        """Totals over every stored outcome; all zero for an empty collection."""
        pipeline = [
            {
                "$group": {
                    "_id": None,
                    "total": {"$sum": 1},
                    "successes": {
                        "$sum": {"$cond": [{"$eq": ["$status", OutcomeStatus.SUCCESS.value]}, 1, 0]}
                    },
                    "errors": {
                        "$sum": {"$cond": [{"$eq": ["$status", OutcomeStatus.ERROR.value]}, 1, 0]}
                    },
                    "avg_processing_time_ms": {"$avg": "$processing_time_ms"},
                }
            }
        ]
        try:
            rows = await self._collection.aggregate(pipeline).to_list(length=None)
        except PyMongoError as e:
            raise TransientError(f"Failed to aggregate stats: {e}") from e

        if not rows:
            return ProcessingStats()
        row = rows[0]
        return ProcessingStats(
            total=row.get("total", 0),
            successes=row.get("successes", 0),
            errors=row.get("errors", 0),
            avg_processing_time_ms=row.get("avg_processing_time_ms") or 0.0,
        )

    async def recent(self, limit: int = 10) -> List[Dict[str, Any]]:
        if limit <= 0:
            return []
        try:
            cursor = (
                self._collection.find()
                .sort("processing_timestamp", DESCENDING)
                .limit(limit)
            )
            return await cursor.to_list(length=limit)
        except PyMongoError as e:
            raise TransientError(f"Failed to fetch recent outcomes: {e}") from e

    async def prune_older_than(self, days: float) -> int:
        """Delete outcomes processed more than `days` days ago."""
        if days < 0:
            raise ValueError("days must be non-negative")
        cutoff = utc_now() - timedelta(days=days)
        try:
            result = await self._collection.delete_many({"processing_timestamp": {"$lt": cutoff}})
        except PyMongoError as e:
            raise TransientError(f"Failed to prune outcomes: {e}") from e

        deleted = result.deleted_count or 0
        logger.info("Deleted %d outcome documents older than %s days", deleted, days)
        return deleted
