"""Unit tests for the MongoDB record store (mongomock-motor)."""

from datetime import timedelta

import pytest

from bson.errors import InvalidDocument

from fc_ingestion.core.exceptions import MalformedPayloadError, TransientError
from fc_ingestion.schemas.outcome_models import ProcessingOutcome, utc_now
from fc_ingestion.services.data_service import RecordStore

from conftest import FailingCollection


def _success(index: int, source_key: str = "a/b.json", message_id: str = "M1", ms: int = 10):
    return ProcessingOutcome.success(
        source_key=source_key,
        message_id=message_id,
        record_index=index,
        original_data={"x": index},
        processed_data={"x": index, "processed": True},
        processing_time_ms=ms,
    )


def _failure(index: int, source_key: str = "a/b.json", message_id: str = "M1", ms: int = 10):
    return ProcessingOutcome.failure(
        source_key=source_key,
        message_id=message_id,
        record_index=index,
        original_data={"x": index},
        error_message="boom",
        processing_time_ms=ms,
    )


@pytest.mark.asyncio
async def test_save_returns_document_with_server_fields(store):
    saved = await store.save(_success(0))

    assert saved["_id"] is not None
    assert saved["created_at"] == saved["updated_at"]
    assert saved["status"] == "success"
    assert "error_message" not in saved


@pytest.mark.asyncio
async def test_error_outcome_keeps_message_and_null_data(store):
    await store.save(_failure(0))

    [doc] = await store.find_by_message_id("M1")
    assert doc["status"] == "error"
    assert doc["error_message"] == "boom"
    assert doc["processed_data"] is None


@pytest.mark.asyncio
async def test_find_orders_by_record_index(store):
    for index in (2, 0, 1):
        await store.save(_success(index))
    await store.save(_success(0, source_key="other.json", message_id="M2"))

    by_key = await store.find_by_source_key("a/b.json")
    by_message = await store.find_by_message_id("M1")

    assert [d["record_index"] for d in by_key] == [0, 1, 2]
    assert [d["record_index"] for d in by_message] == [0, 1, 2]


@pytest.mark.asyncio
async def test_duplicates_are_accepted(store):
    await store.save(_success(0))
    await store.save(_success(0))

    assert len(await store.find_by_message_id("M1")) == 2


@pytest.mark.asyncio
async def test_stats_empty_collection_is_all_zero(store):
    stats = await store.stats()

    assert stats.total == 0
    assert stats.successes == 0
    assert stats.errors == 0
    assert stats.avg_processing_time_ms == 0


@pytest.mark.asyncio
async def test_stats_totals_add_up(store):
    await store.save(_success(0, ms=10))
    await store.save(_success(1, ms=20))
    await store.save(_failure(2, ms=30))

    stats = await store.stats()

    assert stats.total == 3
    assert stats.successes == 2
    assert stats.errors == 1
    assert stats.total == stats.successes + stats.errors
    assert stats.avg_processing_time_ms == pytest.approx(20.0)


@pytest.mark.asyncio
async def test_recent_is_newest_first_and_limited(store, collection):
    now = utc_now()
    for index in range(5):
        outcome = _success(index)
        outcome.processing_timestamp = now - timedelta(minutes=index)
        await store.save(outcome)

    recent = await store.recent(limit=3)

    assert [d["record_index"] for d in recent] == [0, 1, 2]


@pytest.mark.asyncio
async def test_prune_older_than_deletes_only_old_documents(store):
    old = _success(0)
    old.processing_timestamp = utc_now() - timedelta(days=40)
    await store.save(old)
    await store.save(_success(1))

    deleted = await store.prune_older_than(30)

    assert deleted == 1
    remaining = await store.find_by_message_id("M1")
    assert [d["record_index"] for d in remaining] == [1]


@pytest.mark.asyncio
async def test_prune_rejects_negative_days(store):
    with pytest.raises(ValueError):
        await store.prune_older_than(-1)


@pytest.mark.asyncio
async def test_save_failure_is_transient():
    store = RecordStore(FailingCollection())

    with pytest.raises(TransientError):
        await store.save(_success(0))


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "error",
    [
        OverflowError("BSON can only handle up to 8-byte ints"),
        InvalidDocument("cannot encode object: <object>"),
    ],
)
async def test_unencodable_outcome_is_malformed_not_transient(error):
    store = RecordStore(FailingCollection(error))

    with pytest.raises(MalformedPayloadError, match="a/b.json#0"):
        await store.save(_success(0))


@pytest.mark.asyncio
async def test_ensure_indexes_creates_query_indexes(store, collection):
    await store.ensure_indexes()
    await store.ensure_indexes()

    names = [idx.get("name") async for idx in collection.list_indexes()]
    assert "source_key_message_id" in names
    assert "processing_timestamp_desc" in names
    assert "status" in names


def test_error_outcome_requires_message():
    with pytest.raises(ValueError):
        ProcessingOutcome(
            source_key="a/b.json",
            message_id="M1",
            record_index=0,
            original_data={},
            status="error",
            processing_time_ms=0,
        )


def test_success_outcome_rejects_error_message():
    with pytest.raises(ValueError):
        ProcessingOutcome(
            source_key="a/b.json",
            message_id="M1",
            record_index=0,
            original_data={},
            processed_data={},
            status="success",
            error_message="should not be here",
            processing_time_ms=0,
        )
