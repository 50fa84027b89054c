# services/ingestion_service.py
"""
Ingestion Service

Runs the handling path chosen by the classifier for one queue message:
materialize the records, transform each one, and write exactly one outcome
document per record.

Error policy per record:
- a ProcessingError from the transform becomes an `error` outcome and the
  remaining records carry on
- a store failure propagates and aborts the message, so the worker leaves
  it unacknowledged for redelivery
"""
import asyncio
import time
from typing import Any, Dict, List, Optional

from pydantic import BaseModel

from fc_ingestion.core.exceptions import NotFoundError, ProcessingError
from fc_ingestion.core.logger import logger
from fc_ingestion.integrations.s3_client import S3ObjectFetcher
from fc_ingestion.schemas.outcome_models import OutcomeStatus, ProcessingOutcome
from fc_ingestion.services.data_service import RecordStore
from fc_ingestion.services.message_classifier import DIRECT_SOURCE_KEY, LEGACY_SOURCE_KEY
from fc_ingestion.services.record_processor import RecordProcessor


class MessageResult(BaseModel):
    """Summary of one handled message."""
    source_key: str
    message_id: str
    records: int = 0
    successes: int = 0
    errors: int = 0


class IngestionService:
    """
    Implements the classifier's MessageHandlers for the three message kinds.
    """

    def __init__(
        self,
        fetcher: S3ObjectFetcher,
        processor: RecordProcessor,
        store: RecordStore,
        record_concurrency: int = 1,
        visibility_timeout_seconds: Optional[int] = None,
    ):
        self.fetcher = fetcher
        self.processor = processor
        self.store = store
        self.record_concurrency = max(1, record_concurrency)
        self.visibility_timeout_seconds = visibility_timeout_seconds

    # ------------------------------------------------------------------
    # Handling paths
    # ------------------------------------------------------------------

    async def handle_s3_file(
        self,
        key: str,
        message_id: str,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> MessageResult:
        logger.info(f"Processing S3 file: {key} (message {message_id})")
        start = time.perf_counter()

        if not await self.fetcher.exists(key):
            raise NotFoundError(f"S3 file not found: {key}", key=key)

        info = await self.fetcher.stat(key)
        logger.info(f"File info: {info.key} ({info.size} bytes)")
        if metadata:
            logger.debug(f"Producer metadata for {key}: {metadata}")

        records = await self.fetcher.fetch_records(key)
        self._check_visibility_budget(key, len(records))

        result = await self._process_records(records, key, message_id)

        elapsed_ms = int((time.perf_counter() - start) * 1000)
        logger.info(
            f"Processed S3 file {key}: {result.records} records "
            f"({result.errors} errors) in {elapsed_ms}ms"
        )
        return result

    async def handle_direct_data(self, data: Any, message_id: str) -> MessageResult:
        logger.info(f"Processing direct data message: {message_id}")
        return await self._process_records([data], DIRECT_SOURCE_KEY, message_id)

    async def handle_legacy(self, data: Any, message_id: str) -> MessageResult:
        logger.info(f"Processing legacy message: {message_id}")
        return await self._process_records([data], LEGACY_SOURCE_KEY, message_id)

    # ------------------------------------------------------------------
    # Record fan-out
    # ------------------------------------------------------------------

    async def _process_records(
        self,
        records: List[Any],
        source_key: str,
        message_id: str,
    ) -> MessageResult:
        if self.record_concurrency == 1 or len(records) <= 1:
            statuses = []
            for index, record in enumerate(records):
                statuses.append(await self._process_one(record, index, source_key, message_id))
        else:
            statuses = await self._process_concurrently(records, source_key, message_id)

        errors = sum(1 for s in statuses if s is OutcomeStatus.ERROR)
        return MessageResult(
            source_key=source_key,
            message_id=message_id,
            records=len(records),
            successes=len(statuses) - errors,
            errors=errors,
        )

    async def _process_concurrently(
        self,
        records: List[Any],
        source_key: str,
        message_id: str,
    ) -> List[OutcomeStatus]:
        semaphore = asyncio.Semaphore(self.record_concurrency)

        async def bounded(record: Any, index: int) -> OutcomeStatus:
            async with semaphore:
                return await self._process_one(record, index, source_key, message_id)

        # let every started save finish before reporting a store failure
        results = await asyncio.gather(
            *(bounded(record, index) for index, record in enumerate(records)),
            return_exceptions=True,
        )
        for outcome in results:
            if isinstance(outcome, BaseException):
                raise outcome
        return list(results)

    async def _process_one(
        self,
        record: Any,
        index: int,
        source_key: str,
        message_id: str,
    ) -> OutcomeStatus:
        started = time.perf_counter()
        try:
            processed = await self.processor.process(record, index)
        except ProcessingError as e:
            elapsed_ms = int((time.perf_counter() - started) * 1000)
            logger.warning(
                f"Record {index} of {source_key} failed in message {message_id}: {e}"
            )
            outcome = ProcessingOutcome.failure(
                source_key=source_key,
                message_id=message_id,
                record_index=index,
                original_data=record,
                error_message=str(e),
                processing_time_ms=elapsed_ms,
            )
        else:
            elapsed_ms = int((time.perf_counter() - started) * 1000)
            outcome = ProcessingOutcome.success(
                source_key=source_key,
                message_id=message_id,
                record_index=index,
                original_data=record,
                processed_data=processed,
                processing_time_ms=elapsed_ms,
            )

        await self.store.save(outcome)
        return outcome.status

    def _check_visibility_budget(self, key: str, record_count: int) -> None:
        """Warn when the records are unlikely to finish inside the visibility window."""
        if not self.visibility_timeout_seconds or not record_count:
            return
        estimate = (
            self.processor.work_delay_seconds * record_count / self.record_concurrency
        )
        if estimate >= self.visibility_timeout_seconds:
            logger.warning(
                f"S3 file {key} has {record_count} records; estimated {estimate:.1f}s of work "
                f"exceeds the {self.visibility_timeout_seconds}s visibility timeout. "
                f"The message may be redelivered while still in progress; "
                f"raise RECORD_CONCURRENCY or the queue visibility timeout"
            )
