# workers/sqs_worker.py
"""
SQS ingestion worker.

Loop:
    receive (long poll, up to 10 messages)
      -> handle the batch concurrently
      -> idle briefly when the queue was empty, longer after a receive error

A message is deleted only when its handler finished without a propagated
error, i.e. every record reached the record store. Anything else leaves the
message in flight; SQS redelivers it after the visibility timeout and moves
it to the DLQ once maxReceiveCount is exceeded.
"""
import asyncio
import time
from collections import OrderedDict
from typing import Any, List, Optional

from fc_ingestion.core.logger import logger
from fc_ingestion.integrations.sqs_client import SQSQueueClient
from fc_ingestion.schemas.sqs_models import QueueMessage
from fc_ingestion.services.ingestion_service import IngestionService, MessageResult
from fc_ingestion.services.message_classifier import MessageClassifier
from fc_ingestion.utils.log_outcome import log_message_outcome


class IngestionWorker:

    def __init__(
        self,
        queue: SQSQueueClient,
        classifier: MessageClassifier,
        service: IngestionService,
        *,
        max_messages: int = 10,
        wait_time_seconds: int = 20,
        idle_delay_seconds: float = 1.0,
        error_delay_seconds: float = 5.0,
        serialize_message_groups: bool = False,
    ):
        self.queue = queue
        self.classifier = classifier
        self.service = service
        self.max_messages = max_messages
        self.wait_time_seconds = wait_time_seconds
        self.idle_delay_seconds = idle_delay_seconds
        self.error_delay_seconds = error_delay_seconds
        self.serialize_message_groups = serialize_message_groups

        self.is_polling = False
        self._stop_requested = False
        self._wakeup: Optional[asyncio.Event] = None

    # ------------------------------------------------------------------
    # Loop control
    # ------------------------------------------------------------------

    async def run(self) -> None:
        """Poll until stop() is called. Returns after the current batch completes."""
        if self.is_polling:
            return
        if self._stop_requested:
            # stop() arrived before the loop started
            self._stop_requested = False
            logger.info("SQS polling not started: stop already requested")
            return

        self.is_polling = True
        self._wakeup = asyncio.Event()
        logger.info(f"Starting SQS polling for queue: {self.queue.queue_url}")

        while self.is_polling:
            try:
                handled = await self.poll_once()
            except Exception as e:
                logger.error(f"Error polling messages: {e}", exc_info=True)
                await self._idle(self.error_delay_seconds)
                continue

            if handled == 0:
                await self._idle(self.idle_delay_seconds)

        self._stop_requested = False
        logger.info("SQS polling stopped")

    def stop(self) -> None:
        """
        Ask the loop to exit after the receive and batch in progress. A stop
        issued before run() makes the next run() return without polling.
        """
        self._stop_requested = True
        if not self.is_polling:
            return
        self.is_polling = False
        logger.info("Stopping SQS polling")
        if self._wakeup is not None:
            self._wakeup.set()

    async def _idle(self, seconds: float) -> None:
        if not self.is_polling or seconds <= 0:
            return
        try:
            await asyncio.wait_for(self._wakeup.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            pass

    # ------------------------------------------------------------------
    # Batch handling
    # ------------------------------------------------------------------

    async def poll_once(self) -> int:
        """Receive one batch and handle it. Returns the number of messages received."""
        messages = await self.queue.receive(
            max_messages=self.max_messages,
            wait_time_seconds=self.wait_time_seconds,
        )
        if not messages:
            return 0

        logger.info(f"Received {len(messages)} messages")
        await self.process_batch(messages)
        return len(messages)

    async def process_batch(self, messages: List[QueueMessage]) -> List[bool]:
        """
        Handle a batch concurrently. Returns, in input order, whether each
        message was acknowledged.
        """
        if not self.serialize_message_groups:
            return list(await asyncio.gather(*(self.handle_message(m) for m in messages)))

        acked = [False] * len(messages)

        async def run_group(group: List[int]) -> None:
            for position in group:
                acked[position] = await self.handle_message(messages[position])

        await asyncio.gather(*(run_group(g) for g in self._group_positions(messages)))
        return acked

    @staticmethod
    def _group_positions(messages: List[QueueMessage]) -> List[List[int]]:
        """Batch positions split by MessageGroupId in receive order; ungrouped messages stand alone."""
        groups: "OrderedDict[Any, List[int]]" = OrderedDict()
        for position, message in enumerate(messages):
            groups.setdefault(message.group_id or ("ungrouped", position), []).append(position)
        return list(groups.values())

    async def handle_message(self, message: QueueMessage) -> bool:
        """
        Classify, process and acknowledge one message.

        Returns True when the message was deleted from the queue. Errors are
        logged and leave the message in flight for redelivery.
        """
        start = time.perf_counter()
        logger.info(f"Processing message: {message.message_id}")

        try:
            result: MessageResult = await self.classifier.classify_and_dispatch(
                message.body, message.message_id, self.service
            )
        except Exception as e:
            log_message_outcome(
                message_id=message.message_id,
                acked=False,
                duration_ms=self._elapsed_ms(start),
                receive_count=message.receive_count,
                error=f"{e.__class__.__name__}: {e}",
            )
            return False

        try:
            await self.queue.delete(message.receipt_handle)
        except Exception as e:
            # records are stored; the redelivery will duplicate them
            log_message_outcome(
                message_id=message.message_id,
                acked=False,
                duration_ms=self._elapsed_ms(start),
                source_key=result.source_key,
                records=result.records,
                successes=result.successes,
                errors=result.errors,
                receive_count=message.receive_count,
                error=f"delete failed: {e}",
            )
            return False

        log_message_outcome(
            message_id=message.message_id,
            acked=True,
            duration_ms=self._elapsed_ms(start),
            source_key=result.source_key,
            records=result.records,
            successes=result.successes,
            errors=result.errors,
            receive_count=message.receive_count,
        )
        return True

    @staticmethod
    def _elapsed_ms(start: float) -> int:
        return int((time.perf_counter() - start) * 1000)
