# routers/router.py
"""
Admin routes for manual smoke testing.

They share the queue with the worker: deleting a message here removes it
before the worker sees it.
"""

import json
import time
from typing import Any, Optional

from fastapi import (
    APIRouter,
    Body,
    Depends,
    HTTPException,
    Query,
    Request,
    status
)

from fc_ingestion.core.config import settings
from fc_ingestion.core.exceptions import TransientError
from fc_ingestion.core.logger import logger
from fc_ingestion.core.rate_limiter import limit_param, limiter
from fc_ingestion.integrations.sqs_client import SQSQueueClient
from fc_ingestion.schemas.outcome_models import ProcessingStats, rfc3339_now
from fc_ingestion.schemas.request_models import (
    DeleteResponse,
    HealthResponse,
    IngestResponse,
    MessageListResponse,
    OutcomeListResponse,
    OutcomeRecord,
    QueuedMessage,
)
from fc_ingestion.schemas.sqs_models import IngestEnvelope
from fc_ingestion.services.data_service import RecordStore


router = APIRouter(
    tags=["Admin"],
    responses={
        429: {"description": "Too Many Requests"},
        502: {"description": "Upstream AWS or MongoDB failure"},
    }
)


# ============================================================================
# DEPENDENCIES
# ============================================================================

def get_queue_client(request: Request) -> SQSQueueClient:
    return request.app.state.queue_client


def get_record_store(request: Request) -> RecordStore:
    store: Optional[RecordStore] = getattr(request.app.state, "record_store", None)
    if store is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Record store is not configured"
        )
    return store


def _decode_body(body: str) -> Any:
    try:
        return json.loads(body)
    except (TypeError, json.JSONDecodeError):
        return body


# ============================================================================
# HEALTH
# ============================================================================

@router.get("/health", response_model=HealthResponse)
async def check_health(queue: SQSQueueClient = Depends(get_queue_client)) -> HealthResponse:
    return HealthResponse(
        status="healthy",
        timestamp=rfc3339_now(),
        queue_url=queue.queue_url,
    )


# ============================================================================
# QUEUE OPERATIONS
# ============================================================================

@router.post("/ingest", response_model=IngestResponse)
@limiter.limit(limit_param)
async def ingest_data(
    request: Request,
    data: Any = Body(...),
    queue: SQSQueueClient = Depends(get_queue_client),
) -> IngestResponse:
    """Wrap the JSON body in an envelope and enqueue it."""
    envelope = IngestEnvelope(
        id=str(int(time.time() * 1000)),
        timestamp=rfc3339_now(),
        data=data,
        source=settings.SERVICE_SOURCE,
    )
    try:
        message_id = await queue.publish_json(envelope.model_dump())
    except TransientError as e:
        logger.error(f"Error sending message to SQS: {e}")
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))

    return IngestResponse(success=True, message_id=message_id or "unknown", timestamp=rfc3339_now())


@router.get("/messages", response_model=MessageListResponse)
async def list_messages(queue: SQSQueueClient = Depends(get_queue_client)) -> MessageListResponse:
    """Receive up to 10 messages without deleting them."""
    try:
        messages = await queue.receive(
            max_messages=10,
            wait_time_seconds=settings.ADMIN_PEEK_WAIT_SECONDS,
        )
    except TransientError as e:
        logger.error(f"Error receiving messages from SQS: {e}")
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))

    return MessageListResponse(
        count=len(messages),
        messages=[
            QueuedMessage(
                message_id=m.message_id,
                body=_decode_body(m.body),
                receipt_handle=m.receipt_handle,
            )
            for m in messages
        ],
    )


@router.delete("/messages/{receipt_handle:path}", response_model=DeleteResponse)
async def delete_message(
    receipt_handle: str,
    queue: SQSQueueClient = Depends(get_queue_client),
) -> DeleteResponse:
    try:
        await queue.delete(receipt_handle)
    except TransientError as e:
        logger.error(f"Error deleting message from SQS: {e}")
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))

    logger.info("Message deleted via admin route")
    return DeleteResponse()


# ============================================================================
# RECORD STORE VIEWS
# ============================================================================

@router.get("/stats", response_model=ProcessingStats)
async def get_stats(store: RecordStore = Depends(get_record_store)) -> ProcessingStats:
    try:
        return await store.stats()
    except TransientError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))


@router.get("/records/recent", response_model=OutcomeListResponse)
async def get_recent_records(
    limit: int = Query(10, ge=1, le=100),
    store: RecordStore = Depends(get_record_store),
) -> OutcomeListResponse:
    try:
        docs = await store.recent(limit)
    except TransientError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))
    return OutcomeListResponse(count=len(docs), records=[OutcomeRecord.from_document(d) for d in docs])


@router.get("/records/message/{message_id}", response_model=OutcomeListResponse)
async def get_records_by_message(
    message_id: str,
    store: RecordStore = Depends(get_record_store),
) -> OutcomeListResponse:
    try:
        docs = await store.find_by_message_id(message_id)
    except TransientError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))
    return OutcomeListResponse(count=len(docs), records=[OutcomeRecord.from_document(d) for d in docs])


@router.get("/records/source/{source_key:path}", response_model=OutcomeListResponse)
async def get_records_by_source(
    source_key: str,
    store: RecordStore = Depends(get_record_store),
) -> OutcomeListResponse:
    try:
        docs = await store.find_by_source_key(source_key)
    except TransientError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))
    return OutcomeListResponse(count=len(docs), records=[OutcomeRecord.from_document(d) for d in docs])
