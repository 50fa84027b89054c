# schemas/outcome_models.py
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field, model_validator


def utc_now() -> datetime:
    """
    Current UTC time truncated to milliseconds, as BSON stores it.
    Naive, matching what pymongo returns for stored dates.
    """
    now = datetime.now(timezone.utc).replace(tzinfo=None)
    return now.replace(microsecond=(now.microsecond // 1000) * 1000)


def rfc3339_now() -> str:
    """UTC timestamp with millisecond precision, e.g. 2024-05-01T12:00:00.123Z"""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class OutcomeStatus(str, Enum):
    SUCCESS = "success"
    ERROR = "error"


class ProcessingOutcome(BaseModel):
    """
    Disposition of one record, as handed to the record store.

    Exactly one is built per record routed to the processor, whether the
    transform succeeded or not.
    """
    source_key: str = Field(..., min_length=1)
    message_id: str
    record_index: int = Field(..., ge=0)
    original_data: Any
    processed_data: Any = None
    processing_timestamp: datetime = Field(default_factory=utc_now)
    status: OutcomeStatus
    error_message: Optional[str] = None
    processing_time_ms: int = Field(..., ge=0)

    @model_validator(mode="after")
    def _error_message_iff_error(self) -> "ProcessingOutcome":
        if self.status is OutcomeStatus.ERROR:
            if not self.error_message:
                raise ValueError("error outcomes require a non-empty error_message")
            if self.processed_data is not None:
                raise ValueError("error outcomes must not carry processed_data")
        elif self.error_message is not None:
            raise ValueError("error_message is only allowed on error outcomes")
        return self

    @classmethod
    def success(
        cls,
        *,
        source_key: str,
        message_id: str,
        record_index: int,
        original_data: Any,
        processed_data: Any,
        processing_time_ms: int,
    ) -> "ProcessingOutcome":
        return cls(
            source_key=source_key,
            message_id=message_id,
            record_index=record_index,
            original_data=original_data,
            processed_data=processed_data,
            status=OutcomeStatus.SUCCESS,
            processing_time_ms=processing_time_ms,
        )

    @classmethod
    def failure(
        cls,
        *,
        source_key: str,
        message_id: str,
        record_index: int,
        original_data: Any,
        error_message: str,
        processing_time_ms: int,
    ) -> "ProcessingOutcome":
        return cls(
            source_key=source_key,
            message_id=message_id,
            record_index=record_index,
            original_data=original_data,
            processed_data=None,
            status=OutcomeStatus.ERROR,
            error_message=error_message or "record processing failed",
            processing_time_ms=processing_time_ms,
        )

    def to_document(self) -> Dict[str, Any]:
        doc = self.model_dump(mode="python")
        doc["status"] = self.status.value
        if self.error_message is None:
            doc.pop("error_message")
        return doc


class ProcessingStats(BaseModel):
    total: int = 0
    successes: int = 0
    errors: int = 0
    avg_processing_time_ms: float = 0.0


class FileInfo(BaseModel):
    """HeadObject summary of an S3 object."""
    key: str
    bucket: str
    size: Optional[int] = None
    last_modified: Optional[datetime] = None
    content_type: Optional[str] = None
    etag: Optional[str] = None
