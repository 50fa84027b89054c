# schemas/request_models.py
from pydantic import BaseModel, Field
from typing import Any, Dict, List, Optional


class HealthResponse(BaseModel):
    status: str = "healthy"
    timestamp: str
    queue_url: str


class IngestResponse(BaseModel):
    success: bool = True
    message_id: str
    timestamp: str


class QueuedMessage(BaseModel):
    message_id: str
    body: Any = None
    receipt_handle: str


class MessageListResponse(BaseModel):
    count: int
    messages: List[QueuedMessage] = Field(default_factory=list)


class DeleteResponse(BaseModel):
    success: bool = True
    message: str = "Message deleted successfully"


class OutcomeRecord(BaseModel):
    """Outcome document as exposed over HTTP (Mongo `_id` rendered as `id`)."""
    id: Optional[str] = None
    source_key: str
    message_id: str
    record_index: int
    original_data: Any = None
    processed_data: Any = None
    processing_timestamp: Any = None
    status: str
    error_message: Optional[str] = None
    processing_time_ms: int
    created_at: Any = None
    updated_at: Any = None

    @classmethod
    def from_document(cls, doc: Dict[str, Any]) -> "OutcomeRecord":
        data = {k: v for k, v in doc.items() if k != "_id"}
        if "_id" in doc:
            data["id"] = str(doc["_id"])
        return cls(**data)


class OutcomeListResponse(BaseModel):
    count: int
    records: List[OutcomeRecord] = Field(default_factory=list)
