# schemas/sqs_models.py
from enum import Enum
from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Dict, Literal, Optional


class MessageKind(str, Enum):
    """Dispatch paths selected by the envelope's `type` discriminator"""
    S3_FILE = "s3_file"
    DIRECT_DATA = "direct_data"
    LEGACY = "legacy"


class S3FileMessage(BaseModel):
    model_config = ConfigDict(extra="allow")

    type: Literal["s3_file"] = "s3_file"
    key: str = Field(..., min_length=1)
    metadata: Dict[str, Any] = Field(default_factory=dict)


class DirectDataMessage(BaseModel):
    model_config = ConfigDict(extra="allow")

    type: Literal["direct_data"] = "direct_data"
    data: Any = None


class QueueMessage(BaseModel):
    """A message as delivered by SQS, before its body is classified."""
    message_id: str
    receipt_handle: str
    body: str
    attributes: Dict[str, str] = Field(default_factory=dict)

    @classmethod
    def from_sqs(cls, raw: Dict[str, Any]) -> "QueueMessage":
        """Build from one entry of a ReceiveMessage response."""
        return cls(
            message_id=raw.get("MessageId", ""),
            receipt_handle=raw.get("ReceiptHandle", ""),
            body=raw.get("Body") or "",
            attributes=raw.get("Attributes") or {},
        )

    @property
    def group_id(self) -> Optional[str]:
        return self.attributes.get("MessageGroupId")

    @property
    def receive_count(self) -> int:
        try:
            return int(self.attributes.get("ApproximateReceiveCount", "0"))
        except ValueError:
            return 0


class IngestEnvelope(BaseModel):
    """Envelope published by the admin /ingest endpoint."""
    id: str
    timestamp: str
    data: Any
    source: str
