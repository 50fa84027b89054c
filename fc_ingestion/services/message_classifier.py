# services/message_classifier.py
"""
Message classification: parse the envelope body and pick a handling path.

    {"type": "s3_file", "key": "..."}   -> S3 file path
    {"type": "direct_data", "data": ...} -> direct path, source_key "direct_message"
    anything else                        -> legacy path, source_key "legacy_message"
"""
import json
from typing import Any, Awaitable, Dict, Optional, Protocol

from pydantic import BaseModel, Field, ValidationError

from fc_ingestion.core.exceptions import MalformedPayloadError
from fc_ingestion.schemas.sqs_models import DirectDataMessage, MessageKind, S3FileMessage

DIRECT_SOURCE_KEY = "direct_message"
LEGACY_SOURCE_KEY = "legacy_message"


class ClassifiedMessage(BaseModel):
    kind: MessageKind
    source_key: str
    key: Optional[str] = None
    data: Any = None
    metadata: Dict[str, Any] = Field(default_factory=dict)


class MessageHandlers(Protocol):
    """Handling paths a classified message is dispatched to."""

    def handle_s3_file(
        self, key: str, message_id: str, metadata: Dict[str, Any]
    ) -> Awaitable[Any]:
        ...

    def handle_direct_data(self, data: Any, message_id: str) -> Awaitable[Any]:
        ...

    def handle_legacy(self, data: Any, message_id: str) -> Awaitable[Any]:
        ...


class MessageClassifier:

    def classify(self, body: str) -> ClassifiedMessage:
        try:
            parsed = json.loads(body)
        except (TypeError, json.JSONDecodeError) as e:
            raise MalformedPayloadError(f"Message body is not valid JSON: {e}") from e

        msg_type = parsed.get("type") if isinstance(parsed, dict) else None

        if msg_type == MessageKind.S3_FILE.value:
            fields = dict(parsed)
            # original producers send the key as s3Key
            if "key" not in fields and "s3Key" in fields:
                fields["key"] = fields["s3Key"]
            if not isinstance(fields.get("metadata"), dict):
                fields.pop("metadata", None)
            try:
                message = S3FileMessage.model_validate(fields)
            except ValidationError as e:
                raise MalformedPayloadError(
                    "s3_file message requires a non-empty string 'key'"
                ) from e
            return ClassifiedMessage(
                kind=MessageKind.S3_FILE,
                source_key=message.key,
                key=message.key,
                metadata=message.metadata,
            )

        if msg_type == MessageKind.DIRECT_DATA.value:
            message = DirectDataMessage.model_validate(parsed)
            return ClassifiedMessage(
                kind=MessageKind.DIRECT_DATA,
                source_key=DIRECT_SOURCE_KEY,
                data=message.data,
            )

        return ClassifiedMessage(
            kind=MessageKind.LEGACY,
            source_key=LEGACY_SOURCE_KEY,
            data=parsed,
        )

    async def classify_and_dispatch(
        self,
        body: str,
        message_id: str,
        handlers: MessageHandlers,
    ) -> Any:
        """Classify `body` and run the matching handler; handler errors propagate."""
        classified = self.classify(body)

        if classified.kind is MessageKind.S3_FILE:
            return await handlers.handle_s3_file(classified.key, message_id, classified.metadata)
        if classified.kind is MessageKind.DIRECT_DATA:
            return await handlers.handle_direct_data(classified.data, message_id)
        return await handlers.handle_legacy(classified.data, message_id)
