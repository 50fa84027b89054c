# integrations/sqs_client.py
import asyncio
import json
import hashlib
from typing import Any, Dict, List, Optional

from botocore.exceptions import BotoCoreError, ClientError

from fc_ingestion.core.exceptions import TransientError
from fc_ingestion.core.logger import logger
from fc_ingestion.schemas.sqs_models import QueueMessage


class SQSQueueClient:
    """
    Thin async wrapper over a shared boto3 SQS client bound to one queue.
    """

    def __init__(self, sqs_client, queue_url: str):
        self._sqs = sqs_client
        self.queue_url = queue_url

    @property
    def is_fifo(self) -> bool:
        return self.queue_url.endswith(".fifo")

    async def receive(
        self,
        max_messages: int = 10,
        wait_time_seconds: int = 20,
    ) -> List[QueueMessage]:
        """Long-poll for up to `max_messages` messages."""
        params: Dict[str, Any] = {
            "QueueUrl": self.queue_url,
            "MaxNumberOfMessages": max_messages,
            "WaitTimeSeconds": wait_time_seconds,
            "AttributeNames": ["All"],
            "MessageAttributeNames": ["All"],
        }
        try:
            resp = await asyncio.to_thread(self._sqs.receive_message, **params)
        except (ClientError, BotoCoreError) as e:
            raise TransientError(f"SQS ReceiveMessage failed: {e}") from e

        return [QueueMessage.from_sqs(m) for m in resp.get("Messages", [])]

    async def delete(self, receipt_handle: str) -> None:
        """Acknowledge a message. The handle is only valid inside its visibility window."""
        try:
            await asyncio.to_thread(
                self._sqs.delete_message,
                QueueUrl=self.queue_url,
                ReceiptHandle=receipt_handle,
            )
        except (ClientError, BotoCoreError) as e:
            raise TransientError(f"SQS DeleteMessage failed: {e}") from e

    async def publish_json(
        self,
        envelope: Dict[str, Any],
        *,
        group_id: Optional[str] = None,
    ) -> str:
        """
        Publish a JSON message.
        Assumes body <= 256KB. Larger payloads belong in S3 behind an s3_file message.
        """
        body = json.dumps(envelope, separators=(",", ":"), ensure_ascii=False, default=str)
        params: Dict[str, Any] = {
            "QueueUrl": self.queue_url,
            "MessageBody": body,
            "MessageAttributes": {
                "content_type": {"DataType": "String", "StringValue": "application/json"},
            },
        }
        if self.is_fifo:
            params["MessageGroupId"] = group_id or str(envelope.get("source") or "default")
            params["MessageDeduplicationId"] = hashlib.sha256(body.encode("utf-8")).hexdigest()

        logger.debug("SQS publish body size=%d bytes", len(body))

        try:
            resp = await asyncio.to_thread(self._sqs.send_message, **params)
        except (ClientError, BotoCoreError) as e:
            raise TransientError(f"SQS SendMessage failed: {e}") from e

        msg_id = resp.get("MessageId", "")
        logger.info("SQS publish ok msg_id=%s", msg_id)
        return msg_id
