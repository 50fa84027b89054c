"""Shared fixtures: in-memory S3 / SQS clients and a mongomock-backed store."""

import io
import json
from typing import Any, Dict, List, Optional

import pytest
from botocore.exceptions import ClientError
from botocore.response import StreamingBody
from mongomock_motor import AsyncMongoMockClient
from pymongo.errors import AutoReconnect

from fc_ingestion.integrations.s3_client import S3ObjectFetcher
from fc_ingestion.integrations.sqs_client import SQSQueueClient
from fc_ingestion.services.data_service import RecordStore
from fc_ingestion.services.ingestion_service import IngestionService
from fc_ingestion.services.message_classifier import MessageClassifier
from fc_ingestion.services.record_processor import RecordProcessor
from fc_ingestion.workers.sqs_worker import IngestionWorker

BUCKET = "fc-ingestion-test-bucket"
QUEUE_URL = "https://sqs.eu-west-1.amazonaws.com/123456789012/fc-ingestion-queue.fifo"


def client_error(code: str, status: int, operation: str) -> ClientError:
    return ClientError(
        {
            "Error": {"Code": code, "Message": code},
            "ResponseMetadata": {"HTTPStatusCode": status},
        },
        operation,
    )


class FakeS3Client:
    """Just enough of the boto3 S3 client for the object fetcher."""

    def __init__(self):
        self.objects: Dict[str, bytes] = {}
        self.fail_with: Optional[Exception] = None

    def put_json(self, key: str, payload: Any) -> None:
        self.objects[key] = json.dumps(payload).encode("utf-8")

    def get_object(self, Bucket: str, Key: str) -> Dict[str, Any]:
        if self.fail_with is not None:
            raise self.fail_with
        if Key not in self.objects:
            raise client_error("NoSuchKey", 404, "GetObject")
        data = self.objects[Key]
        return {"Body": StreamingBody(io.BytesIO(data), len(data)), "ContentLength": len(data)}

    def head_object(self, Bucket: str, Key: str) -> Dict[str, Any]:
        if self.fail_with is not None:
            raise self.fail_with
        if Key not in self.objects:
            # HeadObject has no body, so S3 only reports the bare status code
            raise client_error("404", 404, "HeadObject")
        return {
            "ContentLength": len(self.objects[Key]),
            "ContentType": "application/json",
            "ETag": '"abc123"',
        }


class FakeSQSClient:
    """In-memory queue: received messages stay until deleted, like a visibility timeout of 0."""

    def __init__(self):
        self.messages: List[Dict[str, Any]] = []
        self.deleted: List[str] = []
        self.sent: List[Dict[str, Any]] = []
        self.receive_calls: List[Dict[str, Any]] = []
        self.receive_errors: List[Exception] = []
        self.delete_error: Optional[Exception] = None
        self._counter = 0

    def add_message(
        self,
        body: Any,
        message_id: Optional[str] = None,
        group_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        self._counter += 1
        message_id = message_id or f"msg-{self._counter}"
        attributes = {"ApproximateReceiveCount": "0"}
        if group_id:
            attributes["MessageGroupId"] = group_id
        message = {
            "MessageId": message_id,
            "ReceiptHandle": f"rh-{message_id}-{self._counter}",
            "Body": body if isinstance(body, str) else json.dumps(body),
            "Attributes": attributes,
        }
        self.messages.append(message)
        return message

    def receive_message(self, **params) -> Dict[str, Any]:
        self.receive_calls.append(params)
        if self.receive_errors:
            raise self.receive_errors.pop(0)
        batch = self.messages[: params.get("MaxNumberOfMessages", 1)]
        for message in batch:
            count = int(message["Attributes"]["ApproximateReceiveCount"]) + 1
            message["Attributes"]["ApproximateReceiveCount"] = str(count)
        return {"Messages": [dict(m) for m in batch]} if batch else {}

    def delete_message(self, QueueUrl: str, ReceiptHandle: str) -> Dict[str, Any]:
        if self.delete_error is not None:
            raise self.delete_error
        self.deleted.append(ReceiptHandle)
        self.messages = [m for m in self.messages if m["ReceiptHandle"] != ReceiptHandle]
        return {}

    def send_message(self, **params) -> Dict[str, Any]:
        self.sent.append(params)
        return {"MessageId": f"sent-{len(self.sent)}"}


class FailingCollection:
    """Collection whose writes always fail, as during a MongoDB outage."""

    def __init__(self, error: Optional[Exception] = None):
        self.attempts = 0
        self.error = error or AutoReconnect("connection refused")

    async def insert_one(self, doc):
        self.attempts += 1
        raise self.error


def build_worker(
    sqs: FakeSQSClient,
    s3: FakeS3Client,
    collection,
    processor: Optional[RecordProcessor] = None,
    record_concurrency: int = 1,
    serialize_message_groups: bool = False,
) -> IngestionWorker:
    service = IngestionService(
        fetcher=S3ObjectFetcher(s3, BUCKET),
        processor=processor or RecordProcessor(),
        store=RecordStore(collection),
        record_concurrency=record_concurrency,
        visibility_timeout_seconds=250,
    )
    return IngestionWorker(
        queue=SQSQueueClient(sqs, QUEUE_URL),
        classifier=MessageClassifier(),
        service=service,
        wait_time_seconds=0,
        idle_delay_seconds=0.01,
        error_delay_seconds=0.01,
        serialize_message_groups=serialize_message_groups,
    )


@pytest.fixture
def s3_client():
    return FakeS3Client()


@pytest.fixture
def sqs_client():
    return FakeSQSClient()


@pytest.fixture
def collection():
    client = AsyncMongoMockClient()
    return client["fc-ingestion-test"]["processed_data"]


@pytest.fixture
def store(collection):
    return RecordStore(collection)


@pytest.fixture
def fetcher(s3_client):
    return S3ObjectFetcher(s3_client, BUCKET)
