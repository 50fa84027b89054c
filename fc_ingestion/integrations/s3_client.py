# integrations/s3_client.py
"""
Object fetcher: reads JSON record files from S3.

boto3 is blocking, so every call is pushed to a worker thread with
asyncio.to_thread and the event loop keeps serving other handlers.
"""
import asyncio
import json
from typing import Any, List, Optional

from botocore.exceptions import BotoCoreError, ClientError

from fc_ingestion.core.exceptions import (
    FatalConfigError,
    MalformedPayloadError,
    NotFoundError,
    TransientError,
)
from fc_ingestion.core.logger import logger
from fc_ingestion.schemas.outcome_models import FileInfo

_NOT_FOUND_CODES = {"404", "NoSuchKey", "NotFound"}


def _is_not_found(error: ClientError) -> bool:
    code = str(error.response.get("Error", {}).get("Code", ""))
    status = error.response.get("ResponseMetadata", {}).get("HTTPStatusCode")
    return code in _NOT_FOUND_CODES or status == 404


def normalize_records(payload: Any) -> List[Any]:
    """
    Turn a parsed JSON document into a record list.

    - a JSON array is the record list
    - an object with a `records` array yields that array
    - an object with a `data` array yields that array
    - anything else is a single record
    """
    if isinstance(payload, list):
        return payload
    if isinstance(payload, dict):
        if isinstance(payload.get("records"), list):
            return payload["records"]
        if isinstance(payload.get("data"), list):
            return payload["data"]
    return [payload]


class S3ObjectFetcher:
    """Read-only access to the ingestion bucket."""

    def __init__(self, s3_client, bucket_name: Optional[str]):
        self._s3 = s3_client
        self.bucket_name = bucket_name or ""

    def _require_bucket(self) -> str:
        if not self.bucket_name:
            raise FatalConfigError("S3_BUCKET_NAME is not set; cannot process s3_file messages")
        return self.bucket_name

    @staticmethod
    def _require_key(key: str) -> None:
        if not isinstance(key, str) or not key:
            raise MalformedPayloadError("S3 key must be a non-empty string")

    async def fetch_records(self, key: str) -> List[Any]:
        """Download, decode and normalize the JSON records stored at `key`."""
        self._require_key(key)
        bucket = self._require_bucket()
        logger.info("Downloading JSON file from S3: s3://%s/%s", bucket, key)

        raw = await asyncio.to_thread(self._read_object, bucket, key)
        if not raw:
            raise MalformedPayloadError(f"Empty S3 object: {key}")

        try:
            text = raw.decode("utf-8")
        except UnicodeDecodeError as e:
            raise MalformedPayloadError(f"S3 object {key} is not valid UTF-8: {e}") from e

        if not text.strip():
            raise MalformedPayloadError(f"Empty S3 object: {key}")

        try:
            payload = json.loads(text)
        except json.JSONDecodeError as e:
            raise MalformedPayloadError(f"S3 object {key} is not valid JSON: {e}") from e

        records = normalize_records(payload)
        logger.info("Parsed %d records from %s (%d bytes)", len(records), key, len(raw))
        return records

    def _read_object(self, bucket: str, key: str) -> bytes:
        try:
            response = self._s3.get_object(Bucket=bucket, Key=key)
        except ClientError as e:
            if _is_not_found(e):
                raise NotFoundError(f"S3 file not found: {key}", key=key) from e
            raise TransientError(f"S3 GetObject failed for {key}: {e}") from e
        except BotoCoreError as e:
            raise TransientError(f"S3 GetObject failed for {key}: {e}") from e

        body = response.get("Body")
        if body is None:
            return b""
        try:
            return body.read()
        except BotoCoreError as e:
            raise TransientError(f"S3 read interrupted for {key}: {e}") from e
        finally:
            body.close()

    async def exists(self, key: str) -> bool:
        """HeadObject lookup; False only when S3 reports the object missing."""
        self._require_key(key)
        bucket = self._require_bucket()
        try:
            await asyncio.to_thread(self._s3.head_object, Bucket=bucket, Key=key)
            return True
        except ClientError as e:
            if _is_not_found(e):
                return False
            raise TransientError(f"S3 HeadObject failed for {key}: {e}") from e
        except BotoCoreError as e:
            raise TransientError(f"S3 HeadObject failed for {key}: {e}") from e

    async def stat(self, key: str) -> FileInfo:
        self._require_key(key)
        bucket = self._require_bucket()
        try:
            head = await asyncio.to_thread(self._s3.head_object, Bucket=bucket, Key=key)
        except ClientError as e:
            if _is_not_found(e):
                raise NotFoundError(f"S3 file not found: {key}", key=key) from e
            raise TransientError(f"S3 HeadObject failed for {key}: {e}") from e
        except BotoCoreError as e:
            raise TransientError(f"S3 HeadObject failed for {key}: {e}") from e

        return FileInfo(
            key=key,
            bucket=bucket,
            size=head.get("ContentLength"),
            last_modified=head.get("LastModified"),
            content_type=head.get("ContentType"),
            etag=(head.get("ETag") or "").strip('"') or None,
        )
