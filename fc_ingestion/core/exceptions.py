# core/exceptions.py
"""
Error taxonomy of the ingestion worker.

Recovery policy:
- TransientError, MalformedPayloadError, NotFoundError propagate to the
  message handler; the message is not deleted and the queue redelivers it
  until its receive count routes it to the DLQ.
- ProcessingError is caught per record and stored as an error outcome.
- FatalConfigError stops the worker before it starts polling.
"""
from typing import Optional


class IngestionError(Exception):
    """Base class for worker errors."""


class TransientError(IngestionError):
    """I/O failure against S3, SQS or MongoDB after client-side retries."""


class MalformedPayloadError(IngestionError):
    """Message body or S3 object could not be decoded into records."""


class NotFoundError(IngestionError):
    """Referenced S3 object does not exist."""

    def __init__(self, message: str, key: Optional[str] = None):
        super().__init__(message)
        self.key = key


class ProcessingError(IngestionError):
    """The record transform failed for a single record."""


class FatalConfigError(IngestionError):
    """Configuration cannot be resolved; the worker must not start."""
