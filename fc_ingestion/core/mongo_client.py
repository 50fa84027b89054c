# core/mongo_client.py
"""
MongoDB client factory built on Motor.

One client (and its connection pool) is created at startup and shared by
every message handler. The Motor client connects lazily, so constructing it
never blocks; the first index or write operation opens the connection.
"""
from typing import Any, Optional

from motor.motor_asyncio import (
    AsyncIOMotorClient,
    AsyncIOMotorCollection,
    AsyncIOMotorDatabase,
)

from fc_ingestion.core.config import Settings, settings as default_settings
from fc_ingestion.core.exceptions import FatalConfigError
from fc_ingestion.core.logger import logger


class MongoClientManager:
    """
    Owns the Motor client lifecycle.

    Either builds its own client from settings or wraps one handed in
    (tests pass an in-memory client).
    """

    def __init__(
        self,
        cfg: Optional[Settings] = None,
        client: Optional[Any] = None,
    ):
        self._cfg = cfg or default_settings
        self._client: Optional[Any] = client

    def connect(self) -> AsyncIOMotorClient:
        """
        Create the client if needed. Idempotent.
        """
        if self._client is not None:
            return self._client

        if not self._cfg.MONGODB_URI:
            raise FatalConfigError("MONGODB_URI is not set")

        logger.info(
            "Initializing MongoDB client",
            extra={
                "database": self._cfg.MONGODB_DB_NAME,
                "max_pool_size": self._cfg.MONGODB_MAX_POOL_SIZE,
            },
        )
        self._client = AsyncIOMotorClient(
            self._cfg.MONGODB_URI,
            maxPoolSize=self._cfg.MONGODB_MAX_POOL_SIZE,
            serverSelectionTimeoutMS=self._cfg.MONGODB_SERVER_SELECTION_TIMEOUT_MS,
            socketTimeoutMS=self._cfg.MONGODB_SOCKET_TIMEOUT_MS,
            retryWrites=True,
        )
        return self._client

    @property
    def database(self) -> AsyncIOMotorDatabase:
        return self.connect()[self._cfg.MONGODB_DB_NAME]

    @property
    def collection(self) -> AsyncIOMotorCollection:
        return self.database[self._cfg.MONGODB_COLLECTION_NAME]

    def close(self) -> None:
        """
        Close the client (called on shutdown).
        """
        if self._client is not None:
            self._client.close()
            self._client = None
            logger.info("MongoDB client closed")
