from contextlib import asynccontextmanager

from fastapi import FastAPI

from fc_ingestion.core.aws_client import get_sqs_client
from fc_ingestion.core.config import settings
from fc_ingestion.core.logger import logger
from fc_ingestion.core.mongo_client import MongoClientManager
from fc_ingestion.integrations.sqs_client import SQSQueueClient
from fc_ingestion.services.data_service import RecordStore


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Builds the queue client and record store shared by the admin routes.
    The record store is only wired when MONGODB_URI is configured.
    """
    app.state.queue_client = SQSQueueClient(get_sqs_client(settings), settings.QUEUE_URL or "")

    mongo = None
    if settings.MONGODB_URI:
        mongo = MongoClientManager(settings)
        app.state.record_store = RecordStore(mongo.collection)
    else:
        logger.warning("MONGODB_URI not set; record store routes are disabled")
        app.state.record_store = None

    logger.info("Lifespan startup: Ready to serve requests.")
    yield

    if mongo is not None:
        mongo.close()
    logger.info("Lifespan shutdown.")
