# bootstrap.py
"""
Worker startup: validate configuration, construct the shared clients once,
wire them into the worker and run the polling loop until SIGINT/SIGTERM.

Exit codes: 0 on clean shutdown, 1 when configuration cannot be resolved.
"""
import asyncio
import signal
import sys
from typing import Optional

from fc_ingestion.core.aws_client import get_s3_client, get_sqs_client, validate_aws_credentials
from fc_ingestion.core.config import Settings, settings as default_settings
from fc_ingestion.core.exceptions import FatalConfigError
from fc_ingestion.core.logger import logger
from fc_ingestion.core.mongo_client import MongoClientManager
from fc_ingestion.integrations.s3_client import S3ObjectFetcher
from fc_ingestion.integrations.sqs_client import SQSQueueClient
from fc_ingestion.services.data_service import RecordStore
from fc_ingestion.services.ingestion_service import IngestionService
from fc_ingestion.services.message_classifier import MessageClassifier
from fc_ingestion.services.record_processor import RecordProcessor
from fc_ingestion.workers.sqs_worker import IngestionWorker


def log_startup_summary(cfg: Settings) -> None:
    logger.info(f"{cfg.PROJECT_NAME} starting...")
    for name, value in cfg.startup_summary().items():
        logger.info(f"  {name}: {value}")


def validate_settings(cfg: Settings) -> None:
    missing = cfg.missing_required()
    if missing:
        raise FatalConfigError(f"Missing required environment variables: {', '.join(missing)}")
    if not cfg.S3_BUCKET_NAME:
        logger.warning("S3_BUCKET_NAME is not set; s3_file messages will fail and go to the DLQ")


def build_worker(
    cfg: Settings,
    mongo: MongoClientManager,
    sqs_client=None,
    s3_client=None,
) -> IngestionWorker:
    """Construct every collaborator once and inject it into the worker."""
    queue = SQSQueueClient(sqs_client or get_sqs_client(cfg), cfg.QUEUE_URL)
    fetcher = S3ObjectFetcher(s3_client or get_s3_client(cfg), cfg.S3_BUCKET_NAME)
    store = RecordStore(mongo.collection)
    processor = RecordProcessor(work_delay_ms=cfg.PROCESSOR_WORK_DELAY_MS)

    service = IngestionService(
        fetcher=fetcher,
        processor=processor,
        store=store,
        record_concurrency=cfg.RECORD_CONCURRENCY,
        visibility_timeout_seconds=cfg.SQS_VISIBILITY_TIMEOUT_SECONDS,
    )
    return IngestionWorker(
        queue=queue,
        classifier=MessageClassifier(),
        service=service,
        max_messages=cfg.SQS_MAX_MESSAGES,
        wait_time_seconds=cfg.SQS_WAIT_TIME_SECONDS,
        idle_delay_seconds=cfg.POLL_IDLE_DELAY_SECONDS,
        error_delay_seconds=cfg.POLL_ERROR_DELAY_SECONDS,
        serialize_message_groups=cfg.SQS_SERIALIZE_MESSAGE_GROUPS,
    )


async def run_worker(cfg: Settings) -> None:
    mongo = MongoClientManager(cfg)
    try:
        worker = build_worker(cfg, mongo)
        await worker.service.store.ensure_indexes()

        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, worker.stop)
            except NotImplementedError:
                # Windows event loops have no signal handler support
                pass

        logger.info("Service started successfully - listening for SQS messages")
        await worker.run()
    finally:
        mongo.close()


def main(cfg: Optional[Settings] = None) -> int:
    cfg = cfg or default_settings
    log_startup_summary(cfg)

    try:
        validate_settings(cfg)
    except FatalConfigError as e:
        logger.error(f"Refusing to start: {e}")
        return 1

    validate_aws_credentials(cfg)
    asyncio.run(run_worker(cfg))
    logger.info("Worker shut down cleanly")
    return 0


def cli() -> None:
    sys.exit(main())
