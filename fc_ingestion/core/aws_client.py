# core/aws_client.py
"""
Centralized AWS client factory.
Clients are created once at startup and shared across message handlers;
boto3 low-level clients are safe to use from multiple threads.
"""
from typing import Any, Dict, Optional

import boto3
from botocore.config import Config

from fc_ingestion.core.config import Settings, settings as default_settings
from fc_ingestion.core.logger import logger


def _client_config(cfg: Settings, read_timeout: Optional[int] = None) -> Config:
    """Standard-mode retries cover throttling and transient network errors."""
    kwargs: Dict[str, Any] = {
        "region_name": cfg.AWS_REGION,
        "retries": {"max_attempts": cfg.AWS_MAX_ATTEMPTS, "mode": "standard"},
        "max_pool_connections": 50,
    }
    if read_timeout is not None:
        kwargs["read_timeout"] = read_timeout
    return Config(**kwargs)


def _credential_kwargs(cfg: Settings) -> Dict[str, Optional[str]]:
    # None values fall back to boto3's default credential chain (IAM role, profile)
    return {
        "aws_access_key_id": cfg.AWS_ACCESS_KEY_ID,
        "aws_secret_access_key": cfg.AWS_SECRET_ACCESS_KEY,
        "aws_session_token": cfg.AWS_SESSION_TOKEN,
    }


def get_s3_client(cfg: Optional[Settings] = None):
    """Get S3 client with proper credentials."""
    cfg = cfg or default_settings
    try:
        client = boto3.client(
            "s3",
            config=_client_config(cfg),
            **_credential_kwargs(cfg),
        )
        logger.info("S3 client initialized for region %s", cfg.AWS_REGION)
        return client
    except Exception as e:
        logger.error(f"Failed to initialize S3 client: {str(e)}")
        raise


def get_sqs_client(cfg: Optional[Settings] = None):
    """Get SQS client with proper credentials."""
    cfg = cfg or default_settings
    try:
        # read timeout must outlast the long-poll wait
        client = boto3.client(
            "sqs",
            config=_client_config(cfg, read_timeout=cfg.SQS_WAIT_TIME_SECONDS + 10),
            **_credential_kwargs(cfg),
        )
        logger.info("SQS client initialized for region %s", cfg.AWS_REGION)
        return client
    except Exception as e:
        logger.error(f"Failed to initialize SQS client: {str(e)}")
        raise


def validate_aws_credentials(cfg: Optional[Settings] = None) -> bool:
    """Report whether explicit AWS credentials are configured."""
    cfg = cfg or default_settings
    if not cfg.AWS_ACCESS_KEY_ID or not cfg.AWS_SECRET_ACCESS_KEY:
        logger.info(
            "No explicit AWS credentials in settings; using the default credential "
            "chain (task role, instance profile or AWS CLI profile)"
        )
        return False

    logger.info("Explicit AWS credentials found in settings")
    return True
