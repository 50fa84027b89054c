# core/config.py
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field
from typing import Optional, Dict, List


class Settings(BaseSettings):
    """
    Centralized worker configuration.
    Values come from the environment (or a local .env file).
    """

    # ------------------------------------------------------------
    # Project / Runtime
    # ------------------------------------------------------------
    PROJECT_NAME: str = "FC Ingestion Service"
    NODE_ENV: str = Field(
        default="development",
        description="Runtime environment hint; 'development' turns on DEBUG logging"
    )
    DEBUG: bool = False

    # ------------------------------------------------------------
    # AWS Core
    # ------------------------------------------------------------
    AWS_REGION: str = "eu-west-1"
    AWS_ACCESS_KEY_ID: Optional[str] = None
    AWS_SECRET_ACCESS_KEY: Optional[str] = None
    AWS_SESSION_TOKEN: Optional[str] = None
    AWS_MAX_ATTEMPTS: int = Field(
        default=3,
        description="botocore standard-mode retry attempts for S3 and SQS calls"
    )

    # ------------------------------------------------------------
    # Messaging (SQS)
    # ------------------------------------------------------------
    QUEUE_URL: Optional[str] = None
    SQS_MAX_MESSAGES: int = Field(default=10, ge=1, le=10)
    SQS_WAIT_TIME_SECONDS: int = Field(default=20, ge=0, le=20)

    """
    Visibility window configured on the queue. The worker does not set it,
    it only uses it to warn when a message is likely to outlive it.
    """
    SQS_VISIBILITY_TIMEOUT_SECONDS: int = 250

    """
    Handle messages of the same MessageGroupId one after another within a batch
    """
    SQS_SERIALIZE_MESSAGE_GROUPS: bool = False

    POLL_IDLE_DELAY_SECONDS: float = 1.0
    POLL_ERROR_DELAY_SECONDS: float = 5.0

    # ------------------------------------------------------------
    # S3 Storage
    # ------------------------------------------------------------
    S3_BUCKET_NAME: Optional[str] = None

    # ------------------------------------------------------------
    # Persistence (MongoDB)
    # ------------------------------------------------------------
    MONGODB_URI: Optional[str] = None
    MONGODB_DB_NAME: str = "fc-ingestion"
    MONGODB_COLLECTION_NAME: str = "processed_data"
    MONGODB_MAX_POOL_SIZE: int = 10
    MONGODB_SERVER_SELECTION_TIMEOUT_MS: int = 5000
    MONGODB_SOCKET_TIMEOUT_MS: int = 45000

    # ------------------------------------------------------------
    # Record processing
    # ------------------------------------------------------------
    PROCESSOR_WORK_DELAY_MS: int = Field(
        default=0,
        ge=0,
        description="Simulated per-record work time in milliseconds"
    )
    RECORD_CONCURRENCY: int = Field(
        default=1,
        ge=1,
        description="Records of one S3 file processed in parallel (1 = sequential)"
    )

    # ------------------------------------------------------------
    # Admin HTTP surface
    # ------------------------------------------------------------
    ADMIN_RATE_LIMIT_PER_MIN: str = "60"
    ADMIN_PEEK_WAIT_SECONDS: int = Field(default=1, ge=0, le=20)
    ADMIN_HOST: str = "0.0.0.0"
    ADMIN_PORT: int = 8000
    SERVICE_SOURCE: str = "fc-ingestion-admin"

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    @property
    def debug_enabled(self) -> bool:
        return self.DEBUG or self.NODE_ENV.lower() == "development"

    def missing_required(self) -> List[str]:
        """Names of required variables that are not set."""
        required = {
            "QUEUE_URL": self.QUEUE_URL,
            "MONGODB_URI": self.MONGODB_URI,
        }
        return [name for name, value in required.items() if not value]

    def startup_summary(self) -> Dict[str, str]:
        """
        Which variables are set, without leaking secret values.
        """
        return {
            "environment": self.NODE_ENV,
            "queue_url": self.QUEUE_URL or "not set",
            "s3_bucket": self.S3_BUCKET_NAME or "not set",
            "mongodb_uri": "configured" if self.MONGODB_URI else "not set",
            "mongodb_database": self.MONGODB_DB_NAME,
            "aws_region": self.AWS_REGION,
            "aws_credentials": "explicit" if self.AWS_ACCESS_KEY_ID else "default chain",
            "record_concurrency": str(self.RECORD_CONCURRENCY),
            "serialize_message_groups": str(self.SQS_SERIALIZE_MESSAGE_GROUPS).lower(),
        }


settings = Settings()
