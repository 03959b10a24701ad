from typing import Literal

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ChatSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="CHAT_",
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )

    DATABASE_URL: str = "sqlite:///./chat_engine.db"

    # Celery broker/backend for the retention job
    REDIS_URL: str = "redis://localhost:6379/0"

    DEBUG: bool = False

    # Messages
    MESSAGES_IMMUTABLE: bool = True
    DELETION_MODE: Literal["soft", "hard", "hybrid"] = "soft"
    EDIT_TIME_LIMIT_MINUTES: int | None = None

    # Thread deduplication
    HASH_PARTICIPANTS: bool = True
    INCLUDE_ROLES_IN_HASH: bool = True
    ALLOW_DUPLICATE_THREADS: bool = False

    # Receipts
    TRACK_DELIVERIES: bool = True
    TRACK_READS: bool = True

    PRESENCE_ENABLED: bool = True

    # Payload encryption at rest (server-side, not end-to-end)
    ENCRYPTION_ENABLED: bool = False
    ENCRYPTION_DRIVER: str | None = None
    ENCRYPTION_KEY: str = ""

    # Retention thresholds in days; None means never purge that category
    RETENTION_DELETED_MESSAGES_DAYS: int | None = None
    RETENTION_DELIVERY_RECORDS_DAYS: int | None = None
    RETENTION_VERSIONS_DAYS: int | None = None
    RETENTION_SCHEDULE_HOUR: int = 3

    # Attachments
    ATTACHMENTS_MAX_PER_MESSAGE: int = 10
    ATTACHMENTS_DIR: str = "./uploads"
    ATTACHMENTS_FOLDER: str = "chat-attachments"
    ATTACHMENTS_BASE_URL: str = "http://localhost:8000/uploads"
    ATTACHMENTS_DELETE_FILES_ON_DELETE: bool = False

    # Storage backend: "local" for development, "s3" for any S3-compatible bucket
    STORAGE_BACKEND: Literal["local", "s3"] = "local"
    S3_ENDPOINT_URL: str | None = None
    S3_ACCESS_KEY_ID: str = ""
    S3_SECRET_ACCESS_KEY: str = ""
    S3_BUCKET_NAME: str = "chat-attachments"
    S3_PUBLIC_URL: str = ""
    S3_REGION: str = "auto"

    # Ordered pipe identifiers, e.g. ["sanitize_content", "encrypt_payload"]
    PIPELINE_PIPES: list[str] = []

    PROFANITY_WORDS: list[str] = []
    PROFANITY_REPLACEMENT: str = "*"
    PROFANITY_MODE: Literal["asterisk", "remove", "reject"] = "asterisk"

    @field_validator("EDIT_TIME_LIMIT_MINUTES", "ATTACHMENTS_MAX_PER_MESSAGE")
    @classmethod
    def _non_negative(cls, value: int | None) -> int | None:
        if value is not None and value < 0:
            raise ValueError("must not be negative")
        return value

    @property
    def encryption_driver_name(self) -> str:
        return self.ENCRYPTION_DRIVER or "none"


settings = ChatSettings()
