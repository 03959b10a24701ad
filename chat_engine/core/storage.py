import os
import uuid
from pathlib import Path
from typing import Protocol

import boto3
from botocore.config import Config as BotoConfig
from botocore.exceptions import ClientError

from chat_engine.core.config import ChatSettings
from chat_engine.core.config import settings as default_settings


class FileStore(Protocol):
    def store(self, file_content: bytes, path: str) -> str:
        """Store file content and return the stored path/key."""
        ...

    def url(self, path: str) -> str:
        """Return a public or signed URL for the file."""
        ...

    def delete(self, path: str) -> bool:
        """Delete a file by its path/key, returning whether anything was removed."""
        ...

    def exists(self, path: str) -> bool:
        """Check if a file exists."""
        ...


class LocalFileStore:
    """Local filesystem storage for development."""

    def __init__(self, base_dir: str, base_url: str) -> None:
        self._base_dir = Path(base_dir)
        self._base_url = base_url.rstrip("/")

    def store(self, file_content: bytes, path: str) -> str:
        full_path = self._resolve_safe_path(path)
        full_path.parent.mkdir(parents=True, exist_ok=True)
        with open(full_path, "wb") as f:
            f.write(file_content)
        return path

    def url(self, path: str) -> str:
        return f"{self._base_url}/{path}"

    def _resolve_safe_path(self, path: str) -> Path:
        """Resolve path and validate it stays within base directory."""
        base_resolved = self._base_dir.resolve()
        full_path = (self._base_dir / path).resolve()
        if (
            not str(full_path).startswith(str(base_resolved) + os.sep)
            and full_path != base_resolved
        ):
            raise ValueError(f"Path traversal attempt detected: {path}")
        return full_path

    def delete(self, path: str) -> bool:
        full_path = self._resolve_safe_path(path)
        if full_path.exists():
            full_path.unlink()
            return True
        return False

    def exists(self, path: str) -> bool:
        return self._resolve_safe_path(path).exists()


class S3FileStore:
    """S3-compatible object storage (AWS S3, Cloudflare R2, MinIO)."""

    def __init__(self, settings: ChatSettings) -> None:
        self._client = boto3.client(
            "s3",
            endpoint_url=settings.S3_ENDPOINT_URL,
            aws_access_key_id=settings.S3_ACCESS_KEY_ID,
            aws_secret_access_key=settings.S3_SECRET_ACCESS_KEY,
            config=BotoConfig(
                signature_version="s3v4",
                retries={"max_attempts": 3, "mode": "standard"},
            ),
            region_name=settings.S3_REGION,
        )
        self._bucket = settings.S3_BUCKET_NAME
        self._public_url = settings.S3_PUBLIC_URL.rstrip("/")

    def store(self, file_content: bytes, path: str) -> str:
        self._client.put_object(Bucket=self._bucket, Key=path, Body=file_content)
        return path

    def url(self, path: str) -> str:
        if self._public_url:
            return f"{self._public_url}/{path}"
        url: str = self._client.generate_presigned_url(
            "get_object",
            Params={"Bucket": self._bucket, "Key": path},
            ExpiresIn=3600,
        )
        return url

    def delete(self, path: str) -> bool:
        if not self.exists(path):
            return False
        self._client.delete_object(Bucket=self._bucket, Key=path)
        return True

    def exists(self, path: str) -> bool:
        try:
            self._client.head_object(Bucket=self._bucket, Key=path)
            return True
        except ClientError:
            return False


def get_file_store(settings: ChatSettings | None = None) -> FileStore:
    settings = settings or default_settings
    if settings.STORAGE_BACKEND == "s3":
        return S3FileStore(settings)
    return LocalFileStore(settings.ATTACHMENTS_DIR, settings.ATTACHMENTS_BASE_URL)


def generate_unique_filename(original_filename: str) -> str:
    extension = Path(original_filename).suffix
    return f"{uuid.uuid4()}{extension}"
