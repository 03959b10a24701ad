from typing import Any

from pydantic import BaseModel, Field

from chat_engine.messaging.models.message_attachment import AttachmentType


class AttachmentIn(BaseModel):
    """File reference to attach to a message being sent."""

    path: str = Field(..., min_length=1, max_length=500)
    type: AttachmentType = AttachmentType.FILE
    disk: str | None = None
    filename: str | None = Field(None, max_length=255)
    mime_type: str | None = Field(None, max_length=100)
    size: int | None = Field(None, ge=0)
    duration: int | None = Field(None, ge=0)
    width: int | None = Field(None, ge=0)
    height: int | None = Field(None, ge=0)
    thumbnail_path: str | None = None
    blurhash: str | None = Field(None, max_length=100)
    caption: str | None = None
    view_once: bool = False
    metadata: dict[str, Any] | None = None


class UploadedAttachment(BaseModel):
    """Result of storing an uploaded file, ready to be attached."""

    path: str
    disk: str
    filename: str
    mime_type: str | None
    size: int
    type: AttachmentType

    def to_attachment(self, **options: Any) -> AttachmentIn:
        return AttachmentIn(**{**self.model_dump(), **options})
