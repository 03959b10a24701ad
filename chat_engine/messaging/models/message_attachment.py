import enum
import uuid
from datetime import datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from chat_engine.core.datetime_utils import utc_now
from chat_engine.db.session import Base

if TYPE_CHECKING:
    from chat_engine.messaging.models.message import Message


class AttachmentType(str, enum.Enum):
    IMAGE = "image"
    VIDEO = "video"
    AUDIO = "audio"
    FILE = "file"

    def has_duration(self) -> bool:
        return self in (AttachmentType.VIDEO, AttachmentType.AUDIO)

    def has_dimensions(self) -> bool:
        return self in (AttachmentType.IMAGE, AttachmentType.VIDEO)

    def supports_blurhash(self) -> bool:
        return self in (AttachmentType.IMAGE, AttachmentType.VIDEO)

    def mime_type_prefixes(self) -> list[str]:
        # FILE accepts any MIME type
        if self is AttachmentType.FILE:
            return []
        return [f"{self.value}/"]

    @classmethod
    def from_mime_type(cls, mime_type: str | None) -> "AttachmentType":
        if not mime_type:
            return cls.FILE
        for candidate in (cls.IMAGE, cls.VIDEO, cls.AUDIO):
            if mime_type.startswith(f"{candidate.value}/"):
                return candidate
        return cls.FILE


class MessageAttachment(Base):
    __tablename__ = "message_attachments"
    __table_args__ = (Index("ix_message_attachments_message_order", "message_id", "order"),)

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4, index=True)
    message_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("messages.id", ondelete="CASCADE"))
    type: Mapped[str] = mapped_column(String(20), default=AttachmentType.FILE.value)
    disk: Mapped[str] = mapped_column(String(50), default="local")
    path: Mapped[str] = mapped_column(String(500))
    filename: Mapped[str | None] = mapped_column(String(255), nullable=True, default=None)
    mime_type: Mapped[str | None] = mapped_column(String(100), nullable=True, default=None)
    size: Mapped[int | None] = mapped_column(Integer, nullable=True, default=None)
    duration: Mapped[int | None] = mapped_column(Integer, nullable=True, default=None)
    width: Mapped[int | None] = mapped_column(Integer, nullable=True, default=None)
    height: Mapped[int | None] = mapped_column(Integer, nullable=True, default=None)
    thumbnail_path: Mapped[str | None] = mapped_column(String(500), nullable=True, default=None)
    blurhash: Mapped[str | None] = mapped_column(String(100), nullable=True, default=None)
    caption: Mapped[str | None] = mapped_column(Text, nullable=True, default=None)
    view_once: Mapped[bool] = mapped_column(Boolean, default=False)
    viewed_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True, default=None)
    meta: Mapped[dict[str, Any] | None] = mapped_column(
        "metadata", JSON, nullable=True, default=None
    )
    order: Mapped[int] = mapped_column(Integer, default=0)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now, onupdate=utc_now)

    message: Mapped["Message"] = relationship(back_populates="attachments")

    @property
    def type_enum(self) -> AttachmentType:
        return AttachmentType(self.type)

    @property
    def is_consumed(self) -> bool:
        return self.view_once and self.viewed_at is not None

    def is_accessible(self) -> bool:
        if not self.view_once:
            return True
        return self.viewed_at is None

    @property
    def human_size(self) -> str:
        if not self.size:
            return "Unknown"

        units = ["B", "KB", "MB", "GB"]
        size = float(self.size)
        unit = 0
        while size >= 1024 and unit < len(units) - 1:
            size /= 1024
            unit += 1

        return f"{round(size, 2):g} {units[unit]}"

    @property
    def human_duration(self) -> str | None:
        if not self.duration:
            return None
        minutes, seconds = divmod(self.duration, 60)
        return f"{minutes}:{seconds:02d}"
