import enum
import uuid
from datetime import datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from chat_engine.core.datetime_utils import utc_now
from chat_engine.db.session import Base
from chat_engine.messaging.actors import ActorRef

if TYPE_CHECKING:
    from chat_engine.messaging.models.message_attachment import MessageAttachment
    from chat_engine.messaging.models.message_deletion import MessageDeletion
    from chat_engine.messaging.models.message_delivery import MessageDelivery
    from chat_engine.messaging.models.message_reaction import MessageReaction
    from chat_engine.messaging.models.message_save import MessageSave
    from chat_engine.messaging.models.message_version import MessageVersion
    from chat_engine.messaging.models.thread import Thread


class MessageType(str, enum.Enum):
    TEXT = "text"
    IMAGE = "image"
    VIDEO = "video"
    AUDIO = "audio"
    FILE = "file"
    LOCATION = "location"
    CONTACT = "contact"
    SYSTEM = "system"
    CUSTOM = "custom"


class DeletionMode(str, enum.Enum):
    SOFT = "soft"
    HARD = "hard"
    HYBRID = "hybrid"

    def allows_soft_delete(self) -> bool:
        return self in (DeletionMode.SOFT, DeletionMode.HYBRID)

    def allows_hard_delete(self) -> bool:
        return self in (DeletionMode.HARD, DeletionMode.HYBRID)


class Message(Base):
    __tablename__ = "messages"
    __table_args__ = (
        Index("ix_messages_thread_created", "thread_id", "created_at"),
        Index("ix_messages_sender", "sender_type", "sender_id"),
        Index("ix_messages_deleted_at", "deleted_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4, index=True)
    thread_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("threads.id", ondelete="CASCADE"))

    sender_type: Mapped[str] = mapped_column(String(100))
    sender_id: Mapped[str] = mapped_column(String(64))
    author_type: Mapped[str | None] = mapped_column(String(100), nullable=True, default=None)
    author_id: Mapped[str | None] = mapped_column(String(64), nullable=True, default=None)

    type: Mapped[str] = mapped_column(String(20), default=MessageType.TEXT.value)
    payload: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict)

    encrypted: Mapped[bool] = mapped_column(Boolean, default=False)
    encryption_driver: Mapped[str | None] = mapped_column(String(50), nullable=True, default=None)

    deleted_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True, default=None)
    deleted_by_type: Mapped[str | None] = mapped_column(String(100), nullable=True, default=None)
    deleted_by_id: Mapped[str | None] = mapped_column(String(64), nullable=True, default=None)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now)

    thread: Mapped["Thread"] = relationship(back_populates="messages")
    versions: Mapped[list["MessageVersion"]] = relationship(
        back_populates="message",
        cascade="all, delete-orphan",
        order_by="MessageVersion.sequence",
    )
    deliveries: Mapped[list["MessageDelivery"]] = relationship(
        back_populates="message", cascade="all, delete-orphan"
    )
    deletions: Mapped[list["MessageDeletion"]] = relationship(
        back_populates="message", cascade="all, delete-orphan"
    )
    attachments: Mapped[list["MessageAttachment"]] = relationship(
        back_populates="message",
        cascade="all, delete-orphan",
        order_by="MessageAttachment.order",
    )
    reactions: Mapped[list["MessageReaction"]] = relationship(
        back_populates="message", cascade="all, delete-orphan"
    )
    saves: Mapped[list["MessageSave"]] = relationship(
        back_populates="message", cascade="all, delete-orphan"
    )

    @property
    def sender(self) -> ActorRef:
        return ActorRef(self.sender_type, self.sender_id)

    @property
    def author(self) -> ActorRef | None:
        if self.author_type is None or self.author_id is None:
            return None
        return ActorRef(self.author_type, self.author_id)

    @property
    def deleted_by(self) -> ActorRef | None:
        if self.deleted_by_type is None or self.deleted_by_id is None:
            return None
        return ActorRef(self.deleted_by_type, self.deleted_by_id)

    @property
    def type_enum(self) -> MessageType:
        return MessageType(self.type)

    @property
    def current_payload(self) -> dict[str, Any]:
        """Latest version's payload, or the original payload when never edited."""
        if self.versions:
            return self.versions[-1].payload
        return self.payload

    @property
    def is_edited(self) -> bool:
        return bool(self.versions)

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    def is_sent_by(self, actor: ActorRef) -> bool:
        return self.sender == actor

    def is_deleted_for(self, actor: ActorRef) -> bool:
        if self.deleted_at is not None:
            return True
        return any(d.actor == actor for d in self.deletions)

    def delivery_for(self, actor: ActorRef) -> "MessageDelivery | None":
        return next((d for d in self.deliveries if d.actor == actor), None)

    def is_read_by(self, actor: ActorRef) -> bool:
        delivery = self.delivery_for(actor)
        return delivery is not None and delivery.is_read()

    def is_delivered_to(self, actor: ActorRef) -> bool:
        delivery = self.delivery_for(actor)
        return delivery is not None and delivery.is_delivered()
