import uuid
from datetime import datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from chat_engine.core.datetime_utils import utc_now
from chat_engine.db.session import Base
from chat_engine.messaging.actors import ActorRef

if TYPE_CHECKING:
    from chat_engine.messaging.models.message import Message


class MessageVersion(Base):
    """One edit of a message.

    Each version keeps the encryption tag of its own payload, so rotating
    the default driver never strands older versions or the original payload.
    """

    __tablename__ = "message_versions"
    __table_args__ = (
        Index("ix_message_versions_message_created", "message_id", "created_at"),
        Index("ix_message_versions_message_sequence", "message_id", "sequence"),
    )

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4, index=True)
    message_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("messages.id", ondelete="CASCADE"))
    # Edit number within the message, starting at 1
    sequence: Mapped[int] = mapped_column(Integer, default=1)
    payload: Mapped[dict[str, Any]] = mapped_column(JSON)
    encrypted: Mapped[bool] = mapped_column(Boolean, default=False)
    encryption_driver: Mapped[str | None] = mapped_column(String(50), nullable=True, default=None)
    edited_by_type: Mapped[str] = mapped_column(String(100))
    edited_by_id: Mapped[str] = mapped_column(String(64))
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now)

    message: Mapped["Message"] = relationship(back_populates="versions")

    @property
    def edited_by(self) -> ActorRef:
        return ActorRef(self.edited_by_type, self.edited_by_id)
