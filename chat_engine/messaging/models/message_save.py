import uuid
from datetime import datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import JSON, DateTime, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from chat_engine.core.datetime_utils import utc_now
from chat_engine.db.session import Base
from chat_engine.messaging.actors import ActorRef

if TYPE_CHECKING:
    from chat_engine.messaging.models.message import Message


class MessageSave(Base):
    """A message bookmarked by an actor."""

    __tablename__ = "message_saves"
    __table_args__ = (
        Index("ix_message_saves_actor_created", "actor_type", "actor_id", "created_at"),
    )

    message_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("messages.id", ondelete="CASCADE"), primary_key=True
    )
    actor_type: Mapped[str] = mapped_column(String(100), primary_key=True)
    actor_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    # Free-form host data such as a note or a label
    meta: Mapped[dict[str, Any] | None] = mapped_column(
        "metadata", JSON, nullable=True, default=None
    )
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now)

    message: Mapped["Message"] = relationship(back_populates="saves")

    @property
    def actor(self) -> ActorRef:
        return ActorRef(self.actor_type, self.actor_id)
