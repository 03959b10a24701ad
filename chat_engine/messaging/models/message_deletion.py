import uuid
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from chat_engine.core.datetime_utils import utc_now
from chat_engine.db.session import Base
from chat_engine.messaging.actors import ActorRef

if TYPE_CHECKING:
    from chat_engine.messaging.models.message import Message


class MessageDeletion(Base):
    __tablename__ = "message_deletions"
    __table_args__ = (Index("ix_message_deletions_actor", "actor_type", "actor_id"),)

    message_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("messages.id", ondelete="CASCADE"), primary_key=True
    )
    actor_type: Mapped[str] = mapped_column(String(100), primary_key=True)
    actor_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    deleted_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now)

    message: Mapped["Message"] = relationship(back_populates="deletions")

    @property
    def actor(self) -> ActorRef:
        return ActorRef(self.actor_type, self.actor_id)
