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


class MessageReaction(Base):
    """An actor's reaction to a message. One per actor; reacting again replaces it."""

    __tablename__ = "message_reactions"
    __table_args__ = (
        Index("ix_message_reactions_actor", "actor_type", "actor_id"),
        Index("ix_message_reactions_message_type", "message_id", "reaction_type"),
    )

    message_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("messages.id", ondelete="CASCADE"), primary_key=True
    )
    actor_type: Mapped[str] = mapped_column(String(100), primary_key=True)
    actor_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    reaction_type: Mapped[str] = mapped_column(String(50))
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now, onupdate=utc_now)

    message: Mapped["Message"] = relationship(back_populates="reactions")

    @property
    def actor(self) -> ActorRef:
        return ActorRef(self.actor_type, self.actor_id)
