import uuid
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from chat_engine.db.session import Base
from chat_engine.messaging.actors import ActorRef

if TYPE_CHECKING:
    from chat_engine.messaging.models.message import Message


class MessageDelivery(Base):
    """Delivery/read receipt of one message for one actor.

    Keyed by (message_id, actor_type, actor_id). ``read_at`` implies
    ``delivered_at``; neither timestamp ever goes back to NULL.
    """

    __tablename__ = "message_deliveries"
    __table_args__ = (
        Index("ix_message_deliveries_actor", "actor_type", "actor_id"),
        Index("ix_message_deliveries_read_at", "read_at"),
    )

    message_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("messages.id", ondelete="CASCADE"), primary_key=True
    )
    actor_type: Mapped[str] = mapped_column(String(100), primary_key=True)
    actor_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    delivered_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True, default=None)
    read_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True, default=None)

    message: Mapped["Message"] = relationship(back_populates="deliveries")

    @property
    def actor(self) -> ActorRef:
        return ActorRef(self.actor_type, self.actor_id)

    def is_delivered(self) -> bool:
        return self.delivered_at is not None

    def is_read(self) -> bool:
        return self.read_at is not None
