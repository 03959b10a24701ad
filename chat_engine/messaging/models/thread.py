import enum
import uuid
from datetime import datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import JSON, Boolean, DateTime, Index, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from chat_engine.core.datetime_utils import utc_now
from chat_engine.db.session import Base
from chat_engine.messaging.actors import ActorRef

if TYPE_CHECKING:
    from chat_engine.messaging.models.message import Message
    from chat_engine.messaging.models.thread_participant import ThreadParticipant


class ThreadType(str, enum.Enum):
    DIRECT = "direct"
    GROUP = "group"
    CHANNEL = "channel"
    BROADCAST = "broadcast"
    CUSTOM = "custom"


class Thread(Base):
    __tablename__ = "threads"
    __table_args__ = (
        Index("ix_threads_type", "type"),
        Index("ix_threads_created_at", "created_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4, index=True)
    type: Mapped[str] = mapped_column(String(20), default=ThreadType.GROUP.value)
    name: Mapped[str | None] = mapped_column(String(255), nullable=True, default=None)
    hash: Mapped[str | None] = mapped_column(String(64), unique=True, nullable=True, default=None)
    meta: Mapped[dict[str, Any] | None] = mapped_column(
        "metadata", JSON, nullable=True, default=None
    )
    is_locked: Mapped[bool] = mapped_column(Boolean, default=False)
    permissions: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True, default=None)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now)

    participants: Mapped[list["ThreadParticipant"]] = relationship(
        back_populates="thread",
        cascade="all, delete-orphan",
        order_by="ThreadParticipant.joined_at",
    )
    messages: Mapped[list["Message"]] = relationship(
        back_populates="thread",
        cascade="all, delete-orphan",
        order_by="Message.created_at",
    )

    @property
    def type_enum(self) -> ThreadType:
        return ThreadType(self.type)

    @property
    def active_participants(self) -> list["ThreadParticipant"]:
        return [p for p in self.participants if p.is_active()]

    def find_participant(self, actor: ActorRef) -> "ThreadParticipant | None":
        """Participant row for the actor, including ones that have left."""
        for participant in self.participants:
            if participant.actor == actor:
                return participant
        return None

    def get_participant(self, actor: ActorRef) -> "ThreadParticipant | None":
        """Active participant row for the actor."""
        participant = self.find_participant(actor)
        if participant is None or not participant.is_active():
            return None
        return participant

    def has_participant(self, actor: ActorRef) -> bool:
        return self.get_participant(actor) is not None

    def lock(self) -> None:
        self.is_locked = True

    def unlock(self) -> None:
        self.is_locked = False

    def can_send_message(self, actor: ActorRef) -> bool:
        """Unlocked threads accept anyone; locked ones only admins and owners."""
        if not self.is_locked:
            return True

        participant = self.get_participant(actor)
        if participant is None:
            return False
        return participant.can_manage_participants()
