import enum
import uuid
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, ForeignKey, Index, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from chat_engine.core.datetime_utils import utc_now
from chat_engine.core.security import format_security_code, generate_security_code
from chat_engine.db.session import Base
from chat_engine.messaging.actors import ActorRef

if TYPE_CHECKING:
    from chat_engine.messaging.models.thread import Thread


class ParticipantRole(str, enum.Enum):
    MEMBER = "member"
    ADMIN = "admin"
    OWNER = "owner"

    @property
    def label(self) -> str:
        return self.value.capitalize()

    def can_manage_participants(self) -> bool:
        return self in (ParticipantRole.ADMIN, ParticipantRole.OWNER)

    def can_delete_thread(self) -> bool:
        return self is ParticipantRole.OWNER


class ThreadParticipant(Base):
    __tablename__ = "thread_participants"
    __table_args__ = (
        UniqueConstraint("thread_id", "actor_type", "actor_id", name="uq_thread_participant"),
        Index("ix_thread_participants_actor", "actor_type", "actor_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4, index=True)
    thread_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("threads.id", ondelete="CASCADE"))
    actor_type: Mapped[str] = mapped_column(String(100))
    actor_id: Mapped[str] = mapped_column(String(64))
    role: Mapped[str] = mapped_column(String(20), default=ParticipantRole.MEMBER.value)

    joined_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now)
    left_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True, default=None)

    chat_lock_pin: Mapped[str | None] = mapped_column(String(255), nullable=True, default=None)
    public_key: Mapped[str | None] = mapped_column(Text, nullable=True, default=None)
    security_code: Mapped[str | None] = mapped_column(String(60), nullable=True, default=None)

    thread: Mapped["Thread"] = relationship(back_populates="participants")

    @property
    def actor(self) -> ActorRef:
        return ActorRef(self.actor_type, self.actor_id)

    @property
    def role_enum(self) -> ParticipantRole:
        return ParticipantRole(self.role)

    @property
    def formatted_security_code(self) -> str | None:
        return format_security_code(self.security_code)

    def is_active(self) -> bool:
        return self.left_at is None

    def leave(self) -> None:
        self.left_at = utc_now()

    def rejoin(self) -> None:
        self.left_at = None
        self.joined_at = utc_now()

    def has_role(self, role: ParticipantRole) -> bool:
        return self.role == role.value

    def can_manage_participants(self) -> bool:
        return self.role_enum.can_manage_participants()

    def can_delete_thread(self) -> bool:
        return self.role_enum.can_delete_thread()

    def is_chat_locked(self) -> bool:
        return self.chat_lock_pin is not None

    def set_public_key(self, public_key: str) -> None:
        self.public_key = public_key
        self.security_code = generate_security_code(public_key)

    def verify_security_with(self, other: "ThreadParticipant") -> bool:
        """Compare against the code derived from both public keys in sorted order.

        Illustrative only: real deployments compare codes out of band.
        """
        if not self.public_key or not other.public_key:
            return False

        first, second = sorted([self.public_key, other.public_key])
        shared_code = generate_security_code(first + second)

        return shared_code in (self.security_code, other.security_code)
