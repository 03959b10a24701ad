from typing import Any

from pydantic import BaseModel, ConfigDict

from chat_engine.messaging.actors import ActorRef
from chat_engine.messaging.models.thread_participant import ParticipantRole


class ParticipantIn(BaseModel):
    model_config = ConfigDict(frozen=True)

    actor: ActorRef
    role: ParticipantRole = ParticipantRole.MEMBER

    @classmethod
    def of(
        cls, actor: Any, role: ParticipantRole | str = ParticipantRole.MEMBER
    ) -> "ParticipantIn":
        return cls(actor=ActorRef.of(actor), role=ParticipantRole(role))

    @classmethod
    def coerce(cls, value: Any) -> "ParticipantIn":
        """Accept a ParticipantIn, an ``(actor, role)`` pair or a bare actor (member)."""
        if isinstance(value, cls):
            return value
        if isinstance(value, tuple):
            actor, role = value
            return cls.of(actor, role)
        return cls.of(value)
