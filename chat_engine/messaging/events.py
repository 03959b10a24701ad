"""Domain events emitted by the engine.

Each state transition produces one event value that is handed to an
injected ``EventSink``. Broadcasting, queueing and ordering are the sink's
concern; the engine only guarantees that an event is emitted after the
transition has been committed.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, ClassVar, Protocol

import structlog

from chat_engine.core.datetime_utils import utc_now
from chat_engine.messaging.actors import ActorRef

if TYPE_CHECKING:
    from chat_engine.messaging.models import (
        Message,
        MessageDeletion,
        MessageDelivery,
        MessageReaction,
        MessageSave,
        MessageVersion,
        ParticipantRole,
        Thread,
        ThreadParticipant,
    )

logger = logging.getLogger(__name__)


@dataclass(frozen=True, kw_only=True)
class ChatEvent:
    name: ClassVar[str] = "chat.event"

    occurred_at: datetime = field(default_factory=utc_now)

    def log_fields(self) -> dict[str, str]:
        return {}


@dataclass(frozen=True, kw_only=True)
class ThreadCreated(ChatEvent):
    name: ClassVar[str] = "chat.thread.created"

    thread: "Thread"

    def log_fields(self) -> dict[str, str]:
        return {"thread_id": str(self.thread.id), "thread_type": self.thread.type}


@dataclass(frozen=True, kw_only=True)
class ParticipantAdded(ChatEvent):
    name: ClassVar[str] = "chat.participant.added"

    thread: "Thread"
    actor: ActorRef
    participant: "ThreadParticipant"
    role: "ParticipantRole"

    def log_fields(self) -> dict[str, str]:
        return {"thread_id": str(self.thread.id), "actor": self.actor.key, "role": self.role.value}


@dataclass(frozen=True, kw_only=True)
class ParticipantRemoved(ChatEvent):
    name: ClassVar[str] = "chat.participant.removed"

    thread: "Thread"
    actor: ActorRef
    participant: "ThreadParticipant"

    def log_fields(self) -> dict[str, str]:
        return {"thread_id": str(self.thread.id), "actor": self.actor.key}


@dataclass(frozen=True, kw_only=True)
class MessageSent(ChatEvent):
    name: ClassVar[str] = "chat.message.sent"

    message: "Message"
    thread: "Thread"
    sender: ActorRef

    def log_fields(self) -> dict[str, str]:
        return {
            "message_id": str(self.message.id),
            "thread_id": str(self.thread.id),
            "sender": self.sender.key,
        }


@dataclass(frozen=True, kw_only=True)
class MessageEdited(ChatEvent):
    name: ClassVar[str] = "chat.message.edited"

    message: "Message"
    edited_by: ActorRef
    version: "MessageVersion | None" = None

    def log_fields(self) -> dict[str, str]:
        return {"message_id": str(self.message.id), "edited_by": self.edited_by.key}


@dataclass(frozen=True, kw_only=True)
class MessageDelivered(ChatEvent):
    name: ClassVar[str] = "chat.message.delivered"

    message: "Message"
    actor: ActorRef
    delivery: "MessageDelivery"

    def log_fields(self) -> dict[str, str]:
        return {"message_id": str(self.message.id), "actor": self.actor.key}


@dataclass(frozen=True, kw_only=True)
class MessageRead(ChatEvent):
    name: ClassVar[str] = "chat.message.read"

    message: "Message"
    actor: ActorRef
    delivery: "MessageDelivery"

    def log_fields(self) -> dict[str, str]:
        return {"message_id": str(self.message.id), "actor": self.actor.key}


@dataclass(frozen=True, kw_only=True)
class MessageDeletedForActor(ChatEvent):
    name: ClassVar[str] = "chat.message.deleted_for_actor"

    message: "Message"
    actor: ActorRef
    deletion: "MessageDeletion"

    def log_fields(self) -> dict[str, str]:
        return {"message_id": str(self.message.id), "actor": self.actor.key}


@dataclass(frozen=True, kw_only=True)
class MessageDeletedGlobally(ChatEvent):
    name: ClassVar[str] = "chat.message.deleted_globally"

    message: "Message"
    deleted_by: ActorRef
    hard: bool = False

    def log_fields(self) -> dict[str, str]:
        return {
            "message_id": str(self.message.id),
            "deleted_by": self.deleted_by.key,
            "hard": str(self.hard).lower(),
        }


@dataclass(frozen=True, kw_only=True)
class MessageRestored(ChatEvent):
    name: ClassVar[str] = "chat.message.restored"

    message: "Message"
    actor: ActorRef | None = None

    def log_fields(self) -> dict[str, str]:
        fields = {"message_id": str(self.message.id)}
        if self.actor is not None:
            fields["actor"] = self.actor.key
        return fields


@dataclass(frozen=True, kw_only=True)
class ReactionAdded(ChatEvent):
    name: ClassVar[str] = "chat.reaction.added"

    message: "Message"
    actor: ActorRef
    reaction: "MessageReaction"
    previous: str | None = None

    def log_fields(self) -> dict[str, str]:
        return {
            "message_id": str(self.message.id),
            "actor": self.actor.key,
            "reaction": self.reaction.reaction_type,
        }


@dataclass(frozen=True, kw_only=True)
class ReactionRemoved(ChatEvent):
    name: ClassVar[str] = "chat.reaction.removed"

    message: "Message"
    actor: ActorRef
    reaction_type: str

    def log_fields(self) -> dict[str, str]:
        return {"message_id": str(self.message.id), "actor": self.actor.key}


@dataclass(frozen=True, kw_only=True)
class MessageSaved(ChatEvent):
    name: ClassVar[str] = "chat.message.saved"

    message: "Message"
    actor: ActorRef
    save: "MessageSave"

    def log_fields(self) -> dict[str, str]:
        return {"message_id": str(self.message.id), "actor": self.actor.key}


@dataclass(frozen=True, kw_only=True)
class MessageUnsaved(ChatEvent):
    name: ClassVar[str] = "chat.message.unsaved"

    message: "Message"
    actor: ActorRef

    def log_fields(self) -> dict[str, str]:
        return {"message_id": str(self.message.id), "actor": self.actor.key}


@dataclass(frozen=True, kw_only=True)
class TypingStarted(ChatEvent):
    name: ClassVar[str] = "chat.typing.started"

    thread: "Thread"
    actor: ActorRef

    def log_fields(self) -> dict[str, str]:
        return {"thread_id": str(self.thread.id), "actor": self.actor.key}


@dataclass(frozen=True, kw_only=True)
class TypingStopped(ChatEvent):
    name: ClassVar[str] = "chat.typing.stopped"

    thread: "Thread"
    actor: ActorRef

    def log_fields(self) -> dict[str, str]:
        return {"thread_id": str(self.thread.id), "actor": self.actor.key}


@dataclass(frozen=True, kw_only=True)
class PresenceChanged(ChatEvent):
    name: ClassVar[str] = "chat.presence.changed"

    actor: ActorRef
    status: str

    def log_fields(self) -> dict[str, str]:
        return {"actor": self.actor.key, "status": self.status}


@dataclass(frozen=True, kw_only=True)
class LastSeenUpdated(ChatEvent):
    name: ClassVar[str] = "chat.presence.last_seen"

    actor: ActorRef

    def log_fields(self) -> dict[str, str]:
        return {"actor": self.actor.key, "last_seen": self.occurred_at.isoformat()}


class EventSink(Protocol):
    def dispatch(self, event: ChatEvent) -> None:
        """Hand an event to the host's broadcast layer (fire-and-forget)."""
        ...


class NullEventSink:
    """Discards every event."""

    def dispatch(self, event: ChatEvent) -> None:
        return None


class LoggingEventSink:
    """Writes each event as a structured log line."""

    def __init__(self) -> None:
        self._logger = structlog.get_logger("chat_engine.events")

    def dispatch(self, event: ChatEvent) -> None:
        self._logger.info(
            event.name, occurred_at=event.occurred_at.isoformat(), **event.log_fields()
        )


class InMemoryEventSink:
    """Keeps events in order; handy for hosts that drain events after a request."""

    def __init__(self) -> None:
        self.events: list[ChatEvent] = []

    def dispatch(self, event: ChatEvent) -> None:
        self.events.append(event)

    def of_type(self, event_type: type[ChatEvent]) -> list[ChatEvent]:
        return [e for e in self.events if isinstance(e, event_type)]

    def clear(self) -> None:
        self.events.clear()


def emit(sink: EventSink, event: ChatEvent) -> None:
    """Dispatch an event without letting sink failures undo a committed transition."""
    try:
        sink.dispatch(event)
    except Exception:
        logger.exception("Event sink failed to dispatch %s", event.name)
