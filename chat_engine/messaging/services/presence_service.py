"""Ephemeral presence signals.

Nothing here is persisted; each call only emits an event for the host's
real-time transport. Hosts that want to store last-seen times can do so in
their sink.
"""

from typing import Any

from chat_engine.core.config import ChatSettings
from chat_engine.core.config import settings as default_settings
from chat_engine.messaging.actors import ActorRef
from chat_engine.messaging.events import (
    ChatEvent,
    EventSink,
    LastSeenUpdated,
    NullEventSink,
    PresenceChanged,
    TypingStarted,
    TypingStopped,
    emit,
)
from chat_engine.messaging.models.thread import Thread


class PresenceService:
    def __init__(self, settings: ChatSettings | None = None, events: EventSink | None = None):
        self.settings = settings or default_settings
        self.events = events or NullEventSink()

    def typing(self, actor: Any, thread: Thread) -> None:
        self._emit(TypingStarted(thread=thread, actor=ActorRef.of(actor)))

    def stop_typing(self, actor: Any, thread: Thread) -> None:
        self._emit(TypingStopped(thread=thread, actor=ActorRef.of(actor)))

    def online(self, actor: Any) -> None:
        self._emit(PresenceChanged(actor=ActorRef.of(actor), status="online"))

    def offline(self, actor: Any) -> None:
        self._emit(PresenceChanged(actor=ActorRef.of(actor), status="offline"))

    def away(self, actor: Any) -> None:
        self._emit(PresenceChanged(actor=ActorRef.of(actor), status="away"))

    def update_last_seen(self, actor: Any) -> None:
        self._emit(LastSeenUpdated(actor=ActorRef.of(actor)))

    def _emit(self, event: ChatEvent) -> None:
        if self.settings.PRESENCE_ENABLED:
            emit(self.events, event)
