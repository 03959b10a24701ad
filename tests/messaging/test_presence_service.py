"""Tests for ephemeral presence signals."""

from chat_engine.messaging.actors import ActorRef
from chat_engine.messaging.events import InMemoryEventSink, PresenceChanged
from chat_engine.messaging.services.presence_service import PresenceService
from tests.utils.helpers import event_names


class TestPresence:
    def test_typing_events(self, chat, events, alice, bob):
        thread = chat.threads.direct(alice, bob)
        events.clear()

        chat.start_typing(alice, thread)
        chat.stop_typing(alice, thread)

        assert event_names(events) == ["chat.typing.started", "chat.typing.stopped"]
        assert events.events[0].thread is thread

    def test_status_events(self, settings, alice):
        events = InMemoryEventSink()
        presence = PresenceService(settings, events)

        presence.online(alice)
        presence.away(alice)
        presence.offline(alice)
        presence.update_last_seen(alice)

        statuses = [e.status for e in events.of_type(PresenceChanged)]
        assert statuses == ["online", "away", "offline"]
        assert events.events[-1].name == "chat.presence.last_seen"
        assert events.events[-1].actor == ActorRef.of(alice)

    def test_disabled_presence_is_silent(self, make_settings, alice):
        events = InMemoryEventSink()
        presence = PresenceService(make_settings(PRESENCE_ENABLED=False), events)

        presence.online(alice)
        presence.update_last_seen(alice)

        assert events.events == []
