"""Tests for event dispatch after committed transitions."""

import logging

from chat_engine.engine import ChatEngine
from chat_engine.messaging.events import MessageSent, ThreadCreated
from chat_engine.messaging.models.message import Message
from tests.utils.factories import send_text_factory


class FailingSink:
    def __init__(self) -> None:
        self.names: list[str] = []

    def dispatch(self, event) -> None:
        self.names.append(event.name)
        raise RuntimeError("broadcast backend down")


class TestEmit:
    def test_failing_sink_does_not_undo_the_send(self, db_session, settings, alice, bob, caplog):
        sink = FailingSink()
        chat = ChatEngine(db_session, settings=settings, events=sink)
        thread = chat.threads.direct(alice, bob)

        with caplog.at_level(logging.ERROR, logger="chat_engine.messaging.events"):
            message = send_text_factory(chat, thread, alice, "still delivered")

        db_session.expire_all()
        assert db_session.get(Message, message.id) is not None
        assert ThreadCreated.name in sink.names
        assert MessageSent.name in sink.names
        assert "Event sink failed to dispatch chat.message.sent" in caplog.text
