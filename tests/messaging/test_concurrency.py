"""Tests for converging on rows written by a concurrent request.

Each test writes the competing row straight to the database just before the
service writes its own, so the service hits the unique constraint or the
conditional update the same way the slower of two racing requests would.
"""

import uuid
from datetime import timedelta
from unittest.mock import patch

from sqlalchemy import insert, update

from chat_engine.core.datetime_utils import utc_now
from chat_engine.messaging.events import ThreadCreated
from chat_engine.messaging.models.message_attachment import MessageAttachment
from chat_engine.messaging.models.message_delivery import MessageDelivery
from chat_engine.messaging.models.thread import Thread
from chat_engine.messaging.models.thread_participant import ThreadParticipant
from tests.utils.factories import create_group_factory, send_text_factory


def _miss_once(real):
    """Side effect that reports "not found" on the first call only."""
    calls = []

    def _lookup(*args, **kwargs):
        calls.append(args)
        if len(calls) == 1:
            return None
        return real(*args, **kwargs)

    return _lookup


class TestThreadCreationRace:
    def test_loser_returns_the_winning_thread(self, chat, db_session, events, alice, bob):
        winner = chat.threads.direct(alice, bob)

        real = chat.threads.find_by_hash
        with patch.object(chat.threads, "find_by_hash", side_effect=_miss_once(real)) as lookup:
            loser = chat.threads.direct(bob, alice)

        assert lookup.call_count == 2
        assert loser.id == winner.id
        assert db_session.query(Thread).count() == 1
        assert len(events.of_type(ThreadCreated)) == 1


class TestDeliveryRace:
    def test_mark_converges_on_existing_receipt(self, chat, db_session, alice, bob):
        thread = chat.threads.direct(alice, bob)
        message = send_text_factory(chat, thread, alice)
        read_at = utc_now() - timedelta(minutes=5)
        db_session.execute(
            insert(MessageDelivery).values(
                message_id=message.id,
                actor_type=bob.actor_type,
                actor_id=bob.id,
                delivered_at=read_at,
                read_at=read_at,
            )
        )

        real = chat.deliveries._find
        with patch.object(chat.deliveries, "_find", side_effect=_miss_once(real)):
            delivery = chat.deliveries.as_delivered(message, bob)

        assert delivery.read_at == read_at
        assert delivery.delivered_at == read_at
        receipts = db_session.query(MessageDelivery).filter_by(message_id=message.id).all()
        assert len(receipts) == 2


class TestViewOnceRace:
    def test_consume_after_another_viewer_returns_none(self, chat, db_session, alice, bob):
        thread = chat.threads.direct(alice, bob)
        message = (
            chat.message()
            .from_(alice)
            .to(thread)
            .view_once("once/photo.jpg", "image")
            .send()
        )
        attachment = message.attachments[0]
        db_session.execute(
            update(MessageAttachment)
            .where(MessageAttachment.id == attachment.id)
            .values(viewed_at=utc_now())
            .execution_options(synchronize_session=False)
        )

        assert chat.attachments.consume(attachment) is None
        assert attachment.viewed_at is not None
        assert chat.attachments.url(attachment) is None


class TestParticipantRace:
    def test_add_returns_concurrently_added_row(self, chat, db_session, alice, bob, carol):
        thread = create_group_factory(chat, alice, members=[bob])
        assert len(thread.participants) == 2
        db_session.execute(
            insert(ThreadParticipant).values(
                id=uuid.uuid4(),
                thread_id=thread.id,
                actor_type=carol.actor_type,
                actor_id=carol.id,
                role="member",
            )
        )

        participant = chat.participants.add(thread, carol, added_by=alice)

        assert participant.actor_id == carol.id
        rows = db_session.query(ThreadParticipant).filter_by(actor_id=carol.id).all()
        assert len(rows) == 1
        assert rows[0].id == participant.id
