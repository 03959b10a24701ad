"""Tests for delivery and read receipts."""

import pytest

from chat_engine.core.exceptions import FeatureDisabledError
from chat_engine.engine import ChatEngine
from chat_engine.messaging.actors import ActorRef
from chat_engine.messaging.events import MessageDelivered, MessageRead
from tests.utils.factories import send_text_factory


class TestAsRead:
    def test_first_read_backfills_delivery(self, chat, alice, bob):
        thread = chat.threads.direct(alice, bob)
        message = send_text_factory(chat, thread, alice)

        delivery = chat.deliveries.as_read(message, bob)

        assert delivery.read_at is not None
        assert delivery.delivered_at == delivery.read_at

    def test_second_read_never_regresses(self, chat, alice, bob):
        thread = chat.threads.direct(alice, bob)
        message = send_text_factory(chat, thread, alice)
        first = chat.deliveries.as_read(message, bob).read_at

        second = chat.deliveries.as_read(message, bob)

        assert second.read_at is not None
        assert second.read_at >= first

    def test_delivery_then_read_keeps_delivery_time(self, chat, alice, bob):
        thread = chat.threads.direct(alice, bob)
        message = send_text_factory(chat, thread, alice)
        delivered_at = chat.deliveries.as_delivered(message, bob).delivered_at

        delivery = chat.deliveries.as_read(message, bob)

        assert delivery.delivered_at == delivered_at
        assert delivery.read_at >= delivered_at

    def test_read_after_read_does_not_null(self, chat, alice, bob):
        thread = chat.threads.direct(alice, bob)
        message = send_text_factory(chat, thread, alice)
        chat.deliveries.as_read(message, bob)

        delivery = chat.deliveries.as_delivered(message, bob)

        assert delivery.read_at is not None

    def test_emits_read_event(self, chat, events, alice, bob):
        thread = chat.threads.direct(alice, bob)
        message = send_text_factory(chat, thread, alice)

        chat.deliveries.as_read(message, bob)

        event = events.of_type(MessageRead)[-1]
        assert event.actor == ActorRef.of(bob)
        assert event.message is message


class TestFeatureFlags:
    @pytest.fixture
    def untracked(self, db_session, make_settings):
        return ChatEngine(
            db_session, settings=make_settings(TRACK_DELIVERIES=False, TRACK_READS=False)
        )

    def test_disabled_reads_raise(self, untracked, alice, bob):
        thread = untracked.threads.direct(alice, bob)
        message = send_text_factory(untracked, thread, alice)

        with pytest.raises(FeatureDisabledError) as exc_info:
            untracked.deliveries.as_read(message, bob)

        assert exc_info.value.status_code == 409
        assert exc_info.value.error_code == "FEATURE_DISABLED"

    def test_disabled_deliveries_raise(self, untracked, alice, bob):
        thread = untracked.threads.direct(alice, bob)
        message = send_text_factory(untracked, thread, alice)

        with pytest.raises(FeatureDisabledError):
            untracked.deliveries.as_delivered(message, bob)
        with pytest.raises(FeatureDisabledError):
            untracked.deliveries.mark_thread_as_delivered(thread, bob)
        with pytest.raises(FeatureDisabledError):
            untracked.mark_thread_as_read(thread, bob)


class TestMarkThread:
    def test_marks_only_unread_messages_from_others(self, chat, events, alice, bob):
        thread = chat.threads.direct(alice, bob)
        first = send_text_factory(chat, thread, alice)
        send_text_factory(chat, thread, alice)
        send_text_factory(chat, thread, bob)
        chat.deliveries.as_read(first, bob)
        events.clear()

        marked = chat.mark_thread_as_read(thread, bob)

        assert marked == 1
        assert len(events.of_type(MessageRead)) == 1
        assert chat.mark_thread_as_read(thread, bob) == 0

    def test_mark_delivered_leaves_read_unset(self, chat, events, alice, bob):
        thread = chat.threads.direct(alice, bob)
        message = send_text_factory(chat, thread, alice)

        assert chat.deliveries.mark_thread_as_delivered(thread, bob) == 1

        chat.db.refresh(message)
        assert message.is_delivered_to(ActorRef.of(bob))
        assert not message.is_read_by(ActorRef.of(bob))
        assert len(events.of_type(MessageDelivered)) == 1

    def test_skips_deleted_messages(self, chat, alice, bob):
        thread = chat.threads.direct(alice, bob)
        message = send_text_factory(chat, thread, alice)
        chat.deletions.globally(message, alice)

        assert chat.mark_thread_as_read(thread, bob) == 0
