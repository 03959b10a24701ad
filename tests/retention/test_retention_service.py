"""Tests for retention cleanup."""

import uuid
from datetime import timedelta

import pytest

from chat_engine.core.datetime_utils import utc_now
from chat_engine.messaging.models.message import Message
from chat_engine.messaging.models.message_deletion import MessageDeletion
from chat_engine.messaging.models.message_delivery import MessageDelivery
from chat_engine.messaging.models.message_version import MessageVersion
from chat_engine.retention.service import RetentionService
from tests.utils.factories import send_text_factory


def days_ago(days):
    return utc_now() - timedelta(days=days)


@pytest.fixture
def thread(chat, alice, bob):
    return chat.threads.direct(alice, bob)


class TestPurgeDeletedMessages:
    def test_removes_only_old_soft_deleted_messages(self, chat, db_session, thread, alice):
        old = send_text_factory(chat, thread, alice, "old")
        recent = send_text_factory(chat, thread, alice, "recent")
        kept = send_text_factory(chat, thread, alice, "kept")
        chat.deletions.soft_delete(old, alice)
        chat.deletions.soft_delete(recent, alice)
        old.deleted_at = days_ago(40)
        recent.deleted_at = days_ago(5)
        db_session.commit()

        purged = RetentionService(db_session).purge_deleted_messages(30)

        assert purged == 1
        remaining = {m.id for m in db_session.query(Message).all()}
        assert remaining == {recent.id, kept.id}

    def test_cascades_to_receipts(self, chat, db_session, thread, alice):
        message = send_text_factory(chat, thread, alice)
        message_id = message.id
        chat.deletions.soft_delete(message, alice)
        message.deleted_at = days_ago(10)
        db_session.commit()

        RetentionService(db_session).purge_deleted_messages(1)

        assert db_session.query(MessageDelivery).filter_by(message_id=message_id).count() == 0


class TestPurgeReceiptsAndVersions:
    def test_old_read_receipts_go_unread_ones_stay(self, chat, db_session, thread, alice, bob):
        message = send_text_factory(chat, thread, alice)
        delivered = chat.deliveries.as_delivered(message, bob)
        read = message.delivery_for(message.sender)
        read.read_at = days_ago(100)
        delivered.delivered_at = days_ago(100)
        db_session.commit()

        assert RetentionService(db_session).purge_old_deliveries(90) == 1
        assert db_session.query(MessageDelivery).count() == 1

    def test_old_versions(self, chat, db_session, thread, alice):
        message = send_text_factory(chat, thread, alice, "v0")
        first = chat.edits.execute(message, {"type": "text", "content": "v1"}, alice)
        chat.edits.execute(message, {"type": "text", "content": "v2"}, alice)
        first.created_at = days_ago(400)
        db_session.commit()

        assert RetentionService(db_session).purge_old_versions(365) == 1
        assert db_session.query(MessageVersion).count() == 1

    def test_orphaned_deletions(self, chat, db_session, thread, alice, bob):
        message = send_text_factory(chat, thread, alice)
        chat.deletions.for_actor(message, bob)
        db_session.add(MessageDeletion(message_id=uuid.uuid4(), actor_type="user", actor_id="x"))
        db_session.commit()

        assert RetentionService(db_session).purge_orphaned_deletions() == 1
        assert db_session.query(MessageDeletion).count() == 1


class TestRunCleanup:
    def test_skips_unconfigured_categories(self, chat, db_session, settings, thread, alice):
        message = send_text_factory(chat, thread, alice)
        chat.deletions.soft_delete(message, alice)
        message.deleted_at = days_ago(1000)
        db_session.commit()

        results = RetentionService(db_session, settings).run_cleanup()

        assert results == {"messages": 0, "deliveries": 0, "versions": 0, "orphaned_deletions": 0}
        assert db_session.query(Message).count() == 1

    def test_runs_configured_categories(self, chat, db_session, make_settings, thread, alice):
        message = send_text_factory(chat, thread, alice)
        chat.deletions.soft_delete(message, alice)
        message.deleted_at = days_ago(60)
        db_session.commit()

        results = RetentionService(
            db_session,
            make_settings(
                RETENTION_DELETED_MESSAGES_DAYS=30,
                RETENTION_DELIVERY_RECORDS_DAYS=30,
                RETENTION_VERSIONS_DAYS=30,
            ),
        ).run_cleanup()

        assert results["messages"] == 1
        assert db_session.query(Message).count() == 0
