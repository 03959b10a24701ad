"""Retention cleanup for soft-deleted messages, old receipts and edit history."""

import logging
from datetime import timedelta

from sqlalchemy import select
from sqlalchemy.orm import Session

from chat_engine.core.config import ChatSettings
from chat_engine.core.config import settings as default_settings
from chat_engine.core.datetime_utils import utc_now
from chat_engine.messaging.models.message import Message
from chat_engine.messaging.models.message_deletion import MessageDeletion
from chat_engine.messaging.models.message_delivery import MessageDelivery
from chat_engine.messaging.models.message_version import MessageVersion

logger = logging.getLogger(__name__)


class RetentionService:
    def __init__(self, db: Session, settings: ChatSettings | None = None) -> None:
        self.db = db
        self.settings = settings or default_settings

    def purge_deleted_messages(self, older_than_days: int) -> int:
        """Hard-delete messages soft-deleted more than ``older_than_days`` ago.

        Rows are deleted through the ORM so versions, receipts, deletions and
        attachments go with them.
        """
        threshold = utc_now() - timedelta(days=older_than_days)
        messages = (
            self.db.query(Message)
            .filter(Message.deleted_at.is_not(None), Message.deleted_at < threshold)
            .all()
        )
        for message in messages:
            self.db.delete(message)
        self.db.commit()

        logger.info(
            "Purged %d soft-deleted messages older than %d days", len(messages), older_than_days
        )
        return len(messages)

    def purge_old_deliveries(self, older_than_days: int) -> int:
        """Drop read receipts read more than ``older_than_days`` ago. Unread ones stay."""
        threshold = utc_now() - timedelta(days=older_than_days)
        count = (
            self.db.query(MessageDelivery)
            .filter(MessageDelivery.read_at.is_not(None), MessageDelivery.read_at < threshold)
            .delete(synchronize_session=False)
        )
        self.db.commit()

        logger.info("Purged %d delivery records older than %d days", count, older_than_days)
        return count

    def purge_old_versions(self, older_than_days: int) -> int:
        threshold = utc_now() - timedelta(days=older_than_days)
        count = (
            self.db.query(MessageVersion)
            .filter(MessageVersion.created_at < threshold)
            .delete(synchronize_session=False)
        )
        self.db.commit()

        logger.info("Purged %d message versions older than %d days", count, older_than_days)
        return count

    def purge_orphaned_deletions(self) -> int:
        """Remove per-actor deletion markers whose message no longer exists."""
        existing = select(Message.id)
        count = (
            self.db.query(MessageDeletion)
            .filter(MessageDeletion.message_id.not_in(existing))
            .delete(synchronize_session=False)
        )
        self.db.commit()

        logger.info("Purged %d orphaned deletion records", count)
        return count

    def run_cleanup(self) -> dict[str, int]:
        """Run every purge whose threshold is configured; orphan cleanup always runs."""
        results = {"messages": 0, "deliveries": 0, "versions": 0, "orphaned_deletions": 0}

        if self.settings.RETENTION_DELETED_MESSAGES_DAYS is not None:
            results["messages"] = self.purge_deleted_messages(
                self.settings.RETENTION_DELETED_MESSAGES_DAYS
            )
        if self.settings.RETENTION_DELIVERY_RECORDS_DAYS is not None:
            results["deliveries"] = self.purge_old_deliveries(
                self.settings.RETENTION_DELIVERY_RECORDS_DAYS
            )
        if self.settings.RETENTION_VERSIONS_DAYS is not None:
            results["versions"] = self.purge_old_versions(self.settings.RETENTION_VERSIONS_DAYS)

        results["orphaned_deletions"] = self.purge_orphaned_deletions()
        return results
