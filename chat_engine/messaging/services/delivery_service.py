import logging
import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import exists, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from chat_engine.core.config import ChatSettings
from chat_engine.core.config import settings as default_settings
from chat_engine.core.datetime_utils import utc_now
from chat_engine.core.exceptions import FeatureDisabledError
from chat_engine.messaging.actors import ActorRef
from chat_engine.messaging.events import (
    EventSink,
    MessageDelivered,
    MessageRead,
    NullEventSink,
    emit,
)
from chat_engine.messaging.models.message import Message
from chat_engine.messaging.models.message_delivery import MessageDelivery
from chat_engine.messaging.models.thread import Thread
from chat_engine.messaging.services.lookups import resolve_message, resolve_thread

logger = logging.getLogger(__name__)


class DeliveryService:
    """Delivery and read receipts per (message, actor).

    A receipt only moves forward: ``delivered_at`` is set once and
    ``read_at`` backfills it when the message was never marked delivered.
    """

    def __init__(
        self,
        db: Session,
        settings: ChatSettings | None = None,
        events: EventSink | None = None,
    ) -> None:
        self.db = db
        self.settings = settings or default_settings
        self.events = events or NullEventSink()

    def as_delivered(self, message: Message | uuid.UUID | str, actor: Any) -> MessageDelivery:
        if not self.settings.TRACK_DELIVERIES:
            raise FeatureDisabledError("Delivery tracking is disabled.", feature="deliveries")

        message = resolve_message(self.db, message)
        actor = ActorRef.of(actor)

        delivery = self.upsert(message, actor, read=False)
        self.db.commit()

        emit(self.events, MessageDelivered(message=message, actor=actor, delivery=delivery))
        return delivery

    def as_read(self, message: Message | uuid.UUID | str, actor: Any) -> MessageDelivery:
        if not self.settings.TRACK_READS:
            raise FeatureDisabledError("Read tracking is disabled.", feature="reads")

        return self.record_read(resolve_message(self.db, message), ActorRef.of(actor))

    def record_read(self, message: Message, actor: ActorRef) -> MessageDelivery:
        """Mark read without consulting the read-tracking flag (used for the sender's own send)."""
        delivery = self.upsert(message, actor, read=True)
        self.db.commit()

        emit(self.events, MessageRead(message=message, actor=actor, delivery=delivery))
        return delivery

    def mark_thread_as_read(self, thread: Thread | uuid.UUID | str, actor: Any) -> int:
        if not self.settings.TRACK_READS:
            raise FeatureDisabledError("Read tracking is disabled.", feature="reads")
        return self._mark_thread(thread, ActorRef.of(actor), read=True)

    def mark_thread_as_delivered(self, thread: Thread | uuid.UUID | str, actor: Any) -> int:
        if not self.settings.TRACK_DELIVERIES:
            raise FeatureDisabledError("Delivery tracking is disabled.", feature="deliveries")
        return self._mark_thread(thread, ActorRef.of(actor), read=False)

    def _mark_thread(self, thread: Thread | uuid.UUID | str, actor: ActorRef, read: bool) -> int:
        thread = resolve_thread(self.db, thread)
        marked_column = MessageDelivery.read_at if read else MessageDelivery.delivered_at

        already_marked = exists().where(
            MessageDelivery.message_id == Message.id,
            MessageDelivery.actor_type == actor.actor_type,
            MessageDelivery.actor_id == actor.actor_id,
            marked_column.is_not(None),
        )

        messages = (
            self.db.query(Message)
            .filter(
                Message.thread_id == thread.id,
                Message.deleted_at.is_(None),
                or_(Message.sender_type != actor.actor_type, Message.sender_id != actor.actor_id),
                ~already_marked,
            )
            .order_by(Message.created_at.asc())
            .all()
        )

        receipts = [(message, self.upsert(message, actor, read=read)) for message in messages]
        self.db.commit()

        for message, delivery in receipts:
            event = (
                MessageRead(message=message, actor=actor, delivery=delivery)
                if read
                else MessageDelivered(message=message, actor=actor, delivery=delivery)
            )
            emit(self.events, event)

        logger.debug(
            "Marked %d messages in thread %s as %s for %s",
            len(receipts),
            thread.id,
            "read" if read else "delivered",
            actor,
        )
        return len(receipts)

    def _find(self, message: Message, actor: ActorRef) -> MessageDelivery | None:
        return self.db.get(MessageDelivery, (message.id, actor.actor_type, actor.actor_id))

    def upsert(self, message: Message, actor: ActorRef, read: bool) -> MessageDelivery:
        """Create or advance the receipt inside the current transaction, without committing."""
        now = utc_now()
        delivery = self._find(message, actor)

        if delivery is None:
            delivery = MessageDelivery(
                message_id=message.id,
                actor_type=actor.actor_type,
                actor_id=actor.actor_id,
                delivered_at=now,
                read_at=now if read else None,
            )
            try:
                with self.db.begin_nested():
                    self.db.add(delivery)
                return delivery
            except IntegrityError:
                # A concurrent mark created the row first; converge on it
                delivery = self._find(message, actor)
                if delivery is None:
                    raise

        self._advance(delivery, now, read)
        self.db.flush()
        return delivery

    @staticmethod
    def _advance(delivery: MessageDelivery, now: datetime, read: bool) -> None:
        if delivery.delivered_at is None:
            delivery.delivered_at = now
        if read and (delivery.read_at is None or delivery.read_at < now):
            delivery.read_at = now
