import logging
import uuid
from typing import Any

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from chat_engine.messaging.actors import ActorRef
from chat_engine.messaging.events import (
    EventSink,
    MessageSaved,
    MessageUnsaved,
    NullEventSink,
    emit,
)
from chat_engine.messaging.models.message import Message
from chat_engine.messaging.models.message_save import MessageSave
from chat_engine.messaging.services.lookups import resolve_message
from chat_engine.messaging.services.policies import PolicyChecker

logger = logging.getLogger(__name__)

MessageArg = Message | uuid.UUID | str


class BookmarkService:
    """Messages an actor has saved for later."""

    def __init__(
        self,
        db: Session,
        events: EventSink | None = None,
        policy: PolicyChecker | None = None,
    ) -> None:
        self.db = db
        self.events = events or NullEventSink()
        self.policy = policy or PolicyChecker()

    def save(
        self, message: MessageArg, actor: Any, metadata: dict[str, Any] | None = None
    ) -> MessageSave:
        """Bookmark a message. Saving again only replaces the metadata when given."""
        message = resolve_message(self.db, message)
        actor = ActorRef.of(actor)
        self.policy.authorize("view", actor, message)

        saved = self._find(message, actor)
        if saved is not None:
            if metadata is not None:
                saved.meta = metadata
                self.db.commit()
            return saved

        saved = MessageSave(
            message_id=message.id,
            actor_type=actor.actor_type,
            actor_id=actor.actor_id,
            meta=metadata,
        )
        try:
            with self.db.begin_nested():
                self.db.add(saved)
        except IntegrityError:
            saved = self._find(message, actor)
            if saved is None:
                raise
            return saved

        self.db.commit()

        logger.info("%s saved message %s", actor, message.id)
        emit(self.events, MessageSaved(message=message, actor=actor, save=saved))
        return saved

    def unsave(self, message: MessageArg, actor: Any) -> bool:
        message = resolve_message(self.db, message)
        actor = ActorRef.of(actor)

        saved = self._find(message, actor)
        if saved is None:
            return False

        self.db.delete(saved)
        self.db.commit()

        logger.info("%s unsaved message %s", actor, message.id)
        emit(self.events, MessageUnsaved(message=message, actor=actor))
        return True

    def toggle(self, message: MessageArg, actor: Any) -> bool:
        """Flip the bookmark and return whether the message is now saved."""
        if self.is_saved(message, actor):
            self.unsave(message, actor)
            return False
        self.save(message, actor)
        return True

    def is_saved(self, message: MessageArg, actor: Any) -> bool:
        message = resolve_message(self.db, message)
        return self._find(message, ActorRef.of(actor)) is not None

    def saved_messages(self, actor: Any, limit: int | None = None) -> list[Message]:
        """Saved messages that still exist for everyone, most recently saved first."""
        actor = ActorRef.of(actor)
        query = (
            self.db.query(Message)
            .join(MessageSave, MessageSave.message_id == Message.id)
            .filter(
                MessageSave.actor_type == actor.actor_type,
                MessageSave.actor_id == actor.actor_id,
                Message.deleted_at.is_(None),
            )
            .order_by(MessageSave.created_at.desc())
        )
        if limit is not None:
            query = query.limit(limit)
        return list(query.all())

    def times_saved(self, message: MessageArg) -> int:
        message = resolve_message(self.db, message)
        return (
            self.db.query(func.count())
            .select_from(MessageSave)
            .filter(MessageSave.message_id == message.id)
            .scalar()
            or 0
        )

    def _find(self, message: Message, actor: ActorRef) -> MessageSave | None:
        return self.db.get(MessageSave, (message.id, actor.actor_type, actor.actor_id))
