import logging
import uuid
from typing import Any

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from chat_engine.core.config import ChatSettings
from chat_engine.core.config import settings as default_settings
from chat_engine.core.datetime_utils import utc_now
from chat_engine.core.exceptions import ConflictError
from chat_engine.core.storage import FileStore
from chat_engine.messaging.actors import ActorRef
from chat_engine.messaging.events import (
    EventSink,
    MessageDeletedForActor,
    MessageDeletedGlobally,
    MessageRestored,
    NullEventSink,
    emit,
)
from chat_engine.messaging.models.message import DeletionMode, Message
from chat_engine.messaging.models.message_deletion import MessageDeletion
from chat_engine.messaging.services.lookups import resolve_message
from chat_engine.messaging.services.policies import PolicyChecker

logger = logging.getLogger(__name__)

MessageArg = Message | uuid.UUID | str


class DeletionService:
    """Per-actor hiding, global soft delete and hard delete of messages.

    The three mechanisms are independent: a message can be hidden for one
    actor and soft-deleted for everyone at the same time, and restoring one
    leaves the other in place.
    """

    def __init__(
        self,
        db: Session,
        settings: ChatSettings | None = None,
        events: EventSink | None = None,
        policy: PolicyChecker | None = None,
        file_store: FileStore | None = None,
    ) -> None:
        self.db = db
        self.settings = settings or default_settings
        self.events = events or NullEventSink()
        self.policy = policy or PolicyChecker()
        self.file_store = file_store

    @property
    def mode(self) -> DeletionMode:
        return DeletionMode(self.settings.DELETION_MODE)

    def for_actor(self, message: MessageArg, actor: Any) -> MessageDeletion:
        message = resolve_message(self.db, message)
        actor = ActorRef.of(actor)
        self.policy.authorize("delete_for_self", actor, message)

        deletion = self._find_deletion(message, actor)
        if deletion is None:
            deletion = MessageDeletion(
                message_id=message.id,
                actor_type=actor.actor_type,
                actor_id=actor.actor_id,
                deleted_at=utc_now(),
            )
            try:
                with self.db.begin_nested():
                    self.db.add(deletion)
            except IntegrityError:
                deletion = self._find_deletion(message, actor)
                if deletion is None:
                    raise

        self.db.commit()

        logger.info("Message %s hidden for %s", message.id, actor)
        emit(self.events, MessageDeletedForActor(message=message, actor=actor, deletion=deletion))
        return deletion

    def globally(self, message: MessageArg, deleted_by: Any, hard: bool | None = None) -> bool:
        """Delete for everyone, choosing soft or hard delete from the deletion mode.

        ``hard`` is only consulted in hybrid mode, where the caller picks
        explicitly; hybrid defaults to a soft delete.
        """
        message = resolve_message(self.db, message)
        actor = ActorRef.of(deleted_by)
        self.policy.authorize("delete", actor, message)

        if self.mode is DeletionMode.HARD or (self.mode is DeletionMode.HYBRID and hard):
            return self.hard_delete(message, actor)
        if hard and not self.mode.allows_hard_delete():
            raise ConflictError(
                "Hard delete is not allowed in the current deletion mode.", resource="message"
            )

        return self.soft_delete(message, actor)

    def soft_delete(self, message: MessageArg, deleted_by: Any) -> bool:
        message = resolve_message(self.db, message)
        actor = ActorRef.of(deleted_by)
        self.policy.authorize("delete", actor, message)

        if not self.mode.allows_soft_delete():
            raise ConflictError(
                "Soft delete is not allowed in the current deletion mode.", resource="message"
            )

        message.deleted_at = utc_now()
        message.deleted_by_type = actor.actor_type
        message.deleted_by_id = actor.actor_id
        self.db.commit()

        logger.info("Message %s soft-deleted by %s", message.id, actor)
        emit(self.events, MessageDeletedGlobally(message=message, deleted_by=actor))
        return True

    def hard_delete(self, message: MessageArg, deleted_by: Any) -> bool:
        """Remove the message and everything it owns. Not reversible."""
        if not self.mode.allows_hard_delete():
            raise ConflictError(
                "Hard delete is not allowed in the current deletion mode.", resource="message"
            )

        message = resolve_message(self.db, message)
        actor = ActorRef.of(deleted_by)
        self.policy.authorize("delete", actor, message)

        file_paths = self._attachment_paths(message)

        self.db.delete(message)
        self.db.commit()

        logger.info("Message %s hard-deleted by %s", message.id, actor)
        self._delete_files(file_paths)

        emit(self.events, MessageDeletedGlobally(message=message, deleted_by=actor, hard=True))
        return True

    def restore_for_actor(self, message: MessageArg, actor: Any) -> bool:
        message = resolve_message(self.db, message)
        actor = ActorRef.of(actor)

        removed = (
            self.db.query(MessageDeletion)
            .filter(
                MessageDeletion.message_id == message.id,
                MessageDeletion.actor_type == actor.actor_type,
                MessageDeletion.actor_id == actor.actor_id,
            )
            .delete(synchronize_session="fetch")
        )
        self.db.commit()

        if not removed:
            return False

        logger.info("Message %s restored for %s", message.id, actor)
        emit(self.events, MessageRestored(message=message, actor=actor))
        return True

    def restore_globally(self, message: MessageArg, actor: Any | None = None) -> bool:
        message = resolve_message(self.db, message)
        if message.deleted_at is None:
            return False

        message.deleted_at = None
        message.deleted_by_type = None
        message.deleted_by_id = None
        self.db.commit()

        restored_by = ActorRef.of(actor) if actor is not None else None
        logger.info("Message %s restored globally", message.id)
        emit(self.events, MessageRestored(message=message, actor=restored_by))
        return True

    def _find_deletion(self, message: Message, actor: ActorRef) -> MessageDeletion | None:
        return self.db.get(MessageDeletion, (message.id, actor.actor_type, actor.actor_id))

    def _attachment_paths(self, message: Message) -> list[str]:
        if not self.settings.ATTACHMENTS_DELETE_FILES_ON_DELETE or self.file_store is None:
            return []

        paths = []
        for attachment in message.attachments:
            paths.append(attachment.path)
            if attachment.thumbnail_path:
                paths.append(attachment.thumbnail_path)
        return paths

    def _delete_files(self, paths: list[str]) -> None:
        if self.file_store is None:
            return

        for path in paths:
            try:
                self.file_store.delete(path)
            except Exception:
                logger.warning("Failed to delete attachment file %s", path, exc_info=True)
