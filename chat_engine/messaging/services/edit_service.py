import logging
import uuid
from datetime import timedelta
from typing import Any

from sqlalchemy.orm import Session

from chat_engine.core.config import ChatSettings
from chat_engine.core.config import settings as default_settings
from chat_engine.core.datetime_utils import utc_now
from chat_engine.core.exceptions import ConflictError
from chat_engine.encryption.manager import EncryptionManager
from chat_engine.messaging.actors import ActorRef
from chat_engine.messaging.events import EventSink, MessageEdited, NullEventSink, emit
from chat_engine.messaging.models.message import Message
from chat_engine.messaging.models.message_version import MessageVersion
from chat_engine.messaging.services.lookups import resolve_message
from chat_engine.messaging.services.payload_validator import PayloadValidator
from chat_engine.messaging.services.pipeline import MessagePipeline, PendingMessage
from chat_engine.messaging.services.policies import PolicyChecker

logger = logging.getLogger(__name__)


class EditService:
    """Message edits.

    With ``MESSAGES_IMMUTABLE`` every edit appends a ``MessageVersion`` and
    the original payload stays untouched; otherwise the payload is replaced
    in place and no history is kept.
    """

    def __init__(
        self,
        db: Session,
        settings: ChatSettings | None = None,
        events: EventSink | None = None,
        policy: PolicyChecker | None = None,
        pipeline: MessagePipeline | None = None,
        encryption: EncryptionManager | None = None,
    ) -> None:
        self.db = db
        self.settings = settings or default_settings
        self.events = events or NullEventSink()
        self.policy = policy or PolicyChecker()
        self.pipeline = pipeline or MessagePipeline.from_settings(
            self.settings, encryption or EncryptionManager(self.settings)
        )
        self.validator = PayloadValidator()

    def execute(
        self,
        message: Message | uuid.UUID | str,
        new_payload: dict[str, Any],
        edited_by: Any,
    ) -> MessageVersion | Message:
        message = resolve_message(self.db, message)
        editor = ActorRef.of(edited_by)

        self.policy.authorize("edit", editor, message)
        self._check_time_limit(message)
        self.validator.validate(new_payload, message.type_enum)

        pending = self.pipeline.process(
            PendingMessage(
                thread_id=message.thread_id,
                sender=message.sender,
                type=message.type_enum,
                payload=dict(new_payload),
                author=message.author,
            )
        )
        if self.settings.MESSAGES_IMMUTABLE:
            # The original payload keeps its own encryption tag; the version carries the new one
            version = MessageVersion(
                sequence=max((v.sequence for v in message.versions), default=0) + 1,
                payload=pending.payload,
                encrypted=pending.encrypted,
                encryption_driver=pending.encryption_driver if pending.encrypted else None,
                edited_by_type=editor.actor_type,
                edited_by_id=editor.actor_id,
            )
            message.versions.append(version)
            self.db.commit()

            logger.info("Message %s edited by %s (version %s)", message.id, editor, version.id)
            emit(self.events, MessageEdited(message=message, edited_by=editor, version=version))
            return version

        message.payload = pending.payload
        message.encrypted = pending.encrypted
        message.encryption_driver = pending.encryption_driver if pending.encrypted else None
        self.db.commit()

        logger.info("Message %s edited in place by %s", message.id, editor)
        emit(self.events, MessageEdited(message=message, edited_by=editor))
        return message

    def _check_time_limit(self, message: Message) -> None:
        limit = self.settings.EDIT_TIME_LIMIT_MINUTES
        if limit is None:
            return

        if utc_now() - message.created_at > timedelta(minutes=limit):
            raise ConflictError(
                f"Messages can only be edited within {limit} minutes of sending.",
                resource="message",
            )
