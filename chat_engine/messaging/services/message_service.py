import logging
import uuid
from collections.abc import Iterable
from typing import Any

from sqlalchemy import exists
from sqlalchemy.orm import Session

from chat_engine.core.config import ChatSettings
from chat_engine.core.config import settings as default_settings
from chat_engine.core.constants import ENCRYPTED_PAYLOAD_KEY
from chat_engine.core.exceptions import ForbiddenError, NotFoundError
from chat_engine.encryption.manager import EncryptionManager
from chat_engine.messaging.actors import ActorRef
from chat_engine.messaging.events import EventSink, MessageRead, MessageSent, NullEventSink, emit
from chat_engine.messaging.models.message import Message, MessageType
from chat_engine.messaging.models.message_attachment import MessageAttachment
from chat_engine.messaging.models.message_deletion import MessageDeletion
from chat_engine.messaging.models.message_version import MessageVersion
from chat_engine.messaging.models.thread import Thread
from chat_engine.messaging.schemas.attachment import AttachmentIn
from chat_engine.messaging.services.delivery_service import DeliveryService
from chat_engine.messaging.services.lookups import resolve_message, resolve_thread
from chat_engine.messaging.services.payload_validator import PayloadValidator
from chat_engine.messaging.services.pipeline import MessagePipeline, PendingMessage
from chat_engine.messaging.services.policies import PolicyChecker

logger = logging.getLogger(__name__)


def _without_none(**values: Any) -> dict[str, Any]:
    return {key: value for key, value in values.items() if value is not None}


class MessageService:
    """Sending messages and reading their (possibly encrypted) payloads."""

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
        self.encryption = encryption or EncryptionManager(self.settings)
        self.pipeline = pipeline or MessagePipeline.from_settings(self.settings, self.encryption)
        self.validator = PayloadValidator()
        self.deliveries = DeliveryService(db, self.settings, self.events)

    def send(
        self,
        thread: Thread | uuid.UUID | str,
        sender: Any,
        payload: dict[str, Any],
        type: MessageType | str = MessageType.TEXT,
        author: Any | None = None,
        encrypted: bool = False,
        encryption_driver: str | None = None,
        attachments: Iterable[AttachmentIn | dict[str, Any]] | None = None,
    ) -> Message:
        """Validate, process and store a message, then mark it read by its sender.

        Raises:
            NotFoundError: The thread does not exist.
            ForbiddenError: The sender is not an active participant, or the
                thread is locked and the sender cannot manage it.
            ValidationError: The payload does not fit the message type.
        """
        thread = resolve_thread(self.db, thread)
        sender = ActorRef.of(sender)
        message_type = MessageType(type)
        pending_attachments = [
            a if isinstance(a, AttachmentIn) else AttachmentIn.model_validate(a)
            for a in attachments or []
        ]

        self.policy.authorize("send_message", sender, thread)
        if not thread.can_send_message(sender):
            raise ForbiddenError(
                "Thread is locked. Only admins can send messages.", ability="send_message"
            )

        # Attachment-only messages carry no payload to validate
        if payload or not pending_attachments:
            self.validator.validate(payload, message_type)

        pending = self.pipeline.process(
            PendingMessage(
                thread_id=thread.id,
                sender=sender,
                type=message_type,
                payload=dict(payload),
                author=ActorRef.of(author) if author is not None else None,
                encrypted=encrypted,
                encryption_driver=encryption_driver,
                attachments=pending_attachments,
            )
        )

        message = Message(
            thread_id=thread.id,
            sender_type=sender.actor_type,
            sender_id=sender.actor_id,
            author_type=pending.author.actor_type if pending.author else None,
            author_id=pending.author.actor_id if pending.author else None,
            type=pending.type.value,
            payload=pending.payload,
            encrypted=pending.encrypted,
            encryption_driver=pending.encryption_driver,
        )
        message.attachments = self._build_attachments(pending.attachments)
        self.db.add(message)
        self.db.flush()

        delivery = self.deliveries.upsert(message, sender, read=True)
        self.db.commit()
        self.db.refresh(message)

        logger.info(
            "Message %s (%s) sent to thread %s by %s",
            message.id,
            message.type,
            thread.id,
            sender,
        )

        emit(self.events, MessageRead(message=message, actor=sender, delivery=delivery))
        emit(self.events, MessageSent(message=message, thread=thread, sender=sender))
        return message

    def text(self, thread: Thread | uuid.UUID | str, sender: Any, content: str) -> Message:
        return self.send(
            thread,
            sender,
            {"type": MessageType.TEXT.value, "content": content},
            type=MessageType.TEXT,
        )

    def image(
        self,
        thread: Thread | uuid.UUID | str,
        sender: Any,
        url: str,
        caption: str | None = None,
    ) -> Message:
        return self.send(
            thread,
            sender,
            _without_none(type=MessageType.IMAGE.value, url=url, caption=caption),
            type=MessageType.IMAGE,
        )

    def system(
        self,
        thread: Thread | uuid.UUID | str,
        sender: Any,
        content: str,
        action: str | None = None,
    ) -> Message:
        return self.send(
            thread,
            sender,
            _without_none(type=MessageType.SYSTEM.value, content=content, action=action),
            type=MessageType.SYSTEM,
        )

    def get_message(self, message_id: uuid.UUID | str) -> Message | None:
        try:
            return resolve_message(self.db, message_id)
        except NotFoundError:
            return None

    def get_message_or_404(self, message_id: uuid.UUID | str) -> Message:
        return resolve_message(self.db, message_id)

    def visible_messages(
        self,
        thread: Thread | uuid.UUID | str,
        actor: Any,
        limit: int | None = None,
    ) -> list[Message]:
        """Messages in the thread not deleted globally or hidden for this actor, oldest first."""
        thread = resolve_thread(self.db, thread)
        actor = ActorRef.of(actor)

        hidden = exists().where(
            MessageDeletion.message_id == Message.id,
            MessageDeletion.actor_type == actor.actor_type,
            MessageDeletion.actor_id == actor.actor_id,
        )
        query = (
            self.db.query(Message)
            .filter(Message.thread_id == thread.id, Message.deleted_at.is_(None), ~hidden)
            .order_by(Message.created_at.asc())
        )
        if limit is not None:
            query = query.limit(limit)
        return list(query.all())

    def read_payload(self, message: Message) -> dict[str, Any]:
        """Current payload with any at-rest encryption removed."""
        if message.versions:
            return self.read_version_payload(message.versions[-1])
        return self.read_original_payload(message)

    def read_original_payload(self, message: Message) -> dict[str, Any]:
        return self._decrypt(
            message.payload, message.encrypted, message.encryption_driver, message
        )

    def read_version_payload(self, version: MessageVersion) -> dict[str, Any]:
        return self._decrypt(
            version.payload, version.encrypted, version.encryption_driver, version.message
        )

    def _decrypt(
        self,
        payload: dict[str, Any],
        encrypted: bool,
        driver: str | None,
        message: Message,
    ) -> dict[str, Any]:
        if not encrypted or ENCRYPTED_PAYLOAD_KEY not in payload:
            return payload

        context = {
            "thread_id": str(message.thread_id),
            "sender_type": message.sender_type,
            "sender_id": message.sender_id,
        }
        return self.encryption.decrypt(payload[ENCRYPTED_PAYLOAD_KEY], driver, context)

    def _build_attachments(self, attachments: list[AttachmentIn]) -> list[MessageAttachment]:
        limit = self.settings.ATTACHMENTS_MAX_PER_MESSAGE
        if len(attachments) > limit:
            logger.debug(
                "Dropping %d attachments over the limit of %d", len(attachments) - limit, limit
            )

        return [
            MessageAttachment(
                type=data.type.value,
                disk=data.disk or self.settings.STORAGE_BACKEND,
                path=data.path,
                filename=data.filename,
                mime_type=data.mime_type,
                size=data.size,
                duration=data.duration,
                width=data.width,
                height=data.height,
                thumbnail_path=data.thumbnail_path,
                blurhash=data.blurhash,
                caption=data.caption,
                view_once=data.view_once,
                meta=data.metadata,
                order=order,
            )
            for order, data in enumerate(attachments[:limit])
        ]
