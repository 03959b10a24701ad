"""Fluent builders over ThreadService and MessageService."""

import uuid
from collections.abc import Iterable
from typing import Any

from chat_engine.core.exceptions import ValidationError
from chat_engine.messaging.actors import ActorRef
from chat_engine.messaging.models.message import Message, MessageType
from chat_engine.messaging.models.message_attachment import AttachmentType
from chat_engine.messaging.models.thread import Thread, ThreadType
from chat_engine.messaging.models.thread_participant import ParticipantRole
from chat_engine.messaging.schemas.attachment import AttachmentIn
from chat_engine.messaging.schemas.participant import ParticipantIn
from chat_engine.messaging.services.attachment_service import AttachmentService
from chat_engine.messaging.services.lookups import resolve_thread
from chat_engine.messaging.services.message_service import MessageService, _without_none
from chat_engine.messaging.services.thread_service import ThreadService


class ThreadBuilder:
    def __init__(self, threads: ThreadService) -> None:
        self._threads = threads
        self._type = ThreadType.GROUP
        self._name: str | None = None
        self._participants: list[ParticipantIn] = []
        self._metadata: dict[str, Any] = {}
        self._find_existing = True

    def between(self, actor_a: Any, actor_b: Any) -> "ThreadBuilder":
        self._type = ThreadType.DIRECT
        self._participants = [ParticipantIn.of(actor_a), ParticipantIn.of(actor_b)]
        return self

    def group(self, name: str | None = None) -> "ThreadBuilder":
        self._type = ThreadType.GROUP
        self._name = name
        return self

    def channel(self, name: str) -> "ThreadBuilder":
        self._type = ThreadType.CHANNEL
        self._name = name
        return self

    def broadcast(self, name: str) -> "ThreadBuilder":
        self._type = ThreadType.BROADCAST
        self._name = name
        return self

    def type(self, thread_type: ThreadType | str) -> "ThreadBuilder":
        self._type = ThreadType(thread_type)
        return self

    def name(self, name: str) -> "ThreadBuilder":
        self._name = name
        return self

    def participants(
        self, actors: Any, role: ParticipantRole | str = ParticipantRole.MEMBER
    ) -> "ThreadBuilder":
        """Add one actor or an iterable of actors with the same role."""
        if isinstance(actors, Iterable) and not isinstance(actors, (str, ActorRef)):
            for actor in actors:
                self._participants.append(ParticipantIn.of(actor, role))
        else:
            self._participants.append(ParticipantIn.of(actors, role))
        return self

    def with_owner(self, actor: Any) -> "ThreadBuilder":
        return self.participants(actor, ParticipantRole.OWNER)

    def with_admin(self, actor: Any) -> "ThreadBuilder":
        return self.participants(actor, ParticipantRole.ADMIN)

    def with_member(self, actor: Any) -> "ThreadBuilder":
        return self.participants(actor, ParticipantRole.MEMBER)

    def metadata(self, metadata: dict[str, Any]) -> "ThreadBuilder":
        self._metadata.update(metadata)
        return self

    def always_new(self) -> "ThreadBuilder":
        self._find_existing = False
        return self

    def create(self) -> Thread:
        return self._threads.create(
            self._type,
            self._participants,
            name=self._name,
            metadata=self._metadata,
            find_existing=self._find_existing,
        )

    def find(self) -> Thread | None:
        return self._threads.find_by_hash(
            self._threads.generate_hash(self._participants, self._type)
        )

    def first_or_create(self) -> Thread:
        return self.find() or self.create()


class MessageBuilder:
    def __init__(
        self,
        messages: MessageService,
        attachments: AttachmentService | None = None,
    ) -> None:
        self._messages = messages
        self._attachment_service = attachments
        self._sender: ActorRef | None = None
        self._author: ActorRef | None = None
        self._thread: Thread | uuid.UUID | str | None = None
        self._type = MessageType.TEXT
        self._payload: dict[str, Any] = {}
        self._encrypted = False
        self._encryption_driver: str | None = None
        self._pending_attachments: list[AttachmentIn] = []

    def from_(self, actor: Any) -> "MessageBuilder":
        self._sender = ActorRef.of(actor)
        return self

    def on_behalf_of(self, actor: Any) -> "MessageBuilder":
        self._author = ActorRef.of(actor)
        return self

    def to(self, thread: Thread | uuid.UUID | str) -> "MessageBuilder":
        self._thread = thread
        return self

    def type(self, message_type: MessageType | str) -> "MessageBuilder":
        self._type = MessageType(message_type)
        return self

    def text(self, content: str) -> "MessageBuilder":
        return self._set(MessageType.TEXT, content=content)

    def image(
        self,
        url: str,
        caption: str | None = None,
        width: int | None = None,
        height: int | None = None,
    ) -> "MessageBuilder":
        return self._set(MessageType.IMAGE, url=url, caption=caption, width=width, height=height)

    def video(
        self, url: str, thumbnail: str | None = None, duration: int | None = None
    ) -> "MessageBuilder":
        return self._set(MessageType.VIDEO, url=url, thumbnail=thumbnail, duration=duration)

    def audio(
        self, url: str, duration: int | None = None, waveform: str | None = None
    ) -> "MessageBuilder":
        return self._set(MessageType.AUDIO, url=url, duration=duration, waveform=waveform)

    def file(
        self,
        url: str,
        filename: str,
        mime_type: str | None = None,
        size: int | None = None,
    ) -> "MessageBuilder":
        return self._set(
            MessageType.FILE, url=url, filename=filename, mime_type=mime_type, size=size
        )

    def location(
        self,
        latitude: float,
        longitude: float,
        address: str | None = None,
        name: str | None = None,
    ) -> "MessageBuilder":
        return self._set(
            MessageType.LOCATION,
            latitude=latitude,
            longitude=longitude,
            address=address,
            name=name,
        )

    def contact(
        self,
        name: str,
        phone: str | None = None,
        email: str | None = None,
        extra: dict[str, Any] | None = None,
    ) -> "MessageBuilder":
        return self._set(MessageType.CONTACT, name=name, phone=phone, email=email, extra=extra)

    def system(self, content: str, action: str | None = None) -> "MessageBuilder":
        return self._set(MessageType.SYSTEM, content=content, action=action)

    def payload(self, payload: dict[str, Any]) -> "MessageBuilder":
        self._payload.update(payload)
        return self

    def encrypted(self, driver: str | None = None) -> "MessageBuilder":
        """Flag the payload as already encrypted by the caller, so the pipeline leaves it alone."""
        self._encrypted = True
        self._encryption_driver = driver
        return self

    def attach(
        self, path: str, type: AttachmentType | str, **options: Any
    ) -> "MessageBuilder":
        self._pending_attachments.append(
            AttachmentIn(**{**options, "path": path, "type": AttachmentType(type)})
        )
        return self

    def attachments(self, attachments: Iterable[AttachmentIn | dict[str, Any]]) -> "MessageBuilder":
        for attachment in attachments:
            data = attachment.model_dump() if isinstance(attachment, AttachmentIn) else attachment
            options = {k: v for k, v in data.items() if k not in ("path", "type")}
            self.attach(data["path"], data.get("type", AttachmentType.FILE), **options)
        return self

    def view_once(self, path: str, type: AttachmentType | str, **options: Any) -> "MessageBuilder":
        return self.attach(path, type, **{**options, "view_once": True})

    def attach_upload(
        self,
        content: bytes,
        filename: str,
        mime_type: str | None = None,
        type: AttachmentType | str | None = None,
        **options: Any,
    ) -> "MessageBuilder":
        if self._attachment_service is None:
            raise ValidationError("No attachment storage configured.", field="attachments")

        uploaded = self._attachment_service.upload(content, filename, mime_type, type)
        self._pending_attachments.append(uploaded.to_attachment(**options))
        return self

    def send(self) -> Message:
        if self._sender is None:
            raise ValidationError("Message must have a sender. Use .from_(actor)", field="sender")
        if self._thread is None:
            raise ValidationError(
                "Message must have a target thread. Use .to(thread)", field="thread"
            )
        if not self._payload and not self._pending_attachments:
            raise ValidationError("Message must have a payload or attachments.", field="payload")

        thread = resolve_thread(self._messages.db, self._thread)
        if not thread.can_send_message(self._sender):
            raise ValidationError(
                "Thread is locked. Only admins can send messages.", field="thread"
            )

        return self._messages.send(
            thread,
            self._sender,
            self._payload,
            type=self._type,
            author=self._author,
            encrypted=self._encrypted,
            encryption_driver=self._encryption_driver,
            attachments=self._pending_attachments,
        )

    def _set(self, message_type: MessageType, **fields: Any) -> "MessageBuilder":
        self._type = message_type
        self._payload = _without_none(type=message_type.value, **fields)
        return self
