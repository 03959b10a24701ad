import uuid
from typing import Any

from sqlalchemy.orm import Session

from chat_engine.core.exceptions import NotFoundError
from chat_engine.messaging.models.message import Message
from chat_engine.messaging.models.thread import Thread


def _as_uuid(value: Any) -> uuid.UUID | None:
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except ValueError:
        return None


def resolve_thread(db: Session, thread: Thread | uuid.UUID | str) -> Thread:
    """Return the thread itself or load it by id, raising NotFoundError when absent."""
    if isinstance(thread, Thread):
        return thread

    thread_id = _as_uuid(thread)
    found = db.get(Thread, thread_id) if thread_id else None
    if found is None:
        raise NotFoundError(f"Thread {thread} not found.", resource="thread")
    return found


def resolve_message(db: Session, message: Message | uuid.UUID | str) -> Message:
    if isinstance(message, Message):
        return message

    message_id = _as_uuid(message)
    found = db.get(Message, message_id) if message_id else None
    if found is None:
        raise NotFoundError(f"Message {message} not found.", resource="message")
    return found
