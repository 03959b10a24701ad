"""
Database base module - imports all models for Alembic migration detection.

This module imports all SQLAlchemy models to ensure they are registered
with the declarative Base (and therefore with Alembic autogenerate and
``Base.metadata.create_all``). While the imports appear unused, they are
essential for relationship resolution by class name.
"""

from chat_engine.db.session import Base
from chat_engine.messaging.models import (
    Message,
    MessageAttachment,
    MessageDeletion,
    MessageDelivery,
    MessageReaction,
    MessageSave,
    MessageVersion,
    Thread,
    ThreadParticipant,
)

__all__ = [
    "Base",
    "Message",
    "MessageAttachment",
    "MessageDeletion",
    "MessageDelivery",
    "MessageReaction",
    "MessageSave",
    "MessageVersion",
    "Thread",
    "ThreadParticipant",
]
