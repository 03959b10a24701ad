from chat_engine.messaging.models.message import DeletionMode, Message, MessageType
from chat_engine.messaging.models.message_attachment import AttachmentType, MessageAttachment
from chat_engine.messaging.models.message_deletion import MessageDeletion
from chat_engine.messaging.models.message_delivery import MessageDelivery
from chat_engine.messaging.models.message_reaction import MessageReaction
from chat_engine.messaging.models.message_save import MessageSave
from chat_engine.messaging.models.message_version import MessageVersion
from chat_engine.messaging.models.thread import Thread, ThreadType
from chat_engine.messaging.models.thread_participant import ParticipantRole, ThreadParticipant

__all__ = [
    "AttachmentType",
    "DeletionMode",
    "Message",
    "MessageAttachment",
    "MessageDeletion",
    "MessageDelivery",
    "MessageReaction",
    "MessageSave",
    "MessageType",
    "MessageVersion",
    "ParticipantRole",
    "Thread",
    "ThreadParticipant",
    "ThreadType",
]
