from chat_engine.messaging.schemas.attachment import AttachmentIn, UploadedAttachment
from chat_engine.messaging.schemas.participant import ParticipantIn

__all__ = ["AttachmentIn", "ParticipantIn", "UploadedAttachment"]
