import logging
import mimetypes
from collections.abc import Iterable

from sqlalchemy.orm import Session

from chat_engine.core.config import ChatSettings
from chat_engine.core.config import settings as default_settings
from chat_engine.core.datetime_utils import utc_now
from chat_engine.core.exceptions import ValidationError
from chat_engine.core.storage import FileStore, generate_unique_filename, get_file_store
from chat_engine.messaging.models.message_attachment import AttachmentType, MessageAttachment
from chat_engine.messaging.schemas.attachment import UploadedAttachment

logger = logging.getLogger(__name__)


class AttachmentService:
    """Stores attachment files and guards access to view-once content."""

    def __init__(
        self,
        db: Session,
        settings: ChatSettings | None = None,
        file_store: FileStore | None = None,
    ) -> None:
        self.db = db
        self.settings = settings or default_settings
        self.file_store = file_store or get_file_store(self.settings)

    def upload(
        self,
        content: bytes,
        filename: str,
        mime_type: str | None = None,
        type: AttachmentType | str | None = None,
        folder: str | None = None,
    ) -> UploadedAttachment:
        """Store the file and return attachment data ready for ``MessageBuilder.attach``.

        The attachment type is detected from the MIME type when not given.
        """
        if not filename:
            raise ValidationError("Filename is required.", field="filename")

        mime_type = mime_type or mimetypes.guess_type(filename)[0]
        attachment_type = (
            AttachmentType(type) if type else AttachmentType.from_mime_type(mime_type)
        )

        folder = (folder or self.settings.ATTACHMENTS_FOLDER).strip("/")
        path = f"{folder}/{generate_unique_filename(filename)}"
        stored_path = self.file_store.store(content, path)

        logger.info(
            "Stored %s attachment %s (%d bytes)", attachment_type.value, stored_path, len(content)
        )

        return UploadedAttachment(
            path=stored_path,
            disk=self.settings.STORAGE_BACKEND,
            filename=filename,
            mime_type=mime_type,
            size=len(content),
            type=attachment_type,
        )

    def upload_many(
        self,
        files: Iterable[tuple[bytes, str, str | None]],
        folder: str | None = None,
    ) -> list[UploadedAttachment]:
        return [
            self.upload(content, filename, mime_type, folder=folder)
            for content, filename, mime_type in files
        ]

    def url(self, attachment: MessageAttachment) -> str | None:
        """Content URL, withheld once a view-once attachment has been consumed."""
        if attachment.is_consumed:
            return None
        return self._content_url(attachment)

    def thumbnail_url(self, attachment: MessageAttachment) -> str | None:
        if not attachment.thumbnail_path or attachment.is_consumed:
            return None
        return self.file_store.url(attachment.thumbnail_path)

    def access_url(self, attachment: MessageAttachment) -> str | None:
        """URL of the content, or None once a view-once attachment has been consumed."""
        if not attachment.is_accessible():
            return None
        return self._content_url(attachment)

    def consume(self, attachment: MessageAttachment) -> str | None:
        """Open the attachment, burning a view-once attachment on first access.

        Concurrent callers race on a single conditional UPDATE; only the one
        that flips ``viewed_at`` from NULL gets the URL.
        """
        if not attachment.view_once:
            return self._content_url(attachment)

        now = utc_now()
        won = (
            self.db.query(MessageAttachment)
            .filter(MessageAttachment.id == attachment.id, MessageAttachment.viewed_at.is_(None))
            .update({"viewed_at": now, "updated_at": now}, synchronize_session=False)
        )
        self.db.commit()
        self.db.refresh(attachment)

        if won != 1:
            logger.debug("View-once attachment %s already consumed", attachment.id)
            return None

        logger.info("View-once attachment %s consumed", attachment.id)
        return self._content_url(attachment)

    def _content_url(self, attachment: MessageAttachment) -> str:
        return self.file_store.url(attachment.path)

    def delete_files(self, attachment: MessageAttachment) -> bool:
        deleted = self.file_store.delete(attachment.path)
        if attachment.thumbnail_path:
            self.file_store.delete(attachment.thumbnail_path)
        return deleted
