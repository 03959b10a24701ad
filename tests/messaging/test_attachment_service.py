"""Tests for attachment upload and view-once consumption."""

from pathlib import Path

import pytest

from chat_engine.core.exceptions import ValidationError
from chat_engine.messaging.models.message_attachment import AttachmentType


@pytest.fixture
def view_once_attachment(chat, alice, bob):
    thread = chat.threads.direct(alice, bob)
    message = (
        chat.message()
        .from_(alice)
        .to(thread)
        .view_once("chat-attachments/secret.jpg", "image", filename="secret.jpg")
        .send()
    )
    return message.attachments[0]


class TestUpload:
    def test_stores_file_and_detects_type(self, chat, settings):
        uploaded = chat.attachments.upload(b"\x89PNG fake", "photo.png")

        assert uploaded.type is AttachmentType.IMAGE
        assert uploaded.mime_type == "image/png"
        assert uploaded.size == 9
        assert uploaded.disk == "local"
        assert uploaded.path.startswith("chat-attachments/")
        assert uploaded.path.endswith(".png")
        assert (Path(settings.ATTACHMENTS_DIR) / uploaded.path).read_bytes() == b"\x89PNG fake"

    def test_explicit_type_and_folder(self, chat):
        uploaded = chat.attachments.upload(b"data", "clip.bin", type="video", folder="/videos/")

        assert uploaded.type is AttachmentType.VIDEO
        assert uploaded.path.startswith("videos/")

    def test_unknown_mime_falls_back_to_file(self, chat):
        uploaded = chat.attachments.upload(b"data", "notes.unknownext")
        assert uploaded.type is AttachmentType.FILE

    def test_requires_filename(self, chat):
        with pytest.raises(ValidationError):
            chat.attachments.upload(b"data", "")

    def test_upload_many(self, chat):
        uploaded = chat.attachments.upload_many(
            [(b"a", "a.mp3", None), (b"b", "b.pdf", "application/pdf")]
        )

        assert [u.type for u in uploaded] == [AttachmentType.AUDIO, AttachmentType.FILE]

    def test_uploaded_file_attaches_to_message(self, chat, alice, bob):
        thread = chat.threads.direct(alice, bob)

        message = (
            chat.message()
            .from_(alice)
            .to(thread)
            .attach_upload(b"%PDF", "report.pdf", caption="Q3")
            .send()
        )

        attachment = message.attachments[0]
        assert attachment.filename == "report.pdf"
        assert attachment.caption == "Q3"
        assert chat.attachments.url(attachment).startswith("http://test/uploads/chat-attachments/")


class TestViewOnce:
    def test_first_consume_wins(self, chat, view_once_attachment):
        url = chat.attachments.consume(view_once_attachment)

        assert url == "http://test/uploads/chat-attachments/secret.jpg"
        assert view_once_attachment.is_consumed
        assert not view_once_attachment.is_accessible()

    def test_later_consumes_return_none(self, chat, view_once_attachment):
        chat.attachments.consume(view_once_attachment)

        assert chat.attachments.consume(view_once_attachment) is None
        assert chat.attachments.consume(view_once_attachment) is None
        assert chat.attachments.access_url(view_once_attachment) is None

    def test_consumed_attachment_hides_every_url(self, chat, alice, bob):
        thread = chat.threads.direct(alice, bob)
        message = (
            chat.message()
            .from_(alice)
            .to(thread)
            .view_once("v/once.mp4", "video", thumbnail_path="v/once.jpg")
            .send()
        )
        attachment = message.attachments[0]
        assert chat.attachments.url(attachment) == "http://test/uploads/v/once.mp4"
        assert chat.attachments.thumbnail_url(attachment) == "http://test/uploads/v/once.jpg"

        assert chat.attachments.consume(attachment) == "http://test/uploads/v/once.mp4"

        assert chat.attachments.url(attachment) is None
        assert chat.attachments.thumbnail_url(attachment) is None
        assert chat.attachments.access_url(attachment) is None

    def test_regular_attachments_always_accessible(self, chat, alice, bob):
        thread = chat.threads.direct(alice, bob)
        message = chat.message().from_(alice).to(thread).attach("docs/a.pdf", "file").send()
        attachment = message.attachments[0]

        assert chat.attachments.consume(attachment) == chat.attachments.consume(attachment)
        assert attachment.viewed_at is None
        assert chat.attachments.access_url(attachment) is not None


class TestFiles:
    def test_thumbnail_url(self, chat, alice, bob):
        thread = chat.threads.direct(alice, bob)
        message = (
            chat.message()
            .from_(alice)
            .to(thread)
            .attach("v/clip.mp4", "video", thumbnail_path="v/clip.jpg", duration=75)
            .send()
        )
        attachment = message.attachments[0]

        assert chat.attachments.thumbnail_url(attachment) == "http://test/uploads/v/clip.jpg"
        assert attachment.human_duration == "1:15"

    def test_delete_files(self, chat, alice, bob):
        uploaded = chat.attachments.upload(b"bytes", "a.txt")
        thread = chat.threads.direct(alice, bob)
        message = chat.message().from_(alice).to(thread).attach(uploaded.path, "file").send()

        assert chat.attachments.delete_files(message.attachments[0]) is True
        assert not chat.file_store.exists(uploaded.path)
