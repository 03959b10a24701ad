"""Tests for per-type payload validation."""

import pytest

from chat_engine.core.exceptions import ValidationError
from chat_engine.messaging.services.payload_validator import PayloadValidator


@pytest.fixture
def validator():
    return PayloadValidator()


class TestValidPayloads:
    @pytest.mark.parametrize(
        ("message_type", "payload"),
        [
            ("text", {"content": "hello"}),
            ("image", {"type": "image", "url": "https://cdn.example.com/a.png"}),
            ("video", {"type": "video", "url": "http://example.com/v.mp4"}),
            ("audio", {"type": "audio", "url": "https://example.com/a.ogg"}),
            ("file", {"url": "files/report.pdf", "filename": "report.pdf"}),
            ("location", {"latitude": 52.23, "longitude": 21.01}),
            ("location", {"latitude": "-90", "longitude": "180"}),
            ("contact", {"name": "Jan", "email": "jan@example.com"}),
            ("contact", {"name": "Jan", "phone": "+48 600 000 000"}),
            ("system", {"content": "Alice joined"}),
            ("custom", {"anything": ["goes"]}),
        ],
    )
    def test_accepts(self, validator, message_type, payload):
        validator.validate(payload, message_type)


class TestInvalidPayloads:
    @pytest.mark.parametrize(
        ("message_type", "payload", "field"),
        [
            ("text", {}, "content"),
            ("text", {"content": "   "}, "content"),
            ("text", {"content": 5}, "content"),
            ("image", {}, "url"),
            ("image", {"url": "not a url"}, "url"),
            ("video", {"url": "ftp://example.com/v.mp4"}, "url"),
            ("file", {"url": "files/x.pdf"}, "filename"),
            ("location", {"latitude": 91, "longitude": 0}, "latitude"),
            ("location", {"latitude": 0, "longitude": -180.5}, "longitude"),
            ("location", {"latitude": True, "longitude": 0}, "latitude"),
            ("location", {"latitude": 10}, "longitude"),
            ("contact", {"name": "Jan"}, "phone"),
            ("contact", {"phone": "123"}, "name"),
            ("system", {}, "content"),
        ],
    )
    def test_rejects_naming_field(self, validator, message_type, payload, field):
        with pytest.raises(ValidationError) as exc_info:
            validator.validate(payload, message_type)

        assert exc_info.value.details["field"] == field
        assert exc_info.value.status_code == 400

    def test_unknown_type_is_rejected(self, validator):
        with pytest.raises(ValueError):
            validator.validate({"content": "x"}, "sticker")
