"""Per-type structural validation of message payloads."""

from collections.abc import Callable
from typing import Any
from urllib.parse import urlparse

from chat_engine.core.constants import ALLOWED_URL_SCHEMES
from chat_engine.core.exceptions import ValidationError
from chat_engine.messaging.models.message import MessageType


def _is_number(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, int | float):
        return True
    if isinstance(value, str):
        try:
            float(value)
        except ValueError:
            return False
        return True
    return False


def is_absolute_http_url(url: str) -> bool:
    parsed = urlparse(url)
    return parsed.scheme in ALLOWED_URL_SCHEMES and bool(parsed.netloc) and " " not in url


class PayloadValidator:
    def __init__(self) -> None:
        self._validators: dict[MessageType, Callable[[dict[str, Any]], None]] = {
            MessageType.TEXT: self._validate_text,
            MessageType.IMAGE: self._validate_media,
            MessageType.VIDEO: self._validate_media,
            MessageType.AUDIO: self._validate_media,
            MessageType.FILE: self._validate_file,
            MessageType.LOCATION: self._validate_location,
            MessageType.CONTACT: self._validate_contact,
            MessageType.SYSTEM: self._validate_system,
        }

    def validate(self, payload: dict[str, Any], message_type: MessageType | str) -> None:
        """Raise ValidationError naming the offending field; custom payloads pass through."""
        message_type = MessageType(message_type)
        validator = self._validators.get(message_type)
        if validator is None:
            return
        if not isinstance(payload, dict):
            raise ValidationError("Payload must be a mapping.", field="payload")
        validator(payload)

    @staticmethod
    def _require_string(payload: dict[str, Any], key: str, label: str) -> str:
        value = payload.get(key)
        if not isinstance(value, str):
            raise ValidationError(f'{label} message must have a string "{key}" field.', field=key)
        return value

    def _validate_text(self, payload: dict[str, Any]) -> None:
        content = self._require_string(payload, "content", "Text")
        if not content.strip():
            raise ValidationError("Text message content cannot be empty.", field="content")

    def _validate_media(self, payload: dict[str, Any]) -> None:
        label = str(payload.get("type", "Media")).capitalize()
        url = self._require_string(payload, "url", label)
        if not is_absolute_http_url(url):
            raise ValidationError(f"{label} message URL is not valid.", field="url")

    def _validate_file(self, payload: dict[str, Any]) -> None:
        self._require_string(payload, "url", "File")
        self._require_string(payload, "filename", "File")

    def _validate_location(self, payload: dict[str, Any]) -> None:
        for key in ("latitude", "longitude"):
            if not _is_number(payload.get(key)):
                raise ValidationError(
                    f'Location message must have a numeric "{key}" field.', field=key
                )

        latitude = float(payload["latitude"])
        longitude = float(payload["longitude"])

        if not -90 <= latitude <= 90:
            raise ValidationError("Latitude must be between -90 and 90.", field="latitude")
        if not -180 <= longitude <= 180:
            raise ValidationError("Longitude must be between -180 and 180.", field="longitude")

    def _validate_contact(self, payload: dict[str, Any]) -> None:
        self._require_string(payload, "name", "Contact")

        has_phone = isinstance(payload.get("phone"), str)
        has_email = isinstance(payload.get("email"), str)
        if not has_phone and not has_email:
            raise ValidationError(
                'Contact message must have either "phone" or "email" field.', field="phone"
            )

    def _validate_system(self, payload: dict[str, Any]) -> None:
        self._require_string(payload, "content", "System")
