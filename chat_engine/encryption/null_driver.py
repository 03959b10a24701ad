import json
from typing import Any

from chat_engine.core.constants import NULL_DRIVER_NAME
from chat_engine.encryption.base import EncryptionDriver


class NullDriver(EncryptionDriver):
    """Identity driver: payloads are JSON encoded, not secret."""

    def encrypt(self, payload: dict[str, Any], context: dict[str, Any] | None = None) -> str:
        return json.dumps(payload)

    def decrypt(self, encrypted: str, context: dict[str, Any] | None = None) -> dict[str, Any]:
        decoded: dict[str, Any] = json.loads(encrypted)
        return decoded

    def get_driver_name(self) -> str:
        return NULL_DRIVER_NAME

    def can_decrypt(self, driver_name: str) -> bool:
        return driver_name in (NULL_DRIVER_NAME, "")
