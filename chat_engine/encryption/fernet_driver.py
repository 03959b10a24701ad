import json
import logging
from typing import Any

from cryptography.fernet import Fernet, InvalidToken

from chat_engine.core.exceptions import EncryptionError
from chat_engine.encryption.base import EncryptionDriver

logger = logging.getLogger(__name__)

DRIVER_NAME = "fernet"


class FernetDriver(EncryptionDriver):
    """Server-side authenticated encryption with one application-wide key.

    Fernet is AES-128-CBC with an HMAC-SHA256 tag. The server holds the key,
    so this protects payloads at rest only; it is NOT end-to-end encryption.
    """

    def __init__(self, key: str) -> None:
        self._key = key
        self._fernet_instance: Fernet | None = None

    def _get_fernet(self) -> Fernet:
        if self._fernet_instance is not None:
            return self._fernet_instance

        if not self._key:
            raise EncryptionError(
                "CHAT_ENCRYPTION_KEY is not configured. Generate one with: python -c "
                "'from cryptography.fernet import Fernet; print(Fernet.generate_key().decode())'",
                driver=DRIVER_NAME,
            )
        try:
            self._fernet_instance = Fernet(self._key.encode())
        except (ValueError, InvalidToken) as e:
            raise EncryptionError(
                f"CHAT_ENCRYPTION_KEY is not a valid Fernet key: {e}", driver=DRIVER_NAME
            ) from e
        return self._fernet_instance

    def encrypt(self, payload: dict[str, Any], context: dict[str, Any] | None = None) -> str:
        return self._get_fernet().encrypt(json.dumps(payload).encode()).decode()

    def decrypt(self, encrypted: str, context: dict[str, Any] | None = None) -> dict[str, Any]:
        try:
            plaintext = self._get_fernet().decrypt(encrypted.encode())
        except InvalidToken as e:
            logger.warning("Rejected payload with invalid Fernet token")
            raise EncryptionError("Payload could not be decrypted", driver=DRIVER_NAME) from e
        decoded: dict[str, Any] = json.loads(plaintext)
        return decoded

    def get_driver_name(self) -> str:
        return DRIVER_NAME

    def can_decrypt(self, driver_name: str) -> bool:
        return driver_name == DRIVER_NAME
