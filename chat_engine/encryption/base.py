from abc import ABC, abstractmethod
from typing import Any


class EncryptionDriver(ABC):
    """Contract for message payload encryption drivers.

    Implement this to plug in custom encryption, including client-side
    end-to-end schemes that use participant keys passed through ``context``.
    """

    @abstractmethod
    def encrypt(self, payload: dict[str, Any], context: dict[str, Any] | None = None) -> str:
        """Encrypt a payload into an opaque ciphertext string."""

    @abstractmethod
    def decrypt(self, encrypted: str, context: dict[str, Any] | None = None) -> dict[str, Any]:
        """Turn ciphertext produced by ``encrypt`` back into the payload."""

    @abstractmethod
    def get_driver_name(self) -> str:
        """Tag stored with each message so it can be decrypted later."""

    @abstractmethod
    def can_decrypt(self, driver_name: str) -> bool:
        """Whether this driver understands ciphertext tagged with ``driver_name``."""
