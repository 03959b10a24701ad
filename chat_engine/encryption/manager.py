import json
import logging
from typing import Any

from chat_engine.core.config import ChatSettings
from chat_engine.core.config import settings as default_settings
from chat_engine.core.constants import NULL_DRIVER_NAME
from chat_engine.core.exceptions import EncryptionError
from chat_engine.encryption.base import EncryptionDriver
from chat_engine.encryption.fernet_driver import FernetDriver
from chat_engine.encryption.null_driver import NullDriver

logger = logging.getLogger(__name__)


class EncryptionManager:
    """Registry of encryption drivers plus the global enable/disable gate.

    Messages keep the tag of the driver that encrypted them, so payloads
    stay decryptable after the default driver changes as long as the old
    driver remains registered.
    """

    def __init__(self, settings: ChatSettings | None = None) -> None:
        self.settings = settings or default_settings
        self._drivers: dict[str, EncryptionDriver] = {}
        self._default_driver = self.settings.encryption_driver_name

        self.register_driver(NullDriver())
        self.register_driver(FernetDriver(self.settings.ENCRYPTION_KEY))

    def register_driver(self, driver: EncryptionDriver) -> "EncryptionManager":
        self._drivers[driver.get_driver_name()] = driver
        return self

    def driver(self, name: str | None = None) -> EncryptionDriver:
        name = name or self._default_driver or NULL_DRIVER_NAME
        if name not in self._drivers:
            raise EncryptionError(f"Encryption driver [{name}] not registered.", driver=name)
        return self._drivers[name]

    def get_default_driver(self) -> EncryptionDriver:
        return self.driver(self._default_driver)

    def set_default_driver(self, name: str) -> None:
        self.driver(name)
        self._default_driver = name

    def is_enabled(self) -> bool:
        return self.settings.ENCRYPTION_ENABLED

    def encrypt(self, payload: dict[str, Any], context: dict[str, Any] | None = None) -> str:
        if not self.is_enabled():
            return json.dumps(payload)
        return self.get_default_driver().encrypt(payload, context or {})

    def decrypt(
        self,
        encrypted: str,
        driver_name: str | None = None,
        context: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        if not self.is_enabled() or not driver_name or driver_name == NULL_DRIVER_NAME:
            decoded: dict[str, Any] = json.loads(encrypted)
            return decoded

        for driver in self._drivers.values():
            if driver.can_decrypt(driver_name):
                return driver.decrypt(encrypted, context or {})

        logger.error("No registered driver can decrypt payloads tagged %s", driver_name)
        raise EncryptionError(
            f"No driver can decrypt payload encrypted with [{driver_name}].", driver=driver_name
        )

    def get_driver_name(self) -> str:
        return self.get_default_driver().get_driver_name()

    def get_registered_drivers(self) -> list[str]:
        return list(self._drivers)
