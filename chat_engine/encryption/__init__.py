from chat_engine.encryption.base import EncryptionDriver
from chat_engine.encryption.fernet_driver import FernetDriver
from chat_engine.encryption.manager import EncryptionManager
from chat_engine.encryption.null_driver import NullDriver

__all__ = ["EncryptionDriver", "EncryptionManager", "FernetDriver", "NullDriver"]
