"""Ordered chain of content transforms applied before a message is stored."""

import logging
import uuid
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Protocol

from chat_engine.core.config import ChatSettings
from chat_engine.core.config import settings as default_settings
from chat_engine.core.exceptions import ValidationError
from chat_engine.messaging.actors import ActorRef
from chat_engine.messaging.models.message import MessageType

if TYPE_CHECKING:
    from chat_engine.encryption.manager import EncryptionManager

logger = logging.getLogger(__name__)


@dataclass
class PendingMessage:
    """Message contents travelling through the pipeline, not yet persisted."""

    thread_id: uuid.UUID
    sender: ActorRef
    type: MessageType
    payload: dict[str, Any]
    author: ActorRef | None = None
    encrypted: bool = False
    encryption_driver: str | None = None
    attachments: list[Any] = field(default_factory=list)


NextPipe = Callable[[PendingMessage], PendingMessage]


class MessagePipe(Protocol):
    def handle(self, message: PendingMessage, next_: NextPipe) -> PendingMessage: ...


class MessagePipeline:
    def __init__(self, pipes: Sequence[MessagePipe] | None = None) -> None:
        self.pipes: list[MessagePipe] = list(pipes or [])

    def __len__(self) -> int:
        return len(self.pipes)

    def process(self, message: PendingMessage) -> PendingMessage:
        """Run the message through every pipe, first configured pipe outermost."""

        def destination(msg: PendingMessage) -> PendingMessage:
            return msg

        handler: NextPipe = destination
        for pipe in reversed(self.pipes):
            handler = self._wrap(pipe, handler)

        return handler(message)

    @staticmethod
    def _wrap(pipe: MessagePipe, next_: NextPipe) -> NextPipe:
        def call(msg: PendingMessage) -> PendingMessage:
            return pipe.handle(msg, next_)

        return call

    @classmethod
    def from_settings(
        cls,
        settings: ChatSettings | None = None,
        encryption: "EncryptionManager | None" = None,
    ) -> "MessagePipeline":
        settings = settings or default_settings
        pipes = [build_pipe(name, settings, encryption) for name in settings.PIPELINE_PIPES]
        logger.debug("Message pipeline built with pipes: %s", settings.PIPELINE_PIPES)
        return cls(pipes)


PipeFactory = Callable[[ChatSettings, "EncryptionManager | None"], MessagePipe]

_PIPE_REGISTRY: dict[str, PipeFactory] = {}


def register_pipe(name: str, factory: PipeFactory) -> None:
    _PIPE_REGISTRY[name] = factory


def registered_pipes() -> list[str]:
    return list(_PIPE_REGISTRY)


def build_pipe(
    name: str,
    settings: ChatSettings,
    encryption: "EncryptionManager | None" = None,
) -> MessagePipe:
    # Built-ins register themselves on import
    from chat_engine.messaging.services import pipes  # noqa: F401

    factory = _PIPE_REGISTRY.get(name)
    if factory is None:
        raise ValidationError(f"Unknown message pipe [{name}].", field="PIPELINE_PIPES")
    return factory(settings, encryption)
