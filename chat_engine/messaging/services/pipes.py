"""Built-in message pipes.

Each pipe is registered under its identifier so ``PIPELINE_PIPES`` can list
them by name. Pipes only touch the keys they know about and always hand
the message on, unless they reject it by raising.
"""

import re
from typing import TYPE_CHECKING, Any, Literal
from urllib.parse import urlparse

from chat_engine.core.config import ChatSettings
from chat_engine.core.constants import (
    ALLOWED_HTML_TAGS,
    ALLOWED_URL_SCHEMES,
    ENCRYPTED_PAYLOAD_KEY,
    PIPE_DETECT_MENTIONS,
    PIPE_DETECT_URLS,
    PIPE_ENCRYPT_PAYLOAD,
    PIPE_FILTER_PROFANITY,
    PIPE_SANITIZE_CONTENT,
    PIPE_VALIDATE_MEDIA_URLS,
    TEXT_PAYLOAD_KEYS,
)
from chat_engine.core.exceptions import ValidationError
from chat_engine.messaging.services.pipeline import NextPipe, PendingMessage, register_pipe

if TYPE_CHECKING:
    from chat_engine.encryption.manager import EncryptionManager

ProfanityMode = Literal["asterisk", "remove", "reject"]

_COMMENT_RE = re.compile(r"<!--.*?-->", re.DOTALL)
_TAG_RE = re.compile(r"</?([A-Za-z][A-Za-z0-9-]*)\b[^>]*>")
_BARE_AMPERSAND_RE = re.compile(r"&(?!(?:[A-Za-z][A-Za-z0-9]*|#[0-9]+|#[xX][0-9A-Fa-f]+);)")

_MENTION_RE = re.compile(r"@\[([^\]]+)\]\((\d+)\)|@(\w+)")
_URL_RE = re.compile(r"https?://[^\s<>\"{}|\\^`\[\]]+", re.IGNORECASE)


class SanitizeContent:
    def handle(self, message: PendingMessage, next_: NextPipe) -> PendingMessage:
        payload = dict(message.payload)
        for key in TEXT_PAYLOAD_KEYS:
            if isinstance(payload.get(key), str):
                payload[key] = self.sanitize(payload[key])

        message.payload = payload
        return next_(message)

    @staticmethod
    def sanitize(content: str) -> str:
        content = _COMMENT_RE.sub("", content)
        content = _TAG_RE.sub(
            lambda m: m.group(0) if m.group(1).lower() in ALLOWED_HTML_TAGS else "", content
        )

        # Existing entities are left alone so repeated runs are idempotent
        content = _BARE_AMPERSAND_RE.sub("&amp;", content)
        return (
            content.replace("<", "&lt;")
            .replace(">", "&gt;")
            .replace('"', "&quot;")
            .replace("'", "&#x27;")
        )


class DetectMentions:
    def handle(self, message: PendingMessage, next_: NextPipe) -> PendingMessage:
        content = message.payload.get("content")
        if not isinstance(content, str):
            return next_(message)

        mentions: list[dict[str, Any]] = []
        for match in _MENTION_RE.finditer(content):
            name, user_id, username = match.groups()
            if user_id:
                mentions.append({"name": name, "id": int(user_id), "text": match.group(0)})
            elif username:
                mentions.append({"username": username, "text": match.group(0)})

        if mentions:
            message.payload = {**message.payload, "mentions": mentions}

        return next_(message)


class DetectUrls:
    def handle(self, message: PendingMessage, next_: NextPipe) -> PendingMessage:
        content = message.payload.get("content")
        if not isinstance(content, str):
            return next_(message)

        urls = [
            {"url": url, "domain": urlparse(url).hostname}
            for url in _URL_RE.findall(content)
        ]

        if urls:
            message.payload = {**message.payload, "urls": urls}

        return next_(message)


class ValidateMediaUrls:
    def handle(self, message: PendingMessage, next_: NextPipe) -> PendingMessage:
        for key in ("url", "thumbnail"):
            if key in message.payload:
                self.validate_url(message.payload[key], key)

        return next_(message)

    @staticmethod
    def validate_url(url: Any, field: str = "url") -> None:
        parsed = urlparse(url) if isinstance(url, str) else None
        if parsed is None or not parsed.scheme or not parsed.netloc or " " in url:
            raise ValidationError(f"Invalid URL format: {url}", field=field)

        if parsed.scheme.lower() not in ALLOWED_URL_SCHEMES:
            raise ValidationError(f"URL must use http or https protocol: {url}", field=field)


class FilterProfanity:
    def __init__(
        self,
        words: list[str] | None = None,
        replacement: str = "*",
        mode: ProfanityMode = "asterisk",
    ) -> None:
        self.words: list[str] = list(words or [])
        self.replacement = replacement
        self.mode: ProfanityMode = mode

    def handle(self, message: PendingMessage, next_: NextPipe) -> PendingMessage:
        if not self.words:
            return next_(message)

        payload = dict(message.payload)
        for key in TEXT_PAYLOAD_KEYS:
            if isinstance(payload.get(key), str):
                payload[key] = self.filter(payload[key], key)

        message.payload = payload
        return next_(message)

    def filter(self, text: str, field: str = "content") -> str:
        if not self.words:
            return text

        pattern = self._pattern()

        if self.mode == "asterisk":
            return pattern.sub(lambda m: self.replacement * len(m.group(0)), text)
        if self.mode == "remove":
            return pattern.sub("", text)
        if self.mode == "reject" and pattern.search(text):
            raise ValidationError("Message contains inappropriate content.", field=field)
        return text

    def _pattern(self) -> re.Pattern[str]:
        alternatives = "|".join(re.escape(word) for word in self.words)
        return re.compile(rf"\b({alternatives})\b", re.IGNORECASE)

    def set_profanity_list(self, words: list[str]) -> "FilterProfanity":
        self.words = list(words)
        return self

    def add_words(self, words: list[str]) -> "FilterProfanity":
        self.words.extend(words)
        return self

    def set_replacement(self, replacement: str) -> "FilterProfanity":
        self.replacement = replacement
        return self

    def set_mode(self, mode: ProfanityMode) -> "FilterProfanity":
        self.mode = mode
        return self


class EncryptPayload:
    """Replace the payload with ciphertext; must be the last pipe in the chain."""

    def __init__(self, encryption: "EncryptionManager") -> None:
        self.encryption = encryption

    def handle(self, message: PendingMessage, next_: NextPipe) -> PendingMessage:
        if not self.encryption.is_enabled() or message.encrypted:
            return next_(message)

        context = {
            "thread_id": str(message.thread_id),
            "sender_type": message.sender.actor_type,
            "sender_id": message.sender.actor_id,
        }

        ciphertext = self.encryption.encrypt(message.payload, context)

        message.payload = {ENCRYPTED_PAYLOAD_KEY: ciphertext}
        message.encrypted = True
        message.encryption_driver = self.encryption.get_driver_name()

        return next_(message)


def _encrypt_payload_factory(
    settings: ChatSettings, encryption: "EncryptionManager | None"
) -> EncryptPayload:
    if encryption is None:
        from chat_engine.encryption.manager import EncryptionManager

        encryption = EncryptionManager(settings)
    return EncryptPayload(encryption)


register_pipe(PIPE_SANITIZE_CONTENT, lambda settings, encryption: SanitizeContent())
register_pipe(PIPE_DETECT_MENTIONS, lambda settings, encryption: DetectMentions())
register_pipe(PIPE_DETECT_URLS, lambda settings, encryption: DetectUrls())
register_pipe(PIPE_VALIDATE_MEDIA_URLS, lambda settings, encryption: ValidateMediaUrls())
register_pipe(
    PIPE_FILTER_PROFANITY,
    lambda settings, encryption: FilterProfanity(
        settings.PROFANITY_WORDS, settings.PROFANITY_REPLACEMENT, settings.PROFANITY_MODE
    ),
)
register_pipe(PIPE_ENCRYPT_PAYLOAD, _encrypt_payload_factory)
