"""Single entry point binding settings, a session, an event sink and a file store."""

from functools import cached_property
from typing import Any

from sqlalchemy.orm import Session

from chat_engine.core.config import ChatSettings
from chat_engine.core.config import settings as default_settings
from chat_engine.core.storage import FileStore, get_file_store
from chat_engine.encryption.manager import EncryptionManager
from chat_engine.messaging.events import EventSink, NullEventSink
from chat_engine.messaging.models.message_reaction import MessageReaction
from chat_engine.messaging.models.message_save import MessageSave
from chat_engine.messaging.models.thread import Thread
from chat_engine.messaging.models.thread_participant import ParticipantRole, ThreadParticipant
from chat_engine.messaging.services.attachment_service import AttachmentService
from chat_engine.messaging.services.bookmark_service import BookmarkService
from chat_engine.messaging.services.builders import MessageBuilder, ThreadBuilder
from chat_engine.messaging.services.deletion_service import DeletionService
from chat_engine.messaging.services.delivery_service import DeliveryService
from chat_engine.messaging.services.edit_service import EditService
from chat_engine.messaging.services.message_service import MessageService
from chat_engine.messaging.services.participant_service import ParticipantService
from chat_engine.messaging.services.pipeline import MessagePipeline
from chat_engine.messaging.services.policies import PolicyChecker
from chat_engine.messaging.services.presence_service import PresenceService
from chat_engine.messaging.services.reaction_service import ReactionService
from chat_engine.messaging.services.thread_service import ThreadService
from chat_engine.retention.service import RetentionService


class ChatEngine:
    """Facade over the messaging services.

    Services are created on first use and share one session, settings
    object, event sink, policy checker, encryption manager and pipeline.

    Example:
        engine = ChatEngine(db, events=LoggingEventSink())
        thread = engine.thread().between(alice, bob).first_or_create()
        engine.message().from_(alice).to(thread).text("Hi").send()
    """

    def __init__(
        self,
        db: Session,
        settings: ChatSettings | None = None,
        events: EventSink | None = None,
        file_store: FileStore | None = None,
        policy: PolicyChecker | None = None,
    ) -> None:
        self.db = db
        self.settings = settings or default_settings
        self.events = events or NullEventSink()
        self.policy = policy or PolicyChecker()
        self._file_store = file_store

    @cached_property
    def file_store(self) -> FileStore:
        return self._file_store or get_file_store(self.settings)

    @cached_property
    def encryption(self) -> EncryptionManager:
        return EncryptionManager(self.settings)

    @cached_property
    def pipeline(self) -> MessagePipeline:
        return MessagePipeline.from_settings(self.settings, self.encryption)

    @cached_property
    def threads(self) -> ThreadService:
        return ThreadService(self.db, self.settings, self.events, self.policy)

    @cached_property
    def messages(self) -> MessageService:
        return MessageService(
            self.db, self.settings, self.events, self.policy, self.pipeline, self.encryption
        )

    @cached_property
    def edits(self) -> EditService:
        return EditService(
            self.db, self.settings, self.events, self.policy, self.pipeline, self.encryption
        )

    @cached_property
    def deletions(self) -> DeletionService:
        return DeletionService(
            self.db, self.settings, self.events, self.policy, file_store=self.file_store
        )

    @cached_property
    def deliveries(self) -> DeliveryService:
        return DeliveryService(self.db, self.settings, self.events)

    @cached_property
    def participants(self) -> ParticipantService:
        return ParticipantService(self.db, self.events, self.policy)

    @cached_property
    def attachments(self) -> AttachmentService:
        return AttachmentService(self.db, self.settings, self.file_store)

    @cached_property
    def presence(self) -> PresenceService:
        return PresenceService(self.settings, self.events)

    @cached_property
    def reactions(self) -> ReactionService:
        return ReactionService(self.db, self.events, self.policy)

    @cached_property
    def bookmarks(self) -> BookmarkService:
        return BookmarkService(self.db, self.events, self.policy)

    @cached_property
    def retention(self) -> RetentionService:
        return RetentionService(self.db, self.settings)

    def thread(self) -> ThreadBuilder:
        return ThreadBuilder(self.threads)

    def message(self) -> MessageBuilder:
        return MessageBuilder(self.messages, self.attachments)

    def threads_for(self, actor: Any, include_left: bool = False) -> list[Thread]:
        return self.threads.threads_for(actor, include_left=include_left)

    def unread_count_for(self, thread: Thread, actor: Any) -> int:
        return self.threads.unread_count_for(thread, actor)

    def add_participant(
        self,
        thread: Thread,
        actor: Any,
        role: ParticipantRole | str = ParticipantRole.MEMBER,
        added_by: Any | None = None,
    ) -> ThreadParticipant:
        return self.participants.add(thread, actor, role, added_by=added_by)

    def remove_participant(self, thread: Thread, actor: Any, removed_by: Any | None = None) -> bool:
        return self.participants.remove(thread, actor, removed_by=removed_by)

    def start_typing(self, actor: Any, thread: Thread) -> None:
        self.presence.typing(actor, thread)

    def stop_typing(self, actor: Any, thread: Thread) -> None:
        self.presence.stop_typing(actor, thread)

    def mark_thread_as_read(self, thread: Thread, actor: Any) -> int:
        return self.deliveries.mark_thread_as_read(thread, actor)

    def react(self, message: Any, actor: Any, reaction: str) -> MessageReaction:
        return self.reactions.react(message, actor, reaction)

    def save_message(self, message: Any, actor: Any) -> MessageSave:
        return self.bookmarks.save(message, actor)
