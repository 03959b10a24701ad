import logging
import uuid
from collections.abc import Iterable
from typing import Any

from sqlalchemy import and_, exists, func, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from chat_engine.core.config import ChatSettings
from chat_engine.core.config import settings as default_settings
from chat_engine.core.exceptions import NotFoundError, ValidationError
from chat_engine.messaging.actors import ActorRef
from chat_engine.messaging.events import (
    EventSink,
    NullEventSink,
    ParticipantAdded,
    ThreadCreated,
    emit,
)
from chat_engine.messaging.models.message import Message
from chat_engine.messaging.models.message_deletion import MessageDeletion
from chat_engine.messaging.models.message_delivery import MessageDelivery
from chat_engine.messaging.models.thread import Thread, ThreadType
from chat_engine.messaging.models.thread_participant import ThreadParticipant
from chat_engine.messaging.schemas.participant import ParticipantIn
from chat_engine.messaging.services.hashing import ThreadHasher
from chat_engine.messaging.services.lookups import resolve_thread
from chat_engine.messaging.services.policies import PolicyChecker

logger = logging.getLogger(__name__)


class ThreadService:
    """Thread creation, deduplication, locking and unread counters."""

    def __init__(
        self,
        db: Session,
        settings: ChatSettings | None = None,
        events: EventSink | None = None,
        policy: PolicyChecker | None = None,
    ) -> None:
        self.db = db
        self.settings = settings or default_settings
        self.events = events or NullEventSink()
        self.policy = policy or PolicyChecker()

    def create(
        self,
        thread_type: ThreadType | str,
        participants: Iterable[Any],
        name: str | None = None,
        metadata: dict[str, Any] | None = None,
        find_existing: bool = True,
    ) -> Thread:
        """Create a thread, or return the existing one for the same participant set.

        Deduplication only applies when participant hashing is enabled and
        ``find_existing`` is set. Concurrent creators of the same set end up
        with the same thread: the unique hash makes the loser's insert fail
        and it re-reads the winner's row.
        """
        thread_type = ThreadType(thread_type)
        members = [ParticipantIn.coerce(p) for p in participants]
        self._validate_participants(thread_type, members)

        thread_hash = None
        if find_existing and self.settings.HASH_PARTICIPANTS:
            candidate = self.generate_hash(members, thread_type)
            if not self.settings.ALLOW_DUPLICATE_THREADS:
                existing = self.find_by_hash(candidate)
                if existing is not None:
                    logger.debug("Reusing thread %s for participant hash", existing.id)
                    return existing
                thread_hash = candidate

        thread = Thread(
            type=thread_type.value,
            name=name,
            hash=thread_hash,
            meta=metadata or None,
        )
        rows = [
            ThreadParticipant(
                actor_type=member.actor.actor_type,
                actor_id=member.actor.actor_id,
                role=member.role.value,
            )
            for member in members
        ]
        thread.participants = rows

        try:
            with self.db.begin_nested():
                self.db.add(thread)
        except IntegrityError:
            if thread_hash is None:
                raise
            existing = self.find_by_hash(thread_hash)
            if existing is None:
                raise
            logger.info("Lost thread creation race; using thread %s", existing.id)
            return existing

        self.db.commit()
        self.db.refresh(thread)

        logger.info(
            "Created %s thread %s with %d participants", thread.type, thread.id, len(members)
        )

        emit(self.events, ThreadCreated(thread=thread))
        for member, participant in zip(members, rows, strict=True):
            emit(
                self.events,
                ParticipantAdded(
                    thread=thread,
                    actor=member.actor,
                    participant=participant,
                    role=member.role,
                ),
            )

        return thread

    def direct(self, actor_a: Any, actor_b: Any) -> Thread:
        return self.create(
            ThreadType.DIRECT,
            [ParticipantIn.of(actor_a), ParticipantIn.of(actor_b)],
        )

    def generate_hash(self, participants: Iterable[Any], thread_type: ThreadType | str) -> str:
        return ThreadHasher.generate(
            [ParticipantIn.coerce(p) for p in participants],
            include_roles=self.settings.INCLUDE_ROLES_IN_HASH,
            thread_type=ThreadType(thread_type),
        )

    def find_by_hash(self, thread_hash: str) -> Thread | None:
        thread: Thread | None = self.db.query(Thread).filter(Thread.hash == thread_hash).first()
        return thread

    def get_thread(self, thread_id: uuid.UUID | str) -> Thread | None:
        try:
            return resolve_thread(self.db, thread_id)
        except NotFoundError:
            return None

    def get_thread_or_404(self, thread_id: uuid.UUID | str) -> Thread:
        return resolve_thread(self.db, thread_id)

    def direct_thread_between(self, actor_a: Any, actor_b: Any) -> Thread | None:
        """Direct thread in which both actors are still active participants."""
        a, b = ActorRef.of(actor_a), ActorRef.of(actor_b)

        query = self.db.query(Thread).filter(Thread.type == ThreadType.DIRECT.value)
        for actor in (a, b):
            query = query.filter(
                Thread.participants.any(
                    and_(
                        ThreadParticipant.actor_type == actor.actor_type,
                        ThreadParticipant.actor_id == actor.actor_id,
                        ThreadParticipant.left_at.is_(None),
                    )
                )
            )
        thread: Thread | None = query.order_by(Thread.created_at.asc()).first()
        return thread

    def lock(self, thread: Thread | uuid.UUID | str, actor: Any | None = None) -> Thread:
        return self._set_locked(thread, actor, locked=True)

    def unlock(self, thread: Thread | uuid.UUID | str, actor: Any | None = None) -> Thread:
        return self._set_locked(thread, actor, locked=False)

    def delete_thread(self, thread: Thread | uuid.UUID | str, actor: Any | None = None) -> None:
        """Delete the thread with its participants, messages and their children."""
        thread = resolve_thread(self.db, thread)
        if actor is not None:
            self.policy.authorize("delete", ActorRef.of(actor), thread)

        thread_id = thread.id
        self.db.delete(thread)
        self.db.commit()

        logger.info("Deleted thread %s", thread_id)

    def threads_for(self, actor: Any, include_left: bool = False) -> list[Thread]:
        actor = ActorRef.of(actor)

        conditions = [
            ThreadParticipant.actor_type == actor.actor_type,
            ThreadParticipant.actor_id == actor.actor_id,
        ]
        if not include_left:
            conditions.append(ThreadParticipant.left_at.is_(None))

        return list(
            self.db.query(Thread)
            .filter(Thread.participants.any(and_(*conditions)))
            .order_by(Thread.created_at.desc())
            .all()
        )

    def unread_count_for(self, thread: Thread | uuid.UUID | str, actor: Any) -> int:
        thread = resolve_thread(self.db, thread)
        actor = ActorRef.of(actor)

        count = (
            self.db.query(func.count(Message.id))
            .filter(Message.thread_id == thread.id, *self._unread_conditions(actor))
            .scalar()
        )
        return int(count or 0)

    def total_unread_for(self, actor: Any) -> int:
        """Unread messages across every thread the actor is still active in."""
        actor = ActorRef.of(actor)

        active_threads = (
            self.db.query(ThreadParticipant.thread_id)
            .filter(
                ThreadParticipant.actor_type == actor.actor_type,
                ThreadParticipant.actor_id == actor.actor_id,
                ThreadParticipant.left_at.is_(None),
            )
            .scalar_subquery()
        )

        count = (
            self.db.query(func.count(Message.id))
            .filter(Message.thread_id.in_(active_threads), *self._unread_conditions(actor))
            .scalar()
        )
        return int(count or 0)

    @staticmethod
    def _unread_conditions(actor: ActorRef) -> list[Any]:
        read_by_actor = exists().where(
            MessageDelivery.message_id == Message.id,
            MessageDelivery.actor_type == actor.actor_type,
            MessageDelivery.actor_id == actor.actor_id,
            MessageDelivery.read_at.is_not(None),
        )
        hidden_for_actor = exists().where(
            MessageDeletion.message_id == Message.id,
            MessageDeletion.actor_type == actor.actor_type,
            MessageDeletion.actor_id == actor.actor_id,
        )
        return [
            or_(Message.sender_type != actor.actor_type, Message.sender_id != actor.actor_id),
            Message.deleted_at.is_(None),
            ~read_by_actor,
            ~hidden_for_actor,
        ]

    def _set_locked(
        self, thread: Thread | uuid.UUID | str, actor: Any | None, locked: bool
    ) -> Thread:
        thread = resolve_thread(self.db, thread)
        if actor is not None:
            self.policy.authorize("update", ActorRef.of(actor), thread)

        if locked:
            thread.lock()
        else:
            thread.unlock()
        self.db.commit()

        logger.info("Thread %s %s", thread.id, "locked" if locked else "unlocked")
        return thread

    @staticmethod
    def _validate_participants(thread_type: ThreadType, members: list[ParticipantIn]) -> None:
        if not members:
            raise ValidationError(
                "Thread must have at least one participant.", field="participants"
            )

        if thread_type is ThreadType.DIRECT and len(members) != 2:
            raise ValidationError(
                "Direct threads must have exactly 2 participants.", field="participants"
            )

        actors = [member.actor for member in members]
        if len(set(actors)) != len(actors):
            raise ValidationError("Participants must be unique.", field="participants")

