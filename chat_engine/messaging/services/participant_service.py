import logging
import uuid
from typing import Any

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from chat_engine.core.exceptions import ForbiddenError, NotFoundError, ValidationError
from chat_engine.core.security import hash_pin, verify_pin
from chat_engine.messaging.actors import ActorRef
from chat_engine.messaging.events import (
    EventSink,
    NullEventSink,
    ParticipantAdded,
    ParticipantRemoved,
    emit,
)
from chat_engine.messaging.models.thread import Thread
from chat_engine.messaging.models.thread_participant import ParticipantRole, ThreadParticipant
from chat_engine.messaging.services.lookups import resolve_thread
from chat_engine.messaging.services.policies import PolicyChecker

logger = logging.getLogger(__name__)

ThreadArg = Thread | uuid.UUID | str


class ParticipantService:
    """Membership changes plus per-participant chat lock and key verification.

    Participants are never hard-deleted: removing one sets ``left_at`` and
    adding them again reactivates the same row.
    """

    def __init__(
        self,
        db: Session,
        events: EventSink | None = None,
        policy: PolicyChecker | None = None,
    ) -> None:
        self.db = db
        self.events = events or NullEventSink()
        self.policy = policy or PolicyChecker()

    def add(
        self,
        thread: ThreadArg,
        actor: Any,
        role: ParticipantRole | str = ParticipantRole.MEMBER,
        added_by: Any | None = None,
    ) -> ThreadParticipant:
        thread = resolve_thread(self.db, thread)
        actor = ActorRef.of(actor)
        role = ParticipantRole(role)
        self._authorize_on_behalf("add_participant", thread, actor, added_by)

        existing = thread.find_participant(actor)
        if existing is not None and existing.is_active():
            return existing

        if existing is not None:
            existing.rejoin()
            existing.role = role.value
            participant = existing
        else:
            participant = ThreadParticipant(
                thread_id=thread.id,
                actor_type=actor.actor_type,
                actor_id=actor.actor_id,
                role=role.value,
            )
            try:
                with self.db.begin_nested():
                    self.db.add(participant)
            except IntegrityError:
                # Someone added the same actor concurrently
                self.db.expire(thread, ["participants"])
                concurrent = thread.find_participant(actor)
                if concurrent is None:
                    raise
                return concurrent

        self.db.commit()
        self.db.expire(thread, ["participants"])

        logger.info("Added %s to thread %s as %s", actor, thread.id, role.value)
        emit(
            self.events,
            ParticipantAdded(thread=thread, actor=actor, participant=participant, role=role),
        )
        return participant

    def remove(self, thread: ThreadArg, actor: Any, removed_by: Any | None = None) -> bool:
        thread = resolve_thread(self.db, thread)
        actor = ActorRef.of(actor)
        self._authorize_on_behalf("remove_participant", thread, actor, removed_by)

        participant = thread.get_participant(actor)
        if participant is None:
            return False

        participant.leave()
        self.db.commit()

        logger.info("Removed %s from thread %s", actor, thread.id)
        emit(self.events, ParticipantRemoved(thread=thread, actor=actor, participant=participant))
        return True

    def leave(self, thread: ThreadArg, actor: Any) -> bool:
        thread = resolve_thread(self.db, thread)
        actor = ActorRef.of(actor)
        self.policy.authorize("leave", actor, thread)
        return self.remove(thread, actor)

    def update_role(
        self,
        thread: ThreadArg,
        actor: Any,
        new_role: ParticipantRole | str,
        updated_by: Any | None = None,
    ) -> ThreadParticipant | None:
        thread = resolve_thread(self.db, thread)
        actor = ActorRef.of(actor)
        if updated_by is not None:
            self.policy.authorize("update", ActorRef.of(updated_by), thread)

        participant = thread.get_participant(actor)
        if participant is None:
            return None

        participant.role = ParticipantRole(new_role).value
        self.db.commit()

        logger.info("Changed role of %s in thread %s to %s", actor, thread.id, participant.role)
        return participant

    def transfer_ownership(self, thread: ThreadArg, current_owner: Any, new_owner: Any) -> bool:
        """Demote the owner to admin and promote the target to owner in one commit."""
        thread = resolve_thread(self.db, thread)
        owner_ref = ActorRef.of(current_owner)
        target_ref = ActorRef.of(new_owner)

        owner = thread.get_participant(owner_ref)
        if owner is None or not owner.has_role(ParticipantRole.OWNER):
            raise ForbiddenError(
                "Current owner is not the thread owner.", ability="transfer_ownership"
            )

        target = thread.get_participant(target_ref)
        if target is None:
            raise ValidationError("New owner must be an active participant.", field="new_owner")

        owner.role = ParticipantRole.ADMIN.value
        target.role = ParticipantRole.OWNER.value
        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(
            "Ownership of thread %s moved from %s to %s", thread.id, owner_ref, target_ref
        )
        return True

    def lock_chat(self, thread: ThreadArg, actor: Any, pin: str) -> ThreadParticipant:
        if not pin:
            raise ValidationError("PIN cannot be empty.", field="pin")

        participant = self._participant_or_404(thread, actor)
        participant.chat_lock_pin = hash_pin(pin)
        self.db.commit()
        return participant

    def unlock_chat(self, thread: ThreadArg, actor: Any) -> ThreadParticipant:
        participant = self._participant_or_404(thread, actor)
        participant.chat_lock_pin = None
        self.db.commit()
        return participant

    def check_pin(self, thread: ThreadArg, actor: Any, pin: str) -> bool:
        """True when the PIN matches, or when the chat is not locked at all."""
        participant = self._participant_or_404(thread, actor)
        if participant.chat_lock_pin is None:
            return True
        return verify_pin(pin, participant.chat_lock_pin)

    def set_public_key(self, thread: ThreadArg, actor: Any, public_key: str) -> ThreadParticipant:
        participant = self._participant_or_404(thread, actor)
        participant.set_public_key(public_key)
        self.db.commit()
        return participant

    def verify_security(self, thread: ThreadArg, actor: Any, other: Any) -> bool:
        participant = self._participant_or_404(thread, actor)
        other_participant = self._participant_or_404(thread, other)
        return participant.verify_security_with(other_participant)

    def _participant_or_404(self, thread: ThreadArg, actor: Any) -> ThreadParticipant:
        thread = resolve_thread(self.db, thread)
        actor = ActorRef.of(actor)

        participant = thread.get_participant(actor)
        if participant is None:
            raise NotFoundError(
                f"{actor} is not a participant of thread {thread.id}.", resource="participant"
            )
        return participant

    def _authorize_on_behalf(
        self, ability: str, thread: Thread, actor: ActorRef, acting: Any | None
    ) -> None:
        # Joining or leaving on your own behalf needs no management role
        if acting is None:
            return
        acting_ref = ActorRef.of(acting)
        if acting_ref != actor:
            self.policy.authorize(ability, acting_ref, thread)
