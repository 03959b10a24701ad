import logging
import uuid
from typing import Any

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from chat_engine.core.datetime_utils import utc_now
from chat_engine.core.exceptions import ValidationError
from chat_engine.messaging.actors import ActorRef
from chat_engine.messaging.events import (
    EventSink,
    NullEventSink,
    ReactionAdded,
    ReactionRemoved,
    emit,
)
from chat_engine.messaging.models.message import Message
from chat_engine.messaging.models.message_reaction import MessageReaction
from chat_engine.messaging.services.lookups import resolve_message
from chat_engine.messaging.services.policies import PolicyChecker

logger = logging.getLogger(__name__)

MessageArg = Message | uuid.UUID | str

MAX_REACTION_LENGTH = 50


class ReactionService:
    """Per-actor reactions on messages.

    Reaction types are free-form strings (``"like"``, an emoji). An actor holds
    at most one reaction per message; reacting again replaces the type.
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

    def react(self, message: MessageArg, actor: Any, reaction: str) -> MessageReaction:
        message = resolve_message(self.db, message)
        actor = ActorRef.of(actor)
        reaction = self._validate(reaction)
        self.policy.authorize("react", actor, message)

        existing = self.reaction_by(message, actor)
        previous = existing.reaction_type if existing is not None else None
        if existing is not None and previous == reaction:
            return existing

        if existing is None:
            existing = MessageReaction(
                message_id=message.id,
                actor_type=actor.actor_type,
                actor_id=actor.actor_id,
                reaction_type=reaction,
            )
            try:
                with self.db.begin_nested():
                    self.db.add(existing)
            except IntegrityError:
                # The actor reacted from another request; the latest type wins
                existing = self.reaction_by(message, actor)
                if existing is None:
                    raise
                previous = existing.reaction_type

        existing.reaction_type = reaction
        existing.updated_at = utc_now()
        self.db.commit()

        logger.info("%s reacted %r to message %s", actor, reaction, message.id)
        emit(
            self.events,
            ReactionAdded(message=message, actor=actor, reaction=existing, previous=previous),
        )
        return existing

    def unreact(self, message: MessageArg, actor: Any) -> bool:
        """Remove the actor's reaction. Returns False when there was none."""
        message = resolve_message(self.db, message)
        actor = ActorRef.of(actor)

        existing = self.reaction_by(message, actor)
        if existing is None:
            return False

        reaction_type = existing.reaction_type
        self.db.delete(existing)
        self.db.commit()

        logger.info("%s removed reaction from message %s", actor, message.id)
        emit(
            self.events,
            ReactionRemoved(message=message, actor=actor, reaction_type=reaction_type),
        )
        return True

    def reaction_by(self, message: MessageArg, actor: Any) -> MessageReaction | None:
        message = resolve_message(self.db, message)
        actor = ActorRef.of(actor)
        return self.db.get(MessageReaction, (message.id, actor.actor_type, actor.actor_id))

    def has_reacted(self, message: MessageArg, actor: Any) -> bool:
        return self.reaction_by(message, actor) is not None

    def count(self, message: MessageArg) -> int:
        message = resolve_message(self.db, message)
        return (
            self.db.query(func.count())
            .select_from(MessageReaction)
            .filter(MessageReaction.message_id == message.id)
            .scalar()
            or 0
        )

    def breakdown(self, message: MessageArg) -> dict[str, int]:
        """Reaction type to number of actors, most used first."""
        message = resolve_message(self.db, message)
        total = func.count().label("total")
        rows = (
            self.db.query(MessageReaction.reaction_type, total)
            .filter(MessageReaction.message_id == message.id)
            .group_by(MessageReaction.reaction_type)
            .order_by(total.desc(), MessageReaction.reaction_type)
            .all()
        )
        return {reaction_type: count for reaction_type, count in rows}

    def reactions_given(self, actor: Any, limit: int | None = None) -> list[MessageReaction]:
        actor = ActorRef.of(actor)
        query = (
            self.db.query(MessageReaction)
            .filter(
                MessageReaction.actor_type == actor.actor_type,
                MessageReaction.actor_id == actor.actor_id,
            )
            .order_by(MessageReaction.updated_at.desc())
        )
        if limit is not None:
            query = query.limit(limit)
        return list(query.all())

    def summary(self, message: MessageArg, viewer: Any | None = None) -> dict[str, Any]:
        """Counts for display, plus the viewer's own reaction when a viewer is given."""
        message = resolve_message(self.db, message)
        own = self.reaction_by(message, viewer) if viewer is not None else None
        return {
            "count": self.count(message),
            "breakdown": self.breakdown(message),
            "has_reacted": own is not None,
            "user_reaction": own.reaction_type if own is not None else None,
        }

    @staticmethod
    def _validate(reaction: str) -> str:
        reaction = (reaction or "").strip()
        if not reaction:
            raise ValidationError("Reaction cannot be empty.", field="reaction")
        if len(reaction) > MAX_REACTION_LENGTH:
            raise ValidationError(
                f"Reaction cannot exceed {MAX_REACTION_LENGTH} characters.", field="reaction"
            )
        return reaction
