"""Authorization predicates over already-loaded threads and messages.

Predicates are pure: they never touch the session or raise. Orchestration
code calls ``PolicyChecker.authorize`` to turn a denial into a
``ForbiddenError``.
"""

import logging
from typing import Any

from chat_engine.core.exceptions import ForbiddenError
from chat_engine.messaging.actors import ActorRef
from chat_engine.messaging.models.message import Message
from chat_engine.messaging.models.thread import Thread

logger = logging.getLogger(__name__)


class ThreadPolicy:
    def view(self, actor: ActorRef, thread: Thread) -> bool:
        return thread.find_participant(actor) is not None

    def send_message(self, actor: ActorRef, thread: Thread) -> bool:
        return thread.get_participant(actor) is not None

    def add_participant(self, actor: ActorRef, thread: Thread) -> bool:
        participant = thread.get_participant(actor)
        return participant is not None and participant.can_manage_participants()

    def remove_participant(self, actor: ActorRef, thread: Thread) -> bool:
        return self.add_participant(actor, thread)

    def update(self, actor: ActorRef, thread: Thread) -> bool:
        return self.add_participant(actor, thread)

    def delete(self, actor: ActorRef, thread: Thread) -> bool:
        participant = thread.get_participant(actor)
        return participant is not None and participant.can_delete_thread()

    def leave(self, actor: ActorRef, thread: Thread) -> bool:
        return thread.get_participant(actor) is not None


class MessagePolicy:
    def view(self, actor: ActorRef, message: Message) -> bool:
        if message.is_deleted_for(actor):
            return False
        # Former participants keep access to history
        return message.thread.find_participant(actor) is not None

    def edit(self, actor: ActorRef, message: Message) -> bool:
        if message.is_deleted:
            return False
        return message.is_sent_by(actor)

    def delete(self, actor: ActorRef, message: Message) -> bool:
        if message.is_sent_by(actor):
            return True
        participant = message.thread.get_participant(actor)
        return participant is not None and participant.can_manage_participants()

    def delete_for_self(self, actor: ActorRef, message: Message) -> bool:
        return message.thread.find_participant(actor) is not None

    def react(self, actor: ActorRef, message: Message) -> bool:
        return self.view(actor, message)


class PolicyChecker:
    def __init__(self) -> None:
        self._policies: dict[type, Any] = {
            Thread: ThreadPolicy(),
            Message: MessagePolicy(),
        }

    def check(self, ability: str, actor: ActorRef, resource: Any) -> bool:
        policy = self._resolve_policy(resource)
        if policy is None:
            return False

        predicate = getattr(policy, ability, None)
        if predicate is None or ability.startswith("_"):
            return False

        return bool(predicate(actor, resource))

    def authorize(self, ability: str, actor: ActorRef, resource: Any) -> None:
        if not self.check(ability, actor, resource):
            logger.info(
                "Denied %s on %s %s for %s",
                ability,
                type(resource).__name__,
                getattr(resource, "id", None),
                actor,
            )
            raise ForbiddenError(
                f"Not authorized to {ability.replace('_', ' ')} this resource.", ability=ability
            )

    def _resolve_policy(self, resource: Any) -> Any:
        for resource_type, policy in self._policies.items():
            if isinstance(resource, resource_type):
                return policy
        return None
