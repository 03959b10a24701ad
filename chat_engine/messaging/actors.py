"""Polymorphic actor references.

Actors (users, teams, bots) live outside the engine. The engine only ever
stores and compares a ``(actor_type, actor_id)`` pair; hosts resolve the pair
back to their own objects through an ``ActorResolver``.
"""

from dataclasses import dataclass
from typing import Any, Protocol


@dataclass(frozen=True, order=True)
class ActorRef:
    actor_type: str
    actor_id: str

    def __post_init__(self) -> None:
        # Ids are opaque; normalise so 7 and "7" compare equal
        object.__setattr__(self, "actor_id", str(self.actor_id))

    @classmethod
    def of(cls, actor: Any) -> "ActorRef":
        """Build a reference from an ActorRef or any object exposing actor_type and id."""
        if isinstance(actor, ActorRef):
            return actor
        if hasattr(actor, "get_actor_ref"):
            ref: ActorRef = actor.get_actor_ref()
            return ref
        return cls(actor_type=actor.actor_type, actor_id=actor.id)

    @property
    def key(self) -> str:
        return f"{self.actor_type}:{self.actor_id}"

    def __str__(self) -> str:
        return self.key


class ActorResolver(Protocol):
    def resolve(self, ref: ActorRef) -> Any:
        """Return the host object for the reference, or None when it no longer exists."""
        ...
