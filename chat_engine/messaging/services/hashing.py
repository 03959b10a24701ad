"""Participant-set fingerprints used to deduplicate threads."""

import hashlib
from collections.abc import Iterable

from chat_engine.messaging.actors import ActorRef
from chat_engine.messaging.models.thread import ThreadType
from chat_engine.messaging.models.thread_participant import ParticipantRole
from chat_engine.messaging.schemas.participant import ParticipantIn


class ThreadHasher:
    @staticmethod
    def generate(
        participants: Iterable[ParticipantIn],
        include_roles: bool = True,
        thread_type: ThreadType | None = None,
    ) -> str:
        """SHA-256 over the sorted participant tokens, optionally prefixed by thread type.

        Tokens are ``{actor_type}:{actor_id}`` with ``:{role}`` appended when
        ``include_roles`` is set, so enumeration order never changes the hash.
        """
        parts = []
        for participant in participants:
            token = participant.actor.key
            if include_roles:
                token += f":{ParticipantRole(participant.role).value}"
            parts.append(token)

        hash_input = "|".join(sorted(parts))
        if thread_type is not None:
            hash_input = f"{ThreadType(thread_type).value}||{hash_input}"

        return hashlib.sha256(hash_input.encode()).hexdigest()

    @staticmethod
    def for_direct_message(actor_a: ActorRef, actor_b: ActorRef) -> str:
        """Role-free pair hash.

        Threads created through ``ThreadService.direct`` are hashed with
        ``generate`` like every other thread, so this only matches their
        stored hash when roles are excluded from hashing.
        """
        parts = sorted([actor_a.key, actor_b.key])
        hash_input = f"{ThreadType.DIRECT.value}||{'|'.join(parts)}"
        return hashlib.sha256(hash_input.encode()).hexdigest()
