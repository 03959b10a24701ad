"""Tests for participant-set fingerprints."""

import hashlib

from chat_engine.messaging.actors import ActorRef
from chat_engine.messaging.models.thread import ThreadType
from chat_engine.messaging.schemas.participant import ParticipantIn
from chat_engine.messaging.services.hashing import ThreadHasher

A = ActorRef("user", "1")
B = ActorRef("user", "2")
C = ActorRef("team", "9")


class TestGenerate:
    def test_permutations_hash_identically(self):
        first = [ParticipantIn.of(A, "owner"), ParticipantIn.of(B), ParticipantIn.of(C, "admin")]
        second = [first[2], first[0], first[1]]

        assert ThreadHasher.generate(first) == ThreadHasher.generate(second)
        assert ThreadHasher.generate(first, include_roles=False) == ThreadHasher.generate(
            second, include_roles=False
        )

    def test_role_changes_hash_only_when_roles_included(self):
        as_owner = [ParticipantIn.of(A, "owner"), ParticipantIn.of(B)]
        as_member = [ParticipantIn.of(A), ParticipantIn.of(B)]

        assert ThreadHasher.generate(as_owner) != ThreadHasher.generate(as_member)
        assert ThreadHasher.generate(as_owner, include_roles=False) == ThreadHasher.generate(
            as_member, include_roles=False
        )

    def test_thread_type_prefix(self):
        members = [ParticipantIn.of(A), ParticipantIn.of(B)]

        expected = hashlib.sha256(b"group||user:1:member|user:2:member").hexdigest()

        assert ThreadHasher.generate(members, thread_type=ThreadType.GROUP) == expected
        assert ThreadHasher.generate(members, thread_type=ThreadType.DIRECT) != expected

    def test_without_type_hashes_tokens_only(self):
        members = [ParticipantIn.of(B), ParticipantIn.of(A)]

        expected = hashlib.sha256(b"user:1|user:2").hexdigest()

        assert ThreadHasher.generate(members, include_roles=False) == expected

    def test_output_is_sha256_hex(self):
        digest = ThreadHasher.generate([ParticipantIn.of(A)])
        assert len(digest) == 64
        int(digest, 16)


class TestForDirectMessage:
    def test_order_independent(self):
        assert ThreadHasher.for_direct_message(A, B) == ThreadHasher.for_direct_message(B, A)

    def test_uses_direct_prefix_without_roles(self):
        expected = hashlib.sha256(b"direct||user:1|user:2").hexdigest()
        assert ThreadHasher.for_direct_message(B, A) == expected
