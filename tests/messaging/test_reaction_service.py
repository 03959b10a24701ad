"""Tests for message reactions."""

from unittest.mock import patch

import pytest
from sqlalchemy import insert

from chat_engine.core.exceptions import ForbiddenError, ValidationError
from chat_engine.messaging.events import ReactionAdded, ReactionRemoved
from chat_engine.messaging.models.message_reaction import MessageReaction
from tests.utils.factories import send_text_factory
from tests.utils.helpers import last_event


@pytest.fixture
def thread(chat, alice, bob):
    return chat.threads.direct(alice, bob)


@pytest.fixture
def message(chat, thread, alice):
    return send_text_factory(chat, thread, alice, "Test message")


class TestReact:
    def test_participant_can_react(self, chat, events, message, bob):
        reaction = chat.reactions.react(message, bob, "like")

        assert reaction.reaction_type == "like"
        assert chat.reactions.count(message) == 1
        assert chat.reactions.has_reacted(message, bob)
        assert chat.reactions.reaction_by(message, bob).reaction_type == "like"
        event = last_event(events, ReactionAdded)
        assert event.actor.actor_id == bob.id
        assert event.previous is None

    def test_breakdown_by_type(self, chat, message, alice, bob):
        chat.reactions.react(message, alice, "love")
        chat.reactions.react(message, bob, "like")

        assert chat.reactions.count(message) == 2
        assert chat.reactions.breakdown(message) == {"like": 1, "love": 1}

    def test_reacting_again_replaces_the_reaction(self, chat, db_session, events, message, bob):
        chat.reactions.react(message, bob, "like")
        chat.reactions.react(message, bob, "love")

        assert chat.reactions.count(message) == 1
        assert chat.reactions.reaction_by(message, bob).reaction_type == "love"
        assert db_session.query(MessageReaction).count() == 1
        assert last_event(events, ReactionAdded).previous == "like"

    def test_same_reaction_twice_is_a_no_op(self, chat, events, message, bob):
        chat.reactions.react(message, bob, "like")
        chat.reactions.react(message, bob, "like")

        assert len(events.of_type(ReactionAdded)) == 1

    def test_emoji_reactions(self, chat, message, alice, bob):
        chat.reactions.react(message, alice, "\U0001f525")
        chat.reactions.react(message, bob, "\u2764\ufe0f")

        assert set(chat.reactions.breakdown(message)) == {"\U0001f525", "\u2764\ufe0f"}

    @pytest.mark.parametrize("reaction", ["", "   ", "x" * 51])
    def test_invalid_reaction_rejected(self, chat, message, bob, reaction):
        with pytest.raises(ValidationError):
            chat.reactions.react(message, bob, reaction)

        assert chat.reactions.count(message) == 0

    def test_outsider_cannot_react(self, chat, message, carol):
        with pytest.raises(ForbiddenError):
            chat.reactions.react(message, carol, "like")

    def test_cannot_react_to_deleted_message(self, chat, message, alice, bob):
        chat.deletions.globally(message, alice)

        with pytest.raises(ForbiddenError):
            chat.reactions.react(message, bob, "like")

    def test_react_by_message_id(self, chat, message, bob):
        chat.react(str(message.id), bob, "like")

        assert chat.reactions.has_reacted(message, bob)

    def test_concurrent_first_reaction_converges(self, chat, db_session, events, message, bob):
        db_session.execute(
            insert(MessageReaction).values(
                message_id=message.id,
                actor_type=bob.actor_type,
                actor_id=bob.id,
                reaction_type="like",
            )
        )

        real = chat.reactions.reaction_by
        calls = []

        def _miss_first(*args, **kwargs):
            calls.append(args)
            return None if len(calls) == 1 else real(*args, **kwargs)

        with patch.object(chat.reactions, "reaction_by", side_effect=_miss_first):
            reaction = chat.reactions.react(message, bob, "love")

        assert reaction.reaction_type == "love"
        assert db_session.query(MessageReaction).count() == 1
        assert last_event(events, ReactionAdded).previous == "like"


class TestUnreact:
    def test_removes_reaction(self, chat, events, message, bob):
        chat.reactions.react(message, bob, "like")

        assert chat.reactions.unreact(message, bob) is True

        assert not chat.reactions.has_reacted(message, bob)
        assert chat.reactions.count(message) == 0
        assert last_event(events, ReactionRemoved).reaction_type == "like"

    def test_without_reaction_returns_false(self, chat, events, message, bob):
        assert chat.reactions.unreact(message, bob) is False
        assert events.of_type(ReactionRemoved) == []


class TestQueries:
    def test_reactions_given_by_actor(self, chat, thread, message, alice, bob):
        second = send_text_factory(chat, thread, alice, "Another message")
        chat.reactions.react(message, bob, "like")
        chat.reactions.react(second, bob, "love")

        given = chat.reactions.reactions_given(bob)

        assert len(given) == 2
        assert {r.message_id for r in given} == {message.id, second.id}
        assert chat.reactions.reactions_given(alice) == []

    def test_summary_for_viewer(self, chat, message, alice, bob):
        chat.reactions.react(message, alice, "like")
        chat.reactions.react(message, bob, "love")

        summary = chat.reactions.summary(message, viewer=bob)

        assert summary["count"] == 2
        assert set(summary["breakdown"]) == {"like", "love"}
        assert summary["has_reacted"] is True
        assert summary["user_reaction"] == "love"

    def test_summary_without_own_reaction(self, chat, message, alice, bob):
        chat.reactions.react(message, alice, "like")

        summary = chat.reactions.summary(message, viewer=bob)

        assert summary["has_reacted"] is False
        assert summary["user_reaction"] is None

    def test_reactions_removed_with_message(self, chat, db_session, message, bob):
        chat.reactions.react(message, bob, "like")

        db_session.delete(message)
        db_session.commit()

        assert db_session.query(MessageReaction).count() == 0
