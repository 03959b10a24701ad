"""End-to-end conversation through the ChatEngine facade."""

from chat_engine.messaging.actors import ActorRef
from tests.utils.helpers import event_names


class TestDirectConversation:
    def test_send_read_edit_and_delete_for_one_side(self, chat, events, alice, bob):
        a, b = ActorRef.of(alice), ActorRef.of(bob)
        thread = chat.thread().between(alice, bob).first_or_create()

        m1 = chat.message().from_(alice).to(thread).text("hi").send()
        assert m1.is_read_by(a)
        assert not m1.is_read_by(b)
        assert chat.unread_count_for(thread, bob) == 1

        delivery = chat.deliveries.as_read(m1, bob)
        assert delivery.read_at is not None
        assert delivery.delivered_at is not None
        assert chat.unread_count_for(thread, bob) == 0

        version = chat.edits.execute(m1, {"type": "text", "content": "hi there"}, alice)
        assert version.payload["content"] == "hi there"
        assert m1.payload["content"] == "hi"
        assert m1.current_payload["content"] == "hi there"
        assert m1.is_edited

        chat.deletions.for_actor(m1, bob)
        assert chat.policy.check("view", b, m1) is False
        assert chat.policy.check("view", a, m1) is True
        assert chat.messages.visible_messages(thread, bob) == []
        assert chat.messages.visible_messages(thread, alice) == [m1]

        assert event_names(events) == [
            "chat.thread.created",
            "chat.participant.added",
            "chat.participant.added",
            "chat.message.read",
            "chat.message.sent",
            "chat.message.read",
            "chat.message.edited",
            "chat.message.deleted_for_actor",
        ]

    def test_thread_listing_and_bulk_read(self, chat, alice, bob, carol):
        direct = chat.thread().between(alice, bob).first_or_create()
        group = chat.thread().group("Trip").with_owner(alice).with_member(carol).create()

        chat.message().from_(alice).to(direct).text("one").send()
        chat.message().from_(alice).to(direct).text("two").send()

        assert {t.id for t in chat.threads_for(alice)} == {direct.id, group.id}
        assert [t.id for t in chat.threads_for(bob)] == [direct.id]
        assert chat.mark_thread_as_read(direct, bob) == 2
        assert chat.unread_count_for(direct, bob) == 0

    def test_membership_through_facade(self, chat, events, alice, bob, carol):
        group = chat.thread().group("Team").with_owner(alice).with_member(bob).create()

        chat.add_participant(group, carol, added_by=alice)
        assert group.has_participant(ActorRef.of(carol))

        assert chat.remove_participant(group, carol, removed_by=alice) is True
        assert not group.has_participant(ActorRef.of(carol))
        assert event_names(events)[-2:] == ["chat.participant.added", "chat.participant.removed"]
