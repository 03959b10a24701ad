import uuid
from dataclasses import dataclass, field

from faker import Faker

from chat_engine.engine import ChatEngine
from chat_engine.messaging.models.message import Message
from chat_engine.messaging.models.thread import Thread

fake = Faker()


@dataclass
class FakeUser:
    """Stand-in for a host model exposing ``actor_type`` and ``id``."""

    name: str
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    actor_type: str = "user"


def make_actor(name: str | None = None, actor_type: str = "user") -> FakeUser:
    return FakeUser(name=name or fake.name(), actor_type=actor_type)


def create_group_factory(
    chat: ChatEngine,
    owner: FakeUser,
    members: list[FakeUser] | None = None,
    admins: list[FakeUser] | None = None,
    name: str | None = None,
) -> Thread:
    """
    Factory function to create group threads.

    Args:
        chat: Engine bound to the test session
        owner: Actor that becomes the thread owner
        members: Plain members
        admins: Admin participants
        name: Group name (generates random if None)

    Returns:
        Created Thread instance
    """
    builder = chat.thread().group(name or fake.catch_phrase()).with_owner(owner)
    for admin in admins or []:
        builder.with_admin(admin)
    for member in members or []:
        builder.with_member(member)
    return builder.always_new().create()


def send_text_factory(
    chat: ChatEngine, thread: Thread, sender: FakeUser, content: str | None = None
) -> Message:
    return chat.message().from_(sender).to(thread).text(content or fake.sentence()).send()
