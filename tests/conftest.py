from pathlib import Path

from dotenv import load_dotenv

env_file = Path(__file__).parent.parent / ".env.test"
load_dotenv(env_file)

import pytest  # noqa: E402
from sqlalchemy import create_engine, event  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from chat_engine.core.config import ChatSettings  # noqa: E402
from chat_engine.core.storage import LocalFileStore  # noqa: E402
from chat_engine.db.base import Base  # noqa: E402
from chat_engine.engine import ChatEngine  # noqa: E402
from chat_engine.messaging.events import InMemoryEventSink  # noqa: E402
from tests.utils.factories import make_actor  # noqa: E402


@pytest.fixture
def memory_engine():
    """In-memory SQLite engine with working SAVEPOINT support."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    # pysqlite manages transactions itself unless told not to, which breaks
    # nested transactions
    @event.listens_for(engine, "connect")
    def _disable_pysqlite_transactions(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _emit_begin(conn):
        conn.exec_driver_sql("BEGIN")

    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def db_session(memory_engine):
    session_factory = sessionmaker(bind=memory_engine, autocommit=False, autoflush=False)
    session = session_factory()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture
def make_settings(tmp_path):
    """Build ChatSettings with test-friendly defaults plus overrides."""

    def _make(**overrides) -> ChatSettings:
        values = {
            "ATTACHMENTS_DIR": str(tmp_path / "uploads"),
            "ATTACHMENTS_BASE_URL": "http://test/uploads",
            "STORAGE_BACKEND": "local",
        }
        values.update(overrides)
        return ChatSettings(**values)

    return _make


@pytest.fixture
def settings(make_settings):
    return make_settings()


@pytest.fixture
def events():
    return InMemoryEventSink()


@pytest.fixture
def file_store(settings):
    return LocalFileStore(settings.ATTACHMENTS_DIR, settings.ATTACHMENTS_BASE_URL)


@pytest.fixture
def chat(db_session, settings, events, file_store):
    return ChatEngine(db_session, settings=settings, events=events, file_store=file_store)


@pytest.fixture
def alice():
    return make_actor(name="Alice")


@pytest.fixture
def bob():
    return make_actor(name="Bob")


@pytest.fixture
def carol():
    return make_actor(name="Carol")
