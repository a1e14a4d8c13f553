"""
Shared fixtures: a throwaway SQLite database and blob directory per test
"""
import os
import tempfile

# Keep the application-level engine away from the working directory
_STORE_DIR = tempfile.mkdtemp(prefix="chatsync-tests-")
os.environ.setdefault("DATABASE_URL", f"sqlite:///{_STORE_DIR}/chatsync.db")
os.environ.setdefault("MEDIA_DIR", os.path.join(_STORE_DIR, "media"))

import pytest

from chatsync.database import build_engine, build_session_factory, init_db
from chatsync.services import (
    ConversationQuery,
    ConversationRepository,
    FilesystemBlobStore,
    IdempotentWriter,
    MediaResolver,
)
from tests.event_factory import FakeMediaSource, SyntheticEventGenerator


@pytest.fixture
def engine(tmp_path):
    engine = build_engine(f"sqlite:///{tmp_path / 'chatsync.db'}")
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def repository(engine):
    return ConversationRepository(build_session_factory(engine))


@pytest.fixture
def blob_store(tmp_path):
    return FilesystemBlobStore(str(tmp_path / "media"))


@pytest.fixture
def media_source():
    return FakeMediaSource()


@pytest.fixture
def media_resolver(blob_store, media_source):
    return MediaResolver(blob_store, media_source, timeout_seconds=5.0)


@pytest.fixture
def writer(repository, media_resolver):
    return IdempotentWriter(repository, media_resolver=media_resolver)


@pytest.fixture
def query(repository):
    return ConversationQuery(repository)


@pytest.fixture
def events():
    return SyntheticEventGenerator(seed=42)
