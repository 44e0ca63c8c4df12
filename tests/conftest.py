from datetime import datetime, timezone

import pytest

from memtrack.application.stats.service import SessionStatsService
from memtrack.application.stats.session_store import SessionStore
from memtrack.domain.stats.errors import SourceUnavailable
from memtrack.domain.stats.models import SessionRecord, UserContext
from memtrack.domain.stats.ports import RemoteSessionSource
from memtrack.infrastructure.adapters.stats.memory_cache import InMemoryCache

UTC = timezone.utc


def make_record(
    category="people",
    total=10,
    correct=8,
    skipped=0,
    seconds=100.0,
    when=datetime(2024, 3, 3, 10, 0, tzinfo=UTC),
) -> SessionRecord:
    return SessionRecord(
        category=category,
        total_questions=total,
        correct_answers=correct,
        skipped=skipped,
        total_time=seconds,
        timestamp=when,
    )


class FakeRemote(RemoteSessionSource):
    """In-memory remote that can be switched offline and pushed to."""

    def __init__(self, records=None):
        self.records = list(records or [])
        self.online = True
        self.fetch_calls = 0
        self.appended: list[SessionRecord] = []
        self.subscribers: list = []
        self.unsubscribe_calls = 0
        self.close_calls = 0

    async def fetch_sessions(self, user_id):
        self.fetch_calls += 1
        if not self.online:
            raise SourceUnavailable("offline")
        return list(self.records)

    def subscribe(self, user_id, callback):
        self.subscribers.append(callback)

        def unsubscribe():
            self.unsubscribe_calls += 1
            if callback in self.subscribers:
                self.subscribers.remove(callback)

        return unsubscribe

    async def append_session(self, user_id, record):
        if not self.online:
            raise SourceUnavailable("offline")
        self.appended.append(record)
        self.records.append(record)

    async def aclose(self):
        self.close_calls += 1

    def push(self, records):
        for callback in list(self.subscribers):
            callback(list(records))


class DictStore(InMemoryCache):
    """KeyValueStore for tests whose backing dict is inspectable."""

    def __init__(self):
        self.backing: dict[str, str] = {}
        super().__init__(backing=self.backing)


@pytest.fixture
def make_session():
    return make_record


@pytest.fixture
def user():
    return UserContext(user_id="u1", tz=UTC)


@pytest.fixture
def remote():
    return FakeRemote()


@pytest.fixture
def cache():
    return DictStore()


@pytest.fixture
def durable():
    return DictStore()


@pytest.fixture
def store(user, remote, cache, durable):
    return SessionStore(user=user, remote=remote, cache=cache, durable=durable)


@pytest.fixture
def service(store):
    return SessionStatsService(store)


@pytest.fixture
def mock_home(tmp_path, monkeypatch):
    """Mocks Path.home() to point to a temp dir."""
    home = tmp_path / "home"
    home.mkdir()

    # Mocking HOME to a temp directory to isolate config
    monkeypatch.setenv("HOME", str(home))
    return home
