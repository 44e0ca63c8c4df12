"""
Ports (interfaces) for session storage and publication.

These define the contract that infrastructure adapters must implement.
Application services depend on these abstractions, not concrete implementations.
"""

from abc import ABC, abstractmethod
from collections.abc import Callable

from .models import SessionRecord, StatsSummary

Unsubscribe = Callable[[], None]
SessionsCallback = Callable[[list[SessionRecord]], None]


class RemoteSessionSource(ABC):
    """
    Port for the live remote store of session records.

    Implementations:
        - HttpSessionSource: REST endpoints plus a streaming snapshot feed.
    """

    @abstractmethod
    async def fetch_sessions(self, user_id: str) -> list[SessionRecord]:
        """
        One-shot read of every session recorded for a user.

        Raises:
            SourceUnavailable: If the remote cannot be reached.
        """
        pass

    @abstractmethod
    def subscribe(self, user_id: str, callback: SessionsCallback) -> Unsubscribe:
        """
        Open a push feed; `callback` receives the full record set on every change.

        Returns:
            A callable that cancels the feed. Calling it twice is a no-op.
        """
        pass

    @abstractmethod
    async def append_session(self, user_id: str, record: SessionRecord) -> None:
        """
        Persist one new session remotely.

        Raises:
            SourceUnavailable: If the write did not reach the remote.
        """
        pass

    async def aclose(self) -> None:
        """Release connections held by the source. Safe to call more than once."""
        return None


class KeyValueStore(ABC):
    """
    Port for synchronous string key/value storage.

    Implementations:
        - InMemoryCache: process-local, lost on exit.
        - JsonFileStore: durable, one file per key.
    """

    @abstractmethod
    def get(self, key: str) -> str | None:
        pass

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        """
        Raises:
            StorageQuotaExceeded: If a durable store is out of space.
        """
        pass


class StatsSink(ABC):
    """Port for the external per-user stats document."""

    @abstractmethod
    async def update_user_stats(self, user_id: str, summary: StatsSummary) -> None:
        pass
