"""
In-memory cache: process-local KeyValueStore.

Backs the "cached" tier: populated by successful live fetches and live pushes,
gone when the process exits. Whoever wires the stores decides how widely one
cache is shared.
"""

from memtrack.domain.stats.ports import KeyValueStore


class InMemoryCache(KeyValueStore):
    """
    Dictionary-backed store.

    Each instance owns its dict unless one is passed in as `backing`.
    """

    def __init__(self, backing: dict[str, str] | None = None):
        self._data = {} if backing is None else backing

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def clear(self) -> None:
        self._data.clear()
