"""
Session Store: tiered resolver over the remote, cache and durable tiers.

Reads try the live remote first, then the process-local cache, then the
durable on-device fallback. Writes go to the remote (best effort) and always
to the durable store, so a device keeps correct stats even when the remote
write silently failed.
"""

import json
import logging
from collections.abc import Sequence

from memtrack.domain.constants import CACHE_KEY_PREFIX, DURABLE_KEY_PREFIX, LEGACY_DURABLE_KEY
from memtrack.domain.stats.errors import StorageQuotaExceeded
from memtrack.domain.stats.models import (
    AppendResult,
    FetchResult,
    PeriodMode,
    SessionRecord,
    SourceTier,
    UserContext,
)
from memtrack.domain.stats.ports import KeyValueStore, RemoteSessionSource

from .ingest import parse_records, record_to_dict

logger = logging.getLogger(__name__)


class SessionStore:
    """
    Fetches and appends a single user's session records.

    Follows Dependency Inversion: depends on the RemoteSessionSource and
    KeyValueStore ports, not on concrete adapters.
    """

    def __init__(
        self,
        user: UserContext,
        remote: RemoteSessionSource,
        cache: KeyValueStore,
        durable: KeyValueStore,
    ):
        """
        Args:
            user: Whose records are read and written.
            remote: Live remote source (tier 1).
            cache: Process-local cache (tier 2).
            durable: Durable on-device store (tier 3).
        """
        self.user = user
        self._remote = remote
        self._cache = cache
        self._durable = durable

    @property
    def cache_key(self) -> str:
        return f"{CACHE_KEY_PREFIX}{self.user.user_id}"

    @property
    def durable_key(self) -> str:
        return f"{DURABLE_KEY_PREFIX}{self.user.user_id}"

    async def fetch(self, period_hint: PeriodMode | str | None = None) -> FetchResult:
        """
        Resolve the user's records from the freshest tier that answers.

        Never raises: a failing tier degrades to the next one. A result of
        tier FALLBACK with no records means every tier came up empty.

        Args:
            period_hint: Period the caller is about to display. Advisory only;
                every tier returns the full record set.
        """
        logger.debug(f"Fetching sessions for user={self.user.user_id} (period={period_hint})")

        try:
            records = await self._remote.fetch_sessions(self.user.user_id)
        except Exception as e:
            logger.warning(f"Remote fetch failed, falling back to local tiers: {e}")
        else:
            self.cache_records(records)
            logger.info(f"Fetched {len(records)} sessions from remote")
            return FetchResult(records=list(records), tier=SourceTier.LIVE)

        cached = self._read_list(self._cache, self.cache_key)
        if cached:
            logger.info(f"Using cached data ({len(cached)} sessions)")
            return FetchResult(records=cached, tier=SourceTier.CACHED)

        durable = self._read_durable()
        logger.info(f"Using durable fallback ({len(durable)} sessions)")
        return FetchResult(records=durable, tier=SourceTier.FALLBACK)

    async def append(self, record: SessionRecord) -> AppendResult:
        """
        Write a new session to the remote (best effort) and the durable store.

        Raises:
            StorageQuotaExceeded: If the durable write ran out of space.
        """
        remote_ok = True
        try:
            await self._remote.append_session(self.user.user_id, record)
        except Exception as e:
            remote_ok = False
            logger.warning(f"Remote append failed, keeping local copy only: {e}")

        existing = self._read_raw_list(self._durable, self.durable_key)
        existing.append(record_to_dict(record))
        try:
            self._durable.set(self.durable_key, json.dumps(existing))
        except StorageQuotaExceeded as e:
            raise StorageQuotaExceeded(str(e), remote_ok=remote_ok) from e

        logger.info(
            f"Session saved (category={record.category!r}, remote={'ok' if remote_ok else 'failed'})"
        )
        return AppendResult(remote_ok=remote_ok)

    def cache_records(self, records: Sequence[SessionRecord]) -> None:
        """Write a record set into the process-local cache."""
        try:
            self._cache.set(self.cache_key, json.dumps([record_to_dict(r) for r in records]))
        except Exception as e:
            logger.warning(f"Failed to cache sessions: {e}")

    async def aclose(self) -> None:
        """Close the remote source's connections."""
        await self._remote.aclose()

    def _read_durable(self) -> list[SessionRecord]:
        raw = self._read_raw_list(self._durable, self.durable_key)
        if not raw:
            # Sessions saved before storage keys were namespaced per user
            raw = self._read_raw_list(self._durable, LEGACY_DURABLE_KEY)
        return parse_records(raw, self.user.tz)

    def _read_list(self, store: KeyValueStore, key: str) -> list[SessionRecord]:
        return parse_records(self._read_raw_list(store, key), self.user.tz)

    def _read_raw_list(self, store: KeyValueStore, key: str) -> list:
        try:
            raw = store.get(key)
        except Exception as e:
            logger.warning(f"Could not read '{key}': {e}")
            return []
        if not raw:
            return []
        try:
            data = json.loads(raw)
        except (TypeError, ValueError) as e:
            logger.warning(f"Discarding unreadable data under '{key}': {e}")
            return []
        if not isinstance(data, list):
            logger.warning(f"Discarding non-list data under '{key}'")
            return []
        return data
