"""
HTTP Session Source — Infrastructure adapter for the remote session API.

Implements RemoteSessionSource and StatsSink over REST:

    GET  {base}/users/{uid}/sessions          -> JSON list (or {"sessions": [...]})
    POST {base}/users/{uid}/sessions          <- one session record
    GET  {base}/users/{uid}/sessions/stream   -> newline-delimited JSON snapshots
    PUT  {base}/users/{uid}/stats             <- stats summary document
"""

import asyncio
import json
import logging
from datetime import tzinfo
from typing import Any
from urllib.parse import quote

import httpx

from memtrack.application.stats.ingest import parse_records, record_to_dict
from memtrack.domain.constants import REQUEST_TIMEOUT, SUBSCRIPTION_SNAPSHOT_LIMIT
from memtrack.domain.stats.errors import SourceUnavailable
from memtrack.domain.stats.models import SessionRecord, StatsSummary
from memtrack.domain.stats.ports import (
    RemoteSessionSource,
    SessionsCallback,
    StatsSink,
    Unsubscribe,
)

logger = logging.getLogger(__name__)


def summary_to_dict(summary: StatsSummary) -> dict[str, Any]:
    overall = summary.overall
    rolling = summary.accuracy_over_time
    return {
        "overallStats": {
            "accuracy": overall.accuracy,
            "avgTimePerCard": overall.avg_time_per_card,
            "totalCards": overall.cards_reviewed,
            "skippedCards": overall.cards_skipped,
        },
        "accuracyOverTime": {
            "today": rolling.today,
            "week": rolling.week,
            "month": rolling.month,
            "allTime": rolling.all_time,
        },
        "lastUpdated": summary.last_updated.isoformat(),
    }


class HttpSessionSource(RemoteSessionSource, StatsSink):
    """Talks to the remote session API with a shared httpx.AsyncClient."""

    def __init__(
        self,
        base_url: str,
        tz: tzinfo,
        timeout: float = REQUEST_TIMEOUT,
        client: httpx.AsyncClient | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.tz = tz
        self.timeout = timeout
        self._client = client

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    def _url(self, user_id: str, suffix: str) -> str:
        return f"{self.base_url}/users/{quote(user_id, safe='')}/{suffix}"

    @staticmethod
    def _unwrap(payload: Any) -> list:
        if isinstance(payload, dict):
            payload = payload.get("sessions", [])
        if not isinstance(payload, list):
            raise ValueError("response is not a list of sessions")
        return payload

    async def fetch_sessions(self, user_id: str) -> list[SessionRecord]:
        try:
            resp = await self._get_client().get(self._url(user_id, "sessions"))
            resp.raise_for_status()
            raws = self._unwrap(resp.json())
        except (httpx.HTTPError, ValueError) as e:
            raise SourceUnavailable(f"Failed to fetch sessions: {e}") from e
        return parse_records(raws, self.tz)

    async def append_session(self, user_id: str, record: SessionRecord) -> None:
        try:
            resp = await self._get_client().post(
                self._url(user_id, "sessions"), json=record_to_dict(record)
            )
            resp.raise_for_status()
        except httpx.HTTPError as e:
            raise SourceUnavailable(f"Failed to save session: {e}") from e

    async def update_user_stats(self, user_id: str, summary: StatsSummary) -> None:
        try:
            resp = await self._get_client().put(
                self._url(user_id, "stats"), json=summary_to_dict(summary)
            )
            resp.raise_for_status()
        except httpx.HTTPError as e:
            raise SourceUnavailable(f"Failed to update stats: {e}") from e

    def subscribe(self, user_id: str, callback: SessionsCallback) -> Unsubscribe:
        """
        Start streaming snapshots in a background task on the running loop.

        Each non-empty line of the stream is a full JSON snapshot of the user's
        sessions. When the stream drops the task ends; the coordinator's
        refresh timer keeps the view current from then on.
        """
        task = asyncio.get_running_loop().create_task(self._stream(user_id, callback))

        def unsubscribe() -> None:
            if not task.done():
                task.cancel()

        return unsubscribe

    async def _stream(self, user_id: str, callback: SessionsCallback) -> None:
        url = self._url(user_id, "sessions/stream")
        try:
            async with self._get_client().stream(
                "GET", url, params={"limit": SUBSCRIPTION_SNAPSHOT_LIMIT}, timeout=None
            ) as resp:
                resp.raise_for_status()
                async for line in resp.aiter_lines():
                    line = line.strip()
                    if not line:
                        continue
                    try:
                        raws = self._unwrap(json.loads(line))
                    except ValueError as e:
                        logger.warning(f"Ignoring malformed live snapshot: {e}")
                        continue
                    callback(parse_records(raws, self.tz))
            logger.info("Live session stream closed by server")
        except httpx.HTTPError as e:
            logger.warning(f"Live session stream failed: {e}")

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
