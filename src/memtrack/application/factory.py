"""
Session Store Factory
Centralizes wiring of the tiered store, report service and coordinator from config.
"""

from memtrack.application.config import AppConfig
from memtrack.application.stats.coordinator import StatsListener, SyncCoordinator
from memtrack.application.stats.service import SessionStatsService
from memtrack.application.stats.session_store import SessionStore
from memtrack.infrastructure.adapters.stats.http_source import HttpSessionSource
from memtrack.infrastructure.adapters.stats.json_store import JsonFileStore
from memtrack.infrastructure.adapters.stats.memory_cache import InMemoryCache


def get_remote_source(config: AppConfig) -> HttpSessionSource:
    return HttpSessionSource(
        base_url=config.remote_url,
        tz=config.get_tz(),
        timeout=config.request_timeout,
    )


def build_session_store(
    config: AppConfig,
    remote: HttpSessionSource | None = None,
    cache: InMemoryCache | None = None,
) -> SessionStore:
    """
    Returns a SessionStore for the configured user: HTTP remote, process cache,
    and a JSON file store under `data_dir`.

    Pass `cache` to share the cached tier between stores; otherwise the store
    gets a fresh, empty cache.
    """
    return SessionStore(
        user=config.user_context(),
        remote=remote or get_remote_source(config),
        cache=cache if cache is not None else InMemoryCache(),
        durable=JsonFileStore(config.data_dir),
    )


def build_stats_service(
    config: AppConfig, cache: InMemoryCache | None = None
) -> SessionStatsService:
    return SessionStatsService(build_session_store(config, cache=cache))


def build_coordinator(config: AppConfig, on_stats_updated: StatsListener) -> SyncCoordinator:
    """Wires a SyncCoordinator whose remote doubles as subscription source and stats sink."""
    remote = get_remote_source(config)
    service = SessionStatsService(build_session_store(config, remote=remote))
    return SyncCoordinator(
        service,
        remote,
        on_stats_updated,
        mode=config.default_period,
        refresh_interval=config.refresh_interval,
        stats_sink=remote,
        owns_remote=True,
    )
