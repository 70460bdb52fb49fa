from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass

import httpx

from hbscan.clients.directory_client import DirectoryClient, FetchGateway
from hbscan.config import NavigatorSettings, load_settings
from hbscan.cursor import HierarchyCursor
from hbscan.errors import FetchError
from hbscan.history import SearchHistoryStore
from hbscan.navigation import ModeKind, NavigationOrchestrator
from hbscan.observability import (
    CompositeFetchMetricsCollector,
    FetchMetricCollector,
    InMemoryFetchMetricsCollector,
    PrometheusFetchMetricsCollector,
    configure_otel,
)
from hbscan.schemas import DisplaySettings, Facility
from hbscan.search import SearchSession
from hbscan.settings_store import DisplaySettingsStore
from hbscan.storage import KeyValueStore, create_key_value_store

logger = logging.getLogger(__name__)


@dataclass
class Navigator:
    """Wires the cursor, search session, stores and orchestrator for one mounted view."""

    gateway: FetchGateway
    cursor: HierarchyCursor
    search: SearchSession
    history: SearchHistoryStore
    settings_store: DisplaySettingsStore
    orchestrator: NavigationOrchestrator
    fetch_metrics: InMemoryFetchMetricsCollector
    prom_metrics: PrometheusFetchMetricsCollector
    error: str | None = None

    async def mount(self) -> bool:
        await self.history.load()
        display = await self.settings_store.load()
        self.search.set_page_size(display.page_size)
        logger.info(
            "navigator_mounted",
            extra={"component": "navigator", "page_size": display.page_size, "history": len(self.history.entries)},
        )
        return await self.cursor.load_provinces()

    async def remove_facility(self, facility_id: int) -> bool:
        self.error = None
        try:
            result = await self.gateway.delete_facility(facility_id)
        except FetchError as exc:
            self.error = "Failed to delete hospital"
            logger.warning(
                "facility_delete_failed",
                extra={"component": "navigator", "facility_id": facility_id, "code": exc.code},
            )
            return False
        if not result.success:
            self.error = result.message or "Failed to delete hospital"
            return False

        logger.info("facility_deleted", extra={"component": "navigator", "facility_id": facility_id})
        if self.orchestrator.mode.base_kind() is ModeKind.SEARCHING and self.search.query is not None:
            return await self.search.run_search(self.search.query, record_history=False)
        return await self.cursor.refresh_current_level_list()

    async def update_page_size(self, page_size: int) -> DisplaySettings:
        display = await self.settings_store.update(page_size=page_size)
        self.search.set_page_size(display.page_size)
        return display

    async def clear_history(self) -> None:
        await self.history.clear()

    def render_metrics(self) -> str:
        return self.prom_metrics.render()


def create_navigator(
    settings: NavigatorSettings | None = None,
    *,
    gateway: FetchGateway | None = None,
    store: KeyValueStore | None = None,
    metrics: FetchMetricCollector | None = None,
    client_factory: Callable[[], httpx.AsyncClient] | None = None,
    detail_viewer: Callable[[Facility], None] | None = None,
) -> Navigator:
    settings = settings or load_settings()
    configure_otel(service_name=settings.SERVICE_NAME)
    fetch_metrics = InMemoryFetchMetricsCollector()
    prom_metrics = PrometheusFetchMetricsCollector()
    collectors: list[FetchMetricCollector] = [fetch_metrics, prom_metrics]
    if metrics is not None:
        collectors.append(metrics)
    if gateway is None:
        gateway = DirectoryClient(
            base_url=settings.API_BASE_URL,
            timeout_seconds=settings.REQUEST_TIMEOUT_SECONDS,
            client_factory=client_factory,
            metrics=CompositeFetchMetricsCollector(collectors),
        )
    if store is None:
        store = create_key_value_store(settings.REDIS_URL)

    history = SearchHistoryStore(store, key=settings.HISTORY_STORAGE_KEY, max_entries=settings.HISTORY_LIMIT)
    settings_store = DisplaySettingsStore(
        store,
        key=settings.SETTINGS_STORAGE_KEY,
        defaults=DisplaySettings(page_size=settings.DEFAULT_PAGE_SIZE),
    )
    cursor = HierarchyCursor(gateway)
    search = SearchSession(gateway, history=history, page_size=settings.DEFAULT_PAGE_SIZE)
    orchestrator = NavigationOrchestrator(cursor, search, detail_viewer=detail_viewer)
    return Navigator(
        gateway=gateway,
        cursor=cursor,
        search=search,
        history=history,
        settings_store=settings_store,
        orchestrator=orchestrator,
        fetch_metrics=fetch_metrics,
        prom_metrics=prom_metrics,
    )
