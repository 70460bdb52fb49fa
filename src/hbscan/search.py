from __future__ import annotations

import logging

from hbscan.clients.directory_client import FetchGateway
from hbscan.errors import FetchError, NotFound, ValidationError
from hbscan.history import SearchHistoryStore
from hbscan.paginator import PageView, PageWindow, build_window, paginate
from hbscan.schemas import HOSPITAL_LEVELS, Facility, ProcurementStatus, SearchFilters, SearchQuery, SearchResultSet
from hbscan.sequencing import RequestSequencer

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 20


class SearchSession:
    """Query composition, the authoritative search fetch and result paging.

    Only the most recent ``run_search`` call may replace the result set. A
    failed search keeps the previous results and reports an error, which is
    distinct from a successful search that matched nothing.
    """

    def __init__(
        self,
        gateway: FetchGateway,
        history: SearchHistoryStore | None = None,
        page_size: int = DEFAULT_PAGE_SIZE,
    ) -> None:
        if page_size < 1:
            raise ValidationError(f"page_size must be >= 1, got {page_size}")
        self._gateway = gateway
        self._history = history
        self._sequencer = RequestSequencer()
        self._query: SearchQuery | None = None
        self._result_set: SearchResultSet | None = None
        self._draft_filters = SearchFilters()
        self._current_page = 1
        self._page_size = page_size
        self._loading = False
        self._error: str | None = None
        self._failure: FetchError | None = None

    @property
    def query(self) -> SearchQuery | None:
        return self._query

    @property
    def result_set(self) -> SearchResultSet | None:
        return self._result_set

    @property
    def has_searched(self) -> bool:
        return self._result_set is not None

    @property
    def loading(self) -> bool:
        return self._loading

    @property
    def error(self) -> str | None:
        return self._error

    @property
    def failure(self) -> FetchError | None:
        return self._failure

    @property
    def current_page(self) -> int:
        return self._current_page

    @property
    def page_size(self) -> int:
        return self._page_size

    @property
    def draft_filters(self) -> SearchFilters:
        return self._draft_filters

    @property
    def active_filter_count(self) -> int:
        return self._draft_filters.active_count

    def compose_query(self, text: str) -> SearchQuery:
        return SearchQuery(text=text, filters=self._draft_filters)

    def toggle_level(self, level: str, checked: bool) -> SearchFilters:
        if level not in HOSPITAL_LEVELS:
            raise ValidationError(f"unknown hospital level: {level}")
        levels = set(self._draft_filters.levels)
        if checked:
            levels.add(level)
        else:
            levels.discard(level)
        self._draft_filters = self._draft_filters.model_copy(update={"levels": frozenset(levels)})
        return self._draft_filters

    def set_procurement_status(self, status: ProcurementStatus) -> SearchFilters:
        self._draft_filters = self._draft_filters.model_copy(update={"procurement_status": ProcurementStatus(status)})
        return self._draft_filters

    def reset_filters(self) -> SearchFilters:
        self._draft_filters = SearchFilters()
        return self._draft_filters

    async def run_search(self, query: SearchQuery, record_history: bool = True) -> bool:
        token = self._sequencer.issue()
        self._query = query
        self._loading = True
        self._error = None
        self._failure = None
        if record_history and query.text:
            await self._record_history(query.text)

        filters = query.filters
        try:
            facilities = await self._gateway.search(
                text=query.text or None,
                levels=sorted(filters.levels) or None,
                procurement_status=filters.procurement_status,
            )
        except FetchError as exc:
            if not self._sequencer.is_current(token):
                self._log_superseded(token)
                return False
            self._loading = False
            self._error = "Search failed, please try again"
            self._failure = exc
            logger.warning(
                "search_failed",
                extra={"component": "navigator", "code": exc.code, "unscoped": query.is_unscoped()},
            )
            return False

        if not self._sequencer.is_current(token):
            self._log_superseded(token)
            return False

        self._result_set = SearchResultSet(query=query, facilities=tuple(facilities))
        self._current_page = 1
        self._loading = False
        logger.info(
            "search_completed",
            extra={"component": "navigator", "count": len(facilities), "filters": filters.active_count},
        )
        return True

    def go_to_page(self, page: int) -> PageWindow:
        window = build_window(self._total_count(), self._page_size, page)
        self._current_page = window.current_page
        return window

    def set_page_size(self, page_size: int) -> PageWindow:
        window = build_window(self._total_count(), page_size, 1)
        self._page_size = page_size
        self._current_page = 1
        return window

    def page_view(self) -> PageView[Facility]:
        facilities = self._result_set.facilities if self._result_set is not None else ()
        return paginate(facilities, self._page_size, self._current_page)

    def lookup(self, facility_id: int) -> Facility:
        facility = self._result_set.find(facility_id) if self._result_set is not None else None
        if facility is None:
            raise NotFound(f"facility {facility_id} is not in the current search results")
        return facility

    def clear(self) -> None:
        self._sequencer.invalidate()
        self._query = None
        self._result_set = None
        self._current_page = 1
        self._loading = False
        self._error = None
        self._failure = None

    def _total_count(self) -> int:
        return self._result_set.count if self._result_set is not None else 0

    def _log_superseded(self, token: int) -> None:
        logger.info("search_superseded", extra={"component": "navigator", "token": token})

    async def _record_history(self, text: str) -> None:
        if self._history is None:
            return
        try:
            await self._history.record(text)
        except Exception:
            logger.warning("search_history_save_failed", extra={"component": "navigator"}, exc_info=True)
