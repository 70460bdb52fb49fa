from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

from hbscan.cursor import CachedFacilityList
from hbscan.errors import InvalidTransition
from hbscan.schemas import Facility, SearchQuery
from hbscan.search import SearchSession

logger = logging.getLogger(__name__)


class ModeKind(str, Enum):
    BROWSING = "browsing"
    SEARCHING = "searching"
    VIEWING_HISTORY = "viewing_history"
    VIEWING_DETAIL = "viewing_detail"


_BASE_KINDS = frozenset({ModeKind.BROWSING, ModeKind.SEARCHING})


@dataclass(frozen=True)
class NavigationMode:
    """Exactly one active mode.

    ``ViewingHistory`` remembers the base mode it was opened over, and
    ``ViewingDetail`` remembers the mode it was entered from together with the
    resolved facility. No other mode carries an origin.
    """

    kind: ModeKind
    origin: NavigationMode | None = None
    facility: Facility | None = None

    def __post_init__(self) -> None:
        if self.kind is ModeKind.VIEWING_DETAIL:
            if self.origin is None or self.origin.kind is ModeKind.VIEWING_DETAIL:
                raise InvalidTransition("detail view needs a non-detail origin")
            if self.facility is None:
                raise InvalidTransition("detail view needs a facility")
            return
        if self.facility is not None:
            raise InvalidTransition(f"{self.kind.value} cannot carry a facility")
        if self.kind is ModeKind.VIEWING_HISTORY:
            if self.origin is None or self.origin.kind not in _BASE_KINDS:
                raise InvalidTransition("history must be opened over browsing or searching")
            return
        if self.origin is not None:
            raise InvalidTransition(f"{self.kind.value} cannot carry an origin")

    @classmethod
    def browsing(cls) -> NavigationMode:
        return cls(kind=ModeKind.BROWSING)

    @classmethod
    def searching(cls) -> NavigationMode:
        return cls(kind=ModeKind.SEARCHING)

    @classmethod
    def viewing_history(cls, origin: NavigationMode) -> NavigationMode:
        return cls(kind=ModeKind.VIEWING_HISTORY, origin=origin)

    @classmethod
    def viewing_detail(cls, origin: NavigationMode, facility: Facility) -> NavigationMode:
        return cls(kind=ModeKind.VIEWING_DETAIL, origin=origin, facility=facility)

    def base_kind(self) -> ModeKind:
        """Browsing or searching: the context facility ids are resolved against."""
        mode = self
        while mode.origin is not None:
            mode = mode.origin
        return mode.kind


class NavigationOrchestrator:
    def __init__(
        self,
        cursor: CachedFacilityList,
        search: SearchSession,
        detail_viewer: Callable[[Facility], None] | None = None,
    ) -> None:
        self._cursor = cursor
        self._search = search
        self._detail_viewer = detail_viewer
        self._mode = NavigationMode.browsing()

    @property
    def mode(self) -> NavigationMode:
        return self._mode

    @property
    def detail_facility(self) -> Facility | None:
        if self._mode.kind is ModeKind.VIEWING_DETAIL:
            return self._mode.facility
        return None

    def select_facility(self, facility_id: int) -> Facility:
        if self._mode.kind is ModeKind.VIEWING_DETAIL:
            raise InvalidTransition("a facility is already open in the detail view")
        if self._mode.base_kind() is ModeKind.SEARCHING:
            facility = self._search.lookup(facility_id)
        else:
            facility = self._cursor.lookup_cached_facility(facility_id)
        self._set_mode(NavigationMode.viewing_detail(origin=self._mode, facility=facility))
        if self._detail_viewer is not None:
            self._detail_viewer(facility)
        return facility

    def return_from_detail(self) -> NavigationMode:
        if self._mode.kind is not ModeKind.VIEWING_DETAIL or self._mode.origin is None:
            raise InvalidTransition("not viewing a facility detail")
        origin = self._mode.origin
        self._set_mode(origin)
        if origin.kind is ModeKind.BROWSING:
            self._cursor.resume_last_list()
        return self._mode

    async def enter_search(self, query: SearchQuery) -> bool:
        self._set_mode(NavigationMode.searching())
        return await self._search.run_search(query)

    def exit_search(self) -> NavigationMode:
        if self._mode.kind is ModeKind.VIEWING_DETAIL:
            raise InvalidTransition("leave the detail view before leaving search")
        self._search.clear()
        self._set_mode(NavigationMode.browsing())
        return self._mode

    def show_history(self) -> NavigationMode:
        if self._mode.kind is ModeKind.VIEWING_DETAIL:
            raise InvalidTransition("cannot open search history from the detail view")
        if self._mode.kind is not ModeKind.VIEWING_HISTORY:
            self._set_mode(NavigationMode.viewing_history(origin=self._mode))
        return self._mode

    def close_history(self) -> NavigationMode:
        if self._mode.kind is ModeKind.VIEWING_HISTORY and self._mode.origin is not None:
            self._set_mode(self._mode.origin)
        return self._mode

    async def select_history_entry(self, text: str) -> bool:
        self.close_history()
        return await self.enter_search(SearchQuery(text=text))

    def _set_mode(self, mode: NavigationMode) -> None:
        previous = self._mode
        self._mode = mode
        if previous.kind is not mode.kind:
            logger.info(
                "navigation_mode_changed",
                extra={"component": "navigator", "from_mode": previous.kind.value, "to_mode": mode.kind.value},
            )
