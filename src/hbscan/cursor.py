from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Any, Protocol

from hbscan.clients.directory_client import FetchGateway
from hbscan.errors import FetchError, InvalidTransition, NotFound
from hbscan.schemas import City, District, Facility, Province
from hbscan.sequencing import RequestSequencer

logger = logging.getLogger(__name__)

DEFAULT_ROOT_LABEL = "全国"


class Level(str, Enum):
    PROVINCES = "provinces"
    CITIES = "cities"
    DISTRICTS = "districts"
    FACILITIES = "facilities"

    @property
    def depth(self) -> int:
        return _LEVEL_ORDER.index(self)


_LEVEL_ORDER: tuple[Level, ...] = (Level.PROVINCES, Level.CITIES, Level.DISTRICTS, Level.FACILITIES)


@dataclass(frozen=True)
class Selection:
    province: Province | None = None
    city: City | None = None
    district: District | None = None

    def __post_init__(self) -> None:
        if self.city is not None and self.province is None:
            raise InvalidTransition("city selected without a province")
        if self.district is not None and self.city is None:
            raise InvalidTransition("district selected without a city")

    def deepest_level(self) -> Level:
        if self.district is not None:
            return Level.FACILITIES
        if self.city is not None:
            return Level.DISTRICTS
        if self.province is not None:
            return Level.CITIES
        return Level.PROVINCES

    def allows(self, level: Level) -> bool:
        return level.depth <= self.deepest_level().depth

    def truncated_to(self, level: Level) -> Selection:
        """Keep only the selections needed to show ``level``'s list."""
        if level is Level.PROVINCES:
            return Selection()
        if level is Level.CITIES:
            return Selection(province=self.province)
        if level is Level.DISTRICTS:
            return Selection(province=self.province, city=self.city)
        return self


@dataclass(frozen=True)
class Crumb:
    label: str
    level: Level
    clickable: bool


class CachedFacilityList(Protocol):
    def resume_last_list(self) -> Level: ...

    def lookup_cached_facility(self, facility_id: int) -> Facility: ...


class HierarchyCursor:
    def __init__(self, gateway: FetchGateway, root_label: str = DEFAULT_ROOT_LABEL) -> None:
        self._gateway = gateway
        self._root_label = root_label
        self._sequencer = RequestSequencer()
        self._selection = Selection()
        self._active_level = Level.PROVINCES
        self._lists: dict[Level, list[Any]] = {level: [] for level in _LEVEL_ORDER}
        self._facility_filter = ""
        self._loading = False
        self._error: str | None = None
        self._failure: FetchError | None = None

    @property
    def selection(self) -> Selection:
        return self._selection

    @property
    def active_level(self) -> Level:
        return self._active_level

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
    def provinces(self) -> list[Province]:
        return list(self._lists[Level.PROVINCES])

    @property
    def cities(self) -> list[City]:
        return list(self._lists[Level.CITIES])

    @property
    def districts(self) -> list[District]:
        return list(self._lists[Level.DISTRICTS])

    @property
    def facilities(self) -> list[Facility]:
        return list(self._lists[Level.FACILITIES])

    @property
    def facility_filter(self) -> str:
        return self._facility_filter

    @property
    def visible_facilities(self) -> list[Facility]:
        facilities: list[Facility] = self._lists[Level.FACILITIES]
        if not self._facility_filter:
            return list(facilities)
        return [facility for facility in facilities if facility.matches_text(self._facility_filter)]

    def is_level_enabled(self, level: Level) -> bool:
        return self._selection.allows(level)

    async def load_provinces(self) -> bool:
        return await self._transition(
            level=Level.PROVINCES,
            selection=Selection(),
            fetch=self._gateway.list_provinces,
            failure_message="Failed to load provinces",
        )

    async def descend_to_city(self, province: Province) -> bool:
        return await self._transition(
            level=Level.CITIES,
            selection=Selection(province=province),
            fetch=lambda: self._gateway.list_cities(province.name),
            failure_message="Failed to load cities",
        )

    async def descend_to_district(self, city: City) -> bool:
        if self._selection.province is None:
            raise InvalidTransition("cannot select a city before a province")
        return await self._transition(
            level=Level.DISTRICTS,
            selection=Selection(province=self._selection.province, city=city),
            fetch=lambda: self._gateway.list_districts(city.name),
            failure_message="Failed to load districts",
        )

    async def descend_to_hospital_list(self, district: District) -> bool:
        if self._selection.city is None:
            raise InvalidTransition("cannot select a district before a city")
        return await self._transition(
            level=Level.FACILITIES,
            selection=Selection(province=self._selection.province, city=self._selection.city, district=district),
            fetch=lambda: self._gateway.list_facilities(district.name),
            failure_message="Failed to load hospitals",
        )

    async def refresh_current_level_list(self) -> bool:
        district = self._selection.district
        if district is None:
            return False
        return await self._transition(
            level=Level.FACILITIES,
            selection=self._selection,
            fetch=lambda: self._gateway.list_facilities(district.name),
            failure_message="Failed to load hospitals",
        )

    def ascend_to(self, level: Level) -> None:
        if not self._selection.allows(level):
            raise InvalidTransition(f"level {level.value} is not reachable from the current selection")
        # Supersede any descent still in flight.
        self._sequencer.invalidate()
        self._loading = False
        self._selection = self._selection.truncated_to(level)
        self._clear_lists_below(level)
        self._active_level = level

    def show_level(self, level: Level) -> None:
        if not self.is_level_enabled(level):
            raise InvalidTransition(f"level {level.value} is disabled for the current selection")
        self._active_level = level

    def resume_last_list(self) -> Level:
        self._active_level = self._selection.deepest_level()
        logger.info(
            "hierarchy_list_resumed",
            extra={"component": "navigator", "level": self._active_level.value},
        )
        return self._active_level

    def lookup_cached_facility(self, facility_id: int) -> Facility:
        for facility in self._lists[Level.FACILITIES]:
            if facility.id == facility_id:
                return facility
        raise NotFound(f"facility {facility_id} is not in the current hospital list")

    def filter_facilities(self, text: str) -> list[Facility]:
        self._facility_filter = text.strip()
        return self.visible_facilities

    def breadcrumb(self) -> list[Crumb]:
        trail: list[tuple[str, Level]] = [(self._root_label, Level.PROVINCES)]
        if self._selection.province is not None:
            trail.append((self._selection.province.name, Level.CITIES))
        if self._selection.city is not None:
            trail.append((self._selection.city.name, Level.DISTRICTS))
        if self._selection.district is not None:
            trail.append((self._selection.district.name, Level.FACILITIES))
        last = len(trail) - 1
        return [Crumb(label=label, level=level, clickable=index != last) for index, (label, level) in enumerate(trail)]

    async def _transition(
        self,
        level: Level,
        selection: Selection,
        fetch: Callable[[], Awaitable[Sequence[Any]]],
        failure_message: str,
    ) -> bool:
        token = self._sequencer.issue()
        self._loading = True
        self._error = None
        self._failure = None
        try:
            items = await fetch()
        except FetchError as exc:
            if not self._sequencer.is_current(token):
                self._log_superseded(level, token)
                return False
            self._loading = False
            self._error = failure_message
            self._failure = exc
            logger.warning(
                "hierarchy_fetch_failed",
                extra={"component": "navigator", "level": level.value, "code": exc.code},
            )
            return False

        if not self._sequencer.is_current(token):
            self._log_superseded(level, token)
            return False

        self._selection = selection
        self._lists[level] = list(items)
        self._clear_lists_below(level)
        if level is Level.FACILITIES:
            self._facility_filter = ""
        self._active_level = level
        self._loading = False
        logger.info(
            "hierarchy_level_loaded",
            extra={"component": "navigator", "level": level.value, "count": len(items)},
        )
        return True

    def _clear_lists_below(self, level: Level) -> None:
        for inner in _LEVEL_ORDER[level.depth + 1 :]:
            self._lists[inner] = []

    def _log_superseded(self, level: Level, token: int) -> None:
        logger.info(
            "hierarchy_fetch_superseded",
            extra={"component": "navigator", "level": level.value, "token": token},
        )
