"""Shared directory data and an in-memory gateway for the test suite."""

from __future__ import annotations

import asyncio
from collections.abc import Iterable

from hbscan.errors import FetchError
from hbscan.schemas import City, DeleteResult, District, Facility, ProcurementStatus, Province

GUANGDONG = Province(id=1, name="Guangdong", code="44")
ZHEJIANG = Province(id=2, name="Zhejiang", code="33")
GUANGZHOU = City(id=10, name="Guangzhou", province_id=1)
SHENZHEN = City(id=11, name="Shenzhen", province_id=1)
HANGZHOU = City(id=20, name="Hangzhou", province_id=2)
TIANHE = District(id=100, name="Tianhe", city_id=10)
YUEXIU = District(id=101, name="Yuexiu", city_id=10)
XIHU = District(id=200, name="Xihu", city_id=20)

FIRST_PEOPLES = Facility(
    id=1000,
    name="Guangzhou First People's Hospital",
    level="三甲",
    address="1 Panfu Road",
    phone="020-1000",
    website="https://gzfph.example.cn",
    district_id=100,
)
TIANHE_TCM = Facility(
    id=1001,
    name="Tianhe TCM Hospital",
    level="二甲",
    address="88 Tiyu West Road",
    phone="020-1001",
    district_id=100,
)
YUEXIU_CLINIC = Facility(id=1010, name="Yuexiu Clinic", level="未定级", address="5 Beijing Road", district_id=101)
XIHU_HOSPITAL = Facility(id=2000, name="West Lake Hospital", level="三乙", address="12 Lakeside", district_id=200)


class FakeGateway:
    """In-memory gateway with per-call failure injection and release gates."""

    def __init__(self) -> None:
        self.provinces = [GUANGDONG, ZHEJIANG]
        self.cities = {"Guangdong": [GUANGZHOU, SHENZHEN], "Zhejiang": [HANGZHOU]}
        self.districts = {"Guangzhou": [TIANHE, YUEXIU], "Shenzhen": [], "Hangzhou": [XIHU]}
        self.facilities = {"Tianhe": [FIRST_PEOPLES, TIANHE_TCM], "Yuexiu": [YUEXIU_CLINIC], "Xihu": [XIHU_HOSPITAL]}
        self.search_results: dict[str, list[Facility]] = {}
        self.calls: list[tuple[str, object]] = []
        self.deleted: list[int] = []
        self.delete_result = DeleteResult(success=True, message="deleted")
        self._failures: set[tuple[str, object]] = set()
        self._gates: dict[tuple[str, object], asyncio.Event] = {}

    def fail(self, operation: str, arg: object = None) -> None:
        self._failures.add((operation, arg))

    def recover(self, operation: str, arg: object = None) -> None:
        self._failures.discard((operation, arg))

    def gate(self, operation: str, arg: object = None) -> asyncio.Event:
        event = asyncio.Event()
        self._gates[(operation, arg)] = event
        return event

    def call_count(self, operation: str) -> int:
        return sum(1 for name, _ in self.calls if name == operation)

    async def list_provinces(self) -> list[Province]:
        await self._enter("list_provinces", None)
        return list(self.provinces)

    async def list_cities(self, province_name: str) -> list[City]:
        await self._enter("list_cities", province_name)
        return list(self.cities.get(province_name, []))

    async def list_districts(self, city_name: str) -> list[District]:
        await self._enter("list_districts", city_name)
        return list(self.districts.get(city_name, []))

    async def list_facilities(self, district_name: str) -> list[Facility]:
        await self._enter("list_facilities", district_name)
        return list(self.facilities.get(district_name, []))

    async def search(
        self,
        text: str | None = None,
        levels: Iterable[str] | None = None,
        procurement_status: ProcurementStatus | None = None,
    ) -> list[Facility]:
        await self._enter("search", text)
        if text is None:
            return [facility for rows in self.facilities.values() for facility in rows]
        return list(self.search_results.get(text, []))

    async def delete_facility(self, facility_id: int) -> DeleteResult:
        await self._enter("delete_facility", facility_id)
        if self.delete_result.success:
            self.deleted.append(facility_id)
            for district, rows in self.facilities.items():
                self.facilities[district] = [row for row in rows if row.id != facility_id]
        return self.delete_result

    async def _enter(self, operation: str, arg: object) -> None:
        self.calls.append((operation, arg))
        gate = self._gates.get((operation, arg))
        if gate is not None:
            await gate.wait()
        if (operation, arg) in self._failures or (operation, None) in self._failures:
            raise FetchError("UPSTREAM_FAILURE", "Upstream request failed", 502)
