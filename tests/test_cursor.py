import asyncio

import pytest

from fixtures import (
    FIRST_PEOPLES,
    GUANGDONG,
    GUANGZHOU,
    HANGZHOU,
    SHENZHEN,
    TIANHE,
    TIANHE_TCM,
    YUEXIU,
    YUEXIU_CLINIC,
    ZHEJIANG,
)
from hbscan.cursor import HierarchyCursor, Level, Selection
from hbscan.errors import InvalidTransition, NotFound


async def drill_to_tianhe(cursor: HierarchyCursor) -> None:
    assert await cursor.load_provinces()
    assert await cursor.descend_to_city(GUANGDONG)
    assert await cursor.descend_to_district(GUANGZHOU)
    assert await cursor.descend_to_hospital_list(TIANHE)


def assert_prefix_consistent(cursor: HierarchyCursor) -> None:
    selection = cursor.selection
    if selection.city is not None:
        assert selection.province is not None
    if selection.district is not None:
        assert selection.city is not None
    assert cursor.active_level in set(Level)
    assert selection.allows(cursor.active_level)


@pytest.mark.asyncio
async def test_descending_through_every_level(gateway) -> None:
    cursor = HierarchyCursor(gateway)

    await drill_to_tianhe(cursor)

    assert cursor.active_level is Level.FACILITIES
    assert cursor.selection == Selection(province=GUANGDONG, city=GUANGZHOU, district=TIANHE)
    assert cursor.facilities == [FIRST_PEOPLES, TIANHE_TCM]
    assert gateway.calls == [
        ("list_provinces", None),
        ("list_cities", "Guangdong"),
        ("list_districts", "Guangzhou"),
        ("list_facilities", "Tianhe"),
    ]
    assert_prefix_consistent(cursor)


@pytest.mark.asyncio
async def test_selecting_new_province_clears_inner_levels(gateway) -> None:
    cursor = HierarchyCursor(gateway)
    await drill_to_tianhe(cursor)

    assert await cursor.descend_to_city(ZHEJIANG)

    assert cursor.selection == Selection(province=ZHEJIANG)
    assert cursor.active_level is Level.CITIES
    assert cursor.cities == [HANGZHOU]
    assert cursor.districts == []
    assert cursor.facilities == []
    assert_prefix_consistent(cursor)


@pytest.mark.asyncio
async def test_selecting_new_city_clears_district(gateway) -> None:
    cursor = HierarchyCursor(gateway)
    await drill_to_tianhe(cursor)

    assert await cursor.descend_to_district(SHENZHEN)

    assert cursor.selection == Selection(province=GUANGDONG, city=SHENZHEN)
    assert cursor.districts == []
    assert cursor.active_level is Level.DISTRICTS


@pytest.mark.asyncio
async def test_failed_descent_keeps_previous_list_and_selection(gateway) -> None:
    cursor = HierarchyCursor(gateway)
    await cursor.load_provinces()
    await cursor.descend_to_city(GUANGDONG)
    gateway.fail("list_districts", "Guangzhou")

    applied = await cursor.descend_to_district(GUANGZHOU)

    assert applied is False
    assert cursor.error == "Failed to load districts"
    assert cursor.failure is not None and cursor.failure.code == "UPSTREAM_FAILURE"
    assert cursor.selection == Selection(province=GUANGDONG)
    assert cursor.active_level is Level.CITIES
    assert cursor.cities == [GUANGZHOU, SHENZHEN]
    assert cursor.loading is False
    assert_prefix_consistent(cursor)


@pytest.mark.asyncio
async def test_failed_refresh_keeps_last_known_good_facilities(gateway) -> None:
    cursor = HierarchyCursor(gateway)
    await drill_to_tianhe(cursor)
    gateway.fail("list_facilities", "Tianhe")

    assert await cursor.refresh_current_level_list() is False

    assert cursor.facilities == [FIRST_PEOPLES, TIANHE_TCM]
    assert cursor.error == "Failed to load hospitals"


@pytest.mark.asyncio
async def test_empty_successful_fetch_clears_list_without_error(gateway) -> None:
    cursor = HierarchyCursor(gateway)
    await cursor.load_provinces()
    await cursor.descend_to_city(GUANGDONG)
    gateway.fail("list_districts", "Shenzhen")
    await cursor.descend_to_district(SHENZHEN)
    assert cursor.error is not None
    gateway.recover("list_districts", "Shenzhen")

    assert await cursor.descend_to_district(SHENZHEN)

    assert cursor.districts == []
    assert cursor.error is None
    assert cursor.active_level is Level.DISTRICTS


@pytest.mark.asyncio
async def test_breadcrumb_ascent_clears_only_inner_levels_without_fetching(gateway) -> None:
    cursor = HierarchyCursor(gateway)
    await drill_to_tianhe(cursor)
    calls_before = len(gateway.calls)

    cursor.ascend_to(Level.DISTRICTS)

    assert cursor.selection == Selection(province=GUANGDONG, city=GUANGZHOU)
    assert cursor.active_level is Level.DISTRICTS
    assert cursor.districts == [TIANHE, YUEXIU]
    assert cursor.facilities == []

    cursor.ascend_to(Level.CITIES)
    assert cursor.selection == Selection(province=GUANGDONG)
    assert cursor.cities == [GUANGZHOU, SHENZHEN]

    cursor.ascend_to(Level.PROVINCES)
    assert cursor.selection == Selection()
    assert cursor.active_level is Level.PROVINCES
    assert len(gateway.calls) == calls_before
    assert_prefix_consistent(cursor)


@pytest.mark.asyncio
async def test_ascend_to_unreachable_level_is_rejected(gateway) -> None:
    cursor = HierarchyCursor(gateway)
    await cursor.load_provinces()
    await cursor.descend_to_city(GUANGDONG)

    with pytest.raises(InvalidTransition):
        cursor.ascend_to(Level.DISTRICTS)
    assert cursor.active_level is Level.CITIES


@pytest.mark.asyncio
async def test_levels_cannot_be_skipped(gateway) -> None:
    cursor = HierarchyCursor(gateway)
    await cursor.load_provinces()

    with pytest.raises(InvalidTransition):
        await cursor.descend_to_district(GUANGZHOU)
    with pytest.raises(InvalidTransition):
        await cursor.descend_to_hospital_list(TIANHE)
    with pytest.raises(InvalidTransition):
        Selection(city=GUANGZHOU)


@pytest.mark.asyncio
async def test_breadcrumb_tracks_selection(gateway) -> None:
    cursor = HierarchyCursor(gateway)
    await drill_to_tianhe(cursor)

    crumbs = cursor.breadcrumb()

    assert [crumb.label for crumb in crumbs] == ["全国", "Guangdong", "Guangzhou", "Tianhe"]
    assert [crumb.level for crumb in crumbs] == [Level.PROVINCES, Level.CITIES, Level.DISTRICTS, Level.FACILITIES]
    assert [crumb.clickable for crumb in crumbs] == [True, True, True, False]


@pytest.mark.asyncio
async def test_resume_last_list_recomputes_level_without_fetch(gateway) -> None:
    cursor = HierarchyCursor(gateway)
    await drill_to_tianhe(cursor)
    cursor.show_level(Level.PROVINCES)
    calls_before = len(gateway.calls)

    assert cursor.resume_last_list() is Level.FACILITIES

    assert cursor.selection == Selection(province=GUANGDONG, city=GUANGZHOU, district=TIANHE)
    assert len(gateway.calls) == calls_before


@pytest.mark.asyncio
async def test_show_level_requires_enabled_tab(gateway) -> None:
    cursor = HierarchyCursor(gateway)
    await cursor.load_provinces()
    await cursor.descend_to_city(GUANGDONG)

    assert cursor.is_level_enabled(Level.CITIES)
    assert not cursor.is_level_enabled(Level.DISTRICTS)
    with pytest.raises(InvalidTransition):
        cursor.show_level(Level.FACILITIES)


@pytest.mark.asyncio
async def test_lookup_is_scoped_to_last_fetched_facility_list(gateway) -> None:
    cursor = HierarchyCursor(gateway)
    await drill_to_tianhe(cursor)

    assert cursor.lookup_cached_facility(TIANHE_TCM.id) == TIANHE_TCM
    with pytest.raises(NotFound):
        cursor.lookup_cached_facility(YUEXIU_CLINIC.id)

    cursor.ascend_to(Level.DISTRICTS)
    with pytest.raises(NotFound):
        cursor.lookup_cached_facility(TIANHE_TCM.id)


@pytest.mark.asyncio
async def test_client_side_filter_matches_name_or_address_case_insensitive(gateway) -> None:
    cursor = HierarchyCursor(gateway)
    await drill_to_tianhe(cursor)
    calls_before = len(gateway.calls)

    assert cursor.filter_facilities("TCM") == [TIANHE_TCM]
    assert cursor.filter_facilities("panfu") == [FIRST_PEOPLES]
    assert cursor.filter_facilities("nothing-here") == []
    assert cursor.facilities == [FIRST_PEOPLES, TIANHE_TCM]
    assert len(gateway.calls) == calls_before


@pytest.mark.asyncio
async def test_new_facility_list_resets_filter(gateway) -> None:
    cursor = HierarchyCursor(gateway)
    await drill_to_tianhe(cursor)
    cursor.filter_facilities("TCM")

    await cursor.descend_to_hospital_list(YUEXIU)

    assert cursor.facility_filter == ""
    assert cursor.visible_facilities == [YUEXIU_CLINIC]


@pytest.mark.asyncio
async def test_refresh_without_district_is_a_noop(gateway) -> None:
    cursor = HierarchyCursor(gateway)
    await cursor.load_provinces()

    assert await cursor.refresh_current_level_list() is False
    assert gateway.call_count("list_facilities") == 0


@pytest.mark.asyncio
async def test_superseded_descent_is_never_applied(gateway) -> None:
    cursor = HierarchyCursor(gateway)
    await cursor.load_provinces()
    slow = gateway.gate("list_cities", "Guangdong")

    first = asyncio.create_task(cursor.descend_to_city(GUANGDONG))
    await asyncio.sleep(0)
    assert cursor.loading is True
    assert await cursor.descend_to_city(ZHEJIANG) is True
    slow.set()

    assert await first is False
    assert cursor.selection == Selection(province=ZHEJIANG)
    assert cursor.cities == [HANGZHOU]
    assert cursor.loading is False


@pytest.mark.asyncio
async def test_superseded_failure_does_not_set_error(gateway) -> None:
    cursor = HierarchyCursor(gateway)
    await cursor.load_provinces()
    slow = gateway.gate("list_cities", "Guangdong")
    gateway.fail("list_cities", "Guangdong")

    first = asyncio.create_task(cursor.descend_to_city(GUANGDONG))
    await asyncio.sleep(0)
    await cursor.descend_to_city(ZHEJIANG)
    slow.set()

    assert await first is False
    assert cursor.error is None
    assert cursor.selection == Selection(province=ZHEJIANG)


@pytest.mark.asyncio
async def test_ascent_discards_descent_in_flight(gateway) -> None:
    cursor = HierarchyCursor(gateway)
    await cursor.load_provinces()
    await cursor.descend_to_city(GUANGDONG)
    slow = gateway.gate("list_districts", "Guangzhou")

    pending = asyncio.create_task(cursor.descend_to_district(GUANGZHOU))
    await asyncio.sleep(0)
    cursor.ascend_to(Level.PROVINCES)
    slow.set()

    assert await pending is False
    assert cursor.selection == Selection()
    assert cursor.active_level is Level.PROVINCES
