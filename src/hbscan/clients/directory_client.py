from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterable
from typing import Any, Protocol, TypeVar

import httpx
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from hbscan.errors import FetchError
from hbscan.observability import FetchMetric, FetchMetricCollector, get_tracer
from hbscan.schemas import City, DeleteResult, District, Facility, ProcurementStatus, Province

ModelT = TypeVar("ModelT", bound=BaseModel)

logger = logging.getLogger(__name__)
tracer = get_tracer(__name__)

LIST_PAGE_SIZE = 100


class FetchGateway(Protocol):
    async def list_provinces(self) -> list[Province]: ...

    async def list_cities(self, province_name: str) -> list[City]: ...

    async def list_districts(self, city_name: str) -> list[District]: ...

    async def list_facilities(self, district_name: str) -> list[Facility]: ...

    async def search(
        self,
        text: str | None = None,
        levels: Iterable[str] | None = None,
        procurement_status: ProcurementStatus | None = None,
    ) -> list[Facility]: ...

    async def delete_facility(self, facility_id: int) -> DeleteResult: ...


class DirectoryClient:
    def __init__(
        self,
        base_url: str,
        timeout_seconds: float = 10.0,
        client_factory: Callable[[], httpx.AsyncClient] | None = None,
        metrics: FetchMetricCollector | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout_seconds = timeout_seconds
        self._client_factory = client_factory
        self._metrics = metrics

    async def list_provinces(self) -> list[Province]:
        payload = await self._request("list_provinces", "GET", "/provinces", params=self._list_params())
        return self._parse_items(payload, "items", Province)

    async def list_cities(self, province_name: str) -> list[City]:
        params = self._list_params(province=province_name)
        payload = await self._request("list_cities", "GET", "/cities", params=params)
        return self._parse_items(payload, "items", City)

    async def list_districts(self, city_name: str) -> list[District]:
        params = self._list_params(city=city_name)
        payload = await self._request("list_districts", "GET", "/districts", params=params)
        return self._parse_items(payload, "items", District)

    async def list_facilities(self, district_name: str) -> list[Facility]:
        params = self._list_params(district=district_name)
        payload = await self._request("list_facilities", "GET", "/hospitals", params=params)
        return self._parse_items(payload, "items", Facility)

    async def search(
        self,
        text: str | None = None,
        levels: Iterable[str] | None = None,
        procurement_status: ProcurementStatus | None = None,
    ) -> list[Facility]:
        params: dict[str, Any] = {}
        if text:
            params["q"] = text
        level_values = sorted(levels or ())
        if level_values:
            params["levels"] = ",".join(level_values)
        if procurement_status and procurement_status is not ProcurementStatus.UNSET:
            params["procurement_status"] = procurement_status.value
        payload = await self._request("search", "GET", "/hospitals/search", params=params)
        return self._parse_items(payload, "results", Facility)

    async def delete_facility(self, facility_id: int) -> DeleteResult:
        payload = await self._request("delete_facility", "DELETE", f"/hospital/{facility_id}")
        try:
            return DeleteResult.model_validate(payload)
        except PydanticValidationError as exc:
            raise FetchError("UPSTREAM_BAD_PAYLOAD", "Upstream returned malformed delete result") from exc

    async def _request(
        self,
        operation: str,
        method: str,
        path: str,
        params: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        started = time.perf_counter()
        outcome = "error"
        with tracer.start_as_current_span(f"directory.{operation}") as span:
            span.set_attribute("http.method", method)
            span.set_attribute("http.route", path)
            try:
                factory = self._client_factory or (lambda: httpx.AsyncClient(timeout=self._timeout_seconds))
                async with factory() as client:
                    response = await client.request(method, f"{self._base_url}{path}", params=params)
                    response.raise_for_status()
                payload = response.json()
                outcome = "success"
            except httpx.TimeoutException as exc:
                logger.warning("directory_request_timeout", extra={"component": "navigator", "operation": operation})
                raise FetchError("UPSTREAM_TIMEOUT", "Upstream timeout", 504) from exc
            except httpx.HTTPStatusError as exc:
                logger.warning(
                    "directory_request_http_error",
                    extra={
                        "component": "navigator",
                        "operation": operation,
                        "status_code": exc.response.status_code,
                    },
                )
                raise FetchError("UPSTREAM_HTTP_ERROR", "Upstream returned error", exc.response.status_code) from exc
            except httpx.HTTPError as exc:
                logger.warning("directory_request_failed", extra={"component": "navigator", "operation": operation})
                raise FetchError("UPSTREAM_FAILURE", "Upstream request failed", 502) from exc
            except ValueError as exc:
                raise FetchError("UPSTREAM_BAD_PAYLOAD", "Upstream returned invalid JSON") from exc
            finally:
                self._observe(operation, outcome, started)

        if not isinstance(payload, dict):
            raise FetchError("UPSTREAM_BAD_PAYLOAD", "Upstream returned unexpected payload shape")
        return payload

    def _parse_items(self, payload: dict[str, Any], field: str, model: type[ModelT]) -> list[ModelT]:
        rows = payload.get(field) or []
        try:
            return [model.model_validate(row) for row in rows]
        except PydanticValidationError as exc:
            raise FetchError("UPSTREAM_BAD_PAYLOAD", f"Upstream returned malformed {field}") from exc

    def _observe(self, operation: str, outcome: str, started: float) -> None:
        if self._metrics is None:
            return
        duration_ms = (time.perf_counter() - started) * 1000
        self._metrics.observe(FetchMetric(operation=operation, outcome=outcome, duration_ms=duration_ms))

    @staticmethod
    def _list_params(**filters: str) -> dict[str, Any]:
        return {**filters, "page": 1, "page_size": LIST_PAGE_SIZE}
