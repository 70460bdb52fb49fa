from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

CONFIRMED_NONE_MARKER = "无"

HOSPITAL_LEVELS: tuple[str, ...] = ("三甲", "三乙", "二甲", "二乙", "未定级", "无")


class ProcurementStatus(str, Enum):
    VERIFIED = "verified"
    UNCONFIRMED = "unconfirmed"
    NONE = "none"
    UNSET = ""


class WebsiteStatus(str, Enum):
    AVAILABLE = "available"
    NONE = "none"
    CONFIRMED_NONE = "confirmed_none"


class ProcurementLinkStatus(str, Enum):
    VERIFIED = "verified"
    UNVERIFIED = "unverified"
    CONFIRMED_NONE = "confirmed_none"


class Province(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    name: str
    code: str = ""


class City(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    name: str
    province_id: int | None = None


class District(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    name: str
    city_id: int | None = None


class Facility(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    name: str
    level: str = ""
    address: str = ""
    phone: str = ""
    website: str | None = None
    base_procurement_link: str | None = None
    beds_count: int | None = None
    departments: tuple[str, ...] = ()
    district_id: int | None = None

    @field_validator("departments", mode="before")
    @classmethod
    def _normalize_departments(cls, value: Any) -> tuple[str, ...]:
        if value is None:
            return ()
        if isinstance(value, str):
            return tuple(part.strip() for part in value.split(",") if part.strip())
        return tuple(str(item) for item in value)

    @property
    def website_status(self) -> WebsiteStatus:
        if self.website == CONFIRMED_NONE_MARKER:
            return WebsiteStatus.CONFIRMED_NONE
        if not self.website or not self.website.strip():
            return WebsiteStatus.NONE
        return WebsiteStatus.AVAILABLE

    @property
    def procurement_status(self) -> ProcurementLinkStatus:
        link = self.base_procurement_link
        if link == CONFIRMED_NONE_MARKER:
            return ProcurementLinkStatus.CONFIRMED_NONE
        if not link or not link.strip():
            return ProcurementLinkStatus.UNVERIFIED
        return ProcurementLinkStatus.VERIFIED

    def matches_text(self, needle: str) -> bool:
        q = needle.lower()
        return q in self.name.lower() or q in self.address.lower()


class SearchFilters(BaseModel):
    model_config = ConfigDict(frozen=True)

    levels: frozenset[str] = Field(default_factory=frozenset)
    procurement_status: ProcurementStatus = ProcurementStatus.UNSET

    @property
    def active_count(self) -> int:
        count = 0
        if self.levels:
            count += 1
        if self.procurement_status is not ProcurementStatus.UNSET:
            count += 1
        return count

    def is_empty(self) -> bool:
        return self.active_count == 0


class SearchQuery(BaseModel):
    model_config = ConfigDict(frozen=True)

    text: str = ""
    filters: SearchFilters = Field(default_factory=SearchFilters)

    @field_validator("text", mode="before")
    @classmethod
    def _strip_text(cls, value: object) -> str:
        return str(value or "").strip()

    def is_unscoped(self) -> bool:
        return not self.text and self.filters.is_empty()


class SearchResultSet(BaseModel):
    model_config = ConfigDict(frozen=True)

    query: SearchQuery
    facilities: tuple[Facility, ...] = ()

    @property
    def count(self) -> int:
        return len(self.facilities)

    def find(self, facility_id: int) -> Facility | None:
        for facility in self.facilities:
            if facility.id == facility_id:
                return facility
        return None


class DisplaySettings(BaseModel):
    page_size: int = Field(default=20, ge=1, le=100)


class DeleteResult(BaseModel):
    success: bool
    message: str = ""
