"""JSON shapes exchanged with API clients (camelCase on the wire)."""

from __future__ import annotations

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class ApiModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class LocationStatusReportApiModel(ApiModel):
    report_id: Optional[int] = None
    agent_id: int
    location_id: int
    status: int
    report_time: Optional[datetime] = None
    report_title: str = Field(default="", max_length=256)
    report_body: str = ""


class RegionSummaryReportApiModel(ApiModel):
    report_id: Optional[int] = None
    region_id: int
    user_id: Optional[int] = None
    status: int
    report_time: Optional[datetime] = None
    report_title: str = Field(default="", max_length=256)
    report_body: str = ""


class AgentApiModel(ApiModel):
    agent_id: Optional[int] = None
    first_name: str = Field(..., min_length=1, max_length=128)
    last_name: str = Field(..., min_length=1, max_length=128)
    date_of_birth: date
    rank: int = 0
    call_sign: str = Field(..., min_length=1, max_length=64)


class RegionApiModel(ApiModel):
    region_id: Optional[int] = None
    name: str = Field(..., min_length=1, max_length=128)


class LocationApiModel(ApiModel):
    location_id: Optional[int] = None
    site_name: str = Field(..., min_length=1, max_length=128)
    location: str = Field(default="", max_length=256)
    time_zone: str
    region_id: Optional[int] = None
    latitude: Optional[float] = Field(default=None, ge=-90, le=90)
    longitude: Optional[float] = Field(default=None, ge=-180, le=180)


class UserApiModel(ApiModel):
    user_id: Optional[int] = None
    username: str = Field(..., min_length=3, max_length=64)
    password: Optional[str] = Field(default=None, min_length=8, max_length=128)
    agent_id: Optional[int] = None
    admin: bool = False
    user: bool = True


class UserOut(ApiModel):
    user_id: int
    username: str
    agent_id: Optional[int] = None
    admin: bool
    user: bool


__all__ = [
    "ApiModel",
    "LocationStatusReportApiModel",
    "RegionSummaryReportApiModel",
    "AgentApiModel",
    "RegionApiModel",
    "LocationApiModel",
    "UserApiModel",
    "UserOut",
]
