"""Persistence-side records, one per table, as returned by the stores."""

from __future__ import annotations

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel


class User(BaseModel):
    user_id: int = 0
    username: str
    salt: str = ""
    password_hash: str = ""
    agent_id: Optional[int] = None
    is_admin: bool = False
    is_user: bool = True


class Agent(BaseModel):
    agent_id: int = 0
    first_name: str
    last_name: str
    date_of_birth: date
    rank: int = 0
    call_sign: str


class Region(BaseModel):
    region_id: int = 0
    name: str


class Location(BaseModel):
    location_id: int = 0
    site_name: str
    location: str = ""
    time_zone: str
    region_id: Optional[int] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None


class LocationStatusReport(BaseModel):
    report_id: int = 0
    agent_id: int
    location_id: int
    status: int
    report_time: datetime
    report_title: str = ""
    report_body: str = ""


class RegionSummaryReport(BaseModel):
    report_id: int = 0
    region_id: int
    user_id: int = 0
    status: int
    report_time: datetime
    report_title: str = ""
    report_body: str = ""


__all__ = [
    "User",
    "Agent",
    "Region",
    "Location",
    "LocationStatusReport",
    "RegionSummaryReport",
]
