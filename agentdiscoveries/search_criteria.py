"""Report search predicates.

Each criterion contributes one SQL condition plus its bound parameters,
written against the columns shared by both report tables (``report_title``,
``report_time``) or the ones specific to a report type. A list of criteria
is combined with AND by :func:`build_where_clause`.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, List, Sequence, Tuple

from agentdiscoveries.timestamps import to_storage


class ReportSearchCriterion:
    clause: str = ""

    def params(self) -> List[Any]:
        return []

    def __eq__(self, other: object) -> bool:
        return type(self) is type(other) and vars(self) == vars(other)

    def __hash__(self) -> int:
        return hash((type(self), tuple(sorted(vars(self).items()))))

    def __repr__(self) -> str:
        fields = ", ".join(f"{key}={value!r}" for key, value in vars(self).items())
        return f"{type(self).__name__}({fields})"


def escape_like(value: str) -> str:
    """Make LIKE wildcards in ``value`` match literally (escape char ``\\``)."""
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class ReportTitleSearchCriterion(ReportSearchCriterion):
    clause = "LOWER(report_title) LIKE ? ESCAPE '\\'"

    def __init__(self, title: str) -> None:
        self.title = title

    def params(self) -> List[Any]:
        return [f"%{escape_like(self.title.lower())}%"]


class AgentCallSignSearchCriterion(ReportSearchCriterion):
    clause = "agent_id IN (SELECT id FROM agents WHERE call_sign = ?)"

    def __init__(self, call_sign: str) -> None:
        self.call_sign = call_sign

    def params(self) -> List[Any]:
        return [self.call_sign]


class LocationIdSearchCriterion(ReportSearchCriterion):
    clause = "location_id = ?"

    def __init__(self, location_id: int) -> None:
        self.location_id = location_id

    def params(self) -> List[Any]:
        return [self.location_id]


class RegionIdSearchCriterion(ReportSearchCriterion):
    clause = "region_id = ?"

    def __init__(self, region_id: int) -> None:
        self.region_id = region_id

    def params(self) -> List[Any]:
        return [self.region_id]


class UserIdSearchCriterion(ReportSearchCriterion):
    clause = "user_id = ?"

    def __init__(self, user_id: int) -> None:
        self.user_id = user_id

    def params(self) -> List[Any]:
        return [self.user_id]


class FromTimeSearchCriterion(ReportSearchCriterion):
    clause = "report_time >= ?"

    def __init__(self, from_time: datetime) -> None:
        self.from_time = from_time

    def params(self) -> List[Any]:
        return [to_storage(self.from_time)]


class ToTimeSearchCriterion(ReportSearchCriterion):
    clause = "report_time <= ?"

    def __init__(self, to_time: datetime) -> None:
        self.to_time = to_time

    def params(self) -> List[Any]:
        return [to_storage(self.to_time)]


def build_where_clause(criteria: Sequence[ReportSearchCriterion]) -> Tuple[str, List[Any]]:
    if not criteria:
        return "", []
    params: List[Any] = []
    for criterion in criteria:
        params.extend(criterion.params())
    return " WHERE " + " AND ".join(criterion.clause for criterion in criteria), params


__all__ = [
    "ReportSearchCriterion",
    "ReportTitleSearchCriterion",
    "AgentCallSignSearchCriterion",
    "LocationIdSearchCriterion",
    "RegionIdSearchCriterion",
    "UserIdSearchCriterion",
    "FromTimeSearchCriterion",
    "ToTimeSearchCriterion",
    "build_where_clause",
    "escape_like",
]
