from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Generic, List, Mapping, Optional, TypeVar

from pydantic import BaseModel

from agentdiscoveries.errors import ErrorCode, FailedRequestException
from agentdiscoveries.permissions import PermissionsVerifier
from agentdiscoveries.search_criteria import ReportSearchCriterion
from agentdiscoveries.timestamps import parse_zoned

log = logging.getLogger("uvicorn.error")

MIN_STATUS = 0
MAX_STATUS = 100

ApiT = TypeVar("ApiT", bound=BaseModel)
ModelT = TypeVar("ModelT", bound=BaseModel)


def validate_status(status: int) -> None:
    if status < MIN_STATUS or status > MAX_STATUS:
        raise FailedRequestException(
            ErrorCode.INVALID_INPUT,
            f"{status} is invalid - must be between {MIN_STATUS} and {MAX_STATUS}",
        )


class ReportsRoutesBase(ABC, Generic[ApiT, ModelT]):
    """Create/read/update/delete/search over one report type.

    ``reports_dao`` must offer ``create_report``, ``get_report``,
    ``update_report``, ``delete_report`` and ``search_reports``; the report
    store modules satisfy this. Subclasses supply the mapping between the
    API model and the persisted model and the query-string parsing.
    """

    def __init__(self, reports_dao: Any, permissions_verifier: PermissionsVerifier) -> None:
        self.reports_dao = reports_dao
        self.permissions_verifier = permissions_verifier

    # -- hooks ---------------------------------------------------------------

    @abstractmethod
    def validate_then_map(self, api_model: ApiT) -> ModelT:
        ...

    @abstractmethod
    def map_to_api_model(self, model: ModelT) -> ApiT:
        ...

    @abstractmethod
    def parse_search_criteria(self, query_params: Mapping[str, str]) -> List[ReportSearchCriterion]:
        ...

    @abstractmethod
    def verify_can_submit(self, user_id: int, api_model: ApiT) -> None:
        ...

    @abstractmethod
    def verify_can_modify(self, user_id: int, model: ModelT) -> None:
        ...

    def assign_owner(self, model: ModelT, user_id: int) -> ModelT:
        return model

    def carry_over(self, model: ModelT, existing: ModelT) -> ModelT:
        """Fields an update never changes: the id and the original report time."""
        return model.model_copy(update={"report_id": existing.report_id, "report_time": existing.report_time})

    # -- operations ----------------------------------------------------------

    def create_report(self, user_id: int, api_model: ApiT) -> ApiT:
        if getattr(api_model, "report_id", None) is not None:
            raise FailedRequestException(ErrorCode.INVALID_INPUT, "reportId cannot be specified on create")
        self.verify_can_submit(user_id, api_model)
        model = self.assign_owner(self.validate_then_map(api_model), user_id)
        report_id = self.reports_dao.create_report(model)
        stored = self.reports_dao.get_report(report_id)
        if stored is None:
            raise FailedRequestException(ErrorCode.UNKNOWN_ERROR, "Report could not be read back after saving")
        return self.map_to_api_model(stored)

    def read_report(self, user_id: int, report_id: int) -> ApiT:
        self.permissions_verifier.get_user(user_id)
        return self.map_to_api_model(self._get_existing(report_id))

    def update_report(self, user_id: int, report_id: int, api_model: ApiT) -> ApiT:
        existing = self._get_existing(report_id)
        self.verify_can_modify(user_id, existing)
        supplied_id = getattr(api_model, "report_id", None)
        if supplied_id is not None and supplied_id != report_id:
            raise FailedRequestException(ErrorCode.INVALID_INPUT, "reportId in body does not match the URL")
        self.verify_can_submit(user_id, api_model)
        model = self.carry_over(self.validate_then_map(api_model), existing)
        if not self.reports_dao.update_report(model):
            raise FailedRequestException(ErrorCode.NOT_FOUND, f"Report {report_id} not found")
        return self.map_to_api_model(self._get_existing(report_id))

    def delete_report(self, user_id: int, report_id: int) -> None:
        self.permissions_verifier.verify_admin_permission(user_id)
        if not self.reports_dao.delete_report(report_id):
            raise FailedRequestException(ErrorCode.NOT_FOUND, f"Report {report_id} not found")
        log.info("User %s deleted report %s", user_id, report_id)

    def search_reports(self, user_id: int, query_params: Mapping[str, str]) -> List[ApiT]:
        self.permissions_verifier.get_user(user_id)
        criteria = self.parse_search_criteria(query_params)
        return [self.map_to_api_model(model) for model in self.reports_dao.search_reports(criteria)]

    # -- helpers -------------------------------------------------------------

    def _get_existing(self, report_id: int) -> ModelT:
        model = self.reports_dao.get_report(report_id)
        if model is None:
            raise FailedRequestException(ErrorCode.NOT_FOUND, f"Report {report_id} not found")
        return model

    @staticmethod
    def query_value(query_params: Mapping[str, str], name: str) -> Optional[str]:
        value = query_params.get(name)
        if value is None:
            return None
        value = str(value)
        return value if value.strip() else None

    @classmethod
    def query_int(cls, query_params: Mapping[str, str], name: str) -> Optional[int]:
        value = cls.query_value(query_params, name)
        if value is None:
            return None
        try:
            return int(value.strip())
        except ValueError:
            raise FailedRequestException(ErrorCode.INVALID_INPUT, f"{name} must be an integer, got '{value}'")

    @classmethod
    def query_time(cls, query_params: Mapping[str, str], name: str) -> Optional[datetime]:
        value = cls.query_value(query_params, name)
        if value is None:
            return None
        try:
            return parse_zoned(value)
        except ValueError:
            raise FailedRequestException(
                ErrorCode.INVALID_INPUT,
                f"{name} must be an ISO-8601 timestamp with an offset, got '{value}'",
            )


__all__ = ["ReportsRoutesBase", "validate_status", "MIN_STATUS", "MAX_STATUS"]
