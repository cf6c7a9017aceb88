from __future__ import annotations

from datetime import timezone
from typing import Any, List, Mapping

from agentdiscoveries.api_models import RegionSummaryReportApiModel
from agentdiscoveries.errors import ErrorCode, FailedRequestException
from agentdiscoveries.models import RegionSummaryReport
from agentdiscoveries.permissions import PermissionsVerifier
from agentdiscoveries.routes.reports_base import ReportsRoutesBase, validate_status
from agentdiscoveries.search_criteria import (
    FromTimeSearchCriterion,
    RegionIdSearchCriterion,
    ReportSearchCriterion,
    ReportTitleSearchCriterion,
    ToTimeSearchCriterion,
    UserIdSearchCriterion,
)
from agentdiscoveries.timestamps import utc_now


class RegionSummaryReportsRoutes(ReportsRoutesBase[RegionSummaryReportApiModel, RegionSummaryReport]):
    def __init__(
        self,
        region_reports_dao: Any,
        regions_dao: Any,
        permissions_verifier: PermissionsVerifier,
    ) -> None:
        super().__init__(region_reports_dao, permissions_verifier)
        self.regions_dao = regions_dao

    def verify_can_submit(self, user_id: int, api_model: RegionSummaryReportApiModel) -> None:
        self.permissions_verifier.get_user(user_id)

    def verify_can_modify(self, user_id: int, model: RegionSummaryReport) -> None:
        self.permissions_verifier.verify_is_admin_or_relevant_user(user_id, model.user_id)

    def assign_owner(self, model: RegionSummaryReport, user_id: int) -> RegionSummaryReport:
        return model.model_copy(update={"user_id": user_id})

    def carry_over(self, model: RegionSummaryReport, existing: RegionSummaryReport) -> RegionSummaryReport:
        carried = super().carry_over(model, existing)
        return carried.model_copy(update={"user_id": existing.user_id})

    def validate_then_map(self, api_model: RegionSummaryReportApiModel) -> RegionSummaryReport:
        validate_status(api_model.status)
        if self.regions_dao.get_region(api_model.region_id) is None:
            raise FailedRequestException(ErrorCode.INVALID_INPUT, f"Region {api_model.region_id} does not exist")
        return RegionSummaryReport(
            region_id=api_model.region_id,
            status=api_model.status,
            report_time=utc_now(),
            report_title=api_model.report_title,
            report_body=api_model.report_body,
        )

    def map_to_api_model(self, model: RegionSummaryReport) -> RegionSummaryReportApiModel:
        validate_status(model.status)
        return RegionSummaryReportApiModel(
            report_id=model.report_id,
            region_id=model.region_id,
            user_id=model.user_id,
            status=model.status,
            report_time=model.report_time.astimezone(timezone.utc),
            report_title=model.report_title,
            report_body=model.report_body,
        )

    def parse_search_criteria(self, query_params: Mapping[str, str]) -> List[ReportSearchCriterion]:
        criteria: List[ReportSearchCriterion] = []
        title = self.query_value(query_params, "title")
        if title is not None:
            criteria.append(ReportTitleSearchCriterion(title))
        region_id = self.query_int(query_params, "regionId")
        if region_id is not None:
            criteria.append(RegionIdSearchCriterion(region_id))
        user_id = self.query_int(query_params, "userId")
        if user_id is not None:
            criteria.append(UserIdSearchCriterion(user_id))
        from_time = self.query_time(query_params, "fromTime")
        if from_time is not None:
            criteria.append(FromTimeSearchCriterion(from_time))
        to_time = self.query_time(query_params, "toTime")
        if to_time is not None:
            criteria.append(ToTimeSearchCriterion(to_time))
        return criteria


__all__ = ["RegionSummaryReportsRoutes"]
