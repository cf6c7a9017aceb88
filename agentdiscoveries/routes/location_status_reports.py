from __future__ import annotations

from typing import Any, List, Mapping

from agentdiscoveries.api_models import LocationStatusReportApiModel
from agentdiscoveries.errors import ErrorCode, FailedRequestException
from agentdiscoveries.models import LocationStatusReport
from agentdiscoveries.permissions import PermissionsVerifier
from agentdiscoveries.routes.reports_base import ReportsRoutesBase, validate_status
from agentdiscoveries.search_criteria import (
    AgentCallSignSearchCriterion,
    FromTimeSearchCriterion,
    LocationIdSearchCriterion,
    ReportSearchCriterion,
    ReportTitleSearchCriterion,
    ToTimeSearchCriterion,
)
from agentdiscoveries.timestamps import load_zone, utc_now


class LocationStatusReportsRoutes(ReportsRoutesBase[LocationStatusReportApiModel, LocationStatusReport]):
    """Agent status reports filed against a location.

    Times are stored in UTC and rendered in the location's own time zone.
    """

    def __init__(
        self,
        location_reports_dao: Any,
        locations_dao: Any,
        agents_dao: Any,
        permissions_verifier: PermissionsVerifier,
    ) -> None:
        super().__init__(location_reports_dao, permissions_verifier)
        self.locations_dao = locations_dao
        self.agents_dao = agents_dao

    def verify_can_submit(self, user_id: int, api_model: LocationStatusReportApiModel) -> None:
        self.permissions_verifier.verify_is_admin_or_relevant_agent(user_id, api_model.agent_id)

    def verify_can_modify(self, user_id: int, model: LocationStatusReport) -> None:
        self.permissions_verifier.verify_is_admin_or_relevant_agent(user_id, model.agent_id)

    def validate_then_map(self, api_model: LocationStatusReportApiModel) -> LocationStatusReport:
        validate_status(api_model.status)
        if self.agents_dao.get_agent(api_model.agent_id) is None:
            raise FailedRequestException(ErrorCode.INVALID_INPUT, f"Agent {api_model.agent_id} does not exist")
        if self.locations_dao.get_location(api_model.location_id) is None:
            raise FailedRequestException(ErrorCode.INVALID_INPUT, f"Location {api_model.location_id} does not exist")

        # Client supplied reportTime is ignored
        return LocationStatusReport(
            agent_id=api_model.agent_id,
            location_id=api_model.location_id,
            status=api_model.status,
            report_time=utc_now(),
            report_title=api_model.report_title,
            report_body=api_model.report_body,
        )

    def map_to_api_model(self, model: LocationStatusReport) -> LocationStatusReportApiModel:
        location = self.locations_dao.get_location(model.location_id)
        if location is None:
            raise FailedRequestException(ErrorCode.UNKNOWN_ERROR, "Could not successfully get location info")
        return self._map_with_time_zone(model, location.time_zone)

    def _map_with_time_zone(self, model: LocationStatusReport, time_zone: str) -> LocationStatusReportApiModel:
        validate_status(model.status)
        try:
            zone = load_zone(time_zone)
        except ValueError:
            raise FailedRequestException(
                ErrorCode.UNKNOWN_ERROR,
                f"Location {model.location_id} has an unusable time zone '{time_zone}'",
            )
        return LocationStatusReportApiModel(
            report_id=model.report_id,
            agent_id=model.agent_id,
            location_id=model.location_id,
            status=model.status,
            report_time=model.report_time.astimezone(zone),
            report_title=model.report_title,
            report_body=model.report_body,
        )

    def parse_search_criteria(self, query_params: Mapping[str, str]) -> List[ReportSearchCriterion]:
        criteria: List[ReportSearchCriterion] = []

        title = self.query_value(query_params, "title")
        if title is not None:
            criteria.append(ReportTitleSearchCriterion(title))

        call_sign = self.query_value(query_params, "callSign")
        if call_sign is not None:
            criteria.append(AgentCallSignSearchCriterion(call_sign))

        location_id = self.query_int(query_params, "locationId")
        if location_id is not None:
            criteria.append(LocationIdSearchCriterion(location_id))

        from_time = self.query_time(query_params, "fromTime")
        if from_time is not None:
            criteria.append(FromTimeSearchCriterion(from_time))

        to_time = self.query_time(query_params, "toTime")
        if to_time is not None:
            criteria.append(ToTimeSearchCriterion(to_time))

        return criteria


__all__ = ["LocationStatusReportsRoutes"]
