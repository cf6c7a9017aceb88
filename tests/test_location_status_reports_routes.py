from datetime import date, datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest

from agentdiscoveries.api_models import LocationStatusReportApiModel
from agentdiscoveries.errors import ErrorCode, FailedRequestException
from agentdiscoveries.models import Agent, Location, LocationStatusReport
from agentdiscoveries.permissions import PermissionsVerifier
from agentdiscoveries.routes import location_status_reports
from agentdiscoveries.routes.location_status_reports import LocationStatusReportsRoutes
from agentdiscoveries.search_criteria import (
    AgentCallSignSearchCriterion,
    FromTimeSearchCriterion,
    LocationIdSearchCriterion,
    ReportTitleSearchCriterion,
    ToTimeSearchCriterion,
)

SERVER_TIME = datetime(2024, 1, 15, 17, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def reports_dao():
    return MagicMock()


@pytest.fixture
def locations_dao():
    dao = MagicMock()
    dao.get_location.return_value = Location(
        location_id=3, site_name="Grand Central", time_zone="America/New_York"
    )
    return dao


@pytest.fixture
def agents_dao():
    dao = MagicMock()
    dao.get_agent.return_value = Agent(
        agent_id=1, first_name="James", last_name="Bond", date_of_birth=date(1968, 4, 13), call_sign="007"
    )
    return dao


@pytest.fixture
def verifier():
    return MagicMock(spec=PermissionsVerifier)


@pytest.fixture
def routes(reports_dao, locations_dao, agents_dao, verifier):
    return LocationStatusReportsRoutes(reports_dao, locations_dao, agents_dao, verifier)


@pytest.fixture
def fixed_clock(monkeypatch):
    monkeypatch.setattr(location_status_reports, "utc_now", lambda: SERVER_TIME)


def make_api_model(**overrides):
    fields = {"agent_id": 1, "location_id": 3, "status": 55, "report_title": "All quiet", "report_body": "Nothing"}
    fields.update(overrides)
    return LocationStatusReportApiModel(**fields)


def make_report(**overrides):
    fields = {
        "report_id": 9,
        "agent_id": 1,
        "location_id": 3,
        "status": 55,
        "report_time": SERVER_TIME,
        "report_title": "All quiet",
        "report_body": "Nothing",
    }
    fields.update(overrides)
    return LocationStatusReport(**fields)


# --- validate_then_map ---


def test_validate_then_map_rejects_status_above_range(routes):
    with pytest.raises(FailedRequestException) as excinfo:
        routes.validate_then_map(make_api_model(status=150))
    assert excinfo.value.error_code is ErrorCode.INVALID_INPUT
    assert "150" in excinfo.value.message


def test_validate_then_map_rejects_negative_status(routes):
    with pytest.raises(FailedRequestException) as excinfo:
        routes.validate_then_map(make_api_model(status=-1))
    assert excinfo.value.error_code is ErrorCode.INVALID_INPUT


@pytest.mark.parametrize("status", [0, 55, 100])
def test_validate_then_map_accepts_boundaries(routes, fixed_clock, status):
    model = routes.validate_then_map(make_api_model(status=status))
    assert model.status == status


def test_validate_then_map_uses_server_time(routes, fixed_clock):
    client_time = datetime(1999, 12, 31, 23, 59, tzinfo=timezone.utc)
    model = routes.validate_then_map(make_api_model(report_time=client_time))
    assert model.report_time == SERVER_TIME
    assert model.agent_id == 1
    assert model.location_id == 3
    assert model.report_title == "All quiet"


def test_validate_then_map_rejects_unknown_location(routes, locations_dao):
    locations_dao.get_location.return_value = None
    with pytest.raises(FailedRequestException) as excinfo:
        routes.validate_then_map(make_api_model(location_id=9999))
    assert excinfo.value.error_code is ErrorCode.INVALID_INPUT
    assert "9999" in excinfo.value.message


def test_validate_then_map_rejects_unknown_agent(routes, agents_dao):
    agents_dao.get_agent.return_value = None
    with pytest.raises(FailedRequestException) as excinfo:
        routes.validate_then_map(make_api_model(agent_id=42))
    assert excinfo.value.error_code is ErrorCode.INVALID_INPUT


def test_create_report_for_unknown_location_stores_nothing(routes, reports_dao, locations_dao):
    locations_dao.get_location.return_value = None
    with pytest.raises(FailedRequestException):
        routes.create_report(4, make_api_model(location_id=9999))
    reports_dao.create_report.assert_not_called()


# --- map_to_api_model ---


def test_map_to_api_model_converts_to_location_time_zone(routes):
    api_model = routes.map_to_api_model(make_report())
    assert api_model.report_time.utcoffset() == timedelta(hours=-5)
    assert api_model.report_time.hour == 12
    assert api_model.report_time == SERVER_TIME
    assert api_model.report_id == 9


def test_map_to_api_model_follows_daylight_saving(routes):
    summer_noon = datetime(2024, 7, 15, 12, 0, tzinfo=timezone.utc)
    api_model = routes.map_to_api_model(make_report(report_time=summer_noon))
    assert api_model.report_time.utcoffset() == timedelta(hours=-4)
    assert api_model.report_time.hour == 8


def test_map_to_api_model_winter_noon(routes):
    winter_noon = datetime(2024, 1, 15, 12, 0, tzinfo=timezone.utc)
    api_model = routes.map_to_api_model(make_report(report_time=winter_noon))
    assert api_model.report_time.utcoffset() == timedelta(hours=-5)
    assert api_model.report_time.hour == 7


def test_map_to_api_model_without_location_is_unknown_error(routes, locations_dao):
    locations_dao.get_location.return_value = None
    with pytest.raises(FailedRequestException) as excinfo:
        routes.map_to_api_model(make_report())
    assert excinfo.value.error_code is ErrorCode.UNKNOWN_ERROR
    assert excinfo.value.message == "Could not successfully get location info"


def test_map_to_api_model_rejects_stored_status_out_of_range(routes):
    with pytest.raises(FailedRequestException) as excinfo:
        routes.map_to_api_model(make_report(status=150))
    assert excinfo.value.error_code is ErrorCode.INVALID_INPUT


def test_map_to_api_model_with_bad_zone_is_unknown_error(routes, locations_dao):
    locations_dao.get_location.return_value = Location(location_id=3, site_name="Nowhere", time_zone="Mars/Olympus")
    with pytest.raises(FailedRequestException) as excinfo:
        routes.map_to_api_model(make_report())
    assert excinfo.value.error_code is ErrorCode.UNKNOWN_ERROR


# --- parse_search_criteria ---


def test_parse_search_criteria_builds_all_filters(routes):
    criteria = routes.parse_search_criteria(
        {
            "title": "quiet",
            "callSign": "007",
            "locationId": "3",
            "fromTime": "2024-01-01T00:00:00Z",
            "toTime": "2024-02-01T00:00:00+01:00",
        }
    )
    assert len(criteria) == 5
    assert ReportTitleSearchCriterion("quiet") in criteria
    assert AgentCallSignSearchCriterion("007") in criteria
    assert LocationIdSearchCriterion(3) in criteria
    assert FromTimeSearchCriterion(datetime(2024, 1, 1, tzinfo=timezone.utc)) in criteria
    assert any(isinstance(criterion, ToTimeSearchCriterion) for criterion in criteria)


def test_parse_search_criteria_without_params_is_empty(routes):
    assert routes.parse_search_criteria({}) == []


def test_parse_search_criteria_ignores_blank_values(routes):
    assert routes.parse_search_criteria({"title": "  ", "callSign": ""}) == []


def test_parse_search_criteria_rejects_non_numeric_location(routes):
    with pytest.raises(FailedRequestException) as excinfo:
        routes.parse_search_criteria({"locationId": "abc"})
    assert excinfo.value.error_code is ErrorCode.INVALID_INPUT


def test_parse_search_criteria_rejects_time_without_offset(routes):
    with pytest.raises(FailedRequestException) as excinfo:
        routes.parse_search_criteria({"fromTime": "2024-01-01T00:00:00"})
    assert excinfo.value.error_code is ErrorCode.INVALID_INPUT


# --- operations ---


def test_create_report_stores_and_reads_back(routes, reports_dao, verifier, fixed_clock):
    reports_dao.create_report.return_value = 9
    reports_dao.get_report.return_value = make_report()

    created = routes.create_report(4, make_api_model())

    verifier.verify_is_admin_or_relevant_agent.assert_called_once_with(4, 1)
    stored_model = reports_dao.create_report.call_args[0][0]
    assert stored_model.report_time == SERVER_TIME
    reports_dao.get_report.assert_called_once_with(9)
    assert created.report_id == 9


def test_create_report_rejects_client_report_id(routes, reports_dao):
    with pytest.raises(FailedRequestException) as excinfo:
        routes.create_report(4, make_api_model(report_id=12))
    assert excinfo.value.error_code is ErrorCode.INVALID_INPUT
    reports_dao.create_report.assert_not_called()


def test_create_report_rejects_zero_report_id(routes, reports_dao):
    with pytest.raises(FailedRequestException) as excinfo:
        routes.create_report(4, make_api_model(report_id=0))
    assert excinfo.value.error_code is ErrorCode.INVALID_INPUT
    reports_dao.create_report.assert_not_called()


def test_create_report_is_refused_for_other_agent(routes, reports_dao, verifier):
    verifier.verify_is_admin_or_relevant_agent.side_effect = FailedRequestException(
        ErrorCode.NOT_AUTHORISED, "nope"
    )
    with pytest.raises(FailedRequestException) as excinfo:
        routes.create_report(4, make_api_model())
    assert excinfo.value.error_code is ErrorCode.NOT_AUTHORISED
    reports_dao.create_report.assert_not_called()


def test_create_report_not_readable_is_unknown_error(routes, reports_dao, fixed_clock):
    reports_dao.create_report.return_value = 9
    reports_dao.get_report.return_value = None
    with pytest.raises(FailedRequestException) as excinfo:
        routes.create_report(4, make_api_model())
    assert excinfo.value.error_code is ErrorCode.UNKNOWN_ERROR


def test_update_report_keeps_id_and_original_time(routes, reports_dao, monkeypatch):
    original_time = datetime(2023, 6, 1, 8, 30, tzinfo=timezone.utc)
    reports_dao.get_report.return_value = make_report(report_time=original_time)
    reports_dao.update_report.return_value = True
    monkeypatch.setattr(location_status_reports, "utc_now", lambda: SERVER_TIME)

    routes.update_report(4, 9, make_api_model(status=80, report_title="Changed"))

    updated = reports_dao.update_report.call_args[0][0]
    assert updated.report_id == 9
    assert updated.report_time == original_time
    assert updated.status == 80
    assert updated.report_title == "Changed"


def test_update_report_missing_is_not_found(routes, reports_dao):
    reports_dao.get_report.return_value = None
    with pytest.raises(FailedRequestException) as excinfo:
        routes.update_report(4, 9, make_api_model())
    assert excinfo.value.error_code is ErrorCode.NOT_FOUND


def test_update_report_rejects_mismatched_id(routes, reports_dao):
    reports_dao.get_report.return_value = make_report()
    with pytest.raises(FailedRequestException) as excinfo:
        routes.update_report(4, 9, make_api_model(report_id=10))
    assert excinfo.value.error_code is ErrorCode.INVALID_INPUT
    reports_dao.update_report.assert_not_called()


def test_update_report_rejects_zero_report_id(routes, reports_dao):
    reports_dao.get_report.return_value = make_report()
    with pytest.raises(FailedRequestException) as excinfo:
        routes.update_report(4, 9, make_api_model(report_id=0))
    assert excinfo.value.error_code is ErrorCode.INVALID_INPUT
    reports_dao.update_report.assert_not_called()


def test_delete_report_requires_admin(routes, reports_dao, verifier):
    verifier.verify_admin_permission.side_effect = FailedRequestException(ErrorCode.NOT_AUTHORISED, "admins only")
    with pytest.raises(FailedRequestException) as excinfo:
        routes.delete_report(4, 9)
    assert excinfo.value.error_code is ErrorCode.NOT_AUTHORISED
    reports_dao.delete_report.assert_not_called()


def test_delete_report_missing_is_not_found(routes, reports_dao):
    reports_dao.delete_report.return_value = False
    with pytest.raises(FailedRequestException) as excinfo:
        routes.delete_report(1, 9)
    assert excinfo.value.error_code is ErrorCode.NOT_FOUND


def test_search_reports_passes_criteria_to_store(routes, reports_dao):
    reports_dao.search_reports.return_value = [make_report(), make_report(report_id=10)]

    results = routes.search_reports(4, {"callSign": "007"})

    reports_dao.search_reports.assert_called_once_with([AgentCallSignSearchCriterion("007")])
    assert [result.report_id for result in results] == [9, 10]
