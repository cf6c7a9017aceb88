"""Report route handlers, one class per report type."""

from agentdiscoveries.routes.location_status_reports import LocationStatusReportsRoutes
from agentdiscoveries.routes.region_summary_reports import RegionSummaryReportsRoutes
from agentdiscoveries.routes.reports_base import ReportsRoutesBase

__all__ = ["ReportsRoutesBase", "LocationStatusReportsRoutes", "RegionSummaryReportsRoutes"]
