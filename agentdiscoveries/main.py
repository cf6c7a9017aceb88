# agentdiscoveries/main.py
from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response

from agentdiscoveries import (
    agent_store,
    db,
    location_report_store,
    location_store,
    region_report_store,
    region_store,
    settings,
    user_store,
)
from agentdiscoveries.api_models import (
    AgentApiModel,
    LocationApiModel,
    LocationStatusReportApiModel,
    RegionApiModel,
    RegionSummaryReportApiModel,
    UserApiModel,
    UserOut,
)
from agentdiscoveries.auth_models import LoginRequest, RefreshRequest, TokenResponse
from agentdiscoveries.auth_tokens import (
    TokenError,
    create_access_token,
    create_refresh_token,
    decode_access_token,
    decode_refresh_token,
)
from agentdiscoveries.errors import ErrorCode, FailedRequestException
from agentdiscoveries.models import Agent, Location, Region, User
from agentdiscoveries.permissions import PermissionsVerifier
from agentdiscoveries.routes import LocationStatusReportsRoutes, RegionSummaryReportsRoutes
from agentdiscoveries.timestamps import is_valid_zone

log = logging.getLogger("uvicorn.error")

PREFIX = settings.API_PREFIX

permissions_verifier = PermissionsVerifier(user_store)
location_reports_routes = LocationStatusReportsRoutes(
    location_report_store, location_store, agent_store, permissions_verifier
)
region_reports_routes = RegionSummaryReportsRoutes(region_report_store, region_store, permissions_verifier)


def init_db() -> None:
    for store in (user_store, agent_store, region_store, location_store, location_report_store, region_report_store):
        store.init_db()


def _bootstrap_admin_from_env() -> None:
    username = settings.BOOTSTRAP_ADMIN_USERNAME
    password = settings.BOOTSTRAP_ADMIN_PASSWORD
    if not username or not password:
        return
    try:
        user = user_store.get_user_by_username(username)
        if user:
            user_store.set_password(user.user_id, password)
            if not user.is_admin:
                user_store.update_user(user.user_id, is_admin=True)
            log.warning("Bootstrap admin reset for '%s'. Remove BOOTSTRAP_ADMIN_* env vars after use.", username)
        else:
            user_store.create_user(username=username, password=password, is_admin=True)
            log.warning("Bootstrap admin created for '%s'. Remove BOOTSTRAP_ADMIN_* env vars after use.", username)
    except Exception:
        log.exception("Bootstrap admin routine failed for '%s'.", username)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if db.USE_POSTGRES:
        log.info("Database backend: Postgres")
    else:
        log.warning("Database backend: SQLite at %s (DB_HOST unset).", db.DB_PATH)
    init_db()
    _bootstrap_admin_from_env()
    yield


# ---------------------------------------------------------------------------
# App
# ---------------------------------------------------------------------------
app = FastAPI(title=settings.APP_TITLE, version=settings.APP_VERSION, lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(FailedRequestException)
async def failed_request_handler(request: Request, exc: FailedRequestException) -> JSONResponse:
    if exc.error_code is ErrorCode.UNKNOWN_ERROR:
        log.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.error_code.http_status, content=exc.to_body())


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    log.exception("Unhandled error on %s %s", request.method, request.url.path)
    body = FailedRequestException(ErrorCode.UNKNOWN_ERROR, "Internal server error").to_body()
    return JSONResponse(status_code=500, content=body)


# ---------------------------------------------------------------------------
# Auth helpers
# ---------------------------------------------------------------------------
def _extract_bearer_token(request: Request) -> Optional[str]:
    header = request.headers.get("Authorization")
    if not header:
        return None
    parts = header.split(" ", 1)
    if len(parts) != 2:
        return None
    scheme, value = parts[0].strip(), parts[1].strip()
    if scheme.lower() != "bearer":
        return None
    return value or None


def _require_user(request: Request) -> int:
    bearer = _extract_bearer_token(request)
    if not bearer:
        raise FailedRequestException(ErrorCode.NOT_AUTHENTICATED, "Authentication required")
    try:
        payload = decode_access_token(bearer)
    except TokenError as exc:
        raise FailedRequestException(ErrorCode.NOT_AUTHENTICATED, "Invalid authentication token") from exc
    user_id = payload["uid"]
    if user_store.get_user(user_id) is None:
        raise FailedRequestException(ErrorCode.NOT_AUTHENTICATED, "Authentication required")
    request.state.user_id = user_id
    return user_id


def _build_user_scope(user: User) -> str:
    parts: List[str] = []
    if user.is_user:
        parts.append("user")
    if user.is_admin:
        parts.append("admin")
    return " ".join(parts)


def _issue_tokens(user: User) -> TokenResponse:
    scope = _build_user_scope(user)
    access_token, access_exp = create_access_token(user_id=user.user_id, username=user.username, scope=scope)
    refresh_token, refresh_exp = create_refresh_token(user_id=user.user_id, username=user.username, scope=scope)
    now = int(time.time())
    return TokenResponse(
        access_token=access_token,
        expires_in=max(int(access_exp - now), 0),
        refresh_token=refresh_token,
        refresh_expires_in=max(int(refresh_exp - now), 0),
        user_id=user.user_id,
        is_admin=user.is_admin,
        agent_id=user.agent_id,
        scope=scope,
    )


def _created(response: Response, request: Request, new_id: int) -> None:
    response.headers["Location"] = f"{request.url.path.rstrip('/')}/{new_id}"


# ---------------------------------------------------------------------------
# Mapping helpers
# ---------------------------------------------------------------------------
def _agent_to_api(agent: Agent) -> AgentApiModel:
    return AgentApiModel(**agent.model_dump())


def _location_to_api(location: Location) -> LocationApiModel:
    return LocationApiModel(**location.model_dump())


def _region_to_api(region: Region) -> RegionApiModel:
    return RegionApiModel(**region.model_dump())


def _user_to_out(user: User) -> UserOut:
    return UserOut(
        user_id=user.user_id,
        username=user.username,
        agent_id=user.agent_id,
        admin=user.is_admin,
        user=user.is_user,
    )


def _validate_location(payload: LocationApiModel) -> None:
    if not is_valid_zone(payload.time_zone):
        raise FailedRequestException(ErrorCode.INVALID_INPUT, f"'{payload.time_zone}' is not a valid time zone")
    if payload.region_id is not None and region_store.get_region(payload.region_id) is None:
        raise FailedRequestException(ErrorCode.INVALID_INPUT, f"Region {payload.region_id} does not exist")


def _validate_user_agent_link(agent_id: Optional[int]) -> None:
    if agent_id is not None and agent_store.get_agent(agent_id) is None:
        raise FailedRequestException(ErrorCode.INVALID_INPUT, f"Agent {agent_id} does not exist")


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------
@app.get("/healthz")
def healthz() -> Dict[str, bool]:
    return {"ok": True}


@app.post(f"{PREFIX}/login", response_model=TokenResponse)
def login(request: Request, payload: LoginRequest) -> TokenResponse:
    username = (payload.username or "").strip()
    if not username or not payload.password:
        raise FailedRequestException(ErrorCode.INVALID_INPUT, "Username and password are required")
    user = user_store.verify_credentials(username, payload.password)
    if not user:
        log.info("Login failed for %s", username)
        raise FailedRequestException(ErrorCode.NOT_AUTHENTICATED, "Invalid username or password")
    log.info("Login success for %s via %s", username, getattr(request.client, "host", "-"))
    return _issue_tokens(user)


@app.post(f"{PREFIX}/login/refresh", response_model=TokenResponse)
def login_refresh(payload: RefreshRequest) -> TokenResponse:
    token = (payload.refresh_token or "").strip()
    if not token:
        raise FailedRequestException(ErrorCode.INVALID_INPUT, "Refresh token is required")
    try:
        data = decode_refresh_token(token)
    except TokenError as exc:
        raise FailedRequestException(ErrorCode.NOT_AUTHENTICATED, "Invalid refresh token") from exc
    user = user_store.get_user(data["uid"])
    if not user:
        raise FailedRequestException(ErrorCode.NOT_AUTHENTICATED, "Authentication required")
    return _issue_tokens(user)


# -- location status reports ------------------------------------------------


@app.get(f"{PREFIX}/reports/locationstatus", response_model=List[LocationStatusReportApiModel])
def search_location_reports(request: Request) -> List[LocationStatusReportApiModel]:
    user_id = _require_user(request)
    return location_reports_routes.search_reports(user_id, request.query_params)


@app.post(f"{PREFIX}/reports/locationstatus", response_model=LocationStatusReportApiModel, status_code=201)
def create_location_report(
    request: Request, response: Response, payload: LocationStatusReportApiModel
) -> LocationStatusReportApiModel:
    user_id = _require_user(request)
    created = location_reports_routes.create_report(user_id, payload)
    _created(response, request, created.report_id)
    return created


@app.get(f"{PREFIX}/reports/locationstatus/{{report_id}}", response_model=LocationStatusReportApiModel)
def read_location_report(request: Request, report_id: int) -> LocationStatusReportApiModel:
    user_id = _require_user(request)
    return location_reports_routes.read_report(user_id, report_id)


@app.put(f"{PREFIX}/reports/locationstatus/{{report_id}}", response_model=LocationStatusReportApiModel)
def update_location_report(
    request: Request, report_id: int, payload: LocationStatusReportApiModel
) -> LocationStatusReportApiModel:
    user_id = _require_user(request)
    return location_reports_routes.update_report(user_id, report_id, payload)


@app.delete(f"{PREFIX}/reports/locationstatus/{{report_id}}", status_code=204)
def delete_location_report(request: Request, report_id: int) -> Response:
    user_id = _require_user(request)
    location_reports_routes.delete_report(user_id, report_id)
    return Response(status_code=204)


# -- region summary reports -------------------------------------------------


@app.get(f"{PREFIX}/reports/regionsummaries", response_model=List[RegionSummaryReportApiModel])
def search_region_reports(request: Request) -> List[RegionSummaryReportApiModel]:
    user_id = _require_user(request)
    return region_reports_routes.search_reports(user_id, request.query_params)


@app.post(f"{PREFIX}/reports/regionsummaries", response_model=RegionSummaryReportApiModel, status_code=201)
def create_region_report(
    request: Request, response: Response, payload: RegionSummaryReportApiModel
) -> RegionSummaryReportApiModel:
    user_id = _require_user(request)
    created = region_reports_routes.create_report(user_id, payload)
    _created(response, request, created.report_id)
    return created


@app.get(f"{PREFIX}/reports/regionsummaries/{{report_id}}", response_model=RegionSummaryReportApiModel)
def read_region_report(request: Request, report_id: int) -> RegionSummaryReportApiModel:
    user_id = _require_user(request)
    return region_reports_routes.read_report(user_id, report_id)


@app.put(f"{PREFIX}/reports/regionsummaries/{{report_id}}", response_model=RegionSummaryReportApiModel)
def update_region_report(
    request: Request, report_id: int, payload: RegionSummaryReportApiModel
) -> RegionSummaryReportApiModel:
    user_id = _require_user(request)
    return region_reports_routes.update_report(user_id, report_id, payload)


@app.delete(f"{PREFIX}/reports/regionsummaries/{{report_id}}", status_code=204)
def delete_region_report(request: Request, report_id: int) -> Response:
    user_id = _require_user(request)
    region_reports_routes.delete_report(user_id, report_id)
    return Response(status_code=204)


# -- agents -----------------------------------------------------------------


@app.get(f"{PREFIX}/agents", response_model=List[AgentApiModel])
def list_agents(request: Request) -> List[AgentApiModel]:
    _require_user(request)
    return [_agent_to_api(agent) for agent in agent_store.list_agents()]


@app.get(f"{PREFIX}/agents/{{agent_id}}", response_model=AgentApiModel)
def read_agent(request: Request, agent_id: int) -> AgentApiModel:
    _require_user(request)
    agent = agent_store.get_agent(agent_id)
    if not agent:
        raise FailedRequestException(ErrorCode.NOT_FOUND, f"Agent {agent_id} not found")
    return _agent_to_api(agent)


@app.post(f"{PREFIX}/agents", response_model=AgentApiModel, status_code=201)
def create_agent(request: Request, response: Response, payload: AgentApiModel) -> AgentApiModel:
    user_id = _require_user(request)
    permissions_verifier.verify_admin_permission(user_id)
    if payload.agent_id:
        raise FailedRequestException(ErrorCode.INVALID_INPUT, "agentId cannot be specified on create")
    data = payload.model_dump(exclude={"agent_id"})
    try:
        agent_id = agent_store.create_agent(Agent(**data))
    except db.IntegrityError:
        raise FailedRequestException(ErrorCode.OPERATION_INVALID, f"Call sign '{payload.call_sign}' is already taken")
    _created(response, request, agent_id)
    return _agent_to_api(Agent(agent_id=agent_id, **data))


@app.put(f"{PREFIX}/agents/{{agent_id}}", response_model=AgentApiModel)
def update_agent(request: Request, agent_id: int, payload: AgentApiModel) -> AgentApiModel:
    user_id = _require_user(request)
    permissions_verifier.verify_admin_permission(user_id)
    agent = Agent(**payload.model_dump(exclude={"agent_id"}), agent_id=agent_id)
    try:
        updated = agent_store.update_agent(agent)
    except db.IntegrityError:
        raise FailedRequestException(ErrorCode.OPERATION_INVALID, f"Call sign '{payload.call_sign}' is already taken")
    if not updated:
        raise FailedRequestException(ErrorCode.NOT_FOUND, f"Agent {agent_id} not found")
    return _agent_to_api(agent)


@app.delete(f"{PREFIX}/agents/{{agent_id}}", status_code=204)
def delete_agent(request: Request, agent_id: int) -> Response:
    user_id = _require_user(request)
    permissions_verifier.verify_admin_permission(user_id)
    if not agent_store.delete_agent(agent_id):
        raise FailedRequestException(ErrorCode.NOT_FOUND, f"Agent {agent_id} not found")
    return Response(status_code=204)


# -- regions ----------------------------------------------------------------


@app.get(f"{PREFIX}/regions", response_model=List[RegionApiModel])
def list_regions(request: Request) -> List[RegionApiModel]:
    _require_user(request)
    return [_region_to_api(region) for region in region_store.list_regions()]


@app.get(f"{PREFIX}/regions/{{region_id}}", response_model=RegionApiModel)
def read_region(request: Request, region_id: int) -> RegionApiModel:
    _require_user(request)
    region = region_store.get_region(region_id)
    if not region:
        raise FailedRequestException(ErrorCode.NOT_FOUND, f"Region {region_id} not found")
    return _region_to_api(region)


@app.post(f"{PREFIX}/regions", response_model=RegionApiModel, status_code=201)
def create_region(request: Request, response: Response, payload: RegionApiModel) -> RegionApiModel:
    user_id = _require_user(request)
    permissions_verifier.verify_admin_permission(user_id)
    name = payload.name.strip()
    try:
        region_id = region_store.create_region(Region(name=name))
    except db.IntegrityError:
        raise FailedRequestException(ErrorCode.OPERATION_INVALID, f"Region '{name}' already exists")
    _created(response, request, region_id)
    return RegionApiModel(region_id=region_id, name=name)


@app.put(f"{PREFIX}/regions/{{region_id}}", response_model=RegionApiModel)
def update_region(request: Request, region_id: int, payload: RegionApiModel) -> RegionApiModel:
    user_id = _require_user(request)
    permissions_verifier.verify_admin_permission(user_id)
    region = Region(region_id=region_id, name=payload.name.strip())
    try:
        updated = region_store.update_region(region)
    except db.IntegrityError:
        raise FailedRequestException(ErrorCode.OPERATION_INVALID, f"Region '{region.name}' already exists")
    if not updated:
        raise FailedRequestException(ErrorCode.NOT_FOUND, f"Region {region_id} not found")
    return _region_to_api(region)


@app.delete(f"{PREFIX}/regions/{{region_id}}", status_code=204)
def delete_region(request: Request, region_id: int) -> Response:
    user_id = _require_user(request)
    permissions_verifier.verify_admin_permission(user_id)
    if not region_store.delete_region(region_id):
        raise FailedRequestException(ErrorCode.NOT_FOUND, f"Region {region_id} not found")
    return Response(status_code=204)


# -- locations --------------------------------------------------------------


@app.get(f"{PREFIX}/locations", response_model=List[LocationApiModel])
def list_locations(
    request: Request, region_id: Optional[int] = Query(default=None, alias="regionId")
) -> List[LocationApiModel]:
    _require_user(request)
    return [_location_to_api(location) for location in location_store.list_locations(region_id=region_id)]


@app.get(f"{PREFIX}/locations/{{location_id}}", response_model=LocationApiModel)
def read_location(request: Request, location_id: int) -> LocationApiModel:
    _require_user(request)
    location = location_store.get_location(location_id)
    if not location:
        raise FailedRequestException(ErrorCode.NOT_FOUND, f"Location {location_id} not found")
    return _location_to_api(location)


@app.post(f"{PREFIX}/locations", response_model=LocationApiModel, status_code=201)
def create_location(request: Request, response: Response, payload: LocationApiModel) -> LocationApiModel:
    user_id = _require_user(request)
    permissions_verifier.verify_admin_permission(user_id)
    if payload.location_id:
        raise FailedRequestException(ErrorCode.INVALID_INPUT, "locationId cannot be specified on create")
    _validate_location(payload)
    data = payload.model_dump(exclude={"location_id"})
    data["time_zone"] = data["time_zone"].strip()
    location_id = location_store.create_location(Location(**data))
    _created(response, request, location_id)
    return _location_to_api(Location(location_id=location_id, **data))


@app.put(f"{PREFIX}/locations/{{location_id}}", response_model=LocationApiModel)
def update_location(request: Request, location_id: int, payload: LocationApiModel) -> LocationApiModel:
    user_id = _require_user(request)
    permissions_verifier.verify_admin_permission(user_id)
    _validate_location(payload)
    data = payload.model_dump(exclude={"location_id"})
    data["time_zone"] = data["time_zone"].strip()
    location = Location(location_id=location_id, **data)
    if not location_store.update_location(location):
        raise FailedRequestException(ErrorCode.NOT_FOUND, f"Location {location_id} not found")
    return _location_to_api(location)


@app.delete(f"{PREFIX}/locations/{{location_id}}", status_code=204)
def delete_location(request: Request, location_id: int) -> Response:
    user_id = _require_user(request)
    permissions_verifier.verify_admin_permission(user_id)
    if location_report_store.has_reports_for_location(location_id):
        raise FailedRequestException(
            ErrorCode.OPERATION_INVALID, f"Location {location_id} still has status reports and cannot be deleted"
        )
    if not location_store.delete_location(location_id):
        raise FailedRequestException(ErrorCode.NOT_FOUND, f"Location {location_id} not found")
    return Response(status_code=204)


# -- users ------------------------------------------------------------------


@app.get(f"{PREFIX}/users", response_model=List[UserOut])
def list_users(request: Request) -> List[UserOut]:
    user_id = _require_user(request)
    permissions_verifier.verify_admin_permission(user_id)
    return [_user_to_out(user) for user in user_store.list_users()]


@app.get(f"{PREFIX}/users/{{target_user_id}}", response_model=UserOut)
def read_user(request: Request, target_user_id: int) -> UserOut:
    user_id = _require_user(request)
    permissions_verifier.verify_is_admin_or_relevant_user(user_id, target_user_id)
    user = user_store.get_user(target_user_id)
    if not user:
        raise FailedRequestException(ErrorCode.NOT_FOUND, f"User {target_user_id} not found")
    return _user_to_out(user)


@app.post(f"{PREFIX}/users", response_model=UserOut, status_code=201)
def create_user(request: Request, response: Response, payload: UserApiModel) -> UserOut:
    user_id = _require_user(request)
    permissions_verifier.verify_admin_permission(user_id)
    username = payload.username.strip()
    if not payload.password:
        raise FailedRequestException(ErrorCode.INVALID_INPUT, "A password is required for new users")
    _validate_user_agent_link(payload.agent_id)
    try:
        user = user_store.create_user(
            username=username,
            password=payload.password,
            agent_id=payload.agent_id,
            is_admin=payload.admin,
            is_user=payload.user,
        )
    except db.IntegrityError:
        raise FailedRequestException(ErrorCode.OPERATION_INVALID, f"Username '{username}' already exists")
    _created(response, request, user.user_id)
    return _user_to_out(user)


@app.put(f"{PREFIX}/users/{{target_user_id}}", response_model=UserOut)
def update_user(request: Request, target_user_id: int, payload: UserApiModel) -> UserOut:
    user_id = _require_user(request)
    permissions_verifier.verify_is_admin_or_relevant_user(user_id, target_user_id)
    existing = user_store.get_user(target_user_id)
    if not existing:
        raise FailedRequestException(ErrorCode.NOT_FOUND, f"User {target_user_id} not found")
    updates: Dict[str, Any] = {"username": payload.username.strip()}
    # Only fields the caller actually sent count as a role change
    supplied = payload.model_fields_set
    role_updates: Dict[str, Any] = {}
    if "admin" in supplied and payload.admin != existing.is_admin:
        role_updates["is_admin"] = payload.admin
    if "user" in supplied and payload.user != existing.is_user:
        role_updates["is_user"] = payload.user
    if "agent_id" in supplied and payload.agent_id != existing.agent_id:
        role_updates["agent_id"] = payload.agent_id
    if role_updates:
        permissions_verifier.verify_admin_permission(user_id)
        if target_user_id == user_id and role_updates.get("is_admin") is False:
            raise FailedRequestException(ErrorCode.OPERATION_INVALID, "You cannot remove your own admin role")
        if "agent_id" in role_updates:
            _validate_user_agent_link(role_updates["agent_id"])
        updates.update(role_updates)
    try:
        user_store.update_user(target_user_id, **updates)
    except db.IntegrityError:
        raise FailedRequestException(ErrorCode.OPERATION_INVALID, f"Username '{updates['username']}' already exists")
    if payload.password:
        user_store.set_password(target_user_id, payload.password)
    updated = user_store.get_user(target_user_id)
    if not updated:
        raise FailedRequestException(ErrorCode.NOT_FOUND, f"User {target_user_id} not found")
    return _user_to_out(updated)


@app.delete(f"{PREFIX}/users/{{target_user_id}}", status_code=204)
def delete_user(request: Request, target_user_id: int) -> Response:
    user_id = _require_user(request)
    permissions_verifier.verify_admin_permission(user_id)
    if target_user_id == user_id:
        raise FailedRequestException(ErrorCode.OPERATION_INVALID, "You cannot delete your own account")
    if not user_store.delete_user(target_user_id):
        raise FailedRequestException(ErrorCode.NOT_FOUND, f"User {target_user_id} not found")
    return Response(status_code=204)
