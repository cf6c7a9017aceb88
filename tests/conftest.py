import os
import sys
from datetime import date

sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pytest
from fastapi.testclient import TestClient

from agentdiscoveries import agent_store, db, location_store, main, region_store, user_store
from agentdiscoveries.auth_tokens import create_access_token
from agentdiscoveries.models import Agent, Location, Region


@pytest.fixture
def temp_db(tmp_path, monkeypatch):
    db_path = tmp_path / "agentdiscoveries-test.db"
    monkeypatch.setattr(db, "DB_PATH", db_path)
    monkeypatch.setenv("JWT_SECRET", "test-secret")
    main.init_db()
    return db_path


@pytest.fixture
def client(temp_db):
    with TestClient(main.app) as test_client:
        yield test_client


def auth_headers(user):
    token, _ = create_access_token(user_id=user.user_id, username=user.username, scope="user")
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin(temp_db):
    return user_store.create_user(username="control", password="control-pass", is_admin=True)


@pytest.fixture
def agent(temp_db):
    agent_id = agent_store.create_agent(
        Agent(first_name="James", last_name="Bond", date_of_birth=date(1968, 4, 13), rank=7, call_sign="007")
    )
    return agent_store.get_agent(agent_id)


@pytest.fixture
def agent_user(agent):
    return user_store.create_user(username="jbond", password="shaken-not-stirred", agent_id=agent.agent_id)


@pytest.fixture
def other_user(temp_db):
    return user_store.create_user(username="analyst", password="analyst-pass")


@pytest.fixture
def region(temp_db):
    region_id = region_store.create_region(Region(name="North America"))
    return region_store.get_region(region_id)


@pytest.fixture
def location(region):
    location_id = location_store.create_location(
        Location(
            site_name="Grand Central",
            location="New York, NY",
            time_zone="America/New_York",
            region_id=region.region_id,
            latitude=40.7527,
            longitude=-73.9772,
        )
    )
    return location_store.get_location(location_id)
