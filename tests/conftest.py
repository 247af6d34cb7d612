"""
Shared fixtures for API tests.

The app runs against a fresh in-memory Snowflake connection per test and
a fixed JWT secret, both injected through FastAPI's dependency overrides.
"""

import pytest
from fastapi.testclient import TestClient

from src.api.dependencies import get_snowflake_connection
from src.config.settings import Settings, get_settings
from src.core.access import Principal, UserType
from src.infrastructure.auth import TokenConfig, create_access_token
from src.infrastructure.snowflake.client import MockSnowflakeConnection
from src.infrastructure.snowflake.repositories import ActivityTemplateRepository
from src.main import app


TEST_JWT_SECRET = "test-secret"

ADMIN = Principal(user_id="admin-1", email="admin@example.com", user_type=UserType.ADMIN)
OWNER = Principal(user_id="owner-1", email="owner@example.com", user_type=UserType.GYM_OWNER, gym_id="gym-1")
COACH = Principal(user_id="coach-1", email="coach@example.com", user_type=UserType.COACH, gym_id="gym-1")
MEMBER = Principal(user_id="member-1", email="member@example.com", user_type=UserType.CLIENT, gym_id="gym-1")
OTHER_OWNER = Principal(user_id="owner-2", email="owner2@example.com", user_type=UserType.GYM_OWNER, gym_id="gym-2")


def auth_headers(principal: Principal) -> dict:
    token = create_access_token(principal, TokenConfig(secret_key=TEST_JWT_SECRET))
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def settings():
    return Settings(_env_file=None, jwt_secret=TEST_JWT_SECRET, snowflake_mock_mode=True)


@pytest.fixture
def mock_connection():
    return MockSnowflakeConnection()


@pytest.fixture
def client(settings, mock_connection):
    def override_connection():
        yield mock_connection

    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_snowflake_connection] = override_connection

    yield TestClient(app)

    app.dependency_overrides.clear()


@pytest.fixture
def activity_repo(mock_connection):
    """Direct repository access for seeding the catalog."""
    return ActivityTemplateRepository(mock_connection)


@pytest.fixture
def admin_headers():
    return auth_headers(ADMIN)


@pytest.fixture
def owner_headers():
    return auth_headers(OWNER)


@pytest.fixture
def coach_headers():
    return auth_headers(COACH)


@pytest.fixture
def member_headers():
    return auth_headers(MEMBER)


@pytest.fixture
def other_owner_headers():
    return auth_headers(OTHER_OWNER)
