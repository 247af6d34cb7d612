"""
API tests for the application-level exception handlers.
"""

import pytest
from fastapi.testclient import TestClient
from pydantic import BaseModel

from src.main import create_app


class Counted(BaseModel):
    count: int


@pytest.fixture
def error_client():
    app = create_app()

    @app.get("/raise/model")
    async def raise_model():
        Counted(count="many")

    @app.get("/raise/value")
    async def raise_value():
        raise ValueError("Start time must be in HH:MM format (24-hour)")

    return TestClient(app, raise_server_exceptions=False)


class TestExceptionHandlers:

    def test_value_error_is_bad_request(self, error_client):
        response = error_client.get("/raise/value")

        assert response.status_code == 400
        assert response.json() == {"detail": "Start time must be in HH:MM format (24-hour)"}

    def test_model_validation_failure_inside_handler_is_500(self, error_client):
        response = error_client.get("/raise/model")

        assert response.status_code == 500
        assert response.json()["detail"].startswith("Internal server error")
        assert "count" not in response.json()["detail"]
