import asyncio
from contextlib import asynccontextmanager

import psycopg
import pytest
from fastapi.testclient import TestClient

import astromate.database as database
from astromate.main import app


class FailingPool:
    def __init__(self, error):
        self.error = error

    @asynccontextmanager
    async def connection(self):
        raise self.error
        yield


def test_health_reports_unconfigured_database(monkeypatch) -> None:
    monkeypatch.setattr(database.settings, "database_url", "")

    with TestClient(app) as client:
        response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok", "database": "unconfigured"}


def test_profile_routes_fail_clearly_without_database(monkeypatch) -> None:
    monkeypatch.setattr(database.settings, "database_url", "")

    with TestClient(app) as client:
        response = client.get("/profiles/00000000-0000-0000-0000-000000000000")

    assert response.status_code == 503
    assert "DATABASE_URL" in response.json()["detail"]


def test_database_status_reports_connection_failures(monkeypatch) -> None:
    monkeypatch.setattr(database, "pool", FailingPool(psycopg.OperationalError("connection refused")))

    assert asyncio.run(database.database_status()) == "unavailable"


def test_database_status_does_not_hide_programming_errors(monkeypatch) -> None:
    monkeypatch.setattr(database, "pool", FailingPool(AttributeError("typo")))

    with pytest.raises(AttributeError):
        asyncio.run(database.database_status())
