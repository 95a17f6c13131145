import copy
import json
from contextlib import asynccontextmanager
from uuid import uuid4

import pytest


class FakeProfileCursor:
    """In-memory stand-in for the psycopg cursor used by the profile store."""

    def __init__(self, connection):
        self.connection = connection
        self._rows = []

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return False

    async def execute(self, query, params=None):
        params = params or ()
        normalized = " ".join(query.split())
        self._rows = []
        self.connection.queries.append(normalized)

        if self.connection.fail_on and normalized.startswith(self.connection.fail_on):
            raise RuntimeError(f"Simulated failure: {normalized}")

        if normalized == "SELECT id FROM profiles WHERE id = %s":
            (profile_id,) = params
            if profile_id in self.connection.profiles:
                self._rows = [{"id": profile_id}]
            return

        if normalized == "INSERT INTO profiles DEFAULT VALUES RETURNING id":
            profile_id = uuid4()
            self.connection.profiles[profile_id] = {}
            self._rows = [{"id": profile_id}]
            return

        if normalized.startswith("SELECT key, value FROM profile_fields"):
            (profile_id,) = params
            fields = self.connection.profiles.get(profile_id, {})
            self._rows = [{"key": key, "value": value} for key, value in fields.items()]
            return

        if normalized.startswith("INSERT INTO profile_fields"):
            profile_id, key, value_json = params
            self.connection.profiles[profile_id][key] = json.loads(value_json)
            return

        if normalized.startswith("DELETE FROM profile_fields"):
            profile_id, keys = params
            fields = self.connection.profiles.get(profile_id, {})
            for key in keys:
                fields.pop(key, None)
            return

        raise AssertionError(f"Unhandled query: {normalized}")

    async def fetchone(self):
        if not self._rows:
            return None
        return self._rows[0]

    async def fetchall(self):
        return list(self._rows)


class FakeProfileConnection:
    def __init__(self):
        self.profiles = {}
        self.queries = []
        self.transactions = 0
        self.fail_on = None

    def cursor(self):
        return FakeProfileCursor(self)

    @asynccontextmanager
    async def transaction(self):
        snapshot = copy.deepcopy(self.profiles)
        self.transactions += 1
        try:
            yield
        except BaseException:
            self.profiles = snapshot
            raise

    def add_profile(self, **fields):
        profile_id = uuid4()
        self.profiles[profile_id] = dict(fields)
        return profile_id


@pytest.fixture
def profile_connection():
    return FakeProfileConnection()
