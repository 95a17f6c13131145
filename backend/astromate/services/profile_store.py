"""Key-value storage of profile fields in Postgres.

Each profile is one row in `profiles` plus one `profile_fields` row per stored
key. Values are JSONB so the cached chart can live next to scalar fields.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any
from uuid import UUID

if TYPE_CHECKING:
    from psycopg import AsyncConnection
else:
    AsyncConnection = Any

PROFILE_KEYS = {
    "name",
    "birthday",
    "birth_time",
    "city",
    "state",
    "timezone",
    "onboarded",
    "planet_info",
}
# Changing any of these makes a cached chart stale.
CHART_INPUT_KEYS = {"name", "birthday", "birth_time", "city", "state", "timezone"}
CHART_CACHE_KEY = "planet_info"


async def _ensure_profile(connection: AsyncConnection, profile_id: UUID) -> None:
    async with connection.cursor() as cursor:
        await cursor.execute(
            """
            SELECT id
            FROM profiles
            WHERE id = %s
            """,
            (profile_id,),
        )
        row = await cursor.fetchone()

    if row is None:
        raise LookupError("Profile not found")


async def create_profile(connection: AsyncConnection) -> UUID:
    """Create an empty, not yet onboarded profile."""
    async with connection.cursor() as cursor:
        await cursor.execute(
            """
            INSERT INTO profiles DEFAULT VALUES
            RETURNING id
            """
        )
        row = await cursor.fetchone()

    profile_id = row["id"]
    await set_fields(connection, profile_id, {"onboarded": False})
    return profile_id


async def get_fields(connection: AsyncConnection, profile_id: UUID) -> dict[str, Any]:
    """Return every stored field for one profile."""
    await _ensure_profile(connection, profile_id)

    async with connection.cursor() as cursor:
        await cursor.execute(
            """
            SELECT key, value
            FROM profile_fields
            WHERE profile_id = %s
            """,
            (profile_id,),
        )
        rows = await cursor.fetchall()

    return {row["key"]: row["value"] for row in rows}


async def set_fields(
    connection: AsyncConnection,
    profile_id: UUID,
    fields: dict[str, Any],
) -> None:
    """Upsert each key; values must be JSON serializable."""
    unknown = sorted(set(fields) - PROFILE_KEYS)
    if unknown:
        raise ValueError(f"Unsupported profile field(s): {', '.join(unknown)}")

    await _ensure_profile(connection, profile_id)

    async with connection.cursor() as cursor:
        for key, value in fields.items():
            await cursor.execute(
                """
                INSERT INTO profile_fields (profile_id, key, value)
                VALUES (%s, %s, %s::jsonb)
                ON CONFLICT (profile_id, key)
                DO UPDATE SET value = EXCLUDED.value,
                              updated_at = NOW()
                """,
                (profile_id, key, json.dumps(value)),
            )


async def delete_fields(
    connection: AsyncConnection,
    profile_id: UUID,
    keys: list[str],
) -> None:
    if not keys:
        return

    async with connection.cursor() as cursor:
        await cursor.execute(
            """
            DELETE FROM profile_fields
            WHERE profile_id = %s
              AND key = ANY(%s)
            """,
            (profile_id, keys),
        )
