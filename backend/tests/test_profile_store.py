import asyncio
from uuid import UUID, uuid4

import pytest

from astromate.services.profile_store import (
    create_profile,
    delete_fields,
    get_fields,
    set_fields,
)


def _run(coro):
    return asyncio.run(coro)


def test_create_profile_starts_not_onboarded(profile_connection) -> None:
    profile_id = _run(create_profile(profile_connection))

    assert isinstance(profile_id, UUID)
    assert _run(get_fields(profile_connection, profile_id)) == {"onboarded": False}


def test_set_fields_upserts_json_values(profile_connection) -> None:
    profile_id = _run(create_profile(profile_connection))

    _run(set_fields(profile_connection, profile_id, {"name": "Teddy", "city": "Austin"}))
    _run(set_fields(profile_connection, profile_id, {"city": "Dallas", "planet_info": [{"name": "Sun"}]}))

    fields = _run(get_fields(profile_connection, profile_id))
    assert fields["name"] == "Teddy"
    assert fields["city"] == "Dallas"
    assert fields["planet_info"] == [{"name": "Sun"}]


def test_set_fields_rejects_unknown_keys(profile_connection) -> None:
    profile_id = _run(create_profile(profile_connection))

    with pytest.raises(ValueError):
        _run(set_fields(profile_connection, profile_id, {"favourite_colour": "blue"}))


def test_unknown_profile_raises_lookup_error(profile_connection) -> None:
    with pytest.raises(LookupError):
        _run(get_fields(profile_connection, uuid4()))
    with pytest.raises(LookupError):
        _run(set_fields(profile_connection, uuid4(), {"name": "Ghost"}))


def test_delete_fields_removes_only_given_keys(profile_connection) -> None:
    profile_id = profile_connection.add_profile(name="Teddy", planet_info=[])

    _run(delete_fields(profile_connection, profile_id, ["planet_info"]))
    _run(delete_fields(profile_connection, profile_id, []))

    assert _run(get_fields(profile_connection, profile_id)) == {"name": "Teddy"}
