import json
import pathlib

import pytest

from campus_booking.identity import IdentityResolver
from campus_booking.storage import TOKEN_KEY, USER_KEY, MemoryStorage
from campus_booking.store import AppointmentStore

FIX = pathlib.Path(__file__).parent / "fixtures"


def _sign_in(session, user_id, name="Test User", email=None):
    """Write a session record the way a successful login does."""
    session.set_item(TOKEN_KEY, "simulated_jwt_token")
    session.set_item(USER_KEY, json.dumps({"id": user_id, "name": name, "email": email or f"{user_id}@example.edu"}))


@pytest.fixture
def sign_in():
    return _sign_in


@pytest.fixture
def storage():
    return MemoryStorage()


@pytest.fixture
def make_store(storage):
    """Store bound to a fresh session; pass a user id to sign that session in."""

    def _make(user_id=None, **kwargs):
        session = MemoryStorage()
        if user_id:
            _sign_in(session, user_id)
        return AppointmentStore(storage, IdentityResolver(session), **kwargs)

    return _make


@pytest.fixture
def fixture_text():
    def _read(name):
        return (FIX / name).read_text()

    return _read
