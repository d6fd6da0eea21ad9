"""Shared fixtures for reading tracker tests."""
import pytest

from reading_tracker.core.database import Database
from reading_tracker.database.crud import register_user, update_user_approval
from reading_tracker.utils.session_store import SessionStorage


@pytest.fixture
def db_path(tmp_path):
    """Path of a fresh database file."""
    return str(tmp_path / "data" / "tracker.db")


@pytest.fixture
async def db(db_path):
    """Opened database handle, closed after the test."""
    database = Database(db_path)
    await database.open()
    yield database
    await database.close()


@pytest.fixture
def sessions():
    """Empty session store (nobody logged in)."""
    return SessionStorage()


@pytest.fixture
def ali_profile():
    """Registration data of the example student."""
    return {
        "username": "ali",
        "password": "pw1",
        "full_name": "Ali A",
        "phone": "0500000000",
        "grade": "5",
        "semester": "1",
    }


@pytest.fixture
async def registered_user(db, ali_profile):
    """Registered but not yet approved account."""
    return await register_user(db, **ali_profile)


@pytest.fixture
async def approved_user(db, registered_user):
    """Registered and approved account."""
    return await update_user_approval(db, registered_user.username, True)
