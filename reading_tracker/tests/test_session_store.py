"""Tests for the ephemeral session store."""
import json

from reading_tracker.database.models import Account, SessionUser
from reading_tracker.utils.session_store import (
    CURRENT_USER_KEY,
    SessionStorage,
    clear_current_user,
    get_current_user,
    save_current_user,
)


def _account(**overrides) -> Account:
    data = {
        "username": "ali",
        "password_hash": "ab" * 32,
        "salt": "c2FsdA==",
        "full_name": "Ali A",
        "phone": "0500000000",
        "account_number": "ACC1700000000000-ABCDEF012345",
        "grade": "5",
        "semester": "1",
        "approved": True,
        "created_at": "2026-01-01T00:00:00.000+00:00",
    }
    data.update(overrides)
    return Account(**data)


class TestSessionStorage:
    """Tests for the key/value store itself."""

    def test_set_get_remove(self):
        storage = SessionStorage()
        storage.set_item("k", "v")

        assert storage.get_item("k") == "v"
        assert "k" in storage
        assert len(storage) == 1

        storage.remove_item("k")

        assert storage.get_item("k") is None
        assert len(storage) == 0

    def test_values_are_strings(self):
        storage = SessionStorage()
        storage.set_item("n", 5)

        assert storage.get_item("n") == "5"

    def test_stores_are_independent(self):
        """Each client session has its own store."""
        first, second = SessionStorage(), SessionStorage()
        save_current_user(first, _account())

        assert get_current_user(second) is None

    def test_remove_missing_key(self):
        SessionStorage().remove_item("missing")


class TestCurrentUser:
    """Tests for saving and reading the current user."""

    def test_projection_excludes_credentials(self):
        storage = SessionStorage()
        save_current_user(storage, _account())

        token = json.loads(storage.get_item(CURRENT_USER_KEY))

        assert set(token) == {
            "username", "full_name", "phone", "account_number", "grade", "semester", "approved",
        }

    def test_round_trip(self):
        storage = SessionStorage()
        saved = save_current_user(storage, _account(full_name="Али"))

        assert get_current_user(storage) == saved
        assert saved == SessionUser(
            username="ali",
            full_name="Али",
            phone="0500000000",
            account_number="ACC1700000000000-ABCDEF012345",
            grade="5",
            semester="1",
            approved=True,
        )

    def test_nobody_logged_in(self):
        assert get_current_user(SessionStorage()) is None

    def test_malformed_values(self):
        storage = SessionStorage()
        for raw in ("{broken", "[]", '{"full_name": "no username"}', "null"):
            storage.set_item(CURRENT_USER_KEY, raw)
            assert get_current_user(storage) is None

    def test_unknown_keys_ignored(self):
        storage = SessionStorage()
        storage.set_item(CURRENT_USER_KEY, json.dumps({"username": "ali", "theme": "dark"}))

        assert get_current_user(storage) == SessionUser(username="ali")

    def test_clear(self):
        storage = SessionStorage()
        storage.set_item("other", "kept")
        save_current_user(storage, _account())

        clear_current_user(storage)

        assert get_current_user(storage) is None
        assert storage.get_item("other") == "kept"
