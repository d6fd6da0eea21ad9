"""Ephemeral session storage for the currently logged-in user."""
import json
import logging
from typing import Dict, Optional

from reading_tracker.database.models import Account, SessionUser

logger = logging.getLogger(__name__)

# Key holding the JSON projection of the logged-in account
CURRENT_USER_KEY = "currentUser"


class SessionStorage:
    """
    In-memory string key/value store scoped to one client session.

    Nothing is persisted: dropping the object ends the session.
    """

    def __init__(self):
        self._items: Dict[str, str] = {}

    def get_item(self, key: str) -> Optional[str]:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._items[key] = str(value)

    def remove_item(self, key: str) -> None:
        self._items.pop(key, None)

    def clear(self) -> None:
        self._items.clear()

    def __contains__(self, key: str) -> bool:
        return key in self._items

    def __len__(self) -> int:
        return len(self._items)


def save_current_user(storage: SessionStorage, account: Account) -> SessionUser:
    """Store the credential-free projection of account as the current user."""
    session_user = SessionUser.from_account(account)
    storage.set_item(CURRENT_USER_KEY, json.dumps(session_user.to_dict(), ensure_ascii=False))
    return session_user


def get_current_user(storage: SessionStorage) -> Optional[SessionUser]:
    """
    Read the current user from the session store.

    Returns:
        SessionUser, or None if nobody is logged in or the stored value is unreadable
    """
    raw = storage.get_item(CURRENT_USER_KEY)
    if raw is None:
        return None

    try:
        data = json.loads(raw)
        if not isinstance(data, dict) or not data.get("username"):
            raise ValueError("username missing")
        return SessionUser.from_dict(data)
    except (ValueError, TypeError) as e:
        logger.warning("Ignoring malformed session token: %s", e)
        return None


def clear_current_user(storage: SessionStorage) -> None:
    """Forget the current user."""
    storage.remove_item(CURRENT_USER_KEY)
