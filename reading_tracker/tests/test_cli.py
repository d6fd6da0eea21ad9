"""Tests for the admin command line."""
import asyncio

import pytest
from click.testing import CliRunner

from reading_tracker.cli import cli
from reading_tracker.core.database import init_database
from reading_tracker.database.crud import (
    get_user,
    login_user,
    register_user,
    save_quiz_result,
    save_reading_session,
    update_user_approval,
)
from reading_tracker.utils.session_store import SessionStorage


def _seed(db_path: str, approve: bool = False, with_history: bool = False) -> None:
    """Register ali (and optionally approve and add history)."""

    async def seed():
        db = await init_database(db_path)
        try:
            await register_user(db, "ali", "pw1", "Ali A", "0500000000", "5", "1")
            await register_user(db, "sara", "pw2", "Sara S", "0511111111", "6", "2")
            if approve or with_history:
                await update_user_approval(db, "ali", True)
            if with_history:
                sessions = SessionStorage()
                await login_user(db, sessions, "ali", "pw1")
                await save_reading_session(db, sessions, lesson_id="l1", lesson_title="The Fox", speed=90, words_read=150)
                await save_quiz_result(db, sessions, lesson_id="l1", lesson_title="The Fox", score=80, correct=4, total=5)
        finally:
            await db.close()

    asyncio.run(seed())


def _fetch(db_path: str, username: str):
    async def fetch():
        db = await init_database(db_path)
        try:
            return await get_user(db, username)
        finally:
            await db.close()

    return asyncio.run(fetch())


@pytest.fixture
def runner():
    return CliRunner()


class TestCli:
    """Tests for reading-tracker commands."""

    def test_init_creates_database(self, runner, tmp_path):
        db_path = tmp_path / "new" / "tracker.db"

        result = runner.invoke(cli, ["--db", str(db_path), "init"])

        assert result.exit_code == 0, result.output
        assert "Database ready" in result.output
        assert db_path.exists()

    def test_users_lists_accounts(self, runner, db_path):
        _seed(db_path, approve=True)

        result = runner.invoke(cli, ["--db", db_path, "users"])

        assert result.exit_code == 0, result.output
        assert "ali" in result.output
        assert "sara" in result.output
        assert "approved" in result.output
        assert "pending" in result.output

    def test_users_pending_only(self, runner, db_path):
        _seed(db_path, approve=True)

        result = runner.invoke(cli, ["--db", db_path, "users", "--pending"])

        assert result.exit_code == 0, result.output
        assert "sara" in result.output
        assert "ali " not in result.output

    def test_users_empty(self, runner, db_path):
        result = runner.invoke(cli, ["--db", db_path, "users"])

        assert result.exit_code == 0, result.output
        assert "No users." in result.output

    def test_users_hides_credentials(self, runner, db_path):
        _seed(db_path)
        account = _fetch(db_path, "ali")

        result = runner.invoke(cli, ["--db", db_path, "users"])

        assert account.password_hash not in result.output
        assert account.salt not in result.output

    def test_approve_and_revoke(self, runner, db_path):
        _seed(db_path)

        result = runner.invoke(cli, ["--db", db_path, "approve", "ali"])
        assert result.exit_code == 0, result.output
        assert _fetch(db_path, "ali").approved is True

        result = runner.invoke(cli, ["--db", db_path, "revoke", "ali"])
        assert result.exit_code == 0, result.output
        assert _fetch(db_path, "ali").approved is False

    def test_approve_unknown_user(self, runner, db_path):
        _seed(db_path)

        result = runner.invoke(cli, ["--db", db_path, "approve", "ghost"])

        assert result.exit_code == 1
        assert "user not found" in result.output

    def test_delete_with_confirmation(self, runner, db_path):
        _seed(db_path)

        result = runner.invoke(cli, ["--db", db_path, "delete", "sara"], input="y\n")

        assert result.exit_code == 0, result.output
        assert _fetch(db_path, "sara") is None

    def test_delete_aborted(self, runner, db_path):
        _seed(db_path)

        result = runner.invoke(cli, ["--db", db_path, "delete", "sara"], input="n\n")

        assert "Aborted." in result.output
        assert _fetch(db_path, "sara") is not None

    def test_delete_unknown_user(self, runner, db_path):
        _seed(db_path)

        result = runner.invoke(cli, ["--db", db_path, "delete", "ghost", "--yes"])

        assert result.exit_code == 1
        assert "User not found" in result.output

    def test_history(self, runner, db_path):
        _seed(db_path, with_history=True)

        result = runner.invoke(cli, ["--db", db_path, "history", "ali"])

        assert result.exit_code == 0, result.output
        assert "The Fox" in result.output
        assert "4/5" in result.output
        assert "Sessions: 1" in result.output

    def test_history_after_delete(self, runner, db_path):
        """Deleted accounts still show their orphaned history."""
        _seed(db_path, with_history=True)
        runner.invoke(cli, ["--db", db_path, "delete", "ali", "--yes"])

        result = runner.invoke(cli, ["--db", db_path, "history", "ali"])

        assert result.exit_code == 0, result.output
        assert "account deleted or never registered" in result.output
        assert "The Fox" in result.output

    def test_unopenable_database(self, runner, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory")

        result = runner.invoke(cli, ["--db", str(blocker / "tracker.db"), "users"])

        assert result.exit_code == 1
        assert "failed to open database" in result.output
