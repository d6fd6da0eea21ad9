"""CRUD operations for database."""
import logging
from datetime import datetime, timezone
from typing import Dict, List, Optional

import aiosqlite

from reading_tracker.config import settings
from reading_tracker.core.database import Database
from reading_tracker.core.exceptions import (
    ConflictError,
    NoSessionError,
    NotFoundError,
    StorageError,
    UnauthorizedError,
)
from reading_tracker.core.security import (
    generate_account_number,
    generate_salt,
    hash_password,
    verify_password,
)
from reading_tracker.database.models import Account, QuizResult, ReadingSession
from reading_tracker.utils.session_store import (
    SessionStorage,
    clear_current_user,
    get_current_user,
    save_current_user,
)

logger = logging.getLogger(__name__)

USER_COLUMNS = """
    username, password_hash, salt, full_name, phone, account_number,
    grade, semester, approved, created_at
"""

READING_SESSION_COLUMNS = """
    id, username, lesson_id, lesson_title, date, speed, errors, duration, words_read
"""

QUIZ_RESULT_COLUMNS = """
    id, username, lesson_id, lesson_title, date, score, correct_answers, total_questions
"""


def _now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds")


# ============================================================================
# USER OPERATIONS
# ============================================================================

async def register_user(
    db: Database,
    username: str,
    password: str,
    full_name: Optional[str],
    phone: Optional[str],
    grade: Optional[str],
    semester: Optional[str],
) -> Account:
    """
    Create a new, unapproved account with a salted password hash.

    The username primary key is the only duplicate check: there is no
    separate lookup before the insert.

    Returns:
        The stored Account

    Raises:
        NotReadyError: Database is not open
        ConflictError: Username already exists
        StorageError: Write failed or no free account number was found
    """
    db.require_ready()

    salt = generate_salt()
    account = Account(
        username=username,
        password_hash=hash_password(password, salt),
        salt=salt,
        full_name=full_name or "",
        phone=phone,
        grade=grade,
        semester=semester,
        approved=False,
        created_at=_now(),
    )

    query = """
        INSERT INTO users (
            username, password_hash, salt, full_name, phone, account_number,
            grade, semester, approved, created_at
        ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
    """

    for attempt in range(1, settings.ACCOUNT_NUMBER_ATTEMPTS + 1):
        account.account_number = generate_account_number()
        try:
            await db.execute(query, (
                account.username, account.password_hash, account.salt,
                account.full_name, account.phone, account.account_number,
                account.grade, account.semester, 0, account.created_at,
            ))
        except aiosqlite.IntegrityError as e:
            message = str(e)
            if "UNIQUE constraint failed: users.account_number" in message:
                logger.warning(
                    "Account number collision (attempt %d/%d): %s",
                    attempt, settings.ACCOUNT_NUMBER_ATTEMPTS, account.account_number,
                )
                continue
            if "UNIQUE constraint failed: users.username" in message:
                logger.info("Registration rejected, username taken: %s", username)
                raise ConflictError("username exists") from e
            logger.error("Registration failed for %s: %s", username, e)
            raise StorageError(f"registration failed: {e}") from e

        logger.info("Registered user %s (%s)", username, account.account_number)
        return account

    raise StorageError("registration failed: could not generate a unique account number")


async def get_user(db: Database, username: str) -> Optional[Account]:
    """
    Get account by username.

    Returns:
        Account (with hash and salt) or None
    """
    db.require_ready()

    query = f"SELECT {USER_COLUMNS} FROM users WHERE username = ?"
    row = await db.fetchone(query, (username,))

    if not row:
        return None

    return Account.from_row(row)


async def login_user(
    db: Database,
    sessions: SessionStorage,
    username: str,
    password: str,
) -> Account:
    """
    Authenticate a user and remember them in the session store.

    Checks run in order: account exists, account approved, password matches.

    Returns:
        The full stored Account

    Raises:
        NotReadyError: Database is not open
        NotFoundError: Unknown username
        UnauthorizedError: Account not approved yet, or wrong password
    """
    account = await get_user(db, username)

    if account is None:
        logger.warning("Login failed, unknown user: %s", username)
        raise NotFoundError("user not found")

    if not account.approved:
        logger.warning("Login refused, account not approved: %s", username)
        raise UnauthorizedError("account not activated")

    if not verify_password(password, account.password_hash, account.salt):
        logger.warning("Login failed, wrong password: %s", username)
        raise UnauthorizedError("wrong password")

    save_current_user(sessions, account)
    logger.info("User logged in: %s", username)

    return account


def logout_user(sessions: SessionStorage) -> None:
    """Drop the current user from the session store."""
    current = get_current_user(sessions)
    clear_current_user(sessions)
    if current:
        logger.info("User logged out: %s", current.username)


async def change_password(db: Database, username: str, new_password: str) -> None:
    """
    Replace a user's password, generating a fresh salt.

    Raises:
        NotFoundError: Unknown username
    """
    db.require_ready()

    salt = generate_salt()
    query = "UPDATE users SET password_hash = ?, salt = ? WHERE username = ?"
    cursor = await db.execute(query, (hash_password(new_password, salt), salt, username))

    if cursor.rowcount == 0:
        raise NotFoundError("user not found")

    logger.info("Password changed for %s", username)


# ============================================================================
# ADMIN OPERATIONS
# ============================================================================

async def get_all_users(db: Database) -> List[Account]:
    """
    Get every account, oldest first.

    Hash and salt are included; callers must not display them.
    """
    db.require_ready()

    query = f"SELECT {USER_COLUMNS} FROM users ORDER BY created_at, username"
    rows = await db.fetchall(query)

    return [Account.from_row(row) for row in rows]


async def update_user_approval(db: Database, username: str, approved: bool) -> Account:
    """
    Set the approval flag of an account.

    Returns:
        The updated Account

    Raises:
        NotFoundError: Unknown username
    """
    db.require_ready()

    query = "UPDATE users SET approved = ? WHERE username = ?"
    cursor = await db.execute(query, (1 if approved else 0, username))

    if cursor.rowcount == 0:
        raise NotFoundError("user not found")

    account = await get_user(db, username)
    if account is None:
        raise NotFoundError("user not found")

    logger.info("Approval for %s set to %s", username, account.approved)
    return account


async def delete_user(db: Database, username: str) -> bool:
    """
    Delete an account.

    Reading sessions and quiz results of the user are kept.

    Returns:
        True if the account existed
    """
    db.require_ready()

    cursor = await db.execute("DELETE FROM users WHERE username = ?", (username,))

    deleted = cursor.rowcount > 0
    if deleted:
        logger.info("Deleted user %s", username)
    return deleted


# ============================================================================
# READING SESSIONS AND QUIZ RESULTS
# ============================================================================

def _require_session_user(sessions: SessionStorage):
    current = get_current_user(sessions)
    if current is None:
        raise NoSessionError("no logged-in user")
    return current


async def save_reading_session(
    db: Database,
    sessions: SessionStorage,
    lesson_id: Optional[str] = None,
    lesson_title: Optional[str] = None,
    speed: Optional[float] = None,
    errors: Optional[int] = None,
    duration: Optional[float] = None,
    words_read: Optional[int] = None,
) -> ReadingSession:
    """
    Record a reading session for the logged-in user.

    Raises:
        NoSessionError: Nobody is logged in
        NotReadyError: Database is not open
    """
    current = _require_session_user(sessions)

    session = ReadingSession(
        username=current.username,
        date=_now(),
        lesson_id=lesson_id,
        lesson_title=lesson_title,
        speed=speed,
        errors=errors,
        duration=duration,
        words_read=words_read,
    )

    query = """
        INSERT INTO reading_sessions (
            username, lesson_id, lesson_title, date, speed, errors, duration, words_read
        ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
    """
    try:
        cursor = await db.execute(query, (
            session.username, session.lesson_id, session.lesson_title, session.date,
            session.speed, session.errors, session.duration, session.words_read,
        ))
    except aiosqlite.IntegrityError as e:
        raise StorageError(f"failed to save reading session: {e}") from e

    session.id = cursor.lastrowid
    logger.debug("Saved reading session %d for %s", session.id, session.username)

    return session


async def save_quiz_result(
    db: Database,
    sessions: SessionStorage,
    lesson_id: Optional[str] = None,
    lesson_title: Optional[str] = None,
    score: Optional[float] = None,
    correct: Optional[int] = None,
    total: Optional[int] = None,
) -> QuizResult:
    """
    Record a quiz result for the logged-in user.

    Raises:
        NoSessionError: Nobody is logged in
        NotReadyError: Database is not open
    """
    current = _require_session_user(sessions)

    result = QuizResult(
        username=current.username,
        date=_now(),
        lesson_id=lesson_id,
        lesson_title=lesson_title,
        score=score,
        correct_answers=correct,
        total_questions=total,
    )

    query = """
        INSERT INTO quiz_results (
            username, lesson_id, lesson_title, date, score, correct_answers, total_questions
        ) VALUES (?, ?, ?, ?, ?, ?, ?)
    """
    try:
        cursor = await db.execute(query, (
            result.username, result.lesson_id, result.lesson_title, result.date,
            result.score, result.correct_answers, result.total_questions,
        ))
    except aiosqlite.IntegrityError as e:
        raise StorageError(f"failed to save quiz result: {e}") from e

    result.id = cursor.lastrowid
    logger.debug("Saved quiz result %d for %s", result.id, result.username)

    return result


async def get_reading_sessions(
    db: Database, username: str, limit: Optional[int] = None
) -> List[ReadingSession]:
    """Get reading sessions of a user, newest first."""
    db.require_ready()

    query = f"""
        SELECT {READING_SESSION_COLUMNS}
        FROM reading_sessions
        WHERE username = ?
        ORDER BY date DESC, id DESC
        LIMIT ?
    """
    rows = await db.fetchall(query, (username, limit if limit is not None else -1))

    return [ReadingSession.from_row(row) for row in rows]


async def get_quiz_results(
    db: Database, username: str, limit: Optional[int] = None
) -> List[QuizResult]:
    """Get quiz results of a user, newest first."""
    db.require_ready()

    query = f"""
        SELECT {QUIZ_RESULT_COLUMNS}
        FROM quiz_results
        WHERE username = ?
        ORDER BY date DESC, id DESC
        LIMIT ?
    """
    rows = await db.fetchall(query, (username, limit if limit is not None else -1))

    return [QuizResult.from_row(row) for row in rows]


async def get_stats_summary(db: Database, username: str) -> Dict:
    """Get overall reading and quiz stats for a user."""
    db.require_ready()

    reading = await db.fetchone(
        """SELECT
               COUNT(*) AS total_sessions,
               AVG(speed) AS avg_speed,
               SUM(words_read) AS total_words_read,
               SUM(duration) AS total_duration,
               SUM(errors) AS total_errors
           FROM reading_sessions
           WHERE username = ?""",
        (username,),
    )
    quizzes = await db.fetchone(
        """SELECT
               COUNT(*) AS total_quizzes,
               AVG(score) AS avg_score,
               SUM(correct_answers) AS total_correct,
               SUM(total_questions) AS total_questions
           FROM quiz_results
           WHERE username = ?""",
        (username,),
    )

    stats = {}
    if reading:
        stats.update(dict(reading))
    if quizzes:
        stats.update(dict(quizzes))
    return stats
