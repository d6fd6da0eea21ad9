"""Admin command line for the reading tracker database."""
import asyncio
import logging
import sys
from typing import Awaitable, Callable, TypeVar

import click

from reading_tracker.config import settings
from reading_tracker.core.database import Database, init_database
from reading_tracker.core.exceptions import TrackerError
from reading_tracker.database.crud import (
    delete_user,
    get_all_users,
    get_quiz_results,
    get_reading_sessions,
    get_stats_summary,
    get_user,
    update_user_approval,
)


T = TypeVar("T")


def _configure_logging() -> None:
    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stderr)],
    )


def _run(db_path: str, action: Callable[[Database], Awaitable[T]]) -> T:
    """Open the database, run one action, close it. Tracker errors become click errors."""

    async def runner() -> T:
        db = await init_database(db_path)
        try:
            return await action(db)
        finally:
            await db.close()

    try:
        return asyncio.run(runner())
    except TrackerError as e:
        raise click.ClickException(str(e))


@click.group()
@click.option(
    "--db",
    "db_path",
    type=click.Path(dir_okay=False),
    default=None,
    help="SQLite database file (default: DATABASE_PATH setting).",
)
@click.pass_context
def cli(ctx: click.Context, db_path: str) -> None:
    """Manage reading tracker accounts.

    List, approve and delete student accounts and inspect their
    reading history.
    """
    _configure_logging()
    ctx.obj = db_path or settings.DATABASE_PATH


@cli.command()
@click.pass_obj
def init(db_path: str) -> None:
    """Create the database or upgrade its schema."""

    async def action(db: Database) -> None:
        return None

    _run(db_path, action)
    click.echo(click.style(f"Database ready: {db_path}", fg="green"))


@cli.command("users")
@click.option("--pending", is_flag=True, help="Only show accounts waiting for approval.")
@click.pass_obj
def list_users(db_path: str, pending: bool) -> None:
    """List accounts."""
    users = _run(db_path, get_all_users)
    if pending:
        users = [u for u in users if not u.approved]

    if not users:
        click.echo("No users.")
        return

    for u in users:
        status = click.style("approved", fg="green") if u.approved else click.style("pending", fg="yellow")
        name = u.full_name or "-"
        click.echo(
            f"{u.username:20} {name:25} {u.account_number or '-':32} "
            f"grade {u.grade or '-'} / sem {u.semester or '-'}  {status}"
        )


@cli.command()
@click.argument("username")
@click.pass_obj
def approve(db_path: str, username: str) -> None:
    """Approve USERNAME so they can log in."""
    _run(db_path, lambda db: update_user_approval(db, username, True))
    click.echo(click.style(f"Approved: {username}", fg="green"))


@cli.command()
@click.argument("username")
@click.pass_obj
def revoke(db_path: str, username: str) -> None:
    """Withdraw approval from USERNAME."""
    _run(db_path, lambda db: update_user_approval(db, username, False))
    click.echo(f"Approval withdrawn: {username}")


@cli.command()
@click.argument("username")
@click.option("--yes", "-y", is_flag=True, help="Do not ask for confirmation.")
@click.pass_obj
def delete(db_path: str, username: str, yes: bool) -> None:
    """Delete USERNAME. Reading history is kept."""
    if not yes and not click.confirm(f"Delete user '{username}'?"):
        click.echo("Aborted.")
        return

    deleted = _run(db_path, lambda db: delete_user(db, username))
    if not deleted:
        raise click.ClickException(f"User not found: {username}")
    click.echo(click.style(f"Deleted: {username}", fg="green"))


@cli.command()
@click.argument("username")
@click.option("--limit", "-n", type=int, default=10, show_default=True, help="Rows per section.")
@click.pass_obj
def history(db_path: str, username: str, limit: int) -> None:
    """Show recent reading sessions and quiz results of USERNAME."""

    async def action(db: Database):
        return (
            await get_user(db, username),
            await get_reading_sessions(db, username, limit),
            await get_quiz_results(db, username, limit),
            await get_stats_summary(db, username),
        )

    account, sessions, results, stats = _run(db_path, action)

    if account is None:
        click.echo(click.style(f"{username}: account deleted or never registered", fg="yellow"))

    click.echo(click.style("Reading sessions:", bold=True))
    if not sessions:
        click.echo("  (none)")
    for s in sessions:
        click.echo(
            f"  {s.date}  {s.lesson_title or s.lesson_id or '-'}: "
            f"speed {s.speed}, errors {s.errors}, words {s.words_read}, {s.duration}s"
        )

    click.echo(click.style("Quiz results:", bold=True))
    if not results:
        click.echo("  (none)")
    for r in results:
        click.echo(
            f"  {r.date}  {r.lesson_title or r.lesson_id or '-'}: "
            f"{r.correct_answers}/{r.total_questions} ({r.score})"
        )

    if stats.get("total_sessions") or stats.get("total_quizzes"):
        avg_speed = round(stats.get("avg_speed") or 0, 1)
        avg_score = round(stats.get("avg_score") or 0, 1)
        click.echo(click.style("Totals:", bold=True))
        click.echo(f"  Sessions: {stats['total_sessions']}, words read: {stats['total_words_read'] or 0}, avg speed: {avg_speed}")
        click.echo(f"  Quizzes: {stats['total_quizzes']}, avg score: {avg_score}")


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
