"""CLI tools for lien recovery administration."""

from pathlib import Path
from uuid import UUID

import click
from sqlalchemy import select

from lien_recovery.core.security import create_session_token
from lien_recovery.db.enums import Role
from lien_recovery.db.models import User
from lien_recovery.db.session import SessionLocal
from lien_recovery.services import import_service, user_service
from lien_recovery.services.errors import RecordServiceError


@click.group()
def cli():
    """Lien recovery CLI tools."""
    pass


@cli.command()
@click.option("--username", required=True, help="Login name (stored lower-case)")
@click.option("--full-name", required=True, help="Display name; providers must use the clinic name")
@click.option("--email", required=True, help="Email address")
@click.option(
    "--role",
    required=True,
    type=click.Choice([r.value for r in Role]),
    help="User role",
)
def create_user(username: str, full_name: str, email: str, role: str):
    """
    Create a user.

    Example:
        python -m lien_recovery.cli create-user --username jdoe --full-name "Jane Doe" \\
            --email jdoe@example.com --role collector
    """
    db = SessionLocal()
    try:
        user = user_service.create_user(
            db, username=username, full_name=full_name, email=email, role=role
        )
        click.echo(f"✓ Created user: {user.username}")
        click.echo(f"  ID: {user.id}")
        click.echo(f"  Role: {user.role}")
    except RecordServiceError as e:
        db.rollback()
        raise click.ClickException(str(e))
    finally:
        db.close()


@cli.command()
@click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--collector-id", type=click.UUID, default=None, help="Pre-assign every row to this collector")
def import_records(path: Path, collector_id: UUID | None):
    """
    Import records from a .csv or .xlsx file.

    Example:
        python -m lien_recovery.cli import-records ./records.xlsx --collector-id <uuid>
    """
    file_format = "xlsx" if path.suffix.lower() == ".xlsx" else "csv"
    db = SessionLocal()
    try:
        result = import_service.import_records(
            db, path.read_bytes(), collector_id=collector_id, file_format=file_format
        )
        click.echo(f"✓ Created {result.created} records")
        if result.skipped:
            click.echo(f"  Skipped {result.skipped} rows without a patient name")
        for failure in result.failed:
            click.echo(f"❌ Row {failure.row_number}: {failure.error}")
    except RecordServiceError as e:
        raise click.ClickException(str(e))
    finally:
        db.close()


@cli.command()
@click.option("--username", required=True, help="User to issue a session token for")
def issue_token(username: str):
    """
    Print a session token for a user (local tooling and API testing).

    Example:
        python -m lien_recovery.cli issue-token --username jdoe
    """
    db = SessionLocal()
    try:
        user = db.scalars(select(User).where(User.username == username.strip().lower())).first()
        if user is None:
            raise click.ClickException(f"User '{username}' not found")
        click.echo(create_session_token(user.id, user.role, user.token_version))
    finally:
        db.close()


if __name__ == "__main__":
    cli()
