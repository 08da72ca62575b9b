"""Entry point for python -m voteny."""

import asyncio

import click
import databases
import uvicorn

from .api import configure_logging
from .config import settings
from .exceptions import UnsupportedDatabaseError
from .hooks import VoteHooks
from .storage.schema import SchemaUpdater, ensure_sqlite_directory


@click.group()
def cli() -> None:
    """VoteNY command line."""
    configure_logging()


@cli.command()
@click.option("--host", default=None, help="Bind address (defaults to VOTENY_HOST).")
@click.option("--port", default=None, type=int, help="Port (defaults to VOTENY_PORT).")
def serve(host: str | None, port: int | None) -> None:
    """Run the VoteNY API server."""
    uvicorn.run(
        "voteny.api:app",
        host=host or settings.host,
        port=port or settings.port,
        log_level=settings.log_level.lower(),
    )


async def run_schema_updates(database_url: str) -> list[str]:
    """Create the vote table on a database if it is missing.

    Returns:
        Names of the tables that were created.

    Raises:
        UnsupportedDatabaseError: No table definition exists for the engine.
    """
    updater = SchemaUpdater(database_url)
    VoteHooks.add_table(updater)

    ensure_sqlite_directory(database_url)
    database = databases.Database(database_url)
    await database.connect()
    try:
        return await updater.do_updates(database)
    finally:
        await database.disconnect()


@cli.command()
@click.option("--database-url", default=None, help="Database URL (defaults to VOTENY_DATABASE_URL).")
def update(database_url: str | None) -> None:
    """Create or update the database tables VoteNY needs."""
    try:
        created = asyncio.run(run_schema_updates(database_url or settings.database_url))
    except UnsupportedDatabaseError as e:
        raise click.ClickException(str(e)) from e

    if created:
        click.echo(f"Created tables: {', '.join(created)}")
    else:
        click.echo("Nothing to do, all tables exist.")


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
