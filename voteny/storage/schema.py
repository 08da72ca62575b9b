"""Schema updates for the vote table.

Table definitions live as one SQL file per database engine in ``voteny/sql``
(``vote.sqlite``, ``vote.mysql``, ``vote.postgres``). The hooks register an
``addTable`` step with an updater; :class:`SchemaUpdater` runs those steps
against a ``databases.Database``.
"""

from collections.abc import Iterator
from pathlib import Path
from typing import Any, Protocol

import databases
from loguru import logger

from ..exceptions import ConfigurationError

SQL_DIR = Path(__file__).resolve().parent.parent / "sql"

# URL dialect name -> schema file suffix
ENGINE_ALIASES = {"postgresql": "postgres"}

_TABLE_EXISTS_SQL = {
    "sqlite": "SELECT name FROM sqlite_master WHERE type = 'table' AND name = :name",
    "mysql": (
        "SELECT table_name FROM information_schema.tables "
        "WHERE table_schema = DATABASE() AND table_name = :name"
    ),
    "postgres": (
        "SELECT table_name FROM information_schema.tables "
        "WHERE table_schema = current_schema() AND table_name = :name"
    ),
}


def engine_type(database_url: str) -> str:
    """Engine name of a database URL, as used in schema file names."""
    dialect = databases.DatabaseURL(database_url).dialect
    return ENGINE_ALIASES.get(dialect, dialect)


def schema_file(engine: str) -> Path:
    """Path of the vote table definition for an engine (may not exist)."""
    return SQL_DIR / f"vote.{engine}"


def split_statements(sql: str) -> Iterator[str]:
    """Split a schema file into statements, dropping ``--`` comment lines."""
    lines = [line for line in sql.splitlines() if not line.lstrip().startswith("--")]
    for statement in "\n".join(lines).split(";"):
        statement = statement.strip()
        if statement:
            yield statement


class DatabaseUpdater(Protocol):
    """What the hooks need from the host's upgrade tool."""

    @property
    def db_type(self) -> str:
        """Engine name of the database being upgraded."""
        ...

    def add_extension_update(self, update: tuple[Any, ...]) -> None:
        """Queue an update step."""
        ...


class SchemaUpdater:
    """Collects ``addTable`` steps for a database and runs them."""

    def __init__(self, database_url: str) -> None:
        self.database_url = database_url
        self.updates: list[tuple[Any, ...]] = []

    @property
    def db_type(self) -> str:
        return engine_type(self.database_url)

    def add_extension_update(self, update: tuple[Any, ...]) -> None:
        self.updates.append(update)

    async def table_exists(self, database: databases.Database, table: str) -> bool:
        query = _TABLE_EXISTS_SQL.get(self.db_type)
        if query is None:
            raise ConfigurationError(f"Cannot inspect tables on {self.db_type}")
        return await database.fetch_one(query=query, values={"name": table}) is not None

    async def apply_patch(self, database: databases.Database, path: Path) -> None:
        """Execute every statement of a schema file."""
        for statement in split_statements(path.read_text(encoding="utf-8")):
            await database.execute(statement)

    async def do_updates(self, database: databases.Database) -> list[str]:
        """Run the queued steps on a connected database.

        Returns:
            Names of the tables that were created.
        """
        created = []
        for update in self.updates:
            action, *params = update
            if action != "addTable":
                raise ConfigurationError(f"Unknown schema update step: {action}")

            table, path = params[0], Path(params[1])
            if await self.table_exists(database, table):
                logger.info(f"...{table} table already exists")
                continue

            logger.info(f"Creating {table} table from {path.name}")
            await self.apply_patch(database, path)
            created.append(table)

        self.updates.clear()
        return created


def ensure_sqlite_directory(database_url: str) -> None:
    """Create the directory of a SQLite database file if it is missing."""
    url = databases.DatabaseURL(database_url)
    if url.dialect != "sqlite" or not url.database or url.database == ":memory:":
        return
    Path(url.database).parent.mkdir(parents=True, exist_ok=True)
