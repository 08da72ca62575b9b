"""Tests for vote table schema updates."""

import databases
import pytest

from voteny.exceptions import ConfigurationError, UnsupportedDatabaseError
from voteny.hooks import VoteHooks
from voteny.storage import SchemaUpdater, engine_type, schema_file
from voteny.storage.schema import ensure_sqlite_directory, split_statements


@pytest.mark.parametrize(
    ("url", "engine"),
    [
        ("sqlite+aiosqlite:///./data/voteny.db", "sqlite"),
        ("sqlite:///votes.db", "sqlite"),
        ("postgresql://wiki:secret@db/wiki", "postgres"),
        ("postgresql+asyncpg://wiki:secret@db/wiki", "postgres"),
        ("mysql+aiomysql://wiki:secret@db/wiki", "mysql"),
        ("mssql://wiki:secret@db/wiki", "mssql"),
    ],
)
def test_engine_type(url, engine):
    assert engine_type(url) == engine


@pytest.mark.parametrize("engine", ["sqlite", "mysql", "postgres"])
def test_schema_file_shipped_for_engine(engine):
    path = schema_file(engine)

    assert path.name == f"vote.{engine}"
    assert path.exists()
    assert "CREATE TABLE" in path.read_text(encoding="utf-8")


def test_schema_file_missing_for_unknown_engine():
    assert not schema_file("oracle").exists()


def test_split_statements_drops_comments_and_blanks():
    sql = """
    -- leading comment
    CREATE TABLE a (id INTEGER);

    -- another
    CREATE INDEX a_id ON a (id);
    ;
    """

    statements = list(split_statements(sql))

    assert statements == ["CREATE TABLE a (id INTEGER)", "CREATE INDEX a_id ON a (id)"]


def test_ensure_sqlite_directory(tmp_path):
    target = tmp_path / "a" / "b" / "votes.db"

    ensure_sqlite_directory(f"sqlite+aiosqlite:///{target}")

    assert target.parent.is_dir()
    assert not target.exists()


def test_ensure_sqlite_directory_ignores_other_engines(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)

    ensure_sqlite_directory("postgresql://wiki@db/wiki")
    ensure_sqlite_directory("sqlite+aiosqlite:///:memory:")

    assert list(tmp_path.iterdir()) == []


class TestAddTable:
    def test_queues_add_table_step(self, database_url):
        updater = SchemaUpdater(database_url)

        assert VoteHooks.add_table(updater) is True
        assert updater.updates == [("addTable", "vote", str(schema_file("sqlite")), True)]

    def test_postgres_uses_postgres_file(self):
        updater = SchemaUpdater("postgresql://wiki@db/wiki")

        VoteHooks.add_table(updater)

        assert updater.updates[0][2].endswith("vote.postgres")

    def test_unsupported_engine_raises(self):
        updater = SchemaUpdater("mssql://wiki:secret@db/wiki")

        with pytest.raises(UnsupportedDatabaseError, match=r"VoteNY does not support mssql\.") as exc_info:
            VoteHooks.add_table(updater)

        assert exc_info.value.engine == "mssql"
        assert updater.updates == []


class TestDoUpdates:
    @pytest.mark.asyncio
    async def test_creates_table_once(self, database_url):
        database = databases.Database(database_url)
        await database.connect()
        try:
            updater = SchemaUpdater(database_url)
            VoteHooks.add_table(updater)
            assert await updater.do_updates(database) == ["vote"]
            assert await updater.table_exists(database, "vote") is True
            assert updater.updates == []

            VoteHooks.add_table(updater)
            assert await updater.do_updates(database) == []
        finally:
            await database.disconnect()

    @pytest.mark.asyncio
    async def test_created_table_enforces_one_vote_per_user_and_page(self, repository):
        insert = (
            "INSERT INTO vote (username, vote_user_id, vote_page_id, vote_value, vote_date) "
            "VALUES ('Alice', 7, 1, 3, '2024-01-01 00:00:00')"
        )
        await repository.database.execute(insert)

        with pytest.raises(Exception, match="UNIQUE"):
            await repository.database.execute(insert)

    @pytest.mark.asyncio
    async def test_unknown_step_raises(self, database_url):
        database = databases.Database(database_url)
        await database.connect()
        try:
            updater = SchemaUpdater(database_url)
            updater.add_extension_update(("dropTable", "vote"))

            with pytest.raises(ConfigurationError, match="dropTable"):
                await updater.do_updates(database)
        finally:
            await database.disconnect()
