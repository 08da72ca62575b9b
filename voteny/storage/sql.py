"""SQL repository implementation for the vote table."""

from datetime import UTC, datetime
from typing import Any

import databases
import sqlalchemy as sa
from loguru import logger
from sqlalchemy.dialects import mysql, postgresql, sqlite

from ..exceptions import ConfigurationError
from ..types import VoteRecord
from .schema import ensure_sqlite_directory

# URL dialect -> INSERT construct with upsert support
UPSERT_INSERTS = {
    "sqlite": sqlite.insert,
    "postgresql": postgresql.insert,
    "mysql": mysql.insert,
}

metadata = sa.MetaData()

votes = sa.Table(
    "vote",
    metadata,
    sa.Column("vote_id", sa.Integer, primary_key=True, autoincrement=True),
    sa.Column("username", sa.String(255), nullable=False),
    sa.Column("vote_user_id", sa.Integer, nullable=False),
    sa.Column("vote_page_id", sa.Integer, nullable=False),
    sa.Column("vote_value", sa.SmallInteger, nullable=False),
    sa.Column("vote_date", sa.DateTime, nullable=False),
    sa.Column("vote_ip", sa.String(45)),
    sa.UniqueConstraint("vote_page_id", "vote_user_id", name="vote_page_user"),
)


class SQLVoteRepository:
    """SQLite/MySQL/PostgreSQL vote repository using databases."""

    def __init__(self, database_url: str):
        """Initialize vote repository.

        Args:
            database_url: Database connection URL.
        """
        self.database = databases.Database(database_url)
        self.votes = votes

    async def startup(self) -> None:
        """Open the database connection."""
        ensure_sqlite_directory(str(self.database.url))
        await self.database.connect()
        logger.info(f"Vote repository connected ({self.database.url.dialect})")

    async def shutdown(self) -> None:
        """Close database connection."""
        await self.database.disconnect()

    async def count_votes(self, page_id: int | None = None) -> int:
        """Count votes.

        Args:
            page_id: Restrict the count to one page. Counts every vote when None.

        Returns:
            Number of matching vote rows.
        """
        query = sa.select(sa.func.count()).select_from(self.votes)
        if page_id is not None:
            query = query.where(self.votes.c.vote_page_id == page_id)
        return int(await self.database.fetch_val(query) or 0)

    async def average_score(self, page_id: int) -> float:
        """Average vote value of a page.

        Args:
            page_id: Page identifier.

        Returns:
            The average, or 0.0 when the page has no votes.
        """
        query = sa.select(sa.func.avg(self.votes.c.vote_value)).where(
            self.votes.c.vote_page_id == page_id
        )
        average = await self.database.fetch_val(query)
        return float(average) if average is not None else 0.0

    async def get_vote(self, page_id: int, user_id: int) -> VoteRecord | None:
        """Get a user's vote on a page."""
        query = self.votes.select().where(
            self.votes.c.vote_page_id == page_id,
            self.votes.c.vote_user_id == user_id,
        )
        row = await self.database.fetch_one(query)
        return self._to_record(row) if row else None

    async def save_vote(
        self, page_id: int, user_id: int, username: str, value: int, ip: str | None = None
    ) -> VoteRecord:
        """Cast a vote, replacing the user's earlier vote on the page.

        Args:
            page_id: Page identifier.
            user_id: Voting user identifier.
            username: Voting user's name.
            value: Vote value.
            ip: Client address, if known.

        Returns:
            The stored vote.
        """
        now = datetime.now(UTC).replace(tzinfo=None)
        changes = {"username": username, "vote_value": value, "vote_date": now, "vote_ip": ip}
        await self.database.execute(self._upsert(page_id, user_id, changes))

        logger.debug(f"Stored vote page={page_id} user={user_id} value={value}")
        return {
            "page_id": page_id,
            "user_id": user_id,
            "username": username,
            "value": value,
            "timestamp": now.isoformat(),
        }

    async def delete_vote(self, page_id: int, user_id: int) -> bool:
        """Withdraw a user's vote on a page.

        Returns:
            True if a vote was removed, False if the user had not voted.
        """
        if await self.get_vote(page_id, user_id) is None:
            return False

        query = self.votes.delete().where(
            self.votes.c.vote_page_id == page_id,
            self.votes.c.vote_user_id == user_id,
        )
        await self.database.execute(query)
        logger.debug(f"Removed vote page={page_id} user={user_id}")
        return True

    async def health_check(self) -> bool:
        """Check if database is accessible.

        Returns:
            True if database is healthy, False otherwise.
        """
        try:
            await self.database.execute("SELECT 1")
            return True
        except (ConnectionError, TimeoutError, OSError):
            logger.exception("Database health check failed")
            return False

    def _upsert(self, page_id: int, user_id: int, changes: dict[str, Any]) -> Any:
        """Single-statement insert that replaces the vote on a (page, user) conflict."""
        dialect = self.database.url.dialect
        insert = UPSERT_INSERTS.get(dialect)
        if insert is None:
            raise ConfigurationError(f"Cannot store votes on {dialect}")

        query = insert(self.votes).values(vote_page_id=page_id, vote_user_id=user_id, **changes)
        if dialect == "mysql":
            return query.on_duplicate_key_update(**changes)
        return query.on_conflict_do_update(
            index_elements=[self.votes.c.vote_page_id, self.votes.c.vote_user_id],
            set_=changes,
        )

    @staticmethod
    def _to_record(row: Any) -> VoteRecord:
        timestamp = row["vote_date"]
        return {
            "page_id": row["vote_page_id"],
            "user_id": row["vote_user_id"],
            "username": row["username"],
            "value": int(row["vote_value"]),
            "timestamp": timestamp.isoformat() if isinstance(timestamp, datetime) else str(timestamp),
        }
