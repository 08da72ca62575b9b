"""Shared test fixtures."""

import os
from collections.abc import AsyncGenerator

# Set test environment before the package reads its settings
os.environ["VOTENY_DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["VOTENY_RATE_LIMIT"] = "1000/minute"
os.environ["VOTENY_LOG_LEVEL"] = "ERROR"  # Reduce log noise
os.environ["VOTENY_SECRET_KEY"] = "test-secret-key"
os.environ.pop("VOTENY_REDIS_URL", None)

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from voteny import app
from voteny.aggregates import VoteAggregates
from voteny.hooks import VoteHooks
from voteny.host import PageTitle, PageTitleFactory
from voteny.middleware import create_token
from voteny.storage import InMemoryCache, SchemaUpdater, SQLVoteRepository


class FakeClock:
    """Manually advanced time source for TTL tests."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


MAIN_PAGE = PageTitle(article_id=1, text="Main Page")
HELP_PAGE = PageTitle(article_id=2, text="Help:Contents")


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def cache(clock: FakeClock) -> InMemoryCache:
    return InMemoryCache(clock=clock)


@pytest.fixture
def database_url(tmp_path) -> str:
    return f"sqlite+aiosqlite:///{tmp_path / 'votes.db'}"


@pytest_asyncio.fixture
async def repository(database_url: str) -> AsyncGenerator[SQLVoteRepository, None]:
    """Repository over a fresh SQLite file with the vote table created."""
    repo = SQLVoteRepository(database_url)
    await repo.startup()

    updater = SchemaUpdater(database_url)
    VoteHooks.add_table(updater)
    await updater.do_updates(repo.database)

    yield repo
    await repo.shutdown()


@pytest.fixture
def aggregates(repository: SQLVoteRepository, cache: InMemoryCache) -> VoteAggregates:
    return VoteAggregates(repository, cache, key_prefix="testwiki")


@pytest.fixture
def hooks(aggregates: VoteAggregates, repository: SQLVoteRepository) -> VoteHooks:
    return VoteHooks(aggregates, repository, titles=PageTitleFactory(MAIN_PAGE, HELP_PAGE))


@pytest_asyncio.fixture
async def client(
    repository: SQLVoteRepository,
    cache: InMemoryCache,
    aggregates: VoteAggregates,
    hooks: VoteHooks,
) -> AsyncGenerator[AsyncClient, None]:
    """Test client with real storage injected via app.state."""
    app.state.repository = repository
    app.state.cache = cache
    app.state.aggregates = aggregates
    app.state.hooks = hooks

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    for name in ("repository", "cache", "aggregates", "hooks"):
        delattr(app.state, name)


@pytest.fixture
def auth_headers() -> dict[str, str]:
    """Bearer token for user 7 (Alice)."""
    return {"Authorization": f"Bearer {create_token(7, 'Alice')}"}
