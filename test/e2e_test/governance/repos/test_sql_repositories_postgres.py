"""SQL repositories against a real PostgreSQL server started by testcontainers.

Enable with ``DATABASE__ENABLE_POSTGRES_TESTS=true`` (requires Docker).
"""

from typing import AsyncGenerator, Iterator

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine

from aigp_node.governance.repos.models import Base
from aigp_node.governance.repos.sql import (
    SqlRepoBundle,
    build_sql_repos,
    create_all,
    create_engine,
    create_sessionmaker,
)
from test.settings import test_settings

from ._scenarios import (
    ConcurrencyScenarios,
    LedgerRepositoryScenarios,
    PolicyRepositoryScenarios,
    StatsRepositoryScenarios,
    TraceRepositoryScenarios,
)

pytestmark = [
    pytest.mark.postgres,
    pytest.mark.skipif(
        not test_settings.database.enable_postgres_tests,
        reason="PostgreSQL tests are disabled (set DATABASE__ENABLE_POSTGRES_TESTS=true)",
    ),
]


@pytest.fixture(scope="module")
def postgres_url() -> Iterator[str]:
    from testcontainers.postgres import PostgresContainer

    with PostgresContainer(test_settings.database.postgres.image) as container:
        yield container.get_connection_url()


@pytest_asyncio.fixture
async def engine(postgres_url: str) -> AsyncGenerator[AsyncEngine, None]:
    engine = create_engine(postgres_url)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await create_all(engine)
    try:
        yield engine
    finally:
        await engine.dispose()


@pytest.fixture
def repos(engine: AsyncEngine) -> SqlRepoBundle:
    return build_sql_repos(session_factory=create_sessionmaker(engine), timeout_seconds=10.0)


class TestPostgresPolicyRepository(PolicyRepositoryScenarios):
    pass


class TestPostgresTraceRepository(TraceRepositoryScenarios, ConcurrencyScenarios):
    pass


class TestPostgresLedgerRepository(LedgerRepositoryScenarios):
    pass


class TestPostgresStatsRepository(StatsRepositoryScenarios):
    pass
