from typing import AsyncGenerator

import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from aigp_node.governance.repos.sql import SqlStore
from aigp_node.server.main import create_app
from aigp_node.server.services.governance import GovernanceService
from test.fakes import InMemoryRepos

# Use in-memory SQLite for testing
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture
def fake_repos() -> InMemoryRepos:
    return InMemoryRepos()


@pytest.fixture
def app(fake_repos: InMemoryRepos) -> FastAPI:
    """Application wired to in-memory repositories; no store is opened."""
    governance = GovernanceService.from_repos(
        policies=fake_repos.policies,
        traces=fake_repos.traces,
        ledger=fake_repos.ledger,
        stats=fake_repos.stats,
    )
    return create_app(governance=governance)


@pytest_asyncio.fixture(name="client")
async def client_fixture(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client over the ASGI app backed by in-memory repositories."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@pytest_asyncio.fixture(name="sql_client")
async def sql_client_fixture() -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client over the ASGI app backed by an in-memory SQLite store."""
    store = await SqlStore.open(TEST_DATABASE_URL, create_schema=True)
    repos = store.repos
    governance = GovernanceService.from_repos(
        policies=repos.policies,
        traces=repos.traces,
        ledger=repos.ledger,
        stats=repos.stats,
    )
    app = create_app(governance=governance)
    try:
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
            yield ac
    finally:
        await store.close()
