"""Tests for the mapping of governance errors to HTTP responses."""

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from aigp_node.core.errors import (
    InternalError,
    NotFoundError,
    StoreError,
    TraceStateError,
    ValidationError,
)
from aigp_node.server.exception_handlers import setup_exception_handlers


@pytest.fixture
def app() -> FastAPI:
    app = FastAPI()
    setup_exception_handlers(app)

    @app.get("/validation")
    async def raise_validation():
        raise ValidationError("bad input", {"from": "must not be after 'to'"})

    @app.get("/not-found")
    async def raise_not_found():
        raise NotFoundError("Trace", "abc")

    @app.get("/conflict")
    async def raise_conflict():
        raise TraceStateError("abc", "success")

    @app.get("/store")
    async def raise_store():
        raise StoreError("traces.create", "password authentication failed for user 'admin'")

    @app.get("/internal")
    async def raise_internal():
        raise InternalError("invariant broken")

    return app


@pytest.fixture
async def client(app: FastAPI):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


async def test_validation_error_enumerates_fields(client: AsyncClient) -> None:
    response = await client.get("/validation")

    assert response.status_code == 400
    assert response.json()["details"] == [{"field": "from", "message": "must not be after 'to'"}]


async def test_not_found_is_404(client: AsyncClient) -> None:
    response = await client.get("/not-found")

    assert response.status_code == 404
    assert "abc" in response.json()["message"]


async def test_trace_state_error_is_409(client: AsyncClient) -> None:
    response = await client.get("/conflict")

    assert response.status_code == 409
    assert response.json()["status"] == "success"


@pytest.mark.parametrize("path", ["/store", "/internal"])
async def test_server_errors_hide_details(client: AsyncClient, path: str) -> None:
    response = await client.get(path)

    assert response.status_code == 500
    body = response.json()
    assert set(body) == {"detail", "error_id"}
    assert body["detail"] == "Internal server error"
    assert "password" not in response.text


async def test_store_error_is_logged_with_error_id(client: AsyncClient, caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level("ERROR"):
        response = await client.get("/store")

    error_id = response.json()["error_id"]
    assert any(error_id in r.getMessage() for r in caplog.records)


def test_store_error_is_retryable_by_default() -> None:
    assert StoreError("op", "down").retryable is True
    assert StoreError("op", "bad row", retryable=False).retryable is False
