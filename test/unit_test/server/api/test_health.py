from datetime import datetime

from httpx import AsyncClient

from aigp_node.server.core import constant


async def test_health_reports_status_uptime_and_timestamp(client: AsyncClient) -> None:
    response = await client.get("/health")

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "ok"
    assert isinstance(body["uptime"], int)
    assert body["uptime"] >= 0
    assert datetime.fromisoformat(body["timestamp"].replace("Z", "+00:00")).tzinfo is not None


async def test_health_sets_process_time_header(client: AsyncClient) -> None:
    response = await client.get("/health")

    assert float(response.headers["X-Process-Time"]) >= 0


async def test_version(client: AsyncClient) -> None:
    response = await client.get("/version")

    assert response.status_code == 200
    assert response.json() == {"version": constant.VERSION, "schemaVersion": constant.SCHEMA_VERSION}
