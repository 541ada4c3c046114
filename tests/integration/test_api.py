"""
Integration tests for the API endpoints.
"""

import pytest
import pytest_asyncio
from httpx import AsyncClient

from queuesync.constants import RejectReason
from queuesync.core.service import QueueService


async def _append(client: AsyncClient, name: str):
    return await client.post(
        "/v1/queue/deltas",
        json={"action": 3, "media": {"url": name, "title": name.upper()}},
    )


class TestQueueAPI:
    """Integration tests for queue API endpoints."""

    @pytest_asyncio.fixture
    async def two_items(self, client: AsyncClient) -> None:
        """Queue holding a and b at version 2."""
        await _append(client, "a")
        await _append(client, "b")

    @pytest.mark.asyncio
    async def test_get_empty_queue(self, client: AsyncClient):
        response = await client.get("/v1/queue")

        assert response.status_code == 200
        assert response.json() == {"items": [], "version": 0, "length": 0, "queue_max": -1}

    @pytest.mark.asyncio
    async def test_propose_append(self, client: AsyncClient):
        """Test a valid delta is applied and returned with its version."""
        response = await _append(client, "a")

        assert response.status_code == 200
        data = response.json()
        assert data["version"] == 1
        assert data["delta"] == {
            "action": 3,
            "indexes": [],
            "media": {"url": "a", "title": "A", "thumbnail": None},
            "version": 1,
        }

        queue = (await client.get("/v1/queue")).json()
        assert [item["url"] for item in queue["items"]] == ["a"]
        assert queue["version"] == 1

    @pytest.mark.asyncio
    async def test_propose_out_of_range(self, client: AsyncClient, two_items):
        """Test deleting past the end is a conflict and changes nothing."""
        response = await client.post("/v1/queue/deltas", json={"action": 1, "indexes": [5]})

        assert response.status_code == 409
        data = response.json()
        assert data["reason"] == RejectReason.INDEX_OUT_OF_RANGE
        assert data["version"] == 2

        queue = (await client.get("/v1/queue")).json()
        assert queue["version"] == 2
        assert queue["length"] == 2

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "body, reason",
        [
            ({"action": 11}, RejectReason.UNKNOWN_ACTION_CODE),
            ({"action": 5}, RejectReason.MALFORMED_DELTA),
            ({"action": 0, "indexes": [0]}, RejectReason.MALFORMED_DELTA),
            ({"action": 3}, RejectReason.MISSING_MEDIA),
            ({"action": 3, "media": {"title": "no url"}}, RejectReason.MISSING_MEDIA),
            ({"indexes": [0]}, RejectReason.MALFORMED_DELTA),
            ([1, 2], RejectReason.MALFORMED_DELTA),
            ("x", RejectReason.MALFORMED_DELTA),
            (None, RejectReason.MALFORMED_DELTA),
        ],
    )
    async def test_propose_invalid(
        self,
        client: AsyncClient,
        service: QueueService,
        body: object,
        reason: RejectReason,
    ):
        """Test every unusable body gets a rejection in the error shape."""
        response = await client.post("/v1/queue/deltas", json=body)

        assert response.status_code == 422
        data = response.json()
        assert data["reason"] == reason
        assert data["error"] == "Delta rejected"
        assert data["version"] == 0
        assert service.version == 0

    @pytest.mark.asyncio
    async def test_advance(self, client: AsyncClient, two_items):
        """Test advancing twice: the first pops the front, the second does not."""
        first = await client.post("/v1/queue/advance")

        assert first.status_code == 200
        data = first.json()
        assert data["status"] == "advanced"
        assert data["delta"]["action"] == 1
        assert data["delta"]["indexes"] == [0]
        assert data["version"] == 3

        second = (await client.post("/v1/queue/advance")).json()
        assert second["status"] == "unchanged"
        assert second["current"]["url"] == "b"
        assert second["version"] == 3

    @pytest.mark.asyncio
    async def test_advance_empty(self, client: AsyncClient):
        data = (await client.post("/v1/queue/advance")).json()

        assert data["status"] == "empty"
        assert data["current"] is None
        assert data["version"] == 0

    @pytest.mark.asyncio
    async def test_sync_replay(self, client: AsyncClient, two_items):
        response = await client.get("/v1/queue/sync", params={"version": 0})

        assert response.status_code == 200
        data = response.json()
        assert data["kind"] == "replay"
        assert data["version"] == 2
        assert [d["version"] for d in data["deltas"]] == [1, 2]

    @pytest.mark.asyncio
    async def test_sync_snapshot_after_eviction(self, client: AsyncClient, service: QueueService):
        total = service.delta_buffer_max + 2
        for i in range(total):
            await _append(client, f"item-{i}")

        data = (await client.get("/v1/queue/sync", params={"version": 0})).json()

        assert data["kind"] == "snapshot"
        assert data["version"] == total
        assert len(data["items"]) == total

    @pytest.mark.asyncio
    async def test_diff_and_current(self, client: AsyncClient, two_items):
        diff = (await client.get("/v1/queue/diff", params={"version": 1})).json()
        current = (await client.get("/v1/queue/current")).json()

        assert diff == {"diff": 1, "version": 2}
        assert current["current"]["url"] == "a"
        assert current["version"] == 2

    @pytest.mark.asyncio
    async def test_set_queue_max(self, client: AsyncClient, two_items):
        response = await client.put("/v1/queue/max", json={"queue_max": 2})

        assert response.status_code == 200
        assert response.json()["queue_max"] == 2

        rejected = await _append(client, "c")
        assert rejected.status_code == 409
        assert rejected.json()["reason"] == RejectReason.QUEUE_FULL

    @pytest.mark.asyncio
    async def test_set_queue_max_invalid(self, client: AsyncClient):
        response = await client.put("/v1/queue/max", json={"queue_max": -5})

        assert response.status_code == 422


class TestHealthAPI:
    """Integration tests for health endpoints."""

    @pytest.mark.asyncio
    async def test_health(self, client: AsyncClient):
        await _append(client, "a")

        response = await client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["queue_version"] == 1
        assert data["queue_length"] == 1

    @pytest.mark.asyncio
    async def test_live_and_ready(self, client: AsyncClient):
        assert (await client.get("/live")).json() == {"alive": True}
        assert (await client.get("/ready")).json() == {
            "ready": True,
            "queue_version": 0,
            "observers": 0,
            "media_client": False,
        }

    @pytest.mark.asyncio
    async def test_metrics(self, client: AsyncClient):
        await _append(client, "a")

        response = await client.get("/metrics")

        assert response.status_code == 200
        assert "queue_deltas_applied_total" in response.text
