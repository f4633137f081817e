"""
Tests for the central copy server and its HTTP client.
"""

import json

import aiohttp
import pytest
from aiohttp import test_utils

from teamsync.models import Snapshot, Team, now_ms
from teamsync.server import CentralServer
from teamsync.transport import HttpRemote
from teamsync.utils.config import ServerConfig


@pytest.fixture
def server(temp_dir) -> CentralServer:
    return CentralServer(ServerConfig(db_path=temp_dir / "db.json"))


@pytest.fixture
async def client(server):
    async with test_utils.TestClient(test_utils.TestServer(server.app)) as client:
        yield client


def _base_url(client: test_utils.TestClient) -> str:
    return str(client.server.make_url("/"))


class TestCentralServer:
    """Test GET/POST /api/data."""

    @pytest.mark.asyncio
    async def test_initialised_with_admin(self, client, server):
        response = await client.get("/api/data")
        assert response.status == 200

        document = await response.json()
        assert [u["id"] for u in document["users"]] == ["u1"]
        assert document["users"][0]["role"] == "Admin"
        assert document["lastUpdated"] > 0
        assert server.db_path.exists()

    @pytest.mark.asyncio
    async def test_existing_document_kept(self, temp_dir):
        db_path = temp_dir / "db.json"
        db_path.write_text(json.dumps({"users": [], "lastUpdated": 7}))

        server = CentralServer(ServerConfig(db_path=db_path))
        async with test_utils.TestClient(test_utils.TestServer(server.app)) as client:
            response = await client.get("/api/data")
            assert await response.json() == {"users": [], "lastUpdated": 7}

    @pytest.mark.asyncio
    async def test_restart_continues_after_stored_stamp(self, temp_dir):
        db_path = temp_dir / "db.json"
        stored = now_ms() + 60_000
        db_path.write_text(json.dumps({"users": [], "lastUpdated": stored}))

        server = CentralServer(ServerConfig(db_path=db_path))
        async with test_utils.TestClient(test_utils.TestServer(server.app)) as client:
            response = await client.post("/api/data", json={"users": [], "lastUpdated": 1})
            body = await response.json()

        assert body["timestamp"] == stored + 1
        assert json.loads(db_path.read_text())["lastUpdated"] == stored + 1

    @pytest.mark.asyncio
    async def test_write_stamps_and_stores(self, client, server):
        before = now_ms()
        response = await client.post("/api/data", json={
            "users": [],
            "teams": [{"id": "t1", "name": "Core"}],
            "lastUpdated": 5,
            "futureKey": {"kept": True},
        })

        assert response.status == 200
        body = await response.json()
        assert body["success"] is True
        assert body["timestamp"] >= before

        stored = json.loads(server.db_path.read_text())
        assert stored["lastUpdated"] == body["timestamp"]
        assert stored["futureKey"] == {"kept": True}
        assert stored["teams"][0]["name"] == "Core"

    @pytest.mark.asyncio
    async def test_stamps_strictly_increase(self, client):
        stamps = []
        for _ in range(5):
            response = await client.post("/api/data", json={"users": []})
            stamps.append((await response.json())["timestamp"])

        assert stamps == sorted(set(stamps))

    @pytest.mark.asyncio
    async def test_rejects_invalid_bodies(self, client, server):
        response = await client.post("/api/data", data="{broken",
                                     headers={"Content-Type": "application/json"})
        assert response.status == 400

        response = await client.post("/api/data", json=[1, 2, 3])
        assert response.status == 400

        # The stored document is untouched
        document = json.loads(server.db_path.read_text())
        assert [u["id"] for u in document["users"]] == ["u1"]

    @pytest.mark.asyncio
    async def test_unreadable_document(self, client, server):
        server.db_path.write_text("{corrupt")
        response = await client.get("/api/data")
        assert response.status == 500


class TestHttpRemote:
    """Test the client against a live test server."""

    @pytest.mark.asyncio
    async def test_push_then_fetch(self, client):
        remote = HttpRemote(_base_url(client))
        snapshot = Snapshot(teams=(Team(id="t1", name="Core"),), current_user_id="u1", last_updated=3)

        try:
            timestamp = await remote.push(snapshot)
            fetched = await remote.fetch()
        finally:
            await remote.close()

        assert timestamp is not None and timestamp > 3
        assert fetched.last_updated == timestamp
        assert fetched.teams == snapshot.teams

    @pytest.mark.asyncio
    async def test_server_error_reads_as_offline(self, client, server):
        server.db_path.write_text("{corrupt")
        remote = HttpRemote(_base_url(client))

        try:
            assert await remote.fetch() is None
        finally:
            await remote.close()

    @pytest.mark.asyncio
    async def test_malformed_snapshot_reads_as_offline(self, client, server):
        server.db_path.write_text(json.dumps({"users": [{"role": "Admin"}]}))
        remote = HttpRemote(_base_url(client))

        try:
            assert await remote.fetch() is None
        finally:
            await remote.close()

    @pytest.mark.asyncio
    async def test_unknown_values_still_fetched(self, client, server):
        server.db_path.write_text(json.dumps({
            "users": [{"id": "u1", "role": "Admin"}],
            "meetings": [{"id": "m1", "actionItems": [{"id": "a1", "status": "Deferred"}]}],
            "lastUpdated": 9,
        }))
        remote = HttpRemote(_base_url(client))

        try:
            fetched = await remote.fetch()
        finally:
            await remote.close()

        assert fetched.last_updated == 9
        assert fetched.meetings[0].action_items[0].status == "Deferred"

    @pytest.mark.asyncio
    async def test_unreachable(self):
        remote = HttpRemote("http://127.0.0.1:1", timeout=1.0)

        try:
            assert await remote.fetch() is None
            assert await remote.push(Snapshot()) is None
        finally:
            await remote.close()

    @pytest.mark.asyncio
    async def test_borrowed_session_left_open(self, client):
        async with aiohttp.ClientSession() as session:
            remote = HttpRemote(_base_url(client), session=session)
            assert await remote.fetch() is not None
            await remote.close()
            assert not session.closed
