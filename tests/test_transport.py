"""
Tests for the local file replica and the composite transport.
"""

import json

import pytest

from teamsync.models import Snapshot, Team
from teamsync.transport import HttpRemote, LocalFileStore, ReplicaTransport
from teamsync.utils.config import TeamSyncConfig
from teamsync.utils.errors import StorageError


class TestLocalFileStore:
    """Test the JSON replica."""

    def test_missing_file_gives_blank_workspace(self, temp_dir):
        store = LocalFileStore(temp_dir / "workspace.json")
        snapshot = store.load()

        assert [u.id for u in snapshot.users] == ["u1"]
        assert snapshot.last_updated == 0

    def test_corrupt_file_gives_blank_workspace(self, temp_dir):
        path = temp_dir / "workspace.json"
        path.write_text("{not json")

        assert [u.id for u in LocalFileStore(path).load().users] == ["u1"]

    def test_malformed_document_gives_blank_workspace(self, temp_dir):
        path = temp_dir / "workspace.json"
        path.write_text(json.dumps({"users": [{"role": "Admin"}]}))

        assert [u.id for u in LocalFileStore(path).load().users] == ["u1"]

    def test_unreadable_file_moved_aside(self, temp_dir, workspace):
        path = temp_dir / "workspace.json"
        path.write_text("{not json")
        store = LocalFileStore(path)

        store.load()

        assert not path.exists()
        moved = list(temp_dir.glob("workspace.json.unreadable-*"))
        assert len(moved) == 1
        assert moved[0].read_text() == "{not json"

        store.save(workspace)
        assert store.load() == workspace
        assert moved[0].read_text() == "{not json"

    def test_unmovable_unreadable_file_never_overwritten(self, temp_dir, workspace, monkeypatch):
        path = temp_dir / "workspace.json"
        path.write_text("{not json")
        store = LocalFileStore(path)

        def refuse(src, dst):
            raise OSError("read-only directory")

        monkeypatch.setattr("teamsync.transport.local.os.replace", refuse)
        store.load()

        with pytest.raises(StorageError):
            store.save(workspace)
        assert path.read_text() == "{not json"

    def test_save_and_load(self, temp_dir, workspace):
        path = temp_dir / "nested" / "workspace.json"
        store = LocalFileStore(path)

        store.save(workspace)

        assert store.load() == workspace
        assert json.loads(path.read_text())["currentUserId"] == "alice"
        assert not path.with_suffix(".json.tmp").exists()

    def test_save_failure_raises_storage_error(self, temp_dir, workspace):
        blocker = temp_dir / "blocker"
        blocker.write_text("")
        store = LocalFileStore(blocker / "workspace.json")

        with pytest.raises(StorageError):
            store.save(workspace)

    def test_own_writes_not_reported(self, temp_dir, workspace):
        path = temp_dir / "workspace.json"
        store = LocalFileStore(path)
        seen = []

        store.save(workspace)
        store._handle_change(seen.append)
        assert seen == []

        other = workspace.evolve(last_updated=workspace.last_updated + 1)
        path.write_text(json.dumps(other.to_dict()))
        store._handle_change(seen.append)
        assert seen == [other]

    def test_unreadable_update_ignored(self, temp_dir):
        path = temp_dir / "workspace.json"
        store = LocalFileStore(path)
        seen = []

        path.write_text("[1, 2")
        store._handle_change(seen.append)
        assert seen == []


class TestReplicaTransport:
    """Test the composite transport."""

    @pytest.mark.asyncio
    async def test_without_remote(self, temp_dir, workspace):
        transport = ReplicaTransport(LocalFileStore(temp_dir / "w.json"))

        transport.save_local(workspace)

        assert transport.load_local() == workspace
        assert await transport.fetch_remote() is None
        assert await transport.push_remote(workspace) is None
        await transport.close()

    def test_watch_disabled(self, temp_dir):
        transport = ReplicaTransport(LocalFileStore(temp_dir / "w.json"), watch_local_updates=False)
        unsubscribe = transport.subscribe_local_updates(lambda s: None)
        unsubscribe()

    def test_generated_ids_unique(self, temp_dir):
        transport = ReplicaTransport(LocalFileStore(temp_dir / "w.json"))
        ids = {transport.generate_id() for _ in range(100)}
        assert len(ids) == 100

    def test_from_config(self, temp_dir):
        config = TeamSyncConfig(
            sync={"remote_url": "http://central:3000/", "request_timeout": 2.0},
            storage={"local_path": str(temp_dir / "w.json"), "watch_local_updates": False},
        )

        transport = ReplicaTransport.from_config(config)

        assert isinstance(transport.remote, HttpRemote)
        assert transport.remote.url == "http://central:3000/api/data"
        assert transport.remote.timeout == 2.0
        assert transport.local.path == temp_dir / "w.json"
        assert transport.watch_local_updates is False

    def test_from_config_override_path(self, temp_dir):
        transport = ReplicaTransport.from_config(TeamSyncConfig(), local_path=temp_dir / "o.json")
        assert transport.local.path == (temp_dir / "o.json").absolute()
