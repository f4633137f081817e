"""
Tests for the state store and the merge policy.
"""

import pytest

from teamsync.models import LLMConfig, Snapshot, Team
from teamsync.sync import StateStore, is_newer, merge_remote, next_timestamp


class TestStateStore:
    """Test snapshot installation and broadcast."""

    def test_starts_blank(self):
        store = StateStore()
        assert store.get().users[0].id == "u1"

    def test_replace_broadcasts(self):
        store = StateStore(Snapshot())
        seen = []
        store.subscribe(seen.append)

        snapshot = Snapshot(last_updated=7)
        assert store.replace(snapshot) is snapshot
        assert store.get() is snapshot
        assert seen == [snapshot]

    def test_update(self):
        store = StateStore(Snapshot(last_updated=1))
        result = store.update(lambda s: s.evolve(last_updated=s.last_updated + 1))

        assert result.last_updated == 2
        assert store.get() is result

    def test_failed_update_leaves_snapshot(self):
        original = Snapshot(last_updated=1)
        store = StateStore(original)

        def explode(snapshot):
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError):
            store.update(explode)
        assert store.get() is original

    def test_failing_listener_isolated(self):
        store = StateStore(Snapshot())
        seen = []

        def broken(snapshot):
            raise ValueError("listener failure")

        store.subscribe(broken)
        store.subscribe(seen.append)

        snapshot = Snapshot(last_updated=3)
        store.replace(snapshot)

        assert store.get() is snapshot
        assert seen == [snapshot]

    def test_unsubscribe_and_clear(self):
        store = StateStore(Snapshot())
        first, second = [], []
        unsubscribe = store.subscribe(first.append)
        store.subscribe(second.append)

        unsubscribe()
        unsubscribe()
        store.replace(Snapshot(last_updated=1))
        store.clear()
        store.replace(Snapshot(last_updated=2))

        assert first == []
        assert [s.last_updated for s in second] == [1]


class TestMergePolicy:
    """Test last-writer-wins adoption."""

    def test_newer_remote_adopted_with_local_session(self):
        local = Snapshot(
            current_user_id="alice",
            theme="dark",
            llm_config=LLMConfig(provider="openai", model="gpt"),
            last_updated=100,
        )
        remote = Snapshot(
            teams=(Team(id="t1"),),
            current_user_id="bob",
            theme="light",
            last_updated=200,
        )

        merged = merge_remote(local, remote)

        assert merged.teams == remote.teams
        assert merged.last_updated == 200
        assert merged.current_user_id == "alice"
        assert merged.theme == "dark"
        assert merged.llm_config == local.llm_config

    def test_equal_or_older_never_adopted(self):
        local = Snapshot(last_updated=100)

        assert merge_remote(local, Snapshot(last_updated=100)) is None
        assert merge_remote(local, Snapshot(last_updated=99)) is None
        assert merge_remote(local, None) is None

    def test_is_newer(self):
        assert is_newer(Snapshot(last_updated=2), Snapshot(last_updated=1))
        assert not is_newer(Snapshot(last_updated=1), Snapshot(last_updated=1))

    def test_next_timestamp_strictly_increases(self):
        far_future = 10 ** 15
        assert next_timestamp(far_future) == far_future + 1
        assert next_timestamp(0) > 0
