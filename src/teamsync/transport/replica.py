"""File-backed replica with an optional HTTP central copy"""

from pathlib import Path
from typing import Optional

from .base import LocalUpdateCallback, Unsubscribe, WorkspaceTransport
from .http import HttpRemote
from .local import LocalFileStore
from ..models import Snapshot
from ..utils.config import TeamSyncConfig


class ReplicaTransport(WorkspaceTransport):
    """Local JSON replica plus the central copy reached over HTTP.

    Without a remote, ``fetch_remote`` always reports offline and pushes
    are skipped.
    """

    def __init__(self, local: LocalFileStore, remote: Optional[HttpRemote] = None,
                 watch_local_updates: bool = True):
        self.local = local
        self.remote = remote
        self.watch_local_updates = watch_local_updates

    @classmethod
    def from_config(cls, config: TeamSyncConfig,
                    local_path: Optional[Path] = None) -> "ReplicaTransport":
        remote = None
        if config.sync.remote_url:
            remote = HttpRemote(config.sync.remote_url, timeout=config.sync.request_timeout)
        return cls(
            LocalFileStore(local_path or config.storage.local_path),
            remote,
            watch_local_updates=config.storage.watch_local_updates,
        )

    def load_local(self) -> Snapshot:
        return self.local.load()

    def save_local(self, snapshot: Snapshot) -> None:
        self.local.save(snapshot)

    async def fetch_remote(self) -> Optional[Snapshot]:
        if self.remote is None:
            return None
        return await self.remote.fetch()

    async def push_remote(self, snapshot: Snapshot) -> Optional[int]:
        if self.remote is None:
            return None
        return await self.remote.push(snapshot)

    def subscribe_local_updates(self, callback: LocalUpdateCallback) -> Unsubscribe:
        if not self.watch_local_updates:
            return lambda: None
        return self.local.watch(callback)

    async def close(self) -> None:
        if self.remote is not None:
            await self.remote.close()
