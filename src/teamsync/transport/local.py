"""Local JSON file replica with change watching"""

import hashlib
import json
import os
import threading
from pathlib import Path
from typing import Optional

from watchdog.observers import Observer
from watchdog.events import FileSystemEvent, FileSystemEventHandler

from .base import LocalUpdateCallback, Unsubscribe
from ..models import Snapshot, blank_workspace, now_ms
from ..utils.errors import SnapshotFormatError, StorageError
from ..utils.logging import get_logger

logger = get_logger("teamsync.transport.local")


def _digest(payload: bytes) -> str:
    return hashlib.sha256(payload).hexdigest()


class LocalFileStore:
    """The client's replica, stored as one JSON document.

    Writes go through a temporary file and an atomic rename so a reader
    never observes a half-written document.
    """

    def __init__(self, path: Path):
        self.path = Path(path).expanduser().absolute()
        self._last_written: Optional[str] = None
        self._lock = threading.Lock()
        self._blocked = False

    def load(self) -> Snapshot:
        """Read the replica; a missing or unreadable file yields a blank workspace."""
        if not self.path.exists():
            logger.info("local_replica_missing", path=str(self.path))
            return blank_workspace()

        try:
            return self._read()
        except (OSError, ValueError, SnapshotFormatError) as e:
            logger.error(
                "local_replica_unreadable",
                path=str(self.path),
                error=str(e),
                exc_info=True
            )
            self._quarantine()
            return blank_workspace()

    def _quarantine(self) -> None:
        """Move an unreadable replica aside so the blank fallback never replaces it."""
        target = self.path.with_name(f"{self.path.name}.unreadable-{now_ms()}")
        try:
            os.replace(self.path, target)
        except OSError as e:
            self._blocked = True
            logger.error("local_replica_quarantine_failed", path=str(self.path), error=str(e))
            return
        logger.warning("local_replica_quarantined", path=str(self.path), moved_to=str(target))

    def save(self, snapshot: Snapshot) -> None:
        if self._blocked:
            raise StorageError(
                f"Refusing to overwrite unreadable local replica: {self.path}",
                path=str(self.path)
            )

        payload = json.dumps(snapshot.to_dict(), indent=2).encode("utf-8")
        temp_file = self.path.with_suffix(self.path.suffix + ".tmp")

        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with self._lock:
                temp_file.write_bytes(payload)
                os.replace(temp_file, self.path)
                self._last_written = _digest(payload)
        except OSError as e:
            logger.error("local_replica_write_failed", path=str(self.path), error=str(e))
            raise StorageError(f"Failed to write local replica: {e}", cause=e) from e

        logger.debug(
            "local_replica_saved",
            path=str(self.path),
            last_updated=snapshot.last_updated
        )

    def watch(self, callback: LocalUpdateCallback) -> Unsubscribe:
        """Invoke ``callback`` whenever another writer replaces the replica."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        observer = Observer()
        observer.schedule(
            _ReplicaEventHandler(self, callback),
            str(self.path.parent),
            recursive=False
        )
        observer.start()
        logger.info("local_replica_watch_started", path=str(self.path))

        def unsubscribe() -> None:
            observer.stop()
            observer.join()
            logger.info("local_replica_watch_stopped", path=str(self.path))

        return unsubscribe

    def _read(self) -> Snapshot:
        payload = self.path.read_bytes()
        return Snapshot.from_dict(json.loads(payload.decode("utf-8")))

    def _handle_change(self, callback: LocalUpdateCallback) -> None:
        try:
            payload = self.path.read_bytes()
        except OSError:
            return

        with self._lock:
            if _digest(payload) == self._last_written:
                return

        try:
            snapshot = Snapshot.from_dict(json.loads(payload.decode("utf-8")))
        except (ValueError, SnapshotFormatError) as e:
            logger.warning("local_update_ignored", path=str(self.path), error=str(e))
            return

        logger.debug("local_update_detected", last_updated=snapshot.last_updated)
        callback(snapshot)


class _ReplicaEventHandler(FileSystemEventHandler):
    """File system event handler for the replica file."""

    def __init__(self, store: LocalFileStore, callback: LocalUpdateCallback):
        self.store = store
        self.callback = callback

    def on_any_event(self, event: FileSystemEvent) -> None:
        if event.is_directory:
            return

        target = getattr(event, "dest_path", "") or event.src_path
        if event.event_type in ("modified", "created", "moved") and Path(target) == self.store.path:
            self.store._handle_change(self.callback)
