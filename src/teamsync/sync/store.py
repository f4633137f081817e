"""Single authoritative holder of the installed snapshot"""

import threading
from typing import Callable, List, Optional

from ..models import Snapshot, blank_workspace
from ..utils.logging import get_logger


logger = get_logger("teamsync.sync.store")

SnapshotListener = Callable[[Snapshot], None]


class StateStore:
    """
    Holds the current snapshot and broadcasts every install.

    Reads are synchronous and never observe a partially applied update.
    A listener that raises is logged and skipped; it never blocks the
    install or the remaining listeners.
    """

    def __init__(self, initial: Optional[Snapshot] = None):
        self._snapshot = initial if initial is not None else blank_workspace()
        self._listeners: List[SnapshotListener] = []
        self._lock = threading.RLock()

    def get(self) -> Snapshot:
        return self._snapshot

    def replace(self, snapshot: Snapshot) -> Snapshot:
        with self._lock:
            self._snapshot = snapshot
            listeners = list(self._listeners)

        for listener in listeners:
            try:
                listener(snapshot)
            except Exception as e:
                logger.error(
                    "snapshot_listener_error",
                    listener=getattr(listener, "__name__", repr(listener)),
                    error=str(e),
                    exc_info=True
                )
        return snapshot

    def update(self, fn: Callable[[Snapshot], Snapshot]) -> Snapshot:
        """Read-modify-write; ``fn`` raising leaves the snapshot untouched."""
        with self._lock:
            return self.replace(fn(self._snapshot))

    def subscribe(self, listener: SnapshotListener) -> Callable[[], None]:
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def clear(self) -> None:
        with self._lock:
            self._listeners.clear()
