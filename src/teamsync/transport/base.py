"""Base persistence/transport contract consumed by the sync coordinator"""

from abc import ABC, abstractmethod
from typing import Callable, Optional
import uuid

from ..models import Snapshot


LocalUpdateCallback = Callable[[Snapshot], None]
Unsubscribe = Callable[[], None]


class WorkspaceTransport(ABC):
    """Abstract collaborator that stores and retrieves workspace snapshots.

    ``load_local``/``save_local`` are synchronous and never block on the
    network. ``fetch_remote`` returns ``None`` when the central copy is
    unreachable instead of raising.
    """

    @abstractmethod
    def load_local(self) -> Snapshot:
        """Return the last known local snapshot, or a blank workspace"""
        pass

    @abstractmethod
    def save_local(self, snapshot: Snapshot) -> None:
        """Persist the snapshot for this client"""
        pass

    @abstractmethod
    async def fetch_remote(self) -> Optional[Snapshot]:
        """Fetch the central snapshot; ``None`` when offline"""
        pass

    async def push_remote(self, snapshot: Snapshot) -> Optional[int]:
        """Write the snapshot to the central copy.

        Returns the timestamp assigned by the central copy, or ``None`` when
        there is no central copy or it could not be reached.
        """
        return None

    def subscribe_local_updates(self, callback: LocalUpdateCallback) -> Unsubscribe:
        """Call ``callback`` with snapshots written by other local consumers.

        The callback may run on a foreign thread. Returns an unsubscribe
        function.
        """
        return lambda: None

    def generate_id(self) -> str:
        """Globally unique identifier for new entities and notifications"""
        return uuid.uuid4().hex

    async def close(self) -> None:
        """Release network resources"""
        pass
