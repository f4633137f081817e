"""
Last-writer-wins merge between the held snapshot and a received one.

Only whole snapshots are compared; there is no field-level merge. The
session fields (who is logged in, theme, assistant settings) always stay
with the client that holds them.
"""

from typing import Optional

from ..models import Snapshot, now_ms


def is_newer(candidate: Snapshot, held: Snapshot) -> bool:
    """Strictly newer; equal timestamps never win."""
    return candidate.last_updated > held.last_updated


def merge_remote(local: Snapshot, remote: Optional[Snapshot]) -> Optional[Snapshot]:
    """
    The snapshot to adopt, or ``None`` when ``local`` stays.

    The adopted snapshot is ``remote`` carrying ``local``'s session fields.
    """
    if remote is None or not is_newer(remote, local):
        return None

    return remote.evolve(
        current_user_id=local.current_user_id,
        theme=local.theme,
        llm_config=local.llm_config,
    )


def next_timestamp(previous: int) -> int:
    """A fresh ``last_updated`` strictly greater than ``previous``."""
    return max(now_ms(), previous + 1)


__all__ = ['is_newer', 'merge_remote', 'next_timestamp']
