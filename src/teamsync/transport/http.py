"""HTTP client for the central workspace copy"""

import asyncio
import json
from typing import Optional

import aiohttp

from ..models import Snapshot
from ..utils.errors import SnapshotFormatError
from ..utils.logging import get_logger

logger = get_logger("teamsync.transport.http")

DATA_ENDPOINT = "/api/data"


class HttpRemote:
    """Reads and writes the central snapshot over ``GET/POST /api/data``.

    Ordinary network failures are logged and reported as ``None``; they
    never propagate to the caller.
    """

    def __init__(self, base_url: str, timeout: float = 5.0,
                 session: Optional[aiohttp.ClientSession] = None):
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self._session = session
        self._owns_session = session is None

    @property
    def url(self) -> str:
        return f"{self.base_url}{DATA_ENDPOINT}"

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout)
            )
            self._owns_session = True
        return self._session

    async def fetch(self) -> Optional[Snapshot]:
        """Fetch the central snapshot, or ``None`` when it cannot be read."""
        try:
            async with self._get_session().get(self.url) as response:
                if response.status >= 400:
                    text = await response.text()
                    logger.warning("remote_fetch_rejected", status=response.status, body=text[:200])
                    return None
                payload = await response.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.warning("remote_unreachable", url=self.url, error=str(e) or type(e).__name__)
            return None
        except json.JSONDecodeError as e:
            logger.warning("remote_payload_invalid", url=self.url, error=str(e))
            return None

        if not payload:
            logger.warning("remote_payload_empty", url=self.url)
            return None

        try:
            return Snapshot.from_dict(payload)
        except SnapshotFormatError as e:
            logger.warning("remote_snapshot_malformed", url=self.url, error=str(e))
            return None

    async def push(self, snapshot: Snapshot) -> Optional[int]:
        """Write the snapshot; returns the timestamp the server assigned."""
        try:
            async with self._get_session().post(self.url, json=snapshot.to_dict()) as response:
                if response.status >= 400:
                    text = await response.text()
                    logger.warning("remote_push_rejected", status=response.status, body=text[:200])
                    return None
                body = await response.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.warning("remote_push_failed", url=self.url, error=str(e) or type(e).__name__)
            return None
        except json.JSONDecodeError as e:
            logger.warning("remote_push_response_invalid", url=self.url, error=str(e))
            return None

        timestamp = body.get("timestamp") if isinstance(body, dict) else None
        logger.debug("remote_push_completed", timestamp=timestamp)
        return int(timestamp) if timestamp is not None else None

    async def close(self) -> None:
        if self._owns_session and self._session and not self._session.closed:
            await self._session.close()
        self._session = None
