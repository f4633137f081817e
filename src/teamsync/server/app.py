"""
Central copy server.

Holds the shared workspace document in one JSON file and serves it over
``GET/POST /api/data``. The document is stored as received; the server
only stamps ``lastUpdated`` on every write.
"""

import asyncio
import json
import os
from pathlib import Path
from typing import Any, Dict, Optional

import aiofiles
from aiohttp import web

from ..models import blank_workspace, now_ms
from ..transport.http import DATA_ENDPOINT
from ..utils.config import ServerConfig
from ..utils.errors import StorageError
from ..utils.logging import get_logger


logger = get_logger("teamsync.server")


class CentralServer:
    """aiohttp application serving the central workspace document."""

    def __init__(self, config: Optional[ServerConfig] = None):
        self.config = config or ServerConfig()
        self.db_path = Path(self.config.db_path).expanduser().absolute()
        self._write_lock = asyncio.Lock()
        self._last_stamp = 0
        self._runner: Optional[web.AppRunner] = None

        self.app = web.Application(client_max_size=self.config.max_body_size)
        self.app.router.add_get(DATA_ENDPOINT, self.handle_read)
        self.app.router.add_post(DATA_ENDPOINT, self.handle_write)
        self.app.on_startup.append(self._on_startup)

    async def _on_startup(self, app: web.Application) -> None:
        await self.ensure_database()

    async def ensure_database(self) -> None:
        """
        Create the document with the bootstrap administrator when missing,
        otherwise continue stamping after the stored ``lastUpdated``.
        """
        if self.db_path.exists():
            try:
                document = await self._read()
            except StorageError as e:
                logger.error("central_copy_read_failed", error=str(e))
                return
            stored = document.get("lastUpdated") if isinstance(document, dict) else None
            if isinstance(stored, (int, float)) and not isinstance(stored, bool):
                self._last_stamp = max(self._last_stamp, int(stored))
            logger.info("central_copy_loaded", path=str(self.db_path), last_updated=self._last_stamp)
            return

        document = blank_workspace().to_dict()
        document["lastUpdated"] = self._last_stamp = now_ms()
        await self._write(document)
        logger.info("central_copy_initialised", path=str(self.db_path))

    async def handle_read(self, request: web.Request) -> web.Response:
        try:
            document = await self._read()
        except StorageError as e:
            logger.error("central_copy_read_failed", error=str(e))
            return web.json_response({"error": "Failed to read data"}, status=500)
        return web.json_response(document)

    async def handle_write(self, request: web.Request) -> web.Response:
        try:
            document = await request.json()
        except ValueError as e:
            logger.warning("central_copy_rejected", reason="invalid_json", error=str(e))
            return web.json_response({"error": "Body must be a JSON document"}, status=400)

        if not isinstance(document, dict):
            logger.warning("central_copy_rejected", reason="not_an_object")
            return web.json_response({"error": "Body must be a JSON object"}, status=400)

        async with self._write_lock:
            # Wall clock may repeat or step back; stamps must not
            stamp = max(now_ms(), self._last_stamp + 1)
            document["lastUpdated"] = stamp
            try:
                await self._write(document)
            except StorageError as e:
                logger.error("central_copy_write_failed", error=str(e))
                return web.json_response({"error": "Failed to save data"}, status=500)
            self._last_stamp = stamp

        logger.info("central_copy_saved", last_updated=stamp)
        return web.json_response({"success": True, "timestamp": stamp})

    async def _read(self) -> Dict[str, Any]:
        if not self.db_path.exists():
            return {}
        try:
            async with aiofiles.open(self.db_path, "r", encoding="utf-8") as f:
                content = await f.read()
            return json.loads(content)
        except (OSError, ValueError) as e:
            raise StorageError(f"Failed to read central copy: {e}", cause=e) from e

    async def _write(self, document: Dict[str, Any]) -> None:
        temp_file = self.db_path.with_suffix(self.db_path.suffix + ".tmp")
        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(temp_file, "w", encoding="utf-8") as f:
                await f.write(json.dumps(document, indent=2))
            # Atomic rename
            os.replace(temp_file, self.db_path)
        except OSError as e:
            raise StorageError(f"Failed to write central copy: {e}", cause=e) from e

    async def start(self, host: Optional[str] = None, port: Optional[int] = None) -> None:
        """Start serving on ``host``/``port`` (defaults from configuration)."""
        host = host or self.config.host
        port = port or self.config.port

        self._runner = web.AppRunner(self.app)
        await self._runner.setup()
        site = web.TCPSite(self._runner, host, port)
        await site.start()
        logger.info("central_server_started", host=host, port=port, db_path=str(self.db_path))

    async def stop(self) -> None:
        if self._runner is not None:
            await self._runner.cleanup()
            self._runner = None
            logger.info("central_server_stopped")


def create_app(config: Optional[ServerConfig] = None) -> web.Application:
    """Application factory for ``aiohttp.web.run_app`` and test clients."""
    return CentralServer(config).app
