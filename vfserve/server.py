"""Listener that accepts connections and hands them to the connection handler."""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, Optional, Tuple

from .config import get_config
from .handler import ConnectionHandler
from .models import Config

logger = logging.getLogger(__name__)


class VfsServer:
    """Binds the configured address and serves connections until closed."""

    def __init__(self, config_provider: Callable[[], Config] = get_config):
        self._config_provider = config_provider
        self.handler = ConnectionHandler(config_provider)
        self._server: Optional[asyncio.AbstractServer] = None
        # Held for a whole connection when sequential mode is on
        self._sequential_lock = asyncio.Lock()

    @property
    def config(self) -> Config:
        return self._config_provider()

    @property
    def sockname(self) -> Tuple[str, int]:
        """Address actually bound, useful when port 0 was requested."""
        if self._server is None or not self._server.sockets:
            raise RuntimeError("Server is not started")
        return self._server.sockets[0].getsockname()[:2]

    async def _on_connection(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        if self.config.server.sequential:
            async with self._sequential_lock:
                await self.handler.handle(reader, writer)
        else:
            await self.handler.handle(reader, writer)

    async def start(self, host: Optional[str] = None, port: Optional[int] = None) -> None:
        server_config = self.config.server
        host = host if host is not None else server_config.addr
        port = port if port is not None else server_config.port

        self._server = await asyncio.start_server(self._on_connection, host, port)
        bound_host, bound_port = self.sockname
        logger.info(f"vfserve listening on {bound_host}:{bound_port}")
        logger.info(f"Mapping file: {self.config.vfs.mapping_file}")

    async def serve_forever(self) -> None:
        if self._server is None:
            await self.start()
        async with self._server:
            await self._server.serve_forever()

    async def close(self) -> None:
        if self._server is not None:
            self._server.close()
            await self._server.wait_closed()
            self._server = None
            logger.info("vfserve stopped")
