"""Per-connection request handling."""

from __future__ import annotations

import asyncio
import logging
from http import HTTPStatus
from pathlib import Path
from typing import AsyncIterator, Callable, Optional, Union

import aiofiles

from .config import get_config
from .models import Config, Method, Request
from .protocol import RequestError, decode_request
from .response import ContentReadError, build, build_response
from .utils import PathTraversalError, format_file_size, safe_join
from .vfs import VfsError, fallback_entry, load_store

logger = logging.getLogger(__name__)

UPLOAD_CHUNK_SIZE = 8192


class UploadTooLarge(Exception):
    """Raised when a POST body exceeds the configured upload limit"""
    pass


def upload_path(root: Union[str, Path], target: str) -> Path:
    """
    Resolve the file an upload target names inside root

    Raises:
        PathTraversalError: If the target escapes root or names root itself
    """
    file_path = safe_join(Path(root), target)
    if file_path == Path(root).resolve():
        raise PathTraversalError("Upload target names the upload directory itself")
    return file_path


async def write_upload(
    root: Union[str, Path],
    target: str,
    body: bytes,
    chunks: Optional[AsyncIterator[bytes]] = None,
) -> Path:
    """
    Write uploaded bytes to the file named by the request target

    ``body`` is written first, then every chunk from ``chunks`` as it
    arrives. Any existing file is overwritten.

    Raises:
        PathTraversalError: If the target escapes root
        OSError: If the file cannot be written
    """
    file_path = upload_path(root, target)

    written = 0
    async with aiofiles.open(file_path, 'wb') as f:
        await f.write(body)
        written += len(body)
        if chunks is not None:
            async for chunk in chunks:
                await f.write(chunk)
                written += len(chunk)

    logger.info(f"Wrote {written} bytes to {file_path}")
    return file_path


async def read_body_chunks(
    reader: asyncio.StreamReader,
    received: int,
    content_length: int,
    timeout: float,
) -> AsyncIterator[bytes]:
    """Yield the rest of a body until content_length bytes have arrived or the peer closes"""
    while received < content_length:
        chunk = await asyncio.wait_for(
            reader.read(min(UPLOAD_CHUNK_SIZE, content_length - received)),
            timeout=timeout,
        )
        if not chunk:
            logger.warning(f"Connection closed after {received} of {content_length} body bytes")
            return
        received += len(chunk)
        yield chunk


class ConnectionHandler:
    """Receives one request, answers it and closes the connection."""

    def __init__(self, config_provider: Callable[[], Config] = get_config):
        self._config_provider = config_provider

    @property
    def config(self) -> Config:
        """Return the latest loaded configuration."""
        return self._config_provider()

    async def handle(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        peer = writer.get_extra_info("peername")
        config = self.config
        try:
            buffer = await asyncio.wait_for(
                reader.read(config.server.buffer_size),
                timeout=config.server.read_timeout,
            )
            request = decode_request(buffer)
            logger.info(f"{peer} {request.method.value} /{request.target}")

            if request.method is Method.POST:
                await self._handle_post(request, reader, writer, config)
            else:
                await self._handle_get(request, writer, config)

        except asyncio.TimeoutError:
            logger.warning(f"{peer} timed out before the request was complete")
        except RequestError as e:
            logger.warning(f"{peer} dropped undecodable request: {e}")
        except VfsError as e:
            logger.error(f"{peer} mapping unavailable: {e}")
        except ContentReadError as e:
            logger.error(f"{peer} no content to serve: {e}")
        except PathTraversalError as e:
            logger.warning(f"{peer} rejected upload: {e}")
        except UploadTooLarge as e:
            logger.warning(f"{peer} rejected upload: {e}")
        except OSError as e:
            logger.error(f"{peer} connection failed: {e}")
        finally:
            writer.close()
            try:
                await writer.wait_closed()
            except OSError as e:
                logger.debug(f"{peer} close failed: {e}")

    async def _handle_get(self, request: Request, writer: asyncio.StreamWriter, config: Config) -> None:
        mapping_path = config.vfs.mapping_file
        store = await load_store(mapping_path, config.vfs.separator)

        entry = store.lookup_by_name(request.target)
        if entry is None:
            if not config.vfs.fallback_to_mapping:
                logger.info(f"No entry for {request.target!r}")
                writer.write(build_response(b"", HTTPStatus.NOT_FOUND))
                await writer.drain()
                return
            logger.info(f"No entry for {request.target!r}; serving mapping file")
            entry = fallback_entry(mapping_path)

        response = await build(entry, mapping_path, config.vfs.max_size)
        writer.write(response)
        await writer.drain()
        logger.debug(f"Sent {len(response)} bytes for {request.target!r}")

    async def _handle_post(
        self,
        request: Request,
        reader: asyncio.StreamReader,
        writer: asyncio.StreamWriter,
        config: Config,
    ) -> None:
        limit = config.server.max_upload_size
        declared = request.content_length
        if declared is not None and declared > limit:
            raise UploadTooLarge(f"Declared {declared} bytes, limit is {format_file_size(limit)}")
        if len(request.body) > limit:
            raise UploadTooLarge(f"Body of {len(request.body)} bytes, limit is {format_file_size(limit)}")

        chunks = None
        if declared is not None:
            chunks = read_body_chunks(reader, len(request.body), declared, config.server.read_timeout)

        await write_upload(config.server.upload_dir, request.target, request.body, chunks)

        if config.server.acknowledge_uploads:
            writer.write(build_response(b"", HTTPStatus.CREATED))
            await writer.drain()
