"""
Response assembly for GET requests
"""

import logging
from http import HTTPStatus
from pathlib import Path
from typing import Union

import aiofiles

from .models import FileEntry, MAX_SIZE, OVERSIZE_NOTICE
from .utils import format_file_size

logger = logging.getLogger(__name__)


class ContentReadError(Exception):
    """Raised when neither the requested file nor the fallback can be read"""
    pass


async def read_content(path: Union[str, Path], max_size: int = MAX_SIZE) -> bytes:
    """
    Read a file for serving, capped at max_size

    Returns:
        File bytes, or OVERSIZE_NOTICE when the file is larger than max_size

    Raises:
        ContentReadError: If the file cannot be read
    """
    try:
        async with aiofiles.open(path, 'rb') as f:
            content = await f.read(max_size + 1)
    except OSError as e:
        raise ContentReadError(f"Failed to read {path}: {e}")

    if len(content) > max_size:
        logger.info(f"{path} exceeds {format_file_size(max_size)}; sending notice instead")
        return OVERSIZE_NOTICE

    return content


async def resolve_content(
    entry: FileEntry,
    mapping_path: Union[str, Path],
    max_size: int = MAX_SIZE,
) -> bytes:
    """Read the entry's file, falling back to the mapping file itself"""
    try:
        return await read_content(entry.path, max_size)
    except ContentReadError as e:
        logger.info(f"Serving mapping file for {entry.name!r}: {e}")

    return await read_content(mapping_path, max_size)


def build_response(content: bytes, status: HTTPStatus = HTTPStatus.OK) -> bytes:
    """Assemble status line, Content-Length header and body"""
    head = (
        f"HTTP/1.1 {status.value} {status.phrase}\r\n"
        f"Content-Length: {len(content)}\r\n"
        f"\r\n"
    )
    return head.encode("ascii") + content


async def build(
    entry: FileEntry,
    mapping_path: Union[str, Path],
    max_size: int = MAX_SIZE,
) -> bytes:
    """Build the full 200 response for a resolved entry"""
    content = await resolve_content(entry, mapping_path, max_size)
    return build_response(content)
