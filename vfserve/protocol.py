"""
Request decoding for the raw TCP front end

Only the request line is interpreted. POST bodies follow the first blank
line; their length comes from ``Content-Length`` when the client sends one,
otherwise from the zero padding of the receive buffer.
"""

import logging
import re
from typing import Optional

from .models import Method, Request

logger = logging.getLogger(__name__)

HEADER_TERMINATOR = b"\r\n\r\n"

_CONTENT_LENGTH_RE = re.compile(r"^content-length\s*:\s*(\S*)\s*$", re.IGNORECASE | re.MULTILINE)


class RequestError(Exception):
    """Base class for requests that cannot be decoded"""
    pass


class DecodeError(RequestError):
    """Request head is not valid UTF-8"""
    pass


class MalformedRequest(RequestError):
    """Request is missing a required part"""
    pass


def strip_padding(buffer: bytes) -> bytes:
    """Return the received region of a zero-padded buffer"""
    end = buffer.find(b"\x00")
    return buffer if end == -1 else buffer[:end]


def parse_content_length(head: str) -> Optional[int]:
    """
    Extract the Content-Length header value from a request head

    Returns:
        Declared length, or None when the header is absent

    Raises:
        MalformedRequest: If the value is not a non-negative integer
    """
    match = _CONTENT_LENGTH_RE.search(head)
    if not match:
        return None

    value = match.group(1)
    if not value.isdigit():
        raise MalformedRequest(f"Invalid Content-Length: {value!r}")
    return int(value)


def decode_request(buffer: bytes) -> Request:
    """
    Decode the first chunk received from a connection

    Args:
        buffer: Raw bytes, possibly zero-padded past the received data

    Returns:
        Parsed Request

    Raises:
        DecodeError: If the request head is not valid UTF-8
        MalformedRequest: If the request line or POST body delimiter is missing
    """
    sep = buffer.find(HEADER_TERMINATOR)
    raw_head = strip_padding(buffer if sep == -1 else buffer[:sep])

    try:
        head = raw_head.decode("utf-8")
    except UnicodeDecodeError as e:
        raise DecodeError(f"Request is not valid UTF-8: {e}")

    tokens = head.split()
    if len(tokens) < 2:
        raise MalformedRequest("Request line has no target")

    method_token, target = tokens[0], tokens[1]
    if target.startswith("/"):
        target = target[1:]

    if method_token != Method.POST.value:
        if method_token != Method.GET.value:
            logger.debug(f"Treating {method_token} request as GET")
        return Request(method=Method.GET, target=target)

    if sep == -1:
        raise MalformedRequest("POST request has no header terminator")

    content_length = parse_content_length(head)
    body = buffer[sep + len(HEADER_TERMINATOR):]
    if content_length is None:
        body = strip_padding(body)
    else:
        body = body[:content_length]

    return Request(
        method=Method.POST,
        target=target,
        body=body,
        content_length=content_length,
    )
