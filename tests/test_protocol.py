"""
Tests for raw request decoding
"""

import pytest

from vfserve.models import Method
from vfserve.protocol import (
    DecodeError,
    MalformedRequest,
    RequestError,
    decode_request,
    parse_content_length,
    strip_padding,
)


def padded(data: bytes, size: int = 1024) -> bytes:
    """Zero-pad data the way a fixed receive buffer would be"""
    return data + b"\x00" * (size - len(data))


class TestGetDecoding:
    """Test GET request decoding"""

    def test_simple_get(self):
        request = decode_request(padded(b"GET /report HTTP/1.1\r\nHost: x\r\n\r\n"))

        assert request.method is Method.GET
        assert request.target == "report"
        assert request.body == b""

    def test_root_request_gives_empty_name(self):
        request = decode_request(b"GET / HTTP/1.1\r\n\r\n")

        assert request.method is Method.GET
        assert request.target == ""

    def test_only_first_slash_stripped(self):
        request = decode_request(b"GET //nested/name HTTP/1.1\r\n\r\n")
        assert request.target == "/nested/name"

    def test_other_methods_treated_as_get(self):
        request = decode_request(b"HEAD /report HTTP/1.1\r\n\r\n")
        assert request.method is Method.GET
        assert request.target == "report"

    def test_headers_ignored(self):
        request = decode_request(
            b"GET /a HTTP/1.1\r\nContent-Length: 12\r\nAccept: */*\r\n\r\n"
        )
        assert request.target == "a"
        assert request.content_length is None

    def test_missing_target(self):
        with pytest.raises(MalformedRequest):
            decode_request(padded(b"GET"))

    def test_empty_buffer(self):
        with pytest.raises(MalformedRequest):
            decode_request(padded(b""))

    def test_invalid_utf8(self):
        with pytest.raises(DecodeError):
            decode_request(b"GET /\xc3\x28 HTTP/1.1\r\n\r\n")

    def test_truncated_multibyte(self):
        with pytest.raises(DecodeError):
            decode_request(b"GET /caf\xc3")

    def test_errors_share_base(self):
        assert issubclass(DecodeError, RequestError)
        assert issubclass(MalformedRequest, RequestError)


class TestPostDecoding:
    """Test POST request decoding"""

    def test_body_cut_at_padding(self):
        request = decode_request(padded(b"POST /upload.txt HTTP/1.1\r\n\r\nhello world"))

        assert request.method is Method.POST
        assert request.target == "upload.txt"
        assert request.body == b"hello world"
        assert request.content_length is None

    def test_body_after_first_terminator_only(self):
        request = decode_request(b"POST /a HTTP/1.1\r\n\r\nline1\r\n\r\nline2")
        assert request.body == b"line1\r\n\r\nline2"

    def test_missing_terminator(self):
        with pytest.raises(MalformedRequest):
            decode_request(padded(b"POST /upload.txt HTTP/1.1\r\nHost: x"))

    def test_empty_body(self):
        request = decode_request(padded(b"POST /empty HTTP/1.1\r\n\r\n"))
        assert request.body == b""

    def test_content_length_keeps_null_bytes(self):
        request = decode_request(
            b"POST /bin HTTP/1.1\r\nContent-Length: 5\r\n\r\na\x00b\x00c"
        )

        assert request.content_length == 5
        assert request.body == b"a\x00b\x00c"

    def test_content_length_truncates_extra_bytes(self):
        request = decode_request(
            padded(b"POST /bin HTTP/1.1\r\ncontent-length: 3\r\n\r\nabcdef")
        )
        assert request.body == b"abc"

    def test_partial_body_with_content_length(self):
        request = decode_request(
            b"POST /bin HTTP/1.1\r\nContent-Length: 100\r\n\r\nfirst"
        )
        assert request.content_length == 100
        assert request.body == b"first"

    def test_binary_body_does_not_need_utf8(self):
        request = decode_request(
            b"POST /img HTTP/1.1\r\nContent-Length: 3\r\n\r\n\xff\xfe\xfd"
        )
        assert request.body == b"\xff\xfe\xfd"


class TestHelpers:
    """Test decoding helpers"""

    def test_strip_padding(self):
        assert strip_padding(b"abc\x00\x00") == b"abc"
        assert strip_padding(b"abc") == b"abc"
        assert strip_padding(b"\x00abc") == b""

    def test_parse_content_length(self):
        assert parse_content_length("POST / HTTP/1.1\r\nContent-Length: 42") == 42
        assert parse_content_length("POST / HTTP/1.1\r\nCONTENT-LENGTH:7") == 7
        assert parse_content_length("POST / HTTP/1.1\r\nHost: x") is None

    def test_parse_content_length_invalid(self):
        with pytest.raises(MalformedRequest):
            parse_content_length("POST / HTTP/1.1\r\nContent-Length: -1")

        with pytest.raises(MalformedRequest):
            parse_content_length("POST / HTTP/1.1\r\nContent-Length: abc")
