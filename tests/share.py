"""
An in-memory HTTP server for a single file, used through ``httpx.MockTransport``
so that no test needs the network.
"""
from __future__ import annotations

import re

import httpx

from seekable_http import SeekableHttpChannel

from .data import EXAMPLE_ETAG, EXAMPLE_PAYLOAD, EXAMPLE_URL

__all__ = ["ChunkedStream", "RangeServer", "make_channel"]

RANGE_PATTERN = re.compile(r"bytes=(\d+)-(\d*)")


class ChunkedStream(httpx.SyncByteStream):
    """
    A response body delivered in chunks of ``chunk_size`` bytes (as a socket
    would), which records whether it was closed. If ``drop_after`` is given, the
    connection fails with ``httpx.ReadError`` after that many bytes.
    """

    def __init__(self, body: bytes, chunk_size: int, drop_after: int | None = None):
        self.body = body if drop_after is None else body[:drop_after]
        self.chunk_size = chunk_size
        self.drop_after = drop_after
        self.closed = False

    def __iter__(self):
        for i in range(0, len(self.body), self.chunk_size):
            yield self.body[i : i + self.chunk_size]
        if self.drop_after is not None:
            raise httpx.ReadError("Connection dropped")

    def close(self):
        self.closed = True


class RangeServer:
    """
    Serve ``payload`` honouring ``range`` and ``if-range`` request headers like
    a well-behaved server, unless told to misbehave:

    - ``status``: always respond with this status (and an empty body)
    - ``supports_ranges``: if ``False``, ignore ``range`` and send a 200
    - ``total_known``: if ``False``, give the total as ``*`` in ``content-range``
    - ``truncate_at``: cut every 206 body short after this many bytes
    - ``drop_after``: fail every 206 body with ``httpx.ReadError`` after this
      many bytes (set it once the channel has probed)
    """

    drop_after: int | None = None

    def __init__(
        self,
        payload: bytes = EXAMPLE_PAYLOAD,
        etag: str | None = EXAMPLE_ETAG,
        last_modified: str | None = None,
        chunk_size: int = 64,
        status: int | None = None,
        supports_ranges: bool = True,
        total_known: bool = True,
        truncate_at: int | None = None,
    ):
        self.payload = payload
        self.etag = etag
        self.last_modified = last_modified
        self.chunk_size = chunk_size
        self.status = status
        self.supports_ranges = supports_ranges
        self.total_known = total_known
        self.truncate_at = truncate_at
        self.requests: list[httpx.Request] = []
        self.streams: list[ChunkedStream] = []

    @property
    def validator_headers(self) -> dict[str, str]:
        headers = {}
        if self.etag is not None:
            headers["ETag"] = self.etag
        if self.last_modified is not None:
            headers["Last-Modified"] = self.last_modified
        return headers

    def change(self, payload: bytes, etag: str | None = '"changed"') -> None:
        """Replace the file on the server (as a new version, with a new etag)."""
        self.payload = payload
        self.etag = etag

    def if_range_matches(self, request: httpx.Request) -> bool:
        if_range = request.headers.get("if-range")
        return if_range is None or if_range in (self.etag, self.last_modified)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.status is not None:
            return self.respond(self.status, b"")
        headers = self.validator_headers
        match = RANGE_PATTERN.fullmatch(request.headers.get("range", ""))
        if match is None or not self.supports_ranges or not self.if_range_matches(request):
            return self.respond(200, self.payload, headers)
        length = len(self.payload)
        start = int(match[1])
        end = min(int(match[2]), length - 1) if match[2] else length - 1
        if start >= length:
            headers["Content-Range"] = f"bytes */{length}"
            return self.respond(416, b"", headers)
        total = length if self.total_known else "*"
        headers["Content-Range"] = f"bytes {start}-{end}/{total}"
        body = self.payload[start : end + 1]
        if self.truncate_at is not None:
            body = body[: self.truncate_at]
        return self.respond(206, body, headers, drop_after=self.drop_after)

    def respond(
        self, status: int, body: bytes, headers=None, drop_after: int | None = None
    ) -> httpx.Response:
        stream = ChunkedStream(body, chunk_size=self.chunk_size, drop_after=drop_after)
        self.streams.append(stream)
        return httpx.Response(status, headers=headers, stream=stream)

    def client(self) -> httpx.Client:
        return httpx.Client(transport=httpx.MockTransport(self.handler))

    @property
    def last_request(self) -> httpx.Request:
        return self.requests[-1]


def make_channel(server: RangeServer, **kwargs) -> SeekableHttpChannel:
    return SeekableHttpChannel(url=EXAMPLE_URL, client=server.client(), **kwargs)
