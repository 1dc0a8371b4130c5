from __future__ import annotations

from typing import Iterator

import httpx
from ranges import Range

from .errors import RangeRequestFailedError, UnexpectedStatusError
from .http_utils import (
    detect_header_value,
    if_range_header,
    parse_content_range,
    range_header,
    validator_from_headers,
)
from .log_utils import log
from .range_utils import validate_range

__all__ = ["RangeRequest", "ProbeRequest", "PROBE_LENGTH"]

PROBE_LENGTH = 512
"""
The number of bytes requested by a :class:`ProbeRequest` (and so the most
that can be kept as a channel's
:attr:`~seekable_http.channel.SeekableHttpChannel.head_bytes`).
"""


class RangeRequest:
    """
    Store a conditional GET request and the response stream while keeping a
    reference to the client that spawned it, providing an
    :attr:`~seekable_http.request.RangeRequest._iterator` attribute
    [by default giving access to
    :meth:`~seekable_http.request.RangeRequest.iter_raw`] on the
    underlying ``httpx.Response``, suitable for
    :class:`~seekable_http.response.RangeResponse` to read from.

    The request is open-ended (``range: bytes=<start>-``) from the start of the
    ``byte_range`` and carries the ``validator`` as ``if-range``: anything but
    a 206 (Partial Content) response raises
    :class:`~seekable_http.errors.RangeRequestFailedError`, after closing it.
    """

    def __init__(
        self,
        byte_range: Range,
        url: str,
        client: httpx.Client,
        validator: str | None = None,
    ):
        """
        Make a new partial content request, sent immediately with the response
        body left unread (i.e. streamed).

        Args:
          byte_range : The :class:`~ranges.Range` of the file the response should
                       cover (its start is the position the body begins at).
          url        : The URL to be requested.
          client     : The ``httpx.Client`` to use for the request.
          validator  : The entity tag or modification time to send as ``if-range``.
        """
        self.range = validate_range(byte_range=byte_range, allow_empty=False)
        self.url = url
        self.client = client
        self.validator = validator
        self.check_client()
        self.setup_stream()
        self._iterator = self.iter_raw()

    def __repr__(self):
        return f"{self.__class__.__name__} ⠶ {self.range} @ '{self.url}'"

    @property
    def start(self) -> int:
        return self.range.start

    @property
    def range_header(self) -> dict[str, str]:
        return range_header(self.range, open_ended=True)

    @property
    def headers(self) -> dict[str, str]:
        """
        All request headers: the range, the validator, and a request for the
        identity encoding (byte positions refer to the unencoded file).
        """
        return {
            **self.range_header,
            **if_range_header(self.validator),
            "accept-encoding": "identity",
        }

    def setup_stream(self) -> None:
        """
        ``client.stream("GET", url)`` but leave the stream to be manually closed
        rather than using a context manager
        """
        self.request = self.client.build_request(
            method="GET", url=self.url, headers=self.headers
        )
        self.response = self.client.send(request=self.request, stream=True)
        self.raise_for_unexpected_status()

    def raise_for_unexpected_status(self) -> None:
        """
        Close the response and raise
        :class:`~seekable_http.errors.RangeRequestFailedError` if the status code
        is anything other than 206 (Partial Content), as that is what was requested.
        A 200 here means the server ignored the range, or that ``if-range`` no
        longer matched because the resource changed.
        """
        if self.response.status_code != 206:
            self.close()
            log.warning(
                f"Range request from {self.start} got HTTP "
                f"{self.response.status_code} (resource changed?)"
            )
            raise RangeRequestFailedError(request=self.request, response=self.response)

    def content_range_header(self) -> str | None:
        """
        The ``content-range`` header of the response, or ``None`` if it had none.
        """
        try:
            return detect_header_value(headers=self.response.headers, key="content-range")
        except KeyError:
            return None

    def iter_raw(self) -> Iterator[bytes]:
        """
        Wrap the :meth:`iter_raw` method of the underlying :class:`httpx.Response`
        object (in :attr:`~seekable_http.request.RangeRequest.response`).
        """
        return self.response.iter_raw()

    def close(self) -> None:
        """
        Close the :attr:`~seekable_http.request.RangeRequest.response`, releasing
        its connection.
        """
        if not self.response.is_closed:
            self.response.close()

    def check_client(self):
        if not isinstance(self.client, httpx.Client):
            raise TypeError(
                f"{self.client=} is not a synchronous HTTPX client (`httpx.Client`)"
            )


class ProbeRequest(RangeRequest):
    """
    The first request sent for a resource: a closed range over the first
    :data:`PROBE_LENGTH` bytes, without ``if-range`` (there is no validator yet).
    Any 2xx status is accepted; the response headers then give the total length
    (from ``content-range``) and the validator for every later request.
    """

    def __init__(self, url: str, client: httpx.Client, length: int = PROBE_LENGTH):
        super().__init__(byte_range=Range(0, length), url=url, client=client)

    @property
    def range_header(self) -> dict[str, str]:
        return range_header(self.range)

    @property
    def headers(self) -> dict[str, str]:
        return {**self.range_header, "accept-encoding": "identity"}

    def raise_for_unexpected_status(self) -> None:
        """
        Close the response and raise
        :class:`~seekable_http.errors.UnexpectedStatusError` if the status code
        is outside of 200-299.
        """
        if not self.response.is_success:
            self.close()
            log.warning(f"Probe of {self.url} got HTTP {self.response.status_code}")
            raise UnexpectedStatusError(request=self.request, response=self.response)

    @property
    def content_range(self) -> tuple[Range, int]:
        """
        The :class:`~ranges.Range` sent and the total length of the file, from
        the ``content-range`` header. Raises
        :class:`~seekable_http.errors.MalformedRangeResponseError` if missing or
        if the total length is not given.
        """
        return parse_content_range(self.content_range_header())

    @property
    def response_validator(self) -> str | None:
        """
        The strong entity tag or else the modification time of the response
        (``None`` if it has neither).
        """
        return validator_from_headers(self.response.headers)
