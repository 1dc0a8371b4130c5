r""":mod:`seekable_http.channel` exposes a class
:class:`~seekable_http.channel.SeekableHttpChannel`, a read-only
:class:`io.RawIOBase` onto a file served over HTTP(S) by a server which
supports range requests.

Seeking never downloads the bytes in between: a backward seek, or a forward
seek further than the :attr:`~seekable_http.channel.SeekableHttpChannel.skip_threshold`,
sends a new range request from the target position. Small forward seeks instead
discard bytes from the response already being streamed, since that is usually
quicker than a new HTTP round trip.
"""

from __future__ import annotations

import operator
from io import SEEK_CUR, SEEK_END, SEEK_SET, RawIOBase
from pathlib import Path
from urllib.parse import urlparse

import httpx
from ranges import Range

from .errors import (
    ClosedChannelError,
    NoValidatorError,
    ReadOnlyError,
    SeekOutOfRangeError,
    SkipMismatchError,
    UnsupportedSchemeError,
)
from .log_utils import log
from .request import PROBE_LENGTH, ProbeRequest, RangeRequest
from .response import RangeResponse

__all__ = ["SeekableHttpChannel", "DEFAULT_SKIP_THRESHOLD", "SUPPORTED_SCHEMES"]

DEFAULT_SKIP_THRESHOLD = 512 * 1024
SUPPORTED_SCHEMES = ("http", "https")


class SeekableHttpChannel(RawIOBase):
    """
    A file at a URL, opened for random access reads.

    On initialisation a probe request for the first :data:`PROBE_LENGTH`
    bytes is sent, which determines the total :attr:`size` of the file, the
    validator (strong entity tag, or else modification time) which every later
    request is made conditional on (via ``if-range``), and the
    :attr:`head_bytes`. The size and validator are then fixed: if the file
    changes on the server, later requests fail with
    :class:`~seekable_http.errors.RangeRequestFailedError` rather than return
    bytes from a different version of it.

    At most one response body is streamed at a time. It is opened lazily by the
    first read, and re-opened eagerly by any seek which cannot be served by
    skipping ahead on it.

    A channel is not safe to share between threads without external locking.
    """

    client: httpx.Client | None = None
    _owns_client: bool = False
    _body: RangeResponse | None = None
    _position: int = 0
    _size: int = 0
    _validator: str = ""

    request_count: int = 0
    """
    The number of HTTP requests sent so far (including the probe). Diagnostic only.
    """

    head_bytes: bytes = b""
    """
    Up to the first :data:`PROBE_LENGTH` bytes of the file, as received by the
    probe (e.g. to sniff the file format). Not used when reading.
    """

    def __init__(
        self,
        url: str,
        client: httpx.Client | None = None,
        skip_threshold: int = DEFAULT_SKIP_THRESHOLD,
    ):
        """
        Set up a channel for the file at ``url`` and probe it.

        By default (if ``client`` is left as ``None``) a fresh
        :class:`httpx.Client` (following redirects) will be created for the channel,
        and closed along with it. A client that is passed in is never closed by the
        channel (you must handle this yourself): configure timeouts, proxies and
        TLS on it.

        Args:
          url            : (:class:`str`) The URL of the file (``http`` or ``https``)
          client         : (:class:`httpx.Client` | ``None``) The HTTPX client
                           to use for HTTP requests
          skip_threshold : (:class:`int`) The furthest forward seek (in bytes) to
                           serve by discarding bytes from the open response,
                           rather than sending a new request (default: 512 KiB)
        """
        super().__init__()
        self.url = url
        self.check_scheme()
        if skip_threshold < 0:
            raise ValueError(f"{skip_threshold=} must not be negative")
        self.skip_threshold = skip_threshold
        self.set_client(client=client)
        try:
            self.probe()
        except Exception:
            self.close()
            raise

    def __repr__(self) -> str:
        state = "closed" if self.closed else f"{self._position}/{self.size}"
        return (
            f"{self.__class__.__name__} ⠶ [{state}] @ "
            f"'{self.name}' from {self.domain}"
        )

    def check_scheme(self) -> None:
        scheme = urlparse(self.url).scheme.lower()
        if scheme not in SUPPORTED_SCHEMES:
            raise UnsupportedSchemeError(url=self.url, scheme=scheme)

    def set_client(self, client: httpx.Client | None) -> None:
        """
        Check the client type explicitly, creating one if none is given.

        Args:
          client : (:class:`httpx.Client` | ``None``) The client to be used for all
                   HTTP requests made on the channel. If ``None``, a fresh one
                   will be created (and owned by the channel).
        """
        if client is None:
            client = httpx.Client(follow_redirects=True)
            self._owns_client = True
        elif not isinstance(client, httpx.Client):
            raise TypeError(f"{client=} is not a synchronous HTTPX client")
        self.client = client

    @property
    def name(self) -> str:
        return Path(urlparse(self.url).path).name

    @property
    def domain(self) -> str:
        return urlparse(self.url).netloc

    @property
    def size(self) -> int:
        """
        The total number of bytes (i.e. the length) of the file, as reported by
        the probe response.
        """
        return self._size

    @property
    def total_range(self) -> Range:
        """
        The range spanning the entire file, ``[0, size)``: every valid seek target.
        """
        return Range(0, self._size)

    @property
    def validator(self) -> str:
        """
        The entity tag or modification time sent as ``if-range`` with each request.
        """
        return self._validator

    @property
    def position(self) -> int:
        return self._position

    @property
    def is_open(self) -> bool:
        return not self.closed

    @property
    def body(self) -> RangeResponse | None:
        """
        The response body currently being streamed from (``None`` if there is none).
        Assigning to it always closes the one it replaces.
        """
        return self._body

    @body.setter
    def body(self, response: RangeResponse | None) -> None:
        previous, self._body = self._body, response
        if previous is not None and previous is not response:
            log.debug(f"Releasing stream at {previous.tell()} of {self.url}")
            previous.close()

    def release_stream(self) -> None:
        self.body = None

    def probe(self) -> None:
        """
        Send the probe request, setting the size, validator, and head bytes.
        The probe's response is always closed before returning.
        """
        self.request_count += 1
        probe = ProbeRequest(url=self.url, client=self.client)
        try:
            byte_range, total_length = probe.content_range
            validator = probe.response_validator
            if validator is None:
                raise NoValidatorError(url=self.url)
            self.head_bytes = RangeResponse(range_request=probe).read(PROBE_LENGTH)
        finally:
            probe.close()
        self._size = total_length
        self._validator = validator
        log.debug(
            f"Probed {self.url}: {self._size} bytes, validator {self._validator} "
            f"(sent {byte_range})"
        )

    def send_request(self) -> None:
        """
        Release any open stream, then send a conditional range request from the
        current position, whose response becomes the new open stream.
        """
        self.release_stream()
        self.request_count += 1
        log.debug(
            f"Requesting {self.url} from {self._position} "
            f"(request {self.request_count})"
        )
        req = RangeRequest(
            byte_range=Range(self._position, self._size),
            url=self.url,
            client=self.client,
            validator=self._validator,
        )
        self.body = RangeResponse(range_request=req)

    def check_open(self) -> None:
        if self.closed:
            raise ClosedChannelError()

    def readable(self) -> bool:
        return True

    def seekable(self) -> bool:
        return True

    def writable(self) -> bool:
        return False

    def readinto(self, buffer) -> int:
        """
        Read bytes into ``buffer`` from the current position, returning the number
        read, which is only less than the buffer size if the response stream ended.

        Returns ``0`` (end of file) without making any request if the position is
        already at the end of the file. If the open response ends before any bytes
        are read, ``0`` is also returned but the stream is released, so the next
        read will send a new request. The stream is also released if reading from
        it raises (e.g. ``httpx.ReadError``), leaving the position unchanged.
        """
        self.check_open()
        view = memoryview(buffer).cast("B")[: max(self._size - self._position, 0)]
        if not len(view):
            return 0
        if self._body is None:
            self.send_request()
        try:
            n = self._body.readinto(view)
        except Exception:
            # Bytes taken before the failure are not counted in the position
            self.release_stream()
            raise
        self._position += n
        if self._body.is_exhausted:
            self.release_stream()
        return n

    def tell(self) -> int:
        self.check_open()
        return self._position

    def seek(self, offset: int, whence: int = SEEK_SET) -> int:
        """
        Move to a new position, returning it.

        Seeking to the current position does nothing. Otherwise the target must be
        within ``[0, size)`` (note that the end of the file itself is not a valid
        target), else :class:`~seekable_http.errors.SeekOutOfRangeError` is raised
        and nothing changes.

        If moving forward by no more than the :attr:`skip_threshold` while a
        response is being streamed, the bytes in between are discarded from it
        (raising :class:`~seekable_http.errors.SkipMismatchError` if it ends
        first). Any other move sends a new range request straight away.
        """
        self.check_open()
        offset = operator.index(offset)
        target = self.resolve_whence(offset=offset, whence=whence)
        if target == self._position:
            return self._position
        if target not in self.total_range:
            raise SeekOutOfRangeError(target=target, size=self._size)
        distance = target - self._position
        if 0 < distance <= self.skip_threshold and self._body is not None:
            self.skip_ahead(distance)
        else:
            self._position = target
            self.send_request()
        return self._position

    def resolve_whence(self, offset: int, whence: int) -> int:
        if whence == SEEK_SET:
            return offset
        elif whence == SEEK_CUR:
            return self._position + offset
        elif whence == SEEK_END:
            return self._size + offset
        raise ValueError(f"Invalid {whence=} (expected SEEK_SET, SEEK_CUR or SEEK_END)")

    def skip_ahead(self, distance: int) -> None:
        try:
            skipped = self._body.skip(distance)
        except Exception:
            self.release_stream()
            raise
        if skipped != distance:
            # The stream no longer lines up with the position
            self.release_stream()
            raise SkipMismatchError(expected=distance, skipped=skipped)
        self._position += distance
        log.debug(f"Skipped {distance} bytes to {self._position} of {self.url}")

    def write(self, b) -> int:
        raise ReadOnlyError("write")

    def truncate(self, size: int | None = None) -> int:
        raise ReadOnlyError("truncate")

    def close(self) -> None:
        """
        Release the open response stream (if any) and the client (if the channel
        created it). Closing more than once is harmless.
        """
        if self.closed:
            return
        try:
            self.release_stream()
            if self._owns_client and self.client is not None:
                self.client.close()
        finally:
            super().close()
