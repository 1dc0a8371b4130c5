r"""
Every failure a :class:`~seekable_http.channel.SeekableHttpChannel` can raise
derives from :class:`ChannelError` (itself an :class:`OSError`, so code written
against ordinary files keeps working). The subclasses separate three kinds of
problem:

- caller misuse: :class:`SeekOutOfRangeError`, :class:`ReadOnlyError`,
  :class:`ClosedChannelError`
- the server breaking the range request contract:
  :class:`UnsupportedSchemeError`, :class:`UnexpectedStatusError`,
  :class:`MalformedRangeResponseError`, :class:`NoValidatorError`,
  :class:`SkipMismatchError`
- the resource changing underneath the channel: :class:`RangeRequestFailedError`

Nothing is retried. Failures of the transport itself (``httpx.TransportError``
and friends) are not wrapped and propagate as raised by ``httpx``.
"""
from __future__ import annotations

from io import UnsupportedOperation

__all__ = [
    "ChannelError",
    "UnsupportedSchemeError",
    "StatusError",
    "UnexpectedStatusError",
    "RangeRequestFailedError",
    "MalformedRangeResponseError",
    "NoValidatorError",
    "SkipMismatchError",
    "SeekOutOfRangeError",
    "ReadOnlyError",
    "ClosedChannelError",
]


class ChannelError(OSError):
    """Base class for all errors raised by a seekable HTTP channel."""


class UnsupportedSchemeError(ChannelError):
    """The URL scheme was neither ``http`` nor ``https``."""

    def __init__(self, url: str, scheme: str):
        super().__init__(f"Only http and https are supported, got {scheme!r} ({url})")
        self.url = url
        self.scheme = scheme


class StatusError(ChannelError):
    """
    The response had an HTTP status code the request cannot accept. The
    ``httpx.Request`` and ``httpx.Response`` are kept for inspection (the
    response will already have been closed).
    """

    expected: str = "2xx"

    def __init__(self, *, request, response):
        super().__init__(
            f"Got HTTP {response.status_code} not {self.expected} for {request.url}"
        )
        self.request = request
        self.response = response

    @property
    def status_code(self) -> int:
        return self.response.status_code


class UnexpectedStatusError(StatusError):
    """The probe request got a status outside of 200-299."""


class RangeRequestFailedError(StatusError):
    """
    A conditional range request got any status other than 206 (Partial Content).

    A 200 here usually means the ``If-Range`` validator no longer matches, i.e.
    the resource changed since the channel was opened, and the server sent the
    whole (new) body instead of the requested range.
    """

    expected = "206 (Partial Content)"


class MalformedRangeResponseError(ChannelError):
    """
    The probe response had no ``Content-Range`` header of the form
    ``bytes <start>-<end>/<total>`` (e.g. the total was given as ``*``).
    """

    def __init__(self, content_range: str | None):
        super().__init__(f"Invalid response header Content-Range {content_range!r}")
        self.content_range = content_range


class NoValidatorError(ChannelError):
    """
    The probe response offered neither a strong entity tag nor a
    ``Last-Modified`` time, so later range requests could not be made
    conditional on the resource being unchanged.
    """

    def __init__(self, url: str):
        super().__init__(
            f"{url} did not offer a strong-enough validator for subsequent requests"
        )
        self.url = url


class SkipMismatchError(ChannelError):
    """Fewer bytes than requested could be discarded from the open body stream."""

    def __init__(self, expected: int, skipped: int):
        super().__init__(f"Skip data error: discarded {skipped} of {expected} bytes")
        self.expected = expected
        self.skipped = skipped


class SeekOutOfRangeError(ChannelError, ValueError):
    """The seek target was negative, or at or beyond the end of the resource."""

    def __init__(self, target: int, size: int):
        where = "before beginning" if target < 0 else "beyond end"
        super().__init__(f"Seek {where} of file ({target=} not in [0, {size}))")
        self.target = target
        self.size = size


class ReadOnlyError(ChannelError, UnsupportedOperation):
    """Writes and truncation are never supported."""

    def __init__(self, operation: str = "write"):
        super().__init__(f"Channel is read-only ({operation} not supported)")
        self.operation = operation


class ClosedChannelError(ChannelError, ValueError):
    """An operation was attempted on a channel which has been closed."""

    def __init__(self):
        super().__init__("I/O operation on closed channel")
