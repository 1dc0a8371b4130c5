r"""
:mod:`seekable_http` provides random access to a file served over HTTP(S)
through an API familiar to users of the standard library :mod:`io` module:
:class:`~seekable_http.channel.SeekableHttpChannel` is a read-only
:class:`io.RawIOBase` which can be seeked and read from without downloading
the whole file.

Servers with support for `HTTP range requests
<https://developer.mozilla.org/en-US/docs/Web/HTTP/Range_requests>`_
can provide partial content, so a seek becomes a request for the bytes from the
new position onwards. Small forward seeks are served by discarding bytes from the
response already being streamed instead (up to the channel's ``skip_threshold``,
by default 512 KiB), as this avoids another HTTP round trip.

A :class:`~seekable_http.channel.SeekableHttpChannel` is initialised by providing:

- a URL (the file to be read)
- (optionally) a client (:class:`httpx.Client`), or else a fresh one
  is created (and closed along with the channel)
- (optionally) the ``skip_threshold`` in bytes

On initialisation a 'probe' request for the first 512 bytes determines the total
length of the file and a validator (its strong entity tag, or else its
modification time). Every later request is made conditional on the validator
(with ``if-range``), so if the file changes on the server a
:class:`~seekable_http.errors.RangeRequestFailedError` is raised rather than
bytes being returned from a different version of the file.

    >>> from seekable_http import SeekableHttpChannel
    >>> ch = SeekableHttpChannel(url="https://example.com/archive.zip") # doctest: +SKIP
    >>> ch.size # doctest: +SKIP
    1000000
    >>> ch.seek(999_000) # doctest: +SKIP
    999000
    >>> len(ch.read(100)) # doctest: +SKIP
    100
    >>> ch.request_count # doctest: +SKIP
    2
    >>> ch.head_bytes[:4] # doctest: +SKIP
    b'PK\x03\x04'

It is a standard raw binary stream, so it can be wrapped (e.g. in
:class:`io.BufferedReader`) or handed to anything expecting a seekable file,
and used as a context manager to release its connection:

    >>> with SeekableHttpChannel(url="https://example.com/archive.zip") as ch: # doctest: +SKIP
    ...     ch.seek(-22, 2)
    ...     len(ch.read())
    999978
    22
"""

# Get classes into package namespace but exclude from __all__ so Sphinx can access types

from . import errors, http_utils, range_utils
from .channel import DEFAULT_SKIP_THRESHOLD, SeekableHttpChannel
from .errors import (
    ChannelError,
    ClosedChannelError,
    MalformedRangeResponseError,
    NoValidatorError,
    RangeRequestFailedError,
    ReadOnlyError,
    SeekOutOfRangeError,
    SkipMismatchError,
    UnexpectedStatusError,
    UnsupportedSchemeError,
)
from .request import PROBE_LENGTH, ProbeRequest, RangeRequest
from .response import RangeResponse

__all__ = [
    "channel",
    "request",
    "response",
    "errors",
    "http_utils",
    "range_utils",
]

__author__ = "seekable-http developers"
__license__ = "MIT"
__description__ = "Random access reads on HTTP resources via range requests."
__url__ = ""
__uri__ = __url__
__email__ = ""
__version__ = "0.1.0"
