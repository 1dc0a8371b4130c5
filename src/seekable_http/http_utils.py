r"""When preparing a HTTP GET request, the HTTP `range request
<https://developer.mozilla.org/en-US/docs/Web/HTTP/Range_requests>`_
header must be provided as a :class:`dict`, for example:

.. code-block:: python

    {"range": "bytes=0-511"}

would request the 512 bytes at positions ``0`` to ``511`` (i.e. the inclusive
interval ``[0,511]``), which is how a channel probes a resource when opened.
Every later request is open-ended, asking for everything from a position onwards:

.. code-block:: python

    {"range": "bytes=1024-", "if-range": '"abc"'}

The `If-Range
<https://developer.mozilla.org/en-US/docs/Web/HTTP/Headers/If-Range>`_ header
carries the validator (entity tag or modification time) seen in the probe
response, so that a server whose resource has since changed sends a full 200
response rather than a 206 from a different version of the file.
"""
from __future__ import annotations

import re
from typing import TYPE_CHECKING

from ranges import Range

if TYPE_CHECKING:  # pragma: no cover
    from collections.abc import Mapping

from .errors import MalformedRangeResponseError
from .range_utils import range_termini

__all__ = [
    "byte_range_from_range_obj",
    "range_header",
    "if_range_header",
    "detect_header_value",
    "parse_content_range",
    "is_strong_etag",
    "validator_from_headers",
]

CONTENT_RANGE_PATTERN = re.compile(r"^\s*bytes\s+(\d+)-(\d+)/(\d+)\s*$", re.IGNORECASE)


def byte_range_from_range_obj(rng: Range, open_ended: bool = False) -> str:
    """Prepare the byte range substring for a HTTP `range request
    <https://developer.mozilla.org/en-US/docs/Web/HTTP/Range_requests>`_.

    For example:

      >>> from seekable_http.http_utils import byte_range_from_range_obj
      >>> byte_range_from_range_obj(Range(0,512))
      '0-511'
      >>> byte_range_from_range_obj(Range(100,1000), open_ended=True)
      '100-'

    Args:
      rng        : range of the bytes to be requested (0-based)
      open_ended : whether to leave off the end position, requesting everything
                   from the start of the range to the end of the file

    Returns:
      A hyphen-separated string of start and end positions. The end position
      is missing if the range is open-ended. An empty range raises
      :class:`ValueError`, as it has no termini.
    """
    start_byte, end_byte = range_termini(rng)
    return f"{start_byte}-" if open_ended else f"{start_byte}-{end_byte}"


def range_header(rng: Range, open_ended: bool = False) -> dict[str, str]:
    """
    Prepare a :class:`dict` to pass as a ``httpx`` request header
    with a single key ``range`` whose value is the byte range.

    For example:

      >>> from seekable_http.http_utils import range_header
      >>> range_header(Range(0,2))
      {'range': 'bytes=0-1'}

      >>> range_header(Range(7,11), open_ended=True)
      {'range': 'bytes=7-'}

    Args:
      rng        : range of the bytes to be requested (0-based)
      open_ended : see :func:`byte_range_from_range_obj`
    """
    byte_range = byte_range_from_range_obj(rng, open_ended=open_ended)
    return {"range": f"bytes={byte_range}"}


def if_range_header(validator: str) -> dict[str, str]:
    """
    Prepare the conditional header making a range request conditional on
    ``validator`` still matching the resource.

      >>> if_range_header('"abc"')
      {'if-range': '"abc"'}
    """
    if not validator:
        raise ValueError("If-Range requires a non-empty validator")
    return {"if-range": validator}


def detect_header_value(
    headers: Mapping[str, str], key: str, source: str = "Response"
) -> str:
    """
    Detect a title case, lower case, or capitalised version of the given string
    (``httpx.Headers`` are case-insensitive already, plain dicts are not).
    """
    variants = key.title(), key.lower(), key.capitalize()
    try:
        return next(headers[k] for k in variants if k in headers)
    except StopIteration:
        pass
    # Mixed case such as "ETag"
    for k, v in headers.items():
        if k.lower() == key.lower():
            return v
    raise KeyError(f"{source} was missing '{key}' header")


def parse_content_range(content_range: str | None) -> tuple[Range, int]:
    """
    Parse a ``content-range`` header value of the form
    ``bytes <start>-<end>/<total>`` into the :class:`~ranges.Range` that
    was sent and the total length of the file it was taken from.

      >>> parse_content_range("bytes 0-511/1000")
      (Range[0, 512), 1000)

    Raises :class:`~seekable_http.errors.MalformedRangeResponseError` if the
    header is missing, unparseable, or gives the total length as ``*`` (unknown).
    """
    if content_range is None:
        raise MalformedRangeResponseError(content_range)
    match = CONTENT_RANGE_PATTERN.match(content_range)
    if match is None:
        raise MalformedRangeResponseError(content_range)
    start, end, total = map(int, match.groups())
    if end < start or end >= total:
        raise MalformedRangeResponseError(content_range)
    return Range(start, end + 1), total


def is_strong_etag(etag: str | None) -> bool:
    """
    Strong entity tags are quoted (``"abc"``); weak ones are prefixed ``W/``
    and cannot be used in an ``If-Range`` header.
    """
    return bool(etag) and etag.startswith('"')


def validator_from_headers(headers: Mapping[str, str]) -> str | None:
    """
    Pick the validator to send as ``If-Range`` on later requests: the strong
    ``etag`` if there is one, else the ``last-modified`` time, else ``None``.
    """
    try:
        etag = detect_header_value(headers=headers, key="etag")
    except KeyError:
        etag = None
    if is_strong_etag(etag):
        return etag
    try:
        modified_time = detect_header_value(headers=headers, key="last-modified")
    except KeyError:
        return None
    return modified_time or None
