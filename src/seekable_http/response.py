from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:  # pragma: no cover
    import seekable_http  # for RangeRequest

__all__ = ["RangeResponse"]


class RangeResponse:
    """
    Adapted from `obskyr's ResponseStream demo code
    <https://gist.github.com/obskyr/b9d4b4223e7eaf4eedcd9defabb34f13>`_,
    this class handles the streamed partial request as a forward-only file-like
    object: bytes can be read (into a buffer, or returned) or discarded, but
    never revisited.

    The raw iterator of the ``httpx.Response`` yields chunks of whatever size
    the connection delivers, so the unconsumed remainder of the latest chunk is
    kept in :attr:`~seekable_http.response.RangeResponse._pending` until the next
    read or skip.

    Don't forget to close the ``httpx.Response``! The
    :meth:`~seekable_http.response.RangeResponse.close` method is available
    (or :meth:`~seekable_http.channel.SeekableHttpChannel.close`) to help you.
    """

    told: int = 0
    """
    The number of bytes consumed from the stream so far (whether read or skipped),
    relative to the start of the requested range.
    """

    is_exhausted: bool = False
    """
    Whether the underlying iterator has run out (set only once a read or skip has
    actually hit the end of the stream, not when the last byte is consumed).
    """

    def __init__(self, range_request: seekable_http.RangeRequest):
        self.request = range_request
        self._pending = memoryview(b"")

    def __repr__(self):
        return (
            f"{self.__class__.__name__} ⠶ {self.request.range} "
            f"(told={self.told}) @ '{self.request.url}'"
        )

    @property
    def _iterator(self):
        return self.request._iterator

    @property
    def start(self) -> int:
        return self.request.start

    def _load_next(self) -> bool:
        """
        Make sure there are pending bytes, pulling the next non-empty chunk off the
        iterator if needed. Returns ``False`` once the stream is exhausted.
        """
        while not self._pending:
            if self.is_exhausted:
                return False
            try:
                self._pending = memoryview(next(self._iterator))
            except StopIteration:
                self.is_exhausted = True
                return False
        return True

    def _take(self, size: int) -> memoryview:
        taken, self._pending = self._pending[:size], self._pending[size:]
        self.told += len(taken)
        return taken

    def readinto(self, buffer) -> int:
        """
        Fill ``buffer`` from the stream, looping over chunks until it is full or
        the stream is exhausted. Returns the number of bytes written into it
        (``0`` means the stream is exhausted).
        """
        view = memoryview(buffer).cast("B")
        filled = 0
        while filled < len(view) and self._load_next():
            chunk = self._take(len(view) - filled)
            view[filled : filled + len(chunk)] = chunk
            filled += len(chunk)
        return filled

    def read(self, size: int | None = None) -> bytes:
        """
        File-like reading within the range request stream (all of it if ``size``
        is ``None``).
        """
        if size is None:
            chunks = []
            while self._load_next():
                chunks.append(bytes(self._take(len(self._pending))))
            return b"".join(chunks)
        buf = bytearray(size)
        n = self.readinto(buf)
        return bytes(buf[:n])

    def skip(self, size: int) -> int:
        """
        Discard ``size`` bytes from the stream. Returns the number of bytes
        actually discarded, which is less than ``size`` only if the stream
        ended first.
        """
        skipped = 0
        while skipped < size and self._load_next():
            skipped += len(self._take(size - skipped))
        return skipped

    def tell(self) -> int:
        """
        The absolute position in the file of the next byte to be consumed.
        """
        return self.start + self.told

    def close(self) -> None:
        """
        Close the underlying response (and drop any pending bytes).
        """
        self._pending = memoryview(b"")
        self.request.close()

    @property
    def is_closed(self) -> bool:
        return self.request.response.is_closed
