from pytest import fixture, mark
from ranges import Range

from seekable_http.request import RangeRequest
from seekable_http.response import RangeResponse

from .data import EXAMPLE_ETAG, EXAMPLE_FILE_LENGTH, EXAMPLE_PAYLOAD, EXAMPLE_URL
from .share import RangeServer


@fixture
def server():
    return RangeServer(chunk_size=64)


def make_response(server, start=0):
    req = RangeRequest(
        byte_range=Range(start, EXAMPLE_FILE_LENGTH),
        url=EXAMPLE_URL,
        client=server.client(),
        validator=EXAMPLE_ETAG,
    )
    return RangeResponse(range_request=req)


@fixture
def example_response(server):
    return make_response(server)


@mark.parametrize("size", [1, 63, 64, 65, 200, EXAMPLE_FILE_LENGTH])
def test_readinto_spans_chunks(example_response, size):
    buf = bytearray(size)
    assert example_response.readinto(buf) == size
    assert bytes(buf) == EXAMPLE_PAYLOAD[:size]
    assert example_response.told == size


def test_readinto_memoryview(example_response):
    buf = bytearray(10)
    assert example_response.readinto(memoryview(buf)[2:8]) == 6
    assert bytes(buf) == b"\x00\x00" + EXAMPLE_PAYLOAD[:6] + b"\x00\x00"


def test_readinto_short_at_end(server):
    resp = make_response(server, start=990)
    buf = bytearray(100)
    assert resp.readinto(buf) == 10
    assert bytes(buf[:10]) == EXAMPLE_PAYLOAD[990:]
    assert resp.is_exhausted is True
    assert resp.readinto(buf) == 0


def test_read_sizes(example_response):
    assert example_response.read(5) == EXAMPLE_PAYLOAD[:5]
    assert example_response.read(100) == EXAMPLE_PAYLOAD[5:105]
    assert example_response.tell() == 105
    assert example_response.read() == EXAMPLE_PAYLOAD[105:]
    assert example_response.read() == b""


def test_tell_is_absolute(server):
    resp = make_response(server, start=300)
    assert resp.tell() == 300
    resp.read(10)
    assert resp.tell() == 310


@mark.parametrize("size", [0, 1, 64, 500])
def test_skip(example_response, size):
    assert example_response.skip(size) == size
    assert example_response.read(4) == EXAMPLE_PAYLOAD[size : size + 4]


def test_skip_past_end(server):
    resp = make_response(server, start=950)
    assert resp.skip(100) == 50
    assert resp.is_exhausted is True


def test_not_exhausted_until_end_is_hit(server):
    resp = make_response(server, start=936)  # exactly one 64 byte chunk left
    assert resp.read(64) == EXAMPLE_PAYLOAD[936:]
    assert resp.is_exhausted is False
    assert resp.read(1) == b""
    assert resp.is_exhausted is True


def test_truncated_stream():
    server = RangeServer(truncate_at=10)
    resp = make_response(server, start=0)
    assert resp.read(100) == EXAMPLE_PAYLOAD[:10]
    assert resp.told == 10
    assert resp.is_exhausted is True


def test_response_close(server, example_response):
    example_response.read(1)
    assert example_response.is_closed is False
    example_response.close()
    assert example_response.is_closed is True
    assert server.streams[-1].closed is True
    example_response.close()
