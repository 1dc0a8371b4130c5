from pytest import fixture, mark, raises
from ranges import Range

from seekable_http.errors import (
    MalformedRangeResponseError,
    RangeRequestFailedError,
    UnexpectedStatusError,
)
from seekable_http.request import PROBE_LENGTH, ProbeRequest, RangeRequest

from .data import EXAMPLE_ETAG, EXAMPLE_FILE_LENGTH, EXAMPLE_PAYLOAD, EXAMPLE_URL
from .share import RangeServer


@fixture
def server():
    return RangeServer()


def make_request(server, start, validator=EXAMPLE_ETAG):
    return RangeRequest(
        byte_range=Range(start, EXAMPLE_FILE_LENGTH),
        url=EXAMPLE_URL,
        client=server.client(),
        validator=validator,
    )


@fixture
def example_request(server):
    return make_request(server, start=0)


@mark.parametrize("start,expected", [(0, "bytes=0-"), (1, "bytes=1-"), (900, "bytes=900-")])
def test_range_headers(server, start, expected):
    make_request(server, start=start)
    sent = server.last_request.headers
    assert sent["range"] == expected
    assert sent["if-range"] == EXAMPLE_ETAG
    assert sent["accept-encoding"] == "identity"
    assert server.last_request.method == "GET"


def test_request_start(server):
    assert make_request(server, start=120).start == 120


def test_response_closing(server, example_request):
    assert example_request.response.is_closed is False
    example_request.close()
    assert example_request.response.is_closed is True
    assert server.streams[-1].closed is True
    example_request.close()


def test_request_iter_raw(example_request):
    chunk = next(example_request._iterator)
    assert chunk == EXAMPLE_PAYLOAD[:64]


def test_content_range_header(example_request):
    assert example_request.content_range_header() == f"bytes 0-999/{EXAMPLE_FILE_LENGTH}"


def test_request_requires_validator(server):
    with raises(ValueError):
        make_request(server, start=0, validator=None)
    assert server.requests == []


def test_request_changed_resource(server):
    server.change(payload=b"x" * EXAMPLE_FILE_LENGTH)
    with raises(RangeRequestFailedError, match="Got HTTP 200 not 206") as exc_info:
        make_request(server, start=10)
    assert exc_info.value.status_code == 200
    assert exc_info.value.response.is_closed is True
    assert server.streams[-1].closed is True


@mark.parametrize("status", [200, 404, 416, 500])
def test_request_non_partial_content(status):
    server = RangeServer(status=status)
    with raises(RangeRequestFailedError) as exc_info:
        make_request(server, start=0)
    assert exc_info.value.status_code == status


def test_request_client_type():
    with raises(TypeError, match="not a synchronous HTTPX client"):
        RangeRequest(byte_range=Range(0, 1), url=EXAMPLE_URL, client=object(), validator="x")


def test_probe_request_headers(server):
    ProbeRequest(url=EXAMPLE_URL, client=server.client())
    sent = server.last_request.headers
    assert sent["range"] == f"bytes=0-{PROBE_LENGTH - 1}"
    assert "if-range" not in sent


def test_probe_content_range(server):
    probe = ProbeRequest(url=EXAMPLE_URL, client=server.client())
    assert probe.content_range == (Range(0, PROBE_LENGTH), EXAMPLE_FILE_LENGTH)
    assert probe.response_validator == EXAMPLE_ETAG


@mark.parametrize("status", [301, 404, 416, 503])
def test_probe_unexpected_status(status):
    server = RangeServer(status=status)
    with raises(UnexpectedStatusError, match=f"Got HTTP {status} not 2xx"):
        ProbeRequest(url=EXAMPLE_URL, client=server.client())
    assert server.streams[-1].closed is True


def test_probe_accepts_any_success_status():
    server = RangeServer(supports_ranges=False)
    probe = ProbeRequest(url=EXAMPLE_URL, client=server.client())
    assert probe.response.status_code == 200
    assert probe.content_range_header() is None
    with raises(MalformedRangeResponseError):
        probe.content_range
