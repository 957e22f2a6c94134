import httpx
import pytest

from conftest import once_body, read_body
from reqpipe.client.base import ClientFunc, decorate
from reqpipe.client.decorators.proxy import (
    body_contains,
    body_equals,
    capture_body,
    match,
    parse_endpoint,
    proxy,
    replay_body,
)
from reqpipe.exceptions import BodyReadError, DirectorError, InvalidEndpointError

IF_URL = "http://a.example:8090"
ELSE_URL = "http://b.example:8091"


def _is_hello(body: bytes) -> bool:
    return body == b"hello world"


@pytest.mark.asyncio
async def test_match_routes_to_if_url_when_predicate_holds():
    request = httpx.Request("POST", "http://front.example/path", content=b"hello world")

    await match(_is_hello, IF_URL, ELSE_URL)(request)

    assert request.url == httpx.URL(IF_URL)
    assert request.headers["Host"] == "a.example:8090"


@pytest.mark.asyncio
async def test_match_routes_to_else_url_when_predicate_fails():
    request = httpx.Request("POST", "http://front.example/path", content=b"goodbye")

    await match(_is_hello, IF_URL, ELSE_URL)(request)

    assert request.url == httpx.URL(ELSE_URL)


@pytest.mark.asyncio
async def test_match_without_predicate_always_selects_else_url():
    request = httpx.Request("POST", "http://front.example/", content=b"hello world")

    await match(None, IF_URL, ELSE_URL)(request)

    assert request.url == httpx.URL(ELSE_URL)


@pytest.mark.asyncio
@pytest.mark.parametrize("body", [b"hello world", b"goodbye", b"", bytes(range(256))])
async def test_match_restores_body_byte_for_byte(body):
    request = httpx.Request("POST", "http://front.example/", content=body)

    await match(_is_hello, IF_URL, ELSE_URL)(request)

    assert await read_body(request) == body
    assert await read_body(request) == body


@pytest.mark.asyncio
async def test_match_makes_read_once_body_replayable():
    request = httpx.Request("POST", "http://front.example/", content=once_body(b"hello", b" ", b"world"))

    await match(_is_hello, IF_URL, ELSE_URL)(request)

    assert request.url == httpx.URL(IF_URL)
    assert await read_body(request) == b"hello world"
    assert await read_body(request) == b"hello world"


@pytest.mark.asyncio
async def test_match_predicate_sees_captured_bytes():
    seen: list[bytes] = []

    def predicate(body: bytes) -> bool:
        seen.append(body)
        return False

    request = httpx.Request("POST", "http://front.example/", content=once_body(b"a", b"b", b"c"))
    await match(predicate, IF_URL, ELSE_URL)(request)

    assert seen == [b"abc"]


@pytest.mark.asyncio
async def test_match_malformed_endpoint_fails_and_keeps_body():
    request = httpx.Request("POST", "http://front.example/", content=b"goodbye")

    with pytest.raises(InvalidEndpointError):
        await match(_is_hello, IF_URL, "http://b.example:notaport")(request)

    assert request.url == httpx.URL("http://front.example/")
    assert await read_body(request) == b"goodbye"


@pytest.mark.asyncio
async def test_match_body_read_failure_is_director_error():
    async def broken():
        yield b"partial"
        raise OSError("connection reset")

    request = httpx.Request("POST", "http://front.example/", content=broken())

    with pytest.raises(BodyReadError) as excinfo:
        await match(_is_hello, IF_URL, ELSE_URL)(request)

    assert isinstance(excinfo.value, DirectorError)
    assert isinstance(excinfo.value.__cause__, OSError)


@pytest.mark.asyncio
async def test_capture_of_consumed_stream_fails():
    request = httpx.Request("POST", "http://front.example/", content=once_body(b"data"))
    await read_body(request)

    with pytest.raises(BodyReadError):
        await capture_body(request)


@pytest.mark.asyncio
async def test_capture_then_replay_round_trip():
    request = httpx.Request("POST", "http://front.example/", content=once_body(b"x", b"y"))

    data = await capture_body(request)
    replay_body(request, data)

    assert data == b"xy"
    assert await read_body(request) == b"xy"


@pytest.mark.asyncio
async def test_capture_reads_sync_streams():
    request = httpx.Request("POST", "http://front.example/", content=iter([b"sync ", b"body"]))

    assert await capture_body(request) == b"sync body"


@pytest.mark.parametrize(
    "value",
    ["http://b.example:notaport", "not a url", "ftp://b.example/", "/relative/path", ""],
)
def test_parse_endpoint_rejects_malformed(value):
    with pytest.raises(InvalidEndpointError):
        parse_endpoint(value)


def test_parse_endpoint_accepts_absolute_http_urls():
    assert parse_endpoint("https://b.example/api?x=1") == httpx.URL("https://b.example/api?x=1")


@pytest.mark.asyncio
async def test_proxy_director_failure_never_reaches_client():
    calls: list[httpx.Request] = []

    async def base(request):
        calls.append(request)
        return httpx.Response(200)

    async def refusing(request):
        raise InvalidEndpointError(message="nope")

    client = decorate(ClientFunc(base), proxy(refusing))

    with pytest.raises(InvalidEndpointError, match="nope"):
        await client.send(httpx.Request("GET", "http://front.example/"))
    assert calls == []


@pytest.mark.asyncio
async def test_proxy_forwards_directed_request():
    seen: list[tuple[str, bytes]] = []

    async def base(request):
        seen.append((str(request.url), await read_body(request)))
        return httpx.Response(200)

    client = decorate(ClientFunc(base), proxy(match(_is_hello, IF_URL, ELSE_URL)))

    await client.send(httpx.Request("POST", "http://front.example/", content=once_body(b"hello world")))

    assert seen == [(str(httpx.URL(IF_URL)), b"hello world")]


def test_body_predicates():
    assert body_equals("hello world")(b"hello world")
    assert not body_equals(b"hello world")(b"hello world!")
    assert body_contains("world")(b"hello world")
    assert not body_contains(b"moon")(b"hello world")
