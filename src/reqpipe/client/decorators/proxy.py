"""Content-routed proxying.

:func:`proxy` runs a :data:`~reqpipe.client.base.Director` against every
request before forwarding it. :func:`match` builds a director that reads the
request body, picks one of two destinations from it, and rewrites the request
target. Reading the body consumes the original stream, so the captured bytes
are put back as a fresh :class:`httpx.ByteStream` before routing; everything
downstream, retries included, sees the caller's exact bytes.
"""

from __future__ import annotations

from collections.abc import Callable

import httpx

from reqpipe.client.base import Client, ClientFunc, Decorator, Director
from reqpipe.exceptions import BodyReadError, InvalidEndpointError

__all__ = [
    "BodyPredicate",
    "body_contains",
    "body_equals",
    "capture_body",
    "match",
    "parse_endpoint",
    "proxy",
    "replay_body",
]

BodyPredicate = Callable[[bytes], bool]

_ALLOWED_SCHEMES = ("http", "https")


def proxy(director: Director) -> Decorator:
    """Returns a decorator that directs each request before forwarding it.

    If the director raises, the call is aborted and the error propagates
    without the wrapped client ever seeing the request.
    """

    def decorator(client: Client) -> Client:
        async def send(request: httpx.Request) -> httpx.Response:
            await director(request)
            return await client.send(request)

        return ClientFunc(send)

    return decorator


async def capture_body(request: httpx.Request) -> bytes:
    """Reads the whole request body into memory.

    The request stream is consumed; pair with :func:`replay_body`.

    Raises:
        BodyReadError: If the stream cannot be read, including a read-once
            stream that was already consumed.
    """
    stream = request.stream
    try:
        if isinstance(stream, httpx.AsyncByteStream):
            chunks = [chunk async for chunk in stream]
        else:
            chunks = [chunk for chunk in stream]
    except Exception as exc:
        raise BodyReadError(message=f"Failed to read request body: {exc}", cause=exc) from exc
    return b"".join(chunks)


def replay_body(request: httpx.Request, data: bytes) -> None:
    """Replaces the request stream with a fresh, re-readable one over ``data``."""
    request.stream = httpx.ByteStream(data)


def parse_endpoint(value: str) -> httpx.URL:
    """Parses a destination endpoint.

    Raises:
        InvalidEndpointError: If ``value`` does not parse, or is not an
            absolute http(s) URL with a host.
    """
    try:
        url = httpx.URL(value)
    except (httpx.InvalidURL, TypeError) as exc:
        raise InvalidEndpointError(message=f"Invalid endpoint {value!r}: {exc}", cause=exc) from exc
    if url.scheme not in _ALLOWED_SCHEMES or not url.host:
        raise InvalidEndpointError(
            message=f"Invalid endpoint {value!r}: expected an absolute http(s) URL"
        )
    return url


def match(predicate: BodyPredicate | None, if_url: str, else_url: str) -> Director:
    """Builds a director that routes a request by its body.

    The director captures the body, restores it, then sends the request to
    ``if_url`` when ``predicate`` accepts the body and to ``else_url``
    otherwise. A ``None`` predicate always selects ``else_url``.

    Args:
        predicate: Test over the raw body bytes, or None.
        if_url: Destination when the predicate holds.
        else_url: Destination otherwise.
    """

    async def director(request: httpx.Request) -> None:
        body = await capture_body(request)
        replay_body(request, body)
        decision = if_url if predicate is not None and predicate(body) else else_url
        url = parse_endpoint(decision)
        request.url = url
        request.headers["Host"] = url.netloc.decode("ascii")

    return director


def body_equals(expected: bytes | str) -> BodyPredicate:
    """Predicate that holds when the body equals ``expected`` byte for byte."""
    target = expected.encode("utf-8") if isinstance(expected, str) else bytes(expected)

    def predicate(body: bytes) -> bool:
        return body == target

    return predicate


def body_contains(needle: bytes | str) -> BodyPredicate:
    """Predicate that holds when ``needle`` occurs anywhere in the body."""
    target = needle.encode("utf-8") if isinstance(needle, str) else bytes(needle)

    def predicate(body: bytes) -> bool:
        return target in body

    return predicate
