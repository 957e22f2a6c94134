"""Client capability and decorator composition.

A :class:`Client` is anything that can perform one request and yield a
response, raising on failure. ``httpx.AsyncClient`` satisfies the protocol
as-is. A :data:`Decorator` takes a Client and returns a new Client wrapping
it; :func:`decorate` applies an ordered list of decorators to a base Client.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import Protocol, runtime_checkable

import httpx

__all__ = ["Client", "ClientFunc", "Decorator", "Director", "SendFunc", "decorate"]


@runtime_checkable
class Client(Protocol):
    """Capability to perform one request."""

    async def send(self, request: httpx.Request) -> httpx.Response:
        """Performs the request and returns the response.

        Args:
            request: The outbound request. Decorators may mutate it in place.
        Returns:
            The response produced by the innermost transport.
        """
        ...


SendFunc = Callable[[httpx.Request], Awaitable[httpx.Response]]
Decorator = Callable[[Client], Client]
Director = Callable[[httpx.Request], Awaitable[None]]
"""Mutates a request in place before it is forwarded; failure is an exception."""


class ClientFunc:
    """Adapts a coroutine function into a :class:`Client`."""

    __slots__ = ("_func",)

    def __init__(self, func: SendFunc) -> None:
        self._func = func

    async def send(self, request: httpx.Request) -> httpx.Response:
        return await self._func(request)

    def __repr__(self) -> str:
        name = getattr(self._func, "__qualname__", repr(self._func))
        return f"ClientFunc({name})"


def decorate(client: Client, *decorators: Decorator) -> Client:
    """Wraps ``client`` with every decorator, in order.

    The first decorator wraps the base client directly and so runs last,
    just before the transport. The last decorator is the outermost layer: it
    runs first and decides whether and how to delegate inward. Callers list
    decorators innermost first.

    Args:
        client: The base client, usually the network transport.
        *decorators: Decorators, innermost first.
    Returns:
        The composed client.
    """
    decorated = client
    for decorator in decorators:
        decorated = decorator(decorated)
    return decorated
