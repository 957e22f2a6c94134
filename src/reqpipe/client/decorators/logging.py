from __future__ import annotations

import logging

import httpx

from reqpipe.client.base import Client, ClientFunc, Decorator

__all__ = ["logging_decorator"]


def logging_decorator(logger: logging.Logger, level: int = logging.INFO) -> Decorator:
    """Returns a decorator that records every call before delegating.

    One record is written per delegated call, as ``"<agent>: <METHOD> <url>"``.
    The request body and the response are never touched, and errors from the
    wrapped client propagate unchanged.

    Args:
        logger: Sink for the records. Owned by whoever assembles the pipeline.
        level: Level used for each record.
    """

    def decorator(client: Client) -> Client:
        async def send(request: httpx.Request) -> httpx.Response:
            agent = request.headers.get("user-agent", "")
            endpoint = str(request.url)
            logger.log(
                level,
                "%s: %s %s",
                agent,
                request.method,
                endpoint,
                extra={"agent": agent, "method": request.method, "endpoint": endpoint},
            )
            return await client.send(request)

        return ClientFunc(send)

    return decorator
