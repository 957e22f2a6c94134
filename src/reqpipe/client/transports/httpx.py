from __future__ import annotations

import logging
from typing import Any

import httpx

from reqpipe.exceptions import TransportError, UpstreamTimeoutError, UpstreamUnavailableError

logger = logging.getLogger(__name__)


class HttpxTransport:
    """Base client performing requests over an ``httpx.AsyncClient``.

    Network and protocol failures are raised as :class:`TransportError`
    subclasses. HTTP error statuses are returned as ordinary responses.
    """

    def __init__(
        self,
        httpx_client: httpx.AsyncClient | None = None,
        timeout: float | None = 60.0,
    ):
        """Initializes the HttpxTransport.

        Args:
            httpx_client: Client to send with. If provided, the caller owns
                its lifecycle; otherwise one is created and closed by
                :meth:`aclose`.
            timeout: Timeout in seconds for a transport-created client.
        """
        self._owns_client = httpx_client is None
        self.httpx_client = httpx_client or httpx.AsyncClient(timeout=httpx.Timeout(timeout))

    async def send(self, request: httpx.Request) -> httpx.Response:
        try:
            return await self.httpx_client.send(request)
        except httpx.TimeoutException as e:
            raise UpstreamTimeoutError(
                message=f"Request to {request.url} timed out", cause=e
            ) from e
        except (httpx.RequestError, httpx.StreamError) as e:
            raise UpstreamUnavailableError(
                message=f"Network communication error with {request.url}: {e}", cause=e
            ) from e
        except httpx.HTTPError as e:
            raise TransportError(message=str(e), cause=e) from e

    async def aclose(self) -> None:
        if self._owns_client:
            await self.httpx_client.aclose()
            logger.debug("HttpxTransport closed")

    async def __aenter__(self) -> "HttpxTransport":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()
