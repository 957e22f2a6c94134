import logging
import uuid
from typing import Any

import httpx
from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import Response
from starlette.routing import Route

from reqpipe.client.base import Client
from reqpipe.observability.logging import LogContext

logger = logging.getLogger(__name__)

_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]
_REQUEST_ID_HEADER = "x-request-id"


class ProxyApp:
    """A Starlette application forwarding every inbound request into a Client.

    Each inbound request becomes an outbound ``httpx.Request`` with the same
    method, URL and body (plus the caller's User-Agent). The composed client
    decides where it really goes. On success the upstream body and status
    are returned; on any failure the exchange ends with an empty 502.
    """

    def __init__(self, client: Client):
        """Initializes the ProxyApp.

        Args:
            client: The composed pipeline client.
        """
        self._client = client

    async def _handle_request(self, request: Request) -> Response:
        request_id = request.headers.get(_REQUEST_ID_HEADER) or uuid.uuid4().hex
        with LogContext(request_id=request_id):
            try:
                outbound = await self._build_outbound(request)
            except Exception as e:
                logger.error(f"Failed to build outbound request for {request.method} {request.url}: {e}")
                return Response(status_code=502)
            try:
                upstream = await self._client.send(outbound)
            except Exception as e:
                logger.error(f"Request {request.method} {request.url} failed: {e}")
                return Response(status_code=502)
            return Response(
                content=upstream.content,
                status_code=upstream.status_code,
                media_type=upstream.headers.get("content-type"),
            )

    @staticmethod
    async def _build_outbound(request: Request) -> httpx.Request:
        headers = {}
        user_agent = request.headers.get("user-agent")
        if user_agent is not None:
            headers["User-Agent"] = user_agent
        # Sized bodies go out sized; only chunked inbound bodies stream.
        content: Any = None
        if "content-length" in request.headers:
            content = await request.body()
        elif "transfer-encoding" in request.headers:
            content = request.stream()
        return httpx.Request(
            request.method,
            str(request.url),
            headers=headers,
            content=content,
        )

    def add_routes(self, app: Starlette, path: str = "/{path:path}") -> None:
        """Adds the catch-all forwarding route to the Starlette application."""
        app.routes.append(Route(path, self._handle_request, methods=_METHODS, name="reqpipe_proxy"))
        logger.debug(f"Added proxy route at path: {path}")

    def build(self, **kwargs: Any) -> Starlette:
        """Builds and returns the Starlette application with the proxy route.

        Args:
            **kwargs: Passed through to ``Starlette``, e.g. ``lifespan``.
        """
        app = Starlette(**kwargs)
        self.add_routes(app)
        return app
