"""httpx transport that routes every request through the RequestGateway."""

from __future__ import annotations

import httpx
import structlog

from hellarr.infrastructure.common.gateway import RequestGateway

log = structlog.get_logger(__name__)


class GatewayTransport(httpx.AsyncBaseTransport):
    """Wraps an httpx transport with global FIFO spacing and 429 retry.

    All clients sharing one gateway share its queue, so the spacing holds
    across providers.  Timeouts and network errors are raised by the
    wrapped transport and reach the caller without a retry.
    """

    def __init__(
        self,
        wrapped: httpx.AsyncBaseTransport,
        gateway: RequestGateway,
    ) -> None:
        self._wrapped = wrapped
        self._gateway = gateway

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        """Send *request* once the gateway grants a dispatch slot."""

        async def send() -> httpx.Response:
            log.debug("gateway_dispatch", method=request.method, url=str(request.url))
            return await self._wrapped.handle_async_request(request)

        return await self._gateway.enqueue(send)

    async def aclose(self) -> None:
        """Close the wrapped transport."""
        await self._wrapped.aclose()
