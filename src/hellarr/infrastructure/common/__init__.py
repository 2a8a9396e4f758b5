"""Common infrastructure utilities."""

from __future__ import annotations

from .gateway import RequestGateway
from .gateway_transport import GatewayTransport

__all__ = [
    "GatewayTransport",
    "RequestGateway",
]
