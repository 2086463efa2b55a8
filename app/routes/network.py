"""
TravelPlaces Backend — Network Route
======================================

GET /api/ip reports the address and port this server is reachable on, so
that clients on the local network can find the API.

The address is the local interface the OS would use for outbound traffic
(a UDP "connect" sends no packets). ADVERTISED_HOST overrides it, e.g.
behind NAT or in a container.
"""

import logging
import socket

from fastapi import APIRouter

from app.config import settings
from app.schemas.attraction import IPResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Network"])

UNKNOWN_ADDRESS = "0.0.0.0"
_PROBE_TARGET = ("10.255.255.255", 1)


def get_local_ip_address() -> str:
    """First non-loopback IPv4 address of this host, or 0.0.0.0."""
    probe = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    try:
        probe.connect(_PROBE_TARGET)
        address = probe.getsockname()[0]
    except OSError as e:
        logger.debug("Local address probe failed: %s", str(e))
        return UNKNOWN_ADDRESS
    finally:
        probe.close()

    if not address or address.startswith("127."):
        return UNKNOWN_ADDRESS
    return address


@router.get(
    "/ip",
    response_model=IPResponse,
    summary="Server address and port",
)
async def get_ip() -> IPResponse:
    ip = settings.advertised_host or get_local_ip_address()
    return IPResponse(ip=ip, port=settings.port)
