"""
Client IP API endpoints.

URL Structure:
- /api/v1/client-ip/ - Client IP of the calling request
- /api/v1/client-ip/headers - Header priority used to resolve it
"""

import logging
from typing import Optional, Tuple
from fastapi import APIRouter, Request, Depends

# Local imports
from app import config
from app.models.schemas import ClientIPResponse, HeaderPriorityResponse
from app.utils.helpers import get_client_ip_with_source

logger = logging.getLogger(__name__)

public_router = APIRouter()


def resolved_client_ip(request: Request) -> Tuple[str, Optional[str]]:
    """Client IP stored by ClientIPMiddleware, resolved here if it did not run."""
    if hasattr(request.state, "client_ip"):
        return request.state.client_ip, request.state.client_ip_source

    return get_client_ip_with_source(
        request,
        config.CLIENT_IP_HEADER_PRIORITY,
        config.CLIENT_IP_STRIP_REMOTE_PORT,
    )


@public_router.get("/", response_model=ClientIPResponse)
def get_my_ip(resolved: Tuple[str, Optional[str]] = Depends(resolved_client_ip)):
    """
    PUBLIC: Report the client IP of the calling request.

    A request with no usable address still returns 200 with found=false.

    URL: /api/v1/client-ip/
    """
    client_ip, source = resolved
    if not client_ip:
        logger.info("No valid client IP found in headers or remote address")

    return ClientIPResponse(client_ip=client_ip, source=source, found=bool(client_ip))


@public_router.get("/headers", response_model=HeaderPriorityResponse)
def get_header_priority():
    """
    PUBLIC: List the headers checked for the client IP, highest priority first.

    URL: /api/v1/client-ip/headers
    """
    return HeaderPriorityResponse(
        headers=[name for name, _ in config.CLIENT_IP_HEADER_PRIORITY],
        strip_remote_port=config.CLIENT_IP_STRIP_REMOTE_PORT,
    )
