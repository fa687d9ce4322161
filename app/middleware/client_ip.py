"""Middleware that resolves the client IP once per request."""
import logging
from typing import Iterable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from app.utils.helpers import DEFAULT_HEADER_PRIORITY, HeaderRule, get_client_ip_with_source

logger = logging.getLogger(__name__)


class ClientIPMiddleware(BaseHTTPMiddleware):
    """Store the resolved client IP on request.state."""

    def __init__(
        self,
        app,
        header_priority: Iterable[HeaderRule] = DEFAULT_HEADER_PRIORITY,
        strip_remote_port: bool = False,
    ):
        super().__init__(app)
        self.header_priority = tuple(header_priority)
        self.strip_remote_port = strip_remote_port

    async def dispatch(self, request: Request, call_next):
        """Resolve the client IP, then pass the request on."""
        ip, source = get_client_ip_with_source(request, self.header_priority, self.strip_remote_port)
        request.state.client_ip = ip
        request.state.client_ip_source = source

        logger.debug(f"{request.method} {request.url.path} from {ip or 'unknown client'}")
        return await call_next(request)
