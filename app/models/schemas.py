"""
Pydantic schemas for the client IP API.
"""

from pydantic import BaseModel, Field
from typing import Optional, List


class ClientIPResponse(BaseModel):
    """Response model for client IP lookups."""
    client_ip: str = Field(..., description="Resolved client IP, empty if none was found")
    source: Optional[str] = Field(None, description="Header the IP came from, or 'remote-addr'")
    found: bool


class HeaderPriorityResponse(BaseModel):
    """Response model describing how client IPs are resolved."""
    headers: List[str]
    strip_remote_port: bool
