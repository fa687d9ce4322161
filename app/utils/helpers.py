"""
Client IP resolution for requests arriving through proxies, CDNs and load balancers.

Headers are checked in priority order and the first value that parses as an
IPv4 or IPv6 address wins. The transport remote address is the last resort.
"""

import ipaddress
import logging
import re
from typing import Callable, Dict, Iterable, Mapping, Optional, Tuple

from fastapi import Request
from starlette.datastructures import Address

logger = logging.getLogger(__name__)

HeaderExtractor = Callable[[str], str]
HeaderRule = Tuple[str, HeaderExtractor]

REMOTE_ADDR_SOURCE = "remote-addr"

_PORT_SUFFIX = re.compile(r":[0-9]+")


def is_ip(value: Optional[str]) -> bool:
    """Check if the given string is a valid IPv4 or IPv6 address."""
    if not value or "%" in value:
        # Scoped IPv6 literals (fe80::1%eth0) are not client addresses
        return False
    try:
        ipaddress.ip_address(value)
    except ValueError:
        return False
    return True


def get_client_ip_from_x_forwarded_for(header: Optional[str]) -> str:
    """
    Parse an X-Forwarded-For header value.

    The header holds one entry per hop, separated by ", ", with the original
    client on the left. Entries with a colon are cut at the first colon to drop
    an IPv4 port, so bare IPv6 hops get truncated and never validate.

    Some proxies (Squid among them) write "unknown" instead of an address, so
    the left-most entry that is a valid IP is returned.

    Args:
        header: Raw X-Forwarded-For value

    Returns:
        Left-most valid IP address, or "" if there is none
    """
    if not header:
        return ""

    ips = [proxy.split(":", 1)[0] for proxy in header.split(", ")]

    for ip in ips:
        if is_ip(ip):
            return ip

    return ""


def _header_value(value: str) -> str:
    return value


DEFAULT_HEADER_PRIORITY: Tuple[HeaderRule, ...] = (
    # Amazon EC2, Heroku and others
    ("x-client-ip", _header_value),
    # Load balancers (AWS ELB) and proxies
    ("x-forwarded-for", get_client_ip_from_x_forwarded_for),
    # Cloudflare, applied to every request to the origin
    ("cf-connecting-ip", _header_value),
    # Fastly and Firebase hosting
    ("fastly-client-ip", _header_value),
    # Akamai and Cloudflare
    ("true-client-ip", _header_value),
    # Default nginx proxy/fcgi
    ("x-real-ip", _header_value),
    # Rackspace LB and Riverbed Stingray
    ("x-cluster-client-ip", _header_value),
    ("x-forwarded", _header_value),
    ("forwarded-for", _header_value),
    ("forwarded", _header_value),
)

_EXTRACTORS: Dict[str, HeaderExtractor] = {name: extract for name, extract in DEFAULT_HEADER_PRIORITY}


def build_header_priority(names: Iterable[str]) -> Tuple[HeaderRule, ...]:
    """
    Build a priority list from header names.

    Known headers keep their extractor (x-forwarded-for stays multi-value),
    anything else is taken as a single address. Blank names are dropped and an
    empty result falls back to the default order.
    """
    rules = []
    for name in names:
        key = name.strip().lower()
        if not key:
            continue
        rules.append((key, _EXTRACTORS.get(key, _header_value)))

    if not rules:
        return DEFAULT_HEADER_PRIORITY
    return tuple(rules)


def normalize_headers(headers: Optional[Mapping[str, str]]) -> Dict[str, str]:
    """Lower-case header names, joining repeated headers with ", "."""
    normalized: Dict[str, str] = {}
    if not headers:
        return normalized

    # Starlette's Headers.items() yields every raw entry, duplicates included
    for name, value in headers.items():
        key = name.lower()
        if key in normalized:
            normalized[key] = f"{normalized[key]}, {value}"
        else:
            normalized[key] = value
    return normalized


def strip_port(address: str) -> str:
    """
    Drop a trailing port from "host:port" or "[host]:port".

    Only a numeric port is stripped and brackets must hold an IPv6 host.
    Anything else is returned unchanged so it fails validation.
    """
    if address.startswith("["):
        host, sep, rest = address[1:].partition("]")
        if sep and ":" in host and (not rest or _PORT_SUFFIX.fullmatch(rest)):
            return host
        return address
    if address.count(":") == 1:
        host, port = address.split(":")
        if _PORT_SUFFIX.fullmatch(f":{port}"):
            return host
    return address


def resolve_client_ip_with_source(
    headers: Optional[Mapping[str, str]],
    remote_addr: Optional[str],
    header_priority: Iterable[HeaderRule] = DEFAULT_HEADER_PRIORITY,
    strip_remote_port: bool = False,
) -> Tuple[str, Optional[str]]:
    """
    Resolve the client IP and report where it came from.

    Args:
        headers: Header mapping, matched case-insensitively
        remote_addr: Transport peer address, possibly with a port
        header_priority: Ordered (header name, extractor) rules
        strip_remote_port: Strip a port from remote_addr before validating it

    Returns:
        Tuple of (client_ip, source). source is the matching header name,
        "remote-addr" for the transport fallback, or None if nothing matched.
    """
    normalized = normalize_headers(headers)

    if normalized:
        for name, extract in header_priority:
            value = normalized.get(name.lower())
            if not value:
                continue
            ip = extract(value)
            if is_ip(ip):
                return ip, name

    if remote_addr:
        candidate = strip_port(remote_addr) if strip_remote_port else remote_addr
        if is_ip(candidate):
            return candidate, REMOTE_ADDR_SOURCE

    return "", None


def resolve_client_ip(
    headers: Optional[Mapping[str, str]],
    remote_addr: Optional[str],
    header_priority: Iterable[HeaderRule] = DEFAULT_HEADER_PRIORITY,
    strip_remote_port: bool = False,
) -> str:
    """Resolve the client IP from headers and remote address, "" if none is valid."""
    ip, _ = resolve_client_ip_with_source(headers, remote_addr, header_priority, strip_remote_port)
    return ip


def format_remote_addr(client: Optional[Address]) -> str:
    """Render an ASGI client address as "host:port"."""
    if not client or not client.host:
        return ""
    if client.port is None:
        return client.host
    if ":" in client.host:
        return f"[{client.host}]:{client.port}"
    return f"{client.host}:{client.port}"


def get_client_ip_with_source(
    request: Request,
    header_priority: Iterable[HeaderRule] = DEFAULT_HEADER_PRIORITY,
    strip_remote_port: bool = False,
) -> Tuple[str, Optional[str]]:
    """Resolve the client IP of a FastAPI request, with its source."""
    ip, source = resolve_client_ip_with_source(
        request.headers,
        format_remote_addr(request.client),
        header_priority,
        strip_remote_port,
    )
    logger.debug(f"Resolved client IP {ip or '<none>'} from {source or 'nothing'}")
    return ip, source


def get_client_ip(
    request: Request,
    header_priority: Iterable[HeaderRule] = DEFAULT_HEADER_PRIORITY,
    strip_remote_port: bool = False,
) -> str:
    """
    Extract client IP address from FastAPI request.

    Handles the usual headers from proxies and load balancers, then falls
    back to the connection's peer address.

    Args:
        request: FastAPI Request object
        header_priority: Ordered (header name, extractor) rules
        strip_remote_port: Strip the port from the peer address before validating it

    Returns:
        Client IP address as string, "" if none could be found
    """
    ip, _ = get_client_ip_with_source(request, header_priority, strip_remote_port)
    return ip
