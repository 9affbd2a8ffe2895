from __future__ import annotations

import ipaddress
import re
import socket
from typing import Optional, Union
from urllib.parse import urlsplit

from .errors import UnsafeURLError

ALLOWED_SCHEMES = ("http", "https")
BLOCKED_HOSTNAMES = ("localhost",)
BLOCKED_SUFFIXES = (".localhost", ".local", ".internal")
LEGACY_IPV4_PATTERN = re.compile(r"^[0-9a-fx.]+$")


def _parse_ip(hostname: str) -> Optional[Union[ipaddress.IPv4Address, ipaddress.IPv6Address]]:
    """IP literal in any form a resolver accepts, including 127.1, 2130706433, 0x7f000001 and 0177.0.0.1."""
    try:
        return ipaddress.ip_address(hostname)
    except ValueError:
        pass
    if not LEGACY_IPV4_PATTERN.match(hostname):
        return None
    try:
        return ipaddress.IPv4Address(socket.inet_aton(hostname))
    except OSError:
        return None


def _is_blocked_ip(hostname: str) -> bool:
    address = _parse_ip(hostname)
    if address is None:
        return False

    if isinstance(address, ipaddress.IPv6Address) and address.ipv4_mapped is not None:
        address = address.ipv4_mapped

    return (
        address.is_private
        or address.is_loopback
        or address.is_link_local
        or address.is_reserved
        or address.is_multicast
        or address.is_unspecified
    )


def validate_public_url(url: str) -> str:
    """
    Reject URLs that must never be fetched on behalf of a user.

    Only http(s) URLs with a public hostname pass. Private, loopback and
    link-local hosts are refused before any network call is made.
    Returns the stripped URL.
    """
    if not isinstance(url, str) or not url.strip():
        raise UnsafeURLError("A valid video URL is required.")

    candidate = url.strip()
    try:
        parts = urlsplit(candidate)
        hostname = parts.hostname
    except ValueError as error:
        raise UnsafeURLError("Invalid URL format.") from error

    if parts.scheme.lower() not in ALLOWED_SCHEMES:
        raise UnsafeURLError("Only http and https URLs are supported.")

    if not hostname:
        raise UnsafeURLError("Invalid URL format.")

    hostname = hostname.lower().rstrip(".")
    if (
        hostname in BLOCKED_HOSTNAMES
        or hostname.endswith(BLOCKED_SUFFIXES)
        or _is_blocked_ip(hostname)
    ):
        raise UnsafeURLError("URLs pointing to internal or private addresses are not allowed.")

    return candidate


def redact_url(url: str) -> str:
    """URL without query string or fragment, for logging."""
    return url.split("#", 1)[0].split("?", 1)[0]
