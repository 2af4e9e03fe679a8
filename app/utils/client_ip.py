"""Client IP extraction from proxy headers.

These headers are supplied by the client or intermediate proxies and can be
spoofed unless a trusted reverse proxy overwrites them.
"""

from __future__ import annotations

from typing import Protocol

UNKNOWN_CLIENT_IP = "unknown"


class HeaderLookup(Protocol):
    """Anything exposing header lookup by name (e.g., Starlette ``Headers``)."""

    def get(self, key: str, default: str | None = None) -> str | None: ...


def get_client_ip(headers: HeaderLookup) -> str:
    """Derive the client address, checking headers in priority order.

    Order: ``X-Forwarded-For`` (first entry), ``X-Real-IP``,
    ``CF-Connecting-IP``.

    Args:
        headers: Request headers. Starlette headers are case-insensitive;
            plain dicts must use lowercase names.

    Returns:
        The client IP string, or ``"unknown"`` when no header is present.

    Examples:
        >>> get_client_ip({"x-forwarded-for": "5.6.7.8, 9.9.9.9"})
        '5.6.7.8'
        >>> get_client_ip({})
        'unknown'
    """
    forwarded = headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first

    real_ip = headers.get("x-real-ip")
    if real_ip:
        return real_ip.strip()

    cf_connecting_ip = headers.get("cf-connecting-ip")
    if cf_connecting_ip:
        return cf_connecting_ip.strip()

    return UNKNOWN_CLIENT_IP
