"""Per-visitor identity used as the rate-limit key."""

from typing import Any, Mapping, Optional
from fastapi import Request

CLIENT_ID_BODY_FIELD = "client_uuid"
CLIENT_ID_HEADER = "X-Client-UUID"
MAX_CLIENT_ID_LENGTH = 128
UNKNOWN_IDENTITY = "unknown"


def _clean(value: Any) -> Optional[str]:
    if not isinstance(value, str):
        return None
    value = value.strip()
    if not value:
        return None
    return value[:MAX_CLIENT_ID_LENGTH]


def get_client_ip(request: Request) -> Optional[str]:
    """Get client IP address, considering the proxy header set by the load balancer."""
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        # Take the first IP in the chain
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    if request.client and request.client.host:
        return request.client.host
    return None


def resolve_identity(request: Request, body: Optional[Mapping[str, Any]] = None) -> str:
    """
    Derive the identity key for a request.

    The browser-persisted client identifier (body field, then header) wins over
    the network address, so changing IP or VPN does not reset a visitor's quota.
    Keys are namespaced ("client:" / "ip:") so a forged identifier cannot
    collide with another visitor's address. Always returns a non-empty string.
    """
    if body:
        client_id = _clean(body.get(CLIENT_ID_BODY_FIELD))
        if client_id:
            return f"client:{client_id}"

    client_id = _clean(request.headers.get(CLIENT_ID_HEADER))
    if client_id:
        return f"client:{client_id}"

    ip = get_client_ip(request)
    if ip:
        return f"ip:{ip}"
    return UNKNOWN_IDENTITY
