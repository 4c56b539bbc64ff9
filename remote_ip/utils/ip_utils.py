"""
Request helpers for code running behind RemoteIpMiddleware.

The middleware rewrites the request in place, so request.client already
holds the resolved client address; these helpers expose the remaining
forwarded state stored on request.state.
"""

from starlette.requests import HTTPConnection

from remote_ip.constants import (
    STATE_REMOTE_HOST,
    STATE_REQUEST_FORWARDED,
    STATE_SUSPENDED,
)
from remote_ip.logging import logger


def get_client_ip(request: HTTPConnection) -> str:
    """
    Get the client IP address of a request.

    Args:
        request: The incoming HTTP request or WebSocket connection.

    Returns:
        The client IP address as a string, or "unknown" if the server
        did not report one.
    """
    return request.client.host if request.client else "unknown"


def get_remote_host(request: HTTPConnection) -> str:
    """
    Get the remote host name, falling back to the client IP address.

    Args:
        request: The incoming HTTP request or WebSocket connection.

    Returns:
        The reverse-resolved host name when lookups are enabled,
        otherwise the client IP address.
    """
    return request.scope.get("state", {}).get(STATE_REMOTE_HOST) or get_client_ip(
        request
    )


def is_forwarded(request: HTTPConnection) -> bool:
    """
    Check if the request arrived through a recognised proxy.

    Returns:
        True if RemoteIpMiddleware applied forwarded headers to it.
    """
    return bool(request.scope.get("state", {}).get(STATE_REQUEST_FORWARDED))


def mark_suspended(request: HTTPConnection) -> None:
    """
    Keep the forwarded view after the ASGI call returns.

    Call this when the request is handed to a continuation that runs after
    the endpoint returns and must still see the resolved client. The
    middleware then skips restoring the original request fields.

    Example:
        >>> @app.get("/report")
        ... async def report(request: Request):
        ...     mark_suspended(request)
        ...     queue.put_nowait(request)
    """
    request.scope.setdefault("state", {})[STATE_SUSPENDED] = True
    logger.debug(f"Request for {get_client_ip(request)} marked as suspended")


def is_suspended(request: HTTPConnection) -> bool:
    return bool(request.scope.get("state", {}).get(STATE_SUSPENDED))
