"""Best-effort reverse DNS lookups for resolved client addresses."""

import socket

from remote_ip.logging import logger


def lookup_remote_host(address: str) -> str:
    """
    Resolve the canonical host name for an address.

    This call blocks; async callers should run it in a threadpool.

    Args:
        address: IP literal of the client.

    Returns:
        The host name, or the address itself if the lookup fails.
    """
    try:
        hostname, _aliases, _addresses = socket.gethostbyaddr(address)
    except (OSError, UnicodeError) as ex:
        # socket.herror / socket.gaierror are OSError subclasses
        logger.debug(f"Reverse lookup failed for {address}: {ex}")
        return address
    return hostname
