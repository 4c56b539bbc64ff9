"""
Server name and port resolution from a forwarded host claim.
"""

from dataclasses import dataclass

from remote_ip.exceptions import InvalidHostError, InvalidPortError
from remote_ip.logging import logger
from remote_ip.utils.host_parser import parse_host, parse_port


@dataclass(frozen=True)
class HostOverride:
    """Server name (IPv6 keeps its brackets) and optional port to apply."""

    server_name: str
    port: int | None = None


class HostResolver:
    """Parses host claims such as ``X-Forwarded-Host`` or ``host=``."""

    def resolve(self, host_claim: str, source: str = "host") -> HostOverride | None:
        """
        Parse a host claim into a server name and optional port.

        Obfuscated ports (``_token``) are dropped and only the name is used.

        Args:
            host_claim: Raw claimed host, e.g. ``example.com:8443``.
            source: Header or directive the claim came from, for logging.

        Returns:
            HostOverride, or None if the claim is invalid. Invalid claims
            are logged and never raised.
        """
        try:
            host = parse_host(host_claim.strip())
            port = None
            if host.port is not None and not host.has_obfuscated_port:
                port = parse_port(host.port)
        except (InvalidHostError, InvalidPortError) as ex:
            logger.debug(f"Invalid value {host_claim!r} found in {source}: {ex}")
            return None

        return HostOverride(server_name=host.name, port=port)
