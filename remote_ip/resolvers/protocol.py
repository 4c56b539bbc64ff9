"""
Scheme and port resolution from a forwarded protocol claim.
"""

from collections.abc import Sequence
from dataclasses import dataclass

from remote_ip.exceptions import InvalidPortError
from remote_ip.logging import logger
from remote_ip.utils.host_parser import parse_port


@dataclass(frozen=True)
class ProtocolOverride:
    """Scheme, secure flag and server port derived from a protocol claim."""

    scheme: str
    secure: bool
    port: int


class ProtocolResolver:
    """
    Derives the request scheme from the protocols claimed by the proxies.

    A request is considered secure only if every hop claims the configured
    https value; a single plain-http hop makes the whole request insecure.
    """

    def __init__(
        self,
        https_value: str = "https",
        http_port: int = 80,
        https_port: int = 443,
    ):
        """
        Initialize the protocol resolver.

        Args:
            https_value: Protocol value that indicates a secure hop.
            http_port: Server port applied for insecure requests.
            https_port: Server port applied for secure requests.
        """
        self.https_value = https_value
        self.http_port = http_port
        self.https_port = https_port

    def is_secure(self, protocols: Sequence[str]) -> bool:
        """
        Check whether a list of claimed protocols is entirely secure.

        Args:
            protocols: Protocol claims, one per hop.

        Returns:
            True iff the list is non-empty and every entry equals the
            https value, ignoring case.
        """
        if not protocols:
            return False
        expected = self.https_value.lower()
        return all(protocol.lower() == expected for protocol in protocols)

    def resolve(
        self, protocols: Sequence[str], port_claim: str | None = None
    ) -> ProtocolOverride:
        """
        Resolve scheme and port for a protocol claim.

        Args:
            protocols: Protocol claims, one per hop.
            port_claim: Optional explicit port (e.g. from a port header).
                Non-numeric values are logged and ignored.

        Returns:
            ProtocolOverride with the scheme and port to apply.
        """
        secure = self.is_secure(protocols)
        port = self.https_port if secure else self.http_port

        if port_claim is not None:
            try:
                port = parse_port(port_claim)
            except InvalidPortError as ex:
                logger.debug(f"Ignoring port claim {port_claim!r}: {ex}")

        return ProtocolOverride(
            scheme="https" if secure else "http", secure=secure, port=port
        )
