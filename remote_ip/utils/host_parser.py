"""
Host literal parsing.

Splits ``host[:port]`` values as they appear in Host-style headers and in
RFC 7239 ``for``/``by``/``host`` directives. Two shapes are accepted:

- a bracketed IPv6 literal with an optional zone, ``[fe80::1%eth0]:8080``
- a hostname or IPv4 address, ``example.com:8080``

The port, when present, must be numeric or an obfuscated RFC 7239 port
(``_token``).
"""

import ipaddress
import re
from typing import NamedTuple

from remote_ip.constants import OBFUSCATED_PREFIX
from remote_ip.exceptions import InvalidHostError, InvalidPortError

_HOSTNAME_RE = re.compile(
    r"[A-Za-z0-9](?:[A-Za-z0-9_-]*[A-Za-z0-9])?"
    r"(?:\.[A-Za-z0-9](?:[A-Za-z0-9_-]*[A-Za-z0-9])?)*\.?"
)
_PORT_RE = re.compile(r"[0-9]{1,5}|_[A-Za-z0-9._-]+")
_NUMERIC_PORT_RE = re.compile(r"[0-9]{1,5}")


class HostLiteral(NamedTuple):
    """A parsed host literal; ``port`` is the raw port text or None."""

    name: str
    port: str | None

    @property
    def is_ipv6(self) -> bool:
        return self.name.startswith("[")

    @property
    def address(self) -> str:
        """Name without IPv6 brackets."""
        return self.name[1:-1] if self.is_ipv6 else self.name

    @property
    def has_obfuscated_port(self) -> bool:
        return self.port is not None and self.port.startswith(OBFUSCATED_PREFIX)


def parse_host(value: str) -> HostLiteral:
    """
    Parse a host literal into its name and optional port.

    Args:
        value: Raw host value, without surrounding quotes.

    Returns:
        HostLiteral with the name as written (IPv6 keeps its brackets).

    Raises:
        InvalidHostError: If the value is not a valid host literal.
    """
    if not value:
        raise InvalidHostError("Empty host")

    if value.startswith("["):
        close = value.find("]")
        if close < 0:
            raise InvalidHostError(f"Unterminated IPv6 literal: {value}")
        name = value[: close + 1]
        _validate_ipv6(name[1:-1], value)
        rest = value[close + 1 :]
        if not rest:
            return HostLiteral(name, None)
        if not rest.startswith(":"):
            raise InvalidHostError(f"Unexpected data after IPv6 literal: {value}")
        return HostLiteral(name, _validate_port_text(rest[1:], value))

    name, sep, port = value.partition(":")
    if not _HOSTNAME_RE.fullmatch(name):
        raise InvalidHostError(f"Invalid host name: {value}")
    if not sep:
        return HostLiteral(name, None)
    return HostLiteral(name, _validate_port_text(port, value))


def parse_port(value: str) -> int:
    """
    Convert port text into an integer TCP port.

    Args:
        value: Port text, surrounding whitespace is ignored.

    Returns:
        The port number.

    Raises:
        InvalidPortError: If the text is not an ASCII number in 0-65535.
    """
    text = value.strip()
    # ASCII digits only; str.isdigit also accepts superscripts
    if not _NUMERIC_PORT_RE.fullmatch(text):
        raise InvalidPortError(f"Invalid port: {value}")
    port = int(text)
    if port > 65535:
        raise InvalidPortError(f"Port out of range: {value}")
    return port


def format_host(name: str, port: int | None = None) -> str:
    """
    Render a host name and optional port as a Host header value.

    IPv6 addresses are bracketed if they are not already.
    """
    if ":" in name and not name.startswith("["):
        name = f"[{name}]"
    return name if port is None else f"{name}:{port}"


def _validate_ipv6(address: str, value: str) -> None:
    try:
        ipaddress.IPv6Address(address)
    except ValueError as ex:
        raise InvalidHostError(f"Invalid IPv6 literal: {value}") from ex


def _validate_port_text(port: str, value: str) -> str:
    if not _PORT_RE.fullmatch(port):
        raise InvalidHostError(f"Invalid port in host: {value}")
    return port
