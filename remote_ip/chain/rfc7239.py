"""
RFC 7239 ``Forwarded`` header parsing and serialization.

Only the four directives defined by the RFC (``for``, ``by``, ``host`` and
``proto``) are recognised. All ``Forwarded`` header occurrences of a
request are folded into a single DirectiveMap, a mapping from directive
name to the ordered list of values seen for it.

``for`` values are normalized to the legacy unbracketed form, e.g.
``"[2001:db8::1]:8080"`` becomes ``2001:db8::1:8080``, so they can be
matched with the same proxy patterns as ``X-Forwarded-For`` entries.
"""

import ipaddress
from collections.abc import Iterable, Iterator, Mapping, Sequence

from remote_ip.constants import (
    ACCEPTED_PROTOCOLS,
    ADDRESS_DIRECTIVES,
    DIRECTIVE_FOR,
    DIRECTIVE_PROTO,
    KNOWN_DIRECTIVES,
    OBFUSCATED_PREFIX,
    UNKNOWN_IDENTIFIER,
)
from remote_ip.exceptions import InvalidHostError
from remote_ip.logging import logger
from remote_ip.utils.host_parser import parse_host

DirectiveMap = dict[str, list[str]]


def tokenize(forwarded_value: str) -> Iterator[tuple[str, str]]:
    """
    Split one Forwarded header value into raw key/value pairs.

    ``=`` switches from key to value; ``,`` (between hops) and ``;``
    (between directives of one hop) both end the current pair. Quotes and
    spaces are dropped.

    Args:
        forwarded_value: Raw header value.

    Yields:
        ``(key, value)`` pairs in header order, as written.
    """
    key: list[str] = []
    value: list[str] = []
    in_key = True
    for char in forwarded_value:
        if char == "=":
            in_key = False
        elif char in ",;":
            yield "".join(key), "".join(value)
            key, value, in_key = [], [], True
        elif char in ' "':
            continue
        elif in_key:
            key.append(char)
        else:
            value.append(char)
    if key and value:
        yield "".join(key), "".join(value)


def normalize_directive(key: str, value: str) -> tuple[str, str] | None:
    """
    Validate one directive and normalize its value.

    Args:
        key: Directive name as written.
        value: Directive value with quotes removed.

    Returns:
        ``(directive, value)`` to record, or None if the pair must be
        dropped (unknown directive, obfuscated identifier, unsupported
        protocol or empty value).
    """
    directive = key.lower()
    if directive not in KNOWN_DIRECTIVES or not value:
        return None

    if directive == DIRECTIVE_FOR and value.startswith("["):
        value = _unbracket_for_value(value)

    if directive in ADDRESS_DIRECTIVES:
        if _is_obfuscated(value):
            return None
    elif directive == DIRECTIVE_PROTO:
        if value.lower() not in ACCEPTED_PROTOCOLS:
            logger.debug(f"Ignoring unsupported Forwarded proto: {value}")
            return None

    return directive, value


def parse_forwarded(forwarded_values: Iterable[str]) -> DirectiveMap:
    """
    Fold all Forwarded header occurrences into a DirectiveMap.

    Args:
        forwarded_values: Header values in the order they were received.

    Returns:
        A new DirectiveMap. Directive order follows first appearance.

    Example:
        >>> parse_forwarded(['for=192.0.2.60;proto=http, for="[2001:db8::1]"'])
        {'for': ['192.0.2.60', '2001:db8::1'], 'proto': ['http']}
    """
    directives: DirectiveMap = {}
    for forwarded_value in forwarded_values:
        for key, value in tokenize(forwarded_value):
            pair = normalize_directive(key, value)
            if pair is not None:
                directives.setdefault(pair[0], []).append(pair[1])
    return directives


def serialize_forwarded(directives: Mapping[str, Sequence[str]]) -> str:
    """
    Render a DirectiveMap as a Forwarded header value.

    Directive groups are emitted in map order and joined with ``;``; the
    values of one directive are joined with ``, ``. IPv6 node identifiers
    are bracketed and quoted as the RFC requires.

    Only ``for`` values are unbracketed again by parse_forwarded, so a
    legacy-form IPv6 ``by`` value such as ``2001:db8::1:8080`` comes back
    as ``[2001:db8::1]:8080``.

    Args:
        directives: Directive name to ordered values.

    Returns:
        The header value (empty string for an empty map).
    """
    groups = []
    for key, values in directives.items():
        if key.lower() in ADDRESS_DIRECTIVES:
            pairs = (f"{key}={_quote_node(value)}" for value in values)
        else:
            pairs = (f"{key}={value}" for value in values)
        groups.append(", ".join(pairs))
    return ";".join(groups)


def _is_obfuscated(value: str) -> bool:
    return (
        value.startswith(OBFUSCATED_PREFIX)
        or value.lower() == UNKNOWN_IDENTIFIER
    )


def _unbracket_for_value(value: str) -> str:
    try:
        host = parse_host(value)
    except InvalidHostError as ex:
        # Kept as written: it will not match any proxy pattern
        logger.debug(f"Invalid Forwarded for value {value}: {ex}")
        return value
    if host.port is None:
        return host.address
    return f"{host.address}:{host.port}"


def _quote_node(value: str) -> str:
    if value.startswith("["):
        return f'"{value}"'
    if value.count(":") < 2:
        return value
    return f'"{_bracket_legacy_ipv6(value)}"'


def _bracket_legacy_ipv6(value: str) -> str:
    """
    Convert a legacy ``addr:port`` IPv6 form into ``[addr]:port``.

    A bare IPv6 address (no port) is bracketed whole.
    """
    address, _, port = value.rpartition(":")
    if port.isdigit() and _is_ipv6(address):
        return f"[{address}]:{port}"
    if _is_ipv6(value):
        return f"[{value}]"
    return f"[{address}]:{port}"


def _is_ipv6(value: str) -> bool:
    try:
        ipaddress.IPv6Address(value)
    except ValueError:
        return False
    return True
