"""
Custom exception classes for forwarded-header processing.

All of these describe malformed, attacker-controlled header content. They
are raised by the low-level parsers and caught by the resolvers, which log
them and skip the affected override instead of failing the request.
"""


class InvalidHostError(ValueError):
    """
    Host literal could not be parsed.

    Raised when a value is neither a bracketed IPv6 literal nor a
    hostname/IPv4 address, optionally followed by a port.
    """

    pass


class InvalidPortError(ValueError):
    """
    Port value is not a valid TCP port.

    Raised when a port header or host suffix is non-numeric or outside
    the 0-65535 range.
    """

    pass
