"""
Proxy trust classification.

Decides whether an address written in a forwarded chain belongs to our own
infrastructure (internal proxy) or to a credible external relay (trusted
proxy). Both checks are exact full-string regular expression matches, so
hostnames and IPv6 literals are matched as written.
"""

import re
from dataclasses import dataclass


@dataclass(frozen=True)
class TrustPattern:
    """
    Immutable pair of address patterns shared by all requests.

    Attributes:
        internal: Pattern for internal proxies, or None to never match.
        trusted: Pattern for trusted proxies, or None to never match.
            An unset trusted pattern means no external hop is ever trusted.
    """

    internal: re.Pattern[str] | None = None
    trusted: re.Pattern[str] | None = None

    @classmethod
    def compile(
        cls, internal: str | None = None, trusted: str | None = None
    ) -> "TrustPattern":
        """
        Build a TrustPattern from regular expression strings.

        Args:
            internal: Internal proxy regex. Empty or None leaves it unset.
            trusted: Trusted proxy regex. Empty or None leaves it unset.

        Returns:
            The compiled TrustPattern.

        Raises:
            re.error: If either expression does not compile.
        """
        return cls(
            internal=re.compile(internal) if internal else None,
            trusted=re.compile(trusted) if trusted else None,
        )

    def is_internal(self, address: str) -> bool:
        """
        Check if an address belongs to an internal proxy.

        Args:
            address: Address token as written in the request.

        Returns:
            True if the internal pattern is set and matches the whole address.
        """
        return self.internal is not None and bool(
            self.internal.fullmatch(address)
        )

    def is_trusted(self, address: str) -> bool:
        """
        Check if an address belongs to a trusted proxy.

        Args:
            address: Address token as written in the request.

        Returns:
            True if the trusted pattern is set and matches the whole address.
        """
        return self.trusted is not None and bool(
            self.trusted.fullmatch(address)
        )

    def is_proxy(self, address: str) -> bool:
        """Check if an address is either an internal or a trusted proxy."""
        return self.is_internal(address) or self.is_trusted(address)
