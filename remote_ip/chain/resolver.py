"""
Forwarded chain trust walk.

The chain is walked from the right (the hop closest to us) towards the
left (the original client's claim). Internal proxies are skipped, trusted
proxies are collected, and the first address that is neither becomes the
client address. Nothing to the left of that address is trusted, because
the untrusted hop could have written any of it.
"""

from collections.abc import Sequence
from dataclasses import dataclass

from remote_ip.trust import TrustPattern


@dataclass(frozen=True)
class ChainResolution:
    """
    Outcome of walking a forwarded chain.

    Attributes:
        remote_addr: The first untrusted address found, or None if every
            entry was an internal or trusted proxy.
        proxies: Trusted proxies crossed by the walk, in header order
            (left to right), including the seeded peer when applicable.
        remaining: Entries left of ``remote_addr``, untouched, kept as an
            audit trail for downstream consumers.
        chain_proxies: Number of ``proxies`` entries that came from the
            chain itself rather than from the seeded peer.
    """

    remote_addr: str | None
    proxies: tuple[str, ...] = ()
    remaining: tuple[str, ...] = ()
    chain_proxies: int = 0

    @property
    def resolved(self) -> bool:
        return self.remote_addr is not None


class ChainResolver:
    """
    Resolves the originating client address from a forwarded chain.

    Instances hold only the read-only trust patterns and can be shared by
    concurrent requests.
    """

    def __init__(self, trust: TrustPattern):
        """
        Initialize the resolver.

        Args:
            trust: Internal and trusted proxy patterns.
        """
        self.trust = trust

    def resolve(self, chain: Sequence[str], peer_addr: str) -> ChainResolution:
        """
        Walk a chain right to left and split it at the first untrusted hop.

        Args:
            chain: Chain entries, left-most (oldest claim) first.
            peer_addr: Address of the immediate network peer. It is seeded
                as the right-most proxy unless it is an internal proxy.

        Returns:
            ChainResolution describing the client address and the
            rewritten proxies and remote-ip chains.
        """
        proxies: list[str] = []
        if not self.trust.is_internal(peer_addr):
            proxies.append(peer_addr)
        seeded = len(proxies)

        remote_addr = None
        idx = len(chain) - 1
        while idx >= 0:
            current = chain[idx]
            if self.trust.is_internal(current):
                pass
            elif self.trust.is_trusted(current):
                proxies.append(current)
            else:
                remote_addr = current
                break
            idx -= 1

        # Collected right to left; report in header order
        proxies.reverse()
        remaining = tuple(chain[:idx]) if remote_addr is not None else ()

        return ChainResolution(
            remote_addr=remote_addr,
            proxies=tuple(proxies),
            remaining=remaining,
            chain_proxies=len(proxies) - seeded,
        )
