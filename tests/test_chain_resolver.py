"""
Tests for the forwarded chain trust walk.

This module tests ChainResolver against the documented scenarios:
trusted hops are collected, internal hops are dropped and the first
untrusted hop stops the walk.
"""

import pytest

from remote_ip.chain.resolver import ChainResolution, ChainResolver
from remote_ip.constants import DEFAULT_INTERNAL_PROXIES
from remote_ip.trust import TrustPattern


@pytest.fixture
def resolver():
    """
    Provides a ChainResolver trusting proxy1 and proxy2.

    Returns:
        ChainResolver: Default internal pattern, proxy1|proxy2 trusted
    """
    return ChainResolver(
        TrustPattern.compile(
            internal=DEFAULT_INTERNAL_PROXIES, trusted=r"proxy1|proxy2"
        )
    )


class TestChainResolver:
    """Tests for ChainResolver.resolve."""

    def test_trusted_proxies_are_collected(self, resolver):
        """Test the basic walk over two trusted proxies."""
        result = resolver.resolve(
            ["140.211.11.130", "proxy1", "proxy2"], "192.168.0.10"
        )

        assert result == ChainResolution(
            remote_addr="140.211.11.130",
            proxies=("proxy1", "proxy2"),
            remaining=(),
            chain_proxies=2,
        )

    def test_internal_proxies_are_dropped(self, resolver):
        """Test that internal hops appear in no output chain."""
        result = resolver.resolve(["140.211.11.130", "192.168.0.10"], "192.168.0.10")

        assert result.remote_addr == "140.211.11.130"
        assert result.proxies == ()
        assert result.remaining == ()

    def test_untrusted_hop_stops_the_walk(self, resolver):
        """Test that nothing left of an untrusted hop is trusted."""
        result = resolver.resolve(
            ["140.211.11.130", "untrusted-proxy", "proxy1"], "192.168.0.10"
        )

        assert result.remote_addr == "untrusted-proxy"
        assert result.proxies == ("proxy1",)
        assert result.remaining == ("140.211.11.130",)

    def test_trusted_entries_left_of_untrusted_hop_are_not_trusted(self, resolver):
        """Test that forged trusted entries behind an untrusted hop stay put."""
        result = resolver.resolve(
            ["1.2.3.4", "proxy2", "evil", "192.168.0.20", "proxy1"],
            "192.168.0.10",
        )

        assert result.remote_addr == "evil"
        assert result.proxies == ("proxy1",)
        assert result.remaining == ("1.2.3.4", "proxy2")

    def test_trusted_peer_is_seeded(self, resolver):
        """Test that a non-internal peer is the right-most proxy."""
        result = resolver.resolve(["140.211.11.130", "proxy1"], "proxy2")

        assert result.remote_addr == "140.211.11.130"
        assert result.proxies == ("proxy1", "proxy2")
        assert result.chain_proxies == 1

    def test_internal_peer_is_not_seeded(self, resolver):
        result = resolver.resolve(["140.211.11.130"], "10.0.0.1")

        assert result.proxies == ()
        assert result.chain_proxies == 0

    def test_exhausted_chain_leaves_address_unresolved(self, resolver):
        """Test that a chain of only proxies resolves no client."""
        result = resolver.resolve(["192.168.0.20", "proxy1"], "192.168.0.10")

        assert result.resolved is False
        assert result.remote_addr is None
        assert result.proxies == ("proxy1",)
        assert result.remaining == ()
        assert result.chain_proxies == 1

    def test_empty_chain(self, resolver):
        result = resolver.resolve([], "proxy1")

        assert result.resolved is False
        assert result.proxies == ("proxy1",)
        assert result.chain_proxies == 0

    def test_rightmost_untrusted_entry(self, resolver):
        """Test that an untrusted right-most entry resolves immediately."""
        result = resolver.resolve(["proxy1", "203.0.113.7"], "192.168.0.10")

        assert result.remote_addr == "203.0.113.7"
        assert result.proxies == ()
        assert result.remaining == ("proxy1",)

    def test_no_trusted_pattern(self):
        """Test that without a trusted pattern only internal hops are skipped."""
        resolver = ChainResolver(
            TrustPattern.compile(internal=DEFAULT_INTERNAL_PROXIES)
        )

        result = resolver.resolve(["140.211.11.130", "proxy1"], "127.0.0.1")

        assert result.remote_addr == "proxy1"
        assert result.remaining == ("140.211.11.130",)
