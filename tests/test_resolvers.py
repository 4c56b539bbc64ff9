"""
Tests for protocol and host resolution.
"""

from unittest.mock import patch

import pytest

from remote_ip.resolvers.host import HostOverride, HostResolver
from remote_ip.resolvers.protocol import ProtocolOverride, ProtocolResolver


@pytest.fixture
def protocol_resolver():
    """
    Provides a ProtocolResolver with the default values.

    Returns:
        ProtocolResolver: https value "https", ports 80/443
    """
    return ProtocolResolver()


class TestProtocolSecurity:
    """Tests for ProtocolResolver.is_secure."""

    def test_single_https(self, protocol_resolver):
        assert protocol_resolver.is_secure(["https"]) is True

    def test_mixed_protocols_are_not_secure(self, protocol_resolver):
        """Test that one plain-http hop makes the request insecure."""
        assert protocol_resolver.is_secure(["https", "http"]) is False

    def test_empty_list_is_not_secure(self, protocol_resolver):
        assert protocol_resolver.is_secure([]) is False

    def test_case_insensitive(self, protocol_resolver):
        assert protocol_resolver.is_secure(["HTTPS", "Https"]) is True

    def test_custom_https_value(self):
        resolver = ProtocolResolver(https_value="on")

        assert resolver.is_secure(["on"]) is True
        assert resolver.is_secure(["https"]) is False


class TestProtocolResolve:
    """Tests for ProtocolResolver.resolve."""

    def test_secure_uses_https_port(self, protocol_resolver):
        assert protocol_resolver.resolve(["https"]) == ProtocolOverride(
            scheme="https", secure=True, port=443
        )

    def test_insecure_uses_http_port(self, protocol_resolver):
        assert protocol_resolver.resolve(["http"]) == ProtocolOverride(
            scheme="http", secure=False, port=80
        )

    def test_custom_ports(self):
        resolver = ProtocolResolver(http_port=8080, https_port=8443)

        assert resolver.resolve(["https"]).port == 8443
        assert resolver.resolve(["http"]).port == 8080

    def test_port_claim_overrides_default(self, protocol_resolver):
        assert protocol_resolver.resolve(["https"], "9443").port == 9443

    def test_invalid_port_claim_is_ignored(self, protocol_resolver):
        """Test that a non-numeric port is logged and skipped."""
        with patch("remote_ip.resolvers.protocol.logger") as mock_logger:
            result = protocol_resolver.resolve(["https"], "not-a-port")

        assert result.port == 443
        mock_logger.debug.assert_called_once()
        assert "not-a-port" in mock_logger.debug.call_args[0][0]

    @pytest.mark.parametrize("port_claim", ["\u00b2", "\u00b9\u00b3", "1" * 5000])
    def test_non_ascii_and_oversized_port_claims_are_ignored(
        self, protocol_resolver, port_claim
    ):
        """Test that port text int() would reject is skipped, not raised."""
        assert protocol_resolver.resolve(["https"], port_claim).port == 443


class TestHostResolver:
    """Tests for HostResolver.resolve."""

    def test_plain_host(self):
        assert HostResolver().resolve("example.com") == HostOverride(
            server_name="example.com", port=None
        )

    def test_host_with_port(self):
        assert HostResolver().resolve("example.com:8443") == HostOverride(
            server_name="example.com", port=8443
        )

    def test_ipv6_host(self):
        assert HostResolver().resolve("[2001:db8::1]:8080") == HostOverride(
            server_name="[2001:db8::1]", port=8080
        )

    def test_obfuscated_port_is_dropped(self):
        assert HostResolver().resolve("example.com:_abc") == HostOverride(
            server_name="example.com", port=None
        )

    @pytest.mark.parametrize(
        "claim", ["[2001:db8::1", "[::1]:x", "bad host", "example.com:99999"]
    )
    def test_invalid_host_is_skipped(self, claim):
        """Test that invalid host claims are logged, not raised."""
        with patch("remote_ip.resolvers.host.logger") as mock_logger:
            result = HostResolver().resolve(claim, "X-Forwarded-Host")

        assert result is None
        mock_logger.debug.assert_called_once()
        assert "X-Forwarded-Host" in mock_logger.debug.call_args[0][0]
