"""
Tests for reverse DNS lookups.
"""

import socket
from unittest.mock import patch

import pytest

from remote_ip.utils.dns import lookup_remote_host


class TestLookupRemoteHost:
    """Tests for lookup_remote_host function."""

    def test_lookup_success(self):
        with patch(
            "remote_ip.utils.dns.socket.gethostbyaddr",
            return_value=("client.example.com", [], ["140.211.11.130"]),
        ) as mock_lookup:
            assert lookup_remote_host("140.211.11.130") == "client.example.com"

        mock_lookup.assert_called_once_with("140.211.11.130")

    @pytest.mark.parametrize(
        "error",
        [
            socket.herror(1, "Unknown host"),
            socket.gaierror(-2, "Name or service not known"),
            UnicodeError("label too long"),
        ],
    )
    def test_lookup_failure_returns_address(self, error):
        """Test that lookup failures fall back to the literal address."""
        with (
            patch("remote_ip.utils.dns.socket.gethostbyaddr", side_effect=error),
            patch("remote_ip.utils.dns.logger") as mock_logger,
        ):
            assert lookup_remote_host("140.211.11.130") == "140.211.11.130"

        mock_logger.debug.assert_called_once()
