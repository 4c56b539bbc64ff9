"""
Tests for comma-delimited forwarded chains.
"""

from remote_ip.chain.legacy import (
    format_chain,
    join_header_values,
    parse_chain,
    split_chain,
)


class TestSplitChain:
    """Tests for split_chain function."""

    def test_empty_values(self):
        """Test that missing or empty values give an empty chain."""
        assert split_chain(None) == []
        assert split_chain("") == []
        assert split_chain("   ") == []

    def test_single_entry(self):
        assert split_chain("140.211.11.130") == ["140.211.11.130"]

    def test_whitespace_is_stripped(self):
        """Test handling whitespace around entries."""
        assert split_chain("  203.0.113.1  ,10.0.0.2 ,  proxy1 ") == [
            "203.0.113.1",
            "10.0.0.2",
            "proxy1",
        ]

    def test_empty_entries_are_dropped(self):
        """Test that empty entries never become chain hops."""
        assert split_chain("a, ,b,") == ["a", "b"]

    def test_ipv6_entries(self):
        assert split_chain("2001:db8::1, ::1") == ["2001:db8::1", "::1"]


class TestParseChain:
    """Tests for joining multiple header occurrences."""

    def test_multiple_occurrences_are_concatenated(self):
        """Test that header occurrences keep their order."""
        values = ["140.211.11.130, proxy1", "proxy2"]

        assert join_header_values(values) == "140.211.11.130, proxy1, proxy2"
        assert parse_chain(values) == ["140.211.11.130", "proxy1", "proxy2"]

    def test_no_occurrences(self):
        assert parse_chain([]) == []


class TestFormatChain:
    """Tests for format_chain function."""

    def test_format(self):
        assert format_chain(["proxy1", "proxy2"]) == "proxy1, proxy2"

    def test_format_empty(self):
        assert format_chain([]) == ""
