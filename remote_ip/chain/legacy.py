"""
Comma-delimited forwarded chains (``X-Forwarded-For`` style).

A chain is written left to right: the left-most entry is the original
client's claim and the right-most entry is the hop closest to us.
"""

import re
from collections.abc import Iterable, Sequence

_COMMA_SEPARATED_RE = re.compile(r"\s*,\s*")


def split_chain(value: str | None) -> list[str]:
    """
    Split a comma-delimited header value into its entries.

    Args:
        value: Raw header value, possibly None or empty.

    Returns:
        Entries in header order with surrounding whitespace removed.
        Empty entries are dropped, so ``"a, ,b,"`` yields ``["a", "b"]``.
    """
    if not value:
        return []
    return [entry for entry in _COMMA_SEPARATED_RE.split(value.strip()) if entry]


def join_header_values(values: Iterable[str]) -> str:
    """
    Concatenate all occurrences of one header into a single list value.

    Args:
        values: Header values in the order they were received.

    Returns:
        The values joined with ``", "``.
    """
    return ", ".join(values)


def parse_chain(values: Iterable[str]) -> list[str]:
    """Parse every occurrence of a chain header into one chain."""
    return split_chain(join_header_values(values))


def format_chain(chain: Sequence[str]) -> str:
    """Render a chain as a header value, left-most entry first."""
    return ", ".join(chain)
