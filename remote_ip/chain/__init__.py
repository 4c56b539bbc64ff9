"""Forwarded chain codecs and the trust walk."""

from remote_ip.chain.legacy import format_chain, parse_chain, split_chain
from remote_ip.chain.resolver import ChainResolution, ChainResolver
from remote_ip.chain.rfc7239 import (
    DirectiveMap,
    parse_forwarded,
    serialize_forwarded,
)

__all__ = [
    "ChainResolution",
    "ChainResolver",
    "DirectiveMap",
    "format_chain",
    "parse_chain",
    "parse_forwarded",
    "serialize_forwarded",
    "split_chain",
]
