"""Scheme, server name and port resolution from forwarded claims."""

from remote_ip.resolvers.host import HostOverride, HostResolver
from remote_ip.resolvers.protocol import ProtocolOverride, ProtocolResolver

__all__ = [
    "HostOverride",
    "HostResolver",
    "ProtocolOverride",
    "ProtocolResolver",
]
