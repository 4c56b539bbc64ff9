"""Real client address, scheme and host resolution behind reverse proxies."""

from remote_ip.middlewares.remote_ip import RemoteIpMiddleware
from remote_ip.request import RequestMutator, RequestOverrides, RequestSnapshot
from remote_ip.settings import Settings
from remote_ip.trust import TrustPattern

__all__ = [
    "RemoteIpMiddleware",
    "RequestMutator",
    "RequestOverrides",
    "RequestSnapshot",
    "Settings",
    "TrustPattern",
]
