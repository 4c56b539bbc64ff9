"""
Forwarded client resolution middleware.

Replaces the proxy's address, scheme, host and port with the values the
proxy chain reports for the original client, as long as every hop on the
way is an internal or trusted proxy. Supports legacy ``X-Forwarded-*``
headers and the RFC 7239 ``Forwarded`` header.
"""

from collections.abc import Sequence

from starlette.concurrency import run_in_threadpool
from starlette.datastructures import Headers
from starlette.requests import HTTPConnection
from starlette.types import ASGIApp, Receive, Scope, Send

from remote_ip.chain.legacy import format_chain, parse_chain
from remote_ip.chain.resolver import ChainResolution, ChainResolver
from remote_ip.chain.rfc7239 import (
    DirectiveMap,
    parse_forwarded,
    serialize_forwarded,
)
from remote_ip.constants import (
    ATTR_PROTOCOL,
    ATTR_REMOTE_ADDR,
    ATTR_REMOTE_HOST,
    ATTR_SERVER_NAME,
    ATTR_SERVER_PORT,
    DIRECTIVE_BY,
    DIRECTIVE_FOR,
    DIRECTIVE_HOST,
    DIRECTIVE_PROTO,
    FORWARDED_HEADER,
    HANDLED_SCOPE_TYPES,
    STATE_ACCESS_LOG,
    STATE_REMOTE_HOST,
)
from remote_ip.logging import clear_log_context, logger, set_log_context
from remote_ip.request import (
    RequestMutator,
    RequestOverrides,
    server_name_and_port,
)
from remote_ip.resolvers.host import HostResolver
from remote_ip.resolvers.protocol import ProtocolResolver
from remote_ip.settings import Settings, app_settings
from remote_ip.utils.dns import lookup_remote_host
from remote_ip.utils.ip_utils import is_suspended


class RemoteIpMiddleware:
    """
    ASGI middleware resolving the real client behind reverse proxies.

    This middleware:
    - Only trusts forwarded headers when the immediate peer is an internal
      or trusted proxy
    - Walks the forwarded chain right to left and stops at the first
      untrusted hop, which becomes the client address
    - Rewrites the proxies and remote-ip headers (or ``Forwarded``) to
      show which proxies were crossed and what was not trusted
    - Applies scheme, server name and port from the protocol/host claims
    - Publishes access-log attributes in ``request.state.access_log``
    - Restores the original request once the downstream app completes,
      unless the request was marked suspended

    Pure ASGI rather than BaseHTTPMiddleware so that restoration happens
    only after the response body has been fully sent.
    """

    def __init__(self, app: ASGIApp, settings: Settings | None = None):
        """
        Initialize the remote IP middleware.

        Args:
            app: The ASGI application.
            settings: Middleware settings. If None, uses app_settings.
        """
        self.app = app
        self.settings = settings or app_settings
        self.trust = self.settings.trust_pattern
        self.chain_resolver = ChainResolver(self.trust)
        self.protocol_resolver = ProtocolResolver(
            https_value=self.settings.PROTOCOL_HEADER_HTTPS_VALUE,
            http_port=self.settings.HTTP_SERVER_PORT,
            https_port=self.settings.HTTPS_SERVER_PORT,
        )
        self.host_resolver = HostResolver()

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] not in HANDLED_SCOPE_TYPES:
            await self.app(scope, receive, send)
            return

        # Created up front so downstream scope copies share the same dict
        scope.setdefault("state", {})
        connection = HTTPConnection(scope)
        peer = connection.client.host if connection.client else None

        mutator = RequestMutator(
            scope,
            self.settings.managed_headers,
            change_local_name=self.settings.CHANGE_LOCAL_NAME,
            change_local_port=self.settings.CHANGE_LOCAL_PORT,
        )

        if peer is not None and self.trust.is_proxy(peer):
            overrides = await self.resolve(scope, peer)
            snapshot = mutator.enter(overrides)
            logger.debug(
                f"Incoming request {scope.get('path', '')} with "
                f"remote_addr={snapshot.remote_addr}, scheme={snapshot.scheme}, "
                f"server={snapshot.server_name}:{snapshot.server_port} will be "
                f"seen as remote_addr={connection.client.host}, "
                f"scheme={scope.get('scheme')}, "
                f"server={':'.join(map(str, server_name_and_port(scope)))}"
            )
        else:
            logger.debug(
                f"Skipping forwarded headers for request {scope.get('path', '')} "
                f"from untrusted peer {peer}"
            )

        if self.settings.REQUEST_ATTRIBUTES_ENABLED:
            self._publish_attributes(scope)

        server_name, _ = server_name_and_port(scope)
        set_log_context(
            remote_addr=scope["client"][0] if scope.get("client") else None,
            scheme=scope.get("scheme"),
            server_name=server_name,
        )

        try:
            await self.app(scope, receive, send)
        finally:
            mutator.exit(restore=not is_suspended(connection))
            clear_log_context()

    async def resolve(self, scope: Scope, peer: str) -> RequestOverrides:
        """
        Derive the overrides for a request received from a proxy.

        Args:
            scope: ASGI connection scope.
            peer: Address of the immediate peer, an internal or trusted proxy.

        Returns:
            RequestOverrides to apply for the duration of the request.
        """
        headers = Headers(scope=scope)
        if self.settings.SUPPORT_RFC7239_ONLY:
            directives = parse_forwarded(headers.getlist(FORWARDED_HEADER))
            chain = directives.get(DIRECTIVE_FOR, [])
        else:
            directives = {}
            chain = parse_chain(headers.getlist(self.settings.REMOTE_IP_HEADER))

        resolution = self.chain_resolver.resolve(chain, peer)

        remote_addr = remote_host = None
        if resolution.resolved:
            remote_addr = resolution.remote_addr
            remote_host = await self._lookup(remote_addr)

        if self.settings.SUPPORT_RFC7239_ONLY:
            header_updates = self._forwarded_updates(directives, resolution)
            protocol_overrides = self._forwarded_protocol_and_host(directives)
        else:
            header_updates = self._legacy_updates(resolution)
            protocol_overrides = self._legacy_protocol_and_host(headers)

        return RequestOverrides(
            remote_addr=remote_addr,
            remote_host=remote_host,
            headers=header_updates,
            **protocol_overrides,
        )

    async def _lookup(self, address: str) -> str:
        if not self.settings.ENABLE_LOOKUPS:
            return address
        return await run_in_threadpool(lookup_remote_host, address)

    def _legacy_updates(self, resolution: ChainResolution) -> dict[str, str | None]:
        if resolution.resolved:
            return {
                self.settings.PROXIES_HEADER: format_chain(resolution.proxies)
                or None,
                self.settings.REMOTE_IP_HEADER: format_chain(resolution.remaining)
                or None,
            }
        if resolution.chain_proxies:
            # Whole chain trusted: record the proxies, leave the chain as is
            return {self.settings.PROXIES_HEADER: format_chain(resolution.proxies)}
        return {}

    def _forwarded_updates(
        self, directives: DirectiveMap, resolution: ChainResolution
    ) -> dict[str, str | None]:
        if not resolution.resolved and not resolution.chain_proxies:
            return {}

        rewritten = dict(directives)
        self._replace_directive(rewritten, DIRECTIVE_BY, resolution.proxies)
        if resolution.resolved:
            self._replace_directive(rewritten, DIRECTIVE_FOR, resolution.remaining)
        return {FORWARDED_HEADER: serialize_forwarded(rewritten) or None}

    @staticmethod
    def _replace_directive(
        directives: DirectiveMap, name: str, values: Sequence[str]
    ) -> None:
        if values:
            directives[name] = list(values)
        else:
            directives.pop(name, None)

    def _legacy_protocol_and_host(self, headers: Headers) -> dict:
        overrides: dict = {}
        settings = self.settings

        if settings.PROTOCOL_HEADER:
            protocol_values = headers.getlist(settings.PROTOCOL_HEADER)
            if protocol_values:
                port_claim = (
                    headers.get(settings.PORT_HEADER) if settings.PORT_HEADER else None
                )
                protocol = self.protocol_resolver.resolve(
                    parse_chain(protocol_values), port_claim
                )
                overrides.update(secure=protocol.secure, server_port=protocol.port)

        if settings.HOST_HEADER:
            host_claim = headers.get(settings.HOST_HEADER)
            if host_claim is not None:
                self._apply_host(overrides, host_claim, settings.HOST_HEADER)

        return overrides

    def _forwarded_protocol_and_host(self, directives: DirectiveMap) -> dict:
        overrides: dict = {}

        protocols = directives.get(DIRECTIVE_PROTO)
        if protocols:
            protocol = self.protocol_resolver.resolve(protocols)
            overrides.update(secure=protocol.secure, server_port=protocol.port)

        hosts = directives.get(DIRECTIVE_HOST)
        if hosts:
            # Only the first hop's host is meaningful
            self._apply_host(overrides, hosts[0], f"{FORWARDED_HEADER} host")

        return overrides

    def _apply_host(self, overrides: dict, host_claim: str, source: str) -> None:
        host = self.host_resolver.resolve(host_claim, source)
        if host is None:
            return
        overrides["server_name"] = host.server_name
        if host.port is not None:
            overrides["server_port"] = host.port

    def _publish_attributes(self, scope: Scope) -> None:
        client = scope.get("client")
        remote_addr = client[0] if client else None
        server_name, server_port = server_name_and_port(scope)
        scope["state"][STATE_ACCESS_LOG] = {
            ATTR_REMOTE_ADDR: remote_addr,
            ATTR_REMOTE_HOST: scope["state"].get(STATE_REMOTE_HOST) or remote_addr,
            ATTR_PROTOCOL: f"HTTP/{scope.get('http_version', '1.1')}",
            ATTR_SERVER_NAME: server_name,
            ATTR_SERVER_PORT: server_port,
        }
