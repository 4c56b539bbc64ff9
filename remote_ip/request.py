"""
Scoped mutation of an ASGI request.

The middleware never builds a new scope: it rewrites the fields of the
incoming one so that every downstream consumer (routing, request.client,
request.url, uvicorn's access log) sees the forwarded client. Everything
it changes is captured first in a RequestSnapshot and written back once
the downstream application has finished.

Field mapping:
- remote address: ``scope["client"][0]``
- remote host: ``scope["state"]["remote_host"]``
- scheme: ``scope["scheme"]`` (``ws``/``wss`` for websockets)
- server name/port: the ``Host`` header
- local name/port: ``scope["server"]``
"""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from starlette.datastructures import Headers, MutableHeaders
from starlette.types import Scope

from remote_ip.constants import (
    SECURE_SCHEMES,
    STATE_REMOTE_HOST,
    STATE_REQUEST_FORWARDED,
)
from remote_ip.exceptions import InvalidHostError, InvalidPortError
from remote_ip.utils.host_parser import format_host, parse_host, parse_port

# Scope keys restored verbatim; a missing key is restored as missing
_SCOPE_KEYS = ("client", "scheme", "server")
_MISSING = object()


def default_port(secure: bool) -> int:
    return 443 if secure else 80


def scheme_for(scope: Scope, secure: bool) -> str:
    """ASGI scheme for the scope type: http/https or ws/wss."""
    if scope.get("type") == "websocket":
        return "wss" if secure else "ws"
    return "https" if secure else "http"


def server_name_and_port(scope: Scope) -> tuple[str | None, int | None]:
    """
    Server name and port as seen by the application.

    Taken from the Host header, falling back to ``scope["server"]``.
    A Host header without a usable port implies the scheme's default port.
    """
    secure = scope.get("scheme", "http") in SECURE_SCHEMES
    host_header = Headers(scope=scope).get("host")
    if host_header:
        try:
            host = parse_host(host_header)
        except InvalidHostError:
            return host_header, default_port(secure)
        if host.port is None or host.has_obfuscated_port:
            return host.name, default_port(secure)
        try:
            return host.name, parse_port(host.port)
        except InvalidPortError:
            return host.name, default_port(secure)

    server = scope.get("server")
    if server:
        return server[0], server[1]
    return None, None


@dataclass(frozen=True)
class RequestSnapshot:
    """
    Request state captured before any forwarded override is applied.

    Attributes:
        remote_addr: Address of the immediate peer.
        remote_host: Remote host name, if one was set.
        scheme: ASGI scheme.
        secure: Whether the scheme is https/wss.
        server_name: Server name from the Host header or scope.
        local_name: Local socket name, captured only when local names
            may be changed.
        server_port: Server port from the Host header or scope.
        local_port: Local socket port.
        headers: Raw values of every header that may be rewritten,
            including ``host``, keyed by lower-case name.
        raw_headers: The complete ``scope["headers"]`` list, in order.
    """

    remote_addr: str | None
    remote_host: str | None
    scheme: str
    secure: bool
    server_name: str | None
    local_name: str | None
    server_port: int | None
    local_port: int | None
    headers: Mapping[str, tuple[str, ...]]
    scope_fields: Mapping[str, Any] = field(default_factory=dict, repr=False)
    raw_headers: tuple[tuple[bytes, bytes], ...] = field(default=(), repr=False)

    @classmethod
    def capture(
        cls,
        scope: Scope,
        header_names: Iterable[str],
        capture_local_name: bool = True,
    ) -> "RequestSnapshot":
        """
        Capture the fields of a scope that the middleware may change.

        Args:
            scope: ASGI connection scope.
            header_names: Names of the headers that may be rewritten.
            capture_local_name: Whether to record the local name.

        Returns:
            The snapshot.
        """
        headers = Headers(scope=scope)
        names = {"host", *(name.lower() for name in header_names)}
        client = scope.get("client")
        server = scope.get("server")
        scheme = scope.get("scheme", "http")
        server_name, server_port = server_name_and_port(scope)

        return cls(
            remote_addr=client[0] if client else None,
            remote_host=(scope.get("state") or {}).get(STATE_REMOTE_HOST),
            scheme=scheme,
            secure=scheme in SECURE_SCHEMES,
            server_name=server_name,
            local_name=server[0] if server and capture_local_name else None,
            server_port=server_port,
            local_port=server[1] if server else None,
            headers={name: tuple(headers.getlist(name)) for name in sorted(names)},
            scope_fields={key: scope.get(key, _MISSING) for key in _SCOPE_KEYS},
            raw_headers=tuple(scope.get("headers", ())),
        )

    def restore(self, scope: Scope) -> None:
        """
        Write the captured state back into a scope.

        Args:
            scope: The scope this snapshot was captured from.
        """
        for key, value in self.scope_fields.items():
            if value is _MISSING:
                scope.pop(key, None)
            else:
                scope[key] = value

        state = scope.setdefault("state", {})
        if self.remote_host is None:
            state.pop(STATE_REMOTE_HOST, None)
        else:
            state[STATE_REMOTE_HOST] = self.remote_host

        # Entire list, in its original order
        scope["headers"] = list(self.raw_headers)


@dataclass(frozen=True)
class RequestOverrides:
    """
    Values derived from forwarded headers; None leaves a field unchanged.

    Attributes:
        remote_addr: New client address.
        remote_host: New remote host name.
        secure: New secure flag; selects the http/https (ws/wss) scheme.
        server_name: New server name.
        server_port: New server port.
        headers: Header rewrites; a None value removes the header.
    """

    remote_addr: str | None = None
    remote_host: str | None = None
    secure: bool | None = None
    server_name: str | None = None
    server_port: int | None = None
    headers: Mapping[str, str | None] = field(default_factory=dict)


class RequestMutator:
    """
    Applies RequestOverrides to a scope and restores it afterwards.

    ``enter`` and ``exit`` are separate so the caller decides whether to
    restore: a request handed to a continuation that outlives the call
    must keep its forwarded view.

    Example:
        ```python
        mutator = RequestMutator(scope, ["X-Forwarded-For"])
        mutator.enter(overrides)
        try:
            await app(scope, receive, send)
        finally:
            mutator.exit(restore=not suspended)
        ```
    """

    def __init__(
        self,
        scope: Scope,
        header_names: Iterable[str],
        change_local_name: bool = False,
        change_local_port: bool = False,
    ):
        """
        Initialize the mutator.

        Args:
            scope: ASGI connection scope to mutate in place.
            header_names: Headers that overrides may rewrite.
            change_local_name: Also apply server name to ``scope["server"]``.
            change_local_port: Also apply server port to ``scope["server"]``.
        """
        self.scope = scope
        self.header_names = tuple(header_names)
        self.change_local_name = change_local_name
        self.change_local_port = change_local_port
        self.snapshot: RequestSnapshot | None = None

    def enter(self, overrides: RequestOverrides) -> RequestSnapshot:
        """
        Capture the snapshot, apply the overrides and mark the request
        as forwarded.

        Args:
            overrides: Values to apply.

        Returns:
            The snapshot taken before mutation.
        """
        snapshot = RequestSnapshot.capture(
            self.scope,
            [*self.header_names, *overrides.headers],
            capture_local_name=self.change_local_name,
        )
        self.snapshot = snapshot
        scope = self.scope
        state = scope.setdefault("state", {})

        if overrides.remote_addr is not None:
            client = scope.get("client")
            scope["client"] = (overrides.remote_addr, client[1] if client else 0)
        if overrides.remote_host is not None:
            state[STATE_REMOTE_HOST] = overrides.remote_host

        secure = snapshot.secure
        if overrides.secure is not None:
            secure = overrides.secure
            scope["scheme"] = scheme_for(scope, secure)

        headers = MutableHeaders(scope=scope)
        for name, value in overrides.headers.items():
            if value is None:
                del headers[name]
            else:
                headers[name] = value

        if overrides.server_name is not None or overrides.server_port is not None:
            self._set_server(snapshot, overrides, secure, headers)

        state[STATE_REQUEST_FORWARDED] = True
        return snapshot

    def exit(self, restore: bool = True) -> None:
        """
        Leave the forwarded view.

        Args:
            restore: Restore the captured snapshot. Pass False while the
                request is suspended for asynchronous continuation.
        """
        if restore and self.snapshot is not None:
            self.snapshot.restore(self.scope)

    def _set_server(
        self,
        snapshot: RequestSnapshot,
        overrides: RequestOverrides,
        secure: bool,
        headers: MutableHeaders,
    ) -> None:
        name = (
            overrides.server_name
            if overrides.server_name is not None
            else snapshot.server_name
        )
        port = (
            overrides.server_port
            if overrides.server_port is not None
            else snapshot.server_port
        )
        if name is not None:
            shown_port = None if port in (None, default_port(secure)) else port
            headers["host"] = format_host(name, shown_port)

        server = self.scope.get("server")
        local_name, local_port = server if server else (None, None)
        if self.change_local_name and overrides.server_name is not None:
            local_name = overrides.server_name
        if self.change_local_port and overrides.server_port is not None:
            local_port = overrides.server_port
        if server or local_name is not None:
            self.scope["server"] = (local_name, local_port)
