"""
Pytest configuration and fixtures for testing.

This module provides shared fixtures for building settings, ASGI scopes
and for running RemoteIpMiddleware against a recording downstream app.
"""

import copy

import pytest

from remote_ip.middlewares.remote_ip import RemoteIpMiddleware
from remote_ip.settings import Settings


def build_scope(
    client=("192.168.0.10", 40000),
    headers=(),
    scheme="http",
    host="localhost",
    scope_type="http",
    server=("127.0.0.1", 8080),
):
    """
    Build a minimal ASGI connection scope.

    Args:
        client: Peer address tuple or None.
        headers: Iterable of (name, value) string pairs.
        scheme: Connection scheme.
        host: Host header value, or None to omit it.
        scope_type: "http" or "websocket".
        server: Local socket tuple or None.

    Returns:
        dict: ASGI scope
    """
    raw_headers = []
    if host is not None:
        raw_headers.append((b"host", host.encode("latin-1")))
    for name, value in headers:
        raw_headers.append(
            (name.lower().encode("latin-1"), value.encode("latin-1"))
        )
    return {
        "type": scope_type,
        "asgi": {"version": "3.0"},
        "http_version": "1.1",
        "method": "GET",
        "scheme": scheme,
        "path": "/",
        "raw_path": b"/",
        "query_string": b"",
        "root_path": "",
        "headers": raw_headers,
        "client": client,
        "server": server,
    }


def header_values(scope, name):
    """Return all values of a header in a scope, in order."""
    key = name.lower().encode("latin-1")
    return [v.decode("latin-1") for k, v in scope["headers"] if k == key]


class RecordingApp:
    """
    Downstream ASGI app that records the scope it was called with.

    Attributes:
        seen: Deep copy of the scope as seen downstream.
        on_call: Optional callable invoked with the live scope.
    """

    def __init__(self, on_call=None, error=None):
        self.seen = None
        self.on_call = on_call
        self.error = error

    async def __call__(self, scope, receive, send):
        self.seen = copy.deepcopy(scope)
        if self.on_call is not None:
            self.on_call(scope)
        if self.error is not None:
            raise self.error


async def noop_receive():
    return {"type": "http.request", "body": b"", "more_body": False}


async def noop_send(message):
    pass


@pytest.fixture
def make_settings():
    """
    Provides a factory for Settings with explicit overrides.

    Returns:
        Callable returning a Settings instance.
    """

    def _make(**overrides):
        return Settings(**overrides)

    return _make


@pytest.fixture
def make_scope():
    """
    Provides the build_scope factory.

    Returns:
        Callable returning an ASGI scope dict.
    """
    return build_scope


@pytest.fixture
def run_middleware(make_settings):
    """
    Provides a coroutine running RemoteIpMiddleware over a scope.

    Returns:
        Async callable (scope, app=None, **settings) -> RecordingApp
    """

    async def _run(scope, app=None, **settings):
        app = app or RecordingApp()
        middleware = RemoteIpMiddleware(app, settings=make_settings(**settings))
        await middleware(scope, noop_receive, noop_send)
        return app

    return _run
