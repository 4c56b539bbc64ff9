"""
CLI tool for inspecting forwarded-header resolution.

Provides commands for simulating how a request arriving through a chain of
proxies will be seen by the application, for printing the effective
settings, and for running the demo server.
"""

import asyncio

import typer
import uvicorn
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from remote_ip.middlewares.remote_ip import RemoteIpMiddleware
from remote_ip.request import server_name_and_port
from remote_ip.settings import Settings, app_settings

# Initialize Typer app with help text
typer_app = typer.Typer(
    name="remote-ip",
    help="Remote IP CLI - Inspect how forwarded headers are resolved",
    add_completion=False,
)
console = Console()


def _parse_header_option(raw: str) -> tuple[str, str]:
    """
    Split a ``Name: value`` header option.

    Raises:
        typer.BadParameter: If the option has no colon or no name.
    """
    name, sep, value = raw.partition(":")
    if not sep or not name.strip():
        raise typer.BadParameter(f"Expected 'Name: value', got {raw!r}")
    return name.strip(), value.strip()


def _build_scope(
    peer: str, host: str, scheme: str, headers: list[tuple[str, str]]
) -> dict:
    raw_headers = [(b"host", host.encode("latin-1"))]
    raw_headers += [
        (name.lower().encode("latin-1"), value.encode("latin-1"))
        for name, value in headers
    ]
    return {
        "type": "http",
        "asgi": {"version": "3.0"},
        "http_version": "1.1",
        "method": "GET",
        "scheme": scheme,
        "path": "/",
        "raw_path": b"/",
        "query_string": b"",
        "root_path": "",
        "headers": raw_headers,
        "client": (peer, 50000),
        "server": ("127.0.0.1", 8080),
    }


def _describe(scope: dict, header_names: list[str]) -> dict[str, str]:
    server_name, server_port = server_name_and_port(scope)
    headers = dict(
        (name.decode("latin-1"), value.decode("latin-1"))
        for name, value in scope["headers"]
    )
    view = {
        "remote address": scope["client"][0] if scope.get("client") else "-",
        "remote host": scope.get("state", {}).get("remote_host", "-"),
        "scheme": scope["scheme"],
        "server name": str(server_name),
        "server port": str(server_port),
    }
    for name in header_names:
        view[name] = headers.get(name.lower(), "[dim]absent[/dim]")
    return view


def simulate(scope: dict, settings: Settings) -> tuple[dict, dict]:
    """
    Run the middleware over a scope and capture the downstream view.

    Returns:
        Tuple of (view seen downstream, view after restoration).
    """
    header_names = [
        settings.REMOTE_IP_HEADER,
        settings.PROXIES_HEADER,
        "Forwarded",
    ]
    seen: dict = {}

    async def downstream(scope, receive, send):
        seen.update(_describe(scope, header_names))

    async def receive():
        return {"type": "http.request", "body": b"", "more_body": False}

    async def send(message):
        pass

    middleware = RemoteIpMiddleware(downstream, settings=settings)
    asyncio.run(middleware(scope, receive, send))
    return seen, _describe(scope, header_names)


@typer_app.command(name="resolve")
def resolve(
    peer: str = typer.Option(
        ..., "--peer", "-p", help="Address of the immediate network peer"
    ),
    header: list[str] = typer.Option(
        None,
        "--header",
        "-H",
        help="Request header as 'Name: value' (can specify multiple)",
    ),
    host: str = typer.Option("localhost", "--host", help="Host header value"),
    scheme: str = typer.Option("http", "--scheme", help="Connection scheme"),
    trusted: str = typer.Option(
        None, "--trusted", "-t", help="Trusted proxies regex (overrides settings)"
    ),
    internal: str = typer.Option(
        None, "--internal", "-i", help="Internal proxies regex (overrides settings)"
    ),
    rfc7239: bool = typer.Option(
        None, "--rfc7239/--legacy", help="Use the RFC 7239 Forwarded header"
    ),
):
    """
    Show how a request from PEER with the given headers is resolved.

    Examples:
        python cli.py resolve -p 192.168.0.10 \\
            -H "X-Forwarded-For: 140.211.11.130, proxy1" -t "proxy1"

        python cli.py resolve -p 10.0.0.1 --rfc7239 \\
            -H 'Forwarded: for=203.0.113.7;proto=https;host=example.com'
    """
    updates = {}
    if trusted is not None:
        updates["TRUSTED_PROXIES"] = trusted
    if internal is not None:
        updates["INTERNAL_PROXIES"] = internal
    if rfc7239 is not None:
        updates["SUPPORT_RFC7239_ONLY"] = rfc7239

    try:
        settings = Settings(**{**app_settings.model_dump(), **updates})
        headers = [_parse_header_option(raw) for raw in header or []]
    except ValueError as e:
        console.print(
            Panel.fit(
                f"[red]Invalid input[/red]\n\n{e}",
                border_style="red",
                title="Error",
            )
        )
        raise typer.Exit(code=1)

    scope = _build_scope(peer, host, scheme, headers)
    original = _describe(
        scope,
        [settings.REMOTE_IP_HEADER, settings.PROXIES_HEADER, "Forwarded"],
    )
    seen, restored = simulate(scope, settings)

    console.print()
    table = Table(
        "Field",
        "Incoming",
        "Seen by application",
        title="Forwarded resolution",
        show_lines=True,
    )
    for field_name, value in original.items():
        new_value = seen.get(field_name, "")
        style = "green" if new_value != value else "dim"
        table.add_row(field_name, value, f"[{style}]{new_value}[/{style}]")
    console.print(table)
    console.print()

    if restored == original:
        console.print(
            "[green]✓[/green] Request restored after downstream completed"
        )
    else:
        console.print("[red]✗[/red] Request was not restored")
        raise typer.Exit(code=1)
    console.print()


@typer_app.command(name="config")
def config():
    """
    Display the effective middleware settings.

    Example:
        python cli.py config
    """
    table = Table(
        "Setting", "Value", title="Remote IP Settings", show_lines=True
    )
    for name, value in app_settings.model_dump().items():
        shown = "[dim]unset[/dim]" if value in (None, "") else str(value)
        table.add_row(f"[cyan]{name}[/cyan]", shown)
    console.print()
    console.print(table)
    console.print()


@typer_app.command(name="serve")
def serve(
    bind: str = typer.Option("0.0.0.0", "--bind", "-b", help="Bind address"),
    port: int = typer.Option(8000, "--port", help="Bind port"),
):
    """
    Run the demo application with uvicorn.

    Uvicorn's own proxy header handling is disabled so that only
    RemoteIpMiddleware interprets forwarded headers.

    Example:
        python cli.py serve --port 8000
    """
    uvicorn.run("main:app", host=bind, port=port, proxy_headers=False)


if __name__ == "__main__":
    typer_app()
