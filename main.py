# Uvicorn application factory <https://www.uvicorn.org/#application-factories>
from fastapi import FastAPI, Request

from remote_ip.logging import logger
from remote_ip.middlewares.remote_ip import RemoteIpMiddleware
from remote_ip.settings import Settings, app_settings
from remote_ip.utils.ip_utils import get_client_ip, get_remote_host, is_forwarded


def create_app(settings: Settings | None = None) -> FastAPI:
    """
    Build a FastAPI application running behind RemoteIpMiddleware.

    Args:
        settings: Middleware settings. If None, uses app_settings.

    Returns:
        The application, exposing ``/whoami`` to inspect how the current
        request is seen after forwarded headers are applied.
    """
    settings = settings or app_settings
    app = FastAPI(title="remote-ip")
    app.add_middleware(RemoteIpMiddleware, settings=settings)

    @app.get("/whoami")
    async def whoami(request: Request) -> dict:
        """Echo the resolved client, scheme and server of this request."""
        return {
            "client": get_client_ip(request),
            "remote_host": get_remote_host(request),
            "scheme": request.url.scheme,
            "server_name": request.url.hostname,
            "server_port": request.url.port,
            "forwarded": is_forwarded(request),
            "headers": {
                name: request.headers.get(name)
                for name in (
                    settings.REMOTE_IP_HEADER,
                    settings.PROXIES_HEADER,
                    "Forwarded",
                )
            },
            "access_log": getattr(request.state, "access_log", None),
        }

    logger.info(
        f"RemoteIpMiddleware enabled (rfc7239_only={settings.SUPPORT_RFC7239_ONLY})"
    )
    return app


app = create_app()
