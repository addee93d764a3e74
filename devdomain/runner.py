"""
Application runner with automatic domain wiring.

Runs an ASGI app (FastAPI, Starlette, ...) under uvicorn on a socket bound up
front, and wires the project's domain into Caddy as soon as uvicorn reports
that it is serving.
"""

import asyncio
import logging
import socket
from typing import Any

import uvicorn

from .config import DomainOptions, ProjectConfig
from .structured_logging import setup_logging
from .wiring import on_server_listening

logger = logging.getLogger("devdomain.runner")

STARTUP_POLL_INTERVAL = 0.05


def bind_socket(host: str = "127.0.0.1", port: int = 0) -> socket.socket:
    """Bind a listening TCP socket; port 0 lets the OS pick a free port"""
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
    try:
        sock.bind((host, port))
    except OSError:
        sock.close()
        raise
    sock.listen(socket.SOMAXCONN)
    sock.set_inheritable(True)
    return sock


class DomainRunner:
    """
    Serves an ASGI app and maps its domain once it is listening.

    Usage:
        from devdomain.runner import run

        run(app)  # https://<folder-name>.local
    """

    def __init__(
        self,
        app: Any,
        host: str = "127.0.0.1",
        port: int = 0,
        options: DomainOptions | None = None,
        **uvicorn_kwargs,
    ):
        self.app = app
        self.host = host
        self.port = port
        self.options = options or ProjectConfig().options()
        self.uvicorn_kwargs = uvicorn_kwargs

    async def _wire_when_started(self, server: uvicorn.Server) -> None:
        while not server.started:
            if server.should_exit:
                return
            await asyncio.sleep(STARTUP_POLL_INTERVAL)
        await on_server_listening(self.port, self.options)

    async def serve(self) -> None:
        sock = bind_socket(self.host, self.port)
        self.port = sock.getsockname()[1]
        logger.info("Listening on %s:%d", self.host, self.port)

        server = uvicorn.Server(uvicorn.Config(self.app, **self.uvicorn_kwargs))
        wiring = asyncio.create_task(self._wire_when_started(server))
        try:
            await server.serve(sockets=[sock])
        finally:
            # a reconcile that already started runs to completion
            if not wiring.done() and not server.started:
                wiring.cancel()
            await asyncio.gather(wiring, return_exceptions=True)
            sock.close()

    def run(self) -> None:
        asyncio.run(self.serve())


def run(app: Any, host: str = "127.0.0.1", port: int = 0, options: DomainOptions | None = None, **uvicorn_kwargs):
    """
    Run an ASGI application with automatic Caddy domain wiring.

    Args:
        app: ASGI application
        host: Host to bind to (default: 127.0.0.1)
        port: Port to bind to (default: 0, any free port)
        options: Wiring options (default: devdomain.yml or built-in defaults)
        **uvicorn_kwargs: Passed to uvicorn.Config (log_level, ...)
    """
    setup_logging()
    DomainRunner(app, host=host, port=port, options=options, **uvicorn_kwargs).run()
