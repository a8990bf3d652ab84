'''
Starts the HTTP server for a validated ServerConfig.
The socket is bound here, before uvicorn takes over, so a busy or privileged
port is reported as a BindError instead of surfacing from inside the event loop.
'''
import socket

import uvicorn

from badlopo.api.config import BIND_HOST, BindError, ServerConfig
from badlopo.api.main import create_app


def bind_socket(port: int, host: str = BIND_HOST) -> socket.socket:
    """Bind (but do not listen on) a TCP socket. Raises BindError on failure."""
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    try:
        # Help avoid "already in use" after quick restarts
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.bind((host, port))
    except OSError as e:
        sock.close()
        raise BindError(host, port, e.strerror or str(e)) from e
    return sock


def serve(config: ServerConfig, log_level: str = "info") -> None:
    """Bind and serve forever. Never retries a failed bind."""
    sock = bind_socket(config.port)
    host, port = sock.getsockname()[:2]

    print(f"\n--- BADLOPO SERVER ONLINE ---")
    print(f"Root:  {config.root}")
    print(f"Entry: {config.entry}")
    print(f"Mode:  {config.mode.value}")
    print(f"URL:   http://localhost:{port}/  (listening on {host}:{port})")
    print(f"-----------------------------\n")

    server = uvicorn.Server(uvicorn.Config(create_app(config), log_level=log_level))
    try:
        server.run(sockets=[sock])
    finally:
        sock.close()
