import logging
import os

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import FileResponse, PlainTextResponse, Response
from starlette.datastructures import MutableHeaders
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from badlopo.api.config import ServerConfig
from badlopo.api.resolver import resolve, split_request_path

logger = logging.getLogger(__name__)

# Set on every response, errors included.
CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "*",
    "Access-Control-Allow-Headers": "Content-Type",
}
# Removed from every response so pages can be embedded in an iframe.
FRAME_BLOCKING_HEADER = "X-Frame-Options"

NOT_FOUND_TEMPLATE = "I couldn't find '{uri}'. Try something else?"
INTERNAL_ERROR_TEXT = "Whoops! Looks like we messed up."


def request_uri(request: Request) -> str:
    """The request target as the client sent it: raw path plus '?query'."""
    raw_path = request.scope.get("raw_path")
    if raw_path:
        path = raw_path.decode("latin-1").split("?", 1)[0]
    else:
        path = request.url.path
    query = request.url.query
    return f"{path}?{query}" if query else path


async def http_error(request: Request, exc: StarletteHTTPException) -> Response:
    if exc.status_code == 404:
        body = NOT_FOUND_TEMPLATE.format(uri=request_uri(request))
        return PlainTextResponse(body, status_code=404)
    return PlainTextResponse(str(exc.detail), status_code=exc.status_code, headers=exc.headers)


async def internal_error(request: Request, exc: Exception) -> Response:
    # the server logs the traceback when the error middleware re-raises
    logger.error("Unhandled error while serving %s: %r", request_uri(request), exc)
    return PlainTextResponse(INTERNAL_ERROR_TEXT, status_code=500)


def ensure_readable(path) -> None:
    """Open and close path so an unreadable file fails before any header is sent."""
    os.close(os.open(path, os.O_RDONLY))


def finalize_headers(message: Message) -> None:
    """Apply the CORS policy to an http.response.start message in place."""
    headers = MutableHeaders(raw=list(message.get("headers", [])))
    del headers[FRAME_BLOCKING_HEADER]
    for name, value in CORS_HEADERS.items():
        headers[name] = value
    message["headers"] = headers.raw


class ResponseFinalizer:
    """
    ASGI wrapper placed around the whole application.
    Sits outside Starlette's error middleware, so the 500 catcher's response
    goes through finalize_headers like every other response.
    """

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        async def send_finalized(message: Message) -> None:
            if message["type"] == "http.response.start":
                finalize_headers(message)
            await send(message)

        await self.app(scope, receive, send_finalized)


def build_app(config: ServerConfig) -> FastAPI:
    """FastAPI app with the single catch-all file route and the two catchers."""
    # No docs/openapi routes: every path belongs to the file route.
    app = FastAPI(title="badlopo static server", docs_url=None, redoc_url=None, openapi_url=None)

    @app.api_route("/{path:path}", methods=["GET", "HEAD"])
    def serve_file(path: str):
        target = resolve(config, split_request_path(path))
        if target is None:
            raise HTTPException(status_code=404)
        ensure_readable(target)
        return FileResponse(target)

    @app.options("/{path:path}", include_in_schema=False)
    def preflight(path: str):
        # Browsers ask "Can I read this?" before cross-origin reads.
        return Response(status_code=200)

    app.add_exception_handler(StarletteHTTPException, http_error)
    app.add_exception_handler(Exception, internal_error)
    return app


def create_app(config: ServerConfig) -> ResponseFinalizer:
    return ResponseFinalizer(build_app(config))
