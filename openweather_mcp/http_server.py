from __future__ import annotations

import contextlib
import json
import logging
from datetime import datetime, timezone
from typing import AsyncIterator, Optional

from fastapi import FastAPI, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse, Response, StreamingResponse

from . import SERVER_NAME, __version__
from .errors import InvalidMessageError, SessionNotFound
from .runtime import RuntimeContext

logger = logging.getLogger(__name__)


def create_http_app(runtime: Optional[RuntimeContext] = None) -> FastAPI:
    """
    Create FastAPI app that serves the MCP server over the HTTP+SSE transport.

    MCP over HTTP+SSE:
    - Client opens GET /sse and keeps the event stream open
    - First event is `endpoint`, whose data is the URL to POST messages to
    - Client POSTs JSON-RPC messages to /messages?sessionId=<id>
    - Server answers 202 and pushes JSON-RPC responses as `message` events
    """
    if runtime is None:
        from .main import create_runtime

        runtime = create_runtime()

    settings = runtime.settings

    @contextlib.asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        async with runtime:
            yield

    app = FastAPI(
        title="OpenWeather MCP Server",
        version=__version__,
        description="Provides weather and geocoding tools via public APIs",
        lifespan=lifespan,
    )
    app.state.runtime = runtime

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins,
        allow_methods=["GET", "POST"],
        allow_headers=["Content-Type", "Authorization"],
    )

    @app.exception_handler(Exception)
    async def unhandled_error(request: Request, exc: Exception) -> JSONResponse:
        logger.error("Unhandled error for %s %s", request.method, request.url.path, exc_info=exc)
        return JSONResponse(
            status_code=500,
            content={"error": "Internal Server Error", "message": str(exc) or "Unknown error"},
        )

    @app.get("/health")
    async def health():
        """Health check endpoint."""
        return {
            "status": "OK",
            "service": SERVER_NAME,
            "version": __version__,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "environment": settings.environment,
        }

    @app.get("/")
    async def root():
        """Root endpoint with service info."""
        return {
            "service": SERVER_NAME,
            "version": __version__,
            "protocol": "mcp",
            "transport": "http/sse",
            "endpoints": {
                "health": "/health",
                "sse": settings.sse_path,
                "messages": settings.messages_path,
            },
        }

    @app.get(settings.sse_path)
    async def sse_connect(request: Request) -> Response:
        """
        Open an MCP session and stream its events.

        The response stays open until the client disconnects or the server
        shuts down; either way the session is removed.
        """
        transport = request.app.state.runtime.transport
        try:
            session = transport.open_session()
        except Exception:
            logger.exception("Error setting up SSE connection")
            return PlainTextResponse("Failed to establish SSE connection", status_code=500)

        return StreamingResponse(
            transport.event_stream(
                session,
                keepalive_interval=settings.sse_keepalive_seconds,
                is_disconnected=request.is_disconnected,
            ),
            media_type="text/event-stream",
            headers={
                "Cache-Control": "no-cache",
                "Connection": "keep-alive",
                "X-Accel-Buffering": "no",  # Disable nginx buffering
            },
        )

    @app.post(settings.messages_path)
    async def post_message(
        request: Request,
        session_id: Optional[str] = Query(default=None, alias="sessionId"),
    ) -> Response:
        """
        Deliver one JSON-RPC message to an open session.

        Returns 202 once the message is queued; the protocol engine's reply
        is pushed over the session's event stream, not this response.
        """
        if not session_id:
            return PlainTextResponse("Missing sessionId query parameter", status_code=400)

        logger.debug("Received POST message for sessionId: %s", session_id)
        transport = request.app.state.runtime.transport
        if session_id not in transport:
            return _session_not_found(session_id)

        try:
            message = json.loads(await request.body())
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            return PlainTextResponse(f"Parse error: {e}", status_code=400)

        try:
            transport.route_message(session_id, message)
        except SessionNotFound:
            # Closed while the body was being read.
            return _session_not_found(session_id)
        except InvalidMessageError as e:
            return PlainTextResponse(str(e), status_code=400)
        except Exception:
            logger.exception("Error handling POST message for sessionId %s", session_id)
            return PlainTextResponse("Error processing message", status_code=500)

        return PlainTextResponse("Accepted", status_code=202)

    return app


def _session_not_found(session_id: str) -> PlainTextResponse:
    logger.warning("No active transport found for sessionId: %s", session_id)
    return PlainTextResponse("No active session found for sessionId", status_code=404)


async def run_http_server(
    host: str = "0.0.0.0",
    port: int = 8000,
    runtime: Optional[RuntimeContext] = None,
    log_level: str = "info",
) -> None:
    """Run the HTTP server using uvicorn."""
    import uvicorn

    app = create_http_app(runtime)
    settings = app.state.runtime.settings
    logger.info("MCP server listening on http://%s:%d", host, port)
    logger.info("SSE endpoint: %s, message endpoint: %s", settings.sse_path, settings.messages_path)
    config = uvicorn.Config(
        app,
        host=host,
        port=port,
        log_level=log_level,
        access_log=True,
    )
    server = uvicorn.Server(config)
    await server.serve()
