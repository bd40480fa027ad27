"""
Session-addressed HTTP+SSE transport.

Every client that opens the event stream gets a session: a fresh id, an
in-memory channel of outbound frames, and a protocol engine whose worker runs
in the manager's task group. Messages POSTed for that id are routed to the
engine; its responses are written to the channel and streamed back as SSE
`message` events. The first frame of every session is the `endpoint` event
telling the client where to POST.
"""

from __future__ import annotations

import contextlib
import json
import logging
import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Awaitable, Callable, Dict, Iterator, Optional
from uuid import uuid4

import anyio
from anyio.abc import TaskGroup
from mcp import types

from .errors import SessionNotFound, TransportWriteError
from .protocol import ProtocolEngine
from .tools import ToolRegistry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Frame:
    """One server-sent event."""

    event: str
    data: str

    def encode(self) -> str:
        return f"event: {self.event}\ndata: {self.data}\n\n"


KEEPALIVE_COMMENT = ": keepalive\n\n"


class SessionChannel:
    """Ordered, unbounded queue of frames for one session's event stream."""

    def __init__(self) -> None:
        self._send, self._receive = anyio.create_memory_object_stream[Frame](math.inf)

    def send(self, frame: Frame) -> None:
        try:
            self._send.send_nowait(frame)
        except (anyio.ClosedResourceError, anyio.BrokenResourceError) as e:
            raise TransportWriteError("Session channel is closed") from e

    async def receive(self) -> Frame:
        return await self._receive.receive()

    def close(self) -> None:
        # Closing the send side first wakes a pending receive() with EndOfStream.
        self._send.close()
        self._receive.close()


@dataclass
class Session:
    session_id: str
    channel: SessionChannel
    engine: ProtocolEngine
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class SessionTransportManager:
    """
    Owns the mapping from session id to open channel.

    All map mutation happens on the event loop thread, so inserts, lookups
    and deletes are atomic with respect to other sessions without locking.
    Use `run()` in the application lifespan; sessions can only be opened
    while it is active.
    """

    def __init__(
        self,
        registry: ToolRegistry,
        messages_path: str = "/messages",
        server_info: Optional[types.Implementation] = None,
    ) -> None:
        self._registry = registry
        self._messages_path = messages_path
        self._server_info = server_info
        self._sessions: Dict[str, Session] = {}
        self._task_group: Optional[TaskGroup] = None

    @contextlib.asynccontextmanager
    async def run(self) -> AsyncIterator[None]:
        async with anyio.create_task_group() as tg:
            self._task_group = tg
            logger.info("Session transport manager started")
            try:
                yield
            finally:
                logger.info("Session transport manager shutting down (%d open sessions)", len(self))
                for session_id in list(self._sessions):
                    self.close_session(session_id)
                tg.cancel_scope.cancel()
                self._task_group = None

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._sessions

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._sessions))

    def get_session(self, session_id: str) -> Optional[Session]:
        return self._sessions.get(session_id)

    def open_session(self) -> Session:
        """
        Allocate a new session, start its protocol engine and queue the
        `endpoint` handshake frame.
        """
        if self._task_group is None:
            raise RuntimeError("Session transport manager is not running. Use run().")

        session_id = uuid4().hex
        while session_id in self._sessions:
            session_id = uuid4().hex

        engine = ProtocolEngine(
            session_id,
            self._registry,
            sink=lambda message: self.push(session_id, message),
            server_info=self._server_info,
        )
        session = Session(session_id=session_id, channel=SessionChannel(), engine=engine)
        self._sessions[session_id] = session
        self._task_group.start_soon(engine.run, name=f"mcp-session-{session_id}")

        session.channel.send(Frame("endpoint", f"{self._messages_path}?sessionId={session_id}"))
        logger.info("Session %s opened (%d active)", session_id, len(self))
        return session

    def close_session(self, session_id: str) -> None:
        """Remove the session and release its channel. Safe to call repeatedly."""
        session = self._sessions.pop(session_id, None)
        if session is None:
            return
        session.engine.close()
        session.channel.close()
        logger.info("Session %s closed (%d active)", session_id, len(self))

    def route_message(self, session_id: str, message: Any) -> None:
        """
        Hand a client message to the session's protocol engine.

        Raises SessionNotFound for unknown ids and InvalidMessageError when the
        payload is not JSON-RPC. The engine's output arrives on the stream.
        """
        session = self._sessions.get(session_id)
        if session is None:
            raise SessionNotFound(session_id)
        session.engine.accept(message)

    def push(self, session_id: str, message: Dict[str, Any]) -> bool:
        """
        Write a JSON-RPC message to the session's stream.

        Returns False when the session is gone; a failed write closes it.
        """
        session = self._sessions.get(session_id)
        if session is None:
            logger.warning("Dropping message for closed session %s", session_id)
            return False
        try:
            session.channel.send(Frame("message", json.dumps(message)))
        except TransportWriteError as e:
            logger.warning("Write to session %s failed: %s", session_id, e)
            self.close_session(session_id)
            return False
        return True

    async def event_stream(
        self,
        session: Session,
        keepalive_interval: float = 15.0,
        is_disconnected: Optional[Callable[[], Awaitable[bool]]] = None,
    ) -> AsyncIterator[str]:
        """
        Yield the session's encoded frames in write order until it closes.

        When idle for `keepalive_interval` seconds a comment line is sent and
        `is_disconnected` is polled. The session is closed however the
        stream ends.
        """
        try:
            while True:
                frame = None
                with anyio.move_on_after(keepalive_interval):
                    frame = await session.channel.receive()
                if frame is not None:
                    yield frame.encode()
                    continue
                if is_disconnected is not None and await is_disconnected():
                    logger.info("Client disconnected from session %s", session.session_id)
                    break
                yield KEEPALIVE_COMMENT
        except (anyio.EndOfStream, anyio.ClosedResourceError):
            logger.debug("Channel for session %s closed", session.session_id)
        finally:
            self.close_session(session.session_id)
