"""Streaming (SSE) sessions bound to a single provider.

Each ``GET /sse`` opens a session with its own id, bound provider and
optional credential override. The MCP wire protocol is handled by the SDK:
every session owns an ``SseServerTransport`` and is served by its own
``Server``. Messages are posted to ``POST /message/<sessionId>/``, which
the session's transport answers.

Session lifecycle::

    CONNECTING -> ACTIVE -> CLOSING -> DRAINING -> EVICTED

A closed session is kept for a grace window so that messages already in
flight still resolve; after that it is evicted and further messages fail
with ``SessionNotFound``.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum

from mcp.server import Server
from mcp.server.sse import SseServerTransport
from starlette.types import Receive, Scope, Send

from tabletop_mcp.errors import SessionNotFound
from tabletop_mcp.registry import CallContext

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    CONNECTING = "connecting"
    ACTIVE = "active"
    CLOSING = "closing"
    DRAINING = "draining"
    EVICTED = "evicted"


@dataclass
class Session:
    """One logical streaming connection."""

    session_id: str
    provider_id: str
    transport: SseServerTransport
    token: str | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    state: SessionState = SessionState.CONNECTING
    eviction: asyncio.TimerHandle | None = None

    @property
    def context(self) -> CallContext:
        return CallContext(auth_token=self.token, session_id=self.session_id)

    @property
    def accepts_messages(self) -> bool:
        return self.state in (SessionState.ACTIVE, SessionState.CLOSING, SessionState.DRAINING)

    @property
    def delivers(self) -> bool:
        """Whether responses can still reach the client."""
        return self.state is SessionState.ACTIVE


class SessionManager:
    """Table of live and draining sessions.

    All mutations are synchronous, so each one is atomic with respect to
    the event loop and independent sessions never block each other.
    """

    def __init__(self, grace_seconds: float = 30.0, message_path: str = "/message") -> None:
        self.grace_seconds = grace_seconds
        self.message_path = message_path.rstrip("/")
        self._sessions: dict[str, Session] = {}

    def open(self, provider_id: str, token: str | None = None) -> Session:
        """Register a new session with a fresh id and its own transport."""
        session_id = uuid.uuid4().hex
        while session_id in self._sessions:
            session_id = uuid.uuid4().hex
        session = Session(
            session_id=session_id,
            provider_id=provider_id,
            transport=SseServerTransport(f"{self.message_path}/{session_id}/"),
            token=token or None,
        )
        self._sessions[session_id] = session
        logger.info("Session %s opened for provider %s", session_id, provider_id)
        return session

    def activate(self, session_id: str) -> None:
        session = self._sessions.get(session_id)
        if session is not None and session.state is SessionState.CONNECTING:
            session.state = SessionState.ACTIVE

    def get(self, session_id: str | None) -> Session:
        """Look up a session that can still accept messages.

        Raises:
            SessionNotFound: If the id is unknown or already evicted.
        """
        session = self._sessions.get(session_id) if session_id else None
        if session is None or not session.accepts_messages:
            raise SessionNotFound(session_id or "")
        return session

    def close(self, session_id: str) -> None:
        """Mark the channel closed and schedule eviction after the grace window.

        A session that never became active is evicted at once.
        """
        session = self._sessions.get(session_id)
        if session is None:
            return
        if session.state is SessionState.CONNECTING:
            self.evict_now(session_id)
            return
        if session.state is not SessionState.ACTIVE:
            return
        session.state = SessionState.CLOSING
        loop = asyncio.get_running_loop()
        session.eviction = loop.call_later(self.grace_seconds, self._evict, session)
        session.state = SessionState.DRAINING
        logger.info("Session %s closed, evicting in %.1fs", session_id, self.grace_seconds)

    def _evict(self, session: Session) -> None:
        session.state = SessionState.EVICTED
        session.eviction = None
        # Only remove the entry if it still belongs to this session
        if self._sessions.get(session.session_id) is session:
            del self._sessions[session.session_id]
        logger.info("Session %s evicted", session.session_id)

    def evict_now(self, session_id: str) -> None:
        """Cancel any pending eviction timer and evict immediately."""
        session = self._sessions.get(session_id)
        if session is None:
            return
        if session.eviction is not None:
            session.eviction.cancel()
        self._evict(session)

    def shutdown(self) -> None:
        for session_id in list(self._sessions):
            self.evict_now(session_id)

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)


async def run_session(
    session: Session,
    manager: SessionManager,
    server: Server,
    scope: Scope,
    receive: Receive,
    send: Send,
) -> None:
    """Serve one SSE connection until the client goes away.

    The session is active while the transport is connected and is closed
    (entering its grace window) however the connection ends.
    """
    try:
        async with session.transport.connect_sse(scope, receive, send) as streams:
            manager.activate(session.session_id)
            await server.run(streams[0], streams[1], server.create_initialization_options())
    finally:
        manager.close(session.session_id)
