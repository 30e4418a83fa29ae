"""
WebSocket Session Registry

Accepts audit WebSocket connections and tracks which sessions are live.
Each connection carries exactly one audit session.
"""

from typing import Dict

from fastapi import WebSocket, WebSocketDisconnect
from starlette.websockets import WebSocketState

from app.platform.exceptions import ChannelEstablishmentError
from app.platform.logger import get_logger

logger = get_logger(__name__)


class ConnectionManager:
    """
    Tracks open audit sessions by session id.

    Sessions are isolated from one another; the registry exists so the
    service can report how many audits are in flight and close them cleanly.
    """

    def __init__(self):
        # Maps session_id -> WebSocket connection
        self.active_connections: Dict[str, WebSocket] = {}

    async def connect(self, websocket: WebSocket, session_id: str):
        """
        Accept the handshake and register the session.

        Raises:
            ChannelEstablishmentError: if the handshake cannot be completed
        """
        try:
            await websocket.accept()
        except Exception as e:
            logger.error(f"Could not open websocket connection for session {session_id}: {e}")
            raise ChannelEstablishmentError("Could not open websocket connection") from e

        self.active_connections[session_id] = websocket
        logger.info(f"Session {session_id} connected. Active sessions: {len(self.active_connections)}")

    async def disconnect(self, session_id: str):
        """Forget the session and close its socket if it is still open."""
        websocket = self.active_connections.pop(session_id, None)
        if websocket is None:
            return

        if websocket.application_state == WebSocketState.CONNECTED:
            try:
                await websocket.close()
            except (RuntimeError, WebSocketDisconnect) as e:
                # The peer closed first; the socket is already unusable.
                logger.debug(f"Session {session_id} was already closed: {e}")

        logger.info(f"Session {session_id} disconnected. Active sessions: {len(self.active_connections)}")

    def get_active_session_count(self) -> int:
        """Get the number of audit sessions currently holding a connection."""
        return len(self.active_connections)


# Global singleton instance
manager = ConnectionManager()
