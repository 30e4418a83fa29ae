from fastapi import WebSocket, WebSocketDisconnect

from app.platform.exceptions import ChannelClosedError
from app.platform.logger import get_logger

logger = get_logger(__name__)


def progress_percent(index: int, total: int) -> int:
    """Integer percentage after the URL at 0-based `index`, truncated."""
    return (index + 1) * 100 // total


class ProgressReporter:
    """
    Writes the ordered text events of one session to its WebSocket.

    Every send either completes or raises ChannelClosedError, so a session
    stops working as soon as its client is gone.
    """

    def __init__(self, websocket: WebSocket, session_id: str):
        self.websocket = websocket
        self.session_id = session_id
        self.sent = 0

    async def send(self, message: str):
        try:
            await self.websocket.send_text(message)
        except (WebSocketDisconnect, RuntimeError, OSError) as e:
            logger.warning(f"Session {self.session_id}: client unreachable, dropping '{message}': {e}")
            raise ChannelClosedError(f"client disconnected after {self.sent} events") from e
        self.sent += 1

    async def processing(self, url: str):
        await self.send(f"Processing: {url}")

    async def progress(self, index: int, total: int):
        await self.send(f"Progress: {progress_percent(index, total)}%")

    async def completed(self, download_url: str):
        await self.send("Processing completed")
        await self.send(f"Download link: {download_url}")

    async def input_error(self, reason: str):
        await self.send(f"Error reading CSV file: {reason}")

    async def export_error(self, reason: str):
        await self.send(f"Error creating output file: {reason}")
