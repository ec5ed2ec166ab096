import asyncio
import uuid
from enum import Enum
from typing import Optional, Union

from fastapi.websockets import WebSocket, WebSocketState

from errors import IllegalTransition
from logging_config import get_logger

logger = get_logger(__name__)

# Queued behind pending frames so a close never overtakes a send
CLOSE_MARKER = object()


class ConnectionState(str, Enum):
    UNBOUND = "unbound"
    HOST = "host"
    CLIENT = "client"
    CLOSED = "closed"


class Connection:
    """One WebSocket peer plus its place in the room lifecycle.

    `send` and `close` never await: frames go into an outbox that `run_writer`
    drains in order, so the message router stays synchronous.
    """

    def __init__(self, websocket: WebSocket, connection_id: Optional[str] = None):
        self.websocket = websocket
        self.connection_id = connection_id or uuid.uuid4().hex
        self.state = ConnectionState.UNBOUND
        self.room_id: Optional[str] = None
        self.outbox: asyncio.Queue = asyncio.Queue()
        self._closing = False

    def __repr__(self):
        return f"<Connection {self.connection_id[:8]} {self.state.value} room={self.room_id}>"

    @property
    def is_host(self) -> bool:
        return self.state == ConnectionState.HOST

    @property
    def is_client(self) -> bool:
        return self.state == ConnectionState.CLIENT

    @property
    def is_open(self) -> bool:
        if self._closing:
            return False
        return (
            self.websocket.client_state == WebSocketState.CONNECTED
            and self.websocket.application_state == WebSocketState.CONNECTED
        )

    def bind_host(self, room_id: str):
        self._bind(ConnectionState.HOST, room_id)

    def bind_client(self, room_id: str):
        self._bind(ConnectionState.CLIENT, room_id)

    def _bind(self, state: ConnectionState, room_id: str):
        if self.state != ConnectionState.UNBOUND:
            raise IllegalTransition(f"{self!r} cannot become {state.value} of room {room_id}")
        self.state = state
        self.room_id = room_id

    def mark_closed(self):
        self.state = ConnectionState.CLOSED

    def send(self, data: Union[str, bytes]) -> bool:
        """Queue one frame. Returns False when the peer is no longer open."""
        if not self.is_open:
            logger.debug(f"Dropping frame for closed connection {self.connection_id}")
            return False
        self.outbox.put_nowait(data)
        return True

    def close(self):
        """Queue a close behind any pending frames. Only the first call counts."""
        if self._closing:
            return
        self._closing = True
        self.outbox.put_nowait(CLOSE_MARKER)

    async def run_writer(self):
        """Drain the outbox onto the socket until closed or the socket fails."""
        while True:
            item = await self.outbox.get()
            try:
                if item is CLOSE_MARKER:
                    if (
                        self.websocket.application_state == WebSocketState.CONNECTED
                        and self.websocket.client_state == WebSocketState.CONNECTED
                    ):
                        await self.websocket.close()
                    logger.debug(f"Closed connection {self.connection_id}")
                    return
                if isinstance(item, bytes):
                    await self.websocket.send_bytes(item)
                else:
                    await self.websocket.send_text(item)
            except Exception as e:
                logger.warning(f"Error sending to connection {self.connection_id}: {e}")
                self._closing = True
                return
