import json

from fastapi.websockets import WebSocketState

from connection import CLOSE_MARKER, Connection


class FakeWebSocket:
    def __init__(self):
        self.client_state = WebSocketState.CONNECTED
        self.application_state = WebSocketState.CONNECTED


def make_connection() -> Connection:
    return Connection(FakeWebSocket())


def drain(connection: Connection):
    """Pop everything queued for a connection. Returns (frames, close_count)."""
    frames, closes = [], 0
    while not connection.outbox.empty():
        item = connection.outbox.get_nowait()
        if item is CLOSE_MARKER:
            closes += 1
        else:
            frames.append(item)
    return frames, closes


def drain_json(connection: Connection):
    frames, _ = drain(connection)
    return [json.loads(frame) for frame in frames]
