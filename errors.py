class RelayError(Exception):
    """Base class for everything the relay raises on purpose."""


class MalformedMessage(RelayError):
    """The frame could not be decoded into a JSON object with a string `type`."""


class UnknownMessageType(RelayError):
    def __init__(self, message_type: str):
        super().__init__(f"Unknown message type: {message_type}")
        self.message_type = message_type


class RoomNotFound(RelayError):
    def __init__(self, room_id):
        super().__init__(f"Room {room_id} not found")
        self.room_id = room_id


class StaleRoomReference(RelayError):
    """The sender points at a room that has already been torn down."""

    def __init__(self, room_id):
        super().__init__(f"Room {room_id} no longer exists")
        self.room_id = room_id


class IllegalTransition(RelayError):
    """A connection was asked to move to a lifecycle state it cannot reach."""
