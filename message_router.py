import json
from typing import Iterable, Optional, Union

from backend import Room, RoomRegistry
from connection import Connection, ConnectionState
from constants import ROOM_NOT_FOUND_MESSAGE
from errors import MalformedMessage, RoomNotFound, StaleRoomReference, UnknownMessageType
from logging_config import get_logger
from schemas.messages import (
    NEGOTIATION_TYPES,
    ErrorMessage,
    MessageType,
    PlayerList,
    RoomClosed,
    RoomCreated,
    StartGame,
)

logger = get_logger(__name__)

Frame = Union[str, bytes]


class Envelope:
    """An inbound message: its type, its decoded fields and the frame as received.

    The router only ever looks at `type` (and `roomId` for joins); everything
    else travels untouched.
    """

    __slots__ = ("type", "fields", "raw")

    def __init__(self, message_type: str, fields: dict, raw: Frame):
        self.type = message_type
        self.fields = fields
        self.raw = raw

    @classmethod
    def decode(cls, raw: Frame) -> "Envelope":
        try:
            fields = json.loads(raw)
        except (ValueError, TypeError, RecursionError) as e:
            raise MalformedMessage(f"Could not decode message: {e}") from e
        if not isinstance(fields, dict):
            raise MalformedMessage("Message is not a JSON object")
        message_type = fields.get("type")
        if not isinstance(message_type, str):
            raise MalformedMessage("Message has no string 'type' field")
        return cls(message_type, fields, raw)

    def encode(self) -> str:
        return json.dumps(self.fields)


class MessageRouter:
    """Routes inbound messages between the host and clients of a room.

    Every method is synchronous: a registry read and the mutation it decides
    happen without yielding to the event loop.
    """

    def __init__(self, registry: RoomRegistry):
        self.registry = registry
        self._handlers = {
            MessageType.CREATE_ROOM.value: self._create_room,
            MessageType.JOIN_ROOM.value: self._join_room,
            MessageType.START_GAME.value: self._start_game,
            MessageType.GAME_STATE.value: self._game_state,
            MessageType.INPUT.value: self._input,
        }
        for message_type in NEGOTIATION_TYPES:
            self._handlers[message_type.value] = self._negotiation

    def handle_message(self, connection: Connection, raw: Frame):
        try:
            envelope = Envelope.decode(raw)
            handler = self._handlers.get(envelope.type)
            if handler is None:
                raise UnknownMessageType(envelope.type)
            logger.debug(f"Received {envelope.type} from {connection!r}")
            handler(connection, envelope)
        except MalformedMessage as e:
            logger.warning(f"Dropping malformed message from connection {connection.connection_id}: {e}")
        except UnknownMessageType as e:
            logger.info(f"Dropping message from connection {connection.connection_id}: {e}")
        except StaleRoomReference as e:
            logger.debug(f"Ignoring {connection!r}: {e}")

    def handle_disconnect(self, connection: Connection):
        state, room_id = connection.state, connection.room_id
        connection.mark_closed()
        if state == ConnectionState.HOST:
            logger.info(f"Host {connection.connection_id} disconnected, closing room {room_id}")
            self.close_room(room_id)
        elif state == ConnectionState.CLIENT:
            logger.info(f"Client {connection.connection_id} disconnected from room {room_id}")
            room = self.registry.remove_client(room_id, connection)
            if room is not None:
                self.broadcast_player_list(room)
        else:
            logger.debug(f"Connection {connection.connection_id} disconnected ({state.value})")

    def _room_of(self, connection: Connection) -> Room:
        room = self.registry.get_room(connection.room_id)
        if room is None:
            raise StaleRoomReference(connection.room_id)
        return room

    def _create_room(self, connection: Connection, envelope: Envelope):
        if connection.state != ConnectionState.UNBOUND:
            logger.debug(f"Ignoring createRoom from already bound {connection!r}")
            return
        room_id = self.registry.create_room(connection)
        connection.send(RoomCreated(room_id=room_id).encode())

    def _join_room(self, connection: Connection, envelope: Envelope):
        if connection.state != ConnectionState.UNBOUND:
            logger.debug(f"Ignoring joinRoom from already bound {connection!r}")
            return
        room_id = envelope.fields.get("roomId")
        try:
            room = self.registry.join_room(room_id, connection)
        except RoomNotFound as e:
            logger.info(f"Connection {connection.connection_id} could not join: {e}")
            connection.send(ErrorMessage(message=ROOM_NOT_FOUND_MESSAGE).encode())
            return
        self.broadcast_player_list(room)

    def _start_game(self, connection: Connection, envelope: Envelope):
        if not connection.is_host:
            logger.debug(f"Ignoring startGame from non-host {connection!r}")
            return
        room = self._room_of(connection)
        logger.info(f"Host starting game in room {room.room_id}")
        self.broadcast(room.members, StartGame().encode())

    def _negotiation(self, connection: Connection, envelope: Envelope):
        if connection.state not in (ConnectionState.HOST, ConnectionState.CLIENT):
            logger.debug(f"Ignoring {envelope.type} from unbound {connection!r}")
            return
        room = self._room_of(connection)
        if connection.is_host:
            self.broadcast(room.clients, envelope.encode())
        elif room.host is not None:
            self.broadcast([room.host], envelope.encode())

    def _game_state(self, connection: Connection, envelope: Envelope):
        if connection.state not in (ConnectionState.HOST, ConnectionState.CLIENT):
            logger.debug(f"Ignoring gameState from unbound {connection!r}")
            return
        room = self._room_of(connection)
        self.broadcast(room.members, envelope.encode())

    def _input(self, connection: Connection, envelope: Envelope):
        if not connection.is_client:
            logger.debug(f"Ignoring input from non-client {connection!r}")
            return
        room = self._room_of(connection)
        if room.host is not None and room.host.send(envelope.raw):
            logger.debug(f"Forwarded input from {connection.connection_id} to host of room {room.room_id}")

    def broadcast(self, connections: Iterable[Connection], frame: Frame) -> int:
        sent = 0
        for target in connections:
            if target.send(frame):
                sent += 1
        return sent

    def broadcast_player_list(self, room: Room):
        message = PlayerList(players=self.registry.players(room)).encode()
        sent = self.broadcast(room.members, message)
        logger.debug(f"Sent player list of room {room.room_id} to {sent} connections")

    def close_room(self, room_id: Optional[str]):
        room = self.registry.get_room(room_id)
        if room is None:
            logger.debug(f"Room {room_id} already closed")
            return
        message = RoomClosed().encode()
        for client in list(room.clients):
            client.send(message)
            client.close()
        self.registry.remove_host(room_id)
