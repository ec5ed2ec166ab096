import uuid
from datetime import datetime
from typing import Dict, List, Optional

from connection import Connection
from constants import (
    CLIENT_PLAYER_ID,
    CLIENT_PLAYER_NAME,
    HOST_PLAYER_ID,
    HOST_PLAYER_NAME,
    PLAYER_ID_MODE,
)
from errors import RoomNotFound
from logging_config import get_logger

logger = get_logger(__name__)


class Room:
    def __init__(self, room_id: str, host: Connection):
        self.room_id = room_id
        self.host: Optional[Connection] = host
        self.clients: List[Connection] = []
        self.created_at = datetime.now().isoformat()
        # connection_id -> label index handed out at join time
        self.client_indexes: Dict[str, int] = {}
        self._next_client_index = 0

    def __repr__(self):
        return f"<Room {self.room_id} clients={len(self.clients)}>"

    @property
    def members(self) -> List[Connection]:
        """Host first, then clients in join order."""
        if self.host is None:
            return list(self.clients)
        return [self.host] + self.clients

    def add_client(self, connection: Connection):
        if connection in self.clients:
            return
        self.clients.append(connection)
        self.client_indexes[connection.connection_id] = self._next_client_index
        self._next_client_index += 1

    def discard_client(self, connection: Connection) -> bool:
        if connection not in self.clients:
            return False
        self.clients.remove(connection)
        self.client_indexes.pop(connection.connection_id, None)
        return True


class RoomRegistry:
    """In-memory room table owned by one relay instance."""

    def __init__(self, player_id_mode: str = PLAYER_ID_MODE):
        if player_id_mode not in ("stable", "position"):
            raise ValueError(f"Unsupported player id mode: {player_id_mode}")
        self.rooms: Dict[str, Room] = {}
        self.player_id_mode = player_id_mode
        logger.info(f"Initializing RoomRegistry (player ids: {player_id_mode})")

    def __contains__(self, room_id) -> bool:
        return room_id in self.rooms

    def __len__(self) -> int:
        return len(self.rooms)

    def create_room(self, host: Connection) -> str:
        room_id = str(uuid.uuid4())
        host.bind_host(room_id)
        self.rooms[room_id] = Room(room_id, host)
        logger.info(f"Room {room_id} created by connection {host.connection_id}")
        return room_id

    def get_room(self, room_id) -> Optional[Room]:
        return self.rooms.get(room_id)

    def list_rooms(self) -> List[Room]:
        return list(self.rooms.values())

    def join_room(self, room_id, connection: Connection) -> Room:
        # room ids arrive straight from client JSON and may be any type
        room = self.rooms.get(room_id) if isinstance(room_id, str) else None
        if room is None:
            logger.debug(f"Join failed: Room {room_id!r} not found")
            raise RoomNotFound(room_id)
        connection.bind_client(room_id)
        room.add_client(connection)
        logger.info(f"Connection {connection.connection_id} joined room {room_id} ({len(room.clients)} clients)")
        return room

    def remove_host(self, room_id):
        room = self.rooms.pop(room_id, None)
        if room is None:
            logger.debug(f"Room {room_id} already deleted")
            return
        room.host = None
        logger.info(f"Room {room_id} deleted")

    def remove_client(self, room_id, connection: Connection) -> Optional[Room]:
        room = self.rooms.get(room_id)
        if room is None:
            logger.debug(f"Room {room_id} already gone, nothing to remove for {connection.connection_id}")
            return None
        if room.discard_client(connection):
            logger.info(f"Connection {connection.connection_id} left room {room_id} ({len(room.clients)} clients)")
        return room

    def players(self, room: Room) -> List[dict]:
        players = []
        if room.host is not None:
            players.append({"id": HOST_PLAYER_ID, "name": HOST_PLAYER_NAME})
        for position, client in enumerate(room.clients):
            if self.player_id_mode == "position":
                index = position
            else:
                index = room.client_indexes[client.connection_id]
            players.append({
                "id": CLIENT_PLAYER_ID.format(index=index),
                "name": CLIENT_PLAYER_NAME.format(index=index),
            })
        return players
