from enum import Enum
from typing import List, Literal

from pydantic import BaseModel, ConfigDict, Field


class MessageType(str, Enum):
    CREATE_ROOM = "createRoom"
    JOIN_ROOM = "joinRoom"
    START_GAME = "startGame"
    OFFER = "offer"
    ANSWER = "answer"
    CANDIDATE = "candidate"
    GAME_STATE = "gameState"
    INPUT = "input"
    ROOM_CREATED = "roomCreated"
    PLAYER_LIST = "playerList"
    ROOM_CLOSED = "roomClosed"
    ERROR = "error"


NEGOTIATION_TYPES = frozenset({MessageType.OFFER, MessageType.ANSWER, MessageType.CANDIDATE})


class OutboundMessage(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    def encode(self) -> str:
        return self.model_dump_json(by_alias=True)


class RoomCreated(OutboundMessage):
    type: Literal["roomCreated"] = "roomCreated"
    room_id: str = Field(alias="roomId")


class ErrorMessage(OutboundMessage):
    type: Literal["error"] = "error"
    message: str


class Player(BaseModel):
    id: str
    name: str


class PlayerList(OutboundMessage):
    type: Literal["playerList"] = "playerList"
    players: List[Player]


class StartGame(OutboundMessage):
    type: Literal["startGame"] = "startGame"


class RoomClosed(OutboundMessage):
    type: Literal["roomClosed"] = "roomClosed"
