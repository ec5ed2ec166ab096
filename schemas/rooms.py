from pydantic import BaseModel
from typing import List

from schemas.messages import Player


class RoomSummary(BaseModel):
    room_id: str
    created_at: str
    client_count: int


class RoomDetailsResponse(BaseModel):
    room_id: str
    created_at: str
    client_count: int
    players: List[Player]


class HealthResponse(BaseModel):
    status: str
    rooms: int
