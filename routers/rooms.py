from typing import List

from fastapi import APIRouter, HTTPException, Request

from logging_config import get_logger
from schemas.rooms import HealthResponse, RoomDetailsResponse, RoomSummary

logger = get_logger(__name__)

rooms_router = APIRouter(prefix="/rooms", tags=["rooms"])
health_router = APIRouter(tags=["health"])


@rooms_router.get("/", response_model=List[RoomSummary])
async def list_rooms(request: Request):
    registry = request.app.state.registry
    rooms = registry.list_rooms()
    logger.debug(f"Listing {len(rooms)} rooms")
    return [
        RoomSummary(room_id=room.room_id, created_at=room.created_at, client_count=len(room.clients))
        for room in rooms
    ]


@rooms_router.get("/{room_id}", response_model=RoomDetailsResponse)
async def get_room_details(room_id: str, request: Request):
    """
    Get room details.

    Returns:
    - room_id: Unique room identifier
    - created_at: Room creation timestamp
    - client_count: Number of connected clients (the host is not counted)
    - players: The same list the room members receive in `playerList`
    """
    registry = request.app.state.registry
    room = registry.get_room(room_id)
    if not room:
        logger.info(f"Room details failed: Room {room_id} not found")
        raise HTTPException(status_code=404, detail="Room not found")

    return RoomDetailsResponse(
        room_id=room.room_id,
        created_at=room.created_at,
        client_count=len(room.clients),
        players=registry.players(room),
    )


@health_router.get("/health", response_model=HealthResponse)
async def health(request: Request):
    return HealthResponse(status="ok", rooms=len(request.app.state.registry))
