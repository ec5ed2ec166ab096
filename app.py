import asyncio
from typing import Optional

from fastapi import FastAPI, WebSocket
from fastapi.middleware.cors import CORSMiddleware

from backend import RoomRegistry
from connection import Connection
from constants import CORS_ORIGINS, LOG_FILE, LOG_LEVEL, WS_PATH
from logging_config import get_logger, setup_logging
from message_router import MessageRouter
from routers.rooms import health_router, rooms_router

setup_logging(log_level=LOG_LEVEL, log_file=LOG_FILE)
logger = get_logger(__name__)


async def signaling_endpoint(websocket: WebSocket):
    """One relay connection: read frames, hand them to the router, clean up on close."""
    router: MessageRouter = websocket.app.state.router
    await websocket.accept()
    connection = Connection(websocket)
    logger.info(f"New connection {connection.connection_id}")
    writer = asyncio.create_task(connection.run_writer())

    try:
        message_count = 0
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                logger.info(f"Connection {connection.connection_id} disconnected (code {message.get('code')})")
                break
            raw = message.get("text")
            if raw is None:
                raw = message.get("bytes")
            if raw is None:
                continue
            message_count += 1
            logger.debug(f"Received message #{message_count} from connection {connection.connection_id}")
            router.handle_message(connection, raw)
    except Exception as e:
        logger.error(f"Error receiving from connection {connection.connection_id}: {e}", exc_info=True)
    finally:
        router.handle_disconnect(connection)
        writer.cancel()
        try:
            await writer
        except asyncio.CancelledError:
            pass


def create_app(registry: Optional[RoomRegistry] = None) -> FastAPI:
    registry = registry if registry is not None else RoomRegistry()

    app = FastAPI(title="Game signaling relay")
    app.state.registry = registry
    app.state.router = MessageRouter(registry)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(rooms_router)
    app.include_router(health_router)
    app.add_api_websocket_route(WS_PATH, signaling_endpoint)

    logger.info(f"FastAPI application initialized, relay listening on {WS_PATH}")
    return app


app = create_app()
