import os

HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", 8080))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FILE = os.getenv("LOG_FILE", None)

WS_PATH = os.getenv("WS_PATH", "/ws")
CORS_ORIGINS = [origin.strip() for origin in os.getenv("CORS_ORIGINS", "*").split(",") if origin.strip()]

# "stable": labels fixed at join time, "position": recomputed from list order
PLAYER_ID_MODE = os.getenv("PLAYER_ID_MODE", "stable")

ROOM_NOT_FOUND_MESSAGE = os.getenv("ROOM_NOT_FOUND_MESSAGE", "room does not exist")

HOST_PLAYER_ID = "host"
HOST_PLAYER_NAME = "Host"
CLIENT_PLAYER_ID = "client-{index}"
CLIENT_PLAYER_NAME = "Client {index}"
