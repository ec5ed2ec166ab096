import pytest

from backend import RoomRegistry
from message_router import MessageRouter


@pytest.fixture
def registry():
    return RoomRegistry()


@pytest.fixture
def router(registry):
    return MessageRouter(registry)
