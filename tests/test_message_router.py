import json

import pytest
from fastapi.websockets import WebSocketState

from connection import ConnectionState
from tests.helpers import drain, drain_json, make_connection


def send(router, connection, **fields):
    router.handle_message(connection, json.dumps(fields))


@pytest.fixture
def room(router, registry):
    """A room with a host and two clients, outboxes emptied."""
    host, first, second = make_connection(), make_connection(), make_connection()
    send(router, host, type="createRoom")
    room_id = host.room_id
    send(router, first, type="joinRoom", roomId=room_id)
    send(router, second, type="joinRoom", roomId=room_id)
    for connection in (host, first, second):
        drain(connection)
    return room_id, host, first, second


def test_create_room_replies_with_room_id(router, registry):
    host = make_connection()
    send(router, host, type="createRoom")

    assert drain_json(host) == [{"type": "roomCreated", "roomId": host.room_id}]
    assert registry.get_room(host.room_id).host is host


def test_create_room_twice_is_ignored(router, registry):
    host = make_connection()
    send(router, host, type="createRoom")
    drain(host)
    send(router, host, type="createRoom")

    assert drain_json(host) == []
    assert len(registry) == 1


def test_join_missing_room_gets_single_error(router, registry):
    stranger = make_connection()
    send(router, stranger, type="joinRoom", roomId="nope")

    assert drain_json(stranger) == [{"type": "error", "message": "room does not exist"}]
    assert stranger.state == ConnectionState.UNBOUND
    assert len(registry) == 0


def test_join_without_room_id_gets_error(router):
    stranger = make_connection()
    send(router, stranger, type="joinRoom")

    assert drain_json(stranger)[0]["type"] == "error"


@pytest.mark.parametrize("room_id", [["x"], {"id": "x"}, 42, None], ids=["list", "object", "number", "null"])
def test_join_with_non_string_room_id_gets_error(router, registry, room_id):
    host = make_connection()
    send(router, host, type="createRoom")
    stranger = make_connection()

    send(router, stranger, type="joinRoom", roomId=room_id)

    assert drain_json(stranger) == [{"type": "error", "message": "room does not exist"}]
    assert stranger.state == ConnectionState.UNBOUND
    assert registry.get_room(host.room_id).clients == []

    # still usable afterwards
    send(router, stranger, type="joinRoom", roomId=host.room_id)
    assert stranger.state == ConnectionState.CLIENT


def test_second_join_from_bound_client_is_ignored(router, registry, room):
    room_id, host, first, second = room
    other_host = make_connection()
    send(router, other_host, type="createRoom")
    drain(other_host)

    send(router, first, type="joinRoom", roomId=room_id)
    send(router, first, type="joinRoom", roomId=other_host.room_id)

    for connection in (host, first, second, other_host):
        assert drain(connection) == ([], 0)
    assert registry.get_room(room_id).clients == [first, second]
    assert registry.get_room(other_host.room_id).clients == []
    assert first.room_id == room_id
    assert first.state == ConnectionState.CLIENT


def test_player_list_reaches_everyone_after_joins(router):
    host = make_connection()
    send(router, host, type="createRoom")
    room_id = host.room_id
    drain(host)

    clients = [make_connection() for _ in range(3)]
    for client in clients:
        send(router, client, type="joinRoom", roomId=room_id)

    # one broadcast per join; the last one lists everyone
    host_messages = drain_json(host)
    assert len(host_messages) == 3
    last = host_messages[-1]
    assert last["type"] == "playerList"
    assert len(last["players"]) == 4
    assert last["players"][0] == {"id": "host", "name": "Host"}
    for client in clients:
        assert drain_json(client)[-1] == last


def test_start_game_from_host_reaches_all(router, room):
    room_id, host, first, second = room
    send(router, host, type="startGame")

    for connection in (host, first, second):
        assert drain_json(connection) == [{"type": "startGame"}]


def test_start_game_from_client_is_ignored(router, room):
    room_id, host, first, second = room
    send(router, first, type="startGame")

    for connection in (host, first, second):
        assert drain_json(connection) == []


def test_offer_from_host_goes_to_every_client_only(router, room):
    room_id, host, first, second = room
    offer = {"type": "offer", "sdp": "v=0 host", "extra": {"nested": [1, 2]}}
    send(router, host, **offer)

    assert drain_json(host) == []
    assert drain_json(first) == [offer]
    assert drain_json(second) == [offer]


def test_candidate_from_client_goes_to_host_only(router, room):
    room_id, host, first, second = room
    candidate = {"type": "candidate", "candidate": "a=candidate:1", "sdpMLineIndex": 0}
    send(router, first, **candidate)

    assert drain_json(host) == [candidate]
    assert drain_json(first) == []
    assert drain_json(second) == []


def test_answer_from_unbound_connection_is_dropped(router, room):
    room_id, host, first, second = room
    stranger = make_connection()
    send(router, stranger, type="answer", sdp="x")

    assert drain_json(host) == []
    assert drain_json(stranger) == []


def test_game_state_includes_sender(router, room):
    room_id, host, first, second = room
    state = {"type": "gameState", "tick": 7, "positions": [[1, 2], [3, 4]]}
    send(router, first, **state)

    for connection in (host, first, second):
        assert drain_json(connection) == [state]


def test_input_reaches_host_byte_identical(router, room):
    room_id, host, first, second = room
    raw = '{ "type" : "input",  "keys": ["left"], "t": 1.50 }'
    router.handle_message(first, raw)

    frames, _ = drain(host)
    assert frames == [raw]
    assert drain_json(second) == []


def test_input_bytes_frame_is_forwarded_as_bytes(router, room):
    room_id, host, first, second = room
    raw = b'{"type":"input","keys":["jump"]}'
    router.handle_message(first, raw)

    frames, _ = drain(host)
    assert frames == [raw]


def test_input_from_host_is_ignored(router, room):
    room_id, host, first, second = room
    send(router, host, type="input", keys=["up"])

    for connection in (host, first, second):
        assert drain_json(connection) == []


DEEPLY_NESTED = '{"type": "gameState", "a": ' + "[" * 100000 + "]" * 100000 + "}"


@pytest.mark.parametrize(
    "raw",
    ["not json", "[1, 2]", '{"no": "type"}', '{"type": 5}', b"\xff\xfe", DEEPLY_NESTED],
    ids=["not-json", "array", "no-type", "non-string-type", "bad-bytes", "deeply-nested"],
)
def test_malformed_messages_are_dropped(router, raw):
    connection = make_connection()
    router.handle_message(connection, raw)

    assert drain(connection) == ([], 0)
    assert connection.state == ConnectionState.UNBOUND


def test_unknown_type_is_dropped(router, room):
    room_id, host, first, second = room
    send(router, host, type="chat", text="hi")

    for connection in (host, first, second):
        assert drain_json(connection) == []


def test_host_departure_closes_room(router, registry, room):
    room_id, host, first, second = room
    router.handle_disconnect(host)

    assert room_id not in registry
    assert host.state == ConnectionState.CLOSED
    for client in (first, second):
        frames, closes = drain(client)
        assert [json.loads(frame) for frame in frames] == [{"type": "roomClosed"}]
        assert closes == 1

    # a late join against the closed room fails
    late = make_connection()
    send(router, late, type="joinRoom", roomId=room_id)
    assert drain_json(late) == [{"type": "error", "message": "room does not exist"}]


def test_host_departure_twice_has_no_further_effect(router, room):
    room_id, host, first, second = room
    router.handle_disconnect(host)
    router.handle_disconnect(host)

    frames, closes = drain(first)
    assert len(frames) == 1
    assert closes == 1


def test_client_departure_rebroadcasts_without_client(router, registry, room):
    room_id, host, first, second = room
    router.handle_disconnect(first)

    assert registry.get_room(room_id).clients == [second]
    assert host.state == ConnectionState.HOST
    assert second.state == ConnectionState.CLIENT

    host_messages = drain_json(host)
    assert len(host_messages) == 1
    assert host_messages[0] == {
        "type": "playerList",
        "players": [{"id": "host", "name": "Host"}, {"id": "client-1", "name": "Client 1"}],
    }
    assert drain_json(second) == host_messages
    assert drain(first) == ([], 0)


def test_client_disconnect_after_room_closed_is_noop(router, registry, room):
    room_id, host, first, second = room
    router.handle_disconnect(host)
    drain(first)
    drain(second)

    router.handle_disconnect(first)

    assert drain(second) == ([], 0)
    assert first.state == ConnectionState.CLOSED


def test_client_message_after_host_left_is_silent(router, room):
    room_id, host, first, second = room
    router.handle_disconnect(host)
    drain(first)
    drain(second)

    send(router, second, type="gameState", tick=1)

    assert drain(second) == ([], 0)


def test_closed_peers_are_skipped(router, room):
    room_id, host, first, second = room
    second.websocket.client_state = WebSocketState.DISCONNECTED
    send(router, host, type="gameState", tick=2)

    assert len(drain_json(first)) == 1
    assert drain(second) == ([], 0)
