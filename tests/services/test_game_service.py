"""Unit tests for src/services/game_service.py"""

from dataclasses import replace
from typing import Any

import pytest

from src.api.models import (
    ErrorEvent,
    FullEvent,
    InvalidMoveEvent,
    JoinedEvent,
    JoinedNoticeEvent,
    LeftNoticeEvent,
    LegalMovesEvent,
    MovedEvent,
    PiecesRemovedEvent,
    SectionEvent,
)
from src.chess.game import Game
from src.core.config import Settings
from src.core.shared_types import ErrorCode
from src.services.game_service import Audience, ConnectionState, Dispatch, GameService
from tests.conftest import FakeClock


@pytest.fixture
def service(game: Game) -> GameService:
    service = GameService(game)
    service.connect("alice")
    service.connect("bob")
    return service


def join(service: GameService, connection_id: str, name: str | None = None) -> list[Dispatch]:
    payload: dict[str, Any] = {"name": name} if name else {}
    return service.handle(connection_id, {"type": "join", "payload": payload})


def move(from_x: int, from_y: int, to_x: int, to_y: int) -> dict[str, Any]:
    return {
        "type": "move",
        "payload": {"fromX": from_x, "fromY": from_y, "toX": to_x, "toY": to_y},
    }


def only(dispatches: list[Dispatch]) -> Dispatch:
    assert len(dispatches) == 1
    return dispatches[0]


# --- CONNECTION LIFECYCLE ---
def test_new_connection_is_connected(service: GameService) -> None:
    assert service.state_of("alice") == ConnectionState.CONNECTED
    assert service.player_of("alice") is None
    assert service.state_of("nobody") == ConnectionState.DISCONNECTED


def test_join(service: GameService) -> None:
    dispatches = join(service, "alice", "Alice")

    assert [d.audience for d in dispatches] == [Audience.SENDER, Audience.OTHERS]
    joined, notice = dispatches[0].event, dispatches[1].event
    assert isinstance(joined, JoinedEvent)
    assert isinstance(notice, JoinedNoticeEvent)
    assert joined.player.name == "Alice"
    assert joined.player_id == service.player_of("alice")
    assert len(joined.board) == 16
    assert [p.id for p in joined.players] == [joined.player_id]
    assert notice.player == joined.player
    assert service.state_of("alice") == ConnectionState.JOINED


def test_joined_snapshot_hides_orphaned_pieces(service: GameService) -> None:
    join(service, "alice")
    service.disconnect("alice")

    joined = join(service, "bob")[0].event

    assert isinstance(joined, JoinedEvent)
    assert len(joined.board) == 16
    assert len(service.game.board) == 32


def test_join_twice(service: GameService) -> None:
    join(service, "alice")
    event = only(join(service, "alice")).event
    assert isinstance(event, ErrorEvent)
    assert event.code == ErrorCode.ALREADY_JOINED


def test_join_when_full(clock: FakeClock) -> None:
    service = GameService(Game(settings=Settings(max_players=1), clock=clock))
    service.connect("alice")
    service.connect("bob")
    join(service, "alice")

    dispatch = only(join(service, "bob"))

    assert dispatch.audience == Audience.SENDER
    assert isinstance(dispatch.event, FullEvent)
    assert service.state_of("bob") == ConnectionState.CONNECTED


@pytest.mark.parametrize(
    "message",
    [
        move(0, 1, 0, 2),
        {"type": "querySection", "payload": {"minX": 0, "maxX": 1, "minY": 0, "maxY": 1}},
        {"type": "legalMoves", "payload": {"x": 0, "y": 1}},
    ],
)
def test_commands_before_join(service: GameService, message: dict[str, Any]) -> None:
    event = only(service.handle("alice", message)).event
    assert isinstance(event, ErrorEvent)
    assert event.code == ErrorCode.UNKNOWN_PLAYER


@pytest.mark.parametrize(
    "message",
    [
        "not even an object",
        {"payload": {}},
        {"type": "castle", "payload": {}},
        {"type": "join", "payload": [1, 2, 3]},
    ],
)
def test_malformed_messages(service: GameService, message: Any) -> None:
    event = only(service.handle("alice", message)).event
    assert isinstance(event, ErrorEvent)
    assert event.code == ErrorCode.INVALID_REQUEST


@pytest.mark.parametrize("text", [None, "{not json", ""])
def test_malformed_frames(service: GameService, text: str | None) -> None:
    event = only(service.handle_json("alice", text)).event
    assert isinstance(event, ErrorEvent)
    assert event.code == ErrorCode.INVALID_REQUEST


def test_oversized_integer_literal_is_rejected(service: GameService) -> None:
    """Integers past the int conversion limit fail to decode: the sender gets an error, the session stays"""
    join(service, "alice")
    frame = '{"type": "move", "payload": {"fromX": 1' + "0" * 5000 + ', "fromY": 0, "toX": 0, "toY": 0}}'

    event = only(service.handle_json("alice", frame)).event

    assert isinstance(event, ErrorEvent)
    assert event.code == ErrorCode.INVALID_REQUEST
    assert service.state_of("alice") == ConnectionState.JOINED


def test_handle_json_roundtrip(service: GameService) -> None:
    dispatches = service.handle_json("alice", '{"type": "join", "payload": {"name": "A"}}')
    assert isinstance(dispatches[0].event, JoinedEvent)


# --- MOVES ---
def test_move_broadcast_to_everybody(service: GameService) -> None:
    join(service, "alice")
    join(service, "bob")

    dispatch = only(service.handle("alice", move(0, 1, 0, 2)))

    assert dispatch.audience == Audience.ALL
    assert isinstance(dispatch.event, MovedEvent)
    assert dispatch.event.player_id == service.player_of("alice")
    assert (dispatch.event.to_x, dispatch.event.to_y) == (0, 2)
    assert dispatch.event.captured is None


def test_move_someone_elses_piece(service: GameService) -> None:
    join(service, "alice")
    join(service, "bob")

    dispatch = only(service.handle("bob", move(0, 1, 0, 2)))

    assert dispatch.audience == Audience.SENDER
    assert isinstance(dispatch.event, InvalidMoveEvent)
    assert dispatch.event.code == ErrorCode.NOT_OWNER
    assert dispatch.event.reason == "Not your piece"


@pytest.mark.parametrize(
    "payload",
    [
        {"fromX": 0, "fromY": 1, "toX": 0},
        {"fromX": 0, "fromY": 1, "toX": 0, "toY": 2.5},
        {"fromX": "0", "fromY": 1, "toX": 0, "toY": 2},
        {"fromX": True, "fromY": 1, "toX": 0, "toY": 2},
    ],
)
def test_malformed_move(service: GameService, payload: dict[str, Any]) -> None:
    join(service, "alice")
    event = only(service.handle("alice", {"type": "move", "payload": payload})).event
    assert isinstance(event, InvalidMoveEvent)
    assert event.code == ErrorCode.ILLEGAL_PATTERN


def test_move_on_cooldown(game: Game, clock: FakeClock) -> None:
    service = GameService(Game(settings=replace(game.settings, move_cooldown_ms=3000), clock=clock))
    service.connect("alice")
    join(service, "alice")
    service.handle("alice", move(0, 1, 0, 2))
    clock.advance(0.5)

    event = only(service.handle("alice", move(1, 1, 1, 2))).event

    assert isinstance(event, InvalidMoveEvent)
    assert event.code == ErrorCode.RATE_LIMITED
    assert event.remaining_ms == 2500


# --- QUERIES ---
def test_query_section(service: GameService) -> None:
    join(service, "alice")
    message = {"type": "querySection", "payload": {"minX": -3, "maxX": 4, "minY": 1, "maxY": 1}}

    dispatch = only(service.handle("alice", message))

    assert dispatch.audience == Audience.SENDER
    assert isinstance(dispatch.event, SectionEvent)
    assert len(dispatch.event.pieces) == 8


@pytest.mark.parametrize(
    "payload",
    [
        {"minX": 5, "maxX": 4, "minY": 0, "maxY": 0},
        {"minX": 0, "maxX": 4, "minY": 0},
        {"minX": 0.5, "maxX": 4, "minY": 0, "maxY": 1},
    ],
)
def test_invalid_section(service: GameService, payload: dict[str, Any]) -> None:
    join(service, "alice")
    event = only(service.handle("alice", {"type": "querySection", "payload": payload})).event
    assert isinstance(event, ErrorEvent)
    assert event.code == ErrorCode.INVALID_REQUEST


def test_legal_moves(service: GameService) -> None:
    join(service, "alice")

    dispatch = only(service.handle("alice", {"type": "legalMoves", "payload": {"x": 0, "y": 1}}))

    assert isinstance(dispatch.event, LegalMovesEvent)
    assert [(sq.x, sq.y) for sq in dispatch.event.destinations] == [(0, 2)]


def test_legal_moves_of_empty_square(service: GameService) -> None:
    join(service, "alice")
    message = {"type": "legalMoves", "payload": {"x": 99, "y": 99}}
    event = only(service.handle("alice", message)).event
    assert isinstance(event, InvalidMoveEvent)
    assert event.code == ErrorCode.NO_PIECE_AT_SOURCE


# --- LEAVING ---
def test_disconnect_notifies_others(service: GameService) -> None:
    join(service, "alice")
    alice_id = service.player_of("alice")

    dispatch = only(service.disconnect("alice"))

    assert dispatch.audience == Audience.OTHERS
    assert isinstance(dispatch.event, LeftNoticeEvent)
    assert dispatch.event.player_id == alice_id
    assert service.state_of("alice") == ConnectionState.DISCONNECTED
    assert service.disconnect("alice") == []


def test_disconnect_before_join_is_silent(service: GameService) -> None:
    assert service.disconnect("bob") == []


def test_messages_after_disconnect(service: GameService) -> None:
    join(service, "alice")
    service.disconnect("alice")
    event = only(service.handle("alice", move(0, 1, 0, 2))).event
    assert isinstance(event, ErrorEvent)
    assert event.code == ErrorCode.UNKNOWN_PLAYER


def test_sweep_orphans_broadcasts_removed_pieces(settings: Settings, clock: FakeClock) -> None:
    service = GameService(Game(settings=replace(settings, orphan_ttl_seconds=10), clock=clock))
    service.connect("alice")
    join(service, "alice")
    service.disconnect("alice")
    clock.advance(10)

    dispatch = only(service.sweep_orphans())

    assert dispatch.audience == Audience.ALL
    assert isinstance(dispatch.event, PiecesRemovedEvent)
    assert len(dispatch.event.squares) == 16
    assert len(service.game.board) == 0
