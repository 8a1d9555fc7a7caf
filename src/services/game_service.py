"""
Session Gateway: routes commands from a connection to the Game, and turns the results into events.

The service does not know about websockets. For every command it returns a list of `Dispatch`es
(an event plus who should receive it); the API layer delivers them.
"""

import json
import logging
import threading
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any, Callable, Hashable, Optional
from uuid import UUID

from pydantic import ValidationError

from src.api.models import (
    BoundsModel,
    Command,
    ErrorEvent,
    Event,
    FullEvent,
    InvalidMoveEvent,
    JoinedEvent,
    JoinedNoticeEvent,
    JoinRequest,
    LeftNoticeEvent,
    LegalMovesEvent,
    LegalMovesRequest,
    MovedEvent,
    MoveRequest,
    PieceModel,
    PiecesRemovedEvent,
    PlayerModel,
    QuerySectionRequest,
    SectionEvent,
    SquareModel,
)
from src.chess.game import Game
from src.core.exceptions import (
    CapacityExceededError,
    GameError,
    GameStateError,
    IllegalMoveError,
    IllegalPatternError,
    InvalidRequestError,
    RateLimitedError,
    UnknownPlayerError,
)

logger = logging.getLogger(__name__)

ConnectionId = Hashable


class ConnectionState(Enum):
    CONNECTED = auto()
    JOINED = auto()
    DISCONNECTED = auto()


class Audience(Enum):
    SENDER = auto()
    OTHERS = auto()
    ALL = auto()


@dataclass(frozen=True)
class Dispatch:
    audience: Audience
    event: Event


@dataclass
class Session:
    """What the gateway remembers about one transport connection"""

    connection_id: ConnectionId
    state: ConnectionState = ConnectionState.CONNECTED
    player_id: Optional[UUID] = None


@dataclass
class GameService:
    """Orchestration of a single game session for all connections."""

    game: Game
    _sessions: dict[ConnectionId, Session] = field(default_factory=dict)

    def __post_init__(self) -> None:
        # one command at a time: validate, mutate, and build events without interleaving
        self._lock = threading.RLock()
        self._handlers: dict[str, Callable[[Session, dict[str, Any]], list[Dispatch]]] = {
            "join": self._join,
            "move": self._move,
            "querySection": self._query_section,
            "legalMoves": self._legal_moves,
        }

    # -- Connection lifecycle --
    def connect(self, connection_id: ConnectionId) -> None:
        with self._lock:
            self._sessions[connection_id] = Session(connection_id)
            logger.info("New client connected: %s", connection_id)

    def disconnect(self, connection_id: ConnectionId) -> list[Dispatch]:
        """Transport lost. Player leaves (pieces stay), everybody else is told."""
        with self._lock:
            session = self._sessions.pop(connection_id, None)
            if session is None:
                return []
            session.state = ConnectionState.DISCONNECTED
            logger.info("Client disconnected: %s", connection_id)
            if session.player_id is None:
                return []

            player = self.game.leave(session.player_id)
            if player is None:
                return []
            return [Dispatch(Audience.OTHERS, LeftNoticeEvent(player_id=player.id))]

    def state_of(self, connection_id: ConnectionId) -> ConnectionState:
        session = self._sessions.get(connection_id)
        return session.state if session else ConnectionState.DISCONNECTED

    def player_of(self, connection_id: ConnectionId) -> Optional[UUID]:
        session = self._sessions.get(connection_id)
        return session.player_id if session else None

    # -- Commands --
    def handle(self, connection_id: ConnectionId, message: Any) -> list[Dispatch]:
        """
        Process one inbound message to completion.
        ----

        Every expected failure becomes an event for the sender only; nothing raised here reaches the transport.
        """
        with self._lock:
            session = self._sessions.get(connection_id)
            if session is None:
                return [self._error(UnknownPlayerError("Connection is closed. Join again."))]

            try:
                command = Command.model_validate(message)
            except ValidationError as exc:
                logger.warning("Malformed message from %s: %s", connection_id, exc.errors())
                return [self._error(InvalidRequestError("Malformed message"))]

            try:
                self._assert_state_accepts(session, command.type)
                return self._handlers[command.type](session, command.payload)
            except IllegalMoveError as exc:
                logger.debug("Rejected %s from %s: %s", command.type, connection_id, exc.reason)
                return [self._invalid_move(exc)]
            except GameError as exc:
                logger.debug("Rejected %s from %s: %s", command.type, connection_id, exc.reason)
                return [self._error(exc)]

    def handle_json(self, connection_id: ConnectionId, text: Optional[str]) -> list[Dispatch]:
        """Decode a text frame and handle it. Anything that is not a JSON text frame is rejected."""
        if text is None:
            return [self._error(InvalidRequestError("Frames must be JSON text"))]
        try:
            message = json.loads(text)
        except ValueError:
            # also covers integer literals longer than the int conversion limit
            logger.warning("Dropping non-JSON frame from %s", connection_id)
            return [self._error(InvalidRequestError("Frames must be JSON text"))]
        return self.handle(connection_id, message)

    def sweep_orphans(self) -> list[Dispatch]:
        with self._lock:
            return [
                Dispatch(
                    Audience.ALL,
                    PiecesRemovedEvent(
                        player_id=sweep.player_id,
                        squares=[SquareModel.from_coordinate(sq) for sq in sweep.squares],
                    ),
                )
                for sweep in self.game.sweep_orphans()
            ]

    # -- Command handlers --
    def _join(self, session: Session, payload: dict[str, Any]) -> list[Dispatch]:
        request = JoinRequest.model_validate(payload)
        try:
            result = self.game.join(request.name)
        except CapacityExceededError as exc:
            return [Dispatch(Audience.SENDER, FullEvent(reason=exc.reason))]

        session.player_id = result.player.id
        session.state = ConnectionState.JOINED

        player_model = PlayerModel.from_player(result.player)
        joined = JoinedEvent(
            player_id=result.player.id,
            player=player_model,
            board=[PieceModel.from_placed(p) for p in self.game.visible_pieces()],
            players=[
                PlayerModel.from_player(p) for p in self.game.registry.active_players()
            ],
        )
        return [
            Dispatch(Audience.SENDER, joined),
            Dispatch(Audience.OTHERS, JoinedNoticeEvent(player=player_model)),
        ]

    def _move(self, session: Session, payload: dict[str, Any]) -> list[Dispatch]:
        try:
            request = MoveRequest.model_validate(payload)
        except ValidationError as exc:
            raise IllegalPatternError("Move needs integer fromX, fromY, toX, toY") from exc

        assert session.player_id is not None
        applied = self.game.make_move(request.to_move(), session.player_id)
        return [Dispatch(Audience.ALL, MovedEvent.from_applied(applied))]

    def _query_section(self, session: Session, payload: dict[str, Any]) -> list[Dispatch]:
        try:
            request = QuerySectionRequest.model_validate(payload)
        except ValidationError as exc:
            raise InvalidRequestError("Section needs integer minX, maxX, minY, maxY") from exc

        bounds = request.to_bounds()
        pieces = self.game.query_section(bounds)
        logger.debug("Section %s returned %d pieces", bounds, len(pieces))
        event = SectionEvent(
            bounds=BoundsModel.from_bounds(bounds),
            pieces=[PieceModel.from_placed(p) for p in pieces],
        )
        return [Dispatch(Audience.SENDER, event)]

    def _legal_moves(self, session: Session, payload: dict[str, Any]) -> list[Dispatch]:
        try:
            request = LegalMovesRequest.model_validate(payload)
        except ValidationError as exc:
            raise InvalidRequestError("Legal moves request needs integer x, y") from exc

        assert session.player_id is not None
        square = request.to_coordinate()
        destinations = self.game.legal_destinations(square, session.player_id)
        event = LegalMovesEvent(
            x=square.x,
            y=square.y,
            destinations=[SquareModel.from_coordinate(sq) for sq in destinations],
        )
        return [Dispatch(Audience.SENDER, event)]

    # -- Internal helpers --
    def _assert_state_accepts(self, session: Session, command_type: str) -> None:
        """Connected: only `join`. Joined: everything but `join`."""
        if session.state == ConnectionState.CONNECTED and command_type != "join":
            raise UnknownPlayerError("Join the game first")
        if session.state == ConnectionState.JOINED and command_type == "join":
            raise GameStateError("Already joined this game")
        if session.state == ConnectionState.DISCONNECTED:
            raise UnknownPlayerError("Connection is closed. Join again.")

    @staticmethod
    def _invalid_move(exc: IllegalMoveError) -> Dispatch:
        remaining_ms = exc.remaining_ms if isinstance(exc, RateLimitedError) else None
        return Dispatch(
            Audience.SENDER,
            InvalidMoveEvent(code=exc.code, reason=exc.reason, remaining_ms=remaining_ms),
        )

    @staticmethod
    def _error(exc: GameError) -> Dispatch:
        return Dispatch(Audience.SENDER, ErrorEvent(code=exc.code, reason=exc.reason))
