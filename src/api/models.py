"""Requests and Response (event) models exchanged with clients over the websocket"""

from typing import Any, ClassVar, Literal, Optional, Self
from uuid import UUID

from pydantic import BaseModel, ConfigDict, StrictInt, field_validator, model_validator
from pydantic.alias_generators import to_camel

from src.chess.coordinate import Bounds, Coordinate
from src.chess.game import AppliedMove
from src.chess.moves import Move
from src.chess.pieces import PlacedPiece
from src.chess.registry import Player
from src.core.exceptions import InvalidRequestError
from src.core.shared_types import ErrorCode, PieceType

CommandType = Literal["join", "move", "querySection", "legalMoves"]


class WireModel(BaseModel):
    """camelCase on the wire, snake_case in Python"""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# --- REQUEST MODELS ---
class Command(WireModel):
    """Envelope of every inbound message: {"type": ..., "payload": {...}}"""

    type: CommandType
    payload: dict[str, Any] = {}

    @field_validator("payload", mode="before")
    @classmethod
    def validate_payload(cls, value: Any) -> Any:
        # `{"type": "join"}` and `{"type": "join", "payload": null}` both mean: no payload
        return {} if value is None else value


class JoinRequest(WireModel):
    name: Optional[str] = None

    @field_validator("name", mode="before")
    @classmethod
    def validate_name(cls, value: Any) -> Optional[str]:
        # clients send a plain string; anything else is ignored and a default name is picked
        return value if isinstance(value, str) else None


class MoveRequest(WireModel):
    from_x: StrictInt
    from_y: StrictInt
    to_x: StrictInt
    to_y: StrictInt

    def to_move(self) -> Move:
        return Move.from_xy(self.from_x, self.from_y, self.to_x, self.to_y)


class QuerySectionRequest(WireModel):
    min_x: StrictInt
    max_x: StrictInt
    min_y: StrictInt
    max_y: StrictInt

    @model_validator(mode="after")
    def validate_bounds(self) -> Self:
        if self.min_x > self.max_x or self.min_y > self.max_y:
            raise InvalidRequestError("Section bounds must satisfy min <= max")
        return self

    def to_bounds(self) -> Bounds:
        return Bounds(self.min_x, self.max_x, self.min_y, self.max_y)


class LegalMovesRequest(WireModel):
    x: StrictInt
    y: StrictInt

    def to_coordinate(self) -> Coordinate:
        return Coordinate(self.x, self.y)


# --- RESPONSE MODELS ---
class PieceModel(WireModel):
    x: int
    y: int
    type: PieceType
    color: str
    player_id: Optional[UUID]

    @classmethod
    def from_placed(cls, placed: PlacedPiece) -> Self:
        return cls(
            x=placed.x,
            y=placed.y,
            type=placed.piece.type,
            color=placed.piece.color,
            player_id=placed.piece.owner_id,
        )


class PlayerModel(WireModel):
    id: UUID
    name: str
    color: str
    color_index: int
    is_active: bool
    joined_at: int  # epoch milliseconds
    anchor_x: int
    anchor_y: int

    @classmethod
    def from_player(cls, player: Player) -> Self:
        return cls(
            id=player.id,
            name=player.name,
            color=player.color,
            color_index=player.color_index,
            is_active=player.active,
            joined_at=int(player.joined_at * 1000),
            anchor_x=player.anchor.x,
            anchor_y=player.anchor.y,
        )


class BoundsModel(WireModel):
    min_x: int
    max_x: int
    min_y: int
    max_y: int

    @classmethod
    def from_bounds(cls, bounds: Bounds) -> Self:
        return cls(
            min_x=bounds.min_x, max_x=bounds.max_x, min_y=bounds.min_y, max_y=bounds.max_y
        )


class SquareModel(WireModel):
    x: int
    y: int

    @classmethod
    def from_coordinate(cls, coordinate: Coordinate) -> Self:
        return cls(x=coordinate.x, y=coordinate.y)


class Event(WireModel):
    """Base of every outbound message. `EVENT_TYPE` names it on the wire."""

    EVENT_TYPE: ClassVar[str] = ""

    def to_message(self) -> dict[str, Any]:
        return {
            "type": self.EVENT_TYPE,
            "payload": self.model_dump(mode="json", by_alias=True),
        }


class JoinedEvent(Event):
    EVENT_TYPE: ClassVar[str] = "joined"
    player_id: UUID
    player: PlayerModel
    board: list[PieceModel]
    players: list[PlayerModel]


class FullEvent(Event):
    EVENT_TYPE: ClassVar[str] = "full"
    reason: str


class MovedEvent(Event):
    EVENT_TYPE: ClassVar[str] = "moved"
    player_id: UUID
    from_x: int
    from_y: int
    to_x: int
    to_y: int
    piece: PieceModel
    captured: Optional[PieceModel] = None

    @classmethod
    def from_applied(cls, applied: AppliedMove) -> Self:
        move = applied.move
        return cls(
            player_id=applied.player.id,
            from_x=move.from_square.x,
            from_y=move.from_square.y,
            to_x=move.to_square.x,
            to_y=move.to_square.y,
            piece=PieceModel.from_placed(PlacedPiece(move.to_square, applied.piece)),
            captured=(
                PieceModel.from_placed(PlacedPiece(move.to_square, applied.captured))
                if applied.captured
                else None
            ),
        )


class InvalidMoveEvent(Event):
    EVENT_TYPE: ClassVar[str] = "invalidMove"
    code: ErrorCode
    reason: str
    remaining_ms: Optional[int] = None


class SectionEvent(Event):
    EVENT_TYPE: ClassVar[str] = "section"
    bounds: BoundsModel
    pieces: list[PieceModel]


class LegalMovesEvent(Event):
    EVENT_TYPE: ClassVar[str] = "legalMoves"
    x: int
    y: int
    destinations: list[SquareModel]


class JoinedNoticeEvent(Event):
    EVENT_TYPE: ClassVar[str] = "joinedNotice"
    player: PlayerModel


class LeftNoticeEvent(Event):
    EVENT_TYPE: ClassVar[str] = "leftNotice"
    player_id: UUID


class PiecesRemovedEvent(Event):
    EVENT_TYPE: ClassVar[str] = "piecesRemoved"
    player_id: UUID
    squares: list[SquareModel]


class ErrorEvent(Event):
    EVENT_TYPE: ClassVar[str] = "error"
    code: ErrorCode
    reason: str
