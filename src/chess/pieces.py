"""Defines the chess pieces that live on the board"""

from dataclasses import dataclass
from typing import Optional
from uuid import UUID

from src.chess.coordinate import Coordinate
from src.core.shared_types import PieceType

PIECE_POINTS: dict[PieceType, int] = {
    PieceType.PAWN: 1,
    PieceType.KNIGHT: 3,
    PieceType.BISHOP: 3,
    PieceType.ROOK: 5,
    PieceType.QUEEN: 9,
}


@dataclass(frozen=True)
class Piece:
    """
    A piece knows what it is and who owns it, but not where it stands:
    its position is the key it is stored under in the Board.
    """

    type: PieceType
    color: str
    owner_id: Optional[UUID] = None

    @property
    def points(self) -> int:
        # NOTE: The King's worth is undefined (does not count towards total points)
        return PIECE_POINTS.get(self.type, 0)


@dataclass(frozen=True)
class PlacedPiece:
    """A piece together with the coordinate it occupies (used in snapshots / events)"""

    coordinate: Coordinate
    piece: Piece

    @property
    def x(self) -> int:
        return self.coordinate.x

    @property
    def y(self) -> int:
        return self.coordinate.y
