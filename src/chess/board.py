"""The Board is the single source of truth for occupancy: a sparse mapping from coordinate to piece"""

from collections.abc import Collection, Iterable, Iterator
from dataclasses import dataclass, field
from typing import Optional
from uuid import UUID

from src.chess.coordinate import Bounds, Coordinate
from src.chess.moves import Move
from src.chess.pieces import Piece, PlacedPiece
from src.core.exceptions import NoPieceAtSourceError, OccupiedSquareError


@dataclass
class Board:
    position: dict[Coordinate, Piece] = field(default_factory=dict)

    def __len__(self) -> int:
        return len(self.position)

    def __contains__(self, coordinate: object) -> bool:
        return coordinate in self.position

    def piece(self, coordinate: Coordinate) -> Optional[Piece]:
        return self.position.get(coordinate)

    def is_empty(self, coordinate: Coordinate) -> bool:
        return coordinate not in self.position

    def occupied(self) -> Iterator[Coordinate]:
        return iter(self.position)

    def place(self, coordinate: Coordinate, piece: Piece) -> None:
        """Put a piece on an empty square. The board never holds two pieces on one coordinate."""
        if coordinate in self.position:
            raise OccupiedSquareError(
                f"Square ({coordinate.x}, {coordinate.y}) is already occupied by a {self.position[coordinate].type}"
            )
        self.position[coordinate] = piece

    def place_all(self, pieces: Iterable[PlacedPiece]) -> None:
        """Place a whole set of pieces: either all of them end up on the board, or none of them do."""
        batch = list(pieces)
        targets: set[Coordinate] = set()
        for placed in batch:
            if placed.coordinate in self.position or placed.coordinate in targets:
                raise OccupiedSquareError(
                    f"Cannot place pieces: square ({placed.x}, {placed.y}) is occupied"
                )
            targets.add(placed.coordinate)

        for placed in batch:
            self.position[placed.coordinate] = placed.piece

    def apply_move(self, move: Move) -> Optional[Piece]:
        """
        Update the position on the board
        ---
        Removes the moving piece from its square, removes whatever stands on the destination (a capture),
        then puts the moving piece on the destination. Returns the captured piece, if any.

        NOTE: legality is not checked here. The Game validates first, and the service layer runs one command at a time.
        """
        piece_that_moved = self.position.pop(move.from_square, None)
        if piece_that_moved is None:
            raise NoPieceAtSourceError("No piece at source position")
        captured = self.position.pop(move.to_square, None)
        self.position[move.to_square] = piece_that_moved
        return captured

    def pieces(self, owners: Optional[Collection[UUID]] = None) -> list[PlacedPiece]:
        """Snapshot of the pieces on the board. Restricted to the given owners when specified."""
        return [
            PlacedPiece(coordinate, piece)
            for coordinate, piece in self.position.items()
            if owners is None or piece.owner_id in owners
        ]

    def query_section(
        self, bounds: Bounds, owners: Optional[Collection[UUID]] = None
    ) -> list[PlacedPiece]:
        """
        All pieces inside the (inclusive) rectangle, optionally restricted to the given owners.

        Either scan the cells of the rectangle or the stored pieces, whichever is smaller:
        a client may ask for a huge section of a sparse board.
        """
        if bounds.area <= len(self.position):
            found = (
                PlacedPiece(coordinate, self.position[coordinate])
                for coordinate in bounds.cells()
                if coordinate in self.position
            )
        else:
            found = (
                PlacedPiece(coordinate, piece)
                for coordinate, piece in self.position.items()
                if bounds.contains(coordinate)
            )
        return [
            placed
            for placed in found
            if owners is None or placed.piece.owner_id in owners
        ]

    def locate_owner(self, owner_id: UUID) -> list[Coordinate]:
        return [
            coordinate
            for coordinate, piece in self.position.items()
            if piece.owner_id == owner_id
        ]

    def remove_owner(self, owner_id: UUID) -> list[Coordinate]:
        """Take every piece of the given owner off the board. Returns the squares that were cleared."""
        squares = self.locate_owner(owner_id)
        for square in squares:
            del self.position[square]
        return squares

    def count_material(self, owner_id: UUID) -> int:
        """Tally the points of material a player has on the board"""
        return sum(
            piece.points for piece in self.position.values() if piece.owner_id == owner_id
        )
