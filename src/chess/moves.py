"""
Geometry/Base movement and capturing rules on the unbounded board

Key idea: Use strategy pattern to define the movement pattern for each piece type.
A pattern only looks at the displacement (dx, dy). Line-of-sight for the sliding pieces and
the capture rule are checked separately, so every rule reads the same way for every piece.

There is no orientation on an infinite multiplayer board, hence:
* pawns step one square in any cardinal direction
* there is no castling, en passant, promotion, check, or turn order
"""

import math
from dataclasses import dataclass
from typing import Callable, Iterable, Optional, Protocol, Self
from uuid import UUID

from src.chess.coordinate import Coordinate
from src.chess.pieces import Piece
from src.core.exceptions import (
    IllegalMoveError,
    IllegalPatternError,
    NoPieceAtSourceError,
    NotOwnerError,
    PathBlockedError,
    RateLimitedError,
)
from src.core.shared_types import PieceType


class Board(Protocol):
    """Just the parts the movement rules need"""

    def piece(self, coordinate: Coordinate) -> Optional[Piece]: ...
    def occupied(self) -> Iterable[Coordinate]: ...
    def __len__(self) -> int: ...


Vector = tuple[int, int]


@dataclass(frozen=True)
class Move:
    """basic definition of a move to be made"""

    from_square: Coordinate
    to_square: Coordinate

    @classmethod
    def from_xy(cls, from_x: int, from_y: int, to_x: int, to_y: int) -> Self:
        return cls(Coordinate(from_x, from_y), Coordinate(to_x, to_y))

    @property
    def delta(self) -> Vector:
        return self.from_square.delta_to(self.to_square)


@dataclass(frozen=True)
class MoveVerdict:
    """Outcome of validating a move: either legal, or illegal with the error explaining why."""

    error: Optional[IllegalMoveError] = None

    @classmethod
    def legal_move(cls) -> Self:
        return cls()

    @classmethod
    def illegal(cls, error: IllegalMoveError) -> Self:
        return cls(error)

    @property
    def legal(self) -> bool:
        return self.error is None

    @property
    def reason(self) -> Optional[str]:
        return self.error.reason if self.error else None

    def raise_if_illegal(self) -> None:
        if self.error is not None:
            raise self.error


@dataclass(frozen=True)
class Cooldown:
    """
    Server-side rate limit for a single player.
    ---
    A move is only accepted once `duration_ms` have passed since the player's previous accepted move.
    Times are in seconds (as returned by the game clock).
    """

    last_move_at: Optional[float]
    now: float
    duration_ms: int

    def remaining_ms(self) -> int:
        if self.last_move_at is None or self.duration_ms <= 0:
            return 0
        elapsed_ms = (self.now - self.last_move_at) * 1000
        # a clock stepping backwards must not extend the wait beyond one full cooldown
        return min(self.duration_ms, max(0, math.ceil(self.duration_ms - elapsed_ms)))


NO_COOLDOWN = Cooldown(last_move_at=None, now=0.0, duration_ms=0)


def sign(value: int) -> int:
    return (value > 0) - (value < 0)


# --- MOVEMENT PATTERNS ---
def pawn_pattern(dx: int, dy: int) -> bool:
    """A pawn steps a single square along a file or a rank (no fixed 'forward')"""
    return abs(dx) + abs(dy) == 1


def knight_pattern(dx: int, dy: int) -> bool:
    """Knights always move in an L: (2, 1) or (1, 2)"""
    return (abs(dx), abs(dy)) in {(2, 1), (1, 2)}


def king_pattern(dx: int, dy: int) -> bool:
    """The king can move by a single square at the time, in any direction"""
    return max(abs(dx), abs(dy)) == 1


def rook_pattern(dx: int, dy: int) -> bool:
    """Rooks move either horizontally or vertically"""
    return (dx == 0) != (dy == 0)


def bishop_pattern(dx: int, dy: int) -> bool:
    """Bishops move diagonally: |dx| = |dy|"""
    return dx != 0 and abs(dx) == abs(dy)


def queen_pattern(dx: int, dy: int) -> bool:
    """The Queen combines the rook moves and the bishop moves"""
    return rook_pattern(dx, dy) or bishop_pattern(dx, dy)


# -- STRATEGY PATTERN: MOVEMENT RULES ---
MovementRule = Callable[[int, int], bool]
MOVEMENT_RULES: dict[PieceType, MovementRule] = {
    PieceType.PAWN: pawn_pattern,
    PieceType.KNIGHT: knight_pattern,
    PieceType.BISHOP: bishop_pattern,
    PieceType.ROOK: rook_pattern,
    PieceType.QUEEN: queen_pattern,
    PieceType.KING: king_pattern,
}

# Pieces that slide along a line and therefore need line-of-sight
SLIDING_PIECES: frozenset[PieceType] = frozenset(
    {PieceType.BISHOP, PieceType.ROOK, PieceType.QUEEN}
)


# --- LINE OF SIGHT ---
def squares_between(from_square: Coordinate, to_square: Coordinate) -> list[Coordinate]:
    """
    The cells strictly in between two squares on a common line (rank, file, or diagonal).

    Walk with the unit vector (sign(dx), sign(dy)) until the destination is reached.
    The destination itself is not included: it is governed by the capture rule.
    """
    dx, dy = from_square.delta_to(to_square)
    if not (dx == 0 or dy == 0 or abs(dx) == abs(dy)):
        raise ValueError(
            f"squares_between requires both squares to lie on a common line. \n from: {from_square}\n to:{to_square}"
        )

    step_x, step_y = sign(dx), sign(dy)
    squares_found: list[Coordinate] = []
    square = from_square.offset(step_x, step_y)
    while square != to_square:
        squares_found.append(square)
        square = square.offset(step_x, step_y)
    return squares_found


def first_blocker(
    from_square: Coordinate, to_square: Coordinate, board: Board
) -> Optional[Coordinate]:
    """
    Return the first occupied intermediate square (regardless of who owns it), if any

    The board is sparse and a ray can be arbitrarily long: when the ray has more cells than the
    board has pieces, look at the occupied squares instead of walking the ray cell by cell.
    """
    dx, dy = from_square.delta_to(to_square)
    steps = max(abs(dx), abs(dy))
    if steps - 1 <= len(board):
        for square in squares_between(from_square, to_square):
            if board.piece(square) is not None:
                return square
        return None

    step_x, step_y = sign(dx), sign(dy)
    closest: Optional[Coordinate] = None
    closest_distance = steps
    for square in board.occupied():
        distance = (
            (square.x - from_square.x) * step_x
            if step_x != 0
            else (square.y - from_square.y) * step_y
        )
        if not 0 < distance < closest_distance:
            continue
        if square == from_square.offset(distance * step_x, distance * step_y):
            closest, closest_distance = square, distance
    return closest


# --- VALIDATION ---
def validate_move(
    piece: Piece, from_square: Coordinate, to_square: Coordinate, board: Board
) -> MoveVerdict:
    """
    Pure check of a single move against the board
    -----

    1. the displacement must match the movement pattern of the piece type
    2. sliding pieces need a clear path (strictly between origin and destination)
    3. capture rule: the destination is empty or holds a piece of a different owner
    """
    dx, dy = from_square.delta_to(to_square)
    movement_rule = MOVEMENT_RULES[piece.type]
    if not movement_rule(dx, dy):
        return MoveVerdict.illegal(
            IllegalPatternError(f"A {piece.type} cannot move by ({dx}, {dy})")
        )

    if piece.type in SLIDING_PIECES:
        blocker = first_blocker(from_square, to_square, board)
        if blocker is not None:
            return MoveVerdict.illegal(
                PathBlockedError(f"Path blocked at ({blocker.x}, {blocker.y})")
            )

    occupant = board.piece(to_square)
    if occupant is not None and occupant.owner_id == piece.owner_id:
        return MoveVerdict.illegal(IllegalPatternError("Cannot capture your own piece"))

    return MoveVerdict.legal_move()


def is_move_legal(
    move: Move,
    board: Board,
    requesting_player_id: Optional[UUID],
    cooldown: Cooldown = NO_COOLDOWN,
) -> MoveVerdict:
    """
    Full legality check of a move request made by a player.
    -----

    1. there must be a piece on the starting square
    2. it must belong to the requesting player
    3. the player's cooldown must have elapsed
    4. the piece must be allowed to make this move (see `validate_move()`)

    NOTE: exposing your own king is allowed. There is no check in this variant.
    """
    piece = board.piece(move.from_square)
    if piece is None:
        return MoveVerdict.illegal(NoPieceAtSourceError("No piece at source position"))

    if requesting_player_id is None or piece.owner_id != requesting_player_id:
        return MoveVerdict.illegal(NotOwnerError("Not your piece"))

    remaining_ms = cooldown.remaining_ms()
    if remaining_ms > 0:
        return MoveVerdict.illegal(
            RateLimitedError(
                f"Move on cooldown. Wait {remaining_ms} ms before moving again.",
                remaining_ms=remaining_ms,
            )
        )

    return validate_move(piece, move.from_square, move.to_square, board)


# --- CANDIDATE DESTINATIONS ---
KNIGHT_DELTAS: list[Vector] = [
    (2, 1),
    (2, -1),
    (-2, 1),
    (-2, -1),
    (1, 2),
    (1, -2),
    (-1, 2),
    (-1, -2),
]
STRAIGHTS: list[Vector] = [(1, 0), (-1, 0), (0, 1), (0, -1)]
DIAGONALS: list[Vector] = [(1, 1), (-1, 1), (1, -1), (-1, -1)]

STEP_DELTAS: dict[PieceType, list[Vector]] = {
    PieceType.PAWN: STRAIGHTS,
    PieceType.KNIGHT: KNIGHT_DELTAS,
    PieceType.KING: STRAIGHTS + DIAGONALS,
}
SLIDE_DIRECTIONS: dict[PieceType, list[Vector]] = {
    PieceType.ROOK: STRAIGHTS,
    PieceType.BISHOP: DIAGONALS,
    PieceType.QUEEN: STRAIGHTS + DIAGONALS,
}

# Sliding pieces could move infinitely far on an empty plane: limit the listing to a familiar range
DEFAULT_REACH = 7


def raycast_destinations(
    square: Coordinate, board: Board, directions: list[Vector], reach: int
) -> list[Coordinate]:
    """
    Raycasting algorithm
    -----
    Move along each direction until we hit another piece or run out of reach.
    The first occupied square is included (the capture rule decides on it later).
    """
    destinations: list[Coordinate] = []
    for dx, dy in directions:
        target = square
        for _ in range(reach):
            target = target.offset(dx, dy)
            destinations.append(target)
            if board.piece(target) is not None:
                break
    return destinations


def candidate_destinations(
    piece: Piece, square: Coordinate, board: Board, reach: int = DEFAULT_REACH
) -> list[Coordinate]:
    """List every square the piece standing on `square` could legally move to (cooldown not considered)."""
    if piece.type in SLIDE_DIRECTIONS:
        candidates = raycast_destinations(square, board, SLIDE_DIRECTIONS[piece.type], reach)
    else:
        candidates = [square.offset(dx, dy) for dx, dy in STEP_DELTAS[piece.type]]

    return [
        target
        for target in candidates
        if validate_move(piece, square, target, board).legal
    ]
