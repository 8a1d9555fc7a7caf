"""
Spawn Placement
---

A new player gets a full chess set, laid out like the two home ranks of a classical board and
centred on an anchor point. The anchor must be at least `min_distance` away from the anchor of
every active player.

Search order (deterministic: the first acceptable candidate wins):
1. the origin, when nobody else is playing
2. a spiral: walk around a circle in steps of pi/8, growing the radius after every revolution
3. fallback: scan a fixed ring of candidates and keep the one furthest away from everybody
"""

import logging
import math
from typing import Callable, Iterator, Optional, Sequence
from uuid import UUID

from src.chess.coordinate import Coordinate
from src.chess.pieces import Piece, PlacedPiece
from src.core.exceptions import SpawnUnavailableError
from src.core.shared_types import PieceType

logger = logging.getLogger(__name__)

ORIGIN = Coordinate(0, 0)

# --- SPIRAL SEARCH ---
STEPS_PER_REVOLUTION = 16  # angle increment of pi/8
MAX_SPIRAL_ATTEMPTS = 10_000
MAX_RADIUS_STEP = 5

# --- FALLBACK SCAN ---
FALLBACK_RADIUS_STEP = 5
FALLBACK_RADIUS_FACTOR = 3
FALLBACK_STEPS_PER_REVOLUTION = 8  # angle increment of pi/4

# Back rank from left (x - 3) to right (x + 4), pawns one rank up (y + 1)
BACK_RANK: list[PieceType] = [
    PieceType.ROOK,
    PieceType.KNIGHT,
    PieceType.BISHOP,
    PieceType.QUEEN,
    PieceType.KING,
    PieceType.BISHOP,
    PieceType.KNIGHT,
    PieceType.ROOK,
]
FILE_OFFSETS: list[int] = list(range(-3, 5))
PAWN_RANK_OFFSET = 1

IsFreeFn = Callable[[Coordinate], bool]


def round_half_up(value: float) -> int:
    """Round .5 away from the floor (not to the even neighbour like the builtin `round()`)"""
    return math.floor(value + 0.5)


def point_on_circle(radius: float, angle: float) -> Coordinate:
    return Coordinate(
        round_half_up(radius * math.cos(angle)), round_half_up(radius * math.sin(angle))
    )


def formation(anchor: Coordinate) -> list[tuple[Coordinate, PieceType]]:
    """The 16 squares of a starting set and which piece goes where"""
    back_rank = [
        (anchor.offset(df, 0), piece_type)
        for df, piece_type in zip(FILE_OFFSETS, BACK_RANK)
    ]
    pawn_rank = [
        (anchor.offset(df, PAWN_RANK_OFFSET), PieceType.PAWN) for df in FILE_OFFSETS
    ]
    return back_rank + pawn_rank


def footprint(anchor: Coordinate) -> list[Coordinate]:
    return [square for square, _ in formation(anchor)]


def spawn_pieces(anchor: Coordinate, color: str, owner_id: UUID) -> list[PlacedPiece]:
    return [
        PlacedPiece(square, Piece(piece_type, color, owner_id))
        for square, piece_type in formation(anchor)
    ]


def min_distance_to(candidate: Coordinate, anchors: Sequence[Coordinate]) -> float:
    return min(candidate.distance_to(anchor) for anchor in anchors)


def spiral_candidates(min_distance: float) -> Iterator[Coordinate]:
    """Candidates in spiral order, starting at angle 0 and radius `min_distance` (bounded number of attempts)"""
    angle_step = 2 * math.pi / STEPS_PER_REVOLUTION
    radius_step = min(MAX_RADIUS_STEP, min_distance / 4)
    radius = float(min_distance)
    attempts = 0
    while True:
        for step in range(STEPS_PER_REVOLUTION):
            if attempts >= MAX_SPIRAL_ATTEMPTS:
                return
            attempts += 1
            yield point_on_circle(radius, step * angle_step)
        radius += radius_step


def fallback_candidates(min_distance: float) -> Iterator[Coordinate]:
    angle_step = 2 * math.pi / FALLBACK_STEPS_PER_REVOLUTION
    radius = float(min_distance)
    while radius < min_distance * FALLBACK_RADIUS_FACTOR:
        for step in range(FALLBACK_STEPS_PER_REVOLUTION):
            yield point_on_circle(radius, step * angle_step)
        radius += FALLBACK_RADIUS_STEP


def find_spawn_anchor(
    anchors: Sequence[Coordinate], min_distance: float, is_free: IsFreeFn
) -> Coordinate:
    """
    Compute the anchor of a new starting set.
    -----

    `anchors`: the anchors of the active players
    `is_free`: tells whether a square on the board is empty. All 16 squares of the formation must be free,
    so that a new set never lands on top of a piece that is still on the board (for instance an orphaned one).
    """

    def _footprint_free(candidate: Coordinate) -> bool:
        return all(is_free(square) for square in footprint(candidate))

    def _far_enough(candidate: Coordinate) -> bool:
        return all(candidate.distance_to(anchor) >= min_distance for anchor in anchors)

    if not anchors and _footprint_free(ORIGIN):
        return ORIGIN

    for candidate in spiral_candidates(min_distance):
        if _far_enough(candidate) and _footprint_free(candidate):
            return candidate

    # Spiral exhausted: best effort, may not satisfy the minimum distance
    best: Optional[Coordinate] = None
    best_distance = -1.0
    for candidate in fallback_candidates(min_distance):
        if not _footprint_free(candidate):
            continue
        distance = min_distance_to(candidate, anchors) if anchors else math.inf
        if distance > best_distance:
            best, best_distance = candidate, distance

    if best is None:
        raise SpawnUnavailableError("Could not find free squares to place a new set of pieces")

    logger.warning(
        "Spawn search fell back to (%s, %s) with min distance %.2f (required %s)",
        best.x,
        best.y,
        best_distance,
        min_distance,
    )
    return best
