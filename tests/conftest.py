"""
Pytest will auto-discover / import this file called 'conftest.py'.
This file defines fixtures/helpers required for testing multiple layers.
"""

from typing import Callable, Optional
from uuid import UUID, uuid4

import pytest

from src.chess.board import Board
from src.chess.coordinate import Coordinate
from src.chess.game import Game
from src.chess.pieces import Piece
from src.core.config import Settings
from src.core.shared_types import PieceType


class FakeClock:
    """Deterministic replacement for `time.time` (seconds)"""

    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def settings() -> Settings:
    """No cooldown by default: tests about the cooldown configure their own."""
    return Settings(max_players=100, min_spawn_distance=16, move_cooldown_ms=0)


@pytest.fixture
def game(settings: Settings, clock: FakeClock) -> Game:
    return Game(settings=settings, clock=clock)


PlaceFn = Callable[[Board, int, int, PieceType, Optional[UUID]], Piece]


@pytest.fixture
def place() -> PlaceFn:
    """Call the inner function to put a single piece on a board"""

    def _place(
        board: Board,
        x: int,
        y: int,
        piece_type: PieceType,
        owner_id: Optional[UUID] = None,
    ) -> Piece:
        piece = Piece(piece_type, "#FF0000", owner_id or uuid4())
        board.place(Coordinate(x, y), piece)
        return piece

    return _place
