"""
The Game class will be the entrypoint into the domain layer for the service layer.
It owns the Board and the Player Registry of one game session, and orchestrates all the business logic
of joining, leaving, and moving pieces --> passes the results to the service layer, which turns them into events.

NOTE: The Game itself does no locking. The service layer makes sure only one command runs at a time.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Callable, Optional
from uuid import UUID

from src.chess.board import Board
from src.chess.coordinate import Bounds, Coordinate
from src.chess.moves import (
    Cooldown,
    Move,
    MoveVerdict,
    candidate_destinations,
    is_move_legal,
)
from src.chess.pieces import Piece, PlacedPiece
from src.chess.registry import Player, PlayerRegistry
from src.chess.spawn import find_spawn_anchor, spawn_pieces
from src.core.config import Settings
from src.core.exceptions import NoPieceAtSourceError, NotOwnerError, UnknownPlayerError

logger = logging.getLogger(__name__)

Clock = Callable[[], float]


@dataclass(frozen=True)
class JoinResult:
    player: Player
    pieces: list[PlacedPiece]


@dataclass(frozen=True)
class AppliedMove:
    """Snapshot of an accepted move, after the board has been updated."""

    player: Player
    move: Move
    piece: Piece
    captured: Optional[Piece] = None


@dataclass(frozen=True)
class OrphanSweep:
    """Pieces of a departed player that were taken off the board"""

    player_id: UUID
    squares: list[Coordinate]


@dataclass
class Game:
    # --- DOMAIN LAYER API CALLED BY SERVICE---

    settings: Settings = field(default_factory=Settings)
    board: Board = field(default_factory=Board)
    registry: PlayerRegistry = field(init=False)
    clock: Clock = time.time

    def __post_init__(self) -> None:
        self.registry = PlayerRegistry(max_players=self.settings.max_players)

    def join(self, name: Optional[str] = None) -> JoinResult:
        """
        A new player wants to join
        ----

        1. Make sure there is room (before doing any work)
        2. find a spawn anchor far enough from every active player
        3. register the player
        4. place the full set of pieces (all 16 or none)
        """
        self.registry.reserve_check()

        anchor = find_spawn_anchor(
            self.registry.anchors(),
            self.settings.min_spawn_distance,
            self.board.is_empty,
        )
        player = self.registry.join(name, anchor, now=self.clock())
        pieces = spawn_pieces(anchor, player.color, player.id)
        try:
            self.board.place_all(pieces)
        except Exception:
            # keep registry and board consistent: a player without pieces must not stay registered
            self.registry.leave(player.id, now=self.clock())
            self.registry.forget(player.id)
            raise

        logger.info("Spawned pieces for %s at (%s, %s)", player.name, anchor.x, anchor.y)
        return JoinResult(player, pieces)

    def leave(self, player_id: UUID) -> Optional[Player]:
        """Player disconnected. Their pieces stay on the board (orphaned) until swept."""
        player = self.registry.leave(player_id, now=self.clock())
        if player is not None and self.settings.orphan_ttl_seconds is None:
            # no sweep will ever need the record: the pieces stay for the whole session
            self.registry.forget(player.id)
        return player

    def get_player(self, player_id: UUID) -> Optional[Player]:
        return self.registry.get(player_id)

    def check_move(self, move: Move, player_id: UUID) -> MoveVerdict:
        """Is the move legal for this player right now? (does not change anything)"""
        player = self.registry.get(player_id)
        if player is None:
            raise UnknownPlayerError("Join the game before moving")
        return is_move_legal(move, self.board, player.id, self._cooldown(player))

    def make_move(self, move: Move, player_id: UUID) -> AppliedMove:
        """
        Attempt to make a move
        -----

        1. check the move (ownership, cooldown, movement rules). Raise the reason if it is illegal.
        2. update the board (capturing whatever stands on the destination)
        3. restart the player's cooldown
        """
        player = self.registry.get(player_id)
        if player is None:
            raise UnknownPlayerError("Join the game before moving")

        verdict = is_move_legal(move, self.board, player.id, self._cooldown(player))
        verdict.raise_if_illegal()

        captured = self.board.apply_move(move)
        piece = self.board.piece(move.to_square)
        assert piece is not None
        player.last_move_at = self.clock()

        logger.info(
            "%s moved %s from (%s,%s) to (%s,%s)%s",
            player.name,
            piece.type,
            move.from_square.x,
            move.from_square.y,
            move.to_square.x,
            move.to_square.y,
            f" capturing a {captured.type}" if captured else "",
        )
        return AppliedMove(player, move, piece, captured)

    def query_section(self, bounds: Bounds) -> list[PlacedPiece]:
        """Pieces of active players within the bounds (read only)"""
        return self.board.query_section(bounds, owners=self.registry.active_ids())

    def visible_pieces(self) -> list[PlacedPiece]:
        """Pieces of active players. Orphaned pieces are not sent to clients."""
        return self.board.pieces(owners=self.registry.active_ids())

    def legal_destinations(self, square: Coordinate, player_id: UUID) -> list[Coordinate]:
        """Squares the player's piece on `square` can move to (ignoring the cooldown)"""
        if not self.registry.is_active(player_id):
            raise UnknownPlayerError("Join the game before asking for moves")
        piece = self.board.piece(square)
        if piece is None:
            raise NoPieceAtSourceError("No piece at source position")
        if piece.owner_id != player_id:
            raise NotOwnerError("Not your piece")
        return candidate_destinations(piece, square, self.board)

    def material(self, player_id: UUID) -> int:
        return self.board.count_material(player_id)

    def sweep_orphans(self) -> list[OrphanSweep]:
        """
        Remove the pieces of players that left at least `orphan_ttl_seconds` ago.
        ---
        Without a TTL configured, orphaned pieces stay on the board for the lifetime of the session.
        """
        ttl = self.settings.orphan_ttl_seconds
        if ttl is None:
            return []

        now = self.clock()
        sweeps: list[OrphanSweep] = []
        for player in self.registry.departed_players():
            if player.left_at is None or now - player.left_at < ttl:
                continue
            squares = self.board.remove_owner(player.id)
            self.registry.forget(player.id)
            sweeps.append(OrphanSweep(player.id, squares))
            logger.info(
                "Removed %d orphaned pieces of %s", len(squares), player.name
            )
        return sweeps

    # -- PRIVATE HELPERS ---
    def _cooldown(self, player: Player) -> Cooldown:
        return Cooldown(
            last_move_at=player.last_move_at,
            now=self.clock(),
            duration_ms=self.settings.move_cooldown_ms,
        )
