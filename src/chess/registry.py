"""Player Registry: who is connected, in which order they joined, and which color they play"""

import logging
import math
from dataclasses import dataclass, field
from typing import Optional
from uuid import UUID, uuid4

from src.chess.coordinate import Coordinate
from src.core.exceptions import CapacityExceededError

logger = logging.getLogger(__name__)

DEFAULT_MAX_PLAYERS = 100
MAX_NAME_LENGTH = 32

# Hand-picked colors for the first players to join
PLAYER_COLORS: list[str] = [
    "#FF0000",
    "#00FF00",
    "#0000FF",
    "#FFFF00",
    "#FF00FF",
    "#00FFFF",
    "#800000",
    "#008000",
    "#000080",
    "#808000",
    "#800080",
    "#008080",
    "#FFA500",
    "#FFC0CB",
    "#A52A2A",
    "#D2691E",
    "#FF1493",
    "#00CED1",
    "#32CD32",
    "#FFD700",
    "#DC143C",
    "#00FA9A",
    "#1E90FF",
    "#FF69B4",
]
GOLDEN_ANGLE_DEGREES = 137.508


def player_color(color_index: int) -> str:
    """
    Deterministic color for the n-th player to join.
    ---
    After the curated palette runs out, step around the color wheel by the golden angle:
    consecutive hues land far apart and the sequence never repeats exactly.
    """
    if color_index < len(PLAYER_COLORS):
        return PLAYER_COLORS[color_index]
    hue = math.floor((color_index * GOLDEN_ANGLE_DEGREES) % 360)
    return f"hsl({hue}, 70%, 50%)"


@dataclass
class Player:
    id: UUID
    name: str
    color: str
    color_index: int
    anchor: Coordinate
    joined_at: float
    active: bool = True
    last_move_at: Optional[float] = None
    left_at: Optional[float] = None


@dataclass
class PlayerRegistry:
    max_players: int = DEFAULT_MAX_PLAYERS
    _active: dict[UUID, Player] = field(default_factory=dict)
    _departed: dict[UUID, Player] = field(default_factory=dict)
    _next_color_index: int = 0

    def __len__(self) -> int:
        return len(self._active)

    @property
    def is_full(self) -> bool:
        return len(self._active) >= self.max_players

    def reserve_check(self) -> None:
        """Raise if another player cannot join right now (no side effects)"""
        if self.is_full:
            raise CapacityExceededError(
                f"Game is full. Maximum of {self.max_players} players reached."
            )

    def join(self, name: Optional[str], anchor: Coordinate, now: float) -> Player:
        """Register a new active player. Color index only ever goes up, even when players leave."""
        self.reserve_check()

        color_index = self._next_color_index
        player = Player(
            id=uuid4(),
            name=self._display_name(name),
            color=player_color(color_index),
            color_index=color_index,
            anchor=anchor,
            joined_at=now,
        )
        self._active[player.id] = player
        self._next_color_index += 1
        logger.info(
            "Player %s joined with color %s (%d/%d active)",
            player.name,
            player.color,
            len(self._active),
            self.max_players,
        )
        return player

    def leave(self, player_id: UUID, now: float) -> Optional[Player]:
        """Mark a player inactive. Their pieces are not touched here."""
        player = self._active.pop(player_id, None)
        if player is None:
            return None
        player.active = False
        player.left_at = now
        self._departed[player_id] = player
        logger.info("Player %s left", player.name)
        return player

    def get(self, player_id: UUID) -> Optional[Player]:
        return self._active.get(player_id)

    def is_active(self, player_id: Optional[UUID]) -> bool:
        return player_id in self._active

    def active_players(self) -> list[Player]:
        """In join order"""
        return list(self._active.values())

    def active_ids(self) -> set[UUID]:
        return set(self._active)

    def anchors(self) -> list[Coordinate]:
        return [player.anchor for player in self._active.values()]

    def departed_players(self) -> list[Player]:
        return list(self._departed.values())

    def forget(self, player_id: UUID) -> None:
        """Drop the record of a departed player for good"""
        self._departed.pop(player_id, None)

    def _display_name(self, name: Optional[str]) -> str:
        cleaned = (name or "").strip()[:MAX_NAME_LENGTH]
        return cleaned or f"Player{len(self._active) + 1}"
