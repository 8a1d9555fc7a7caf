"""
A cell on the (unbounded) board

(placed in its own module as multiple other modules need to import it)
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterator

from src.core.exceptions import InvalidRequestError


@dataclass(frozen=True)
class Coordinate:
    """Any pair of integers is a valid cell. Python ints are arbitrary precision, so there is no edge of the board."""

    x: int
    y: int

    def offset(self, dx: int, dy: int) -> Coordinate:
        return Coordinate(self.x + dx, self.y + dy)

    def delta_to(self, other: Coordinate) -> tuple[int, int]:
        return other.x - self.x, other.y - self.y

    def distance_to(self, other: Coordinate) -> float:
        """Euclidean distance"""
        return math.hypot(other.x - self.x, other.y - self.y)


@dataclass(frozen=True)
class Bounds:
    """Inclusive rectangle [min_x, max_x] x [min_y, max_y]"""

    min_x: int
    max_x: int
    min_y: int
    max_y: int

    def __post_init__(self) -> None:
        if self.min_x > self.max_x or self.min_y > self.max_y:
            raise InvalidRequestError(
                f"Bounds must satisfy min <= max. Got x: [{self.min_x}, {self.max_x}], y: [{self.min_y}, {self.max_y}]"
            )

    def contains(self, coordinate: Coordinate) -> bool:
        return (self.min_x <= coordinate.x <= self.max_x) and (
            self.min_y <= coordinate.y <= self.max_y
        )

    @property
    def area(self) -> int:
        return (self.max_x - self.min_x + 1) * (self.max_y - self.min_y + 1)

    def cells(self) -> Iterator[Coordinate]:
        for x in range(self.min_x, self.max_x + 1):
            for y in range(self.min_y, self.max_y + 1):
                yield Coordinate(x, y)
