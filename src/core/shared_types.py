"""
Type definitions used across layers
"""

from enum import StrEnum


class PieceType(StrEnum):
    PAWN = "pawn"
    KNIGHT = "knight"
    BISHOP = "bishop"
    ROOK = "rook"
    QUEEN = "queen"
    KING = "king"


class ErrorCode(StrEnum):
    """Stable, machine-readable codes sent to clients alongside a human readable reason."""

    CAPACITY_EXCEEDED = "CapacityExceeded"
    UNKNOWN_PLAYER = "UnknownPlayer"
    NO_PIECE_AT_SOURCE = "NoPieceAtSource"
    NOT_OWNER = "NotOwner"
    ILLEGAL_PATTERN = "IllegalPattern"
    PATH_BLOCKED = "PathBlocked"
    RATE_LIMITED = "RateLimited"
    INVALID_REQUEST = "InvalidRequest"
    ALREADY_JOINED = "AlreadyJoined"
    SPAWN_UNAVAILABLE = "SpawnUnavailable"
    OCCUPIED_SQUARE = "OccupiedSquare"
    CONFIGURATION = "Configuration"
    GAME_ERROR = "GameError"
