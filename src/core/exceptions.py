"""
Custom exceptions shared by all layers.

Every exception carries an `ErrorCode`, so the Session Gateway can report it to the client
without knowing which layer raised it.
"""

from src.core.shared_types import ErrorCode


class GameError(Exception):
    """Top-level exception: anything the game rejects on purpose derives from this."""

    code: ErrorCode = ErrorCode.GAME_ERROR

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


class ConfigurationError(GameError):
    code = ErrorCode.CONFIGURATION


class InvalidRequestError(GameError):
    """Payload could not be interpreted (malformed JSON, unknown command, missing fields)"""

    code = ErrorCode.INVALID_REQUEST


class GameStateError(GameError):
    """Command arrived while the connection is in a state that does not accept it."""

    code = ErrorCode.ALREADY_JOINED


# --- PLAYER REGISTRY ---
class CapacityExceededError(GameError):
    code = ErrorCode.CAPACITY_EXCEEDED


class UnknownPlayerError(GameError):
    code = ErrorCode.UNKNOWN_PLAYER


# --- SPAWNING / BOARD ---
class SpawnUnavailableError(GameError):
    code = ErrorCode.SPAWN_UNAVAILABLE


class OccupiedSquareError(GameError):
    """Writing a piece onto an occupied coordinate. Only happens if a caller skipped validation."""

    code = ErrorCode.OCCUPIED_SQUARE


# --- MOVES ---
class IllegalMoveError(GameError):
    """Base class of every reason a move can be rejected."""

    code = ErrorCode.ILLEGAL_PATTERN


class NoPieceAtSourceError(IllegalMoveError):
    code = ErrorCode.NO_PIECE_AT_SOURCE


class NotOwnerError(IllegalMoveError):
    code = ErrorCode.NOT_OWNER


class IllegalPatternError(IllegalMoveError):
    code = ErrorCode.ILLEGAL_PATTERN


class PathBlockedError(IllegalMoveError):
    code = ErrorCode.PATH_BLOCKED


class RateLimitedError(IllegalMoveError):
    code = ErrorCode.RATE_LIMITED

    def __init__(self, reason: str, remaining_ms: int) -> None:
        super().__init__(reason)
        self.remaining_ms = remaining_ms
