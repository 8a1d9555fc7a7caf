"""Runtime settings (read from environment variables) and logging setup"""

import logging
import os
from dataclasses import dataclass
from typing import Mapping, Optional, Self

from src.core.exceptions import ConfigurationError

ENV_PREFIX = "CHESS_"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


@dataclass(frozen=True)
class Settings:
    host: str = "0.0.0.0"
    port: int = 3000
    max_players: int = 100
    min_spawn_distance: int = 25
    move_cooldown_ms: int = 3000
    orphan_ttl_seconds: Optional[float] = None
    orphan_sweep_interval_seconds: float = 30.0
    log_level: str = "INFO"

    def __post_init__(self) -> None:
        if self.max_players < 1:
            raise ConfigurationError(f"max_players must be at least 1, got {self.max_players}")
        if self.min_spawn_distance < 1:
            raise ConfigurationError(
                f"min_spawn_distance must be at least 1, got {self.min_spawn_distance}"
            )
        if self.move_cooldown_ms < 0:
            raise ConfigurationError(
                f"move_cooldown_ms cannot be negative, got {self.move_cooldown_ms}"
            )
        if self.orphan_ttl_seconds is not None and self.orphan_ttl_seconds < 0:
            raise ConfigurationError(
                f"orphan_ttl_seconds cannot be negative, got {self.orphan_ttl_seconds}"
            )
        if self.orphan_sweep_interval_seconds <= 0:
            raise ConfigurationError("orphan_sweep_interval_seconds must be positive")
        if self.log_level.upper() not in logging.getLevelNamesMapping():
            raise ConfigurationError(f"Unknown log level: {self.log_level!r}")

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> Self:
        """Build settings from `CHESS_*` environment variables. `PORT` is honoured as well (common on hosting platforms)."""
        env = os.environ if environ is None else environ
        defaults = cls()

        def _get(name: str) -> Optional[str]:
            value = env.get(f"{ENV_PREFIX}{name}")
            return value.strip() if value is not None and value.strip() else None

        port = _get("PORT") or env.get("PORT")
        ttl = _get("ORPHAN_TTL_SECONDS")
        return cls(
            host=_get("HOST") or defaults.host,
            port=_parse_int("PORT", port, defaults.port),
            max_players=_parse_int("MAX_PLAYERS", _get("MAX_PLAYERS"), defaults.max_players),
            min_spawn_distance=_parse_int(
                "MIN_SPAWN_DISTANCE", _get("MIN_SPAWN_DISTANCE"), defaults.min_spawn_distance
            ),
            move_cooldown_ms=_parse_int(
                "MOVE_COOLDOWN_MS", _get("MOVE_COOLDOWN_MS"), defaults.move_cooldown_ms
            ),
            orphan_ttl_seconds=_parse_float("ORPHAN_TTL_SECONDS", ttl, None),
            orphan_sweep_interval_seconds=_parse_float(
                "ORPHAN_SWEEP_INTERVAL_SECONDS",
                _get("ORPHAN_SWEEP_INTERVAL_SECONDS"),
                defaults.orphan_sweep_interval_seconds,
            ),
            log_level=(_get("LOG_LEVEL") or defaults.log_level).upper(),
        )


def _parse_int(name: str, raw: Optional[str], default: int) -> int:
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{ENV_PREFIX}{name} must be an integer, got {raw!r}") from exc


def _parse_float(name: str, raw: Optional[str], default: Optional[float]) -> Optional[float]:
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{ENV_PREFIX}{name} must be a number, got {raw!r}") from exc


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)
