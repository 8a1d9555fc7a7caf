"""Unit tests for src/core/config.py"""

import pytest

from src.core.config import Settings
from src.core.exceptions import ConfigurationError


def test_defaults() -> None:
    settings = Settings.from_env({})
    assert settings.port == 3000
    assert settings.max_players == 100
    assert settings.min_spawn_distance == 25
    assert settings.move_cooldown_ms == 3000
    assert settings.orphan_ttl_seconds is None
    assert settings.log_level == "INFO"


def test_read_from_environment() -> None:
    settings = Settings.from_env(
        {
            "CHESS_HOST": "127.0.0.1",
            "CHESS_PORT": "8080",
            "CHESS_MAX_PLAYERS": "4",
            "CHESS_MIN_SPAWN_DISTANCE": "40",
            "CHESS_MOVE_COOLDOWN_MS": "0",
            "CHESS_ORPHAN_TTL_SECONDS": "90.5",
            "CHESS_LOG_LEVEL": "debug",
        }
    )
    assert settings == Settings(
        host="127.0.0.1",
        port=8080,
        max_players=4,
        min_spawn_distance=40,
        move_cooldown_ms=0,
        orphan_ttl_seconds=90.5,
        log_level="DEBUG",
    )


def test_plain_port_variable() -> None:
    """Hosting platforms set PORT. The prefixed variable wins if both are set."""
    assert Settings.from_env({"PORT": "5000"}).port == 5000
    assert Settings.from_env({"PORT": "5000", "CHESS_PORT": "6000"}).port == 6000


def test_blank_values_fall_back_to_defaults() -> None:
    assert Settings.from_env({"CHESS_MAX_PLAYERS": "  "}).max_players == 100


@pytest.mark.parametrize(
    "environ",
    [
        {"CHESS_MAX_PLAYERS": "many"},
        {"CHESS_MAX_PLAYERS": "0"},
        {"CHESS_MIN_SPAWN_DISTANCE": "-5"},
        {"CHESS_MOVE_COOLDOWN_MS": "-1"},
        {"CHESS_ORPHAN_TTL_SECONDS": "soon"},
        {"CHESS_ORPHAN_SWEEP_INTERVAL_SECONDS": "0"},
        {"CHESS_LOG_LEVEL": "chatty"},
    ],
)
def test_invalid_configuration(environ: dict[str, str]) -> None:
    with pytest.raises(ConfigurationError):
        Settings.from_env(environ)
