"""
Centralized configuration for the UNO game server.

Configuration is loaded from (in order of precedence):
1. Environment variables
2. .env file (if exists)
3. Default values

Usage:
    from config import config
    print(config.PORT)
    print(config.game_defaults.target_score)
"""

import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

env_path = Path(__file__).parent.parent / ".env"
if env_path.exists():
    load_dotenv(env_path)


def get_env(key: str, default: str = "") -> str:
    """Get environment variable with default."""
    return os.environ.get(key, default)


def get_env_bool(key: str, default: bool = False) -> bool:
    """Get boolean environment variable."""
    val = os.environ.get(key, "").lower()
    if val in ("true", "1", "yes", "on"):
        return True
    if val in ("false", "0", "no", "off"):
        return False
    return default


def get_env_int(key: str, default: int = 0) -> int:
    """Get integer environment variable."""
    try:
        return int(os.environ.get(key, str(default)))
    except ValueError:
        return default


@dataclass
class GameDefaults:
    """
    The one fixed rule configuration.

    These are not house rules; they exist so deployments and tests can
    shorten a game (e.g. a 100-point target) without touching code.
    """
    target_score: int = 500
    hand_size: int = 7
    catch_window_ms: int = 3000
    catch_penalty: int = 4


@dataclass
class ServerConfig:
    """Server configuration."""
    HOST: str = "0.0.0.0"
    PORT: int = 8000
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    ENVIRONMENT: str = "development"

    # Room settings
    MAX_PLAYERS_PER_ROOM: int = 10
    MIN_PLAYERS: int = 2
    ROOM_CODE_LENGTH: int = 4
    ROOM_MAX_AGE_MINUTES: int = 120
    ROOM_CLEANUP_INTERVAL_SECONDS: int = 1800
    MAX_NAME_LENGTH: int = 20

    game_defaults: GameDefaults = field(default_factory=GameDefaults)

    @classmethod
    def from_env(cls) -> "ServerConfig":
        """Load configuration from environment variables."""
        return cls(
            HOST=get_env("HOST", "0.0.0.0"),
            PORT=get_env_int("PORT", 8000),
            DEBUG=get_env_bool("DEBUG", False),
            LOG_LEVEL=get_env("LOG_LEVEL", "INFO"),
            ENVIRONMENT=get_env("ENVIRONMENT", "development"),
            MAX_PLAYERS_PER_ROOM=get_env_int("MAX_PLAYERS_PER_ROOM", 10),
            MIN_PLAYERS=get_env_int("MIN_PLAYERS", 2),
            ROOM_CODE_LENGTH=get_env_int("ROOM_CODE_LENGTH", 4),
            ROOM_MAX_AGE_MINUTES=get_env_int("ROOM_MAX_AGE_MINUTES", 120),
            ROOM_CLEANUP_INTERVAL_SECONDS=get_env_int("ROOM_CLEANUP_INTERVAL_SECONDS", 1800),
            MAX_NAME_LENGTH=get_env_int("MAX_NAME_LENGTH", 20),
            game_defaults=GameDefaults(
                target_score=get_env_int("DEFAULT_TARGET_SCORE", 500),
                hand_size=get_env_int("DEFAULT_HAND_SIZE", 7),
                catch_window_ms=get_env_int("CATCH_WINDOW_MS", 3000),
                catch_penalty=get_env_int("CATCH_PENALTY_CARDS", 4),
            ),
        )


# Global config instance - loaded once at module import
config = ServerConfig.from_env()


def reload_config() -> ServerConfig:
    """Reload configuration from environment (useful for testing)."""
    global config
    config = ServerConfig.from_env()
    return config
