"""
Centralized configuration for the Shithead game server.

Configuration is loaded from (in order of precedence):
1. Environment variables
2. .env file (if exists)
3. Default values

Usage:
    from config import config
    print(config.PORT)
    print(config.client_origins)
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


def get_env_list(key: str) -> list[str]:
    """Get comma-separated environment variable as a list, blanks dropped."""
    return [item.strip() for item in get_env(key, "").split(",") if item.strip()]


@dataclass
class ServerConfig:
    """Server configuration."""
    HOST: str = "0.0.0.0"
    PORT: int = 3001
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    ENVIRONMENT: str = "development"

    # Origins allowed to open connections; empty allows all (dev)
    CLIENT_ORIGINS: list[str] = field(default_factory=list)

    # Room settings
    ROOM_CODE_LENGTH: int = 4
    MAX_NAME_LENGTH: int = 20
    MIN_PLAYERS: int = 2
    MAX_PLAYERS_PER_ROOM: int = 5  # 5 seats x 9 cards fits one 52-card deck

    @property
    def client_origins(self) -> list[str]:
        """CORS allow-list as passed to the middleware."""
        return self.CLIENT_ORIGINS or ["*"]

    @classmethod
    def from_env(cls) -> "ServerConfig":
        """Load configuration from environment variables."""
        return cls(
            HOST=get_env("HOST", "0.0.0.0"),
            PORT=get_env_int("PORT", 3001),
            DEBUG=get_env_bool("DEBUG", False),
            LOG_LEVEL=get_env("LOG_LEVEL", "INFO"),
            ENVIRONMENT=get_env("ENVIRONMENT", "development"),
            CLIENT_ORIGINS=get_env_list("CLIENT_ORIGINS"),
            ROOM_CODE_LENGTH=get_env_int("ROOM_CODE_LENGTH", 4),
            MAX_NAME_LENGTH=get_env_int("MAX_NAME_LENGTH", 20),
            MIN_PLAYERS=get_env_int("MIN_PLAYERS", 2),
            MAX_PLAYERS_PER_ROOM=get_env_int("MAX_PLAYERS_PER_ROOM", 5),
        )


# Global config instance - loaded once at module import
config = ServerConfig.from_env()


def reload_config() -> ServerConfig:
    """Reload configuration from environment (useful for testing)."""
    global config
    config = ServerConfig.from_env()
    return config
