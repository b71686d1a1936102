"""
agentdeck configuration — loads .env and exposes a typed Settings dataclass.
"""

from dataclasses import dataclass, field
from pathlib import Path
import os

from dotenv import load_dotenv


def _load_env() -> None:
    """Load .env from project root."""
    # Walk up from this file to find .env
    project_root = Path(__file__).resolve().parent.parent.parent
    env_path = project_root / ".env"
    if env_path.exists():
        load_dotenv(env_path)


_load_env()


def _get_str(key: str, default: str = "") -> str:
    return os.getenv(key, default)


def _get_float(key: str, default: float = 0.0) -> float:
    return float(os.getenv(key, str(default)))


def _get_path(key: str, default: str = ".") -> Path:
    return Path(os.getenv(key, default)).resolve()


@dataclass(frozen=True)
class Settings:
    """Immutable application settings loaded from environment variables."""

    TELEGRAM_BOT_TOKEN: str = field(
        default_factory=lambda: _get_str("TELEGRAM_BOT_TOKEN")
    )
    AGENT_API_BASE_URL: str = field(
        default_factory=lambda: _get_str("AGENT_API_BASE_URL", "http://localhost:8888")
    )
    COMMAND_TIMEOUT: float = field(
        default_factory=lambda: _get_float("COMMAND_TIMEOUT", 30.0)
    )
    DEFAULT_PROJECT: str = field(
        default_factory=lambda: _get_str("DEFAULT_PROJECT")
    )
    LOG_DIR: Path = field(
        default_factory=lambda: _get_path("LOG_DIR", "./agentdeck/logs")
    )
