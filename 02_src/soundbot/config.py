"""Project-level configuration and path helpers."""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Union

PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
DATA_DIR = PROJECT_ROOT / "03_data"
LOGS_DIR = PROJECT_ROOT / "04_logs"
DEFAULT_DB_PATH = DATA_DIR / "soundbot.db"
DEFAULT_LOG_PATH = LOGS_DIR / "app.log"
DEFAULT_STATIC_DIR = PROJECT_ROOT / "public"

DEFAULT_SEND_API_URL = "https://graph.facebook.com/v2.6/me/messages"
DEFAULT_DISPATCH_TIMEOUT_MS = 10_000

DATA_DIR.mkdir(parents=True, exist_ok=True)
LOGS_DIR.mkdir(parents=True, exist_ok=True)


PathLike = Union[str, Path]


class ConfigError(RuntimeError):
    """Raised when required configuration values are missing."""


def resolve_db_path(env_value: PathLike | None = None) -> PathLike:
    """Resolve DATABASE_URL to an absolute path."""
    if not env_value:
        return DEFAULT_DB_PATH

    if str(env_value) == ":memory:":
        return ":memory:"

    candidate = Path(env_value)
    return candidate if candidate.is_absolute() else PROJECT_ROOT / candidate


def resolve_static_dir(env_value: PathLike | None = None) -> Path:
    """Resolve STATIC_DIR to an absolute path."""
    if not env_value:
        return DEFAULT_STATIC_DIR

    candidate = Path(env_value)
    return candidate if candidate.is_absolute() else PROJECT_ROOT / candidate


@dataclass
class Settings:
    """Runtime settings for the bot, read from the environment."""

    app_secret: str = ""
    validation_token: str = ""
    page_access_token: str = ""
    server_url: str = ""
    send_api_url: str = DEFAULT_SEND_API_URL
    dispatch_timeout_ms: int = DEFAULT_DISPATCH_TIMEOUT_MS
    dispatch_sweep_interval: float = 1.0
    static_dir: Path = DEFAULT_STATIC_DIR
    db_path: PathLike = DEFAULT_DB_PATH

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from environment variables."""
        return cls(
            app_secret=os.getenv("MESSENGER_APP_SECRET", ""),
            validation_token=os.getenv("MESSENGER_VALIDATION_TOKEN", ""),
            page_access_token=os.getenv("MESSENGER_PAGE_ACCESS_TOKEN", ""),
            server_url=os.getenv("SERVER_URL", ""),
            send_api_url=os.getenv("SEND_API_URL", DEFAULT_SEND_API_URL),
            dispatch_timeout_ms=int(
                os.getenv("DISPATCH_TIMEOUT_MS", str(DEFAULT_DISPATCH_TIMEOUT_MS))
            ),
            dispatch_sweep_interval=float(os.getenv("DISPATCH_SWEEP_INTERVAL", "1.0")),
            static_dir=resolve_static_dir(os.getenv("STATIC_DIR")),
            db_path=resolve_db_path(os.getenv("DATABASE_URL")),
        )

    def validate(self) -> None:
        """Raise ConfigError if any required value is missing."""
        required = {
            "MESSENGER_APP_SECRET": self.app_secret,
            "MESSENGER_VALIDATION_TOKEN": self.validation_token,
            "MESSENGER_PAGE_ACCESS_TOKEN": self.page_access_token,
            "SERVER_URL": self.server_url,
        }
        missing = [name for name, value in required.items() if not value]
        if missing:
            raise ConfigError(f"Missing config values: {', '.join(missing)}")
