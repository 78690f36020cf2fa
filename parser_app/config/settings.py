"""
Configuration settings for PARSER APP
"""

import os
from datetime import datetime, tzinfo
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic_settings import BaseSettings


class ParserAppSettings(BaseSettings):
    """Configuration for the PARSER APP"""

    # Application
    app_name: str = "FitLog - Parser App"
    version: str = "1.0.0"
    debug: bool = False

    # Database
    database_url: str = "sqlite:///fitlog.db"

    # OpenAI
    openai_api_key: str = ""
    openai_model: str = "gpt-4o-mini"
    parsing_temperature: float = 0.3  # favour consistent parsing
    query_temperature: float = 0.7  # more natural answers
    query_max_tokens: int = 500  # keeps answers chat-bubble sized
    http_timeout_seconds: int = 30

    # Dates
    default_timezone: str = ""  # empty = system local zone
    anchor_hour: int = 8

    # Conversation
    conversation_window: int = 10
    max_chat_sessions: int = 256  # API keeps the most recently used chats

    # API server
    api_host: str = "127.0.0.1"
    api_port: int = 8020

    # Logging
    log_level: str = "INFO"
    log_format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    log_file: str = "parser_app.log"
    log_max_bytes: int = 10 * 1024 * 1024  # 10MB
    log_backup_count: int = 5

    class Config:
        env_file = ".env"
        env_prefix = "PARSER_APP_"

    def local_timezone(self) -> tzinfo:
        if self.default_timezone:
            return ZoneInfo(self.default_timezone)
        return system_timezone()


def _zone_from_localtime(path: Path) -> str | None:
    try:
        target = str(path.resolve())
    except OSError:
        return None
    marker = "zoneinfo/"
    if marker not in target:
        return None
    return target.split(marker, 1)[1]


def system_timezone(localtime: Path = Path("/etc/localtime")) -> tzinfo:
    """The host zone by name (DST-aware), from $TZ or the /etc/localtime link.

    Falls back to the current fixed UTC offset when no zone name is found.
    """
    for name in (os.environ.get("TZ", "").lstrip(":"), _zone_from_localtime(localtime)):
        if not name:
            continue
        try:
            return ZoneInfo(name)
        except (ZoneInfoNotFoundError, ValueError, OSError):
            continue
    return datetime.now().astimezone().tzinfo


# Global settings instance
settings = ParserAppSettings()

# Paths
BASE_DIR = Path(__file__).parent.parent
LOGS_DIR = BASE_DIR / "logs"

# Ensure directories exist
LOGS_DIR.mkdir(exist_ok=True)
