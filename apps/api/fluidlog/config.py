"""Application configuration utilities."""
from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


class AppConfig(BaseModel):
    """Strongly typed configuration loaded from config.json."""

    openai_api_key: Optional[str] = Field(default=None, alias="openai_api_key")
    openai_model: str = Field(default="gpt-4o-mini")
    openai_timeout_seconds: float = Field(default=20.0, gt=0)
    database_path: str = Field(default="./data/fluidlog.db")

    @property
    def resolved_database_path(self) -> Path:
        """Return the absolute path for the SQLite database file."""
        return (Path(__file__).resolve().parents[1] / self.database_path).resolve()


def _config_path() -> Path:
    override = os.getenv("FLUIDLOG_CONFIG")
    if override:
        return Path(override).expanduser().resolve()
    return Path(__file__).resolve().parents[1] / "config.json"


def load_config() -> AppConfig:
    """Load configuration from config.json, falling back to environment variables."""

    config_file = _config_path()
    contents: Dict[str, Any] = {}
    if config_file.exists():
        contents = json.loads(config_file.read_text())
    else:
        example = config_file.with_name("config.example.json")
        logger.warning(
            "config.json not found, using environment defaults",
            extra={"expected": str(config_file), "example": str(example)},
        )

    env_key = os.getenv("OPENAI_API_KEY")
    if env_key and not contents.get("openai_api_key"):
        contents["openai_api_key"] = env_key
    env_db = os.getenv("FLUIDLOG_DATABASE_PATH")
    if env_db:
        contents["database_path"] = env_db
    return AppConfig(**contents)


CONFIG = load_config()
