"""
Standup Bot — Centralized configuration.

Loads all settings from .env and validates required keys.
This module is the foundation for every other module in the project.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, field_validator

# Load .env from project root (two levels up from src/config.py)
_ENV_PATH = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(_ENV_PATH)


class Settings(BaseModel):
    """Application settings loaded from environment variables."""

    # Telegram
    TELEGRAM_BOT_TOKEN: str

    # Google Sheets service account: either a JSON key file or the two
    # fields copied out of it (private key with literal "\n" sequences)
    GOOGLE_SERVICE_ACCOUNT_FILE: str = ""
    GOOGLE_CLIENT_EMAIL: str = ""
    GOOGLE_PRIVATE_KEY: str = ""

    # Spreadsheet assigned to newly seen groups
    GOOGLE_SPREADSHEET_ID: str = ""

    # JSON state document
    DATA_PATH: str = "data/standups.json"

    # Liveness endpoint
    PORT: int = 3000

    # Users allowed to run bot-wide commands such as /showAllGroups
    BOT_ADMIN_IDS: list[int] = []

    LOG_LEVEL: str = "INFO"

    @field_validator("BOT_ADMIN_IDS", mode="before")
    @classmethod
    def parse_user_ids(cls, v: str | list[int]) -> list[int]:
        if isinstance(v, list):
            return v
        if isinstance(v, str) and v.strip():
            return [int(uid.strip()) for uid in v.split(",") if uid.strip()]
        return []

    @field_validator("PORT", mode="before")
    @classmethod
    def parse_port(cls, v: str | int) -> int:
        return int(v)

    @field_validator("GOOGLE_PRIVATE_KEY", mode="before")
    @classmethod
    def unescape_private_key(cls, v: str) -> str:
        # Keys pasted into .env usually carry escaped newlines
        return v.replace("\\n", "\n") if v else ""


def _load_settings() -> Settings:
    """Load settings from environment, validating required keys."""
    token = os.getenv("TELEGRAM_BOT_TOKEN", "") or os.getenv("BOT_TOKEN", "")

    if not token or token.startswith("your-"):
        print("ERROR: TELEGRAM_BOT_TOKEN is missing or not set in .env", file=sys.stderr)
        sys.exit(1)

    return Settings(
        TELEGRAM_BOT_TOKEN=token,
        GOOGLE_SERVICE_ACCOUNT_FILE=os.getenv("GOOGLE_SERVICE_ACCOUNT_FILE", ""),
        GOOGLE_CLIENT_EMAIL=os.getenv("GOOGLE_CLIENT_EMAIL", ""),
        GOOGLE_PRIVATE_KEY=os.getenv("GOOGLE_PRIVATE_KEY", ""),
        GOOGLE_SPREADSHEET_ID=os.getenv("GOOGLE_SPREADSHEET_ID", ""),
        DATA_PATH=os.getenv("DATA_PATH", "data/standups.json"),
        PORT=os.getenv("PORT", "3000"),
        BOT_ADMIN_IDS=os.getenv("BOT_ADMIN_IDS", ""),
        LOG_LEVEL=os.getenv("LOG_LEVEL", "INFO"),
    )


# Singleton, imported by all other modules as:
#   from src.config import settings
settings = _load_settings()
