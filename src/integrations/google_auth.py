"""
Standup Bot — Google Sheets Authentication.

Exports run unattended, so the bot authenticates as a Google Cloud service
account rather than through an interactive OAuth consent flow. Each group
shares its spreadsheet with the service account's email (Editor access).
"""

from __future__ import annotations

import logging
from functools import lru_cache
from pathlib import Path

from google.oauth2 import service_account
from googleapiclient.discovery import build

logger = logging.getLogger(__name__)

SCOPES = ["https://www.googleapis.com/auth/spreadsheets"]
_TOKEN_URI = "https://oauth2.googleapis.com/token"


def load_credentials() -> service_account.Credentials:
    """Build service-account credentials from config.

    Prefers GOOGLE_SERVICE_ACCOUNT_FILE; falls back to the
    GOOGLE_CLIENT_EMAIL / GOOGLE_PRIVATE_KEY pair.
    """
    from src.config import settings

    if settings.GOOGLE_SERVICE_ACCOUNT_FILE:
        key_path = Path(settings.GOOGLE_SERVICE_ACCOUNT_FILE)
        if not key_path.exists():
            raise FileNotFoundError(
                f"Service account key file not found at {key_path}. "
                "Download it from the Google Cloud Console."
            )
        logger.debug("Loading service account key from %s", key_path)
        return service_account.Credentials.from_service_account_file(str(key_path), scopes=SCOPES)

    if not settings.GOOGLE_CLIENT_EMAIL or not settings.GOOGLE_PRIVATE_KEY:
        raise RuntimeError(
            "Google service account is not configured. Set GOOGLE_SERVICE_ACCOUNT_FILE "
            "or GOOGLE_CLIENT_EMAIL and GOOGLE_PRIVATE_KEY."
        )

    info = {
        "type": "service_account",
        "client_email": settings.GOOGLE_CLIENT_EMAIL,
        "private_key": settings.GOOGLE_PRIVATE_KEY,
        "token_uri": _TOKEN_URI,
    }
    return service_account.Credentials.from_service_account_info(info, scopes=SCOPES)


@lru_cache(maxsize=1)
def get_sheets_service():
    """Authenticate and return a Google Sheets API v4 service object."""
    creds = load_credentials()
    service = build("sheets", "v4", credentials=creds, cache_discovery=False)
    logger.info("Google Sheets service built successfully")
    return service


def service_account_email() -> str:
    """Email groups must share their spreadsheet with, or "" if unknown."""
    from src.config import settings

    if settings.GOOGLE_CLIENT_EMAIL:
        return settings.GOOGLE_CLIENT_EMAIL
    try:
        return load_credentials().service_account_email
    except (OSError, RuntimeError, ValueError) as exc:
        logger.warning("Could not determine service account email: %s", exc)
        return ""
