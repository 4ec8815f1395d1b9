"""
Runtime configuration read from the environment (and an optional .env file).

Values are read on access so tests can monkeypatch the environment.
"""
import os
from typing import List

from dotenv import load_dotenv

load_dotenv()

DEFAULT_CAPTAIN_BONUS_PERCENT = 10
DEFAULT_ADMIN_ROLES = "ADMIN,SUPERADMIN"


def get_captain_bonus_percent() -> int:
    """Share of a team prize routed to the captain, as a whole percent (0-100)."""
    raw = os.getenv("CAPTAIN_BONUS_PERCENT", str(DEFAULT_CAPTAIN_BONUS_PERCENT))
    try:
        percent = int(raw)
    except ValueError:
        raise ValueError(f"CAPTAIN_BONUS_PERCENT must be an integer, got '{raw}'")
    return validate_captain_bonus_percent(percent)


def validate_captain_bonus_percent(percent: int) -> int:
    """Raise ValueError unless 0 <= percent <= 100; above 100 the bonus exceeds the prize."""
    if not 0 <= percent <= 100:
        raise ValueError(f"Captain bonus percent must be within 0..100, got {percent}")
    return percent


def get_admin_roles() -> List[str]:
    raw = os.getenv("ADMIN_ROLES", DEFAULT_ADMIN_ROLES)
    return [r.strip().upper() for r in raw.split(",") if r.strip()]


def get_cors_origins() -> List[str]:
    origins = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]
    extra = os.getenv("CORS_ORIGINS", "")
    if extra:
        origins.extend(o.strip() for o in extra.split(",") if o.strip())
    return origins


def get_log_level() -> str:
    return os.getenv("LOG_LEVEL", "INFO").upper()
