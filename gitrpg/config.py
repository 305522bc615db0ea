"""Configuration loader for gitrpg combat.

A small Settings class that reads environment variables (and a .env file via
python-dotenv). `validate()` reports missing required values at startup.
"""
from typing import Optional, List
import os
from dotenv import load_dotenv

load_dotenv()


class Settings:
    """Minimal settings holder.

    Values are read once at import time; tests override attributes on an
    instance rather than touching the environment.
    """

    DEV_MODE: bool = os.getenv("DEV_MODE", "true").lower() in ("1", "true", "yes")
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()

    # Database (falls back to the in-memory stores when unset)
    DATABASE_URL: Optional[str] = os.getenv("DATABASE_URL")
    DB_POOL_MIN: int = int(os.getenv("DB_POOL_MIN", "1"))
    DB_POOL_MAX: int = int(os.getenv("DB_POOL_MAX", "10"))

    # Combat tuning
    DUEL_MAX_TURNS: int = int(os.getenv("DUEL_MAX_TURNS", "100"))
    LOSER_REWARD_SHARE: float = float(os.getenv("LOSER_REWARD_SHARE", "0.25"))
    # Replay pacing hint handed to the downstream animation player
    REPLAY_ACTION_MS: int = int(os.getenv("REPLAY_ACTION_MS", "500"))

    # Append finished battles to data/battle_logs.jsonl
    BATTLE_LOG_ENABLED: bool = os.getenv("BATTLE_LOG_ENABLED", "false").lower() in ("1", "true", "yes")

    def validate(self, required: Optional[List[str]] = None) -> List[str]:
        """Validate required environment variables.

        Args:
            required: list of attribute names to check (e.g. ["DATABASE_URL"]).
                If omitted, nothing is required because every store has an
                in-memory fallback.

        Returns:
            A list of missing attribute names (empty if all present).
        """
        if required is None:
            required = []

        missing: List[str] = []
        for name in required:
            val = getattr(self, name, None)
            if val is None or (isinstance(val, str) and not val.strip()):
                missing.append(name)

        if not 0.0 <= self.LOSER_REWARD_SHARE <= 1.0:
            missing.append("LOSER_REWARD_SHARE")
        if self.DUEL_MAX_TURNS < 1:
            missing.append("DUEL_MAX_TURNS")

        return missing
