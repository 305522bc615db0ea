"""Reward disbursement (XP and gold) for finished battles.

Every grant carries an idempotency key, typically `<battle id>:<user id>`,
so a retried disbursement after a timeout never pays twice. Uses the
asyncpg pool from `gitrpg.utils.db` when one is initialised and an
in-memory ledger otherwise.
"""
from __future__ import annotations

from typing import Dict, Any, Set
from datetime import datetime, timezone

from gitrpg.utils import db
from gitrpg.utils.errors import RewardError
from gitrpg.utils.logger import get_logger

logger = get_logger("gitrpg.rewards")

_inmemory_accounts: Dict[str, Dict[str, int]] = {}
_inmemory_grants: Set[str] = set()


def reward_key(battle_id: str, user_id: str) -> str:
    return f"{battle_id}:{user_id}"


def reset_inmemory() -> None:
    _inmemory_accounts.clear()
    _inmemory_grants.clear()


async def apply_reward(user_id: str, xp: int, gold: int, key: str) -> bool:
    """Credit `xp` and `gold` to `user_id` once per `key`.

    Returns True if the grant was applied now, False if `key` had already
    been applied. Against Postgres, raises RewardError when the user row
    does not exist; the in-memory ledger has no users table and opens an
    account on the first grant.
    """
    if xp < 0 or gold < 0:
        raise ValueError("reward deltas must be non-negative")

    pool = db.get_pool()
    if pool is None:
        if key in _inmemory_grants:
            return False
        acct = _inmemory_accounts.setdefault(str(user_id), {"xp": 0, "gold": 0})
        acct["xp"] = int(acct.get("xp", 0)) + int(xp)
        acct["gold"] = int(acct.get("gold", 0)) + int(gold)
        _inmemory_grants.add(key)
        logger.debug("granted %s xp / %s gold to %s (%s)", xp, gold, user_id, key)
        return True

    async with db.transaction() as conn:
        inserted = await conn.fetchval(
            "INSERT INTO reward_grants (key, user_id, xp, gold, created_at) VALUES ($1, $2, $3, $4, $5) "
            "ON CONFLICT (key) DO NOTHING RETURNING key",
            key,
            user_id,
            xp,
            gold,
            datetime.now(timezone.utc),
        )
        if inserted is None:
            return False
        result = await conn.execute(
            "UPDATE users SET total_xp = total_xp + $2, gold = gold + $3 WHERE id = $1",
            user_id,
            xp,
            gold,
        )
        if result.endswith(" 0"):
            # raising rolls the grant row back with the transaction
            raise RewardError(f"user {user_id} not found")
    logger.debug("granted %s xp / %s gold to %s (%s)", xp, gold, user_id, key)
    return True


async def get_account(user_id: str) -> Dict[str, Any]:
    pool = db.get_pool()
    if pool is None:
        return dict(_inmemory_accounts.get(str(user_id), {"xp": 0, "gold": 0}))

    async with pool.acquire() as conn:
        row = await conn.fetchrow("SELECT total_xp, gold FROM users WHERE id = $1", user_id)
    if row is None:
        return {"xp": 0, "gold": 0}
    return {"xp": row["total_xp"], "gold": row["gold"]}
