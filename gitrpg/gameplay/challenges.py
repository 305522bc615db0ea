"""PvP challenge coordinator.

Guarantees that each challenge is fought at most once: the accept path
starts with an atomic pending -> accepted claim in the store, and only the
caller that wins the claim runs the duel. Losing the race is a normal
outcome (`already_handled`), not an error.

Once a duel has been resolved its result is authoritative. Failures while
persisting it or paying rewards are logged and never unwind the battle,
because re-running the simulation would produce a different outcome.
"""
from __future__ import annotations

from typing import Awaitable, Callable, List, Optional

from pydantic import BaseModel

from gitrpg.config import Settings
from gitrpg.utils import battle_logs, db, rewards
from gitrpg.utils.battle_engine import loser_share, run_duel
from gitrpg.utils.errors import ChallengeError, ChallengeNotFound
from gitrpg.utils.logger import get_logger
from gitrpg.utils.models import BattleResult, Challenge, ChallengeStatus, Fighter
from gitrpg.utils.randomness import RandomSource

logger = get_logger("gitrpg.challenges")

ProfileLookup = Callable[[str], Awaitable[Optional[Fighter]]]
Disburse = Callable[[str, int, int, str], Awaitable[bool]]

EXECUTED = "executed"
ALREADY_HANDLED = "already_handled"
NOT_PERMITTED = "not_permitted"


class AcceptOutcome(BaseModel):
    status: str
    challenge_id: str
    result: Optional[BattleResult] = None
    # reward grants that failed and should be retried out of band
    failed_rewards: Optional[List[str]] = None

    @property
    def executed(self) -> bool:
        return self.status == EXECUTED


async def create_challenge(challenger_id: str, opponent_id: str) -> Challenge:
    if challenger_id == opponent_id:
        raise ChallengeError("cannot challenge yourself")
    existing = await db.find_pending_challenge(challenger_id, opponent_id)
    if existing is not None:
        raise ChallengeError("Challenge already pending")
    challenge = await db.create_challenge(challenger_id, opponent_id)
    logger.info("challenge %s created: %s -> %s", challenge.id, challenger_id, opponent_id)
    return challenge


async def get_challenge(challenge_id: str) -> Challenge:
    challenge = await db.get_challenge(challenge_id)
    if challenge is None:
        raise ChallengeNotFound(f"challenge {challenge_id} not found")
    return challenge


async def pending_for(user_id: str) -> List[Challenge]:
    return await db.list_pending_challenges(user_id)


async def history(user_id: str, limit: int = 10) -> List[Challenge]:
    return await db.challenge_history(user_id, limit=limit)


async def decline_challenge(challenge_id: str, actor_id: str) -> bool:
    """Decline a pending challenge; only the designated opponent may."""
    declined = await db.decline_challenge(challenge_id, actor_id)
    if declined is None:
        # distinguish unknown ids for the caller
        await get_challenge(challenge_id)
        return False
    logger.info("challenge %s declined by %s", challenge_id, actor_id)
    return True


async def _pay(disburse: Disburse, user_id: str, xp: int, gold: int, key: str) -> bool:
    try:
        await disburse(user_id, xp, gold, key)
        return True
    except Exception:
        logger.exception("reward disbursement failed for %s (%s); battle result stands", user_id, key)
        return False


async def accept_challenge(
    challenge_id: str,
    actor_id: str,
    *,
    rng: Optional[RandomSource] = None,
    profiles: Optional[ProfileLookup] = None,
    disburse: Optional[Disburse] = None,
) -> AcceptOutcome:
    """Claim a pending challenge, fight the duel and pay out.

    Returns `already_handled` when another call already claimed (or the
    opponent declined) the challenge, and `not_permitted` when `actor_id` is
    not the challenge's opponent. Raises ChallengeNotFound for unknown ids.
    """
    profiles = profiles or db.get_fighter_snapshot
    disburse = disburse or rewards.apply_reward

    claimed = await db.claim_challenge(challenge_id, actor_id)
    if claimed is None:
        current = await get_challenge(challenge_id)
        if current.opponent_id != actor_id:
            logger.warning("user %s tried to accept challenge %s addressed to %s", actor_id, challenge_id, current.opponent_id)
            return AcceptOutcome(status=NOT_PERMITTED, challenge_id=challenge_id)
        logger.info("challenge %s already handled (status=%s)", challenge_id, current.status.value)
        return AcceptOutcome(status=ALREADY_HANDLED, challenge_id=challenge_id)

    challenger = await profiles(claimed.challenger_id)
    opponent = await profiles(claimed.opponent_id)
    if challenger is None or opponent is None:
        # claim stands; a half-set-up challenge is left accepted for inspection
        missing = claimed.challenger_id if challenger is None else claimed.opponent_id
        raise ChallengeError(f"profile {missing} not found for challenge {challenge_id}")

    result = run_duel(challenger, opponent, rng=rng)
    logger.info(
        "challenge %s resolved: %s beat %s in %s turns%s",
        challenge_id, result.winner.id, result.loser.id, result.total_turns,
        " (timeout)" if result.timed_out else "",
    )

    try:
        await db.complete_challenge(challenge_id, result.winner.id, result.actions, result.rewards)
    except Exception:
        logger.exception("failed to persist result of challenge %s", challenge_id)

    if Settings.BATTLE_LOG_ENABLED:
        battle_logs.record_duel(challenge_id, result)

    consolation = loser_share(result.rewards)
    failed: List[str] = []
    grants = (
        (result.winner.id, result.rewards.xp, result.rewards.gold),
        (result.loser.id, consolation.xp, consolation.gold),
    )
    for user_id, xp, gold in grants:
        key = rewards.reward_key(challenge_id, user_id)
        if not await _pay(disburse, user_id, xp, gold, key):
            failed.append(key)

    return AcceptOutcome(status=EXECUTED, challenge_id=challenge_id, result=result, failed_rewards=failed or None)
