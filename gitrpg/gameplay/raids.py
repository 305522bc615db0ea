"""Cooperative boss battle coordinator.

Owns the lifecycle of a boss encounter (lobby -> ready -> in_progress ->
completed/failed, or abandoned at any point before the end) and drives it
one round at a time. Rounds for the same battle id are serialized with a
per-battle lock so two turn requests can never race on the boss's HP.
"""
from __future__ import annotations

import asyncio
import uuid
from datetime import datetime, timezone
from typing import Dict, List, Optional, Tuple

from gitrpg.config import Settings
from gitrpg.utils import battle_logs, db, rewards
from gitrpg.utils.boss_engine import apply_turn
from gitrpg.utils.bosses import boss_rewards, create_boss_instance, daily_boss, get_definition
from gitrpg.utils.errors import BossBattleError
from gitrpg.utils.logger import get_logger
from gitrpg.utils.models import Action, BossBattleState, BossBattleStatus, Fighter
from gitrpg.utils.randomness import RandomSource
from gitrpg.gameplay.challenges import Disburse, ProfileLookup

logger = get_logger("gitrpg.raids")

_turn_locks: Dict[str, asyncio.Lock] = {}

TERMINAL = (BossBattleStatus.COMPLETED, BossBattleStatus.FAILED, BossBattleStatus.ABANDONED)


async def _snapshot(profiles: ProfileLookup, user_id: str) -> Fighter:
    fighter = await profiles(user_id)
    if fighter is None:
        raise BossBattleError(f"profile {user_id} not found")
    return fighter


async def _require(battle_id: str) -> BossBattleState:
    state = await db.get_boss_battle(battle_id)
    if state is None:
        raise BossBattleError(f"boss battle {battle_id} not found")
    return state


async def create_lobby(
    player1_id: str,
    player2_id: Optional[str] = None,
    boss_type: Optional[str] = None,
    *,
    profiles: Optional[ProfileLookup] = None,
) -> BossBattleState:
    """Open a lobby against `boss_type` (today's boss by default)."""
    profiles = profiles or db.get_fighter_snapshot
    if player2_id is not None and player2_id == player1_id:
        raise BossBattleError("a player cannot team up with themselves")
    boss_type = boss_type or daily_boss()
    get_definition(boss_type)

    p1 = await _snapshot(profiles, player1_id)
    p2 = await _snapshot(profiles, player2_id) if player2_id is not None else None
    party = [p for p in (p1, p2) if p is not None]
    average_level = sum(p.level for p in party) / len(party)
    boss = create_boss_instance(boss_type, average_level)

    state = BossBattleState(
        id=str(uuid.uuid4()),
        player1_id=p1.id,
        player2_id=p2.id if p2 is not None else None,
        boss_type=boss_type,
        average_level=average_level,
        boss_level=boss.level,
        boss_max_hp=boss.max_hp,
        boss_current_hp=boss.current_hp,
        player1_current_hp=p1.stats.max_hp,
        player2_current_hp=p2.stats.max_hp if p2 is not None else None,
        created_at=datetime.now(timezone.utc),
    )
    await db.insert_boss_battle(state)
    logger.info("boss lobby %s opened: %s (lvl %s) for %s", state.id, boss_type, boss.level, state.participant_ids)
    return state


async def set_ready(battle_id: str) -> bool:
    return await db.transition_boss_battle(battle_id, [BossBattleStatus.LOBBY], BossBattleStatus.READY) is not None


async def start(battle_id: str) -> BossBattleState:
    state = await db.transition_boss_battle(
        battle_id,
        [BossBattleStatus.LOBBY, BossBattleStatus.READY],
        BossBattleStatus.IN_PROGRESS,
        started_at=datetime.now(timezone.utc),
    )
    if state is None:
        current = await _require(battle_id)
        raise BossBattleError(f"boss battle {battle_id} cannot start from {current.status.value}")
    return state


def _release_lock(battle_id: str) -> None:
    _turn_locks.pop(battle_id, None)


async def abandon(battle_id: str) -> bool:
    """Stop an encounter; no further turns will be run for it."""
    state = await db.transition_boss_battle(
        battle_id,
        [BossBattleStatus.LOBBY, BossBattleStatus.READY, BossBattleStatus.IN_PROGRESS],
        BossBattleStatus.ABANDONED,
        completed_at=datetime.now(timezone.utc),
    )
    if state is not None:
        _release_lock(battle_id)
        logger.info("boss battle %s abandoned", battle_id)
    return state is not None


async def run_turn(
    battle_id: str,
    *,
    rng: Optional[RandomSource] = None,
    profiles: Optional[ProfileLookup] = None,
    disburse: Optional[Disburse] = None,
) -> Tuple[BossBattleState, List[Action]]:
    """Play the next round of an in-progress encounter and persist it.

    The save is a compare-and-swap on the turn counter, so a round computed
    from a stale read (another process advanced or ended the battle in the
    meantime) raises BossBattleError instead of overwriting newer state.
    """
    profiles = profiles or db.get_fighter_snapshot
    disburse = disburse or rewards.apply_reward

    # unknown ids never get a lock
    await _require(battle_id)
    lock = _turn_locks.setdefault(battle_id, asyncio.Lock())
    async with lock:
        state = await _require(battle_id)
        if state.status != BossBattleStatus.IN_PROGRESS:
            _release_lock(battle_id)
            raise BossBattleError(f"boss battle {battle_id} is {state.status.value}, not in progress")

        p1 = await _snapshot(profiles, state.player1_id)
        p2 = await _snapshot(profiles, state.player2_id) if state.player2_id is not None else None
        new_state, actions = apply_turn(state, p1, p2, rng=rng)

        if new_state.status in TERMINAL:
            won = new_state.status == BossBattleStatus.COMPLETED
            new_state = new_state.model_copy(update={"rewards": boss_rewards(won, new_state.is_coop)})

        saved = await db.save_boss_battle(new_state, expected=BossBattleStatus.IN_PROGRESS, expected_turn=state.turn)
        if not saved:
            current = await db.get_boss_battle(battle_id)
            if current is None or current.status != BossBattleStatus.IN_PROGRESS:
                _release_lock(battle_id)
            raise BossBattleError(f"boss battle {battle_id} changed during turn {new_state.turn}; round discarded")

        if new_state.status in TERMINAL:
            _release_lock(battle_id)
            await _finish(new_state, disburse)

    return new_state, actions


async def _finish(state: BossBattleState, disburse: Disburse) -> None:
    logger.info("boss battle %s ended %s after %s turns", state.id, state.status.value, state.turn)
    if Settings.BATTLE_LOG_ENABLED:
        battle_logs.record_boss_battle(state)
    if state.rewards is None:
        return
    for user_id in state.participant_ids:
        key = rewards.reward_key(state.id, user_id)
        try:
            await disburse(user_id, state.rewards.xp, state.rewards.gold, key)
        except Exception:
            logger.exception("boss reward disbursement failed for %s (%s)", user_id, key)
