"""Duel engine: runs an isolated two-fighter battle to completion.

The engine works on private copies of its fighters, performs no I/O and
keeps no shared state, so independent duels can run on any thread. Pass a
seeded or scripted random source to make outcomes repeatable for tests.
"""
from __future__ import annotations

import math
from typing import List, Optional

from pydantic import ValidationError

from gitrpg.config import Settings
from gitrpg.utils.damage import calculate_damage, determine_turn_order, roll_crit
from gitrpg.utils.errors import InvalidFighterError
from gitrpg.utils.models import Action, BattleResult, Fighter, Rewards
from gitrpg.utils.randomness import RandomSource, default_source

MAX_TURNS = 100
BASE_XP = 50
XP_PER_LEVEL = 10
BASE_GOLD = 25
GOLD_PER_LEVEL = 5
LEVEL_BONUS_RATE = 0.1


def _checked_copy(fighter: Fighter) -> Fighter:
    # revalidate: the caller may have mutated the snapshot after construction
    try:
        return Fighter.model_validate(fighter.model_dump())
    except ValidationError as exc:
        raise InvalidFighterError(f"invalid fighter {getattr(fighter, 'id', '?')}: {exc}") from exc


def compute_rewards(winner_level: int, loser_level: int) -> Rewards:
    """Winner rewards scale with the loser's level, +10% per level the loser is above the winner."""
    level_diff = loser_level - winner_level
    level_bonus = max(0.0, level_diff * LEVEL_BONUS_RATE)
    base_xp = BASE_XP + loser_level * XP_PER_LEVEL
    base_gold = BASE_GOLD + loser_level * GOLD_PER_LEVEL
    return Rewards(
        xp=math.floor(base_xp * (1 + level_bonus)),
        gold=math.floor(base_gold * (1 + level_bonus)),
    )


def loser_share(rewards: Rewards, share: Optional[float] = None) -> Rewards:
    """Consolation rewards for the losing side of a PvP challenge."""
    if share is None:
        share = Settings.LOSER_REWARD_SHARE
    return Rewards(xp=math.floor(rewards.xp * share), gold=math.floor(rewards.gold * share))


def replay_duration_ms(actions: List[Action], per_action_ms: Optional[int] = None) -> int:
    """Rough playback length of an action log for the animation player."""
    if per_action_ms is None:
        per_action_ms = Settings.REPLAY_ACTION_MS
    return len(actions) * per_action_ms


class BattleEngine:
    """Two-fighter duel, Running -> Complete(winner).

    `run_battle()` loops turns until one side drops to 0 HP or `max_turns`
    is reached; on timeout the higher HP ratio wins and ties favour
    fighter 1.
    """

    def __init__(self, fighter1: Fighter, fighter2: Fighter, rng: Optional[RandomSource] = None, max_turns: int = MAX_TURNS):
        if max_turns < 1:
            raise ValueError("max_turns must be positive")
        self.fighter1 = _checked_copy(fighter1)
        self.fighter2 = _checked_copy(fighter2)
        if self.fighter1.id == self.fighter2.id:
            raise InvalidFighterError(f"a fighter cannot duel itself ({self.fighter1.id})")
        self.rng = default_source(rng)
        self.max_turns = max_turns
        self.turn = 0
        self._actions: List[Action] = []
        self._result: Optional[BattleResult] = None

    @property
    def finished(self) -> bool:
        return not (self.fighter1.alive and self.fighter2.alive) or self.turn >= self.max_turns

    def get_actions(self) -> List[Action]:
        return list(self._actions)

    def run_battle(self) -> BattleResult:
        if self._result is not None:
            return self._result

        while not self.finished:
            self.turn += 1
            self._execute_turn()

        timed_out = self.fighter1.alive and self.fighter2.alive
        if not self.fighter1.alive:
            winner, loser = self.fighter2, self.fighter1
        elif not self.fighter2.alive:
            winner, loser = self.fighter1, self.fighter2
        elif self.fighter1.hp_ratio >= self.fighter2.hp_ratio:
            winner, loser = self.fighter1, self.fighter2
        else:
            winner, loser = self.fighter2, self.fighter1

        self._result = BattleResult(
            winner=winner.model_copy(deep=True),
            loser=loser.model_copy(deep=True),
            actions=self.get_actions(),
            total_turns=self.turn,
            rewards=compute_rewards(winner.level, loser.level),
            timed_out=timed_out,
        )
        return self._result

    def _execute_turn(self) -> None:
        first, second = determine_turn_order(self.fighter1, self.fighter2, self.rng)
        self._execute_attack(first, second)
        if not second.alive:
            return
        self._execute_attack(second, first)

    def _execute_attack(self, attacker: Fighter, defender: Fighter) -> None:
        is_crit = roll_crit(attacker.stats.crit_chance, self.rng)
        damage, _ = calculate_damage(attacker, defender, is_crit, self.rng)
        defender.current_hp = max(0, defender.current_hp - damage)
        self._actions.append(Action(
            turn=self.turn,
            actor_id=attacker.id,
            target_id=defender.id,
            damage=damage,
            is_crit=is_crit,
            resulting_hp=defender.current_hp,
        ))


def run_duel(fighter1: Fighter, fighter2: Fighter, rng: Optional[RandomSource] = None, max_turns: Optional[int] = None) -> BattleResult:
    """Fight a duel to completion and return its result."""
    if max_turns is None:
        max_turns = Settings.DUEL_MAX_TURNS
    return BattleEngine(fighter1, fighter2, rng=rng, max_turns=max_turns).run_battle()
