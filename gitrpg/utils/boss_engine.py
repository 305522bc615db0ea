"""Boss encounter engine: one simulated round of a 1- or 2-player raid.

Boss fights are driven turn by turn by an external coordinator, so this
module never runs a whole battle. `execute_boss_turn` mutates the boss and
fighters it is given; `apply_turn` is the state-passing wrapper that takes a
persisted `BossBattleState` and returns the next one without touching the
input.

Players damage the boss with a fixed 1.5x crit multiplier regardless of
their own crit damage stat. The duel path uses the attacker's stat; the two
paths are kept different on purpose.
"""
from __future__ import annotations

import math
from datetime import datetime, timezone
from typing import List, Optional, Tuple

from gitrpg.utils.bosses import create_boss_instance
from gitrpg.utils.damage import MIN_DAMAGE, raw_damage, roll_crit
from gitrpg.utils.errors import BossBattleError
from gitrpg.utils.models import Action, BossBattleState, BossBattleStatus, BossInstance, Fighter
from gitrpg.utils.randomness import RandomSource, default_source

BOSS_CRIT_MULTIPLIER = 1.5
TARGET_WEAKEST_CHANCE = 0.7
NECROMANCER_HEAL = 50
NECROMANCER_HEAL_EVERY = 3


def _player_hits_boss(slot: str, player: Fighter, boss: BossInstance, turn: int, rng: RandomSource) -> Action:
    damage = max(MIN_DAMAGE, raw_damage(player.stats.attack, boss.defense, rng))
    is_crit = roll_crit(player.stats.crit_chance, rng)
    if is_crit:
        damage = math.floor(damage * BOSS_CRIT_MULTIPLIER)
    boss.current_hp = max(0, boss.current_hp - damage)
    return Action(
        turn=turn,
        actor_id=player.id,
        target_id=boss.definition.id,
        damage=damage,
        is_crit=is_crit,
        resulting_hp=boss.current_hp,
        actor_type=slot,
        target_type="boss",
        actor_name=player.name,
        target_name=boss.definition.name,
    )


def choose_target(living: List[Tuple[str, Fighter]], rng: RandomSource) -> Tuple[str, Fighter]:
    """Pick the boss's target among living (slot, fighter) pairs.

    70%: the lowest current HP (first slot wins ties); 30%: uniform pick.
    """
    if len(living) == 1:
        return living[0]
    if rng.uniform(0.0, 1.0) < TARGET_WEAKEST_CHANCE:
        return min(living, key=lambda pair: pair[1].current_hp)
    idx = min(int(rng.uniform(0.0, float(len(living)))), len(living) - 1)
    return living[idx]


def execute_boss_turn(
    player1: Fighter,
    player2: Optional[Fighter],
    boss: BossInstance,
    turn: int,
    rng: Optional[RandomSource] = None,
) -> List[Action]:
    """Resolve one round and return the actions it produced.

    HP changes are applied in place on `player1`, `player2` and `boss`.
    """
    if turn < 1:
        raise ValueError(f"turn must be >= 1, got {turn}")
    rng = default_source(rng)
    actions: List[Action] = []

    slots = [("player1", player1)]
    if player2 is not None:
        slots.append(("player2", player2))

    for slot, player in slots:
        if boss.alive and player.alive:
            actions.append(_player_hits_boss(slot, player, boss, turn, rng))

    living = [(slot, p) for slot, p in slots if p.alive]
    if boss.alive and living:
        slot, target = choose_target(living, rng)
        damage = max(MIN_DAMAGE, raw_damage(boss.attack, target.stats.defense, rng))
        target.current_hp = max(0, target.current_hp - damage)
        actions.append(Action(
            turn=turn,
            actor_id=boss.definition.id,
            target_id=target.id,
            damage=damage,
            is_crit=False,
            resulting_hp=target.current_hp,
            actor_type="boss",
            target_type=slot,
            actor_name=boss.definition.name,
            target_name=target.name,
        ))

    if boss.definition.id == "necromancer" and turn % NECROMANCER_HEAL_EVERY == 0 and boss.alive:
        before = boss.current_hp
        boss.current_hp = min(boss.max_hp, boss.current_hp + NECROMANCER_HEAL)
        actions.append(Action(
            turn=turn,
            actor_id=boss.definition.id,
            target_id=boss.definition.id,
            damage=boss.current_hp - before,
            is_crit=False,
            resulting_hp=boss.current_hp,
            is_heal=True,
            action_type="heal",
            actor_type="boss",
            target_type="boss",
            actor_name=boss.definition.name,
            target_name=boss.definition.name,
        ))

    return actions


def boss_from_state(state: BossBattleState) -> BossInstance:
    boss = create_boss_instance(state.boss_type, state.average_level)
    boss.current_hp = state.boss_current_hp
    boss.max_hp = state.boss_max_hp
    return boss


def apply_turn(
    state: BossBattleState,
    player1: Fighter,
    player2: Optional[Fighter] = None,
    rng: Optional[RandomSource] = None,
) -> Tuple[BossBattleState, List[Action]]:
    """(state, snapshots) -> (next state, new actions).

    The fighters supply stats only; current HP is taken from `state`. None of
    the arguments are mutated. Status moves to completed when the boss falls
    and to failed when every player has fallen.
    """
    if state.status != BossBattleStatus.IN_PROGRESS:
        raise BossBattleError(f"boss battle {state.id} is {state.status.value}, not in progress")
    if player1.id != state.player1_id:
        raise BossBattleError(f"player1 snapshot {player1.id} does not belong to battle {state.id}")
    if (player2 is None) != (state.player2_id is None) or (player2 is not None and player2.id != state.player2_id):
        raise BossBattleError(f"player2 snapshot does not match battle {state.id}")

    p1 = player1.model_copy(deep=True)
    p1.current_hp = min(state.player1_current_hp, p1.stats.max_hp)
    p2 = None
    if player2 is not None:
        p2 = player2.model_copy(deep=True)
        p2.current_hp = min(state.player2_current_hp or 0, p2.stats.max_hp)
    boss = boss_from_state(state)

    turn = state.turn + 1
    actions = execute_boss_turn(p1, p2, boss, turn, rng)

    update = {
        "turn": turn,
        "boss_current_hp": boss.current_hp,
        "player1_current_hp": p1.current_hp,
        "player2_current_hp": p2.current_hp if p2 is not None else None,
        "battle_log": [*state.battle_log, *actions],
    }
    players_alive = p1.alive or (p2 is not None and p2.alive)
    if not boss.alive:
        update["status"] = BossBattleStatus.COMPLETED
        update["winner_ids"] = state.participant_ids
        update["completed_at"] = datetime.now(timezone.utc)
    elif not players_alive:
        update["status"] = BossBattleStatus.FAILED
        update["completed_at"] = datetime.now(timezone.utc)

    return state.model_copy(update=update, deep=True), actions
