"""Damage model shared by the duel and boss engines.

base = attack - defense / 2, scaled by a +/-10% variance and floored. A
critical hit multiplies the floored damage by the attacker's crit damage and
floors again. Every hit deals at least 1.
"""
from __future__ import annotations

import math
from typing import NamedTuple, Optional, Tuple

from gitrpg.utils.models import Fighter
from gitrpg.utils.randomness import RandomSource, default_source

VARIANCE_LOW = 0.9
VARIANCE_HIGH = 1.1
# upper bound of the random bonus added to speed when deciding who acts first
TURN_JITTER = 2.0
MIN_DAMAGE = 1


class DamageResult(NamedTuple):
    damage: int
    is_crit: bool


def roll_crit(crit_chance: float, rng: Optional[RandomSource] = None) -> bool:
    rng = default_source(rng)
    return rng.uniform(0.0, 1.0) < crit_chance


def raw_damage(attack: float, defense: float, rng: Optional[RandomSource] = None) -> int:
    """Floored, variance-scaled damage before any crit multiplier or clamp."""
    rng = default_source(rng)
    base = attack - defense / 2
    variance = rng.uniform(VARIANCE_LOW, VARIANCE_HIGH)
    return math.floor(base * variance)


def calculate_damage(attacker: Fighter, defender: Fighter, is_crit: bool, rng: Optional[RandomSource] = None) -> DamageResult:
    damage = raw_damage(attacker.stats.attack, defender.stats.defense, rng)
    if is_crit:
        damage = math.floor(damage * attacker.stats.crit_damage)
    return DamageResult(max(MIN_DAMAGE, damage), is_crit)


def determine_turn_order(a: Fighter, b: Fighter, rng: Optional[RandomSource] = None) -> Tuple[Fighter, Fighter]:
    """Return (first, second). Ties go to `a`."""
    rng = default_source(rng)
    speed_a = a.stats.speed + rng.uniform(0.0, TURN_JITTER)
    speed_b = b.stats.speed + rng.uniform(0.0, TURN_JITTER)
    if speed_a >= speed_b:
        return a, b
    return b, a
