"""Boss templates, level scaling and boss rewards.

Bosses are scaled once, when the encounter is created, against the average
level of the participating players.
"""
from __future__ import annotations

import math
from datetime import date
from typing import Dict, Optional

from gitrpg.utils.errors import UnknownBossError
from gitrpg.utils.models import BossDefinition, BossInstance, Rewards

BOSS_DEFINITIONS: Dict[str, BossDefinition] = {
    "dragon": BossDefinition(
        id="dragon", name="Ancient Dragon", base_hp=500, base_attack=45, base_defense=20, base_speed=30,
        special_trait="Can land critical hits", description="A fearsome fire-breathing beast",
    ),
    "golem": BossDefinition(
        id="golem", name="Stone Golem", base_hp=600, base_attack=25, base_defense=40, base_speed=10,
        special_trait="High defense, slow", description="An ancient stone guardian",
    ),
    "shadow_knight": BossDefinition(
        id="shadow_knight", name="Shadow Knight", base_hp=450, base_attack=35, base_defense=30, base_speed=35,
        special_trait="Balanced and fast", description="A dark warrior from the void",
    ),
    "slime_king": BossDefinition(
        id="slime_king", name="Slime King", base_hp=800, base_attack=15, base_defense=15, base_speed=20,
        special_trait="Massive HP pool", description="The royal blob of goo",
    ),
    "necromancer": BossDefinition(
        id="necromancer", name="Necromancer", base_hp=400, base_attack=40, base_defense=15, base_speed=25,
        special_trait="Heals 50 HP every 3 turns", description="Master of dark magic",
    ),
    "forest_guardian": BossDefinition(
        id="forest_guardian", name="Forest Guardian", base_hp=550, base_attack=30, base_defense=35, base_speed=15,
        special_trait="Nature's protector", description="Ancient spirit of the woods",
    ),
}

LEVEL_SCALE_PER_LEVEL = 0.1
BOSS_LEVEL_MULTIPLIER = 1.2

BOSS_BASE_XP = 150
BOSS_BASE_GOLD = 75
COOP_MULTIPLIER = 1.5
LOSS_XP = 25
LOSS_GOLD = 10


def get_definition(boss_type: str) -> BossDefinition:
    try:
        return BOSS_DEFINITIONS[boss_type]
    except KeyError:
        raise UnknownBossError(f"Unknown boss type: {boss_type}") from None


def create_boss_instance(boss_type: str, average_level: float) -> BossInstance:
    """Scale a boss template to the party's average level."""
    definition = get_definition(boss_type)
    if average_level < 0:
        raise ValueError(f"average level must be >= 0, got {average_level}")

    level_scale = 1 + average_level * LEVEL_SCALE_PER_LEVEL
    max_hp = math.floor(definition.base_hp * level_scale)
    return BossInstance(
        definition=definition,
        level=max(1, math.floor(average_level * BOSS_LEVEL_MULTIPLIER)),
        max_hp=max_hp,
        current_hp=max_hp,
        attack=math.floor(definition.base_attack * level_scale),
        defense=math.floor(definition.base_defense * level_scale),
        speed=math.floor(definition.base_speed * level_scale),
    )


def daily_boss(today: Optional[date] = None) -> str:
    """Rotate through the catalog by day of year."""
    today = today or date.today()
    types = list(BOSS_DEFINITIONS)
    return types[today.timetuple().tm_yday % len(types)]


def boss_rewards(won: bool, coop: bool) -> Rewards:
    """Per-player rewards once an encounter ends."""
    if not won:
        return Rewards(xp=LOSS_XP, gold=LOSS_GOLD)
    multiplier = COOP_MULTIPLIER if coop else 1
    return Rewards(xp=math.floor(BOSS_BASE_XP * multiplier), gold=math.floor(BOSS_BASE_GOLD * multiplier))
