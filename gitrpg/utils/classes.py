"""Character class base stats and level scaling.

Profile rows coming from the user store only carry a handful of stat
columns; anything missing is filled from the class table scaled to the
character's level.
"""
from __future__ import annotations

import math
from typing import Dict, Any, Optional

from gitrpg.utils.models import CharacterClass, Fighter, FighterStats

CLASS_BASE_STATS: Dict[CharacterClass, FighterStats] = {
    CharacterClass.WARRIOR: FighterStats(max_hp=120, attack=15, defense=12, speed=8, crit_chance=0.1, crit_damage=1.5),
    CharacterClass.MAGE: FighterStats(max_hp=80, attack=18, defense=6, speed=10, crit_chance=0.15, crit_damage=1.8),
    CharacterClass.ROGUE: FighterStats(max_hp=90, attack=14, defense=8, speed=15, crit_chance=0.25, crit_damage=2.0),
    CharacterClass.ARCHER: FighterStats(max_hp=85, attack=16, defense=7, speed=12, crit_chance=0.2, crit_damage=1.7),
}

HP_GROWTH_RATE = 0.1
STAT_GROWTH_RATE = 0.08


def parse_class(value: Any) -> CharacterClass:
    """Accept enum members or case-insensitive class names."""
    if isinstance(value, CharacterClass):
        return value
    for member in CharacterClass:
        if str(value).strip().lower() == member.value.lower():
            return member
    raise ValueError(f"Unknown character class: {value!r}")


def stats_for_level(base: FighterStats, level: int) -> FighterStats:
    """HP grows 10% of base per level, attack/defense 8%; the rest is flat."""
    if level < 1:
        raise ValueError(f"level must be >= 1, got {level}")
    return FighterStats(
        max_hp=math.floor(base.max_hp * (1 + (level - 1) * HP_GROWTH_RATE)),
        attack=math.floor(base.attack * (1 + (level - 1) * STAT_GROWTH_RATE)),
        defense=math.floor(base.defense * (1 + (level - 1) * STAT_GROWTH_RATE)),
        speed=base.speed,
        crit_chance=base.crit_chance,
        crit_damage=base.crit_damage,
    )


def fighter_from_profile(row: Dict[str, Any], current_hp: Optional[int] = None) -> Fighter:
    """Build a full-health Fighter from a user profile row.

    Recognised keys: id, display_name, character_class, level and the
    optional stats_max_hp/stats_attack/stats_defense/stats_speed/stats_crit
    columns. Raises ValueError (pydantic ValidationError) on bad data.
    """
    cls = parse_class(row.get("character_class", CharacterClass.WARRIOR))
    level = int(row.get("level", 1))
    scaled = stats_for_level(CLASS_BASE_STATS[cls], level)
    stats = FighterStats(
        max_hp=row.get("stats_max_hp") or scaled.max_hp,
        attack=row.get("stats_attack") if row.get("stats_attack") is not None else scaled.attack,
        defense=row.get("stats_defense") if row.get("stats_defense") is not None else scaled.defense,
        speed=row.get("stats_speed") if row.get("stats_speed") is not None else scaled.speed,
        crit_chance=row.get("stats_crit") if row.get("stats_crit") is not None else scaled.crit_chance,
        crit_damage=row.get("stats_crit_damage") or scaled.crit_damage,
    )
    return Fighter(
        id=str(row["id"]),
        name=row.get("display_name") or str(row["id"]),
        character_class=cls,
        level=level,
        stats=stats,
        current_hp=stats.max_hp if current_hp is None else current_hp,
    )
