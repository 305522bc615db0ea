"""Pydantic models for gitrpg combat objects.

These are the snapshots the engines consume and the records they emit.
Fighters are validated on construction so that a corrupt profile row fails
loudly instead of being clamped into a plausible-looking battle.
"""
from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional, List

from pydantic import BaseModel, ConfigDict, Field, model_validator


class CharacterClass(str, Enum):
    WARRIOR = "Warrior"
    MAGE = "Mage"
    ROGUE = "Rogue"
    ARCHER = "Archer"


class ChallengeStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    COMPLETED = "completed"
    DECLINED = "declined"


class BossBattleStatus(str, Enum):
    LOBBY = "lobby"
    READY = "ready"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"
    ABANDONED = "abandoned"


class FighterStats(BaseModel):
    max_hp: int = Field(..., gt=0)
    attack: float = Field(..., ge=0)
    defense: float = Field(..., ge=0)
    speed: float = Field(..., ge=0)
    crit_chance: float = Field(0.0, ge=0.0, le=1.0)
    crit_damage: float = Field(1.5, ge=1.0)


class Fighter(BaseModel):
    """Combat participant snapshot used for one engine invocation."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str
    character_class: CharacterClass = Field(CharacterClass.WARRIOR, alias="class")
    level: int = Field(1, ge=1)
    stats: FighterStats
    current_hp: int = Field(..., ge=0)

    @model_validator(mode="after")
    def _hp_within_max(self) -> "Fighter":
        if self.current_hp > self.stats.max_hp:
            raise ValueError(
                f"fighter {self.id}: current_hp {self.current_hp} exceeds max_hp {self.stats.max_hp}"
            )
        return self

    @property
    def alive(self) -> bool:
        return self.current_hp > 0

    @property
    def hp_ratio(self) -> float:
        return self.current_hp / self.stats.max_hp


class Action(BaseModel):
    """One resolved attack or heal in a battle's replay log."""

    turn: int = Field(..., ge=1)
    actor_id: str
    target_id: str
    damage: int = Field(..., ge=0)
    is_crit: bool = False
    resulting_hp: int = Field(..., ge=0)
    is_heal: bool = False
    action_type: str = "attack"
    # boss encounters label slots so the replay needs no lookups
    actor_type: Optional[str] = None
    target_type: Optional[str] = None
    actor_name: Optional[str] = None
    target_name: Optional[str] = None


class Rewards(BaseModel):
    model_config = ConfigDict(frozen=True)

    xp: int = Field(0, ge=0)
    gold: int = Field(0, ge=0)


class BattleResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    winner: Fighter
    loser: Fighter
    actions: List[Action]
    total_turns: int
    rewards: Rewards
    timed_out: bool = False


class BossDefinition(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    base_hp: int
    base_attack: int
    base_defense: int
    base_speed: int
    special_trait: str
    description: str = ""


class BossInstance(BaseModel):
    definition: BossDefinition
    level: int
    max_hp: int
    current_hp: int
    attack: int
    defense: int
    speed: int

    @property
    def alive(self) -> bool:
        return self.current_hp > 0


class BossBattleState(BaseModel):
    """Persisted shape of a cooperative boss encounter."""

    id: str
    player1_id: str
    player2_id: Optional[str] = None
    boss_type: str
    # party average level the boss was scaled against
    average_level: float = 1.0
    boss_level: int = 1
    boss_max_hp: int
    boss_current_hp: int
    player1_current_hp: int
    player2_current_hp: Optional[int] = None
    status: BossBattleStatus = BossBattleStatus.LOBBY
    turn: int = 0
    battle_log: List[Action] = Field(default_factory=list)
    winner_ids: List[str] = Field(default_factory=list)
    rewards: Optional[Rewards] = None
    created_at: Optional[datetime] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    @property
    def is_coop(self) -> bool:
        return self.player2_id is not None

    @property
    def participant_ids(self) -> List[str]:
        ids = [self.player1_id]
        if self.player2_id is not None:
            ids.append(self.player2_id)
        return ids


class Challenge(BaseModel):
    """A PvP duel invitation and, once fought, its outcome."""

    id: str
    challenger_id: str
    opponent_id: str
    status: ChallengeStatus = ChallengeStatus.PENDING
    winner_id: Optional[str] = None
    battle_log: List[Action] = Field(default_factory=list)
    rewards: Optional[Rewards] = None
    created_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
