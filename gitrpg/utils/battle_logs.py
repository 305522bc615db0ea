"""JSONL archive of finished battles.

Each line holds one duel or boss battle with its full action list, so a
replay can be rebuilt without touching the database. Enabled with
BATTLE_LOG_ENABLED.
"""
from __future__ import annotations

from pathlib import Path
import json
from typing import Dict, Any, List, Optional

from gitrpg.utils.models import Action, BattleResult, BossBattleState

DATA_DIR = Path.cwd() / "data"
LOG_NAME = "battle_logs.jsonl"

PVP = "pvp"
BOSS = "boss"


def _log_file() -> Path:
    return DATA_DIR / LOG_NAME


def _append(entry: Dict[str, Any]) -> None:
    DATA_DIR.mkdir(parents=True, exist_ok=True)
    with _log_file().open("a", encoding="utf-8") as fh:
        fh.write(json.dumps(entry, default=str) + "\n")


def record_duel(challenge_id: str, result: BattleResult) -> None:
    _append({
        "battle_id": challenge_id,
        "type": PVP,
        "winner_ids": [result.winner.id],
        "turns": result.total_turns,
        "actions": [a.model_dump(mode="json") for a in result.actions],
        "result": result.model_dump(mode="json", exclude={"actions"}),
    })


def record_boss_battle(state: BossBattleState) -> None:
    _append({
        "battle_id": state.id,
        "type": BOSS,
        "winner_ids": list(state.winner_ids),
        "turns": state.turn,
        "actions": [a.model_dump(mode="json") for a in state.battle_log],
        "result": state.model_dump(mode="json", exclude={"battle_log"}),
    })


def read_all_logs(kind: Optional[str] = None, limit: Optional[int] = 100) -> List[Dict[str, Any]]:
    """Return archived entries oldest first, optionally only one `kind`.

    Lines that fail to parse are skipped.
    """
    path = _log_file()
    if not path.exists():
        return []
    out: List[Dict[str, Any]] = []
    with path.open("r", encoding="utf-8") as fh:
        for line in fh:
            if not line.strip():
                continue
            try:
                entry = json.loads(line)
            except json.JSONDecodeError:
                continue
            if kind is None or entry.get("type") == kind:
                out.append(entry)
    if limit is not None:
        return out[-limit:]
    return out


def get_log_by_id(battle_id: str) -> Optional[Dict[str, Any]]:
    for entry in read_all_logs(limit=None):
        if str(entry.get("battle_id")) == str(battle_id):
            return entry
    return None


def replay_actions(battle_id: str) -> Optional[List[Action]]:
    """Actions of an archived battle in play order, or None if not archived."""
    entry = get_log_by_id(battle_id)
    if entry is None:
        return None
    return [Action.model_validate(a) for a in entry.get("actions", [])]
