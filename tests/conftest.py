import pytest

from gitrpg.utils import db, rewards
from gitrpg.utils.models import Fighter, FighterStats


@pytest.fixture(autouse=True)
def _clean_stores():
    db.reset_inmemory()
    rewards.reset_inmemory()
    yield
    db.reset_inmemory()
    rewards.reset_inmemory()


def make_fighter(fid="f1", name=None, level=5, current_hp=None, **stats):
    base = dict(max_hp=100, attack=20, defense=10, speed=10, crit_chance=0.0, crit_damage=1.5)
    base.update(stats)
    fs = FighterStats(**base)
    return Fighter(
        id=fid,
        name=name or fid,
        level=level,
        stats=fs,
        current_hp=fs.max_hp if current_hp is None else current_hp,
    )
