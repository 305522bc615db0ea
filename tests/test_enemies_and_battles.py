from datetime import date

import pytest

from gitrpg.utils import bosses, boss_engine
from gitrpg.utils.errors import BossBattleError, UnknownBossError
from gitrpg.utils.models import BossBattleState, BossBattleStatus, Rewards
from gitrpg.utils.randomness import ScriptedRandom, SeededRandom

from conftest import make_fighter


def test_boss_scaling():
    boss = bosses.create_boss_instance("dragon", 10)
    # level scale 1 + 10 * 0.1 = 2.0
    assert boss.max_hp == 1000
    assert boss.current_hp == 1000
    assert boss.attack == 90
    assert boss.defense == 40
    assert boss.speed == 60
    assert boss.level == 12


def test_boss_scaling_floors_fractional_stats():
    boss = bosses.create_boss_instance("dragon", 5)
    assert boss.attack == 67  # 45 * 1.5 = 67.5
    assert boss.max_hp == 750


def test_low_level_party_gets_level_one_boss():
    boss = bosses.create_boss_instance("golem", 0)
    assert boss.level == 1
    assert boss.max_hp == 600


def test_unknown_boss_and_bad_level():
    with pytest.raises(UnknownBossError):
        bosses.create_boss_instance("kraken", 3)
    with pytest.raises(KeyError):
        bosses.create_boss_instance("kraken", 3)
    with pytest.raises(ValueError):
        bosses.create_boss_instance("golem", -1)


def test_daily_boss_rotation():
    assert bosses.daily_boss(date(2026, 1, 1)) == "golem"
    assert bosses.daily_boss(date(2026, 1, 6)) == "dragon"
    assert bosses.daily_boss() in bosses.BOSS_DEFINITIONS


def test_boss_rewards():
    assert bosses.boss_rewards(won=True, coop=False) == Rewards(xp=150, gold=75)
    assert bosses.boss_rewards(won=True, coop=True) == Rewards(xp=225, gold=112)
    assert bosses.boss_rewards(won=False, coop=True) == Rewards(xp=25, gold=10)


def test_player_crit_on_boss_uses_fixed_multiplier():
    # Deliberate divergence from duels: the player's own crit_damage (3.0) is ignored.
    player = make_fighter("p1", attack=100, crit_chance=1.0, crit_damage=3.0, max_hp=1000)
    boss = bosses.create_boss_instance("golem", 0)  # defense 40
    actions = boss_engine.execute_boss_turn(player, None, boss, 1, ScriptedRandom([0.5]))
    hit = actions[0]
    assert hit.is_crit is True
    assert hit.damage == 120  # floor((100 - 20) * 1.0) * 1.5
    assert boss.current_hp == 600 - 120
    assert hit.resulting_hp == boss.current_hp


def test_boss_counterattacks_without_crit():
    player = make_fighter("p1", attack=10, defense=10, max_hp=500)
    boss = bosses.create_boss_instance("golem", 0)  # attack 25
    actions = boss_engine.execute_boss_turn(player, None, boss, 1, ScriptedRandom([0.5]))
    assert [a.actor_type for a in actions] == ["player1", "boss"]
    counter = actions[1]
    assert counter.target_id == "p1"
    assert counter.damage == 20  # 25 - 10/2
    assert counter.is_crit is False
    assert player.current_hp == 480


def test_boss_targets_weakest_player():
    p1 = make_fighter("p1", max_hp=100, current_hp=80)
    p2 = make_fighter("p2", max_hp=100, current_hp=50)
    boss = bosses.create_boss_instance("slime_king", 0)
    actions = boss_engine.execute_boss_turn(p1, p2, boss, 1, ScriptedRandom([0.5]))
    assert actions[-1].actor_type == "boss"
    assert actions[-1].target_type == "player2"


def test_boss_target_tie_goes_to_player_one():
    p1 = make_fighter("p1", current_hp=60)
    p2 = make_fighter("p2", current_hp=60)
    boss = bosses.create_boss_instance("slime_king", 0)
    actions = boss_engine.execute_boss_turn(p1, p2, boss, 1, ScriptedRandom([0.5]))
    assert actions[-1].target_id == "p1"


def test_boss_random_target_branch():
    p1 = make_fighter("p1", current_hp=30)
    p2 = make_fighter("p2", current_hp=90)
    boss = bosses.create_boss_instance("slime_king", 0)
    # 4 draws for the two player hits, 0.9 skips the weakest rule, 0.75 picks
    # slot 2, the last one is the boss hit variance
    rng = ScriptedRandom([0.5, 0.5, 0.5, 0.5, 0.9, 0.75, 0.5], cycle=False)
    actions = boss_engine.execute_boss_turn(p1, p2, boss, 1, rng)
    assert actions[-1].target_id == "p2"


def test_boss_targeting_mostly_hits_weakest():
    rng = SeededRandom(17)
    weakest_hits = 0
    for _ in range(400):
        p1 = make_fighter("p1", max_hp=1000, current_hp=900)
        p2 = make_fighter("p2", max_hp=1000, current_hp=500)
        boss = bosses.create_boss_instance("slime_king", 0)
        actions = boss_engine.execute_boss_turn(p1, p2, boss, 1, rng)
        weakest_hits += actions[-1].target_id == "p2"
    # 0.7 + 0.3 * 0.5 = 0.85
    assert 0.78 < weakest_hits / 400 < 0.92


def test_fallen_player_neither_attacks_nor_is_targeted():
    p1 = make_fighter("p1")
    p2 = make_fighter("p2", current_hp=0)
    boss = bosses.create_boss_instance("slime_king", 0)
    actions = boss_engine.execute_boss_turn(p1, p2, boss, 1, SeededRandom(2))
    assert [a.actor_id for a in actions] == ["p1", "slime_king"]
    assert actions[-1].target_id == "p1"


def test_dead_boss_does_not_attack():
    p1 = make_fighter("p1")
    p2 = make_fighter("p2")
    boss = bosses.create_boss_instance("golem", 0)
    boss.current_hp = 1
    actions = boss_engine.execute_boss_turn(p1, p2, boss, 1, SeededRandom(2))
    assert len(actions) == 1
    assert boss.current_hp == 0
    assert p1.current_hp == 100 and p2.current_hp == 100


def test_necromancer_heals_every_third_turn():
    player = make_fighter("p1", attack=30, crit_chance=0.0, max_hp=10000)
    boss = bosses.create_boss_instance("necromancer", 0)
    rng = SeededRandom(31)
    for turn in range(1, 10):
        actions = boss_engine.execute_boss_turn(player, None, boss, turn, rng)
        heals = [a for a in actions if a.is_heal]
        if turn % 3 == 0:
            assert len(heals) == 1
            assert heals[0].damage == 50
            assert heals[0].action_type == "heal"
            assert heals[0].resulting_hp == boss.current_hp
        else:
            assert heals == []


def test_necromancer_heal_is_capped_at_max_hp():
    fallen = make_fighter("p1", current_hp=0)
    boss = bosses.create_boss_instance("necromancer", 0)
    boss.current_hp = boss.max_hp - 10
    actions = boss_engine.execute_boss_turn(fallen, None, boss, 3, SeededRandom(1))
    assert len(actions) == 1
    assert actions[0].is_heal is True
    assert actions[0].damage == 10
    assert boss.current_hp == boss.max_hp


def test_other_bosses_never_heal():
    player = make_fighter("p1", max_hp=10000)
    boss = bosses.create_boss_instance("forest_guardian", 0)
    actions = boss_engine.execute_boss_turn(player, None, boss, 3, SeededRandom(1))
    assert not any(a.is_heal for a in actions)


def _state(**overrides):
    data = dict(
        id="raid-1", player1_id="p1", player2_id=None, boss_type="golem", average_level=0,
        boss_max_hp=600, boss_current_hp=600, player1_current_hp=100, status=BossBattleStatus.IN_PROGRESS,
    )
    data.update(overrides)
    return BossBattleState(**data)


def test_apply_turn_returns_new_state_and_leaves_input_alone():
    state = _state()
    player = make_fighter("p1")
    new_state, actions = boss_engine.apply_turn(state, player, rng=SeededRandom(3))
    assert state.turn == 0
    assert state.battle_log == []
    assert state.boss_current_hp == 600
    assert new_state.turn == 1
    assert new_state.battle_log == actions
    assert new_state.boss_current_hp == actions[0].resulting_hp
    assert new_state.player1_current_hp == actions[1].resulting_hp
    assert player.current_hp == 100


def test_apply_turn_marks_boss_defeat():
    state = _state(boss_current_hp=1, player2_id="p2", player2_current_hp=100)
    new_state, _ = boss_engine.apply_turn(state, make_fighter("p1"), make_fighter("p2"), rng=SeededRandom(3))
    assert new_state.status == BossBattleStatus.COMPLETED
    assert new_state.winner_ids == ["p1", "p2"]
    assert new_state.completed_at is not None


def test_apply_turn_marks_party_wipe():
    state = _state(player1_current_hp=1)
    new_state, _ = boss_engine.apply_turn(state, make_fighter("p1", attack=1), rng=SeededRandom(3))
    assert new_state.status == BossBattleStatus.FAILED
    assert new_state.player1_current_hp == 0
    assert new_state.winner_ids == []


def test_apply_turn_requires_in_progress_and_matching_players():
    with pytest.raises(BossBattleError):
        boss_engine.apply_turn(_state(status=BossBattleStatus.LOBBY), make_fighter("p1"))
    with pytest.raises(BossBattleError):
        boss_engine.apply_turn(_state(), make_fighter("someone-else"))
    with pytest.raises(BossBattleError):
        boss_engine.apply_turn(_state(), make_fighter("p1"), make_fighter("p2"))
