import pytest

from gitrpg.utils import damage
from gitrpg.utils.randomness import ScriptedRandom, SeededRandom

from conftest import make_fighter


def test_base_damage_with_neutral_variance():
    attacker = make_fighter("a", attack=20)
    defender = make_fighter("d", defense=10)
    out = damage.calculate_damage(attacker, defender, False, ScriptedRandom([0.5]))
    # 20 - 10/2 = 15, variance 1.0
    assert out.damage == 15
    assert out.is_crit is False


def test_damage_stays_within_variance_band():
    attacker = make_fighter("a", attack=20)
    defender = make_fighter("d", defense=10)
    rng = SeededRandom(7)
    seen = {damage.calculate_damage(attacker, defender, False, rng).damage for _ in range(500)}
    assert min(seen) >= 13
    assert max(seen) <= 16


def test_defense_is_halved_before_subtraction():
    attacker = make_fighter("a", attack=10)
    defender = make_fighter("d", defense=5)
    # 10 - 2.5 = 7.5 -> floor(7.5) = 7; flooring defense first would give 8
    out = damage.calculate_damage(attacker, defender, False, ScriptedRandom([0.5]))
    assert out.damage == 7


def test_variance_applied_before_crit_multiplier():
    attacker = make_fighter("a", attack=20, crit_damage=1.5)
    defender = make_fighter("d", defense=10)
    # variance 0.9: floor(15 * 0.9) = 13, then floor(13 * 1.5) = 19
    out = damage.calculate_damage(attacker, defender, True, ScriptedRandom([0.0]))
    assert out.damage == 19
    assert out.is_crit is True


def test_crit_uses_attackers_crit_damage():
    attacker = make_fighter("a", attack=20, crit_damage=2.0)
    defender = make_fighter("d", defense=10)
    out = damage.calculate_damage(attacker, defender, True, ScriptedRandom([0.5]))
    assert out.damage == 30


@pytest.mark.parametrize("attack,defense", [(1, 100), (0, 0), (5, 10), (3, 50), (50, 10)])
def test_minimum_damage_is_one(attack, defense):
    attacker = make_fighter("a", attack=attack, crit_damage=2.5)
    defender = make_fighter("d", defense=defense)
    rng = SeededRandom(123)
    for _ in range(200):
        assert damage.calculate_damage(attacker, defender, False, rng).damage >= 1
        assert damage.calculate_damage(attacker, defender, True, rng).damage >= 1


def test_crit_raises_expected_damage():
    attacker = make_fighter("a", attack=20, crit_damage=1.8)
    defender = make_fighter("d", defense=10)
    rng = SeededRandom(99)
    n = 400
    normal = sum(damage.calculate_damage(attacker, defender, False, rng).damage for _ in range(n)) / n
    crit = sum(damage.calculate_damage(attacker, defender, True, rng).damage for _ in range(n)) / n
    assert crit > normal


def test_roll_crit_bounds():
    assert damage.roll_crit(0.0, ScriptedRandom([0.0])) is False
    assert damage.roll_crit(1.0, ScriptedRandom([0.999])) is True


def test_roll_crit_frequency_tracks_chance():
    rng = SeededRandom(2024)
    hits = sum(damage.roll_crit(0.25, rng) for _ in range(4000))
    assert 0.2 < hits / 4000 < 0.3


def test_turn_order_tie_favours_first_argument():
    a = make_fighter("a", speed=10)
    b = make_fighter("b", speed=10)
    first, second = damage.determine_turn_order(a, b, ScriptedRandom([0.5]))
    assert (first.id, second.id) == ("a", "b")
    first, second = damage.determine_turn_order(b, a, ScriptedRandom([0.5]))
    assert (first.id, second.id) == ("b", "a")


def test_turn_order_faster_goes_first():
    slow = make_fighter("slow", speed=5)
    fast = make_fighter("fast", speed=20)
    rng = SeededRandom(1)
    for _ in range(50):
        first, second = damage.determine_turn_order(slow, fast, rng)
        assert first.id == "fast"
        assert second.id == "slow"


def test_scripted_random_rejects_out_of_range_draws():
    with pytest.raises(ValueError):
        ScriptedRandom([1.0])
    with pytest.raises(ValueError):
        ScriptedRandom([])


def test_seeded_random_is_reproducible():
    a, b = SeededRandom(5), SeededRandom(5)
    draws = [a.uniform(0, 1) for _ in range(20)]
    assert draws == [b.uniform(0, 1) for _ in range(20)]
    assert all(0 <= d < 1 for d in draws)
    assert draws != [SeededRandom(6).uniform(0, 1) for _ in range(20)]
