"""Tests for player progression: experience, leveling, damage, healing."""

import random

from engine.progression import (
    apply_damage,
    gain_experience,
    heal,
    level_up,
    new_player,
    spend_mana,
)
from models.combatants import Combatant


class TestGainExperience:
    """Tests for gain_experience()."""

    def test_below_threshold_no_level(self):
        player = new_player()
        assert gain_experience(player, 40) is None
        assert player.level == 1
        assert player.xp == 40

    def test_exact_threshold_one_level(self):
        player = new_player()
        message = gain_experience(player, 100)
        assert message == "Level up! You are now level 2!"
        assert player.level == 2
        assert player.xp == 0
        assert player.max_xp == 150

    def test_multi_level_grant(self):
        """250 XP from level 1 drains twice: level 3, 0/225."""
        player = new_player()
        message = gain_experience(player, 250)
        assert player.level == 3
        assert player.xp == 0
        assert player.max_xp == 225
        assert message == "Level up! You are now level 3!"

    def test_negative_amount_clamped(self):
        player = new_player()
        player.xp = 30
        assert gain_experience(player, -50) is None
        assert player.xp == 30

    def test_dead_player_does_not_level(self):
        player = new_player()
        player.hp = 0
        player.alive = False
        assert gain_experience(player, 500) is None
        assert player.level == 1
        assert player.xp == 500

    def test_never_rests_at_threshold(self):
        """Random grants never leave xp at or above max_xp."""
        rng = random.Random(99)
        player = new_player()
        for _ in range(300):
            gain_experience(player, rng.randint(0, 400))
            assert player.xp < player.max_xp


class TestLevelUp:
    """Tests for level_up()."""

    def test_stat_growth(self):
        player = new_player()
        player.hp = 4
        player.mp = 1
        level_up(player)
        assert player.level == 2
        assert player.max_hp == 30
        assert player.hp == 30
        assert player.max_mp == 15
        assert player.mp == 15
        assert player.max_xp == 150
        assert player.attack == 7
        assert player.defense == 4
        assert player.inventory.potions == 3

    def test_threshold_truncates(self):
        player = new_player()
        player.max_xp = 225
        level_up(player)
        assert player.max_xp == 337


class TestHealthAndMana:
    """Tests for apply_damage(), heal() and spend_mana()."""

    def test_damage_floors_at_zero(self):
        enemy = Combatant(name="Slime", hp=5, max_hp=5)
        apply_damage(enemy, 1000)
        assert enemy.hp == 0
        assert enemy.alive is False

    def test_damage_leaves_survivor_alive(self):
        player = new_player()
        apply_damage(player, 7)
        assert player.hp == 13
        assert player.alive is True

    def test_heal_clamped_to_max(self):
        player = new_player()
        player.hp = 18
        recovered = heal(player, 6)
        assert player.hp == 20
        assert recovered == 2

    def test_spend_mana_insufficient(self):
        player = new_player()
        player.mp = 2
        assert spend_mana(player, 3) is False
        assert player.mp == 2

    def test_spend_mana(self):
        player = new_player()
        assert spend_mana(player, 3) is True
        assert player.mp == 7
