"""Tests for encounter tables, monster spawning, and the encounter trigger."""

import random

import pytest

from engine.battle import BattleSession
from engine.encounter import (
    FOREST_MONSTERS,
    EncounterTable,
    EncounterTrigger,
    draw_group,
    forest_chests,
    forest_placed_enemies,
    roll_group_size,
    spawn_combatant,
)
from engine.progression import new_player
from models.battle_state import BattleOutcome
from models.combatants import MonsterTemplate

BAT = MonsterTemplate(name="Bat", level_range=(3, 3), visual_ref="bat.bmp")


@pytest.fixture
def battle(scheduler, scripted_rng):
    return BattleSession(new_player(), scheduler=scheduler, rng=scripted_rng())


def _make_trigger(battle, rng, placed=None, chests=None):
    table = EncounterTable({"cave": [BAT]})
    return EncounterTrigger(
        battle, table=table, rng=rng, area="cave", placed_enemies=placed, chests=chests
    )


class TestEncounterTable:
    """Tests for EncounterTable."""

    def test_default_forest(self):
        table = EncounterTable()
        names = [t.name for t in table.templates_for("forest")]
        assert "Spider" in names
        assert len(names) == len(FOREST_MONSTERS)

    def test_unknown_area_empty(self):
        assert EncounterTable().templates_for("moon") == []

    def test_add_area(self):
        table = EncounterTable({})
        table.add_area("cave", [BAT])
        assert table.templates_for("cave") == [BAT]


class TestSpawning:
    """Tests for roll_group_size(), spawn_combatant() and draw_group()."""

    @pytest.mark.parametrize(
        "r, size",
        [(1, 4), (2, 3), (4, 3), (5, 2), (19, 2), (20, 1), (180, 1)],
    )
    def test_group_size_bands(self, scripted_rng, r, size):
        assert roll_group_size(scripted_rng(ints=[r])) == size

    def test_derived_stats(self, scripted_rng):
        bat = spawn_combatant(BAT, scripted_rng())
        assert bat.level == 3
        assert bat.max_hp == 26
        assert bat.hp == 26
        assert bat.attack == 4
        assert bat.defense == 2
        assert bat.xp_reward == 50
        assert bat.gold_reward == 20
        assert bat.visual_ref == "bat.bmp"

    def test_level_one_stats(self):
        template = MonsterTemplate(name="Spider", level_range=(1, 1))
        spider = spawn_combatant(template, random.Random(1))
        assert spider.max_hp == 14
        assert spider.attack == 2
        assert spider.defense == 0
        assert spider.xp_reward == 30
        assert spider.gold_reward == 10

    def test_level_within_range(self):
        rng = random.Random(3)
        template = MonsterTemplate(name="Leorn", level_range=(2, 4))
        levels = {spawn_combatant(template, rng).level for _ in range(200)}
        assert levels == {2, 3, 4}

    def test_group_members_are_distinct(self):
        rng = random.Random(8)
        for _ in range(100):
            group = draw_group(FOREST_MONSTERS, rng)
            assert 1 <= len(group) <= 4
            assert len({id(c) for c in group}) == len(group)

    def test_empty_templates(self):
        assert draw_group([], random.Random(1)) == []


class TestCheckEncounter:
    """Tests for EncounterTrigger.check_encounter()."""

    def test_below_threshold_increments(self, battle, scripted_rng):
        trigger = _make_trigger(battle, scripted_rng(ints=[50]))
        assert trigger.check_encounter(1, 1) is False
        assert trigger.counter == 1
        assert battle.in_battle is False

    def test_exactly_threshold_does_not_trigger(self, battle, scripted_rng):
        trigger = _make_trigger(battle, scripted_rng(ints=[90]))
        trigger.counter = 10
        assert trigger.check_encounter(1, 1) is False
        assert trigger.counter == 11

    def test_trigger_starts_battle(self, battle, scripted_rng):
        # encounter roll 90, group roll 100 (one monster)
        trigger = _make_trigger(battle, scripted_rng(ints=[90, 100]))
        trigger.counter = 11
        assert trigger.check_encounter(4, 2) is True
        assert trigger.counter == 0
        assert battle.in_battle is True
        assert [c.name for c in battle.combatants] == ["Bat"]

    def test_group_encounter(self, battle, scripted_rng):
        trigger = _make_trigger(battle, scripted_rng(ints=[90, 3]))
        trigger.counter = 50
        assert trigger.check_encounter(4, 2) is True
        assert len(battle.combatants) == 3

    def test_unknown_area_resets_without_battle(self, battle, scripted_rng):
        trigger = _make_trigger(battle, scripted_rng(ints=[90]))
        trigger.counter = 50
        assert trigger.check_encounter(0, 0, area="moon") is False
        assert trigger.counter == 0
        assert battle.in_battle is False

    def test_skipped_during_battle(self, battle, scripted_rng):
        trigger = _make_trigger(battle, scripted_rng(ints=[90, 100, 90]))
        trigger.counter = 50
        trigger.check_encounter(0, 0)
        trigger.counter = 7
        assert trigger.check_encounter(0, 1) is False
        assert trigger.counter == 7

    def test_first_eleven_checks_never_trigger(self, battle):
        for seed in range(20):
            trigger = _make_trigger(battle, random.Random(seed))
            results = [trigger.check_encounter(0, i) for i in range(11)]
            assert not any(results)
            assert trigger.counter == 11

    def test_counter_bounded(self, battle):
        trigger = _make_trigger(battle, random.Random(77))
        for i in range(2000):
            if trigger.check_encounter(0, i):
                battle.end_battle(BattleOutcome.FLEE)
            assert trigger.counter <= 100

    def test_seeded_determinism(self, scheduler, scripted_rng):
        def run():
            battle = BattleSession(new_player(), scheduler=scheduler, rng=scripted_rng())
            trigger = _make_trigger(battle, random.Random(1234))
            outcomes, counters = [], []
            for i in range(300):
                outcomes.append(trigger.check_encounter(i, 0))
                counters.append(trigger.counter)
                if battle.in_battle:
                    battle.end_battle(BattleOutcome.FLEE)
            return outcomes, counters

        first = run()
        assert first == run()
        assert any(first[0])


class TestMovement:
    """Tests for grid tracking, placed enemies and on_move()."""

    def test_grid_changed(self, battle, scripted_rng):
        trigger = _make_trigger(battle, scripted_rng())
        assert trigger.grid_changed(3, 3) is True
        assert trigger.grid_changed(3, 3) is False
        assert trigger.grid_changed(3, 4) is True
        trigger.reset_tracking()
        assert trigger.grid_changed(3, 4) is True

    def test_same_cell_does_not_roll(self, battle, scripted_rng):
        trigger = _make_trigger(battle, scripted_rng())
        trigger.on_move(1, 1)
        trigger.on_move(1, 1)
        assert trigger.counter == 1

    def test_placed_enemy_starts_scripted_battle(self, battle, scripted_rng):
        trigger = _make_trigger(battle, scripted_rng(), placed=forest_placed_enemies())
        assert trigger.on_move(12, 10) == "scripted"
        assert battle.combatants[0].name == "Spider"
        assert battle.combatants[0].hp == 12
        assert trigger.counter == 0

    def test_placed_enemy_defeated_on_victory(self, battle, scheduler, scripted_rng):
        placed = forest_placed_enemies()
        trigger = _make_trigger(battle, scripted_rng(), placed=placed)
        trigger.on_move(12, 10)
        # Spider has 12 HP; two 7-damage hits
        battle.player_attack()
        scheduler.run_pending()
        battle.player_attack()
        scheduler.run_pending()
        assert battle.last_outcome == BattleOutcome.VICTORY
        assert placed[0].defeated is True
        assert placed[0].combatant.hp == 12

        trigger.on_move(0, 0)
        assert trigger.on_move(12, 10) is None

    def test_placed_enemy_survives_flee(self, battle, scripted_rng):
        placed = forest_placed_enemies()
        trigger = _make_trigger(battle, scripted_rng(), placed=placed)
        trigger.on_move(12, 10)
        battle.end_battle(BattleOutcome.FLEE)
        assert placed[0].defeated is False

    def test_random_encounter_on_move(self, battle, scripted_rng):
        trigger = _make_trigger(battle, scripted_rng(ints=[90, 100]))
        trigger.counter = 20
        assert trigger.on_move(5, 5) == "random"

    def test_reset(self, battle, scripted_rng):
        placed = forest_placed_enemies()
        placed[0].defeated = True
        trigger = _make_trigger(battle, scripted_rng(), placed=placed)
        trigger.counter = 40
        trigger.on_move(2, 2)
        trigger.reset(placed_enemies=forest_placed_enemies())
        assert trigger.counter == 0
        assert trigger.last_grid == (-1, -1)
        assert trigger.placed_enemies[0].defeated is False
        assert trigger.chests == []

    def test_chest_adds_potion(self, battle, scripted_rng):
        trigger = _make_trigger(battle, scripted_rng(), chests=forest_chests())
        assert trigger.on_move(10, 16) == "chest"
        assert battle.player.inventory.potions == 3
        assert trigger.chests[0].opened is True
        assert trigger.counter == 0
        assert battle.in_battle is False

    def test_opened_chest_gives_nothing_the_second_time(self, battle, scripted_rng):
        trigger = _make_trigger(battle, scripted_rng(), chests=forest_chests())
        trigger.on_move(10, 16)
        trigger.on_move(10, 15)
        assert trigger.on_move(10, 16) is None
        assert battle.player.inventory.potions == 3

    def test_chest_untouched_during_battle(self, battle, scripted_rng):
        trigger = _make_trigger(battle, scripted_rng(), chests=forest_chests())
        battle.start_battle({"name": "Slime"})
        assert trigger.check_chest(10, 16) is False
        assert trigger.chests[0].opened is False
        assert battle.player.inventory.potions == 2

    def test_reset_restores_chests(self, battle, scripted_rng):
        trigger = _make_trigger(battle, scripted_rng(), chests=forest_chests())
        trigger.on_move(10, 16)
        trigger.reset(chests=forest_chests())
        assert trigger.chests[0].opened is False
