"""Encounter tables and the random-encounter trigger run on movement."""

from __future__ import annotations

import logging
import math
import random

from config import DEFAULT_AREA, ENCOUNTER_DIE, ENCOUNTER_THRESHOLD, GROUP_SIZE_DIE
from engine.battle import BattleSession
from engine.dice import roll
from models.battle_state import BattleOutcome
from models.combatants import Chest, Combatant, MonsterTemplate, PlacedEnemy
from models.events import BattleEvent, BattleEventType

logger = logging.getLogger(__name__)

CHEST_MESSAGE = "Found a treasure chest! +1 Potion"

# ---------------------------------------------------------------------------
# Encounter table
# ---------------------------------------------------------------------------

FOREST_MONSTERS = [
    MonsterTemplate(name="Spider", level_range=(1, 2), visual_ref="cryn/graphics/spider.bmp"),
    MonsterTemplate(name="Gremlin", level_range=(1, 3), visual_ref="cryn/graphics/gremlin.bmp"),
    MonsterTemplate(name="Tree Ent", level_range=(3, 4), visual_ref="cryn/graphics/foresttreeent.bmp"),
    MonsterTemplate(name="Trug", level_range=(2, 3), visual_ref="cryn/graphics/foresttrug.bmp"),
    MonsterTemplate(name="Leorn", level_range=(2, 4), visual_ref="cryn/graphics/forestleorn.bmp"),
    MonsterTemplate(name="Grey Wolf", level_range=(1, 3), visual_ref="cryn/graphics/forestwolf.bmp"),
]


class EncounterTable:
    """Maps an area key to the monsters that can spawn there."""

    def __init__(self, areas: dict[str, list[MonsterTemplate]] | None = None) -> None:
        if areas is None:
            areas = {"forest": FOREST_MONSTERS}
        self.areas = {name: list(templates) for name, templates in areas.items()}

    def templates_for(self, area: str) -> list[MonsterTemplate]:
        """Return the area's templates; unknown areas have none."""
        return list(self.areas.get(area, []))

    def add_area(self, area: str, templates: list[MonsterTemplate]) -> None:
        self.areas[area] = list(templates)


def roll_group_size(rng: random.Random) -> int:
    """Roll how many monsters join a random encounter (usually one)."""
    r = roll(f"1d{GROUP_SIZE_DIE}", rng=rng).total
    if r < 2:
        return 4
    if r < 5:
        return 3
    if r < 20:
        return 2
    return 1


def spawn_combatant(template: MonsterTemplate, rng: random.Random) -> Combatant:
    """Create a fresh enemy from a template at a random level in its range.

    Args:
        template: The encounter-table entry.
        rng: Random instance used for the level roll.

    Returns:
        A new Combatant with stats derived from its level.
    """
    low, high = template.level_range
    level = rng.randint(low, high)
    max_hp = max(8, 8 + level * 6)
    return Combatant(
        name=template.name,
        level=level,
        hp=max_hp,
        max_hp=max_hp,
        attack=max(2, level + 1),
        defense=max(0, math.floor(level / 1.5)),
        xp_reward=20 + level * 10,
        gold_reward=5 + level * 5,
        visual_ref=template.visual_ref,
    )


def draw_group(templates: list[MonsterTemplate], rng: random.Random) -> list[Combatant]:
    """Roll a group size, then draw each member independently."""
    if not templates:
        return []
    size = roll_group_size(rng)
    return [spawn_combatant(rng.choice(templates), rng) for _ in range(size)]


# ---------------------------------------------------------------------------
# Placed enemies
# ---------------------------------------------------------------------------


def forest_placed_enemies() -> list[PlacedEnemy]:
    """The forest map's fixed enemies, each guarding one cell."""
    roster = [
        (12, 10, "Spider", 1, 12, 3, 0, 20, 5, "cryn/graphics/spider.bmp"),
        (14, 9, "Gremlin", 2, 18, 4, 1, 30, 8, "cryn/graphics/gremlin.bmp"),
        (16, 12, "Tree Ent", 3, 36, 7, 3, 60, 20, "cryn/graphics/foresttreeent.bmp"),
        (10, 14, "Trug", 2, 22, 5, 2, 35, 10, "cryn/graphics/foresttrug.bmp"),
        (8, 13, "Leorn", 3, 30, 6, 3, 50, 12, "cryn/graphics/forestleorn.bmp"),
        (11, 16, "Grey Wolf", 2, 20, 5, 1, 30, 9, "cryn/graphics/forestwolf.bmp"),
    ]
    return [
        PlacedEnemy(
            x=x,
            y=y,
            combatant=Combatant(
                name=name,
                level=level,
                hp=hp,
                max_hp=hp,
                attack=attack,
                defense=defense,
                xp_reward=xp,
                gold_reward=gold,
                visual_ref=visual_ref,
            ),
        )
        for x, y, name, level, hp, attack, defense, xp, gold, visual_ref in roster
    ]


def forest_chests() -> list[Chest]:
    return [Chest(x=10, y=16)]


# ---------------------------------------------------------------------------
# Encounter trigger
# ---------------------------------------------------------------------------


class EncounterTrigger:
    """Decides, step by step, when exploration turns into a battle.

    Each random check rolls 1d90 and adds a counter of safe steps taken
    since the last fight; a total over 100 starts a battle. The chance of
    a fight rises with every safe step: the first eleven checks after a
    fight can never trigger one, and the hundred-and-first always does.
    """

    def __init__(
        self,
        battle: BattleSession,
        table: EncounterTable | None = None,
        rng: random.Random | None = None,
        area: str = DEFAULT_AREA,
        placed_enemies: list[PlacedEnemy] | None = None,
        chests: list[Chest] | None = None,
    ) -> None:
        self.battle = battle
        self.table = table or EncounterTable()
        self.rng = rng or random.Random()
        self.area = area
        self.placed_enemies = placed_enemies if placed_enemies is not None else []
        self.chests = chests if chests is not None else []
        self.counter = 0
        self.last_grid: tuple[int, int] = (-1, -1)
        self._engaged: PlacedEnemy | None = None
        battle.channel.subscribe(BattleEventType.BATTLE_END, self._on_battle_end)

    def check_encounter(self, grid_x: int, grid_y: int, area: str | None = None) -> bool:
        """Run the random-encounter roll for the cell just entered.

        Args:
            grid_x: Column the avatar moved into.
            grid_y: Row the avatar moved into.
            area: Encounter-table key; defaults to the trigger's area.

        Returns:
            True if a battle was started.
        """
        if self.battle.in_battle:
            return False

        r = roll(f"1d{ENCOUNTER_DIE}", rng=self.rng).total
        if r + self.counter <= ENCOUNTER_THRESHOLD:
            self.counter += 1
            return False

        self.counter = 0
        area = area or self.area
        group = draw_group(self.table.templates_for(area), self.rng)
        if not group:
            logger.debug("Encounter rolled at (%d, %d) but area %r has no monsters", grid_x, grid_y, area)
            return False

        logger.info(
            "Random encounter at (%d, %d) in %s: %d monster(s)",
            grid_x, grid_y, area, len(group),
        )
        return self.battle.start_battle(group)

    def check_placed_enemy(self, grid_x: int, grid_y: int) -> bool:
        """Start a scripted battle if a living placed enemy holds this cell."""
        if self.battle.in_battle:
            return False
        for placed in self.placed_enemies:
            if placed.x == grid_x and placed.y == grid_y and not placed.defeated:
                if self.battle.start_battle(placed.combatant):
                    self._engaged = placed
                    logger.info("Scripted battle with %s at (%d, %d)", placed.combatant.name, grid_x, grid_y)
                    return True
        return False

    def check_chest(self, grid_x: int, grid_y: int) -> bool:
        """Open an unopened chest on this cell, adding one potion."""
        if self.battle.in_battle:
            return False
        for chest in self.chests:
            if chest.x == grid_x and chest.y == grid_y and not chest.opened:
                chest.opened = True
                self.battle.player.inventory.potions += 1
                logger.info(
                    "Chest opened at (%d, %d); potions now %d",
                    grid_x, grid_y, self.battle.player.inventory.potions,
                )
                return True
        return False

    def grid_changed(self, grid_x: int, grid_y: int) -> bool:
        """Record the avatar's cell; True only when it differs from the last one."""
        if (grid_x, grid_y) != self.last_grid:
            self.last_grid = (grid_x, grid_y)
            return True
        return False

    def reset_tracking(self) -> None:
        self.last_grid = (-1, -1)

    def on_move(self, grid_x: int, grid_y: int, area: str | None = None) -> str | None:
        """Movement entry point, called with the avatar's current cell.

        Returns:
            "scripted" or "random" when a battle started, "chest" when a
            chest was opened, else None. Opening a chest uses up the step,
            so no random check runs on it.
        """
        if not self.grid_changed(grid_x, grid_y):
            return None
        if self.check_placed_enemy(grid_x, grid_y):
            return "scripted"
        if self.check_chest(grid_x, grid_y):
            return "chest"
        if self.check_encounter(grid_x, grid_y, area):
            return "random"
        return None

    def reset(
        self,
        placed_enemies: list[PlacedEnemy] | None = None,
        chests: list[Chest] | None = None,
    ) -> None:
        """Clear the counter and cell tracking, optionally re-placing enemies and chests."""
        self.counter = 0
        self.reset_tracking()
        self._engaged = None
        if placed_enemies is not None:
            self.placed_enemies = placed_enemies
        if chests is not None:
            self.chests = chests

    def _on_battle_end(self, event: BattleEvent) -> None:
        engaged, self._engaged = self._engaged, None
        if engaged is not None and event.payload.outcome == BattleOutcome.VICTORY:
            engaged.defeated = True
