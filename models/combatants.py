"""Enemy and encounter-table data models for the Cryn combat server."""

from pydantic import BaseModel


class Combatant(BaseModel):
    """A single enemy taking part in a battle.

    Health, mana and rewards may be left unset on input; the battle
    session fills them in when the combatant joins a fight.
    """
    name: str
    level: int = 1
    hp: int | None = None
    max_hp: int | None = None
    mp: int | None = None
    max_mp: int | None = None
    attack: int = 2
    defense: int = 0
    xp_reward: int | None = None
    gold_reward: int | None = None
    alive: bool = True
    visual_ref: str | None = None   # Opaque sprite reference, unused by rules


class MonsterTemplate(BaseModel):
    """An encounter-table entry: what can spawn, and at which levels."""
    name: str
    level_range: tuple[int, int]    # Inclusive (low, high)
    visual_ref: str | None = None


class PlacedEnemy(BaseModel):
    """A combatant pinned to a map cell; stepping on it starts a battle."""
    x: int
    y: int
    combatant: Combatant
    defeated: bool = False


class Chest(BaseModel):
    """A treasure chest on a map cell; opening it yields one potion."""
    x: int
    y: int
    opened: bool = False
