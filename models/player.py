"""Player character data model for the Cryn combat server."""

from pydantic import BaseModel, Field


class Inventory(BaseModel):
    """Consumable item counts."""
    potions: int = 2


class PlayerCharacter(BaseModel):
    """The player's stats, progression and inventory."""
    level: int = 1
    hp: int = 20
    max_hp: int = 20
    mp: int = 10
    max_mp: int = 10
    xp: int = 0
    max_xp: int = 100               # Experience needed for the next level
    attack: int = 5
    defense: int = 3
    gold: int = 0
    inventory: Inventory = Field(default_factory=Inventory)
    alive: bool = True
