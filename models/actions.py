"""Action and movement request/response models."""

from enum import Enum

from pydantic import BaseModel

from models.battle_state import BattleState


class ActionType(str, Enum):
    """Battle commands the player can issue."""
    ATTACK = "attack"
    MAGIC = "magic"                 # Fireball
    ITEM = "item"                   # Drink a potion
    FLEE = "flee"
    SELECT_TARGET = "select_target"


class ActionRequest(BaseModel):
    """A player's requested battle action."""
    action_type: ActionType
    target_index: int | None = None     # For select_target


class ActionResult(BaseModel):
    """The server's response after processing an action."""
    success: bool
    action_type: ActionType
    narration: list[str] = []           # Log lines the action produced
    state: BattleState
    error: str | None = None


class MoveRequest(BaseModel):
    """The avatar entered a grid cell."""
    x: int
    y: int
    area: str | None = None


class MoveResult(BaseModel):
    """Whether the step started a battle or opened a chest."""
    encounter: str | None = None        # "scripted", "random", "chest", or None
    message: str | None = None
    encounter_counter: int
    in_battle: bool
