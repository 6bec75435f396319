"""Battle event kinds and their payloads."""

from enum import Enum

from pydantic import BaseModel

from models.battle_state import BattleOutcome
from models.combatants import Combatant


class BattleEventType(str, Enum):
    """Events a battle session publishes to presentation subscribers."""
    BATTLE_START = "battle_start"
    BATTLE_END = "battle_end"
    ATTACK = "attack"
    MAGIC = "magic"
    ITEM = "item"
    REWARD = "reward"
    TARGET_CHANGED = "target_changed"
    ENEMY_DEFEATED = "enemy_defeated"


class BattleStartPayload(BaseModel):
    combatants: list[Combatant]


class BattleEndPayload(BaseModel):
    outcome: BattleOutcome
    victory: bool
    enemy: Combatant | None = None  # Last enemy the session knew about


class AttackPayload(BaseModel):
    """A physical hit, by the player or by one enemy."""
    damage: int
    target: str                     # "enemy" or "player"
    target_index: int | None = None  # Set when the player hits an enemy
    source_index: int | None = None  # Set when an enemy hits the player
    critical: bool = False


class MagicPayload(BaseModel):
    damage: int
    target_index: int
    mp_spent: int


class ItemPayload(BaseModel):
    item_type: str
    amount: int
    remaining: int


class RewardPayload(BaseModel):
    xp: int
    gold: int
    level_up: str | None = None     # Narration of the last level gained


class TargetChangedPayload(BaseModel):
    index: int


class EnemyDefeatedPayload(BaseModel):
    index: int                      # Position before removal from the list
    name: str


EventPayload = (
    BattleStartPayload
    | BattleEndPayload
    | AttackPayload
    | MagicPayload
    | ItemPayload
    | RewardPayload
    | TargetChangedPayload
    | EnemyDefeatedPayload
)


class BattleEvent(BaseModel):
    """An event and its typed payload."""
    type: BattleEventType
    payload: EventPayload
