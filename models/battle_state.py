"""Battle state, outcome, and narration log models."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel

from models.combatants import Combatant


class Turn(str, Enum):
    """Which side holds the right to act."""
    PLAYER = "player"
    ENEMY = "enemy"


class BattleState(str, Enum):
    """Observable states of the battle state machine."""
    IDLE = "idle"                   # Exploring, no battle
    PLAYER_TURN = "player_turn"
    ENEMY_TURN = "enemy_turn"


class BattleOutcome(str, Enum):
    """How a battle was resolved."""
    VICTORY = "victory"
    DEFEAT = "defeat"
    FLEE = "flee"


class LogEntry(BaseModel):
    """A narrated battle event."""
    message: str
    timestamp: datetime


class BattleSnapshot(BaseModel):
    """Read-only view of a battle session for presentation clients."""
    session_id: int
    state: BattleState
    in_battle: bool
    turn: Turn
    combatants: list[Combatant] = []
    selected_index: int | None = None
    last_outcome: BattleOutcome | None = None
