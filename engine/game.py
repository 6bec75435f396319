"""Game orchestration: one player, their battles, and exploration moves."""

from __future__ import annotations

import json
import logging
import os
import random
from pathlib import Path

from config import DEFAULT_AREA
from engine.battle import BattleSession
from engine.encounter import (
    CHEST_MESSAGE,
    EncounterTable,
    EncounterTrigger,
    forest_chests,
    forest_placed_enemies,
)
from engine.events import EventChannel
from engine.progression import new_player
from engine.scheduler import Scheduler
from models.actions import ActionRequest, ActionResult, ActionType, MoveRequest, MoveResult
from models.battle_state import BattleOutcome
from models.player import PlayerCharacter

logger = logging.getLogger(__name__)


class GameSession:
    """Everything one running game owns."""

    def __init__(
        self,
        player: PlayerCharacter,
        channel: EventChannel,
        battle: BattleSession,
        trigger: EncounterTrigger,
    ) -> None:
        self.player = player
        self.channel = channel
        self.battle = battle
        self.trigger = trigger


def create_game(
    scheduler: Scheduler | None = None,
    rng: random.Random | None = None,
    table: EncounterTable | None = None,
    player: PlayerCharacter | None = None,
    area: str = DEFAULT_AREA,
) -> GameSession:
    """Wire up a new game: player, event channel, battle and encounters.

    Args:
        scheduler: Where delayed enemy turns run. Defaults to a virtual clock.
        rng: Shared Random instance for combat and encounter rolls.
        table: Encounter table; defaults to the built-in forest table.
        player: A loaded character to resume with, else a fresh one.
        area: Starting encounter area.

    Returns:
        A GameSession with the player exploring.
    """
    rng = rng or random.Random()
    player = player or new_player()
    channel = EventChannel()
    battle = BattleSession(player, channel=channel, scheduler=scheduler, rng=rng)
    trigger = EncounterTrigger(
        battle,
        table=table,
        rng=rng,
        area=area,
        placed_enemies=forest_placed_enemies(),
        chests=forest_chests(),
    )
    return GameSession(player=player, channel=channel, battle=battle, trigger=trigger)


def new_game(game: GameSession) -> GameSession:
    """Reset the player, encounter counter, placed enemies and chests in place.

    A battle still in progress is abandoned as a flee so subscribers see
    it end.
    """
    if game.battle.in_battle:
        game.battle.end_battle(BattleOutcome.FLEE)
    game.player = new_player()
    game.battle.player = game.player
    game.battle.log = []
    game.trigger.reset(placed_enemies=forest_placed_enemies(), chests=forest_chests())
    logger.info("New game started")
    return game


def move(game: GameSession, request: MoveRequest) -> MoveResult:
    """Feed an exploration step to the encounter trigger.

    A defeated player no longer meets enemies.
    """
    encounter = None
    if game.player.alive:
        encounter = game.trigger.on_move(request.x, request.y, request.area)
    return MoveResult(
        encounter=encounter,
        message=CHEST_MESSAGE if encounter == "chest" else None,
        encounter_counter=game.trigger.counter,
        in_battle=game.battle.in_battle,
    )


def perform_action(game: GameSession, action: ActionRequest) -> ActionResult:
    """Dispatch a battle command and report the narration it produced.

    Args:
        game: The running game.
        action: The command to perform.

    Returns:
        ActionResult; unsuccessful only when no battle is running.
    """
    battle = game.battle
    if not battle.in_battle:
        return ActionResult(
            success=False,
            action_type=action.action_type,
            state=battle.state,
            error="Not in battle",
        )

    log_start = len(battle.log)
    if action.action_type == ActionType.ATTACK:
        battle.player_attack()
    elif action.action_type == ActionType.MAGIC:
        battle.player_magic()
    elif action.action_type == ActionType.ITEM:
        battle.use_item()
    elif action.action_type == ActionType.FLEE:
        battle.flee()
    elif action.action_type == ActionType.SELECT_TARGET:
        battle.select_target(action.target_index or 0)

    return ActionResult(
        success=True,
        action_type=action.action_type,
        narration=[entry.message for entry in battle.log[log_start:]],
        state=battle.state,
    )


def save_player(player: PlayerCharacter, path: str) -> None:
    """Persist the player's progression to a JSON file.

    Writes to a temporary file first, then renames for atomicity.

    Args:
        player: The character to save.
        path: File path to write to.
    """
    tmp_path = path + ".tmp"
    data = player.model_dump(mode="json")
    with open(tmp_path, "w") as f:
        json.dump(data, f)
    os.replace(tmp_path, path)


def load_player(path: str) -> PlayerCharacter | None:
    """Load a saved player from a JSON file.

    Returns:
        The loaded PlayerCharacter, or None if the file doesn't exist.
    """
    if not Path(path).exists():
        return None
    with open(path) as f:
        data = json.load(f)
    return PlayerCharacter.model_validate(data)
