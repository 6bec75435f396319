"""Exploration, battle action, state, and log endpoints."""

import asyncio
from concurrent.futures import ThreadPoolExecutor

from fastapi import APIRouter, HTTPException, Request

from config import SAVE_FILE
from engine.game import GameSession, move, new_game, perform_action, save_player
from models.actions import ActionRequest, ActionResult, MoveRequest, MoveResult

router = APIRouter()

# One worker keeps save files written in the order they were requested
save_executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="save")


def _get_game(request: Request) -> GameSession:
    """Get the singleton game from app state."""
    return request.app.state.game


@router.get("/state")
async def get_game_state(request: Request) -> dict:
    """Get the player, the battle, and the encounter counter."""
    game = _get_game(request)
    return {
        "player": game.player.model_dump(),
        "battle": game.battle.snapshot().model_dump(),
        "area": game.trigger.area,
        "encounter_counter": game.trigger.counter,
    }


@router.post("/move", response_model=MoveResult)
async def submit_move(move_request: MoveRequest, request: Request) -> MoveResult:
    """Report that the avatar entered a grid cell."""
    game = _get_game(request)
    if game.battle.in_battle:
        raise HTTPException(status_code=409, detail="Cannot explore during a battle")
    return move(game, move_request)


@router.post("/action", response_model=ActionResult)
async def submit_action(action: ActionRequest, request: Request) -> ActionResult:
    """Submit a battle command for the player's turn.

    Commands sent on the enemy's turn succeed but change nothing.
    """
    game = _get_game(request)
    result = perform_action(game, action)
    if not result.success:
        raise HTTPException(status_code=409, detail=result.error)
    return result


@router.get("/log")
async def get_battle_log(request: Request) -> list[dict]:
    """Get the narration log of the current or most recent battle."""
    game = _get_game(request)
    return [entry.model_dump() for entry in game.battle.log]


@router.post("/new")
async def start_new_game(request: Request) -> dict:
    """Discard progress and start again at level 1."""
    game = _get_game(request)
    new_game(game)
    await asyncio.get_running_loop().run_in_executor(
        save_executor, save_player, game.player.model_copy(deep=True), SAVE_FILE
    )
    return {"message": "New game started", "player": game.player.model_dump()}
