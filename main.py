"""FastAPI app entry point for the Cryn combat server."""

import asyncio
import logging

from fastapi import FastAPI

from api.game import router as game_router
from api.game import save_executor
from api.ws import forward_event
from api.ws import router as ws_router
from config import LOG_LEVEL, SAVE_FILE
from engine.game import GameSession, create_game, load_player, save_player
from engine.scheduler import AsyncioScheduler
from models.events import BattleEvent, BattleEventType

logging.basicConfig(
    level=getattr(logging, LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def wire_game(game: GameSession, save_file: str = SAVE_FILE) -> GameSession:
    """Stream the game's events to WebSocket clients and save after each battle.

    On the event loop the save runs on the save executor, using a copy
    of the player taken when the battle ended.
    """

    def _save_on_battle_end(event: BattleEvent) -> None:
        player = game.player.model_copy(deep=True)
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            save_player(player, save_file)
            return
        future = loop.run_in_executor(save_executor, save_player, player, save_file)
        future.add_done_callback(_log_save_failure)

    game.channel.subscribe_all(forward_event)
    game.channel.subscribe(BattleEventType.BATTLE_END, _save_on_battle_end)
    return game


def _log_save_failure(future: asyncio.Future) -> None:
    if not future.cancelled() and future.exception() is not None:
        logger.error("Saving the player failed: %s", future.exception())


app = FastAPI(
    title="Cryn Combat Server",
    description="Headless battle and encounter engine for a tile-based RPG",
    version="0.1.0",
)

# Load or create the singleton game
app.state.game = wire_game(
    create_game(scheduler=AsyncioScheduler(), player=load_player(SAVE_FILE))
)
logger.info("Game ready (player level %d)", app.state.game.player.level)

app.include_router(game_router, prefix="/game", tags=["Game"])
app.include_router(ws_router, prefix="/game", tags=["WebSocket"])


@app.get("/")
def root() -> dict:
    """Root endpoint returning server info."""
    return {"name": "Cryn Combat Server", "version": "0.1.0", "status": "running"}


@app.get("/health")
def health() -> dict:
    """Health check endpoint."""
    return {"healthy": True}
