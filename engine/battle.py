"""Battle session: turn sequencing, targeting, action resolution, rewards."""

from __future__ import annotations

import logging
import math
import random
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any

from config import (
    ATTACKER_DELAY_MS,
    CRITICAL_CHANCE,
    CRITICAL_MULTIPLIER,
    CRUSHING_CHANCE,
    CRUSHING_MULTIPLIER,
    ENEMY_TURN_DELAY_MS,
    FLEE_CHANCE,
    MP_COST,
    POTION_HEAL_FRACTION,
    VICTORY_DELAY_MS,
)
from engine.dice import chance, random_bonus, scale
from engine.events import EventChannel
from engine.progression import apply_damage, gain_experience, heal, spend_mana
from engine.scheduler import Scheduler, VirtualScheduler
from models.battle_state import (
    BattleOutcome,
    BattleSnapshot,
    BattleState,
    LogEntry,
    Turn,
)
from models.combatants import Combatant
from models.events import (
    AttackPayload,
    BattleEndPayload,
    BattleEventType,
    BattleStartPayload,
    EnemyDefeatedPayload,
    ItemPayload,
    MagicPayload,
    RewardPayload,
    TargetChangedPayload,
)
from models.player import PlayerCharacter

logger = logging.getLogger(__name__)

# Defaults for fields an encounter source may leave out
DEFAULT_MAX_HP = 20
DEFAULT_MAX_MP = 0
DEFAULT_XP_REWARD = 10
DEFAULT_GOLD_RANGE = (2, 7)


def normalize_combatant(
    data: Combatant | dict[str, Any],
    rng: random.Random | None = None,
) -> Combatant:
    """Return an independent, fully-populated copy of an enemy.

    This is the one place missing enemy fields are filled in:

    - ``max_hp``: the given ``hp``, else 20; ``hp`` starts at ``max_hp``
    - ``max_mp``: 0; ``mp`` starts at ``max_mp``
    - ``xp_reward``: 10
    - ``gold_reward``: random 2..7
    - ``alive``: True

    Args:
        data: A Combatant or a plain dict describing one.
        rng: Optional Random instance for the gold roll.

    Returns:
        A new Combatant that shares no state with ``data``.
    """
    rng = rng or random.Random()
    if isinstance(data, Combatant):
        combatant = data.model_copy(deep=True)
    else:
        combatant = Combatant.model_validate(data)

    if combatant.max_hp is None:
        combatant.max_hp = combatant.hp if combatant.hp is not None else DEFAULT_MAX_HP
    combatant.hp = combatant.max_hp
    if combatant.max_mp is None:
        combatant.max_mp = DEFAULT_MAX_MP
    combatant.mp = combatant.max_mp
    if combatant.xp_reward is None:
        combatant.xp_reward = DEFAULT_XP_REWARD
    if combatant.gold_reward is None:
        combatant.gold_reward = rng.randint(*DEFAULT_GOLD_RANGE)
    combatant.alive = True
    return combatant


class BattleSession:
    """The battle state machine for one player.

    A session is reused across fights: ``start_battle`` arms it, the
    player and enemy sides take turns, and ``end_battle`` returns it to
    idle. Player actions return immediately; enemy responses are
    scheduled on ``scheduler`` so presentation can pace them.

    Actions attempted out of turn, or outside a battle, do nothing.
    Shortages (mana, potions) only add a line to the narration log.
    """

    def __init__(
        self,
        player: PlayerCharacter,
        channel: EventChannel | None = None,
        scheduler: Scheduler | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self.player = player
        self.channel = channel or EventChannel()
        self.scheduler = scheduler or VirtualScheduler()
        self.rng = rng or random.Random()
        self.combatants: list[Combatant] = []
        self.selected_index: int | None = None
        self.turn = Turn.PLAYER
        self.in_battle = False
        self.log: list[LogEntry] = []
        self.session_id = 0
        self.last_enemy: Combatant | None = None
        self.last_outcome: BattleOutcome | None = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def state(self) -> BattleState:
        if not self.in_battle:
            return BattleState.IDLE
        if self.turn == Turn.PLAYER:
            return BattleState.PLAYER_TURN
        return BattleState.ENEMY_TURN

    def start_battle(
        self,
        combatants: Combatant | dict[str, Any] | list[Combatant | dict[str, Any]],
    ) -> bool:
        """Begin a battle against one enemy or an ordered group.

        Args:
            combatants: A single enemy or a list of them. Each is copied
                and normalised; the caller's objects are never mutated.

        Returns:
            False if a battle is already running or no enemies were given.
        """
        if self.in_battle:
            logger.warning("start_battle ignored: session %d still running", self.session_id)
            return False
        if not isinstance(combatants, list):
            combatants = [combatants]
        if not combatants:
            logger.warning("start_battle ignored: no combatants")
            return False

        self.session_id += 1
        self.combatants = [normalize_combatant(c, self.rng) for c in combatants]
        self.selected_index = 0
        self.turn = Turn.PLAYER
        self.in_battle = True
        self.last_enemy = self.combatants[0]
        self.last_outcome = None
        self.log = []

        logger.info(
            "Battle %d started against %s",
            self.session_id,
            ", ".join(c.name for c in self.combatants),
        )
        self.channel.emit(
            BattleEventType.BATTLE_START,
            BattleStartPayload(combatants=list(self.combatants)),
        )
        if len(self.combatants) == 1:
            self.narrate(f"A wild {self.combatants[0].name} appears!")
        else:
            self.narrate(f"A group of {_join_names(self.combatants)} appears!")
        return True

    def end_battle(self, outcome: BattleOutcome) -> None:
        """Resolve the battle and return to idle.

        Pending enemy turns for this session are cancelled. Calling this
        while idle does nothing.
        """
        if not self.in_battle:
            return
        self.in_battle = False
        self.scheduler.cancel(self.session_id)

        enemy = self.last_enemy
        if self.combatants and self.selected_index is not None:
            enemy = self.combatants[self.selected_index]
        self.last_enemy = enemy
        self.last_outcome = outcome
        self.combatants = []
        self.selected_index = None
        self.turn = Turn.PLAYER

        logger.info("Battle %d ended: %s", self.session_id, outcome.value)
        self.channel.emit(
            BattleEventType.BATTLE_END,
            BattleEndPayload(
                outcome=outcome,
                victory=outcome == BattleOutcome.VICTORY,
                enemy=enemy,
            ),
        )

    def snapshot(self) -> BattleSnapshot:
        return BattleSnapshot(
            session_id=self.session_id,
            state=self.state,
            in_battle=self.in_battle,
            turn=self.turn,
            combatants=list(self.combatants),
            selected_index=self.selected_index,
            last_outcome=self.last_outcome,
        )

    # ------------------------------------------------------------------
    # Player actions
    # ------------------------------------------------------------------

    def select_target(self, index: int) -> None:
        """Point the player's attacks at another enemy, clamped into range."""
        if not self.combatants:
            return
        self.selected_index = max(0, min(index, len(self.combatants) - 1))
        self.channel.emit(
            BattleEventType.TARGET_CHANGED,
            TargetChangedPayload(index=self.selected_index),
        )

    def player_attack(self) -> None:
        """Strike the selected enemy with a physical attack."""
        if not self._player_can_act():
            return
        target = self._current_target()
        if target is None:
            return

        damage = max(
            1,
            self.player.attack - target.defense // 2 + random_bonus(4, self.rng),
        )
        critical = chance(CRITICAL_CHANCE, self.rng)
        if critical:
            damage = scale(damage, CRITICAL_MULTIPLIER)

        apply_damage(target, damage)
        self.turn = Turn.ENEMY
        if critical:
            self.narrate(f"Critical hit! You strike {target.name} for {damage} damage!")
        else:
            self.narrate(f"You attack {target.name} for {damage} damage!")
        self.channel.emit(
            BattleEventType.ATTACK,
            AttackPayload(
                damage=damage,
                target="enemy",
                target_index=self.selected_index,
                critical=critical,
            ),
        )
        self._resolve_player_hit()

    def player_magic(self) -> None:
        """Cast Fireball at the selected enemy for a fixed mana cost."""
        if not self._player_can_act():
            return
        target = self._current_target()
        if target is None:
            return
        if not spend_mana(self.player, MP_COST):
            self.narrate("Not enough MP!")
            return

        damage = math.floor(self.player.attack * 1.5) + random_bonus(4, self.rng) + 2
        apply_damage(target, damage)
        self.turn = Turn.ENEMY
        self.narrate(f"Fireball hits {target.name} for {damage} damage!")
        self.channel.emit(
            BattleEventType.MAGIC,
            MagicPayload(
                damage=damage,
                target_index=self.selected_index,
                mp_spent=MP_COST,
            ),
        )
        self._resolve_player_hit()

    def use_item(self) -> None:
        """Drink a potion, restoring a fixed share of maximum health."""
        if not self._player_can_act():
            return
        inventory = self.player.inventory
        if inventory.potions <= 0:
            self.narrate("No potions left!")
            return

        inventory.potions -= 1
        restore = math.floor(self.player.max_hp * POTION_HEAL_FRACTION)
        heal(self.player, restore)
        self.turn = Turn.ENEMY
        self.narrate(f"Used potion. Restored {restore} HP. ({inventory.potions} left)")
        self.channel.emit(
            BattleEventType.ITEM,
            ItemPayload(item_type="potion", amount=restore, remaining=inventory.potions),
        )
        self._schedule(ENEMY_TURN_DELAY_MS, self.enemy_turn)

    def flee(self) -> None:
        """Try to escape; failure hands the turn to the enemies."""
        if not self._player_can_act():
            return
        if chance(FLEE_CHANCE, self.rng):
            self.narrate("Fled successfully!")
            self.end_battle(BattleOutcome.FLEE)
            return
        self.narrate("Could not flee!")
        self.turn = Turn.ENEMY
        self._schedule(ENEMY_TURN_DELAY_MS, self.enemy_turn)

    # ------------------------------------------------------------------
    # Enemy side
    # ------------------------------------------------------------------

    def enemy_turn(self) -> None:
        """Let every enemy strike the player, one after another.

        The first attacker acts immediately and the rest follow at a
        fixed interval. If the player falls, remaining attackers are
        skipped. An empty enemy list means the player already won.
        """
        if not self.in_battle:
            return
        if not self.combatants:
            self.end_battle(BattleOutcome.VICTORY)
            return
        self._enemy_attack(0)

    def _enemy_attack(self, index: int) -> None:
        if index >= len(self.combatants):
            self.turn = Turn.PLAYER
            return

        enemy = self.combatants[index]
        if enemy.alive:
            damage = max(
                1,
                enemy.attack - self.player.defense + random_bonus(3, self.rng) - 1,
            )
            crushing = chance(CRUSHING_CHANCE, self.rng)
            if crushing:
                damage = scale(damage, CRUSHING_MULTIPLIER)

            apply_damage(self.player, damage)
            if crushing:
                self.narrate(f"{enemy.name} lands a crushing blow for {damage} damage!")
            else:
                self.narrate(f"{enemy.name} attacks for {damage} damage!")
            self.channel.emit(
                BattleEventType.ATTACK,
                AttackPayload(
                    damage=damage,
                    target="player",
                    source_index=index,
                    critical=crushing,
                ),
            )
            if not self.player.alive:
                self.narrate("You have been defeated...")
                self.end_battle(BattleOutcome.DEFEAT)
                return

        if index + 1 < len(self.combatants):
            self._schedule(ATTACKER_DELAY_MS, lambda: self._enemy_attack(index + 1))
        else:
            self.turn = Turn.PLAYER

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def narrate(self, message: str) -> None:
        """Append a line to the battle log."""
        self.log.append(LogEntry(message=message, timestamp=datetime.now(timezone.utc)))
        logger.debug("[battle %d] %s", self.session_id, message)

    def _player_can_act(self) -> bool:
        return self.in_battle and self.turn == Turn.PLAYER and self.player.alive

    def _current_target(self) -> Combatant | None:
        if not self.combatants or self.selected_index is None:
            return None
        target = self.combatants[self.selected_index]
        return target if target.alive else None

    def _resolve_player_hit(self) -> None:
        """Handle a possible kill, then queue the enemy response."""
        index = self.selected_index
        if index is not None and not self.combatants[index].alive:
            self._defeat_enemy(index)
        self._schedule(ENEMY_TURN_DELAY_MS, self.enemy_turn)

    def _defeat_enemy(self, index: int) -> None:
        enemy = self.combatants[index]
        self.narrate(f"{enemy.name} is defeated!")

        xp = enemy.xp_reward
        gold = enemy.gold_reward
        level_message = gain_experience(self.player, xp)
        self.player.gold += gold
        self.narrate(f"Gained {xp} XP and {gold} gold.")
        if level_message:
            self.narrate(level_message)
        self.channel.emit(
            BattleEventType.REWARD,
            RewardPayload(xp=xp, gold=gold, level_up=level_message),
        )
        self.channel.emit(
            BattleEventType.ENEMY_DEFEATED,
            EnemyDefeatedPayload(index=index, name=enemy.name),
        )

        self.last_enemy = enemy
        del self.combatants[index]
        if not self.combatants:
            self.selected_index = None
            self.narrate("Victory!")
            self._schedule(
                VICTORY_DELAY_MS, lambda: self.end_battle(BattleOutcome.VICTORY)
            )
            return
        self.selected_index = min(index, len(self.combatants) - 1)
        self.channel.emit(
            BattleEventType.TARGET_CHANGED,
            TargetChangedPayload(index=self.selected_index),
        )

    def _schedule(self, delay_ms: int, action: Callable[[], None]) -> None:
        """Run ``action`` later, only if this same battle is still live."""
        session_id = self.session_id

        def _guarded() -> None:
            if self.in_battle and self.session_id == session_id:
                action()

        self.scheduler.call_later(delay_ms, _guarded, key=session_id)


def _join_names(combatants: list[Combatant]) -> str:
    names = [c.name for c in combatants]
    return ", ".join(names[:-1]) + " and " + names[-1]
