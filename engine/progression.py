"""Player progression: experience, leveling, damage, healing, mana."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from models.player import PlayerCharacter

if TYPE_CHECKING:
    from models.combatants import Combatant

logger = logging.getLogger(__name__)


def new_player() -> PlayerCharacter:
    """Create a fresh level-1 character for a new game."""
    return PlayerCharacter()


def gain_experience(player: PlayerCharacter, amount: int) -> str | None:
    """Add experience, levelling up as many times as it pays for.

    Each level-up drains the current threshold from the pool, so a
    single large grant can raise several levels. A dead character keeps
    the experience but does not level.

    Args:
        player: The character receiving experience.
        amount: Experience to add. Negative amounts count as zero.

    Returns:
        Narration of the last level-up, or None if no level was gained.
    """
    player.xp += max(0, amount)
    message = None
    while player.xp >= player.max_xp and player.alive:
        player.xp -= player.max_xp
        message = level_up(player)
    return message


def level_up(player: PlayerCharacter) -> str:
    """Raise the character one level and fully restore HP and MP.

    Args:
        player: The character levelling up.

    Returns:
        Human-readable narration of the new level.
    """
    player.level += 1
    player.max_hp += 10
    player.hp = player.max_hp
    player.max_mp += 5
    player.mp = player.max_mp
    player.max_xp = int(player.max_xp * 1.5)
    player.attack += 2
    player.defense += 1
    player.inventory.potions += 1
    logger.info("Player reached level %d", player.level)
    return f"Level up! You are now level {player.level}!"


def apply_damage(
    target: PlayerCharacter | Combatant,
    damage: int,
) -> PlayerCharacter | Combatant:
    """Apply damage, flooring health at zero and marking death.

    Args:
        target: The player or enemy taking damage.
        damage: Amount of damage to deal.

    Returns:
        The updated target.
    """
    target.hp = max(0, target.hp - damage)
    if check_death(target):
        target.alive = False
    return target


def check_death(target: PlayerCharacter | Combatant) -> bool:
    """Check if a player or enemy is at 0 HP."""
    return target.hp <= 0


def heal(player: PlayerCharacter, amount: int) -> int:
    """Restore health without exceeding the maximum.

    Returns:
        The amount of health actually recovered.
    """
    before = player.hp
    player.hp = min(player.max_hp, player.hp + max(0, amount))
    return player.hp - before


def spend_mana(player: PlayerCharacter, cost: int) -> bool:
    """Deduct mana if the character can afford it.

    Returns:
        False, with no change, when mana is short.
    """
    if player.mp < cost:
        return False
    player.mp -= cost
    return True
