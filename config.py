"""Server-wide configuration constants for the Cryn combat server."""

import os

MP_COST = 3                      # Mana spent by a Fireball
POTION_HEAL_FRACTION = 0.3       # Fraction of max HP a potion restores
CRITICAL_CHANCE = 0.08           # Player critical hit probability
CRITICAL_MULTIPLIER = 1.75
CRUSHING_CHANCE = 0.05           # Enemy crushing blow probability
CRUSHING_MULTIPLIER = 1.5
FLEE_CHANCE = 0.5

ENEMY_TURN_DELAY_MS = 800        # Player action -> enemy response
ATTACKER_DELAY_MS = 350          # Between consecutive enemy attackers
VICTORY_DELAY_MS = 750           # Last enemy defeated -> battle end

ENCOUNTER_THRESHOLD = 100        # Roll + counter must exceed this
ENCOUNTER_DIE = 90               # Encounter roll is 1d90
GROUP_SIZE_DIE = 180             # Group size roll is 1d180

DEFAULT_AREA = os.environ.get("DEFAULT_AREA", "forest")
DATA_DIR = os.environ.get("DATA_DIR", ".")  # Persistent data directory
SAVE_FILE = os.path.join(DATA_DIR, "player.json")
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
