"""Tournament scheduling defaults and bracket sentinels."""

from datetime import time

# Scheduling defaults, in minutes.
DEFAULT_GAME_DURATION = 60
DEFAULT_MIN_REST = 30
DEFAULT_BREAK_BETWEEN_GAMES = 30
DEFAULT_GAMES_PER_DAY = 8
FIRST_SLOT_TIME = time(10, 0)

# Filler entry in a bracket seeding array.
BYE = "BYE"
