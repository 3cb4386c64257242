"""
Shared constants for the squares pool.

This module defines:
  - The grid geometry (10 x 10, digits 0-9 on each axis).
  - The default payout multiplier for each round.
"""

GRID_SIZE = 10
TOTAL_SQUARES = GRID_SIZE * GRID_SIZE
DIGITS = tuple(range(GRID_SIZE))

# Games in a 64-team single-elimination bracket
MAX_GAME_NUMBER = 63

# Payout = price per square x multiplier ($10 squares pay $25 ... $500).
ROUND_MULTIPLIERS = {
    "ROUND1": 2.5,
    "ROUND2": 5,
    "SWEET16": 10,
    "ELITE8": 20,
    "FINAL4": 35,
    "CHAMPIONSHIP": 50
}
