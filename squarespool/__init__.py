"""
Squares pool engine for a single-elimination basketball tournament.

Randomly binds paid squares to grid positions and digit labels once a board
fills, and picks the winning square for each completed game.
"""

__version__ = "1.0.0"
