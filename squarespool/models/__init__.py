"""Data models for the squares pool."""

from squarespool.models.enums import (
    BoardStatus,
    PaymentStatus,
    Round,
    GameStatus,
    ASSIGNABLE_STATUSES,
    ASSIGNED_STATUSES,
)
from squarespool.models.board import Board
from squarespool.models.square import Square, SquareAssignment
from squarespool.models.game import Game, WinningNumbers

__all__ = [
    "BoardStatus",
    "PaymentStatus",
    "Round",
    "GameStatus",
    "ASSIGNABLE_STATUSES",
    "ASSIGNED_STATUSES",
    "Board",
    "Square",
    "SquareAssignment",
    "Game",
    "WinningNumbers",
]
