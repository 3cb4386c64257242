"""
Type definitions for the squares pool.

Provides TypedDict classes for the payloads handed to notification
collaborators and operator tooling.
"""

from typing import TypedDict, Optional, List


class WinningNumbersDict(TypedDict):
    """Last digits of the final scores."""
    team1LastDigit: int
    team2LastDigit: int


class WinnerPayloadDict(TypedDict):
    """Published when a completed game has a winning square."""
    winnerSquareId: str
    winnerUserId: Optional[str]
    payout: float
    winningNumbers: WinningNumbersDict


class NoWinnerPayloadDict(TypedDict):
    """Published when no square matches the final score digits."""
    winningNumbers: WinningNumbersDict


class BoardFilledPayloadDict(TypedDict):
    """Published when a board reaches 100 paid squares."""
    boardId: str
    paidSquares: int


class BoardAssignedPayloadDict(TypedDict):
    """Published after the random assignment is written."""
    boardId: str
    assignedSquares: int
    winningNumbers: List[int]
    losingNumbers: List[int]
    automatic: bool


class WinnerSquareDict(TypedDict, total=False):
    """Winning square summary in the scoring table."""
    id: str
    gridPosition: Optional[int]
    winningTeamNumber: Optional[int]
    losingTeamNumber: Optional[int]
    userId: Optional[str]


class ScoringTableRowDict(TypedDict, total=False):
    """One game row of a board's scoring table."""
    id: str
    gameNumber: int
    round: str
    team1: str
    team2: str
    team1Score: Optional[int]
    team2Score: Optional[int]
    status: str
    winnerSquare: Optional[WinnerSquareDict]
    payout: Optional[float]


class PaymentStatsDict(TypedDict):
    """Paid and pending counts for a board."""
    totalSquares: int
    paidSquares: int
    pendingSquares: int


class UserSquareDict(TypedDict):
    """One square in a user's payment summary."""
    id: str
    paymentStatus: str
    gridPosition: Optional[int]


class UserPaymentDict(TypedDict):
    """Squares claimed by one user on a board."""
    userId: str
    squares: List[UserSquareDict]
    paidCount: int
    pendingCount: int


class BoardPaymentStatusDict(TypedDict):
    """Payment overview of a board for operators."""
    boardId: str
    name: str
    status: str
    pricePerSquare: float
    paymentStats: PaymentStatsDict
    squaresByUser: List[UserPaymentDict]
