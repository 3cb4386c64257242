"""
Winner determination for completed games.

The winning square is the one whose winning team number equals the last
digit of team 1's score and whose losing team number equals the last digit
of team 2's score. Its payout is the board's literal amount for the round
when the board carries a payout structure, otherwise the price per square
times the round multiplier.

Business-rule failures come back as tagged results, never as exceptions.
"""

import logging
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Union

from pydantic import BaseModel, Field

from .. import config
from ..constants import GRID_SIZE, ROUND_MULTIPLIERS
from ..exceptions import DataIntegrityError, SquaresError, ValidationError
from ..models import Round, Square, WinningNumbers
from ..types import NoWinnerPayloadDict, WinnerPayloadDict

logger = logging.getLogger(__name__)


class ErrorKind(str, Enum):
    """Failure category of a scoring request."""

    VALIDATION = "VALIDATION"
    DATA_INTEGRITY = "DATA_INTEGRITY"
    INTERNAL = "INTERNAL"


class ScoringResult(BaseModel):
    """
    Outcome of scoring one game.

    success=True with winner_square_id=None is the normal "no winner" case.
    """

    success: bool
    game_id: Optional[str] = Field(default=None, alias="gameId")
    board_id: Optional[str] = Field(default=None, alias="boardId")
    winner_square_id: Optional[str] = Field(default=None, alias="winnerSquareId")
    winner_user_id: Optional[str] = Field(default=None, alias="winnerUserId")
    payout: Optional[float] = None
    winning_numbers: Optional[WinningNumbers] = Field(default=None, alias="winningNumbers")
    error_kind: Optional[ErrorKind] = Field(default=None, alias="errorKind")
    error: Optional[str] = None

    class Config:
        """Pydantic configuration."""

        populate_by_name = True

    @property
    def has_winner(self) -> bool:
        return self.success and self.winner_square_id is not None

    @classmethod
    def failure(cls, kind: ErrorKind, message: str, **kwargs) -> "ScoringResult":
        return cls(success=False, error_kind=kind, error=message, **kwargs)

    def raise_for_error(self) -> None:
        """Raise the exception matching error_kind if scoring failed."""
        if self.success:
            return
        if self.error_kind == ErrorKind.VALIDATION:
            raise ValidationError(self.error)
        if self.error_kind == ErrorKind.DATA_INTEGRITY:
            raise DataIntegrityError(self.error)
        raise SquaresError(self.error)

    def to_payload(self) -> Union[WinnerPayloadDict, NoWinnerPayloadDict]:
        """
        Build the notification payload.

        Returns:
            {winnerSquareId, winnerUserId, payout, winningNumbers} when there
            is a winner, {winningNumbers} otherwise
        """
        numbers = self.winning_numbers.model_dump(by_alias=True) if self.winning_numbers else None
        if not self.has_winner:
            return {'winningNumbers': numbers}
        return {
            'winnerSquareId': self.winner_square_id,
            'winnerUserId': self.winner_user_id,
            'payout': self.payout,
            'winningNumbers': numbers,
        }


def last_digits(team1_score: int, team2_score: int) -> WinningNumbers:
    """Get the last digit of each final score."""
    return WinningNumbers(
        team1_last_digit=team1_score % GRID_SIZE,
        team2_last_digit=team2_score % GRID_SIZE
    )


def calculate_payout(
    round: Round,
    price_per_square: float,
    payout_structure: Optional[Dict[Round, float]] = None
) -> float:
    """
    Calculate the payout for a winning square.

    Args:
        round: Tournament round of the game
        price_per_square: Board's square price
        payout_structure: Board-level round -> amount table; takes precedence
                          over the default multipliers for the rounds it lists

    Returns:
        Payout amount
    """
    round = Round(round)
    if payout_structure:
        amount = payout_structure.get(round, payout_structure.get(round.value))
        if amount is not None:
            return float(amount)
    return price_per_square * ROUND_MULTIPLIERS[round.value]


def find_winning_square(
    squares: Iterable[Square],
    numbers: WinningNumbers
) -> Optional[Square]:
    """
    Find the square matching the final score digits.

    Raises:
        DataIntegrityError: If more than one square matches
    """
    matches = [
        s for s in squares
        if s.winning_team_number == numbers.team1_last_digit
        and s.losing_team_number == numbers.team2_last_digit
    ]
    if len(matches) > 1:
        raise DataIntegrityError(
            f"{len(matches)} squares match numbers {numbers.as_tuple()}: "
            + ", ".join(s.id for s in matches)
        )
    return matches[0] if matches else None


def _is_score(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def check_scores(team1_score: Any, team2_score: Any) -> Optional[str]:
    """Return why a pair of reported scores is unusable, or None."""
    if team1_score is None or team2_score is None:
        return "Invalid input: gameId, boardId, and scores are required"
    if not _is_score(team1_score) or not _is_score(team2_score):
        return "Scores must be integers"
    if team1_score < 0 or team2_score < 0:
        return "Scores cannot be negative"
    return None


class ScoringEngine:
    """Determines the winning square and payout for a completed game."""

    def __init__(self, default_price_per_square: Optional[float] = None):
        if default_price_per_square is None:
            default_price_per_square = config.DEFAULT_PRICE_PER_SQUARE
        self.default_price_per_square = default_price_per_square

    def _validate(
        self,
        game_id: Optional[str],
        board_id: Optional[str],
        team1_score: Any,
        team2_score: Any,
        round: Any,
        squares: List[Square]
    ) -> Optional[str]:
        """Return a validation error message, or None when the input is usable."""
        if not game_id or not board_id:
            return "Invalid input: gameId, boardId, and scores are required"
        if not squares:
            return "No squares provided for scoring"
        message = check_scores(team1_score, team2_score)
        if message:
            return message
        try:
            Round(round)
        except ValueError:
            return f"Unknown round: {round}"
        return None

    def score(
        self,
        game_id: str,
        board_id: str,
        team1_score: Optional[int],
        team2_score: Optional[int],
        round: Union[Round, str],
        squares: Optional[Iterable[Square]],
        price_per_square: Optional[float] = None,
        payout_structure: Optional[Dict[Round, float]] = None
    ) -> ScoringResult:
        """
        Score a completed game.

        Args:
            game_id: The game being scored
            board_id: The board owning the squares
            team1_score: Final score of team 1 (winning team number axis)
            team2_score: Final score of team 2 (losing team number axis)
            round: Tournament round of the game
            squares: The board's assigned squares
            price_per_square: Board's square price; engine default if omitted
            payout_structure: Optional board-level round -> amount override

        Returns:
            ScoringResult; failures carry error_kind and error
        """
        squares = list(squares or [])
        ids = {'game_id': game_id, 'board_id': board_id}

        message = self._validate(game_id, board_id, team1_score, team2_score, round, squares)
        if message:
            logger.warning(f"Scoring rejected for game {game_id}: {message}")
            return ScoringResult.failure(ErrorKind.VALIDATION, message, **ids)

        logger.info(f"Scoring game {game_id}: {team1_score} vs {team2_score}")
        try:
            numbers = last_digits(team1_score, team2_score)
            winner = find_winning_square(squares, numbers)

            if winner is None:
                logger.debug(f"No winning square for game {game_id}, digits {numbers.as_tuple()}")
                return ScoringResult(success=True, winning_numbers=numbers, **ids)

            if price_per_square is None:
                price_per_square = self.default_price_per_square
            payout = calculate_payout(Round(round), price_per_square, payout_structure)

            logger.info(
                f"Game {game_id} winner: square {winner.id} (user {winner.user_id}), "
                f"payout {payout}"
            )
            return ScoringResult(
                success=True,
                winner_square_id=winner.id,
                winner_user_id=winner.user_id,
                payout=payout,
                winning_numbers=numbers,
                **ids
            )
        except DataIntegrityError as e:
            logger.exception(f"Data integrity error while scoring game {game_id}")
            return ScoringResult.failure(ErrorKind.DATA_INTEGRITY, str(e), **ids)
        except Exception as e:
            logger.exception(f"Scoring failed for game {game_id}")
            return ScoringResult.failure(ErrorKind.INTERNAL, str(e) or 'Unknown error occurred', **ids)
