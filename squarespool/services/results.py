"""
Game score updates and the board scoring table.

Stores reported scores, runs the ScoringEngine once a game is COMPLETED,
records the winning square, and publishes the winner (or no-winner) payload.
"""

import logging
from typing import List, Optional

from .notifications import Notifier, GAME_SCORED
from .scoring import ScoringEngine, ScoringResult, calculate_payout, check_scores
from ..exceptions import PreconditionError, ValidationError
from ..models import ASSIGNED_STATUSES, BoardStatus, Game, GameStatus
from ..models.enums import GAME_STATUS_ORDER
from ..storage import DatabaseInterface
from ..types import ScoringTableRowDict, WinnerSquareDict

logger = logging.getLogger(__name__)


class GameResultsService:
    """Applies score updates to games on an assigned board."""

    def __init__(
        self,
        db: DatabaseInterface,
        engine: Optional[ScoringEngine] = None,
        notifier: Optional[Notifier] = None
    ):
        self.db = db
        self.engine = engine or ScoringEngine()
        self.notifier = notifier

    def _score(self, game: Game, team1_score: int, team2_score: int) -> ScoringResult:
        board = self.db.get_board(game.board_id)
        if board.status not in ASSIGNED_STATUSES:
            raise PreconditionError(
                f"Board {board.id} is {board.status.value}; games can only be "
                f"scored after assignment"
            )
        squares = [s for s in self.db.list_paid_squares(board.id) if s.is_assigned]
        return self.engine.score(
            game_id=game.id,
            board_id=board.id,
            team1_score=team1_score,
            team2_score=team2_score,
            round=game.round,
            squares=squares,
            price_per_square=board.price_per_square,
            payout_structure=board.payout_structure
        )

    def record_score(
        self,
        game_id: str,
        team1_score: int,
        team2_score: int,
        status: GameStatus = GameStatus.COMPLETED
    ) -> Optional[ScoringResult]:
        """
        Update a game's score.

        Args:
            game_id: The game to update
            team1_score: Team 1 score so far (final when COMPLETED)
            team2_score: Team 2 score so far (final when COMPLETED)
            status: New game status; statuses only move forward

        Returns:
            ScoringResult when the game is COMPLETED, None for in-progress
            updates

        Raises:
            PreconditionError: Backward status move, board not assigned, or
                               a completed game re-reported with other scores
            ValidationError: In-progress scores that are missing, non-integer
                             or negative
            NotFoundError: Game does not exist
        """
        status = GameStatus(status)
        game = self.db.get_game(game_id)

        if GAME_STATUS_ORDER.index(status) < GAME_STATUS_ORDER.index(game.status):
            raise PreconditionError(
                f"Game {game_id} cannot move from {game.status.value} to {status.value}"
            )

        if game.status == GameStatus.COMPLETED:
            if (game.team1_score, game.team2_score) != (team1_score, team2_score):
                raise PreconditionError(
                    f"Game {game_id} already completed with "
                    f"{game.team1_score}-{game.team2_score}"
                )
            # Same final score: recompute, the answer cannot change
            return self._score(game, team1_score, team2_score)

        if status != GameStatus.COMPLETED:
            message = check_scores(team1_score, team2_score)
            if message:
                raise ValidationError(f"Game {game_id} not updated: {message}")
            self.db.update_game_score(game_id, team1_score, team2_score, status)
            logger.info(f"Game {game_id} updated: {team1_score}-{team2_score} ({status.value})")
            return None

        result = self._score(game, team1_score, team2_score)
        if not result.success:
            logger.warning(f"Game {game_id} not completed: {result.error}")
            return result

        try:
            self.db.update_game_score(
                game_id, team1_score, team2_score, status, result.winner_square_id
            )
        except PreconditionError:
            # Completed concurrently; fine as long as it was the same final score
            stored = self.db.get_game(game_id)
            if (stored.team1_score, stored.team2_score) != (team1_score, team2_score):
                raise
            return result

        if self.db.compare_and_swap_status(game.board_id, [BoardStatus.ASSIGNED], BoardStatus.ACTIVE):
            logger.info(f"Board {game.board_id} is now ACTIVE")

        if self.notifier is not None:
            payload = result.to_payload()
            payload.update({'gameId': game_id, 'boardId': game.board_id})
            self.notifier.publish(GAME_SCORED, payload)
        return result

    def scoring_table(self, board_id: str) -> List[ScoringTableRowDict]:
        """
        Build the scoring table for a board.

        Returns:
            One row per game ordered by game number, with the winning square
            and payout for completed games that have a winner
        """
        board = self.db.get_board(board_id)
        rows: List[ScoringTableRowDict] = []

        for game in self.db.list_games(board_id):
            row: ScoringTableRowDict = {
                'id': game.id,
                'gameNumber': game.game_number,
                'round': game.round.value,
                'team1': game.team1,
                'team2': game.team2,
                'team1Score': game.team1_score,
                'team2Score': game.team2_score,
                'status': game.status.value,
                'winnerSquare': None,
                'payout': None,
            }
            if game.status == GameStatus.COMPLETED and game.winner_square_id:
                square = self.db.get_square(game.winner_square_id)
                winner: WinnerSquareDict = {
                    'id': square.id,
                    'gridPosition': square.grid_position,
                    'winningTeamNumber': square.winning_team_number,
                    'losingTeamNumber': square.losing_team_number,
                    'userId': square.user_id,
                }
                row['winnerSquare'] = winner
                row['payout'] = calculate_payout(
                    game.round, board.price_per_square, board.payout_structure
                )
            rows.append(row)

        return rows
