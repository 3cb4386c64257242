"""
In-memory storage for the squares pool.

Dict-backed implementation of the DatabaseInterface. Every operation runs
under one re-entrant lock, so conditional writes are atomic across threads.
Used as the test fake and selectable with DB_TYPE=memory.
"""

import threading
import uuid
from datetime import datetime, timezone
from typing import Optional, List, Dict, Iterable

from .base import DatabaseInterface
from .exceptions import NotFoundError
from ..exceptions import AlreadyAssignedError, DataIntegrityError, PreconditionError
from ..models import (
    ASSIGNABLE_STATUSES,
    Board,
    BoardStatus,
    Game,
    GameStatus,
    PaymentStatus,
    Round,
    Square,
    SquareAssignment,
)


class MemoryDatabase(DatabaseInterface):
    """
    Process-local database kept in dictionaries.

    Returned models are copies; callers never hold references into the store.
    """

    def __init__(self):
        self._lock = threading.RLock()
        self._boards: Dict[str, Board] = {}
        self._squares: Dict[str, Square] = {}
        self._games: Dict[str, Game] = {}
        self._initialized = False

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def initialize(self) -> None:
        self._initialized = True

    def close(self) -> None:
        pass

    def health_check(self) -> bool:
        return self._initialized

    # =========================================================================
    # HELPERS
    # =========================================================================

    @staticmethod
    def _new_id() -> str:
        return uuid.uuid4().hex

    @staticmethod
    def _now() -> datetime:
        return datetime.now(timezone.utc)

    def _board(self, board_id: str) -> Board:
        board = self._boards.get(board_id)
        if board is None:
            raise NotFoundError(f"Board not found: {board_id}")
        return board

    def _square(self, square_id: str) -> Square:
        square = self._squares.get(square_id)
        if square is None:
            raise NotFoundError(f"Square not found: {square_id}")
        return square

    def _game(self, game_id: str) -> Game:
        game = self._games.get(game_id)
        if game is None:
            raise NotFoundError(f"Game not found: {game_id}")
        return game

    def _board_squares(self, board_id: str) -> List[Square]:
        squares = [s for s in self._squares.values() if s.board_id == board_id]
        return sorted(squares, key=lambda s: s.claim_order)

    def _with_counts(self, board: Board) -> Board:
        paid = sum(1 for s in self._board_squares(board.id) if s.is_paid)
        return board.model_copy(update={'paid_squares': paid}, deep=True)

    # =========================================================================
    # BOARDS
    # =========================================================================

    def create_board(
        self,
        name: str,
        price_per_square: float,
        created_by: Optional[str] = None,
        payout_structure: Optional[Dict[Round, float]] = None
    ) -> Board:
        with self._lock:
            board = Board(
                id=self._new_id(),
                name=name,
                price_per_square=price_per_square,
                created_by=created_by,
                payout_structure=payout_structure,
                created_at=self._now()
            )
            self._boards[board.id] = board
            return self._with_counts(board)

    def get_board(self, board_id: str) -> Board:
        with self._lock:
            return self._with_counts(self._board(board_id))

    def list_boards(self, status: Optional[BoardStatus] = None) -> List[Board]:
        with self._lock:
            boards = [
                self._with_counts(b) for b in self._boards.values()
                if status is None or b.status == status
            ]
            return sorted(boards, key=lambda b: b.created_at)

    def compare_and_swap_status(
        self,
        board_id: str,
        expected: Iterable[BoardStatus],
        new_status: BoardStatus
    ) -> bool:
        expected = set(expected)
        with self._lock:
            board = self._board(board_id)
            if board.status not in expected:
                return False
            board.status = new_status
            return True

    def set_assigned(
        self,
        board_id: str,
        winning_labels: List[int],
        losing_labels: List[int],
        assignments: List[SquareAssignment]
    ) -> Board:
        with self._lock:
            board = self._board(board_id)
            if board.status not in ASSIGNABLE_STATUSES:
                raise AlreadyAssignedError(
                    f"Board {board_id} is {board.status.value}, cannot assign"
                )

            # Check everything before touching anything
            positions = [a.grid_position for a in assignments]
            if len(set(positions)) != len(positions):
                raise DataIntegrityError(f"Duplicate grid positions for board {board_id}")
            for assignment in assignments:
                square = self._square(assignment.square_id)
                if square.board_id != board_id or not square.is_paid:
                    raise DataIntegrityError(
                        f"Square {square.id} is not a paid square of board {board_id}"
                    )
                if square.is_assigned:
                    raise DataIntegrityError(f"Square {square.id} is already assigned")

            for assignment in assignments:
                square = self._squares[assignment.square_id]
                square.grid_position = assignment.grid_position
                square.winning_team_number = assignment.winning_team_number
                square.losing_team_number = assignment.losing_team_number

            board.winning_team_numbers = list(winning_labels)
            board.losing_team_numbers = list(losing_labels)
            board.status = BoardStatus.ASSIGNED
            return self._with_counts(board)

    # =========================================================================
    # SQUARES
    # =========================================================================

    def create_square(
        self,
        board_id: str,
        user_id: Optional[str] = None,
        payment_status: PaymentStatus = PaymentStatus.PENDING
    ) -> Square:
        with self._lock:
            board = self._board(board_id)
            existing = self._board_squares(board_id)
            if board.status != BoardStatus.OPEN:
                raise PreconditionError(
                    f"Board {board_id} is {board.status.value}, not accepting squares"
                )
            if len(existing) >= board.total_squares:
                raise PreconditionError(f"Board {board_id} has no squares available")
            square = Square(
                id=self._new_id(),
                board_id=board_id,
                user_id=user_id,
                payment_status=payment_status,
                claim_order=(existing[-1].claim_order + 1) if existing else 1,
                created_at=self._now()
            )
            self._squares[square.id] = square
            return square.model_copy(deep=True)

    def get_square(self, square_id: str) -> Square:
        with self._lock:
            return self._square(square_id).model_copy(deep=True)

    def list_squares(self, board_id: str) -> List[Square]:
        with self._lock:
            return [s.model_copy(deep=True) for s in self._board_squares(board_id)]

    def list_paid_squares(self, board_id: str) -> List[Square]:
        with self._lock:
            return [
                s.model_copy(deep=True) for s in self._board_squares(board_id)
                if s.is_paid
            ]

    def count_paid_squares(self, board_id: str) -> int:
        with self._lock:
            return sum(1 for s in self._board_squares(board_id) if s.is_paid)

    def mark_square_paid(self, square_id: str) -> Square:
        with self._lock:
            square = self._square(square_id)
            if not square.is_paid:
                board = self._board(square.board_id)
                if board.status != BoardStatus.OPEN:
                    raise PreconditionError(
                        f"Board {board.id} is {board.status.value}, not accepting payments"
                    )
            square.payment_status = PaymentStatus.PAID
            return square.model_copy(deep=True)

    def update_square_assignment(
        self,
        square_id: str,
        grid_position: int,
        winning_team_number: int,
        losing_team_number: int
    ) -> Square:
        with self._lock:
            square = self._square(square_id)
            if square.is_assigned:
                raise DataIntegrityError(f"Square {square_id} is already assigned")
            taken = any(
                s.grid_position == grid_position
                for s in self._board_squares(square.board_id)
            )
            if taken:
                raise DataIntegrityError(
                    f"Grid position {grid_position} is already taken on board {square.board_id}"
                )
            square.grid_position = grid_position
            square.winning_team_number = winning_team_number
            square.losing_team_number = losing_team_number
            return square.model_copy(deep=True)

    # =========================================================================
    # GAMES
    # =========================================================================

    def create_game(
        self,
        board_id: str,
        game_number: int,
        round: Round,
        team1: str,
        team2: str
    ) -> Game:
        with self._lock:
            self._board(board_id)
            if any(g.board_id == board_id and g.game_number == game_number
                   for g in self._games.values()):
                raise PreconditionError(
                    f"Game {game_number} already exists on board {board_id}"
                )
            game = Game(
                id=self._new_id(),
                board_id=board_id,
                game_number=game_number,
                round=round,
                team1=team1,
                team2=team2
            )
            self._games[game.id] = game
            return game.model_copy(deep=True)

    def get_game(self, game_id: str) -> Game:
        with self._lock:
            return self._game(game_id).model_copy(deep=True)

    def list_games(self, board_id: str) -> List[Game]:
        with self._lock:
            games = [g for g in self._games.values() if g.board_id == board_id]
            return [g.model_copy(deep=True) for g in sorted(games, key=lambda g: g.game_number)]

    def update_game_score(
        self,
        game_id: str,
        team1_score: Optional[int],
        team2_score: Optional[int],
        status: GameStatus,
        winner_square_id: Optional[str] = None
    ) -> Game:
        with self._lock:
            game = self._game(game_id)
            if game.status == GameStatus.COMPLETED:
                raise PreconditionError(f"Game {game_id} is already completed")
            game.team1_score = team1_score
            game.team2_score = team2_score
            game.status = status
            if status == GameStatus.COMPLETED:
                game.winner_square_id = winner_square_id
                game.completed_at = self._now()
            return game.model_copy(deep=True)
