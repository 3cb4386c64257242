"""
Abstract base class defining the database interface.

All database implementations must inherit from this class and implement
all abstract methods. This ensures consistent behavior across backends.
"""

from abc import ABC, abstractmethod
from typing import Optional, List, Dict, Iterable

from squarespool.models import (
    Board,
    BoardStatus,
    Game,
    GameStatus,
    PaymentStatus,
    Round,
    Square,
    SquareAssignment,
)


class DatabaseInterface(ABC):
    """
    Abstract interface for squares pool storage.

    All methods must be implemented by concrete database classes.
    Status transitions are conditional writes: they only succeed when the
    stored status matches what the caller expects.
    """

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    @abstractmethod
    def initialize(self) -> None:
        """
        Initialize the database connection and schema.

        Should be idempotent (safe to call multiple times).
        """
        pass

    @abstractmethod
    def close(self) -> None:
        """Close database connections and clean up resources."""
        pass

    @abstractmethod
    def health_check(self) -> bool:
        """
        Check if the database connection is healthy.

        Returns:
            True if database is accessible, False otherwise
        """
        pass

    # =========================================================================
    # BOARDS
    # =========================================================================

    @abstractmethod
    def create_board(
        self,
        name: str,
        price_per_square: float,
        created_by: Optional[str] = None,
        payout_structure: Optional[Dict[Round, float]] = None
    ) -> Board:
        """Create an OPEN board and return it."""
        pass

    @abstractmethod
    def get_board(self, board_id: str) -> Board:
        """
        Get a board with its current paid square count.

        Raises:
            NotFoundError: If the board does not exist
        """
        pass

    @abstractmethod
    def list_boards(self, status: Optional[BoardStatus] = None) -> List[Board]:
        """Get all boards, optionally filtered by status, oldest first."""
        pass

    @abstractmethod
    def compare_and_swap_status(
        self,
        board_id: str,
        expected: Iterable[BoardStatus],
        new_status: BoardStatus
    ) -> bool:
        """
        Atomically move a board to new_status if its status is in expected.

        Returns:
            True if the status was changed, False if the stored status
            did not match
        """
        pass

    @abstractmethod
    def set_assigned(
        self,
        board_id: str,
        winning_labels: List[int],
        losing_labels: List[int],
        assignments: List[SquareAssignment]
    ) -> Board:
        """
        Record a board's assignment as one atomic unit.

        Moves the board from OPEN/FILLED to ASSIGNED, stores the label
        sequences and writes every square assignment. Nothing is written
        unless all of it is.

        Raises:
            AlreadyAssignedError: If the board is no longer OPEN or FILLED
            DataIntegrityError: If a square is already assigned or is not
                                a paid square of this board
        """
        pass

    # =========================================================================
    # SQUARES
    # =========================================================================

    @abstractmethod
    def create_square(
        self,
        board_id: str,
        user_id: Optional[str] = None,
        payment_status: PaymentStatus = PaymentStatus.PENDING
    ) -> Square:
        """
        Claim a square on a board; claim_order is the next per-board value.

        Raises:
            NotFoundError: If the board does not exist
            PreconditionError: If the board is not OPEN or all of its
                               squares are claimed
        """
        pass

    @abstractmethod
    def get_square(self, square_id: str) -> Square:
        """
        Get a square by ID.

        Raises:
            NotFoundError: If the square does not exist
        """
        pass

    @abstractmethod
    def list_squares(self, board_id: str) -> List[Square]:
        """Get all squares of a board ordered by claim_order."""
        pass

    @abstractmethod
    def list_paid_squares(self, board_id: str) -> List[Square]:
        """
        Get the paid squares of a board ordered by claim_order.

        The order is stable between calls and is the basis for the
        index-to-square correspondence of the assignment.
        """
        pass

    @abstractmethod
    def count_paid_squares(self, board_id: str) -> int:
        """Count paid squares on a board."""
        pass

    @abstractmethod
    def mark_square_paid(self, square_id: str) -> Square:
        """
        Set a square's payment status to PAID (idempotent).

        Raises:
            NotFoundError: If the square does not exist
            PreconditionError: If the square is unpaid and its board is no
                               longer OPEN
        """
        pass

    @abstractmethod
    def update_square_assignment(
        self,
        square_id: str,
        grid_position: int,
        winning_team_number: int,
        losing_team_number: int
    ) -> Square:
        """
        Write one square's grid position and digits.

        Raises:
            DataIntegrityError: If the square is already assigned or the
                                position is taken on its board
        """
        pass

    # =========================================================================
    # GAMES
    # =========================================================================

    @abstractmethod
    def create_game(
        self,
        board_id: str,
        game_number: int,
        round: Round,
        team1: str,
        team2: str
    ) -> Game:
        """Create a SCHEDULED game on a board."""
        pass

    @abstractmethod
    def get_game(self, game_id: str) -> Game:
        """
        Get a game by ID.

        Raises:
            NotFoundError: If the game does not exist
        """
        pass

    @abstractmethod
    def list_games(self, board_id: str) -> List[Game]:
        """Get a board's games ordered by game_number."""
        pass

    @abstractmethod
    def update_game_score(
        self,
        game_id: str,
        team1_score: Optional[int],
        team2_score: Optional[int],
        status: GameStatus,
        winner_square_id: Optional[str] = None
    ) -> Game:
        """
        Store a game's scores and status.

        Raises:
            PreconditionError: If the game is already COMPLETED
        """
        pass
