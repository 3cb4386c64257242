"""
Random assignment of squares to grid positions and digit labels.

Once a board has 100 paid squares, the squares are bound to the 100 grid
cells by a random permutation, and the board's columns and rows are
labelled with two independent random permutations of the digits 0-9.
The assignment is one-shot: the board's move to ASSIGNED is a conditional
write, so two racing callers produce exactly one assignment.
"""

import logging
import random
from typing import List, Optional, Sequence, Tuple

from pydantic import BaseModel, Field

from .permutation import get_rng, shuffle
from .validator import AssignmentValidator, ValidationReport, validate_squares
from ..constants import DIGITS, GRID_SIZE, TOTAL_SQUARES
from ..exceptions import AlreadyAssignedError, DataIntegrityError, PreconditionError
from ..models import ASSIGNABLE_STATUSES, Board, BoardStatus, Square, SquareAssignment
from ..storage import DatabaseInterface

logger = logging.getLogger(__name__)


class AssignmentResult(BaseModel):
    """Outcome of a successful board assignment."""

    board_id: str = Field(..., alias="boardId")
    assigned_squares: int = Field(..., alias="assignedSquares")
    winning_numbers: List[int] = Field(..., alias="winningNumbers")
    losing_numbers: List[int] = Field(..., alias="losingNumbers")
    assignments: List[SquareAssignment] = Field(default_factory=list)
    validation: Optional[ValidationReport] = None

    class Config:
        """Pydantic configuration."""

        populate_by_name = True


def generate_assignments(
    squares: Sequence[Square],
    rng: Optional[random.Random] = None
) -> Tuple[List[int], List[int], List[SquareAssignment]]:
    """
    Bind squares to grid positions and digits.

    Square i (in the given order) gets positions[i]; its row picks the
    losing digit and its column the winning digit.

    Args:
        squares: Exactly 100 squares in a stable order
        rng: Random source shared by the three shuffles

    Returns:
        Tuple of (winning_labels, losing_labels, assignments)
    """
    if len(squares) != TOTAL_SQUARES:
        raise PreconditionError(
            f"Assignment needs exactly {TOTAL_SQUARES} squares, got {len(squares)}"
        )

    rng = rng or get_rng()
    winning_labels = shuffle(DIGITS, rng)
    losing_labels = shuffle(DIGITS, rng)
    positions = shuffle(range(TOTAL_SQUARES), rng)

    assignments = []
    for index, square in enumerate(squares):
        grid_position = positions[index]
        row, col = divmod(grid_position, GRID_SIZE)
        assignments.append(SquareAssignment(
            square_id=square.id,
            grid_position=grid_position,
            winning_team_number=winning_labels[col],
            losing_team_number=losing_labels[row]
        ))

    return winning_labels, losing_labels, assignments


class AssignmentEngine:
    """
    Runs the one-shot random assignment for a fully paid board.

    Store collaborators are injected; pass a seeded random.Random for
    deterministic runs.
    """

    def __init__(
        self,
        db: DatabaseInterface,
        rng: Optional[random.Random] = None,
        validator: Optional[AssignmentValidator] = None
    ):
        self.db = db
        self.rng = rng
        self.validator = validator or AssignmentValidator(db)

    def _check_preconditions(self, board: Board, squares: List[Square]) -> None:
        if board.status not in ASSIGNABLE_STATUSES:
            raise AlreadyAssignedError(
                f"Board {board.id} is {board.status.value}; assignment already ran"
            )
        if len(squares) != TOTAL_SQUARES:
            raise PreconditionError(
                f"Board {board.id} must have exactly {TOTAL_SQUARES} paid squares "
                f"for assignment. Current: {len(squares)}"
            )
        if any(s.is_assigned for s in squares):
            raise AlreadyAssignedError(
                f"Squares have already been assigned on board {board.id}"
            )

    def assign(self, board_id: str) -> AssignmentResult:
        """
        Assign every paid square of a board.

        Args:
            board_id: Board with exactly 100 paid squares, OPEN or FILLED

        Returns:
            AssignmentResult with the labels, per-square assignments and the
            validation report read back from the store

        Raises:
            AlreadyAssignedError: Board is already ASSIGNED/ACTIVE/COMPLETED,
                                  including when another caller won the race
            PreconditionError: Board does not have 100 paid squares
            DataIntegrityError: The mapping failed validation
            NotFoundError: Board does not exist
        """
        board = self.db.get_board(board_id)
        squares = self.db.list_paid_squares(board_id)

        try:
            self._check_preconditions(board, squares)
        except PreconditionError as e:
            logger.warning(f"Assignment rejected for board {board_id}: {e}")
            raise

        logger.info(f"Assigning {len(squares)} squares on board {board_id}")
        winning_labels, losing_labels, assignments = generate_assignments(
            squares, self.rng or get_rng()
        )

        # Check the mapping in memory before anything is written
        planned = [
            square.model_copy(update={
                'grid_position': a.grid_position,
                'winning_team_number': a.winning_team_number,
                'losing_team_number': a.losing_team_number,
            })
            for square, a in zip(squares, assignments)
        ]
        planned_board = board.model_copy(update={
            'status': BoardStatus.ASSIGNED,
            'winning_team_numbers': winning_labels,
            'losing_team_numbers': losing_labels,
        })
        try:
            validate_squares(planned, board=planned_board).raise_for_errors()
        except DataIntegrityError:
            logger.exception(f"Generated assignment for board {board_id} is invalid")
            raise

        self.db.set_assigned(board_id, winning_labels, losing_labels, assignments)

        report = self.validator.validate(board_id)
        if not report.valid:
            logger.error(f"Stored assignment for board {board_id} failed validation")
            report.raise_for_errors()

        logger.info(
            f"Board {board_id} assigned: winning numbers {winning_labels}, "
            f"losing numbers {losing_labels}"
        )
        return AssignmentResult(
            board_id=board_id,
            assigned_squares=len(assignments),
            winning_numbers=winning_labels,
            losing_numbers=losing_labels,
            assignments=assignments,
            validation=report
        )
